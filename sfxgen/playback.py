from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Callable

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from .audio import FloatArray, ensure_audio_contract
from .errors import PlaybackError
from .spinner import ProgressBar

if TYPE_CHECKING:
    from .audio import Wave

_LOGGER = logging.getLogger("sfxgen.playback")


class PlaybackBackend(BaseModel):
    name: str
    play_audio: Callable[[FloatArray, int, int], None]

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )


def _load_backend() -> PlaybackBackend | None:
    return _load_sounddevice() or _load_simpleaudio()


def _resolve_backend() -> PlaybackBackend:
    backend = _load_backend()
    if backend is None:
        raise PlaybackError(
            "Playback requires sounddevice or simpleaudio. "
            "Install the 'playback' extra (or export with --output)."
        )
    return backend


def play_audio(samples: FloatArray, *, sample_rate: int, channels: int = 1) -> None:
    backend = _resolve_backend()
    duration = samples.shape[0] / sample_rate if sample_rate > 0 else 0.0
    _LOGGER.debug("Playing %.3fs through %s", duration, backend.name)

    def _run() -> None:
        backend.play_audio(samples, sample_rate, channels)

    _play_with_progress(_run, duration=duration, message="♪ Playing")


def play_wave(wave: Wave) -> None:
    play_audio(wave.samples, sample_rate=wave.sample_rate, channels=wave.channels)


def _play_with_progress(
    play_fn: Callable[[], None],
    *,
    duration: float,
    message: str,
) -> None:
    progress = ProgressBar(message, total=duration)
    error: list[BaseException] = []

    def _runner() -> None:
        try:
            play_fn()
        except BaseException as exc:
            error.append(exc)

    thread = threading.Thread(target=_runner, daemon=True)
    thread.start()
    start = time.monotonic()
    progress.start()
    try:
        while thread.is_alive():
            progress.update(time.monotonic() - start)
            time.sleep(0.05)
    finally:
        thread.join(timeout=0.2)
        progress.update(duration)
        progress.stop()
    if error:
        raise error[0]


def _load_sounddevice() -> PlaybackBackend | None:
    try:
        import sounddevice as sd_module  # type: ignore[import]
    except (ImportError, OSError) as exc:
        _LOGGER.info("sounddevice not available: %s", exc, exc_info=True)
        return None
    sd: Any = sd_module

    def _play_audio(samples: FloatArray, sample_rate: int, channels: int) -> None:
        normalized = ensure_audio_contract(samples, channels=channels)
        sd.play(normalized, sample_rate)
        sd.wait()

    return PlaybackBackend(name="sounddevice", play_audio=_play_audio)


def _load_simpleaudio() -> PlaybackBackend | None:
    try:
        import simpleaudio as sa_module  # type: ignore[import]
    except ImportError as exc:
        _LOGGER.info("simpleaudio not available: %s", exc, exc_info=True)
        return None
    sa: Any = sa_module

    def _to_int16(samples: FloatArray, channels: int) -> NDArray[np.int16]:
        normalized = ensure_audio_contract(samples, channels=channels)
        clipped = np.clip(normalized, -1.0, 1.0)
        return np.ascontiguousarray((clipped * 32_767).astype(np.int16))

    def _play_audio(samples: FloatArray, sample_rate: int, channels: int) -> None:
        audio = _to_int16(samples, channels)
        play = sa.play_buffer(audio, channels, 2, sample_rate)
        play.wait_done()

    return PlaybackBackend(name="simpleaudio", play_audio=_play_audio)
