from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from math import gcd
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Literal, cast

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import DTypeLike, NDArray
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from scipy.signal import resample_poly  # type: ignore[import]

from .errors import InvalidFormatError

FloatArray = NDArray[np.float32]
AudioNumbers = NDArray[np.floating[Any]] | Sequence[float] | FloatArray

SAMPLE_RATE = 44_100
SAMPLE_SIZE = 32
CHANNELS = 1

SampleRate = Literal[22_050, 44_100]
SampleSize = Literal[8, 16, 32]
ChannelCount = Literal[1, 2]

_SUBTYPES: Mapping[int, str] = MappingProxyType({8: "PCM_U8", 16: "PCM_16", 32: "FLOAT"})
_SUBTYPE_SIZES: Mapping[str, int] = MappingProxyType(
    {
        "PCM_U8": 8,
        "PCM_S8": 8,
        "PCM_16": 16,
        "PCM_24": 32,
        "PCM_32": 32,
        "FLOAT": 32,
        "DOUBLE": 32,
    }
)
# Largest positive integer code per bit depth.
_QUANT_STEPS: Mapping[int, float] = MappingProxyType({8: 127.0, 16: 32_767.0})

_LOGGER = logging.getLogger("sfxgen.audio")


def ensure_audio_contract(audio: AudioNumbers, *, channels: int = CHANNELS) -> FloatArray:
    """Normalize dtype/range/shape: float32, peak <= 1, (frames,) or (frames, channels)."""

    samples: FloatArray = np.asarray(audio, dtype=np.float32)
    if channels == 1:
        samples = samples.reshape(-1)
    else:
        samples = samples.reshape(-1, channels)
    if samples.size == 0:
        return samples
    peak = float(np.max(np.abs(samples)))
    if peak > 1.0:
        samples = samples / peak
    return samples


class ExportFormat(BaseModel):
    """Target layout for exported audio (defaults: 44100 Hz, 16 bit, mono)."""

    sample_rate: SampleRate = 44_100
    sample_size: SampleSize = 16
    channels: ChannelCount = 1

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def parse(cls, text: str) -> ExportFormat:
        """Parse ``"<rate>,<bits>,<channels>"`` (commas or spaces)."""
        parts = [part for part in re.split(r"[,\s]+", text.strip()) if part]
        if len(parts) != 3:
            raise InvalidFormatError(
                f"Expected <sample_rate>,<sample_size>,<channels>, got {text!r}"
            )
        try:
            sample_rate, sample_size, channels = (int(part) for part in parts)
        except ValueError as exc:
            raise InvalidFormatError(f"Format values must be integers: {text!r}") from exc
        try:
            return cls.model_validate(
                {"sample_rate": sample_rate, "sample_size": sample_size, "channels": channels}
            )
        except ValidationError as exc:
            raise InvalidFormatError(f"Unsupported format {text!r}: {exc}") from exc


class Wave(BaseModel):
    samples: FloatArray
    sample_rate: int = SAMPLE_RATE
    sample_size: int = SAMPLE_SIZE
    channels: int = CHANNELS

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @model_validator(mode="after")
    def _normalize(self) -> Wave:
        normalized = ensure_audio_contract(self.samples, channels=self.channels)
        object.__setattr__(self, "samples", normalized)
        return self

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.sample_count / self.sample_rate if self.sample_rate > 0 else 0.0

    def __array__(
        self, dtype: DTypeLike | None = None, copy: bool | None = None
    ) -> NDArray[np.generic]:
        return np.asarray(self.samples, dtype=dtype)

    def formatted(self, fmt: ExportFormat) -> Wave:
        return format_wave(self, fmt)

    def save(self, path: str | Path, fmt: ExportFormat | None = None) -> Path:
        wave = self if fmt is None else format_wave(self, fmt)
        return write_wav(path, wave)

    def play(self) -> None:
        from .playback import play_wave

        play_wave(self)


def _quantize(samples: NDArray[np.float64], sample_size: int) -> NDArray[np.float64]:
    steps = _QUANT_STEPS.get(sample_size)
    if steps is None:
        return samples
    return np.round(samples * steps) / steps


def _remix(
    samples: NDArray[np.float64], source_channels: int, target_channels: int
) -> NDArray[np.float64]:
    if source_channels == target_channels:
        return samples
    mono = samples if samples.ndim == 1 else samples.mean(axis=1)
    if target_channels == 1:
        return mono
    return np.repeat(mono.reshape(-1, 1), target_channels, axis=1)


def format_wave(wave: Wave, fmt: ExportFormat) -> Wave:
    """Resample, requantize and remix ``wave`` to ``fmt``."""

    samples: NDArray[np.float64] = np.asarray(wave.samples, dtype=np.float64)
    if fmt.sample_rate != wave.sample_rate and samples.shape[0] > 0:
        divisor = gcd(fmt.sample_rate, wave.sample_rate)
        up = fmt.sample_rate // divisor
        down = wave.sample_rate // divisor
        samples = cast(NDArray[np.float64], resample_poly(samples, up, down, axis=0))
    samples = np.clip(samples, -1.0, 1.0)
    samples = _quantize(samples, fmt.sample_size)
    samples = _remix(samples, wave.channels, fmt.channels)
    _LOGGER.debug(
        "Formatted wave %d Hz/%d bit/%d ch -> %d Hz/%d bit/%d ch",
        wave.sample_rate,
        wave.sample_size,
        wave.channels,
        fmt.sample_rate,
        fmt.sample_size,
        fmt.channels,
    )
    return Wave(
        samples=samples.astype(np.float32),
        sample_rate=fmt.sample_rate,
        sample_size=fmt.sample_size,
        channels=fmt.channels,
    )


def write_wav(path: str | Path, wave: Wave) -> Path:
    """Write ``wave`` as a .wav file using its own rate, bit depth and channel count."""

    target = Path(path)
    subtype = _SUBTYPES.get(wave.sample_size)
    if subtype is None:
        raise InvalidFormatError(f"Unsupported sample size: {wave.sample_size}")
    write_fn = getattr(sf, "write", None)
    assert callable(write_fn)
    write_audio = cast(Callable[..., None], write_fn)
    # soundfile stubs are incomplete; cast is intentional for type safety.
    write_audio(target, wave.samples, wave.sample_rate, subtype=subtype)
    _LOGGER.debug("Wrote %d frames to %s (%s)", wave.sample_count, target, subtype)
    return target


def read_wav(path: str | Path) -> Wave:
    source = Path(path)
    info = sf.info(str(source))
    data, sample_rate = sf.read(str(source), dtype="float32", always_2d=False)
    channels = 1 if np.ndim(data) == 1 else int(np.shape(data)[1])
    return Wave(
        samples=np.asarray(data, dtype=np.float32),
        sample_rate=int(sample_rate),
        sample_size=_SUBTYPE_SIZES.get(str(info.subtype), SAMPLE_SIZE),
        channels=channels,
    )
