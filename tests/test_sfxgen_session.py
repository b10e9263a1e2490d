from __future__ import annotations

from pathlib import Path

import pytest

from sfxgen.audio import ExportFormat, read_wav
from sfxgen.errors import UnknownPresetError
from sfxgen.params import WaveParams, WaveType
from sfxgen.rng import RandomSource
from sfxgen.session import SoundSession


def _short_session() -> SoundSession:
    params = WaveParams(rand_seed=3, sustain_time=0.05, decay_time=0.1)
    return SoundSession(params, rng=RandomSource(0))


def test_wave_is_cached_until_an_edit() -> None:
    session = _short_session()
    assert session.needs_regeneration

    wave = session.wave
    assert not session.needs_regeneration
    assert session.wave is wave

    session.update(wave_type=WaveType.SINE)
    assert session.needs_regeneration
    assert session.params.wave_type is WaveType.SINE
    assert session.wave is not wave


def test_edits_replace_params() -> None:
    session = SoundSession(rng=RandomSource(1))
    original = session.params

    session.apply_preset("blip")
    assert session.params != original
    assert session.params.hpf_cutoff == pytest.approx(0.1)

    blip = session.params
    session.mutate()
    assert session.params.wave_type == blip.wave_type

    session.randomize()
    assert session.params.wave_type == blip.wave_type

    session.reset()
    assert session.params.sustain_time == pytest.approx(0.3)


def test_unknown_preset_leaves_state_alone() -> None:
    session = _short_session()
    _ = session.wave
    with pytest.raises(UnknownPresetError):
        session.apply_preset("nope")
    assert not session.needs_regeneration


@pytest.mark.parametrize("suffix", [".rfx", ".sfs"])
def test_save_and_load(tmp_path: Path, suffix: str) -> None:
    session = _short_session()
    session.apply_preset("coin")
    path = session.save(tmp_path / f"coin{suffix}")

    other = SoundSession(rng=RandomSource(5))
    loaded = other.load(path)

    expected = session.params if suffix == ".rfx" else session.params.with_updates(rand_seed=0)
    assert loaded == expected
    assert other.needs_regeneration


def test_export_writes_requested_format(tmp_path: Path) -> None:
    session = _short_session()
    target = session.export(tmp_path / "out.wav", ExportFormat.parse("22050,16,2"))

    wave = read_wav(target)
    assert wave.sample_rate == 22_050
    assert wave.channels == 2
    assert wave.sample_size == 16
