from __future__ import annotations

import logging

import numpy as np
import pytest

from sfxgen.audio import SAMPLE_RATE, FloatArray
from sfxgen.params import WaveParams, WaveType
from sfxgen.presets import blip_select, mutate, pickup_coin, randomize
from sfxgen.rng import RandomSource
from sfxgen.synth import MAX_WAVE_SAMPLES, generate_wave, synthesize


def _short(**changes: object) -> WaveParams:
    base: dict[str, object] = {"sustain_time": 0.1, "decay_time": 0.1, "rand_seed": 99}
    base.update(changes)
    return WaveParams.model_validate(base)


def test_synthesize_is_deterministic() -> None:
    params = pickup_coin(RandomSource(3))
    first, first_count = synthesize(params, RandomSource(1))
    second, second_count = synthesize(params, RandomSource(2))

    assert first_count == second_count
    assert first.tobytes() == second.tobytes()


def test_noise_depends_only_on_rand_seed() -> None:
    params = _short(wave_type=WaveType.NOISE, rand_seed=1234)
    first, _ = synthesize(params, RandomSource(10))
    second, _ = synthesize(params, RandomSource(20))
    other, _ = synthesize(params.with_updates(rand_seed=4321), RandomSource(10))

    assert np.array_equal(first, second)
    assert not np.array_equal(first, other)


def test_samples_stay_in_range_for_extreme_params() -> None:
    params = _short(
        wave_type=WaveType.SAWTOOTH,
        start_frequency=1.0,
        slide=1.0,
        delta_slide=1.0,
        square_duty=-1.0,
        duty_sweep=1.0,
        vibrato_depth=1.0,
        vibrato_speed=1.0,
        change_amount=-1.0,
        change_speed=0.9,
        repeat_speed=0.9,
        sustain_punch=1.0,
        phaser_offset=-1.0,
        phaser_sweep=1.0,
        lpf_cutoff=0.5,
        lpf_cutoff_sweep=-1.0,
        lpf_resonance=1.0,
        hpf_cutoff=1.0,
        hpf_cutoff_sweep=1.0,
    )
    samples, count = synthesize(params, RandomSource(0))

    assert 1 <= count <= MAX_WAVE_SAMPLES
    assert samples.shape == (count,)
    assert samples.dtype == np.float32
    assert np.all(np.isfinite(samples))
    assert np.all(np.abs(samples) <= 1.0)


def test_out_of_range_drift_is_tolerated() -> None:
    params = _short(start_frequency=3.0, lpf_resonance=-2.0, lpf_cutoff=-0.5, hpf_cutoff=-1.5)
    samples, count = synthesize(params, RandomSource(0))
    assert count >= 1
    assert np.all(np.abs(samples) <= 1.0)


def test_zero_length_envelope_produces_samples() -> None:
    samples, count = synthesize(
        _short(attack_time=0.0, sustain_time=0.0, decay_time=0.0), RandomSource(0)
    )
    assert count >= 1
    assert np.all(np.isfinite(samples))


def test_min_frequency_above_start_is_corrected() -> None:
    broken = _short(start_frequency=0.2, min_frequency=0.9)
    fixed = _short(start_frequency=0.2, min_frequency=0.2)

    broken_samples, broken_count = synthesize(broken, RandomSource(0))
    fixed_samples, fixed_count = synthesize(fixed, RandomSource(0))

    assert broken_count == fixed_count
    assert np.array_equal(broken_samples, fixed_samples)
    assert broken.min_frequency == pytest.approx(0.9)


def test_min_frequency_stops_a_falling_sound_early() -> None:
    params = WaveParams(
        rand_seed=5,
        start_frequency=0.5,
        min_frequency=0.45,
        slide=-0.3,
        delta_slide=-0.5,
    )
    _, count = synthesize(params, RandomSource(0))
    envelope_samples = int(0.3**2 * 100_000) + int(0.4**2 * 100_000)
    assert count < envelope_samples // 4


def test_decay_magnitude_is_non_increasing() -> None:
    params = WaveParams(
        rand_seed=1,
        wave_type=WaveType.SQUARE,
        square_duty=1.0,
        attack_time=0.0,
        sustain_time=0.0,
        decay_time=0.1,
        lpf_cutoff=1.0,
        hpf_cutoff=0.0,
    )
    samples, count = synthesize(params, RandomSource(0))

    assert count > 100
    magnitude = np.abs(samples.astype(np.float64))
    assert np.all(np.diff(magnitude) <= 1e-7)
    assert magnitude[0] > 0.0


def test_repeat_restarts_pitch() -> None:
    plain = _short(slide=-0.4, delta_slide=-0.5)
    repeated = plain.with_updates(repeat_speed=0.8)

    plain_samples, plain_count = synthesize(plain, RandomSource(0))
    repeated_samples, repeated_count = synthesize(repeated, RandomSource(0))

    assert plain_count == repeated_count
    assert not np.array_equal(plain_samples, repeated_samples)


def test_generate_wave_wraps_samples(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="sfxgen.synth")
    wave = generate_wave(blip_select(RandomSource(8)), RandomSource(0))

    assert wave.sample_rate == SAMPLE_RATE
    assert wave.sample_size == 32
    assert wave.channels == 1
    assert 1 <= wave.sample_count <= MAX_WAVE_SAMPLES
    assert any("stopped by envelope" in record.getMessage() for record in caplog.records)


def _bounded_envelope(params: WaveParams, limit: float = 0.15) -> WaveParams:
    return params.with_updates(
        **{
            name: max(-limit, min(getattr(params, name), limit))
            for name in ("attack_time", "sustain_time", "decay_time")
        }
    )


def _assert_well_formed(samples: FloatArray, count: int) -> None:
    assert 1 <= count <= MAX_WAVE_SAMPLES
    assert samples.shape == (count,)
    assert np.all(np.isfinite(samples))
    assert np.all(np.abs(samples) <= 1.0)


@pytest.mark.parametrize("seed", range(8))
def test_randomized_and_mutated_params_stay_in_range(seed: int) -> None:
    randomized = _bounded_envelope(randomize(WaveParams(), RandomSource(seed)))
    mutated = _bounded_envelope(mutate(randomized, RandomSource(seed + 1000)))

    for params in (randomized, mutated):
        samples, count = synthesize(params, RandomSource(0))
        _assert_well_formed(samples, count)


def test_largest_single_precision_params_stay_in_range() -> None:
    params = WaveParams(
        rand_seed=1,
        sustain_time=0.35,
        decay_time=0.1,
        slide=3e38,
        delta_slide=-3e38,
        vibrato_depth=3e38,
        vibrato_speed=0.5,
        phaser_offset=3e38,
        phaser_sweep=-3e38,
    )
    samples, count = synthesize(params, RandomSource(0))

    _assert_well_formed(samples, count)
    # The slide factor changes sign after about 10000 samples.
    assert count > 10_000


@pytest.mark.parametrize("field", ["slide", "delta_slide", "vibrato_depth", "phaser_offset"])
def test_single_extreme_control_stays_in_range(field: str) -> None:
    for value in (3e38, -3e38):
        samples, count = synthesize(_short(**{field: value}), RandomSource(0))
        _assert_well_formed(samples, count)
