from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, TypeAlias

from .errors import UnknownPresetError
from .params import (
    MAX_RAND_SEED,
    MIN_RAND_SEED,
    MUTABLE_FIELDS,
    WaveParams,
    WaveType,
    reset_wave_params,
)
from .rng import RandomSource

_LOGGER = logging.getLogger("sfxgen.presets")

PresetFn: TypeAlias = Callable[[RandomSource | None], WaveParams]

MUTATE_STEP = 0.1
MIN_AUDIBLE_LENGTH = 0.2


# =============================================================================
# PRESETS
# =============================================================================


def pickup_coin(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.start_frequency = 0.4 + source.frnd(0.5)
    params.attack_time = 0.0
    params.sustain_time = source.frnd(0.1)
    params.decay_time = 0.1 + source.frnd(0.4)
    params.sustain_punch = 0.3 + source.frnd(0.3)

    if source.coin():
        params.change_speed = 0.5 + source.frnd(0.2)
        params.change_amount = 0.2 + source.frnd(0.4)

    return params


def laser_shoot(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.wave_type = WaveType(source.value(0, 2))
    if params.wave_type == WaveType.SINE and source.coin():
        params.wave_type = WaveType(source.value(0, 1))

    params.start_frequency = 0.5 + source.frnd(0.5)
    params.min_frequency = params.start_frequency - 0.2 - source.frnd(0.6)
    if params.min_frequency < 0.2:
        params.min_frequency = 0.2

    params.slide = -0.15 - source.frnd(0.2)

    if source.value(0, 2) == 0:
        params.start_frequency = 0.3 + source.frnd(0.6)
        params.min_frequency = source.frnd(0.1)
        params.slide = -0.35 - source.frnd(0.3)

    if source.coin():
        params.square_duty = source.frnd(0.5)
        params.duty_sweep = source.frnd(0.2)
    else:
        params.square_duty = 0.4 + source.frnd(0.5)
        params.duty_sweep = -source.frnd(0.7)

    params.attack_time = 0.0
    params.sustain_time = 0.1 + source.frnd(0.2)
    params.decay_time = source.frnd(0.4)

    if source.coin():
        params.sustain_punch = source.frnd(0.3)

    if source.value(0, 2) == 0:
        params.phaser_offset = source.frnd(0.2)
        params.phaser_sweep = -source.frnd(0.2)

    if source.coin():
        params.hpf_cutoff = source.frnd(0.3)

    return params


def explosion(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.wave_type = WaveType.NOISE

    if source.coin():
        params.start_frequency = 0.1 + source.frnd(0.4)
        params.slide = -0.1 + source.frnd(0.4)
    else:
        params.start_frequency = 0.2 + source.frnd(0.7)
        params.slide = -0.2 - source.frnd(0.2)

    params.start_frequency *= params.start_frequency

    if source.value(0, 4) == 0:
        params.slide = 0.0
    if source.value(0, 2) == 0:
        params.repeat_speed = 0.3 + source.frnd(0.5)

    params.attack_time = 0.0
    params.sustain_time = 0.1 + source.frnd(0.3)
    params.decay_time = source.frnd(0.5)

    if source.value(0, 1) == 0:
        params.phaser_offset = -0.3 + source.frnd(0.9)
        params.phaser_sweep = -source.frnd(0.3)

    params.sustain_punch = 0.2 + source.frnd(0.6)

    if source.coin():
        params.vibrato_depth = source.frnd(0.7)
        params.vibrato_speed = source.frnd(0.6)

    if source.value(0, 2) == 0:
        params.change_speed = 0.6 + source.frnd(0.3)
        params.change_amount = 0.8 - source.frnd(1.6)

    return params


def powerup(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    if source.coin():
        params.wave_type = WaveType.SAWTOOTH
    else:
        params.square_duty = source.frnd(0.6)

    if source.coin():
        params.start_frequency = 0.2 + source.frnd(0.3)
        params.slide = 0.1 + source.frnd(0.4)
        params.repeat_speed = 0.4 + source.frnd(0.4)
    else:
        params.start_frequency = 0.2 + source.frnd(0.3)
        params.slide = 0.05 + source.frnd(0.2)

        if source.coin():
            params.vibrato_depth = source.frnd(0.7)
            params.vibrato_speed = source.frnd(0.6)

    params.attack_time = 0.0
    params.sustain_time = source.frnd(0.4)
    params.decay_time = 0.1 + source.frnd(0.4)

    return params


def hit_hurt(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.wave_type = WaveType(source.value(0, 2))
    if params.wave_type == WaveType.SINE:
        params.wave_type = WaveType.NOISE
    if params.wave_type == WaveType.SQUARE:
        params.square_duty = source.frnd(0.6)

    params.start_frequency = 0.2 + source.frnd(0.6)
    params.slide = -0.3 - source.frnd(0.4)
    params.attack_time = 0.0
    params.sustain_time = source.frnd(0.1)
    params.decay_time = 0.1 + source.frnd(0.2)

    if source.coin():
        params.hpf_cutoff = source.frnd(0.3)

    return params


def jump(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.wave_type = WaveType.SQUARE
    params.square_duty = source.frnd(0.6)
    params.start_frequency = 0.3 + source.frnd(0.3)
    params.slide = 0.1 + source.frnd(0.2)
    params.attack_time = 0.0
    params.sustain_time = 0.1 + source.frnd(0.3)
    params.decay_time = 0.1 + source.frnd(0.2)

    if source.coin():
        params.hpf_cutoff = source.frnd(0.3)
    if source.coin():
        params.lpf_cutoff = 1.0 - source.frnd(0.6)

    return params


def blip_select(rng: RandomSource | None = None) -> WaveParams:
    source = rng or RandomSource()
    params = reset_wave_params(source)

    params.wave_type = WaveType(source.value(0, 1))
    if params.wave_type == WaveType.SQUARE:
        params.square_duty = source.frnd(0.6)
    params.start_frequency = 0.2 + source.frnd(0.4)
    params.attack_time = 0.0
    params.sustain_time = 0.1 + source.frnd(0.1)
    params.decay_time = source.frnd(0.2)
    params.hpf_cutoff = 0.1

    return params


# =============================================================================
# RANDOMIZE / MUTATE
# =============================================================================


def _signed(source: RandomSource) -> float:
    return source.frnd(2.0) - 1.0


def apply_audibility_guard(params: WaveParams, rng: RandomSource | None = None) -> WaveParams:
    """Pad sustain and decay when the envelope is too short to hear.

    Returns a copy; the input is left untouched.
    """
    source = rng or RandomSource()
    guarded = params.model_copy()
    if guarded.attack_time + guarded.sustain_time + guarded.decay_time < MIN_AUDIBLE_LENGTH:
        guarded.sustain_time += 0.2 + source.frnd(0.3)
        guarded.decay_time += 0.2 + source.frnd(0.3)
    return guarded


def randomize(params: WaveParams | None = None, rng: RandomSource | None = None) -> WaveParams:
    """Redraw every control of ``params`` except the wave type."""
    source = rng or RandomSource()
    result = params.model_copy() if params is not None else WaveParams()

    result.rand_seed = source.value(MIN_RAND_SEED, MAX_RAND_SEED)

    result.start_frequency = _signed(source) ** 2
    if source.coin():
        result.start_frequency = _signed(source) ** 3 + 0.5

    result.min_frequency = 0.0
    result.slide = _signed(source) ** 5

    # Keep very high sounds from climbing and very low ones from falling.
    if result.start_frequency > 0.7 and result.slide > 0.2:
        result.slide = -result.slide
    if result.start_frequency < 0.2 and result.slide < -0.05:
        result.slide = -result.slide

    result.delta_slide = _signed(source) ** 3
    result.square_duty = _signed(source)
    result.duty_sweep = _signed(source) ** 3
    result.vibrato_depth = _signed(source) ** 3
    result.vibrato_speed = _signed(source)
    result.attack_time = _signed(source) ** 3
    result.sustain_time = _signed(source) ** 2
    result.decay_time = _signed(source)
    result.sustain_punch = source.frnd(0.8) ** 2

    result = apply_audibility_guard(result, source)

    result.lpf_resonance = _signed(source)
    result.lpf_cutoff = 1.0 - source.frnd(1.0) ** 3
    result.lpf_cutoff_sweep = _signed(source) ** 3
    if result.lpf_cutoff < 0.1 and result.lpf_cutoff_sweep < -0.05:
        result.lpf_cutoff_sweep = -result.lpf_cutoff_sweep

    result.hpf_cutoff = source.frnd(1.0) ** 5
    result.hpf_cutoff_sweep = _signed(source) ** 5
    result.phaser_offset = _signed(source) ** 3
    result.phaser_sweep = _signed(source) ** 3
    result.repeat_speed = _signed(source)
    result.change_speed = _signed(source)
    result.change_amount = _signed(source)

    return result


def mutate(params: WaveParams, rng: RandomSource | None = None) -> WaveParams:
    """Nudge roughly half of the controls by up to +/-0.05.

    No clamping happens here; the synthesis engine tolerates the drift.
    """
    source = rng or RandomSource()
    result = params.model_copy()
    touched = 0
    for name in MUTABLE_FIELDS:
        if source.coin():
            nudge = source.frnd(MUTATE_STEP) - MUTATE_STEP / 2
            setattr(result, name, getattr(result, name) + nudge)
            touched += 1
    _LOGGER.debug("Mutated %d of %d fields", touched, len(MUTABLE_FIELDS))
    return result


# =============================================================================
# REGISTRY
# =============================================================================

PRESETS: Mapping[str, PresetFn] = MappingProxyType(
    {
        "coin": pickup_coin,
        "laser": laser_shoot,
        "explosion": explosion,
        "powerup": powerup,
        "hit": hit_hurt,
        "jump": jump,
        "blip": blip_select,
    }
)


def generate_preset(name: str, rng: RandomSource | None = None) -> WaveParams:
    key = name.strip().lower()
    try:
        preset_fn = PRESETS[key]
    except KeyError as exc:
        raise UnknownPresetError(
            f"Unknown preset: {name!r}. Valid: {sorted(PRESETS)}"
        ) from exc
    return preset_fn(rng)
