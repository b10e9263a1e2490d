from __future__ import annotations

import logging
import math
from enum import IntEnum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .rng import RandomSource

_LOGGER = logging.getLogger("sfxgen.params")

MIN_RAND_SEED = 0x1
MAX_RAND_SEED = 0xFFFE


class WaveType(IntEnum):
    SQUARE = 0
    SAWTOOTH = 1
    SINE = 2
    NOISE = 3


# Binary image order after the two integer fields (rand_seed, wave_type).
FLOAT_FIELDS: tuple[str, ...] = (
    "attack_time",
    "sustain_time",
    "sustain_punch",
    "decay_time",
    "start_frequency",
    "min_frequency",
    "slide",
    "delta_slide",
    "vibrato_depth",
    "vibrato_speed",
    "change_amount",
    "change_speed",
    "square_duty",
    "duty_sweep",
    "repeat_speed",
    "phaser_offset",
    "phaser_sweep",
    "lpf_cutoff",
    "lpf_cutoff_sweep",
    "lpf_resonance",
    "hpf_cutoff",
    "hpf_cutoff_sweep",
)

# Fields nudged by mutate, in draw order. min_frequency is left alone.
MUTABLE_FIELDS: tuple[str, ...] = (
    "start_frequency",
    "slide",
    "delta_slide",
    "square_duty",
    "duty_sweep",
    "vibrato_depth",
    "vibrato_speed",
    "attack_time",
    "sustain_time",
    "decay_time",
    "sustain_punch",
    "lpf_resonance",
    "lpf_cutoff",
    "lpf_cutoff_sweep",
    "hpf_cutoff",
    "hpf_cutoff_sweep",
    "phaser_offset",
    "phaser_sweep",
    "repeat_speed",
    "change_speed",
    "change_amount",
)


def to_float32(value: float) -> float:
    """Round a Python float to the nearest 32-bit float value."""
    with np.errstate(over="ignore"):
        return float(np.float32(value))


class WaveParams(BaseModel):
    """Timbre of a single sound effect.

    Two integer fields followed by 22 normalized float controls, declared in
    the order of the .rfx binary image. Floats are kept at 32-bit precision so
    a saved file reloads bit-for-bit.

    Most controls live in [0, 1] or [-1, 1] but nothing here enforces that:
    mutate and hand-edited files may push values outside, and the synthesis
    engine copes. Values must still be finite once rounded to 32 bits.
    """

    rand_seed: int = Field(default=0, ge=-(2**31), le=2**31 - 1)
    wave_type: WaveType = WaveType.SQUARE

    # Envelope
    attack_time: float = 0.0
    sustain_time: float = 0.3
    sustain_punch: float = 0.0
    decay_time: float = 0.4

    # Frequency
    start_frequency: float = 0.3
    min_frequency: float = 0.0
    slide: float = 0.0
    delta_slide: float = 0.0
    vibrato_depth: float = 0.0
    vibrato_speed: float = 0.0

    # Tone change (arpeggio)
    change_amount: float = 0.0
    change_speed: float = 0.0

    # Square wave
    square_duty: float = 0.0
    duty_sweep: float = 0.0

    # Repeat
    repeat_speed: float = 0.0

    # Phaser
    phaser_offset: float = 0.0
    phaser_sweep: float = 0.0

    # Filters
    lpf_cutoff: float = 1.0
    lpf_cutoff_sweep: float = 0.0
    lpf_resonance: float = 0.0
    hpf_cutoff: float = 0.0
    hpf_cutoff_sweep: float = 0.0

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @field_validator(*FLOAT_FIELDS)
    @classmethod
    def _round_to_float32(cls, value: float) -> float:
        rounded = to_float32(value)
        if not math.isfinite(rounded):
            raise ValueError(f"{value!r} is not a finite 32-bit float")
        return rounded

    def corrected(self) -> WaveParams:
        """Copy with the min-frequency and slide safety clamps applied."""
        fixed = self.model_copy()
        if fixed.min_frequency > fixed.start_frequency:
            _LOGGER.debug(
                "min_frequency %.4f above start_frequency %.4f; clamping",
                fixed.min_frequency,
                fixed.start_frequency,
            )
            fixed.min_frequency = fixed.start_frequency
        if fixed.slide < fixed.delta_slide:
            _LOGGER.debug(
                "slide %.4f below delta_slide %.4f; clamping", fixed.slide, fixed.delta_slide
            )
            fixed.slide = fixed.delta_slide
        return fixed

    def with_updates(self, **changes: Any) -> WaveParams:
        """Validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return WaveParams.model_validate(data)

    def float_values(self) -> tuple[float, ...]:
        return tuple(getattr(self, name) for name in FLOAT_FIELDS)


def _assert_field_order() -> None:
    expected = ("rand_seed", "wave_type", *FLOAT_FIELDS)
    actual = tuple(WaveParams.model_fields)
    if actual == expected:
        return
    raise AssertionError(f"WaveParams field order mismatch: {actual!r} != {expected!r}")


_assert_field_order()


def reset_wave_params(rng: RandomSource | None = None) -> WaveParams:
    """Default parameters with a fresh seed; ``rng`` is re-seeded with it."""
    source = rng or RandomSource()
    seed = source.value(MIN_RAND_SEED, MAX_RAND_SEED)
    source.seed(seed)
    return WaveParams(rand_seed=seed)
