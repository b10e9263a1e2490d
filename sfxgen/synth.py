"""
Sample-level synthesis engine.

One call walks a per-sample state machine:

1. Pitch: repeat restarts, arpeggio jump, slide with a period ceiling, vibrato
2. Shape: square duty sweep, attack/sustain/decay envelope, phaser sweep
3. Render: 8x supersampled oscillator -> low-pass -> high-pass -> phaser

All state lives in locals of a single ``synthesize`` call; nothing is shared
between calls except the random source the caller hands in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from .audio import SAMPLE_RATE, FloatArray, Wave
from .params import WaveParams, WaveType, to_float32
from .rng import RandomSource

_LOGGER = logging.getLogger("sfxgen.synth")

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_WAVE_SECONDS = 10
MAX_WAVE_SAMPLES = MAX_WAVE_SECONDS * SAMPLE_RATE
SUPERSAMPLING = 8
SAMPLE_SCALE = 0.2
MIN_PERIOD = 8
NOISE_BUFFER_SIZE = 32
PHASER_BUFFER_SIZE = 1024
PHASER_MASK = PHASER_BUFFER_SIZE - 1
ENVELOPE_TIME_SCALE = 100_000.0

_SQUARE = int(WaveType.SQUARE)
_SAWTOOTH = int(WaveType.SAWTOOTH)
_SINE = int(WaveType.SINE)
_NOISE = int(WaveType.NOISE)
_TWO_PI = 2.0 * math.pi


# =============================================================================
# PER-CYCLE STATE
# =============================================================================


@dataclass(slots=True)
class _PitchState:
    """Oscillator state that a repeat cycle restarts from scratch."""

    period: float
    max_period: float
    slide: float
    delta_slide: float
    square_duty: float
    duty_slide: float
    arpeggio_modulation: float
    arpeggio_limit: int


def _countdown_limit(speed: float) -> int:
    return int((1.0 - speed) ** 2 * 20_000 + 32)


def _start_pitch(params: WaveParams) -> _PitchState:
    if params.change_amount >= 0.0:
        arpeggio_modulation = 1.0 - params.change_amount**2 * 0.9
    else:
        arpeggio_modulation = 1.0 + params.change_amount**2 * 10.0

    arpeggio_limit = _countdown_limit(params.change_speed)
    if params.change_speed == 1.0:
        arpeggio_limit = 0

    return _PitchState(
        period=100.0 / (params.start_frequency**2 + 0.001),
        max_period=100.0 / (params.min_frequency**2 + 0.001),
        slide=1.0 - params.slide**3 * 0.01,
        delta_slide=-(params.delta_slide**3) * 0.000001,
        square_duty=0.5 - params.square_duty * 0.5,
        duty_slide=-params.duty_sweep * 0.00005,
        arpeggio_modulation=arpeggio_modulation,
        arpeggio_limit=arpeggio_limit,
    )


def _signed_square(value: float, scale: float) -> float:
    magnitude = value**2 * scale
    return -magnitude if value < 0.0 else magnitude


def _period_from(effective_period: float) -> int:
    if not math.isfinite(effective_period):
        return MIN_PERIOD
    return max(int(effective_period), MIN_PERIOD)


def _phaser_delay(offset: float) -> int:
    if not math.isfinite(offset):
        return PHASER_MASK
    return min(abs(int(offset)), PHASER_MASK)


# =============================================================================
# ENGINE
# =============================================================================


def synthesize(params: WaveParams, rng: RandomSource | None = None) -> tuple[FloatArray, int]:
    """Render ``params`` to mono float samples at 44100 Hz.

    Args:
        params: Sound description. Read only; the min-frequency and slide
            clamps are applied to a private copy.
        rng: Random source for the noise table. Re-seeded with
            ``params.rand_seed`` when that is non-zero, so identical params give
            identical samples.

    Returns:
        ``(samples, count)`` where ``samples`` holds exactly ``count`` values in
        [-1, 1] and ``1 <= count <= MAX_WAVE_SAMPLES``.
    """
    source = rng or RandomSource()
    if params.rand_seed != 0:
        source.seed(params.rand_seed)
    frnd = source.frnd
    sin = math.sin

    p = params.corrected()
    wave_type = int(p.wave_type)
    punch = p.sustain_punch
    stops_at_min_frequency = p.min_frequency > 0.0

    pitch = _start_pitch(p)
    fperiod = pitch.period
    fmax_period = pitch.max_period
    fslide = pitch.slide
    fdelta_slide = pitch.delta_slide
    square_duty = pitch.square_duty
    duty_slide = pitch.duty_slide
    arpeggio_modulation = pitch.arpeggio_modulation
    arpeggio_limit = pitch.arpeggio_limit
    arpeggio_time = 0

    # Filters
    lp_cutoff = p.lpf_cutoff**3 * 0.1
    lp_cutoff_sweep = to_float32(1.0 + p.lpf_cutoff_sweep * 0.0001)
    lp_damping = 5.0 / (1.0 + p.lpf_resonance**2 * 20.0) * (0.01 + lp_cutoff)
    lp_damping = min(max(lp_damping, 0.0), 0.8)
    lp_enabled = p.lpf_cutoff != 1.0
    lp_pos = 0.0
    lp_delta = 0.0
    hp_cutoff = p.hpf_cutoff**2 * 0.1
    hp_cutoff_sweep = to_float32(1.0 + p.hpf_cutoff_sweep * 0.0003)
    hp_sweeping = hp_cutoff_sweep != 0.0
    hp_accum = 0.0

    # Vibrato
    vibrato_phase = 0.0
    vibrato_speed = p.vibrato_speed**2 * 0.01
    vibrato_amplitude = p.vibrato_depth * 0.5

    # Envelope
    envelope_length = (
        int(p.attack_time**2 * ENVELOPE_TIME_SCALE),
        int(p.sustain_time**2 * ENVELOPE_TIME_SCALE),
        int(p.decay_time**2 * ENVELOPE_TIME_SCALE),
    )
    envelope_stage = 0
    envelope_time = 0
    envelope_volume = 0.0

    # Phaser
    phaser_offset = _signed_square(p.phaser_offset, 1020.0)
    phaser_sweep = _signed_square(p.phaser_sweep, 1.0)
    phaser_buffer = [0.0] * PHASER_BUFFER_SIZE
    phaser_index = 0

    noise_buffer = [frnd(2.0) - 1.0 for _ in range(NOISE_BUFFER_SIZE)]

    repeat_time = 0
    repeat_limit = _countdown_limit(p.repeat_speed)
    if p.repeat_speed == 0.0:
        repeat_limit = 0

    phase = 0
    buffer = np.zeros(MAX_WAVE_SAMPLES, dtype=np.float32)
    count = MAX_WAVE_SAMPLES
    stop_reason = "length cap"
    generating = True

    for index in range(MAX_WAVE_SAMPLES):
        repeat_time += 1
        if repeat_limit != 0 and repeat_time >= repeat_limit:
            repeat_time = 0
            arpeggio_time = 0
            pitch = _start_pitch(p)
            fperiod = pitch.period
            fmax_period = pitch.max_period
            fslide = pitch.slide
            fdelta_slide = pitch.delta_slide
            square_duty = pitch.square_duty
            duty_slide = pitch.duty_slide
            arpeggio_modulation = pitch.arpeggio_modulation
            arpeggio_limit = pitch.arpeggio_limit

        arpeggio_time += 1
        if arpeggio_limit != 0 and arpeggio_time >= arpeggio_limit:
            arpeggio_limit = 0
            fperiod *= arpeggio_modulation

        fslide += fdelta_slide
        fperiod *= fslide
        if fperiod > fmax_period:
            fperiod = fmax_period
            if stops_at_min_frequency:
                generating = False
                stop_reason = "min frequency"

        effective_period = fperiod
        if vibrato_amplitude > 0.0:
            vibrato_phase += vibrato_speed
            effective_period = fperiod * (1.0 + sin(vibrato_phase) * vibrato_amplitude)

        period = _period_from(effective_period)

        square_duty += duty_slide
        if square_duty < 0.0:
            square_duty = 0.0
        elif square_duty > 0.5:
            square_duty = 0.5

        envelope_time += 1
        if envelope_time > envelope_length[envelope_stage]:
            envelope_time = 0
            envelope_stage += 1
            if envelope_stage == 3:
                generating = False
                stop_reason = "envelope"

        if envelope_stage < 3:
            stage_length = envelope_length[envelope_stage]
            # Zero-length stages are passed through at their starting level.
            progress = envelope_time / stage_length if stage_length > 0 else 0.0
            if envelope_stage == 0:
                envelope_volume = progress
            elif envelope_stage == 1:
                envelope_volume = 1.0 + (1.0 - progress) * 2.0 * punch
            else:
                envelope_volume = 1.0 - progress

        phaser_offset += phaser_sweep
        phaser_delay = _phaser_delay(phaser_offset)

        if hp_sweeping:
            hp_cutoff *= hp_cutoff_sweep
            if hp_cutoff < 0.00001:
                hp_cutoff = 0.00001
            elif hp_cutoff > 0.1:
                hp_cutoff = 0.1

        super_sample = 0.0
        for _ in range(SUPERSAMPLING):
            phase += 1
            if phase >= period:
                phase %= period
                if wave_type == _NOISE:
                    for slot in range(NOISE_BUFFER_SIZE):
                        noise_buffer[slot] = frnd(2.0) - 1.0

            fp = phase / period
            if wave_type == _SQUARE:
                sample = 0.5 if fp < square_duty else -0.5
            elif wave_type == _SAWTOOTH:
                sample = 1.0 - fp * 2.0
            elif wave_type == _SINE:
                sample = sin(fp * _TWO_PI)
            else:
                sample = noise_buffer[phase * NOISE_BUFFER_SIZE // period]

            # Low-pass
            previous_lp = lp_pos
            lp_cutoff *= lp_cutoff_sweep
            if lp_cutoff < 0.0:
                lp_cutoff = 0.0
            elif lp_cutoff > 0.1:
                lp_cutoff = 0.1

            if lp_enabled:
                lp_delta += (sample - lp_pos) * lp_cutoff
                lp_delta -= lp_delta * lp_damping
            else:
                lp_pos = sample
                lp_delta = 0.0
            lp_pos += lp_delta

            # High-pass
            hp_accum += lp_pos - previous_lp
            hp_accum -= hp_accum * hp_cutoff
            sample = hp_accum

            # Phaser
            phaser_buffer[phaser_index & PHASER_MASK] = sample
            delayed = (phaser_index - phaser_delay + PHASER_BUFFER_SIZE) & PHASER_MASK
            sample += phaser_buffer[delayed]
            phaser_index = (phaser_index + 1) & PHASER_MASK

            super_sample += sample * envelope_volume

        value = super_sample / SUPERSAMPLING * SAMPLE_SCALE
        if math.isnan(value):
            value = 0.0
        elif value > 1.0:
            value = 1.0
        elif value < -1.0:
            value = -1.0
        buffer[index] = value

        if not generating:
            count = index + 1
            break

    _LOGGER.debug(
        "Synthesized %d samples (%.3fs); stopped by %s",
        count,
        count / SAMPLE_RATE,
        stop_reason,
    )
    return buffer[:count].copy(), count


def generate_wave(params: WaveParams, rng: RandomSource | None = None) -> Wave:
    """Synthesize ``params`` into a 44100 Hz, 32-bit float, mono ``Wave``."""
    samples, _ = synthesize(params, rng)
    return Wave(samples=samples, sample_rate=SAMPLE_RATE, sample_size=32, channels=1)
