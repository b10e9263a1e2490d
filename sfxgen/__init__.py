from __future__ import annotations

from .audio import SAMPLE_RATE, ExportFormat, Wave, format_wave, read_wav, write_wav
from .errors import (
    InvalidFormatError,
    InvalidSignatureError,
    LoadError,
    ParamsFileNotFoundError,
    PlaybackError,
    SfxGenError,
    TruncatedParamsError,
    UnknownPresetError,
    UnsupportedExtensionError,
    UnsupportedVersionError,
)
from .fileio import (
    LegacySound,
    load_legacy_params,
    load_wave_params,
    load_wave_params_or_default,
    save_legacy_params,
    save_wave_params,
)
from .logging_utils import configure_logging as _configure_logging
from .params import FLOAT_FIELDS, MUTABLE_FIELDS, WaveParams, WaveType, reset_wave_params
from .presets import (
    PRESETS,
    blip_select,
    explosion,
    generate_preset,
    hit_hurt,
    jump,
    laser_shoot,
    mutate,
    pickup_coin,
    powerup,
    randomize,
)
from .rng import RandomSource
from .session import SoundSession
from .synth import MAX_WAVE_SAMPLES, generate_wave, synthesize

__all__ = [
    "SAMPLE_RATE",
    "MAX_WAVE_SAMPLES",
    "FLOAT_FIELDS",
    "MUTABLE_FIELDS",
    "PRESETS",
    "ExportFormat",
    "LegacySound",
    "RandomSource",
    "SoundSession",
    "Wave",
    "WaveParams",
    "WaveType",
    "SfxGenError",
    "LoadError",
    "ParamsFileNotFoundError",
    "InvalidSignatureError",
    "UnsupportedVersionError",
    "TruncatedParamsError",
    "UnsupportedExtensionError",
    "InvalidFormatError",
    "UnknownPresetError",
    "PlaybackError",
    "blip_select",
    "explosion",
    "format_wave",
    "generate_preset",
    "generate_wave",
    "hit_hurt",
    "jump",
    "laser_shoot",
    "load_legacy_params",
    "load_wave_params",
    "load_wave_params_or_default",
    "mutate",
    "pickup_coin",
    "powerup",
    "randomize",
    "read_wav",
    "reset_wave_params",
    "save_legacy_params",
    "save_wave_params",
    "synthesize",
    "write_wav",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
