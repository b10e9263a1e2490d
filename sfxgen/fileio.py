from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import (
    InvalidSignatureError,
    LoadError,
    ParamsFileNotFoundError,
    TruncatedParamsError,
    UnsupportedExtensionError,
    UnsupportedVersionError,
)
from .params import FLOAT_FIELDS, WaveParams

_LOGGER = logging.getLogger("sfxgen.fileio")

# .rfx layout
# ------------------------------------------------------
# Offset | Size | Type       | Description
# 0      | 4    | char[4]    | Signature "rFX "
# 4      | 4    | uint32     | Version (120)
# 8      | 96   | WaveParams | int32 x2, float32 x22
# ------------------------------------------------------
RFX_SIGNATURE = b"rFX "
RFX_VERSION = 120
RFX_LEGACY_VERSION = 100
RFX_HEADER = struct.Struct("<4sI")
PARAMS_STRUCT = struct.Struct("<ii22f")

SFS_VERSIONS = (100, 101, 102)
SFS_LATEST_VERSION = 102
DEFAULT_LEGACY_VOLUME = 0.5

_INT32 = struct.Struct("<i")
_FLOAT32 = struct.Struct("<f")
_BOOL8 = struct.Struct("<?")


class LegacySound(BaseModel):
    """Contents of an sfxr .sfs file: parameters plus the playback volume."""

    params: WaveParams
    volume: float = DEFAULT_LEGACY_VOLUME
    version: int = SFS_LATEST_VERSION

    model_config = ConfigDict(frozen=True, extra="forbid")


def zeroed_wave_params() -> WaveParams:
    """All-zero parameters, the result of a failed load."""
    values: dict[str, Any] = {name: 0.0 for name in FLOAT_FIELDS}
    return WaveParams.model_validate({"rand_seed": 0, "wave_type": 0, **values})


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ParamsFileNotFoundError(f"Cannot read parameter file {path}: {exc}") from exc


def _validate_fields(values: dict[str, Any], origin: str) -> WaveParams:
    try:
        return WaveParams.model_validate(values)
    except ValidationError as exc:
        raise LoadError(f"{origin} holds invalid parameter values: {exc}") from exc


# -----------------------------------------------------------------------------
# .rfx
# -----------------------------------------------------------------------------


def dump_wave_params(params: WaveParams) -> bytes:
    """Serialize ``params`` to a complete .rfx image (header + 96 bytes)."""
    header = RFX_HEADER.pack(RFX_SIGNATURE, RFX_VERSION)
    body = PARAMS_STRUCT.pack(params.rand_seed, int(params.wave_type), *params.float_values())
    return header + body


def parse_wave_params(data: bytes, *, origin: str = "<bytes>") -> WaveParams:
    """Parse a complete .rfx image."""
    if len(data) < RFX_HEADER.size:
        if not RFX_SIGNATURE.startswith(data[:4]):
            raise InvalidSignatureError(f"{origin} is not an rFX file")
        raise TruncatedParamsError(f"{origin} ends inside the rFX header")

    signature, version = RFX_HEADER.unpack_from(data, 0)
    if signature != RFX_SIGNATURE:
        raise InvalidSignatureError(f"{origin} is not an rFX file (signature {signature!r})")
    if version == RFX_LEGACY_VERSION:
        raise UnsupportedVersionError(f"{origin} uses the retired rFX version {version}")
    if version != RFX_VERSION:
        raise UnsupportedVersionError(f"{origin} has unsupported rFX version {version}")

    body = data[RFX_HEADER.size : RFX_HEADER.size + PARAMS_STRUCT.size]
    if len(body) < PARAMS_STRUCT.size:
        raise TruncatedParamsError(
            f"{origin} holds {len(body)} of {PARAMS_STRUCT.size} parameter bytes"
        )

    rand_seed, wave_type, *floats = PARAMS_STRUCT.unpack(body)
    values: dict[str, Any] = {"rand_seed": rand_seed, "wave_type": wave_type}
    values.update(zip(FLOAT_FIELDS, floats))
    return _validate_fields(values, origin)


def save_wave_params(params: WaveParams, path: str | Path) -> Path:
    target = Path(path)
    target.write_bytes(dump_wave_params(params))
    _LOGGER.info("Saved sound parameters to %s", target)
    return target


def load_rfx(path: str | Path) -> WaveParams:
    source = Path(path)
    return parse_wave_params(_read_file(source), origin=str(source))


# -----------------------------------------------------------------------------
# .sfs (sfxr legacy, read/write)
# -----------------------------------------------------------------------------


class _Reader:
    def __init__(self, data: bytes, origin: str) -> None:
        self._data = data
        self._origin = origin
        self._offset = 0

    def _unpack(self, layout: struct.Struct) -> Any:
        end = self._offset + layout.size
        if end > len(self._data):
            raise TruncatedParamsError(
                f"{self._origin} ends at byte {len(self._data)}, expected at least {end}"
            )
        (value,) = layout.unpack_from(self._data, self._offset)
        self._offset = end
        return value

    def int32(self) -> int:
        return int(self._unpack(_INT32))

    def float32(self) -> float:
        return float(self._unpack(_FLOAT32))

    def bool8(self) -> bool:
        return bool(self._unpack(_BOOL8))


def parse_legacy_params(data: bytes, *, origin: str = "<bytes>") -> LegacySound:
    """Parse an sfxr .sfs image (versions 100, 101 and 102)."""
    reader = _Reader(data, origin)
    version = reader.int32()
    if version not in SFS_VERSIONS:
        raise UnsupportedVersionError(f"{origin} has unsupported sfs version {version}")

    values: dict[str, Any] = {name: 0.0 for name in FLOAT_FIELDS}
    values["rand_seed"] = 0
    values["wave_type"] = reader.int32()

    volume = reader.float32() if version == 102 else DEFAULT_LEGACY_VOLUME

    values["start_frequency"] = reader.float32()
    values["min_frequency"] = reader.float32()
    values["slide"] = reader.float32()
    if version >= 101:
        values["delta_slide"] = reader.float32()
    values["square_duty"] = reader.float32()
    values["duty_sweep"] = reader.float32()

    values["vibrato_depth"] = reader.float32()
    values["vibrato_speed"] = reader.float32()
    reader.float32()  # vibrato phase delay, unused

    values["attack_time"] = reader.float32()
    values["sustain_time"] = reader.float32()
    values["decay_time"] = reader.float32()
    values["sustain_punch"] = reader.float32()

    reader.bool8()  # filter enable flag, unused

    values["lpf_resonance"] = reader.float32()
    values["lpf_cutoff"] = reader.float32()
    values["lpf_cutoff_sweep"] = reader.float32()
    values["hpf_cutoff"] = reader.float32()
    values["hpf_cutoff_sweep"] = reader.float32()

    values["phaser_offset"] = reader.float32()
    values["phaser_sweep"] = reader.float32()
    values["repeat_speed"] = reader.float32()

    if version >= 101:
        values["change_speed"] = reader.float32()
        values["change_amount"] = reader.float32()

    params = _validate_fields(values, origin)
    return LegacySound(params=params, volume=volume, version=version)


def dump_legacy_params(params: WaveParams, *, volume: float = DEFAULT_LEGACY_VOLUME) -> bytes:
    """Serialize ``params`` as an sfxr version 102 .sfs image."""
    parts = [
        _INT32.pack(SFS_LATEST_VERSION),
        _INT32.pack(int(params.wave_type)),
        _FLOAT32.pack(volume),
    ]
    parts.extend(
        _FLOAT32.pack(value)
        for value in (
            params.start_frequency,
            params.min_frequency,
            params.slide,
            params.delta_slide,
            params.square_duty,
            params.duty_sweep,
            params.vibrato_depth,
            params.vibrato_speed,
            0.0,
            params.attack_time,
            params.sustain_time,
            params.decay_time,
            params.sustain_punch,
        )
    )
    parts.append(_BOOL8.pack(False))
    parts.extend(
        _FLOAT32.pack(value)
        for value in (
            params.lpf_resonance,
            params.lpf_cutoff,
            params.lpf_cutoff_sweep,
            params.hpf_cutoff,
            params.hpf_cutoff_sweep,
            params.phaser_offset,
            params.phaser_sweep,
            params.repeat_speed,
            params.change_speed,
            params.change_amount,
        )
    )
    return b"".join(parts)


def load_legacy_params(path: str | Path) -> LegacySound:
    source = Path(path)
    return parse_legacy_params(_read_file(source), origin=str(source))


def save_legacy_params(
    params: WaveParams, path: str | Path, *, volume: float = DEFAULT_LEGACY_VOLUME
) -> Path:
    target = Path(path)
    target.write_bytes(dump_legacy_params(params, volume=volume))
    _LOGGER.info("Saved sfxr parameters to %s", target)
    return target


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------


def load_wave_params(path: str | Path) -> WaveParams:
    """Load .rfx or .sfs parameters, chosen by file extension."""
    source = Path(path)
    match source.suffix.lower():
        case ".rfx":
            return load_rfx(source)
        case ".sfs":
            legacy = load_legacy_params(source)
            _LOGGER.debug(
                "Loaded sfs v%d from %s (volume %.2f not applied)",
                legacy.version,
                source,
                legacy.volume,
            )
            return legacy.params
        case suffix:
            raise UnsupportedExtensionError(
                f"Cannot load {source}: extension {suffix or '<none>'!r} is not .rfx or .sfs"
            )


def load_wave_params_or_default(path: str | Path) -> WaveParams:
    """Like ``load_wave_params`` but logs failures and returns zeroed params."""
    try:
        return load_wave_params(path)
    except LoadError as exc:
        _LOGGER.warning("Failed to load %s: %s", path, exc)
        return zeroed_wave_params()
