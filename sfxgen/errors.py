from __future__ import annotations


class SfxGenError(Exception):
    """Base error for the sfxgen library."""


class LoadError(SfxGenError):
    """Raised when a parameter file cannot be loaded."""


class ParamsFileNotFoundError(LoadError):
    """Raised when a parameter file does not exist or cannot be opened."""


class InvalidSignatureError(LoadError):
    """Raised when an .rfx file does not start with the rFX signature."""


class UnsupportedVersionError(LoadError):
    """Raised when a parameter file declares a version we cannot read."""


class TruncatedParamsError(LoadError):
    """Raised when a parameter file ends before all fields were read."""


class UnsupportedExtensionError(LoadError):
    """Raised when a path has an extension no loader understands."""


class InvalidFormatError(SfxGenError):
    """Raised when an export format cannot be parsed or validated."""


class UnknownPresetError(SfxGenError):
    """Raised when a preset name has no registered generator."""


class PlaybackError(SfxGenError):
    """Raised when no audio playback backend is available."""
