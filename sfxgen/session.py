from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .audio import ExportFormat, Wave
from .fileio import load_wave_params, save_legacy_params, save_wave_params
from .params import WaveParams, reset_wave_params
from .presets import generate_preset, mutate, randomize
from .rng import RandomSource
from .synth import generate_wave

_LOGGER = logging.getLogger("sfxgen.session")


class SoundSession:
    """Editing state for one sound: current parameters plus a cached render.

    Every edit replaces ``params`` and marks the cached wave stale; reading
    ``wave`` re-synthesizes only when something changed since the last read.
    """

    def __init__(
        self,
        params: WaveParams | None = None,
        *,
        rng: RandomSource | None = None,
    ) -> None:
        self._rng = rng or RandomSource()
        self._params = params if params is not None else WaveParams()
        self._wave: Wave | None = None
        self._needs_regeneration = True

    @property
    def params(self) -> WaveParams:
        return self._params

    @params.setter
    def params(self, value: WaveParams) -> None:
        self._params = value
        self._needs_regeneration = True

    @property
    def needs_regeneration(self) -> bool:
        return self._needs_regeneration

    @property
    def wave(self) -> Wave:
        if self._needs_regeneration or self._wave is None:
            self._wave = generate_wave(self._params, self._rng)
            self._needs_regeneration = False
            _LOGGER.debug("Regenerated wave: %d samples", self._wave.sample_count)
        return self._wave

    def reset(self) -> WaveParams:
        self.params = reset_wave_params(self._rng)
        return self._params

    def apply_preset(self, name: str) -> WaveParams:
        self.params = generate_preset(name, self._rng)
        _LOGGER.info("Generated %s sound (seed %d)", name, self._params.rand_seed)
        return self._params

    def randomize(self) -> WaveParams:
        self.params = randomize(self._params, self._rng)
        return self._params

    def mutate(self) -> WaveParams:
        self.params = mutate(self._params, self._rng)
        return self._params

    def update(self, **fields: Any) -> WaveParams:
        self.params = self._params.with_updates(**fields)
        return self._params

    def load(self, path: str | Path) -> WaveParams:
        self.params = load_wave_params(path)
        _LOGGER.info("Loaded sound parameters from %s", path)
        return self._params

    def save(self, path: str | Path) -> Path:
        """Write parameters as .sfs when ``path`` says so, otherwise as .rfx."""
        target = Path(path)
        if target.suffix.lower() == ".sfs":
            return save_legacy_params(self._params, target)
        return save_wave_params(self._params, target)

    def export(self, path: str | Path, fmt: ExportFormat | None = None) -> Path:
        return self.wave.save(path, fmt or ExportFormat())
