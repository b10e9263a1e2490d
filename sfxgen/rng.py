from __future__ import annotations

import numpy as np

FRND_STEPS = 10_000


class RandomSource:
    """Re-seedable integer random source.

    Draws follow raylib's ``GetRandomValue(min, max)`` contract: both bounds are
    inclusive. ``frnd`` returns multiples of ``scale / 10000``.

    Pass one instance through the generators and the synthesis engine to get
    reproducible results.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._generator = np.random.default_rng(seed)

    def seed(self, seed: int) -> None:
        # Seeds are stored as int32; reinterpret as unsigned.
        self._generator = np.random.default_rng(seed & 0xFFFFFFFF)

    def value(self, low: int, high: int) -> int:
        if low > high:
            low, high = high, low
        return int(self._generator.integers(low, high, endpoint=True))

    def frnd(self, scale: float) -> float:
        return self.value(0, FRND_STEPS) / FRND_STEPS * scale

    def coin(self) -> bool:
        return self.value(0, 1) == 1
