from __future__ import annotations

import random

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, low: int, high: int) -> int:
        """Inclusive on both ends."""
        return self._random.randint(low, high)

    def next_point(self, min_x: float, max_x: float, min_y: float, max_y: float) -> Vector2:
        return Vector2(self._random.uniform(min_x, max_x), self._random.uniform(min_y, max_y))
