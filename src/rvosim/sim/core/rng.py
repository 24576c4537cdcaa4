from __future__ import annotations

import random

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_percent(self) -> int:
        return int(self._random.random() * 100.0)

    def next_point(self, max_x: float, max_y: float) -> Vector2:
        return Vector2(self.next_range(0.0, max_x), self.next_range(0.0, max_y))
