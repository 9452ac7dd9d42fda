from __future__ import annotations

import math
import random
from typing import Optional, Sequence, TypeVar

from pygame.math import Vector2

T = TypeVar("T")


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

    def next_unit_circle(self) -> Vector2:
        angle = self._random.uniform(0, 2 * math.pi)
        vector = Vector2()
        vector.from_polar((1, math.degrees(angle)))
        return vector

    def next_angle(self) -> float:
        return self._random.uniform(0.0, 2.0 * math.pi)

    def chance(self, probability: float) -> bool:
        return self._random.random() < probability

    def sample_choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return self._random.choice(items)
