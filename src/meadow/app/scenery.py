"""Random placement of hives, nests and flowers for runs without a renderer.

The interactive front end grows plants and hangs hives and nests from them;
headless runs only need anchor points, so this scatters them instead.
"""

from __future__ import annotations

import logging
import math
from typing import List, Tuple

from pygame.math import Vector2

from ..config import SimulationConfig
from ..rng import DeterministicRng
from ..sim.core.environment import Flower, Hive, Nest, Petal
from ..sim.core.world import compute_world_scale
from ..sim.systems.genetics import default_dna

logger = logging.getLogger(__name__)

_SCENERY_RNG_SALT = 0x5CE7E4F10A3B2C11


def _derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


def _canopy_point(config: SimulationConfig, rng: DeterministicRng) -> Vector2:
    low = config.top_margin * 2.0
    high = max(low, config.ground_level * 0.6)
    return Vector2(rng.next_range(0.0, config.width), rng.next_range(low, high))


def _petals(count: int, radius: float) -> List[Petal]:
    petals: List[Petal] = []
    for index in range(count):
        angle = 2.0 * math.pi * index / count
        petals.append(Petal(offset=Vector2(math.cos(angle) * radius, math.sin(angle) * radius)))
    return petals


def build_scenery(config: SimulationConfig) -> Tuple[List[Hive], List[Nest], List[Flower]]:
    rng = DeterministicRng(_derive_stream_seed(config.seed, _SCENERY_RNG_SALT))
    scale = compute_world_scale(config.width, config.height, config.reference_height)

    queen_dna = default_dna(config.bees.settings, config.bees.dna_ranges)
    hives = [
        Hive(position=_canopy_point(config, rng), queen_dna=dict(queen_dna))
        for _ in range(max(0, config.hive_count))
    ]
    nests = [Nest(position=_canopy_point(config, rng)) for _ in range(max(0, config.nest_count))]

    flowers: List[Flower] = []
    petal_count = max(1, config.petals_per_flower)
    for flower_id in range(max(0, config.flower_count)):
        stem = rng.next_range(20.0, 120.0) * scale
        position = Vector2(rng.next_range(0.0, config.width), config.ground_level - stem)
        flowers.append(Flower(id=flower_id, position=position, petals=_petals(petal_count, 6.0 * scale)))

    logger.debug("placed %d hives, %d nests and %d flowers", len(hives), len(nests), len(flowers))
    return hives, nests, flowers
