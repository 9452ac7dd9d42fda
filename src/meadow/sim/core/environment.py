from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pygame.math import Vector2

from .agent import Genes


@dataclass(slots=True)
class Petal:
    offset: Vector2
    nectar: float = 1.0
    occupied: bool = False


@dataclass(slots=True)
class Flower:
    id: int
    position: Vector2
    petals: List[Petal]
    vanished: bool = False
    occupant_count: int = 0

    def petal_position(self, index: int) -> Vector2:
        return self.position + self.petals[index].offset

    def total_nectar(self) -> float:
        return sum(petal.nectar for petal in self.petals)

    def regenerate(self, rate: float) -> None:
        if rate <= 0.0:
            return
        for petal in self.petals:
            if petal.nectar < 1.0:
                petal.nectar = min(1.0, petal.nectar + rate)


@dataclass(slots=True)
class PetalClaim:
    flower_id: int
    petal_index: int
    released: bool = False


def claim_petal(flower: Flower, index: int) -> Optional[PetalClaim]:
    if index < 0 or index >= len(flower.petals):
        return None
    petal = flower.petals[index]
    if petal.occupied:
        return None
    petal.occupied = True
    flower.occupant_count += 1
    return PetalClaim(flower_id=flower.id, petal_index=index)


def release_petal(flower: Optional[Flower], claim: Optional[PetalClaim]) -> None:
    if claim is None or claim.released:
        return
    claim.released = True
    if flower is None or flower.id != claim.flower_id:
        return
    flower.petals[claim.petal_index].occupied = False
    flower.occupant_count = max(0, flower.occupant_count - 1)


@dataclass(slots=True)
class Hive:
    position: Vector2
    queen_dna: Dict[str, float]
    nectar: float = 0.0
    dna_pool: Dict[str, float] = field(default_factory=dict)
    contributor_count: int = 0
    known_flower_locations: List[int] = field(default_factory=list)
    bees_en_route: int = 0
    pool_generation: int = 0

    def contribute(self, dna: Dict[str, float], generation: int = 0) -> None:
        pool = self.dna_pool
        for trait, value in dna.items():
            pool[trait] = pool.get(trait, 0.0) + value
        self.contributor_count += 1
        self.pool_generation = max(self.pool_generation, generation)

    def average_dna(self) -> Dict[str, float]:
        if self.contributor_count <= 0:
            return dict(self.queen_dna)
        inv = 1.0 / self.contributor_count
        return {trait: total * inv for trait, total in self.dna_pool.items()}

    def reset_pool(self) -> None:
        self.dna_pool.clear()
        self.contributor_count = 0
        self.pool_generation = 0

    def remember_flower(self, flower_id: int, capacity: int) -> None:
        known = self.known_flower_locations
        if flower_id in known:
            return
        known.append(flower_id)
        while len(known) > max(0, capacity):
            known.pop(0)


@dataclass(slots=True)
class RouteReservation:
    hive_index: int
    released: bool = False


def reserve_route(hive: Hive, hive_index: int) -> RouteReservation:
    hive.bees_en_route += 1
    return RouteReservation(hive_index=hive_index)


def release_route(hive: Optional[Hive], reservation: Optional[RouteReservation]) -> None:
    if reservation is None or reservation.released:
        return
    reservation.released = True
    if hive is not None:
        hive.bees_en_route = max(0, hive.bees_en_route - 1)


@dataclass(slots=True)
class Nest:
    position: Vector2
    occupants: Set[int] = field(default_factory=set)
    has_egg: bool = False
    hatching_countdown: int = 0
    nesting_countdown: int = 0
    is_available: bool = True
    claimed_by: Optional[Tuple[int, int]] = None
    parent_genes: Optional[Tuple[Genes, Genes]] = None
    parent_dna: Optional[Tuple[Dict[str, float], Dict[str, float]]] = None
    parent_generation: int = 0

    def release_claim(self) -> None:
        # Only an egg-free nest goes back on offer; an egg keeps it locked until hatching.
        self.occupants.clear()
        self.nesting_countdown = 0
        self.claimed_by = None
        if not self.has_egg:
            self.is_available = True
