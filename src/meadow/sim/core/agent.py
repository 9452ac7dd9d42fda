from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Union

from pygame.math import Vector2

from ...config import BeeSettings, BirdSettings

if TYPE_CHECKING:
    from .environment import PetalClaim, RouteReservation


class AgentKind(str, Enum):
    BEE = "Bee"
    BIRD = "Bird"


class BeeState(str, Enum):
    SEEKING_FLOWER = "SeekingFlower"
    GATHERING_NECTAR = "GatheringNectar"
    RETURN_TO_HIVE = "ReturnToHive"


class BirdState(str, Enum):
    HUNTING = "Hunting"
    SEEKING_MATE = "SeekingMate"
    GO_TO_NEST = "GoToNest"


class DeathCause(str, Enum):
    NATURAL = "natural"
    STARVATION = "starvation"
    PREDATION = "predation"


Point = Tuple[float, float]


@dataclass(slots=True)
class Genes:
    body_shape: str
    beak_shape: str
    tail_shape: str
    body: List[Point]
    beak: List[Point]
    tail: List[Point]
    colors: Dict[str, str]

    def copy(self) -> "Genes":
        return Genes(
            body_shape=self.body_shape,
            beak_shape=self.beak_shape,
            tail_shape=self.tail_shape,
            body=list(self.body),
            beak=list(self.beak),
            tail=list(self.tail),
            colors=dict(self.colors),
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "body_shape": self.body_shape,
            "beak_shape": self.beak_shape,
            "tail_shape": self.tail_shape,
            "body": [list(p) for p in self.body],
            "beak": [list(p) for p in self.beak],
            "tail": [list(p) for p in self.tail],
            "colors": dict(self.colors),
        }


@dataclass(slots=True)
class BeeData:
    hive: int
    state: BeeState = BeeState.SEEKING_FLOWER
    nectar: float = 0.0
    target_flower: Optional[int] = None
    target_petal: Optional[int] = None
    petal_claim: Optional["PetalClaim"] = None
    target_hive: Optional[int] = None
    route: Optional["RouteReservation"] = None
    last_visited_flower: Optional[int] = None
    gather_countdown: int = 0


@dataclass(slots=True)
class BirdData:
    genes: Genes
    state: BirdState = BirdState.HUNTING
    home_nest: Optional[int] = None
    mating_nest: Optional[int] = None
    partner: Optional[int] = None
    bees_caught: int = 0


@dataclass(slots=True)
class Agent:
    id: int
    kind: AgentKind
    position: Vector2
    velocity: Vector2
    settings: Union[BeeSettings, BirdSettings]
    dna: Dict[str, float]
    energy: float
    age: int = 0
    generation: int = 0
    alive: bool = True
    vanished: bool = False
    death_timer: int = 0
    death_cause: Optional[DeathCause] = None
    wander_angle: float = 0.0
    bee: Optional[BeeData] = None
    bird: Optional[BirdData] = None

    @property
    def state(self) -> Union[BeeState, BirdState, None]:
        if self.bee is not None:
            return self.bee.state
        if self.bird is not None:
            return self.bird.state
        return None
