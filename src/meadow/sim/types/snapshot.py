from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    scenery: "SnapshotScenery"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float
    ground_level: float


@dataclass(slots=True)
class SnapshotMetadata:
    world_scale: float
    seed: int
    config_version: str


@dataclass(slots=True)
class SnapshotScenery:
    hives: List[Dict[str, Any]]
    nests: List[Dict[str, Any]]
    flowers: List[Dict[str, Any]]
