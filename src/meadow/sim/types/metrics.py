from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    bees: int
    birds: int
    bee_births: int
    bird_births: int
    natural_deaths: int
    starvation_deaths: int
    predation_deaths: int
    average_bee_energy: float
    average_bird_energy: float
    hive_nectar: float
    eggs: int
    neighbor_checks: int
    tick_duration_ms: float = 0.0
