from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Tuple

from ..core.agent import Agent, DeathCause
from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.world import World


def population_stats(agents: Iterable[Agent]) -> Tuple[int, float]:
    count = 0
    energy_sum = 0.0
    for agent in agents:
        if not agent.alive:
            continue
        count += 1
        energy_sum += agent.energy
    return count, (energy_sum / count) if count else 0.0


def trait_means(agents: Iterable[Agent]) -> Dict[str, float]:
    sums: Dict[str, float] = {}
    count = 0
    for agent in agents:
        if not agent.alive:
            continue
        count += 1
        for trait, value in agent.dna.items():
            sums[trait] = sums.get(trait, 0.0) + value
    if count == 0:
        return {}
    return {trait: total / count for trait, total in sorted(sums.items())}


def create_metrics(
    world: World,
    tick: int,
    bee_births: int,
    bird_births: int,
    deaths: Dict[DeathCause, int],
    neighbor_checks: int,
    duration_ms: float,
) -> TickMetrics:
    bees, bee_energy = population_stats(world._bees)
    birds, bird_energy = population_stats(world._birds)
    return TickMetrics(
        tick=tick,
        bees=bees,
        birds=birds,
        bee_births=bee_births,
        bird_births=bird_births,
        natural_deaths=deaths.get(DeathCause.NATURAL, 0),
        starvation_deaths=deaths.get(DeathCause.STARVATION, 0),
        predation_deaths=deaths.get(DeathCause.PREDATION, 0),
        average_bee_energy=bee_energy,
        average_bird_energy=bird_energy,
        hive_nectar=sum(hive.nectar for hive in world._hives),
        eggs=sum(1 for nest in world._nests if nest.has_egg),
        neighbor_checks=neighbor_checks,
        tick_duration_ms=duration_ms,
    )
