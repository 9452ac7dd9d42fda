from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..core.agent import Agent, AgentKind, BirdState
from ..core.environment import Nest
from .genetics import inherit_dna, inherit_genes

if TYPE_CHECKING:
    from ..core.world import World

logger = logging.getLogger(__name__)


def tick_hives(world: World) -> int:
    config = world._config.bees
    births = 0
    for index, hive in enumerate(world._hives):
        if hive.nectar < config.nectar_per_bee or hive.contributor_count <= 0:
            continue
        if world.living_count(AgentKind.BEE) + world.queued_births(AgentKind.BEE) >= config.max_population:
            break
        dna = inherit_dna(hive.average_dna(), hive.queen_dna, config.dna_ranges, world._rng, world._config.genetics)
        generation = hive.pool_generation + 1
        hive.nectar -= config.nectar_per_bee
        hive.reset_pool()
        child = world._create_bee(hive.position, index, dna=dna, generation=generation)
        if child is None:
            continue
        world._birth_queue.append(child)
        births += 1
        logger.debug("hive %d produced bee %d", index, child.id)
    return births


def tick_nests(world: World) -> int:
    births = 0
    for index, nest in enumerate(world._nests):
        if nest.has_egg:
            nest.hatching_countdown -= 1
            if nest.hatching_countdown <= 0:
                births += _hatch(world, index, nest)
            continue
        if nest.claimed_by is None:
            continue
        first, second = nest.claimed_by
        if first not in nest.occupants or second not in nest.occupants:
            continue
        if nest.nesting_countdown <= 0:
            nest.nesting_countdown = max(1, world._config.birds.nesting_duration)
            continue
        nest.nesting_countdown -= 1
        if nest.nesting_countdown <= 0:
            _lay_egg(world, index, nest)
    return births


def _lay_egg(world: World, index: int, nest: Nest) -> None:
    parents = [world.agent(agent_id) for agent_id in nest.claimed_by]
    if any(parent is None or not parent.alive for parent in parents):
        nest.release_claim()
        return
    first, second = parents
    nest.has_egg = True
    nest.hatching_countdown = world._config.birds.hatching_duration
    nest.parent_genes = (first.bird.genes.copy(), second.bird.genes.copy())
    nest.parent_dna = (dict(first.dna), dict(second.dna))
    nest.parent_generation = max(first.generation, second.generation)
    for parent in parents:
        _leave_nest(parent, index)
    nest.occupants.clear()
    nest.claimed_by = None
    nest.nesting_countdown = 0
    logger.debug("nest %d has an egg from birds %d and %d", index, first.id, second.id)


def _leave_nest(bird: Agent, index: int) -> None:
    data = bird.bird
    data.partner = None
    data.mating_nest = None
    data.home_nest = index
    data.state = BirdState.HUNTING
    data.bees_caught = 0


def _hatch(world: World, index: int, nest: Nest) -> int:
    born = 0
    config = world._config.birds
    if nest.parent_dna is None or nest.parent_genes is None:
        logger.warning("nest %d hatched without parent data", index)
    elif world.living_count(AgentKind.BIRD) + world.queued_births(AgentKind.BIRD) >= config.max_population:
        logger.debug("nest %d egg failed: bird population at capacity", index)
    else:
        dna = inherit_dna(*nest.parent_dna, config.dna_ranges, world._rng, world._config.genetics)
        genes = inherit_genes(*nest.parent_genes, world._rng, world._config.genetics)
        child = world._create_bird(
            nest.position, dna=dna, genes=genes, generation=nest.parent_generation + 1
        )
        if child is not None:
            child.bird.home_nest = index
            world._birth_queue.append(child)
            born = 1
    nest.has_egg = False
    nest.hatching_countdown = 0
    nest.parent_genes = None
    nest.parent_dna = None
    nest.parent_generation = 0
    nest.is_available = True
    return born
