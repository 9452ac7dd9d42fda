from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from ..core.agent import Agent, BeeState
from ..core.environment import Flower, PetalClaim, claim_petal, release_petal, release_route, reserve_route
from .lifecycle import apply_boid_rules, feed, update_life_cycle
from .steering import arrive, evade, steer_toward, wander

if TYPE_CHECKING:
    from ..core.world import World


def update_bee(world: World, bee: Agent) -> None:
    if not update_life_cycle(world, bee):
        return
    data = bee.bee

    evade_predators(world, bee)
    if data.state is BeeState.SEEKING_FLOWER:
        seek_flower(world, bee)
    elif data.state is BeeState.GATHERING_NECTAR:
        gather_nectar(world, bee)
    elif data.state is BeeState.RETURN_TO_HIVE:
        return_to_hive(world, bee)

    if data.state is not BeeState.GATHERING_NECTAR:
        apply_boid_rules(world, bee, world._bee_grid)


def evade_predators(world: World, bee: Agent) -> None:
    predators = world._bird_grid.query(bee)
    world._neighbor_checks += len(predators)
    threat = evade(bee, predators)
    if threat.x == 0.0 and threat.y == 0.0:
        return
    data = bee.bee
    if data.state is BeeState.GATHERING_NECTAR:
        # A bird in sight breaks off gathering. Collected nectar is kept.
        data.last_visited_flower = data.target_flower
        abandon_flower(world, bee)
        data.state = BeeState.SEEKING_FLOWER
    evade_factor = bee.settings.evade_factor
    bee.velocity.x += threat.x * evade_factor
    bee.velocity.y += threat.y * evade_factor


def seek_flower(world: World, bee: Agent) -> None:
    data = bee.bee
    config = world._config.bees

    flower = world.flower(data.target_flower) if data.target_flower is not None else None
    if data.target_flower is not None and (flower is None or flower.total_nectar() < config.min_petal_nectar):
        abandon_flower(world, bee)
        flower = None

    if flower is None:
        flower = find_flower(world, bee)
        if flower is None:
            wander(bee, world._rng)
            return
        data.target_flower = flower.id

    if data.petal_claim is None:
        claim = _claim_best_petal(flower, config.min_petal_nectar)
        if claim is None:
            abandon_flower(world, bee)
            wander(bee, world._rng)
            return
        data.petal_claim = claim
        data.target_petal = claim.petal_index

    target = flower.petal_position(data.target_petal)
    distance = arrive(bee, target, config.approach_slowdown_radius, config.seek_factor)
    if distance < config.flower_arrival_distance:
        bee.position.update(target)
        bee.velocity.update(0.0, 0.0)
        data.state = BeeState.GATHERING_NECTAR
        data.gather_countdown = config.gather_duration


def find_flower(world: World, bee: Agent) -> Optional[Flower]:
    """Pick the best visible flower, falling back to the hive's shared knowledge."""
    data = bee.bee
    config = world._config.bees
    visual_sq = bee.settings.visual_range * bee.settings.visual_range
    pos_x = bee.position.x
    pos_y = bee.position.y

    best: Optional[Flower] = None
    best_score = 0.0
    for flower in world._flowers:
        if not _is_candidate(flower, data.last_visited_flower, config.max_bees_per_flower):
            continue
        dx = flower.position.x - pos_x
        dy = flower.position.y - pos_y
        dist_sq = dx * dx + dy * dy
        if dist_sq >= visual_sq:
            continue
        score = flower.total_nectar() / (dist_sq + 1.0)
        if score > best_score:
            best = flower
            best_score = score
    if best is not None:
        return best

    hive = world.hive(data.hive)
    if hive is None:
        return None
    known = []
    for flower_id in hive.known_flower_locations:
        flower = world.flower(flower_id)
        if flower is not None and _is_candidate(flower, data.last_visited_flower, config.max_bees_per_flower):
            known.append(flower)
    return world._rng.sample_choice(known)


def _is_candidate(flower: Flower, last_visited: Optional[int], occupancy_cap: int) -> bool:
    if flower.vanished or flower.id == last_visited:
        return False
    return flower.occupant_count < occupancy_cap


def _claim_best_petal(flower: Flower, min_nectar: float) -> Optional[PetalClaim]:
    best_index = -1
    best_nectar = min_nectar
    for index, petal in enumerate(flower.petals):
        if petal.occupied or petal.nectar < best_nectar:
            continue
        best_index = index
        best_nectar = petal.nectar
    if best_index < 0:
        return None
    return claim_petal(flower, best_index)


def abandon_flower(world: World, bee: Agent) -> None:
    data = bee.bee
    claim = data.petal_claim
    if claim is not None:
        release_petal(world.flower(claim.flower_id), claim)
    data.petal_claim = None
    data.target_petal = None
    data.target_flower = None


def gather_nectar(world: World, bee: Agent) -> None:
    data = bee.bee
    config = world._config.bees
    flower = world.flower(data.target_flower) if data.target_flower is not None else None
    if flower is None or data.petal_claim is None:
        abandon_flower(world, bee)
        data.state = BeeState.SEEKING_FLOWER
        return

    petal = flower.petals[data.target_petal]
    bee.position.update(flower.petal_position(data.target_petal))
    bee.velocity.update(0.0, 0.0)

    data.gather_countdown -= 1
    capacity = bee.settings.nectar_capacity
    amount = min(petal.nectar, capacity - data.nectar, config.max_nectar_per_tick)
    if amount > 0.0:
        petal.nectar -= amount
        data.nectar += amount
        feed(bee, amount * config.nectar_energy)

    full = data.nectar >= capacity - 1e-9
    if data.gather_countdown <= 0 or full or petal.nectar <= 1e-9:
        data.last_visited_flower = flower.id
        abandon_flower(world, bee)
        data.state = BeeState.RETURN_TO_HIVE if full else BeeState.SEEKING_FLOWER


def choose_hive(world: World, bee: Agent) -> Optional[int]:
    hives = world._hives
    if not hives:
        return None
    config = world._config.bees
    pos = bee.position

    best_index = -1
    if world.living_count(bee.kind) < config.hive_choice_population_threshold:
        best_dist_sq = math.inf
        for index, hive in enumerate(hives):
            dist_sq = (hive.position - pos).length_squared()
            if dist_sq < best_dist_sq:
                best_index = index
                best_dist_sq = dist_sq
    else:
        best_score = -1.0
        for index, hive in enumerate(hives):
            distance = (hive.position - pos).length()
            birds_nearby = sum(1 for bird in world._bird_grid.query_point(hive.position) if bird.alive)
            score = (
                1.0 / (distance + 1.0)
                * 1.0 / (1.0 + hive.bees_en_route)
                * 1.0 / (1.0 + birds_nearby * config.danger_weight)
            )
            if score > best_score:
                best_index = index
                best_score = score

    data = bee.bee
    data.target_hive = best_index
    data.route = reserve_route(hives[best_index], best_index)
    return best_index


def return_to_hive(world: World, bee: Agent) -> None:
    data = bee.bee
    config = world._config.bees
    if data.target_hive is None and choose_hive(world, bee) is None:
        wander(bee, world._rng)
        return

    hive = world._hives[data.target_hive]
    if (hive.position - bee.position).length_squared() < config.hive_arrival_distance ** 2:
        deposit_nectar(world, bee)
        return
    steer_toward(bee, hive.position, config.return_factor)


def deposit_nectar(world: World, bee: Agent) -> None:
    data = bee.bee
    hive = world._hives[data.target_hive]
    hive.nectar += data.nectar
    data.nectar = 0.0
    hive.contribute(bee.dna, bee.generation)
    if data.last_visited_flower is not None:
        # Waggle dance: share the last productive flower with the colony.
        hive.remember_flower(data.last_visited_flower, world._config.bees.knowledge_capacity)
    release_route(hive, data.route)
    data.route = None
    data.target_hive = None
    data.state = BeeState.SEEKING_FLOWER


def release_bee_resources(world: World, bee: Agent) -> None:
    data = bee.bee
    abandon_flower(world, bee)
    if data.route is not None:
        release_route(world.hive(data.route.hive_index), data.route)
    data.route = None
    data.target_hive = None
