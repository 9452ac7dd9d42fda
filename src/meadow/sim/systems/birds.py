from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from ..core.agent import Agent, BirdState, DeathCause
from .lifecycle import die, feed, flock, integrate, update_life_cycle
from .steering import nearest, steer_toward, wander

if TYPE_CHECKING:
    from ..core.world import World


def update_bird(world: World, bird: Agent) -> None:
    if not update_life_cycle(world, bird):
        return
    data = bird.bird

    if data.state is BirdState.HUNTING:
        hunting = hunt(world, bird)
        flockmates = flock(world, bird, world._bird_grid)
        if not hunting and flockmates == 0:
            wander(bird, world._rng)
        integrate(world, bird)
        return

    if data.state is BirdState.SEEKING_MATE:
        seek_mate(world, bird)
        if data.state is BirdState.SEEKING_MATE:
            flockmates = flock(world, bird, world._bird_grid)
            if flockmates == 0:
                wander(bird, world._rng)
            integrate(world, bird)
            return

    if data.state is BirdState.GO_TO_NEST:
        if go_to_nest(world, bird):
            return
        flock(world, bird, world._bird_grid)
        integrate(world, bird)
        return

    # A mating reset dropped the bird back to hunting part-way through the tick.
    flock(world, bird, world._bird_grid)
    integrate(world, bird)


def hunt(world: World, bird: Agent) -> bool:
    """Chase the nearest bee and try one catch.

    Returns True when a hunting force was applied this tick.
    """
    data = bird.bird
    settings = bird.settings
    prey = world._bee_grid.query(bird)
    world._neighbor_checks += len(prey)

    target, _distance = nearest(bird, prey, settings.visual_range)
    hunting = False
    if target is not None:
        steer_toward(bird, target.position, settings.hunt_factor)
        hunting = True

    # Catch radius grows with current speed.
    kill_range = settings.kill_range + bird.velocity.length()
    kill_sq = kill_range * kill_range
    pos = bird.position
    for bee in prey:
        if not bee.alive:
            continue
        if (bee.position - pos).length_squared() < kill_sq:
            die(world, bee, DeathCause.PREDATION)
            data.bees_caught += 1
            feed(bird, settings.energy_per_catch)
            break

    if data.bees_caught >= world._config.birds.catches_to_mate:
        if world.living_count(bird.kind) < world._config.birds.max_population:
            data.state = BirdState.SEEKING_MATE
        else:
            data.bees_caught = 0
    return hunting


def seek_mate(world: World, bird: Agent) -> bool:
    data = bird.bird
    if data.partner is not None:
        return False
    visual_sq = bird.settings.visual_range * bird.settings.visual_range
    candidates = world._bird_grid.query(bird)
    world._neighbor_checks += len(candidates)
    for other in candidates:
        if other is bird or not other.alive:
            continue
        other_data = other.bird
        if other_data.state is not BirdState.SEEKING_MATE or other_data.partner is not None:
            continue
        if (other.position - bird.position).length_squared() >= visual_sq:
            continue
        nest_index = find_available_nest(world, bird)
        if nest_index is None:
            # No nest this tick; stay single and retry later.
            return False
        pair_birds(world, bird, other, nest_index)
        return True
    return False


def find_available_nest(world: World, bird: Agent) -> Optional[int]:
    best_index = None
    best_dist_sq = math.inf
    for index, nest in enumerate(world._nests):
        if not nest.is_available or nest.has_egg or nest.claimed_by is not None:
            continue
        dist_sq = (nest.position - bird.position).length_squared()
        if dist_sq < best_dist_sq:
            best_index = index
            best_dist_sq = dist_sq
    return best_index


def pair_birds(world: World, bird: Agent, mate: Agent, nest_index: int) -> None:
    nest = world._nests[nest_index]
    nest.is_available = False
    nest.claimed_by = (bird.id, mate.id)
    for member, other in ((bird, mate), (mate, bird)):
        member.bird.partner = other.id
        member.bird.mating_nest = nest_index
        member.bird.state = BirdState.GO_TO_NEST


def go_to_nest(world: World, bird: Agent) -> bool:
    """Fly to the claimed nest with the partner.

    Returns True while the bird sits in the nest and should not move.
    """
    data = bird.bird
    config = world._config.birds
    partner = world.agent(data.partner) if data.partner is not None else None
    nest = world.nest(data.mating_nest) if data.mating_nest is not None else None
    if (
        partner is None
        or not partner.alive
        or partner.bird.partner != bird.id
        or nest is None
        or nest.has_egg
    ):
        reset_mating(world, bird)
        return False

    if bird.id in nest.occupants:
        _settle(bird, nest.position)
        return True
    if (nest.position - bird.position).length_squared() < config.nest_arrival_distance ** 2:
        nest.occupants.add(bird.id)
        _settle(bird, nest.position)
        return True

    steer_toward(bird, nest.position, config.nest_steer_factor)
    steer_toward(bird, partner.position, config.partner_cohesion_factor)
    return False


def _settle(bird: Agent, position) -> None:
    bird.position.update(position)
    bird.velocity.update(0.0, 0.0)


def reset_mating(world: World, bird: Agent) -> None:
    """Undo a pairing for both partners and free the nest if no egg was laid."""
    data = bird.bird
    partner_id = data.partner
    # Clear our side first so the partner's reset cannot recurse back into us.
    data.partner = None
    if data.mating_nest is not None:
        nest = world.nest(data.mating_nest)
        if nest is not None and nest.claimed_by is not None and bird.id in nest.claimed_by:
            nest.release_claim()
        data.mating_nest = None
    if data.state is not BirdState.HUNTING:
        data.state = BirdState.HUNTING
        data.bees_caught = 0

    if partner_id is not None:
        partner = world._agents_by_id.get(partner_id)
        if partner is not None and partner.bird is not None and partner.bird.partner == bird.id:
            reset_mating(world, partner)


def release_bird_resources(world: World, bird: Agent) -> None:
    data = bird.bird
    if data.partner is not None or data.mating_nest is not None:
        reset_mating(world, bird)
