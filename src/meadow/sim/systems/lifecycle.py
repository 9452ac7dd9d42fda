from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent, DeathCause
from ..core.spatial_grid import SpatialGrid
from .steering import avoid_edges, constrain_position, flocking_forces, limit_speed

if TYPE_CHECKING:
    from ..core.world import World


def update_life_cycle(world: World, agent: Agent) -> bool:
    """Advance aging, energy and the corpse animation.

    Returns True when the agent is alive and should run its behavior this tick.
    """
    if agent.vanished:
        return False
    if not agent.alive:
        _advance_corpse(world, agent)
        return False

    settings = agent.settings
    agent.age += 1
    agent.energy = max(0.0, agent.energy - settings.energy_depletion_rate)
    if agent.age > settings.max_lifetime:
        die(world, agent, DeathCause.NATURAL)
        return False
    if agent.energy <= 0.0:
        die(world, agent, DeathCause.STARVATION)
        return False
    return True


def die(world: World, agent: Agent, cause: DeathCause) -> None:
    if not agent.alive:
        return
    agent.alive = False
    agent.death_cause = cause
    if cause is DeathCause.PREDATION:
        # Eaten agents skip the fall and fade.
        agent.vanished = True
        agent.velocity.update(0.0, 0.0)
    world._release_agent_resources(agent)
    world._record_death(agent, cause)


def feed(agent: Agent, amount: float) -> None:
    if amount <= 0.0 or not agent.alive:
        return
    agent.energy = min(agent.settings.initial_energy, agent.energy + amount)


def _advance_corpse(world: World, agent: Agent) -> None:
    config = world._config
    ground = config.ground_level
    position = agent.position
    velocity = agent.velocity
    if position.y < ground:
        velocity.y += config.gravity
        velocity.x *= config.fall_drag
        position.x += velocity.x
        position.y += velocity.y
        if position.y >= ground:
            position.y = ground
            velocity.update(0.0, 0.0)
        return
    velocity.update(0.0, 0.0)
    agent.death_timer += 1
    if agent.death_timer > config.fade_duration:
        agent.vanished = True


def flock(world: World, agent: Agent, grid: SpatialGrid) -> int:
    local = grid.query(agent)
    world._neighbor_checks += len(local)
    forces = flocking_forces(agent, local)
    velocity = agent.velocity
    velocity += forces.separation
    velocity += forces.alignment
    velocity += forces.cohesion
    return forces.neighbor_count


def integrate(world: World, agent: Agent) -> None:
    config = world._config
    avoid_edges(agent, config)
    limit_speed(agent.velocity, agent.settings.max_speed)
    agent.position += agent.velocity
    constrain_position(agent, config)


def apply_boid_rules(world: World, agent: Agent, grid: SpatialGrid) -> int:
    """Flock with the agent's own species, then bound and integrate.

    Returns the number of flockmates inside visual range.
    """
    neighbor_count = flock(world, agent, grid)
    integrate(world, agent)
    return neighbor_count
