from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List

from pygame.math import Vector2

from ..core.agent import Agent
from ..utils.math2d import _safe_normalize_xy

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ...rng import DeterministicRng


@dataclass(slots=True)
class FlockForces:
    separation: Vector2
    alignment: Vector2
    cohesion: Vector2
    neighbor_count: int = 0


def flocking_forces(agent: Agent, neighbors: Iterable[Agent]) -> FlockForces:
    """Separation, alignment and cohesion from one pass over the candidate set.

    Each force is the velocity delta to apply this tick and is zero when no
    neighbor qualifies for it.
    """
    settings = agent.settings
    pos_x = agent.position.x
    pos_y = agent.position.y
    visual_sq = settings.visual_range * settings.visual_range
    separation_sq = settings.separation_distance * settings.separation_distance
    max_speed = settings.max_speed

    sep_x = sep_y = 0.0
    ali_x = ali_y = 0.0
    coh_x = coh_y = 0.0
    sep_count = 0
    count = 0

    for other in neighbors:
        if other is agent or not other.alive:
            continue
        offset_x = pos_x - other.position.x
        offset_y = pos_y - other.position.y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq <= 0.0 or dist_sq >= visual_sq:
            continue
        coh_x += other.position.x
        coh_y += other.position.y
        ali_x += other.velocity.x
        ali_y += other.velocity.y
        count += 1
        if dist_sq < separation_sq:
            inv = 1.0 / math.sqrt(dist_sq)
            sep_x += offset_x * inv
            sep_y += offset_y * inv
            sep_count += 1

    separation = Vector2()
    alignment = Vector2()
    cohesion = Vector2()
    velocity = agent.velocity

    if sep_count:
        scale = settings.separation_factor / sep_count
        separation.update(sep_x * scale, sep_y * scale)

    if count:
        inv_count = 1.0 / count
        heading = _safe_normalize_xy(ali_x * inv_count, ali_y * inv_count)
        if heading.length_squared() > 0.0:
            alignment.update(
                (heading.x * max_speed - velocity.x) * settings.alignment_factor,
                (heading.y * max_speed - velocity.y) * settings.alignment_factor,
            )
        toward = _safe_normalize_xy(coh_x * inv_count - pos_x, coh_y * inv_count - pos_y)
        if toward.length_squared() > 0.0:
            cohesion.update(
                (toward.x * max_speed - velocity.x) * settings.cohesion_factor,
                (toward.y * max_speed - velocity.y) * settings.cohesion_factor,
            )

    return FlockForces(separation, alignment, cohesion, count)


def limit_speed(velocity: Vector2, max_speed: float) -> None:
    speed_sq = velocity.x * velocity.x + velocity.y * velocity.y
    if speed_sq <= max_speed * max_speed:
        return
    if max_speed <= 0.0:
        velocity.update(0.0, 0.0)
        return
    ratio = max_speed / math.sqrt(speed_sq)
    velocity.update(velocity.x * ratio, velocity.y * ratio)


def avoid_edges(agent: Agent, config: "SimulationConfig") -> None:
    turn = agent.settings.turn_factor
    y = agent.position.y
    if y < config.top_margin:
        agent.velocity.y += turn
    repel_start = config.ground_level - config.ground_margin
    if y > repel_start and config.ground_margin > 0.0:
        # Repulsion grows linearly from the edge of the band down to the ground.
        strength = (y - repel_start) / config.ground_margin * turn * config.ground_repulsion
        agent.velocity.y -= strength


def constrain_position(agent: Agent, config: "SimulationConfig") -> None:
    position = agent.position
    if position.x > config.width:
        position.x = 0.0
    elif position.x < 0.0:
        position.x = config.width
    ground = config.ground_level
    if position.y >= ground:
        position.y = ground
        agent.velocity.y = -abs(agent.velocity.y) * config.ground_bounce


def wander(agent: Agent, rng: "DeterministicRng") -> None:
    settings = agent.settings
    agent.wander_angle += rng.next_range(-settings.wander_jitter, settings.wander_jitter)
    agent.velocity.x += math.cos(agent.wander_angle) * settings.wander_strength
    agent.velocity.y += math.sin(agent.wander_angle) * settings.wander_strength


def steer_toward(agent: Agent, target: Vector2, factor: float) -> None:
    agent.velocity.x += (target.x - agent.position.x) * factor
    agent.velocity.y += (target.y - agent.position.y) * factor


def arrive(agent: Agent, target: Vector2, slowdown_radius: float, factor: float) -> float:
    """Steer toward ``target``, tapering the desired speed inside ``slowdown_radius``.

    Returns the distance to the target before steering.
    """
    dx = target.x - agent.position.x
    dy = target.y - agent.position.y
    dist = math.sqrt(dx * dx + dy * dy)
    if dist <= 1e-9:
        return 0.0
    speed = agent.settings.max_speed
    if slowdown_radius > 0.0 and dist < slowdown_radius:
        speed *= dist / slowdown_radius
    inv = 1.0 / dist
    agent.velocity.x += (dx * inv * speed - agent.velocity.x) * factor
    agent.velocity.y += (dy * inv * speed - agent.velocity.y) * factor
    return dist


def evade(agent: Agent, predators: Iterable[Agent]) -> Vector2:
    visual_sq = agent.settings.visual_range * agent.settings.visual_range
    steer_x = 0.0
    steer_y = 0.0
    pos = agent.position
    for predator in predators:
        if not predator.alive:
            continue
        dx = pos.x - predator.position.x
        dy = pos.y - predator.position.y
        if dx * dx + dy * dy < visual_sq:
            steer_x += dx
            steer_y += dy
    return Vector2(steer_x, steer_y)


def nearest(agent: Agent, candidates: List[Agent], max_range: float) -> tuple[Agent | None, float]:
    best = None
    best_sq = max_range * max_range
    pos = agent.position
    for other in candidates:
        if other is agent or not other.alive:
            continue
        dx = other.position.x - pos.x
        dy = other.position.y - pos.y
        dist_sq = dx * dx + dy * dy
        if dist_sq < best_sq:
            best = other
            best_sq = dist_sq
    return best, math.sqrt(best_sq) if best is not None else float("inf")
