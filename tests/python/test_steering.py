from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from meadow.app.headless import build_world
from meadow.config import SimulationConfig
from meadow.rng import DeterministicRng
from meadow.sim.systems.steering import (
    arrive,
    avoid_edges,
    constrain_position,
    evade,
    flocking_forces,
    limit_speed,
    nearest,
    wander,
)


def test_limit_speed_clamps_only_fast_vectors():
    fast = Vector2(30.0, 40.0)
    limit_speed(fast, 5.0)
    assert fast.length() == approx(5.0)
    assert fast.x == approx(3.0)

    slow = Vector2(1.0, 1.0)
    limit_speed(slow, 5.0)
    assert slow == Vector2(1.0, 1.0)


def test_forces_are_zero_without_neighbors(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))

    forces = flocking_forces(bee, [bee])

    assert forces.neighbor_count == 0
    assert forces.separation == Vector2()
    assert forces.alignment == Vector2()
    assert forces.cohesion == Vector2()


def test_separation_pushes_away_and_cohesion_pulls_in(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))
    close = world.spawn_bee(Vector2(105.0, 300.0))
    bee.velocity.update(0.0, 0.0)
    close.velocity.update(1.0, 0.0)

    forces = flocking_forces(bee, [bee, close])

    assert forces.neighbor_count == 1
    assert forces.separation.x < 0.0
    assert forces.separation.y == approx(0.0)
    assert forces.cohesion.x > 0.0
    assert forces.alignment.x > 0.0


def test_dead_neighbors_are_ignored(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))
    corpse = world.spawn_bee(Vector2(104.0, 300.0))
    corpse.alive = False

    assert flocking_forces(bee, [corpse]).neighbor_count == 0


def test_horizontal_wrap_and_ground_bounce(make_world, config):
    world = make_world()
    bee = world.spawn_bee(Vector2(config.width + 1.0, 300.0))
    constrain_position(bee, config)
    assert bee.position.x == 0.0

    bee.position.update(-1.0, config.ground_level + 5.0)
    bee.velocity.update(0.0, 4.0)
    constrain_position(bee, config)

    assert bee.position.x == config.width
    assert bee.position.y == config.ground_level
    assert bee.velocity.y == approx(-4.0 * config.ground_bounce)


def test_edge_repulsion_near_top_and_ground(make_world, config):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, config.top_margin - 10.0))
    bee.velocity.update(0.0, 0.0)
    avoid_edges(bee, config)
    assert bee.velocity.y == approx(bee.settings.turn_factor)

    bee.velocity.update(0.0, 0.0)
    bee.position.y = config.ground_level - config.ground_margin * 0.5
    avoid_edges(bee, config)
    half = -0.5 * bee.settings.turn_factor * config.ground_repulsion
    assert bee.velocity.y == approx(half)

    bee.velocity.update(0.0, 0.0)
    bee.position.y = config.ground_level - config.ground_margin * 0.25
    avoid_edges(bee, config)
    assert bee.velocity.y < half


def test_arrive_tapers_inside_slowdown_radius(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))
    bee.velocity.update(0.0, 0.0)

    distance = arrive(bee, Vector2(110.0, 300.0), 50.0, 1.0)

    assert distance == approx(10.0)
    assert bee.velocity.x == approx(bee.settings.max_speed * 10.0 / 50.0)


def test_evade_points_away_from_visible_predators(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))
    bird = world.spawn_bird(Vector2(120.0, 300.0))
    far = world.spawn_bird(Vector2(900.0, 300.0))

    threat = evade(bee, [bird, far])

    assert threat.x == approx(-20.0)
    assert threat.y == approx(0.0)


def test_nearest_skips_self_and_out_of_range(make_world):
    world = make_world()
    bird = world.spawn_bird(Vector2(100.0, 300.0))
    near = world.spawn_bee(Vector2(110.0, 300.0))
    far = world.spawn_bee(Vector2(400.0, 300.0))

    target, distance = nearest(bird, [bird, far, near], bird.settings.visual_range)

    assert target is near
    assert distance == approx(10.0)
    assert nearest(bird, [far], bird.settings.visual_range) == (None, math.inf)


def test_wander_heading_drifts_smoothly(make_world):
    world = make_world()
    bee = world.spawn_bee(Vector2(100.0, 300.0))
    rng = DeterministicRng(5)
    angles = []
    for _ in range(20):
        wander(bee, rng)
        angles.append(bee.wander_angle)

    jitter = bee.settings.wander_jitter
    for before, after in zip(angles, angles[1:]):
        assert abs(after - before) <= jitter + 1e-9


def test_speed_stays_clamped_over_a_run():
    world = build_world(SimulationConfig(seed=5))
    for tick in range(60):
        world.step(tick)
        for agent in world.agents:
            if agent.alive:
                assert agent.velocity.length() <= agent.settings.max_speed + 1e-6
