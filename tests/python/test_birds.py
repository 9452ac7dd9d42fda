from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from meadow.app.headless import build_world
from meadow.config import SimulationConfig
from meadow.sim.core.agent import BirdState, DeathCause
from meadow.sim.systems import birds
from meadow.sim.systems.lifecycle import die


def _seeking_pair(world, first_at=(300.0, 300.0), second_at=(320.0, 300.0)):
    first = world.spawn_bird(Vector2(*first_at))
    second = world.spawn_bird(Vector2(*second_at))
    for bird in (first, second):
        bird.bird.state = BirdState.SEEKING_MATE
    return first, second


def test_no_free_nest_means_no_pairing(make_world):
    world = make_world(nests=[])
    first, second = _seeking_pair(world)

    world.step(0)

    for bird in (first, second):
        assert bird.bird.state is BirdState.SEEKING_MATE
        assert bird.bird.partner is None


def test_pairing_claims_nearest_free_nest(make_world, make_nest):
    far = make_nest(1000.0, 200.0)
    near = make_nest(400.0, 200.0)
    world = make_world(nests=[far, near])
    first, second = _seeking_pair(world)
    world._bird_grid.insert(first)
    world._bird_grid.insert(second)

    assert birds.seek_mate(world, first)

    assert first.bird.partner == second.id
    assert second.bird.partner == first.id
    assert first.bird.state is BirdState.GO_TO_NEST
    assert second.bird.state is BirdState.GO_TO_NEST
    assert first.bird.mating_nest == second.bird.mating_nest == 1
    assert not near.is_available
    assert near.claimed_by == (first.id, second.id)
    assert far.is_available


def test_partner_death_resets_both_and_frees_nest(make_world, make_nest):
    nest = make_nest(400.0, 200.0)
    world = make_world(nests=[nest])
    first, second = _seeking_pair(world)
    birds.pair_birds(world, first, second, 0)

    die(world, first, DeathCause.PREDATION)

    assert first.bird.partner is None
    assert second.bird.partner is None
    assert second.bird.state is BirdState.HUNTING
    assert second.bird.bees_caught == 0
    assert nest.is_available
    assert nest.claimed_by is None


def test_egg_in_claimed_nest_aborts_trip(make_world, make_nest):
    nest = make_nest(400.0, 200.0)
    world = make_world(nests=[nest])
    first, second = _seeking_pair(world)
    birds.pair_birds(world, first, second, 0)
    nest.has_egg = True

    assert not birds.go_to_nest(world, first)

    assert first.bird.state is BirdState.HUNTING
    assert second.bird.state is BirdState.HUNTING
    assert first.bird.partner is None
    assert second.bird.partner is None
    assert not nest.is_available


def test_reset_mating_terminates_on_mutual_pair(make_world, make_nest):
    world = make_world(nests=[make_nest(400.0, 200.0)])
    first, second = _seeking_pair(world)
    birds.pair_birds(world, first, second, 0)

    birds.reset_mating(world, first)

    assert first.bird.partner is None
    assert second.bird.partner is None
    assert first.bird.mating_nest is None
    assert second.bird.mating_nest is None


def test_arriving_bird_sits_in_nest(make_world, make_nest):
    nest = make_nest(400.0, 200.0)
    world = make_world(nests=[nest])
    first, second = _seeking_pair(world, first_at=(405.0, 200.0), second_at=(600.0, 200.0))
    birds.pair_birds(world, first, second, 0)

    assert birds.go_to_nest(world, first)
    assert first.id in nest.occupants
    assert first.position == nest.position
    assert first.velocity == Vector2()

    assert not birds.go_to_nest(world, second)
    assert second.id not in nest.occupants


def test_nest_cycle_lays_egg_then_hatches(config, make_world, make_nest):
    config.birds.nesting_duration = 2
    config.birds.hatching_duration = 3
    nest = make_nest(400.0, 200.0)
    world = make_world(nests=[nest])
    first, second = _seeking_pair(world, first_at=(400.0, 200.0), second_at=(402.0, 200.0))
    first.generation = 1
    second.generation = 4
    birds.pair_birds(world, first, second, 0)

    for tick in range(3):
        world.step(tick)

    assert nest.has_egg
    assert nest.occupants == set()
    assert nest.claimed_by is None
    for bird in (first, second):
        assert bird.bird.state is BirdState.HUNTING
        assert bird.bird.partner is None
        assert bird.bird.home_nest == 0
    assert len(world.birds) == 2

    for tick in range(3, 6):
        world.step(tick)

    assert len(world.birds) == 3
    chick = world.birds[-1]
    assert chick.generation == 5
    assert chick.bird.home_nest == 0
    assert not nest.has_egg
    assert nest.is_available
    assert nest.parent_genes is None
    assert world.metrics.bird_births == 1


def test_hunt_takes_one_bee_per_tick(make_world):
    world = make_world()
    bird = world.spawn_bird(Vector2(300.0, 300.0))
    bird.energy = 50.0
    prey = [world.spawn_bee(Vector2(301.0, 300.0)), world.spawn_bee(Vector2(300.0, 301.0))]
    for bee in prey:
        world._bee_grid.insert(bee)

    assert birds.hunt(world, bird)

    dead = [bee for bee in prey if not bee.alive]
    assert len(dead) == 1
    assert dead[0].vanished
    assert dead[0].death_cause is DeathCause.PREDATION
    assert bird.bird.bees_caught == 1
    assert bird.energy == approx(50.0 + bird.settings.energy_per_catch)


def test_enough_catches_start_mate_search(make_world):
    world = make_world()
    bird = world.spawn_bird(Vector2(300.0, 300.0))
    bird.bird.bees_caught = world.config.birds.catches_to_mate - 1
    bee = world.spawn_bee(Vector2(301.0, 300.0))
    world._bee_grid.insert(bee)

    birds.hunt(world, bird)

    assert bird.bird.state is BirdState.SEEKING_MATE


def test_population_cap_blocks_mate_search(config, make_world):
    config.birds.max_population = 1
    world = make_world()
    bird = world.spawn_bird(Vector2(300.0, 300.0))
    bird.bird.bees_caught = config.birds.catches_to_mate
    assert not birds.hunt(world, bird)

    assert bird.bird.state is BirdState.HUNTING
    assert bird.bird.bees_caught == 0


def test_partners_stay_symmetric_between_ticks():
    config = SimulationConfig(seed=21)
    config.birds.catches_to_mate = 1
    config.birds.nesting_duration = 20
    config.birds.hatching_duration = 40
    world = build_world(config)
    for tick in range(400):
        world.step(tick)
        for bird in world.birds:
            partner_id = bird.bird.partner
            if partner_id is None:
                continue
            assert bird.alive
            partner = world.agent(partner_id)
            assert partner is not None
            assert partner.bird.partner == bird.id
