from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional

from pygame.math import Vector2

from ...config import SimulationConfig
from ...rng import DeterministicRng
from .agent import Agent, AgentKind, BeeData, BirdData, DeathCause, Genes
from .environment import Flower, Hive, Nest
from .spatial_grid import SpatialGrid
from ..systems import bees, birds, metrics as metrics_system, reproduction
from ..systems.genetics import default_dna, express_settings, random_genes
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotScenery, SnapshotWorld
from ..utils.math2d import _heading_from_velocity

logger = logging.getLogger(__name__)

_MIN_WORLD_SCALE = 0.1


def compute_world_scale(width: float, height: float, reference_height: float) -> float:
    if reference_height <= 0.0 or height <= 0.0:
        return 1.0
    return max(_MIN_WORLD_SCALE, height / reference_height)


class World:
    """Population manager for the bees and birds sharing one meadow.

    Hives, nests and flowers are handed in already placed. The world owns the
    agent lists, the two species grids and the end-of-tick birth and removal
    phase.
    """

    def __init__(
        self,
        config: SimulationConfig,
        hives: Iterable[Hive] = (),
        nests: Iterable[Nest] = (),
        flowers: Iterable[Flower] = (),
        world_scale: Optional[float] = None,
        populate: bool = True,
    ):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        if world_scale is None:
            world_scale = compute_world_scale(config.width, config.height, config.reference_height)
        self._world_scale = max(_MIN_WORLD_SCALE, world_scale)
        self._hives: List[Hive] = list(hives)
        self._nests: List[Nest] = list(nests)
        self._flowers: List[Flower] = list(flowers)
        self._flowers_by_id: Dict[int, Flower] = {flower.id: flower for flower in self._flowers}
        self._bee_grid = SpatialGrid(
            config.width, config.height, config.bees.settings.visual_range * self._world_scale
        )
        self._bird_grid = SpatialGrid(
            config.width, config.height, config.birds.settings.visual_range * self._world_scale
        )
        self._bees: List[Agent] = []
        self._birds: List[Agent] = []
        self._agents_by_id: Dict[int, Agent] = {}
        self._birth_queue: List[Agent] = []
        self._deaths: Dict[DeathCause, int] = {cause: 0 for cause in DeathCause}
        self._neighbor_checks = 0
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self._populate = populate
        if populate:
            self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def world_scale(self) -> float:
        return self._world_scale

    @property
    def agents(self) -> List[Agent]:
        return self._bees + self._birds

    @property
    def bees(self) -> List[Agent]:
        return self._bees

    @property
    def birds(self) -> List[Agent]:
        return self._birds

    @property
    def hives(self) -> List[Hive]:
        return self._hives

    @property
    def nests(self) -> List[Nest]:
        return self._nests

    @property
    def flowers(self) -> List[Flower]:
        return self._flowers

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def agent(self, agent_id: int) -> Optional[Agent]:
        agent = self._agents_by_id.get(agent_id)
        if agent is None or agent.vanished:
            return None
        return agent

    def flower(self, flower_id: int) -> Optional[Flower]:
        flower = self._flowers_by_id.get(flower_id)
        if flower is None or flower.vanished:
            return None
        return flower

    def hive(self, index: Optional[int]) -> Optional[Hive]:
        if index is None or index < 0 or index >= len(self._hives):
            return None
        return self._hives[index]

    def nest(self, index: Optional[int]) -> Optional[Nest]:
        if index is None or index < 0 or index >= len(self._nests):
            return None
        return self._nests[index]

    def living_count(self, kind: AgentKind) -> int:
        return sum(1 for agent in self._population(kind) if agent.alive)

    def queued_births(self, kind: AgentKind) -> int:
        return sum(1 for agent in self._birth_queue if agent.kind is kind)

    def reset(self) -> None:
        self._bees.clear()
        self._birds.clear()
        self._agents_by_id.clear()
        self._birth_queue.clear()
        self._bee_grid.clear()
        self._bird_grid.clear()
        self._rng.reset()
        self._next_id = 0
        self._neighbor_checks = 0
        self._deaths = {cause: 0 for cause in DeathCause}
        self._metrics = None
        for flower in self._flowers:
            flower.occupant_count = 0
            for petal in flower.petals:
                petal.nectar = 1.0
                petal.occupied = False
        for hive in self._hives:
            hive.nectar = 0.0
            hive.reset_pool()
            hive.known_flower_locations.clear()
            hive.bees_en_route = 0
        for index, nest in enumerate(self._nests):
            self._nests[index] = Nest(position=nest.position)
        if self._populate:
            self._bootstrap_population()

    def spawn_bee(
        self,
        position: Vector2,
        hive_index: int = 0,
        dna: Optional[Dict[str, float]] = None,
        generation: int = 0,
    ) -> Optional[Agent]:
        bee = self._create_bee(position, hive_index, dna=dna, generation=generation)
        if bee is not None:
            self._add(bee)
        return bee

    def spawn_bird(
        self,
        position: Vector2,
        dna: Optional[Dict[str, float]] = None,
        genes: Optional[Genes] = None,
        palette: Optional[str] = None,
        generation: int = 0,
    ) -> Optional[Agent]:
        bird = self._create_bird(position, dna=dna, genes=genes, palette=palette, generation=generation)
        if bird is not None:
            self._add(bird)
        return bird

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config
        self._neighbor_checks = 0
        self._deaths = {cause: 0 for cause in DeathCause}

        self._rebuild_grid(self._bee_grid, self._bees)
        self._rebuild_grid(self._bird_grid, self._birds)
        for flower in self._flowers:
            if not flower.vanished:
                flower.regenerate(config.petal_regen_rate)

        for bee in self._bees:
            bees.update_bee(self, bee)
        for bird in self._birds:
            birds.update_bird(self, bird)

        bee_births = reproduction.tick_hives(self)
        bird_births = reproduction.tick_nests(self)
        self._apply_births()
        self._remove_vanished()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self, tick, bee_births, bird_births, self._deaths, self._neighbor_checks, elapsed_ms
        )
        self._metrics = metrics
        return metrics

    def trait_snapshot(self, kind: AgentKind) -> Dict[str, float]:
        return metrics_system.trait_means(self._population(kind))

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        agents_payload = [
            self._agent_snapshot(agent) for agent in self._bees + self._birds if not agent.vanished
        ]
        config = self._config
        scenery = SnapshotScenery(
            hives=[
                {"x": hive.position.x, "y": hive.position.y, "nectar": hive.nectar, "en_route": hive.bees_en_route}
                for hive in self._hives
            ],
            nests=[
                {
                    "x": nest.position.x,
                    "y": nest.position.y,
                    "occupants": sorted(nest.occupants),
                    "has_egg": nest.has_egg,
                    "is_available": nest.is_available,
                }
                for nest in self._nests
            ],
            flowers=[
                {
                    "id": flower.id,
                    "x": flower.position.x,
                    "y": flower.position.y,
                    "petals": [petal.nectar for petal in flower.petals],
                }
                for flower in self._flowers
                if not flower.vanished
            ],
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=agents_payload,
            world=SnapshotWorld(width=config.width, height=config.height, ground_level=config.ground_level),
            metadata=SnapshotMetadata(
                world_scale=self._world_scale,
                seed=config.seed,
                config_version=config.config_version,
            ),
            scenery=scenery,
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        for index, hive in enumerate(self._hives):
            for _ in range(config.bees.initial_per_hive):
                offset = self._rng.next_unit_circle() * self._rng.next_range(0.0, 20.0 * self._world_scale)
                self.spawn_bee(hive.position + offset, index)
        sky_low = config.top_margin
        sky_high = max(sky_low, config.ground_level - config.ground_margin)
        for _ in range(config.birds.initial_count):
            position = Vector2(
                self._rng.next_range(0.0, config.width),
                self._rng.next_range(sky_low, sky_high),
            )
            self.spawn_bird(position)
        logger.debug(
            "bootstrapped %d bees across %d hives and %d birds",
            len(self._bees),
            len(self._hives),
            len(self._birds),
        )

    def _create_bee(
        self,
        position: Vector2,
        hive_index: int,
        dna: Optional[Dict[str, float]] = None,
        generation: int = 0,
    ) -> Optional[Agent]:
        if self.hive(hive_index) is None:
            logger.warning("cannot spawn a bee for unknown hive %r", hive_index)
            return None
        species = self._config.bees
        if dna is None:
            dna = default_dna(species.settings, species.dna_ranges)
        bee = self._new_agent(AgentKind.BEE, position, species.settings, dna, generation)
        bee.bee = BeeData(hive=hive_index)
        return bee

    def _create_bird(
        self,
        position: Vector2,
        dna: Optional[Dict[str, float]] = None,
        genes: Optional[Genes] = None,
        palette: Optional[str] = None,
        generation: int = 0,
    ) -> Optional[Agent]:
        species = self._config.birds
        if genes is None:
            if palette is None:
                palette = self._rng.sample_choice(species.palettes)
            genes = random_genes(self._rng, palette) if palette is not None else None
            if genes is None:
                logger.warning("skipping bird spawn: no usable palette")
                return None
        if dna is None:
            dna = default_dna(species.settings, species.dna_ranges)
        bird = self._new_agent(AgentKind.BIRD, position, species.settings, dna, generation)
        bird.bird = BirdData(genes=genes)
        return bird

    def _new_agent(self, kind, position, base_settings, dna, generation) -> Agent:
        settings = express_settings(base_settings, dna, self._world_scale)
        velocity = self._rng.next_unit_circle() * (settings.max_speed * 0.5)
        agent = Agent(
            id=self._next_id,
            kind=kind,
            position=Vector2(position),
            velocity=velocity,
            settings=settings,
            dna=dict(dna),
            energy=settings.initial_energy,
            generation=generation,
            wander_angle=self._rng.next_angle(),
        )
        self._next_id += 1
        return agent

    def _population(self, kind: AgentKind) -> List[Agent]:
        return self._bees if kind is AgentKind.BEE else self._birds

    def _add(self, agent: Agent) -> None:
        self._population(agent.kind).append(agent)
        self._agents_by_id[agent.id] = agent

    @staticmethod
    def _rebuild_grid(grid: SpatialGrid, agents: List[Agent]) -> None:
        grid.clear()
        for agent in agents:
            if agent.alive:
                grid.insert(agent)

    def _release_agent_resources(self, agent: Agent) -> None:
        if agent.bee is not None:
            bees.release_bee_resources(self, agent)
        elif agent.bird is not None:
            birds.release_bird_resources(self, agent)

    def _record_death(self, agent: Agent, cause: DeathCause) -> None:
        self._deaths[cause] = self._deaths.get(cause, 0) + 1
        logger.debug("%s %d died (%s) at age %d", agent.kind.value, agent.id, cause.value, agent.age)

    def _apply_births(self) -> None:
        for agent in self._birth_queue:
            self._add(agent)
        self._birth_queue.clear()

    def _remove_vanished(self) -> int:
        removed = 0
        for population in (self._bees, self._birds):
            survivors = []
            for agent in population:
                if agent.vanished:
                    self._agents_by_id.pop(agent.id, None)
                    removed += 1
                else:
                    survivors.append(agent)
            population[:] = survivors
        return removed

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        state = agent.state
        payload: Dict[str, Any] = {
            "id": agent.id,
            "kind": agent.kind.value,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": _heading_from_velocity(agent.velocity),
            "state": state.value if state is not None else None,
            "is_alive": agent.alive,
            "vanished": agent.vanished,
            "death_timer": agent.death_timer,
            "energy": agent.energy,
            "age": agent.age,
            "generation": agent.generation,
        }
        if agent.bird is not None:
            payload["genes"] = agent.bird.genes.as_dict()
        return payload

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(
            self, tick, 0, 0, {cause: 0 for cause in DeathCause}, 0, 0.0
        )
