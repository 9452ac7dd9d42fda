import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from pygame.math import Vector2  # noqa: E402

from meadow.config import SimulationConfig  # noqa: E402
from meadow.sim.core.environment import Flower, Hive, Nest, Petal  # noqa: E402
from meadow.sim.core.world import World  # noqa: E402
from meadow.sim.systems.genetics import default_dna  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that are intended only for configuration changes",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration files change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def config() -> SimulationConfig:
    return SimulationConfig(seed=11)


@pytest.fixture
def make_hive(config):
    def factory(x: float, y: float) -> Hive:
        queen = default_dna(config.bees.settings, config.bees.dna_ranges)
        return Hive(position=Vector2(x, y), queen_dna=queen)

    return factory


@pytest.fixture
def make_flower():
    def factory(flower_id: int, x: float, y: float, nectar=(1.0,)) -> Flower:
        petals = [Petal(offset=Vector2(0.0, 0.0), nectar=value) for value in nectar]
        return Flower(id=flower_id, position=Vector2(x, y), petals=petals)

    return factory


@pytest.fixture
def make_world(config, make_hive):
    """Build a world with no bootstrap population and one hive unless told otherwise."""

    def factory(hives=None, nests=(), flowers=(), cfg=None) -> World:
        if hives is None:
            hives = [make_hive(200.0, 200.0)]
        return World(cfg or config, hives=hives, nests=list(nests), flowers=list(flowers), populate=False)

    return factory


@pytest.fixture
def make_nest():
    def factory(x: float, y: float) -> Nest:
        return Nest(position=Vector2(x, y))

    return factory
