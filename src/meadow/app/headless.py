from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..sim.core.agent import AgentKind
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics
from .scenery import build_scenery

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "bees",
    "birds",
    "bee_births",
    "bird_births",
    "deaths",
    "avg_bee_energy",
    "avg_bird_energy",
    "neighbor_checks",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "bees",
    "birds",
    "bee_births",
    "bird_births",
    "natural_deaths",
    "starvation_deaths",
    "predation_deaths",
    "avg_bee_energy",
    "avg_bird_energy",
    "hive_nectar",
    "eggs",
    "neighbor_checks",
    "tick_ms",
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
    "gathering_bees",
    "returning_bees",
    "seeking_mate_birds",
    "nesting_birds",
    "flower_nectar",
    "occupied_petals",
]


def _total_deaths(metrics: TickMetrics) -> int:
    return metrics.natural_deaths + metrics.starvation_deaths + metrics.predation_deaths


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.bees,
        metrics.birds,
        metrics.bee_births,
        metrics.bird_births,
        _total_deaths(metrics),
        f"{metrics.average_bee_energy:.4f}",
        f"{metrics.average_bird_energy:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.bees + metrics.birds
    if population <= 0:
        neighbor_checks_per_agent = 0.0
        tick_ms_per_agent = 0.0
    else:
        neighbor_checks_per_agent = metrics.neighbor_checks / population
        tick_ms_per_agent = tick_ms / population

    states: dict[str, int] = {}
    for agent in world.agents:
        if not agent.alive:
            continue
        key = agent.state.value
        states[key] = states.get(key, 0) + 1

    flower_nectar = 0.0
    occupied_petals = 0
    for flower in world.flowers:
        if flower.vanished:
            continue
        flower_nectar += flower.total_nectar()
        occupied_petals += flower.occupant_count

    return [
        metrics.tick,
        metrics.bees,
        metrics.birds,
        metrics.bee_births,
        metrics.bird_births,
        metrics.natural_deaths,
        metrics.starvation_deaths,
        metrics.predation_deaths,
        f"{metrics.average_bee_energy:.4f}",
        f"{metrics.average_bird_energy:.4f}",
        f"{metrics.hive_nectar:.4f}",
        metrics.eggs,
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
        f"{neighbor_checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        states.get("GatheringNectar", 0),
        states.get("ReturnToHive", 0),
        states.get("SeekingMate", 0),
        states.get("GoToNest", 0),
        f"{flower_nectar:.4f}",
        occupied_petals,
    ]


def _trait_header(world: World) -> list[str]:
    config = world.config
    header = ["tick"]
    header.extend(f"bee_{name}" for name in sorted(config.bees.dna_ranges))
    header.extend(f"bird_{name}" for name in sorted(config.birds.dna_ranges))
    return header


def _format_trait_row(world: World, tick: int) -> list[object]:
    config = world.config
    row: list[object] = [tick]
    for kind, names in (
        (AgentKind.BEE, sorted(config.bees.dna_ranges)),
        (AgentKind.BIRD, sorted(config.birds.dna_ranges)),
    ):
        means = world.trait_snapshot(kind)
        row.extend(f"{means[name]:.6f}" if name in means else "" for name in names)
    return row


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def build_world(config: SimulationConfig) -> World:
    hives, nests, flowers = build_scenery(config)
    return World(config, hives=hives, nests=nests, flowers=flowers)


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
    traits_path: Optional[Path] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = build_world(config)
    logger.info(
        "running %d steps with seed %d (%d bees, %d birds)",
        steps,
        config.seed,
        len(world.bees),
        len(world.birds),
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    trait_writer = None
    trait_file = None
    if traits_path:
        trait_file = Path(traits_path).open("w", newline="")
        trait_writer = csv.writer(trait_file)
        trait_writer.writerow(_trait_header(world))

    tick_ms_series: list[float] = []
    bee_series: list[float] = []
    bird_series: list[float] = []
    neighbor_checks_series: list[float] = []
    births = {"bees": 0, "birds": 0}
    deaths = {"natural": 0, "starvation": 0, "predation": 0}
    max_tick_ms = (-1.0, -1)
    max_bees = (-1, -1)
    max_birds = (-1, -1)

    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                bee_series.append(float(metrics.bees))
                bird_series.append(float(metrics.birds))
                neighbor_checks_series.append(float(metrics.neighbor_checks))
                births["bees"] += metrics.bee_births
                births["birds"] += metrics.bird_births
                deaths["natural"] += metrics.natural_deaths
                deaths["starvation"] += metrics.starvation_deaths
                deaths["predation"] += metrics.predation_deaths
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)
                if metrics.bees > max_bees[0]:
                    max_bees = (metrics.bees, tick)
                if metrics.birds > max_birds[0]:
                    max_birds = (metrics.birds, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
            if trait_writer:
                trait_writer.writerow(_format_trait_row(world, tick))
    finally:
        if csv_file:
            csv_file.close()
        if trait_file:
            trait_file.close()

    final = world.metrics
    if final is not None:
        logger.info("finished at tick %d with %d bees and %d birds", final.tick, final.bees, final.birds)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "config_version": config.config_version,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "bees": _summary_stats(bee_series),
            "birds": _summary_stats(bird_series),
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "births": births,
            "deaths": deaths,
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "bees": {"value": max_bees[0], "tick": max_bees[1]},
                "birds": {"value": max_birds[0], "tick": max_birds[1]},
            },
            "final_traits": {
                "bees": world.trait_snapshot(AgentKind.BEE),
                "birds": world.trait_snapshot(AgentKind.BIRD),
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "bees": _summary_stats(bee_series[tail_slice]),
                "birds": _summary_stats(bird_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless meadow simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file overriding the default settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--traits",
        type=Path,
        default=None,
        help="Optional CSV file with per-tick DNA trait means for each species.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostics written to stderr.",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
        traits_path=args.traits,
    )


if __name__ == "__main__":
    main()
