from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Tuple

import yaml

logger = logging.getLogger(__name__)


TraitRanges = Dict[str, Tuple[float, float]]


@dataclass(slots=True)
class BoidSettings:
    max_speed: float = 2.0
    visual_range: float = 50.0
    separation_distance: float = 15.0
    separation_factor: float = 0.05
    alignment_factor: float = 0.03
    cohesion_factor: float = 0.002
    turn_factor: float = 0.3
    max_lifetime: float = 3000.0
    initial_energy: float = 100.0
    energy_depletion_rate: float = 0.02
    wander_strength: float = 0.05
    wander_jitter: float = 0.3


@dataclass(slots=True)
class BeeSettings(BoidSettings):
    evade_factor: float = 0.02
    nectar_capacity: float = 1.0


@dataclass(slots=True)
class BirdSettings(BoidSettings):
    max_speed: float = 3.0
    visual_range: float = 75.0
    separation_distance: float = 20.0
    alignment_factor: float = 0.05
    cohesion_factor: float = 0.005
    turn_factor: float = 0.2
    max_lifetime: float = 6000.0
    energy_depletion_rate: float = 0.03
    hunt_factor: float = 0.001
    kill_range: float = 5.0
    energy_per_catch: float = 25.0


# Settings that are multiplied by the world scale once at spawn.
SCALED_SETTINGS = ("max_speed", "visual_range", "separation_distance", "kill_range")


def _bee_dna_ranges() -> TraitRanges:
    return {
        "max_speed": (1.2, 3.0),
        "visual_range": (30.0, 80.0),
        "separation_factor": (0.02, 0.1),
        "alignment_factor": (0.01, 0.06),
        "cohesion_factor": (0.0005, 0.005),
        "evade_factor": (0.005, 0.05),
        "nectar_capacity": (0.5, 2.0),
        "max_lifetime": (2000.0, 4500.0),
    }


def _bird_dna_ranges() -> TraitRanges:
    return {
        "max_speed": (2.0, 4.5),
        "visual_range": (50.0, 110.0),
        "separation_factor": (0.02, 0.1),
        "alignment_factor": (0.02, 0.08),
        "cohesion_factor": (0.002, 0.01),
        "hunt_factor": (0.0005, 0.003),
        "max_lifetime": (4000.0, 9000.0),
    }


@dataclass
class BeeConfig:
    settings: BeeSettings = field(default_factory=BeeSettings)
    dna_ranges: TraitRanges = field(default_factory=_bee_dna_ranges)
    initial_per_hive: int = 12
    max_population: int = 250
    gather_duration: int = 60
    max_nectar_per_tick: float = 0.02
    min_petal_nectar: float = 0.2
    nectar_energy: float = 40.0
    max_bees_per_flower: int = 3
    flower_arrival_distance: float = 2.0
    approach_slowdown_radius: float = 50.0
    seek_factor: float = 0.1
    return_factor: float = 0.002
    hive_arrival_distance: float = 10.0
    knowledge_capacity: int = 10
    hive_choice_population_threshold: int = 60
    danger_weight: float = 0.5
    nectar_per_bee: float = 4.0


@dataclass
class BirdConfig:
    settings: BirdSettings = field(default_factory=BirdSettings)
    dna_ranges: TraitRanges = field(default_factory=_bird_dna_ranges)
    initial_count: int = 8
    max_population: int = 30
    catches_to_mate: int = 3
    nest_arrival_distance: float = 15.0
    nest_steer_factor: float = 0.003
    partner_cohesion_factor: float = 0.0005
    nesting_duration: int = 120
    hatching_duration: int = 600
    palettes: Tuple[str, ...] = ("robin", "bluebird", "finch", "starling")


@dataclass
class GeneticsConfig:
    mutation_rate: float = 0.1
    mutation_amount: float = 0.1
    blend_mode: str = "random"
    dominance_chance: float = 0.1
    shape_mutation_chance: float = 0.05
    color_jitter_chance: float = 0.1
    color_jitter_amount: int = 24


@dataclass
class SimulationConfig:
    width: float = 1280.0
    height: float = 720.0
    ground_height: float = 60.0
    reference_height: float = 720.0
    top_margin: float = 50.0
    ground_margin: float = 70.0
    ground_repulsion: float = 2.5
    ground_bounce: float = 0.5
    gravity: float = 0.15
    fall_drag: float = 0.98
    fade_duration: int = 120
    petal_regen_rate: float = 0.002
    hive_count: int = 2
    nest_count: int = 4
    flower_count: int = 24
    petals_per_flower: int = 5
    seed: int = 42
    config_version: str = "v1"
    bees: BeeConfig = field(default_factory=BeeConfig)
    birds: BirdConfig = field(default_factory=BirdConfig)
    genetics: GeneticsConfig = field(default_factory=GeneticsConfig)

    @property
    def ground_level(self) -> float:
        return self.height - self.ground_height

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data or {})


def _pair(value: object) -> tuple[float, float] | None:
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        return None
    try:
        return (float(value[0]), float(value[1]))
    except (TypeError, ValueError):
        return None


def _ranges(raw: object, defaults: TraitRanges) -> TraitRanges:
    ranges = dict(defaults)
    for name, value in _mapping(raw, "dna_ranges").items():
        pair = _pair(value)
        if pair is None or pair[0] > pair[1]:
            default = defaults.get(name)
            if default is None:
                logger.warning("dropping trait %r: range %r is not a [min, max] pair", name, value)
                continue
            logger.warning("trait %r range %r is not a [min, max] pair; using %r", name, value, default)
            pair = default
        ranges[name] = pair
    return ranges


def _mapping(value: object, section: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("config section %r is not a mapping; using defaults", section)
        return {}
    return dict(value)


def _known(cls: type, raw: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in raw.items() if k in names}


def _palettes(value: object) -> Tuple[str, ...]:
    if value is None:
        return BirdConfig().palettes
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (tuple, list)):
        logger.warning("bird palettes %r are not a list; using defaults", value)
        return BirdConfig().palettes
    return tuple(value)


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ValueError("configuration document must be a mapping")

    bees_raw = _mapping(raw.get("bees"), "bees")
    bee_settings = BeeSettings(**_known(BeeSettings, _mapping(bees_raw.pop("settings", None), "bees.settings")))
    bees = BeeConfig(
        settings=bee_settings,
        dna_ranges=_ranges(bees_raw.pop("dna_ranges", None), _bee_dna_ranges()),
        **_known(BeeConfig, bees_raw),
    )

    birds_raw = _mapping(raw.get("birds"), "birds")
    bird_settings = BirdSettings(**_known(BirdSettings, _mapping(birds_raw.pop("settings", None), "birds.settings")))
    palettes = _palettes(birds_raw.pop("palettes", None))
    birds = BirdConfig(
        settings=bird_settings,
        dna_ranges=_ranges(birds_raw.pop("dna_ranges", None), _bird_dna_ranges()),
        palettes=palettes,
        **_known(BirdConfig, birds_raw),
    )

    genetics = GeneticsConfig(**_known(GeneticsConfig, _mapping(raw.get("genetics"), "genetics")))
    sim_values = {k: v for k, v in raw.items() if k not in {"bees", "birds", "genetics"}}
    return SimulationConfig(bees=bees, birds=birds, genetics=genetics, **_known(SimulationConfig, sim_values))
