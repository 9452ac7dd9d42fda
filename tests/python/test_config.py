from __future__ import annotations

import logging
from pathlib import Path

import pytest

from meadow.app.headless import build_world
from meadow.config import BeeSettings, BirdSettings, SimulationConfig, load_config

ROOT = Path(__file__).resolve().parents[2]


def test_defaults_build_nested_settings():
    config = SimulationConfig()
    assert isinstance(config.bees.settings, BeeSettings)
    assert isinstance(config.birds.settings, BirdSettings)
    assert config.ground_level == config.height - config.ground_height
    assert config.birds.settings.max_speed > config.bees.settings.max_speed


def test_load_config_overrides_and_keeps_defaults():
    config = load_config(
        {
            "seed": 3,
            "width": 640,
            "bees": {"max_population": 10, "settings": {"evade_factor": 0.04}},
            "birds": {"palettes": ["finch"], "dna_ranges": {"max_speed": [2.5, 3.5]}},
            "genetics": {"mutation_rate": 0.5},
        }
    )
    assert config.seed == 3
    assert config.width == 640
    assert config.height == SimulationConfig().height
    assert config.bees.max_population == 10
    assert config.bees.settings.evade_factor == 0.04
    assert config.bees.settings.max_speed == BeeSettings().max_speed
    assert config.birds.palettes == ("finch",)
    assert config.birds.dna_ranges["max_speed"] == (2.5, 3.5)
    assert "hunt_factor" in config.birds.dna_ranges
    assert config.genetics.mutation_rate == 0.5


def test_unknown_keys_are_ignored_and_bad_ranges_fall_back(caplog):
    defaults = SimulationConfig()
    with caplog.at_level(logging.WARNING, logger="meadow.config"):
        config = load_config(
            {
                "colour": "blue",
                "bees": {"dna_ranges": {"max_speed": [1.0], "visual_range": ["far", 2]}, "speed": 3},
                "birds": {"dna_ranges": {"max_speed": [4.5, 2.0], "wingspan": [3.0, 1.0]}},
            }
        )
    assert config.bees.dna_ranges["max_speed"] == defaults.bees.dna_ranges["max_speed"]
    assert config.bees.dna_ranges["visual_range"] == defaults.bees.dna_ranges["visual_range"]
    assert config.birds.dna_ranges["max_speed"] == (2.0, 4.5)
    assert set(config.birds.dna_ranges) == set(defaults.birds.dna_ranges)
    assert "max_speed" in caplog.text
    assert "wingspan" in caplog.text


def test_empty_sections_keep_defaults(caplog):
    defaults = SimulationConfig()
    with caplog.at_level(logging.WARNING, logger="meadow.config"):
        config = load_config(
            {
                "bees": None,
                "birds": {"settings": None, "dna_ranges": None, "palettes": None},
                "genetics": ["not", "a", "mapping"],
            }
        )
    assert config.bees.max_population == defaults.bees.max_population
    assert config.bees.dna_ranges == defaults.bees.dna_ranges
    assert config.birds.settings == defaults.birds.settings
    assert config.birds.palettes == defaults.birds.palettes
    assert config.genetics == defaults.genetics
    assert "genetics" in caplog.text


def test_non_mapping_document_is_rejected():
    with pytest.raises(ValueError):
        load_config(["not", "a", "mapping"])


def test_sample_yaml_loads():
    config = SimulationConfig.from_yaml(ROOT / "config" / "default.yaml")
    assert config.config_version == "v1"
    assert config.bees.dna_ranges["nectar_capacity"] == (0.5, 2.0)
    assert config.birds.palettes == ("robin", "bluebird", "finch", "starling")


@pytest.mark.config_change
def test_default_meadow_keeps_both_species_alive():
    config = SimulationConfig.from_yaml(ROOT / "config" / "default.yaml")
    world = build_world(config)
    for tick in range(3000):
        metrics = world.step(tick)

    summary = f"bees={metrics.bees}, birds={metrics.birds}, nectar={metrics.hive_nectar:.2f}"
    assert metrics.bees > 0, summary
    assert metrics.birds > 0, summary
