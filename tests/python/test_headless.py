import csv
import json

import pytest

from meadow.app.headless import main, run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
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
    assert rows[1][-1] == "0.000"


def test_headless_detailed_log_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(steps=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed")
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    idx = {name: i for i, name in enumerate(header)}
    for name in ("natural_deaths", "predation_deaths", "hive_nectar", "eggs", "gathering_bees", "occupied_petals"):
        assert name in idx

    first_row = rows[1]
    population = int(first_row[idx["bees"]]) + int(first_row[idx["birds"]])
    neighbor_checks = int(first_row[idx["neighbor_checks"]])
    expected = 0.0 if population == 0 else neighbor_checks / population
    assert float(first_row[idx["neighbor_checks_per_agent"]]) == pytest.approx(expected, abs=1e-4)
    assert float(first_row[idx["tick_ms"]]) == 0.0


def test_deterministic_logs_match_for_the_same_seed(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(steps=25, seed=9, log_path=first, deterministic_log=True)
    run_headless(steps=25, seed=9, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_unknown_log_format_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="fancy")


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    run_headless(
        steps=4,
        seed=3,
        log_path=None,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["log_format"] == "basic"
    for key in ("tick_ms", "bees", "birds", "neighbor_checks", "births", "deaths", "final_traits"):
        assert key in payload
    assert payload["tail_window"]["window"] == 2
    assert "max_speed" in payload["final_traits"]["bees"]


def test_trait_log_has_one_row_per_tick(tmp_path):
    traits_path = tmp_path / "traits.csv"
    run_headless(steps=3, seed=4, log_path=None, traits_path=traits_path)
    rows = _read_csv(traits_path)
    assert len(rows) == 4
    assert rows[0][0] == "tick"
    assert "bee_max_speed" in rows[0]
    assert "bird_hunt_factor" in rows[0]


def test_main_reads_yaml_config(tmp_path):
    config_path = tmp_path / "small.yaml"
    config_path.write_text("hive_count: 1\nflower_count: 3\nbees:\n  initial_per_hive: 2\nbirds:\n  initial_count: 1\n")
    summary_path = tmp_path / "summary.json"

    main(
        [
            "--steps",
            "2",
            "--seed",
            "5",
            "--config",
            str(config_path),
            "--summary",
            str(summary_path),
            "--deterministic-log",
        ]
    )

    payload = json.loads(summary_path.read_text())
    assert payload["bees"]["max"] <= 2.0
    assert payload["birds"]["max"] <= 1.0
