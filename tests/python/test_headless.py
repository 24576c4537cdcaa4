import json

import pytest

from rvosim.app.headless import _percentile, load_run_config, run_headless


def test_percentile_interpolates_between_samples():
    assert _percentile([], 0.5) == 0.0
    assert _percentile([4.0], 0.9) == 4.0
    assert _percentile([0.0, 10.0], 0.5) == pytest.approx(5.0)
    assert _percentile([1.0, 2.0, 3.0], 0.5) == pytest.approx(2.0)


def test_load_run_config_applies_overrides(configs_dir):
    config = load_run_config(configs_dir / "circle_hrvo.yaml", seed=11, method="rvo", workers=3)
    assert config.seed == 11
    assert config.method.value == "RVO"
    assert config.workers == 3
    assert config.num_agents == 12


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    summary = run_headless(steps=4, seed=3, deterministic=True, summary_path=summary_path)

    payload = json.loads(summary_path.read_text())
    assert payload == summary
    assert payload["steps"] == 4
    assert payload["ticks_run"] == 4
    assert payload["seed"] == 3
    assert payload["method"] == "RVO"
    assert payload["tick_ms"]["max"] == 0.0
    assert set(payload["colliding"]) == {"min", "max", "avg", "p50", "p90", "p99"}
    final = payload["final"]
    assert final["active"] + final["arrived"] + final["inactive"] == payload["agents"]


def test_deterministic_runs_write_identical_summaries(tmp_path, configs_dir):
    paths = [tmp_path / "a.json", tmp_path / "b.json"]
    for path in paths:
        run_headless(steps=20, config_path=configs_dir / "circle_hrvo.yaml", deterministic=True, summary_path=path)
    assert paths[0].read_text() == paths[1].read_text()


def test_until_arrived_stops_early(tmp_path):
    config_path = tmp_path / "lone.yaml"
    config_path.write_text(
        "time_step: 0.05\nnum_agents: 1\nbounds: [20, 20]\nspawn:\n  style: rows\n  bound_edge_buffer: 8\n"
    )

    summary = run_headless(steps=1000, config_path=config_path, until_arrived=True)

    assert summary["all_arrived_tick"] is not None
    assert summary["ticks_run"] == summary["all_arrived_tick"] + 1
    assert summary["ticks_run"] < 1000
    assert summary["final"]["arrived"] == 1
