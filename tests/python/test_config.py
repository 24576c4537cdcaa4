from __future__ import annotations

import pytest

from rvosim.sim.core.config import (
    PlannerMethod,
    SimulationConfig,
    SpawnStyle,
    load_config,
    validate_config,
)


def test_defaults_are_valid():
    config = SimulationConfig()
    validate_config(config)
    assert config.method is PlannerMethod.RVO
    assert config.grid_cell_size == config.visual_radius


def test_explicit_cell_size_overrides_visual_radius():
    assert SimulationConfig(cell_size=2.5).grid_cell_size == 2.5


def test_load_config_parses_nested_sections():
    config = load_config(
        {
            "num_agents": 6,
            "method": "hrvo",
            "bounds": [30, 40],
            "spawn": {"style": "ROWS", "bound_edge_buffer": 2},
            "demographics": [
                {
                    "id": "crowd",
                    "spawn_chance": [0, 100],
                    "personalities": [{"spawn_chance": [0, 100], "personality": {"id": "slow", "max_speed": 0.5}}],
                }
            ],
        }
    )
    assert config.num_agents == 6
    assert config.method is PlannerMethod.HRVO
    assert config.bounds == (30.0, 40.0)
    assert config.spawn.style is SpawnStyle.ROWS
    assert config.spawn.bound_edge_buffer == 2
    personality = config.demographics[0].personalities[0].personality
    assert personality.id == "slow"
    assert personality.max_speed == 0.5
    assert personality.radius == 0.25


def test_from_yaml_reads_bundled_scenario(configs_dir):
    config = SimulationConfig.from_yaml(configs_dir / "circle_hrvo.yaml")
    assert config.num_agents == 12
    assert config.method is PlannerMethod.HRVO
    assert config.spawn.style is SpawnStyle.CIRCULAR
    assert [d.id for d in config.demographics] == ["commuters", "tourists"]
    assert config.demographics[1].spawn_chance == (70, 100)


@pytest.mark.parametrize(
    "raw",
    [
        {"time_step": 0},
        {"max_neighbors": 0},
        {"visual_radius": -1.0},
        {"num_candidate_directions": 0},
        {"speed_step": 0},
        {"num_agents": -3},
        {"method": "ORCA"},
        {"spawn": {"style": "spiral"}},
    ],
)
def test_invalid_values_are_rejected(raw):
    with pytest.raises(ValueError):
        load_config(raw)


def test_demographic_without_personalities_is_rejected():
    config = SimulationConfig()
    config.demographics[0].personalities = []
    with pytest.raises(ValueError):
        validate_config(config)
