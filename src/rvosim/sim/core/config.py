from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List

import yaml


class PlannerMethod(str, Enum):
    RVO = "RVO"
    HRVO = "HRVO"


class SpawnStyle(str, Enum):
    RANDOM = "random"
    ROWS = "rows"
    CIRCULAR = "circular"


@dataclass
class PersonalityConfig:
    id: str = "default"
    radius: float = 0.25
    max_speed: float = 1.0
    acceleration: float = 5.0
    responsibility_factor: float = 0.5
    safety_factor: float = 1.0
    inertia_factor: float = 1.0


@dataclass
class PersonalityChance:
    personality: PersonalityConfig = field(default_factory=PersonalityConfig)
    spawn_chance: tuple[int, int] = (0, 100)


@dataclass
class DemographicConfig:
    id: str = "default"
    spawn_chance: tuple[int, int] = (0, 100)
    personalities: List[PersonalityChance] = field(default_factory=lambda: [PersonalityChance()])


@dataclass
class SpawnConfig:
    style: SpawnStyle = SpawnStyle.RANDOM
    # Distance kept from the bounds edge by the rows/circular layouts.
    bound_edge_buffer: float = 10.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 50.0
    num_agents: int = 50
    bounds: tuple[float, float] = (20.0, 20.0)
    destination_buffer: float = 0.1
    max_neighbors: int = 8
    visual_radius: float = 5.0
    num_candidate_directions: int = 16
    speed_step: float = 0.1
    method: PlannerMethod = PlannerMethod.RVO
    cell_size: float | None = None
    workers: int = 1
    seed: int = 42
    config_version: str = "v1"
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    demographics: List[DemographicConfig] = field(default_factory=lambda: [DemographicConfig()])

    @property
    def grid_cell_size(self) -> float:
        if self.cell_size is not None and self.cell_size > 0:
            return self.cell_size
        return self.visual_radius

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def validate_config(config: SimulationConfig) -> None:
    if config.time_step <= 0:
        raise ValueError(f"time_step must be positive, got {config.time_step}")
    if config.num_agents < 0:
        raise ValueError(f"num_agents must not be negative, got {config.num_agents}")
    if config.max_neighbors <= 0:
        raise ValueError(f"max_neighbors must be positive, got {config.max_neighbors}")
    if config.visual_radius <= 0:
        raise ValueError(f"visual_radius must be positive, got {config.visual_radius}")
    if config.num_candidate_directions <= 0:
        raise ValueError(f"num_candidate_directions must be positive, got {config.num_candidate_directions}")
    if config.speed_step <= 0:
        raise ValueError(f"speed_step must be positive, got {config.speed_step}")
    if not config.demographics:
        raise ValueError("at least one demographic is required")
    for demographic in config.demographics:
        if not demographic.personalities:
            raise ValueError(f"demographic {demographic.id!r} has no personalities")


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: tuple | list | None, default: tuple) -> tuple:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (type(default[0])(value[0]), type(default[1])(value[1]))
        return default

    def _personality_chance(entry: dict) -> PersonalityChance:
        personality = PersonalityConfig(**entry.get("personality", {}))
        return PersonalityChance(personality=personality, spawn_chance=_pair(entry.get("spawn_chance"), (0, 100)))

    def _demographic(entry: dict) -> DemographicConfig:
        personalities = [_personality_chance(item) for item in entry.get("personalities", [])]
        return DemographicConfig(
            id=str(entry.get("id", "default")),
            spawn_chance=_pair(entry.get("spawn_chance"), (0, 100)),
            personalities=personalities or [PersonalityChance()],
        )

    spawn_raw = dict(raw.get("spawn", {}))
    if "style" in spawn_raw:
        spawn_raw["style"] = SpawnStyle(str(spawn_raw["style"]).lower())
    spawn = SpawnConfig(**spawn_raw)
    demographics_raw = raw.get("demographics")
    demographics = [_demographic(entry) for entry in demographics_raw] if demographics_raw else [DemographicConfig()]

    sim_values = {k: v for k, v in raw.items() if k not in {"spawn", "demographics", "bounds", "method"}}
    config = SimulationConfig(
        spawn=spawn,
        demographics=demographics,
        bounds=_pair(raw.get("bounds"), (20.0, 20.0)),
        method=PlannerMethod(str(raw.get("method", PlannerMethod.RVO.value)).upper()),
        **sim_values,
    )
    validate_config(config)
    return config
