from __future__ import annotations

import logging
import math
from typing import List, Sequence

from pygame.math import Vector2

from ..core.agent import AgentSpawn, Personality
from ..core.config import DemographicConfig, PersonalityConfig, SimulationConfig, SpawnStyle
from ..core.rng import DeterministicRng

logger = logging.getLogger(__name__)


def generate_spawns(config: SimulationConfig, rng: DeterministicRng) -> List[AgentSpawn]:
    count = config.num_agents
    spawns: List[AgentSpawn] = []
    for index in range(count):
        position, destination = _layout(config, index, count, rng)
        personality = Personality.from_config(sample_personality(config.demographics, rng))
        spawns.append(AgentSpawn(position=position, destination=destination, personality=personality))
    return spawns


def sample_personality(demographics: Sequence[DemographicConfig], rng: DeterministicRng) -> PersonalityConfig:
    """Pick a demographic by percent roll, then one of its personalities by a second roll."""
    roll = rng.next_percent()
    demographic = demographics[0]
    for candidate in demographics:
        low, high = candidate.spawn_chance
        if low <= roll < high:
            demographic = candidate
            break
    else:
        logger.warning("demographic roll %d matched no spawn chance; using %r", roll, demographic.id)

    roll = rng.next_percent()
    choice = demographic.personalities[0]
    for candidate in demographic.personalities:
        low, high = candidate.spawn_chance
        if low <= roll < high:
            choice = candidate
            break
    else:
        logger.warning(
            "personality roll %d matched no spawn chance in %r; using %r", roll, demographic.id, choice.personality.id
        )
    return choice.personality


def _layout(config: SimulationConfig, index: int, count: int, rng: DeterministicRng) -> tuple[Vector2, Vector2]:
    bounds_x, bounds_y = config.bounds
    centre = Vector2(bounds_x / 2.0, bounds_y / 2.0)
    edge_buffer = config.spawn.bound_edge_buffer
    style = config.spawn.style

    if style is SpawnStyle.ROWS:
        # Two facing columns; odd indices start on the left and walk right.
        span_x = bounds_x - edge_buffer * 2.0
        span_y = bounds_y - edge_buffer * 2.0
        rows = count // 2
        on_left = index % 2 == 1
        y = centre.y + span_y / 2.0 - (span_y / (rows + 1) * (index // 2 + 1))
        left = centre.x - span_x / 2.0
        right = centre.x + span_x / 2.0
        if on_left:
            return Vector2(left, y), Vector2(right, y)
        return Vector2(right, y), Vector2(left, y)

    if style is SpawnStyle.CIRCULAR:
        spawn_distance = min(bounds_x, bounds_y) / 2.0 - edge_buffer
        theta = index * 2.0 * math.pi / max(1, count)
        ray = Vector2(spawn_distance * math.sin(theta), spawn_distance * math.cos(theta))
        return centre + ray, centre - ray

    return rng.next_point(bounds_x, bounds_y), rng.next_point(bounds_x, bounds_y)
