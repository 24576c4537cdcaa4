from __future__ import annotations

from typing import List

from pygame.math import Vector2

from ..utils.math2d import _safe_normalize_xy
from .agent import AgentStatus, Personality


class AgentStore:
    """
    Struct-of-arrays state for a fixed number of agents.

    Every per-agent quantity lives in its own list and is addressed by agent
    index. The store is sized once; `active` models inclusion instead of
    adding or removing slots.
    """

    def __init__(self, count: int, max_neighbors: int) -> None:
        if count < 0:
            raise ValueError(f"agent count must not be negative, got {count}")
        if max_neighbors <= 0:
            raise ValueError(f"max_neighbors must be positive, got {max_neighbors}")
        self.count = count
        self.max_neighbors = max_neighbors

        self.positions: List[Vector2] = [Vector2() for _ in range(count)]
        self.velocities: List[Vector2] = [Vector2() for _ in range(count)]
        self.new_velocities: List[Vector2] = [Vector2() for _ in range(count)]
        self.destinations: List[Vector2] = [Vector2() for _ in range(count)]
        self.headings: List[Vector2] = [Vector2(1.0, 0.0) for _ in range(count)]

        self.radii: List[float] = [0.0] * count
        self.max_speeds: List[float] = [0.0] * count
        self.accelerations: List[float] = [0.0] * count
        self.responsibility_factors: List[float] = [1.0] * count
        self.safety_factors: List[float] = [0.0] * count
        self.inertia_factors: List[float] = [0.0] * count
        self.personality_ids: List[str] = [""] * count

        self.active: List[bool] = [False] * count
        self.reached_destination: List[bool] = [False] * count
        self.colliding: List[bool] = [False] * count
        self.neighbor_indices: List[List[int]] = [[] for _ in range(count)]
        self.neighbor_collisions: List[List[bool]] = [[] for _ in range(count)]

        self._populated: List[bool] = [False] * count

    def __len__(self) -> int:
        return self.count

    def add_agent(self, index: int, position: Vector2, destination: Vector2, personality: Personality) -> None:
        self._check_index(index)
        if self._populated[index]:
            raise ValueError(f"agent slot {index} is already populated")
        personality.validate()

        self.positions[index].update(position.x, position.y)
        self.destinations[index].update(destination.x, destination.y)
        self.velocities[index].update(0.0, 0.0)
        self.new_velocities[index].update(0.0, 0.0)
        facing = _safe_normalize_xy(destination.x - position.x, destination.y - position.y)
        if facing.length_squared() == 0.0:
            facing = Vector2(1.0, 0.0)
        self.headings[index].update(facing)

        self.radii[index] = personality.radius
        self.max_speeds[index] = personality.max_speed
        self.accelerations[index] = personality.acceleration
        self.responsibility_factors[index] = personality.responsibility_factor
        self.safety_factors[index] = personality.safety_factor
        self.inertia_factors[index] = personality.inertia_factor
        self.personality_ids[index] = personality.id

        self.active[index] = True
        self.reached_destination[index] = False
        self.colliding[index] = False
        self.neighbor_indices[index].clear()
        self.neighbor_collisions[index].clear()
        self._populated[index] = True

    def is_populated(self, index: int) -> bool:
        self._check_index(index)
        return self._populated[index]

    @property
    def fully_populated(self) -> bool:
        return all(self._populated)

    def set_active(self, index: int, active: bool) -> None:
        self._check_index(index)
        was_active = self.active[index]
        self.active[index] = bool(active)
        if active and not was_active:
            # Reactivation is the external reset that lifts a sticky arrival.
            self.reached_destination[index] = False
        elif not active:
            self.neighbor_indices[index].clear()
            self.neighbor_collisions[index].clear()
            self.colliding[index] = False
            self.new_velocities[index].update(0.0, 0.0)

    def reset_agent(self, index: int, position: Vector2 | None = None, destination: Vector2 | None = None) -> None:
        self._check_index(index)
        if position is not None:
            self.positions[index].update(position.x, position.y)
        if destination is not None:
            self.destinations[index].update(destination.x, destination.y)
        self.reached_destination[index] = False
        self.velocities[index].update(0.0, 0.0)
        self.new_velocities[index].update(0.0, 0.0)

    def status(self, index: int) -> AgentStatus:
        self._check_index(index)
        if not self.active[index]:
            return AgentStatus.INACTIVE
        if self.reached_destination[index]:
            return AgentStatus.ARRIVED
        return AgentStatus.ACTIVE

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.count:
            raise ValueError(f"agent index {index} out of range for {self.count} agents")
