from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pygame.math import Vector2

from .config import PersonalityConfig


class AgentStatus(str, Enum):
    ACTIVE = "Active"
    ARRIVED = "Arrived"
    INACTIVE = "Inactive"


@dataclass(slots=True)
class Personality:
    radius: float = 0.25
    max_speed: float = 1.0
    acceleration: float = 5.0
    responsibility_factor: float = 0.5
    safety_factor: float = 1.0
    inertia_factor: float = 1.0
    id: str = "default"

    @classmethod
    def from_config(cls, config: PersonalityConfig) -> "Personality":
        return cls(
            radius=float(config.radius),
            max_speed=float(config.max_speed),
            acceleration=float(config.acceleration),
            responsibility_factor=float(config.responsibility_factor),
            safety_factor=float(config.safety_factor),
            inertia_factor=float(config.inertia_factor),
            id=config.id,
        )

    def validate(self) -> None:
        # responsibility_factor is used as a divisor by the planners.
        if self.radius <= 0:
            raise ValueError(f"personality {self.id!r}: radius must be positive, got {self.radius}")
        if self.responsibility_factor <= 0:
            raise ValueError(
                f"personality {self.id!r}: responsibility_factor must be positive, got {self.responsibility_factor}"
            )
        if self.max_speed < 0:
            raise ValueError(f"personality {self.id!r}: max_speed must not be negative, got {self.max_speed}")


@dataclass(slots=True)
class AgentSpawn:
    position: Vector2
    destination: Vector2
    personality: Personality
