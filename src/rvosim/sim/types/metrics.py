from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    active: int
    arrived: int
    inactive: int
    colliding: int
    neighbor_checks: int
    average_speed: float
    tick_duration_ms: float = 0.0
