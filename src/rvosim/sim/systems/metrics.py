from __future__ import annotations

import math

from ..core.store import AgentStore
from ..types.metrics import TickMetrics


def create_metrics(tick: int, store: AgentStore, neighbor_checks: int, duration_ms: float) -> TickMetrics:
    active = 0
    arrived = 0
    inactive = 0
    colliding = 0
    speed_sum = 0.0
    for index in range(store.count):
        if not store.active[index]:
            inactive += 1
            continue
        if store.reached_destination[index]:
            arrived += 1
        else:
            active += 1
            velocity = store.velocities[index]
            speed_sum += math.hypot(velocity.x, velocity.y)
        if store.colliding[index]:
            colliding += 1
    return TickMetrics(
        tick=tick,
        active=active,
        arrived=arrived,
        inactive=inactive,
        colliding=colliding,
        neighbor_checks=neighbor_checks,
        average_speed=speed_sum / active if active else 0.0,
        tick_duration_ms=duration_ms,
    )
