from __future__ import annotations

from ..core.store import AgentStore


def integrate(store: AgentStore, index: int, delta_time: float, destination_buffer: float) -> bool:
    """Advance agent `index` by its planned velocity. Returns True if it moved."""
    new_velocity = store.new_velocities[index]
    velocity = store.velocities[index]
    if not store.active[index] or store.reached_destination[index]:
        velocity.update(new_velocity)
        return False

    position = store.positions[index]
    vel_x = new_velocity.x
    vel_y = new_velocity.y
    position.update(position.x + vel_x * delta_time, position.y + vel_y * delta_time)
    velocity.update(vel_x, vel_y)

    destination = store.destinations[index]
    offset_x = destination.x - position.x
    offset_y = destination.y - position.y
    buffer_sq = destination_buffer * destination_buffer
    if offset_x * offset_x + offset_y * offset_y < buffer_sq:
        store.reached_destination[index] = True

    speed_sq = vel_x * vel_x + vel_y * vel_y
    if speed_sq > 1e-12:
        # Heading keeps its last value while standing still.
        store.headings[index].update(new_velocity.normalize())
    return True
