from __future__ import annotations

from ..core.spatial_grid import SpatialGrid
from ..core.store import AgentStore


def observe(store: AgentStore, grid: SpatialGrid, index: int, visual_radius: float, max_neighbors: int) -> int:
    """
    Rebuild the neighbor set of agent `index` from the spatial index.

    Candidates are scanned nearest first. Until an overlapping agent shows up
    the set is simply the nearest `max_neighbors`; the first overlap empties
    the set and from then on only overlapping agents are taken.
    """

    neighbor_indices = store.neighbor_indices[index]
    neighbor_collisions = store.neighbor_collisions[index]
    neighbor_indices.clear()
    neighbor_collisions.clear()
    store.colliding[index] = False
    if not store.active[index]:
        return 0

    active = store.active
    radii = store.radii
    radius_self = radii[index]
    colliding = False

    for neighbor, distance in grid.query_radius_sorted(store.positions[index], visual_radius):
        if neighbor == index or not active[neighbor]:
            continue
        contact = radius_self + radii[neighbor]
        if distance * distance < contact * contact:
            if not colliding:
                colliding = True
                neighbor_indices.clear()
                neighbor_collisions.clear()
            neighbor_indices.append(neighbor)
            neighbor_collisions.append(True)
        elif not colliding:
            neighbor_indices.append(neighbor)
            neighbor_collisions.append(False)
        if len(neighbor_indices) == max_neighbors:
            break

    store.colliding[index] = colliding
    return len(neighbor_indices)
