from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

from pygame.math import Vector2


class SpatialGrid:
    """
    Uniform hash grid over an index-addressed position array.

    The grid keeps a reference to the position sequence it was built from;
    positions are updated in place by the integrator and `rebuild` re-buckets
    them. Agents are never inserted or removed individually.
    """

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self._cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[int]] = {}
        self._active_keys: List[Tuple[int, int]] = []
        self._positions: Sequence[Vector2] = ()

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def __len__(self) -> int:
        return len(self._positions)

    def build(self, positions: Sequence[Vector2]) -> None:
        self._positions = positions
        self.rebuild()

    def rebuild(self) -> None:
        self.clear()
        for index, position in enumerate(self._positions):
            self._insert(index, position)

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()

    def query_radius_sorted(self, point: Vector2, radius: float) -> List[Tuple[int, float]]:
        """
        Return `(index, distance)` for every indexed position within `radius` of `point`.

        Results are ascending by distance, ties broken by index, and always a
        new list so callers may hold on to it across queries.
        """

        if radius < 0:
            return []
        found: List[Tuple[float, int]] = []
        base_key = self._cell_key(point)
        cell_range = int(math.ceil(radius / self._cell_size))
        radius_sq = radius * radius
        pos_x = point.x
        pos_y = point.y
        cells = self._cells
        positions = self._positions

        for dx in range(-cell_range, cell_range + 1):
            for dy in range(-cell_range, cell_range + 1):
                bucket = cells.get((base_key[0] + dx, base_key[1] + dy))
                if not bucket:
                    continue
                for index in bucket:
                    pos = positions[index]
                    offset_x = pos.x - pos_x
                    offset_y = pos.y - pos_y
                    dist_sq = offset_x * offset_x + offset_y * offset_y
                    if dist_sq <= radius_sq:
                        found.append((dist_sq, index))

        found.sort()
        return [(index, math.sqrt(dist_sq)) for dist_sq, index in found]

    def _insert(self, index: int, position: Vector2) -> None:
        key = self._cell_key(position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket exists but was cleared by the last rebuild; mark it active again.
            self._active_keys.append(key)
        bucket.append(index)

    def _cell_key(self, position: Vector2) -> Tuple[int, int]:
        return (int(position.x // self._cell_size), int(position.y // self._cell_size))
