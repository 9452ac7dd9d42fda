from __future__ import annotations

import math
from typing import TYPE_CHECKING, List

from pygame.math import Vector2

if TYPE_CHECKING:
    from .agent import Agent


class SpatialGrid:
    """Uniform bucket grid rebuilt every tick.

    Queries return the 3x3 block of cells around a point, so any two agents
    within ``cell_size`` of each other see one another and agents further
    apart than ``2 * cell_size`` never do. Callers filter by distance.
    """

    def __init__(self, width: float, height: float, cell_size: float) -> None:
        self._cell_size = max(1e-6, float(cell_size))
        self.cols = max(1, int(math.ceil(width / self._cell_size)))
        self.rows = max(1, int(math.ceil(height / self._cell_size)))
        self._cells: List[List["Agent"]] = [[] for _ in range(self.cols * self.rows)]

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def clear(self) -> None:
        for bucket in self._cells:
            bucket.clear()

    def insert(self, agent: "Agent") -> bool:
        col, row = self._cell_coords(agent.position)
        if 0 <= col < self.cols and 0 <= row < self.rows:
            self._cells[col + row * self.cols].append(agent)
            return True
        # Out-of-bounds agents stay in the population but drop out of spatial queries.
        return False

    def query(self, agent: "Agent") -> List["Agent"]:
        return self.query_point(agent.position)

    def query_point(self, position: Vector2) -> List["Agent"]:
        nearby: List["Agent"] = []
        base_col, base_row = self._cell_coords(position)
        cols = self.cols
        rows = self.rows
        cells = self._cells
        for row in range(base_row - 1, base_row + 2):
            if row < 0 or row >= rows:
                continue
            for col in range(base_col - 1, base_col + 2):
                if 0 <= col < cols:
                    nearby.extend(cells[col + row * cols])
        return nearby

    def occupied_cells(self) -> int:
        return sum(1 for bucket in self._cells if bucket)

    def _cell_coords(self, position: Vector2) -> tuple[int, int]:
        return (int(math.floor(position.x / self._cell_size)), int(math.floor(position.y / self._cell_size)))
