"""UV gutter (margin) check by rasterizing islands onto a pixel grid.

The unit UV square is cut into an ``n x n`` grid. Each cell is tested at
twice the grid pitch, so neighbouring cells overlap by half a cell:

    a---b
    |[+]|+][+]
    c---d+][+]
     [+][+][+]

Without the oversize, two islands whose gap straddles a grid line (0.5, say)
would land in different cells and slip through. A cell claimed by triangles
of two different islands means the gutter is too narrow at that resolution.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from .triangles import TriangleUv
from .vertices import VertexUv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SquareUv:
    u_center: float
    v_center: float
    size: float

    @property
    def u_min(self) -> float:
        return self.u_center - self.size / 2

    @property
    def u_max(self) -> float:
        return self.u_center + self.size / 2

    @property
    def v_min(self) -> float:
        return self.v_center - self.size / 2

    @property
    def v_max(self) -> float:
        return self.v_center + self.size / 2

    def corners(self) -> Tuple[VertexUv, VertexUv, VertexUv, VertexUv]:
        # a---b
        # | + |
        # c---d
        return (
            VertexUv(self.u_min, self.v_min),
            VertexUv(self.u_max, self.v_min),
            VertexUv(self.u_min, self.v_max),
            VertexUv(self.u_max, self.v_max),
        )

    def point_inside(self, u: float, v: float) -> bool:
        return self.u_min < u < self.u_max and self.v_min < v < self.v_max

    def vertex_inside(self, point: VertexUv) -> bool:
        return self.point_inside(point.u, point.v)

    def overlaps_triangle(self, triangle: TriangleUv) -> bool:
        if (
            self.u_min >= triangle.max_u
            or self.u_max <= triangle.min_u
            or self.v_min >= triangle.max_v
            or self.v_max <= triangle.min_v
        ):
            return False
        if any(self.vertex_inside(point) for point in triangle.vertices):
            return True
        a, b, c, d = self.corners()
        return (
            triangle.line_intersects(a, b)
            or triangle.line_intersects(b, d)
            or triangle.line_intersects(d, c)
            or triangle.line_intersects(c, a)
        )


def grid_size(resolution: float) -> int:
    # Fractional resolutions (1024 / 3 px) round down to the coarser, stricter grid.
    return max(1, int(math.floor(resolution)))


def has_enough_margin(
    triangles: Sequence[TriangleUv],
    triangle_islands: Sequence[int],
    resolution: float,
) -> bool:
    if resolution <= 0:
        return False
    size = grid_size(resolution)
    pitch = 1 / size
    claims: Dict[Tuple[int, int], int] = {}

    for triangle, island in zip(triangles, triangle_islands):
        # Only cells within the triangle's bounds (plus half a pitch) can touch it
        column_start = max(0, math.floor((triangle.min_u - pitch / 2) * size))
        column_end = min(size, math.ceil((triangle.max_u + pitch / 2) * size))
        row_start = max(0, math.floor((triangle.min_v - pitch / 2) * size))
        row_end = min(size, math.ceil((triangle.max_v + pitch / 2) * size))
        for column in range(column_start, column_end):
            for row in range(row_start, row_end):
                cell = SquareUv(column * pitch + pitch / 2, row * pitch + pitch / 2, pitch * 2)
                if not cell.overlaps_triangle(triangle):
                    continue
                claimed = claims.setdefault((column, row), island)
                if claimed != island:
                    logger.debug(
                        "margin collision at %dx%d cell (%d, %d): islands %d and %d",
                        size,
                        size,
                        column,
                        row,
                        claimed,
                        island,
                    )
                    return False
    return True
