"""UV island labeling.

An island is a maximal set of UV triangles connected through shared
vertices. Its id is the smallest vertex index in the component, which keeps
labels stable regardless of the order triangles are visited in. Labels are
only ever compared for equality downstream (the margin rasterizer).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .triangles import TriangleUv


@dataclass
class Island:
    id: int
    triangles: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class IslandLabels:
    vertex_islands: List[int]
    triangle_islands: List[int]
    islands: List[Island]

    @property
    def count(self) -> int:
        return len(self.islands)


class DisjointSet:
    """Union-find whose representative is always the smallest member."""

    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, item: int) -> int:
        parent = self.parent
        while parent[item] != item:
            # path halving
            parent[item] = parent[parent[item]]
            item = parent[item]
        return item

    def union(self, a: int, b: int) -> int:
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return root_a
        low, high = (root_a, root_b) if root_a < root_b else (root_b, root_a)
        self.parent[high] = low
        return low


def label_islands(vertex_count: int, triangles: Sequence[TriangleUv]) -> IslandLabels:
    sets = DisjointSet(vertex_count)
    for triangle in triangles:
        a, b, c = _indices(triangle)
        sets.union(a, b)
        sets.union(a, c)

    vertex_islands = [sets.find(index) for index in range(vertex_count)]
    triangle_islands: List[int] = []
    islands: List[Island] = []
    by_id: Dict[int, Island] = {}
    for triangle in triangles:
        island_id = vertex_islands[triangle.a.index]
        triangle_islands.append(island_id)
        island = by_id.get(island_id)
        if island is None:
            island = Island(id=island_id)
            by_id[island_id] = island
            islands.append(island)
        island.triangles.append(triangle.id)
    return IslandLabels(
        vertex_islands=vertex_islands,
        triangle_islands=triangle_islands,
        islands=islands,
    )


def _indices(triangle: TriangleUv) -> tuple:
    if triangle.a.index is None or triangle.b.index is None or triangle.c.index is None:
        raise ValueError("Island labeling requires indexed UV vertices")
    return triangle.a.index, triangle.b.index, triangle.c.index
