from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .vertices import Vertex, VertexUv, VertexXyz


def edge_key(a: Optional[int], b: Optional[int]) -> Tuple[int, int]:
    if a is None or b is None:
        raise ValueError("Edges require indexed vertices")
    return (a, b) if a <= b else (b, a)


@dataclass
class EdgeXyz:
    index: int
    a: VertexXyz
    b: VertexXyz
    triangles: List[int] = field(default_factory=list)

    def key(self) -> Tuple[int, int]:
        return edge_key(self.a.index, self.b.index)

    def matches(self, other: "EdgeXyz") -> bool:
        # AB and BA are the same edge
        return self.key() == other.key()


@dataclass
class EdgeUv:
    index: int
    a: VertexUv
    b: VertexUv
    triangles: List[int] = field(default_factory=list)

    @property
    def zero_length(self) -> bool:
        return self.a.index == self.b.index

    def key(self) -> Tuple[int, int]:
        return edge_key(self.a.index, self.b.index)

    def matches(self, other: "EdgeUv") -> bool:
        return self.key() == other.key()


class EdgeStore:
    """Find-or-create edges while walking triangles, accumulating adjacency."""

    def __init__(self, edge_type: type) -> None:
        self.edge_type = edge_type
        self.edges: List = []
        self._lookup: Dict[Tuple[int, int], object] = {}

    def link(self, a: Vertex, b: Vertex, triangle_id: int):
        key = edge_key(a.index, b.index)
        edge = self._lookup.get(key)
        if edge is None:
            edge = self.edge_type(index=len(self.edges), a=a, b=b)
            self.edges.append(edge)
            self._lookup[key] = edge
        edge.triangles.append(triangle_id)
        return edge

    def link_triangle(self, a: Vertex, b: Vertex, c: Vertex, triangle_id: int) -> tuple:
        return (
            self.link(a, b, triangle_id),
            self.link(b, c, triangle_id),
            self.link(c, a, triangle_id),
        )

    def __len__(self) -> int:
        return len(self.edges)

    def __iter__(self):
        return iter(self.edges)
