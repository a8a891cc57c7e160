"""Vertex types and the per-primitive vertex store.

glTF does not share vertices between triangles, so coincident points have to
be merged before edges, manifoldness or UV islands mean anything. Two points
are the same vertex when every coordinate agrees after rounding to
``PRECISION`` decimal digits. Blender UV unwraps produce coordinates that
differ by 2^-24 (the float32 limit) for points that started out identical,
which is why the sixth digit is not trusted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple, Union

PRECISION = 5
_SCALE = 10**PRECISION


def round_key(value: float) -> int:
    # Half-up, the same way Math.round treats .5 (round() would bank).
    return math.floor(value * _SCALE + 0.5)


@dataclass(frozen=True)
class VertexXyz:
    x: float
    y: float
    z: float
    index: Optional[int] = None

    def key(self) -> Tuple[int, int, int]:
        return (round_key(self.x), round_key(self.y), round_key(self.z))

    def matches(self, other: "VertexXyz") -> bool:
        return self.key() == other.key()


@dataclass(frozen=True)
class VertexUv:
    u: float
    v: float
    index: Optional[int] = None

    def key(self) -> Tuple[int, int]:
        return (round_key(self.u), round_key(self.v))

    def matches(self, other: "VertexUv") -> bool:
        return self.key() == other.key()


Vertex = Union[VertexXyz, VertexUv]


class VertexStore:
    """Find-or-create store assigning indices 0, 1, 2, ... in first-seen order."""

    def __init__(self) -> None:
        self.vertices: List[Vertex] = []
        self._lookup: Dict[tuple, Vertex] = {}

    def add(self, vertex: Vertex) -> Vertex:
        key = vertex.key()
        existing = self._lookup.get(key)
        if existing is not None:
            return existing
        stored = replace(vertex, index=len(self.vertices))
        self.vertices.append(stored)
        self._lookup[key] = stored
        return stored

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self):
        return iter(self.vertices)
