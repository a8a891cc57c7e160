from __future__ import annotations

from dataclasses import dataclass
from math import acos, pi
from typing import List, Optional, Sequence

from .edges import EdgeXyz
from .triangles import TriangleXyz, Vector3, cross, dot, normalize

HARD_EDGE_ANGLE = pi / 2


def angle_between(v0: Vector3, v1: Vector3, reference: Vector3) -> float:
    """Angle between two vectors, signed by which side of ``reference`` their cross falls on.

    Parallel and anti-parallel vectors have a zero cross product and come out
    negative, so a folded-back pair of faces never counts as a hard edge.
    """
    n0 = normalize(v0)
    n1 = normalize(v1)
    cosine = max(-1.0, min(1.0, dot(n0, n1)))
    angle = acos(cosine)
    if dot(cross(n0, n1), reference) > 0:
        return angle
    return -angle


@dataclass(frozen=True)
class EdgeClass:
    face_angle: Optional[float]
    non_manifold: bool

    @property
    def hard(self) -> bool:
        return self.face_angle is not None and self.face_angle >= HARD_EDGE_ANGLE


@dataclass(frozen=True)
class EdgeClassification:
    classes: List[EdgeClass]
    hard_edge_count: int
    non_manifold_edge_count: int


def classify_edge(edge: EdgeXyz, triangles: Sequence[TriangleXyz]) -> EdgeClass:
    count = len(edge.triangles)
    if count == 2:
        n0 = triangles[edge.triangles[0]].normal
        n1 = triangles[edge.triangles[1]].normal
        return EdgeClass(face_angle=angle_between(n0, n1, cross(n0, n1)), non_manifold=False)
    if count == 1:
        # Open boundary, allowed
        return EdgeClass(face_angle=None, non_manifold=False)
    # T-junctions and internal faces
    return EdgeClass(face_angle=None, non_manifold=True)


def classify_edges(edges: Sequence[EdgeXyz], triangles: Sequence[TriangleXyz]) -> EdgeClassification:
    classes = [classify_edge(edge, triangles) for edge in edges]
    return EdgeClassification(
        classes=classes,
        hard_edge_count=sum(1 for item in classes if item.hard),
        non_manifold_edge_count=sum(1 for item in classes if item.non_manifold),
    )
