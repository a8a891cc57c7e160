from __future__ import annotations

from dataclasses import dataclass
from math import sqrt
from typing import Tuple

from .vertices import VertexUv, VertexXyz

Vector3 = Tuple[float, float, float]


def is_counter_clockwise(
    p1u: float, p1v: float, p2u: float, p2v: float, p3u: float, p3v: float
) -> bool:
    # Every orientation question in UV space goes through this one test so
    # that inversion, containment and intersection agree on the sign convention.
    return (p3v - p1v) * (p2u - p1u) > (p2v - p1v) * (p3u - p1u)


def edges_intersect(p1: VertexUv, p2: VertexUv, q1: VertexUv, q2: VertexUv) -> bool:
    return is_counter_clockwise(p1.u, p1.v, q1.u, q1.v, q2.u, q2.v) != is_counter_clockwise(
        p2.u, p2.v, q1.u, q1.v, q2.u, q2.v
    ) and is_counter_clockwise(p1.u, p1.v, p2.u, p2.v, q1.u, q1.v) != is_counter_clockwise(
        p1.u, p1.v, p2.u, p2.v, q2.u, q2.v
    )


def heron_area(ab: float, bc: float, ca: float) -> float:
    s = (ab + bc + ca) / 2
    radicand = s * (s - ab) * (s - bc) * (s - ca)
    # Rounding can push a degenerate triangle slightly negative.
    if radicand <= 0:
        return 0.0
    return sqrt(radicand)


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def dot(a: Vector3, b: Vector3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vector3, b: Vector3) -> Vector3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def length(a: Vector3) -> float:
    return sqrt(dot(a, a))


def normalize(a: Vector3) -> Vector3:
    size = length(a)
    if size == 0.0:
        return (0.0, 0.0, 0.0)
    return (a[0] / size, a[1] / size, a[2] / size)


def _distance_xyz(p: VertexXyz, q: VertexXyz) -> float:
    return sqrt((p.x - q.x) ** 2 + (p.y - q.y) ** 2 + (p.z - q.z) ** 2)


def _distance_uv(p: VertexUv, q: VertexUv) -> float:
    return sqrt((p.u - q.u) ** 2 + (p.v - q.v) ** 2)


@dataclass(frozen=True)
class TriangleXyz:
    id: int
    a: VertexXyz
    b: VertexXyz
    c: VertexXyz
    area: float
    normal: Vector3

    @classmethod
    def from_vertices(cls, id: int, a: VertexXyz, b: VertexXyz, c: VertexXyz) -> "TriangleXyz":
        area = heron_area(_distance_xyz(a, b), _distance_xyz(b, c), _distance_xyz(c, a))
        pa = (a.x, a.y, a.z)
        normal = normalize(cross(sub((b.x, b.y, b.z), pa), sub((c.x, c.y, c.z), pa)))
        return cls(id=id, a=a, b=b, c=c, area=area, normal=normal)


@dataclass(frozen=True)
class TriangleUv:
    id: int
    a: VertexUv
    b: VertexUv
    c: VertexUv
    area: float
    inverted: bool
    min_u: float
    max_u: float
    min_v: float
    max_v: float

    @classmethod
    def from_vertices(cls, id: int, a: VertexUv, b: VertexUv, c: VertexUv) -> "TriangleUv":
        # Area is a fraction of the 0-1 UV square; it becomes pixels only once
        # a texture resolution is known.
        area = heron_area(_distance_uv(a, b), _distance_uv(b, c), _distance_uv(c, a))
        return cls(
            id=id,
            a=a,
            b=b,
            c=c,
            area=area,
            inverted=is_counter_clockwise(a.u, a.v, b.u, b.v, c.u, c.v),
            min_u=min(a.u, b.u, c.u),
            max_u=max(a.u, b.u, c.u),
            min_v=min(a.v, b.v, c.v),
            max_v=max(a.v, b.v, c.v),
        )

    @property
    def vertices(self) -> Tuple[VertexUv, VertexUv, VertexUv]:
        return (self.a, self.b, self.c)

    def point_inside(self, u: float, v: float) -> bool:
        b1 = is_counter_clockwise(u, v, self.a.u, self.a.v, self.b.u, self.b.v)
        b2 = is_counter_clockwise(u, v, self.b.u, self.b.v, self.c.u, self.c.v)
        b3 = is_counter_clockwise(u, v, self.c.u, self.c.v, self.a.u, self.a.v)
        return b1 == b2 and b2 == b3

    def vertex_inside(self, point: VertexUv) -> bool:
        return self.point_inside(point.u, point.v)

    def line_intersects(self, p1: VertexUv, p2: VertexUv) -> bool:
        return (
            edges_intersect(self.a, self.b, p1, p2)
            or edges_intersect(self.b, self.c, p1, p2)
            or edges_intersect(self.c, self.a, p1, p2)
        )
