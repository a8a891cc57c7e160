from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..core.diagnostics import fail
from .classify import EdgeClassification, classify_edges
from .edges import EdgeStore, EdgeUv, EdgeXyz
from .islands import IslandLabels, label_islands
from .margin import has_enough_margin
from .overlap import find_overlaps
from .triangles import TriangleUv, TriangleXyz
from .vertices import VertexStore, VertexUv, VertexXyz

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrimitiveBuffers:
    """Raw triangle-list buffers for one mesh primitive, as a scene loader yields them."""

    name: str
    positions: Sequence[float]
    indices: Sequence[int]
    uv: Optional[Sequence[float]] = None

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // 3


@dataclass(frozen=True)
class PrimitiveStats:
    triangle_count: int
    hard_edge_count: Optional[int] = None
    non_manifold_edge_count: Optional[int] = None
    inverted_triangle_count: Optional[int] = None
    overlapping_triangle_count: Optional[int] = None
    island_count: Optional[int] = None
    density_min: Optional[float] = None
    density_max: Optional[float] = None
    min_u: Optional[float] = None
    max_u: Optional[float] = None
    min_v: Optional[float] = None
    max_v: Optional[float] = None
    min_xyz: Optional[Tuple[float, float, float]] = None
    max_xyz: Optional[Tuple[float, float, float]] = None

    def to_dict(self) -> dict:
        return {
            "triangle_count": self.triangle_count,
            "hard_edge_count": self.hard_edge_count,
            "non_manifold_edge_count": self.non_manifold_edge_count,
            "inverted_triangle_count": self.inverted_triangle_count,
            "overlapping_triangle_count": self.overlapping_triangle_count,
            "island_count": self.island_count,
            "density_min": self.density_min,
            "density_max": self.density_max,
            "min_u": self.min_u,
            "max_u": self.max_u,
            "min_v": self.min_v,
            "max_v": self.max_v,
            "min_xyz": None if self.min_xyz is None else list(self.min_xyz),
            "max_xyz": None if self.max_xyz is None else list(self.max_xyz),
        }


@dataclass(frozen=True)
class XyzGeometry:
    vertices: List[VertexXyz]
    edges: List[EdgeXyz]
    triangles: List[TriangleXyz]


@dataclass(frozen=True)
class UvGeometry:
    vertices: List[VertexUv]
    edges: List[EdgeUv]
    triangles: List[TriangleUv]


@dataclass(frozen=True)
class Primitive:
    name: str
    need_xyz_indices: bool
    need_uv_indices: bool
    xyz: XyzGeometry
    uv: Optional[UvGeometry]
    edge_classification: Optional[EdgeClassification]
    islands: Optional[IslandLabels]
    overlapping: Optional[List[bool]]
    stats: PrimitiveStats

    def has_enough_margin(self, resolution: float) -> bool:
        if self.uv is None or self.islands is None:
            raise fail(
                "E-UV-INDICES",
                f"UV indices were not computed for primitive {self.name}",
                location=self.name,
                hints=["Build the primitive with need_uv_indices=True"],
            )
        return has_enough_margin(self.uv.triangles, self.islands.triangle_islands, resolution)


def build_primitive(
    buffers: PrimitiveBuffers,
    *,
    need_xyz_indices: bool = False,
    need_uv_indices: bool = False,
) -> Primitive:
    """Run vertex dedup, edge linking, classification, islands and overlap for one primitive.

    Both index flags gate quadratic-cost work and should only be set when a
    requested check needs them: XYZ indices for hard/manifold edges, UV
    indices for islands, overlap and gutter checks.
    """
    _validate_buffers(buffers)
    started = time.perf_counter()

    xyz = _build_xyz(buffers, need_xyz_indices)
    classification = classify_edges(xyz.edges, xyz.triangles) if need_xyz_indices else None

    uv: Optional[UvGeometry] = None
    islands: Optional[IslandLabels] = None
    overlapping: Optional[List[bool]] = None
    if buffers.uv is not None:
        uv = _build_uv(buffers, need_uv_indices)
        if need_uv_indices:
            islands = label_islands(len(uv.vertices), uv.triangles)
            overlapping = find_overlaps(uv.triangles)

    stats = _collect_stats(buffers, xyz, uv, classification, islands, overlapping)
    logger.debug(
        "primitive %s: %d triangles in %.3fs",
        buffers.name,
        stats.triangle_count,
        time.perf_counter() - started,
    )
    return Primitive(
        name=buffers.name,
        need_xyz_indices=need_xyz_indices,
        need_uv_indices=need_uv_indices,
        xyz=xyz,
        uv=uv,
        edge_classification=classification,
        islands=islands,
        overlapping=overlapping,
        stats=stats,
    )


def _validate_buffers(buffers: PrimitiveBuffers) -> None:
    if not buffers.positions or len(buffers.positions) % 3 != 0:
        raise fail(
            "E-PRIM-POSITION",
            f"Primitive {buffers.name} has no usable position data",
            location=buffers.name,
        )
    if len(buffers.indices) % 3 != 0:
        raise fail(
            "E-PRIM-INDEX",
            f"Primitive {buffers.name} index count {len(buffers.indices)} is not a multiple of 3",
            location=buffers.name,
        )
    vertex_count = buffers.vertex_count
    for index in buffers.indices:
        if index < 0 or index >= vertex_count:
            raise fail(
                "E-PRIM-INDEX",
                f"Primitive {buffers.name} references vertex {index} of {vertex_count}",
                location=buffers.name,
            )
    if buffers.uv is not None and len(buffers.uv) != vertex_count * 2:
        raise fail(
            "E-PRIM-UV",
            f"Primitive {buffers.name} has {len(buffers.uv)} UV values for {vertex_count} vertices",
            location=buffers.name,
        )


def _corner_indices(buffers: PrimitiveBuffers) -> List[Tuple[int, int, int]]:
    indices = buffers.indices
    return [(indices[i], indices[i + 1], indices[i + 2]) for i in range(0, len(indices), 3)]


def _build_xyz(buffers: PrimitiveBuffers, need_indices: bool) -> XyzGeometry:
    positions = buffers.positions
    store = VertexStore()
    edges = EdgeStore(EdgeXyz)
    triangles: List[TriangleXyz] = []

    for triangle_id, corners in enumerate(_corner_indices(buffers)):
        points = [
            VertexXyz(positions[i * 3], positions[i * 3 + 1], positions[i * 3 + 2]) for i in corners
        ]
        if need_indices:
            points = [store.add(point) for point in points]
        a, b, c = points
        triangles.append(TriangleXyz.from_vertices(triangle_id, a, b, c))
        if need_indices:
            edges.link_triangle(a, b, c, triangle_id)

    return XyzGeometry(vertices=list(store), edges=list(edges), triangles=triangles)


def _build_uv(buffers: PrimitiveBuffers, need_indices: bool) -> UvGeometry:
    uv = buffers.uv or ()
    store = VertexStore()
    edges = EdgeStore(EdgeUv)
    triangles: List[TriangleUv] = []

    for triangle_id, corners in enumerate(_corner_indices(buffers)):
        points = [VertexUv(uv[i * 2], uv[i * 2 + 1]) for i in corners]
        if need_indices:
            points = [store.add(point) for point in points]
        a, b, c = points
        triangles.append(TriangleUv.from_vertices(triangle_id, a, b, c))
        if need_indices:
            edges.link_triangle(a, b, c, triangle_id)

    return UvGeometry(vertices=list(store), edges=list(edges), triangles=triangles)


def _collect_stats(
    buffers: PrimitiveBuffers,
    xyz: XyzGeometry,
    uv: Optional[UvGeometry],
    classification: Optional[EdgeClassification],
    islands: Optional[IslandLabels],
    overlapping: Optional[List[bool]],
) -> PrimitiveStats:
    stats = {"triangle_count": len(xyz.triangles)}
    # Bounds cover every vertex in the buffer, referenced or not
    axes = [buffers.positions[axis::3] for axis in range(3)]
    stats["min_xyz"] = tuple(min(values) for values in axes)
    stats["max_xyz"] = tuple(max(values) for values in axes)
    if classification is not None:
        stats["hard_edge_count"] = classification.hard_edge_count
        stats["non_manifold_edge_count"] = classification.non_manifold_edge_count
    if islands is not None:
        stats["island_count"] = islands.count
    if overlapping is not None:
        stats["overlapping_triangle_count"] = sum(1 for flag in overlapping if flag)

    if uv is not None and uv.triangles:
        stats["inverted_triangle_count"] = sum(1 for tri in uv.triangles if tri.inverted)
        stats["min_u"] = min(tri.min_u for tri in uv.triangles)
        stats["max_u"] = max(tri.max_u for tri in uv.triangles)
        stats["min_v"] = min(tri.min_v for tri in uv.triangles)
        stats["max_v"] = max(tri.max_v for tri in uv.triangles)
        # UV area per unit of mesh area; pixels per meter once a texture size is known
        densities = [
            0.0 if mesh.area == 0 else flat.area / mesh.area
            for mesh, flat in zip(xyz.triangles, uv.triangles)
        ]
        stats["density_min"] = min(densities)
        stats["density_max"] = max(densities)
    elif uv is not None:
        stats["inverted_triangle_count"] = 0

    return PrimitiveStats(**stats)

