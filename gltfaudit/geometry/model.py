from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .primitive import Primitive, PrimitiveBuffers, build_primitive


def _sum(values: Iterable[Optional[int]]) -> Optional[int]:
    present = [value for value in values if value is not None]
    return sum(present) if present else None


def _min(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [value for value in values if value is not None]
    return min(present) if present else None


def _max(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [value for value in values if value is not None]
    return max(present) if present else None


def _corner(pick, corners: Sequence[Optional[Tuple[float, float, float]]]) -> Optional[Tuple[float, float, float]]:
    present = [corner for corner in corners if corner is not None]
    if not present:
        return None
    return tuple(pick(corner[axis] for corner in present) for axis in range(3))


@dataclass(frozen=True)
class ModelStats:
    primitive_count: int
    triangle_count: int
    hard_edge_count: Optional[int] = None
    non_manifold_edge_count: Optional[int] = None
    inverted_triangle_count: Optional[int] = None
    overlapping_triangle_count: Optional[int] = None
    density_min: Optional[float] = None
    density_max: Optional[float] = None
    min_u: Optional[float] = None
    max_u: Optional[float] = None
    min_v: Optional[float] = None
    max_v: Optional[float] = None
    min_xyz: Optional[Tuple[float, float, float]] = None
    max_xyz: Optional[Tuple[float, float, float]] = None

    @classmethod
    def from_primitives(cls, primitives: Sequence[Primitive]) -> "ModelStats":
        stats = [primitive.stats for primitive in primitives]
        return cls(
            primitive_count=len(stats),
            triangle_count=sum(item.triangle_count for item in stats),
            hard_edge_count=_sum(item.hard_edge_count for item in stats),
            non_manifold_edge_count=_sum(item.non_manifold_edge_count for item in stats),
            inverted_triangle_count=_sum(item.inverted_triangle_count for item in stats),
            overlapping_triangle_count=_sum(item.overlapping_triangle_count for item in stats),
            density_min=_min(item.density_min for item in stats),
            density_max=_max(item.density_max for item in stats),
            min_u=_min(item.min_u for item in stats),
            max_u=_max(item.max_u for item in stats),
            min_v=_min(item.min_v for item in stats),
            max_v=_max(item.max_v for item in stats),
            min_xyz=_corner(min, [item.min_xyz for item in stats]),
            max_xyz=_corner(max, [item.max_xyz for item in stats]),
        )

    def uv_in_unit_range(self) -> Optional[bool]:
        if None in (self.min_u, self.max_u, self.min_v, self.max_v):
            return None
        return self.min_u >= 0 and self.max_u <= 1 and self.min_v >= 0 and self.max_v <= 1

    def dimensions(self) -> Optional[Dict[str, float]]:
        """Bounding box extents in meters: length along X, width along Z, height along Y."""
        if self.min_xyz is None or self.max_xyz is None:
            return None
        extent = [round(high - low, 6) for low, high in zip(self.min_xyz, self.max_xyz)]
        return {"length": extent[0], "width": extent[2], "height": extent[1]}

    def to_dict(self) -> dict:
        return {
            "primitive_count": self.primitive_count,
            "triangle_count": self.triangle_count,
            "hard_edge_count": self.hard_edge_count,
            "non_manifold_edge_count": self.non_manifold_edge_count,
            "inverted_triangle_count": self.inverted_triangle_count,
            "overlapping_triangle_count": self.overlapping_triangle_count,
            "density_min": self.density_min,
            "density_max": self.density_max,
            "min_u": self.min_u,
            "max_u": self.max_u,
            "min_v": self.min_v,
            "max_v": self.max_v,
            "dimensions": self.dimensions(),
        }


@dataclass(frozen=True)
class Model:
    primitives: List[Primitive]
    stats: ModelStats

    def has_enough_margin(self, resolution: float) -> bool:
        # Islands are per primitive; margins between primitives are not compared
        return all(
            primitive.has_enough_margin(resolution)
            for primitive in self.primitives
            if primitive.uv is not None
        )


def build_model(
    buffers_list: Iterable[PrimitiveBuffers],
    *,
    need_xyz_indices: bool = False,
    need_uv_indices: bool = False,
) -> Model:
    primitives = [
        build_primitive(
            buffers,
            need_xyz_indices=need_xyz_indices,
            need_uv_indices=need_uv_indices,
        )
        for buffers in buffers_list
    ]
    return Model(primitives=primitives, stats=ModelStats.from_primitives(primitives))
