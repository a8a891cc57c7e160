from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..core.diagnostics import fail
from ..geometry.primitive import PrimitiveBuffers
from .glb import GlbContainer

MODE_TRIANGLES = 4
IDENTITY_MATRIX = (1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0)
DRACO_EXTENSION = "KHR_draco_mesh_compression"

# componentType -> (struct code, byte size)
COMPONENT_FORMATS: Dict[int, tuple] = {
    5120: ("b", 1),
    5121: ("B", 1),
    5122: ("h", 2),
    5123: ("H", 2),
    5125: ("I", 4),
    5126: ("f", 4),
}
NORMALIZED_DIVISORS = {5121: 255.0, 5123: 65535.0}
TYPE_SIZES = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4}


@dataclass(frozen=True)
class NodeTransform:
    translation: Tuple[float, ...] = (0.0, 0.0, 0.0)
    rotation: Tuple[float, ...] = (0.0, 0.0, 0.0, 1.0)
    scale: Tuple[float, ...] = (1.0, 1.0, 1.0)
    matrix: Optional[Tuple[float, ...]] = None

    def is_clean(self) -> bool:
        if self.matrix is not None:
            return self.matrix == IDENTITY_MATRIX
        # Only the vector part of the quaternion is compared
        return (
            all(value == 0 for value in self.translation)
            and all(value == 0 for value in self.rotation[:3])
            and all(value == 1 for value in self.scale)
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "translation": list(self.translation),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
        }
        if self.matrix is not None:
            data["matrix"] = list(self.matrix)
        return data


@dataclass(frozen=True)
class SceneInfo:
    node_count: int
    mesh_count: int
    primitive_count: int
    material_count: int
    root_transform: Optional[NodeTransform] = None

    def to_dict(self) -> dict:
        return {
            "node_count": self.node_count,
            "mesh_count": self.mesh_count,
            "primitive_count": self.primitive_count,
            "material_count": self.material_count,
            "root_transform": None if self.root_transform is None else self.root_transform.to_dict(),
        }


def scene_info(container: GlbContainer) -> SceneInfo:
    """Object counts and the transform of the first root node of the default scene."""
    document = container.json
    meshes = document.get("meshes") or []
    return SceneInfo(
        node_count=len(document.get("nodes") or []),
        mesh_count=len(meshes),
        primitive_count=sum(len(mesh.get("primitives") or []) for mesh in meshes),
        material_count=len(document.get("materials") or []),
        root_transform=_root_transform(document),
    )


def _root_transform(document: Dict[str, Any]) -> Optional[NodeTransform]:
    nodes = document.get("nodes") or []
    scenes = document.get("scenes") or []
    root_index: Optional[int] = 0 if nodes else None
    if scenes:
        scene_index = document.get("scene", 0)
        if isinstance(scene_index, int) and 0 <= scene_index < len(scenes):
            roots = scenes[scene_index].get("nodes") or []
            root_index = roots[0] if roots else None
    if not isinstance(root_index, int) or not 0 <= root_index < len(nodes):
        return None
    node = nodes[root_index]
    matrix = node.get("matrix")
    return NodeTransform(
        translation=tuple(node.get("translation", (0.0, 0.0, 0.0))),
        rotation=tuple(node.get("rotation", (0.0, 0.0, 0.0, 1.0))),
        scale=tuple(node.get("scale", (1.0, 1.0, 1.0))),
        matrix=None if matrix is None else tuple(matrix),
    )


def load_primitive_buffers(container: GlbContainer) -> List[PrimitiveBuffers]:
    """Extract triangle-list buffers for every mesh primitive in the container."""
    document = container.json
    loaded: List[PrimitiveBuffers] = []
    for mesh_index, mesh in enumerate(document.get("meshes") or []):
        base = mesh.get("name") or f"mesh{mesh_index}"
        for prim_index, primitive in enumerate(mesh.get("primitives") or []):
            name = base if prim_index == 0 else f"{base}_{prim_index}"
            loaded.append(_load_primitive(container, name, primitive))
    return loaded


def _load_primitive(container: GlbContainer, name: str, primitive: Dict[str, Any]) -> PrimitiveBuffers:
    if DRACO_EXTENSION in (primitive.get("extensions") or {}):
        raise fail("E-SCENE-UNSUPPORTED", "Draco compressed primitives are not supported", location=name)
    mode = primitive.get("mode", MODE_TRIANGLES)
    if mode != MODE_TRIANGLES:
        raise fail("E-SCENE-UNSUPPORTED", f"Primitive mode {mode} is not a triangle list", location=name)

    attributes = primitive.get("attributes") or {}
    if "POSITION" not in attributes:
        raise fail("E-PRIM-POSITION", "Primitive has no POSITION attribute", location=name)
    positions = _read_accessor(container, attributes["POSITION"], name, allowed=(5126,))

    uv: Optional[List[float]] = None
    if "TEXCOORD_0" in attributes:
        uv = _read_accessor(container, attributes["TEXCOORD_0"], name, allowed=(5126, 5121, 5123))

    if "indices" in primitive:
        raw = _read_accessor(container, primitive["indices"], name, allowed=(5121, 5123, 5125))
        indices = [int(value) for value in raw]
    else:
        indices = list(range(len(positions) // 3))
    return PrimitiveBuffers(name=name, positions=positions, indices=indices, uv=uv)


def _read_accessor(container: GlbContainer, index: int, name: str, *, allowed: tuple) -> List[float]:
    document = container.json
    accessors = document.get("accessors") or []
    if not isinstance(index, int) or index < 0 or index >= len(accessors):
        raise fail("E-SCENE-ACCESSOR", f"Accessor {index} does not exist", location=name)
    accessor = accessors[index]
    location = f"{name}/accessors/{index}"
    if "sparse" in accessor:
        raise fail("E-SCENE-UNSUPPORTED", "Sparse accessors are not supported", location=location)

    component_type = accessor.get("componentType")
    if component_type not in allowed:
        raise fail(
            "E-SCENE-UNSUPPORTED",
            f"Component type {component_type} is not supported here",
            location=location,
        )
    width = TYPE_SIZES.get(accessor.get("type", ""))
    if width is None:
        raise fail("E-SCENE-ACCESSOR", f"Unknown accessor type {accessor.get('type')}", location=location)
    count = int(accessor.get("count", 0))
    code, size = COMPONENT_FORMATS[component_type]

    if "bufferView" not in accessor:
        # An accessor without a buffer view reads as zeros
        return [0.0] * (count * width)

    view = _buffer_view(container, accessor["bufferView"], location)
    data = _buffer_data(container, view.get("buffer", 0), location)
    element_size = size * width
    stride = view.get("byteStride") or element_size
    start = view.get("byteOffset", 0) + accessor.get("byteOffset", 0)
    view_end = view.get("byteOffset", 0) + view.get("byteLength", 0)
    if count and start + stride * (count - 1) + element_size > min(view_end, len(data)):
        raise fail("E-SCENE-ACCESSOR", "Accessor reads past the end of its buffer view", location=location)

    element = struct.Struct(f"<{width}{code}")
    values: List[float] = []
    for item in range(count):
        values.extend(element.unpack_from(data, start + item * stride))

    divisor = NORMALIZED_DIVISORS.get(component_type)
    if accessor.get("normalized") and divisor is not None:
        return [value / divisor for value in values]
    return values


def _buffer_view(container: GlbContainer, index: int, location: str) -> Dict[str, Any]:
    views = container.json.get("bufferViews") or []
    if not isinstance(index, int) or index < 0 or index >= len(views):
        raise fail("E-SCENE-ACCESSOR", f"Buffer view {index} does not exist", location=location)
    return views[index]


def _buffer_data(container: GlbContainer, index: int, location: str) -> bytes:
    buffers = container.json.get("buffers") or []
    if index < 0 or index >= len(buffers):
        raise fail("E-SCENE-ACCESSOR", f"Buffer {index} does not exist", location=location)
    if index != 0 or "uri" in buffers[index] or container.bin is None:
        raise fail(
            "E-SCENE-UNSUPPORTED",
            "Only the embedded BIN chunk is supported as buffer data",
            location=location,
        )
    return container.bin
