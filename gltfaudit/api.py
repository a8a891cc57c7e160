from __future__ import annotations

import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .checks import run_checks, summarize_checks
from .container.glb import load_container, pack_gltf_files
from .container.images import TextureImage, texture_images
from .container.scene import SceneInfo, load_primitive_buffers, scene_info
from .core.logging import get_event_logger, get_logger
from .core.schema import AuditSchema, ProductInfo, load_product_info, load_schema, parse_schema, validate_schema
from .geometry.model import Model, ModelStats
from .geometry.primitive import PrimitiveBuffers, build_primitive

SchemaLike = Union[AuditSchema, Dict[str, Any], Path, str]
ProductLike = Union[ProductInfo, Path, str, None]


@dataclass(frozen=True)
class AuditResult:
    model: Model
    checks: List[Dict[str, Any]]
    summary: Dict[str, int]
    scene: Optional[SceneInfo] = None

    @property
    def passed(self) -> bool:
        return self.summary["fail"] == 0

    def to_dict(self) -> dict:
        data = {
            "model": self.model.stats.to_dict(),
            "primitives": [
                {"name": primitive.name, **primitive.stats.to_dict()} for primitive in self.model.primitives
            ],
            "checks": self.checks,
            "summary": self.summary,
        }
        if self.scene is not None:
            data["scene"] = self.scene.to_dict()
        return data


def audit_buffers(
    buffers_list: Iterable[PrimitiveBuffers],
    schema: SchemaLike,
    *,
    textures: Sequence[TextureImage] = (),
    scene: Optional[SceneInfo] = None,
    file_size_kb: Optional[int] = None,
    product: ProductLike = None,
    logs_dir: Union[Path, str, None] = None,
    source: Optional[str] = None,
) -> AuditResult:
    logs_path = Path(logs_dir) if logs_dir is not None else None
    logger = get_logger("audit", logs_path)
    events = get_event_logger(logs_path)
    audit_schema = resolve_schema(schema)
    product_info = resolve_product(product)

    need_xyz = audit_schema.checks_require_xyz_indices
    need_uv = audit_schema.checks_require_uv_indices
    started = time.perf_counter()
    events.record({"event": "audit.start", "source": source, "xyz_indices": need_xyz, "uv_indices": need_uv})
    logger.info("audit start source=%s xyz_indices=%s uv_indices=%s", source, need_xyz, need_uv)

    primitives = []
    for buffers in buffers_list:
        primitive = build_primitive(buffers, need_xyz_indices=need_xyz, need_uv_indices=need_uv)
        primitives.append(primitive)
        events.record({"event": "primitive.built", "name": primitive.name, **primitive.stats.to_dict()})
        logger.info("primitive built name=%s triangles=%d", primitive.name, primitive.stats.triangle_count)

    model = Model(primitives=primitives, stats=ModelStats.from_primitives(primitives))
    checks = run_checks(
        model,
        audit_schema,
        textures,
        scene=scene,
        file_size_kb=file_size_kb,
        product=product_info,
    )
    summary = summarize_checks(checks)
    duration = time.perf_counter() - started
    events.record({"event": "audit.finish", "source": source, "duration_s": duration, **summary})
    logger.info(
        "audit finish fail=%d pass=%d skip=%d duration=%.3fs",
        summary["fail"],
        summary["pass"],
        summary["skip"],
        duration,
    )
    return AuditResult(model=model, checks=checks, summary=summary, scene=scene)


def audit_file(
    paths: Union[Sequence[Union[Path, str]], Path, str],
    schema: SchemaLike,
    *,
    product: ProductLike = None,
    logs_dir: Union[Path, str, None] = None,
) -> AuditResult:
    """Audit a single .glb, or a .gltf together with its .bin and image files."""
    if isinstance(paths, (str, Path)):
        paths = [paths]
    file_paths = [Path(path) for path in paths]
    container = load_container(file_paths)
    return audit_buffers(
        load_primitive_buffers(container),
        schema,
        textures=texture_images(container),
        scene=scene_info(container),
        file_size_kb=file_size_in_kb(file_paths),
        product=product,
        logs_dir=logs_dir,
        source=str(file_paths[0]),
    )


def file_size_in_kb(paths: Sequence[Path]) -> int:
    # Half-up rounding of the summed byte size
    total = sum(Path(path).stat().st_size for path in paths)
    return int(math.floor(total / 1024 + 0.5))


def pack_gltf(paths: Sequence[Union[Path, str]], out_path: Union[Path, str]) -> Path:
    output = Path(out_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(pack_gltf_files([Path(path) for path in paths]))
    return output


def resolve_schema(schema: SchemaLike) -> AuditSchema:
    if isinstance(schema, AuditSchema):
        return schema
    if isinstance(schema, dict):
        validate_schema(schema).raise_for_errors()
        return parse_schema(schema)
    return load_schema(Path(schema))


def resolve_product(product: ProductLike) -> Optional[ProductInfo]:
    if product is None or isinstance(product, ProductInfo):
        return product
    return load_product_info(Path(product))
