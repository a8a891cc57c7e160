from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import SCHEMA_VERSION, load_product_file, load_schema_file, normalize_schema_data
from .diagnostics import AuditError, Diagnostic, Diagnostics

GUTTER_RESOLUTIONS = (256, 512, 1024, 2048, 4096)


class RangeModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    maximum: float | None = None
    minimum: float | None = None


class DimensionModel(RangeModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    percent_tolerance: float | None = Field(default=None, alias="percentTolerance")


class GutterWidthModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    resolution256: float | None = None
    resolution512: float | None = None
    resolution1024: float | None = None
    resolution2048: float | None = None
    resolution4096: float | None = None


class ObjectCountModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    nodes: RangeModel | None = None
    meshes: RangeModel | None = None
    primitives: RangeModel | None = None


class ModelSection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    object_count: ObjectCountModel | None = Field(default=None, alias="objectCount")
    require_beveled_edges: bool = Field(default=False, alias="requireBeveledEdges")
    require_clean_root_node_transform: bool = Field(default=False, alias="requireCleanRootNodeTransform")
    require_manifold_edges: bool = Field(default=False, alias="requireManifoldEdges")
    triangles: RangeModel | None = None


class DimensionsModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    height: DimensionModel | None = None
    length: DimensionModel | None = None
    width: DimensionModel | None = None


class ProductSection(BaseModel):
    model_config = ConfigDict(extra="allow")
    dimensions: DimensionsModel | None = None


class TexturesSection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    height: RangeModel | None = None
    width: RangeModel | None = None
    pbr_color_range: RangeModel | None = Field(default=None, alias="pbrColorRange")
    require_powers_of_two: bool = Field(default=False, alias="requireDimensionsBePowersOfTwo")
    require_quadratic: bool = Field(default=False, alias="requireDimensionsBeQuadratic")


class UvsSection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    gutter_width: GutterWidthModel | None = Field(default=None, alias="gutterWidth")
    pixels_per_meter: RangeModel | None = Field(default=None, alias="pixelsPerMeter")
    require_not_inverted: bool = Field(default=False, alias="requireNotInverted")
    require_not_overlapping: bool = Field(default=False, alias="requireNotOverlapping")
    require_range_zero_to_one: bool = Field(default=False, alias="requireRangeZeroToOne")


class AuditSchemaModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    version: str = Field(default=SCHEMA_VERSION)
    file_size_in_kb: RangeModel | None = Field(default=None, alias="fileSizeInKb")
    materials: RangeModel | None = None
    model: ModelSection = Field(default_factory=ModelSection)
    product: ProductSection = Field(default_factory=ProductSection)
    textures: TexturesSection = Field(default_factory=TexturesSection)
    uvs: UvsSection = Field(default_factory=UvsSection)


@dataclass(frozen=True)
class Limits:
    """An inclusive range; a missing or negative bound is not checked."""

    maximum: Optional[float] = None
    minimum: Optional[float] = None

    @property
    def enabled(self) -> bool:
        return self.maximum is not None or self.minimum is not None


@dataclass(frozen=True)
class DimensionLimits(Limits):
    percent_tolerance: float = 0.0


@dataclass(frozen=True)
class AuditSchema:
    version: str = SCHEMA_VERSION
    require_beveled_edges: bool = False
    require_manifold_edges: bool = False
    require_clean_root_node_transform: bool = False
    require_not_inverted_uvs: bool = False
    require_not_overlapping_uvs: bool = False
    require_uv_range_zero_to_one: bool = False
    require_textures_power_of_two: bool = False
    require_textures_quadratic: bool = False
    gutter_widths: Dict[int, float] = field(default_factory=dict)
    max_pixels_per_meter: Optional[float] = None
    min_pixels_per_meter: Optional[float] = None
    file_size_kb: Limits = field(default_factory=Limits)
    material_count: Limits = field(default_factory=Limits)
    triangle_count: Limits = field(default_factory=Limits)
    node_count: Limits = field(default_factory=Limits)
    mesh_count: Limits = field(default_factory=Limits)
    primitive_count: Limits = field(default_factory=Limits)
    texture_height: Limits = field(default_factory=Limits)
    texture_width: Limits = field(default_factory=Limits)
    pbr_color_range: Limits = field(default_factory=Limits)
    # Keyed by "length", "width" and "height"
    dimensions: Dict[str, DimensionLimits] = field(default_factory=dict)

    @property
    def checks_require_xyz_indices(self) -> bool:
        # Manifold and beveled edge checks need deduplicated XYZ edges.
        return self.require_beveled_edges or self.require_manifold_edges

    @property
    def checks_require_uv_indices(self) -> bool:
        # Islands, overlap and gutter checks need deduplicated UV vertices.
        return self.require_not_overlapping_uvs or self.resolution_needed_for_uv_margin is not None

    @property
    def resolution_needed_for_uv_margin(self) -> Optional[float]:
        needed: Optional[float] = None
        for size, width in self.gutter_widths.items():
            if width <= 0:
                continue
            resolution = size / width
            if needed is None or resolution < needed:
                needed = resolution
        return needed


def default_schema_path() -> Path:
    return Path(__file__).resolve().parent.parent / "schemas" / "audit_schema.schema.json"


def validate_schema(data: Dict[str, Any], schema_path: Optional[Path] = None) -> Diagnostics:
    diagnostics = Diagnostics()
    schema_path = schema_path or default_schema_path()
    with schema_path.open("r", encoding="utf-8") as handle:
        schema = json.load(handle)
    schema["$id"] = schema_path.resolve().as_uri()
    validator = jsonschema.Draft202012Validator(schema)
    for error in sorted(validator.iter_errors(data), key=str):
        diagnostics.add(
            Diagnostic(
                code="E-SCHEMA",
                message=error.message,
                location="/".join(str(x) for x in error.path),
            )
        )
    version = data.get("version")
    if isinstance(version, str) and _major(version) != _major(SCHEMA_VERSION):
        diagnostics.add(
            Diagnostic(
                code="E-SCHEMA-VERSION",
                message=f"Schema version mismatch: expected {SCHEMA_VERSION}, got {version}",
                location="version",
            )
        )
    return diagnostics


def parse_schema(data: Dict[str, Any]) -> AuditSchema:
    normalized = normalize_schema_data(data)
    try:
        model = AuditSchemaModel.model_validate(normalized)
    except ValidationError as exc:
        raise AuditError(Diagnostic(code="E-SCHEMA", message=str(exc), location="schema")) from exc

    gutter_widths: Dict[int, float] = {}
    if model.uvs.gutter_width is not None:
        for size in GUTTER_RESOLUTIONS:
            width = getattr(model.uvs.gutter_width, f"resolution{size}")
            if width is not None:
                gutter_widths[size] = width

    ppm = model.uvs.pixels_per_meter
    counts = model.model.object_count or ObjectCountModel()
    textures = model.textures
    dimensions: Dict[str, DimensionLimits] = {}
    if model.product.dimensions is not None:
        for axis in ("length", "width", "height"):
            bounds = getattr(model.product.dimensions, axis)
            if bounds is not None:
                dimensions[axis] = DimensionLimits(
                    maximum=_limit(bounds.maximum),
                    minimum=_limit(bounds.minimum),
                    percent_tolerance=bounds.percent_tolerance or 0.0,
                )
    return AuditSchema(
        version=model.version,
        require_beveled_edges=model.model.require_beveled_edges,
        require_manifold_edges=model.model.require_manifold_edges,
        require_clean_root_node_transform=model.model.require_clean_root_node_transform,
        require_not_inverted_uvs=model.uvs.require_not_inverted,
        require_not_overlapping_uvs=model.uvs.require_not_overlapping,
        require_uv_range_zero_to_one=model.uvs.require_range_zero_to_one,
        require_textures_power_of_two=textures.require_powers_of_two,
        require_textures_quadratic=textures.require_quadratic,
        gutter_widths=gutter_widths,
        max_pixels_per_meter=_limit(ppm.maximum) if ppm is not None else None,
        min_pixels_per_meter=_limit(ppm.minimum) if ppm is not None else None,
        file_size_kb=_limits(model.file_size_in_kb),
        material_count=_limits(model.materials),
        triangle_count=_limits(model.model.triangles),
        node_count=_limits(counts.nodes),
        mesh_count=_limits(counts.meshes),
        primitive_count=_limits(counts.primitives),
        texture_height=_limits(textures.height),
        texture_width=_limits(textures.width),
        pbr_color_range=_limits(textures.pbr_color_range),
        dimensions=dimensions,
    )


def load_schema(path: Path) -> AuditSchema:
    data = load_schema_file(path)
    validate_schema(data).raise_for_errors()
    return parse_schema(data)


class ProductDimensionsModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    length: float | None = None
    width: float | None = None
    height: float | None = None


class ProductInfoModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    dimensions: ProductDimensionsModel


@dataclass(frozen=True)
class ProductInfo:
    """Real-world product size in meters; a missing axis is not compared."""

    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


def parse_product_info(data: Dict[str, Any]) -> ProductInfo:
    try:
        model = ProductInfoModel.model_validate(data)
    except ValidationError as exc:
        raise AuditError(Diagnostic(code="E-PRODUCT", message=str(exc), location="product")) from exc
    dimensions = model.dimensions
    return ProductInfo(
        length=_limit(dimensions.length),
        width=_limit(dimensions.width),
        height=_limit(dimensions.height),
    )


def load_product_info(path: Path) -> ProductInfo:
    return parse_product_info(load_product_file(path))


def _limit(value: Optional[float]) -> Optional[float]:
    # Negative limits (conventionally -1) disable a check
    if value is None or value < 0:
        return None
    return value


def _limits(bounds: Optional[RangeModel]) -> Limits:
    if bounds is None:
        return Limits()
    return Limits(maximum=_limit(bounds.maximum), minimum=_limit(bounds.minimum))


def _major(version: str) -> str:
    return version.split(".")[0] if version else ""
