from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .container.images import TextureImage
from .container.scene import SceneInfo
from .core.schema import AuditSchema, Limits, ProductInfo
from .geometry.model import Model

AXES = ("length", "width", "height")


def run_checks(
    model: Model,
    schema: AuditSchema,
    textures: Sequence[TextureImage] = (),
    *,
    scene: Optional[SceneInfo] = None,
    file_size_kb: Optional[int] = None,
    product: Optional[ProductInfo] = None,
) -> List[Dict[str, Any]]:
    """Evaluate every schema rule, in the order the audit report lists them."""
    stats = model.stats
    results: List[Dict[str, Any]] = [
        _range_check(
            "file_size_kb",
            schema.file_size_kb,
            file_size_kb,
            target="file",
            hint="Compress textures or reduce geometry",
        ),
        _range_check(
            "material_count",
            schema.material_count,
            None if scene is None else scene.material_count,
            target="model",
            hint="Merge or split materials",
        ),
        _range_check(
            "triangle_count",
            schema.triangle_count,
            stats.triangle_count,
            target="model",
            hint="Decimate or add detail to the mesh",
        ),
    ]
    results.extend(_texture_checks(schema, textures))
    results.append(_dimensions_check(model, schema))
    results.extend(
        [
            _count_check(
                "beveled_edges",
                schema.require_beveled_edges,
                stats.hard_edge_count,
                hint="Bevel edges whose faces meet at 90 degrees or more",
            ),
            _count_check(
                "manifold_edges",
                schema.require_manifold_edges,
                stats.non_manifold_edge_count,
                hint="Remove internal faces and T-junctions",
            ),
            _range_check(
                "node_count",
                schema.node_count,
                None if scene is None else scene.node_count,
                target="model",
                hint="Flatten or split the node hierarchy",
            ),
            _range_check(
                "mesh_count",
                schema.mesh_count,
                None if scene is None else scene.mesh_count,
                target="model",
                hint="Join or separate meshes",
            ),
            _range_check(
                "primitive_count",
                schema.primitive_count,
                stats.primitive_count if scene is None else scene.primitive_count,
                target="model",
                hint="Reduce the number of materials per mesh",
            ),
            _root_transform_check(schema, scene),
            _uv_range_check(model, schema),
            _count_check(
                "uv_not_inverted",
                schema.require_not_inverted_uvs,
                stats.inverted_triangle_count,
                hint="Flip UV triangles with clockwise winding",
            ),
            _count_check(
                "uv_not_overlapping",
                schema.require_not_overlapping_uvs,
                stats.overlapping_triangle_count,
                hint="Separate UV islands that share texture space",
            ),
        ]
    )
    results.extend(_pixels_per_meter_checks(model, schema, textures))
    results.append(_gutter_check(model, schema))
    results.append(_product_dimensions_check(model, schema, product))
    return results


def summarize_checks(results: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {"PASS": 0, "FAIL": 0, "SKIP": 0}
    for result in results:
        status = result.get("status")
        if status in counts:
            counts[status] += 1
    return {
        "count": len(results),
        "pass": counts["PASS"],
        "fail": counts["FAIL"],
        "skip": counts["SKIP"],
    }


def _check_result(rule: str, status: str, *, value: Any, limit: Any, target: str, hint: str) -> Dict[str, Any]:
    return {
        "rule": rule,
        "status": status,
        "value": value,
        "limit": limit,
        "target": target,
        "hint": hint,
    }


def _count_check(rule: str, required: bool, count: Optional[int], *, hint: str) -> Dict[str, Any]:
    if not required:
        return _check_result(rule, "SKIP", value=count, limit=None, target="model", hint="Not required")
    if count is None:
        return _check_result(rule, "SKIP", value=None, limit=0, target="model", hint="Not computed")
    status = "PASS" if count == 0 else "FAIL"
    return _check_result(rule, status, value=count, limit=0, target="model", hint=hint)


def _bounds(maximum: Optional[float], minimum: Optional[float]) -> Dict[str, float]:
    limit: Dict[str, float] = {}
    if minimum is not None:
        limit["minimum"] = minimum
    if maximum is not None:
        limit["maximum"] = maximum
    return limit


def _within(value: float, maximum: Optional[float], minimum: Optional[float]) -> bool:
    if maximum is not None and value > maximum:
        return False
    if minimum is not None and value < minimum:
        return False
    return True


def _bound_check(
    rule: str,
    value: Optional[float],
    *,
    maximum: Optional[float] = None,
    minimum: Optional[float] = None,
    target: str,
    hint: str,
    missing: str = "Not computed",
) -> Dict[str, Any]:
    if maximum is None and minimum is None:
        return _check_result(rule, "SKIP", value=value, limit=None, target=target, hint="Not required")
    limit = _bounds(maximum, minimum)
    if value is None:
        return _check_result(rule, "SKIP", value=None, limit=limit, target=target, hint=missing)
    status = "PASS" if _within(value, maximum, minimum) else "FAIL"
    return _check_result(rule, status, value=value, limit=limit, target=target, hint=hint)


def _range_check(rule: str, limits: Limits, value: Optional[float], *, target: str, hint: str) -> Dict[str, Any]:
    return _bound_check(rule, value, maximum=limits.maximum, minimum=limits.minimum, target=target, hint=hint)


def _image_names(images: Sequence[TextureImage]) -> str:
    names = [image.name or "unnamed" for image in images]
    return "Failing images: " + "; ".join(names) if names else ""


def _failing_images(images: Sequence[TextureImage], bound: Optional[float], failing) -> str:
    if bound is None:
        return ""
    return _image_names([image for image in images if failing(image, bound)])


def _texture_checks(schema: AuditSchema, textures: Sequence[TextureImage]) -> List[Dict[str, Any]]:
    rules = (
        ("texture_max_height", schema.texture_height.maximum),
        ("texture_min_height", schema.texture_height.minimum),
        ("texture_max_width", schema.texture_width.maximum),
        ("texture_min_width", schema.texture_width.minimum),
        ("texture_power_of_two", schema.require_textures_power_of_two or None),
        ("texture_quadratic", schema.require_textures_quadratic or None),
        ("pbr_color_max", schema.pbr_color_range.maximum),
        ("pbr_color_min", schema.pbr_color_range.minimum),
    )
    if not textures:
        return [
            _check_result(rule, "SKIP", value=None, limit=limit, target="texture", hint="No images")
            for rule, limit in rules
        ]

    max_height = schema.texture_height.maximum
    min_height = schema.texture_height.minimum
    max_width = schema.texture_width.maximum
    min_width = schema.texture_width.minimum
    results = [
        _bound_check(
            "texture_max_height",
            max(image.height for image in textures),
            maximum=max_height,
            target="texture",
            hint=_failing_images(textures, max_height, lambda image, bound: image.height > bound),
        ),
        _bound_check(
            "texture_min_height",
            min(image.height for image in textures),
            minimum=min_height,
            target="texture",
            hint=_failing_images(textures, min_height, lambda image, bound: image.height < bound),
        ),
        _bound_check(
            "texture_max_width",
            max(image.width for image in textures),
            maximum=max_width,
            target="texture",
            hint=_failing_images(textures, max_width, lambda image, bound: image.width > bound),
        ),
        _bound_check(
            "texture_min_width",
            min(image.width for image in textures),
            minimum=min_width,
            target="texture",
            hint=_failing_images(textures, min_width, lambda image, bound: image.width < bound),
        ),
        _texture_shape_check(
            "texture_power_of_two",
            schema.require_textures_power_of_two,
            textures,
            lambda image: image.is_power_of_two(),
        ),
        _texture_shape_check(
            "texture_quadratic",
            schema.require_textures_quadratic,
            textures,
            lambda image: image.is_quadratic(),
        ),
    ]

    # Only base color textures are held to the PBR value range
    base_color = [image for image in textures if image.base_color and image.max_value is not None]
    max_value = max((image.max_value for image in base_color), default=None)
    min_value = min((image.min_value for image in base_color), default=None)
    pbr_max = schema.pbr_color_range.maximum
    pbr_min = schema.pbr_color_range.minimum
    results.append(
        _bound_check(
            "pbr_color_max",
            max_value,
            maximum=pbr_max,
            target="texture",
            hint=_failing_images(base_color, pbr_max, lambda image, bound: image.max_value > bound),
            missing="No base color images",
        )
    )
    results.append(
        _bound_check(
            "pbr_color_min",
            min_value,
            minimum=pbr_min,
            target="texture",
            hint=_failing_images(base_color, pbr_min, lambda image, bound: image.min_value < bound),
            missing="No base color images",
        )
    )
    return results


def _texture_shape_check(rule: str, required: bool, textures: Sequence[TextureImage], passes) -> Dict[str, Any]:
    failing = [image for image in textures if not passes(image)]
    if not required:
        return _check_result(rule, "SKIP", value=not failing, limit=None, target="texture", hint="Not required")
    return _check_result(
        rule,
        "FAIL" if failing else "PASS",
        value=[f"{image.width} x {image.height}" for image in failing],
        limit=True,
        target="texture",
        hint=_image_names(failing),
    )


def _dimensions_check(model: Model, schema: AuditSchema) -> Dict[str, Any]:
    dimensions = model.stats.dimensions()
    limits = {axis: schema.dimensions[axis] for axis in AXES if axis in schema.dimensions}
    limit = {axis: _bounds(bounds.maximum, bounds.minimum) for axis, bounds in limits.items() if bounds.enabled}
    if not limit:
        return _check_result("dimensions", "SKIP", value=dimensions, limit=None, target="model", hint="Not required")
    if dimensions is None:
        return _check_result("dimensions", "SKIP", value=None, limit=limit, target="model", hint="No geometry")
    failing = []
    for axis in limit:
        bounds = limits[axis]
        if bounds.maximum is not None and dimensions[axis] > bounds.maximum:
            failing.append(f"{axis.capitalize()} too big")
        if bounds.minimum is not None and dimensions[axis] < bounds.minimum:
            failing.append(f"{axis.capitalize()} too small")
    return _check_result(
        "dimensions",
        "FAIL" if failing else "PASS",
        value=dimensions,
        limit=limit,
        target="model",
        hint="; ".join(failing),
    )


def _root_transform_check(schema: AuditSchema, scene: Optional[SceneInfo]) -> Dict[str, Any]:
    transform = None if scene is None else scene.root_transform
    clean = None if transform is None else transform.is_clean()
    if not schema.require_clean_root_node_transform:
        return _check_result(
            "root_node_transform", "SKIP", value=clean, limit=None, target="model", hint="Not required"
        )
    if transform is None:
        return _check_result("root_node_transform", "SKIP", value=None, limit=True, target="model", hint="No root node")
    return _check_result(
        "root_node_transform",
        "PASS" if clean else "FAIL",
        value=transform.to_dict(),
        limit=True,
        target="model",
        hint="Apply the root node location, rotation and scale",
    )


def _uv_range_check(model: Model, schema: AuditSchema) -> Dict[str, Any]:
    stats = model.stats
    in_range = stats.uv_in_unit_range()
    value = None
    if in_range is not None:
        value = {"u": [stats.min_u, stats.max_u], "v": [stats.min_v, stats.max_v]}
    if not schema.require_uv_range_zero_to_one:
        return _check_result("uv_range", "SKIP", value=value, limit=None, target="uv", hint="Not required")
    if in_range is None:
        return _check_result("uv_range", "SKIP", value=None, limit=[0, 1], target="uv", hint="No UVs")
    return _check_result(
        "uv_range",
        "PASS" if in_range else "FAIL",
        value=value,
        limit=[0, 1],
        target="uv",
        hint="Keep UV coordinates inside the 0 to 1 range",
    )


def _gutter_check(model: Model, schema: AuditSchema) -> Dict[str, Any]:
    resolution = schema.resolution_needed_for_uv_margin
    if resolution is None:
        return _check_result("uv_gutter_width", "SKIP", value=None, limit=None, target="uv", hint="Not required")
    if not any(primitive.islands is not None for primitive in model.primitives):
        return _check_result("uv_gutter_width", "SKIP", value=None, limit=resolution, target="uv", hint="Not computed")
    enough = model.has_enough_margin(resolution)
    return _check_result(
        "uv_gutter_width",
        "PASS" if enough else "FAIL",
        value=enough,
        limit=resolution,
        target="uv",
        hint=f"Checked for pixel collision at {resolution:g}x{resolution:g}",
    )


def _pixels_per_meter_checks(
    model: Model,
    schema: AuditSchema,
    textures: Sequence[TextureImage],
) -> List[Dict[str, Any]]:
    stats = model.stats
    if not textures or stats.density_max is None or stats.density_min is None:
        return [
            _check_result(rule, "SKIP", value=None, limit=limit, target="uv", hint="No images")
            for rule, limit in (
                ("pixels_per_meter_max", schema.max_pixels_per_meter),
                ("pixels_per_meter_min", schema.min_pixels_per_meter),
            )
        ]

    # Largest and smallest texture by each axis, as area per square meter of mesh
    max_area = max(image.width for image in textures) * max(image.height for image in textures)
    min_area = min(image.width for image in textures) * min(image.height for image in textures)
    max_ppm = stats.density_max * max_area
    min_ppm = stats.density_min * min_area

    results = []
    if schema.max_pixels_per_meter is None:
        results.append(
            _check_result("pixels_per_meter_max", "SKIP", value=max_ppm, limit=None, target="uv", hint="Not required")
        )
    else:
        results.append(
            _check_result(
                "pixels_per_meter_max",
                "PASS" if max_ppm <= schema.max_pixels_per_meter else "FAIL",
                value=max_ppm,
                limit=schema.max_pixels_per_meter,
                target="uv",
                hint="Lower texture resolution or shrink the UV islands",
            )
        )
    if schema.min_pixels_per_meter is None:
        results.append(
            _check_result("pixels_per_meter_min", "SKIP", value=min_ppm, limit=None, target="uv", hint="Not required")
        )
    else:
        results.append(
            _check_result(
                "pixels_per_meter_min",
                "PASS" if min_ppm >= schema.min_pixels_per_meter else "FAIL",
                value=min_ppm,
                limit=schema.min_pixels_per_meter,
                target="uv",
                hint="Raise texture resolution or give the mesh more UV space",
            )
        )
    return results


def _product_dimensions_check(model: Model, schema: AuditSchema, product: Optional[ProductInfo]) -> Dict[str, Any]:
    dimensions = model.stats.dimensions()
    if product is None:
        return _check_result(
            "product_dimensions", "SKIP", value=dimensions, limit=None, target="model", hint="No product info"
        )
    if dimensions is None:
        return _check_result("product_dimensions", "SKIP", value=None, limit=None, target="model", hint="No geometry")
    limit: Dict[str, Dict[str, float]] = {}
    failing = []
    for axis in AXES:
        expected = getattr(product, axis)
        if expected is None:
            continue
        bounds = schema.dimensions.get(axis)
        tolerance = bounds.percent_tolerance if bounds is not None else 0.0
        margin = tolerance / 100 * expected
        limit[axis] = {"value": expected, "percent_tolerance": tolerance}
        if dimensions[axis] < expected - margin:
            failing.append(f"{axis.capitalize()} too small")
        if dimensions[axis] > expected + margin:
            failing.append(f"{axis.capitalize()} too large")
    return _check_result(
        "product_dimensions",
        "FAIL" if failing else "PASS",
        value=dimensions,
        limit=limit,
        target="model",
        hint="; ".join(failing),
    )
