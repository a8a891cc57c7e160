from __future__ import annotations

import pytest

from gltfaudit.checks import run_checks, summarize_checks
from gltfaudit.core.config import SCHEMA_VERSION
from gltfaudit.container.images import TextureImage
from gltfaudit.container.scene import NodeTransform, SceneInfo
from gltfaudit.core.schema import AuditSchema, DimensionLimits, Limits, ProductInfo, parse_schema
from gltfaudit.geometry.model import build_model
from gltfaudit.geometry.primitive import PrimitiveBuffers


def _quad(u_offset=0.0, v_offset=0.0, name="quad"):
    # Two triangles over a 1 x 1 square, mapped to a 0.5 x 0.5 UV square
    positions = [0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0, 1.0, 0.0, 1.0, 0.0, 0.0]
    uv = [
        u_offset, v_offset,
        u_offset, v_offset + 0.5,
        u_offset + 0.5, v_offset + 0.5,
        u_offset + 0.5, v_offset,
    ]
    return PrimitiveBuffers(name=name, positions=positions, indices=[0, 1, 2, 0, 2, 3], uv=uv)


def _model(schema, *buffers):
    return build_model(
        buffers,
        need_xyz_indices=schema.checks_require_xyz_indices,
        need_uv_indices=schema.checks_require_uv_indices,
    )


def _by_rule(results):
    return {result["rule"]: result for result in results}


def test_everything_skips_with_default_schema():
    schema = parse_schema({"version": SCHEMA_VERSION})
    results = run_checks(_model(schema, _quad()), schema)
    assert [result["rule"] for result in results] == [
        "file_size_kb",
        "material_count",
        "triangle_count",
        "texture_max_height",
        "texture_min_height",
        "texture_max_width",
        "texture_min_width",
        "texture_power_of_two",
        "texture_quadratic",
        "pbr_color_max",
        "pbr_color_min",
        "dimensions",
        "beveled_edges",
        "manifold_edges",
        "node_count",
        "mesh_count",
        "primitive_count",
        "root_node_transform",
        "uv_range",
        "uv_not_inverted",
        "uv_not_overlapping",
        "pixels_per_meter_max",
        "pixels_per_meter_min",
        "uv_gutter_width",
        "product_dimensions",
    ]
    assert all(result["status"] == "SKIP" for result in results)
    assert summarize_checks(results) == {"count": 25, "pass": 0, "fail": 0, "skip": 25}


def test_clean_quad_passes_required_checks():
    schema = parse_schema(
        {
            "version": SCHEMA_VERSION,
            "model": {"requireBeveledEdges": True, "requireManifoldEdges": True},
            "uvs": {
                "requireNotInverted": True,
                "requireNotOverlapping": True,
                "requireRangeZeroToOne": True,
            },
        }
    )
    results = _by_rule(run_checks(_model(schema, _quad()), schema))
    for rule in ("beveled_edges", "manifold_edges", "uv_range", "uv_not_inverted", "uv_not_overlapping"):
        assert results[rule]["status"] == "PASS", rule
    assert results["uv_range"]["value"] == {"u": [0.0, 0.5], "v": [0.0, 0.5]}


def test_out_of_range_uvs_fail():
    schema = parse_schema({"version": SCHEMA_VERSION, "uvs": {"requireRangeZeroToOne": True}})
    results = _by_rule(run_checks(_model(schema, _quad(0.75)), schema))
    assert results["uv_range"]["status"] == "FAIL"


def test_gutter_check_uses_all_primitives():
    schema = parse_schema({"version": SCHEMA_VERSION, "uvs": {"gutterWidth": {"resolution256": 64}}})
    assert schema.resolution_needed_for_uv_margin == 4
    separate = _model(schema, _quad(name="a"), _quad(0.0, 0.5, name="b"))
    results = _by_rule(run_checks(separate, schema))
    assert results["uv_gutter_width"]["status"] == "PASS"
    assert results["uv_gutter_width"]["limit"] == 4

    single = _model(schema, _quad(0.0, 0.0, name="a"))
    crowded_islands = _model(
        schema,
        PrimitiveBuffers(
            name="pair",
            positions=[0.0] * 18,
            indices=[0, 1, 2, 3, 4, 5],
            uv=[0.1, 0.1, 0.4, 0.1, 0.1, 0.4, 0.6, 0.1, 0.9, 0.1, 0.6, 0.4],
        ),
    )
    assert _by_rule(run_checks(single, schema))["uv_gutter_width"]["status"] == "PASS"
    assert _by_rule(run_checks(crowded_islands, schema))["uv_gutter_width"]["status"] == "FAIL"


def test_pixels_per_meter_uses_largest_and_smallest_texture():
    schema = AuditSchema(max_pixels_per_meter=100000.0, min_pixels_per_meter=20000.0)
    model = _model(schema, _quad())
    textures = [TextureImage("large", 1024, 1024), TextureImage("small", 256, 512)]
    results = _by_rule(run_checks(model, schema, textures))
    # density is 0.25 everywhere
    assert results["pixels_per_meter_max"]["value"] == pytest.approx(0.25 * 1024 * 1024)
    assert results["pixels_per_meter_max"]["status"] == "FAIL"
    assert results["pixels_per_meter_min"]["value"] == pytest.approx(0.25 * 256 * 512)
    assert results["pixels_per_meter_min"]["status"] == "PASS"


def test_pixels_per_meter_skips_without_textures():
    schema = AuditSchema(max_pixels_per_meter=100000.0)
    results = _by_rule(run_checks(_model(schema, _quad()), schema))
    assert results["pixels_per_meter_max"]["status"] == "SKIP"
    assert results["pixels_per_meter_max"]["hint"] == "No images"


def test_hard_edges_fail_beveled_check():
    schema = AuditSchema(require_beveled_edges=True)
    folded = PrimitiveBuffers(
        name="fold",
        positions=[0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0],
        indices=[0, 1, 2, 0, 3, 1],
    )
    results = _by_rule(run_checks(_model(schema, folded), schema))
    assert results["beveled_edges"]["status"] == "FAIL"
    assert results["beveled_edges"]["value"] == 1
    assert summarize_checks(list(results.values()))["fail"] == 1


def test_triangle_and_primitive_limits_fail_quad():
    schema = parse_schema(
        {
            "version": SCHEMA_VERSION,
            "model": {"triangles": {"maximum": 1}, "objectCount": {"primitives": {"maximum": 0}}},
        }
    )
    results = run_checks(_model(schema, _quad()), schema)
    by_rule = _by_rule(results)
    assert by_rule["triangle_count"]["status"] == "FAIL"
    assert by_rule["triangle_count"]["value"] == 2
    assert by_rule["triangle_count"]["limit"] == {"maximum": 1}
    assert by_rule["primitive_count"]["status"] == "FAIL"
    assert by_rule["primitive_count"]["value"] == 1
    assert summarize_checks(results)["fail"] == 2


def test_negative_count_limit_is_disabled():
    schema = parse_schema({"version": SCHEMA_VERSION, "model": {"triangles": {"maximum": -1, "minimum": 2}}})
    result = _by_rule(run_checks(_model(schema, _quad()), schema))["triangle_count"]
    assert result["status"] == "PASS"
    assert result["limit"] == {"minimum": 2}


def test_scene_counts_and_file_size():
    schema = AuditSchema(
        file_size_kb=Limits(maximum=100),
        material_count=Limits(maximum=1),
        node_count=Limits(minimum=1),
        mesh_count=Limits(maximum=1, minimum=1),
    )
    scene = SceneInfo(node_count=0, mesh_count=1, primitive_count=1, material_count=3)
    results = _by_rule(run_checks(_model(schema, _quad()), schema, scene=scene, file_size_kb=120))
    assert results["file_size_kb"]["status"] == "FAIL"
    assert results["material_count"]["status"] == "FAIL"
    assert results["node_count"]["status"] == "FAIL"
    assert results["mesh_count"]["status"] == "PASS"


def test_scene_counts_skip_without_scene():
    schema = AuditSchema(mesh_count=Limits(maximum=1), file_size_kb=Limits(maximum=1))
    results = _by_rule(run_checks(_model(schema, _quad()), schema))
    assert results["mesh_count"]["status"] == "SKIP"
    assert results["mesh_count"]["hint"] == "Not computed"
    assert results["file_size_kb"]["status"] == "SKIP"


def test_texture_dimension_rules():
    schema = parse_schema(
        {
            "version": SCHEMA_VERSION,
            "textures": {
                "height": {"maximum": 1024, "minimum": 256},
                "width": {"maximum": 1024},
                "requireDimensionsBePowersOfTwo": True,
                "requireDimensionsBeQuadratic": True,
            },
        }
    )
    textures = [TextureImage("base", 2048, 2048), TextureImage("mask", 300, 128)]
    results = _by_rule(run_checks(_model(schema, _quad()), schema, textures))
    assert results["texture_max_height"]["status"] == "FAIL"
    assert results["texture_max_height"]["hint"] == "Failing images: base"
    assert results["texture_min_height"]["status"] == "FAIL"
    assert results["texture_min_height"]["hint"] == "Failing images: mask"
    assert results["texture_max_width"]["status"] == "FAIL"
    assert results["texture_min_width"]["status"] == "SKIP"
    assert results["texture_power_of_two"]["status"] == "FAIL"
    assert results["texture_power_of_two"]["value"] == ["300 x 128"]
    assert results["texture_quadratic"]["status"] == "FAIL"


def test_pbr_color_range_uses_base_color_images():
    schema = parse_schema({"version": SCHEMA_VERSION, "textures": {"pbrColorRange": {"maximum": 240, "minimum": 30}}})
    textures = [
        TextureImage("base", 512, 512, min_value=20, max_value=200, base_color=True),
        TextureImage("normal", 512, 512),
    ]
    results = _by_rule(run_checks(_model(schema, _quad()), schema, textures))
    assert results["pbr_color_max"]["status"] == "PASS"
    assert results["pbr_color_max"]["value"] == 200
    assert results["pbr_color_min"]["status"] == "FAIL"
    assert results["pbr_color_min"]["hint"] == "Failing images: base"


def test_pbr_color_range_skips_without_base_color():
    schema = AuditSchema(pbr_color_range=Limits(maximum=240))
    results = _by_rule(run_checks(_model(schema, _quad()), schema, [TextureImage("normal", 64, 64)]))
    assert results["pbr_color_max"]["status"] == "SKIP"
    assert results["pbr_color_max"]["hint"] == "No base color images"


def test_overall_dimensions():
    # The quad spans 1 m along X and Y and nothing along Z
    schema = parse_schema(
        {
            "version": SCHEMA_VERSION,
            "product": {"dimensions": {"length": {"maximum": 0.5}, "height": {"minimum": 0.5, "maximum": -1}}},
        }
    )
    result = _by_rule(run_checks(_model(schema, _quad()), schema))["dimensions"]
    assert result["value"] == {"length": 1.0, "width": 0.0, "height": 1.0}
    assert result["status"] == "FAIL"
    assert result["hint"] == "Length too big"
    assert result["limit"] == {"length": {"maximum": 0.5}, "height": {"minimum": 0.5}}


def test_product_dimensions_with_tolerance():
    schema = AuditSchema(dimensions={"length": DimensionLimits(percent_tolerance=5.0)})
    model = _model(schema, _quad())
    close = _by_rule(run_checks(model, schema, product=ProductInfo(length=1.04, height=1.0)))
    assert close["product_dimensions"]["status"] == "PASS"
    off = _by_rule(run_checks(model, schema, product=ProductInfo(length=1.2, height=0.9)))
    assert off["product_dimensions"]["status"] == "FAIL"
    assert off["product_dimensions"]["hint"] == "Length too small; Height too large"


def test_root_node_transform():
    schema = AuditSchema(require_clean_root_node_transform=True)
    model = _model(schema, _quad())
    moved = SceneInfo(1, 1, 1, 0, root_transform=NodeTransform(translation=(0.0, 1.0, 0.0)))
    clean = SceneInfo(1, 1, 1, 0, root_transform=NodeTransform())
    assert _by_rule(run_checks(model, schema, scene=moved))["root_node_transform"]["status"] == "FAIL"
    assert _by_rule(run_checks(model, schema, scene=clean))["root_node_transform"]["status"] == "PASS"
    assert _by_rule(run_checks(model, schema))["root_node_transform"]["status"] == "SKIP"
