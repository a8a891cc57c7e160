from __future__ import annotations

from math import pi

import pytest

from gltfaudit.geometry.classify import HARD_EDGE_ANGLE, angle_between, classify_edges
from gltfaudit.geometry.edges import EdgeStore, EdgeXyz
from gltfaudit.geometry.triangles import TriangleUv, TriangleXyz, heron_area
from gltfaudit.geometry.vertices import VertexStore, VertexUv, VertexXyz


def _mesh(triangles):
    store = VertexStore()
    edges = EdgeStore(EdgeXyz)
    built = []
    for triangle_id, corners in enumerate(triangles):
        a, b, c = [store.add(VertexXyz(*corner)) for corner in corners]
        built.append(TriangleXyz.from_vertices(triangle_id, a, b, c))
        edges.link_triangle(a, b, c, triangle_id)
    return store, list(edges), built


def _cube():
    faces = [
        [(0, 0, 1), (1, 0, 1), (1, 1, 1), (0, 1, 1)],
        [(0, 0, 0), (0, 1, 0), (1, 1, 0), (1, 0, 0)],
        [(1, 0, 0), (1, 1, 0), (1, 1, 1), (1, 0, 1)],
        [(0, 0, 0), (0, 0, 1), (0, 1, 1), (0, 1, 0)],
        [(0, 1, 0), (0, 1, 1), (1, 1, 1), (1, 1, 0)],
        [(0, 0, 0), (1, 0, 0), (1, 0, 1), (0, 0, 1)],
    ]
    triangles = []
    for p0, p1, p2, p3 in faces:
        triangles.append((p0, p1, p2))
        triangles.append((p0, p2, p3))
    return triangles


def test_heron_area_of_right_triangle():
    assert heron_area(3.0, 4.0, 5.0) == pytest.approx(6.0)


def test_degenerate_triangle_has_zero_area():
    a = VertexXyz(0.0, 0.0, 0.0)
    b = VertexXyz(1.0, 0.0, 0.0)
    c = VertexXyz(2.0, 0.0, 0.0)
    triangle = TriangleXyz.from_vertices(0, a, b, c)
    assert triangle.area == 0.0
    assert triangle.normal == (0.0, 0.0, 0.0)


def test_xyz_normal_follows_winding():
    a = VertexXyz(0.0, 0.0, 0.0)
    b = VertexXyz(1.0, 0.0, 0.0)
    c = VertexXyz(0.0, 1.0, 0.0)
    assert TriangleXyz.from_vertices(0, a, b, c).normal == (0.0, 0.0, 1.0)
    assert TriangleXyz.from_vertices(1, a, c, b).normal == (0.0, 0.0, -1.0)


def test_uv_winding_and_bounds():
    triangle = TriangleUv.from_vertices(0, VertexUv(0.0, 0.0), VertexUv(1.0, 0.0), VertexUv(0.0, 1.0))
    flipped = TriangleUv.from_vertices(1, VertexUv(0.0, 0.0), VertexUv(0.0, 1.0), VertexUv(1.0, 0.0))
    assert triangle.inverted
    assert not flipped.inverted
    assert (triangle.min_u, triangle.max_u, triangle.min_v, triangle.max_v) == (0.0, 1.0, 0.0, 1.0)
    assert triangle.area == pytest.approx(0.5)


def test_angle_between_is_negative_for_parallel_normals():
    assert angle_between((0.0, 0.0, 1.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0)) == 0.0
    assert angle_between((0.0, 0.0, 1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 0.0)) == pytest.approx(-pi)


def test_cube_has_twelve_hard_edges_and_is_manifold():
    store, edges, triangles = _mesh(_cube())
    assert len(store) == 8
    assert len(edges) == 18

    result = classify_edges(edges, triangles)
    assert result.hard_edge_count == 12
    assert result.non_manifold_edge_count == 0
    diagonals = [item for item in result.classes if not item.hard]
    assert len(diagonals) == 6


def test_perpendicular_faces_make_a_hard_edge():
    _, edges, triangles = _mesh(
        [
            ((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            ((0, 0, 0), (0, 0, 1), (1, 0, 0)),
        ]
    )
    result = classify_edges(edges, triangles)
    assert result.hard_edge_count == 1
    shared = [item for item, edge in zip(result.classes, edges) if len(edge.triangles) == 2]
    assert shared[0].face_angle == pytest.approx(HARD_EDGE_ANGLE)


def test_shallow_fold_is_not_hard():
    _, edges, triangles = _mesh(
        [
            ((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            ((1, 0, 0), (0, 0, 0), (0, -1, 0.1)),
        ]
    )
    result = classify_edges(edges, triangles)
    assert result.hard_edge_count == 0
    assert result.non_manifold_edge_count == 0


def test_back_to_back_faces_are_not_hard():
    _, edges, triangles = _mesh(
        [
            ((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            ((0, 0, 0), (0, 1, 0), (1, 0, 0)),
        ]
    )
    result = classify_edges(edges, triangles)
    assert len(edges) == 3
    assert result.hard_edge_count == 0


def test_open_boundary_is_manifold():
    _, edges, triangles = _mesh([((0, 0, 0), (1, 0, 0), (0, 1, 0))])
    result = classify_edges(edges, triangles)
    assert result.non_manifold_edge_count == 0
    assert all(item.face_angle is None for item in result.classes)


def test_t_junction_is_non_manifold():
    _, edges, triangles = _mesh(
        [
            ((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            ((1, 0, 0), (0, 0, 0), (0, -1, 0)),
            ((0, 0, 0), (1, 0, 0), (0, 0, 1)),
        ]
    )
    result = classify_edges(edges, triangles)
    assert result.non_manifold_edge_count == 1
    assert result.hard_edge_count == 0
