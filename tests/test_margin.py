from __future__ import annotations

from gltfaudit.geometry.islands import label_islands
from gltfaudit.geometry.margin import SquareUv, grid_size, has_enough_margin
from gltfaudit.geometry.triangles import TriangleUv
from gltfaudit.geometry.vertices import VertexStore, VertexUv


def _uv_triangles(triangles):
    store = VertexStore()
    built = []
    for triangle_id, corners in enumerate(triangles):
        a, b, c = [store.add(VertexUv(*corner)) for corner in corners]
        built.append(TriangleUv.from_vertices(triangle_id, a, b, c))
    return store, built


def _two_islands():
    store, triangles = _uv_triangles(
        [
            ((0.1, 0.1), (0.4, 0.1), (0.1, 0.4)),
            ((0.6, 0.1), (0.9, 0.1), (0.6, 0.4)),
        ]
    )
    labels = label_islands(len(store), triangles)
    return triangles, labels.triangle_islands


def _triangle(*corners):
    a, b, c = [VertexUv(u, v) for u, v in corners]
    return TriangleUv.from_vertices(0, a, b, c)


def test_square_bounds_and_corners():
    square = SquareUv(0.5, 0.5, 0.2)
    a, b, c, d = square.corners()
    assert (a.u, a.v) == (square.u_min, square.v_min)
    assert (d.u, d.v) == (square.u_max, square.v_max)
    assert square.point_inside(0.5, 0.5)
    # edges are exclusive
    assert not square.point_inside(square.u_min, 0.5)


def test_square_overlaps_triangle_with_corner_inside():
    square = SquareUv(0.5, 0.5, 0.2)
    assert square.overlaps_triangle(_triangle((0.5, 0.5), (0.9, 0.5), (0.9, 0.9)))


def test_square_overlaps_triangle_edge_crossing_it():
    square = SquareUv(0.5, 0.5, 0.2)
    assert square.overlaps_triangle(_triangle((0.0, 0.45), (1.0, 0.45), (0.5, -0.5)))


def test_square_does_not_overlap_distant_triangle():
    square = SquareUv(0.5, 0.5, 0.2)
    assert not square.overlaps_triangle(_triangle((0.8, 0.8), (0.9, 0.8), (0.8, 0.9)))


def test_grid_size_rounds_down_to_coarser_grid():
    assert grid_size(256) == 256
    assert grid_size(1024 / 3) == 341
    assert grid_size(0.5) == 1


def test_wide_gap_passes_at_fine_resolution():
    triangles, islands = _two_islands()
    assert has_enough_margin(triangles, islands, 64)


def test_wide_gap_fails_at_coarse_resolution():
    triangles, islands = _two_islands()
    assert not has_enough_margin(triangles, islands, 4)


def test_single_island_always_has_margin():
    store, triangles = _uv_triangles(
        [
            ((0.1, 0.1), (0.4, 0.1), (0.4, 0.4)),
            ((0.1, 0.1), (0.4, 0.4), (0.1, 0.4)),
        ]
    )
    labels = label_islands(len(store), triangles)
    assert has_enough_margin(triangles, labels.triangle_islands, 2)


def test_non_positive_resolution_has_no_margin():
    triangles, islands = _two_islands()
    assert not has_enough_margin(triangles, islands, 0)
