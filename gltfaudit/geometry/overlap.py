from __future__ import annotations

import logging
from typing import List, Sequence

from .triangles import TriangleUv, edges_intersect, is_counter_clockwise

logger = logging.getLogger(__name__)


def triangles_overlap(triangle: TriangleUv, other: TriangleUv) -> bool:
    if triangle.id == other.id:
        return False
    # Zero area triangles can not cover anything
    if triangle.area == 0 or other.area == 0:
        return False
    if (
        triangle.min_u >= other.max_u
        or triangle.max_u <= other.min_u
        or triangle.min_v >= other.max_v
        or triangle.max_v <= other.min_v
    ):
        return False

    # Shared corners by vertex store index, not by coordinate
    a_matches_a = triangle.a.index == other.a.index
    a_matches_b = triangle.a.index == other.b.index
    a_matches_c = triangle.a.index == other.c.index
    b_matches_a = triangle.b.index == other.a.index
    b_matches_b = triangle.b.index == other.b.index
    b_matches_c = triangle.b.index == other.c.index
    c_matches_a = triangle.c.index == other.a.index
    c_matches_b = triangle.c.index == other.b.index
    c_matches_c = triangle.c.index == other.c.index

    a_matches = a_matches_a or a_matches_b or a_matches_c
    b_matches = b_matches_a or b_matches_b or b_matches_c
    c_matches = c_matches_a or c_matches_b or c_matches_c
    match_count = int(a_matches) + int(b_matches) + int(c_matches)

    if match_count == 3:
        return True

    if match_count == 2:
        # Triangles sharing an edge overlap when the free corners sit on the same side of it
        edge_p1 = triangle.a if a_matches else triangle.b
        edge_p2 = triangle.c if c_matches else triangle.b
        point1 = triangle.a if not a_matches else (triangle.b if not b_matches else triangle.c)
        point2 = other.a
        if not a_matches_b and not b_matches_b and not c_matches_b:
            point2 = other.b
        elif not a_matches_c and not b_matches_c and not c_matches_c:
            point2 = other.c
        side1 = is_counter_clockwise(point1.u, point1.v, edge_p1.u, edge_p1.v, edge_p2.u, edge_p2.v)
        side2 = is_counter_clockwise(point2.u, point2.v, edge_p1.u, edge_p1.v, edge_p2.u, edge_p2.v)
        return side1 == side2

    if match_count == 1:
        common = triangle.a if a_matches else (triangle.b if b_matches else triangle.c)
        point1 = triangle.a if not a_matches else triangle.b
        point2 = triangle.c if not c_matches else triangle.b
        # Assume other.c is shared unless a or b is
        other_point1 = other.a
        other_point2 = other.b
        if a_matches_a or b_matches_a or c_matches_a:
            other_point1 = other.b
            other_point2 = other.c
        elif a_matches_b or b_matches_b or c_matches_b:
            other_point1 = other.a
            other_point2 = other.c

        if (
            triangle.vertex_inside(other_point1)
            or triangle.vertex_inside(other_point2)
            or other.vertex_inside(point1)
            or other.vertex_inside(point2)
        ):
            return True
        return (
            edges_intersect(common, other_point1, point1, point2)
            or edges_intersect(common, other_point2, point1, point2)
            or edges_intersect(common, point1, other_point1, other_point2)
            or edges_intersect(common, point2, other_point1, other_point2)
        )

    if any(triangle.vertex_inside(point) for point in other.vertices) or any(
        other.vertex_inside(point) for point in triangle.vertices
    ):
        return True
    own_edges = ((triangle.a, triangle.b), (triangle.b, triangle.c), (triangle.c, triangle.a))
    other_edges = ((other.a, other.b), (other.b, other.c), (other.c, other.a))
    for q1, q2 in other_edges:
        for p1, p2 in own_edges:
            if edges_intersect(p1, p2, q1, q2):
                return True
    return False


def find_overlaps(triangles: Sequence[TriangleUv]) -> List[bool]:
    """Flag every triangle that overlaps at least one other triangle.

    Triangles are swept in order of ``min_u``; once a candidate starts at or
    beyond the current triangle's ``max_u`` the bounding boxes can no longer
    intersect in either direction, so the rest of the row is skipped.
    """
    flags = [False] * len(triangles)
    order = sorted(range(len(triangles)), key=lambda idx: triangles[idx].min_u)
    comparisons = 0
    for position, i in enumerate(order):
        first = triangles[i]
        for j in order[position + 1 :]:
            second = triangles[j]
            if second.min_u >= first.max_u:
                break
            if flags[i] and flags[j]:
                continue
            comparisons += 1
            if triangles_overlap(first, second) or triangles_overlap(second, first):
                flags[i] = True
                flags[j] = True
    logger.debug("overlap sweep: %d triangles, %d comparisons", len(triangles), comparisons)
    return flags
