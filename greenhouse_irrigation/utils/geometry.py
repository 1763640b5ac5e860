"""
Planar geometry kernel for canvas coordinates.

Provides utilities for:
- Point-in-polygon and polygon boundary distance
- Point/segment projection and distances
- Segment and polyline intersection
- Polyline length, station (arc-length position) and side tests
- Polygon area and centroid

All inputs are (x, y) tuples in canvas pixels. Nothing here raises for
degenerate input: short polygons are never "inside" and have zero area.
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import logging
import math

import numpy as np
from shapely.geometry import LineString, Point, Polygon

from greenhouse_irrigation.domain.models import PX_PER_METER

logger = logging.getLogger(__name__)

Coordinate = tuple[float, float]

INTERSECTION_MERGE_DISTANCE = 1e-6
"""Intersection points closer than this (px) are the same crossing."""


@dataclass(frozen=True)
class SegmentProjection:
    """Closest point on a segment to a query point."""
    point: Coordinate
    distance: float
    t: float
    """Position along the segment, clamped to [0, 1]."""


@dataclass(frozen=True)
class PolylineProjection:
    """Closest point on a polyline to a query point."""
    point: Coordinate
    distance: float
    station: float
    """Arc length in pixels from the polyline start to the projection."""
    segment_index: Optional[int]


def point_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
    """
    Check if a point is inside a polygon using ray casting.

    Works for convex and concave simple polygons. A point exactly on an
    edge may land on either side.

    Args:
        point: (x, y) coordinate tuple
        polygon: List of (x, y) vertices, open or closed

    Returns:
        True if point is inside polygon, False otherwise
    """
    if len(polygon) < 3:
        return False

    px, py = point
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def distance_between_points(point1: Coordinate, point2: Coordinate) -> float:
    """Euclidean distance between two points."""
    return math.hypot(point2[0] - point1[0], point2[1] - point1[1])


def midpoint(point1: Coordinate, point2: Coordinate) -> Coordinate:
    return ((point1[0] + point2[0]) / 2, (point1[1] + point2[1]) / 2)


def closest_point_on_segment(
    point: Coordinate,
    start: Coordinate,
    end: Coordinate,
) -> SegmentProjection:
    """
    Project a point onto a line segment.

    Args:
        point: (x, y) query point
        start: Segment start
        end: Segment end

    Returns:
        SegmentProjection with the closest point, its distance and the
        clamped parameter t. A zero-length segment projects onto its start
        with t = 0.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length_sq = dx * dx + dy * dy

    t = 0.0
    if length_sq != 0:
        dot = (point[0] - start[0]) * dx + (point[1] - start[1]) * dy
        t = max(0.0, min(1.0, dot / length_sq))

    closest = (start[0] + t * dx, start[1] + t * dy)
    return SegmentProjection(
        point=closest,
        distance=distance_between_points(point, closest),
        t=t,
    )


def distance_point_to_segment(
    point: Coordinate,
    start: Coordinate,
    end: Coordinate,
) -> float:
    return closest_point_on_segment(point, start, end).distance


def distance_point_to_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> float:
    """
    Minimum distance from a point to any edge of a polygon.

    Args:
        point: (x, y) coordinate tuple
        polygon: List of (x, y) vertices; the closing edge is implied

    Returns:
        Distance in pixels, or infinity for a polygon with fewer than 3
        vertices (such a polygon is never "near" anything)
    """
    if len(polygon) < 3:
        return math.inf

    ring = LineString(list(polygon) + [polygon[0]])
    return float(ring.distance(Point(point)))


def segment_intersection(
    a1: Coordinate,
    a2: Coordinate,
    b1: Coordinate,
    b2: Coordinate,
) -> Optional[Coordinate]:
    """
    Intersection point of segments a1-a2 and b1-b2.

    Uses the parametric line-intersection formula. Parallel (including
    collinear) segments never intersect here.

    Returns:
        (x, y) intersection point, or None
    """
    denom = (a1[0] - a2[0]) * (b1[1] - b2[1]) - (a1[1] - a2[1]) * (b1[0] - b2[0])
    if denom == 0:
        return None

    t = ((a1[0] - b1[0]) * (b1[1] - b2[1]) - (a1[1] - b1[1]) * (b1[0] - b2[0])) / denom
    u = -((a1[0] - a2[0]) * (a1[1] - b1[1]) - (a1[1] - a2[1]) * (a1[0] - b1[0])) / denom

    if 0 <= t <= 1 and 0 <= u <= 1:
        return (a1[0] + t * (a2[0] - a1[0]), a1[1] + t * (a2[1] - a1[1]))
    return None


def polyline_intersections(
    polyline_a: Sequence[Coordinate],
    polyline_b: Sequence[Coordinate],
) -> list[Coordinate]:
    """
    All points where two polylines cross.

    A crossing through a shared vertex is reported by both adjacent
    segments; such duplicates are collapsed into one point.

    Args:
        polyline_a: First polyline vertices
        polyline_b: Second polyline vertices

    Returns:
        Distinct intersection points in scan order of polyline_a
    """
    found: list[Coordinate] = []
    for i in range(len(polyline_a) - 1):
        for j in range(len(polyline_b) - 1):
            hit = segment_intersection(
                polyline_a[i], polyline_a[i + 1], polyline_b[j], polyline_b[j + 1]
            )
            if hit is None:
                continue
            if any(distance_between_points(hit, seen) <= INTERSECTION_MERGE_DISTANCE for seen in found):
                continue
            found.append(hit)
    return found


def segment_lengths(polyline: Sequence[Coordinate]) -> np.ndarray:
    """Length of each consecutive segment in pixels."""
    points = np.asarray(polyline, dtype=float)
    if len(points) < 2:
        return np.zeros(0)
    deltas = np.diff(points, axis=0)
    return np.hypot(deltas[:, 0], deltas[:, 1])


def cumulative_lengths(polyline: Sequence[Coordinate]) -> np.ndarray:
    """
    Running arc length at each vertex of a polyline.

    Args:
        polyline: List of (x, y) vertices

    Returns:
        Array of len(polyline) stations in pixels, starting at 0
    """
    if not polyline:
        return np.zeros(0)
    return np.concatenate(([0.0], np.cumsum(segment_lengths(polyline))))


def polyline_length(polyline: Sequence[Coordinate]) -> float:
    """Total polyline length in pixels (0 for fewer than 2 points)."""
    return float(segment_lengths(polyline).sum())


def polyline_length_m(polyline: Sequence[Coordinate]) -> float:
    """Total polyline length in meters."""
    return polyline_length(polyline) / PX_PER_METER


def project_onto_polyline(
    polyline: Sequence[Coordinate],
    point: Coordinate,
) -> Optional[PolylineProjection]:
    """
    Project a point onto the nearest segment of a polyline.

    Zero-length segments are skipped. A polyline with a single distinct
    location projects onto its first vertex at station 0.

    Args:
        polyline: List of (x, y) vertices
        point: (x, y) query point

    Returns:
        PolylineProjection, or None for an empty polyline
    """
    if not polyline:
        return None

    best: Optional[PolylineProjection] = None
    stations = cumulative_lengths(polyline)
    for i in range(len(polyline) - 1):
        length = float(stations[i + 1] - stations[i])
        if length == 0:
            continue

        projection = closest_point_on_segment(point, polyline[i], polyline[i + 1])
        if best is None or projection.distance < best.distance:
            best = PolylineProjection(
                point=projection.point,
                distance=projection.distance,
                station=float(stations[i]) + projection.t * length,
                segment_index=i,
            )

    if best is None:
        first = tuple(polyline[0])
        return PolylineProjection(
            point=first,
            distance=distance_between_points(point, first),
            station=0.0,
            segment_index=None,
        )
    return best


def distance_point_to_polyline(point: Coordinate, polyline: Sequence[Coordinate]) -> float:
    """Minimum distance from a point to a polyline (infinity if empty)."""
    projection = project_onto_polyline(polyline, point)
    return projection.distance if projection else math.inf


def station_along_polyline(polyline: Sequence[Coordinate], point: Coordinate) -> float:
    """
    Station of a point along a polyline.

    The point is projected onto the polyline's nearest segment and the
    arc length from the polyline start to that projection is returned.

    Args:
        polyline: List of (x, y) vertices
        point: (x, y) query point

    Returns:
        Station in pixels (0 for an empty polyline)
    """
    projection = project_onto_polyline(polyline, point)
    return projection.station if projection else 0.0


def side_of_polyline(polyline: Sequence[Coordinate], point: Coordinate) -> int:
    """
    Which side of a polyline a point lies on.

    Uses the sign of the cross product between the nearest segment's
    direction and the vector from that segment's start to the point.
    Two points with opposite signs straddle the polyline.

    Returns:
        1 (left in canvas coordinates), -1 (right), or 0 when the point is
        on the line or the polyline has no length
    """
    projection = project_onto_polyline(polyline, point)
    if projection is None or projection.segment_index is None:
        return 0

    start = polyline[projection.segment_index]
    end = polyline[projection.segment_index + 1]
    cross = (end[0] - start[0]) * (point[1] - start[1]) - (end[1] - start[1]) * (point[0] - start[0])
    if cross > 0:
        return 1
    if cross < 0:
        return -1
    return 0


def polygon_area(polygon: Sequence[Coordinate]) -> float:
    """
    Polygon area in square meters.

    Shoelace area in px² scaled by PX_PER_METER². Assumes a simple
    polygon; a self-intersecting one yields an unspecified value.

    Args:
        polygon: List of (x, y) vertices

    Returns:
        Area in m², 0 for fewer than 3 vertices
    """
    if len(polygon) < 3:
        return 0.0
    return float(Polygon(polygon).area) / (PX_PER_METER * PX_PER_METER)


def vertex_centroid(points: Sequence[Coordinate]) -> Coordinate:
    """Mean of the vertices; (0, 0) for no points."""
    if not points:
        return (0.0, 0.0)
    center = np.mean(np.asarray(points, dtype=float), axis=0)
    return (float(center[0]), float(center[1]))


def turn_deviation_deg(
    previous: Coordinate,
    vertex: Coordinate,
    following: Coordinate,
) -> float:
    """
    How sharply a path bends at a vertex.

    Args:
        previous: Vertex before the bend
        vertex: The bend
        following: Vertex after the bend

    Returns:
        Deviation from a straight line in degrees: 0 for straight,
        90 for a right angle, 180 for a full reversal. 0 when either
        adjacent segment has no length.
    """
    v1 = (previous[0] - vertex[0], previous[1] - vertex[1])
    v2 = (following[0] - vertex[0], following[1] - vertex[1])
    norm = math.hypot(*v1) * math.hypot(*v2)
    if norm == 0:
        return 0.0

    cos_angle = max(-1.0, min(1.0, (v1[0] * v2[0] + v1[1] * v2[1]) / norm))
    return 180.0 - math.degrees(math.acos(cos_angle))
