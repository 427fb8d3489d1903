# src/floorcore/geometry.py
"""Polygon extraction and planar helpers shared by the engine."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
from shapely.geometry import LineString, Point, Polygon, box as shapely_box

from floorcore.config import POINT_TOLERANCE
from floorcore.models import Point2D, RoomBounds, Wall

logger = logging.getLogger(__name__)


def points_equal(a: Point2D, b: Point2D, tolerance: float = POINT_TOLERANCE) -> bool:
    """Check if two points coincide within ``tolerance`` on both axes."""
    return abs(a.x - b.x) < tolerance and abs(a.y - b.y) < tolerance


# ------------------------------------------------------------------ #
# Polygon extraction
# ------------------------------------------------------------------ #


def trace_wall_loop(
    walls: Sequence[Wall],
    wall_ids: Iterable[str],
    tolerance: float = POINT_TOLERANCE,
) -> tuple[list[Point2D], bool]:
    """Walk the walls listed in ``wall_ids`` end to end.

    Returns the visited points and whether the walk closed back on its
    starting point. Open walks return everything gathered before the dead
    end; the walk is capped at twice the wall count.
    """
    wanted = set(wall_ids)
    room_walls = [w for w in walls if w.id in wanted and w.length >= tolerance]
    if len(room_walls) < 3:
        return [], False

    first = room_walls[0].start
    points = [first.model_copy()]
    used: set[str] = set()
    current = first

    for _ in range(2 * len(room_walls)):
        next_point: Optional[Point2D] = None
        for wall in room_walls:
            if wall.id in used:
                continue
            if points_equal(wall.start, current, tolerance):
                next_point = wall.end
            elif points_equal(wall.end, current, tolerance):
                next_point = wall.start
            else:
                continue
            used.add(wall.id)
            break

        if next_point is None:
            break
        if len(points) > 2 and points_equal(next_point, first, tolerance):
            return points, True
        points.append(next_point.model_copy())
        current = next_point

    logger.debug("wall loop did not close after %d points", len(points))
    return points, False


def get_polygon_from_walls(
    walls: Sequence[Wall],
    wall_ids: Iterable[str],
    tolerance: float = POINT_TOLERANCE,
) -> list[Point2D]:
    """Extract the ordered boundary formed by a set of connected walls.

    A partial point list is returned when the walls do not form a loop;
    fewer than 3 walls yield an empty list.
    """
    points, _ = trace_wall_loop(walls, wall_ids, tolerance)
    return points


def _as_array(polygon: Sequence[Point2D]) -> np.ndarray:
    return np.array([[p.x, p.y] for p in polygon], dtype=float)


def get_polygon_centroid(polygon: Sequence[Point2D]) -> Point2D:
    """Centre of mass of a polygon (shoelace weighting)."""
    if not polygon:
        return Point2D(x=0, y=0)
    if len(polygon) == 1:
        return polygon[0].model_copy()

    pts = _as_array(polygon)
    if len(polygon) == 2:
        mid = pts.mean(axis=0)
        return Point2D(x=float(mid[0]), y=float(mid[1]))

    x, y = pts[:, 0], pts[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    cross = x * y_next - x_next * y
    area = cross.sum() / 2

    if abs(area) < 1e-4:
        # Degenerate polygon, fall back to the vertex average
        mean = pts.mean(axis=0)
        return Point2D(x=float(mean[0]), y=float(mean[1]))

    cx = ((x + x_next) * cross).sum() / (6 * area)
    cy = ((y + y_next) * cross).sum() / (6 * area)
    return Point2D(x=float(cx), y=float(cy))


def get_polygon_area(polygon: Sequence[Point2D]) -> float:
    """Unsigned area of a polygon using the shoelace formula."""
    if len(polygon) < 3:
        return 0.0
    pts = _as_array(polygon)
    x, y = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2)


def get_polygon_perimeter(polygon: Sequence[Point2D]) -> float:
    """Sum of edge lengths of the closed polygon."""
    if len(polygon) < 2:
        return 0.0
    pts = _as_array(polygon)
    deltas = np.roll(pts, -1, axis=0) - pts
    return float(np.hypot(deltas[:, 0], deltas[:, 1]).sum())


def point_in_polygon(point: Point2D, polygon: Sequence[Point2D]) -> bool:
    """Even-odd ray casting test."""
    if len(polygon) < 3:
        return False

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i].x, polygon[i].y
        xj, yj = polygon[j].x, polygon[j].y
        if (yi > point.y) != (yj > point.y) and point.x < (xj - xi) * (point.y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


# ------------------------------------------------------------------ #
# Bounds helpers
# ------------------------------------------------------------------ #


def bounds_corners(bounds: RoomBounds) -> list[Point2D]:
    """Corners in clockwise order starting at the top-left."""
    return [
        Point2D(x=bounds.left, y=bounds.top),
        Point2D(x=bounds.right, y=bounds.top),
        Point2D(x=bounds.right, y=bounds.bottom),
        Point2D(x=bounds.left, y=bounds.bottom),
    ]


def bounds_area(bounds: RoomBounds) -> float:
    return get_polygon_area(bounds_corners(bounds))


def bounds_perimeter(bounds: RoomBounds) -> float:
    if bounds.width <= 0 and bounds.height <= 0:
        return 0.0
    return get_polygon_perimeter(bounds_corners(bounds))


def bounds_to_polygon(bounds: RoomBounds) -> Polygon:
    return shapely_box(bounds.left, bounds.top, bounds.right, bounds.bottom)


def is_point_in_bounds(point: Point2D, bounds: RoomBounds) -> bool:
    return bounds.left <= point.x <= bounds.right and bounds.top <= point.y <= bounds.bottom


def is_bounds_fully_contained(inner: RoomBounds, outer: RoomBounds, tolerance: float = 0.0) -> bool:
    """Check if ``inner`` lies entirely within ``outer``."""
    return (
        inner.left >= outer.left - tolerance
        and inner.top >= outer.top - tolerance
        and inner.right <= outer.right + tolerance
        and inner.bottom <= outer.bottom + tolerance
    )


def bounds_equal(a: RoomBounds, b: RoomBounds, tolerance: float = 1e-6) -> bool:
    return (
        abs(a.x - b.x) <= tolerance
        and abs(a.y - b.y) <= tolerance
        and abs(a.width - b.width) <= tolerance
        and abs(a.height - b.height) <= tolerance
    )


def get_bounds_from_polygon(polygon: Sequence[Point2D]) -> RoomBounds:
    """Axis-aligned bounding box of a point list."""
    if not polygon:
        return RoomBounds(x=0, y=0, width=0, height=0)
    pts = _as_array(polygon)
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return RoomBounds(
        x=float(min_x), y=float(min_y), width=float(max_x - min_x), height=float(max_y - min_y)
    )


# ------------------------------------------------------------------ #
# Wall helpers
# ------------------------------------------------------------------ #


@dataclass
class WallPosition:
    center: Point2D
    angle: float  # radians
    length: float


@dataclass
class NearestWall:
    wall: Wall
    position: float  # distance along the wall from its start
    distance: float


def _wall_line(wall: Wall) -> LineString:
    return LineString([(wall.start.x, wall.start.y), (wall.end.x, wall.end.y)])


def calculate_position_on_wall(wall: Wall, position_along_wall: float) -> WallPosition:
    """Locate the point ``position_along_wall`` cm from the wall start."""
    dx = wall.end.x - wall.start.x
    dy = wall.end.y - wall.start.y
    length = math.hypot(dx, dy)
    t = position_along_wall / length if length > 0 else 0.0
    return WallPosition(
        center=Point2D(x=wall.start.x + dx * t, y=wall.start.y + dy * t),
        angle=math.atan2(dy, dx),
        length=length,
    )


def find_nearest_wall(
    pos: Point2D,
    walls: Sequence[Wall],
    exclude_wall_id: Optional[str] = None,
    threshold: float = 30.0,
) -> Optional[NearestWall]:
    """Find the wall whose centreline passes closest to ``pos`` within ``threshold``."""
    point = Point(pos.x, pos.y)
    best: Optional[NearestWall] = None
    best_distance = threshold

    for wall in walls:
        if exclude_wall_id is not None and wall.id == exclude_wall_id:
            continue
        line = _wall_line(wall)
        distance = line.distance(point)
        if distance < best_distance:
            best_distance = distance
            best = NearestWall(wall=wall, position=float(line.project(point)), distance=float(distance))

    return best


def find_nearest_wall_endpoint(
    pos: Point2D, walls: Sequence[Wall], tolerance: float
) -> Optional[Point2D]:
    """Nearest wall endpoint strictly closer than ``tolerance``."""
    nearest: Optional[Point2D] = None
    nearest_distance = tolerance
    for wall in walls:
        for endpoint in (wall.start, wall.end):
            d = pos.distance_to(endpoint)
            if d < nearest_distance:
                nearest_distance = d
                nearest = endpoint
    return nearest


def wall_outline(wall: Wall) -> Polygon:
    """Footprint of the wall's thickness around its centreline (flat caps)."""
    if wall.thickness <= 0 or wall.length <= 0:
        return Polygon()
    return _wall_line(wall).buffer(wall.thickness / 2, cap_style="flat", join_style="mitre")


def walls_extent(walls: Sequence[Wall]) -> Optional[RoomBounds]:
    """Bounding rectangle of the wall centrelines."""
    if not walls:
        return None
    points = [p for w in walls for p in (w.start, w.end)]
    return get_bounds_from_polygon(points)
