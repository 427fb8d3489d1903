# src/floorcore/walls.py
"""Connection-aware wall synthesis.

A room's walls are derived from its bounds and its connections. Each
connection suppresses ("excludes") a span of one of the room's edges:

* a ``direct`` connection excludes the overlap on both rooms;
* a ``wall`` connection excludes the overlap on exactly one room, the one
  with the lexicographically larger id, so the shared wall is generated once.

The remaining spans of every edge become wall segments, offset outward by
half the wall thickness. At a true room corner a segment extends by half a
thickness when a perpendicular wall exists there, so L and T junctions close;
at an exclusion boundary it retracts by half a thickness so it stops flush
against the neighbour's wall.

Edge-local coordinates run along increasing X (top, bottom) or increasing Y
(left, right) with 0 at the room's top-left corner. Emitted walls wind
clockwise: top left to right, right top to bottom, bottom right to left,
left bottom to top.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence, Union

from floorcore.adjacency import edge_overlap
from floorcore.config import DEFAULT_WALL_HEIGHT, DEFAULT_WALL_THICKNESS, EngineConfig
from floorcore.geometry import calculate_position_on_wall, find_nearest_wall
from floorcore.models import (
    SIDE_ORDER,
    ConnectionType,
    DoorInstance,
    FloorPlan,
    MaterialRef,
    OpeningType,
    Point2D,
    Room,
    RoomBounds,
    RoomConnection,
    Side,
    Wall,
    WallOpening,
    WindowInstance,
    new_id,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-6


@dataclass
class EdgeExclusion:
    """Span of an edge where this room must not generate wall material.

    ``walled`` is set when the neighbour's own wall fills the span, and
    left unset for open spans (direct connections and passages).
    """

    start: float
    end: float
    walled: bool = False


@dataclass
class EdgeSpan:
    start: float
    end: float
    starts_at_corner: bool
    ends_at_corner: bool


@dataclass
class WallSegment:
    side: Side
    start: Point2D
    end: Point2D


def owns_shared_wall(room_id: str, other_room_id: str) -> bool:
    """Tie-break for wall connections: the smaller id builds the shared wall."""
    return room_id < other_room_id


def _edge_origin(bounds: RoomBounds, side: Side) -> float:
    return bounds.left if side in (Side.TOP, Side.BOTTOM) else bounds.top


# ------------------------------------------------------------------ #
# Step 1-3: exclusions and wall-present spans
# ------------------------------------------------------------------ #


def compute_edge_exclusions(
    room_id: str,
    bounds: RoomBounds,
    connections: Iterable[RoomConnection],
    rooms_by_id: Mapping[str, Room],
) -> dict[Side, list[EdgeExclusion]]:
    """Turn the room's connections into per-edge exclusion spans.

    Overlaps are recomputed from the live bounds of both rooms, so a
    connection stays correct after either room moves or resizes.
    """
    exclusions: dict[Side, list[EdgeExclusion]] = {side: [] for side in SIDE_ORDER}

    for conn in connections:
        if not conn.involves(room_id):
            continue
        other = rooms_by_id.get(conn.other_room_id(room_id))
        if other is None:
            continue
        side = conn.side_of(room_id)
        overlap = edge_overlap(bounds, other.bounds, side)
        if overlap is None:
            continue

        origin = _edge_origin(bounds, side)
        start, end = overlap[0] - origin, overlap[1] - origin

        if conn.type == ConnectionType.DIRECT:
            exclusions[side].append(EdgeExclusion(start, end))
            continue

        if not owns_shared_wall(room_id, other.id):
            exclusions[side].append(EdgeExclusion(start, end, walled=True))

        span = end - start
        for opening in conn.openings:
            o_start = start + opening.position * span
            o_end = min(end, o_start + opening.width * span)
            if o_end - o_start > EPSILON:
                exclusions[side].append(EdgeExclusion(o_start, o_end))

    return exclusions


def merge_exclusions(exclusions: Iterable[EdgeExclusion]) -> list[EdgeExclusion]:
    """Coalesce overlapping or touching spans."""
    merged: list[EdgeExclusion] = []
    for ex in sorted(exclusions, key=lambda e: (e.start, e.end)):
        if merged and ex.start <= merged[-1].end + EPSILON:
            last = merged[-1]
            last.end = max(last.end, ex.end)
            last.walled = last.walled and ex.walled
        else:
            merged.append(EdgeExclusion(ex.start, ex.end, ex.walled))
    return merged


def subtract_exclusions(length: float, exclusions: Iterable[EdgeExclusion]) -> list[EdgeSpan]:
    """Parts of ``[0, length]`` left after removing the exclusions."""
    spans: list[EdgeSpan] = []
    cursor = 0.0
    for ex in merge_exclusions(exclusions):
        start, end = max(0.0, ex.start), min(length, ex.end)
        if end <= start:
            continue
        if start - cursor > EPSILON:
            spans.append(EdgeSpan(cursor, start, cursor <= EPSILON, False))
        cursor = max(cursor, end)
    if length - cursor > EPSILON:
        spans.append(EdgeSpan(cursor, length, cursor <= EPSILON, True))
    return spans


# ------------------------------------------------------------------ #
# Step 4: wall segments
# ------------------------------------------------------------------ #


def _corner_neighbour(bounds: RoomBounds, side: Side, at_end: bool) -> tuple[Side, float]:
    """The perpendicular edge meeting ``side`` at one of its ends, and where."""
    if side in (Side.TOP, Side.BOTTOM):
        perpendicular = Side.RIGHT if at_end else Side.LEFT
        return perpendicular, (0.0 if side == Side.TOP else bounds.height)
    perpendicular = Side.BOTTOM if at_end else Side.TOP
    return perpendicular, (bounds.width if side == Side.RIGHT else 0.0)


def has_wall_at(
    bounds: RoomBounds,
    exclusions: Mapping[Side, Sequence[EdgeExclusion]],
    side: Side,
    position: float,
) -> bool:
    """Whether wall material stands at ``position`` along ``side``.

    Either the room's own wall, or a neighbour's wall filling an exclusion.
    """
    if bounds.edge_length(side) <= EPSILON:
        return False
    covering = [
        ex for ex in exclusions.get(side, ()) if ex.start - EPSILON <= position <= ex.end + EPSILON
    ]
    return all(ex.walled for ex in covering)


def _segment_points(
    bounds: RoomBounds, side: Side, a: float, b: float, half: float
) -> tuple[Point2D, Point2D]:
    if side == Side.TOP:
        y = bounds.top - half
        return Point2D(x=bounds.left + a, y=y), Point2D(x=bounds.left + b, y=y)
    if side == Side.RIGHT:
        x = bounds.right + half
        return Point2D(x=x, y=bounds.top + a), Point2D(x=x, y=bounds.top + b)
    if side == Side.BOTTOM:
        y = bounds.bottom + half
        return Point2D(x=bounds.left + b, y=y), Point2D(x=bounds.left + a, y=y)
    x = bounds.left - half
    return Point2D(x=x, y=bounds.top + b), Point2D(x=x, y=bounds.top + a)


def synthesize_wall_segments(
    bounds: RoomBounds,
    exclusions: Optional[Mapping[Side, Sequence[EdgeExclusion]]] = None,
    thickness: float = DEFAULT_WALL_THICKNESS,
) -> list[WallSegment]:
    """Wall centrelines for a room after removing the excluded spans."""
    exclusions = exclusions or {}
    half = thickness / 2
    segments: list[WallSegment] = []

    for side in SIDE_ORDER:
        length = bounds.edge_length(side)
        if length <= EPSILON:
            continue

        side_segments = []
        for span in subtract_exclusions(length, exclusions.get(side, ())):
            start, end = span.start, span.end
            if span.starts_at_corner:
                perpendicular, pos = _corner_neighbour(bounds, side, at_end=False)
                if has_wall_at(bounds, exclusions, perpendicular, pos):
                    start -= half
            else:
                start += half
            if span.ends_at_corner:
                perpendicular, pos = _corner_neighbour(bounds, side, at_end=True)
                if has_wall_at(bounds, exclusions, perpendicular, pos):
                    end += half
            else:
                end -= half

            if end - start <= EPSILON:
                continue
            p1, p2 = _segment_points(bounds, side, start, end, half)
            side_segments.append(WallSegment(side, p1, p2))

        # bottom and left run backwards to keep the clockwise winding
        if side in (Side.BOTTOM, Side.LEFT):
            side_segments.reverse()
        segments.extend(side_segments)

    return segments


def build_walls(
    segments: Sequence[WallSegment],
    room_id: Optional[str],
    thickness: float = DEFAULT_WALL_THICKNESS,
    height: float = DEFAULT_WALL_HEIGHT,
    id_factory: Callable[[], str] = new_id,
    material: Optional[MaterialRef] = None,
) -> list[Wall]:
    return [
        Wall(
            id=id_factory(),
            start=seg.start,
            end=seg.end,
            thickness=thickness,
            height=height,
            material=material.model_copy() if material else MaterialRef(),
            openings=[],
            owner_room_id=room_id,
        )
        for seg in segments
    ]


def generate_walls_from_bounds(
    bounds: RoomBounds,
    room_id: Optional[str] = None,
    thickness: float = DEFAULT_WALL_THICKNESS,
    height: float = DEFAULT_WALL_HEIGHT,
    id_factory: Callable[[], str] = new_id,
) -> list[Wall]:
    """Four walls around an unconnected room."""
    return build_walls(synthesize_wall_segments(bounds, None, thickness), room_id, thickness, height, id_factory)


def generate_room_walls(
    room: Room,
    connections: Iterable[RoomConnection],
    rooms: Union[Sequence[Room], Mapping[str, Room]],
    config: Optional[EngineConfig] = None,
    id_factory: Callable[[], str] = new_id,
) -> list[Wall]:
    """Full synthesis for one room against the live bounds of its neighbours."""
    config = config or EngineConfig()
    rooms_by_id = rooms if isinstance(rooms, Mapping) else {r.id: r for r in rooms}
    thickness = room.wall_thickness if room.wall_thickness is not None else config.wall_thickness
    height = room.wall_height if room.wall_height is not None else config.wall_height

    exclusions = compute_edge_exclusions(room.id, room.bounds, connections, rooms_by_id)
    segments = synthesize_wall_segments(room.bounds, exclusions, thickness)
    return build_walls(segments, room.id, thickness, height, id_factory)


# ------------------------------------------------------------------ #
# Step 5: replacing a room's walls
# ------------------------------------------------------------------ #


def wall_side(wall: Wall, bounds: RoomBounds) -> Optional[Side]:
    """Which side of ``bounds`` an owned wall runs along."""
    dx = wall.end.x - wall.start.x
    dy = wall.end.y - wall.start.y
    if dx == 0 and dy == 0:
        return None
    center = bounds.center
    if abs(dx) >= abs(dy):
        mid_y = (wall.start.y + wall.end.y) / 2
        return Side.TOP if mid_y < center.y else Side.BOTTOM
    mid_x = (wall.start.x + wall.end.x) / 2
    return Side.LEFT if mid_x < center.x else Side.RIGHT


def opening_for(item: Union[DoorInstance, WindowInstance]) -> WallOpening:
    if isinstance(item, DoorInstance):
        return WallOpening(
            id=new_id(),
            type=OpeningType.DOOR,
            position=item.position,
            width=item.width,
            height=item.height,
            elevation_from_floor=0,
            reference_id=item.id,
        )
    return WallOpening(
        id=new_id(),
        type=OpeningType.WINDOW,
        position=item.position,
        width=item.width,
        height=item.height,
        elevation_from_floor=item.elevation_from_floor,
        reference_id=item.id,
    )


def replace_room_walls(
    plan: FloorPlan,
    room: Room,
    new_walls: Sequence[Wall],
    previous_bounds: Optional[RoomBounds] = None,
) -> list[str]:
    """Swap all and only the walls owned by ``room`` for ``new_walls``.

    Doors and windows on the old walls move to the closest new wall on the
    same side of the room, keeping their place relative to the room. Items
    whose side has no wall left are removed. Returns the ids of the removed
    doors and windows.
    """
    previous_bounds = previous_bounds or room.bounds
    old_walls = {w.id: w for w in plan.walls if w.owner_room_id == room.id}

    plan.walls = [w for w in plan.walls if w.owner_room_id != room.id]
    plan.walls.extend(new_walls)
    room.wall_ids = [w.id for w in new_walls]

    if not old_walls:
        return []

    new_by_side: dict[Side, list[Wall]] = {}
    for wall in new_walls:
        side = wall_side(wall, room.bounds)
        if side is not None:
            new_by_side.setdefault(side, []).append(wall)

    dx = room.bounds.x - previous_bounds.x
    dy = room.bounds.y - previous_bounds.y
    dropped: list[str] = []

    for item in [*plan.doors, *plan.windows]:
        old_wall = old_walls.get(item.wall_id)
        if old_wall is None:
            continue
        side = wall_side(old_wall, previous_bounds)
        anchor = calculate_position_on_wall(old_wall, item.position).center
        anchor = Point2D(x=anchor.x + dx, y=anchor.y + dy)

        nearest = find_nearest_wall(anchor, new_by_side.get(side, []), threshold=math.inf)
        if nearest is None:
            logger.warning(
                "%s %s has no wall left on its side of room %s, removing it",
                type(item).__name__,
                item.id,
                room.id,
            )
            dropped.append(item.id)
            continue

        item.wall_id = nearest.wall.id
        item.position = min(max(nearest.position, 0.0), nearest.wall.length)
        nearest.wall.openings.append(opening_for(item))

    if dropped:
        gone = set(dropped)
        plan.doors = [d for d in plan.doors if d.id not in gone]
        plan.windows = [w for w in plan.windows if w.id not in gone]
    return dropped
