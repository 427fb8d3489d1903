# src/floorcore/adjacency.py
"""Room adjacency: snapping while editing and connection detection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from floorcore.config import EngineConfig
from floorcore.errors import UnknownEntityError
from floorcore.models import (
    SIDE_ORDER,
    Axis,
    ConnectionType,
    FloorPlan,
    Point2D,
    Room,
    RoomBounds,
    RoomConnection,
    Side,
    new_id,
)

logger = logging.getLogger(__name__)


@dataclass
class RoomEdge:
    room_id: str
    side: Side
    start: Point2D
    end: Point2D


@dataclass
class SnapGuide:
    """Alignment line shown while a room is dragged. Advisory only."""

    axis: Axis
    position: float
    start: float
    end: float


@dataclass
class SnapCandidate:
    room_id: str
    axis: Axis
    side: Side
    other_side: Side
    type: ConnectionType
    gap: float


@dataclass
class RoomSnapResult:
    snapped_bounds: RoomBounds
    guides: list[SnapGuide] = field(default_factory=list)
    candidates: list[SnapCandidate] = field(default_factory=list)


@dataclass
class AdjacencyFact:
    room_id: str
    axis: Axis
    side: Side
    other_side: Side
    gap: float
    overlap: tuple[float, float]
    type: ConnectionType


@dataclass
class ConnectionChanges:
    created: list[RoomConnection] = field(default_factory=list)
    updated: list[RoomConnection] = field(default_factory=list)
    removed: list[RoomConnection] = field(default_factory=list)

    @property
    def touched_room_ids(self) -> set[str]:
        return {rid for c in self.created + self.updated + self.removed for rid in c.room_ids}

    def __bool__(self) -> bool:
        return bool(self.created or self.updated or self.removed)


def room_edges(room: Room) -> list[RoomEdge]:
    """The four edges of a room, clockwise from the top."""
    b = room.bounds
    return [
        RoomEdge(room.id, Side.TOP, Point2D(x=b.left, y=b.top), Point2D(x=b.right, y=b.top)),
        RoomEdge(room.id, Side.RIGHT, Point2D(x=b.right, y=b.top), Point2D(x=b.right, y=b.bottom)),
        RoomEdge(room.id, Side.BOTTOM, Point2D(x=b.right, y=b.bottom), Point2D(x=b.left, y=b.bottom)),
        RoomEdge(room.id, Side.LEFT, Point2D(x=b.left, y=b.bottom), Point2D(x=b.left, y=b.top)),
    ]


def span_overlap(
    a_start: float, a_end: float, b_start: float, b_end: float
) -> Optional[tuple[float, float]]:
    """Intersection of two 1-D spans, or None when they do not overlap."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if end <= start:
        return None
    return start, end


def edge_overlap(bounds: RoomBounds, other: RoomBounds, side: Side) -> Optional[tuple[float, float]]:
    """World-coordinate overlap along ``side`` of ``bounds`` with ``other``."""
    if side in (Side.TOP, Side.BOTTOM):
        return span_overlap(bounds.left, bounds.right, other.left, other.right)
    return span_overlap(bounds.top, bounds.bottom, other.top, other.bottom)


def edge_gap(bounds: RoomBounds, other: RoomBounds, side: Side) -> float:
    """Distance from ``side`` of ``bounds`` to the facing edge of ``other``.

    Positive when the rooms are apart, negative when they overlap.
    """
    if side == Side.TOP:
        return bounds.top - other.bottom
    if side == Side.BOTTOM:
        return other.top - bounds.bottom
    if side == Side.LEFT:
        return bounds.left - other.right
    return other.left - bounds.right


def facing_edge_position(other: RoomBounds, side: Side) -> float:
    """Coordinate of the edge of ``other`` that faces ``side``."""
    return {
        Side.TOP: other.bottom,
        Side.BOTTOM: other.top,
        Side.LEFT: other.right,
        Side.RIGHT: other.left,
    }[side]


def classify_gap(
    gap: float, config: EngineConfig, current: Optional[ConnectionType] = None
) -> ConnectionType:
    """Pick the connection type for a gap.

    With ``current`` set, the threshold shifts by the hysteresis band in
    favour of the current type so a room hovering at the threshold keeps it.
    """
    threshold = config.direct_snap_threshold
    if current == ConnectionType.DIRECT:
        threshold += config.connection_hysteresis
    elif current == ConnectionType.WALL:
        threshold -= config.connection_hysteresis
    return ConnectionType.DIRECT if gap < threshold else ConnectionType.WALL


# ------------------------------------------------------------------ #
# Snap while editing
# ------------------------------------------------------------------ #


def calculate_room_snap(
    proposed: RoomBounds,
    rooms: Sequence[Room],
    exclude_room_id: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    wall_thickness: Optional[float] = None,
) -> RoomSnapResult:
    """Snap a proposed rectangle against the edges of the other rooms.

    X and Y are handled independently; on each axis the closest qualifying
    edge pair wins. Gaps under the direct threshold close to zero, gaps under
    the wall threshold open to exactly one wall thickness. ``wall_thickness``
    is the moving room's override; the thicker wall of each pair is used.
    """
    config = config or EngineConfig()
    best: dict[Axis, tuple[float, float, SnapCandidate, RoomBounds]] = {}

    for room in rooms:
        if room.id == exclude_room_id:
            continue
        for side in SIDE_ORDER:
            if edge_overlap(proposed, room.bounds, side) is None:
                continue
            gap = edge_gap(proposed, room.bounds, side)
            distance = abs(gap)
            thickness = config.pair_wall_thickness(wall_thickness, room.wall_thickness)
            if distance >= config.wall_snap_window(thickness):
                continue

            if distance < config.direct_snap_threshold:
                ctype, target = ConnectionType.DIRECT, 0.0
            else:
                ctype, target = ConnectionType.WALL, thickness

            # Moving the TOP/LEFT edge towards the neighbour means a negative delta
            sign = -1.0 if side in (Side.TOP, Side.LEFT) else 1.0
            offset = sign * (gap - target)

            axis = side.axis
            if axis in best and best[axis][0] <= distance:
                continue
            candidate = SnapCandidate(room.id, axis, side, side.opposite, ctype, gap)
            best[axis] = (distance, offset, candidate, room.bounds)

    dx = best[Axis.VERTICAL][1] if Axis.VERTICAL in best else 0.0
    dy = best[Axis.HORIZONTAL][1] if Axis.HORIZONTAL in best else 0.0
    snapped = proposed.translated(dx, dy) if (dx or dy) else proposed.model_copy()

    result = RoomSnapResult(snapped_bounds=snapped)
    for axis in (Axis.HORIZONTAL, Axis.VERTICAL):
        if axis not in best:
            continue
        _, _, candidate, other = best[axis]
        result.candidates.append(candidate)
        overlap = edge_overlap(snapped, other, candidate.side)
        if overlap is None:
            continue
        result.guides.append(
            SnapGuide(
                axis=axis,
                position=facing_edge_position(other, candidate.side),
                start=overlap[0] - config.guide_overhang,
                end=overlap[1] + config.guide_overhang,
            )
        )
    return result


# ------------------------------------------------------------------ #
# Adjacency query and connection sync
# ------------------------------------------------------------------ #


def find_adjacent_rooms(
    bounds: RoomBounds,
    rooms: Sequence[Room],
    exclude_room_id: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    wall_thickness: Optional[float] = None,
) -> list[AdjacencyFact]:
    """Report every facing edge pair close enough to form a connection.

    The band for each pair is its wall thickness plus the connection tolerance.
    """
    config = config or EngineConfig()
    facts = []
    for room in rooms:
        if room.id == exclude_room_id:
            continue
        for side in SIDE_ORDER:
            overlap = edge_overlap(bounds, room.bounds, side)
            if overlap is None or overlap[1] - overlap[0] <= config.min_overlap:
                continue
            gap = edge_gap(bounds, room.bounds, side)
            max_gap = config.adjacency_max_gap_for(
                config.pair_wall_thickness(wall_thickness, room.wall_thickness)
            )
            if not -config.point_tolerance < gap <= max_gap:
                continue
            facts.append(
                AdjacencyFact(
                    room_id=room.id,
                    axis=side.axis,
                    side=side,
                    other_side=side.opposite,
                    gap=gap,
                    overlap=overlap,
                    type=classify_gap(max(gap, 0.0), config),
                )
            )
    return facts


def sync_room_connections(
    plan: FloorPlan,
    room_id: str,
    config: Optional[EngineConfig] = None,
    id_factory: Callable[[], str] = new_id,
) -> ConnectionChanges:
    """Bring the connections of one room in line with its current bounds.

    Existing connections survive until the rooms leave the adjacency band
    plus the hysteresis margin; unlocked ones are reclassified with
    hysteresis. New facing edge pairs become new connections.
    """
    config = config or EngineConfig()
    room = plan.get_room(room_id)
    if room is None:
        raise UnknownEntityError("room", room_id)

    others = [r for r in plan.rooms if r.id != room_id]
    facts = find_adjacent_rooms(room.bounds, others, room_id, config, room.wall_thickness)
    pending = {(f.room_id, f.side): f for f in facts}
    changes = ConnectionChanges()
    kept: list[RoomConnection] = []

    for conn in plan.connections:
        if not conn.involves(room_id):
            kept.append(conn)
            continue
        other = plan.get_room(conn.other_room_id(room_id))
        if other is None:
            changes.removed.append(conn)
            continue

        side = conn.side_of(room_id)
        overlap = edge_overlap(room.bounds, other.bounds, side)
        gap = edge_gap(room.bounds, other.bounds, side)
        thickness = config.pair_wall_thickness(room.wall_thickness, other.wall_thickness)
        exit_gap = config.adjacency_max_gap_for(thickness) + config.connection_hysteresis
        if (
            overlap is None
            or overlap[1] - overlap[0] <= config.min_overlap
            or not -config.point_tolerance < gap <= exit_gap
        ):
            changes.removed.append(conn)
            continue

        pending.pop((other.id, side), None)
        if not conn.type_locked:
            new_type = classify_gap(max(gap, 0.0), config, conn.type)
            if new_type != conn.type:
                conn.type = new_type
                changes.updated.append(conn)
        kept.append(conn)

    for fact in pending.values():
        conn = RoomConnection(
            id=id_factory(),
            room_ids=(room_id, fact.room_id),
            axis=fact.axis,
            room_sides=(fact.side, fact.other_side),
            type=fact.type,
        )
        kept.append(conn)
        changes.created.append(conn)

    plan.connections = kept
    if changes:
        logger.debug(
            "room %s connections: %d created, %d updated, %d removed",
            room_id,
            len(changes.created),
            len(changes.updated),
            len(changes.removed),
        )
    return changes
