# src/floorcore/containment.py
"""Room containment hierarchy and furniture membership."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from floorcore.errors import ContainmentCycleError, UnknownEntityError
from floorcore.geometry import (
    bounds_area,
    bounds_equal,
    is_bounds_fully_contained,
    is_point_in_bounds,
)
from floorcore.models import FloorPlan, FurnitureInstance, Point2D, Room, RoomBounds

logger = logging.getLogger(__name__)


def get_contained_furniture_ids(
    bounds: RoomBounds, furniture: Sequence[FurnitureInstance]
) -> list[str]:
    """Ids of furniture whose centre lies inside ``bounds``."""
    return [f.id for f in furniture if is_point_in_bounds(f.position, bounds)]


def is_strictly_contained(inner: RoomBounds, outer: RoomBounds) -> bool:
    """``inner`` lies inside ``outer`` and is not the same rectangle."""
    return is_bounds_fully_contained(inner, outer) and not bounds_equal(inner, outer)


def get_contained_room_ids(
    bounds: RoomBounds, rooms: Sequence[Room], exclude_id: Optional[str] = None
) -> list[str]:
    """Ids of rooms lying fully inside ``bounds``. Partial overlap does not count."""
    return [
        r.id for r in rooms if r.id != exclude_id and is_strictly_contained(r.bounds, bounds)
    ]


def find_parent_room_for_bounds(
    bounds: RoomBounds, rooms: Sequence[Room], exclude_id: Optional[str] = None
) -> Optional[Room]:
    """Smallest room that fully contains ``bounds``."""
    candidates = [
        r for r in rooms if r.id != exclude_id and is_strictly_contained(bounds, r.bounds)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda r: bounds_area(r.bounds))


def find_parent_room_for_point(
    point: Point2D, rooms: Sequence[Room], exclude_room_id: Optional[str] = None
) -> Optional[Room]:
    """Innermost (smallest) room containing ``point``."""
    smallest: Optional[Room] = None
    smallest_area = float("inf")
    for room in rooms:
        if room.id == exclude_room_id:
            continue
        if is_point_in_bounds(point, room.bounds):
            area = bounds_area(room.bounds)
            if area < smallest_area:
                smallest_area = area
                smallest = room
    return smallest


def resolve_containment(plan: FloorPlan) -> list[str]:
    """Recompute the whole hierarchy from the current bounds.

    Sets every room's parent to its innermost container (clearing it for
    rooms no longer contained), lists every room and furniture item nested
    inside it at any depth, and assigns furniture to the innermost room
    holding its centre. Returns the ids of rooms whose parent changed.
    """
    changed = []
    for room in plan.rooms:
        parent = find_parent_room_for_bounds(room.bounds, plan.rooms, room.id)
        parent_id = parent.id if parent else None
        if parent_id != room.parent_room_id:
            logger.debug("room %s parent %s -> %s", room.id, room.parent_room_id, parent_id)
            room.parent_room_id = parent_id
            changed.append(room.id)

    for room in plan.rooms:
        room.contained_room_ids = get_contained_room_ids(room.bounds, plan.rooms, room.id)
        room.contained_furniture_ids = get_contained_furniture_ids(room.bounds, plan.furniture)

    for item in plan.furniture:
        holder = find_parent_room_for_point(item.position, plan.rooms)
        item.parent_room_id = holder.id if holder else None

    return changed


def ancestor_chain(plan: FloorPlan, room_id: str) -> list[str]:
    """Ids from the room's parent up to the root."""
    rooms = plan.rooms_by_id()
    if room_id not in rooms:
        raise UnknownEntityError("room", room_id)

    chain: list[str] = []
    seen = {room_id}
    current = rooms[room_id].parent_room_id
    while current is not None:
        if current in seen:
            raise ContainmentCycleError(f"room {room_id} is its own ancestor via {current}")
        seen.add(current)
        chain.append(current)
        parent = rooms.get(current)
        current = parent.parent_room_id if parent else None
    return chain


def collect_descendant_room_ids(plan: FloorPlan, room_id: str) -> list[str]:
    """All rooms nested under ``room_id``, breadth first."""
    children: dict[str, list[str]] = {}
    for room in plan.rooms:
        if room.parent_room_id is not None:
            children.setdefault(room.parent_room_id, []).append(room.id)

    result: list[str] = []
    seen = {room_id}
    queue = list(children.get(room_id, []))
    while queue:
        current = queue.pop(0)
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        queue.extend(children.get(current, []))
    return result


@dataclass
class TranslatedItems:
    room_ids: list[str] = field(default_factory=list)
    furniture_ids: list[str] = field(default_factory=list)


def translate_room_tree(plan: FloorPlan, room_id: str, dx: float, dy: float) -> TranslatedItems:
    """Move a room with everything inside it by the same delta.

    Nested rooms and their owned walls move along, and so does every
    unlocked furniture item whose centre sits in the room, each exactly once.
    """
    room = plan.get_room(room_id)
    if room is None:
        raise UnknownEntityError("room", room_id)

    moved = TranslatedItems(room_ids=[room_id, *collect_descendant_room_ids(plan, room_id)])
    furniture_ids = set(get_contained_furniture_ids(room.bounds, plan.furniture))
    rooms = plan.rooms_by_id()

    for rid in moved.room_ids:
        target = rooms[rid]
        target.bounds = target.bounds.translated(dx, dy)
        for wall in plan.walls_for_room(rid):
            wall.start = Point2D(x=wall.start.x + dx, y=wall.start.y + dy)
            wall.end = Point2D(x=wall.end.x + dx, y=wall.end.y + dy)

    for item in plan.furniture:
        if item.id in furniture_ids and not item.locked:
            item.position = Point2D(x=item.position.x + dx, y=item.position.y + dy)
            moved.furniture_ids.append(item.id)

    return moved
