# src/floorcore/editor.py
"""Document-level edit operations over a caller-owned FloorPlan."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping, Optional

from floorcore.adjacency import RoomSnapResult, calculate_room_snap, sync_room_connections
from floorcore.config import EngineConfig
from floorcore.containment import (
    collect_descendant_room_ids,
    resolve_containment,
    translate_room_tree,
)
from floorcore.errors import FloorPlanError, UnknownEntityError
from floorcore.geometry import bounds_area, bounds_perimeter, get_polygon_from_walls
from floorcore.joints import WallJoint, build_wall_joints
from floorcore.models import (
    ConnectionOpening,
    ConnectionType,
    Dimensions3D,
    DoorInstance,
    FloorPlan,
    FurnitureInstance,
    Point2D,
    Room,
    RoomBounds,
    RoomConnection,
    RoomType,
    Wall,
    WindowInstance,
    new_id,
)
from floorcore.walls import generate_room_walls, opening_for, replace_room_walls

logger = logging.getLogger(__name__)


class FloorPlanEditor:
    """Applies edits to a FloorPlan in place and keeps derived data current.

    The editor holds no state of its own beyond the plan it was handed.
    After any change to room bounds the work runs in a fixed order: bounds
    are final, connections are re-synced, walls of the affected rooms are
    regenerated, containment is resolved, and room metrics are refreshed.
    """

    def __init__(
        self,
        plan: Optional[FloorPlan] = None,
        config: Optional[EngineConfig] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.plan = plan if plan is not None else FloorPlan(id=new_id())
        self.config = config or EngineConfig()
        self.id_factory = id_factory or new_id

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def room(self, room_id: str) -> Room:
        room = self.plan.get_room(room_id)
        if room is None:
            raise UnknownEntityError("room", room_id)
        return room

    def wall(self, wall_id: str) -> Wall:
        wall = self.plan.get_wall(wall_id)
        if wall is None:
            raise UnknownEntityError("wall", wall_id)
        return wall

    def connection(self, connection_id: str) -> RoomConnection:
        conn = self.plan.get_connection(connection_id)
        if conn is None:
            raise UnknownEntityError("connection", connection_id)
        return conn

    def connection_between(self, room_a: str, room_b: str) -> Optional[RoomConnection]:
        return next(
            (c for c in self.plan.connections if set(c.room_ids) == {room_a, room_b}),
            None,
        )

    # ------------------------------------------------------------------ #
    # Rooms
    # ------------------------------------------------------------------ #

    def snap(
        self,
        bounds: RoomBounds,
        exclude_room_id: Optional[str] = None,
        wall_thickness: Optional[float] = None,
    ) -> RoomSnapResult:
        """Snap proposed bounds against every room except the excluded one and its nest.

        The excluded room is the one being edited; its thickness override
        applies unless ``wall_thickness`` is given.
        """
        skip = set()
        if exclude_room_id is not None:
            skip = {exclude_room_id, *collect_descendant_room_ids(self.plan, exclude_room_id)}
            if wall_thickness is None:
                wall_thickness = self.room(exclude_room_id).wall_thickness
        others = [r for r in self.plan.rooms if r.id not in skip]
        return calculate_room_snap(bounds, others, config=self.config, wall_thickness=wall_thickness)

    def add_room(
        self,
        bounds: RoomBounds,
        name: str = "Room",
        room_type: RoomType = RoomType.CUSTOM,
        room_id: Optional[str] = None,
        snap: bool = False,
        wall_thickness: Optional[float] = None,
        wall_height: Optional[float] = None,
    ) -> Room:
        room_id = room_id or self.id_factory()
        if self.plan.get_room(room_id) is not None:
            raise FloorPlanError(f"room '{room_id}' already exists")
        if snap:
            bounds = self.snap(bounds, wall_thickness=wall_thickness).snapped_bounds

        room = Room(
            id=room_id,
            name=name,
            type=room_type,
            bounds=bounds,
            z_index=max((r.z_index for r in self.plan.rooms), default=-1) + 1,
            wall_thickness=wall_thickness,
            wall_height=wall_height,
        )
        self.plan.rooms.append(room)
        logger.debug("added room %s at %s", room.id, bounds)
        self._after_bounds_change([room.id])
        return room

    def move_room(self, room_id: str, dx: float, dy: float, snap: bool = False) -> Room:
        """Translate a room, its nested rooms and its furniture."""
        room = self.room(room_id)
        if snap:
            snapped = self.snap(room.bounds.translated(dx, dy), exclude_room_id=room_id).snapped_bounds
            dx = snapped.x - room.bounds.x
            dy = snapped.y - room.bounds.y

        # Owned walls travel with the tree, so doors keep their anchors as is
        moved = translate_room_tree(self.plan, room_id, dx, dy)
        self._after_bounds_change(moved.room_ids)
        return room

    def resize_room(self, room_id: str, bounds: RoomBounds, snap: bool = False) -> Room:
        room = self.room(room_id)
        if snap:
            bounds = self.snap(bounds, exclude_room_id=room_id).snapped_bounds
        previous = {room_id: room.bounds}
        room.bounds = bounds
        self._after_bounds_change([room_id], previous)
        return room

    def remove_room(self, room_id: str) -> None:
        """Delete a room with its walls, the openings on them and its connections."""
        room = self.room(room_id)
        neighbours = {c.other_room_id(room_id) for c in self.plan.connections_for_room(room_id)}
        owned = {w.id for w in self.plan.walls_for_room(room_id)}

        self.plan.walls = [w for w in self.plan.walls if w.id not in owned]
        self.plan.doors = [d for d in self.plan.doors if d.wall_id not in owned]
        self.plan.windows = [w for w in self.plan.windows if w.wall_id not in owned]
        self.plan.connections = [c for c in self.plan.connections if not c.involves(room_id)]
        self.plan.rooms = [r for r in self.plan.rooms if r.id != room.id]

        self.regenerate_walls(neighbours)
        resolve_containment(self.plan)
        logger.debug("removed room %s (%d walls)", room_id, len(owned))

    # ------------------------------------------------------------------ #
    # Derived data
    # ------------------------------------------------------------------ #

    def affected_room_ids(self, room_ids: Iterable[str], depth: Optional[int] = None) -> set[str]:
        """Rooms reachable from ``room_ids`` over at most ``depth`` connections."""
        depth = self.config.regeneration_depth if depth is None else depth
        affected = {rid for rid in room_ids if self.plan.get_room(rid) is not None}
        frontier = set(affected)
        for _ in range(depth):
            reached = set()
            for conn in self.plan.connections:
                a, b = conn.room_ids
                if a in frontier and b not in affected:
                    reached.add(b)
                elif b in frontier and a not in affected:
                    reached.add(a)
            if not reached:
                break
            affected |= reached
            frontier = reached
        return affected

    def regenerate_walls(
        self,
        room_ids: Optional[Iterable[str]] = None,
        previous_bounds: Optional[Mapping[str, RoomBounds]] = None,
    ) -> None:
        """Rebuild the owned walls of the given rooms (all rooms by default)."""
        rooms = self.plan.rooms_by_id()
        targets = sorted(rooms) if room_ids is None else sorted(set(room_ids) & set(rooms))
        previous_bounds = previous_bounds or {}

        for rid in targets:
            room = rooms[rid]
            walls = generate_room_walls(
                room, self.plan.connections_for_room(rid), rooms, self.config, self.id_factory
            )
            replace_room_walls(self.plan, room, walls, previous_bounds.get(rid))
        logger.debug("regenerated walls for %d rooms", len(targets))

    def rebuild(self) -> None:
        """Full recompute pass: connections, walls, containment and metrics."""
        for room in list(self.plan.rooms):
            sync_room_connections(self.plan, room.id, self.config, self.id_factory)
        self.regenerate_walls()
        resolve_containment(self.plan)
        for room in self.plan.rooms:
            self._update_metrics(room)

    def room_polygon(self, room_id: str) -> list[Point2D]:
        room = self.room(room_id)
        return get_polygon_from_walls(self.plan.walls, room.wall_ids, self.config.point_tolerance)

    def joints(self) -> list[WallJoint]:
        return build_wall_joints(
            self.plan.walls, self.config.wall_connection_tolerance, self.config.joint_method
        )

    def _update_metrics(self, room: Room) -> None:
        room.area = bounds_area(room.bounds)
        room.perimeter = bounds_perimeter(room.bounds)

    def _after_bounds_change(
        self,
        room_ids: list[str],
        previous_bounds: Optional[Mapping[str, RoomBounds]] = None,
    ) -> None:
        touched = set(room_ids)
        for rid in room_ids:
            touched |= {c.other_room_id(rid) for c in self.plan.connections_for_room(rid)}
        for rid in room_ids:
            changes = sync_room_connections(self.plan, rid, self.config, self.id_factory)
            touched |= changes.touched_room_ids

        self.regenerate_walls(self.affected_room_ids(touched), previous_bounds)
        resolve_containment(self.plan)
        for rid in room_ids:
            self._update_metrics(self.room(rid))

    # ------------------------------------------------------------------ #
    # Connections
    # ------------------------------------------------------------------ #

    def _regenerate_connection(self, conn: RoomConnection) -> None:
        self.regenerate_walls(self.affected_room_ids(conn.room_ids))

    def set_connection_type(self, connection_id: str, connection_type: ConnectionType) -> RoomConnection:
        """Change a connection's type; the choice survives later re-syncs."""
        conn = self.connection(connection_id)
        conn.type = ConnectionType(connection_type)
        conn.type_locked = True
        self._regenerate_connection(conn)
        return conn

    def add_connection_opening(
        self, connection_id: str, position: float = 0.25, width: float = 0.5
    ) -> ConnectionOpening:
        conn = self.connection(connection_id)
        if conn.type != ConnectionType.WALL:
            raise FloorPlanError("openings can only be cut into wall connections")
        opening = ConnectionOpening(id=self.id_factory(), position=position, width=width)
        conn.openings.append(opening)
        self._regenerate_connection(conn)
        return opening

    def remove_connection_opening(self, connection_id: str, opening_id: str) -> None:
        conn = self.connection(connection_id)
        remaining = [o for o in conn.openings if o.id != opening_id]
        if len(remaining) == len(conn.openings):
            raise UnknownEntityError("connection opening", opening_id)
        conn.openings = remaining
        self._regenerate_connection(conn)

    def remove_connection(self, connection_id: str) -> None:
        """Drop a connection; both rooms get their full walls back until the next sync."""
        conn = self.connection(connection_id)
        self.plan.connections = [c for c in self.plan.connections if c.id != connection_id]
        self._regenerate_connection(conn)

    # ------------------------------------------------------------------ #
    # Standalone walls
    # ------------------------------------------------------------------ #

    def add_wall(
        self,
        start: Point2D,
        end: Point2D,
        thickness: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Wall:
        wall = Wall(
            id=self.id_factory(),
            start=start,
            end=end,
            thickness=self.config.wall_thickness if thickness is None else thickness,
            height=self.config.wall_height if height is None else height,
        )
        self.plan.walls.append(wall)
        return wall

    def remove_wall(self, wall_id: str) -> None:
        """Remove a standalone wall and the doors and windows on it."""
        wall = self.wall(wall_id)
        if wall.owner_room_id is not None:
            raise FloorPlanError(
                f"wall '{wall_id}' belongs to room '{wall.owner_room_id}'; edit the room instead"
            )
        self.plan.walls = [w for w in self.plan.walls if w.id != wall_id]
        self.plan.doors = [d for d in self.plan.doors if d.wall_id != wall_id]
        self.plan.windows = [w for w in self.plan.windows if w.wall_id != wall_id]

    # ------------------------------------------------------------------ #
    # Doors and windows
    # ------------------------------------------------------------------ #

    def add_door(
        self,
        wall_id: str,
        position: float,
        width: float = 90,
        height: float = 210,
        open_direction: str = "inward",
    ) -> DoorInstance:
        wall = self.wall(wall_id)
        door = DoorInstance(
            id=self.id_factory(),
            wall_id=wall_id,
            position=min(max(position, 0.0), wall.length),
            width=width,
            height=height,
            open_direction=open_direction,
        )
        self.plan.doors.append(door)
        wall.openings.append(opening_for(door))
        return door

    def add_window(
        self,
        wall_id: str,
        position: float,
        width: float = 120,
        height: float = 120,
        elevation_from_floor: float = 90,
    ) -> WindowInstance:
        wall = self.wall(wall_id)
        window = WindowInstance(
            id=self.id_factory(),
            wall_id=wall_id,
            position=min(max(position, 0.0), wall.length),
            width=width,
            height=height,
            elevation_from_floor=elevation_from_floor,
        )
        self.plan.windows.append(window)
        wall.openings.append(opening_for(window))
        return window

    def _detach_opening(self, wall_id: str, reference_id: str) -> None:
        wall = self.plan.get_wall(wall_id)
        if wall is not None:
            wall.openings = [o for o in wall.openings if o.reference_id != reference_id]

    def remove_door(self, door_id: str) -> None:
        door = next((d for d in self.plan.doors if d.id == door_id), None)
        if door is None:
            raise UnknownEntityError("door", door_id)
        self._detach_opening(door.wall_id, door_id)
        self.plan.doors = [d for d in self.plan.doors if d.id != door_id]

    def remove_window(self, window_id: str) -> None:
        window = next((w for w in self.plan.windows if w.id == window_id), None)
        if window is None:
            raise UnknownEntityError("window", window_id)
        self._detach_opening(window.wall_id, window_id)
        self.plan.windows = [w for w in self.plan.windows if w.id != window_id]

    # ------------------------------------------------------------------ #
    # Furniture
    # ------------------------------------------------------------------ #

    def add_furniture(
        self,
        position: Point2D,
        catalog_item_id: str = "generic",
        dimensions: Optional[Dimensions3D] = None,
        furniture_id: Optional[str] = None,
    ) -> FurnitureInstance:
        item = FurnitureInstance(
            id=furniture_id or self.id_factory(),
            catalog_item_id=catalog_item_id,
            position=position,
        )
        if dimensions is not None:
            item.dimensions = dimensions
        self.plan.furniture.append(item)
        resolve_containment(self.plan)
        return item

    def move_furniture(self, furniture_id: str, position: Point2D) -> FurnitureInstance:
        item = self.plan.get_furniture(furniture_id)
        if item is None:
            raise UnknownEntityError("furniture", furniture_id)
        if not item.locked:
            item.position = position
            resolve_containment(self.plan)
        return item

    def remove_furniture(self, furniture_id: str) -> None:
        if self.plan.get_furniture(furniture_id) is None:
            raise UnknownEntityError("furniture", furniture_id)
        self.plan.furniture = [f for f in self.plan.furniture if f.id != furniture_id]
        resolve_containment(self.plan)
