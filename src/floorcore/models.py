# src/floorcore/models.py
"""Floor plan document model: rooms, walls, connections and placed items."""
from __future__ import annotations

import math
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def new_id() -> str:
    """Fresh identifier for walls, rooms, connections and openings."""
    return str(uuid.uuid4())


class Side(str, Enum):
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def opposite(self) -> "Side":
        return _OPPOSITE_SIDES[self]

    @property
    def axis(self) -> "Axis":
        """Axis of a connection made across this side."""
        if self in (Side.TOP, Side.BOTTOM):
            return Axis.HORIZONTAL
        return Axis.VERTICAL


_OPPOSITE_SIDES = {
    Side.TOP: Side.BOTTOM,
    Side.BOTTOM: Side.TOP,
    Side.LEFT: Side.RIGHT,
    Side.RIGHT: Side.LEFT,
}

# Clockwise, matching the order walls are emitted in.
SIDE_ORDER: tuple[Side, ...] = (Side.TOP, Side.RIGHT, Side.BOTTOM, Side.LEFT)


class Axis(str, Enum):
    HORIZONTAL = "horizontal"  # top/bottom edges, shared line runs along X
    VERTICAL = "vertical"  # left/right edges, shared line runs along Y


class ConnectionType(str, Enum):
    WALL = "wall"
    DIRECT = "direct"


class OpeningType(str, Enum):
    DOOR = "door"
    WINDOW = "window"


class RoomType(str, Enum):
    LIVING_ROOM = "living-room"
    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    DINING_ROOM = "dining-room"
    OFFICE = "office"
    HALLWAY = "hallway"
    STORAGE = "storage"
    LAUNDRY = "laundry"
    GARAGE = "garage"
    CUSTOM = "custom"


class Point2D(BaseModel):
    x: float
    y: float

    def distance_to(self, other: Point2D) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


class RoomBounds(BaseModel):
    """Interior floor rectangle of a room, (x, y) being the top-left corner."""

    x: float
    y: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point2D:
        return Point2D(x=self.x + self.width / 2, y=self.y + self.height / 2)

    def translated(self, dx: float, dy: float) -> RoomBounds:
        return RoomBounds(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def edge_length(self, side: Side) -> float:
        if side in (Side.TOP, Side.BOTTOM):
            return self.width
        return self.height


class MaterialRef(BaseModel):
    material_id: str = "white-paint"
    color_override: Optional[str] = None


class WallOpening(BaseModel):
    id: str
    type: OpeningType
    position: float = Field(ge=0, description="Distance from wall start to opening centre (cm)")
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    elevation_from_floor: float = Field(default=0, ge=0)
    reference_id: str = Field(description="Id of the DoorInstance or WindowInstance")


class Wall(BaseModel):
    id: str
    start: Point2D
    end: Point2D
    thickness: float = Field(default=15, ge=0)
    height: float = Field(default=280, gt=0)
    material: MaterialRef = Field(default_factory=MaterialRef)
    openings: list[WallOpening] = Field(default_factory=list)
    owner_room_id: Optional[str] = None

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)


class Room(BaseModel):
    id: str
    name: str = "Room"
    type: RoomType = RoomType.CUSTOM
    bounds: RoomBounds
    wall_ids: list[str] = Field(default_factory=list)
    parent_room_id: Optional[str] = None
    contained_room_ids: list[str] = Field(default_factory=list)
    contained_furniture_ids: list[str] = Field(default_factory=list)
    area: float = Field(default=0, ge=0, description="Interior floor area in cm^2")
    perimeter: float = Field(default=0, ge=0, description="Interior perimeter in cm")
    z_index: int = 0
    wall_thickness: Optional[float] = Field(default=None, ge=0)
    wall_height: Optional[float] = Field(default=None, gt=0)


class ConnectionOpening(BaseModel):
    """Passage through the shared wall of a wall connection.

    Both values are fractions of the live overlap between the two rooms, so
    the passage keeps its relative place when either room moves or resizes.
    """

    id: str
    position: float = Field(ge=0.0, le=1.0, description="Start of the passage (0-1)")
    width: float = Field(gt=0.0, le=1.0, description="Width of the passage (0-1)")


class RoomConnection(BaseModel):
    id: str
    room_ids: tuple[str, str]
    axis: Axis
    room_sides: tuple[Side, Side]
    type: ConnectionType = ConnectionType.WALL
    openings: list[ConnectionOpening] = Field(default_factory=list)
    type_locked: bool = Field(
        default=False, description="Type chosen by the user; adjacency sync keeps it"
    )

    @model_validator(mode="after")
    def validate_sides(self) -> RoomConnection:
        if self.room_ids[0] == self.room_ids[1]:
            raise ValueError("a connection must join two different rooms")
        side_a, side_b = self.room_sides
        if side_a.opposite != side_b:
            raise ValueError(f"sides {side_a.value}/{side_b.value} do not face each other")
        if side_a.axis != self.axis:
            raise ValueError(f"sides {side_a.value}/{side_b.value} do not lie on a {self.axis.value} axis")
        return self

    def involves(self, room_id: str) -> bool:
        return room_id in self.room_ids

    def other_room_id(self, room_id: str) -> str:
        a, b = self.room_ids
        return b if room_id == a else a

    def side_of(self, room_id: str) -> Side:
        """Side of ``room_id`` that faces the other room."""
        return self.room_sides[0] if self.room_ids[0] == room_id else self.room_sides[1]


class Dimensions3D(BaseModel):
    width: float = Field(gt=0)
    depth: float = Field(gt=0)
    height: float = Field(gt=0)


class FurnitureInstance(BaseModel):
    id: str
    catalog_item_id: str = "generic"
    position: Point2D
    rotation: float = 0
    dimensions: Dimensions3D = Field(
        default_factory=lambda: Dimensions3D(width=50, depth=50, height=50)
    )
    locked: bool = False
    parent_room_id: Optional[str] = None

    @field_validator("rotation")
    @classmethod
    def normalize_rotation(cls, v: float) -> float:
        return v % 360


class DoorInstance(BaseModel):
    id: str
    wall_id: str
    position: float = Field(ge=0)
    width: float = Field(default=90, gt=0)
    height: float = Field(default=210, gt=0)
    open_direction: str = "inward"

    @field_validator("open_direction")
    @classmethod
    def validate_open_direction(cls, v: str) -> str:
        if v not in ("left", "right", "inward", "outward"):
            raise ValueError("open_direction must be left, right, inward or outward")
        return v


class WindowInstance(BaseModel):
    id: str
    wall_id: str
    position: float = Field(ge=0)
    width: float = Field(default=120, gt=0)
    height: float = Field(default=120, gt=0)
    elevation_from_floor: float = Field(default=90, ge=0)


class FloorPlan(BaseModel):
    id: str = "floorplan"
    walls: list[Wall] = Field(default_factory=list)
    rooms: list[Room] = Field(default_factory=list)
    connections: list[RoomConnection] = Field(default_factory=list)
    furniture: list[FurnitureInstance] = Field(default_factory=list)
    doors: list[DoorInstance] = Field(default_factory=list)
    windows: list[WindowInstance] = Field(default_factory=list)

    def get_room(self, room_id: str) -> Optional[Room]:
        return next((r for r in self.rooms if r.id == room_id), None)

    def get_wall(self, wall_id: str) -> Optional[Wall]:
        return next((w for w in self.walls if w.id == wall_id), None)

    def get_connection(self, connection_id: str) -> Optional[RoomConnection]:
        return next((c for c in self.connections if c.id == connection_id), None)

    def get_furniture(self, furniture_id: str) -> Optional[FurnitureInstance]:
        return next((f for f in self.furniture if f.id == furniture_id), None)

    def walls_for_room(self, room_id: str) -> list[Wall]:
        return [w for w in self.walls if w.owner_room_id == room_id]

    def connections_for_room(self, room_id: str) -> list[RoomConnection]:
        return [c for c in self.connections if c.involves(room_id)]

    def rooms_by_id(self) -> dict[str, Room]:
        return {r.id: r for r in self.rooms}
