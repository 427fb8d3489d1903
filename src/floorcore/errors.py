# src/floorcore/errors.py
"""Errors raised by floor plan edit operations."""
from __future__ import annotations


class FloorPlanError(Exception):
    """Base class for floor plan editing errors."""


class UnknownEntityError(FloorPlanError, KeyError):
    """Raised when an id does not resolve to a room, wall, connection or item."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.args[0]


class ContainmentCycleError(FloorPlanError):
    """Raised when parent_room_id pointers loop back on themselves."""
