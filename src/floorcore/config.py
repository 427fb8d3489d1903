# src/floorcore/config.py
"""Engine tunables. All distances are in centimeters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_WALL_THICKNESS = 15.0
DEFAULT_WALL_HEIGHT = 280.0
WALL_CONNECTION_TOLERANCE = 5.0
DIRECT_SNAP_THRESHOLD = 5.0
WALL_SNAP_THRESHOLD = 20.0
POINT_TOLERANCE = 1.0

JOINT_METHODS = ("single_link", "union_find")


@dataclass
class EngineConfig:
    """Configuration for wall synthesis, snapping and adjacency."""

    wall_thickness: float = DEFAULT_WALL_THICKNESS
    wall_height: float = DEFAULT_WALL_HEIGHT
    wall_connection_tolerance: float = WALL_CONNECTION_TOLERANCE
    direct_snap_threshold: float = DIRECT_SNAP_THRESHOLD
    wall_snap_threshold: float = WALL_SNAP_THRESHOLD
    point_tolerance: float = POINT_TOLERANCE
    min_overlap: float = 1.0
    connection_hysteresis: float = 2.5
    guide_overhang: float = 20.0
    regeneration_depth: int = 2
    joint_method: str = "single_link"

    def __post_init__(self) -> None:
        for name in (
            "wall_thickness",
            "wall_connection_tolerance",
            "direct_snap_threshold",
            "wall_snap_threshold",
            "point_tolerance",
            "min_overlap",
            "connection_hysteresis",
            "guide_overhang",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.wall_height <= 0:
            raise ValueError("wall_height must be positive")
        if self.direct_snap_threshold > self.wall_snap_threshold:
            raise ValueError("direct_snap_threshold must not exceed wall_snap_threshold")
        if self.regeneration_depth < 0:
            raise ValueError("regeneration_depth must be non-negative")
        if self.joint_method not in JOINT_METHODS:
            raise ValueError(f"joint_method must be one of {', '.join(JOINT_METHODS)}")

    def pair_wall_thickness(self, *overrides: Optional[float]) -> float:
        """Thickness of the wall between rooms with the given overrides.

        The thickest override wins; without any the configured default applies.
        """
        values = [t for t in overrides if t is not None]
        return max(values) if values else self.wall_thickness

    def adjacency_max_gap_for(self, thickness: float) -> float:
        """Largest edge gap that still counts as adjacent."""
        return thickness + self.wall_connection_tolerance

    def wall_snap_window(self, thickness: float) -> float:
        """Gaps below this snap to one wall thickness; never narrower than the wall."""
        return max(self.wall_snap_threshold, self.adjacency_max_gap_for(thickness))
