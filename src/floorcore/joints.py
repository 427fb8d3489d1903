# src/floorcore/joints.py
"""Wall joints: junctions where two or more wall endpoints meet."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Sequence

import numpy as np

from floorcore.config import WALL_CONNECTION_TOLERANCE
from floorcore.models import Point2D, Wall

Endpoint = Literal["start", "end"]


@dataclass(frozen=True)
class JointMember:
    wall_id: str
    endpoint: Endpoint


@dataclass
class WallJoint:
    position: Point2D
    members: list[JointMember] = field(default_factory=list)

    @property
    def wall_ids(self) -> set[str]:
        return {m.wall_id for m in self.members}


def points_are_connected(
    a: Point2D, b: Point2D, tolerance: float = WALL_CONNECTION_TOLERANCE
) -> bool:
    """Check if two endpoints are close enough to be joined."""
    return abs(a.x - b.x) < tolerance and abs(a.y - b.y) < tolerance


def get_walls_at_point(
    point: Point2D, walls: Sequence[Wall], tolerance: float = WALL_CONNECTION_TOLERANCE
) -> list[tuple[JointMember, Point2D]]:
    """All wall endpoints near ``point``."""
    results = []
    for wall in walls:
        if points_are_connected(wall.start, point, tolerance):
            results.append((JointMember(wall.id, "start"), wall.start))
        if points_are_connected(wall.end, point, tolerance):
            results.append((JointMember(wall.id, "end"), wall.end))
    return results


def _collect_endpoints(walls: Sequence[Wall]) -> tuple[list[JointMember], np.ndarray]:
    members: list[JointMember] = []
    coords: list[tuple[float, float]] = []
    for wall in walls:
        members.append(JointMember(wall.id, "start"))
        coords.append((wall.start.x, wall.start.y))
        members.append(JointMember(wall.id, "end"))
        coords.append((wall.end.x, wall.end.y))
    return members, np.array(coords, dtype=float).reshape(-1, 2)


def _proximity_matrix(coords: np.ndarray, tolerance: float) -> np.ndarray:
    # Same per-axis test as points_are_connected, for every pair at once
    deltas = np.abs(coords[:, None, :] - coords[None, :, :])
    return (deltas < tolerance).all(axis=2)


def _single_link_groups(near: np.ndarray) -> list[list[int]]:
    visited = np.zeros(len(near), dtype=bool)
    groups = []
    for i in range(len(near)):
        if visited[i]:
            continue
        # Gather against the seed only; members are not re-checked against each other
        group = [i] + [j for j in range(i + 1, len(near)) if not visited[j] and near[i, j]]
        visited[group] = True
        groups.append(group)
    return groups


def _union_find_groups(near: np.ndarray) -> list[list[int]]:
    parent = list(range(len(near)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i, j in zip(*np.nonzero(np.triu(near, k=1))):
        ri, rj = find(int(i)), find(int(j))
        if ri != rj:
            parent[max(ri, rj)] = min(ri, rj)

    groups: dict[int, list[int]] = {}
    for i in range(len(near)):
        groups.setdefault(find(i), []).append(i)
    return sorted(groups.values(), key=lambda g: g[0])


def build_wall_joints(
    walls: Sequence[Wall],
    tolerance: float = WALL_CONNECTION_TOLERANCE,
    method: str = "single_link",
) -> list[WallJoint]:
    """Cluster wall endpoints into joints of two or more endpoints.

    ``single_link`` makes one pass, grouping every still-unvisited endpoint
    near each seed. ``union_find`` merges the tolerance graph transitively,
    so a chain of near points ends up in a single joint.
    """
    if not walls:
        return []
    members, coords = _collect_endpoints(walls)
    near = _proximity_matrix(coords, tolerance)

    if method == "single_link":
        groups = _single_link_groups(near)
    elif method == "union_find":
        groups = _union_find_groups(near)
    else:
        raise ValueError(f"unknown joint clustering method: {method}")

    joints = []
    for group in groups:
        if len(group) < 2:
            continue
        center = coords[group].mean(axis=0)
        joints.append(
            WallJoint(
                position=Point2D(x=float(center[0]), y=float(center[1])),
                members=[members[i] for i in group],
            )
        )
    return joints


def get_wall_joint_positions(
    walls: Sequence[Wall],
    tolerance: float = WALL_CONNECTION_TOLERANCE,
    method: str = "single_link",
) -> list[Point2D]:
    return [j.position for j in build_wall_joints(walls, tolerance, method)]
