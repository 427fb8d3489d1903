# tests/test_containment.py
import pytest

from floorcore.containment import (
    ancestor_chain,
    collect_descendant_room_ids,
    find_parent_room_for_bounds,
    find_parent_room_for_point,
    get_contained_room_ids,
    resolve_containment,
    translate_room_tree,
)
from floorcore.errors import ContainmentCycleError, UnknownEntityError
from floorcore.models import FloorPlan, FurnitureInstance, Point2D, Room, RoomBounds, Wall


def _room(rid, x, y, w, h):
    return Room(id=rid, bounds=RoomBounds(x=x, y=y, width=w, height=h))


@pytest.fixture
def nested_plan():
    return FloorPlan(
        rooms=[
            _room("house", 0, 0, 1000, 1000),
            _room("suite", 100, 100, 400, 400),
            _room("closet", 120, 120, 50, 50),
            _room("garage", 1200, 0, 400, 400),
        ],
        furniture=[
            FurnitureInstance(id="sofa", position=Point2D(x=700, y=700)),
            FurnitureInstance(id="shelf", position=Point2D(x=140, y=140)),
        ],
    )


def test_parent_is_smallest_container(nested_plan):
    rooms = nested_plan.rooms
    assert find_parent_room_for_bounds(rooms[2].bounds, rooms, "closet").id == "suite"
    assert find_parent_room_for_bounds(rooms[3].bounds, rooms, "garage") is None


def test_identical_bounds_do_not_nest():
    rooms = [_room("a", 0, 0, 100, 100), _room("b", 0, 0, 100, 100)]
    assert find_parent_room_for_bounds(rooms[0].bounds, rooms, "a") is None


def test_partial_overlap_is_not_containment():
    rooms = [_room("a", 0, 0, 100, 100), _room("b", 50, 50, 100, 100)]
    assert get_contained_room_ids(rooms[0].bounds, rooms, "a") == []


def test_point_goes_to_innermost_room(nested_plan):
    assert find_parent_room_for_point(Point2D(x=140, y=140), nested_plan.rooms).id == "closet"
    assert find_parent_room_for_point(Point2D(x=140, y=140), nested_plan.rooms, "closet").id == "suite"
    assert find_parent_room_for_point(Point2D(x=5000, y=0), nested_plan.rooms) is None


def test_resolve_builds_hierarchy(nested_plan):
    changed = resolve_containment(nested_plan)
    assert sorted(changed) == ["closet", "suite"]
    rooms = nested_plan.rooms_by_id()
    assert rooms["suite"].parent_room_id == "house"
    assert rooms["closet"].parent_room_id == "suite"
    assert rooms["garage"].parent_room_id is None
    assert rooms["house"].contained_room_ids == ["suite", "closet"]
    assert rooms["suite"].contained_room_ids == ["closet"]
    assert sorted(rooms["house"].contained_furniture_ids) == ["shelf", "sofa"]
    assert nested_plan.get_furniture("shelf").parent_room_id == "closet"
    assert nested_plan.get_furniture("sofa").parent_room_id == "house"


def test_contained_rooms_include_every_level():
    plan = FloorPlan(
        rooms=[
            _room("outer", 0, 0, 900, 900),
            _room("mid", 100, 100, 500, 500),
            _room("inner", 200, 200, 100, 100),
        ]
    )
    resolve_containment(plan)
    rooms = plan.rooms_by_id()
    assert rooms["outer"].contained_room_ids == ["mid", "inner"]
    assert rooms["mid"].contained_room_ids == ["inner"]
    assert rooms["inner"].contained_room_ids == []
    assert rooms["inner"].parent_room_id == "mid"


def test_resolve_is_stable(nested_plan):
    resolve_containment(nested_plan)
    assert resolve_containment(nested_plan) == []


def test_resolve_clears_stale_parent(nested_plan):
    resolve_containment(nested_plan)
    nested_plan.get_room("closet").bounds = RoomBounds(x=2000, y=2000, width=50, height=50)
    assert resolve_containment(nested_plan) == ["closet"]
    assert nested_plan.get_room("closet").parent_room_id is None
    assert nested_plan.get_room("suite").contained_room_ids == []


def test_hierarchy_has_no_cycles(nested_plan):
    resolve_containment(nested_plan)
    for room in nested_plan.rooms:
        chain = ancestor_chain(nested_plan, room.id)
        assert room.id not in chain
    assert ancestor_chain(nested_plan, "closet") == ["suite", "house"]


def test_ancestor_chain_detects_cycle():
    a = _room("a", 0, 0, 10, 10)
    b = _room("b", 0, 0, 10, 10)
    a.parent_room_id = "b"
    b.parent_room_id = "a"
    plan = FloorPlan(rooms=[a, b])
    with pytest.raises(ContainmentCycleError):
        ancestor_chain(plan, "a")
    with pytest.raises(UnknownEntityError):
        ancestor_chain(plan, "zzz")


def test_descendants_breadth_first(nested_plan):
    resolve_containment(nested_plan)
    assert collect_descendant_room_ids(nested_plan, "house") == ["suite", "closet"]
    assert collect_descendant_room_ids(nested_plan, "garage") == []


def test_translate_tree_moves_everything_once(nested_plan):
    resolve_containment(nested_plan)
    nested_plan.walls.append(
        Wall(id="w", start=Point2D(x=120, y=120), end=Point2D(x=170, y=120), owner_room_id="closet")
    )
    nested_plan.get_furniture("sofa").locked = True

    moved = translate_room_tree(nested_plan, "house", 10, -5)

    assert moved.room_ids == ["house", "suite", "closet"]
    assert moved.furniture_ids == ["shelf"]
    assert nested_plan.get_room("closet").bounds.x == 130
    assert nested_plan.get_room("garage").bounds.x == 1200
    wall = nested_plan.get_wall("w")
    assert (wall.start.x, wall.start.y, wall.end.x) == (130, 115, 180)
    assert nested_plan.get_furniture("shelf").position == Point2D(x=150, y=135)
    assert nested_plan.get_furniture("sofa").position == Point2D(x=700, y=700)


def test_translate_unknown_room():
    with pytest.raises(UnknownEntityError):
        translate_room_tree(FloorPlan(), "nope", 1, 1)
