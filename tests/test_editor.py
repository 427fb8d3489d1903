# tests/test_editor.py
import pytest

from floorcore.config import EngineConfig
from floorcore.editor import FloorPlanEditor
from floorcore.errors import FloorPlanError, UnknownEntityError
from floorcore.geometry import get_polygon_area, walls_extent
from floorcore.models import (
    Axis,
    ConnectionType,
    FloorPlan,
    Point2D,
    Room,
    RoomBounds,
    Side,
)
from floorcore.walls import wall_side


def _bounds(x, y, w=300, h=300):
    return RoomBounds(x=x, y=y, width=w, height=h)


def _sides(editor, room_id):
    room = editor.room(room_id)
    return sorted(wall_side(w, room.bounds).value for w in editor.plan.walls_for_room(room_id))


@pytest.fixture
def editor():
    counter = iter(range(100000))
    return FloorPlanEditor(id_factory=lambda: f"id{next(counter)}")


def test_single_room(editor):
    room = editor.add_room(_bounds(0, 0, 400, 300), room_id="a")
    walls = editor.plan.walls_for_room("a")
    assert len(walls) == 4
    assert room.wall_ids == [w.id for w in walls]
    ext = walls_extent(walls)
    assert (ext.width, ext.height) == (415, 315)
    assert room.area == pytest.approx(120000)
    assert room.perimeter == pytest.approx(1400)
    assert get_polygon_area(editor.room_polygon("a")) == pytest.approx(415 * 315)


def test_rooms_sharing_an_edge_merge(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(300, 0), room_id="b")
    conn = editor.connection_between("a", "b")
    assert conn.type == ConnectionType.DIRECT
    assert conn.axis == Axis.VERTICAL
    assert conn.side_of("a") == Side.RIGHT
    assert conn.side_of("b") == Side.LEFT
    assert "right" not in _sides(editor, "a")
    assert "left" not in _sides(editor, "b")


def test_rooms_a_wall_apart_share_one_wall(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(315, 0), room_id="b")
    conn = editor.connection_between("a", "b")
    assert conn.type == ConnectionType.WALL
    assert _sides(editor, "a") == ["bottom", "left", "right", "top"]
    assert "left" not in _sides(editor, "b")


def test_shared_wall_forms_t_junctions(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(315, 0), room_id="b")
    joints = editor.joints()
    assert len(joints) == 6
    assert sum(1 for j in joints if len(j.members) == 3) == 2


def test_add_room_with_snap(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    room = editor.add_room(_bounds(303, 0), room_id="b", snap=True)
    assert room.bounds.x == pytest.approx(300)
    assert editor.connection_between("a", "b").type == ConnectionType.DIRECT


def test_add_room_rejects_duplicate_id(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    with pytest.raises(FloorPlanError):
        editor.add_room(_bounds(900, 0), room_id="a")


def test_z_index_increments(editor):
    a = editor.add_room(_bounds(0, 0), room_id="a")
    b = editor.add_room(_bounds(900, 0), room_id="b")
    assert (a.z_index, b.z_index) == (0, 1)


def test_move_room_apart_restores_walls(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(300, 0), room_id="b")
    editor.move_room("b", 500, 0)
    assert editor.plan.connections == []
    assert _sides(editor, "a") == ["bottom", "left", "right", "top"]
    assert _sides(editor, "b") == ["bottom", "left", "right", "top"]


def test_move_room_with_snap_opens_wall_gap(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(320, 0), room_id="b")
    room = editor.move_room("b", -6, 0, snap=True)
    assert room.bounds.x == pytest.approx(315)
    assert editor.connection_between("a", "b").type == ConnectionType.WALL


def test_move_keeps_door_on_its_wall(editor):
    room = editor.add_room(_bounds(0, 0, 400, 300), room_id="a")
    top = editor.plan.walls_for_room("a")[0]
    door = editor.add_door(top.id, 207.5)
    editor.move_room("a", 100, 50)
    new_top = editor.plan.get_wall(door.wall_id)
    assert new_top.owner_room_id == "a"
    assert wall_side(new_top, room.bounds) == Side.TOP
    assert door.position == pytest.approx(207.5)
    assert [o.reference_id for o in new_top.openings] == [door.id]


def test_resize_keeps_door_relative_to_corner(editor):
    editor.add_room(_bounds(0, 0, 400, 300), room_id="a")
    top = editor.plan.walls_for_room("a")[0]
    door = editor.add_door(top.id, 207.5)
    editor.resize_room("a", _bounds(0, 0, 600, 300))
    assert door.position == pytest.approx(207.5)
    assert editor.plan.get_wall(door.wall_id).length == pytest.approx(615)


def test_door_on_merged_wall_is_removed(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    a = editor.room("a")
    right = next(w for w in editor.plan.walls_for_room("a") if wall_side(w, a.bounds) == Side.RIGHT)
    editor.add_door(right.id, 150)
    editor.add_room(_bounds(300, 0), room_id="b")
    assert editor.plan.doors == []


def test_move_parent_carries_children_and_furniture(editor):
    editor.add_room(_bounds(0, 0, 1000, 1000), room_id="house")
    editor.add_room(_bounds(100, 100, 200, 200), room_id="closet")
    chair = editor.add_furniture(Point2D(x=500, y=500))
    assert editor.room("closet").parent_room_id == "house"
    assert chair.parent_room_id == "house"

    editor.move_room("house", 50, 0)
    assert editor.room("closet").bounds.x == 150
    assert chair.position == Point2D(x=550, y=500)
    closet_walls = editor.plan.walls_for_room("closet")
    assert min(w.start.x for w in closet_walls) == pytest.approx(142.5)


def test_nested_rooms_do_not_connect(editor):
    editor.add_room(_bounds(0, 0, 1000, 1000), room_id="house")
    editor.add_room(_bounds(0, 0, 200, 200), room_id="closet")
    assert editor.plan.connections == []
    assert len(editor.plan.walls_for_room("closet")) == 4


def test_remove_room_restores_neighbour(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(300, 0), room_id="b")
    editor.remove_room("b")
    assert editor.plan.connections == []
    assert editor.plan.walls_for_room("b") == []
    assert _sides(editor, "a") == ["bottom", "left", "right", "top"]


def test_affected_rooms_by_depth(editor):
    for i, rid in enumerate("abc"):
        editor.add_room(_bounds(300 * i, 0), room_id=rid)
    assert editor.affected_room_ids(["a"], depth=0) == {"a"}
    assert editor.affected_room_ids(["a"], depth=1) == {"a", "b"}
    assert editor.affected_room_ids(["a"], depth=2) == {"a", "b", "c"}
    assert editor.affected_room_ids(["ghost"]) == set()


def test_set_connection_type_is_sticky(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(315, 0), room_id="b")
    conn = editor.connection_between("a", "b")
    editor.set_connection_type(conn.id, ConnectionType.DIRECT)
    assert conn.type_locked
    assert "right" not in _sides(editor, "a")

    editor.move_room("b", 1, 0)
    assert editor.connection_between("a", "b").type == ConnectionType.DIRECT


def test_connection_opening_cuts_passage(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(315, 0), room_id="b")
    conn = editor.connection_between("a", "b")
    opening = editor.add_connection_opening(conn.id, position=0.25, width=0.5)
    assert _sides(editor, "a").count("right") == 2

    editor.remove_connection_opening(conn.id, opening.id)
    assert _sides(editor, "a").count("right") == 1
    with pytest.raises(UnknownEntityError):
        editor.remove_connection_opening(conn.id, opening.id)


def test_opening_requires_wall_connection(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(300, 0), room_id="b")
    conn = editor.connection_between("a", "b")
    with pytest.raises(FloorPlanError):
        editor.add_connection_opening(conn.id)


def test_remove_connection(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(300, 0), room_id="b")
    editor.remove_connection(editor.connection_between("a", "b").id)
    assert editor.plan.connections == []
    assert "right" in _sides(editor, "a")
    assert "left" in _sides(editor, "b")


def test_standalone_walls(editor):
    wall = editor.add_wall(Point2D(x=0, y=0), Point2D(x=500, y=0))
    assert wall.thickness == 15
    assert wall.owner_room_id is None
    window = editor.add_window(wall.id, 900)
    assert window.position == 500
    editor.remove_wall(wall.id)
    assert editor.plan.walls == []
    assert editor.plan.windows == []


def test_room_walls_cannot_be_removed_directly(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    with pytest.raises(FloorPlanError):
        editor.remove_wall(editor.room("a").wall_ids[0])


def test_remove_door_detaches_opening(editor):
    wall = editor.add_wall(Point2D(x=0, y=0), Point2D(x=500, y=0))
    door = editor.add_door(wall.id, 100)
    assert len(wall.openings) == 1
    editor.remove_door(door.id)
    assert wall.openings == []
    with pytest.raises(UnknownEntityError):
        editor.remove_door(door.id)


def test_locked_furniture_stays_put(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    item = editor.add_furniture(Point2D(x=100, y=100))
    item.locked = True
    editor.move_furniture(item.id, Point2D(x=900, y=900))
    assert item.position == Point2D(x=100, y=100)
    assert editor.room("a").contained_furniture_ids == [item.id]

    editor.remove_furniture(item.id)
    assert editor.room("a").contained_furniture_ids == []


def test_unknown_ids_raise_key_errors(editor):
    with pytest.raises(KeyError):
        editor.room("missing")
    with pytest.raises(UnknownEntityError) as exc:
        editor.move_room("missing", 1, 1)
    assert exc.value.kind == "room"
    with pytest.raises(UnknownEntityError):
        editor.move_furniture("missing", Point2D(x=0, y=0))


def test_rebuild_derives_everything():
    plan = FloorPlan(
        rooms=[
            Room(id="a", bounds=_bounds(0, 0)),
            Room(id="b", bounds=_bounds(300, 0)),
            Room(id="c", bounds=_bounds(0, 315)),
        ]
    )
    editor = FloorPlanEditor(plan, EngineConfig())
    editor.rebuild()
    types = {frozenset(c.room_ids): c.type for c in plan.connections}
    assert types == {
        frozenset({"a", "b"}): ConnectionType.DIRECT,
        frozenset({"a", "c"}): ConnectionType.WALL,
    }
    assert all(r.wall_ids for r in plan.rooms)
    assert plan.get_room("c").area == pytest.approx(90000)


def test_rebuild_is_idempotent():
    plan = FloorPlan(rooms=[Room(id="a", bounds=_bounds(0, 0)), Room(id="b", bounds=_bounds(315, 0))])
    editor = FloorPlanEditor(plan)
    editor.rebuild()
    first = [(w.start, w.end) for w in plan.walls]
    editor.rebuild()
    assert [(w.start, w.end) for w in plan.walls] == first


def test_thick_walled_rooms_share_one_wall(editor):
    editor.add_room(_bounds(0, 0), room_id="a", wall_thickness=25)
    b = editor.add_room(_bounds(312, 0), room_id="b", wall_thickness=25, snap=True)
    assert b.bounds.x == pytest.approx(325)
    assert editor.connection_between("a", "b").type == ConnectionType.WALL
    assert len(editor.plan.walls_for_room("a")) == 4
    assert "left" not in _sides(editor, "b")
    a = editor.room("a")
    right = next(w for w in editor.plan.walls_for_room("a") if wall_side(w, a.bounds) == Side.RIGHT)
    assert right.thickness == 25
    assert right.start.x == pytest.approx(312.5)


def test_move_snap_uses_room_override(editor):
    editor.add_room(_bounds(0, 0), room_id="a")
    editor.add_room(_bounds(900, 0), room_id="b", wall_thickness=25)
    room = editor.move_room("b", -572, 0, snap=True)
    assert room.bounds.x == pytest.approx(325)
    assert editor.connection_between("a", "b").type == ConnectionType.WALL
