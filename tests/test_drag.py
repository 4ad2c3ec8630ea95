import pytest

from stowage_planner.core.coords import CanvasSize, ScreenRect
from stowage_planner.core.drag import DIRECT_GEAR_KEY, STAGED_GEAR_KEY, DragEngine
from stowage_planner.core.models import GearItem, PendingId
from stowage_planner.core.session import StowageSession
from stowage_planner.core.store import MemoryDocumentStore

from conftest import make_item

CANVAS = CanvasSize(width=800, height=400)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class Recorder:
    def __init__(self):
        self.moves = []
        self.places = []
        self.touch_completed = 0

    def on_move(self, item_id, changes):
        self.moves.append((item_id, changes))

    def on_place(self, gear, position):
        self.places.append((gear.id, position))

    def on_touch_complete(self):
        self.touch_completed += 1


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def engine(container, recorder):
    return DragEngine(
        container,
        CANVAS,
        on_move=recorder.on_move,
        on_place=recorder.on_place,
        on_touch_complete=recorder.on_touch_complete,
    )


@pytest.fixture()
def gear():
    return [GearItem(id="g1", description="Bass cabinet", band_id="Owls",
                     current_location_id="main-stage")]


# ---------------------------------------------------------------------------
# Drag
# ---------------------------------------------------------------------------

def test_drag_clamps_to_canvas_and_commits_once(engine, recorder):
    item = make_item("a", 10, 10)
    assert engine.begin_drag(item, 100, 50)
    assert engine.continue_drag(5_000, 5_000) == pytest.approx((75.0, 80.0))
    changes = engine.end_drag()

    assert changes == pytest.approx({"x_position": 75.0, "y_position": 80.0})
    assert len(recorder.moves) == 1
    assert recorder.moves[0][0] == item.id
    assert not engine.is_dragging


def test_drag_keeps_pointer_offset(engine):
    item = make_item("a", 10, 10)           # 80 px / 40 px
    engine.begin_drag(item, 90, 45)         # 10 px / 5 px ins Item hinein
    x_pct, y_pct = engine.continue_drag(410, 205)
    assert (x_pct, y_pct) == pytest.approx((50.0, 50.0))


def test_drag_clamps_at_origin(engine):
    item = make_item("a", 10, 10)
    engine.begin_drag(item, 80, 40)
    assert engine.continue_drag(-300, -300) == (0.0, 0.0)


def test_live_item_reflects_drag_position(engine):
    item = make_item("a", 10, 10)
    engine.begin_drag(item, 80, 40)
    engine.continue_drag(400, 200)
    live = engine.live_item(item)
    assert live.x_position == pytest.approx(50)
    assert item.x_position == 10              # Original bleibt unverändert


def test_pending_item_drag_is_not_committed(engine, recorder):
    item = make_item("a", 10, 10).with_changes(id=PendingId("temp_1"))
    engine.begin_drag(item, 80, 40)
    engine.continue_drag(400, 200)
    assert engine.end_drag() is None
    assert recorder.moves == []


def test_cancel_drag_discards_position(engine, recorder):
    engine.begin_drag(make_item("a", 10, 10), 80, 40)
    engine.continue_drag(400, 200)
    engine.cancel_drag()
    assert engine.end_drag() is None
    assert recorder.moves == []


def test_readonly_blocks_drag_and_drop(container, recorder, gear):
    engine = DragEngine(container, CANVAS, on_move=recorder.on_move,
                        on_place=recorder.on_place, readonly=True)
    assert engine.begin_drag(make_item("a", 10, 10), 80, 40) is False
    assert engine.drop({DIRECT_GEAR_KEY: "g1"}, 100, 100, gear=gear) is None
    assert recorder.moves == [] and recorder.places == []


def test_oversized_item_pins_to_origin(container, recorder):
    engine = DragEngine(container, CANVAS, on_move=recorder.on_move)
    huge = make_item("big", 0, 0, item_width=20, item_length=20)
    engine.begin_drag(huge, 10, 10)
    assert engine.continue_drag(500, 300) == (0.0, 0.0)


# ---------------------------------------------------------------------------
# Drop / Touch
# ---------------------------------------------------------------------------

def test_drop_converts_pointer_to_percent(engine, recorder, gear):
    position = engine.drop({DIRECT_GEAR_KEY: "g1"}, 400, 120, gear=gear)
    assert position == pytest.approx((50.0, 30.0))
    assert recorder.places == [("g1", position)]


def test_drop_prefers_staged_lookup(engine, recorder, gear):
    staged = [GearItem(id="g1", description="staged copy")]
    engine.drop({STAGED_GEAR_KEY: "g1"}, 0, 0, staged=staged, gear=gear)
    assert recorder.places[0][0] == "g1"


def test_drop_unknown_gear_is_ignored(engine, recorder, gear):
    assert engine.drop({DIRECT_GEAR_KEY: "nope"}, 10, 10, gear=gear) is None
    assert engine.drop({}, 10, 10, gear=gear) is None
    assert recorder.places == []


def test_touch_drop_inside_places_and_completes(engine, recorder, gear):
    rect = ScreenRect(left=100, top=50, right=900, bottom=450)
    position = engine.touch_drop(gear[0], 500, 250, rect)
    assert position == pytest.approx((50.0, 50.0))
    assert recorder.touch_completed == 1


def test_touch_drop_outside_still_completes(engine, recorder, gear):
    rect = ScreenRect(left=100, top=50, right=900, bottom=450)
    assert engine.touch_drop(gear[0], 20, 20, rect) is None
    assert recorder.places == []
    assert recorder.touch_completed == 1


# ---------------------------------------------------------------------------
# End-to-End: Drop → Drag → Löschen
# ---------------------------------------------------------------------------

class CountingStore(MemoryDocumentStore):
    def __init__(self, initial):
        super().__init__(initial)
        self.deletes = []

    def delete(self, collection, doc_id):
        self.deletes.append((collection, doc_id))
        super().delete(collection, doc_id)


def test_drop_drag_delete_scenario(seed_data):
    store = CountingStore(seed_data)
    session = StowageSession(store)
    session.load()
    container = session.container("c1")
    engine = DragEngine(
        container,
        CANVAS,
        on_move=session.move_item,
        on_place=lambda gear_item, pos: session.place_gear(container, gear_item, pos),
    )

    engine.drop({DIRECT_GEAR_KEY: "g1"}, 400, 120, gear=session.gear)
    [item] = session.items_in_container("c1")
    assert not item.is_pending
    assert (item.x_position, item.y_position) == pytest.approx((50.0, 30.0))

    engine.begin_drag(item, 400, 120)
    engine.continue_drag(10_000, 10_000)
    engine.end_drag()
    [moved] = session.items_in_container("c1")
    assert (moved.x_position, moved.y_position) == pytest.approx((75.0, 80.0))
    stored = store.get("stowage_items", str(moved.id))
    assert stored["x_position"] == pytest.approx(75.0)

    session.request_delete_item(moved).accept()
    assert session.items_in_container("c1") == []
    assert store.deletes == [("stowage_items", str(moved.id))]
