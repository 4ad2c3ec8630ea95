import numpy as np
import pytest

from stowage_planner.core.grid import (
    GridProjection,
    fill_info,
    item_cells,
    layer_labels,
    occupancy,
    occupies_layer,
)
from stowage_planner.core.models import Container

from conftest import make_item


# ---------------------------------------------------------------------------
# Abtastung
# ---------------------------------------------------------------------------

def test_item_cells_from_percent(container):
    # 8 Spalten × 10 Zeilen, 1 ft pro Zelle
    rect = item_cells(make_item("a", 50, 30), container)
    assert (rect.x, rect.y, rect.width, rect.height) == (4, 3, 2, 2)


def test_item_cells_use_real_feet():
    van = Container(id="v", name="Van", location_id="l", length=10, width=8,
                    real_length=20, real_width=16)
    rect = item_cells(make_item("a", 0, 0, item_width=4, item_length=3), van)
    assert (rect.width, rect.height) == (2, 2)   # 2 ft/Zelle → ceil(1.5) = 2


def test_item_cells_clipped_to_grid(container):
    rect = item_cells(make_item("a", 100, 95, item_width=5, item_length=5), container)
    assert rect.x == container.width - 1
    assert rect.x + rect.width <= container.width
    assert rect.y + rect.height <= container.length


def test_small_items_occupy_at_least_one_cell(container):
    rect = item_cells(make_item("a", 0, 0, item_width=0.1, item_length=0.1), container)
    assert (rect.width, rect.height) == (1, 1)


@pytest.mark.parametrize(
    "layer, expected",
    [(0, False), (1, True), (2, True), (3, False)],
)
def test_occupies_layer_span(layer, expected):
    item = make_item("a", 0, 0, layer=1, item_height=2)
    assert occupies_layer(item, layer) is expected


def test_layer_labels(container):
    assert layer_labels(container) == ["Ground", "Layer 1", "Layer 2"]


# ---------------------------------------------------------------------------
# Projektion
# ---------------------------------------------------------------------------

def test_last_painted_item_wins(container):
    low = make_item("low", 0, 0, paint_order=0)
    high = make_item("high", 0, 0, paint_order=5)
    proj = GridProjection(container, [high, low])
    assert proj.cell_item(0, 0).key == "high"


def test_projection_shows_only_selected_layer(container):
    ground = make_item("g", 0, 0)
    upper = make_item("u", 50, 50, layer=1)
    proj = GridProjection(container, [ground, upper], layer=1)
    assert proj.cell_item(0, 0) is None
    assert proj.cell_item(4, 5).key == "u"


def test_stack_count_spans_all_layers(container):
    items = [make_item("a", 0, 0), make_item("b", 0, 0, layer=1)]
    proj = GridProjection(container, items, layer=0)
    assert proj.stack_count(0, 0) == 2
    assert proj.is_stacked(1, 1)
    assert not proj.is_stacked(5, 5)


def test_rotated_projection_swaps_axes(container):
    item = make_item("a", 50, 0)                 # kanonisch Spalte 4, Zeile 0
    proj = GridProjection(container, [item], rotated=True)
    assert (proj.grid_width, proj.grid_length) == (container.length, container.width)
    assert proj.cell_item(0, 4).key == "a"
    assert proj.edge_labels() == ("Left Side", "Right Side")
    click = proj.click(0, 4)
    assert (click.x, click.y) == (4, 0)


def test_rows_match_grid_shape(container):
    proj = GridProjection(container, [])
    rows = proj.rows()
    assert len(rows) == container.length
    assert all(len(r) == container.width for r in rows)


def test_click_readonly_returns_none(container):
    proj = GridProjection(container, [make_item("a", 0, 0)], readonly=True)
    assert proj.click(0, 0) is None


def test_click_empty_cell(container):
    click = GridProjection(container, []).click(3, 2)
    assert (click.x, click.y, click.item) == (3, 2, None)


# ---------------------------------------------------------------------------
# Belegung / Füllgrad
# ---------------------------------------------------------------------------

def test_occupancy_array(container):
    counts = occupancy(container, [make_item("a", 0, 0), make_item("b", 0, 0)])
    assert counts.shape == (container.length, container.width)
    assert counts[0, 0] == 2
    assert int(np.sum(counts)) == 8


def test_fill_info(container):
    info = fill_info(container, [make_item("a", 0, 0), make_item("b", 50, 50)])
    assert info.item_count == 2
    assert info.occupied_cells == 8
    assert info.total_cells == 80
    assert info.fill_percentage == 10
