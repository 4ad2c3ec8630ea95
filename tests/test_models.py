# tests/test_models.py
"""
Unit-Tests für die Datenmodelle in src/stowage_planner/core/models.py
--------------------------------------------------------------------
Läuft mit `pytest` innerhalb weniger Millisekunden.
"""
from __future__ import annotations

import datetime

import pytest

from stowage_planner.core.labels import BAND_PALETTE, band_color, band_initials
from stowage_planner.core.models import (
    CommittedId,
    Container,
    GearItem,
    PendingId,
    StowageItem,
    ValidationError,
)


# --------------------------------------------------------------------------- #
#  Container
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "kwargs",
    [
        {"length": 2},
        {"width": 51},
        {"container_height": 0},
        {"container_height": 11},
        {"name": "  "},
    ],
)
def test_container_rejects_invalid_dimensions(kwargs):
    base = {"id": "c", "name": "Van", "location_id": "l", "length": 10, "width": 8}
    base.update(kwargs)
    with pytest.raises(ValidationError):
        Container(**base)


def test_container_feet_fall_back_to_cells():
    van = Container(id="c", name="Van", location_id="l", length=10, width=8)
    assert (van.width_ft, van.length_ft) == (8.0, 10.0)
    assert van.size_label() == "10×8 cells"


def test_container_round_trip_without_id():
    van = Container(id="c", name="Van", location_id="l", length=12, width=6,
                    real_length=12, real_width=6.5, preset_type="cargo_van")
    doc = van.to_dict()
    assert "id" not in doc
    assert Container.from_dict("c", doc) == van


# --------------------------------------------------------------------------- #
#  GearItem
# --------------------------------------------------------------------------- #
def test_gear_display_label_zero_padded():
    assert GearItem(id="g", description="Amp", display_id=42).display_label == "#0042"


@pytest.mark.parametrize(
    "flags, expected",
    [({}, True), ({"in_transit": True}, False), ({"checked_out": True}, False),
     ({"missing_status": "missing"}, False)],
)
def test_gear_availability_flags(flags, expected):
    gear = GearItem(id="g", description="Amp", current_location_id="main", **flags)
    assert gear.is_available_at("main") is expected
    assert gear.is_available_at("other") is False


# --------------------------------------------------------------------------- #
#  StowageItem
# --------------------------------------------------------------------------- #
def test_item_ids_are_tagged():
    pending, committed = PendingId("temp_1"), CommittedId("abc")
    assert pending.is_pending and not committed.is_pending
    assert str(committed) == "abc"
    assert pending != CommittedId("temp_1")


def test_item_from_legacy_z_document():
    item = StowageItem.from_dict("i1", {"container_id": "c", "gear_id": "g", "z": -2})
    assert item.id == CommittedId("i1")
    assert (item.layer, item.paint_order) == (0, -2)
    assert (item.item_width, item.item_length, item.item_height) == (2.0, 2.0, 1)


def test_item_document_round_trip():
    placed = datetime.datetime(2026, 7, 1, 12, 0, tzinfo=datetime.timezone.utc)
    item = StowageItem(id=CommittedId("i1"), container_id="c", gear_id="g",
                       x_position=12.5, y_position=40, layer=1, paint_order=3,
                       placed_by="crew", placed_at=placed)
    doc = item.to_dict()
    assert doc["placed_at"] == placed.isoformat()
    restored = StowageItem.from_dict("i1", doc)
    assert restored == item
    assert restored.placed_at == placed


def test_with_changes_returns_new_instance():
    item = StowageItem(id=CommittedId("i1"), container_id="c", gear_id="g")
    moved = item.with_changes(x_position=30)
    assert moved.x_position == 30 and item.x_position == 0
    assert moved.top_layer == 1


# --------------------------------------------------------------------------- #
#  Band-Kürzel / Farben
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "band, expected",
    [("The Night Owls", "TNO"), ("a b c d", "ABC"), ("", "??"), (None, "??")],
)
def test_band_initials(band, expected):
    assert band_initials(band) == expected


def test_band_color_is_stable_palette_entry():
    assert band_color("Velvet Static") == band_color("Velvet Static")
    assert band_color("Velvet Static") in BAND_PALETTE
    assert band_color("") == "#444444"
