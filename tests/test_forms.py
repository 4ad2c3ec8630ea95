"""
Tests für Vorlagen, Formularmodelle und Bestätigungen
-----------------------------------------------------
core/presets.py, core/item_form.py, core/confirm.py
"""
from __future__ import annotations

import json

import pytest

from stowage_planner.core.confirm import ConfirmationRequest
from stowage_planner.core.item_form import NO_GEAR_MESSAGE, ItemForm
from stowage_planner.core.presets import (
    CUSTOM_PRESET,
    ContainerForm,
    PresetFormatError,
    load_presets,
)

from conftest import make_item


# --------------------------------------------------------------------------- #
#  Vorlagen
# --------------------------------------------------------------------------- #
def test_bundled_presets():
    presets = load_presets()
    assert len(presets) == 7
    assert CUSTOM_PRESET in presets
    assert presets["cargo_van"].label == "Cargo Van (8ft × 5ft × 6ft)"
    assert presets[CUSTOM_PRESET].label == presets[CUSTOM_PRESET].name


def test_presets_require_custom(tmp_path):
    path = tmp_path / "presets.json"
    path.write_text(json.dumps([{"key": "van", "name": "Van", "length": 8,
                                 "width": 5, "container_height": 3}]), encoding="utf-8")
    with pytest.raises(PresetFormatError):
        load_presets(path)


@pytest.mark.parametrize("content", ["{broken", '{"key": "custom"}', '[{"key": "custom"}]'])
def test_presets_reject_broken_files(tmp_path, content):
    path = tmp_path / "presets.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(PresetFormatError):
        load_presets(path)


# --------------------------------------------------------------------------- #
#  Container-Formular
# --------------------------------------------------------------------------- #
def test_apply_preset_locks_dimensions():
    form = ContainerForm(location_id="main-stage")
    form.apply_preset(load_presets()["sprinter_van"])
    assert form.dimensions_locked
    assert (form.length, form.width, form.real_length) == (12, 6, 12)
    assert form.name == "Sprinter Van"
    assert form.validate() is None


def test_apply_custom_keeps_values():
    form = ContainerForm(name="Mine", length=20, width=9)
    form.apply_preset(load_presets()[CUSTOM_PRESET])
    assert not form.dimensions_locked
    assert (form.name, form.length, form.width) == ("Mine", 20, 9)


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"name": " "}, "Container name is required"),
        ({"location_id": ""}, "Please select a stage/location"),
        ({"length": 51}, "Length must be between 3 and 50"),
        ({"width": 2}, "Width must be between 3 and 50"),
        ({"container_height": 11}, "Height must be between 1 and 10 layers"),
    ],
)
def test_container_form_validation(changes, message):
    form = ContainerForm(name="Van", location_id="main-stage")
    for key, value in changes.items():
        setattr(form, key, value)
    assert form.validate() == message


def test_container_form_round_trip(container):
    form = ContainerForm.from_container(container)
    doc = form.to_document()
    assert doc["name"] == "Van 1"
    assert (doc["length"], doc["width"], doc["container_height"]) == (10, 8, 3)


# --------------------------------------------------------------------------- #
#  Item-Formular
# --------------------------------------------------------------------------- #
def test_item_form_requires_gear(container):
    form = ItemForm(container)
    assert form.validate() == NO_GEAR_MESSAGE
    form.gear_id = "g1"
    assert form.validate() is None


def test_item_form_defaults_and_title(container):
    form = ItemForm(container)
    assert (form.x_position, form.y_position, form.item_width) == (25.0, 25.0, 2.0)
    assert form.title == "Place Item"
    assert form.layer_choices() == [(0, "Ground"), (1, "Layer 1"), (2, "Layer 2")]
    assert form.size_limits() == (8.0, 10.0)


def test_item_form_for_existing_item(container):
    item = make_item("a", 40, 0, layer=1, item_height=2)
    form = ItemForm.for_item(container, item)
    assert form.is_update and form.title == "Edit Item"
    assert form.x_position == 40
    assert form.y_position == 25.0          # 0 gilt als „nicht gesetzt“
    assert form.max_stack_height() == 2


def test_item_form_new_placement_is_not_update(container):
    form = ItemForm.for_item(container, make_item("a", 10, 10), is_new_placement=True)
    assert not form.is_update


def test_item_form_changes_pass_numbers_through(container):
    form = ItemForm(container, gear_id="g1", item_width=99, stack_height=7)
    changes = form.to_changes(placed_by="crew")
    assert changes["item_width"] == 99.0
    assert changes["item_height"] == 7
    assert changes["placed_by"] == "crew"
    assert changes["container_id"] == "c1"


# --------------------------------------------------------------------------- #
#  Bestätigung
# --------------------------------------------------------------------------- #
def test_confirmation_runs_action_once():
    calls = []
    request = ConfirmationRequest("Title", "Sure?", lambda: calls.append(1) or "done")
    assert request.accept() == "done"
    assert request.accept() is None
    assert calls == [1]
    assert request.resolved and request.accepted


def test_confirmation_reject_skips_action():
    calls = []
    request = ConfirmationRequest("Title", "Sure?", lambda: calls.append(1))
    request.reject()
    assert calls == [] and request.accepted is False
