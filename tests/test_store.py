"""
Tests für Dokumentenspeicher (core/store.py)
--------------------------------------------
Prüfen:
1. CRUD-Verhalten und Kopier-Semantik des In-Memory-Speichers
2. Fehler bei unbekannter Collection / fehlendem Dokument
3. JSON-Datei: Persistenz, leerer Start, defekte Dateien
"""
from __future__ import annotations

import json

import pytest

from stowage_planner.core.store import (
    DocumentNotFoundError,
    JsonDocumentStore,
    MemoryDocumentStore,
    StoreError,
    StoreFormatError,
)


# --------------------------------------------------------------------------- #
#  In-Memory
# --------------------------------------------------------------------------- #
def test_add_get_update_delete():
    store = MemoryDocumentStore()
    doc_id = store.add("containers", {"name": "Van", "id": "ignored"})
    assert store.get("containers", doc_id) == {"name": "Van"}

    store.update("containers", doc_id, {"width": 8})
    assert store.get("containers", doc_id) == {"name": "Van", "width": 8}

    store.delete("containers", doc_id)
    assert store.all("containers") == {}


def test_returned_documents_are_copies():
    store = MemoryDocumentStore({"gear": {"g1": {"description": "Amp"}}})
    doc = store.get("gear", "g1")
    doc["description"] = "changed"
    assert store.get("gear", "g1")["description"] == "Amp"


def test_unknown_collection_raises():
    with pytest.raises(StoreError):
        MemoryDocumentStore().all("bands")


@pytest.mark.parametrize("op", ["get", "update", "delete"])
def test_missing_document_raises(op):
    store = MemoryDocumentStore()
    args = ("stowage_items", "nope") + (({"x": 1},) if op == "update" else ())
    with pytest.raises(DocumentNotFoundError):
        getattr(store, op)(*args)


# --------------------------------------------------------------------------- #
#  JSON-Datei
# --------------------------------------------------------------------------- #
def test_json_store_persists_between_instances(tmp_path):
    path = tmp_path / "stowage.json"
    first = JsonDocumentStore(path)
    doc_id = first.add("stowage_items", {"container_id": "c1", "gear_id": "g1"})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["stowage_items"][doc_id]["gear_id"] == "g1"

    second = JsonDocumentStore(path)
    assert second.get("stowage_items", doc_id)["container_id"] == "c1"
    assert not list(tmp_path.glob("*.tmp"))


def test_json_store_missing_file_starts_empty(tmp_path):
    store = JsonDocumentStore(tmp_path / "nested" / "stowage.json")
    assert store.all("containers") == {}
    store.add("containers", {"name": "Van"})
    assert (tmp_path / "nested" / "stowage.json").exists()


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"gear": []}'])
def test_json_store_rejects_broken_file(tmp_path, content):
    path = tmp_path / "stowage.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StoreFormatError):
        JsonDocumentStore(path)


def _failing_write(data, target):
    raise OSError("disk full")


def test_json_store_rolls_back_failed_write(tmp_path, monkeypatch):
    path = tmp_path / "stowage.json"
    store = JsonDocumentStore(path)
    doc_id = store.add("stowage_items", {"container_id": "c1", "gear_id": "g1"})
    on_disk = path.read_text(encoding="utf-8")

    monkeypatch.setattr("stowage_planner.core.store._atomic_write", _failing_write)
    with pytest.raises(StoreError):
        store.add("stowage_items", {"container_id": "c1", "gear_id": "g2"})
    with pytest.raises(StoreError):
        store.update("stowage_items", doc_id, {"x_position": 40})
    with pytest.raises(StoreError):
        store.delete("stowage_items", doc_id)

    assert store.all("stowage_items") == {doc_id: {"container_id": "c1", "gear_id": "g1"}}
    assert path.read_text(encoding="utf-8") == on_disk
