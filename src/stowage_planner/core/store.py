"""
src/stowage_planner/core/store.py

Generischer Dokumentenspeicher für Container, Stowage-Items, Gear und
Locations. Es gibt keine serverseitige Filterung: gelesen wird immer die
komplette Collection, gefiltert wird im Client.

Implementierungen
-----------------
MemoryDocumentStore   – flüchtig, für Tests und Vorschau
JsonDocumentStore     – eine JSON-Datei ``{collection: {id: document}}``,
                        thread-sicher, atomar geschrieben
"""

from __future__ import annotations

import copy
import json
import logging
import tempfile
import uuid
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Final, Protocol

__all__ = [
    "StoreError",
    "StoreFormatError",
    "DocumentNotFoundError",
    "COLLECTIONS",
    "DocumentStore",
    "MemoryDocumentStore",
    "JsonDocumentStore",
    "default_store_path",
]

# ======================================================================================================================
# Exceptions
# ======================================================================================================================


class StoreError(Exception):
    """Basisklasse aller Speicherfehler (Netz, Datei, Format)."""


class StoreFormatError(StoreError):
    """Die Speicherdatei verletzt das erwartete Format."""


class DocumentNotFoundError(StoreError):
    """Dokument mit der angefragten ID existiert nicht."""


# ======================================================================================================================
# Konstanten
# ======================================================================================================================

_LOGGER: Final[logging.Logger] = logging.getLogger("stowage_planner.core.store")

COLLECTIONS: Final[tuple[str, ...]] = ("containers", "stowage_items", "gear", "locations")

Document = Dict[str, Any]


def _project_root() -> Path:
    """Projekt-Root (= drei Ebenen über ``src/stowage_planner/core``)."""
    return Path(__file__).resolve().parents[3]


def default_store_path() -> Path:
    """Standardpfad ``data/stowage.json`` relativ zum Projekt-Root."""
    return _project_root() / "data" / "stowage.json"


# ======================================================================================================================
# Protokoll
# ======================================================================================================================


class DocumentStore(Protocol):
    def add(self, collection: str, data: Document) -> str: ...

    def get(self, collection: str, doc_id: str) -> Document: ...

    def all(self, collection: str) -> Dict[str, Document]: ...

    def update(self, collection: str, doc_id: str, data: Document) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...


# ======================================================================================================================
# In-Memory
# ======================================================================================================================


class MemoryDocumentStore:
    """Flüchtiger Speicher; liefert immer Kopien, nie interne Referenzen."""

    def __init__(self, initial: Dict[str, Dict[str, Document]] | None = None) -> None:
        self._lock = RLock()
        self._data: Dict[str, Dict[str, Document]] = {name: {} for name in COLLECTIONS}
        for name, docs in (initial or {}).items():
            self._data.setdefault(name, {}).update(copy.deepcopy(docs))

    def _collection(self, collection: str) -> Dict[str, Document]:
        try:
            return self._data[collection]
        except KeyError:
            raise StoreError(f"Unbekannte Collection: {collection!r}") from None

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    def _replace(self, collection: str, docs: Dict[str, Document]) -> None:
        """Neuen Collection-Stand übernehmen; schlägt ``_changed`` fehl, gilt der alte."""
        previous = self._data[collection]
        self._data[collection] = docs
        try:
            self._changed()
        except Exception:
            self._data[collection] = previous
            raise

    def add(self, collection: str, data: Document) -> str:
        with self._lock:
            doc_id = self._new_id()
            payload = {k: v for k, v in data.items() if k != "id"}
            docs = dict(self._collection(collection))
            docs[doc_id] = copy.deepcopy(payload)
            self._replace(collection, docs)
            _LOGGER.debug("add %s/%s", collection, doc_id)
            return doc_id

    def get(self, collection: str, doc_id: str) -> Document:
        with self._lock:
            try:
                return copy.deepcopy(self._collection(collection)[doc_id])
            except KeyError:
                raise DocumentNotFoundError(f"{collection}/{doc_id}") from None

    def all(self, collection: str) -> Dict[str, Document]:
        with self._lock:
            return copy.deepcopy(self._collection(collection))

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        with self._lock:
            docs = dict(self._collection(collection))
            if doc_id not in docs:
                raise DocumentNotFoundError(f"{collection}/{doc_id}")
            docs[doc_id] = {**docs[doc_id], **copy.deepcopy(data)}
            self._replace(collection, docs)
            _LOGGER.debug("update %s/%s: %s", collection, doc_id, sorted(data))

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = dict(self._collection(collection))
            if docs.pop(doc_id, None) is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id}")
            self._replace(collection, docs)
            _LOGGER.debug("delete %s/%s", collection, doc_id)

    def _changed(self) -> None:
        """Hook für persistente Unterklassen."""


# ======================================================================================================================
# JSON-Datei
# ======================================================================================================================


def _atomic_write(data: str, target: Path) -> None:
    """
    Schreibt *data* atomar nach *target*.

    1. In eine named Temporary-Datei im selben Verzeichnis schreiben.
    2. Mit `Path.replace()` auf *target* verschieben.
    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=str(target.parent),
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    tmp_path.replace(target)


class JsonDocumentStore(MemoryDocumentStore):
    """
    Persistiert alle Collections in einer JSON-Datei.

    Jede Mutation schreibt die komplette Datei neu (atomar). Existiert die
    Datei noch nicht, startet der Speicher leer und legt sie beim ersten
    Schreiben an.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else default_store_path()
        super().__init__(self._read())

    def _read(self) -> Dict[str, Dict[str, Document]]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            _LOGGER.info("Speicherdatei %s fehlt – starte leer", self.path)
            return {}
        except json.JSONDecodeError as exc:
            _LOGGER.exception("Ungültige JSON-Struktur in %s", self.path)
            raise StoreFormatError(f"{self.path} enthält ungültiges JSON") from exc

        if not isinstance(raw, dict):
            raise StoreFormatError("Speicherdatei muss ein Objekt {collection: {id: doc}} sein")
        for name, docs in raw.items():
            if not isinstance(docs, dict):
                raise StoreFormatError(f"Collection {name!r} muss ein Objekt sein")
        return raw

    def _changed(self) -> None:
        json_str = json.dumps(self._data, indent=2, ensure_ascii=False, default=str)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(json_str, self.path)
        except OSError as exc:
            _LOGGER.exception("Schreibfehler für %s", self.path)
            raise StoreError(f"Speicherdatei {self.path} nicht beschreibbar") from exc
