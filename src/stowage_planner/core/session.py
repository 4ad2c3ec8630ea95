"""
src/stowage_planner/core/session.py

Lokaler, maßgeblicher Zwischenspeicher eines Stowage-Plans über einem
`DocumentStore`.

Ablauf jeder Mutation
---------------------
1. Lokaler Cache wird sofort geändert (optimistisch).
2. Der Remote-Commit landet in einer Warteschlange.
3. `flush()` arbeitet die Warteschlange der Reihe nach ab.
4. Schlägt ein Commit fehl, wird der Cache als veraltet markiert und
   komplett neu geladen – kein feingranulares Rollback.

Zustände: ``CLEAN → DIRTY → SYNCING → CLEAN | STALE``
"""

from __future__ import annotations

import datetime
import enum
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

from . import grid, stacking
from .confirm import ConfirmationRequest
from .item_form import ItemForm
from .models import (
    CommittedId,
    Container,
    DuplicatePlacementError,
    GearItem,
    ItemId,
    Location,
    ModelError,
    PendingId,
    SearchResult,
    StowageItem,
)
from .presets import ContainerForm
from .store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

_EPSILON = 1e-6


class SyncState(enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SYNCING = "syncing"
    STALE = "stale"


@dataclass(slots=True)
class _Commit:
    """Ein ausstehender Remote-Commit."""

    kind: str  # "add" | "update" | "delete"
    collection: str
    target: Any
    payload: Dict[str, Any] = field(default_factory=dict)
    bulk: bool = False


_temp_counter = itertools.count(1)


def _new_pending_id() -> PendingId:
    return PendingId(f"temp_{time.time_ns()}_{next(_temp_counter)}")


def _to_document(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Zeitstempel für den Dokumentenspeicher als ISO-String."""
    return {
        key: value.isoformat() if isinstance(value, datetime.datetime) else value
        for key, value in changes.items()
    }


class StowageSession:
    """Container, Stowage-Items, Gear und Locations eines Festivals."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        autoflush: bool = True,
        user: str = "current_user",
    ) -> None:
        self.store = store
        self.autoflush = autoflush
        self.user = user

        self.containers: List[Container] = []
        self.items: List[StowageItem] = []
        self.gear: List[GearItem] = []
        self.locations: List[Location] = []
        self.staged: List[GearItem] = []

        self.state: SyncState = SyncState.CLEAN
        self.transitions: List[SyncState] = [SyncState.CLEAN]
        self.message: str = ""

        self._queue: Deque[_Commit] = deque()
        self._listeners: List[Callable[[], None]] = []

    # ================================================================ Zustand

    def _set_state(self, state: SyncState) -> None:
        if state is self.state:
            return
        logger.debug("Sync-Zustand %s → %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Listener nach jeder lokalen Änderung; liefert eine Abmelde-Funktion."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        for callback in list(self._listeners):
            callback()

    @property
    def pending_commits(self) -> int:
        return len(self._queue)

    # ================================================================= Laden

    def load(self) -> bool:
        """Liest alle Collections vollständig neu ein."""
        try:
            containers = [
                Container.from_dict(doc_id, doc)
                for doc_id, doc in self.store.all("containers").items()
            ]
            items = [
                StowageItem.from_dict(doc_id, doc)
                for doc_id, doc in self.store.all("stowage_items").items()
            ]
            gear = [GearItem.from_dict(doc_id, doc) for doc_id, doc in self.store.all("gear").items()]
            locations = [
                Location.from_dict(doc_id, doc)
                for doc_id, doc in self.store.all("locations").items()
            ]
        except (StoreError, ModelError, KeyError, ValueError):
            logger.exception("Fehler beim Laden der Stowage-Daten")
            self._set_state(SyncState.STALE)
            self._notify("Error loading stowage data")
            return False

        self.containers, self.items, self.gear, self.locations = containers, items, gear, locations
        # Staging nur für weiterhin existierende Gear-Items behalten
        known = {g.id: g for g in gear}
        self.staged = [known[g.id] for g in self.staged if g.id in known]
        self._queue.clear()
        self._set_state(SyncState.CLEAN)
        logger.info(
            "Geladen: %d Container, %d Items, %d Gear, %d Locations",
            len(containers),
            len(items),
            len(gear),
            len(locations),
        )
        self._notify()
        return True

    def resync(self) -> bool:
        """Volle Neusynchronisation nach einem fehlgeschlagenen Commit."""
        logger.warning("Cache veraltet – lade alle Daten neu")
        return self.load()

    # ============================================================= Abfragen

    def container(self, container_id: str) -> Optional[Container]:
        return next((c for c in self.containers if c.id == container_id), None)

    def location(self, location_id: Optional[str]) -> Optional[Location]:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def gear_item(self, gear_id: str) -> Optional[GearItem]:
        return next((g for g in self.gear if g.id == gear_id), None)

    def item(self, item_id: ItemId) -> Optional[StowageItem]:
        return next((it for it in self.items if it.id == item_id), None)

    def containers_at(self, location_id: Optional[str] = None) -> List[Container]:
        if location_id is None:
            return list(self.containers)
        return [c for c in self.containers if c.location_id == location_id]

    def items_in_container(self, container_id: str) -> List[StowageItem]:
        return [it for it in self.items if it.container_id == container_id]

    def visible_items(self, container: Container) -> List[StowageItem]:
        """Items des Containers, deren Gear existiert und am Container-Standort liegt."""
        visible = []
        for item in self.items_in_container(container.id):
            gear_item = self.gear_item(item.gear_id)
            if gear_item is None:
                continue
            if gear_item.current_location_id == container.location_id:
                visible.append(item)
        return visible

    def placed_gear_ids(self) -> set[str]:
        return {it.gear_id for it in self.items}

    def available_gear(self, container: Container) -> List[GearItem]:
        """Verfügbares, noch nirgends platziertes Gear am Container-Standort."""
        placed = self.placed_gear_ids()
        return [
            g for g in self.gear if g.is_available_at(container.location_id) and g.id not in placed
        ]

    def gear_by_band(self, container: Container) -> Dict[str, List[GearItem]]:
        grouped: Dict[str, List[GearItem]] = {}
        for gear_item in self.available_gear(container):
            if not gear_item.band_id:
                continue
            grouped.setdefault(gear_item.band_id, []).append(gear_item)
        return dict(sorted(grouped.items()))

    def fill_info(self, container: Container) -> grid.FillInfo:
        return grid.fill_info(container, self.items_in_container(container.id))

    def stack_counts(self, container: Container) -> Dict[str, int]:
        return stacking.stack_counts(self.visible_items(container))

    def out_of_bounds_items(self, container: Container) -> List[StowageItem]:
        """
        Items, die nach einer Größenänderung nicht mehr in den Container passen.

        Es wird nur gemeldet, nicht verschoben.
        """
        result = []
        for item in self.items_in_container(container.id):
            right = item.x_position + item.item_width / container.width_ft * 100
            bottom = item.y_position + item.item_length / container.length_ft * 100
            if (
                item.x_position < -_EPSILON
                or item.y_position < -_EPSILON
                or right > 100 + _EPSILON
                or bottom > 100 + _EPSILON
                or item.top_layer > container.container_height
            ):
                result.append(item)
        return result

    def search(self, term: str) -> List[SearchResult]:
        """Suche über Beschreibung, Band und Anzeige-ID aller platzierten Items."""
        needle = term.strip().lower()
        if not needle:
            return []
        results = []
        for item in self.items:
            gear_item = self.gear_item(item.gear_id)
            container = self.container(item.container_id)
            if gear_item is None or container is None:
                continue
            if (
                needle in gear_item.description.lower()
                or needle in gear_item.band_id.lower()
                or needle in str(gear_item.display_id or "")
            ):
                results.append(
                    SearchResult(
                        item_id=item.id,
                        gear_id=gear_item.id,
                        gear_description=gear_item.description,
                        gear_display_label=gear_item.display_label,
                        band_id=gear_item.band_id,
                        container_id=container.id,
                        container_name=container.name,
                        location_id=container.location_id,
                        x_position=item.x_position,
                        y_position=item.y_position,
                    )
                )
        return results

    # ============================================================== Staging

    def toggle_staged(self, gear_item: GearItem) -> bool:
        """Gear in die Staging-Leiste legen bzw. wieder herausnehmen."""
        if any(g.id == gear_item.id for g in self.staged):
            self.staged = [g for g in self.staged if g.id != gear_item.id]
            self._notify()
            return False
        self.staged.append(gear_item)
        self._notify()
        return True

    def _unstage(self, gear_id: str) -> None:
        self.staged = [g for g in self.staged if g.id != gear_id]

    # ============================================================ Commits

    def _enqueue(self, commit: _Commit) -> None:
        self._queue.append(commit)
        if self.state is not SyncState.SYNCING:
            self._set_state(SyncState.DIRTY)
        if self.autoflush:
            self.flush()

    def _cancel_pending_add(self, pending: PendingId) -> None:
        """Noch nicht abgesetzten Create-Commit eines vorläufigen Items verwerfen."""
        self._queue = deque(
            c for c in self._queue if not (c.kind == "add" and c.target == pending)
        )

    def flush(self) -> bool:
        """
        Arbeitet alle ausstehenden Commits ab.

        Einzelne Fehler werden geloggt; die übrigen Commits laufen weiter.
        Gab es mindestens einen Fehler, folgt genau eine volle Neusynchronisation.
        """
        if not self._queue:
            if self.state is SyncState.DIRTY:
                self._set_state(SyncState.CLEAN)
            return True

        self._set_state(SyncState.SYNCING)
        failed = 0
        while self._queue:
            commit = self._queue.popleft()
            try:
                self._apply(commit)
            except StoreError as exc:
                failed += 1
                if commit.bulk:
                    logger.warning("Löschen von %s fehlgeschlagen: %s", commit.target, exc)
                else:
                    logger.error(
                        "Commit %s %s/%s fehlgeschlagen", commit.kind, commit.collection,
                        commit.target, exc_info=True,
                    )
                if commit.kind == "add" and commit.collection == "stowage_items":
                    self.items = [it for it in self.items if it.id != commit.target]

        if failed:
            self._set_state(SyncState.STALE)
            self._notify("Error saving changes – reloaded latest data")
            self.resync()
            return False

        self._set_state(SyncState.CLEAN)
        self._notify()
        return True

    def _apply(self, commit: _Commit) -> None:
        if commit.kind == "add":
            durable = self.store.add(commit.collection, commit.payload)
            self._commit_pending(commit.target, CommittedId(durable))
        elif commit.kind == "update":
            self.store.update(commit.collection, str(commit.target), commit.payload)
        elif commit.kind == "delete":
            self.store.delete(commit.collection, str(commit.target))
        else:  # pragma: no cover
            raise ValueError(f"Unbekannter Commit-Typ: {commit.kind!r}")

    def _commit_pending(self, pending: PendingId, durable: CommittedId) -> None:
        """Vorläufige ID durch die dauerhafte ersetzen (genau ein Eintrag)."""
        replaced = False
        for idx, item in enumerate(self.items):
            if item.id == pending:
                self.items[idx] = item.with_changes(id=durable)
                replaced = True
        if replaced:
            logger.debug("Vorläufige ID %s → %s", pending, durable)
            return
        # Item wurde vor dem Commit lokal entfernt → Dokument wieder löschen
        logger.debug("Item %s vor Commit entfernt – lösche %s", pending, durable)
        self._queue.appendleft(_Commit("delete", "stowage_items", durable, bulk=True))

    # ======================================================= Items: Platzieren

    def _ensure_not_placed(self, gear_id: str, ignore: Optional[ItemId] = None) -> None:
        for item in self.items:
            if item.gear_id == gear_id and item.id != ignore:
                raise DuplicatePlacementError(
                    f"Gear {gear_id} is already placed in container {item.container_id}"
                )

    def place_gear(
        self,
        container: Container,
        gear_item: GearItem,
        position: Tuple[float, float],
        **overrides: Any,
    ) -> StowageItem:
        """
        Neues Item an Prozentposition (Standard: 2×2 ft, Ebene 0, Höhe 1).

        Das Item erscheint sofort mit vorläufiger ID; nach dem Commit trägt
        derselbe Eintrag die dauerhafte ID.
        """
        self._ensure_not_placed(gear_item.id)
        x_percent, y_percent = position
        item = StowageItem(
            id=_new_pending_id(),
            container_id=container.id,
            gear_id=gear_item.id,
            x_position=x_percent,
            y_position=y_percent,
        )
        if overrides:
            item = item.with_changes(**overrides)
        self._unstage(gear_item.id)
        self.items.append(item)
        logger.info("Platziere %s in %s (%s)", gear_item.id, container.id, item.id)
        self._notify()
        self._enqueue(_Commit("add", "stowage_items", item.id, item.to_dict()))
        # nach dem Commit trägt der Eintrag die dauerhafte ID
        return next((it for it in self.items if it.gear_id == gear_item.id), item)

    def move_item(self, item_id: ItemId, changes: Dict[str, Any]) -> bool:
        """Position/Reihenfolge übernehmen; für vorläufige IDs wirkungslos."""
        if item_id.is_pending:
            logger.debug("Move für vorläufiges Item %s übersprungen", item_id)
            return False
        found = False
        for idx, item in enumerate(self.items):
            if item.id == item_id:
                self.items[idx] = item.with_changes(**changes)
                found = True
        if not found:
            logger.debug("Move für unbekanntes Item %s", item_id)
            return False
        self._notify()
        self._enqueue(_Commit("update", "stowage_items", item_id, _to_document(changes)))
        return True

    def save_item(self, form: ItemForm) -> Optional[StowageItem]:
        """Speichert das Modal; bei Validierungsfehler nur Meldung, keine Aktion."""
        error = form.validate()
        if error:
            self._notify(error)
            return None

        changes = form.to_changes(placed_by=self.user)
        existing = form.existing
        if form.is_update and existing is not None:
            self._ensure_not_placed(form.gear_id, ignore=existing.id)
            if existing.is_pending:
                self._notify("Item is still being saved")
                return None
            if not self.move_item(existing.id, changes):
                self._notify("Item no longer exists")
                return None
            self._notify("Item updated successfully")
            return self.item(existing.id)

        changes.pop("container_id")
        gear_item = self.gear_item(form.gear_id)
        if gear_item is None:
            self._notify(f"Unknown gear item {form.gear_id}")
            return None
        position = (changes.pop("x_position"), changes.pop("y_position"))
        changes.pop("gear_id")
        item = self.place_gear(form.container, gear_item, position, **changes)
        self._notify("Item placed successfully")
        return item

    # ========================================================= Items: Reihenfolge

    def bring_to_front(self, item: StowageItem) -> bool:
        peers = self.items_in_container(item.container_id)
        return self.move_item(item.id, {"paint_order": stacking.bring_to_front(item, peers)})

    def send_to_back(self, item: StowageItem) -> bool:
        peers = self.items_in_container(item.container_id)
        return self.move_item(item.id, {"paint_order": stacking.send_to_back(item, peers)})

    # =========================================================== Items: Löschen

    def _drop_local(self, item: StowageItem, *, bulk: bool = False) -> Optional[_Commit]:
        self.items = [it for it in self.items if it.id != item.id]
        if isinstance(item.id, PendingId):
            self._cancel_pending_add(item.id)
            return None
        return _Commit("delete", "stowage_items", item.id, bulk=bulk)

    def delete_item(self, item: StowageItem) -> None:
        commit = self._drop_local(item)
        self._notify("Item removed successfully")
        if commit is not None:
            self._enqueue(commit)

    def request_delete_item(self, item: StowageItem) -> ConfirmationRequest:
        return ConfirmationRequest(
            "Remove item",
            "Remove this item from the container?",
            lambda: self.delete_item(item),
        )

    def _bulk_delete(self, doomed: Sequence[StowageItem]) -> int:
        commits = [c for c in (self._drop_local(it, bulk=True) for it in doomed) if c is not None]
        logger.info(
            "Entferne %d Items (%d vorläufig)", len(doomed), len(doomed) - len(commits)
        )
        self._notify()
        autoflush, self.autoflush = self.autoflush, False
        try:
            for commit in commits:
                self._enqueue(commit)
        finally:
            self.autoflush = autoflush
        if self.autoflush:
            self.flush()
        return len(doomed)

    def clear_container(self, container: Container) -> int:
        """Entfernt *alle* Items des Containers (auch vorläufige)."""
        return self._bulk_delete(self.items_in_container(container.id))

    def request_clear_container(self, container: Container) -> ConfirmationRequest:
        return ConfirmationRequest(
            "Clear container",
            "Remove ALL items from this container?",
            lambda: self.clear_container(container),
        )

    def cleanup_container(self, container: Container) -> int:
        """
        Entfernt verwaiste Items: vorläufige, solche ohne Gear und solche,
        deren Gear inzwischen an einem anderen Standort liegt.
        """
        doomed = []
        for item in self.items_in_container(container.id):
            gear_item = self.gear_item(item.gear_id)
            if (
                item.is_pending
                or gear_item is None
                or gear_item.current_location_id != container.location_id
            ):
                doomed.append(item)
        cleaned = self._bulk_delete(doomed)
        self._notify(f"Cleaned up {cleaned} items")
        return cleaned

    def request_cleanup_container(self, container: Container) -> ConfirmationRequest:
        return ConfirmationRequest(
            "Clean up container",
            "Remove all items from this container that don't belong here?\n"
            "(Items with missing gear or not at this location)",
            lambda: self.cleanup_container(container),
        )

    # =============================================================== Container

    def save_container(
        self, form: ContainerForm, editing: Optional[Container] = None
    ) -> Optional[Container]:
        """
        Legt einen Container an bzw. aktualisiert ihn.

        Anlegen braucht die dauerhafte ID und läuft daher synchron. Nach einer
        Größenänderung werden herausragende Items nur gemeldet.
        """
        error = form.validate()
        if error:
            self._notify(error)
            return None
        document = form.to_document()
        try:
            if editing is not None:
                updated = Container.from_dict(editing.id, document)
                self.store.update("containers", editing.id, document)
                self.containers = [updated if c.id == editing.id else c for c in self.containers]
                overflow = self.out_of_bounds_items(updated)
                if overflow:
                    logger.warning(
                        "Container %s: %d Items außerhalb der neuen Maße",
                        updated.id,
                        len(overflow),
                    )
                self._notify("Container updated successfully")
                return updated
            doc_id = self.store.add("containers", document)
            created = Container.from_dict(doc_id, document)
            self.containers.append(created)
            self._notify("Container created successfully")
            return created
        except (StoreError, ModelError):
            logger.exception("Fehler beim Speichern des Containers")
            self._notify("Error saving container")
            return None

    def delete_container(self, container: Container) -> None:
        """Löscht Container samt aller Items (Kaskade)."""
        doomed = self.items_in_container(container.id)
        self.containers = [c for c in self.containers if c.id != container.id]
        commits = [c for c in (self._drop_local(it, bulk=True) for it in doomed) if c is not None]
        self._notify("Container deleted successfully")
        autoflush, self.autoflush = self.autoflush, False
        try:
            for commit in commits:
                self._enqueue(commit)
            self._enqueue(_Commit("delete", "containers", container.id))
        finally:
            self.autoflush = autoflush
        if self.autoflush:
            self.flush()

    def request_delete_container(self, container: Container) -> ConfirmationRequest:
        return ConfirmationRequest(
            "Delete container",
            f'Delete container "{container.name}"? This will remove all items in it.',
            lambda: self.delete_container(container),
        )


__all__ = ["StowageSession", "SyncState"]
