"""
gear_list.py
~~~~~~~~~~~~
Seitenleiste mit verfügbarem Gear eines Containers.

* Oben die Staging-Leiste (vorgemerkte Items), darunter Gear nach Band
  gruppiert, jeweils mit Band-Farbe.
* Beide Listen sind Drag-Quellen für den Canvas (MIME ``MIME_GEAR``):
  Staging liefert ``staged_gear_id``, die Band-Liste ``direct_gear_id``.
* Doppelklick in der Band-Liste legt ein Item in die Staging-Leiste,
  Doppelklick in der Staging-Leiste nimmt es wieder heraus.
* Touch-Ende über einem Eintrag wird als ``touchDropped`` gemeldet.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from PySide6.QtCore import QEvent, QMimeData, QPointF, Qt, Signal
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from stowage_planner.core.drag import DIRECT_GEAR_KEY, STAGED_GEAR_KEY
from stowage_planner.core.labels import band_color
from stowage_planner.core.models import Container, GearItem
from stowage_planner.core.session import StowageSession
from stowage_planner.gui.canvas_2d import MIME_GEAR, encode_payload

logger = logging.getLogger(__name__)

_GEAR_ROLE = Qt.UserRole


def _gear_mime(key: str, gear_ids: List[str]) -> Optional[QMimeData]:
    if not gear_ids:
        return None
    mime = QMimeData()
    mime.setData(MIME_GEAR, encode_payload({key: gear_ids[0]}))
    return mime


class _TouchSource:
    """Merkt sich das Gear unter dem Touch-Start und meldet das Touch-Ende."""

    def _gear_at_touch(self, pos: QPointF) -> Optional[GearItem]:  # pragma: no cover - Überschreibung
        raise NotImplementedError

    def _handle_touch(self, event: QEvent) -> bool:
        if event.type() == QEvent.TouchBegin:
            point = event.points()[0]
            self._touch_gear = self._gear_at_touch(point.position())
            event.accept()
            return True
        if event.type() == QEvent.TouchEnd:
            gear_item = getattr(self, "_touch_gear", None)
            self._touch_gear = None
            if gear_item is not None:
                self.touchDropped.emit(gear_item, event.points()[0].globalPosition())
            event.accept()
            return True
        return False


class _BandTree(_TouchSource, QTreeWidget):
    touchDropped: Signal = Signal(object, QPointF)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setHeaderHidden(True)
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragOnly)
        self.viewport().setAttribute(Qt.WA_AcceptTouchEvents, True)

    def mimeData(self, items) -> Optional[QMimeData]:
        ids = [it.data(0, _GEAR_ROLE).id for it in items if it.data(0, _GEAR_ROLE) is not None]
        return _gear_mime(DIRECT_GEAR_KEY, ids)

    def _gear_at_touch(self, pos: QPointF) -> Optional[GearItem]:
        node = self.itemAt(pos.toPoint())
        return node.data(0, _GEAR_ROLE) if node is not None else None

    def viewportEvent(self, event: QEvent) -> bool:
        if self._handle_touch(event):
            return True
        return super().viewportEvent(event)


class _StagingList(_TouchSource, QListWidget):
    touchDropped: Signal = Signal(object, QPointF)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragOnly)
        self.setMaximumHeight(120)
        self.viewport().setAttribute(Qt.WA_AcceptTouchEvents, True)

    def mimeData(self, items) -> Optional[QMimeData]:
        ids = [it.data(_GEAR_ROLE).id for it in items if it.data(_GEAR_ROLE) is not None]
        return _gear_mime(STAGED_GEAR_KEY, ids)

    def _gear_at_touch(self, pos: QPointF) -> Optional[GearItem]:
        entry = self.itemAt(pos.toPoint())
        return entry.data(_GEAR_ROLE) if entry is not None else None

    def viewportEvent(self, event: QEvent) -> bool:
        if self._handle_touch(event):
            return True
        return super().viewportEvent(event)


class GearPanel(QWidget):
    """Staging-Leiste + Band-Liste für den aktuell gewählten Container."""

    touchDropped: Signal = Signal(object, QPointF)

    def __init__(self, session: StowageSession, parent=None) -> None:
        super().__init__(parent)
        self._session = session
        self._container: Optional[Container] = None

        self.staging = _StagingList(self)
        self.tree = _BandTree(self)
        self.staging.itemDoubleClicked.connect(self._on_staging_double_clicked)
        self.tree.itemDoubleClicked.connect(self._on_tree_double_clicked)
        self.staging.touchDropped.connect(self.touchDropped)
        self.tree.touchDropped.connect(self.touchDropped)

        self._lbl_count = QLabel(self)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(QLabel("Staged", self))
        layout.addWidget(self.staging)
        layout.addWidget(self._lbl_count)
        layout.addWidget(self.tree, 1)

    def set_container(self, container: Optional[Container]) -> None:
        self._container = container
        self.refresh()

    def refresh(self) -> None:
        self.staging.clear()
        for gear_item in self._session.staged:
            entry = QListWidgetItem(f"{gear_item.display_label} {gear_item.description}".strip())
            entry.setData(_GEAR_ROLE, gear_item)
            entry.setForeground(QBrush(QColor(band_color(gear_item.band_id))))
            self.staging.addItem(entry)

        self.tree.clear()
        if self._container is None:
            self._lbl_count.setText("No container selected")
            return

        grouped = self._session.gear_by_band(self._container)
        total = 0
        for band_id, gear in grouped.items():
            band_node = QTreeWidgetItem([f"{band_id} ({len(gear)})"])
            band_node.setForeground(0, QBrush(QColor(band_color(band_id))))
            band_node.setFlags(band_node.flags() & ~Qt.ItemIsDragEnabled)
            for gear_item in gear:
                child = QTreeWidgetItem([f"{gear_item.display_label} {gear_item.description}".strip()])
                child.setData(0, _GEAR_ROLE, gear_item)
                band_node.addChild(child)
            self.tree.addTopLevelItem(band_node)
            total += len(gear)
        self.tree.expandAll()
        self._lbl_count.setText(f"Available gear: {total}")

    # ------------------------------------------------------------------ #
    def _on_tree_double_clicked(self, node: QTreeWidgetItem, _column: int) -> None:
        gear_item = node.data(0, _GEAR_ROLE)
        if gear_item is not None and not any(g.id == gear_item.id for g in self._session.staged):
            self._session.toggle_staged(gear_item)

    def _on_staging_double_clicked(self, entry: QListWidgetItem) -> None:
        gear_item = entry.data(_GEAR_ROLE)
        if gear_item is not None:
            self._session.toggle_staged(gear_item)
