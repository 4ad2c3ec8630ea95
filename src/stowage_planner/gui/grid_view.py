"""
grid_view.py
~~~~~~~~~~~~
QTableWidget-basierte Rasteransicht eines Containers.

* Eine Zelle je Rasterfeld, Zeilen = Länge (Front → Back), Spalten = Breite.
* Ebenen-Auswahl (Ground, Layer 1, …) und Drehung um 90° (Achsen getauscht).
* Gestapelte Zellen (mehr als ein Item über alle Ebenen) tragen ``×n``.
* Klick auf eine Zelle liefert über ``cellActivated`` die kanonischen
  Koordinaten und das Item (oder ``None``).
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from stowage_planner.core.grid import GridProjection, layer_labels
from stowage_planner.core.labels import band_color, band_initials
from stowage_planner.core.models import Container
from stowage_planner.core.session import StowageSession

logger = logging.getLogger(__name__)

_CELL_PX = 28
_EMPTY_COLOR = QColor(245, 245, 245)


class GridView(QWidget):
    """
    Rasteransicht mit Steuerleiste.

    Öffentliche API
    ---------------
    set_container(container) – Container anzeigen (oder leeren).
    refresh()                – Zellen aus der Session neu aufbauen.
    projection               – aktuelle `GridProjection` (oder None).
    cellActivated            – Qt-Signal(object)  → `CellClick`
    """

    cellActivated: Signal = Signal(object)

    def __init__(self, session: StowageSession, *, readonly: bool = False, parent=None) -> None:
        super().__init__(parent)
        self._session = session
        self._readonly = readonly
        self._container: Optional[Container] = None
        self.projection: Optional[GridProjection] = None

        self._combo_layer = QComboBox(self)
        self._combo_layer.currentIndexChanged.connect(lambda _idx: self.refresh())
        self._chk_rotate = QCheckBox("Rotate 90°", self)
        self._chk_rotate.toggled.connect(lambda _on: self.refresh())

        controls = QHBoxLayout()
        controls.addWidget(QLabel("Layer:", self))
        controls.addWidget(self._combo_layer)
        controls.addWidget(self._chk_rotate)
        controls.addStretch(1)

        self._lbl_top = QLabel(self)
        self._lbl_bottom = QLabel(self)
        for lbl in (self._lbl_top, self._lbl_bottom):
            lbl.setAlignment(Qt.AlignCenter)

        self.table = QTableWidget(0, 0, self)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionMode(QTableWidget.NoSelection)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Fixed)
        self.table.verticalHeader().setSectionResizeMode(QHeaderView.Fixed)
        self.table.horizontalHeader().setDefaultSectionSize(_CELL_PX)
        self.table.verticalHeader().setDefaultSectionSize(_CELL_PX)
        self.table.cellClicked.connect(self._on_cell_clicked)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addLayout(controls)
        layout.addWidget(self._lbl_top)
        layout.addWidget(self.table, 1)
        layout.addWidget(self._lbl_bottom)

    # ------------------------------------------------------------------ #
    # Öffentliche Methoden
    # ------------------------------------------------------------------ #
    def set_readonly(self, readonly: bool) -> None:
        self._readonly = readonly
        self.refresh()

    def set_container(self, container: Optional[Container]) -> None:
        self._container = container
        self._combo_layer.blockSignals(True)
        self._combo_layer.clear()
        if container is not None:
            self._combo_layer.addItems(layer_labels(container))
        self._combo_layer.blockSignals(False)
        self.refresh()

    def set_layer(self, layer: int) -> None:
        self._combo_layer.setCurrentIndex(layer)

    def set_rotated(self, rotated: bool) -> None:
        self._chk_rotate.setChecked(rotated)

    def refresh(self) -> None:
        if self._container is None:
            self.projection = None
            self.table.setRowCount(0)
            self.table.setColumnCount(0)
            return

        # Container kann inzwischen geändert (Maße) oder gelöscht worden sein
        current = self._session.container(self._container.id)
        if current is None:
            self.set_container(None)
            return
        self._container = current

        self.projection = GridProjection(
            current,
            self._session.visible_items(current),
            layer=max(0, self._combo_layer.currentIndex()),
            rotated=self._chk_rotate.isChecked(),
            readonly=self._readonly,
        )
        proj = self.projection
        top, bottom = proj.edge_labels()
        self._lbl_top.setText(top)
        self._lbl_bottom.setText(bottom)

        self.table.clear()
        self.table.setRowCount(proj.grid_length)
        self.table.setColumnCount(proj.grid_width)
        for y, row in enumerate(proj.rows()):
            for x, item in enumerate(row):
                self.table.setItem(y, x, self._make_cell(proj, x, y, item))

    # ------------------------------------------------------------------ #
    # Interne Helfer
    # ------------------------------------------------------------------ #
    def _make_cell(self, proj: GridProjection, x: int, y: int, item) -> QTableWidgetItem:
        cell = QTableWidgetItem()
        cell.setTextAlignment(Qt.AlignCenter)
        if item is None:
            cell.setBackground(QBrush(_EMPTY_COLOR))
            return cell
        gear_item = self._session.gear_item(item.gear_id)
        band_id = gear_item.band_id if gear_item else None
        text = band_initials(band_id)
        if proj.is_stacked(x, y):
            text += f"×{proj.stack_count(x, y)}"
        cell.setText(text)
        cell.setBackground(QBrush(QColor(band_color(band_id))))
        cell.setForeground(QBrush(QColor(255, 255, 255)))
        if gear_item is not None:
            cell.setToolTip(f"{gear_item.display_label} {gear_item.description}")
        return cell

    def _on_cell_clicked(self, row: int, column: int) -> None:
        if self.projection is None:
            return
        click = self.projection.click(column, row)
        if click is not None:
            logger.debug("Zellklick (%d, %d) → %s", click.x, click.y, click.item)
            self.cellActivated.emit(click)
