"""
src/stowage_planner/gui/window.py

Hauptfenster des Stowage-Planers
--------------------------------
Links Standortfilter und Containerliste (mit Füllgrad), in der Mitte Canvas
und Rasteransicht als Tabs, rechts Staging-Leiste und Gear nach Band.
Toolbar für Container-Verwaltung, Aufräumen, Suche und Export.

Alle Änderungen laufen über die `StowageSession`; das Fenster hört auf deren
Benachrichtigungen und baut die Ansichten neu auf.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import QObject, QPointF, Qt, QThread, Signal
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QStatusBar,
    QTabWidget,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from stowage_planner.core.grid import CellClick
from stowage_planner.core.item_form import ItemForm
from stowage_planner.core.models import Container, GearItem, StowageItem
from stowage_planner.core.presets import ContainerPreset
from stowage_planner.core.session import StowageSession
from stowage_planner.export.pdf_export import export_pdf
from stowage_planner.export.render_2d import render_top_view
from stowage_planner.gui.canvas_2d import StowageCanvas
from stowage_planner.gui.confirm_box import ask
from stowage_planner.gui.container_dialog import ContainerDialog
from stowage_planner.gui.gear_list import GearPanel
from stowage_planner.gui.grid_view import GridView
from stowage_planner.gui.item_dialog import ItemDialog

logger = logging.getLogger(__name__)

_CONTAINER_ROLE = Qt.UserRole


# ──────────────────────────────────────────────────────────────────────────────
# Helfer: Generischer Worker für lange Operationen (eigener QThread)
# ──────────────────────────────────────────────────────────────────────────────
class _Worker(QObject):
    """Führt *fn* mit *args/kwargs* in einem separaten Thread aus."""

    finished: Signal = Signal(object)
    error: Signal = Signal(str)

    def __init__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self._fn = fn
        self._args = args
        self._kwargs = kwargs

    def run(self) -> None:
        try:
            result = self._fn(*self._args, **self._kwargs)
        except Exception as exc:  # pragma: no cover
            logger.exception("Fehler im Worker-Thread")
            self.error.emit(str(exc))
            return
        self.finished.emit(result)


def _run_in_thread(
    parent: "MainWindow",
    fn: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> None:
    """
    Startet *fn* in einem QThread; Ergebnis bzw. Fehler landen in
    ``parent._on_action_success`` / ``parent._on_action_error``.
    """
    worker = _Worker(fn, *args, **kwargs)
    thread = QThread(parent)
    worker.moveToThread(thread)
    thread.started.connect(worker.run)  # type: ignore[arg-type]

    worker.finished.connect(parent._on_action_success)  # type: ignore[arg-type]
    worker.error.connect(parent._on_action_error)       # type: ignore[arg-type]

    worker.finished.connect(thread.quit)                # type: ignore[arg-type]
    worker.error.connect(thread.quit)                   # type: ignore[arg-type]
    worker.finished.connect(worker.deleteLater)         # type: ignore[arg-type]
    thread.finished.connect(thread.deleteLater)         # type: ignore[arg-type]

    parent._workers.append(worker)
    thread.start()


# ──────────────────────────────────────────────────────────────────────────────
# MainWindow
# ──────────────────────────────────────────────────────────────────────────────
class MainWindow(QMainWindow):
    """Containerliste (links), Canvas/Raster (Mitte), Gear (rechts)."""

    def __init__(
        self,
        session: StowageSession,
        presets: Dict[str, ContainerPreset] | None = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__()
        self._session = session
        self._presets: Dict[str, ContainerPreset] = presets or {}
        self._readonly = readonly
        self._current: Optional[Container] = None
        self._workers: list[_Worker] = []
        self.setWindowTitle("Stowage Planner")

        # ---------- zentrale Widgets --------------------------------------------------
        self._combo_location = QComboBox(self)
        self._combo_location.currentIndexChanged.connect(lambda _idx: self._refresh_containers())
        self._list_containers = QListWidget(self)
        self._list_containers.currentItemChanged.connect(self._on_container_selected)
        self._list_containers.itemDoubleClicked.connect(lambda _it: self._on_edit_container())
        self._lbl_fill = QLabel(self)

        left_pane = QWidget()
        left_layout = QVBoxLayout(left_pane)
        left_layout.setContentsMargins(0, 0, 0, 0)
        left_layout.addWidget(self._combo_location)
        left_layout.addWidget(self._list_containers, 1)
        left_layout.addWidget(self._lbl_fill)

        self._canvas = StowageCanvas(session, readonly=readonly, parent=self)
        self._canvas.itemActivated.connect(self._open_item_dialog)
        self._canvas.messageEmitted.connect(self._set_status)
        self._grid = GridView(session, readonly=readonly, parent=self)
        self._grid.cellActivated.connect(self._on_cell_activated)

        self._tabs = QTabWidget(self)
        self._tabs.addTab(self._canvas, "Canvas")
        self._tabs.addTab(self._grid, "Grid")

        self._gear_panel = GearPanel(session, parent=self)
        self._gear_panel.touchDropped.connect(self._on_touch_dropped)
        self._gear_panel.setEnabled(not readonly)

        self._search_results = QListWidget(self)
        self._search_results.itemActivated.connect(self._on_search_result_activated)
        self._search_results.hide()

        right_pane = QWidget()
        right_layout = QVBoxLayout(right_pane)
        right_layout.setContentsMargins(0, 0, 0, 0)
        right_layout.addWidget(self._search_results)
        right_layout.addWidget(self._gear_panel, 1)

        self._splitter = QSplitter(Qt.Horizontal, self)
        self._splitter.addWidget(left_pane)
        self._splitter.addWidget(self._tabs)
        self._splitter.addWidget(right_pane)
        self._splitter.setStretchFactor(0, 1)
        self._splitter.setStretchFactor(1, 4)
        self._splitter.setStretchFactor(2, 1)
        self.setCentralWidget(self._splitter)

        # ---------- Toolbar / Statusbar -----------------------------------------------
        self._build_toolbar()
        self._statusbar = QStatusBar(self)
        self.setStatusBar(self._statusbar)

        self._unsubscribe = session.subscribe(self._on_session_changed)
        self._refresh_locations()
        self._set_status("Ready")

    # ..........................................................................
    # Aufbau Toolbar
    # ..........................................................................
    def _build_toolbar(self) -> None:
        tb = QToolBar("Main actions", self)
        tb.setMovable(False)
        self.addToolBar(tb)

        self._act_new_container = QAction("New container", self)
        self._act_new_container.triggered.connect(self._on_new_container)
        tb.addAction(self._act_new_container)

        self._act_edit_container = QAction("Edit container", self)
        self._act_edit_container.triggered.connect(self._on_edit_container)
        tb.addAction(self._act_edit_container)

        self._act_delete_container = QAction("Delete container", self)
        self._act_delete_container.triggered.connect(self._on_delete_container)
        tb.addAction(self._act_delete_container)

        tb.addSeparator()

        self._act_clear = QAction("Clear all items", self)
        self._act_clear.triggered.connect(self._on_clear_container)
        tb.addAction(self._act_clear)

        self._act_cleanup = QAction("Clean up", self)
        self._act_cleanup.setToolTip("Remove items whose gear is missing or elsewhere")
        self._act_cleanup.triggered.connect(self._on_cleanup_container)
        tb.addAction(self._act_cleanup)

        tb.addSeparator()

        self._act_reload = QAction("Reload", self)
        self._act_reload.triggered.connect(lambda: self._session.resync())
        tb.addAction(self._act_reload)

        self._act_export = QAction("Export PDF", self)
        self._act_export.triggered.connect(self._on_export_pdf)
        tb.addAction(self._act_export)

        self._act_export_png = QAction("Export PNG", self)
        self._act_export_png.triggered.connect(self._on_export_png)
        tb.addAction(self._act_export_png)

        tb.addSeparator()

        self._edit_search = QLineEdit(tb)
        self._edit_search.setPlaceholderText("Search gear…")
        self._edit_search.setClearButtonEnabled(True)
        self._edit_search.textChanged.connect(self._on_search)
        tb.addWidget(self._edit_search)

        for act in (
            self._act_new_container,
            self._act_edit_container,
            self._act_delete_container,
            self._act_clear,
            self._act_cleanup,
        ):
            act.setEnabled(not self._readonly)

    # ..........................................................................
    # Status-/Refresh-Helfer
    # ..........................................................................
    def _set_status(self, text: str) -> None:
        self.statusBar().showMessage(text)

    @property
    def current_container(self) -> Optional[Container]:
        return self._current

    def _refresh_locations(self) -> None:
        selected = self._combo_location.currentData()
        self._combo_location.blockSignals(True)
        self._combo_location.clear()
        self._combo_location.addItem("All locations", None)
        for loc in self._session.locations:
            self._combo_location.addItem(loc.label, loc.id)
        self._combo_location.setCurrentIndex(max(self._combo_location.findData(selected), 0))
        self._combo_location.blockSignals(False)
        self._refresh_containers()

    def _refresh_containers(self) -> None:
        keep = self._current.id if self._current else None
        self._list_containers.blockSignals(True)
        self._list_containers.clear()
        for container in self._session.containers_at(self._combo_location.currentData()):
            info = self._session.fill_info(container)
            entry = QListWidgetItem(
                f"{container.name}\n{container.size_label()} · {info.item_count} items · "
                f"{info.fill_percentage}%"
            )
            entry.setData(_CONTAINER_ROLE, container.id)
            self._list_containers.addItem(entry)
            if container.id == keep:
                self._list_containers.setCurrentItem(entry)
        self._list_containers.blockSignals(False)
        self._select(self._session.container(keep) if keep else None)

    def _select(self, container: Optional[Container]) -> None:
        self._current = container
        self._canvas.set_container(container)
        self._grid.set_container(container)
        self._gear_panel.set_container(container)
        if container is None:
            self._lbl_fill.setText("")
            return
        info = self._session.fill_info(container)
        self._lbl_fill.setText(
            f"{info.item_count} items · {info.occupied_cells}/{info.total_cells} cells · "
            f"{info.fill_percentage}% full"
        )

    def _on_session_changed(self) -> None:
        if self._session.message:
            self._set_status(self._session.message)
        locations = [self._combo_location.itemData(i) for i in range(1, self._combo_location.count())]
        if locations != [loc.id for loc in self._session.locations]:
            self._refresh_locations()
        else:
            self._refresh_containers()

    # ..........................................................................
    # Slots – Container
    # ..........................................................................
    def _on_container_selected(self, entry: Optional[QListWidgetItem], _prev=None) -> None:
        container_id = entry.data(_CONTAINER_ROLE) if entry is not None else None
        self._select(self._session.container(container_id) if container_id else None)

    def _open_container_dialog(self, editing: Optional[Container]) -> Optional[Container]:
        dlg = ContainerDialog(
            self._session,
            self._presets,
            self._session.locations,
            editing=editing,
            default_location_id=self._combo_location.currentData(),
            parent=self,
        )
        dlg.exec()
        return dlg.saved

    def _on_new_container(self) -> None:
        created = self._open_container_dialog(None)
        if created is not None:
            self._current = created
            self._refresh_containers()

    def _on_edit_container(self) -> None:
        if self._current is None or self._readonly:
            return
        updated = self._open_container_dialog(self._current)
        if updated is not None:
            overflow = self._session.out_of_bounds_items(updated)
            if overflow:
                QMessageBox.warning(
                    self,
                    "Items out of bounds",
                    f"{len(overflow)} item(s) no longer fit inside the resized container.",
                )

    def _on_delete_container(self) -> None:
        if self._current is not None:
            ask(self, self._session.request_delete_container(self._current))

    def _on_clear_container(self) -> None:
        if self._current is not None:
            ask(self, self._session.request_clear_container(self._current))

    def _on_cleanup_container(self) -> None:
        if self._current is not None:
            ask(self, self._session.request_cleanup_container(self._current))

    # ..........................................................................
    # Slots – Items
    # ..........................................................................
    def _gear_choices(self, container: Container, current: Optional[str]) -> list[GearItem]:
        choices = self._session.available_gear(container)
        if current and not any(g.id == current for g in choices):
            gear_item = self._session.gear_item(current)
            if gear_item is not None:
                choices.insert(0, gear_item)
        return choices

    def _open_item_dialog(self, item: StowageItem) -> None:
        container = self._session.container(item.container_id)
        if container is None or self._readonly:
            return
        self._exec_item_form(ItemForm.for_item(container, item))

    def _exec_item_form(self, form: ItemForm) -> None:
        choices = self._gear_choices(form.container, form.gear_id)
        ItemDialog(self._session, form, choices, parent=self).exec()

    def _on_cell_activated(self, click: CellClick) -> None:
        container = self._current
        if container is None:
            return
        if click.item is not None:
            self._open_item_dialog(click.item)
            return
        if self._readonly:
            return
        form = ItemForm(
            container,
            x_position=click.x / container.width * 100,
            y_position=click.y / container.length * 100,
            layer=self._grid.projection.layer if self._grid.projection else 0,
        )
        self._exec_item_form(form)

    def _on_touch_dropped(self, gear_item: GearItem, global_pos: QPointF) -> None:
        self._canvas.touch_drop(gear_item, global_pos)

    # ..........................................................................
    # Slots – Suche
    # ..........................................................................
    def _on_search(self, text: str) -> None:
        results = self._session.search(text)
        self._search_results.clear()
        for res in results:
            entry = QListWidgetItem(
                f"{res.gear_display_label} {res.gear_description} → {res.container_name}"
            )
            entry.setData(_CONTAINER_ROLE, res.container_id)
            self._search_results.addItem(entry)
        self._search_results.setVisible(bool(text.strip()))
        if text.strip():
            self._set_status(f"{len(results)} match(es)")

    def _on_search_result_activated(self, entry: QListWidgetItem) -> None:
        container = self._session.container(entry.data(_CONTAINER_ROLE))
        if container is None:
            return
        self._combo_location.setCurrentIndex(0)
        self._current = container
        self._refresh_containers()

    # ..........................................................................
    # Slots – Export
    # ..........................................................................
    def _on_export_pdf(self) -> None:
        filename, _ = QFileDialog.getSaveFileName(self, "Export PDF", "", "PDF file (*.pdf)")
        if not filename:
            return
        self._set_status("Exporting …")
        containers = [self._current] if self._current is not None else None
        _run_in_thread(self, export_pdf, self._session, filename, containers)

    def _on_export_png(self) -> None:
        if self._current is None:
            return
        filename, _ = QFileDialog.getSaveFileName(self, "Export PNG", "", "PNG image (*.png)")
        if not filename:
            return
        img = render_top_view(
            self._current, self._session.visible_items(self._current), self._session.gear
        )
        try:
            img.save(filename, format="PNG")
        except OSError as exc:
            logger.exception("PNG-Export fehlgeschlagen")
            self._on_action_error(str(exc))
            return
        self._set_status(f"Saved {filename}")

    # ..........................................................................
    # Callback-Slots aus Worker-Threads
    # ..........................................................................
    def _on_action_success(self, result: object) -> None:
        self._set_status("Export finished")
        QMessageBox.information(self, "Done", "Export finished successfully.")

    def _on_action_error(self, message: str) -> None:
        self._set_status("Error")
        QMessageBox.critical(self, "Error", message)

    def closeEvent(self, event) -> None:
        self._unsubscribe()
        super().closeEvent(event)


if __name__ == "__main__":  # pragma: no cover
    from PySide6.QtWidgets import QApplication

    from stowage_planner.core.store import MemoryDocumentStore

    app = QApplication(sys.argv)
    session = StowageSession(MemoryDocumentStore())
    session.load()
    win = MainWindow(session)
    win.resize(1280, 800)
    win.show()
    sys.exit(app.exec())
