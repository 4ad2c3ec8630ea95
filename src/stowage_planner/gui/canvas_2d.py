"""
stowage_planner.gui.canvas_2d
=============================

Top-View-Canvas eines Containers
--------------------------------
*   Prozentkoordinaten → Pixel bei jedem Neuaufbau (Szene-Einheit = 1 px)
*   Drag eines Items mit Klemmung an den Rand, Übernahme beim Loslassen
*   Drop aus Band-Liste / Staging-Leiste (MIME-Typ ``MIME_GEAR``)
*   Kontextmenü: Bearbeiten, nach vorne, nach hinten, entfernen
*   Stapel-Badge bei überlappenden Items (5 %-Toleranz)
*   Signale:
        - itemActivated(StowageItem)   Doppelklick / „Edit…“
        - messageEmitted(str)
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Mapping, Optional

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import (
    QBrush,
    QColor,
    QContextMenuEvent,
    QDragEnterEvent,
    QDragMoveEvent,
    QDropEvent,
    QMouseEvent,
    QPainter,
    QPen,
    QResizeEvent,
)
from PySide6.QtWidgets import (
    QGraphicsEllipseItem,
    QGraphicsItem,
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsSimpleTextItem,
    QGraphicsView,
    QMenu,
    QWidget,
)

from stowage_planner.core.coords import CanvasSize, ScreenRect, canvas_size_for_viewport
from stowage_planner.core.drag import DragEngine
from stowage_planner.core.labels import band_color, band_initials
from stowage_planner.core.models import Container, DuplicatePlacementError, GearItem, StowageItem
from stowage_planner.core.session import StowageSession
from stowage_planner.core.stacking import paint_sorted, stack_counts
from stowage_planner.gui.confirm_box import ask

logger = logging.getLogger(__name__)

MIME_GEAR = "application/x-stowage-gear"

_FLOOR_COLOR = QColor(236, 240, 241)
_BADGE_COLOR = QColor(231, 76, 60)


def encode_payload(payload: Mapping[str, str]) -> bytes:
    return json.dumps(dict(payload)).encode("utf-8")


def decode_payload(raw: bytes) -> Dict[str, str]:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.debug("Ungültiger Drop-Payload: %r", raw)
        return {}
    return data if isinstance(data, dict) else {}


# ────────────────────────────────────────────────────────────────────────────────
# Grafik-Item
# ────────────────────────────────────────────────────────────────────────────────
class StowageGraphicsItem(QGraphicsRectItem):
    """Rechteck eines Stowage-Items mit Band-Kürzel und optionalem Stapel-Badge."""

    def __init__(
        self,
        model: StowageItem,
        band_id: Optional[str],
        stack_count: int,
        rect: QRectF,
        parent: Optional[QGraphicsItem] = None,
    ) -> None:
        super().__init__(0, 0, rect.width(), rect.height(), parent)
        self._model = model
        self.setPos(rect.topLeft())

        self.setBrush(QBrush(QColor(band_color(band_id))))
        pen = QPen(QColor(255, 255, 255))
        if model.is_pending:
            pen.setStyle(Qt.DashLine)
            self.setOpacity(0.6)
        self.setPen(pen)

        label = QGraphicsSimpleTextItem(band_initials(band_id), self)
        label.setBrush(QBrush(QColor(255, 255, 255)))
        label.setPos(
            rect.width() / 2 - label.boundingRect().width() / 2,
            rect.height() / 2 - label.boundingRect().height() / 2,
        )

        if stack_count > 1:
            badge = QGraphicsEllipseItem(rect.width() - 9, -9, 18, 18, self)
            badge.setBrush(QBrush(_BADGE_COLOR))
            badge.setPen(QPen(Qt.NoPen))
            text = QGraphicsSimpleTextItem(str(stack_count), badge)
            text.setBrush(QBrush(QColor(255, 255, 255)))
            text.setPos(rect.width() - text.boundingRect().width() / 2, -text.boundingRect().height() / 2)

        self.setCursor(Qt.OpenHandCursor)

    @property
    def model(self) -> StowageItem:
        return self._model


# ────────────────────────────────────────────────────────────────────────────────
# Canvas
# ────────────────────────────────────────────────────────────────────────────────
class StowageCanvas(QGraphicsView):
    """Darstellung & Interaktion für *einen* Container."""

    itemActivated: Signal = Signal(object)
    messageEmitted: Signal = Signal(str)

    def __init__(
        self,
        session: StowageSession,
        *,
        readonly: bool = False,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._session = session
        self._readonly = readonly
        self._container: Optional[Container] = None
        self._engine: Optional[DragEngine] = None
        self._graphics: Dict[str, StowageGraphicsItem] = {}
        self._canvas = CanvasSize(width=800, height=400)

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)
        self.setAcceptDrops(not readonly)

    # ------------------------------------------------------------ Public API --

    @property
    def container(self) -> Optional[Container]:
        return self._container

    @property
    def engine(self) -> Optional[DragEngine]:
        return self._engine

    @property
    def canvas_size(self) -> CanvasSize:
        return self._canvas

    def set_readonly(self, readonly: bool) -> None:
        self._readonly = readonly
        self.setAcceptDrops(not readonly)
        if self._engine is not None:
            self._engine.readonly = readonly

    def set_container(self, container: Optional[Container]) -> None:
        if self._engine is not None:
            self._engine.cancel_drag()
        self._container = container
        if container is None:
            self._engine = None
        else:
            self._engine = DragEngine(
                container,
                self._canvas,
                on_move=self._session.move_item,
                on_place=self._place,
                on_touch_complete=lambda: logger.debug("Touch-Drop beendet"),
                readonly=self._readonly,
            )
        self.refresh()

    def set_canvas_size(self, size: CanvasSize) -> None:
        self._canvas = size
        if self._engine is not None:
            self._engine.resize(size)
        self.refresh()

    def graphics_items(self) -> List[StowageGraphicsItem]:
        return list(self._graphics.values())

    def refresh(self) -> None:
        """Szene komplett aus dem Session-Cache neu aufbauen."""
        self._scene.clear()
        self._graphics.clear()
        self._scene.setSceneRect(0, 0, self._canvas.width, self._canvas.height)
        if self._container is None or self._engine is None:
            return

        self._scene.addRect(
            QRectF(0, 0, self._canvas.width, self._canvas.height),
            QPen(QColor(44, 62, 80), 2),
            QBrush(_FLOOR_COLOR),
        )
        items = self._session.visible_items(self._container)
        counts = stack_counts(items)
        for z, item in enumerate(paint_sorted(items)):
            live = self._engine.live_item(item)
            rect = self._engine.item_rect(live)
            gear_item = self._session.gear_item(item.gear_id)
            graphic = StowageGraphicsItem(
                live,
                gear_item.band_id if gear_item else None,
                counts.get(item.key, 1),
                QRectF(rect.x, rect.y, rect.width_px, rect.height_px),
            )
            graphic.setZValue(z + 1)
            if gear_item is not None:
                graphic.setToolTip(f"{gear_item.display_label} {gear_item.description}")
            self._scene.addItem(graphic)
            self._graphics[item.key] = graphic

    def touch_drop(self, gear_item: GearItem, global_pos: QPointF) -> bool:
        """Touch-Ende über globaler Bildschirmposition (ohne Qt-Drop-Event)."""
        if self._engine is None:
            return False
        top_left = self.viewport().mapToGlobal(self.mapFromScene(QPointF(0, 0)))
        rect = ScreenRect(
            left=top_left.x(),
            top=top_left.y(),
            right=top_left.x() + self._canvas.width,
            bottom=top_left.y() + self._canvas.height,
        )
        return self._engine.touch_drop(gear_item, global_pos.x(), global_pos.y(), rect) is not None

    # ----------------------------------------------------------------- Events --

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        window = self.window()
        self.set_canvas_size(canvas_size_for_viewport(window.width(), window.height()))

    def _item_at(self, pos) -> Optional[StowageGraphicsItem]:
        for graphic in self.items(pos):
            while graphic is not None and not isinstance(graphic, StowageGraphicsItem):
                graphic = graphic.parentItem()
            if graphic is not None:
                return graphic
        return None

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.LeftButton and self._engine is not None:
            graphic = self._item_at(event.position().toPoint())
            if graphic is not None:
                scene_pos = self.mapToScene(event.position().toPoint())
                if self._engine.begin_drag(graphic.model, scene_pos.x(), scene_pos.y()):
                    self.setCursor(Qt.ClosedHandCursor)
                    event.accept()
                    return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._engine is not None and self._engine.is_dragging:
            scene_pos = self.mapToScene(event.position().toPoint())
            dragged = self._engine.dragging
            if self._engine.continue_drag(scene_pos.x(), scene_pos.y()) is not None and dragged:
                graphic = self._graphics.get(dragged.key)
                if graphic is not None:
                    rect = self._engine.item_rect(self._engine.live_item(dragged))
                    graphic.setPos(rect.x, rect.y)
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if self._engine is not None and self._engine.is_dragging:
            self.unsetCursor()
            self._finish_drag()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:
        if self._engine is not None and self._engine.is_dragging:
            self._finish_drag()
        super().leaveEvent(event)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        graphic = self._item_at(event.position().toPoint())
        if graphic is not None and not self._readonly:
            self.itemActivated.emit(graphic.model)
            return
        super().mouseDoubleClickEvent(event)

    def contextMenuEvent(self, event: QContextMenuEvent) -> None:
        graphic = self._item_at(event.pos())
        if graphic is None or self._readonly:
            return
        item = graphic.model
        menu = QMenu(self)
        act_edit = menu.addAction("Edit…")
        act_front = menu.addAction("Bring to front")
        act_back = menu.addAction("Send to back")
        menu.addSeparator()
        act_delete = menu.addAction("Remove from container")
        chosen = menu.exec(event.globalPos())
        if chosen is act_edit:
            self.itemActivated.emit(item)
        elif chosen is act_front:
            self._session.bring_to_front(item)
        elif chosen is act_back:
            self._session.send_to_back(item)
        elif chosen is act_delete:
            ask(self, self._session.request_delete_item(item))

    # ––– Drag & Drop aus Gear-Listen ------------------------------------------

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        if not self._readonly and event.mimeData().hasFormat(MIME_GEAR):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event: QDragMoveEvent) -> None:
        if not self._readonly and event.mimeData().hasFormat(MIME_GEAR):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent) -> None:
        if self._engine is None or not event.mimeData().hasFormat(MIME_GEAR):
            event.ignore()
            return
        payload = decode_payload(bytes(event.mimeData().data(MIME_GEAR)))
        scene_pos = self.mapToScene(event.position().toPoint())
        self._engine.drop(payload, scene_pos.x(), scene_pos.y(), self._session.staged, self._session.gear)
        event.acceptProposedAction()

    # ---------------------------------------------------------------- Internes --

    def _finish_drag(self) -> None:
        if self._engine is None:
            return
        dragged = self._engine.dragging
        if self._engine.end_drag() is None and dragged is not None:
            # vorläufiges Item: Live-Position verwerfen
            self.refresh()

    def _place(self, gear_item: GearItem, position) -> None:
        if self._container is None:
            return
        try:
            self._session.place_gear(self._container, gear_item, position)
        except DuplicatePlacementError as exc:
            logger.info("Platzierung abgelehnt: %s", exc)
            self.messageEmitted.emit(str(exc))
