"""
Platzierungs- und Drag-Logik für den Stowage-Canvas.

Das Modul ist **rein logisch** (kein GUI-Import): das Widget reicht
Zeigerkoordinaten relativ zur Zeichenfläche durch, die Engine rechnet
Positionen aus und meldet Ergebnisse über Callbacks.

Callbacks
---------
- `on_move(item_id, changes)`       – Position eines Items übernehmen
- `on_place(gear, (x_pct, y_pct))`  – neues Item an Prozentposition anlegen
- `on_touch_complete()`             – Touch-Drag beendet (Erfolg egal)

Die Engine berechnet nur *wo* ein Item landet, nicht *was* angelegt wird.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .coords import CanvasSize, ScreenRect, clamp, to_percent, to_pixels
from .models import Container, GearItem, ItemId, StowageItem

logger = logging.getLogger(__name__)

# Schlüssel im Drop-Payload (Staging-Leiste bzw. Band-Liste)
STAGED_GEAR_KEY = "staged_gear_id"
DIRECT_GEAR_KEY = "direct_gear_id"

MoveCallback = Callable[[ItemId, Dict[str, Any]], None]
PlaceCallback = Callable[[GearItem, Tuple[float, float]], None]


@dataclass(slots=True)
class DragState:
    item: StowageItem
    offset_x: float
    offset_y: float
    x_position: float
    y_position: float


class DragEngine:
    """Vermittelt Drag, Drop und Touch-Drop zwischen Widget und Session."""

    def __init__(
        self,
        container: Container,
        canvas: CanvasSize,
        *,
        on_move: Optional[MoveCallback] = None,
        on_place: Optional[PlaceCallback] = None,
        on_touch_complete: Optional[Callable[[], None]] = None,
        readonly: bool = False,
    ) -> None:
        self.container = container
        self.canvas = canvas
        self.readonly = readonly
        self._on_move = on_move
        self._on_place = on_place
        self._on_touch_complete = on_touch_complete
        self._drag: Optional[DragState] = None

    # ------------------------------------------------------------ Zustand --

    @property
    def dragging(self) -> Optional[StowageItem]:
        return self._drag.item if self._drag else None

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    def resize(self, canvas: CanvasSize) -> None:
        """Neue Zeichenflächengröße; ein laufender Drag wird nicht nachgeklemmt."""
        self.canvas = canvas

    def item_rect(self, item: StowageItem):
        """Pixelrechteck eines Items auf der aktuellen Zeichenfläche."""
        return to_pixels(
            item.x_position,
            item.y_position,
            item.item_width,
            item.item_length,
            self.canvas.width,
            self.canvas.height,
            self.container.width_ft,
            self.container.length_ft,
        )

    def live_item(self, item: StowageItem) -> StowageItem:
        """*item* mit Live-Position, falls es gerade gezogen wird (nur Anzeige)."""
        if self._drag and self._drag.item.id == item.id:
            return item.with_changes(
                x_position=self._drag.x_position, y_position=self._drag.y_position
            )
        return item

    # --------------------------------------------------------------- Drag --

    def begin_drag(self, item: StowageItem, pointer_x: float, pointer_y: float) -> bool:
        """Maus-/Touch-Start auf einem Item. Im Nur-Lese-Modus wirkungslos."""
        if self.readonly:
            return False
        rect = self.item_rect(item)
        self._drag = DragState(
            item=item,
            offset_x=pointer_x - rect.x,
            offset_y=pointer_y - rect.y,
            x_position=item.x_position,
            y_position=item.y_position,
        )
        logger.debug("Drag gestartet: %s", item.key)
        return True

    def continue_drag(self, pointer_x: float, pointer_y: float) -> Optional[Tuple[float, float]]:
        """
        Neue Live-Position aus der Zeigerposition.

        Die Position wird auf ``[0, canvas - itemgröße]`` geklemmt, damit die
        Grundfläche die Zeichenfläche nie verlässt. Ist ein Item größer als
        der Container, wird die Obergrenze negativ und das Item bleibt am
        Ursprung hängen.
        """
        if self._drag is None or self.readonly:
            return None
        rect = self.item_rect(self._drag.item)
        max_x = self.canvas.width - rect.width_px
        max_y = self.canvas.height - rect.height_px
        new_x = clamp(pointer_x - self._drag.offset_x, 0.0, max_x)
        new_y = clamp(pointer_y - self._drag.offset_y, 0.0, max_y)
        x_percent, y_percent = to_percent(new_x, new_y, self.canvas.width, self.canvas.height)
        self._drag.x_position = x_percent
        self._drag.y_position = y_percent
        return x_percent, y_percent

    def end_drag(self) -> Optional[Dict[str, Any]]:
        """
        Übernimmt die Live-Position über `on_move` und beendet den Drag.

        Items mit vorläufiger ID werden nicht übernommen (noch nichts zum
        Speichern vorhanden).
        """
        drag, self._drag = self._drag, None
        if drag is None:
            return None
        if drag.item.is_pending:
            logger.debug("Drag für vorläufiges Item %s verworfen", drag.item.key)
            return None
        changes = {"x_position": drag.x_position, "y_position": drag.y_position}
        if self._on_move is not None:
            self._on_move(drag.item.id, changes)
        return changes

    def cancel_drag(self) -> None:
        """Drag ohne Übernahme abbrechen (Dialog geschlossen, Ansicht gewechselt)."""
        self._drag = None

    # --------------------------------------------------------------- Drop --

    def drop(
        self,
        payload: Mapping[str, str],
        pointer_x: float,
        pointer_y: float,
        staged: Sequence[GearItem] = (),
        gear: Sequence[GearItem] = (),
    ) -> Optional[Tuple[float, float]]:
        """Drop eines Gear-Items aus Staging-Leiste oder Band-Liste."""
        if self.readonly or self._on_place is None:
            return None
        gear_id = payload.get(STAGED_GEAR_KEY) or payload.get(DIRECT_GEAR_KEY)
        if not gear_id:
            return None
        gear_item = next((g for g in staged if g.id == gear_id), None) or next(
            (g for g in gear if g.id == gear_id), None
        )
        if gear_item is None:
            logger.debug("Drop ignoriert: Gear %s unbekannt", gear_id)
            return None
        position = to_percent(pointer_x, pointer_y, self.canvas.width, self.canvas.height)
        self._on_place(gear_item, position)
        return position

    def touch_drop(
        self,
        touch_item: Optional[GearItem],
        client_x: float,
        client_y: float,
        canvas_rect: ScreenRect,
    ) -> Optional[Tuple[float, float]]:
        """
        Touch-Ende (Touch-Gesten lösen kein Qt-Drop-Event aus).

        Liegt der Punkt innerhalb der Zeichenfläche, wird platziert; der
        Aufrufer wird in jedem Fall über `on_touch_complete` benachrichtigt.
        """
        if self.readonly or self._on_place is None or touch_item is None:
            return None
        position = None
        try:
            if canvas_rect.contains(client_x, client_y):
                position = to_percent(
                    client_x - canvas_rect.left,
                    client_y - canvas_rect.top,
                    self.canvas.width,
                    self.canvas.height,
                )
                self._on_place(touch_item, position)
        finally:
            if self._on_touch_complete is not None:
                self._on_touch_complete()
        return position


__all__ = ["DragEngine", "DragState", "STAGED_GEAR_KEY", "DIRECT_GEAR_KEY"]
