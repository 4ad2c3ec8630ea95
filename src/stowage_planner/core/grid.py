"""
Raster-Projektion (Zellansicht) der Stowage-Items.

Gespeichert wird nur im Prozentraum; die Zellbelegung wird bei jedem Render
aus `x_position`/`item_width` usw. neu abgetastet. Die Ansicht zeigt jeweils
eine Ebene; die Stapelanzeige zählt dagegen über *alle* Ebenen.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import Container, StowageItem
from .stacking import paint_sorted

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CellRect:
    x: int
    y: int
    width: int
    height: int

    def cells(self):
        for cx in range(self.x, self.x + self.width):
            for cy in range(self.y, self.y + self.height):
                yield cx, cy


@dataclass(frozen=True, slots=True)
class CellClick:
    x: int
    y: int
    item: Optional[StowageItem]


@dataclass(frozen=True, slots=True)
class FillInfo:
    item_count: int
    occupied_cells: int
    total_cells: int
    fill_percentage: int


# --------------------------------------------------------------------------- #
# Abtastung                                                                   #
# --------------------------------------------------------------------------- #
def _span(position_pct: float, size_ft: float, cells: int, extent_ft: float) -> Tuple[int, int]:
    ft_per_cell = extent_ft / cells
    start = int(math.floor(position_pct / 100 * cells))
    start = max(0, min(start, cells - 1))
    size = max(1, int(math.ceil(size_ft / ft_per_cell - 1e-9)))
    size = min(size, cells - start)
    return start, size


def item_cells(item: StowageItem, container: Container) -> CellRect:
    """Zellrechteck eines Items in kanonischen Achsen (x = Breite, y = Länge)."""
    x, width = _span(item.x_position, item.item_width, container.width, container.width_ft)
    y, height = _span(item.y_position, item.item_length, container.length, container.length_ft)
    return CellRect(x=x, y=y, width=width, height=height)


def occupies_layer(item: StowageItem, layer: int) -> bool:
    """``item.layer <= layer < item.layer + item.item_height``"""
    return item.layer <= layer < item.top_layer


def layer_labels(container: Container) -> List[str]:
    return ["Ground" if i == 0 else f"Layer {i}" for i in range(container.container_height)]


def occupancy(container: Container, items: Sequence[StowageItem]) -> np.ndarray:
    """Anzahl Items je Zelle über alle Ebenen, Form ``(length, width)``."""
    counts = np.zeros((container.length, container.width), dtype=np.int32)
    for item in items:
        rect = item_cells(item, container)
        counts[rect.y : rect.y + rect.height, rect.x : rect.x + rect.width] += 1
    return counts


def fill_info(container: Container, items: Sequence[StowageItem]) -> FillInfo:
    """Belegte Grundfläche in Zellen (gestapelte Items zählen mehrfach)."""
    occupied = 0
    for item in items:
        rect = item_cells(item, container)
        occupied += rect.width * rect.height
    total = container.total_cells
    pct = round(occupied / total * 100) if total > 0 else 0
    return FillInfo(
        item_count=len(items),
        occupied_cells=occupied,
        total_cells=total,
        fill_percentage=pct,
    )


# --------------------------------------------------------------------------- #
# Projektion                                                                  #
# --------------------------------------------------------------------------- #
class GridProjection:
    """Zellansicht einer Ebene, optional mit vertauschten Achsen (gedreht)."""

    def __init__(
        self,
        container: Container,
        items: Sequence[StowageItem],
        *,
        layer: int = 0,
        rotated: bool = False,
        readonly: bool = False,
    ) -> None:
        self.container = container
        self.items = list(items)
        self.layer = layer
        self.rotated = rotated
        self.readonly = readonly
        self._cell_items: Dict[Tuple[int, int], StowageItem] = {}
        self._counts = occupancy(container, self.items)
        self._build()

    def _build(self) -> None:
        # später gemalte Items überdecken frühere in derselben Zelle
        for item in paint_sorted(self.items):
            if not occupies_layer(item, self.layer):
                continue
            for cx, cy in item_cells(item, self.container).cells():
                self._cell_items[(cx, cy)] = item
        logger.debug(
            "GridProjection: Ebene %d, %d Zellen belegt", self.layer, len(self._cell_items)
        )

    # ------------------------------------------------------------ Achsen --

    @property
    def grid_width(self) -> int:
        return self.container.length if self.rotated else self.container.width

    @property
    def grid_length(self) -> int:
        return self.container.width if self.rotated else self.container.length

    def to_canonical(self, x: int, y: int) -> Tuple[int, int]:
        """Anzeige- → kanonische Koordinaten (bei Drehung vertauscht)."""
        return (y, x) if self.rotated else (x, y)

    def edge_labels(self) -> Tuple[str, str]:
        return ("Left Side", "Right Side") if self.rotated else ("Front", "Back")

    # ------------------------------------------------------------- Zellen --

    def cell_item(self, x: int, y: int) -> Optional[StowageItem]:
        """Item der aktuellen Ebene an Anzeigezelle (x, y)."""
        return self._cell_items.get(self.to_canonical(x, y))

    def stack_count(self, x: int, y: int) -> int:
        cx, cy = self.to_canonical(x, y)
        if not (0 <= cx < self.container.width and 0 <= cy < self.container.length):
            return 0
        return int(self._counts[cy, cx])

    def is_stacked(self, x: int, y: int) -> bool:
        return self.stack_count(x, y) > 1

    def click(self, x: int, y: int) -> Optional[CellClick]:
        """Zellklick → kanonische Koordinaten + vorhandenes Item (oder None)."""
        if self.readonly:
            return None
        cx, cy = self.to_canonical(x, y)
        return CellClick(x=cx, y=cy, item=self._cell_items.get((cx, cy)))

    def rows(self) -> List[List[Optional[StowageItem]]]:
        """Anzeigeraster zeilenweise (y außen, x innen)."""
        return [
            [self.cell_item(x, y) for x in range(self.grid_width)]
            for y in range(self.grid_length)
        ]


__all__ = [
    "CellRect",
    "CellClick",
    "FillInfo",
    "GridProjection",
    "item_cells",
    "occupies_layer",
    "layer_labels",
    "occupancy",
    "fill_info",
]
