"""
Stapel-Erkennung und Zeichenreihenfolge für den Stowage-Canvas.

Funktionen
----------
is_stacked_together(a, b)   -> bool
    Zwei Items liegen (ungefähr) auf derselben Position.

stack_group(item, items)    -> list[StowageItem]
    Alle Items (inkl. *item*), die mit *item* zusammen gestapelt sind.

stack_counts(items)         -> dict[str, int]
    Anzeige-Stapelzahl je Item-Key (O(n²) pro Render).

bring_to_front(item, items) -> int
send_to_back(item, items)   -> int
    Neue `paint_order` für Vorder-/Hintergrund.

paint_sorted(items)         -> list[StowageItem]
    Zeichenreihenfolge (aufsteigend nach `paint_order`).

Die Toleranz ist eine feste Prozentpunkt-Grenze (kein exakter
Kollisionstest) und skaliert nicht mit der Zeichenfläche.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from .models import StowageItem

STACK_TOLERANCE_PERCENT: float = 5.0

logger = logging.getLogger(__name__)


def is_stacked_together(a: StowageItem, b: StowageItem) -> bool:
    """True, wenn X- und Y-Abstand jeweils *strikt* unter der Toleranz liegen."""
    return (
        abs(a.x_position - b.x_position) < STACK_TOLERANCE_PERCENT
        and abs(a.y_position - b.y_position) < STACK_TOLERANCE_PERCENT
    )


def stack_group(item: StowageItem, items: Iterable[StowageItem]) -> List[StowageItem]:
    """Stapelgruppe von *item*; enthält *item* selbst, sofern es in *items* liegt."""
    return [other for other in items if is_stacked_together(item, other)]


def stack_counts(items: Sequence[StowageItem]) -> Dict[str, int]:
    """Anzeige-Stapelzahl pro Item (Schlüssel: `StowageItem.key`)."""
    counts = {item.key: len(stack_group(item, items)) for item in items}
    logger.debug("stack_counts: %d Items ausgewertet", len(counts))
    return counts


def bring_to_front(item: StowageItem, items: Iterable[StowageItem]) -> int:
    """``max(paint_order) + 1`` über alle Items des Containers."""
    orders = [other.paint_order for other in items]
    return max(orders, default=item.paint_order) + 1


def send_to_back(item: StowageItem, items: Iterable[StowageItem]) -> int:
    """``min(paint_order) - 1`` über alle Items des Containers."""
    orders = [other.paint_order for other in items]
    return min(orders, default=item.paint_order) - 1


def paint_sorted(items: Iterable[StowageItem]) -> List[StowageItem]:
    """Stabil aufsteigend sortiert – höhere `paint_order` wird später gemalt."""
    return sorted(items, key=lambda it: it.paint_order)


__all__ = [
    "STACK_TOLERANCE_PERCENT",
    "is_stacked_together",
    "stack_group",
    "stack_counts",
    "bring_to_front",
    "send_to_back",
    "paint_sorted",
]
