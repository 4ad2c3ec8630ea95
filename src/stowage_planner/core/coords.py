"""
Koordinatenmodell für den Stowage-Canvas.

Gespeichert wird ausschließlich im **Prozentraum** (0–100 % der Container-
Breite bzw. -Länge, gemessen von der linken/vorderen Kante). Pixel sind eine
flüchtige Darstellung für Rendering und Hit-Testing auf einer Zeichenfläche
bekannter Größe; ändert sich die Fenstergröße, müssen keine gespeicherten
Positionen umgeschrieben werden.

Public API
----------
- `to_pixels(...)`              -> PixelRect
- `to_percent(x, y, w, h)`      -> (x_percent, y_percent)
- `canvas_size_for_viewport()`  -> CanvasSize
- `clamp(value, lo, hi)`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

# Responsive Grenzen (Pixel)
CANVAS_MAX_WIDTH = 800
CANVAS_MIN_WIDTH = 300
CANVAS_MIN_HEIGHT = 400
VIEWPORT_SIDE_MARGIN = 40
VIEWPORT_CONTROLS_HEIGHT = 400


@dataclass(frozen=True, slots=True)
class CanvasSize:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class PixelRect:
    x: float
    y: float
    width_px: float
    height_px: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width_px and self.y <= py <= self.y + self.height_px


@dataclass(frozen=True, slots=True)
class ScreenRect:
    """Bildschirm-Rechteck der Zeichenfläche (für Touch-Drops)."""

    left: float
    top: float
    right: float
    bottom: float

    def contains(self, px: float, py: float) -> bool:
        return self.left <= px <= self.right and self.top <= py <= self.bottom


def clamp(value: float, lo: float, hi: float) -> float:
    """``max(lo, min(value, hi))`` – bei ``hi < lo`` gewinnt *lo*."""
    return max(lo, min(value, hi))


def to_pixels(
    x_percent: float,
    y_percent: float,
    item_width_ft: float,
    item_length_ft: float,
    canvas_w: float,
    canvas_h: float,
    container_width_ft: float,
    container_length_ft: float,
) -> PixelRect:
    """Prozentposition + Fußmaße → Pixelrechteck auf der Zeichenfläche."""
    return PixelRect(
        x=x_percent / 100 * canvas_w,
        y=y_percent / 100 * canvas_h,
        width_px=item_width_ft / container_width_ft * canvas_w,
        height_px=item_length_ft / container_length_ft * canvas_h,
    )


def to_percent(x_px: float, y_px: float, canvas_w: float, canvas_h: float) -> Tuple[float, float]:
    """
    Umkehrung der Positionsabbildung.

    Die Größe wird *nicht* zurückgerechnet – Fußmaße sind ein eigenes,
    vom Benutzer gesetztes Attribut.
    """
    x_percent = x_px / canvas_w * 100 if canvas_w else 0.0
    y_percent = y_px / canvas_h * 100 if canvas_h else 0.0
    return x_percent, y_percent


def canvas_size_for_viewport(viewport_w: float, viewport_h: float) -> CanvasSize:
    """Zeichenflächengröße aus der Fenstergröße (max. 800 px breit)."""
    width = max(min(viewport_w - VIEWPORT_SIDE_MARGIN, CANVAS_MAX_WIDTH), CANVAS_MIN_WIDTH)
    height = max(viewport_h - VIEWPORT_CONTROLS_HEIGHT, CANVAS_MIN_HEIGHT)
    return CanvasSize(width=width, height=height)


__all__ = [
    "CanvasSize",
    "PixelRect",
    "ScreenRect",
    "clamp",
    "to_pixels",
    "to_percent",
    "canvas_size_for_viewport",
]
