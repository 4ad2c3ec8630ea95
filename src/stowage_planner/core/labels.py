"""Band-Kürzel und -Farben für Canvas, Raster und Export."""

from __future__ import annotations

from typing import Final, Tuple

BAND_PALETTE: Final[Tuple[str, ...]] = (
    "#e74c3c",  # Rot
    "#3498db",  # Blau
    "#2ecc71",  # Grün
    "#f39c12",  # Orange
    "#9b59b6",  # Lila
    "#1abc9c",  # Türkis
    "#e67e22",  # Dunkelorange
    "#16a085",  # Dunkeltürkis
    "#c0392b",  # Dunkelrot
    "#8e44ad",  # Dunkellila
    "#27ae60",  # Dunkelgrün
    "#2980b9",  # Dunkelblau
    "#f1c40f",  # Gelb
    "#d35400",  # Kürbis
    "#c0392b",  # Karmin
)

UNKNOWN_BAND_COLOR: Final[str] = "#444444"


def band_initials(band_id: str | None) -> str:
    """Anfangsbuchstaben der Wörter, max. drei, in Großbuchstaben."""
    if not band_id:
        return "??"
    return "".join(word[0] for word in band_id.split(" ") if word)[:3].upper()


def band_color(band_id: str | None) -> str:
    """Stabile Farbe je Band (Summe der Codepoints modulo Palette)."""
    if not band_id:
        return UNKNOWN_BAND_COLOR
    return BAND_PALETTE[sum(ord(ch) for ch in band_id) % len(BAND_PALETTE)]


def hex_to_rgb(hx: str) -> Tuple[int, int, int]:
    """``#RRGGBB`` → (r, g, b) im Bereich 0 … 255."""
    hx = hx.lstrip("#")
    if len(hx) != 6:
        raise ValueError(f"Invalid HEX color: {hx!r}")
    r, g, b = (int(hx[i : i + 2], 16) for i in (0, 2, 4))
    return r, g, b
