"""
render_2d.py
============

Draufsicht eines Containers als ``PIL.Image`` (für PDF-Export und PNG).

Die Items werden wie im Canvas aus dem Prozentraum projiziert, in
aufsteigender ``paint_order`` gemalt und mit Band-Farbe, Kürzel und
Stapel-Badge beschriftet.
"""

from __future__ import annotations

import logging
from typing import Dict, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..core.coords import to_pixels
from ..core.labels import band_color, band_initials, hex_to_rgb
from ..core.models import Container, GearItem, StowageItem
from ..core.stacking import paint_sorted, stack_counts

logger = logging.getLogger(__name__)

_WIDTH, _HEIGHT = 800, 600
_MARGIN = 40
_BACKGROUND = (255, 255, 255)
_FLOOR = (236, 240, 241)
_OUTLINE = (44, 62, 80)
_BADGE = (231, 76, 60)


def _floor_rect(container: Container, size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Seitenverhältnis-treue Containerfläche innerhalb des Bildes."""
    avail_w = size[0] - 2 * _MARGIN
    avail_h = size[1] - 2 * _MARGIN
    scale = min(avail_w / container.width_ft, avail_h / container.length_ft)
    w = int(container.width_ft * scale)
    h = int(container.length_ft * scale)
    left = (size[0] - w) // 2
    top = (size[1] - h) // 2
    return left, top, w, h


def render_top_view(
    container: Container,
    items: Sequence[StowageItem],
    gear: Sequence[GearItem] | Dict[str, GearItem] = (),
    size: Tuple[int, int] = (_WIDTH, _HEIGHT),
) -> Image.Image:
    """Rendert *items* in *container* als RGB-Bild der Größe *size*."""
    gear_by_id = gear if isinstance(gear, dict) else {g.id: g for g in gear}
    img = Image.new("RGB", size, _BACKGROUND)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    left, top, floor_w, floor_h = _floor_rect(container, size)
    draw.rectangle((left, top, left + floor_w, top + floor_h), fill=_FLOOR, outline=_OUTLINE, width=2)
    draw.text((left, top - 16), "Front", fill=_OUTLINE, font=font)
    draw.text((left, top + floor_h + 4), "Back", fill=_OUTLINE, font=font)

    counts = stack_counts(items)
    for item in paint_sorted(items):
        rect = to_pixels(
            item.x_position,
            item.y_position,
            item.item_width,
            item.item_length,
            floor_w,
            floor_h,
            container.width_ft,
            container.length_ft,
        )
        gear_item = gear_by_id.get(item.gear_id)
        band_id = gear_item.band_id if gear_item else None
        x0, y0 = left + rect.x, top + rect.y
        x1, y1 = x0 + rect.width_px, y0 + rect.height_px
        draw.rectangle((x0, y0, x1, y1), fill=hex_to_rgb(band_color(band_id)), outline=(255, 255, 255))
        draw.text((x0 + 3, y0 + 3), band_initials(band_id), fill=(255, 255, 255), font=font)

        count = counts.get(item.key, 1)
        if count > 1:
            draw.ellipse((x1 - 14, y0 - 4, x1 + 4, y0 + 14), fill=_BADGE)
            draw.text((x1 - 8, y0 - 1), str(count), fill=(255, 255, 255), font=font)

    logger.debug("Draufsicht %s: %d Items gerendert", container.id, len(items))
    return img


__all__ = ["render_top_view"]
