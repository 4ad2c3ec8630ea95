"""
pdf_export.py

Erzeugt einen PDF-Stauplan: eine Seite je Container mit Draufsicht und
Item-Tabelle.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence

from PIL import Image
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..core.models import Container
from ..core.stacking import paint_sorted
from .render_2d import render_top_view

if TYPE_CHECKING:  # pragma: no cover
    from ..core.session import StowageSession

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Helper functions
# --------------------------------------------------------------------------- #
def _pil_to_reader(img: Image.Image, width_px: int = 800, height_px: int = 600) -> ImageReader:
    """Bring *img* auf exakt width_px × height_px (weiß gepolstert)."""
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGB")

    img = img.copy()
    img.thumbnail((width_px, height_px), Image.LANCZOS)

    if img.size != (width_px, height_px):
        padded = Image.new("RGB", (width_px, height_px), (255, 255, 255))
        padded.paste(img, ((width_px - img.width) // 2, (height_px - img.height) // 2))
        img = padded

    return ImageReader(img)


def _item_rows(session: "StowageSession", container: Container) -> List[List[str]]:
    rows: List[List[str]] = []
    for item in paint_sorted(session.items_in_container(container.id)):
        gear_item = session.gear_item(item.gear_id)
        rows.append([
            gear_item.band_id if gear_item else "?",
            gear_item.description if gear_item else f"(missing gear {item.gear_id})",
            f"{item.x_position:.0f}% / {item.y_position:.0f}%",
            f"{item.item_width:g} × {item.item_length:g} ft",
            str(item.layer),
            str(item.item_height),
        ])
    rows.sort(key=lambda r: (r[0], r[1]))
    return rows


def _build_table(rows: List[List[str]]) -> Table:
    """Gestylte ReportLab-Tabelle aus *rows*."""
    data = [["Band", "Description", "Position", "Size", "Layer", "Height"]] + rows
    tbl = Table(data, hAlign="LEFT", repeatRows=1)

    style = TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (4, 1), (-1, -1), "RIGHT"),
    ])
    for row in range(1, len(data)):
        if row % 2 == 0:
            style.add("BACKGROUND", (0, row), (-1, row), colors.whitesmoke)
    tbl.setStyle(style)
    return tbl


def _draw_header_footer(c: canvas.Canvas, title: Optional[str] = None) -> None:
    pw, ph = A4
    m = 20 * mm
    ts = datetime.now().strftime("%Y-%m-%d %H:%M")
    c.setFont("Helvetica-Bold", 12)
    c.drawString(m, ph - m, ts if not title else f"{title} – {ts}")
    c.setFont("Helvetica", 8)
    c.drawRightString(pw - m, m / 2, f"Page {c.getPageNumber()}")


def _draw_table(c: canvas.Canvas, tbl: Table, top: float, title: str) -> None:
    """Zeichnet *tbl* ab *top* abwärts, bei Bedarf über mehrere Seiten."""
    pw, ph = A4
    m = 20 * mm
    usable_w = pw - 2 * m
    remaining: Optional[Table] = tbl
    while remaining is not None:
        _, h = remaining.wrap(usable_w, ph)
        if top - h >= m:
            remaining.drawOn(c, m, top - h)
            return
        page_top = ph - m - 20
        parts = remaining.split(usable_w, top - m)
        if len(parts) < 2:
            if top >= page_top:
                # passt auch auf einer leeren Seite nicht: abgeschnitten zeichnen
                remaining.drawOn(c, m, top - h)
                return
            c.showPage()
            _draw_header_footer(c, title)
            top = page_top
            continue
        head, remaining = parts[0], parts[1]
        _, h = head.wrap(usable_w, ph)
        head.drawOn(c, m, top - h)
        c.showPage()
        _draw_header_footer(c, title)
        top = page_top


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #
def export_pdf(
    session: "StowageSession",
    path: str,
    containers: Optional[Sequence[Container]] = None,
) -> int:
    """
    Schreibt den Stauplan nach *path* und liefert die Anzahl Container-Seiten.

    Eine vorhandene Datei wird ohne Rückfrage überschrieben.
    """
    targets = list(containers) if containers is not None else list(session.containers)
    pw, ph = A4
    m = 20 * mm
    usable_w = pw - 2 * m
    c = canvas.Canvas(path, pagesize=A4)

    if not targets:
        _draw_header_footer(c, "Stowage plan")
        c.setFont("Helvetica", 10)
        c.drawString(m, ph - m - 30, "No containers.")
        c.showPage()

    for container in targets:
        location = session.location(container.location_id)
        _draw_header_footer(c, container.name)
        c.setFont("Helvetica", 9)
        info = session.fill_info(container)
        c.drawString(
            m,
            ph - m - 16,
            f"{location.label if location else container.location_id} · {container.size_label()} · "
            f"{info.item_count} items · {info.fill_percentage}% full",
        )

        img = render_top_view(container, session.items_in_container(container.id), session.gear)
        img_w = usable_w
        img_h = img_w * 3 / 4
        y = ph - m - 30 - img_h
        c.drawImage(_pil_to_reader(img), m, y, img_w, img_h, preserveAspectRatio=True, mask="auto")

        _draw_table(c, _build_table(_item_rows(session, container)), y - 10, container.name)
        c.showPage()

    c.save()
    logger.info("PDF exportiert: %s (%d Container)", path, len(targets))
    return len(targets)


__all__ = ["export_pdf"]
