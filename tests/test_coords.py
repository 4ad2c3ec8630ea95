import pytest

from stowage_planner.core.coords import (
    CanvasSize,
    ScreenRect,
    canvas_size_for_viewport,
    clamp,
    to_percent,
    to_pixels,
)


# ---------------------------------------------------------------------------
# to_pixels / to_percent
# ---------------------------------------------------------------------------

def test_to_pixels_scales_position_and_footprint():
    rect = to_pixels(50, 25, 2, 2, 800, 400, 8, 10)
    assert rect.x == pytest.approx(400)
    assert rect.y == pytest.approx(100)
    assert rect.width_px == pytest.approx(200)   # 2 ft / 8 ft × 800 px
    assert rect.height_px == pytest.approx(80)   # 2 ft / 10 ft × 400 px


@pytest.mark.parametrize(
    "x_pct, y_pct, w, h",
    [(0, 0, 800, 400), (12.5, 87.5, 640, 480), (33.3, 66.6, 300, 400)],
)
def test_position_round_trip(x_pct, y_pct, w, h):
    rect = to_pixels(x_pct, y_pct, 2, 2, w, h, 8, 10)
    assert to_percent(rect.x, rect.y, w, h) == pytest.approx((x_pct, y_pct))


def test_to_percent_zero_canvas_yields_zero():
    assert to_percent(120, 80, 0, 0) == (0.0, 0.0)


def test_pixel_rect_contains_edges():
    rect = to_pixels(0, 0, 2, 2, 800, 400, 8, 10)
    assert rect.contains(0, 0)
    assert rect.contains(rect.width_px, rect.height_px)
    assert not rect.contains(rect.width_px + 1, 0)


# ---------------------------------------------------------------------------
# clamp / viewport
# ---------------------------------------------------------------------------

def test_clamp_negative_upper_bound_pins_to_lower():
    assert clamp(50, 0, -20) == 0


@pytest.mark.parametrize(
    "viewport, expected",
    [
        ((1280, 900), CanvasSize(width=800, height=500)),
        ((500, 600), CanvasSize(width=460, height=400)),
        ((200, 300), CanvasSize(width=300, height=400)),
    ],
)
def test_canvas_size_for_viewport(viewport, expected):
    assert canvas_size_for_viewport(*viewport) == expected


def test_screen_rect_is_inclusive():
    rect = ScreenRect(left=10, top=20, right=110, bottom=220)
    assert rect.contains(10, 20)
    assert rect.contains(110, 220)
    assert not rect.contains(9.9, 50)
