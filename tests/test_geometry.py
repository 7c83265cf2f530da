from __future__ import annotations

import itertools

import pytest

from pdfburn.geometry import AbsPoint, AbsRect, text_baseline_y, to_abs_point, to_abs_rect


def test_box_maps_to_bottom_left_origin():
    rect = to_abs_rect(25, 25, 50, 50, page_width=200, page_height=200)

    assert rect == AbsRect(x=50.0, y=50.0, width=100.0, height=100.0)
    assert (rect.right, rect.top) == (150.0, 150.0)


def test_box_at_top_of_page_sits_under_page_top():
    rect = to_abs_rect(0, 0, 100, 10, page_width=612, page_height=792)

    assert rect.top == pytest.approx(792.0)
    assert rect.y == pytest.approx(792.0 - 79.2)
    assert rect.width == pytest.approx(612.0)


@pytest.mark.parametrize('page_width,page_height', [(100.0, 100.0), (612.0, 792.0), (841.89, 595.27)])
def test_rect_stays_inside_page(page_width, page_height):
    values = [0.0, 0.1, 12.5, 50.0, 99.9, 100.0]
    eps = 1e-9
    for x, y, w, h in itertools.product(values, repeat=4):
        rect = to_abs_rect(x, y, w, h, page_width=page_width, page_height=page_height)
        assert -eps <= rect.x <= page_width + eps
        assert -eps <= rect.y <= page_height + eps
        assert rect.right <= page_width + eps
        assert rect.top <= page_height + eps
        assert rect.width >= 0 and rect.height >= 0


def test_out_of_range_geometry_is_clamped():
    rect = to_abs_rect(-10, 90, 50, 40, page_width=100, page_height=100)

    assert rect.x == 0.0
    assert rect.y == pytest.approx(0.0)
    assert rect.height == pytest.approx(10.0)


def test_point_flips_y_axis():
    assert to_abs_point(0, 0, page_width=100, page_height=100) == AbsPoint(0.0, 100.0)
    assert to_abs_point(100, 100, page_width=100, page_height=100) == AbsPoint(100.0, 0.0)
    assert to_abs_point(25, 75, page_width=200, page_height=400) == AbsPoint(50.0, 100.0)


def test_text_baseline_uses_ascent_heuristic():
    assert text_baseline_y(10, 20, page_height=500) == pytest.approx(500 - 50 - 16)


def test_transform_is_deterministic():
    first = to_abs_rect(12.3, 45.6, 7.8, 9.1, page_width=612, page_height=792)
    second = to_abs_rect(12.3, 45.6, 7.8, 9.1, page_width=612, page_height=792)
    assert first == second


def test_non_finite_geometry_stays_on_page():
    inf = float('inf')
    rect = to_abs_rect(float('nan'), -inf, inf, inf, page_width=100, page_height=100)

    assert rect == AbsRect(x=0.0, y=0.0, width=100.0, height=100.0)
    assert to_abs_point(inf, float('nan'), page_width=100, page_height=100) == AbsPoint(100.0, 100.0)
