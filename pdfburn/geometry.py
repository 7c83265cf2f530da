from __future__ import annotations

import math
from dataclasses import dataclass

# Approximate ascent as a fraction of the font size; no font metrics are
# modelled for the editor-side text box.
TEXT_BASELINE_FACTOR = 0.8


@dataclass(frozen=True)
class AbsRect:
    """Rectangle in output space: (x, y) is the bottom-left corner, y up."""

    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class AbsPoint:
    x: float
    y: float


def _clamp_percent(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def to_abs_rect(
    x: float,
    y: float,
    width: float,
    height: float,
    *,
    page_width: float,
    page_height: float,
) -> AbsRect:
    px = _clamp_percent(x)
    py = _clamp_percent(y)
    # Extent is clamped to what remains of the page so the box never spills.
    pw = min(_clamp_percent(width), 100.0 - px)
    ph = min(_clamp_percent(height), 100.0 - py)
    return AbsRect(
        x=(px / 100.0) * page_width,
        y=page_height - ((py + ph) / 100.0) * page_height,
        width=(pw / 100.0) * page_width,
        height=(ph / 100.0) * page_height,
    )


def to_abs_point(x: float, y: float, *, page_width: float, page_height: float) -> AbsPoint:
    return AbsPoint(
        x=(_clamp_percent(x) / 100.0) * page_width,
        y=page_height - (_clamp_percent(y) / 100.0) * page_height,
    )


def text_baseline_y(y: float, font_size: float, *, page_height: float) -> float:
    return page_height - (_clamp_percent(y) / 100.0) * page_height - font_size * TEXT_BASELINE_FACTOR
