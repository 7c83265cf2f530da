from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from pdfburn.geometry import AbsPoint, AbsRect
from pdfburn.style import RGB

CAP_BUTT = 0
CAP_ROUND = 1


@dataclass(frozen=True)
class TextRun:
    x: float
    y: float
    text: str
    font_name: str
    font_size: float
    color: RGB
    opacity: float = 1.0


@dataclass(frozen=True)
class RectOp:
    rect: AbsRect
    stroke: RGB | None = None
    stroke_width: float = 0.0
    fill: RGB | None = None
    opacity: float = 1.0


@dataclass(frozen=True)
class EllipseOp:
    rect: AbsRect
    stroke: RGB | None = None
    stroke_width: float = 0.0
    fill: RGB | None = None
    opacity: float = 1.0


@dataclass(frozen=True)
class LineOp:
    start: AbsPoint
    end: AbsPoint
    width: float
    color: RGB
    opacity: float = 1.0
    cap: int = CAP_BUTT


@dataclass(frozen=True)
class DiscOp:
    center: AbsPoint
    radius: float
    color: RGB
    opacity: float = 1.0


@dataclass(frozen=True)
class ImageOp:
    rect: AbsRect
    # Content hash of the embedded raster; identical payloads share one resource.
    resource_key: str
    opacity: float = 1.0


DrawOp = Union[TextRun, RectOp, EllipseOp, LineOp, DiscOp, ImageOp]


@dataclass
class PageOps:
    page_number: int
    width: float
    height: float
    origin_x: float = 0.0
    origin_y: float = 0.0
    ops: list[DrawOp] = field(default_factory=list)

    def extend(self, items: list[DrawOp]) -> None:
        self.ops.extend(items)

    @property
    def empty(self) -> bool:
        return not self.ops
