from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from reportlab.pdfbase import pdfmetrics

DEFAULT_STROKE_WIDTH = 2.0
DEFAULT_FONT_SIZE = 12.0
MAX_STROKE_WIDTH = 200.0
MAX_FONT_SIZE = 1000.0
TRANSPARENT = 'transparent'

_HEX_DIGITS = re.compile(r'[0-9a-fA-F]{6}')


@dataclass(frozen=True)
class RGB:
    r: float
    g: float
    b: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)


BLACK = RGB(0.0, 0.0, 0.0)


def parse_color(value: object) -> RGB:
    """Parse ``#RGB`` / ``#RRGGBB`` into 0-1 channels; anything else is black."""
    token = str(value or '').strip()
    if token.startswith('#'):
        token = token[1:]
    if len(token) == 3:
        token = ''.join(ch * 2 for ch in token)
    if not _HEX_DIGITS.fullmatch(token):
        return BLACK
    try:
        r = int(token[0:2], 16) / 255.0
        g = int(token[2:4], 16) / 255.0
        b = int(token[4:6], 16) / 255.0
    except ValueError:
        return BLACK
    return RGB(r, g, b)


def resolve_opacity(value: object, default: float = 1.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        opacity = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(opacity) or not 0.0 <= opacity <= 1.0:
        return default
    return opacity


def resolve_positive(value: object, default: float, maximum: float | None = None) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    if maximum is not None:
        return min(number, maximum)
    return number


def has_fill(value: str | None) -> bool:
    token = str(value or '').strip()
    return bool(token) and token.lower() != TRANSPARENT


class FontVariant(str, Enum):
    regular = 'regular'
    bold = 'bold'
    italic = 'italic'
    bold_italic = 'bold-italic'


def select_font_variant(font_weight: str | None, font_style: str | None) -> FontVariant:
    bold = str(font_weight or '').strip().lower() == 'bold'
    italic = str(font_style or '').strip().lower() == 'italic'
    if bold and italic:
        return FontVariant.bold_italic
    if bold:
        return FontVariant.bold
    if italic:
        return FontVariant.italic
    return FontVariant.regular


_STANDARD_FAMILIES: dict[str, dict[FontVariant, str]] = {
    'helvetica': {
        FontVariant.regular: 'Helvetica',
        FontVariant.bold: 'Helvetica-Bold',
        FontVariant.italic: 'Helvetica-Oblique',
        FontVariant.bold_italic: 'Helvetica-BoldOblique',
    },
    'times': {
        FontVariant.regular: 'Times-Roman',
        FontVariant.bold: 'Times-Bold',
        FontVariant.italic: 'Times-Italic',
        FontVariant.bold_italic: 'Times-BoldItalic',
    },
    'courier': {
        FontVariant.regular: 'Courier',
        FontVariant.bold: 'Courier-Bold',
        FontVariant.italic: 'Courier-Oblique',
        FontVariant.bold_italic: 'Courier-BoldOblique',
    },
}


class FontUnavailableError(RuntimeError):
    pass


@dataclass(frozen=True)
class FontSet:
    """The four preloaded variants of one family."""

    family: str
    names: dict[FontVariant, str]

    @classmethod
    def load(cls, family: str = 'helvetica') -> FontSet:
        key = str(family or '').strip().lower() or 'helvetica'
        names = _STANDARD_FAMILIES.get(key)
        if names is None:
            raise FontUnavailableError(f'unknown font family: {family!r}')
        for font_name in names.values():
            try:
                pdfmetrics.getFont(font_name)
            except Exception as exc:
                raise FontUnavailableError(f'font {font_name} cannot be embedded: {exc}') from exc
        return cls(family=key, names=dict(names))

    def font_for(self, font_weight: str | None, font_style: str | None) -> str:
        return self.names[select_font_variant(font_weight, font_style)]

    @property
    def regular(self) -> str:
        return self.names[FontVariant.regular]

    @property
    def bold(self) -> str:
        return self.names[FontVariant.bold]

    def text_width(self, text: str, font_name: str, font_size: float) -> float:
        return float(pdfmetrics.stringWidth(text, font_name, font_size))

    def text_height(self, font_name: str, font_size: float) -> float:
        ascent, descent = pdfmetrics.getAscentDescent(font_name, font_size)
        return float(ascent - descent)
