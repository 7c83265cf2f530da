from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def new_annotation_id() -> str:
    return uuid4().hex


def _text_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _number_or_none(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# Style fields never reject an annotation; unusable values fall back to defaults when painting.
StyleText = Annotated[Union[str, None], BeforeValidator(_text_or_none)]
StyleNumber = Annotated[Union[float, None], BeforeValidator(_number_or_none)]


class AnnotationType(str, Enum):
    text = 'text'
    image = 'image'
    rectangle = 'rectangle'
    circle = 'circle'
    line = 'line'
    arrow = 'arrow'
    highlight = 'highlight'
    redact = 'redact'
    stamp = 'stamp'
    freehand = 'freehand'
    signature = 'signature'
    note = 'note'


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        frozen=True,
    )


class Point(_Model):
    x: float
    y: float


class SubRect(_Model):
    x: float
    y: float
    width: float
    height: float


class AnnotationBase(_Model):
    # Geometry is in percent of the page, origin top-left, y down.
    id: str = Field(default_factory=new_annotation_id)
    page_number: int | None = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    color: StyleText = None
    opacity: StyleNumber = None

    @property
    def kind(self) -> AnnotationType:
        return AnnotationType(getattr(self, 'type'))


class TextAnnotation(AnnotationBase):
    type: Literal['text']
    content: str = ''
    font_size: StyleNumber = None
    font_weight: StyleText = None
    font_style: StyleText = None


class ImageAnnotation(AnnotationBase):
    type: Literal['image']
    resource_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices('resourceRef', 'resource_ref', 'preview', 'src'),
    )
    encoding_hint: str | None = Field(
        default=None,
        validation_alias=AliasChoices('encodingHint', 'encoding_hint', 'mimeType', 'mime_type'),
    )


class ShapeAnnotation(AnnotationBase):
    type: Literal['rectangle', 'circle', 'line', 'arrow']
    stroke_color: StyleText = None
    stroke_width: StyleNumber = None
    fill_color: StyleText = None


class HighlightAnnotation(AnnotationBase):
    type: Literal['highlight', 'redact']
    sub_rects: list[SubRect] = Field(
        default_factory=list,
        validation_alias=AliasChoices('subRects', 'sub_rects', 'rects'),
    )


class StampAnnotation(AnnotationBase):
    type: Literal['stamp']
    stamp_type: StyleText = 'custom'
    custom_text: StyleText = None


class FreehandAnnotation(AnnotationBase):
    type: Literal['freehand', 'signature']
    points: list[Point] = Field(default_factory=list)
    stroke_width: StyleNumber = None
    # Signatures captured as a picture instead of a stroke list.
    image_data: str | None = None


class NoteAnnotation(AnnotationBase):
    type: Literal['note']
    content: str = ''


Annotation = Annotated[
    Union[
        TextAnnotation,
        ImageAnnotation,
        ShapeAnnotation,
        HighlightAnnotation,
        StampAnnotation,
        FreehandAnnotation,
        NoteAnnotation,
    ],
    Field(discriminator='type'),
]

ANNOTATION_ADAPTER: TypeAdapter[Annotation] = TypeAdapter(Annotation)


class AnnotationModel(_Model):
    # List order is paint order.
    pages: dict[int, list[Annotation]] = Field(default_factory=dict)

    def for_page(self, page_number: int) -> list[Annotation]:
        return list(self.pages.get(page_number, []))

    @property
    def annotation_count(self) -> int:
        return sum(len(items) for items in self.pages.values())


class PageInfo(_Model):
    page_number: int
    width: float
    height: float
    rotation: int = 0
    # Lower-left corner of the page box in PDF user space.
    origin_x: float = 0.0
    origin_y: float = 0.0


class Diagnostic(_Model):
    page_number: int
    annotation_id: str
    annotation_type: str
    reason: str
