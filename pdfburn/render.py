from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from pdfburn.geometry import AbsRect, to_abs_point, to_abs_rect, text_baseline_y
from pdfburn.ops import CAP_ROUND, DiscOp, DrawOp, EllipseOp, ImageOp, LineOp, RectOp, TextRun
from pdfburn.resources import EmbeddedImage, EmbedFailure, EmbedOutcome
from pdfburn.style import (
    DEFAULT_FONT_SIZE,
    DEFAULT_STROKE_WIDTH,
    MAX_FONT_SIZE,
    MAX_STROKE_WIDTH,
    RGB,
    FontSet,
    has_fill,
    parse_color,
    resolve_opacity,
    resolve_positive,
)
from pdfburn.types import (
    AnnotationBase,
    AnnotationType,
    FreehandAnnotation,
    HighlightAnnotation,
    ImageAnnotation,
    NoteAnnotation,
    PageInfo,
    ShapeAnnotation,
    StampAnnotation,
    TextAnnotation,
)

HIGHLIGHT_DEFAULT_OPACITY = 0.4
STAMP_BORDER_WIDTH = 3.0
STAMP_MAX_FONT_SIZE = 18.0
NOTE_MARKER_SIZE = 10.0
NOTE_DEFAULT_COLOR = RGB(1.0, 1.0, 0.0)
ARROW_MARKER_SCALE = 2.0
DEFAULT_STROKE_COLOR = '#000000'


@dataclass(frozen=True)
class RenderContext:
    page: PageInfo
    fonts: FontSet

    def rect_of(self, x: float, y: float, width: float, height: float) -> AbsRect:
        return to_abs_rect(x, y, width, height, page_width=self.page.width, page_height=self.page.height)

    def box_of(self, annotation: AnnotationBase) -> AbsRect:
        return self.rect_of(annotation.x, annotation.y, annotation.width, annotation.height)


@dataclass(frozen=True)
class Rendered:
    ops: tuple[DrawOp, ...]


@dataclass(frozen=True)
class Skipped:
    reason: str


RenderOutcome = Union[Rendered, Skipped]


def resource_request(annotation: AnnotationBase) -> tuple[str, str | None] | None:
    """Return ``(reference, encoding_hint)`` when the annotation needs a raster."""
    if isinstance(annotation, ImageAnnotation):
        return (annotation.resource_ref or '', annotation.encoding_hint)
    if (
        isinstance(annotation, FreehandAnnotation)
        and annotation.kind == AnnotationType.signature
        and len(annotation.points) < 2
        and annotation.image_data
    ):
        return (annotation.image_data, None)
    return None


def _place_image(annotation: AnnotationBase, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    if isinstance(resource, EmbedFailure):
        return Skipped(f'image unavailable: {resource.reason}')
    if not isinstance(resource, EmbeddedImage):
        return Skipped('image unavailable: resource was not resolved')
    return Rendered(
        (
            ImageOp(
                rect=ctx.box_of(annotation),
                resource_key=resource.key,
                opacity=resolve_opacity(annotation.opacity),
            ),
        )
    )


def _render_text(annotation: TextAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    if not annotation.content:
        return Rendered(())
    font_size = resolve_positive(annotation.font_size, DEFAULT_FONT_SIZE, MAX_FONT_SIZE)
    box = ctx.box_of(annotation)
    run = TextRun(
        x=box.x,
        y=text_baseline_y(annotation.y, font_size, page_height=ctx.page.height),
        text=annotation.content,
        font_name=ctx.fonts.font_for(annotation.font_weight, annotation.font_style),
        font_size=font_size,
        color=parse_color(annotation.color),
        opacity=resolve_opacity(annotation.opacity),
    )
    return Rendered((run,))


def _render_image(annotation: ImageAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    return _place_image(annotation, ctx, resource)


def _render_box_shape(annotation: ShapeAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    box = ctx.box_of(annotation)
    stroke = parse_color(annotation.stroke_color or DEFAULT_STROKE_COLOR)
    stroke_width = resolve_positive(annotation.stroke_width, DEFAULT_STROKE_WIDTH, MAX_STROKE_WIDTH)
    fill = parse_color(annotation.fill_color) if has_fill(annotation.fill_color) else None
    opacity = resolve_opacity(annotation.opacity)

    op_type = RectOp if annotation.kind == AnnotationType.rectangle else EllipseOp
    return Rendered((op_type(rect=box, stroke=stroke, stroke_width=stroke_width, fill=fill, opacity=opacity),))


def _render_segment_shape(annotation: ShapeAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    page = ctx.page
    # The stored box has lost the drag direction: always top-left to bottom-right.
    start = to_abs_point(annotation.x, annotation.y, page_width=page.width, page_height=page.height)
    end = to_abs_point(
        annotation.x + annotation.width,
        annotation.y + annotation.height,
        page_width=page.width,
        page_height=page.height,
    )
    color = parse_color(annotation.stroke_color or DEFAULT_STROKE_COLOR)
    width = resolve_positive(annotation.stroke_width, DEFAULT_STROKE_WIDTH, MAX_STROKE_WIDTH)
    opacity = resolve_opacity(annotation.opacity)

    ops: list[DrawOp] = [LineOp(start=start, end=end, width=width, color=color, opacity=opacity)]
    if annotation.kind == AnnotationType.arrow:
        ops.append(DiscOp(center=end, radius=width * ARROW_MARKER_SCALE, color=color, opacity=opacity))
    return Rendered(tuple(ops))


def _render_highlight(annotation: HighlightAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    color = parse_color(annotation.color)
    if annotation.kind == AnnotationType.redact:
        # Redactions must stay opaque whatever the editor asked for.
        opacity = 1.0
    else:
        opacity = resolve_opacity(annotation.opacity, HIGHLIGHT_DEFAULT_OPACITY)

    if annotation.sub_rects:
        boxes = [ctx.rect_of(item.x, item.y, item.width, item.height) for item in annotation.sub_rects]
    else:
        boxes = [ctx.box_of(annotation)]
    return Rendered(tuple(RectOp(rect=box, fill=color, opacity=opacity) for box in boxes))


def _render_stamp(annotation: StampAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    box = ctx.box_of(annotation)
    color = parse_color(annotation.color)
    opacity = resolve_opacity(annotation.opacity)
    ops: list[DrawOp] = [RectOp(rect=box, stroke=color, stroke_width=STAMP_BORDER_WIDTH, opacity=opacity)]

    label = annotation.custom_text or str(annotation.stamp_type or '').upper()
    font_size = min(STAMP_MAX_FONT_SIZE, box.height * 0.5)
    if label and font_size > 0:
        font_name = ctx.fonts.bold
        text_width = ctx.fonts.text_width(label, font_name, font_size)
        text_height = ctx.fonts.text_height(font_name, font_size)
        ops.append(
            TextRun(
                x=box.x + (box.width - text_width) / 2,
                y=box.y + (box.height - text_height) / 2 + text_height * 0.25,
                text=label,
                font_name=font_name,
                font_size=font_size,
                color=color,
                opacity=opacity,
            )
        )
    return Rendered(tuple(ops))


def _render_stroke(annotation: FreehandAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    points = annotation.points
    if len(points) < 2:
        if resource is not None:
            return _place_image(annotation, ctx, resource)
        return Skipped(f'{annotation.kind.value} needs at least 2 points, got {len(points)}')

    page = ctx.page
    absolute = [to_abs_point(p.x, p.y, page_width=page.width, page_height=page.height) for p in points]
    width = resolve_positive(annotation.stroke_width, DEFAULT_STROKE_WIDTH, MAX_STROKE_WIDTH)
    color = parse_color(annotation.color)
    opacity = resolve_opacity(annotation.opacity)
    return Rendered(
        tuple(
            LineOp(start=start, end=end, width=width, color=color, opacity=opacity, cap=CAP_ROUND)
            for start, end in zip(absolute, absolute[1:])
        )
    )


def _render_note(annotation: NoteAnnotation, ctx: RenderContext, resource: EmbedOutcome | None) -> RenderOutcome:
    box = ctx.box_of(annotation)
    color = parse_color(annotation.color) if annotation.color else NOTE_DEFAULT_COLOR
    marker = AbsRect(x=box.x, y=box.top - NOTE_MARKER_SIZE, width=NOTE_MARKER_SIZE, height=NOTE_MARKER_SIZE)
    return Rendered((RectOp(rect=marker, fill=color, opacity=resolve_opacity(annotation.opacity)),))


Renderer = Callable[..., RenderOutcome]

RENDERERS: dict[AnnotationType, Renderer] = {
    AnnotationType.text: _render_text,
    AnnotationType.image: _render_image,
    AnnotationType.rectangle: _render_box_shape,
    AnnotationType.circle: _render_box_shape,
    AnnotationType.line: _render_segment_shape,
    AnnotationType.arrow: _render_segment_shape,
    AnnotationType.highlight: _render_highlight,
    AnnotationType.redact: _render_highlight,
    AnnotationType.stamp: _render_stamp,
    AnnotationType.freehand: _render_stroke,
    AnnotationType.signature: _render_stroke,
    AnnotationType.note: _render_note,
}

_unhandled = set(AnnotationType) - set(RENDERERS)
if _unhandled:
    raise RuntimeError(f'no renderer for annotation types: {sorted(t.value for t in _unhandled)}')


def render_annotation(
    annotation: AnnotationBase,
    ctx: RenderContext,
    resource: EmbedOutcome | None = None,
) -> RenderOutcome:
    return RENDERERS[annotation.kind](annotation, ctx, resource)
