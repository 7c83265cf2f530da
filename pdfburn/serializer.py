from __future__ import annotations

import io
import logging
from typing import Any, Callable

from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from pdfburn.document import FlattenError
from pdfburn.ops import DiscOp, DrawOp, EllipseOp, ImageOp, LineOp, PageOps, RectOp, TextRun
from pdfburn.resources import EmbeddedImage

logger = logging.getLogger(__name__)

LINE_HEIGHT = 1.2


def _paint_text(canvas: Canvas, op: TextRun, images: dict[str, Any]) -> None:
    canvas.setFillColorRGB(*op.color.as_tuple())
    canvas.setFillAlpha(op.opacity)
    lines = op.text.splitlines() or ['']
    text = canvas.beginText(op.x, op.y)
    text.setFont(op.font_name, op.font_size, leading=op.font_size * LINE_HEIGHT)
    for line in lines:
        text.textLine(line)
    canvas.drawText(text)


def _apply_paint(canvas: Canvas, op: RectOp | EllipseOp) -> tuple[int, int]:
    stroke = 0
    fill = 0
    if op.stroke is not None and op.stroke_width > 0:
        canvas.setStrokeColorRGB(*op.stroke.as_tuple())
        canvas.setStrokeAlpha(op.opacity)
        canvas.setLineWidth(op.stroke_width)
        stroke = 1
    if op.fill is not None:
        canvas.setFillColorRGB(*op.fill.as_tuple())
        canvas.setFillAlpha(op.opacity)
        fill = 1
    return stroke, fill


def _paint_rect(canvas: Canvas, op: RectOp, images: dict[str, Any]) -> None:
    stroke, fill = _apply_paint(canvas, op)
    if stroke or fill:
        canvas.rect(op.rect.x, op.rect.y, op.rect.width, op.rect.height, stroke=stroke, fill=fill)


def _paint_ellipse(canvas: Canvas, op: EllipseOp, images: dict[str, Any]) -> None:
    stroke, fill = _apply_paint(canvas, op)
    if stroke or fill:
        canvas.ellipse(op.rect.x, op.rect.y, op.rect.right, op.rect.top, stroke=stroke, fill=fill)


def _paint_line(canvas: Canvas, op: LineOp, images: dict[str, Any]) -> None:
    canvas.setStrokeColorRGB(*op.color.as_tuple())
    canvas.setStrokeAlpha(op.opacity)
    canvas.setLineWidth(op.width)
    canvas.setLineCap(op.cap)
    canvas.line(op.start.x, op.start.y, op.end.x, op.end.y)


def _paint_disc(canvas: Canvas, op: DiscOp, images: dict[str, Any]) -> None:
    canvas.setFillColorRGB(*op.color.as_tuple())
    canvas.setFillAlpha(op.opacity)
    canvas.circle(op.center.x, op.center.y, op.radius, stroke=0, fill=1)


def _paint_image(canvas: Canvas, op: ImageOp, images: dict[str, Any]) -> None:
    reader = images.get(op.resource_key)
    if reader is None:
        raise FlattenError(f'image resource {op.resource_key[:12]} was not embedded')
    canvas.setFillAlpha(op.opacity)
    canvas.drawImage(reader, op.rect.x, op.rect.y, op.rect.width, op.rect.height, mask='auto')


_PAINTERS: dict[type, Callable[[Canvas, Any, dict[str, Any]], None]] = {
    TextRun: _paint_text,
    RectOp: _paint_rect,
    EllipseOp: _paint_ellipse,
    LineOp: _paint_line,
    DiscOp: _paint_disc,
    ImageOp: _paint_image,
}


def paint_ops(canvas: Canvas, ops: list[DrawOp], images: dict[str, Any]) -> None:
    for op in ops:
        canvas.saveState()
        try:
            _PAINTERS[type(op)](canvas, op, images)
        finally:
            canvas.restoreState()


def build_overlay_pdf(
    pages: list[PageOps],
    images: dict[str, EmbeddedImage],
    *,
    deflate: bool = True,
) -> bytes:
    readers = {key: ImageReader(io.BytesIO(handle.data)) for key, handle in images.items()}
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pageCompression=1 if deflate else 0)
    for page_ops in pages:
        if page_ops.empty:
            continue
        canvas.setPageSize((page_ops.origin_x + page_ops.width, page_ops.origin_y + page_ops.height))
        canvas.saveState()
        canvas.translate(page_ops.origin_x, page_ops.origin_y)
        paint_ops(canvas, page_ops.ops, readers)
        canvas.restoreState()
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


class PdfSerializer:
    def __init__(self, *, deflate: bool = True):
        self.deflate = deflate

    def serialize(
        self,
        reader: PdfReader,
        pages: list[PageOps],
        images: dict[str, EmbeddedImage],
    ) -> bytes:
        painted = [page_ops for page_ops in pages if not page_ops.empty]
        try:
            writer = PdfWriter(clone_from=reader)
            if painted:
                overlay = PdfReader(io.BytesIO(build_overlay_pdf(painted, images, deflate=self.deflate)))
                for overlay_page, page_ops in zip(overlay.pages, painted):
                    target = writer.pages[page_ops.page_number - 1]
                    target.merge_page(overlay_page)
                    if self.deflate:
                        target.compress_content_streams()
            output = io.BytesIO()
            writer.write(output)
            return output.getvalue()
        except FlattenError:
            raise
        except Exception as exc:
            logger.error('Failed to serialize flattened PDF: %s', exc)
            raise FlattenError(f'output serialization failed: {exc}') from exc
