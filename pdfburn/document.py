from __future__ import annotations

import io
import logging

from pypdf import PdfReader

from pdfburn.types import PageInfo

logger = logging.getLogger(__name__)


class FlattenError(RuntimeError):
    """Document-level failure: no output is produced."""


def _read_with_pypdf(pdf_bytes: bytes) -> PdfReader:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    if getattr(reader, 'is_encrypted', False):
        try:
            reader.decrypt('')
        except Exception as exc:
            raise FlattenError(f'source PDF is encrypted: {exc}') from exc
    # Touch the page tree so structural damage surfaces here, not mid-save.
    _ = len(reader.pages)
    return reader


def _repair_with_pymupdf(pdf_bytes: bytes) -> bytes | None:
    try:
        import pymupdf as fitz
    except Exception as exc:
        logger.warning('PyMuPDF unavailable for source PDF repair: %s', exc)
        return None

    doc = None
    try:
        doc = fitz.open(stream=pdf_bytes, filetype='pdf')
        if doc.is_encrypted:
            authenticated = False
            try:
                authenticated = bool(doc.authenticate(''))
            except Exception:
                authenticated = False
            if not authenticated:
                logger.warning('Source PDF is encrypted; skip PyMuPDF repair.')
                return None
        return doc.tobytes(garbage=3, deflate=True)
    except Exception as exc:
        logger.warning('Failed to repair source PDF with PyMuPDF: %s', exc)
        return None
    finally:
        if doc is not None:
            doc.close()


def open_source_document(pdf_bytes: bytes) -> PdfReader:
    if not pdf_bytes:
        raise FlattenError('source PDF is empty')

    try:
        return _read_with_pypdf(pdf_bytes)
    except FlattenError:
        raise
    except Exception as exc:
        logger.warning('pypdf could not open source PDF (%s); trying PyMuPDF repair.', exc)

    repaired = _repair_with_pymupdf(pdf_bytes)
    if not repaired:
        raise FlattenError('source PDF cannot be opened')
    try:
        return _read_with_pypdf(repaired)
    except FlattenError:
        raise
    except Exception as exc:
        raise FlattenError(f'source PDF cannot be opened after repair: {exc}') from exc


def page_infos(reader: PdfReader) -> list[PageInfo]:
    infos: list[PageInfo] = []
    for index, page in enumerate(reader.pages):
        box = page.mediabox
        rotation = int(page.rotation or 0) % 360
        infos.append(
            PageInfo(
                page_number=index + 1,
                width=float(box.width),
                height=float(box.height),
                rotation=rotation,
                origin_x=float(box.left),
                origin_y=float(box.bottom),
            )
        )
    return infos
