from __future__ import annotations

import base64
import io

import pytest
from PIL import Image
from reportlab.pdfgen.canvas import Canvas

from pdfburn.style import FontSet
from pdfburn.types import PageInfo


def make_pdf(sizes: list[tuple[float, float]]) -> bytes:
    buffer = io.BytesIO()
    canvas = Canvas(buffer)
    for width, height in sizes:
        canvas.setPageSize((width, height))
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def make_raster(fmt: str, color: tuple[int, int, int] = (255, 0, 0), size: tuple[int, int] = (4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, fmt)
    return buffer.getvalue()


def data_uri(data: bytes, media_type: str) -> str:
    return f'data:{media_type};base64,{base64.b64encode(data).decode("ascii")}'


@pytest.fixture
def fonts() -> FontSet:
    return FontSet.load('helvetica')


@pytest.fixture
def page_100() -> PageInfo:
    return PageInfo(page_number=1, width=100.0, height=100.0)


@pytest.fixture
def page_200() -> PageInfo:
    return PageInfo(page_number=1, width=200.0, height=200.0)


@pytest.fixture
def png_uri() -> str:
    return data_uri(make_raster('PNG'), 'image/png')


@pytest.fixture
def jpeg_uri() -> str:
    return data_uri(make_raster('JPEG', color=(0, 0, 255)), 'image/jpeg')
