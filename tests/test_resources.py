from __future__ import annotations

import asyncio
import hashlib

import httpx
import pytest

from pdfburn.adapters.resource_loader import (
    ResourceError,
    ResourceLoader,
    ResourceLoaderConfig,
    decode_data_uri,
)
from pdfburn.resources import (
    EmbeddedImage,
    EmbedderConfig,
    EmbedFailure,
    RasterBucket,
    ResourceEmbedder,
    detect_bucket,
)
from tests.conftest import data_uri, make_raster


class CountingLoader(ResourceLoader):
    def __init__(self, payloads: dict[str, bytes]):
        super().__init__()
        self.payloads = payloads
        self.calls: list[str] = []

    async def load(self, reference):
        self.calls.append(reference)
        if reference not in self.payloads:
            raise ResourceError(f'no such resource: {reference}')
        return await super().load(data_uri(self.payloads[reference], 'application/octet-stream'))


def test_bucket_detection():
    png = make_raster('PNG')
    jpeg = make_raster('JPEG')

    assert detect_bucket('data:image/png;base64,xx', b'') is RasterBucket.png
    assert detect_bucket('https://example.com/a', png) is RasterBucket.png
    assert detect_bucket('https://example.com/a', jpeg) is RasterBucket.compressed
    assert detect_bucket('https://example.com/a', jpeg, 'image/png') is RasterBucket.png


def test_data_uri_decoding():
    resource = decode_data_uri('data:image/png;base64,aGVsbG8=')
    assert resource.data == b'hello'
    assert resource.media_type == 'image/png'

    plain = decode_data_uri('data:,a%20b')
    assert plain.data == b'a b'
    assert plain.media_type is None

    with pytest.raises(ResourceError):
        decode_data_uri('data:image/png;base64')


def test_png_and_jpeg_embed(png_uri, jpeg_uri):
    embedder = ResourceEmbedder()

    png = asyncio.run(embedder.embed(png_uri))
    jpeg = asyncio.run(embedder.embed(jpeg_uri))

    assert isinstance(png, EmbeddedImage) and png.bucket is RasterBucket.png
    assert isinstance(jpeg, EmbeddedImage) and jpeg.bucket is RasterBucket.compressed
    assert (png.pixel_width, png.pixel_height) == (4, 4)
    assert set(embedder.images) == {png.key, jpeg.key}


def test_handles_are_content_addressed():
    payload = make_raster('PNG', color=(10, 20, 30))
    loader = CountingLoader({'a': payload, 'b': payload})
    embedder = ResourceEmbedder(loader=loader)

    async def run():
        return [await embedder.embed(ref) for ref in ('a', 'a', 'b')]

    first, again, other = asyncio.run(run())

    assert first is again
    assert first.key == other.key == hashlib.sha256(payload).hexdigest()
    assert loader.calls == ['a', 'b']
    assert len(embedder.images) == 1


def test_fetch_failure_is_a_value_not_an_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, request=request)

    loader = ResourceLoader(transport=httpx.MockTransport(handler))
    embedder = ResourceEmbedder(loader=loader)

    outcome = asyncio.run(embedder.embed('https://example.com/missing.png'))

    assert isinstance(outcome, EmbedFailure)
    assert 'fetch failed' in outcome.reason


def test_remote_fetch_uses_content_type():
    payload = make_raster('PNG')

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=payload, headers={'content-type': 'image/png'}, request=request)

    embedder = ResourceEmbedder(loader=ResourceLoader(transport=httpx.MockTransport(handler)))
    outcome = asyncio.run(embedder.embed('https://example.com/logo'))

    assert isinstance(outcome, EmbeddedImage)
    assert outcome.bucket is RasterBucket.png


def test_undecodable_payload_fails_softly():
    embedder = ResourceEmbedder()
    outcome = asyncio.run(embedder.embed(data_uri(b'not an image at all', 'image/jpeg')))
    assert isinstance(outcome, EmbedFailure)
    assert 'cannot decode' in outcome.reason


def test_png_label_on_jpeg_bytes_fails():
    embedder = ResourceEmbedder()
    outcome = asyncio.run(embedder.embed(data_uri(make_raster('JPEG'), 'image/png')))
    assert isinstance(outcome, EmbedFailure)


def test_missing_reference():
    outcome = asyncio.run(ResourceEmbedder().embed(None))
    assert isinstance(outcome, EmbedFailure)
    assert outcome.reason == 'missing resource reference'


def test_disallowed_scheme_and_size_limit():
    cfg = EmbedderConfig(loader=ResourceLoaderConfig(allowed_schemes=['data'], max_bytes=10))
    embedder = ResourceEmbedder(cfg)

    remote = asyncio.run(embedder.embed('https://example.com/a.png'))
    too_big = asyncio.run(embedder.embed(data_uri(make_raster('PNG'), 'image/png')))

    assert isinstance(remote, EmbedFailure) and 'not allowed' in remote.reason
    assert isinstance(too_big, EmbedFailure) and 'exceeds' in too_big.reason


def test_file_references_resolve_against_base_dir(tmp_path):
    (tmp_path / 'logo.jpg').write_bytes(make_raster('JPEG'))
    cfg = EmbedderConfig(loader=ResourceLoaderConfig(base_dir=tmp_path))
    embedder = ResourceEmbedder(cfg)

    found = asyncio.run(embedder.embed('logo.jpg'))
    missing = asyncio.run(embedder.embed('nope.jpg'))

    assert isinstance(found, EmbeddedImage)
    assert found.bucket is RasterBucket.compressed
    assert isinstance(missing, EmbedFailure) and 'not found' in missing.reason
