from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from PIL import Image, UnidentifiedImageError

from pdfburn.adapters.resource_loader import ResourceError, ResourceLoader, ResourceLoaderConfig

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
PNG_URI_PREFIX = 'data:image/png'


class RasterBucket(str, Enum):
    png = 'png'
    compressed = 'compressed'


@dataclass(frozen=True)
class EmbeddedImage:
    key: str
    bucket: RasterBucket
    pixel_width: int
    pixel_height: int
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class EmbedFailure:
    reference: str
    reason: str


EmbedOutcome = Union[EmbeddedImage, EmbedFailure]


@dataclass
class EmbedderConfig:
    loader: ResourceLoaderConfig = field(default_factory=ResourceLoaderConfig)


def detect_bucket(reference: str, data: bytes, encoding_hint: str | None = None) -> RasterBucket:
    hint = str(encoding_hint or '').strip().lower()
    if hint in {'png', 'image/png'}:
        return RasterBucket.png
    if str(reference or '').strip().lower().startswith(PNG_URI_PREFIX):
        return RasterBucket.png
    if data.startswith(PNG_SIGNATURE):
        return RasterBucket.png
    return RasterBucket.compressed


def _decode(data: bytes, bucket: RasterBucket) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as probe:
        probe.verify()
    # verify() leaves the image unusable; reopen to read the real header.
    with Image.open(io.BytesIO(data)) as image:
        if bucket == RasterBucket.png and image.format != 'PNG':
            raise ValueError(f'payload declared as PNG decodes as {image.format or "unknown"}')
        image.load()
        return int(image.width), int(image.height)


class ResourceEmbedder:
    def __init__(self, cfg: EmbedderConfig | None = None, *, loader: ResourceLoader | None = None):
        self.cfg = cfg or EmbedderConfig()
        self.loader = loader or ResourceLoader(self.cfg.loader)
        self._by_reference: dict[tuple[str, str], EmbedOutcome] = {}
        self._by_key: dict[str, EmbeddedImage] = {}

    @property
    def images(self) -> dict[str, EmbeddedImage]:
        return dict(self._by_key)

    async def embed(self, reference: str | None, encoding_hint: str | None = None) -> EmbedOutcome:
        token = str(reference or '').strip()
        if not token:
            return EmbedFailure(reference='', reason='missing resource reference')

        cache_key = (token, str(encoding_hint or '').strip().lower())
        cached = self._by_reference.get(cache_key)
        if cached is not None:
            return cached

        outcome = await self._embed_uncached(token, encoding_hint)
        self._by_reference[cache_key] = outcome
        return outcome

    async def _embed_uncached(self, reference: str, encoding_hint: str | None) -> EmbedOutcome:
        try:
            loaded = await self.loader.load(reference)
        except ResourceError as exc:
            return EmbedFailure(reference=reference[:120], reason=str(exc))

        bucket = detect_bucket(reference, loaded.data, encoding_hint or loaded.media_type)
        key = hashlib.sha256(loaded.data).hexdigest()
        existing = self._by_key.get(key)
        if existing is not None and existing.bucket == bucket:
            return existing

        try:
            pixel_width, pixel_height = _decode(loaded.data, bucket)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
            return EmbedFailure(
                reference=reference[:120],
                reason=f'cannot decode {bucket.value} raster: {type(exc).__name__}: {exc}',
            )

        handle = EmbeddedImage(
            key=key,
            bucket=bucket,
            pixel_width=pixel_width,
            pixel_height=pixel_height,
            data=loaded.data,
        )
        self._by_key[key] = handle
        logger.debug('Embedded %s raster %s (%sx%s)', bucket.value, key[:12], pixel_width, pixel_height)
        return handle
