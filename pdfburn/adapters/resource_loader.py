from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote_to_bytes, urlparse

import httpx

logger = logging.getLogger(__name__)


class ResourceError(RuntimeError):
    """Raised when a raster reference cannot be turned into bytes."""


@dataclass
class ResourceLoaderConfig:
    timeout_seconds: int = 20
    max_bytes: int = 25 * 1024 * 1024
    allowed_schemes: list[str] = field(default_factory=lambda: ['data', 'http', 'https', 'file'])
    base_dir: Path | None = None


@dataclass
class LoadedResource:
    data: bytes
    # Media type declared by the source (data URI header / Content-Type), if any.
    media_type: str | None = None


def _scheme_of(reference: str) -> str:
    if reference.startswith('data:'):
        return 'data'
    parsed = urlparse(reference)
    scheme = (parsed.scheme or '').lower()
    # Windows drive letters parse as one-letter schemes.
    if len(scheme) <= 1:
        return 'file'
    return scheme


def decode_data_uri(reference: str) -> LoadedResource:
    header, sep, payload = reference.partition(',')
    if not sep:
        raise ResourceError('malformed data URI: missing payload separator')
    meta = header[len('data:'):]
    parts = [item.strip() for item in meta.split(';') if item.strip()]
    is_base64 = bool(parts) and parts[-1].lower() == 'base64'
    if is_base64:
        parts = parts[:-1]
    media_type = parts[0].lower() if parts and '/' in parts[0] else None

    if is_base64:
        try:
            data = base64.b64decode(payload.strip(), validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ResourceError(f'invalid base64 payload in data URI: {exc}') from exc
    else:
        data = unquote_to_bytes(payload)
    return LoadedResource(data=data, media_type=media_type)


class ResourceLoader:
    """Turns an annotation's stored raster reference into raw bytes."""

    def __init__(
        self,
        cfg: ResourceLoaderConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cfg = cfg or ResourceLoaderConfig()
        self.transport = transport

    def _check_size(self, size: int, reference: str) -> None:
        if size > int(self.cfg.max_bytes):
            raise ResourceError(
                f'resource exceeds {int(self.cfg.max_bytes)} bytes: {reference[:80]}'
            )

    async def load(self, reference: str) -> LoadedResource:
        token = str(reference or '').strip()
        if not token:
            raise ResourceError('empty resource reference')

        scheme = _scheme_of(token)
        allowed = {item.lower() for item in self.cfg.allowed_schemes}
        if scheme not in allowed:
            raise ResourceError(f'resource scheme not allowed: {scheme}')

        if scheme == 'data':
            resource = decode_data_uri(token)
        elif scheme in {'http', 'https'}:
            resource = await self._load_remote(token)
        elif scheme == 'file':
            resource = self._load_file(token)
        else:
            raise ResourceError(f'unsupported resource scheme: {scheme}')

        if not resource.data:
            raise ResourceError('resource is empty')
        self._check_size(len(resource.data), token)
        return resource

    async def _load_remote(self, url: str) -> LoadedResource:
        try:
            async with httpx.AsyncClient(
                timeout=max(1, int(self.cfg.timeout_seconds)),
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ResourceError(f'fetch failed for {url}: {type(exc).__name__}: {exc}') from exc

        media_type = str(response.headers.get('content-type') or '').split(';')[0].strip().lower() or None
        return LoadedResource(data=response.content, media_type=media_type)

    def _load_file(self, reference: str) -> LoadedResource:
        if reference.startswith('file://'):
            path = Path(unquote_to_bytes(urlparse(reference).path).decode('utf-8'))
        else:
            path = Path(reference).expanduser()
        if not path.is_absolute() and self.cfg.base_dir is not None:
            path = Path(self.cfg.base_dir) / path

        if not path.exists() or not path.is_file():
            raise ResourceError(f'resource file not found: {path}')
        self._check_size(int(path.stat().st_size), str(path))
        try:
            return LoadedResource(data=path.read_bytes())
        except OSError as exc:
            raise ResourceError(f'cannot read resource file {path}: {exc}') from exc
