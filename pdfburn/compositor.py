from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from pdfburn.adapters.resource_loader import ResourceLoader, ResourceLoaderConfig
from pdfburn.config import Settings, get_settings
from pdfburn.document import FlattenError, open_source_document, page_infos
from pdfburn.ops import PageOps
from pdfburn.render import RenderContext, Rendered, RenderOutcome, Skipped, render_annotation, resource_request
from pdfburn.resources import EmbedderConfig, ResourceEmbedder
from pdfburn.serializer import PdfSerializer
from pdfburn.style import FontSet, FontUnavailableError
from pdfburn.types import AnnotationBase, AnnotationModel, Diagnostic, PageInfo

logger = logging.getLogger(__name__)


@dataclass
class FlattenResult:
    pdf_bytes: bytes
    diagnostics: list[Diagnostic]
    pages_processed: int
    annotations_painted: int
    page_ops: list[PageOps] = field(default_factory=list, repr=False)


@dataclass
class ComposeResult:
    pages: list[PageOps]
    diagnostics: list[Diagnostic]
    annotations_painted: int


def _diagnostic(page_number: int, annotation: AnnotationBase, reason: str) -> Diagnostic:
    return Diagnostic(
        page_number=page_number,
        annotation_id=str(annotation.id),
        annotation_type=annotation.kind.value,
        reason=reason,
    )


class Compositor:
    def __init__(
        self,
        *,
        font_family: str = 'helvetica',
        embedder_cfg: EmbedderConfig | None = None,
        serializer: PdfSerializer | None = None,
        loader: ResourceLoader | None = None,
        max_pdf_bytes: int | None = None,
    ):
        self.font_family = font_family
        self.embedder_cfg = embedder_cfg or EmbedderConfig()
        self.serializer = serializer or PdfSerializer()
        self.loader = loader
        self.max_pdf_bytes = max_pdf_bytes

    @classmethod
    def from_settings(cls, settings: Settings | None = None, *, loader: ResourceLoader | None = None) -> Compositor:
        settings = settings or get_settings()
        return cls(
            font_family=settings.font_family,
            embedder_cfg=EmbedderConfig(
                loader=ResourceLoaderConfig(
                    timeout_seconds=settings.resource_timeout_seconds,
                    max_bytes=settings.max_resource_bytes,
                    allowed_schemes=settings.resource_schemes(),
                    base_dir=settings.resource_base_dir,
                )
            ),
            serializer=PdfSerializer(deflate=settings.output_deflate),
            loader=loader,
            max_pdf_bytes=settings.max_pdf_bytes,
        )

    def _load_fonts(self) -> FontSet:
        try:
            return FontSet.load(self.font_family)
        except FontUnavailableError as exc:
            raise FlattenError(str(exc)) from exc

    def _new_embedder(self) -> ResourceEmbedder:
        return ResourceEmbedder(self.embedder_cfg, loader=self.loader)

    async def _process(
        self,
        annotation: AnnotationBase,
        ctx: RenderContext,
        embedder: ResourceEmbedder,
    ) -> RenderOutcome:
        try:
            resource = None
            request = resource_request(annotation)
            if request is not None:
                resource = await embedder.embed(*request)
            return render_annotation(annotation, ctx, resource)
        except Exception as exc:
            logger.debug('Annotation %s raised while rendering', annotation.id, exc_info=True)
            return Skipped(f'render failed: {type(exc).__name__}: {exc}')

    async def compose(
        self,
        pages: list[PageInfo],
        model: AnnotationModel,
        *,
        fonts: FontSet,
        embedder: ResourceEmbedder,
    ) -> ComposeResult:
        diagnostics: list[Diagnostic] = []
        output: list[PageOps] = []
        painted = 0

        for page in pages:
            ctx = RenderContext(page=page, fonts=fonts)
            page_ops = PageOps(
                page_number=page.page_number,
                width=page.width,
                height=page.height,
                origin_x=page.origin_x,
                origin_y=page.origin_y,
            )
            for annotation in model.for_page(page.page_number):
                outcome = await self._process(annotation, ctx, embedder)
                if isinstance(outcome, Rendered):
                    page_ops.extend(list(outcome.ops))
                    painted += 1
                    continue
                logger.warning(
                    'Skipped %s annotation %s on page %s: %s',
                    annotation.kind.value,
                    annotation.id,
                    page.page_number,
                    outcome.reason,
                )
                diagnostics.append(_diagnostic(page.page_number, annotation, outcome.reason))
            output.append(page_ops)

        known = {page.page_number for page in pages}
        for page_number in sorted(model.pages):
            if page_number in known:
                continue
            for annotation in model.pages[page_number]:
                reason = f'page {page_number} does not exist (document has {len(pages)} pages)'
                logger.warning('Skipped annotation %s: %s', annotation.id, reason)
                diagnostics.append(_diagnostic(page_number, annotation, reason))

        return ComposeResult(pages=output, diagnostics=diagnostics, annotations_painted=painted)

    async def flatten(self, pdf_bytes: bytes, model: AnnotationModel) -> FlattenResult:
        if self.max_pdf_bytes is not None and len(pdf_bytes) > int(self.max_pdf_bytes):
            raise FlattenError(
                f'source PDF too large: {len(pdf_bytes)} bytes, max allowed {int(self.max_pdf_bytes)} bytes'
            )

        fonts = self._load_fonts()
        reader = open_source_document(pdf_bytes)
        pages = page_infos(reader)
        embedder = self._new_embedder()

        composed = await self.compose(pages, model, fonts=fonts, embedder=embedder)
        pdf_out = await asyncio.to_thread(self.serializer.serialize, reader, composed.pages, embedder.images)

        logger.info(
            'Flattened %s pages: %s annotations painted, %s skipped',
            len(pages),
            composed.annotations_painted,
            len(composed.diagnostics),
        )
        return FlattenResult(
            pdf_bytes=pdf_out,
            diagnostics=composed.diagnostics,
            pages_processed=len(pages),
            annotations_painted=composed.annotations_painted,
            page_ops=composed.pages,
        )


def flatten_pdf(
    pdf_bytes: bytes,
    model: AnnotationModel,
    *,
    settings: Settings | None = None,
    loader: ResourceLoader | None = None,
) -> FlattenResult:
    """Blocking entry point for callers without an event loop."""
    compositor = Compositor.from_settings(settings, loader=loader)
    return asyncio.run(compositor.flatten(pdf_bytes, model))
