from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from pdfburn.annotations import load_annotation_model
from pdfburn.compositor import Compositor
from pdfburn.config import get_settings
from pdfburn.document import FlattenError, open_source_document, page_infos
from pdfburn.storage import append_diagnostics, read_json, write_bytes_atomic

logger = logging.getLogger('pdfburn')


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level or 'INFO').upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _read_pdf(path_arg: str) -> tuple[Path, bytes] | None:
    pdf_path = Path(path_arg).expanduser().resolve()
    if not pdf_path.exists() or not pdf_path.is_file():
        _print_json({'status': 'error', 'message': f'PDF not found: {pdf_path}'})
        return None
    data = pdf_path.read_bytes()
    if not data:
        _print_json({'status': 'error', 'message': f'PDF is empty: {pdf_path}'})
        return None
    return pdf_path, data


def _read_annotations(path_arg: str):
    annotations_path = Path(path_arg).expanduser().resolve()
    if not annotations_path.exists():
        _print_json({'status': 'error', 'message': f'Annotations file not found: {annotations_path}'})
        return None
    try:
        payload = read_json(annotations_path)
        return load_annotation_model(payload)
    except (json.JSONDecodeError, ValueError) as exc:
        _print_json({'status': 'error', 'message': f'Invalid annotations file: {exc}'})
        return None


def cmd_flatten(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.font_family:
        settings = settings.model_copy(update={'font_family': args.font_family})

    source = _read_pdf(args.pdf)
    if source is None:
        return 2
    pdf_path, pdf_bytes = source

    loaded = _read_annotations(args.annotations)
    if loaded is None:
        return 2
    model, payload_diagnostics = loaded

    compositor = Compositor.from_settings(settings)
    try:
        result = asyncio.run(compositor.flatten(pdf_bytes, model))
    except FlattenError as exc:
        logger.error('Flatten failed for %s: %s', pdf_path, exc)
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    out_path = Path(args.out).expanduser().resolve()
    write_bytes_atomic(out_path, result.pdf_bytes)

    diagnostics = [*payload_diagnostics, *result.diagnostics]
    diagnostics_path = (
        Path(args.diagnostics).expanduser().resolve()
        if args.diagnostics
        else out_path.parent / settings.diagnostics_log_name
    )
    if diagnostics:
        append_diagnostics(diagnostics_path, diagnostics, source_pdf=str(pdf_path), output_pdf=str(out_path))

    _print_json(
        {
            'status': 'ok',
            'output_pdf': str(out_path),
            'pages_processed': result.pages_processed,
            'annotations_painted': result.annotations_painted,
            'diagnostics_count': len(diagnostics),
            'diagnostics_path': str(diagnostics_path) if diagnostics else None,
            'diagnostics': [item.model_dump(mode='json') for item in diagnostics],
        }
    )
    return 0


def cmd_pages(args: argparse.Namespace) -> int:
    source = _read_pdf(args.pdf)
    if source is None:
        return 2
    _, pdf_bytes = source
    try:
        reader = open_source_document(pdf_bytes)
    except FlattenError as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    pages = page_infos(reader)
    _print_json(
        {
            'page_count': len(pages),
            'pages': [page.model_dump(mode='json') for page in pages],
        }
    )
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    loaded = _read_annotations(args.annotations)
    if loaded is None:
        return 2
    model, diagnostics = loaded
    _print_json(
        {
            'annotation_count': model.annotation_count,
            'per_page': {str(page): len(items) for page, items in sorted(model.pages.items())},
            'diagnostics': [item.model_dump(mode='json') for item in diagnostics],
        }
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Burn editor annotations permanently into PDF pages')
    sub = parser.add_subparsers(dest='command', required=True)

    flatten = sub.add_parser('flatten', help='Flatten annotations into a PDF')
    flatten.add_argument('--pdf', required=True, help='Path to the source PDF')
    flatten.add_argument('--annotations', required=True, help='Path to the annotation model JSON')
    flatten.add_argument('--out', required=True, help='Path for the flattened PDF')
    flatten.add_argument('--diagnostics', required=False, help='JSONL file for skipped annotations')
    flatten.add_argument('--font-family', choices=['helvetica', 'times', 'courier'], required=False)
    flatten.set_defaults(func=cmd_flatten)

    pages = sub.add_parser('pages', help='List page sizes and rotation')
    pages.add_argument('--pdf', required=True, help='Path to the PDF')
    pages.set_defaults(func=cmd_pages)

    validate = sub.add_parser('validate', help='Check an annotation model JSON file')
    validate.add_argument('--annotations', required=True, help='Path to the annotation model JSON')
    validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(get_settings().log_level)
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
