from __future__ import annotations

from collections import defaultdict
from typing import Any

from pydantic import ValidationError

from pdfburn.types import ANNOTATION_ADAPTER, Annotation, AnnotationModel, Diagnostic


def _coerce_page_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        page_number = int(value)
    except (TypeError, ValueError):
        return None
    if page_number < 1:
        return None
    return page_number


def _summarize_validation_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = '.'.join(str(part) for part in first.get('loc', ()) if part != '')
    message = str(first.get('msg') or 'invalid value')
    suffix = f' (+{len(errors) - 1} more)' if len(errors) > 1 else ''
    return f'{location}: {message}{suffix}' if location else f'{message}{suffix}'


def _invalid(page_number: int, raw: Any, index: int, reason: str) -> Diagnostic:
    raw_dict = raw if isinstance(raw, dict) else {}
    return Diagnostic(
        page_number=page_number,
        annotation_id=str(raw_dict.get('id') or f'#{index}'),
        annotation_type=str(raw_dict.get('type') or 'unknown'),
        reason=f'invalid annotation payload: {reason}',
    )


def _iter_page_groups(payload: Any) -> list[tuple[Any, list[Any]]]:
    """Normalize the accepted payload shapes into ``(page_key, items)`` pairs.

    Accepted shapes:
    - ``{"pages": {"1": [...], "2": [...]}}``
    - ``{"pages": [{"pageNumber": 1, "annotations": [...]}, ...]}``
    - ``{"annotations": [...]}`` or a bare list, each item carrying ``pageNumber``
    """
    if isinstance(payload, dict) and isinstance(payload.get('pages'), dict):
        return [(key, items if isinstance(items, list) else []) for key, items in payload['pages'].items()]

    if isinstance(payload, dict) and isinstance(payload.get('pages'), list):
        groups: list[tuple[Any, list[Any]]] = []
        for page in payload['pages']:
            if not isinstance(page, dict):
                continue
            key = page.get('pageNumber', page.get('page_number'))
            items = page.get('annotations')
            groups.append((key, items if isinstance(items, list) else []))
        return groups

    if isinstance(payload, dict) and isinstance(payload.get('annotations'), list):
        payload = payload['annotations']

    if isinstance(payload, list):
        return [
            (item.get('pageNumber', item.get('page_number')) if isinstance(item, dict) else None, [item])
            for item in payload
        ]

    raise ValueError('annotation payload must be a list or an object with "pages" or "annotations"')


def load_annotation_model(payload: Any) -> tuple[AnnotationModel, list[Diagnostic]]:
    pages: dict[int, list[Annotation]] = defaultdict(list)
    diagnostics: list[Diagnostic] = []

    index = 0
    for page_key, items in _iter_page_groups(payload):
        group_page = _coerce_page_number(page_key)
        for raw in items:
            index += 1
            page_number = group_page
            if page_number is None:
                diagnostics.append(_invalid(0, raw, index, f'invalid page number {page_key!r}'))
                continue
            try:
                annotation = ANNOTATION_ADAPTER.validate_python(raw)
            except ValidationError as exc:
                diagnostics.append(_invalid(page_number, raw, index, _summarize_validation_error(exc)))
                continue
            pages[page_number].append(annotation)

    return AnnotationModel(pages=dict(pages)), diagnostics
