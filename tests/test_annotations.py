from __future__ import annotations

import pytest

from pdfburn.annotations import load_annotation_model
from pdfburn.types import FreehandAnnotation, ImageAnnotation, ShapeAnnotation, TextAnnotation


def test_pages_mapping_preserves_paint_order():
    payload = {
        'pages': {
            '1': [
                {'id': 'a', 'type': 'rectangle', 'x': 1, 'y': 1, 'width': 5, 'height': 5},
                {'id': 'b', 'type': 'text', 'content': 'hi'},
                {'id': 'c', 'type': 'circle'},
            ],
            '2': [{'id': 'd', 'type': 'note'}],
        }
    }

    model, diagnostics = load_annotation_model(payload)

    assert diagnostics == []
    assert [item.id for item in model.for_page(1)] == ['a', 'b', 'c']
    assert [item.id for item in model.for_page(2)] == ['d']
    assert model.for_page(5) == []
    assert model.annotation_count == 4


def test_page_list_shape():
    payload = {
        'pages': [
            {'pageNumber': 2, 'annotations': [{'type': 'line', 'strokeWidth': 4}]},
            {'page_number': 1, 'annotations': [{'type': 'arrow'}]},
        ]
    }

    model, diagnostics = load_annotation_model(payload)

    assert diagnostics == []
    [line] = model.for_page(2)
    assert isinstance(line, ShapeAnnotation)
    assert line.stroke_width == 4.0
    assert model.for_page(1)[0].type == 'arrow'


def test_flat_list_uses_page_number_field():
    payload = [
        {'type': 'text', 'pageNumber': 1, 'content': 'one', 'fontSize': 9, 'fontWeight': 'bold'},
        {'type': 'image', 'pageNumber': 3, 'preview': 'data:image/png;base64,AA', 'mimeType': 'image/png'},
    ]

    model, diagnostics = load_annotation_model({'annotations': payload})

    assert diagnostics == []
    [text] = model.for_page(1)
    [image] = model.for_page(3)
    assert isinstance(text, TextAnnotation)
    assert (text.font_size, text.font_weight) == (9.0, 'bold')
    assert isinstance(image, ImageAnnotation)
    assert image.resource_ref == 'data:image/png;base64,AA'
    assert image.encoding_hint == 'image/png'


def test_signature_keeps_points_and_picture():
    payload = [
        {
            'type': 'signature',
            'pageNumber': 1,
            'points': [{'x': 1, 'y': 2}, {'x': 3, 'y': 4}],
            'imageData': 'data:image/png;base64,AA',
        }
    ]

    model, _ = load_annotation_model(payload)

    [signature] = model.for_page(1)
    assert isinstance(signature, FreehandAnnotation)
    assert [(p.x, p.y) for p in signature.points] == [(1.0, 2.0), (3.0, 4.0)]
    assert signature.image_data == 'data:image/png;base64,AA'


def test_invalid_entries_are_reported_not_fatal():
    payload = {
        'pages': {
            '1': [
                {'id': 'ok', 'type': 'rectangle'},
                {'id': 'bad-type', 'type': 'hologram'},
                {'id': 'bad-x', 'type': 'circle', 'x': 'left'},
                'not an object',
            ],
            'zero': [{'id': 'lost', 'type': 'note'}],
        }
    }

    model, diagnostics = load_annotation_model(payload)

    assert [item.id for item in model.for_page(1)] == ['ok']
    reported = {item.annotation_id: item for item in diagnostics}
    assert set(reported) == {'bad-type', 'bad-x', '#4', 'lost'}
    assert all(item.reason.startswith('invalid annotation payload: ') for item in diagnostics)
    assert reported['bad-x'].annotation_type == 'circle'
    assert reported['lost'].page_number == 0


def test_missing_ids_are_generated():
    model, _ = load_annotation_model([{'type': 'note', 'pageNumber': 1}, {'type': 'note', 'pageNumber': 1}])
    first, second = model.for_page(1)
    assert first.id and second.id and first.id != second.id


def test_unknown_payload_shape_is_rejected():
    with pytest.raises(ValueError):
        load_annotation_model('pages')


def test_unusable_style_values_are_kept_as_unset():
    payload = [
        {
            'id': 'box',
            'type': 'rectangle',
            'pageNumber': 1,
            'color': 123,
            'strokeWidth': 'thick',
            'opacity': 'half',
            'fillColor': 0,
        },
        {'id': 'label', 'type': 'text', 'pageNumber': 1, 'fontSize': '14', 'fontWeight': 700, 'content': 'x'},
    ]

    model, diagnostics = load_annotation_model(payload)

    assert diagnostics == []
    box, label = model.for_page(1)
    assert (box.color, box.stroke_width, box.opacity, box.fill_color) == (None, None, None, None)
    assert label.font_size == 14.0
    assert label.font_weight is None
