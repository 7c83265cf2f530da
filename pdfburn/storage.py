from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from pdfburn.types import Diagnostic


def _tmp_path(path: Path) -> Path:
    return path.with_suffix(path.suffix + '.tmp')


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = _tmp_path(path)
    tmp.write_bytes(content)
    tmp.replace(path)


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding='utf-8'))


def append_diagnostics(path: Path, diagnostics: Iterable[Diagnostic], **extra: Any) -> int:
    now = datetime.now(timezone.utc).isoformat()
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open('a', encoding='utf-8') as f:
        for diagnostic in diagnostics:
            row = {
                'ts': now,
                **extra,
                **diagnostic.model_dump(mode='json'),
            }
            f.write(json.dumps(row, ensure_ascii=False) + '\n')
            count += 1
    return count
