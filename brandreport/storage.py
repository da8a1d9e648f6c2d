from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import get_settings


BRAND_SEGMENT_MAX_LENGTH = 30
FALLBACK_BRAND_SEGMENT = 'brand'
FALLBACK_SECTION_SEGMENT = 'report'
PDF_EXTENSION = 'pdf'

_BRAND_DISALLOWED = re.compile(r'[^a-z0-9\s]')
_SECTION_DISALLOWED = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_WHITESPACE = re.compile(r'\s+')


def exports_root() -> Path:
    root = get_settings().resolved_exports_dir()
    root.mkdir(parents=True, exist_ok=True)
    return root


def sanitize_brand(brand_name: str) -> str:
    token = _BRAND_DISALLOWED.sub('', str(brand_name or '').lower()).strip()
    token = _WHITESPACE.sub('-', token)[:BRAND_SEGMENT_MAX_LENGTH].strip('-')
    return token or FALLBACK_BRAND_SEGMENT


def sanitize_section(section_label: str) -> str:
    token = _SECTION_DISALLOWED.sub('', str(section_label or '').lower()).strip()
    token = _WHITESPACE.sub('-', token).strip('.')
    return token or FALLBACK_SECTION_SEGMENT


def export_filename(brand_name: str, section_label: str, extension: str = PDF_EXTENSION) -> str:
    return f'{sanitize_brand(brand_name)}-{sanitize_section(section_label)}.{extension}'


def write_bytes_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    tmp.write_bytes(content)
    tmp.replace(path)


def events_path(root: Path | None = None) -> Path:
    return (root or exports_root()) / 'events.jsonl'


def append_event(event: str, *, root: Path | None = None, **extra: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    row = {
        'ts': now,
        'event': event,
        **extra,
    }
    events_file = events_path(root)
    events_file.parent.mkdir(parents=True, exist_ok=True)
    with events_file.open('a', encoding='utf-8') as f:
        f.write(json.dumps(row, ensure_ascii=False) + '\n')
