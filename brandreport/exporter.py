from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .assets import AssetProvider
from .config import Settings, get_settings
from .render.assembler import DocumentAssembler
from .storage import append_event, write_bytes_atomic
from .types import RenderRequest, RenderResult


logger = logging.getLogger(__name__)


def export_report(
    request: RenderRequest,
    assets: AssetProvider,
    *,
    settings: Settings | None = None,
    out_dir: Path | None = None,
    cancel_check: Callable[[], bool] | None = None,
) -> tuple[Path, RenderResult]:
    settings = settings or get_settings()
    target_dir = Path(out_dir) if out_dir is not None else settings.resolved_exports_dir()

    assembler = DocumentAssembler(assets, settings=settings, cancel_check=cancel_check)
    result = assembler.render(request)

    # Only a finished render reaches the filesystem
    path = target_dir / result.filename
    write_bytes_atomic(path, result.pdf_bytes)
    append_event(
        'exported',
        root=target_dir,
        filename=result.filename,
        section_label=request.section_label,
        pages=result.page_count,
        body_pages=result.body_page_count,
        final=result.is_final,
    )
    logger.info('Wrote %s (%d bytes)', path, len(result.pdf_bytes))
    return path, result
