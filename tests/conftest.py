from __future__ import annotations

import io
from pathlib import Path

import pytest
import reportlab
from PIL import Image

from brandreport.assets import FontAsset, InMemoryAssetProvider
from brandreport.config import Settings
from brandreport.types import SectionIdentity


REPORTLAB_FONTS_DIR = Path(reportlab.__file__).resolve().parent / 'fonts'

COVER_COLORS = {
    SectionIdentity.discovery: (200, 40, 40),
    SectionIdentity.messaging: (40, 200, 40),
    SectionIdentity.audience: (40, 40, 200),
    SectionIdentity.complete: (120, 80, 20),
    SectionIdentity.generic: (90, 90, 90),
}


def make_png(color: tuple[int, int, int], size: tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path / 'data',
        exports_dir=tmp_path / 'exports',
    )


@pytest.fixture
def assets() -> InMemoryAssetProvider:
    return InMemoryAssetProvider(
        fonts={
            'heading': FontAsset.standard('Times-Roman'),
            'display': FontAsset.standard('Times-Bold'),
        },
        covers={identity: make_png(color) for identity, color in COVER_COLORS.items()},
        second_page=make_png((250, 250, 250)),
        logo=make_png((0, 0, 0), size=(40, 5)),
    )


@pytest.fixture
def vera_fonts() -> tuple[bytes, bytes]:
    regular = REPORTLAB_FONTS_DIR / 'Vera.ttf'
    bold = REPORTLAB_FONTS_DIR / 'VeraBd.ttf'
    if not regular.exists() or not bold.exists():
        pytest.skip('reportlab bundled Vera fonts are not available')
    return regular.read_bytes(), bold.read_bytes()
