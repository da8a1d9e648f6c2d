from __future__ import annotations

import io

import pytest
from fontTools.ttLib import TTFont as FontToolsTTFont
from reportlab.pdfbase import pdfmetrics

from brandreport.assets import FontAsset, InMemoryAssetProvider
from brandreport.errors import AssetError
from brandreport.render.assembler import DocumentAssembler
from brandreport.render.fonts import measure_text_width, register_font_asset, resolve_report_fonts
from brandreport.types import RenderRequest


def _woff_bytes(ttf: bytes) -> bytes:
    font = FontToolsTTFont(io.BytesIO(ttf))
    font.flavor = 'woff'
    output = io.BytesIO()
    font.save(output)
    return output.getvalue()


def test_standard_font_is_used_by_name() -> None:
    assert register_font_asset('heading', FontAsset.standard('Times-Roman')) == 'Times-Roman'


def test_unknown_standard_font_is_an_asset_error() -> None:
    with pytest.raises(AssetError) as excinfo:
        register_font_asset('heading', FontAsset.standard('No-Such-Font'))
    assert excinfo.value.asset == 'font:heading'


def test_truetype_font_is_registered_by_content(vera_fonts) -> None:
    regular, _ = vera_fonts
    name = register_font_asset('heading', FontAsset(name='Vera', data=regular))
    assert name.startswith('BR-heading-')
    assert name in pdfmetrics.getRegisteredFontNames()
    assert register_font_asset('heading', FontAsset(name='Vera again', data=regular)) == name
    assert measure_text_width('Brand', name, 12) > 0


def test_different_fonts_get_different_names(vera_fonts) -> None:
    regular, bold = vera_fonts
    first = register_font_asset('display', FontAsset(name='a', data=regular))
    second = register_font_asset('display', FontAsset(name='b', data=bold))
    assert first != second


def test_woff_font_is_converted(vera_fonts) -> None:
    regular, _ = vera_fonts
    name = register_font_asset('heading', FontAsset(name='Vera.woff', data=_woff_bytes(regular)))
    assert name.startswith('BR-heading-')
    assert measure_text_width('Brand', name, 12) == pytest.approx(
        measure_text_width('Brand', register_font_asset('heading', FontAsset(name='Vera', data=regular)), 12)
    )


@pytest.mark.parametrize('data', [b'', b'definitely not a font'])
def test_unusable_font_bytes(data: bytes) -> None:
    with pytest.raises(AssetError):
        register_font_asset('display', FontAsset(name='broken', data=data))


def test_resolve_report_fonts_keeps_helvetica_body() -> None:
    provider = InMemoryAssetProvider(
        fonts={'heading': FontAsset.standard('Times-Roman'), 'display': FontAsset.standard('Times-Bold')}
    )
    fonts = resolve_report_fonts(provider)
    assert (fonts.heading, fonts.display, fonts.body, fonts.body_bold) == (
        'Times-Roman',
        'Times-Bold',
        'Helvetica',
        'Helvetica-Bold',
    )


def test_render_with_embedded_fonts(assets, settings, vera_fonts) -> None:
    regular, bold = vera_fonts
    assets.fonts = {
        'heading': FontAsset(name='Vera', data=regular),
        'display': FontAsset(name='VeraBd', data=bold),
    }
    request = RenderRequest(
        brand_name='Acme',
        section_label='Complete Brand Analysis',
        report_parts=['# Embedded heading\n| Recommendation | Impact |\n|---|---|\n| Do it | High |'],
    )
    result = DocumentAssembler(assets, settings=settings).render(request)
    assert result.pdf_bytes.startswith(b'%PDF')
    assert result.page_count == 3
