from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass

from fontTools.ttLib import TTFont as FontToolsTTFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from ..assets import AssetProvider, FontAsset
from ..errors import AssetError


logger = logging.getLogger(__name__)

BODY_FONT = 'Helvetica'
BODY_BOLD_FONT = 'Helvetica-Bold'

_WOFF_SIGNATURES = (b'wOFF', b'wOF2')


@dataclass(frozen=True)
class ReportFonts:
    heading: str
    display: str
    body: str = BODY_FONT
    body_bold: str = BODY_BOLD_FONT


def measure_text_width(text: str, font_name: str, font_size: float) -> float:
    if not text:
        return 0.0
    return float(pdfmetrics.stringWidth(text, font_name, font_size))


def _is_truetype_outline_font(data: bytes) -> bool:
    try:
        inspected = FontToolsTTFont(io.BytesIO(data))
        return 'glyf' in inspected
    except Exception:
        return False


def _convert_woff_font_to_ttf(asset: str, data: bytes) -> bytes:
    try:
        font = FontToolsTTFont(io.BytesIO(data))
        if 'glyf' not in font:
            raise AssetError(asset, 'unsupported outlines (CFF/PostScript)')
        font.flavor = None
        output = io.BytesIO()
        font.save(output)
    except AssetError:
        raise
    except Exception as exc:
        logger.error('Failed to convert WOFF font %s: %s', asset, exc)
        raise AssetError(asset, f'cannot convert WOFF font: {exc}') from exc
    converted = output.getvalue()
    if not _is_truetype_outline_font(converted):
        raise AssetError(asset, 'converted font is not TrueType-outline')
    logger.info('Converted WOFF font %s to TrueType (%d bytes)', asset, len(converted))
    return converted


def _register_ttf_font(asset: str, role: str, data: bytes) -> str:
    if data[:4] in _WOFF_SIGNATURES:
        data = _convert_woff_font_to_ttf(asset, data)

    # Name by content so concurrent renders with different fonts never share an entry
    digest = hashlib.sha1(data).hexdigest()[:12]
    font_name = f'BR-{role}-{digest}'
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name

    try:
        pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(data)))
    except Exception as exc:
        logger.error('Failed to register PDF font %s: %s', asset, exc)
        raise AssetError(asset, f'cannot register font: {exc}') from exc
    logger.debug('Registered PDF font %s as %s', asset, font_name)
    return font_name


def _resolve_standard_font(asset: str, name: str) -> str:
    try:
        pdfmetrics.getFont(name)
    except Exception as exc:
        logger.error('Unknown standard PDF font %s for %s', name, asset)
        raise AssetError(asset, f'unknown standard font {name!r}') from exc
    return name


def register_font_asset(role: str, font: FontAsset) -> str:
    asset = f'font:{role}'
    if font.data is None:
        return _resolve_standard_font(asset, font.name)
    if not font.data:
        raise AssetError(asset, 'font is empty')
    return _register_ttf_font(asset, role, font.data)


def resolve_report_fonts(provider: AssetProvider) -> ReportFonts:
    return ReportFonts(
        heading=register_font_asset('heading', provider.font('heading')),
        display=register_font_asset('display', provider.font('display')),
    )
