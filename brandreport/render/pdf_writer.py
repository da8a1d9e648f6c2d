from __future__ import annotations

import io
import logging

from pypdf import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from ..config import Settings
from ..errors import AssetError, RenderError
from .document import (
    BLACK,
    Color,
    ImagePrimitive,
    LinkPrimitive,
    Page,
    RectPrimitive,
    RenderedDocument,
    TextPrimitive,
)


logger = logging.getLogger(__name__)


def _rgb(color: Color) -> tuple[float, float, float]:
    return color[0] / 255.0, color[1] / 255.0, color[2] / 255.0


class _CanvasPainter:
    """Draws top-down primitives on a bottom-up reportlab canvas."""

    def __init__(self, canvas: pdf_canvas.Canvas, document: RenderedDocument):
        self.canvas = canvas
        self.document = document
        self._readers: dict[str, ImageReader] = {}

    def _image_reader(self, asset_key: str) -> ImageReader:
        reader = self._readers.get(asset_key)
        if reader is not None:
            return reader
        data = self.document.images.get(asset_key)
        if data is None:
            raise AssetError(asset_key, 'image was not loaded for this document')
        reader = ImageReader(io.BytesIO(data))
        self._readers[asset_key] = reader
        return reader

    def _flip(self, y: float) -> float:
        return self.document.height - y

    def text(self, item: TextPrimitive) -> None:
        self.canvas.setFillColorRGB(*_rgb(item.color))
        self.canvas.setFont(item.font, item.size)
        self.canvas.drawString(item.x, self._flip(item.y), item.text)

    def rect(self, item: RectPrimitive) -> None:
        if item.fill is not None:
            self.canvas.setFillColorRGB(*_rgb(item.fill))
        if item.stroke is not None:
            self.canvas.setStrokeColorRGB(*_rgb(item.stroke))
        self.canvas.rect(
            item.x,
            self._flip(item.y + item.height),
            item.width,
            item.height,
            stroke=1 if item.stroke is not None else 0,
            fill=1 if item.fill is not None else 0,
        )

    def image(self, item: ImagePrimitive) -> None:
        self.canvas.drawImage(
            self._image_reader(item.asset_key),
            item.x,
            self._flip(item.y + item.height),
            width=item.width,
            height=item.height,
            mask='auto',
        )

    def link(self, item: LinkPrimitive) -> None:
        self.canvas.linkURL(
            item.url,
            (item.x, self._flip(item.y + item.height), item.x + item.width, self._flip(item.y)),
            relative=0,
            thickness=0,
        )

    def page(self, page: Page) -> None:
        self.canvas.saveState()
        for item in page.primitives:
            if isinstance(item, TextPrimitive):
                self.text(item)
            elif isinstance(item, RectPrimitive):
                self.rect(item)
            elif isinstance(item, ImagePrimitive):
                self.image(item)
            elif isinstance(item, LinkPrimitive):
                self.link(item)
        self.canvas.restoreState()


def _new_canvas(buffer: io.BytesIO, document: RenderedDocument, settings: Settings | None) -> pdf_canvas.Canvas:
    invariant = 1 if settings is None or settings.pdf_invariant else 0
    canvas = pdf_canvas.Canvas(buffer, pagesize=(document.width, document.height), invariant=invariant)
    if settings is not None:
        canvas.setTitle(settings.pdf_title)
        canvas.setAuthor(settings.pdf_author)
        canvas.setProducer(settings.app_name)
    return canvas


def write_pdf(document: RenderedDocument, *, settings: Settings | None = None) -> bytes:
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, document, settings)
    painter = _CanvasPainter(canvas, document)
    for page in document.pages:
        painter.page(page)
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def _render_footer_overlay(document: RenderedDocument) -> bytes:
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, document, None)
    painter = _CanvasPainter(canvas, document)
    for stamp in document.footers:
        canvas.saveState()
        canvas.setFillColorRGB(*_rgb(BLACK))
        canvas.setFont(stamp.font, stamp.size)
        canvas.drawString(stamp.label_x, document.height - stamp.label_y, stamp.label)
        painter.image(stamp.logo)
        canvas.restoreState()
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def stamp_footers(pdf_bytes: bytes, document: RenderedDocument) -> bytes:
    """Merge one footer overlay page onto each stamped page of the serialized PDF."""
    if not document.footers:
        return pdf_bytes

    overlay_bytes = _render_footer_overlay(document)
    try:
        writer = PdfWriter(clone_from=PdfReader(io.BytesIO(pdf_bytes)))
        overlay = PdfReader(io.BytesIO(overlay_bytes))
        for stamp, overlay_page in zip(document.footers, overlay.pages):
            writer.pages[stamp.page_number - 1].merge_page(overlay_page)
        output = io.BytesIO()
        writer.write(output)
    except Exception as exc:
        logger.error('Failed to stamp footers with pypdf: %s', exc)
        raise RenderError(f'footer stamping failed: {exc}') from exc
    logger.debug('Stamped %d footers', len(document.footers))
    return output.getvalue()
