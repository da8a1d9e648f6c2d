from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from ..assets import AssetProvider, validate_image
from ..config import Settings, get_settings
from ..errors import RenderCancelled
from ..storage import export_filename
from ..types import HyperlinkRule, RenderRequest, RenderResult
from .blocks import BulletItem, Heading, Paragraph, TableRow, classify_lines, group_tables, normalize_markdown_tables, split_lines
from .document import WHITE, FooterStamp, ImagePrimitive, LayoutCursor, RenderedDocument, TextPrimitive
from .flow import PageFlowController
from .fonts import ReportFonts, measure_text_width, resolve_report_fonts
from .inline import RunStyle, StyledRun, draw_runs, format_span, strip_bold_markers, wrap_runs
from .pdf_writer import stamp_footers, write_pdf
from .tables import TableLayoutEngine


logger = logging.getLogger(__name__)

COVER_IMAGE_KEY = 'cover'
SECOND_PAGE_IMAGE_KEY = 'second_page'
FOOTER_LOGO_KEY = 'footer_logo'

# Level -> (font size, required height)
HEADING_METRICS: dict[int, tuple[float, float]] = {
    1: (24.0, 40.0),
    2: (18.0, 30.0),
    3: (14.0, 30.0),
    4: (12.0, 30.0),
}
# Nominal line for widow checks of headings and bullets
NOMINAL_LINE_HEIGHT = 20.0
HEADING_WRAP_LEADING = 1.2

PARAGRAPH_LINE_HEIGHT = 20.0

BULLET_LINE_HEIGHT = 18.0
BULLET_GLYPH = '•'
BULLET_GLYPH_OFFSET = 15.0
BULLET_TEXT_OFFSET = 25.0
BULLET_INDENT_PER_SPACE = 2.0

COVER_SAFE_WIDTH = 0.8
COVER_BAND = (0.78, 0.94)
COVER_LEADING = 1.2
COVER_SHRINK_STEP = 2.0

LOGO_WIDTH_FACTOR = 2.34
LOGO_HEIGHT_FACTOR = 0.25


@dataclass(frozen=True)
class BodyStyles:
    paragraph: RunStyle
    table_header: RunStyle
    table_body: RunStyle


class DocumentAssembler:
    def __init__(
        self,
        assets: AssetProvider,
        *,
        settings: Settings | None = None,
        hyperlinks: Sequence[HyperlinkRule] | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ):
        self.assets = assets
        self.settings = settings or get_settings()
        self.hyperlinks = tuple(self.settings.hyperlinks if hyperlinks is None else hyperlinks)
        self.cancel_check = cancel_check

    def render(self, request: RenderRequest) -> RenderResult:
        document = self.assemble(request)
        pdf_bytes = write_pdf(document, settings=self.settings)
        if document.footers:
            pdf_bytes = stamp_footers(pdf_bytes, document)
        filename = export_filename(request.brand_name, request.section_label)
        logger.info(
            'Rendered %s: %d pages (%d body), %d bytes',
            filename,
            document.page_count,
            len(document.body_pages()),
            len(pdf_bytes),
        )
        return RenderResult(
            filename=filename,
            page_count=document.page_count,
            body_page_count=len(document.body_pages()),
            is_final=request.is_final,
            pdf_bytes=pdf_bytes,
        )

    def assemble(self, request: RenderRequest) -> RenderedDocument:
        settings = self.settings
        is_final = request.is_final
        logger.info(
            'Assembling %r for %r (%d parts, final=%s)',
            request.section_label,
            request.brand_name,
            len(request.report_parts),
            is_final,
        )

        fonts = resolve_report_fonts(self.assets)
        document = RenderedDocument()

        cover = self.assets.cover_image(request.identity)
        validate_image(f'cover:{request.identity.value}', cover)
        document.images[COVER_IMAGE_KEY] = cover
        self._render_cover(document, fonts, request.brand_name)

        if is_final:
            second_page = self.assets.second_page_image()
            validate_image('second_page', second_page)
            document.images[SECOND_PAGE_IMAGE_KEY] = second_page
            page = document.new_page('static')
            page.primitives.append(
                ImagePrimitive(x=0, y=0, width=document.width, height=document.height, asset_key=SECOND_PAGE_IMAGE_KEY)
            )

        self._render_body(document, fonts, request)

        if is_final:
            logo = self.assets.footer_logo()
            validate_image('footer_logo', logo)
            document.images[FOOTER_LOGO_KEY] = logo
            document.footers = self._footer_stamps(document, fonts)

        return document

    def flow_controller(self, document: RenderedDocument) -> PageFlowController:
        return PageFlowController(
            page_height=document.height,
            footer_band_height=self.settings.footer_band_height,
            top_margin=self.settings.page_margin,
        )

    def _check_cancelled(self) -> None:
        if self.cancel_check is not None and self.cancel_check():
            logger.info('Render cancelled at a block boundary')
            raise RenderCancelled('render cancelled')

    def _render_cover(self, document: RenderedDocument, fonts: ReportFonts, brand_name: str) -> None:
        page = document.new_page('cover')
        page.primitives.append(
            ImagePrimitive(x=0, y=0, width=document.width, height=document.height, asset_key=COVER_IMAGE_KEY)
        )
        title = str(brand_name or '').strip().upper()
        if not title:
            return

        safe_width = document.width * COVER_SAFE_WIDTH
        band_top = document.height * COVER_BAND[0]
        band_height = document.height * (COVER_BAND[1] - COVER_BAND[0])

        size = self.settings.cover_font_size
        while True:
            style = RunStyle(font=fonts.display, bold_font=fonts.display, size=size, color=WHITE)
            lines = wrap_runs([StyledRun(text=title)], safe_width, style)
            leading = size * COVER_LEADING
            block_height = len(lines) * leading
            if block_height <= band_height or size - COVER_SHRINK_STEP < self.settings.cover_min_font_size:
                break
            size -= COVER_SHRINK_STEP

        # Last baseline must stay inside the band even at the minimum size
        max_lines = max(1, int((band_height - size) // leading) + 1)
        if len(lines) > max_lines:
            logger.warning(
                'Cover title for %r needs %d lines at %.0fpt; keeping %d',
                brand_name,
                len(lines),
                size,
                max_lines,
            )
            lines = lines[:max_lines]
            block_height = len(lines) * leading

        block_top = band_top + max(0.0, (band_height - block_height) / 2)
        for index, line in enumerate(lines):
            text = ''.join(run.text for run in line)
            width = measure_text_width(text, fonts.display, size)
            page.primitives.append(
                TextPrimitive(
                    x=(document.width - width) / 2,
                    y=block_top + size + index * leading,
                    text=text,
                    font=fonts.display,
                    size=size,
                    color=WHITE,
                )
            )

    def _body_styles(self, fonts: ReportFonts) -> BodyStyles:
        settings = self.settings
        return BodyStyles(
            paragraph=RunStyle(font=fonts.body, bold_font=fonts.body_bold, size=settings.body_font_size),
            table_header=RunStyle(font=fonts.heading, bold_font=fonts.heading, size=settings.table_header_font_size),
            table_body=RunStyle(font=fonts.body, bold_font=fonts.body_bold, size=settings.table_body_font_size),
        )

    def _render_body(self, document: RenderedDocument, fonts: ReportFonts, request: RenderRequest) -> None:
        flow = self.flow_controller(document)
        styles = self._body_styles(fonts)
        tables = TableLayoutEngine(
            flow,
            header_style=styles.table_header,
            body_style=styles.table_body,
            hyperlinks=self.hyperlinks,
        )
        margin = self.settings.page_margin
        usable_width = document.width - 2 * margin

        cursor: LayoutCursor | None = None
        for index, part in enumerate(request.parts()):
            self._check_cancelled()
            page = document.new_page('body')
            cursor = LayoutCursor(page=page.number, y=margin, margin_left=margin, usable_width=usable_width)

            blocks = classify_lines(split_lines(normalize_markdown_tables(part.markdown_text)))
            logger.debug('Part %d: %d lines starting on page %d', index + 1, len(blocks), page.number)
            for item in group_tables(blocks):
                self._check_cancelled()
                if isinstance(item, list):
                    cursor = tables.render_table(document, cursor, item)
                elif isinstance(item, Heading):
                    cursor = self._render_heading(document, flow, fonts, cursor, item)
                elif isinstance(item, BulletItem):
                    cursor = self._render_bullet(document, flow, styles.paragraph, cursor, item)
                elif isinstance(item, Paragraph):
                    cursor = self._render_paragraph(document, flow, styles.paragraph, cursor, item)

        if cursor is None:
            document.new_page('body')

    def _render_heading(
        self,
        document: RenderedDocument,
        flow: PageFlowController,
        fonts: ReportFonts,
        cursor: LayoutCursor,
        block: Heading,
    ) -> LayoutCursor:
        size, required = HEADING_METRICS[block.level]
        font = fonts.body_bold if block.level == 4 else fonts.heading
        style = RunStyle(font=font, bold_font=font, size=size)
        text = strip_bold_markers(block.text).strip()
        lines = wrap_runs([StyledRun(text=text)], cursor.usable_width, style) if text else [[]]
        leading = size * HEADING_WRAP_LEADING
        required += (len(lines) - 1) * leading

        cursor = flow.ensure_room(document, cursor, required, NOMINAL_LINE_HEIGHT)
        page = document.page(cursor.page)
        for index, line in enumerate(lines):
            line_text = ''.join(run.text for run in line)
            if not line_text:
                continue
            page.primitives.append(
                TextPrimitive(x=cursor.margin_left, y=cursor.y + index * leading, text=line_text, font=font, size=size)
            )
        return cursor.advanced(required)

    def _render_paragraph(
        self,
        document: RenderedDocument,
        flow: PageFlowController,
        style: RunStyle,
        cursor: LayoutCursor,
        block: Paragraph,
    ) -> LayoutCursor:
        runs = format_span(block.text, self.hyperlinks)
        for line in wrap_runs(runs, cursor.usable_width, style):
            cursor = flow.ensure_room(document, cursor, PARAGRAPH_LINE_HEIGHT, PARAGRAPH_LINE_HEIGHT)
            if line:
                draw_runs(document, cursor.page, cursor.margin_left, cursor.y, line, style)
            cursor = cursor.advanced(PARAGRAPH_LINE_HEIGHT)
        return cursor

    def _render_bullet(
        self,
        document: RenderedDocument,
        flow: PageFlowController,
        style: RunStyle,
        cursor: LayoutCursor,
        block: BulletItem,
    ) -> LayoutCursor:
        indent = block.indent_level * BULLET_INDENT_PER_SPACE
        glyph_x = cursor.margin_left + BULLET_GLYPH_OFFSET + indent
        text_x = cursor.margin_left + BULLET_TEXT_OFFSET + indent
        wrap_width = max(1.0, cursor.usable_width - BULLET_TEXT_OFFSET - indent)
        lines = wrap_runs(format_span(block.text, self.hyperlinks), wrap_width, style)

        cursor = flow.ensure_room(document, cursor, BULLET_LINE_HEIGHT, NOMINAL_LINE_HEIGHT)
        document.place(
            cursor,
            TextPrimitive(x=glyph_x, y=cursor.y, text=BULLET_GLYPH, font=style.font, size=style.size),
        )
        for index, line in enumerate(lines):
            if index > 0:
                cursor = cursor.advanced(BULLET_LINE_HEIGHT)
                cursor = flow.ensure_room(document, cursor, BULLET_LINE_HEIGHT, NOMINAL_LINE_HEIGHT)
            if line:
                draw_runs(document, cursor.page, text_x, cursor.y, line, style)
        return cursor.advanced(BULLET_LINE_HEIGHT)

    def _footer_stamps(self, document: RenderedDocument, fonts: ReportFonts) -> list[FooterStamp]:
        margin = self.settings.page_margin
        logo_width = LOGO_WIDTH_FACTOR * margin
        logo_height = LOGO_HEIGHT_FACTOR * margin
        body_pages = document.body_pages()
        total = len(body_pages)
        stamps: list[FooterStamp] = []
        for number, page in enumerate(body_pages, start=1):
            stamps.append(
                FooterStamp(
                    page_number=page.number,
                    label=self.settings.footer_label_template.format(page=number, total=total),
                    label_x=margin,
                    label_y=document.height - margin / 2,
                    font=fonts.heading,
                    size=self.settings.footer_font_size,
                    logo=ImagePrimitive(
                        x=document.width - logo_width - margin,
                        y=document.height - logo_height - margin / 2,
                        width=logo_width,
                        height=logo_height,
                        asset_key=FOOTER_LOGO_KEY,
                    ),
                )
            )
        return stamps
