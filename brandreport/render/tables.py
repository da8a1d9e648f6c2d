from __future__ import annotations

import math
import re
from typing import Sequence

from ..types import HyperlinkRule
from .blocks import TableRow
from .document import CELL_BORDER, HEADER_FILL, LayoutCursor, RectPrimitive, RenderedDocument, TextPrimitive
from .flow import PageFlowController
from .fonts import measure_text_width
from .inline import RunStyle, draw_runs, format_span, runs_width, strip_bold_markers, wrap_runs


HEADER_KEYWORDS = (
    'recommendation',
    'impact',
    'effort',
    'priority',
    'action',
    'description',
    'timeline',
)
HEADER_CELL_MAX_LENGTH = 15
_HEADER_KEYWORD_PATTERN = re.compile(r'\b(' + '|'.join(HEADER_KEYWORDS) + r')\b', re.IGNORECASE)

COLUMN_RATIOS: dict[int, tuple[float, ...]] = {
    4: (0.5, 0.15, 0.15, 0.2),
    3: (0.5, 0.25, 0.25),
}

BASE_ROW_HEIGHT = 25.0
ESTIMATED_LINE_HEIGHT = 15.0
WRAP_LINE_HEIGHT = 12.0
CELL_PADDING = 5.0
# The row rectangle starts this far above the cursor baseline
ROW_TOP_OFFSET = 15.0
BASELINE_ADJUST = 4.0


def column_widths(column_count: int, usable_width: float) -> list[float]:
    if column_count <= 0:
        return []
    ratios = COLUMN_RATIOS.get(column_count)
    if ratios is None:
        return [usable_width / column_count] * column_count
    return [usable_width * ratio for ratio in ratios]


def is_header_cell(cell: str) -> bool:
    text = strip_bold_markers(cell).strip()
    return len(text) < HEADER_CELL_MAX_LENGTH and bool(_HEADER_KEYWORD_PATTERN.search(text))


def is_header_row(cells: Sequence[str]) -> bool:
    return any(is_header_cell(cell) for cell in cells)


def estimate_row_height(first_cell: str, first_width: float, font: str, size: float) -> float:
    """Approximate height from measured width over column width, not true line breaking."""
    text = strip_bold_markers(first_cell).strip()
    estimated_lines = 1
    if first_width > 0 and text:
        estimated_lines = max(1, math.ceil(measure_text_width(text, font, size) / first_width))
    return max(BASE_ROW_HEIGHT, estimated_lines * ESTIMATED_LINE_HEIGHT)


class TableLayoutEngine:
    def __init__(
        self,
        flow: PageFlowController,
        *,
        header_style: RunStyle,
        body_style: RunStyle,
        hyperlinks: Sequence[HyperlinkRule] = (),
    ):
        self.flow = flow
        self.header_style = header_style
        self.body_style = body_style
        self.hyperlinks = tuple(hyperlinks)

    def render_table(
        self,
        document: RenderedDocument,
        cursor: LayoutCursor,
        rows: Sequence[TableRow],
    ) -> LayoutCursor:
        for row in rows:
            cursor = self.render_row(document, cursor, row)
        return cursor

    def render_row(self, document: RenderedDocument, cursor: LayoutCursor, row: TableRow) -> LayoutCursor:
        if row.is_separator_row or not row.cells:
            return cursor

        widths = column_widths(len(row.cells), cursor.usable_width)
        header = row.is_header_row or is_header_row(row.cells)
        row_height = estimate_row_height(row.cells[0], widths[0], self.body_style.font, self.body_style.size)

        cursor = self.flow.ensure_room(document, cursor, row_height, BASE_ROW_HEIGHT)
        page = document.page(cursor.page)
        top = cursor.y - ROW_TOP_OFFSET

        x = cursor.margin_left
        for index, (cell, width) in enumerate(zip(row.cells, widths)):
            if header:
                page.primitives.append(RectPrimitive(x=x, y=top, width=width, height=row_height, fill=HEADER_FILL))
            page.primitives.append(RectPrimitive(x=x, y=top, width=width, height=row_height, stroke=CELL_BORDER))

            if header:
                self._draw_header_cell(page.primitives, cell, x, top, width, row_height)
            elif index == 0:
                self._draw_wrapped_cell(document, cursor.page, cell, x, top, width, row_height)
            else:
                self._draw_centered_cell(document, cursor.page, cell, x, top, width, row_height)
            x += width

        return cursor.advanced(row_height)

    def _draw_header_cell(self, primitives: list, cell: str, x: float, top: float, width: float, height: float) -> None:
        text = strip_bold_markers(cell).strip()
        if not text:
            return
        style = self.header_style
        text_width = measure_text_width(text, style.font, style.size)
        primitives.append(
            TextPrimitive(
                x=x + (width - text_width) / 2,
                y=top + height / 2 + BASELINE_ADJUST,
                text=text,
                font=style.font,
                size=style.size,
                color=style.color,
            )
        )

    def _draw_wrapped_cell(
        self,
        document: RenderedDocument,
        page: int,
        cell: str,
        x: float,
        top: float,
        width: float,
        height: float,
    ) -> None:
        runs = format_span(cell.strip(), self.hyperlinks)
        if not runs:
            return
        lines = wrap_runs(runs, width - CELL_PADDING * 2, self.body_style)
        total_text_height = len(lines) * WRAP_LINE_HEIGHT
        offset = max(0.0, (height - total_text_height) / 2) + BASELINE_ADJUST
        for line_index, line in enumerate(lines):
            baseline = top + offset + CELL_PADDING + line_index * WRAP_LINE_HEIGHT
            draw_runs(document, page, x + CELL_PADDING, baseline, line, self.body_style)

    def _draw_centered_cell(
        self,
        document: RenderedDocument,
        page: int,
        cell: str,
        x: float,
        top: float,
        width: float,
        height: float,
    ) -> None:
        runs = format_span(cell.strip(), self.hyperlinks)
        if not runs:
            return
        text_width = runs_width(runs, self.body_style)
        draw_runs(
            document,
            page,
            x + (width - text_width) / 2,
            top + height / 2 + BASELINE_ADJUST,
            runs,
            self.body_style,
        )
