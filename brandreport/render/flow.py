from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from .document import LayoutCursor, RenderedDocument


logger = logging.getLogger(__name__)

# Minimum lines for widow and orphan checks. Changing these changes pagination.
WIDOW_LINES = 2
ORPHAN_LINES = 2


class FlowDecision(str, Enum):
    place = 'place'
    widow_break = 'widow_break'
    orphan_break = 'orphan_break'
    overflow_break = 'overflow_break'

    @property
    def breaks(self) -> bool:
        return self is not FlowDecision.place


@dataclass(frozen=True)
class PageFlowController:
    page_height: float
    footer_band_height: float
    top_margin: float

    @property
    def effective_height(self) -> float:
        return self.page_height - self.footer_band_height

    def remaining(self, cursor: LayoutCursor) -> float:
        return self.effective_height - cursor.y

    def lines_on_page(self, cursor: LayoutCursor, line_height: float) -> int:
        if line_height <= 0:
            return 0
        return max(0, math.floor((cursor.y - self.top_margin) / line_height))

    def decide(self, cursor: LayoutCursor, required_height: float, line_height: float) -> FlowDecision:
        remaining = self.remaining(cursor)
        if remaining >= required_height:
            return FlowDecision.place
        if remaining < WIDOW_LINES * line_height:
            return FlowDecision.widow_break
        if required_height <= line_height:
            if self.lines_on_page(cursor, line_height) < ORPHAN_LINES:
                return FlowDecision.orphan_break
            return FlowDecision.place
        return FlowDecision.overflow_break

    def break_page(self, document: RenderedDocument, cursor: LayoutCursor) -> LayoutCursor:
        page = document.new_page('body')
        return LayoutCursor(
            page=page.number,
            y=self.top_margin,
            margin_left=cursor.margin_left,
            usable_width=cursor.usable_width,
        )

    def ensure_room(
        self,
        document: RenderedDocument,
        cursor: LayoutCursor,
        required_height: float,
        line_height: float,
    ) -> LayoutCursor:
        decision = self.decide(cursor, required_height, line_height)
        if not decision.breaks:
            return cursor
        logger.debug(
            'Page break (%s) at page %d y=%.1f for %.1fpt',
            decision.value,
            cursor.page,
            cursor.y,
            required_height,
        )
        return self.break_page(document, cursor)
