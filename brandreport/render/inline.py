from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..types import HyperlinkRule
from .document import BLACK, LINK_COLOR, Color, LinkPrimitive, RenderedDocument, TextPrimitive
from .fonts import measure_text_width


_BOLD_PATTERN = re.compile(r'\*\*(.*?)\*\*')
_TOKEN_PATTERN = re.compile(r'\S+\s*|\s+')

# Clickable band around the baseline, in points
LINK_BAND_ABOVE = 10.0
LINK_BAND_HEIGHT = 12.0


@dataclass(frozen=True)
class StyledRun:
    text: str
    bold: bool = False
    link_url: str | None = None


@dataclass(frozen=True)
class RunStyle:
    font: str
    bold_font: str
    size: float
    color: Color = BLACK
    link_color: Color = LINK_COLOR

    def font_for(self, run: StyledRun) -> str:
        return self.bold_font if run.bold else self.font


def strip_bold_markers(text: str) -> str:
    return str(text or '').replace('**', '')


def split_bold_runs(text: str) -> list[StyledRun]:
    runs: list[StyledRun] = []
    for index, segment in enumerate(_BOLD_PATTERN.split(str(text or ''))):
        if segment:
            runs.append(StyledRun(text=segment, bold=index % 2 == 1))
    return runs


def _next_phrase(text: str, start: int, rules: Sequence[HyperlinkRule]) -> tuple[int, HyperlinkRule] | None:
    best: tuple[int, HyperlinkRule] | None = None
    for rule in rules:
        position = text.find(rule.phrase, start)
        if position < 0:
            continue
        if (
            best is None
            or position < best[0]
            or (position == best[0] and len(rule.phrase) > len(best[1].phrase))
        ):
            best = (position, rule)
    return best


def link_segments(runs: Iterable[StyledRun], rules: Sequence[HyperlinkRule]) -> list[StyledRun]:
    if not rules:
        return list(runs)
    segmented: list[StyledRun] = []
    for run in runs:
        if run.link_url:
            segmented.append(run)
            continue
        cursor = 0
        while True:
            found = _next_phrase(run.text, cursor, rules)
            if found is None:
                break
            position, rule = found
            if position > cursor:
                segmented.append(StyledRun(text=run.text[cursor:position], bold=run.bold))
            segmented.append(StyledRun(text=rule.phrase, bold=run.bold, link_url=rule.target_url))
            cursor = position + len(rule.phrase)
        if cursor < len(run.text):
            segmented.append(StyledRun(text=run.text[cursor:], bold=run.bold))
    return segmented


def contains_link_phrase(text: str, rules: Sequence[HyperlinkRule]) -> bool:
    return any(rule.phrase in text for rule in rules)


def format_span(text: str, rules: Sequence[HyperlinkRule] = ()) -> list[StyledRun]:
    runs = split_bold_runs(text)
    if rules and contains_link_phrase(strip_bold_markers(text), rules):
        runs = link_segments(runs, rules)
    return runs


def runs_width(runs: Iterable[StyledRun], style: RunStyle) -> float:
    return sum(measure_text_width(run.text, style.font_for(run), style.size) for run in runs)


def _split_token_by_width(token: str, *, max_width: float, font: str, size: float) -> list[str]:
    chunks: list[str] = []
    current = ''
    for char in token:
        candidate = f'{current}{char}'
        if measure_text_width(candidate, font, size) <= max_width:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = char
            continue
        chunks.append(char)
        current = ''
    if current:
        chunks.append(current)
    return chunks


def _tokenize(runs: Iterable[StyledRun], style: RunStyle, max_width: float) -> list[StyledRun]:
    tokens: list[StyledRun] = []
    for run in runs:
        if run.link_url:
            tokens.append(run)
            continue
        font = style.font_for(run)
        for piece in _TOKEN_PATTERN.findall(run.text):
            if measure_text_width(piece.rstrip(), font, style.size) <= max_width:
                tokens.append(StyledRun(text=piece, bold=run.bold))
                continue
            for chunk in _split_token_by_width(piece, max_width=max_width, font=font, size=style.size):
                tokens.append(StyledRun(text=chunk, bold=run.bold))
    return tokens


def _merge_line(tokens: list[StyledRun]) -> list[StyledRun]:
    merged: list[StyledRun] = []
    for token in tokens:
        if (
            merged
            and token.link_url is None
            and merged[-1].link_url is None
            and merged[-1].bold == token.bold
        ):
            merged[-1] = StyledRun(text=merged[-1].text + token.text, bold=token.bold)
            continue
        merged.append(token)
    if merged and merged[-1].link_url is None:
        tail = merged[-1].text.rstrip()
        if tail:
            merged[-1] = StyledRun(text=tail, bold=merged[-1].bold)
        else:
            merged.pop()
    return merged


def wrap_runs(runs: Sequence[StyledRun], max_width: float, style: RunStyle) -> list[list[StyledRun]]:
    """Greedy word wrap against measured widths. Link phrases are never split."""
    tokens = _tokenize(runs, style, max(1.0, max_width))
    lines: list[list[StyledRun]] = []
    current: list[StyledRun] = []
    current_width = 0.0
    for token in tokens:
        font = style.font_for(token)
        if not current and token.link_url is None:
            token = StyledRun(text=token.text.lstrip(), bold=token.bold)
            if not token.text:
                continue
        fit_width = measure_text_width(token.text.rstrip(), font, style.size)
        if current and current_width + fit_width > max_width:
            lines.append(_merge_line(current))
            current = []
            current_width = 0.0
            if token.link_url is None:
                token = StyledRun(text=token.text.lstrip(), bold=token.bold)
                if not token.text:
                    continue
        current.append(token)
        current_width += measure_text_width(token.text, font, style.size)
    if current:
        lines.append(_merge_line(current))
    return lines or [[]]


def draw_runs(
    document: RenderedDocument,
    page: int,
    x: float,
    y: float,
    runs: Iterable[StyledRun],
    style: RunStyle,
) -> float:
    """Place runs left to right on a baseline; returns the x after the last run."""
    target = document.page(page)
    current_x = x
    for run in runs:
        font = style.font_for(run)
        width = measure_text_width(run.text, font, style.size)
        color = style.link_color if run.link_url else style.color
        target.primitives.append(
            TextPrimitive(x=current_x, y=y, text=run.text, font=font, size=style.size, color=color)
        )
        if run.link_url:
            target.primitives.append(
                LinkPrimitive(
                    x=current_x,
                    y=y - LINK_BAND_ABOVE,
                    width=width,
                    height=LINK_BAND_HEIGHT,
                    url=run.link_url,
                )
            )
        current_x += width
    return current_x
