from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class TableRow:
    cells: tuple[str, ...]
    is_header_row: bool = False
    is_separator_row: bool = False


@dataclass(frozen=True)
class BulletItem:
    text: str
    indent_level: int = 0


@dataclass(frozen=True)
class Paragraph:
    text: str


Block = Union[Heading, TableRow, BulletItem, Paragraph]

_HEADING_PATTERN = re.compile(r'^(#{1,4})[ \t]+(.*)$')
_TABLE_ROW_PATTERN = re.compile(r'^\s*\|.*\|\s*$')
_SEPARATOR_ROW_PATTERN = re.compile(r'^\s*\|[\s:|-]*-[\s:|-]*\|\s*$')
_SEPARATOR_CELL_PATTERN = re.compile(r'^:?-{3,}:?$')
_BULLET_PATTERN = re.compile(r'^(\s*)[-*][ \t]+(.*)$')
_TABLE_HEADER_WITH_SEPARATOR = re.compile(
    r'^(?P<header>[ \t]*\|[^\n]*\|)[ \t]*\n(?P<separator>[ \t]*\|[-:| \t]*-[-:| \t]*\|)[ \t]*$',
    re.MULTILINE,
)
_TAB_WIDTH = 4


def split_table_cells(line: str) -> tuple[str, ...]:
    stripped = line.strip()
    if len(stripped) < 2 or not (stripped.startswith('|') and stripped.endswith('|')):
        return ()
    return tuple(cell.strip() for cell in stripped[1:-1].split('|'))


def is_separator_line(line: str) -> bool:
    """Dashes must touch the pipes or fill each cell, so `| - | - |` stays a data row."""
    if not _SEPARATOR_ROW_PATTERN.match(line):
        return False
    stripped = line.strip()
    if '|-' in stripped and '-|' in stripped:
        return True
    cells = [cell for cell in split_table_cells(stripped) if cell]
    return bool(cells) and all(_SEPARATOR_CELL_PATTERN.match(cell) for cell in cells)


def classify_line(line: str) -> Block:
    """Classify one source line. Priority: heading > table row > bullet > paragraph."""
    text = line.rstrip('\r\n')

    heading = _HEADING_PATTERN.match(text)
    if heading:
        return Heading(level=len(heading.group(1)), text=heading.group(2).strip())

    if len(text.strip()) >= 2 and _TABLE_ROW_PATTERN.match(text):
        if is_separator_line(text):
            return TableRow(cells=split_table_cells(text), is_separator_row=True)
        return TableRow(cells=split_table_cells(text))

    bullet = _BULLET_PATTERN.match(text)
    if bullet:
        indent = len(bullet.group(1).expandtabs(_TAB_WIDTH))
        return BulletItem(text=bullet.group(2).strip(), indent_level=indent)

    return Paragraph(text=text.strip())


def classify_lines(lines: Iterable[str]) -> list[Block]:
    return [classify_line(line) for line in lines]


def split_lines(markdown_text: str) -> list[str]:
    return str(markdown_text or '').replace('\r\n', '\n').replace('\r', '\n').split('\n')


def normalize_markdown_tables(markdown_text: str) -> str:
    """Give every header separator the same column count as its header row."""

    def _replace(match: re.Match[str]) -> str:
        header = match.group('header')
        if not is_separator_line(match.group('separator')):
            return match.group(0)
        count = max(1, len(split_table_cells(header)))
        separator = '|' + '|'.join(['-------------'] * count) + '|'
        return f'{header}\n{separator}'

    text = str(markdown_text or '').replace('\r\n', '\n').replace('\r', '\n')
    return _TABLE_HEADER_WITH_SEPARATOR.sub(_replace, text)


def group_tables(blocks: list[Block]) -> list[Block | list[TableRow]]:
    """Collapse each maximal run of table rows into one list.

    A row directly followed by a separator row is marked as a header row.
    """
    grouped: list[Block | list[TableRow]] = []
    run: list[TableRow] = []
    for block in blocks:
        if isinstance(block, TableRow):
            if block.is_separator_row and run and not run[-1].is_separator_row:
                previous = run[-1]
                run[-1] = TableRow(cells=previous.cells, is_header_row=True)
            run.append(block)
            continue
        if run:
            grouped.append(run)
            run = []
        grouped.append(block)
    if run:
        grouped.append(run)
    return grouped
