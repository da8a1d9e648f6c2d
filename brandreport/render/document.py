from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, Union

from reportlab.lib.pagesizes import A4


PAGE_WIDTH, PAGE_HEIGHT = A4

Color = tuple[int, int, int]

BLACK: Color = (0, 0, 0)
WHITE: Color = (255, 255, 255)
LINK_COLOR: Color = (0, 102, 204)
HEADER_FILL: Color = (240, 240, 240)
CELL_BORDER: Color = (180, 180, 180)

PageKind = Literal['cover', 'static', 'body']


@dataclass(frozen=True)
class TextPrimitive:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: Color = BLACK


@dataclass(frozen=True)
class RectPrimitive:
    x: float
    y: float
    width: float
    height: float
    fill: Color | None = None
    stroke: Color | None = None


@dataclass(frozen=True)
class ImagePrimitive:
    x: float
    y: float
    width: float
    height: float
    asset_key: str


@dataclass(frozen=True)
class LinkPrimitive:
    x: float
    y: float
    width: float
    height: float
    url: str


Primitive = Union[TextPrimitive, RectPrimitive, ImagePrimitive, LinkPrimitive]


@dataclass
class Page:
    number: int
    kind: PageKind
    primitives: list[Primitive] = field(default_factory=list)

    def texts(self) -> list[TextPrimitive]:
        return [item for item in self.primitives if isinstance(item, TextPrimitive)]

    def rects(self) -> list[RectPrimitive]:
        return [item for item in self.primitives if isinstance(item, RectPrimitive)]

    def links(self) -> list[LinkPrimitive]:
        return [item for item in self.primitives if isinstance(item, LinkPrimitive)]

    def images(self) -> list[ImagePrimitive]:
        return [item for item in self.primitives if isinstance(item, ImagePrimitive)]

    def plain_text(self) -> str:
        return ''.join(item.text for item in self.texts())


@dataclass(frozen=True)
class FooterStamp:
    page_number: int
    label: str
    label_x: float
    label_y: float
    font: str
    size: float
    logo: ImagePrimitive


@dataclass(frozen=True)
class LayoutCursor:
    """Top-down layout position; y grows toward the bottom of the page."""

    page: int
    y: float
    margin_left: float
    usable_width: float

    def at(self, y: float) -> LayoutCursor:
        return replace(self, y=y)

    def advanced(self, height: float) -> LayoutCursor:
        return replace(self, y=self.y + height)


@dataclass
class RenderedDocument:
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    pages: list[Page] = field(default_factory=list)
    images: dict[str, bytes] = field(default_factory=dict)
    footers: list[FooterStamp] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def body_pages(self) -> list[Page]:
        return [page for page in self.pages if page.kind == 'body']

    def new_page(self, kind: PageKind = 'body') -> Page:
        page = Page(number=len(self.pages) + 1, kind=kind)
        self.pages.append(page)
        return page

    def page(self, number: int) -> Page:
        return self.pages[number - 1]

    def place(self, cursor: LayoutCursor, primitive: Primitive) -> None:
        self.page(cursor.page).primitives.append(primitive)
