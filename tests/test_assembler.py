from __future__ import annotations

import pytest

from brandreport.assets import FontAsset, InMemoryAssetProvider
from brandreport.config import Settings
from brandreport.errors import AssetError, RenderCancelled
from brandreport.render.assembler import (
    BULLET_GLYPH,
    BULLET_LINE_HEIGHT,
    COVER_BAND,
    COVER_IMAGE_KEY,
    FOOTER_LOGO_KEY,
    NOMINAL_LINE_HEIGHT,
    SECOND_PAGE_IMAGE_KEY,
    DocumentAssembler,
)
from brandreport.render.blocks import BulletItem
from brandreport.render.document import HEADER_FILL, LINK_COLOR, WHITE, LayoutCursor, RenderedDocument
from brandreport.render.flow import FlowDecision
from brandreport.render.fonts import measure_text_width
from brandreport.render.inline import RunStyle
from brandreport.types import HyperlinkRule, RenderRequest, SectionIdentity


LINK = HyperlinkRule(phrase="Let's get you there", target_url='https://example.com/go')


def _assemble(assets, settings: Settings, request: RenderRequest, **kwargs) -> RenderedDocument:
    return DocumentAssembler(assets, settings=settings, **kwargs).assemble(request)


def _kinds(document: RenderedDocument) -> list[str]:
    return [page.kind for page in document.pages]


def test_single_part_discovery_report(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme Co', section_label='Discovery', report_parts=['# Title\nSome text'])

    document = _assemble(assets, settings, request)

    assert _kinds(document) == ['cover', 'body']
    cover = document.page(1)
    assert [image.asset_key for image in cover.images()] == [COVER_IMAGE_KEY]
    assert document.images[COVER_IMAGE_KEY] == assets.covers[SectionIdentity.discovery]

    title = [item for item in cover.texts() if item.text == 'ACME CO']
    assert len(title) == 1
    assert title[0].color == WHITE
    assert title[0].font == 'Times-Bold'
    assert document.height * COVER_BAND[0] <= title[0].y <= document.height * COVER_BAND[1]
    width = measure_text_width('ACME CO', 'Times-Bold', title[0].size)
    assert title[0].x == pytest.approx((document.width - width) / 2)

    body = document.page(2).texts()
    assert [(item.text, item.font, item.size) for item in body] == [
        ('Title', 'Times-Roman', 24.0),
        ('Some text', 'Helvetica', 12.0),
    ]
    assert body[0].y < body[1].y
    assert document.footers == []


def test_recommendation_table_in_body(assets, settings) -> None:
    long_text = 'Clarify the positioning statement across every customer touchpoint ' * 2
    markdown = '\n'.join(
        [
            '| Recommendation | Impact | Effort | Priority |',
            '|---|---|---|---|',
            f'| {long_text} | High | Low | 1 |',
        ]
    )
    request = RenderRequest(brand_name='Acme', section_label='Messaging', report_parts=[markdown])

    document = _assemble(assets, settings, request)

    body = document.page(2)
    assert len([rect for rect in body.rects() if rect.fill == HEADER_FILL]) == 4
    assert not [item for item in body.texts() if '-' in item.text and set(item.text) <= {'-', '|'}]
    first_column_right = settings.page_margin + 0.5 * (document.width - 2 * settings.page_margin)
    wrapped = [item for item in body.texts() if item.font == 'Helvetica' and item.x < first_column_right]
    assert len({item.y for item in wrapped}) > 1


def test_complete_analysis_combines_three_parts(assets, settings) -> None:
    request = RenderRequest(
        brand_name='Acme',
        section_label='Complete Brand Analysis',
        report_parts=['# Discovery\nOne', '# Messaging\nTwo', '# Audience\nThree'],
    )

    document = _assemble(assets, settings, request)

    assert _kinds(document) == ['cover', 'static', 'body', 'body', 'body']
    assert document.images[COVER_IMAGE_KEY] == assets.covers[SectionIdentity.complete]
    assert [image.asset_key for image in document.page(2).images()] == [SECOND_PAGE_IMAGE_KEY]
    assert [page.texts()[0].text for page in document.body_pages()] == ['Discovery', 'Messaging', 'Audience']

    assert [stamp.page_number for stamp in document.footers] == [3, 4, 5]
    assert [stamp.label for stamp in document.footers] == ['1 of 3', '2 of 3', '3 of 3']
    for stamp in document.footers:
        assert stamp.logo.asset_key == FOOTER_LOGO_KEY
        assert stamp.label_y > document.height - settings.footer_band_height
    assert document.images[FOOTER_LOGO_KEY] == assets.logo


def test_brand_spark_label_is_final(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Brand Spark Analysis', report_parts=['x'])
    document = _assemble(assets, settings, request)
    assert _kinds(document) == ['cover', 'static', 'body']
    assert [stamp.label for stamp in document.footers] == ['1 of 1']


def test_footer_numbering_counts_overflow_pages(assets, settings) -> None:
    long_part = '\n'.join(f'Line {index}' for index in range(80))
    request = RenderRequest(brand_name='Acme', section_label='Complete Brand Analysis', report_parts=[long_part])

    document = _assemble(assets, settings, request)

    body_pages = document.body_pages()
    assert len(body_pages) >= 2
    total = len(body_pages)
    assert document.footers[0].label == f'1 of {total}'
    assert document.footers[-1].label == f'{total} of {total}'


def test_linked_phrase_in_paragraph(assets, settings) -> None:
    request = RenderRequest(
        brand_name='Acme',
        section_label='Audience',
        report_parts=["Ready? Let's get you there today."],
    )

    document = _assemble(assets, settings, request, hyperlinks=[LINK])

    body = document.page(2)
    links = body.links()
    assert len(links) == 1
    assert links[0].url == LINK.target_url
    assert links[0].width == pytest.approx(measure_text_width(LINK.phrase, 'Helvetica', 12))
    colored = [item.text for item in body.texts() if item.color == LINK_COLOR]
    assert colored == [LINK.phrase]
    plain = [item.text for item in body.texts() if item.color != LINK_COLOR]
    assert plain == ['Ready? ', ' today.']


def test_configured_hyperlinks_are_default(assets, settings) -> None:
    request = RenderRequest(
        brand_name='Acme',
        section_label='Audience',
        report_parts=['Join the Brand Alchemy Mastery course now.'],
    )
    document = _assemble(assets, settings, request)
    assert [link.url for link in document.page(2).links()] == [settings.hyperlinks[0].target_url]


def test_rendering_is_deterministic(assets, settings) -> None:
    request = RenderRequest(
        brand_name='Acme',
        section_label='Complete Brand Analysis',
        report_parts=['# A\n- one\n  - two\n| a | b |\n|---|---|\n| c | d |', 'text **bold**'],
    )
    first = _assemble(assets, settings, request)
    second = _assemble(assets, settings, request)
    assert first.pages == second.pages
    assert first.footers == second.footers


def test_pdf_bytes_are_deterministic(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['# T\nBody'])
    assembler = DocumentAssembler(assets, settings=settings)
    assert assembler.render(request).pdf_bytes == assembler.render(request).pdf_bytes


def test_empty_part_still_starts_a_page(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['', '# Next'])
    document = _assemble(assets, settings, request)
    assert _kinds(document) == ['cover', 'body', 'body']
    assert document.page(2).texts() == []
    assert document.page(3).texts()[0].text == 'Next'


def test_no_parts_gives_one_empty_body_page(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=[])
    document = _assemble(assets, settings, request)
    assert _kinds(document) == ['cover', 'body']


def test_text_stays_above_footer_band(assets, settings) -> None:
    part = '\n'.join(['# Heading'] + ['A paragraph line with some words.'] * 120 + ['- bullet'] * 40)
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=[part])

    document = _assemble(assets, settings, request)

    limit = document.height - settings.footer_band_height
    assert len(document.body_pages()) > 2
    for page in document.body_pages():
        for item in page.texts():
            assert item.y <= limit


def test_bullet_indentation_and_glyph(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['- top\n    - nested'])
    document = _assemble(assets, settings, request)
    glyphs = [item for item in document.page(2).texts() if item.text == BULLET_GLYPH]
    assert len(glyphs) == 2
    assert glyphs[1].x > glyphs[0].x
    assert glyphs[1].y > glyphs[0].y


def test_heading_levels_use_their_fonts(assets, settings) -> None:
    request = RenderRequest(
        brand_name='Acme',
        section_label='Discovery',
        report_parts=['# One\n## Two\n### Three\n#### Four'],
    )
    document = _assemble(assets, settings, request)
    placed = [(item.text, item.font, item.size) for item in document.page(2).texts()]
    assert placed == [
        ('One', 'Times-Roman', 24.0),
        ('Two', 'Times-Roman', 18.0),
        ('Three', 'Times-Roman', 14.0),
        ('Four', 'Helvetica-Bold', 12.0),
    ]


def test_long_brand_name_shrinks_and_wraps(assets, settings) -> None:
    request = RenderRequest(brand_name='Magnificent Brand ' * 8, section_label='Discovery', report_parts=['x'])
    document = _assemble(assets, settings, request)
    title = [item for item in document.page(1).texts()]
    assert len(title) > 1
    assert settings.cover_min_font_size <= title[0].size < settings.cover_font_size
    for item in title:
        assert item.x >= document.width * 0.1 - 0.01
        assert document.height * COVER_BAND[0] <= item.y <= document.height * COVER_BAND[1]


def test_unknown_section_uses_generic_cover(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Quarterly Review', report_parts=['x'])
    document = _assemble(assets, settings, request)
    assert document.images[COVER_IMAGE_KEY] == assets.covers[SectionIdentity.generic]
    assert document.footers == []


def test_cancel_check_stops_render(assets, settings) -> None:
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['a\nb'])
    with pytest.raises(RenderCancelled):
        _assemble(assets, settings, request, cancel_check=lambda: True)


def test_cancel_check_is_consulted_between_blocks(assets, settings) -> None:
    calls: list[int] = []

    def cancel_after_three() -> bool:
        calls.append(1)
        return len(calls) > 3

    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['a\nb\nc\nd'])
    with pytest.raises(RenderCancelled):
        _assemble(assets, settings, request, cancel_check=cancel_after_three)
    assert len(calls) == 4


def test_missing_cover_is_fatal(settings) -> None:
    assets = InMemoryAssetProvider(
        fonts={'heading': FontAsset.standard('Times-Roman'), 'display': FontAsset.standard('Times-Bold')},
    )
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['x'])
    with pytest.raises(AssetError) as excinfo:
        _assemble(assets, settings, request)
    assert excinfo.value.asset == 'cover:discovery'


def test_corrupt_cover_is_fatal(assets, settings) -> None:
    assets.covers[SectionIdentity.discovery] = b'not an image'
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['x'])
    with pytest.raises(AssetError):
        _assemble(assets, settings, request)


def test_final_document_needs_footer_logo(assets, settings) -> None:
    assets.logo = None
    request = RenderRequest(brand_name='Acme', section_label='Complete Brand Analysis', report_parts=['x'])
    with pytest.raises(AssetError) as excinfo:
        _assemble(assets, settings, request)
    assert excinfo.value.asset == 'footer_logo'


def test_non_final_document_does_not_need_final_assets(assets, settings) -> None:
    assets.logo = None
    assets.second_page = None
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['x'])
    assert _kinds(_assemble(assets, settings, request)) == ['cover', 'body']


def test_missing_font_is_fatal(assets, settings) -> None:
    del assets.fonts['display']
    request = RenderRequest(brand_name='Acme', section_label='Discovery', report_parts=['x'])
    with pytest.raises(AssetError):
        _assemble(assets, settings, request)


def test_oversized_brand_name_stays_inside_cover_band(assets, settings) -> None:
    request = RenderRequest(brand_name='Magnificent Brand ' * 60, section_label='Discovery', report_parts=['x'])

    document = _assemble(assets, settings, request)

    title = document.page(1).texts()
    assert title
    assert all(item.size == settings.cover_min_font_size for item in title)
    for item in title:
        assert document.height * COVER_BAND[0] <= item.y <= document.height * COVER_BAND[1]


def test_bullet_at_page_bottom_moves_to_next_page(assets, settings) -> None:
    assembler = DocumentAssembler(assets, settings=settings)
    document = RenderedDocument()
    document.new_page('body')
    flow = assembler.flow_controller(document)
    style = RunStyle(font='Helvetica', bold_font='Helvetica-Bold', size=12)
    cursor = LayoutCursor(page=1, y=flow.effective_height - 10, margin_left=50, usable_width=495)
    assert flow.decide(cursor, BULLET_LINE_HEIGHT, NOMINAL_LINE_HEIGHT) is FlowDecision.widow_break

    end = assembler._render_bullet(document, flow, style, cursor, BulletItem(text='tail item'))

    assert document.page(1).primitives == []
    glyph = document.page(2).texts()[0]
    assert (glyph.text, glyph.y) == (BULLET_GLYPH, settings.page_margin)
    assert end.page == 2
    assert end.y == settings.page_margin + BULLET_LINE_HEIGHT
