from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SectionIdentity(str, Enum):
    discovery = 'discovery'
    messaging = 'messaging'
    audience = 'audience'
    complete = 'complete'
    generic = 'generic'


_FINAL_LABEL_TOKENS = ('complete', 'brand spark')

_IDENTITY_BY_LABEL: dict[str, SectionIdentity] = {
    'discovery': SectionIdentity.discovery,
    'messaging': SectionIdentity.messaging,
    'audience': SectionIdentity.audience,
    'complete brand analysis': SectionIdentity.complete,
    'brand spark analysis': SectionIdentity.complete,
}

REPORT_TYPE_LABELS: dict[str, str] = {
    'discovery': 'Discovery',
    'messaging': 'Messaging',
    'audience': 'Audience',
    'complete': 'Complete Brand Analysis',
}


def section_identity(section_label: str) -> SectionIdentity:
    token = str(section_label or '').strip().lower()
    return _IDENTITY_BY_LABEL.get(token, SectionIdentity.generic)


def is_final_label(section_label: str) -> bool:
    token = str(section_label or '').lower()
    return any(marker in token for marker in _FINAL_LABEL_TOKENS)


def section_label_for(report_type: str) -> str:
    token = str(report_type or '').strip().lower()
    if token not in REPORT_TYPE_LABELS:
        raise ValueError(f'unknown report type: {report_type}')
    return REPORT_TYPE_LABELS[token]


class HyperlinkRule(BaseModel):
    phrase: str = Field(min_length=1)
    target_url: str


class ReportPart(BaseModel):
    markdown_text: str = ''
    section_label: str = ''


class RenderRequest(BaseModel):
    brand_name: str
    section_label: str
    report_parts: list[str] = Field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return is_final_label(self.section_label)

    @property
    def identity(self) -> SectionIdentity:
        return section_identity(self.section_label)

    def parts(self) -> list[ReportPart]:
        return [
            ReportPart(markdown_text=text or '', section_label=self.section_label)
            for text in self.report_parts
        ]


class RenderResult(BaseModel):
    filename: str
    page_count: int
    body_page_count: int
    is_final: bool
    pdf_bytes: bytes = Field(repr=False)
