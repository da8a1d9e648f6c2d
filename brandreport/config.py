from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import HyperlinkRule


DEFAULT_HYPERLINKS: tuple[HyperlinkRule, ...] = (
    HyperlinkRule(
        phrase='Brand Alchemy Mastery course',
        target_url='https://dfl0.us/s/ab4d2c7a?em=%7B%7Bcontact.email%7D%7D',
    ),
    HyperlinkRule(
        phrase="Let's get you there",
        target_url='https://dfl0.us/s/ab4d2c7a?em=%7B%7Bcontact.email%7D%7D',
    ),
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='BRANDREPORT_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        populate_by_name=True,
    )

    app_name: str = 'brandreport'

    data_dir: Path = Field(default=Path('./data'))
    exports_dir: Path | None = None
    assets_dir: Path = Field(
        default=Path('./assets'),
        validation_alias=AliasChoices('BRANDREPORT_ASSETS_DIR', 'ASSETS_DIR'),
    )
    log_level: str = 'INFO'

    # Page geometry, in points (A4 portrait)
    page_margin: float = 50.0
    footer_band_height: float = 60.0

    # Typography
    body_font_size: float = 12.0
    table_body_font_size: float = 10.0
    table_header_font_size: float = 12.0
    cover_font_size: float = 32.0
    cover_min_font_size: float = 18.0
    footer_font_size: float = 10.0

    # Hyperlinks applied to every rendered line, JSON list in env
    hyperlinks: list[HyperlinkRule] = Field(default_factory=lambda: list(DEFAULT_HYPERLINKS))

    footer_label_template: str = '{page} of {total}'

    # PDF metadata
    pdf_title: str = 'Brand Report'
    pdf_author: str = 'brandreport'
    # Fixed document id and timestamps so identical inputs give identical bytes
    pdf_invariant: bool = True

    def resolved_exports_dir(self) -> Path:
        return self.exports_dir or (self.data_dir / 'exports')


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.resolved_exports_dir().mkdir(parents=True, exist_ok=True)
    return settings
