from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from PIL import Image, UnidentifiedImageError

from .errors import AssetError
from .types import SectionIdentity


logger = logging.getLogger(__name__)


FONT_CANDIDATES: dict[str, tuple[Path, ...]] = {
    'heading': (
        Path('fonts/CaslonGrad-Regular.ttf'),
        Path('fonts/CaslonGrad-Regular.woff2'),
        Path('fonts/CaslonGrad-Regular.woff'),
    ),
    'display': (
        Path('fonts/IbarraRealNova-Bold.ttf'),
        Path('fonts/IbarraRealNova-Bold.woff2'),
        Path('fonts/IbarraRealNova-Bold.woff'),
    ),
}

COVER_CANDIDATES: dict[SectionIdentity, tuple[Path, ...]] = {
    SectionIdentity.discovery: (Path('covers/discovery.png'), Path('title1-core-essence.png')),
    SectionIdentity.messaging: (Path('covers/messaging.png'), Path('title2-messaging.png')),
    SectionIdentity.audience: (Path('covers/audience.png'), Path('title3-audience.png')),
    SectionIdentity.complete: (Path('covers/complete.png'), Path('bam-spark-1.png')),
    SectionIdentity.generic: (Path('covers/generic.png'), Path('bam-spark-1.png')),
}

SECOND_PAGE_CANDIDATES = (Path('covers/second-page.png'), Path('bam-spark-2.png'))

LOGO_CANDIDATES = (Path('logo-small.png'), Path('black-logo.png'), Path('logo.png'))


@dataclass(frozen=True)
class FontAsset:
    """A font by role. ``data`` is None for one of the standard PDF fonts."""

    name: str
    data: bytes | None = None

    @classmethod
    def standard(cls, name: str) -> FontAsset:
        return cls(name=name, data=None)


class AssetProvider(Protocol):
    def font(self, role: str) -> FontAsset: ...

    def cover_image(self, identity: SectionIdentity) -> bytes: ...

    def second_page_image(self) -> bytes: ...

    def footer_logo(self) -> bytes: ...


def validate_image(asset: str, data: bytes) -> tuple[int, int]:
    if not data:
        raise AssetError(asset, 'image is empty')
    try:
        with Image.open(io.BytesIO(data)) as probe:
            probe.verify()
        with Image.open(io.BytesIO(data)) as probe:
            return probe.size
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        logger.error('Unreadable image asset %s: %s', asset, exc)
        raise AssetError(asset, f'unreadable image: {exc}') from exc


def _safe_file(path: Path | None) -> Path | None:
    if path is None:
        return None
    if path.exists() and path.is_file():
        return path
    return None


def _first_existing_relative_path(root: Path, candidates: Iterable[Path]) -> Path | None:
    for relative in candidates:
        resolved = _safe_file(root / relative)
        if resolved is not None:
            return resolved
    return None


class DirectoryAssetProvider:
    """Loads assets from a directory laid out like ``assets/``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _read(self, asset: str, candidates: Iterable[Path]) -> bytes:
        candidates = tuple(candidates)
        path = _first_existing_relative_path(self.root, candidates)
        if path is None:
            tried = ', '.join(str(item) for item in candidates)
            logger.error('Asset %s not found under %s (tried %s)', asset, self.root, tried)
            raise AssetError(asset, f'not found under {self.root}')
        data = path.read_bytes()
        logger.debug('Loaded asset %s from %s (%d bytes)', asset, path, len(data))
        return data

    def font(self, role: str) -> FontAsset:
        if role not in FONT_CANDIDATES:
            raise AssetError(f'font:{role}', 'unknown font role')
        return FontAsset(name=role, data=self._read(f'font:{role}', FONT_CANDIDATES[role]))

    def cover_image(self, identity: SectionIdentity) -> bytes:
        return self._read(f'cover:{identity.value}', COVER_CANDIDATES[identity])

    def second_page_image(self) -> bytes:
        return self._read('second_page', SECOND_PAGE_CANDIDATES)

    def footer_logo(self) -> bytes:
        return self._read('footer_logo', LOGO_CANDIDATES)


@dataclass
class InMemoryAssetProvider:
    fonts: dict[str, FontAsset] = field(default_factory=dict)
    covers: dict[SectionIdentity, bytes] = field(default_factory=dict)
    second_page: bytes | None = None
    logo: bytes | None = None

    def font(self, role: str) -> FontAsset:
        asset = self.fonts.get(role)
        if asset is None:
            raise AssetError(f'font:{role}', 'not provided')
        return asset

    def cover_image(self, identity: SectionIdentity) -> bytes:
        data = self.covers.get(identity)
        if data is None:
            raise AssetError(f'cover:{identity.value}', 'not provided')
        return data

    def second_page_image(self) -> bytes:
        if self.second_page is None:
            raise AssetError('second_page', 'not provided')
        return self.second_page

    def footer_logo(self) -> bytes:
        if self.logo is None:
            raise AssetError('footer_logo', 'not provided')
        return self.logo
