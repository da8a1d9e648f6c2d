from __future__ import annotations


class RenderError(RuntimeError):
    """Terminal failure of a render call."""


class AssetError(RenderError):
    """A font or image asset is missing or unreadable."""

    def __init__(self, asset: str, message: str):
        super().__init__(f'{asset}: {message}')
        self.asset = asset


class RenderCancelled(RenderError):
    pass
