"""Font loading for the rendering backend."""

from __future__ import annotations

import base64
import binascii
import dataclasses
import logging
from typing import Iterable, List, Mapping, Optional

import requests

from .config import FONT_ENDPOINT
from .models import FontConfig
from .utils import join_url

logger = logging.getLogger("og_prerender")


class FontFetchError(RuntimeError):
    """Raised when a font cannot be fetched from its path or the font endpoint."""


class FontResolver:
    """Resolve font references to binary data.

    Inline data wins, then the cache (base64 text keyed by ``FontConfig.key``),
    then an HTTP fetch from the site. Fetched fonts are not written back to
    the cache.
    """

    def __init__(
        self,
        site_url: str,
        storage: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ) -> None:
        self.site_url = site_url
        self.storage = storage if storage is not None else {}
        self.session = session or requests.Session()
        self.timeout = timeout

    def font_url(self, font: FontConfig) -> str:
        if font.path:
            return join_url(self.site_url, font.path)
        return join_url(self.site_url, FONT_ENDPOINT, font.name, f"{font.weight}.ttf")

    def _from_cache(self, font: FontConfig) -> Optional[bytes]:
        encoded = self.storage.get(font.key)
        if encoded is None:
            return None
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise FontFetchError(f"Cached font {font.key} is not valid base64") from exc

    def resolve(self, font: FontConfig) -> bytes:
        if font.data is not None:
            return font.data

        cached = self._from_cache(font)
        if cached is not None:
            logger.debug("Loaded font %s from cache", font.key)
            return cached

        url = self.font_url(font)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FontFetchError(f"Failed to fetch font {font.name}:{font.weight} from {url}: {exc}") from exc
        logger.debug("Fetched font %s (%d bytes) from %s", font.key, len(resp.content), url)
        return resp.content

    def load_font(self, font: FontConfig) -> FontConfig:
        """Return a copy of ``font`` carrying its binary data."""
        return dataclasses.replace(font, data=self.resolve(font))

    def resolve_all(self, fonts: Iterable[FontConfig]) -> List[FontConfig]:
        return [self.load_font(font) for font in fonts]
