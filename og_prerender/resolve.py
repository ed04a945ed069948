"""Merging of defaults, extracted directives and route overlays."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence
from urllib.parse import quote

from .config import HTML_ENDPOINT
from .models import ImageOptions, RouteOverlay

logger = logging.getLogger("og_prerender")


def merge_options(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow merge where later layers win; ``None`` values never override."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


def default_image_path(route: str, extracted: Mapping[str, Any]) -> str:
    if extracted.get("component"):
        return f"{HTML_ENDPOINT}?path={quote(route, safe='/')}"
    return route


def resolve_options(
    route: str,
    extracted: Optional[Mapping[str, Any]],
    overlays: Sequence[RouteOverlay],
    defaults: Optional[Mapping[str, Any]] = None,
) -> Optional[ImageOptions]:
    """Resolve the final options for ``route`` or None when it should be skipped.

    ``overlays`` are expected most specific first, as returned by
    ``RouteRuleMatcher.match``; they are applied least specific first so
    the most specific overlay wins on conflicting fields.
    """
    if extracted is None:
        return None
    if overlays and overlays[0].disabled:
        logger.debug("og:image disabled for %s by rule %s", route, overlays[0].pattern)
        return None

    base = {"route": route, "path": default_image_path(route, extracted)}
    layers = [overlay.options for overlay in reversed(overlays) if not overlay.disabled]
    merged = merge_options(defaults, base, extracted, *layers)
    return ImageOptions.from_mapping(route, merged)
