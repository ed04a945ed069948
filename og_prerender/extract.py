"""Extraction of embedded og:image directives from rendered HTML."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from .config import OPTIONS_SCRIPT_ID

logger = logging.getLogger("og_prerender")


def _is_fragment_payload(html: str) -> bool:
    """Island responses are JSON documents rather than full pages."""
    return html.lstrip()[:1] in ("{", "[")


def extract_og_image_options(html: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the options embedded in a full page, or None when there are none."""
    if not html or _is_fragment_payload(html):
        return None

    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id=OPTIONS_SCRIPT_ID)
    if script is None:
        return None
    payload = script.string or script.get_text()
    if not payload or not payload.strip():
        return None

    try:
        options = json.loads(payload)
    except ValueError as exc:
        logger.warning("Ignoring malformed og:image options payload: %s", exc)
        return None
    if not isinstance(options, dict):
        logger.debug("Ignoring og:image options payload of type %s", type(options).__name__)
        return None
    return options
