"""Configuration objects and constants for og:image prerendering."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_WIDTH = 1200
DEFAULT_HEIGHT = 630
DEFAULT_PROVIDER = "satori"
BROWSER_PROVIDER = "browser"

STATIC_TTL = 60 * 60
DYNAMIC_TTL = 5

OG_IMAGE_SEGMENT = "__og_image__"
OG_IMAGE_FILENAME = "og.png"
ISLAND_PREFIX = "/__nuxt_island/"
OPTIONS_SCRIPT_ID = "nuxt-og-image-options"
HTML_ENDPOINT = "/api/og-image-html"
FONT_ENDPOINT = "/__og-image__/font"

DEFAULT_FONTS: Tuple[str, ...] = ("Inter:400", "Inter:700")

READY_PHRASE = "Accepting connections at"
DEFAULT_READY_TIMEOUT = 30.0


def default_install_command() -> List[str]:
    return [sys.executable, "-m", "playwright", "install", "chromium"]


def default_serve_command(public_dir: Path) -> List[str]:
    return ["npx", "serve", str(public_dir)]


def default_option_defaults() -> Dict[str, Any]:
    return {
        "provider": DEFAULT_PROVIDER,
        "width": DEFAULT_WIDTH,
        "height": DEFAULT_HEIGHT,
    }


@dataclass
class OgImageConfig:
    """Top-level settings that control option resolution and screenshot prerendering."""

    output_root: Path
    base_url: str = "/"
    site_url: Optional[str] = None
    defaults: Dict[str, Any] = field(default_factory=default_option_defaults)
    route_rules: Mapping[str, Any] = field(default_factory=dict)
    fonts: List[str] = field(default_factory=lambda: list(DEFAULT_FONTS))
    force_prerender: bool = False
    dev: bool = False
    static_ttl: float = STATIC_TTL
    dynamic_ttl: float = DYNAMIC_TTL
    install_command: Optional[List[str]] = field(default_factory=default_install_command)
    serve_command: Optional[List[str]] = None
    ready_phrase: str = READY_PHRASE
    server_ready_timeout: float = DEFAULT_READY_TIMEOUT
    navigation_timeout: float = 30.0
    request_timeout: float = 15.0

    def resolved_serve_command(self) -> List[str]:
        if self.serve_command:
            return list(self.serve_command)
        return default_serve_command(self.output_root)
