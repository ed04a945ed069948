"""Utility helpers for string normalization, URLs and output paths."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from filetype import guess

from .config import ISLAND_PREFIX, OG_IMAGE_FILENAME, OG_IMAGE_SEGMENT

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def slugify(value: str, fallback: str = "page") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def strip_ansi(value: str) -> str:
    return ANSI_PATTERN.sub("", value)


def join_url(base: str, *parts: str) -> str:
    """Join URL segments with exactly one slash between them."""
    url = base
    for part in parts:
        if not part:
            continue
        if not url:
            url = part
            continue
        url = url.rstrip("/") + "/" + part.lstrip("/")
    return url


def with_base(path: str, base: str) -> str:
    """Prefix ``path`` with ``base`` unless it already starts with it."""
    if not base or base == "/":
        return path
    if path.startswith(base.rstrip("/") + "/") or path == base.rstrip("/"):
        return path
    return join_url(base, path)


def og_image_url(route: str) -> str:
    """Public URL of the prerendered image for ``route``."""
    return join_url(route or "/", OG_IMAGE_SEGMENT, OG_IMAGE_FILENAME)


def og_image_output_path(output_root: Path, route: str) -> Path:
    """Location of the image for ``route`` inside the build output tree."""
    relative = route.strip("/")
    directory = output_root / relative if relative else output_root
    return directory / OG_IMAGE_SEGMENT / OG_IMAGE_FILENAME


def is_excluded_route(route: str) -> bool:
    """Routes that are assets, island fragments or the og:image endpoint itself."""
    path = route.split("?", 1)[0]
    if "." in path:
        return True
    if route.startswith(ISLAND_PREFIX):
        return True
    return OG_IMAGE_SEGMENT in path.split("/")


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None
