"""Data models used throughout the og:image pipeline."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import DEFAULT_HEIGHT, DEFAULT_PROVIDER, DEFAULT_WIDTH
from .utils import slugify

_CORE_FIELDS = ("route", "path", "provider", "width", "height", "component", "static", "html")


def _as_flag(value: Any) -> bool:
    """Directive booleans may arrive as JSON strings such as 'false'."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class ImageOptions:
    """Resolved directive for producing a single og:image."""

    route: str
    path: str
    provider: str = DEFAULT_PROVIDER
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    component: Optional[str] = None
    static: bool = False
    html: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.provider:
            raise ValueError(f"og:image options for {self.route} have no provider")
        if not self.path:
            raise ValueError(f"og:image options for {self.route} have no path")

    @classmethod
    def from_mapping(cls, route: str, mapping: Mapping[str, Any]) -> "ImageOptions":
        """Build options from a merged mapping; unknown keys land in ``extra``."""
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in mapping.items():
            if key in _CORE_FIELDS:
                known[key] = value
            else:
                extra[key] = value
        known["route"] = route
        known.setdefault("path", route)
        if "width" in known:
            known["width"] = int(known["width"])
        if "height" in known:
            known["height"] = int(known["height"])
        if "static" in known:
            known["static"] = _as_flag(known["static"])
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        for name in _CORE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    def with_html(self, html: str) -> "ImageOptions":
        return dataclasses.replace(self, html=html)


@dataclass
class RouteOverlay:
    """Partial options scoped to a route pattern."""

    pattern: str
    options: Dict[str, Any]
    disabled: bool = False
    specificity: Tuple[int, ...] = ()


@dataclass
class CacheEntry:
    """Resolved options remembered for a route until ``expires_at``."""

    route: str
    value: ImageOptions
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class JobStatus(enum.Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


class OrchestratorState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    DRAINING = "draining"


@dataclass
class ScreenshotJob:
    """Queued screenshot; ``options`` is None while the job is a route-only stub."""

    route: str
    options: Optional[ImageOptions] = None
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    elapsed_ms: int = 0
    output_path: Optional[Path] = None

    @property
    def is_stub(self) -> bool:
        return self.options is None

    def fail(self, error: BaseException) -> None:
        self.status = JobStatus.FAILED
        self.error = f"{type(error).__name__}: {error}"


@dataclass
class FontConfig:
    """Font reference handed to the rendering backend."""

    name: str
    weight: int = 400
    path: Optional[str] = None
    data: Optional[bytes] = None

    @property
    def key(self) -> str:
        return f"{slugify(self.name, fallback='font')}-{self.weight}"

    @classmethod
    def parse(cls, value: str) -> "FontConfig":
        """Parse ``Family:weight`` (weight defaults to 400)."""
        name, _, weight = value.partition(":")
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid font reference: {value!r}")
        return cls(name=name, weight=int(weight) if weight.strip() else 400)


@dataclass
class DrainReport:
    """Outcome of one drain of the screenshot queue."""

    total: int = 0
    succeeded: int = 0
    failed: List[str] = field(default_factory=list)
    outputs: List[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def completed(self) -> int:
        return self.succeeded + len(self.failed)
