"""Short-lived cache of resolved og:image options keyed by route."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

from .config import DYNAMIC_TTL, STATIC_TTL
from .models import CacheEntry, ImageOptions

logger = logging.getLogger("og_prerender")


class OptionCache:
    """Route -> options mapping with expiry checked lazily on read.

    Static options are kept for ``static_ttl`` seconds so they survive a
    whole build; dynamic options only for ``dynamic_ttl`` seconds.
    """

    def __init__(
        self,
        static_ttl: float = STATIC_TTL,
        dynamic_ttl: float = DYNAMIC_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.static_ttl = static_ttl
        self.dynamic_ttl = dynamic_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def ttl_for(self, options: ImageOptions) -> float:
        return self.static_ttl if options.static else self.dynamic_ttl

    def put(self, route: str, value: ImageOptions, ttl: float) -> CacheEntry:
        entry = CacheEntry(route=route, value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[route] = entry
        return entry

    def remember(self, route: str, options: ImageOptions) -> CacheEntry:
        return self.put(route, options, self.ttl_for(options))

    def get(self, route: str) -> Optional[ImageOptions]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(route)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[route]
                logger.debug("Cached og:image options for %s expired", route)
                return None
            return entry.value

    def __contains__(self, route: object) -> bool:
        return isinstance(route, str) and self.get(route) is not None

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for entry in self._entries.values() if not entry.is_expired(now))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
