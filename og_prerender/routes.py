"""Route pattern matching for per-route og:image overlays."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .models import RouteOverlay

logger = logging.getLogger("og_prerender")

RULE_KEYS = ("ogImage", "og_image")


def _split(path: str) -> List[str]:
    path = path.split("?", 1)[0].split("#", 1)[0]
    return [segment for segment in path.split("/") if segment]


class _Node:
    __slots__ = ("children", "wildcard", "catchall", "terminal")

    def __init__(self) -> None:
        self.children: Dict[str, _Node] = {}
        self.wildcard: Optional[_Node] = None
        self.catchall: List[RouteOverlay] = []
        self.terminal: List[RouteOverlay] = []


class RouteRuleMatcher:
    """Segment trie of route overlays.

    Patterns may be exact (``/about``), use ``*`` or ``:name`` for a single
    segment (``/blog/*``) or end in ``**`` to match a whole prefix
    (``/blog/**``, which also matches ``/blog`` itself). An overlay value of
    ``False`` disables og:image generation for the matching routes.
    """

    def __init__(self, overlays: Optional[Mapping[str, Any]] = None) -> None:
        self._root = _Node()
        self._count = 0
        for pattern, value in (overlays or {}).items():
            self.add(pattern, value)

    @classmethod
    def from_route_rules(cls, rules: Mapping[str, Mapping[str, Any]]) -> "RouteRuleMatcher":
        """Build a matcher from host route rules, keeping only og:image rules."""
        overlays: Dict[str, Any] = {}
        for pattern, rule in rules.items():
            if not isinstance(rule, Mapping):
                continue
            for key in RULE_KEYS:
                if key in rule:
                    overlays[pattern] = rule[key]
                    break
        return cls(overlays)

    def __len__(self) -> int:
        return self._count

    def add(self, pattern: str, value: Any) -> None:
        if value is None:
            return
        if value is False:
            options: Dict[str, Any] = {}
            disabled = True
        elif value is True:
            options, disabled = {}, False
        elif isinstance(value, Mapping):
            options, disabled = dict(value), False
        else:
            raise TypeError(f"Unsupported og:image rule for {pattern!r}: {value!r}")

        segments = _split(pattern)
        node = self._root
        static_count = 0
        catchall = False
        for index, segment in enumerate(segments):
            if segment == "**":
                if index != len(segments) - 1:
                    raise ValueError(f"'**' must be the last segment of {pattern!r}")
                catchall = True
                break
            if segment == "*" or segment.startswith(":"):
                if node.wildcard is None:
                    node.wildcard = _Node()
                node = node.wildcard
            else:
                static_count += 1
                node = node.children.setdefault(segment, _Node())

        depth = len(segments) - (1 if catchall else 0)
        overlay = RouteOverlay(
            pattern=pattern,
            options=options,
            disabled=disabled,
            specificity=(static_count, depth, 0 if catchall else 1, self._count),
        )
        self._count += 1
        if catchall:
            node.catchall.append(overlay)
        else:
            node.terminal.append(overlay)
        logger.debug("Registered og:image rule %s", pattern)

    def match(self, route: str) -> List[RouteOverlay]:
        """Return every overlay matching ``route``, most specific first."""
        found: List[RouteOverlay] = []
        self._collect(self._root, _split(route), 0, found)
        found.sort(key=lambda overlay: overlay.specificity, reverse=True)
        return found

    def _collect(
        self,
        node: _Node,
        segments: List[str],
        index: int,
        found: List[RouteOverlay],
    ) -> None:
        found.extend(node.catchall)
        if index == len(segments):
            found.extend(node.terminal)
            return
        child = node.children.get(segments[index])
        if child is not None:
            self._collect(child, segments, index + 1, found)
        if node.wildcard is not None:
            self._collect(node.wildcard, segments, index + 1, found)
