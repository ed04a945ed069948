"""
Unit tests for route overlay matching.
"""
import pytest

from og_prerender.routes import RouteRuleMatcher


def patterns(overlays):
    return [overlay.pattern for overlay in overlays]


class TestRouteRuleMatcher:
    """Overlays come back most specific first."""

    def test_exact_match(self):
        matcher = RouteRuleMatcher({"/about": {"width": 10}})

        assert patterns(matcher.match("/about")) == ["/about"]
        assert matcher.match("/about/team") == []

    def test_single_segment_wildcard(self):
        matcher = RouteRuleMatcher({"/blog/*": {"width": 1000}})

        assert patterns(matcher.match("/blog/post-1")) == ["/blog/*"]
        assert matcher.match("/blog/post-1/comments") == []
        assert matcher.match("/blog") == []

    def test_named_parameter_acts_as_wildcard(self):
        matcher = RouteRuleMatcher({"/users/:id": {"width": 1}})

        assert patterns(matcher.match("/users/42")) == ["/users/:id"]

    def test_catch_all_matches_prefix_and_itself(self):
        matcher = RouteRuleMatcher({"/docs/**": {"height": 500}})

        assert patterns(matcher.match("/docs")) == ["/docs/**"]
        assert patterns(matcher.match("/docs/a/b/c")) == ["/docs/**"]
        assert matcher.match("/documents") == []

    def test_most_specific_first(self):
        matcher = RouteRuleMatcher(
            {
                "/**": {"a": 1},
                "/blog/**": {"a": 2},
                "/blog/*": {"a": 3},
                "/blog/post-1": {"a": 4},
            }
        )

        result = matcher.match("/blog/post-1")

        assert patterns(result) == ["/blog/post-1", "/blog/*", "/blog/**", "/**"]

    def test_query_and_trailing_slash_ignored(self):
        matcher = RouteRuleMatcher({"/blog/*": {"width": 1}})

        assert patterns(matcher.match("/blog/post/?page=2")) == ["/blog/*"]

    def test_false_marks_overlay_disabled(self):
        matcher = RouteRuleMatcher({"/private/**": False})

        (overlay,) = matcher.match("/private/x")

        assert overlay.disabled is True
        assert overlay.options == {}

    def test_from_route_rules_keeps_only_image_rules(self):
        matcher = RouteRuleMatcher.from_route_rules(
            {
                "/blog/**": {"ogImage": {"width": 1000}, "headers": {"x": "y"}},
                "/api/**": {"cors": True},
                "/secret": {"og_image": False},
            }
        )

        assert len(matcher) == 2
        assert matcher.match("/api/users") == []
        assert matcher.match("/blog/a")[0].options == {"width": 1000}
        assert matcher.match("/secret")[0].disabled is True

    def test_catch_all_must_be_last(self):
        with pytest.raises(ValueError):
            RouteRuleMatcher({"/a/**/b": {}})

    def test_rejects_unknown_rule_values(self):
        with pytest.raises(TypeError):
            RouteRuleMatcher({"/a": "yes"})
