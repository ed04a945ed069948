"""
Unit tests for font resolution.
"""
import base64
from unittest.mock import Mock

import pytest
import requests

from og_prerender.fonts import FontFetchError, FontResolver
from og_prerender.models import FontConfig

SITE = "https://example.com"


@pytest.fixture
def session():
    session = Mock()
    response = Mock(content=b"font-bytes")
    response.raise_for_status = Mock()
    session.get = Mock(return_value=response)
    return session


class TestFontResolver:
    def test_inline_data_returned_unchanged(self, session):
        resolver = FontResolver(SITE, session=session)

        data = resolver.resolve(FontConfig("Inter", 400, data=b"inline"))

        assert data == b"inline"
        session.get.assert_not_called()

    def test_cached_base64_is_decoded(self, session):
        storage = {"inter-700": base64.b64encode(b"cached-font").decode("ascii")}
        resolver = FontResolver(SITE, storage=storage, session=session)

        assert resolver.resolve(FontConfig("Inter", 700)) == b"cached-font"
        session.get.assert_not_called()

    def test_fetches_from_font_endpoint(self, session):
        resolver = FontResolver(SITE, session=session, timeout=3)

        data = resolver.resolve(FontConfig("Inter", 700))

        assert data == b"font-bytes"
        session.get.assert_called_once_with(
            "https://example.com/__og-image__/font/Inter/700.ttf", timeout=3
        )

    def test_fetches_from_local_path(self, session):
        resolver = FontResolver(SITE, session=session)

        resolver.resolve(FontConfig("Brand", 400, path="/fonts/brand.ttf"))

        assert session.get.call_args[0][0] == "https://example.com/fonts/brand.ttf"

    def test_fetch_does_not_populate_cache(self, session):
        storage = {}
        resolver = FontResolver(SITE, storage=storage, session=session)

        resolver.resolve(FontConfig("Inter", 400))

        assert storage == {}

    def test_network_failure_propagates(self, session):
        session.get.side_effect = requests.ConnectionError("offline")
        resolver = FontResolver(SITE, session=session)

        with pytest.raises(FontFetchError, match="Inter:400"):
            resolver.resolve(FontConfig("Inter", 400))

    def test_http_error_propagates(self, session):
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404")
        resolver = FontResolver(SITE, session=session)

        with pytest.raises(FontFetchError):
            resolver.resolve(FontConfig("Missing", 400))

    def test_resolve_all_keeps_order(self, session):
        resolver = FontResolver(SITE, session=session)

        fonts = resolver.resolve_all([FontConfig("Inter", 400, data=b"a"), FontConfig("Inter", 700)])

        assert [font.data for font in fonts] == [b"a", b"font-bytes"]
        assert [font.weight for font in fonts] == [400, 700]


class TestFontConfig:
    def test_parse_family_and_weight(self):
        font = FontConfig.parse("Noto Sans:700")

        assert font.name == "Noto Sans"
        assert font.weight == 700
        assert font.key == "noto-sans-700"

    def test_parse_defaults_weight(self):
        assert FontConfig.parse("Inter").weight == 400

    def test_parse_rejects_empty_family(self):
        with pytest.raises(ValueError):
            FontConfig.parse(":700")
