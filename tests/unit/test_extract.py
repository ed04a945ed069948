"""
Unit tests for og:image option extraction.
"""
import json

from og_prerender.extract import extract_og_image_options


class TestExtractOgImageOptions:
    """Extraction never raises; absence is a normal outcome."""

    def test_extracts_embedded_options(self, make_html):
        html = make_html({"provider": "browser", "static": True, "title": "Hi"})

        options = extract_og_image_options(html)

        assert options == {"provider": "browser", "static": True, "title": "Hi"}

    def test_head_fragment_is_enough(self):
        head = '<title>x</title>\n<script id="nuxt-og-image-options">{"width": 800}</script>'

        assert extract_og_image_options(head) == {"width": 800}

    def test_page_without_directive_returns_none(self, make_html):
        assert extract_og_image_options(make_html()) is None

    def test_empty_markup_returns_none(self):
        assert extract_og_image_options("") is None
        assert extract_og_image_options(None) is None

    def test_malformed_payload_returns_none(self):
        html = '<html><head><script id="nuxt-og-image-options">{"width": </script></head></html>'

        assert extract_og_image_options(html) is None

    def test_non_object_payload_returns_none(self):
        html = '<html><head><script id="nuxt-og-image-options">[1, 2]</script></head></html>'

        assert extract_og_image_options(html) is None

    def test_empty_script_returns_none(self):
        html = '<html><head><script id="nuxt-og-image-options"></script></head></html>'

        assert extract_og_image_options(html) is None

    def test_island_response_is_ignored(self, make_html):
        island = json.dumps({"html": make_html({"provider": "browser"}), "head": {}})

        assert extract_og_image_options(island) is None

    def test_other_scripts_are_not_read(self):
        html = '<html><head><script id="something-else">{"width": 1}</script></head></html>'

        assert extract_og_image_options(html) is None
