"""
Pytest configuration and fixtures for og:image prerendering tests.
Playwright, subprocesses and HTTP are always faked.
"""
import json
from unittest.mock import AsyncMock, Mock

import pytest

from og_prerender.config import OgImageConfig
from og_prerender.orchestrator import ScreenshotOrchestrator

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PREVIEW_HOST = "http://localhost:3000"


def page_html(options=None, title="Example"):
    """Render a minimal full page, embedding og:image options when given."""
    script = ""
    if options is not None:
        script = (
            '<script id="nuxt-og-image-options" type="application/json">'
            f"{json.dumps(options)}</script>"
        )
    return (
        f"<!DOCTYPE html><html><head><title>{title}</title>{script}</head>"
        "<body><h1>Hello</h1></body></html>"
    )


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def make_html():
    """Factory for full pages carrying og:image options."""
    return page_html


@pytest.fixture
def og_config(tmp_path):
    """Config writing into a temporary public directory."""
    return OgImageConfig(output_root=tmp_path / "public")


@pytest.fixture
def preview_server():
    """Fake preview server announcing PREVIEW_HOST."""
    server = Mock()
    server.start = AsyncMock(return_value=PREVIEW_HOST)
    server.stop = AsyncMock()
    return server


@pytest.fixture
def browser_provider():
    """Fake browser provider handing out a sentinel browser."""
    provider = Mock()
    provider.browser = Mock(name="browser")
    provider.launch = AsyncMock(return_value=provider.browser)
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def capture():
    """Capture backend that always succeeds."""
    return AsyncMock(return_value=PNG_BYTES)


@pytest.fixture
def installer():
    return AsyncMock(return_value=0)


@pytest.fixture
def fetch_html():
    return Mock(return_value=page_html())


@pytest.fixture
def orchestrator(og_config, preview_server, browser_provider, capture, installer, fetch_html):
    """Orchestrator wired to fakes for every external collaborator."""
    return ScreenshotOrchestrator(
        og_config,
        capture=capture,
        fetch_html=fetch_html,
        browser_provider=browser_provider,
        server_factory=lambda: preview_server,
        installer=installer,
    )
