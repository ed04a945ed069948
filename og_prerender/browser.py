"""Headless browser provider and the default screenshot backend."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from .utils import join_url, with_base

logger = logging.getLogger("og_prerender")

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class PlaywrightBrowserProvider:
    """Owns one Playwright instance and one headless Chromium per drain."""

    def __init__(self) -> None:
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def launch(self) -> Browser:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)
        return self._browser

    async def close(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()


def screenshot_url(options: Mapping[str, Any]) -> str:
    host = options.get("host") or ""
    path = with_base(options.get("path") or options.get("route") or "/", options.get("base_url") or "/")
    return join_url(host, path)


async def capture_screenshot(browser: Browser, options: Dict[str, Any]) -> bytes:
    """Screenshot the page (or attached HTML) described by ``options`` as PNG bytes."""
    page = await browser.new_page()
    try:
        if options.get("navigation_timeout"):
            page.set_default_navigation_timeout(float(options["navigation_timeout"]) * 1000)
        await page.set_viewport_size({"width": int(options["width"]), "height": int(options["height"])})
        if options.get("html"):
            await page.set_content(options["html"], wait_until="networkidle")
        else:
            url = screenshot_url(options)
            logger.debug("Loading %s", url)
            await page.goto(url, wait_until="networkidle")
        delay = options.get("delay")
        if delay:
            await page.wait_for_timeout(int(delay))
        selector = options.get("selector")
        if selector:
            return await page.locator(selector).first.screenshot(type="png")
        return await page.screenshot(type="png", full_page=False)
    finally:
        await page.close()
