"""Collection and prerendering of browser-provider og:image screenshots."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import requests

from .browser import PlaywrightBrowserProvider, capture_screenshot
from .cache import OptionCache
from .config import BROWSER_PROVIDER, DEFAULT_PROVIDER, OgImageConfig
from .extract import extract_og_image_options
from .models import DrainReport, ImageOptions, JobStatus, OrchestratorState, ScreenshotJob
from .processes import PreviewServer, install_browser_runtime
from .resolve import merge_options, resolve_options
from .routes import RouteRuleMatcher
from .utils import (
    detect_image_format,
    is_excluded_route,
    join_url,
    og_image_output_path,
    og_image_url,
    with_base,
)

logger = logging.getLogger("og_prerender")

CaptureFn = Callable[[Any, Dict[str, Any]], Awaitable[bytes]]
InstallerFn = Callable[[Sequence[str]], Awaitable[Optional[int]]]
DrainHook = Callable[[List[ScreenshotJob]], None]


def fetch_page_html(url: str, timeout: float = 15.0) -> str:
    """Fetch rendered HTML from the preview server."""
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return resp.text


class ScreenshotOrchestrator:
    """Collects screenshot jobs while pages render and drains them after the build.

    The host calls ``on_page_rendered`` for every prerendered page and
    ``on_build_complete`` once the static output exists. Draining launches a
    preview server over the output directory and a headless browser, then
    captures each queued route in order; one failing route never stops the
    rest of the batch.
    """

    def __init__(
        self,
        config: OgImageConfig,
        matcher: Optional[RouteRuleMatcher] = None,
        cache: Optional[OptionCache] = None,
        *,
        capture: CaptureFn = capture_screenshot,
        fetch_html: Optional[Callable[[str], str]] = None,
        browser_provider: Optional[Any] = None,
        server_factory: Optional[Callable[[], Any]] = None,
        installer: Optional[InstallerFn] = install_browser_runtime,
    ) -> None:
        self.config = config
        if matcher is None:
            matcher = RouteRuleMatcher.from_route_rules(config.route_rules)
        if cache is None:
            cache = OptionCache(config.static_ttl, config.dynamic_ttl)
        self.matcher = matcher
        self.cache = cache
        self.capture = capture
        self.fetch_html = fetch_html or functools.partial(
            fetch_page_html, timeout=config.request_timeout
        )
        self.browser_provider = browser_provider or PlaywrightBrowserProvider()
        self.server_factory = server_factory or self._default_server
        self.installer = installer
        self.queue: List[ScreenshotJob] = []
        self.prerender_links: List[str] = []
        self.before_drain: List[DrainHook] = []
        self.state = OrchestratorState.IDLE

    def _default_server(self) -> PreviewServer:
        return PreviewServer(
            self.config.resolved_serve_command(),
            ready_phrase=self.config.ready_phrase,
            timeout=self.config.server_ready_timeout,
        )

    # Collection

    def resolve_route(self, route: str, html: Optional[str]) -> Optional[ImageOptions]:
        """Extract and resolve options for a rendered page without queueing it."""
        if is_excluded_route(route):
            return None
        extracted = extract_og_image_options(html)
        if extracted is None:
            return None
        return resolve_options(route, extracted, self.matcher.match(route), self.config.defaults)

    def is_screenshot_eligible(self, options: ImageOptions) -> bool:
        return options.provider == BROWSER_PROVIDER and (
            self.config.force_prerender or options.static
        )

    def on_page_rendered(self, route: str, html: Optional[str]) -> Optional[ImageOptions]:
        try:
            options = self.resolve_route(route, html)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Ignoring invalid og:image options for %s", route)
            return None
        if options is None:
            return None

        self.cache.remember(route, options)
        if self.state is OrchestratorState.IDLE:
            self.state = OrchestratorState.COLLECTING

        if options.provider == DEFAULT_PROVIDER and (self.config.force_prerender or options.static):
            link = og_image_url(route)
            if link not in self.prerender_links:
                self.prerender_links.append(link)

        if self.is_screenshot_eligible(options):
            self._enqueue(ScreenshotJob(route=route, options=options))
        return options

    def add_route(self, route: str) -> None:
        """Queue a route whose options are completed from its HTML during the drain."""
        self._enqueue(ScreenshotJob(route=route))

    def _enqueue(self, job: ScreenshotJob) -> None:
        if any(queued.route == job.route for queued in self.queue):
            logger.debug("og:image screenshot for %s already queued", job.route)
            return
        self.queue.append(job)
        if self.state is OrchestratorState.IDLE:
            self.state = OrchestratorState.COLLECTING

    def _dedupe_queue(self) -> None:
        seen = set()
        unique: List[ScreenshotJob] = []
        for job in self.queue:
            if job.route in seen:
                logger.debug("Dropping duplicate og:image screenshot for %s", job.route)
                continue
            seen.add(job.route)
            unique.append(job)
        self.queue[:] = unique

    # Draining

    async def on_build_complete(self) -> DrainReport:
        return await self.drain()

    async def drain(self) -> DrainReport:
        report = DrainReport()
        if self.config.dev:
            logger.debug("Development mode: og:image screenshots are not prerendered")
            return report
        if self.state is OrchestratorState.DRAINING:
            logger.debug("og:image screenshot drain already in progress")
            return report

        for hook in self.before_drain:
            try:
                hook(self.queue)
            except Exception:  # pylint: disable=broad-except
                logger.exception("og:image before_drain hook %r failed", hook)
        self._dedupe_queue()
        if not self.queue:
            self.state = OrchestratorState.IDLE
            return report

        self.state = OrchestratorState.DRAINING
        jobs = list(self.queue)
        report.total = len(jobs)
        start = time.perf_counter()

        if self.installer is not None and self.config.install_command:
            try:
                await self.installer(self.config.install_command)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Browser install step failed. Trying anyway...")

        server = self.server_factory()
        try:
            host = await server.start()
            browser = await self.browser_provider.launch()
            logger.info("Prerendering %d og:image screenshots...", len(jobs))
            await self._complete_jobs(jobs, host)
            await self._capture_jobs(jobs, browser, host, report)
        except Exception:  # pylint: disable=broad-except
            logger.exception("og:image screenshot prerendering aborted")
        finally:
            await self._teardown(server)

        for job in jobs:
            if job.status is JobStatus.DONE:
                report.succeeded += 1
            else:
                if job.status is not JobStatus.FAILED:
                    job.status = JobStatus.FAILED
                    job.error = job.error or "not attempted"
                report.failed.append(job.route)
        report.elapsed_seconds = time.perf_counter() - start
        return report

    async def _teardown(self, server: Any) -> None:
        try:
            await self.browser_provider.close()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to close the og:image browser")
        try:
            await server.stop()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to stop the og:image preview server")
        self.queue.clear()
        self.state = OrchestratorState.IDLE

    async def _fetch(self, host: str, path: str) -> str:
        url = join_url(host, with_base(path, self.config.base_url))
        logger.debug("Fetching %s", url)
        return await asyncio.to_thread(self.fetch_html, url)

    async def _complete_jobs(self, jobs: List[ScreenshotJob], host: str) -> None:
        """Fill in stub jobs and attach component HTML; failures stay with their job."""
        for job in jobs:
            try:
                if job.options is None:
                    job.status = JobStatus.FETCHING
                    options = self.cache.get(job.route)
                    if options is None:
                        html = await self._fetch(host, job.route)
                        options = self.resolve_route(job.route, html)
                    if options is None:
                        raise ValueError(f"no og:image options found for {job.route}")
                    job.options = options
                if job.options.component and not job.options.html:
                    job.status = JobStatus.FETCHING
                    html = await self._fetch(host, job.options.path)
                    job.options = job.options.with_html(html)
                job.status = JobStatus.PENDING
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Failed to prepare og:image for %s: %s", job.route, exc)
                job.fail(exc)

    def capture_options(self, job: ScreenshotJob, host: str) -> Dict[str, Any]:
        assert job.options is not None
        return merge_options(
            self.config.defaults,
            job.options.to_dict(),
            {
                "host": host,
                "base_url": self.config.base_url,
                "navigation_timeout": self.config.navigation_timeout,
            },
        )

    async def _capture_jobs(
        self,
        jobs: List[ScreenshotJob],
        browser: Any,
        host: str,
        report: DrainReport,
    ) -> None:
        total = len(jobs)
        for index, job in enumerate(jobs):
            start = time.perf_counter()
            output_path = og_image_output_path(self.config.output_root, job.route)
            if job.status is not JobStatus.FAILED:
                try:
                    job.status = JobStatus.RENDERING
                    image = await self.capture(browser, self.capture_options(job, host))
                    if not image or detect_image_format(image) is None:
                        raise ValueError("capture did not return image data")
                    job.status = JobStatus.WRITING
                    output_path.parent.mkdir(parents=True, exist_ok=True)
                    output_path.write_bytes(image)
                    job.output_path = output_path
                    job.status = JobStatus.DONE
                    report.outputs.append(output_path)
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Failed to capture og:image for %s: %s", job.route, exc)
                    job.fail(exc)
            job.elapsed_ms = int((time.perf_counter() - start) * 1000)
            self._log_progress(index, total, job, output_path)

    def _log_progress(self, index: int, total: int, job: ScreenshotJob, output_path: Path) -> None:
        branch = "└─" if index == total - 1 else "├─"
        try:
            display = output_path.relative_to(self.config.output_root).as_posix()
        except ValueError:
            display = output_path.as_posix()
        percent = int((index + 1) * 100 / total + 0.5)
        level = logging.ERROR if job.status is JobStatus.FAILED else logging.INFO
        logger.log(level, "  %s /%s (%dms) %d%%", branch, display, job.elapsed_ms, percent)
