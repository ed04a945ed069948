"""External processes used while prerendering screenshots."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence

from .config import DEFAULT_READY_TIMEOUT, READY_PHRASE
from .utils import strip_ansi

logger = logging.getLogger("og_prerender")

URL_PATTERN = re.compile(r"https?://\S+")


class PreviewServerError(RuntimeError):
    """Raised when the preview server fails to start or never reports readiness."""


async def install_browser_runtime(command: Sequence[str]) -> Optional[int]:
    """Run the browser installer; failures are logged and never raised."""
    logger.info("Ensuring chromium install for og:image generation...")
    try:
        process = await asyncio.create_subprocess_exec(*command)
    except OSError as exc:
        logger.error(
            "Failed to run %s for og:image generation (%s). Trying anyway...",
            " ".join(command),
            exc,
        )
        return None
    code = await process.wait()
    if code != 0:
        logger.error(
            "Failed to install Playwright dependency for og:image generation (exit code %s). Trying anyway...",
            code,
        )
    return code


def parse_ready_line(line: str, ready_phrase: str = READY_PHRASE) -> Optional[str]:
    """Return the serving address announced on a readiness line, if any."""
    text = strip_ansi(line)
    if ready_phrase not in text:
        return None
    rest = text.split(ready_phrase, 1)[1].strip()
    match = URL_PATTERN.search(rest)
    if match:
        return match.group(0).rstrip("/")
    return rest or None


class PreviewServer:
    """Static file server subprocess serving the build output."""

    def __init__(
        self,
        command: Sequence[str],
        ready_phrase: str = READY_PHRASE,
        timeout: float = DEFAULT_READY_TIMEOUT,
    ) -> None:
        self.command: List[str] = list(command)
        self.ready_phrase = ready_phrase
        self.timeout = timeout
        self.url: Optional[str] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._output_task: Optional[asyncio.Task] = None

    async def start(self) -> str:
        """Spawn the server and wait, at most ``timeout`` seconds, for its address."""
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise PreviewServerError(f"Failed to start preview server {self.command[0]}: {exc}") from exc

        try:
            self.url = await asyncio.wait_for(self._wait_until_ready(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise PreviewServerError(
                f"Preview server did not report {self.ready_phrase!r} within {self.timeout:.0f}s"
            ) from exc

        # Keep reading so a chatty server never blocks on a full pipe.
        self._output_task = asyncio.ensure_future(self._consume_output())
        logger.info("Preview server ready at %s", self.url)
        return self.url

    async def _wait_until_ready(self) -> str:
        assert self._process is not None and self._process.stdout is not None
        while True:
            raw = await self._process.stdout.readline()
            if not raw:
                raise PreviewServerError("Preview server exited before it was ready")
            line = raw.decode("utf-8", "replace")
            logger.debug("preview server: %s", line.rstrip())
            url = parse_ready_line(line, self.ready_phrase)
            if url:
                return url

    async def _consume_output(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        while True:
            raw = await self._process.stdout.readline()
            if not raw:
                return
            logger.debug("preview server: %s", raw.decode("utf-8", "replace").rstrip())

    async def stop(self, grace: float = 5.0) -> None:
        """Terminate the server; safe to call when it never started."""
        if self._output_task is not None:
            self._output_task.cancel()
            self._output_task = None
        process = self._process
        self._process = None
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("Preview server ignored SIGTERM; killing it")
            process.kill()
            await process.wait()
