"""Command-line entry point for og:image prerendering."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Tuple

from .config import (
    DEFAULT_READY_TIMEOUT,
    OG_IMAGE_SEGMENT,
    OgImageConfig,
    default_install_command,
    default_option_defaults,
)
from .fonts import FontResolver
from .models import DrainReport, FontConfig
from .orchestrator import ScreenshotOrchestrator

logger = logging.getLogger("og_prerender.cli")

SKIPPED_PAGES = {"200.html", "404.html"}
SKIPPED_DIRS = {OG_IMAGE_SEGMENT, "_nuxt"}


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("generate", *argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _load_json(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit(f"{path} must contain a JSON object")
    return data


def _add_generate_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("public_dir", type=Path, help="Static build output to scan and write images into")
    parser.add_argument(
        "--route-rules",
        type=Path,
        default=None,
        help="JSON file mapping route patterns to rules with an 'ogImage' entry",
    )
    parser.add_argument(
        "--defaults",
        type=Path,
        default=None,
        help="JSON file with default og:image options",
    )
    parser.add_argument("--base-url", default="/", help="Base URL the site is served under")
    parser.add_argument(
        "--force-prerender",
        action="store_true",
        help="Screenshot dynamic browser images too (full static export)",
    )
    parser.add_argument(
        "--route",
        action="append",
        default=[],
        help="Extra route to screenshot; options are read from its HTML (repeatable)",
    )
    parser.add_argument(
        "--ready-timeout",
        type=float,
        default=DEFAULT_READY_TIMEOUT,
        help="Seconds to wait for the preview server to accept connections",
    )
    parser.add_argument(
        "--serve-command",
        default=None,
        help="Command serving the public directory (default: npx serve <public_dir>)",
    )
    parser.add_argument(
        "--skip-install",
        action="store_true",
        help="Do not run 'playwright install chromium' before capturing",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")


def _add_font_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("fonts", nargs="+", help="Fonts as Family:weight, e.g. Inter:700")
    parser.add_argument("--site-url", required=True, help="Origin serving the font endpoint")
    parser.add_argument(
        "--output",
        default="fonts",
        type=Path,
        help="Directory where font files should be written",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Prerender og:image screenshots for a static site build.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Scan built pages and screenshot their og:images"
    )
    _add_generate_arguments(generate_parser)

    fonts_parser = subparsers.add_parser("fonts", help="Download fonts used by the og:image renderer")
    _add_font_arguments(fonts_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def iter_built_pages(public_dir: Path) -> Iterator[Tuple[str, Path]]:
    """Yield ``(route, html_path)`` for every page in a static build."""
    for html_path in sorted(public_dir.rglob("*.html")):
        relative = html_path.relative_to(public_dir)
        if html_path.name in SKIPPED_PAGES and len(relative.parts) == 1:
            continue
        if SKIPPED_DIRS.intersection(relative.parts[:-1]):
            continue
        parts: List[str] = list(relative.parts[:-1])
        if html_path.stem != "index":
            parts.append(html_path.stem)
        yield "/" + "/".join(parts), html_path


def build_config(args: argparse.Namespace) -> OgImageConfig:
    defaults = default_option_defaults()
    if args.defaults:
        defaults.update(_load_json(args.defaults))
    return OgImageConfig(
        output_root=Path(args.public_dir).resolve(),
        base_url=args.base_url,
        defaults=defaults,
        route_rules=_load_json(args.route_rules) if args.route_rules else {},
        force_prerender=args.force_prerender,
        install_command=None if args.skip_install else default_install_command(),
        serve_command=args.serve_command.split() if args.serve_command else None,
        server_ready_timeout=args.ready_timeout,
        navigation_timeout=args.timeout,
    )


async def run_generate(config: OgImageConfig, extra_routes: Sequence[str] = ()) -> DrainReport:
    orchestrator = ScreenshotOrchestrator(config)
    for route, html_path in iter_built_pages(config.output_root):
        try:
            html = html_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.exception("Skipping unreadable page %s", html_path)
            continue
        orchestrator.on_page_rendered(route, html)
    for route in extra_routes:
        orchestrator.add_route(route)
    logger.debug("Queued %d og:image screenshots", len(orchestrator.queue))
    return await orchestrator.on_build_complete()


def _run_generate(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    config = build_config(args)
    if not config.output_root.is_dir():
        raise SystemExit(f"Public directory does not exist: {config.output_root}")

    overall_start = time.perf_counter()
    report = asyncio.run(run_generate(config, args.route))
    total_elapsed = time.perf_counter() - overall_start
    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        report.succeeded,
        report.total,
        len(report.failed),
    )
    for route in report.failed:
        logger.debug("Failed og:image route: %s", route)


def _run_fonts(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    resolver = FontResolver(args.site_url)
    output_dir = Path(args.output).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    for font in resolver.resolve_all(FontConfig.parse(value) for value in args.fonts):
        destination = output_dir / f"{font.key}.ttf"
        destination.write_bytes(font.data or b"")
        logger.info("Saved %s:%s to %s", font.name, font.weight, destination)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "generate":
        _run_generate(args)
    else:
        _run_fonts(args)


if __name__ == "__main__":
    main()
