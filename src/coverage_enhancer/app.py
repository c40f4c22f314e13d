from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from coverage_enhancer.controllers.enhance_controller import EnhanceController
from coverage_enhancer.core.errors import DiscoveryError
from coverage_enhancer.core.managers.config_manager import config_manager
from coverage_enhancer.core.utils.configure_logging import configure_logger
from coverage_enhancer.model import EnhanceSettings

logger = logging.getLogger(__name__)

DESCRIPTION = """
Code coverage enhancer and badge generator.

Intended to be run on HTML coverage reports generated by `deno coverage --html`.
Applies the matcha.css theme (nice styling with dark mode support), syntax
highlights source snippets, generates a static coverage badge from
img.shields.io and merges per-package reports into a global summary.
""".strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coverage-enhancer",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("globs", nargs="*", metavar="files",
                        help="Glob patterns of files to process (default: **/*.html)")
    parser.add_argument("-l", "--loglevel", default=None,
                        help="Log level (disabled, debug, log, info, warn, error)")
    parser.add_argument("-r", "--root", default=None,
                        help="Root directory to search for files (default: coverage)")
    parser.add_argument("-e", "--exclude", action="append", default=[],
                        help="Exclude files matching glob pattern (can be used multiple times)")
    parser.add_argument("-s", "--summary", action="store_true",
                        help="Do not write the global summary (root index.html)")
    parser.add_argument("-M", "--no-matcha", action="store_true", help="Disable matcha.css styling")
    parser.add_argument("-H", "--no-highlight", action="store_true", help="Disable syntax highlighting")
    parser.add_argument("-W", "--no-write", action="store_true", help="Do not rewrite html files")
    parser.add_argument("-B", "--no-badge", action="store_true", help="Do not generate coverage badge")
    parser.add_argument("-c", "--concurrency", type=int, default=None,
                        help="Number of files processed concurrently")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return parser


def settings_from_args(args: argparse.Namespace) -> EnhanceSettings:
    """Translates parsed arguments into the run settings, on top of settings.json."""
    return EnhanceSettings.from_config(
        config_manager,
        root=args.root,
        globs=list(args.globs) or None,
        excludes=list(args.exclude),
        write=not args.no_write,
        theme=not args.no_matcha,
        highlight=not args.no_highlight,
        badge=not args.no_badge,
        summary=not args.summary,
        concurrency=args.concurrency,
        show_progress=False if args.no_progress else None,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint for running the enhancer from the command line."""
    args = build_parser().parse_args(argv)

    configure_logger(
        args.loglevel or config_manager.get_nested("debug.level", "INFO"),
        silenced_loggers=config_manager.get_nested("debug.silenced_loggers", {}),
    )

    settings = settings_from_args(args)
    logger.debug("Running with settings: %s", settings.model_dump())

    controller = EnhanceController(settings)
    try:
        asyncio.run(controller.run())
    except DiscoveryError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
