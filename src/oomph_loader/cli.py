"""Command-line entry point for the Oomph loader."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

from oomph_loader import __version__
from oomph_loader.config import get_settings
from oomph_loader.constants import DEFAULT_BRANCH
from oomph_loader.errors import NoCacheAvailableError, SpawnError
from oomph_loader.launcher import launch
from oomph_loader.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oomph-loader",
        description="Download (or reuse) the Oomph proxy binary and run it",
    )
    parser.add_argument(
        "--branch",
        default=DEFAULT_BRANCH,
        help=f"The branch to download the Oomph binary from (default: {DEFAULT_BRANCH})",
    )
    parser.add_argument(
        "--use-cache",
        action="store_true",
        help="Only use the local cache and do not download the latest binary",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    setup_logging()
    log = get_logger("oomph_loader.cli")
    settings = get_settings()
    log.info("starting_oomph_loader", version=__version__, branch=args.branch)

    try:
        asyncio.run(launch(settings, branch=args.branch, use_cache=args.use_cache))
    except NoCacheAvailableError as exc:
        log.error("no_binary_available", asset_id=exc.asset_id, hint="please try again later")
        return 1
    except SpawnError as exc:
        log.error("proxy_spawn_failed", path=exc.path, error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
