"""Command-line interface for lossless PNG asset optimization."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

from .errors import OptimizeError
from .processing import TEMP_SUFFIX, OptimizeOptions
from .registry import build_registry
from .runner import AssetsOptimizer


logger = logging.getLogger(__name__)

DESCRIPTION = "Assets optimizer: rewrites PNGs in their smallest lossless color representation"

_EXCEPTION_HOOK_INSTALLED = False
_CONSOLE_HANDLER: logging.Handler | None = None


def setup_logging(verbose: bool = False) -> None:
    """Console logging, plus a debug file log when ASSET_SQUEEZE_DEBUG is set."""

    global _EXCEPTION_HOOK_INSTALLED, _CONSOLE_HANDLER
    root_logger = logging.getLogger()
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    # replace our own handler only, repeated calls must not stack output
    if _CONSOLE_HANDLER is not None:
        root_logger.removeHandler(_CONSOLE_HANDLER)
    root_logger.addHandler(console)
    _CONSOLE_HANDLER = console
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not os.environ.get("ASSET_SQUEEZE_DEBUG"):
        return
    log_path = Path(os.environ.get("ASSET_SQUEEZE_DEBUG_LOG", "asset_squeeze_debug.log")).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)
    root_logger.info("Debug logging enabled at %s", log_path)
    if not _EXCEPTION_HOOK_INSTALLED:
        previous_hook = sys.excepthook

        def _logging_excepthook(exc_type, exc_value, exc_traceback, _prev=previous_hook):
            root_logger.error(
                "Unhandled exception",
                exc_info=(exc_type, exc_value, exc_traceback),
            )
            _prev(exc_type, exc_value, exc_traceback)

        sys.excepthook = _logging_excepthook
        _EXCEPTION_HOOK_INSTALLED = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="asset-squeeze", description=DESCRIPTION)
    parser.add_argument("inputs", nargs="*", type=Path, help="Files or folders to optimize (default: .)")
    parser.add_argument(
        "-D",
        "--dir",
        dest="dirs",
        action="append",
        type=Path,
        default=[],
        metavar="ROOT_DIR",
        help="Base dir to scan and optimize (may be relative, repeatable)",
    )
    parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        help="Do not descend into subfolders",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        help="Number of files optimized concurrently",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Report failing files and continue instead of stopping at the first error",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be saved without rewriting any file",
    )
    parser.add_argument(
        "--temp-suffix",
        default=TEMP_SUFFIX,
        help="Suffix of the temporary file written next to each target",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return parser


def _resolve_roots(parser: argparse.ArgumentParser, args: argparse.Namespace) -> List[Path]:
    roots = list(args.inputs) + list(args.dirs)
    if not roots:
        roots = [Path(".")]
    resolved: List[Path] = []
    for root in roots:
        path = root.expanduser()
        if not path.exists():
            parser.error(f"Input path not found: {root}")
        resolved.append(path.resolve())
    return resolved


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.jobs < 1:
        parser.error("--jobs must be at least 1")
    if not args.temp_suffix or os.sep in args.temp_suffix:
        parser.error("--temp-suffix must be a non-empty file name suffix")

    setup_logging(args.verbose)
    roots = _resolve_roots(parser, args)

    options = OptimizeOptions(dry_run=args.dry_run, temp_suffix=args.temp_suffix)
    registry = build_registry(options)
    runner = AssetsOptimizer(
        roots,
        registry,
        recursive=args.recursive,
        jobs=args.jobs,
        keep_going=args.keep_going,
    )

    print(f"Starting assets optimization of {', '.join(str(root) for root in roots)}")
    try:
        stats = runner.run()
    except OptimizeError as exc:
        logger.debug("Run aborted", exc_info=True)
        print(f"Assets optimizer run error: {exc}")
        print(runner.summary())
        return 1

    print(runner.summary())
    return 0 if not stats.failures else 1


if __name__ == "__main__":
    raise SystemExit(main())
