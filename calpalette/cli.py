"""
calpalette command line.

Prints one JSON line per source photo with its dominant colors. Photos that
fail are reported with their path and skipped; the exit status is 1 if any
photo failed.
"""
import argparse
import sys
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

from calpalette.config import config
from calpalette.errors import ColorExtractionError
from calpalette.schemas import ColorSummary, ExtractionFailure
from calpalette.services.cache import NullRecordStore, build_store_from_config
from calpalette.services.extraction import get_main_colors, make_cache
from calpalette.utils.logging import configure_logging, get_logger


def process_image(path: str, count: int, use_cache: bool = True,
                  cache_root: Optional[str] = None, metric: Optional[str] = None) -> Tuple[bool, str]:
    """Extract one photo; returns (succeeded, JSON output line)."""
    store = build_store_from_config(cache_root=cache_root) if use_cache else NullRecordStore()
    cache = make_cache(count=count, metric=metric, store=store)
    try:
        colors = get_main_colors(path, count=count, cache=cache, metric=metric)
    except ColorExtractionError as e:
        get_logger().error(f"Skipping image: {e}", extra={"source": path})
        return False, ExtractionFailure(source=path, error=type(e).__name__, detail=str(e)).model_dump_json()
    return True, ColorSummary.from_colors(path, colors).model_dump_json()


def expand_sources(arguments: List[str]) -> List[str]:
    """Replace directory arguments with the supported images they contain."""
    sources = []
    for argument in arguments:
        path = Path(argument)
        if path.is_dir():
            sources.extend(
                str(child) for child in sorted(path.iterdir())
                if child.is_file() and child.suffix.lower() in config.SUPPORTED_EXTENSIONS
            )
        else:
            sources.append(argument)
    return sources


def _init_worker(log_level: str) -> None:
    configure_logging(log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calpalette",
        description="Extract dominant colors from calendar photos."
    )
    parser.add_argument("images", nargs="+", help="Source image paths or directories of images")
    parser.add_argument("--count", "-n", type=int, default=config.COLOR_COUNT,
                        help=f"Number of dominant colors (default: {config.COLOR_COUNT})")
    parser.add_argument("--metric", choices=["ciede2000", "cie76"], default=config.DISTANCE_METRIC,
                        help="Color distance metric")
    parser.add_argument("--workers", "-w", type=int, default=config.WORKERS,
                        help="Worker processes (default: %(default)s)")
    parser.add_argument("--no-cache", action="store_true", help="Always recompute, never persist")
    parser.add_argument("--cache-root", default=config.CACHE_ROOT,
                        help="Directory for cache records instead of sidecar files")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.log_level)

    if not config.validate_color_count(args.count):
        logger.error(f"Invalid color count: {args.count}")
        return 2
    if not config.validate_metric(args.metric):
        logger.error(f"Invalid distance metric: {args.metric}")
        return 2

    jobs = [(path, args.count, not args.no_cache, args.cache_root, args.metric)
            for path in expand_sources(args.images)]

    if args.workers > 1 and len(jobs) > 1:
        with ProcessPoolExecutor(max_workers=args.workers,
                                 initializer=_init_worker,
                                 initargs=(args.log_level,)) as pool:
            results = list(pool.map(process_image, *zip(*jobs)))
    else:
        results = [process_image(*job) for job in jobs]

    failed = 0
    for succeeded, line in results:
        print(line)
        if not succeeded:
            failed += 1

    if failed:
        logger.warning(f"{failed} of {len(results)} images failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
