"""
Dominant color extraction service for calendar photos.

This module ties the pipeline together: decode the photo, build a weighted
palette, select perceptually distinct dominant colors and serve the result
through the mtime-validated result cache.
"""

from pathlib import Path
from typing import List, Optional, Union

from calpalette.config import config
from calpalette.errors import InputError
from calpalette.schemas import ColorSummary
from calpalette.utils.logging import get_logger
from .cache import ResultCache
from .colors.palette import PixelBuffer, build_palette
from .colors.selection import select_dominant_colors
from .imaging import load_pixel_buffer
from .observability import performance_monitor

PathLike = Union[str, Path]


def extract_dominant_colors(buffer: PixelBuffer,
                            count: Optional[int] = None,
                            bits: Optional[int] = None,
                            metric: Optional[str] = None) -> List[str]:
    """
    Extract dominant colors from a decoded pixel buffer.

    Args:
        buffer: Decoded image pixels
        count: Number of colors to return (at most)
        bits: Quantization bits per channel
        metric: Distance metric name

    Returns:
        Lowercase 6-digit hex colors, most dominant first

    Raises:
        InputError: If the buffer is empty or malformed
    """
    with performance_monitor("palette_building", pixel_count=buffer.width * buffer.height):
        palette = build_palette(buffer, bits=bits)

    with performance_monitor("dominant_color_selection", palette_size=len(palette)):
        colors = select_dominant_colors(palette, count=count, metric=metric)

    return [color.hex for color in colors]


def make_cache(count: Optional[int] = None,
               bits: Optional[int] = None,
               metric: Optional[str] = None,
               sample_width: Optional[int] = None,
               store=None) -> ResultCache:
    """Build a result cache whose records are tagged with the given extraction settings."""
    return ResultCache(
        store=store,
        color_count=count or config.COLOR_COUNT,
        algorithm=config.algorithm_signature(metric, bits, sample_width),
    )


def get_main_colors(source_path: PathLike,
                    count: Optional[int] = None,
                    cache: Optional[ResultCache] = None,
                    bits: Optional[int] = None,
                    metric: Optional[str] = None,
                    sample_width: Optional[int] = None) -> List[str]:
    """
    Dominant colors of a source photo, served from cache when still valid.

    Raises:
        SourceUnavailableError: If the photo is missing or unreadable
        InputError: If the photo decodes to an unusable image, or a given
            cache was built for different extraction settings
    """
    logger = get_logger()
    count = count or config.COLOR_COUNT
    if cache is None:
        cache = make_cache(count, bits, metric, sample_width)

    # Records are tagged with the cache's settings, so they must be the ones used here
    algorithm = config.algorithm_signature(metric, bits, sample_width)
    if cache.color_count != count or cache.algorithm != algorithm:
        raise InputError(
            f"Cache holds {cache.color_count} colors for '{cache.algorithm}', "
            f"requested {count} colors for '{algorithm}'",
            source=source_path,
        )

    def compute() -> List[str]:
        logger.info(f"Extracting {count} dominant colors",
                    extra={"source": str(source_path), "algorithm": algorithm})
        with performance_monitor("image_decoding"):
            buffer = load_pixel_buffer(source_path, sample_width=sample_width)
        return extract_dominant_colors(buffer, count=count, bits=bits, metric=metric)

    with performance_monitor("color_lookup", source=str(source_path)):
        return cache.lookup_or_compute(source_path, compute)


def summarize(source_path: PathLike,
              count: Optional[int] = None,
              cache: Optional[ResultCache] = None) -> ColorSummary:
    """Dominant colors plus the primary page color for one photo."""
    colors = get_main_colors(source_path, count=count, cache=cache)
    return ColorSummary.from_colors(str(source_path), colors)
