"""
Dominant Color Selection Module

Greedy farthest-point selection over a weighted palette: start from the most
frequent color, then repeatedly take the entry whose nearest already-selected
color is perceptually farthest away.
"""

from typing import List, Optional

import numpy as np
from loguru import logger

from calpalette.config import config
from calpalette.errors import InputError
from .ciede2000 import get_metric
from .conversions import rgb_array_to_lab
from .palette import Color, Palette


def _pick(candidates: np.ndarray, scores: np.ndarray, weights: np.ndarray, hexes: List[str]) -> int:
    """
    Index of the best candidate: highest score, then higher weight, then smaller hex.
    """
    best_score = scores[candidates].max()
    tied = candidates[scores[candidates] == best_score]
    return int(min(tied, key=lambda i: (-weights[i], hexes[i])))


def select_dominant_colors(palette: Palette,
                           count: Optional[int] = None,
                           metric: Optional[str] = None) -> List[Color]:
    """
    Pick up to `count` weight-significant, mutually distinct colors.

    Args:
        palette: Weighted palette of the source image
        count: Number of colors to select
        metric: Distance metric name ("ciede2000" or "cie76")

    Returns:
        Selected colors, first-selected first. Shorter than `count` when the
        palette has fewer entries.

    Raises:
        InputError: If count < 1
        ValueError: If the metric is unknown
    """
    count = config.COLOR_COUNT if count is None else count
    if count < 1:
        raise InputError(f"Color count must be >= 1, got {count}")

    distance = get_metric(metric or config.DISTANCE_METRIC)

    entries = palette.entries
    if not entries:
        return []

    weights = palette.weights()
    hexes = [entry.color.hex for entry in entries]
    labs = rgb_array_to_lab(palette.rgb_array())

    remaining = np.ones(len(entries), dtype=bool)

    # Most frequent color first
    first = _pick(np.arange(len(entries)), weights.astype(np.float64), weights, hexes)
    selected = [first]
    remaining[first] = False

    # Distance from each entry to its nearest selected color
    nearest = np.asarray(distance(labs[first], labs), dtype=np.float64).reshape(-1)

    while len(selected) < count and remaining.any():
        candidates = np.flatnonzero(remaining)
        chosen = _pick(candidates, nearest, weights, hexes)

        logger.debug(f"Selected {hexes[chosen]} (weight={weights[chosen]}, "
                     f"min distance={nearest[chosen]:.3f})")

        selected.append(chosen)
        remaining[chosen] = False
        nearest = np.minimum(nearest, np.asarray(distance(labs[chosen], labs)).reshape(-1))

    if len(selected) < count:
        logger.info(f"Palette has only {len(selected)} distinct entries, {count} requested")

    return [entries[i].color for i in selected]
