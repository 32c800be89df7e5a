"""
calpalette Colors Module

Provides color space conversions, palette building, CIEDE2000 distance and
dominant color selection for calendar source photos.
"""

from .conversions import (
    rgb_to_lab, rgb_array_to_lab, lab_distance_squared_components,
    rgb_to_int, int_to_rgb, int_to_hex, hex_to_int
)
from .ciede2000 import delta_e_2000, delta_e_76, get_metric
from .palette import Color, PaletteEntry, Palette, PixelBuffer, build_palette
from .selection import select_dominant_colors

__all__ = [
    'rgb_to_lab',
    'rgb_array_to_lab',
    'lab_distance_squared_components',
    'rgb_to_int',
    'int_to_rgb',
    'int_to_hex',
    'hex_to_int',
    'delta_e_2000',
    'delta_e_76',
    'get_metric',
    'Color',
    'PaletteEntry',
    'Palette',
    'PixelBuffer',
    'build_palette',
    'select_dominant_colors'
]
