"""
calpalette

Dominant color extraction for calendar photos: palette quantization,
CIEDE2000 distance, greedy diverse selection and an mtime-validated cache.
"""

__version__ = "1.0.0"
