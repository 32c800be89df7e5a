"""
calpalette Configuration
Manages environment variables and defaults for color extraction and caching.
"""
import os
from typing import Literal, Optional


class Config:
    """Configuration class for calpalette services."""

    # Dominant color extraction
    COLOR_COUNT: int = int(os.environ.get("CALPALETTE_COLOR_COUNT", "5"))
    QUANTIZE_BITS: int = int(os.environ.get("CALPALETTE_QUANTIZE_BITS", "5"))
    SAMPLE_WIDTH: int = int(os.environ.get("CALPALETTE_SAMPLE_WIDTH", "100"))
    DISTANCE_METRIC: Literal["ciede2000", "cie76"] = os.environ.get("CALPALETTE_DISTANCE_METRIC", "ciede2000")

    # Result cache
    CACHE_BACKEND: Literal["sidecar", "redis", "none"] = os.environ.get("CALPALETTE_CACHE_BACKEND", "sidecar")
    CACHE_EXTENSION: str = os.environ.get("CALPALETTE_CACHE_EXTENSION", ".colors")
    CACHE_ROOT: Optional[str] = os.environ.get("CALPALETTE_CACHE_ROOT")
    REDIS_URL: Optional[str] = os.environ.get("CALPALETTE_REDIS_URL")
    REDIS_PREFIX: str = os.environ.get("CALPALETTE_REDIS_PREFIX", "calpalette:colors:")

    # Logging
    LOG_LEVEL: str = os.environ.get("CALPALETTE_LOG_LEVEL", "INFO")

    # Batch processing
    WORKERS: int = int(os.environ.get("CALPALETTE_WORKERS", "1"))

    # Supported image formats
    SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff", ".bmp", ".gif"}

    @classmethod
    def validate_metric(cls, metric: str) -> bool:
        """Validate distance metric name."""
        return metric in ["ciede2000", "cie76"]

    @classmethod
    def validate_bits(cls, bits: int) -> bool:
        """Validate quantization bit depth."""
        return 1 <= bits <= 8

    @classmethod
    def validate_color_count(cls, count: int) -> bool:
        """Validate requested number of dominant colors."""
        return 1 <= count <= 64

    @classmethod
    def validate_cache_backend(cls, backend: str) -> bool:
        """Validate cache backend name."""
        return backend in ["sidecar", "redis", "none"]

    @classmethod
    def algorithm_signature(cls, metric: Optional[str] = None,
                            bits: Optional[int] = None,
                            sample_width: Optional[int] = None) -> str:
        """Describe the extraction settings a cached result was produced with."""
        metric = metric or cls.DISTANCE_METRIC
        bits = bits if bits is not None else cls.QUANTIZE_BITS
        sample_width = sample_width if sample_width is not None else cls.SAMPLE_WIDTH
        return f"{metric}/q{bits}/w{sample_width}"


# Global config instance
config = Config()
