"""
calpalette Errors
Exception taxonomy for the color extraction pipeline and its result cache.
"""
from typing import Optional, Union
from pathlib import Path


class ColorExtractionError(Exception):
    """Base class for all extraction errors, optionally tagged with the source path."""

    def __init__(self, message: str, source: Optional[Union[str, Path]] = None):
        self.source = str(source) if source is not None else None
        if self.source:
            message = f"{message} (source: {self.source})"
        super().__init__(message)


class InputError(ColorExtractionError):
    """Empty or malformed pixel buffer, mismatched dimensions, bad parameters."""
    pass


class SourceUnavailableError(ColorExtractionError):
    """Source image missing or unreadable."""
    pass


class CacheCorruptError(ColorExtractionError):
    """Cache record could not be parsed or failed verification."""
    pass


class CachePersistError(ColorExtractionError):
    """Cache record could not be written."""
    pass
