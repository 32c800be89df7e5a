"""
calpalette Schemas
Pydantic models for the cache record format and page color summaries.
"""
import hashlib
import time
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

RECORD_FORMAT = "calpalette.colors"
RECORD_VERSION = 1


def colors_checksum(colors: List[str]) -> str:
    """SHA-256 over the ordered color list."""
    return hashlib.sha256(",".join(colors).encode("ascii")).hexdigest()


class CacheRecord(BaseModel):
    """Persisted dominant color result for one source image."""
    format: Literal["calpalette.colors"] = Field(RECORD_FORMAT, description="Record type tag")
    version: Literal[1] = Field(RECORD_VERSION, description="Record format version")
    source_path: str = Field(..., description="Source image path the colors were extracted from")
    source_mtime_ns: int = Field(..., ge=0, description="Source modification time when extracted")
    color_count: int = Field(..., ge=1, description="Number of colors requested")
    algorithm: str = Field(..., description="Extraction settings signature")
    colors: List[str] = Field(..., description="Dominant colors as lowercase 6-digit hex")
    checksum: str = Field(..., pattern=r"^[0-9a-f]{64}$", description="SHA-256 of the color list")
    created_at_ns: int = Field(default_factory=time.time_ns, description="Record creation time")

    @model_validator(mode="after")
    def _verify(self) -> "CacheRecord":
        for color in self.colors:
            if len(color) != 6 or any(c not in "0123456789abcdef" for c in color):
                raise ValueError(f"Invalid hex color in record: {color!r}")
        if len(self.colors) > self.color_count:
            raise ValueError("Record holds more colors than requested")
        if colors_checksum(self.colors) != self.checksum:
            raise ValueError("Checksum mismatch")
        return self

    @classmethod
    def create(cls, source_path: str, source_mtime_ns: int, color_count: int,
               algorithm: str, colors: List[str]) -> "CacheRecord":
        return cls(
            source_path=source_path,
            source_mtime_ns=source_mtime_ns,
            color_count=color_count,
            algorithm=algorithm,
            colors=list(colors),
            checksum=colors_checksum(list(colors)),
        )


class ColorSummary(BaseModel):
    """Dominant colors of one calendar photo, as used by page rendering."""
    source: str = Field(..., description="Source image path")
    colors: List[str] = Field(..., description="Dominant colors, most dominant first")
    color: Optional[str] = Field(None, description="Primary color (first of colors)")

    @classmethod
    def from_colors(cls, source: str, colors: List[str]) -> "ColorSummary":
        return cls(source=source, colors=colors, color=colors[0] if colors else None)


class ExtractionFailure(BaseModel):
    """Error line emitted for an image that could not be processed."""
    source: str = Field(..., description="Source image path")
    error: str = Field(..., description="Error class name")
    detail: str = Field(..., description="Error message")
