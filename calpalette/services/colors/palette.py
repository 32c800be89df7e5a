"""
Palette construction.

Quantizes a decoded pixel buffer into weighted color buckets. Each bucket is
represented by the original (un-quantized) color of the first pixel that
landed in it, so palette colors stay faithful to the photo.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from calpalette.config import config
from calpalette.errors import InputError
from .conversions import (
    LabTriple, rgb_to_lab, rgb_to_int, int_to_rgb, int_to_hex, hex_to_int
)


@dataclass(frozen=True, order=True)
class Color:
    """An sRGB color with 8-bit channels."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 255:
                raise ValueError(f"Channel value out of range: {channel}")

    @classmethod
    def from_int(cls, value: int) -> "Color":
        return cls(*int_to_rgb(value))

    @classmethod
    def from_hex(cls, hex_color: str) -> "Color":
        return cls.from_int(hex_to_int(hex_color))

    def to_int(self) -> int:
        return rgb_to_int(self.r, self.g, self.b)

    @property
    def hex(self) -> str:
        return int_to_hex(self.to_int())

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return self.r, self.g, self.b

    @property
    def lab(self) -> LabTriple:
        return rgb_to_lab(self.r, self.g, self.b)


@dataclass(frozen=True)
class PaletteEntry:
    """A palette color and the number of source pixels quantized to it."""
    color: Color
    weight: int

    def __post_init__(self):
        if self.weight < 1:
            raise ValueError(f"Palette entry weight must be >= 1, got {self.weight}")


@dataclass(frozen=True)
class Palette:
    """Deduplicated, weighted set of colors observed in an image."""
    entries: Tuple[PaletteEntry, ...]
    bits: int = 5
    pixel_count: int = field(default=0)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PaletteEntry]:
        return iter(self.entries)

    def rgb_array(self) -> np.ndarray:
        """Entry colors as an (N, 3) uint8 array."""
        return np.array([entry.color.rgb for entry in self.entries], dtype=np.uint8).reshape(-1, 3)

    def weights(self) -> np.ndarray:
        return np.array([entry.weight for entry in self.entries], dtype=np.int64)


@dataclass(frozen=True)
class PixelBuffer:
    """A decoded rectangular image: one RGB triple per pixel, row-major."""
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_array(cls, image_rgb: np.ndarray) -> "PixelBuffer":
        """Wrap an (H, W, 3) RGB array."""
        image_rgb = np.asarray(image_rgb)
        if image_rgb.ndim != 3 or image_rgb.shape[2] != 3:
            raise InputError(f"Expected an (H, W, 3) RGB image, got shape {image_rgb.shape}")
        height, width = image_rgb.shape[:2]
        return cls(width=width, height=height, pixels=image_rgb.reshape(-1, 3))

    @classmethod
    def from_sequence(cls, width: int, height: int,
                      pixels: Sequence[Tuple[int, int, int]]) -> "PixelBuffer":
        """Wrap a flat sequence of RGB triples."""
        array = np.asarray(pixels, dtype=np.int64)
        if array.size == 0:
            array = array.reshape(0, 3)
        return cls(width=width, height=height, pixels=array)


def validate_pixel_buffer(buffer: PixelBuffer) -> np.ndarray:
    """
    Check buffer dimensions and channel range.

    Returns:
        Pixels as an (N, 3) uint8 array

    Raises:
        InputError: If the buffer is empty, mis-shaped or out of range
    """
    pixels = np.asarray(buffer.pixels)

    if buffer.width <= 0 or buffer.height <= 0 or pixels.size == 0:
        raise InputError(f"Empty pixel buffer ({buffer.width}x{buffer.height})")

    if pixels.ndim != 2 or pixels.shape[1] != 3:
        raise InputError(f"Expected (N, 3) RGB pixels, got shape {pixels.shape}")

    if pixels.shape[0] != buffer.width * buffer.height:
        raise InputError(
            f"Pixel count mismatch: {buffer.width}x{buffer.height} declares "
            f"{buffer.width * buffer.height} pixels, buffer holds {pixels.shape[0]}"
        )

    if pixels.dtype != np.uint8:
        if pixels.min() < 0 or pixels.max() > 255:
            raise InputError("Channel values must be within [0, 255]")
        pixels = pixels.astype(np.uint8)

    return pixels


def quantize_keys(pixels: np.ndarray, bits: int) -> np.ndarray:
    """Pack each pixel's top `bits` bits per channel into one bucket key."""
    shift = 8 - bits
    q = (pixels >> shift).astype(np.int64)
    return (q[:, 0] << (2 * bits)) | (q[:, 1] << bits) | q[:, 2]


def build_palette(buffer: PixelBuffer, bits: Optional[int] = None) -> Palette:
    """
    Reduce a pixel buffer to a weighted palette.

    Args:
        buffer: Decoded image
        bits: Bits kept per channel when bucketing (1-8)

    Returns:
        Palette with one entry per non-empty bucket

    Raises:
        InputError: If the buffer is invalid or bits is out of range
    """
    bits = config.QUANTIZE_BITS if bits is None else bits
    if not config.validate_bits(bits):
        raise InputError(f"Quantization bits must be within 1-8, got {bits}")

    pixels = validate_pixel_buffer(buffer)
    keys = quantize_keys(pixels, bits)

    # return_index gives the first pixel of each bucket in buffer order
    _, first_index, counts = np.unique(keys, return_index=True, return_counts=True)

    representatives = pixels[first_index]
    entries = tuple(
        PaletteEntry(color=Color(int(r), int(g), int(b)), weight=int(count))
        for (r, g, b), count in zip(representatives, counts)
    )

    logger.debug(f"Built palette: {len(pixels)} pixels -> {len(entries)} buckets at {bits} bits/channel")

    return Palette(entries=entries, bits=bits, pixel_count=int(len(pixels)))
