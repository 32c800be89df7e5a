"""
Color space conversions.

sRGB <-> CIELAB (D65) in scalar and vectorized form, plus lossless
conversions between RGB triples, packed 24-bit integers and hex strings.
"""

import string
from typing import Tuple

import numpy as np

LabTriple = Tuple[float, float, float]

# D65 reference white
WHITE_D65 = (0.95047, 1.0, 1.08883)

# CIE constants (exact rational forms)
LAB_EPSILON = 216.0 / 24389.0
LAB_KAPPA = 24389.0 / 27.0

# Linear sRGB -> XYZ (D65)
SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])


def _srgb_to_linear(channel: np.ndarray) -> np.ndarray:
    """Undo the sRGB transfer curve on channel values in [0, 1]."""
    return np.where(
        channel > 0.04045,
        ((channel + 0.055) / 1.055) ** 2.4,
        channel / 12.92,
    )


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(t > LAB_EPSILON, np.cbrt(t), (LAB_KAPPA * t + 16.0) / 116.0)


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert an (N, 3) array of 8-bit RGB values to an (N, 3) Lab array."""
    rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3) / 255.0
    linear = _srgb_to_linear(rgb)
    xyz = linear @ SRGB_TO_XYZ.T
    xyz = xyz / np.array(WHITE_D65)

    fx, fy, fz = (_lab_f(xyz[:, i]) for i in range(3))

    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)

    return np.column_stack([L, a, b])


def rgb_to_lab(r: int, g: int, b: int) -> LabTriple:
    """Convert a single 8-bit sRGB triple to (L*, a*, b*)."""
    L, a, b_val = rgb_array_to_lab(np.array([[r, g, b]]))[0]
    return float(L), float(a), float(b_val)


def lab_distance_squared_components(lab1: LabTriple, lab2: LabTriple) -> LabTriple:
    """Squared per-axis differences (dL^2, da^2, db^2) between two Lab colors."""
    return (
        (lab1[0] - lab2[0]) ** 2,
        (lab1[1] - lab2[1]) ** 2,
        (lab1[2] - lab2[2]) ** 2,
    )


def rgb_to_int(r: int, g: int, b: int) -> int:
    """Pack an RGB triple into a 24-bit integer."""
    return (int(r) << 16) | (int(g) << 8) | int(b)


def int_to_rgb(value: int) -> Tuple[int, int, int]:
    """Unpack a 24-bit integer into an RGB triple."""
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def int_to_hex(value: int) -> str:
    """Format a 24-bit integer as 6 lowercase, zero-padded hex digits."""
    return f"{value & 0xFFFFFF:06x}"


def hex_to_int(hex_color: str) -> int:
    """Parse a 6-digit hex color (optional leading '#') into a 24-bit integer."""
    digits = hex_color.removeprefix('#')
    if len(digits) != 6 or any(c not in string.hexdigits for c in digits):
        raise ValueError(f"Expected a 6-digit hex color, got {hex_color!r}")
    return int(digits, 16)
