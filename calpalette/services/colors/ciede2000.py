"""
Perceptual color difference metrics.

Implements CIEDE2000 (Sharma, Wu & Dalal, 2005) over CIELAB with unit
parametric factors, vectorized with numpy so one color can be compared
against a whole palette at once. CIE76 is kept as a cheaper reference metric.
"""

from typing import Callable, Dict, Union

import numpy as np

from .conversions import lab_distance_squared_components

POW25_7 = 25.0 ** 7

LabLike = Union[np.ndarray, tuple, list]
Distance = Union[float, np.ndarray]


def _finish(result: np.ndarray) -> Distance:
    return float(result) if np.ndim(result) == 0 else result


def delta_e_2000(lab1: LabLike, lab2: LabLike,
                 k_l: float = 1.0, k_c: float = 1.0, k_h: float = 1.0) -> Distance:
    """
    CIEDE2000 color difference between Lab colors.

    Args:
        lab1: Lab triple or (..., 3) array
        lab2: Lab triple or (..., 3) array, broadcast against lab1
        k_l, k_c, k_h: Parametric weighting factors (1.0 for reference conditions)

    Returns:
        A float for two single colors, otherwise an array of distances
    """
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)

    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    # a* axis correction from mean chroma
    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar7 = ((C1 + C2) / 2.0) ** 7
    G = 0.5 * (1.0 - np.sqrt(C_bar7 / (C_bar7 + POW25_7)))

    a1_p = (1.0 + G) * a1
    a2_p = (1.0 + G) * a2
    C1_p = np.hypot(a1_p, b1)
    C2_p = np.hypot(a2_p, b2)
    h1_p = np.degrees(np.arctan2(b1, a1_p)) % 360.0
    h2_p = np.degrees(np.arctan2(b2, a2_p)) % 360.0

    chroma_product = C1_p * C2_p
    achromatic = chroma_product == 0

    # Differences
    dL_p = L2 - L1
    dC_p = C2_p - C1_p

    dh_p = h2_p - h1_p
    dh_p = np.where(dh_p > 180.0, dh_p - 360.0, dh_p)
    dh_p = np.where(dh_p < -180.0, dh_p + 360.0, dh_p)
    dh_p = np.where(achromatic, 0.0, dh_p)
    dH_p = 2.0 * np.sqrt(chroma_product) * np.sin(np.radians(dh_p / 2.0))

    # Means
    L_bar_p = (L1 + L2) / 2.0
    C_bar_p = (C1_p + C2_p) / 2.0

    h_sum = h1_p + h2_p
    h_bar_p = np.where(
        np.abs(h1_p - h2_p) <= 180.0,
        h_sum / 2.0,
        np.where(h_sum < 360.0, (h_sum + 360.0) / 2.0, (h_sum - 360.0) / 2.0),
    )
    h_bar_p = np.where(achromatic, h_sum, h_bar_p)

    # Weighting functions
    T = (1.0
         - 0.17 * np.cos(np.radians(h_bar_p - 30.0))
         + 0.24 * np.cos(np.radians(2.0 * h_bar_p))
         + 0.32 * np.cos(np.radians(3.0 * h_bar_p + 6.0))
         - 0.20 * np.cos(np.radians(4.0 * h_bar_p - 63.0)))

    L_offset2 = (L_bar_p - 50.0) ** 2
    S_L = 1.0 + (0.015 * L_offset2) / np.sqrt(20.0 + L_offset2)
    S_C = 1.0 + 0.045 * C_bar_p
    S_H = 1.0 + 0.015 * C_bar_p * T

    # Blue-region rotation
    d_theta = 30.0 * np.exp(-(((h_bar_p - 275.0) / 25.0) ** 2))
    C_bar_p7 = C_bar_p ** 7
    R_C = 2.0 * np.sqrt(C_bar_p7 / (C_bar_p7 + POW25_7))
    R_T = -np.sin(np.radians(2.0 * d_theta)) * R_C

    l_term = dL_p / (k_l * S_L)
    c_term = dC_p / (k_c * S_C)
    h_term = dH_p / (k_h * S_H)

    total = l_term ** 2 + c_term ** 2 + h_term ** 2 + R_T * c_term * h_term
    return _finish(np.sqrt(np.maximum(total, 0.0)))


def delta_e_76(lab1: LabLike, lab2: LabLike) -> Distance:
    """CIE76 color difference (Euclidean distance in Lab)."""
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)
    dl2, da2, db2 = lab_distance_squared_components(
        np.moveaxis(lab1, -1, 0), np.moveaxis(lab2, -1, 0)
    )
    return _finish(np.sqrt(dl2 + da2 + db2))


METRICS: Dict[str, Callable[[LabLike, LabLike], Distance]] = {
    "ciede2000": delta_e_2000,
    "cie76": delta_e_76,
}


def get_metric(name: str) -> Callable[[LabLike, LabLike], Distance]:
    """Resolve a distance metric by name."""
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(f"Unknown distance metric '{name}'. Supported: {', '.join(METRICS)}")
