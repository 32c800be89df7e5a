"""
Unit tests for color space conversions.

Tests:
- sRGB to CIELAB (scalar and vectorized)
- packed integer / hex string bijection
"""

import numpy as np
import pytest

from calpalette.services.colors.conversions import (
    rgb_to_lab, rgb_array_to_lab, lab_distance_squared_components,
    rgb_to_int, int_to_rgb, int_to_hex, hex_to_int
)


class TestRgbToLab:
    """Test sRGB -> CIELAB conversion"""

    def test_black_and_white(self):
        """Black maps to the origin, white to L=100 with no chroma"""
        assert rgb_to_lab(0, 0, 0) == pytest.approx((0.0, 0.0, 0.0), abs=1e-9)
        assert rgb_to_lab(255, 255, 255) == pytest.approx((100.0, 0.0, 0.0), abs=1e-3)

    def test_primaries(self):
        """Test reference Lab values of the sRGB primaries"""
        assert rgb_to_lab(255, 0, 0) == pytest.approx((53.24, 80.09, 67.20), abs=0.05)
        assert rgb_to_lab(0, 255, 0) == pytest.approx((87.73, -86.18, 83.18), abs=0.05)
        assert rgb_to_lab(0, 0, 255) == pytest.approx((32.30, 79.19, -107.86), abs=0.05)

    def test_dark_values_use_linear_segment(self):
        """Very dark colors stay finite and ordered by lightness"""
        l1 = rgb_to_lab(1, 1, 1)[0]
        l2 = rgb_to_lab(10, 10, 10)[0]
        assert 0.0 < l1 < l2 < 5.0

    def test_vectorized_matches_scalar(self):
        """Test that the array form agrees with the scalar form"""
        rng = np.random.default_rng(7)
        rgb = rng.integers(0, 256, size=(50, 3))
        lab = rgb_array_to_lab(rgb)

        assert lab.shape == (50, 3)
        for row, expected in zip(rgb, lab):
            assert rgb_to_lab(*row) == pytest.approx(tuple(expected), abs=1e-9)

    def test_squared_components(self):
        """Test per-axis squared differences"""
        assert lab_distance_squared_components((50, 10, -5), (47, 14, -5)) == (9, 16, 0)


class TestIntHexConversion:
    """Test lossless packed-integer and hex conversions"""

    def test_known_values(self):
        """Test zero padding and lowercase output"""
        assert int_to_hex(0) == "000000"
        assert int_to_hex(0xFFFFFF) == "ffffff"
        assert int_to_hex(0x2F8DAB) == "2f8dab"
        assert int_to_hex(0x0000FF) == "0000ff"

    def test_hex_parsing_is_lenient_on_prefix_and_case(self):
        """Test hash prefix and upper case input"""
        assert hex_to_int("#2F8DAB") == 0x2F8DAB
        assert hex_to_int("2f8dab") == 0x2F8DAB

    @pytest.mark.parametrize("text", ["fff", "#fff", "##2f8dab", "2f8dab0", "0x2f8d", "2f8dag", " 2f8da", ""])
    def test_hex_parsing_rejects_malformed(self, text):
        """Test only an optional single '#' and exactly six hex digits are accepted"""
        with pytest.raises(ValueError):
            hex_to_int(text)

    def test_round_trip_sample(self):
        """Test both directions of the bijection on a spread of values"""
        rng = np.random.default_rng(42)
        values = [0, 1, 0xFF, 0xFF00, 0xFF0000, 0xFFFFFF] + [int(v) for v in rng.integers(0, 0x1000000, 2000)]

        for value in values:
            text = int_to_hex(value)
            assert len(text) == 6
            assert hex_to_int(text) == value
            assert int_to_hex(hex_to_int(text)) == text

    def test_rgb_packing(self):
        """Test RGB triple packing"""
        assert rgb_to_int(0x2F, 0x8D, 0xAB) == 0x2F8DAB
        assert int_to_rgb(0x2F8DAB) == (0x2F, 0x8D, 0xAB)
        assert int_to_rgb(rgb_to_int(0, 0, 0)) == (0, 0, 0)
