"""
Test configuration and fixtures for calpalette tests.
"""
import os
import time

import numpy as np
import pytest
from PIL import Image


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from calpalette.services.observability import get_metrics_collector
    get_metrics_collector().reset()


@pytest.fixture
def write_image(tmp_path):
    """Factory writing an RGB array to a PNG file with an mtime in the past."""
    def _write(rgb: np.ndarray, name: str = "photo.png"):
        path = tmp_path / name
        Image.fromarray(np.asarray(rgb, dtype=np.uint8)).save(path)
        past = time.time() - 100
        os.utime(path, (past, past))
        return path
    return _write


@pytest.fixture
def striped_image():
    """200x100 image: red left half, blue right quarter, green right quarter."""
    img = np.zeros((100, 200, 3), dtype=np.uint8)
    img[:, :100] = (255, 0, 0)
    img[:, 100:150] = (0, 0, 255)
    img[:, 150:] = (0, 255, 0)
    return img
