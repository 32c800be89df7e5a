"""
calpalette Imaging Utilities
Decodes source photos into pixel buffers for palette extraction.
"""
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError

from calpalette.config import config
from calpalette.errors import InputError, SourceUnavailableError
from calpalette.services.colors.palette import PixelBuffer


def downscale_to_width(rgb_array: np.ndarray, sample_width: int) -> np.ndarray:
    """
    Shrink an image to `sample_width` pixels wide, preserving aspect ratio.

    Images already at or below the target width are returned unchanged.
    """
    height, width = rgb_array.shape[:2]
    if not sample_width or width <= sample_width:
        return rgb_array

    new_height = max(1, int(round(height * sample_width / width)))
    return cv2.resize(rgb_array, (sample_width, new_height), interpolation=cv2.INTER_AREA)


def read_rgb_array(path: Union[str, Path]) -> np.ndarray:
    """
    Decode an image file to an (H, W, 3) RGB uint8 array.

    Raises:
        SourceUnavailableError: If the file is missing or cannot be read
        InputError: If the file is not a decodable image
    """
    path = Path(path)
    if not path.is_file():
        raise SourceUnavailableError("Source image not found", source=path)

    try:
        with Image.open(path) as pil_image:
            # Honor camera orientation before sampling
            pil_image = ImageOps.exif_transpose(pil_image)

            if pil_image.mode != 'RGB':
                pil_image = pil_image.convert('RGB')

            rgb_array = np.array(pil_image)
    except UnidentifiedImageError as e:
        raise InputError(f"Unsupported or corrupt image: {e}", source=path) from e
    except (FileNotFoundError, PermissionError, IsADirectoryError) as e:
        raise SourceUnavailableError(f"Failed to read image: {e}", source=path) from e
    except (OSError, ValueError) as e:
        raise InputError(f"Failed to decode image: {e}", source=path) from e

    if rgb_array.ndim != 3 or rgb_array.shape[2] != 3:
        raise InputError(f"Unexpected decoded image shape {rgb_array.shape}", source=path)

    return rgb_array


def load_pixel_buffer(path: Union[str, Path], sample_width: Optional[int] = None) -> PixelBuffer:
    """
    Decode a source photo into a (downscaled) pixel buffer.

    Args:
        path: Image file path
        sample_width: Target width; 0 disables resizing, None uses config

    Returns:
        PixelBuffer of the sampled image
    """
    sample_width = config.SAMPLE_WIDTH if sample_width is None else sample_width

    rgb_array = read_rgb_array(path)
    original_shape = rgb_array.shape[:2]

    if rgb_array.size == 0:
        raise InputError("Image is empty", source=path)

    rgb_array = downscale_to_width(rgb_array, sample_width)

    logger.debug(f"Decoded {path}: {original_shape[1]}x{original_shape[0]} -> "
                 f"{rgb_array.shape[1]}x{rgb_array.shape[0]}")

    return PixelBuffer.from_array(rgb_array)
