"""
Helpers for OpenCV image arrays (row-major H x W x C, uint8).
"""

from __future__ import annotations

import cv2
import numpy as np


class ImageValidationError(ValueError):
    """Array is not an 8-bit color image"""


def _validate_image(image: np.ndarray, name: str = "image") -> None:
    if not isinstance(image, np.ndarray):
        raise ImageValidationError(f"{name} must be numpy.ndarray")
    if image.dtype != np.uint8:
        raise ImageValidationError(f"{name} must have dtype uint8")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ImageValidationError(f"{name} must have 3 channels (H, W, C), got shape {image.shape}")


def bgr_to_rgb(image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV BGR image to RGB."""
    _validate_image(image)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def rgb_to_bgr(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to OpenCV BGR."""
    _validate_image(image)
    return cv2.cvtColor(image, cv2.COLOR_RGB2BGR)


def downscale(image: np.ndarray, factor: float, interpolation: int = cv2.INTER_AREA) -> np.ndarray:
    """
    Shrink both sides by ``factor`` (0 < factor <= 1, truncated to whole pixels).

    A factor of 1 returns the image unchanged.
    """
    _validate_image(image)
    if not 0.0 < factor <= 1.0:
        raise ValueError(f"Downscale factor should be greater than 0 and less than or equal to 1, got {factor}")
    if factor == 1.0:
        return image

    h, w = image.shape[:2]
    new_w, new_h = max(1, int(w * factor)), max(1, int(h * factor))
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)
