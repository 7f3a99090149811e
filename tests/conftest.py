from pathlib import Path

import cv2
import numpy as np
import pytest

from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer

# Default background key color and pigmentation key color
BACKGROUND_RGB = (51, 57, 62)
PIGMENT_RGB = (128, 61, 51)


@pytest.fixture
def rgb_array():
    """Row-major (H, W, 3) uint8 array filled with one color (background by default)."""

    def _make(width: int, height: int, color=BACKGROUND_RGB) -> np.ndarray:
        array = np.zeros((height, width, 3), dtype=np.uint8)
        array[:, :] = color
        return array

    return _make


@pytest.fixture
def split_array(rgb_array):
    """Left half background color, right half pigmentation color."""

    def _make(width: int = 20, height: int = 10) -> np.ndarray:
        array = rgb_array(width, height, BACKGROUND_RGB)
        array[:, width // 2 :] = PIGMENT_RGB
        return array

    return _make


@pytest.fixture
def split_image(split_array) -> ImageBuffer:
    # 20x10: columns 0~9 background, 10~19 pigmentation color
    return ImageBuffer.from_array(split_array())


@pytest.fixture
def mask_from_rows():
    """Mask from strings such as ``"..##"``; ``#`` is foreground, one string per row."""

    def _make(rows) -> MaskBuffer:
        return MaskBuffer.from_array(np.array([[char == "#" for char in row] for row in rows], dtype=bool))

    return _make


@pytest.fixture
def write_png(tmp_path: Path):
    def _make(array: np.ndarray, name="image.png"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        assert cv2.imwrite(str(path), cv2.cvtColor(array, cv2.COLOR_RGB2BGR))
        return path

    return _make
