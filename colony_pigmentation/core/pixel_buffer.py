"""
Dense pixel buffers

One buffer type, specialised by element kind:
- ImageBuffer: uint8 RGB triples, array shape (N, 3)
- MaskBuffer: booleans, True = foreground (white), False = background (black)

Elements live in a flat numpy array indexed through ``Rect.pixel_index``
(column-major). The element count is fixed at construction; assigning an
array of another length raises ValueError. ``from_array`` / ``to_array``
translate to and from the row-major (H, W[, C]) layout used by OpenCV.
"""

from enum import IntEnum
from typing import Tuple

import numpy as np

from colony_pigmentation.core.geometry import Coordinate, PixelSize, Rect
from colony_pigmentation.utils.color_space import RGBColor


class MaskBit(IntEnum):
    BACKGROUND = 0
    FOREGROUND = 1

    @property
    def opposite(self) -> "MaskBit":
        return MaskBit.BACKGROUND if self is MaskBit.FOREGROUND else MaskBit.FOREGROUND

    @property
    def color(self) -> RGBColor:
        return RGBColor.WHITE if self is MaskBit.FOREGROUND else RGBColor.BLACK


class PixelBuffer:
    """
    Fixed-size 2D buffer of pixel elements.

    Subclasses declare ``dtype`` and ``channels`` (0 for scalar elements).
    """

    dtype = np.uint8
    channels = 0

    def __init__(self, size: PixelSize, pixels: np.ndarray):
        pixels = np.ascontiguousarray(pixels, dtype=self.dtype)
        expected_shape = self._element_shape(size.area)
        if pixels.shape != expected_shape:
            raise ValueError(f"{type(self).__name__} of size {size} expects pixels of shape {expected_shape}, got {pixels.shape}")

        self._size = size
        self._rect = Rect(Coordinate.ZERO, size)
        self._pixels = pixels

    @classmethod
    def _element_shape(cls, count: int) -> Tuple[int, ...]:
        return (count, cls.channels) if cls.channels else (count,)

    @classmethod
    def filled(cls, size: PixelSize, value) -> "PixelBuffer":
        pixels = np.empty(cls._element_shape(size.area), dtype=cls.dtype)
        pixels[...] = value
        return cls(size, pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build a buffer from a row-major (H, W[, C]) array."""
        array = np.asarray(array)
        height, width = array.shape[:2]
        # (H, W, ...) -> (W, H, ...) so that flattening walks columns
        flat = np.ascontiguousarray(np.swapaxes(array, 0, 1)).reshape(cls._element_shape(width * height))
        return cls(PixelSize(width, height), flat.astype(cls.dtype, copy=False))

    def to_array(self) -> np.ndarray:
        """Row-major (H, W[, C]) copy of the buffer."""
        grid = self.grid()
        return np.ascontiguousarray(np.swapaxes(grid, 0, 1))

    def grid(self) -> np.ndarray:
        """(W, H[, C]) view sharing memory with the buffer, indexed ``[x, y]``."""
        shape = (self._size.width, self._size.height) + ((self.channels,) if self.channels else ())
        return self._pixels.reshape(shape)

    @property
    def size(self) -> PixelSize:
        return self._size

    @property
    def rect(self) -> Rect:
        return self._rect

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @pixels.setter
    def pixels(self, pixels: np.ndarray):
        pixels = np.ascontiguousarray(pixels, dtype=self.dtype)
        if pixels.shape != self._pixels.shape:
            raise ValueError(f"Pixel count is fixed at {self._pixels.shape}, got {pixels.shape}")
        self._pixels = pixels

    def __getitem__(self, coordinate: Coordinate):
        return self._pixels[self._rect.pixel_index(coordinate)]

    def __setitem__(self, coordinate: Coordinate, value):
        self._pixels[self._rect.pixel_index(coordinate)] = value

    def copy(self) -> "PixelBuffer":
        return type(self)(self._size, self._pixels.copy())

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._size == other._size and np.array_equal(self._pixels, other._pixels)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self._size})"


class ImageBuffer(PixelBuffer):
    """RGB image, one uint8 triple per pixel"""

    dtype = np.uint8
    channels = 3

    def __getitem__(self, coordinate: Coordinate) -> RGBColor:
        r, g, b = super().__getitem__(coordinate)
        return RGBColor(int(r), int(g), int(b))

    def __setitem__(self, coordinate: Coordinate, color: RGBColor):
        super().__setitem__(coordinate, color.as_array())


class MaskBuffer(PixelBuffer):
    """Binary colony mask"""

    dtype = np.bool_
    channels = 0

    def __getitem__(self, coordinate: Coordinate) -> MaskBit:
        return MaskBit(int(super().__getitem__(coordinate)))

    def __setitem__(self, coordinate: Coordinate, bit: MaskBit):
        super().__setitem__(coordinate, bool(bit))

    @property
    def foreground_count(self) -> int:
        return int(np.count_nonzero(self._pixels))

    def remove_pixels_outside(self, rect: Rect) -> None:
        """Force every pixel outside ``rect`` to background, in place."""
        keep = np.zeros((self._size.width, self._size.height), dtype=bool)
        clipped = self._rect.intersection(rect)
        keep[clipped.min_x : clipped.max_x, clipped.min_y : clipped.max_y] = True
        self.grid()[~keep] = False

    def to_image(self) -> ImageBuffer:
        """White foreground on black background."""
        pixels = np.where(self._pixels[:, None], np.uint8(255), np.uint8(0)).repeat(3, axis=1)
        return ImageBuffer(self._size, pixels)


def ensure_same_geometry(image: PixelBuffer, mask: PixelBuffer) -> None:
    if image.size != mask.size:
        raise ValueError(f"Image size ({image.size}) must match mask size ({mask.size})")
