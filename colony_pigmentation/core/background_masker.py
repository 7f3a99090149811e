"""
Background Masker Module

Chroma-key segmentation: every pixel whose normalized L*a*b* distance to the
background key color exceeds a threshold is foreground (colony), the rest is
background.
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer
from colony_pigmentation.errors import ConfigurationError
from colony_pigmentation.utils.color_delta import normalized_lab_distance
from colony_pigmentation.utils.color_space import RGBColor, rgb_to_lab

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND_KEY_COLOR = RGBColor(51, 57, 62)


@dataclass
class MaskConfig:
    """
    Background masking settings

    Attributes:
        background_key_color: color the background is compared against
        threshold: 0~1. Higher means a pixel must be more different from the
            key color to count as foreground.
        chunk_pixels: pixels classified per vectorized batch; bounds the
            temporary float arrays on large images
    """

    background_key_color: RGBColor = field(default_factory=lambda: DEFAULT_BACKGROUND_KEY_COLOR)
    threshold: float = 0.15
    chunk_pixels: int = 1 << 20

    def validate(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"Background threshold must be a value between 0 and 1, got {self.threshold}")
        if self.chunk_pixels < 1:
            raise ConfigurationError(f"chunk_pixels must be positive, got {self.chunk_pixels}")


class BackgroundMasker:
    """
    Chroma-key background masker

    Algorithm:
    1. Convert the key color and every pixel to L*a*b*
    2. normalized distance(pixel, key), lightness included
    3. foreground where distance > threshold
    """

    def __init__(self, config: MaskConfig = None):
        """
        Args:
            config: masking settings (defaults when None)

        Raises:
            ConfigurationError: threshold outside 0~1
        """
        self.config = config or MaskConfig()
        self.config.validate()
        self._key_lab = rgb_to_lab(self.config.background_key_color.as_array())

    def create_mask(self, image: ImageBuffer) -> MaskBuffer:
        """
        Classify every pixel of ``image``.

        Args:
            image: RGB image buffer

        Returns:
            MaskBuffer with the same geometry as ``image``
        """
        pixels = image.pixels
        foreground = np.empty(pixels.shape[0], dtype=bool)

        step = self.config.chunk_pixels
        for start in range(0, pixels.shape[0], step):
            chunk_lab = rgb_to_lab(pixels[start : start + step])
            distance = normalized_lab_distance(chunk_lab, self._key_lab)
            foreground[start : start + step] = distance > self.config.threshold

        mask = MaskBuffer(image.size, foreground)

        total_pixels = image.size.area
        valid_pixels = mask.foreground_count
        ratio = valid_pixels / total_pixels if total_pixels > 0 else 0.0
        logger.info(f"Mask created: {valid_pixels}/{total_pixels} pixels ({ratio*100:.1f}% foreground)")

        return mask
