"""
Physical size of a masked colony.
"""

from dataclasses import dataclass

from colony_pigmentation.core.pixel_buffer import MaskBuffer


@dataclass(frozen=True)
class ColonySize:
    """
    Attributes:
        square_pixels: number of foreground pixels
    """

    square_pixels: int

    def square_millimeters(self, micrometers_per_pixel: float) -> float:
        """
        Args:
            micrometers_per_pixel: side length of one pixel in µm

        Example:
            >>> ColonySize(1_000_000).square_millimeters(2.0)
            4.0
        """
        return self.square_pixels * (micrometers_per_pixel * micrometers_per_pixel) / (1000 * 1000)


def measure_colony_size(mask: MaskBuffer) -> ColonySize:
    return ColonySize(mask.foreground_count)
