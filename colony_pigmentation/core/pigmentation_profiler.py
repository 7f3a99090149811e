"""
Pigmentation Profiler Module

Reduces a colony image + cleaned mask to a left-to-right pigmentation
profile:

1. Bounding rect of the colony
2. Vertical area of interest (AOI) centered on the colony, re-bounded
3. Column buckets across the AOI
4. Per-pixel pigmentation = similarity to the pigmentation key color,
   rescaled above a baseline
5. Mean / standard deviation per bucket
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from colony_pigmentation.core.geometry import Rect
from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer, ensure_same_geometry
from colony_pigmentation.errors import ConfigurationError, DegenerateInputError
from colony_pigmentation.utils.color_delta import clamped_interpolation, normalized_lab_distance
from colony_pigmentation.utils.color_space import RGBColor, rgb_to_lab

logger = logging.getLogger(__name__)

DEFAULT_PIGMENTATION_KEY_COLOR = RGBColor(128, 61, 51)

# Each 0.1 of average pigmentation adds one repetition of x to the 1D series
ONE_DIMENSION_BIN = 0.1


@dataclass(frozen=True)
class PigmentationSample:
    """
    Attributes:
        x: 0~1 position of the sample along the colony
        average_pigmentation: 0~1 mean pigmentation of the bucket
        standard_deviation: spread of the bucket's pigmentation values
        included_column_indices: image columns averaged into this sample
    """

    x: float
    average_pigmentation: float
    standard_deviation: float
    included_column_indices: Tuple[int, ...] = ()


@dataclass
class ProfilerConfig:
    """
    Attributes:
        pigmentation_key_color: color considered maximum pigmentation
        baseline_pigmentation: 0~1 cut-off; pigmentation at or below it becomes 0
        baseline_series: per-bucket baselines that replace ``baseline_pigmentation``;
            requires ``horizontal_samples`` of the same length
        area_of_interest_height_percentage: 0~1 share of the colony height
            sampled around its vertical center
        horizontal_samples: bucket count; None means one bucket per column
    """

    pigmentation_key_color: RGBColor = field(default_factory=lambda: DEFAULT_PIGMENTATION_KEY_COLOR)
    baseline_pigmentation: float = 0.0
    baseline_series: Optional[Sequence[float]] = None
    area_of_interest_height_percentage: float = 1.0
    horizontal_samples: Optional[int] = None

    def validate(self) -> None:
        if not 0.0 <= self.baseline_pigmentation <= 1.0:
            raise ConfigurationError(
                f"baseline pigmentation must be a value between 0 and 1, got {self.baseline_pigmentation}"
            )
        if not 0.0 <= self.area_of_interest_height_percentage <= 1.0:
            raise ConfigurationError(
                "area of interest height percentage must be a value between 0 and 1, "
                f"got {self.area_of_interest_height_percentage}"
            )
        if self.horizontal_samples is not None and self.horizontal_samples < 1:
            raise ConfigurationError(f"horizontal samples must be at least 1, got {self.horizontal_samples}")
        if self.baseline_series is not None:
            if self.horizontal_samples is None:
                raise ConfigurationError("A baseline series requires a fixed number of horizontal samples")
            if len(self.baseline_series) != self.horizontal_samples:
                raise ConfigurationError(
                    f"The baseline series has {len(self.baseline_series)} values but "
                    f"{self.horizontal_samples} horizontal samples are configured"
                )

    def bucket_baselines(self, bucket_count: int) -> np.ndarray:
        if self.baseline_series is not None:
            return np.asarray(self.baseline_series, dtype=np.float64)
        return np.full(bucket_count, self.baseline_pigmentation, dtype=np.float64)


def colony_bounding_rect(mask: MaskBuffer) -> Rect:
    """
    Smallest rect containing every foreground pixel.

    Raises:
        DegenerateInputError: no foreground, or a colony not larger than 1x1
    """
    grid = mask.grid()
    columns = np.flatnonzero(grid.any(axis=1))
    rows = np.flatnonzero(grid.any(axis=0))
    if columns.size == 0:
        raise DegenerateInputError("No foreground pixels found in mask")

    rect = Rect.from_bounds(int(columns[0]), int(rows[0]), int(columns[-1]) + 1, int(rows[-1]) + 1)
    if rect.size.width <= 1 or rect.size.height <= 1:
        raise DegenerateInputError(f"Colony should be larger than 1x1, got {rect.size}")
    return rect


def area_of_interest(
    mask: MaskBuffer, height_percentage: float, bounding_rect: Optional[Rect] = None
) -> Tuple[Rect, MaskBuffer]:
    """
    Restrict ``mask`` to a horizontal band centered on the colony.

    The band is ``height_percentage`` of the colony height; the bounding rect
    is computed again afterwards because trimming rows can move the left and
    right edges. ``bounding_rect`` skips the first computation when the
    caller already has it.

    Returns:
        (AOI rect, copy of ``mask`` with everything outside the band cleared)

    Raises:
        DegenerateInputError: no foreground before or after trimming
    """
    if bounding_rect is None:
        bounding_rect = colony_bounding_rect(mask)

    band_height = int(height_percentage * bounding_rect.size.height)
    band = Rect.from_bounds(
        bounding_rect.min_x,
        bounding_rect.mid_y - band_height // 2,
        bounding_rect.max_x,
        bounding_rect.mid_y - band_height // 2 + band_height,
    )

    restricted = mask.copy()
    restricted.remove_pixels_outside(band)

    try:
        rect = colony_bounding_rect(restricted)
    except DegenerateInputError as e:
        raise DegenerateInputError(f"Couldn't find bounding rect after applying area of interest {band}: {e}")

    logger.debug(f"Colony bounding rect {bounding_rect}, area of interest {rect}")
    return rect, restricted


def bucket_column_ranges(rect: Rect, bucket_count: int) -> List[range]:
    """
    Split the columns of ``rect`` into ``bucket_count`` contiguous ranges.

    Bucket ``i`` starts at ``min_x + floor(i * width / bucket_count)``.
    """
    width = rect.size.width
    if bucket_count > width:
        raise ConfigurationError(
            f"The number of horizontal samples ({bucket_count}) exceeds the width of the colony ({width})"
        )
    return [
        range(rect.min_x + (i * width) // bucket_count, rect.min_x + ((i + 1) * width) // bucket_count)
        for i in range(bucket_count)
    ]


def sample_positions(bucket_count: int) -> np.ndarray:
    """0~1 x position of each bucket; a single bucket sits at 0."""
    if bucket_count == 1:
        return np.zeros(1)
    return np.arange(bucket_count) / (bucket_count - 1)


def pigmentation_similarity(pixels_rgb: np.ndarray, key_color: RGBColor) -> np.ndarray:
    """
    1 - normalized distance from the key color to each RGB pixel.

    The key color is the evaluated color, so one divisor applies to every
    pixel of the image.
    """
    return 1.0 - normalized_lab_distance(rgb_to_lab(key_color.as_array()), rgb_to_lab(pixels_rgb))


class PigmentationProfiler:
    """
    Column-bucketed pigmentation profile of a masked colony.
    """

    def __init__(self, config: ProfilerConfig = None):
        """
        Raises:
            ConfigurationError: invalid ranges or baseline series length
        """
        self.config = config or ProfilerConfig()
        self.config.validate()

    def extract_profile(self, image: ImageBuffer, mask: MaskBuffer) -> List[PigmentationSample]:
        """
        Args:
            image: RGB colony image
            mask: cleaned colony mask with the same geometry

        Returns:
            one PigmentationSample per bucket, ordered left to right

        Raises:
            DegenerateInputError: mask without a usable colony
            ConfigurationError: more buckets than AOI columns
        """
        ensure_same_geometry(image, mask)
        rect, restricted = area_of_interest(mask, self.config.area_of_interest_height_percentage)
        return self.profile_area(image, rect, restricted)

    def profile_area(self, image: ImageBuffer, rect: Rect, restricted: MaskBuffer) -> List[PigmentationSample]:
        """
        Profile an area of interest already computed by ``area_of_interest``.

        Raises:
            ConfigurationError: more buckets than AOI columns
        """
        ensure_same_geometry(image, restricted)

        bucket_count = self.config.horizontal_samples or rect.size.width
        columns = bucket_column_ranges(rect, bucket_count)
        baselines = self.config.bucket_baselines(bucket_count)

        region_mask = restricted.grid()[rect.min_x : rect.max_x, rect.min_y : rect.max_y]
        region_pixels = image.grid()[rect.min_x : rect.max_x, rect.min_y : rect.max_y]
        similarity = pigmentation_similarity(region_pixels, self.config.pigmentation_key_color)

        positions = sample_positions(bucket_count)
        samples = []
        for index, column_range in enumerate(columns):
            start, stop = column_range.start - rect.min_x, column_range.stop - rect.min_x
            values = similarity[start:stop][region_mask[start:stop]]

            if values.size == 0:
                logger.warning(
                    f"Found no foreground pixels in mask for sample index {index} "
                    f"(columns {column_range.start}..{column_range.stop - 1} in area of interest {rect})"
                )
                average, deviation = 0.0, 0.0
            else:
                pigmentation = clamped_interpolation(baselines[index], 1.0, values)
                average, deviation = float(np.mean(pigmentation)), float(np.std(pigmentation))

            samples.append(
                PigmentationSample(
                    x=float(positions[index]),
                    average_pigmentation=average,
                    standard_deviation=deviation,
                    included_column_indices=tuple(column_range),
                )
            )

        logger.info(f"Pigmentation profile extracted: {len(samples)} samples over {rect}")
        return samples


def one_dimension_histogram(samples: Sequence[PigmentationSample]) -> List[float]:
    """
    Expand a profile into a 1D series: each sample contributes its ``x``
    repeated ``int(average_pigmentation / 0.1)`` times.
    """
    series = []
    for sample in samples:
        series.extend([sample.x] * int(sample.average_pigmentation / ONE_DIMENSION_BIN))
    return series
