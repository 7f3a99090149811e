"""
Colony Visualizer

Renders the intermediate images of a colony analysis (background removal,
pigmentation gray map, area-of-interest perimeter / crop) and the averaged
pigmentation profile chart.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from colony_pigmentation.core.geometry import Rect
from colony_pigmentation.core.pigmentation_profiler import (
    PigmentationSample,
    ProfilerConfig,
    area_of_interest,
    bucket_column_ranges,
    pigmentation_similarity,
)
from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer, ensure_same_geometry
from colony_pigmentation.errors import ResourceError
from colony_pigmentation.utils.color_delta import clamped_interpolation
from colony_pigmentation.utils.color_space import RGBColor

logger = logging.getLogger(__name__)


@dataclass
class VisualizerConfig:
    """Visualizer configuration"""

    # Area of interest
    perimeter_color: RGBColor = field(default_factory=lambda: RGBColor(255, 0, 0))

    # Profile chart
    chart_figure_size: Tuple[int, int] = (10, 5)
    chart_dpi: int = 100
    show_deviation_band: bool = True
    line_color: str = "saddlebrown"


class ColonyVisualizer:
    """
    Colony analysis visualizer

    Image methods never modify their inputs; each returns a new ImageBuffer.
    """

    def __init__(self, config: Optional[VisualizerConfig] = None):
        self.config = config or VisualizerConfig()

    def remove_background(self, image: ImageBuffer, mask: MaskBuffer) -> ImageBuffer:
        """Copy of ``image`` with every background pixel set to black."""
        ensure_same_geometry(image, mask)
        result = image.copy()
        result.pixels[~mask.pixels] = 0
        return result

    def draw_pigmentation(
        self, image: ImageBuffer, mask: MaskBuffer, profiler_config: ProfilerConfig, crop: bool = False
    ) -> ImageBuffer:
        """
        Replace every colony pixel with a gray level equal to its pigmentation.

        When ``profiler_config`` restricts the area of interest or carries a
        baseline series, only the area of interest is drawn (each column with
        the baseline of its bucket) and the result is either cropped to it or
        framed by a perimeter.

        Args:
            image: RGB colony image
            mask: cleaned colony mask
            profiler_config: key color, baseline(s) and area of interest
            crop: return only the area of interest

        Returns:
            Gray pigmentation image, background black

        Raises:
            DegenerateInputError: area of interest requested on a mask without a colony
        """
        ensure_same_geometry(image, mask)
        config = profiler_config
        width, height = image.size.width, image.size.height

        baseline = np.full((width, height), config.baseline_pigmentation, dtype=np.float64)
        rect = None
        if config.area_of_interest_height_percentage < 1.0 or config.baseline_series is not None:
            rect, mask = area_of_interest(mask, config.area_of_interest_height_percentage)
            if config.baseline_series is not None:
                buckets = bucket_column_ranges(rect, config.horizontal_samples)
                for value, columns in zip(config.baseline_series, buckets):
                    baseline[columns.start : columns.stop, :] = value

        similarity = pigmentation_similarity(image.grid(), config.pigmentation_key_color)
        pigmentation = clamped_interpolation(baseline, 1.0, similarity)

        gray = (np.clip(pigmentation, 0.0, 1.0) * 255).astype(np.uint8)
        gray[~mask.grid()] = 0
        result = ImageBuffer(image.size, np.repeat(gray.reshape(-1, 1), 3, axis=1))

        if rect is None:
            return result
        if crop:
            return self.crop(result, rect)
        return self.draw_perimeter(result, rect)

    def draw_perimeter(self, image: ImageBuffer, rect: Rect, color: Optional[RGBColor] = None) -> ImageBuffer:
        """One pixel wide frame just outside ``rect``, clipped to the image."""
        color = color or self.config.perimeter_color
        result = image.copy()
        indices = image.rect.perimeter_indices(rect)
        if indices:
            result.pixels[indices] = color.as_array()
        return result

    def crop(self, image: ImageBuffer, rect: Rect) -> ImageBuffer:
        if not image.rect.contains_rect(rect):
            raise ValueError(f"The provided rect {rect} is not contained within {image.rect}")
        region = image.grid()[rect.min_x : rect.max_x, rect.min_y : rect.max_y]
        return ImageBuffer(rect.size, region.reshape(-1, image.channels))

    def plot_profile(self, samples: Sequence[PigmentationSample], title: str = "Average pigmentation") -> plt.Figure:
        """
        Line chart of average pigmentation along the colony

        Args:
            samples: profile to plot
            title: chart title

        Returns:
            matplotlib Figure
        """
        fig, ax = plt.subplots(figsize=self.config.chart_figure_size, dpi=self.config.chart_dpi)

        x = np.array([s.x for s in samples])
        average = np.array([s.average_pigmentation for s in samples])
        deviation = np.array([s.standard_deviation for s in samples])

        ax.plot(x, average, "-", color=self.config.line_color, linewidth=2, label="Average")
        if self.config.show_deviation_band:
            ax.fill_between(
                x,
                np.clip(average - deviation, 0, 1),
                np.clip(average + deviation, 0, 1),
                color=self.config.line_color,
                alpha=0.2,
                label="± 1 std",
            )

        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.set_xlabel("Position along colony")
        ax.set_ylabel("Pigmentation")
        ax.set_title(title)
        ax.legend(loc="upper right")
        ax.grid(True, alpha=0.3)

        fig.tight_layout()
        return fig

    def save_figure(self, fig: plt.Figure, output_path: Path) -> None:
        """
        Raises:
            ResourceError: figure cannot be written
        """
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_path, dpi=self.config.chart_dpi, bbox_inches="tight")
        except OSError as e:
            raise ResourceError(f"Failed to save chart {output_path}: {e}")
        finally:
            plt.close(fig)
        logger.debug(f"Saved chart to {output_path}")
