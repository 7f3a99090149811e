"""
Unit tests for ColonyVisualizer
"""

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for testing

import matplotlib.pyplot as plt
import numpy as np
import pytest

from colony_pigmentation.core.geometry import Coordinate, PixelSize, Rect
from colony_pigmentation.core.pigmentation_profiler import PigmentationSample, ProfilerConfig
from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer
from colony_pigmentation.errors import ResourceError
from colony_pigmentation.utils.color_space import RGBColor
from colony_pigmentation.visualizer import ColonyVisualizer, VisualizerConfig

PIGMENT = RGBColor(128, 61, 51)
RED = RGBColor(255, 0, 0)


def is_fully_pigmented(color: RGBColor) -> bool:
    # Gray level of pigmentation 1, allowing for float rounding below 1
    return color.r == color.g == color.b >= 254


@pytest.fixture
def visualizer():
    return ColonyVisualizer()


@pytest.fixture
def split_mask(split_image):
    # Right half is the colony
    mask = MaskBuffer.filled(split_image.size, False)
    mask.grid()[10:, :] = True
    return mask


@pytest.fixture
def samples():
    return [PigmentationSample(i / 9, i / 10, 0.05, (i,)) for i in range(10)]


# ================================================================
# Image rendering
# ================================================================


class TestRemoveBackground:
    def test_background_is_black(self, visualizer, split_image, split_mask):
        result = visualizer.remove_background(split_image, split_mask)

        assert result[Coordinate(0, 0)] == RGBColor.BLACK
        assert result[Coordinate(15, 5)] == PIGMENT

    def test_input_untouched(self, visualizer, split_image, split_mask):
        original = split_image.copy()
        visualizer.remove_background(split_image, split_mask)
        assert split_image == original

    def test_geometry_mismatch(self, visualizer, split_image):
        with pytest.raises(ValueError):
            visualizer.remove_background(split_image, MaskBuffer.filled(PixelSize(3, 3), True))


class TestDrawPigmentation:
    def test_full_image(self, visualizer, split_image, split_mask):
        result = visualizer.draw_pigmentation(split_image, split_mask, ProfilerConfig(pigmentation_key_color=PIGMENT))

        assert result.size == split_image.size
        assert result[Coordinate(0, 0)] == RGBColor.BLACK
        assert is_fully_pigmented(result[Coordinate(15, 5)])

    def test_baseline_darkens(self, visualizer, split_image, split_mask):
        config = ProfilerConfig(pigmentation_key_color=RGBColor.WHITE, baseline_pigmentation=1.0)
        result = visualizer.draw_pigmentation(split_image, split_mask, config)

        assert result[Coordinate(15, 5)] == RGBColor.BLACK

    def test_area_of_interest_crop(self, visualizer, split_image, split_mask):
        config = ProfilerConfig(pigmentation_key_color=PIGMENT, area_of_interest_height_percentage=0.5)
        result = visualizer.draw_pigmentation(split_image, split_mask, config, crop=True)

        assert result.size == PixelSize(10, 5)
        assert np.all(result.pixels >= 254)

    def test_area_of_interest_perimeter(self, visualizer, split_image, split_mask):
        config = ProfilerConfig(pigmentation_key_color=PIGMENT, area_of_interest_height_percentage=0.5)
        result = visualizer.draw_pigmentation(split_image, split_mask, config)

        # AOI is columns 10~19, rows 3~7
        assert result[Coordinate(9, 2)] == RED
        assert result[Coordinate(15, 8)] == RED
        assert result[Coordinate(9, 5)] == RED
        assert is_fully_pigmented(result[Coordinate(15, 5)])
        # Colony rows outside the AOI are not drawn
        assert result[Coordinate(15, 0)] == RGBColor.BLACK

    def test_baseline_series_per_bucket(self, visualizer, split_image, split_mask):
        config = ProfilerConfig(
            pigmentation_key_color=RGBColor.WHITE,
            baseline_series=[0.0, 1.0],
            horizontal_samples=2,
        )
        result = visualizer.draw_pigmentation(split_image, split_mask, config, crop=True)

        left, right = result[Coordinate(0, 0)], result[Coordinate(9, 0)]
        assert left.r > 0
        assert right == RGBColor.BLACK


class TestGeometryHelpers:
    def test_draw_perimeter_clipped_to_image(self, visualizer):
        image = ImageBuffer.filled(PixelSize(4, 4), 0)
        result = visualizer.draw_perimeter(image, Rect.from_bounds(0, 0, 2, 2))

        red = [Coordinate(2, 0), Coordinate(2, 1), Coordinate(2, 2), Coordinate(0, 2), Coordinate(1, 2)]
        for coordinate in red:
            assert result[coordinate] == RED
        assert result[Coordinate(0, 0)] == RGBColor.BLACK
        assert result[Coordinate(3, 3)] == RGBColor.BLACK

    def test_custom_perimeter_color(self):
        visualizer = ColonyVisualizer(VisualizerConfig(perimeter_color=RGBColor(0, 255, 0)))
        result = visualizer.draw_perimeter(ImageBuffer.filled(PixelSize(4, 4), 0), Rect.from_bounds(1, 1, 3, 3))
        assert result[Coordinate(0, 0)] == RGBColor(0, 255, 0)

    def test_crop(self, visualizer, split_image):
        result = visualizer.crop(split_image, Rect.from_bounds(8, 2, 12, 4))

        assert result.size == PixelSize(4, 2)
        assert result[Coordinate(0, 0)] == RGBColor(51, 57, 62)
        assert result[Coordinate(3, 1)] == PIGMENT

    def test_crop_outside(self, visualizer, split_image):
        with pytest.raises(ValueError):
            visualizer.crop(split_image, Rect.from_bounds(15, 0, 25, 5))


# ================================================================
# Profile chart
# ================================================================


class TestProfileChart:
    def test_plot_profile(self, visualizer, samples):
        fig = visualizer.plot_profile(samples)

        assert isinstance(fig, plt.Figure)
        ax = fig.axes[0]
        assert ax.get_xlim() == (0, 1)
        assert ax.get_ylim() == (0, 1)
        np.testing.assert_allclose(ax.lines[0].get_ydata(), [s.average_pigmentation for s in samples])
        plt.close(fig)

    def test_save_figure(self, visualizer, samples, tmp_path):
        path = tmp_path / "charts" / "profile.png"
        visualizer.save_figure(visualizer.plot_profile(samples), path)

        assert path.exists()
        assert path.stat().st_size > 0

    def test_save_figure_into_file_path(self, visualizer, samples, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(ResourceError):
            visualizer.save_figure(visualizer.plot_profile(samples), blocker / "profile.png")
