import numpy as np
import pytest

from colony_pigmentation.core.geometry import Coordinate, PixelSize
from colony_pigmentation.core.image_loader import ImageConfig, ImageLoader
from colony_pigmentation.errors import ConfigurationError, ResourceError
from colony_pigmentation.utils.color_space import RGBColor


@pytest.fixture
def split_png(write_png, split_array):
    return write_png(split_array(), "split.png")


# ================================================================
# ImageConfig
# ================================================================


def test_image_config_defaults():
    assert ImageConfig().downscale_factor == 1.0


@pytest.mark.parametrize("factor", [0.0, -0.5, 1.5])
def test_invalid_downscale_factor(factor):
    with pytest.raises(ConfigurationError):
        ImageLoader(ImageConfig(downscale_factor=factor))


# ================================================================
# ImageLoader
# ================================================================


def test_load_keeps_geometry_and_colors(split_png):
    image = ImageLoader().load(split_png)

    assert image.size == PixelSize(20, 10)
    assert image[Coordinate(0, 0)] == RGBColor(51, 57, 62)
    assert image[Coordinate(19, 9)] == RGBColor(128, 61, 51)


def test_load_with_downscale(split_png):
    image = ImageLoader(ImageConfig(downscale_factor=0.5)).load(split_png)

    assert image.size == PixelSize(10, 5)
    # Uniform areas keep their color under area interpolation
    assert image[Coordinate(0, 0)] == RGBColor(51, 57, 62)
    assert image[Coordinate(9, 4)] == RGBColor(128, 61, 51)


def test_load_non_existent_file(tmp_path):
    with pytest.raises(ResourceError):
        ImageLoader().load(tmp_path / "missing.png")


def test_load_corrupted_file(tmp_path):
    path = tmp_path / "corrupted.png"
    path.write_bytes(b"definitely not a png")

    with pytest.raises(ResourceError):
        ImageLoader().load(path)


def test_load_empty_file(tmp_path):
    path = tmp_path / "empty.png"
    path.touch()

    with pytest.raises(ResourceError):
        ImageLoader().load(path)


def test_loaded_buffer_is_column_major(split_png):
    image = ImageLoader().load(split_png)
    # Index of (x=19, y=0) is y + x * height
    np.testing.assert_array_equal(image.pixels[19 * 10], [128, 61, 51])
