import logging
from dataclasses import dataclass
from pathlib import Path

from colony_pigmentation.core.pixel_buffer import ImageBuffer
from colony_pigmentation.errors import ConfigurationError, ResourceError
from colony_pigmentation.utils.file_io import FileIO
from colony_pigmentation.utils.image_utils import downscale

logger = logging.getLogger(__name__)


@dataclass
class ImageConfig:
    downscale_factor: float = 1.0

    def validate(self) -> None:
        if not 0.0 < self.downscale_factor <= 1.0:
            raise ConfigurationError(
                "Downscale factor should be greater than 0 and less than or equal to 1, "
                f"got {self.downscale_factor}"
            )


class ImageLoader:
    def __init__(self, config: ImageConfig = None):
        self.config = config or ImageConfig()
        self.config.validate()
        self.file_io = FileIO()

    def load(self, filepath: Path) -> ImageBuffer:
        """
        Raises:
            ResourceError: missing, empty or undecodable file
        """
        try:
            image = self.file_io.load_image(filepath)
        except OSError as e:
            raise ResourceError(f"Failed to load image from {filepath}: {e}")
        if image is None:
            raise ResourceError(f"Failed to load image from {filepath}")

        original_shape = image.shape
        image = downscale(image, self.config.downscale_factor)
        if image.shape != original_shape:
            logger.debug(f"Downscaled {filepath} from {original_shape[1]}x{original_shape[0]} to {image.shape[1]}x{image.shape[0]}")

        return ImageBuffer.from_array(image)
