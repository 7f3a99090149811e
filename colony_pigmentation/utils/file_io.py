import json
from pathlib import Path
from typing import Any, Union

import cv2
import numpy as np

from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer
from colony_pigmentation.errors import ResourceError
from colony_pigmentation.utils.image_utils import bgr_to_rgb, rgb_to_bgr


class FileIO:
    def load_image(self, filepath: Path) -> np.ndarray:
        """Decode ``filepath`` into an RGB (H, W, 3) array; None when unreadable."""
        filepath = Path(filepath)
        if not filepath.exists():
            return None
        # np.fromfile + imdecode handles non-ASCII paths
        data = np.fromfile(str(filepath), dtype=np.uint8)
        if data.size == 0:
            return None
        img = cv2.imdecode(data, cv2.IMREAD_COLOR)
        if img is None:
            return None
        return bgr_to_rgb(img)

    def save_image(self, filepath: Path, image: Union[ImageBuffer, MaskBuffer]) -> None:
        """
        Encode a buffer to ``filepath``; masks are written white on black.

        Raises:
            ResourceError: directory cannot be created or encoding fails
        """
        filepath = Path(filepath)
        if isinstance(image, MaskBuffer):
            image = image.to_image()

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceError(f"Failed to create directory {filepath.parent}: {e}")

        try:
            ok, encoded = cv2.imencode(filepath.suffix or ".png", rgb_to_bgr(image.to_array()))
        except cv2.error as e:
            raise ResourceError(f"Failed to encode image {filepath}: {e}")
        if not ok:
            raise ResourceError(f"Failed to encode image {filepath}")
        try:
            encoded.tofile(str(filepath))
        except OSError as e:
            raise ResourceError(f"Failed to write image {filepath}: {e}")


def ensure_dir(path: Path) -> Path:
    """
    Raises:
        ResourceError: directory cannot be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ResourceError(f"Failed to create directory {path}: {e}")
    return path


def read_json(filepath: Path) -> dict:
    filepath = Path(filepath)
    if filepath.exists():
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)
    return {}


def write_json(data: Any, filepath: Path):
    filepath = Path(filepath)
    ensure_dir(filepath.parent)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=4)
