"""
Color Space Conversion Utilities

sRGB → CIE XYZ → CIE L*a*b* conversion (D65 white point).

Every conversion accepts either a single color or a numpy array whose last
axis holds the three channels, so the same code path serves one key color and
a whole image buffer.
"""

import re
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from colony_pigmentation.utils.color_delta import lab_distance, normalized_lab_distance

# sRGB (D65) → XYZ matrix, rows produce X, Y, Z
SRGB_TO_XYZ = np.array(
    [
        [0.4124, 0.3576, 0.1805],
        [0.2126, 0.7152, 0.0722],
        [0.0193, 0.1192, 0.9505],
    ]
)

# CIE Standard Illuminant D65 reference white
D65_TRISTIMULUS = np.array([0.95047, 1.0, 1.08883])

LAB_T0 = 0.008856
LAB_M = 7.787036

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class RGBColor:
    """8-bit sRGB color"""

    r: int
    g: int
    b: int

    def __post_init__(self):
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if not 0 <= int(value) <= 255:
                raise ValueError(f"RGB channel {name} must be within 0~255, got {value}")

    @classmethod
    def from_hex(cls, hex_string: str) -> "RGBColor":
        """
        Parse a ``RRGGBB`` or ``#RRGGBB`` hex string.

        Example:
            >>> RGBColor.from_hex("#33393E")
            RGBColor(r=51, g=57, b=62)
        """
        match = _HEX_PATTERN.match(hex_string.strip())
        if not match:
            raise ValueError(f"Expected a 6 digit (RRGGBB) hex string, got {hex_string!r}")
        value = int(match.group(1), 16)
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    @property
    def hex_string(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    def as_array(self) -> np.ndarray:
        return np.array([self.r, self.g, self.b], dtype=np.uint8)

    def to_xyz(self) -> "XYZColor":
        return to_xyz(self)

    def to_lab(self) -> "LABColor":
        return to_lab(to_xyz(self))


RGBColor.BLACK = RGBColor(0, 0, 0)
RGBColor.WHITE = RGBColor(255, 255, 255)


@dataclass(frozen=True)
class XYZColor:
    """
    CIE XYZ tristimulus values.

    x: 0 ~ 0.95047, y: 0 ~ 1 (relative luminance), z: 0 ~ 1.089
    """

    x: float
    y: float
    z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def to_lab(self) -> "LABColor":
        return to_lab(self)


@dataclass(frozen=True)
class LABColor:
    """
    CIE L*a*b* color.

    l: 0 (black) ~ 100 (white)
    a: green (-) / red (+), roughly ±100
    b: blue (-) / yellow (+), roughly ±100
    """

    l: float
    a: float
    b: float

    def as_array(self) -> np.ndarray:
        return np.array([self.l, self.a, self.b], dtype=np.float64)

    def distance(self, other: "LABColor", ignoring_lightness: bool = False) -> float:
        return float(lab_distance(self.as_array(), other.as_array(), ignoring_lightness))

    def normalized_distance(self, other: "LABColor", ignoring_lightness: bool = False) -> float:
        return float(normalized_lab_distance(self.as_array(), other.as_array(), ignoring_lightness))


LABColor.NEUTRAL_GRAY = LABColor(50.0, 0.0, 0.0)


def _srgb_gamma_decode(channel: np.ndarray) -> np.ndarray:
    normalized = channel / 255.0
    return np.where(
        normalized > 0.04045,
        np.power((normalized + 0.055) / 1.055, 2.4),
        normalized / 12.92,
    )


def rgb_to_xyz(rgb: Union[np.ndarray, Tuple[int, int, int]]) -> np.ndarray:
    """
    Convert sRGB (0~255) values to XYZ.

    Args:
        rgb: array of shape (..., 3) in R, G, B order

    Returns:
        float64 array of shape (..., 3) holding X, Y, Z
    """
    linear = _srgb_gamma_decode(np.asarray(rgb, dtype=np.float64))
    return linear @ SRGB_TO_XYZ.T


def xyz_to_lab(xyz: Union[np.ndarray, Tuple[float, float, float]]) -> np.ndarray:
    """
    Convert XYZ values to L*a*b* against the D65 white point.

    L* is clamped to 0~100.

    Args:
        xyz: array of shape (..., 3)

    Returns:
        float64 array of shape (..., 3) holding L*, a*, b*
    """
    t = np.asarray(xyz, dtype=np.float64) / D65_TRISTIMULUS
    f = np.where(t > LAB_T0, np.cbrt(t), LAB_M * t + 4.0 / 29.0)

    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    L = np.clip(116.0 * fy - 16.0, 0.0, 100.0)
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)

    return np.stack([L, a, b], axis=-1)


def rgb_to_lab(rgb: Union[np.ndarray, Tuple[int, int, int]]) -> np.ndarray:
    """sRGB (0~255) → L*a*b* in one step."""
    return xyz_to_lab(rgb_to_xyz(rgb))


def to_xyz(color: RGBColor) -> XYZColor:
    x, y, z = rgb_to_xyz(color.as_array())
    return XYZColor(float(x), float(y), float(z))


def to_lab(color: XYZColor) -> LABColor:
    L, a, b = xyz_to_lab(color.as_array())
    return LABColor(float(L), float(a), float(b))
