"""
Color Delta Calculation Module

CIE76-style Euclidean distance over L*a*b* components that are first
rescaled into 0~1 (L* over 0~100, a*/b* over -100~100, clamped), plus a
normalized variant that divides by the largest distance reachable from the
evaluated color.

NumPy based, so the same functions evaluate one color pair or a full image
against a key color through broadcasting.
"""

from typing import Tuple, Union

import numpy as np

LabLike = Union[Tuple[float, float, float], np.ndarray]

# Bounding sphere of the rescaled L*a*b* cube: centered on neutral gray
# (L*=50, a*=0, b*=0) with radius 0.5.
NEUTRAL_GRAY_LAB = np.array([50.0, 0.0, 0.0])
SPHERE_RADIUS = 0.5


def clamped_interpolation(
    lower: Union[float, np.ndarray], upper: float, value: Union[float, np.ndarray]
) -> Union[float, np.ndarray]:
    """
    Position of ``value`` inside ``[lower, upper]`` as a 0~1 fraction.

    ``value`` is clamped into the range first. Where the range is degenerate
    (``upper <= lower``) the result is 1 if ``value >= upper`` and 0 otherwise.
    ``lower`` and ``value`` may be arrays of matching shape.

    Example:
        >>> clamped_interpolation(0.5, 1.0, 0.75)
        0.5
    """
    lower = np.asarray(lower, dtype=np.float64)
    value = np.asarray(value, dtype=np.float64)
    span = upper - lower

    with np.errstate(divide="ignore", invalid="ignore"):
        scaled = (np.clip(value, np.minimum(lower, upper), upper) - lower) / span
    result = np.where(span > 0, scaled, np.where(value >= upper, 1.0, 0.0))

    return float(result) if np.ndim(result) == 0 else result


def normalize_lab_components(lab: LabLike) -> np.ndarray:
    """
    Rescale L*a*b* components into 0~1.

    Args:
        lab: array of shape (..., 3)

    Returns:
        float64 array of shape (..., 3)
    """
    lab = np.asarray(lab, dtype=np.float64)
    L = np.clip(lab[..., 0], 0.0, 100.0) / 100.0
    a = (np.clip(lab[..., 1], -100.0, 100.0) + 100.0) / 200.0
    b = (np.clip(lab[..., 2], -100.0, 100.0) + 100.0) / 200.0
    return np.stack([L, a, b], axis=-1)


def lab_distance(lab1: LabLike, lab2: LabLike, ignoring_lightness: bool = False) -> Union[float, np.ndarray]:
    """
    Euclidean distance between two colors in the rescaled L*a*b* space.

    0 means identical; black vs. white is 1.

    Args:
        lab1: first color(s), shape (..., 3)
        lab2: second color(s), broadcastable against ``lab1``
        ignoring_lightness: drop the L* term

    Returns:
        distance (float for single colors, array otherwise)
    """
    diff = normalize_lab_components(lab2) - normalize_lab_components(lab1)
    squared = diff**2
    if ignoring_lightness:
        squared = squared[..., 1:]

    distance = np.sqrt(np.sum(squared, axis=-1))
    return float(distance) if np.ndim(distance) == 0 else distance


def normalized_lab_distance(
    lab: LabLike, other: LabLike, ignoring_lightness: bool = False
) -> Union[float, np.ndarray]:
    """
    Distance from ``lab`` to ``other`` scaled so that 1 is the furthest any
    color can be from ``lab``.

    The furthest point is the antipode of ``lab`` on the bounding sphere, so
    the scale is ``distance(lab, gray) + 0.5``. This keeps one threshold
    meaningful regardless of which channel dominates the evaluated color.

    Args:
        lab: evaluated color(s), shape (..., 3)
        other: reference color(s), broadcastable against ``lab``
        ignoring_lightness: drop the L* term

    Returns:
        0~1 distance (float for single colors, array otherwise)
    """
    maximum_distance = np.asarray(lab_distance(lab, NEUTRAL_GRAY_LAB, ignoring_lightness)) + SPHERE_RADIUS
    distance = np.asarray(lab_distance(lab, other, ignoring_lightness))

    normalized = np.clip(distance, 0.0, maximum_distance) / maximum_distance
    return float(normalized) if np.ndim(normalized) == 0 else normalized
