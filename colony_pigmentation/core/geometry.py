"""
Integer pixel geometry: coordinates, sizes, rectangles and the index formula
used by every pixel buffer.

Buffers are laid out column by column, so the pixel at ``(x, y)`` of a buffer
with ``height`` rows lives at ``y + x * height``.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Coordinate:
    x: int
    y: int

    def __add__(self, offset: "PixelSize") -> "Coordinate":
        return Coordinate(self.x + offset.width, self.y + offset.height)

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True)
class PixelSize:
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Rect:
    """
    Axis aligned rectangle; ``max_x`` / ``max_y`` are exclusive.
    """

    origin: Coordinate
    size: PixelSize

    @classmethod
    def from_bounds(cls, min_x: int, min_y: int, max_x: int, max_y: int) -> "Rect":
        return cls(Coordinate(min_x, min_y), PixelSize(max_x - min_x, max_y - min_y))

    @property
    def min_x(self) -> int:
        return self.origin.x

    @property
    def min_y(self) -> int:
        return self.origin.y

    @property
    def max_x(self) -> int:
        return self.origin.x + self.size.width

    @property
    def max_y(self) -> int:
        return self.origin.y + self.size.height

    @property
    def mid_x(self) -> int:
        return self.origin.x + self.size.width // 2

    @property
    def mid_y(self) -> int:
        return self.origin.y + self.size.height // 2

    def contains(self, coordinate: Coordinate) -> bool:
        return self.min_x <= coordinate.x < self.max_x and self.min_y <= coordinate.y < self.max_y

    def contains_rect(self, rect: "Rect") -> bool:
        return (
            self.min_x <= rect.min_x
            and self.min_y <= rect.min_y
            and rect.max_x <= self.max_x
            and rect.max_y <= self.max_y
        )

    def intersection(self, rect: "Rect") -> "Rect":
        min_x, min_y = max(self.min_x, rect.min_x), max(self.min_y, rect.min_y)
        max_x, max_y = min(self.max_x, rect.max_x), min(self.max_y, rect.max_y)
        if max_x <= min_x or max_y <= min_y:
            return Rect.ZERO
        return Rect.from_bounds(min_x, min_y, max_x, max_y)

    def pixel_index(self, coordinate: Coordinate) -> int:
        """Flat buffer index of ``coordinate``; raises IndexError outside ``self``."""
        if not self.contains(coordinate):
            raise IndexError(f"Coordinate {coordinate} is not part of {self}")
        return coordinate.y + coordinate.x * self.size.height

    def coordinate(self, index: int) -> Coordinate:
        x, y = divmod(index, self.size.height)
        return Coordinate(x, y)

    def perimeter_indices(self, rect: "Rect") -> List[int]:
        """Indices of the one pixel wide frame just outside ``rect``, clipped to ``self``."""
        indices = []
        for x in range(rect.min_x - 1, rect.max_x + 1):
            for y in (rect.min_y - 1, rect.max_y):
                coordinate = Coordinate(x, y)
                if self.contains(coordinate):
                    indices.append(self.pixel_index(coordinate))
        for y in range(rect.min_y, rect.max_y):
            for x in (rect.min_x - 1, rect.max_x):
                coordinate = Coordinate(x, y)
                if self.contains(coordinate):
                    indices.append(self.pixel_index(coordinate))
        return indices

    def as_dict(self) -> dict:
        return {"x": self.min_x, "y": self.min_y, "width": self.size.width, "height": self.size.height}

    def __str__(self) -> str:
        return f"({self.origin}, {self.size})"


Coordinate.ZERO = Coordinate(0, 0)
PixelSize.ZERO = PixelSize(0, 0)
Rect.ZERO = Rect(Coordinate.ZERO, PixelSize.ZERO)
