"""Integer image geometry: points, sizes and rectangles."""

from __future__ import annotations

from dataclasses import dataclass


def _div_trunc(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


@dataclass(frozen=True)
class Point:
    """A point with integer coordinates."""

    x: int = 0
    y: int = 0

    def __neg__(self) -> Point:
        return Point(-self.x, -self.y)


@dataclass(frozen=True)
class Size:
    """A width and height."""

    width: int = 0
    height: int = 0

    def bounded_to_aspect_ratio(self, ratio: Size) -> Size:
        """Shrink one dimension so the size matches the aspect ratio of ``ratio``."""
        if not (ratio.width and ratio.height):
            raise ValueError("aspect ratio must have non-zero dimensions")
        ratio1 = self.width * ratio.height
        ratio2 = ratio.width * self.height
        if ratio1 > ratio2:
            return Size(ratio2 // ratio.height, self.height)
        return Size(self.width, ratio1 // ratio.width)

    def centered_to(self, center: Point) -> Rectangle:
        """A rectangle of this size centred on ``center``."""
        return Rectangle(center.x - self.width // 2, center.y - self.height // 2, self.width, self.height)


@dataclass(frozen=True)
class Rectangle:
    """An axis-aligned rectangle with integer position and size."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def top_left(self) -> Point:
        return Point(self.x, self.y)

    def size(self) -> Size:
        return Size(self.width, self.height)

    def center(self) -> Point:
        return Point(self.x + self.width // 2, self.y + self.height // 2)

    def scaled_by(self, numerator: Size, denominator: Size) -> Rectangle:
        """Scale position and size by ``numerator / denominator`` per axis."""
        return Rectangle(
            _div_trunc(self.x * numerator.width, denominator.width),
            _div_trunc(self.y * numerator.height, denominator.height),
            self.width * numerator.width // denominator.width,
            self.height * numerator.height // denominator.height,
        )

    def bounded_to(self, bound: Rectangle) -> Rectangle:
        """The intersection with ``bound``; empty intersections have zero size."""
        left = max(self.x, bound.x)
        top = max(self.y, bound.y)
        right = min(self.x + self.width, bound.x + bound.width)
        bottom = min(self.y + self.height, bound.y + bound.height)
        return Rectangle(left, top, max(right - left, 0), max(bottom - top, 0))

    def translated_by(self, point: Point) -> Rectangle:
        return Rectangle(self.x + point.x, self.y + point.y, self.width, self.height)

    def enclosed_in(self, boundary: Rectangle) -> Rectangle:
        """Shrink and move the rectangle so that it lies inside ``boundary``."""
        width = min(self.width, boundary.width)
        height = min(self.height, boundary.height)
        x = min(max(self.x, boundary.x), boundary.x + boundary.width - width)
        y = min(max(self.y, boundary.y), boundary.y + boundary.height - height)
        return Rectangle(x, y, width, height)