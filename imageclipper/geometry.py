"""Rectangle geometry shared by the selection, renderer and export."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

Point = Tuple[int, int]
Shear = Tuple[float, float]


@dataclass
class Rect:
    """Axis-aligned integer rectangle (top-left corner plus size)."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains_strictly(self, point: Point) -> bool:
        px, py = point
        return self.x < px < self.right and self.y < py < self.bottom


@dataclass
class RotatedRect:
    """Float rectangle with a rotation angle in degrees about its centre."""

    x: float
    y: float
    width: float
    height: float
    angle: float = 0.0

    @classmethod
    def from_rect(cls, rect: Rect, angle: float = 0.0) -> "RotatedRect":
        return cls(float(rect.x), float(rect.y), float(rect.width), float(rect.height), float(angle))

    @property
    def centre(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0


def bounding_rect(p0: Point, p1: Point) -> Rect:
    """Axis-aligned box spanned by two points."""
    return Rect(min(p0[0], p1[0]), min(p0[1], p1[1]), abs(p0[0] - p1[0]), abs(p0[1] - p1[1]))


def point_distance(p0: Tuple[float, float], p1: Tuple[float, float]) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p1[0] - p0[0], p1[1] - p0[1])


def _rotate_point(point: Tuple[float, float], centre: Tuple[float, float], angle_deg: float) -> Tuple[float, float]:
    """Rotate a point counter-clockwise (as seen on screen, y pointing down)."""
    px, py = point
    cx, cy = centre
    angle_rad = math.radians(angle_deg)
    s, c = math.sin(angle_rad), math.cos(angle_rad)
    dx, dy = px - cx, py - cy
    return cx + c * dx + s * dy, cy - s * dx + c * dy


def quad_corners(rect: RotatedRect, shear: Shear = (0.0, 0.0)) -> np.ndarray:
    """
    Corners of a rotated and sheared rectangle, clockwise from the top-left.

    Shear x shifts the bottom edge horizontally and shear y shifts the right
    edge vertically, both in pixels. Rotation is applied afterwards around the
    centre of the unsheared rectangle.
    """
    sx, sy = shear
    w, h = rect.width, rect.height
    local = [(0.0, 0.0), (w, sy), (w + sx, h + sy), (sx, h)]
    centre = rect.centre
    corners = [
        _rotate_point((rect.x + lx, rect.y + ly), centre, rect.angle) for lx, ly in local
    ]
    return np.array(corners, dtype=np.float32)


def to_source(rect: Rect, scale: float, angle: float = 0.0) -> RotatedRect:
    """Map a display-space rectangle into source space by dividing by the scale."""
    if scale == 1.0:
        return RotatedRect.from_rect(rect, angle)
    inv = 1.0 / scale
    return RotatedRect(rect.x * inv, rect.y * inv, rect.width * inv, rect.height * inv, float(angle))


def to_display(rect: RotatedRect, scale: float) -> Rect:
    """Map a source-space rectangle back into display pixels."""
    return Rect(
        int(round(rect.x * scale)),
        int(round(rect.y * scale)),
        int(round(rect.width * scale)),
        int(round(rect.height * scale)),
    )
