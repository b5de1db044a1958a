from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import math

from PyQt6.QtCore import QPointF, QRectF


@dataclass(frozen=True)
class Point2D:
    """Simple 2D point for geometry calculations."""
    x: float
    y: float

    def to_qpointf(self) -> QPointF:
        return QPointF(self.x, self.y)


@dataclass(frozen=True)
class Rect2D:
    """Simple 2D rectangle for geometry calculations."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, center: Point2D, width: float, height: float) -> Rect2D:
        return cls(center.x - width / 2, center.y - height / 2, width, height)

    @property
    def center(self) -> Point2D:
        return Point2D(self.x + self.width / 2, self.y + self.height / 2)

    def to_corners(self) -> Tuple[float, float, float, float]:
        """Return (x0, y0, x1, y1)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def to_qrectf(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)


def rotate_point(
    point: Tuple[float, float],
    center: Tuple[float, float],
    angle_degrees: float,
) -> Tuple[float, float]:
    """
    Rotate a point around a center by an angle in degrees.
    Positive angles turn clockwise in a y-down space.
    """
    angle_rad = math.radians(angle_degrees)
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)

    translated_x = point[0] - center[0]
    translated_y = point[1] - center[1]

    rotated_x = translated_x * cos_a - translated_y * sin_a
    rotated_y = translated_x * sin_a + translated_y * cos_a

    return (rotated_x + center[0], rotated_y + center[1])


def rotated_bounding_size(
    width: float,
    height: float,
    angle_degrees: float,
) -> Tuple[float, float]:
    """Size of the axis-aligned box enclosing a width x height box turned by angle."""
    angle_rad = math.radians(angle_degrees)
    cos_a = abs(math.cos(angle_rad))
    sin_a = abs(math.sin(angle_rad))
    return (
        width * cos_a + height * sin_a,
        width * sin_a + height * cos_a,
    )


def rotated_bounding_rect(rect: Rect2D, angle_degrees: float) -> Rect2D:
    """Axis-aligned bounds of a rectangle turned about its own center."""
    width, height = rotated_bounding_size(rect.width, rect.height, angle_degrees)
    return Rect2D.from_center(rect.center, width, height)


def angle_between_points(
    origin: Tuple[float, float],
    target: Tuple[float, float],
) -> float:
    """Angle in degrees from origin to target, y-down, 0 pointing right."""
    return math.degrees(math.atan2(target[1] - origin[1], target[0] - origin[0]))
