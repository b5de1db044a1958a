from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple
import math

from docsign.models.settings import PlacementSettings

ROTATION_PRECISION = 9


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp a value into [lower, upper]; NaN falls back to the lower bound."""
    if math.isnan(value):
        return lower
    return max(lower, min(upper, value))


def normalize_rotation(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    if not math.isfinite(degrees):
        return 0.0
    normalized = math.fmod(degrees, 360.0)
    if normalized < 0:
        normalized += 360.0
    # drop float noise so x and x + 360 normalize to the same value
    normalized = round(normalized, ROTATION_PRECISION)
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


@dataclass(frozen=True)
class PlacementSnapshot:
    """Immutable copy of the placement, taken when a consumer needs a stable view."""

    x: float
    y: float
    size_px: float
    rotation_deg: float

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


class SignaturePlacement:
    """
    Mutable signature placement for one signing session.

    Position is normalized to the displayed page (origin top-left), size is the
    on-screen width in pixels and rotation is clockwise degrees. Every setter
    clamps its input instead of rejecting it.
    """

    def __init__(self, settings: Optional[PlacementSettings] = None):
        self._settings = settings or PlacementSettings()
        self._x = 0.0
        self._y = 0.0
        self._size_px = 0.0
        self._rotation_deg = 0.0
        self.reset()

    @property
    def settings(self) -> PlacementSettings:
        return self._settings

    @property
    def position(self) -> Tuple[float, float]:
        return (self._x, self._y)

    @property
    def size_px(self) -> float:
        return self._size_px

    @property
    def rotation_deg(self) -> float:
        return self._rotation_deg

    @property
    def can_grow(self) -> bool:
        return self._size_px < self._settings.max_size_px

    @property
    def can_shrink(self) -> bool:
        return self._size_px > self._settings.min_size_px

    def set_position(self, x: float, y: float) -> None:
        self._x = clamp(float(x), 0.0, 1.0)
        self._y = clamp(float(y), 0.0, 1.0)

    def set_size(self, size_px: float) -> None:
        self._size_px = clamp(
            float(size_px),
            self._settings.min_size_px,
            self._settings.max_size_px,
        )

    def set_rotation(self, degrees: float) -> None:
        self._rotation_deg = normalize_rotation(float(degrees))

    def grow(self) -> None:
        self.set_size(self._size_px + self._settings.size_step_px)

    def shrink(self) -> None:
        self.set_size(self._size_px - self._settings.size_step_px)

    def reset(self) -> None:
        """Restore the default position, size and rotation."""
        default_x, default_y = self._settings.default_position
        self.set_position(default_x, default_y)
        self.set_size(self._settings.default_size_px)
        self.set_rotation(self._settings.default_rotation_deg)

    def snapshot(self) -> PlacementSnapshot:
        return PlacementSnapshot(
            x=self._x,
            y=self._y,
            size_px=self._size_px,
            rotation_deg=self._rotation_deg,
        )

    def __repr__(self) -> str:
        return (
            f"SignaturePlacement(position=({self._x:.3f}, {self._y:.3f}), "
            f"size_px={self._size_px:.1f}, rotation_deg={self._rotation_deg:.1f})"
        )
