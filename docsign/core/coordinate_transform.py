"""
Projections of the normalized signature placement into target spaces.

The placement is stored once, normalized to the displayed page with a
top-left origin. Each consumer asks for its own projection:

* display: viewport pixels for the on-screen overlay (top-left origin)
* page space: PDF points with a bottom-left origin, independent of zoom
* raster: pixels of a fixed-size output canvas (top-left origin)

All functions here are pure.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from docsign.models.placement import PlacementSnapshot, clamp, normalize_rotation
from docsign.utils.geometry import (
    Point2D,
    Rect2D,
    angle_between_points,
    rotated_bounding_rect,
)


@dataclass(frozen=True)
class OverlayGeometry:
    """Where the signature overlay sits inside the viewport, in pixels."""

    center: Point2D
    width: float
    height: float
    rotation_deg: float

    @property
    def rect(self) -> Rect2D:
        """Unrotated box centered on the anchor."""
        return Rect2D.from_center(self.center, self.width, self.height)

    @property
    def bounding_rect(self) -> Rect2D:
        """Axis-aligned bounds after rotation, for hit testing and repaint regions."""
        return rotated_bounding_rect(self.rect, self.rotation_deg)


@dataclass(frozen=True)
class PageSpacePlacement:
    """
    Signature box on a paginated page, in page units with a bottom-left origin.

    ``x``/``y`` are the lower-left corner of the unrotated box; the box turns
    about its center by ``rotation_deg`` clockwise as seen on screen.
    """

    page_number: int
    x: float
    y: float
    width: float
    height: float
    rotation_deg: float
    page_width: float
    page_height: float

    @property
    def center(self) -> Point2D:
        return Point2D(self.x + self.width / 2, self.y + self.height / 2)

    def to_top_left_rect(self) -> Rect2D:
        """The same box for backends whose page origin is top-left, y down."""
        return Rect2D(
            self.x,
            self.page_height - (self.y + self.height),
            self.width,
            self.height,
        )


@dataclass(frozen=True)
class RasterPlacement:
    """Signature box on a fixed-size output canvas, in pixels."""

    center: Point2D
    width: float
    height: float
    rotation_deg: float
    canvas_width: int
    canvas_height: int

    @property
    def local_rect(self) -> Rect2D:
        """Draw rectangle relative to the center, after translate and rotate."""
        return Rect2D(-self.width / 2, -self.height / 2, self.width, self.height)


def display_transform(
    placement: PlacementSnapshot,
    viewport_width_px: float,
    viewport_height_px: float,
    aspect_ratio: float,
) -> OverlayGeometry:
    """
    Project the placement onto the current viewport.

    Args:
        placement: Snapshot of the placement model.
        viewport_width_px: Width of the displayed page in pixels.
        viewport_height_px: Height of the displayed page in pixels.
        aspect_ratio: Signature image height / width.

    Returns:
        OverlayGeometry anchored at the signature center.
    """
    return OverlayGeometry(
        center=Point2D(
            placement.x * viewport_width_px,
            placement.y * viewport_height_px,
        ),
        width=placement.size_px,
        height=placement.size_px * aspect_ratio,
        rotation_deg=placement.rotation_deg,
    )


def resolve_target_page(page_number: int, page_count: int) -> int:
    """The viewed page when it exists, the first page otherwise."""
    if 1 <= page_number <= page_count:
        return page_number
    return 1


def page_space_transform(
    placement: PlacementSnapshot,
    page_width: float,
    page_height: float,
    signature_width: float,
    aspect_ratio: float,
    page_number: int = 1,
) -> PageSpacePlacement:
    """
    Project the placement onto a page with a bottom-left origin.

    The vertical flip is required because the normalized position is measured
    from the top edge while page space grows upward from the bottom edge.
    """
    signature_height = signature_width * aspect_ratio
    x = placement.x * page_width - signature_width / 2
    y = (1 - placement.y) * page_height - signature_height / 2

    return PageSpacePlacement(
        page_number=page_number,
        x=x,
        y=y,
        width=signature_width,
        height=signature_height,
        rotation_deg=placement.rotation_deg,
        page_width=page_width,
        page_height=page_height,
    )


def raster_transform(
    placement: PlacementSnapshot,
    canvas_width: int,
    canvas_height: int,
    scale_factor: float,
    aspect_ratio: float,
) -> RasterPlacement:
    """Project the placement onto an output canvas; no vertical flip."""
    signature_width = placement.size_px * scale_factor
    return RasterPlacement(
        center=Point2D(placement.x * canvas_width, placement.y * canvas_height),
        width=signature_width,
        height=signature_width * aspect_ratio,
        rotation_deg=placement.rotation_deg,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
    )


def position_from_screen(
    point: Tuple[float, float],
    viewport_width_px: float,
    viewport_height_px: float,
) -> Tuple[float, float]:
    """Normalized position for a pointer inside the viewport, clamped to the page."""
    if viewport_width_px <= 0 or viewport_height_px <= 0:
        return (0.0, 0.0)
    return (
        clamp(point[0] / viewport_width_px, 0.0, 1.0),
        clamp(point[1] / viewport_height_px, 0.0, 1.0),
    )


def rotation_from_pointer(
    center: Tuple[float, float],
    pointer: Tuple[float, float],
) -> float:
    """
    Rotation for a drag on the rotate handle.

    The top edge of the signature turns to face the pointer: straight above
    the center is 0 degrees, to the right is 90.
    """
    return normalize_rotation(angle_between_points(center, pointer) + 90)
