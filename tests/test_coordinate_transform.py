"""
tests/test_coordinate_transform.py

Projections of the normalized placement into viewport, page and raster space.
"""

from __future__ import annotations

import unittest

from docsign.core.coordinate_transform import (
    display_transform,
    page_space_transform,
    position_from_screen,
    raster_transform,
    resolve_target_page,
    rotation_from_pointer,
)
from docsign.models.placement import PlacementSnapshot
from docsign.utils.geometry import Point2D, Rect2D, rotate_point, rotated_bounding_rect


DEFAULT = PlacementSnapshot(x=0.85, y=0.8, size_px=150, rotation_deg=0)


class TestDisplayTransform(unittest.TestCase):
    def test_center_anchored_projection(self) -> None:
        overlay = display_transform(DEFAULT, 612, 792, aspect_ratio=0.5)
        self.assertAlmostEqual(overlay.center.x, 520.2)
        self.assertAlmostEqual(overlay.center.y, 633.6)
        self.assertEqual(overlay.width, 150)
        self.assertEqual(overlay.height, 75)
        self.assertAlmostEqual(overlay.rect.x, 520.2 - 75)

    def test_is_pure(self) -> None:
        first = display_transform(DEFAULT, 918, 1188, 0.5)
        second = display_transform(DEFAULT, 918, 1188, 0.5)
        self.assertEqual(first, second)

    def test_follows_zoom_without_changing_placement(self) -> None:
        at_one = display_transform(DEFAULT, 612, 792, 0.5)
        at_two = display_transform(DEFAULT, 1224, 1584, 0.5)
        self.assertAlmostEqual(at_two.center.x, at_one.center.x * 2)
        self.assertAlmostEqual(at_two.center.y, at_one.center.y * 2)
        self.assertEqual(DEFAULT.position, (0.85, 0.8))

    def test_rotation_passes_through(self) -> None:
        rotated = PlacementSnapshot(x=0.5, y=0.5, size_px=100, rotation_deg=90)
        overlay = display_transform(rotated, 400, 400, 0.5)
        self.assertEqual(overlay.rotation_deg, 90)
        bounds = overlay.bounding_rect
        self.assertAlmostEqual(bounds.width, 50)
        self.assertAlmostEqual(bounds.height, 100)
        self.assertAlmostEqual(bounds.center.x, 200)


class TestPageSpaceTransform(unittest.TestCase):
    def test_vertical_flip(self) -> None:
        placement = page_space_transform(DEFAULT, 612, 792, signature_width=150, aspect_ratio=0.5)
        self.assertAlmostEqual(placement.x, 0.85 * 612 - 75)
        self.assertAlmostEqual(placement.y, 0.2 * 792 - 37.5)
        self.assertEqual(placement.height, 75)

    def test_top_edge_maps_to_page_top(self) -> None:
        top = PlacementSnapshot(x=0.5, y=0.0, size_px=100, rotation_deg=0)
        placement = page_space_transform(top, 600, 800, signature_width=100, aspect_ratio=1.0)
        self.assertAlmostEqual(placement.y + placement.height / 2, 800)
        self.assertAlmostEqual(placement.to_top_left_rect().center.y, 0)

    def test_to_top_left_rect_round_trips_center(self) -> None:
        placement = page_space_transform(DEFAULT, 612, 792, 150, 0.5)
        rect = placement.to_top_left_rect()
        self.assertAlmostEqual(rect.center.x, 0.85 * 612)
        self.assertAlmostEqual(rect.center.y, 0.8 * 792)

    def test_independent_of_viewport(self) -> None:
        first = page_space_transform(DEFAULT, 612, 792, 150, 0.5, page_number=2)
        second = page_space_transform(DEFAULT, 612, 792, 150, 0.5, page_number=2)
        self.assertEqual(first, second)
        self.assertEqual(first.page_number, 2)


class TestRasterTransform(unittest.TestCase):
    def test_scaled_center_without_flip(self) -> None:
        placement = raster_transform(DEFAULT, 800, 600, scale_factor=2, aspect_ratio=0.5)
        self.assertAlmostEqual(placement.center.x, 680)
        self.assertAlmostEqual(placement.center.y, 480)
        self.assertEqual(placement.width, 300)
        self.assertEqual(placement.height, 150)
        self.assertEqual(placement.local_rect, Rect2D(-150, -75, 300, 150))


class TestTargetPage(unittest.TestCase):
    def test_valid_page_is_kept(self) -> None:
        self.assertEqual(resolve_target_page(2, 2), 2)

    def test_out_of_range_falls_back_to_first(self) -> None:
        self.assertEqual(resolve_target_page(5, 2), 1)
        self.assertEqual(resolve_target_page(0, 2), 1)


class TestInteractionHelpers(unittest.TestCase):
    def test_position_from_screen_is_clamped(self) -> None:
        self.assertEqual(position_from_screen((306, 396), 612, 792), (0.5, 0.5))
        self.assertEqual(position_from_screen((-20, 900), 612, 792), (0.0, 1.0))
        self.assertEqual(position_from_screen((10, 10), 0, 0), (0.0, 0.0))

    def test_rotation_from_pointer(self) -> None:
        center = (100, 100)
        self.assertAlmostEqual(rotation_from_pointer(center, (100, 50)), 0)
        self.assertAlmostEqual(rotation_from_pointer(center, (150, 100)), 90)
        self.assertAlmostEqual(rotation_from_pointer(center, (100, 150)), 180)
        self.assertAlmostEqual(rotation_from_pointer(center, (50, 100)), 270)

    def test_rotate_point_is_clockwise_in_screen_space(self) -> None:
        x, y = rotate_point((10, 0), (0, 0), 90)
        self.assertAlmostEqual(x, 0)
        self.assertAlmostEqual(y, 10)

    def test_rotated_bounding_rect_keeps_center(self) -> None:
        rect = Rect2D.from_center(Point2D(50, 50), 40, 20)
        bounds = rotated_bounding_rect(rect, 45)
        self.assertAlmostEqual(bounds.center.x, 50)
        self.assertAlmostEqual(bounds.center.y, 50)
        self.assertAlmostEqual(bounds.width, bounds.height)


if __name__ == "__main__":
    unittest.main()
