"""
tests/test_placement.py

Signature placement: clamping on write, rotation wraparound, defaults.
"""

from __future__ import annotations

import math
import unittest

from docsign.models.placement import SignaturePlacement, clamp, normalize_rotation
from docsign.models.settings import PlacementSettings


class TestSignaturePlacement(unittest.TestCase):
    def setUp(self) -> None:
        self.placement = SignaturePlacement()

    def test_defaults(self) -> None:
        self.assertEqual(self.placement.position, (0.85, 0.8))
        self.assertEqual(self.placement.size_px, 150)
        self.assertEqual(self.placement.rotation_deg, 0)

    def test_position_is_clamped_not_rejected(self) -> None:
        self.placement.set_position(-0.5, 1.7)
        self.assertEqual(self.placement.position, (0.0, 1.0))
        self.placement.set_position(0.25, 0.5)
        self.assertEqual(self.placement.position, (0.25, 0.5))

    def test_size_is_clamped(self) -> None:
        self.placement.set_size(10)
        self.assertEqual(self.placement.size_px, 50)
        self.placement.set_size(5000)
        self.assertEqual(self.placement.size_px, 300)

    def test_grow_and_shrink_stop_at_limits(self) -> None:
        self.placement.set_size(295)
        self.placement.grow()
        self.assertEqual(self.placement.size_px, 300)
        self.assertFalse(self.placement.can_grow)
        self.placement.set_size(55)
        self.placement.shrink()
        self.assertEqual(self.placement.size_px, 50)
        self.assertFalse(self.placement.can_shrink)
        self.placement.grow()
        self.assertEqual(self.placement.size_px, 60)

    def test_rotation_wraps_into_range(self) -> None:
        for degrees, expected in ((-90, 270), (360, 0), (725, 5), (-720, 0), (359.5, 359.5)):
            self.placement.set_rotation(degrees)
            self.assertEqual(self.placement.rotation_deg, expected, degrees)

    def test_rotation_is_periodic(self) -> None:
        for degrees in (0.1, 45.3, 123.456, 271.9, -33.3):
            self.assertEqual(normalize_rotation(degrees), normalize_rotation(degrees + 360))
            self.assertEqual(normalize_rotation(degrees), normalize_rotation(degrees - 720))

    def test_rotation_always_in_half_open_range(self) -> None:
        for degrees in (-1e-12, -360.0000000001, 359.99999999999, 1e9 + 0.5):
            value = normalize_rotation(degrees)
            self.assertGreaterEqual(value, 0.0)
            self.assertLess(value, 360.0)

    def test_non_finite_input_is_neutralized(self) -> None:
        self.placement.set_rotation(math.inf)
        self.assertEqual(self.placement.rotation_deg, 0.0)
        self.placement.set_position(math.nan, 0.5)
        self.assertEqual(self.placement.position, (0.0, 0.5))
        self.assertEqual(clamp(math.nan, 2.0, 3.0), 2.0)

    def test_reset_restores_defaults(self) -> None:
        self.placement.set_position(0.1, 0.1)
        self.placement.set_size(280)
        self.placement.set_rotation(45)
        self.placement.reset()
        self.assertEqual(self.placement.position, (0.85, 0.8))
        self.assertEqual(self.placement.size_px, 150)
        self.assertEqual(self.placement.rotation_deg, 0)

    def test_snapshot_is_detached(self) -> None:
        snapshot = self.placement.snapshot()
        self.placement.set_position(0.1, 0.2)
        self.placement.set_rotation(90)
        self.assertEqual(snapshot.position, (0.85, 0.8))
        self.assertEqual(snapshot.rotation_deg, 0)
        with self.assertRaises(AttributeError):
            snapshot.x = 0.5

    def test_custom_limits(self) -> None:
        placement = SignaturePlacement(PlacementSettings(
            min_size_px=20,
            max_size_px=40,
            default_size_px=30,
            size_step_px=5,
            default_position=(0.5, 0.5),
            default_rotation_deg=-45,
        ))
        self.assertEqual(placement.size_px, 30)
        self.assertEqual(placement.rotation_deg, 315)
        self.assertEqual(placement.position, (0.5, 0.5))
        placement.set_size(100)
        self.assertEqual(placement.size_px, 40)


if __name__ == "__main__":
    unittest.main()
