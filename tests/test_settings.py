"""
tests/test_settings.py

Settings groups and their QSettings persistence.
"""

from __future__ import annotations

import os
import tempfile
import unittest

from PyQt6.QtCore import QSettings

from docsign.models.settings import (
    AppSettings,
    PlacementSettings,
    RasterExportSettings,
    ViewerSettings,
)


class TestSettingsGroups(unittest.TestCase):
    def test_dict_round_trip_keeps_tuple_position(self) -> None:
        settings = PlacementSettings(default_position=(0.5, 0.25), max_size_px=250)
        restored = PlacementSettings.from_dict(settings.to_dict())
        self.assertEqual(restored, settings)
        self.assertIsInstance(restored.default_position, tuple)

    def test_missing_keys_use_defaults(self) -> None:
        self.assertEqual(ViewerSettings.from_dict({"max_zoom": 4.0}).min_zoom, 0.5)
        raster = RasterExportSettings.from_dict({"canvas_width": 1024, "unknown": 1})
        self.assertEqual(raster.canvas_width, 1024)
        self.assertEqual(raster.canvas_height, 600)


class TestAppSettings(unittest.TestCase):
    def setUp(self) -> None:
        self._directory = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._directory.name, "docsign.ini")

    def tearDown(self) -> None:
        self._directory.cleanup()

    def qsettings(self) -> QSettings:
        return QSettings(self.path, QSettings.Format.IniFormat)

    def test_persists_between_instances(self) -> None:
        settings = AppSettings(self.qsettings())
        settings.viewer = ViewerSettings(max_zoom=4.0)
        settings.placement = PlacementSettings(default_size_px=120)
        settings.save()

        reloaded = AppSettings(self.qsettings())
        self.assertEqual(reloaded.viewer.max_zoom, 4.0)
        self.assertEqual(reloaded.snapshot().placement.default_size_px, 120)

    def test_unreadable_group_falls_back_to_defaults(self) -> None:
        raw = self.qsettings()
        raw.setValue("settings/viewer", "{not json")
        raw.sync()
        settings = AppSettings(self.qsettings())
        self.assertEqual(settings.viewer, ViewerSettings())

    def test_reset_to_defaults(self) -> None:
        settings = AppSettings(self.qsettings())
        settings.raster_export = RasterExportSettings(canvas_width=1000)
        settings.reset_to_defaults()
        self.assertEqual(settings.raster_export.canvas_width, 800)


if __name__ == "__main__":
    unittest.main()
