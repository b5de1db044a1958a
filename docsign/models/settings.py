from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
import json
import logging

from PyQt6.QtCore import QSettings

logger = logging.getLogger(__name__)


@dataclass
class PlacementSettings:
    """Limits and defaults for the signature placement."""

    min_size_px: float = 50.0
    max_size_px: float = 300.0
    default_size_px: float = 150.0
    size_step_px: float = 10.0

    default_position: Tuple[float, float] = (0.85, 0.8)
    default_rotation_deg: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "min_size_px": self.min_size_px,
            "max_size_px": self.max_size_px,
            "default_size_px": self.default_size_px,
            "size_step_px": self.size_step_px,
            "default_position": list(self.default_position),
            "default_rotation_deg": self.default_rotation_deg,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PlacementSettings:
        """Create settings from dictionary."""
        position = data.get("default_position", (0.85, 0.8))
        return cls(
            min_size_px=data.get("min_size_px", 50.0),
            max_size_px=data.get("max_size_px", 300.0),
            default_size_px=data.get("default_size_px", 150.0),
            size_step_px=data.get("size_step_px", 10.0),
            default_position=(float(position[0]), float(position[1])),
            default_rotation_deg=data.get("default_rotation_deg", 0.0),
        )


@dataclass
class ViewerSettings:
    """Settings for the page viewer."""

    min_zoom: float = 0.5
    max_zoom: float = 3.0
    default_zoom: float = 1.0
    zoom_step: float = 0.25

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
            "default_zoom": self.default_zoom,
            "zoom_step": self.zoom_step,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ViewerSettings:
        """Create settings from dictionary."""
        return cls(
            min_zoom=data.get("min_zoom", 0.5),
            max_zoom=data.get("max_zoom", 3.0),
            default_zoom=data.get("default_zoom", 1.0),
            zoom_step=data.get("zoom_step", 0.25),
        )


@dataclass
class RasterExportSettings:
    """Layout of the flat-preview signing record."""

    canvas_width: int = 800
    canvas_height: int = 600
    scale_factor: float = 2.0

    background_color: str = "#f8fafc"
    border_color: str = "#e2e8f0"
    border_width: int = 2

    title_text: str = "Document Signed"
    title_color: str = "#1e293b"
    title_font_px: int = 32
    title_baseline_y: int = 100

    filename_color: str = "#64748b"
    filename_font_px: int = 18
    filename_baseline_y: int = 150

    footer_color: str = "#94a3b8"
    footer_font_px: int = 14
    footer_offset_from_bottom: int = 50
    footer_timestamp_format: str = "%x %X"

    font_family: str = "sans-serif"
    output_prefix: str = "signed-"

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "scale_factor": self.scale_factor,
            "background_color": self.background_color,
            "border_color": self.border_color,
            "border_width": self.border_width,
            "title_text": self.title_text,
            "title_color": self.title_color,
            "title_font_px": self.title_font_px,
            "title_baseline_y": self.title_baseline_y,
            "filename_color": self.filename_color,
            "filename_font_px": self.filename_font_px,
            "filename_baseline_y": self.filename_baseline_y,
            "footer_color": self.footer_color,
            "footer_font_px": self.footer_font_px,
            "footer_offset_from_bottom": self.footer_offset_from_bottom,
            "footer_timestamp_format": self.footer_timestamp_format,
            "font_family": self.font_family,
            "output_prefix": self.output_prefix,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RasterExportSettings:
        """Create settings from dictionary."""
        defaults = cls()
        return cls(**{
            key: data.get(key, value)
            for key, value in defaults.to_dict().items()
        })


@dataclass
class PerformanceSettings:
    """Settings for render and export tuning."""

    render_band_height_px: int = 256
    close_timeout_seconds: float = 5.0
    signature_decode_timeout_seconds: float = 10.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "render_band_height_px": self.render_band_height_px,
            "close_timeout_seconds": self.close_timeout_seconds,
            "signature_decode_timeout_seconds": self.signature_decode_timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PerformanceSettings:
        """Create settings from dictionary."""
        return cls(
            render_band_height_px=data.get("render_band_height_px", 256),
            close_timeout_seconds=data.get("close_timeout_seconds", 5.0),
            signature_decode_timeout_seconds=data.get("signature_decode_timeout_seconds", 10.0),
        )


@dataclass
class SigningSettings:
    """All settings groups consumed by the signing core."""

    placement: PlacementSettings = field(default_factory=PlacementSettings)
    viewer: ViewerSettings = field(default_factory=ViewerSettings)
    raster_export: RasterExportSettings = field(default_factory=RasterExportSettings)
    performance: PerformanceSettings = field(default_factory=PerformanceSettings)


class AppSettings:
    """
    Settings manager with QSettings persistence.
    Each group is stored as a JSON string under ``settings/<group>``.
    """

    ORGANIZATION_NAME = "DocSign"
    APPLICATION_NAME = "DocSign"

    def __init__(self, qsettings: Optional[QSettings] = None):
        self._qsettings = qsettings or QSettings(self.ORGANIZATION_NAME, self.APPLICATION_NAME)

        self.placement = self._load_group("placement", PlacementSettings)
        self.viewer = self._load_group("viewer", ViewerSettings)
        self.raster_export = self._load_group("raster_export", RasterExportSettings)
        self.performance = self._load_group("performance", PerformanceSettings)

    def _load_group(self, name: str, settings_class):
        data = self._qsettings.value(f"settings/{name}")
        if data:
            try:
                return settings_class.from_dict(json.loads(data))
            except (json.JSONDecodeError, KeyError, TypeError, IndexError) as exception:
                logger.warning(f"Ignoring unreadable settings group '{name}': {exception}")
        return settings_class()

    def save(self) -> None:
        """Save all settings to persistent storage."""
        self._qsettings.setValue("settings/placement", json.dumps(self.placement.to_dict()))
        self._qsettings.setValue("settings/viewer", json.dumps(self.viewer.to_dict()))
        self._qsettings.setValue("settings/raster_export", json.dumps(self.raster_export.to_dict()))
        self._qsettings.setValue("settings/performance", json.dumps(self.performance.to_dict()))
        self._qsettings.sync()

    def reset_to_defaults(self) -> None:
        """Reset all settings to defaults."""
        self.placement = PlacementSettings()
        self.viewer = ViewerSettings()
        self.raster_export = RasterExportSettings()
        self.performance = PerformanceSettings()

    def snapshot(self) -> SigningSettings:
        """Bundle the current groups for handing to the signing core."""
        return SigningSettings(
            placement=self.placement,
            viewer=self.viewer,
            raster_export=self.raster_export,
            performance=self.performance,
        )
