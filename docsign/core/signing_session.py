from __future__ import annotations
from concurrent.futures import Future
from typing import Optional, Tuple
import logging
import threading

from docsign.core.coordinate_transform import (
    OverlayGeometry,
    display_transform,
    position_from_screen,
    rotation_from_pointer,
)
from docsign.core.error_types import Result, Success, Failure, ExportError
from docsign.core.page_rasterizer import PageRasterizer
from docsign.core.render_controller import RenderTaskController
from docsign.models.document import Document, SignatureImage
from docsign.models.placement import SignaturePlacement
from docsign.models.settings import SigningSettings
from docsign.services.export_service import ExportService, ExportResult
from docsign.services.file_saver import FileSaver
from docsign.utils.validators import validate_upload

logger = logging.getLogger(__name__)


class SigningSession:
    """
    One signing workflow: a document, a signature and where it goes.

    Owns the placement model and composes the render controller (viewing) and
    the export service (output). A front end drives this object and listens to
    the controller for page renders.
    """

    def __init__(
        self,
        settings: Optional[SigningSettings] = None,
        controller: Optional[RenderTaskController] = None,
        export_service: Optional[ExportService] = None,
    ):
        self._settings = settings or SigningSettings()
        self._placement = SignaturePlacement(self._settings.placement)
        self._controller = controller or RenderTaskController(
            rasterizer=PageRasterizer(self._settings.performance),
            viewer_settings=self._settings.viewer,
        )
        self._export_service = export_service or ExportService(
            raster_settings=self._settings.raster_export,
            performance=self._settings.performance,
        )
        self._signature: Optional[SignatureImage] = None
        self._export_lock = threading.Lock()
        self._is_exporting = False

    @property
    def settings(self) -> SigningSettings:
        return self._settings

    @property
    def placement(self) -> SignaturePlacement:
        return self._placement

    @property
    def controller(self) -> RenderTaskController:
        return self._controller

    @property
    def export_service(self) -> ExportService:
        return self._export_service

    @property
    def document(self) -> Optional[Document]:
        return self._controller.document

    @property
    def signature(self) -> Optional[SignatureImage]:
        return self._signature

    @property
    def is_exporting(self) -> bool:
        return self._is_exporting

    @property
    def can_export(self) -> bool:
        return self.document is not None and self._signature is not None and not self._is_exporting

    def select_document(self, content: bytes, media_type: str, name: str) -> Result[Future]:
        """
        Load a newly picked file. The previous document, its decoder and any
        render in flight are released. The placement is kept.

        Returns:
            Result containing the controller's load future.
        """
        validation = validate_upload(content, media_type, name)
        if validation.is_failure():
            validation.get_error().log(logger)
            return validation

        document = Document.from_upload(*validation.unwrap())
        return Success(self._controller.load_document(document))

    def set_signature(self, signature: SignatureImage) -> Result[SignatureImage]:
        """Keep a signature; one without pixels is rejected and the old one stays."""
        result = signature.validate()
        if result.is_failure():
            result.get_error().log(logger)
            return result
        self._signature = signature
        logger.debug(f"Signature set ({signature.width}x{signature.height})")
        return result

    def set_signature_png(self, data: bytes) -> Result[SignatureImage]:
        """Decode and keep a PNG captured by the drawing pad."""
        result = SignatureImage.from_png_bytes(data)
        if result.is_failure():
            result.get_error().log(logger)
            return result
        return self.set_signature(result.unwrap())

    def clear_signature(self) -> None:
        """Drop the captured signature; size, position and rotation stay."""
        self._signature = None

    def reset(self) -> Future:
        """Back to a fresh session: defaults, no signature, no document."""
        self._placement.reset()
        self._signature = None
        logger.info("Signing session reset")
        return self._controller.close_document()

    def overlay_geometry(
        self,
        viewport_width_px: Optional[float] = None,
        viewport_height_px: Optional[float] = None,
    ) -> Optional[OverlayGeometry]:
        """
        Where to draw the signature over the displayed page.

        The viewport size defaults to the last rendered page; flat previews
        have no rendered page, so their caller passes the preview size.
        Returns None while there is no signature or no known viewport size.
        """
        if self._signature is None:
            return None

        viewport = self._controller.viewport
        width = viewport_width_px if viewport_width_px is not None else viewport.width_px
        height = viewport_height_px if viewport_height_px is not None else viewport.height_px
        if width <= 0 or height <= 0:
            return None

        return display_transform(
            self._placement.snapshot(),
            width,
            height,
            self._signature.aspect_ratio,
        )

    def drag_to(
        self,
        point: Tuple[float, float],
        viewport_width_px: float,
        viewport_height_px: float,
    ) -> None:
        """Move the signature center to a pointer position inside the viewport."""
        x, y = position_from_screen(point, viewport_width_px, viewport_height_px)
        self._placement.set_position(x, y)

    def rotate_towards(
        self,
        pointer: Tuple[float, float],
        viewport_width_px: float,
        viewport_height_px: float,
    ) -> float:
        """Turn the signature so its top faces the pointer; returns the new rotation."""
        x, y = self._placement.position
        center = (x * viewport_width_px, y * viewport_height_px)
        self._placement.set_rotation(rotation_from_pointer(center, pointer))
        return self._placement.rotation_deg

    def export(self, saver: FileSaver) -> Result[ExportResult]:
        """
        Compose and save the signed output for the page being viewed.

        Only one export runs at a time; a second request while one is in
        flight fails right away without starting anything.
        """
        with self._export_lock:
            if self._is_exporting:
                return Failure(ExportError(message="An export is already in progress"))
            self._is_exporting = True

        try:
            return self._export_service.export(
                self.document,
                self._signature,
                self._placement.snapshot(),
                saver,
                page_number=self._controller.current_page,
            )
        finally:
            with self._export_lock:
                self._is_exporting = False

    def close(self) -> None:
        """Release the document and stop background work."""
        self._controller.shutdown(timeout=self._settings.performance.close_timeout_seconds)
