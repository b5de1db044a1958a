from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Dict, Set, Any
import logging
import threading
import time

from PyQt6.QtGui import QImage, QPainter, QColor

import fitz

from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    DecodeError,
    RenderError,
)
from docsign.core.pixel_surface import PixelSurface
from docsign.models.settings import PerformanceSettings
from docsign.utils.validators import validate_page_number, validate_zoom_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageInfo:
    """Intrinsic page geometry in PDF points (as displayed, /Rotate applied)."""

    page_number: int
    width: float
    height: float
    rotation: int = 0


@dataclass(frozen=True)
class PageViewport:
    """Pixel size of a page at a zoom level."""

    page_number: int
    zoom: float
    width_px: int
    height_px: int


class RenderStatus(Enum):
    """Terminal states of a render operation that are not failures."""
    COMPLETED = auto()
    CANCELED = auto()


@dataclass(frozen=True)
class RenderOutcome:
    """What a settled render operation produced."""

    status: RenderStatus
    page_number: int
    zoom: float
    viewport: Optional[PageViewport] = None
    render_time_ms: float = 0.0
    tag: Any = None

    @property
    def is_canceled(self) -> bool:
        return self.status == RenderStatus.CANCELED


class DocumentHandle:
    """An open decoder session over one document's bytes."""

    def __init__(self, document: fitz.Document, name: str = ""):
        self._document = document
        self.name = name
        self._lock = threading.RLock()
        self._page_info_cache: Dict[int, PageInfo] = {}
        self._active_operations: Set[RenderOperation] = set()
        self._operations_lock = threading.Lock()
        self._closing = False

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def document(self) -> fitz.Document:
        return self._document

    def is_open(self) -> bool:
        """Check if the document is still open."""
        return (
            not self._closing
            and self._document is not None
            and not self._document.is_closed
        )

    @property
    def page_count(self) -> int:
        return len(self._document) if self.is_open() else 0

    def get_page_info(self, page_number: int) -> Result[PageInfo]:
        """
        Get the geometry of a page.

        Args:
            page_number: One-based page number.

        Returns:
            Result containing PageInfo or error.
        """
        if not self.is_open():
            return Failure(RenderError(message="Document is closed", page_number=page_number))

        if page_number < 1 or page_number > self.page_count:
            return Failure(RenderError(
                message=f"Page number {page_number} out of range (1-{self.page_count})",
                page_number=page_number,
            ))

        with self._lock:
            if page_number in self._page_info_cache:
                return Success(self._page_info_cache[page_number])

            try:
                page = self._document[page_number - 1]
                rect = page.rect
                page_info = PageInfo(
                    page_number=page_number,
                    width=rect.width,
                    height=rect.height,
                    rotation=page.rotation,
                )
                self._page_info_cache[page_number] = page_info
                return Success(page_info)
            except Exception as exception:
                return Failure(RenderError(
                    message=f"Failed to read page geometry: {str(exception)}",
                    page_number=page_number,
                ))

    def _register(self, operation: RenderOperation) -> bool:
        with self._operations_lock:
            if self._closing:
                return False
            self._active_operations.add(operation)
            return True

    def _unregister(self, operation: RenderOperation) -> None:
        with self._operations_lock:
            self._active_operations.discard(operation)

    def close(self, timeout: float = 5.0) -> None:
        """
        Release the decoder. Safe to call repeatedly and while a render runs:
        live renders are asked to cancel and awaited first.
        """
        with self._operations_lock:
            already_closing = self._closing
            self._closing = True
            pending = list(self._active_operations)

        for operation in pending:
            operation.cancel()
        for operation in pending:
            if not operation.wait(timeout):
                logger.warning(
                    f"Render of page {operation.page_number} did not settle within {timeout}s"
                )

        if already_closing:
            return

        with self._lock:
            if self._document is not None and not self._document.is_closed:
                self._document.close()
            self._page_info_cache.clear()
        logger.info(f"Closed document handle: {self.name or '<unnamed>'}")


class RenderOperation:
    """
    One cancelable page rasterization.

    ``run`` paints the page band by band into a private buffer and commits it
    to the surface at the end. Cancellation is cooperative: it is observed
    before every band and once more under the surface lock before committing.
    """

    def __init__(
        self,
        handle: DocumentHandle,
        page_number: int,
        zoom: float,
        surface: PixelSurface,
        band_height_px: int = 256,
        tag: Any = None,
    ):
        self.handle = handle
        self.page_number = page_number
        self.zoom = zoom
        self.surface = surface
        self.tag = tag
        self._band_height_px = max(16, int(band_height_px))
        self._cancel_event = threading.Event()
        self._settled_event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next checkpoint."""
        self._cancel_event.set()

    @property
    def is_cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def is_settled(self) -> bool:
        return self._settled_event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the operation finished, failed or acknowledged cancellation."""
        return self._settled_event.wait(timeout)

    def _canceled(self, start_time: float) -> Result[RenderOutcome]:
        logger.debug(f"Render of page {self.page_number} at zoom {self.zoom:.2f} canceled")
        return Success(RenderOutcome(
            status=RenderStatus.CANCELED,
            page_number=self.page_number,
            zoom=self.zoom,
            render_time_ms=(time.perf_counter() - start_time) * 1000,
            tag=self.tag,
        ))

    def run(self) -> Result[RenderOutcome]:
        start_time = time.perf_counter()
        registered = False
        try:
            if self.is_cancel_requested:
                return self._canceled(start_time)

            registered = self.handle._register(self)
            if not registered:
                return self._canceled(start_time)

            with self.handle.lock:
                if not self.handle.is_open():
                    return self._canceled(start_time)
                page = self.handle.document[self.page_number - 1]
                display_list = page.get_displaylist()

            matrix = fitz.Matrix(self.zoom, self.zoom)
            page_rect = display_list.rect
            full_rect = (page_rect * matrix).irect
            buffer = QImage(full_rect.width, full_rect.height, QImage.Format.Format_RGB888)
            buffer.fill(QColor("white"))

            band_top = 0
            while band_top < full_rect.height:
                if self.is_cancel_requested:
                    return self._canceled(start_time)

                band_bottom = min(full_rect.height, band_top + self._band_height_px)
                clip = fitz.Rect(
                    page_rect.x0,
                    page_rect.y0 + band_top / self.zoom,
                    page_rect.x1,
                    page_rect.y0 + band_bottom / self.zoom,
                )
                with self.handle.lock:
                    if not self.handle.is_open():
                        return self._canceled(start_time)
                    band = display_list.get_pixmap(matrix=matrix, clip=clip, alpha=False)

                painter = QPainter(buffer)
                try:
                    painter.drawImage(
                        band.x - full_rect.x0,
                        band.y - full_rect.y0,
                        fitz_pixmap_to_qimage(band),
                    )
                finally:
                    painter.end()
                band_top = band_bottom

            viewport = PageViewport(
                page_number=self.page_number,
                zoom=self.zoom,
                width_px=full_rect.width,
                height_px=full_rect.height,
            )

            with self.surface.lock:
                if self.is_cancel_requested:
                    return self._canceled(start_time)
                self.surface.commit(buffer, tag=self.tag)

            render_time_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                f"Rendered page {self.page_number} at zoom {self.zoom:.2f} in {render_time_ms:.1f}ms"
            )
            return Success(RenderOutcome(
                status=RenderStatus.COMPLETED,
                page_number=self.page_number,
                zoom=self.zoom,
                viewport=viewport,
                render_time_ms=render_time_ms,
                tag=self.tag,
            ))

        except Exception as exception:
            return Failure(RenderError(
                message=f"Failed to render page {self.page_number}: {str(exception)}",
                page_number=self.page_number,
                zoom_level=self.zoom,
            ))
        finally:
            if registered:
                self.handle._unregister(self)
            self._settled_event.set()


def fitz_pixmap_to_qimage(pixmap: fitz.Pixmap) -> QImage:
    """Convert PyMuPDF Pixmap to Qt QImage."""
    if pixmap.alpha:
        image_format = QImage.Format.Format_RGBA8888
    else:
        image_format = QImage.Format.Format_RGB888

    image = QImage(
        pixmap.samples,
        pixmap.width,
        pixmap.height,
        pixmap.stride,
        image_format,
    )

    return image.copy()


class PageRasterizer:
    """
    Adapter over PyMuPDF: decodes paginated documents, reports page geometry
    and hands out cancelable render operations. Page numbers are one-based.
    """

    PDF_HEADER = b"%PDF-"

    def __init__(self, performance: Optional[PerformanceSettings] = None):
        self._performance = performance or PerformanceSettings()

    def open(self, content: bytes, name: str = "") -> Result[DocumentHandle]:
        """
        Decode document bytes.

        Args:
            content: The raw document bytes.
            name: Display name used in logs and errors.

        Returns:
            Result containing an open DocumentHandle or a DecodeError.
        """
        if not content:
            return Failure(DecodeError(
                message="Document is empty (zero bytes)",
                document_name=name,
                media_type="application/pdf",
            ))

        try:
            fitz_document = fitz.open(stream=bytes(content), filetype="pdf")
        except Exception as exception:
            return Failure(DecodeError(
                message=f"Document could not be decoded: {str(exception)}",
                document_name=name,
                media_type="application/pdf",
            ))

        if fitz_document.needs_pass:
            fitz_document.close()
            return Failure(DecodeError(
                message="Document is encrypted and requires a password",
                document_name=name,
                media_type="application/pdf",
            ))

        if len(fitz_document) == 0:
            fitz_document.close()
            return Failure(DecodeError(
                message="Document has no pages",
                document_name=name,
                media_type="application/pdf",
            ))

        if not bytes(content[:1024]).lstrip().startswith(self.PDF_HEADER):
            logger.warning(f"Document {name!r} decoded after repair; header is missing")

        logger.info(f"Opened document: {name or '<unnamed>'} ({len(fitz_document)} pages)")
        return Success(DocumentHandle(fitz_document, name=name))

    def page_count(self, handle: DocumentHandle) -> int:
        return handle.page_count

    def page_info(self, handle: DocumentHandle, page_number: int) -> Result[PageInfo]:
        return handle.get_page_info(page_number)

    def viewport_for(
        self,
        handle: DocumentHandle,
        page_number: int,
        zoom: float,
    ) -> Result[PageViewport]:
        """Pixel size of a page at zoom; a pure function of page size and zoom."""
        page_info_result = handle.get_page_info(page_number)
        if page_info_result.is_failure():
            return page_info_result

        page_info = page_info_result.unwrap()
        pixel_rect = (fitz.Rect(0, 0, page_info.width, page_info.height) * fitz.Matrix(zoom, zoom)).irect
        return Success(PageViewport(
            page_number=page_number,
            zoom=zoom,
            width_px=pixel_rect.width,
            height_px=pixel_rect.height,
        ))

    def render_page(
        self,
        handle: DocumentHandle,
        page_number: int,
        zoom: float,
        surface: PixelSurface,
        tag: Any = None,
    ) -> Result[RenderOperation]:
        """
        Prepare a render of one page into the surface. The caller runs it.

        Args:
            handle: Open document handle.
            page_number: One-based page number.
            zoom: Zoom scale factor.
            surface: Shared surface the finished page is committed to.
            tag: Opaque identifier carried into the outcome.

        Returns:
            Result containing the RenderOperation.
        """
        if not handle.is_open():
            return Failure(RenderError(
                message="Document is closed",
                page_number=page_number,
                zoom_level=zoom,
            ))

        for check in (
            validate_page_number(page_number, handle.page_count),
            validate_zoom_level(zoom),
        ):
            if check.is_failure():
                return Failure(RenderError(
                    message=check.get_error().message,
                    page_number=page_number,
                    zoom_level=zoom,
                ))

        return Success(RenderOperation(
            handle,
            page_number,
            zoom,
            surface,
            band_height_px=self._performance.render_band_height_px,
            tag=tag,
        ))

    def close(self, handle: Optional[DocumentHandle]) -> None:
        if handle is None:
            return
        handle.close(timeout=self._performance.close_timeout_seconds)
