"""
Export Service

Composes the signed output and hands it to a file-save collaborator:
- Vector export: the signature is embedded into the viewed page of the PDF
- Raster export: a confirmation canvas with the signature drawn on it (PNG)

Nothing is saved unless composing finished completely.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Optional, Dict, Callable
import logging
import threading
import time

from PyQt6.QtCore import QObject, QByteArray, QBuffer, QIODevice, QPointF, QRectF, pyqtSignal
from PyQt6.QtGui import QImage, QPainter, QColor, QFont, QFontMetricsF, QPen, QGuiApplication

import fitz

from docsign.core.coordinate_transform import (
    PageSpacePlacement,
    page_space_transform,
    raster_transform,
    resolve_target_page,
)
from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    AppError,
    ExportError,
    ExportTimeoutError,
    capture_exception,
    try_execute,
)
from docsign.models.document import Document, SignatureImage
from docsign.models.placement import PlacementSnapshot
from docsign.models.settings import RasterExportSettings, PerformanceSettings
from docsign.services.file_saver import FileSaver
from docsign.utils.geometry import Rect2D, rotated_bounding_size

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    """Supported export formats."""
    PDF = auto()
    PNG = auto()


@dataclass(frozen=True)
class ExportRequest:
    """Read-only inputs of one export."""

    document: Document
    signature: SignatureImage
    placement: PlacementSnapshot
    page_number: int = 1


@dataclass(frozen=True)
class ComposedOutput:
    """Complete output bytes, ready to be saved."""

    data: bytes
    file_name: str
    export_format: ExportFormat
    page_number: Optional[int] = None


@dataclass(frozen=True)
class ExportResult:
    """Result of an export operation."""

    export_format: ExportFormat
    file_name: str
    location: str
    file_size_bytes: int
    page_number: Optional[int] = None
    processing_time_ms: float = 0.0


class ExportStrategy(ABC):
    """Turns an export request into output bytes for one kind of target."""

    export_format: ExportFormat

    def __init__(self, output_prefix: str = "signed-"):
        self._output_prefix = output_prefix

    @abstractmethod
    def compose(self, request: ExportRequest) -> Result[ComposedOutput]:
        pass


class VectorExportStrategy(ExportStrategy):
    """
    Embeds the signature into a fresh copy of the PDF.

    The signature width in page units (points) equals the placement size, so a
    150 px signature on screen becomes 150 pt on paper regardless of zoom.
    Only the targeted page receives the mark.
    """

    export_format = ExportFormat.PDF

    def compose(self, request: ExportRequest) -> Result[ComposedOutput]:
        open_result = try_execute(
            lambda: fitz.open(stream=bytes(request.document.content), filetype="pdf"),
            ExportError,
            "Failed to open document for export",
            export_format=self.export_format.name,
        )
        if open_result.is_failure():
            return open_result
        pdf_doc = open_result.unwrap()

        try:
            if len(pdf_doc) == 0:
                return Failure(ExportError(
                    message="Document has no pages to sign",
                    export_format=self.export_format.name,
                ))

            page_number = resolve_target_page(request.page_number, len(pdf_doc))
            if page_number != request.page_number:
                logger.warning(
                    f"Page {request.page_number} does not exist, signing page {page_number}"
                )
            page = pdf_doc[page_number - 1]

            placement = page_space_transform(
                request.placement,
                page.rect.width,
                page.rect.height,
                signature_width=request.placement.size_px,
                aspect_ratio=request.signature.aspect_ratio,
                page_number=page_number,
            )
            self._embed_signature(page, placement, request.signature)

            data = pdf_doc.tobytes(garbage=3, deflate=True)
        except Exception:
            return Failure(capture_exception(
                ExportError,
                "Embedding signature into PDF failed",
                export_format=self.export_format.name,
            ))
        finally:
            pdf_doc.close()

        return Success(ComposedOutput(
            data=data,
            file_name=request.document.suggested_output_name(self._output_prefix),
            export_format=self.export_format,
            page_number=page_number,
        ))

    def _embed_signature(
        self,
        page: fitz.Page,
        placement: PageSpacePlacement,
        signature: SignatureImage,
    ) -> None:
        """
        Draw the signature image onto the page.

        The image is wrapped in a one-page PDF of the signature's size and shown
        on the page, which lets it turn by arbitrary angles. PyMuPDF turns the
        shown page counter-clockwise in PDF space and expects the target box in
        unrotated page coordinates.
        """
        box = placement.to_top_left_rect()
        bound_width, bound_height = rotated_bounding_size(
            placement.width,
            placement.height,
            placement.rotation_deg,
        )
        target = Rect2D.from_center(box.center, bound_width, bound_height)
        target_rect = fitz.Rect(*target.to_corners())
        if page.rotation:
            target_rect = target_rect * page.derotation_matrix

        signature_doc = fitz.open()
        try:
            signature_page = signature_doc.new_page(
                width=placement.width,
                height=placement.height,
            )
            signature_page.insert_image(
                signature_page.rect,
                stream=signature.data,
                keep_proportion=False,
            )
            page.show_pdf_page(
                target_rect,
                signature_doc,
                0,
                keep_proportion=True,
                rotate=page.rotation - placement.rotation_deg,
            )
        finally:
            signature_doc.close()


def decode_signature_image(data: bytes) -> QImage:
    image = QImage()
    if not image.loadFromData(bytes(data)):
        raise ValueError("Signature image could not be decoded")
    return image


class RasterExportStrategy(ExportStrategy):
    """
    Draws a confirmation canvas for documents without a page model:
    background, title, file name, the signature and a timestamp footer.

    Needs a QGuiApplication for text rendering.
    """

    export_format = ExportFormat.PNG

    def __init__(
        self,
        settings: Optional[RasterExportSettings] = None,
        performance: Optional[PerformanceSettings] = None,
        decode_image: Callable[[bytes], QImage] = decode_signature_image,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._settings = settings or RasterExportSettings()
        super().__init__(output_prefix=self._settings.output_prefix)
        self._performance = performance or PerformanceSettings()
        self._decode_image = decode_image
        self._clock = clock

    def compose(self, request: ExportRequest) -> Result[ComposedOutput]:
        if QGuiApplication.instance() is None:
            return Failure(ExportError(
                message="Raster export needs a running QGuiApplication",
                export_format=self.export_format.name,
            ))

        image_result = self._wait_for_signature(request.signature)
        if image_result.is_failure():
            return image_result

        try:
            canvas = self._draw_canvas(request, image_result.unwrap())
            data = self._encode_png(canvas)
        except Exception:
            return Failure(capture_exception(
                ExportError,
                "Drawing the export canvas failed",
                export_format=self.export_format.name,
            ))

        return Success(ComposedOutput(
            data=data,
            file_name=request.document.suggested_output_name(self._output_prefix),
            export_format=self.export_format,
        ))

    def _start_decode(self, data: bytes) -> Future:
        # Daemon thread: a decode that never returns must not hold up process exit.
        future: Future = Future()

        def decode() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._decode_image(data))
            except Exception as exception:
                future.set_exception(exception)

        threading.Thread(target=decode, name="SignatureDecode", daemon=True).start()
        return future

    def _wait_for_signature(self, signature: SignatureImage) -> Result[QImage]:
        timeout = self._performance.signature_decode_timeout_seconds
        future = self._start_decode(signature.data)
        try:
            return Success(future.result(timeout=timeout))
        except FutureTimeoutError:
            logger.warning(f"Abandoning signature decode after {timeout}s")
            return Failure(ExportTimeoutError(
                message=f"Signature image did not finish decoding within {timeout}s",
                export_format=self.export_format.name,
                timeout_seconds=timeout,
            ))
        except Exception as exception:
            return Failure(ExportError(
                message=f"Signature image could not be decoded: {exception}",
                export_format=self.export_format.name,
            ))

    def _draw_canvas(self, request: ExportRequest, signature_image: QImage) -> QImage:
        settings = self._settings
        width, height = settings.canvas_width, settings.canvas_height

        canvas = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
        canvas.fill(QColor(settings.background_color))

        painter = QPainter(canvas)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)

            border = settings.border_width
            painter.setPen(QPen(QColor(settings.border_color), border))
            painter.drawRect(QRectF(border / 2, border / 2, width - border, height - border))

            self._draw_centered_text(
                painter, settings.title_text, settings.title_font_px,
                settings.title_color, settings.title_baseline_y, bold=True,
            )
            self._draw_centered_text(
                painter, request.document.name, settings.filename_font_px,
                settings.filename_color, settings.filename_baseline_y,
            )

            placement = raster_transform(
                request.placement,
                width,
                height,
                settings.scale_factor,
                request.signature.aspect_ratio,
            )
            painter.save()
            painter.translate(placement.center.to_qpointf())
            painter.rotate(placement.rotation_deg)
            painter.drawImage(placement.local_rect.to_qrectf(), signature_image)
            painter.restore()

            timestamp = self._clock().strftime(settings.footer_timestamp_format)
            self._draw_centered_text(
                painter, f"Signed on: {timestamp}", settings.footer_font_px,
                settings.footer_color, height - settings.footer_offset_from_bottom,
            )
        finally:
            painter.end()

        return canvas

    def _draw_centered_text(
        self,
        painter: QPainter,
        text: str,
        pixel_size: int,
        color: str,
        baseline_y: float,
        bold: bool = False,
    ) -> None:
        font = QFont(self._settings.font_family)
        font.setPixelSize(pixel_size)
        font.setBold(bold)
        painter.setFont(font)
        painter.setPen(QColor(color))
        advance = QFontMetricsF(font).horizontalAdvance(text)
        painter.drawText(QPointF((self._settings.canvas_width - advance) / 2, baseline_y), text)

    @staticmethod
    def _encode_png(canvas: QImage) -> bytes:
        byte_array = QByteArray()
        buffer = QBuffer(byte_array)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        try:
            if not canvas.save(buffer, "PNG"):
                raise ValueError("PNG encoder rejected the canvas")
        finally:
            buffer.close()
        return bytes(byte_array)


class ExportService(QObject):
    """
    Picks the export strategy for a document, composes, then saves.

    Signals:
        export_started: Emitted when export begins (ExportFormat)
        export_completed: Emitted when export finishes (ExportResult)
        export_failed: Emitted once when export fails (AppError)
    """

    export_started = pyqtSignal(object)  # ExportFormat
    export_completed = pyqtSignal(object)  # ExportResult
    export_failed = pyqtSignal(object)  # AppError

    def __init__(
        self,
        raster_settings: Optional[RasterExportSettings] = None,
        performance: Optional[PerformanceSettings] = None,
        strategies: Optional[Dict[ExportFormat, ExportStrategy]] = None,
    ):
        super().__init__()
        raster_settings = raster_settings or RasterExportSettings()
        self._strategies: Dict[ExportFormat, ExportStrategy] = {
            ExportFormat.PDF: VectorExportStrategy(output_prefix=raster_settings.output_prefix),
            ExportFormat.PNG: RasterExportStrategy(raster_settings, performance),
        }
        if strategies:
            self._strategies.update(strategies)

    @staticmethod
    def format_for(document: Document) -> ExportFormat:
        return ExportFormat.PDF if document.is_paginated else ExportFormat.PNG

    def strategy_for(self, document: Document) -> ExportStrategy:
        return self._strategies[self.format_for(document)]

    def export(
        self,
        document: Optional[Document],
        signature: Optional[SignatureImage],
        placement: PlacementSnapshot,
        saver: FileSaver,
        page_number: int = 1,
    ) -> Result[ExportResult]:
        """
        Compose the signed output and save it.

        Args:
            document: The selected document.
            signature: The captured signature.
            placement: Snapshot of the placement at export time.
            saver: Receives the output bytes.
            page_number: Page being viewed; out-of-range falls back to page 1.

        Returns:
            Result containing ExportResult with details.
        """
        if document is None:
            return self._fail(ExportError(message="No document selected"))
        if signature is None:
            return self._fail(ExportError(message="No signature captured"))
        signature_check = signature.validate()
        if signature_check.is_failure():
            return self._fail(signature_check.get_error())

        strategy = self.strategy_for(document)
        start_time = time.time()
        logger.info(f"Exporting {document.name} as {strategy.export_format.name}")
        self.export_started.emit(strategy.export_format)

        composed_result = strategy.compose(ExportRequest(
            document=document,
            signature=signature,
            placement=placement,
            page_number=page_number,
        ))
        if composed_result.is_failure():
            return self._fail(composed_result.get_error())

        composed = composed_result.unwrap()
        save_result = saver.save(composed.data, composed.file_name)
        if save_result.is_failure():
            return self._fail(ExportError(
                message=f"Saving {composed.file_name} failed: {save_result.get_error().message}",
                export_format=composed.export_format.name,
                destination=composed.file_name,
            ))

        export_result = ExportResult(
            export_format=composed.export_format,
            file_name=composed.file_name,
            location=save_result.unwrap(),
            file_size_bytes=len(composed.data),
            page_number=composed.page_number,
            processing_time_ms=(time.time() - start_time) * 1000,
        )
        logger.info(
            f"Exported {export_result.file_name} ({export_result.file_size_bytes} bytes) "
            f"in {export_result.processing_time_ms:.1f}ms"
        )
        self.export_completed.emit(export_result)
        return Success(export_result)

    def _fail(self, error: AppError) -> Result[ExportResult]:
        error.log(logger)
        self.export_failed.emit(error)
        return Failure(error)
