"""
tests/support.py

Shared fixtures: offscreen Qt, in-memory PDFs and signature images, pixel scans.
"""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from typing import Callable, Optional, Tuple

import fitz
from PyQt6.QtCore import QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QColor, QGuiApplication, QImage

_app: Optional[QGuiApplication] = None

Bounds = Tuple[float, float, float, float]
PixelTest = Callable[[int, int, int], bool]


def ensure_app() -> QGuiApplication:
    """One QGuiApplication per test process; text drawing needs it."""
    global _app
    existing = QGuiApplication.instance()
    if existing is not None:
        return existing
    _app = QGuiApplication([])
    return _app


def make_pdf(page_count: int = 2, width: float = 612, height: float = 792, rotation: int = 0) -> bytes:
    doc = fitz.open()
    for _ in range(page_count):
        page = doc.new_page(width=width, height=height)
        if rotation:
            page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


def make_signature_png(
    width: int = 200,
    height: int = 100,
    top_color: str = "#000000",
    bottom_color: str = "#0000ff",
) -> bytes:
    """Opaque two-tone image: top half one color, bottom half the other."""
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor(bottom_color))
    top = QColor(top_color)
    for y in range(height // 2):
        for x in range(width):
            image.setPixelColor(x, y, top)
    byte_array = QByteArray()
    buffer = QBuffer(byte_array)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(byte_array)


def is_black(r: int, g: int, b: int) -> bool:
    return r < 60 and g < 60 and b < 60


def is_blue(r: int, g: int, b: int) -> bool:
    return b > 180 and r < 80 and g < 80


def is_ink(r: int, g: int, b: int) -> bool:
    return is_black(r, g, b) or is_blue(r, g, b)


def _grow(bounds: Optional[Bounds], x: int, y: int) -> Bounds:
    if bounds is None:
        return (x, y, x + 1, y + 1)
    return (min(bounds[0], x), min(bounds[1], y), max(bounds[2], x + 1), max(bounds[3], y + 1))


def pixmap_bounds(pixmap: fitz.Pixmap, test: PixelTest) -> Optional[Bounds]:
    """Bounding box (x0, y0, x1, y1) of the pixels of a fitz RGB pixmap that pass ``test``."""
    samples = pixmap.samples
    stride = pixmap.stride
    channels = pixmap.n
    white_row = b"\xff" * (pixmap.width * channels)
    bounds = None
    for y in range(pixmap.height):
        row = samples[y * stride:y * stride + pixmap.width * channels]
        if row == white_row:
            continue
        for x in range(pixmap.width):
            offset = x * channels
            if test(row[offset], row[offset + 1], row[offset + 2]):
                bounds = _grow(bounds, x, y)
    return bounds


def qimage_bounds(image: QImage, test: PixelTest, region: Optional[Bounds] = None) -> Optional[Bounds]:
    x0, y0, x1, y1 = region or (0, 0, image.width(), image.height())
    bounds = None
    for y in range(int(y0), int(y1)):
        for x in range(int(x0), int(x1)):
            color = image.pixelColor(x, y)
            if test(color.red(), color.green(), color.blue()):
                bounds = _grow(bounds, x, y)
    return bounds


def center_of(bounds: Bounds) -> Tuple[float, float]:
    return ((bounds[0] + bounds[2]) / 2, (bounds[1] + bounds[3]) / 2)


def render_pdf_page(data: bytes, page_number: int) -> fitz.Pixmap:
    """Rasterize a one-based page at 72 dpi, so pixels equal points."""
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return doc[page_number - 1].get_pixmap(alpha=False)
    finally:
        doc.close()
