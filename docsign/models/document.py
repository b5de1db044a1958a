from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Any
import base64
import binascii

from PyQt6.QtGui import QImage

from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    ValidationError,
)

PDF_MEDIA_TYPE = "application/pdf"

FRIENDLY_TYPES: Dict[str, str] = {
    "application/pdf": "PDF Document",
    "application/msword": "Microsoft Word Document",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "Microsoft Word Document",
    "application/vnd.ms-excel": "Microsoft Excel Spreadsheet",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "Microsoft Excel Spreadsheet",
    "text/csv": "CSV File",
}


@dataclass(frozen=True)
class Document:
    """
    A loaded document, immutable for the lifetime of one selection.

    Paginated documents (PDF) get their page count from the rasterizer once
    decoded; flat-preview documents always report a single page.
    """

    content: bytes = field(repr=False)
    media_type: str
    name: str
    page_count: int = 1

    @classmethod
    def from_upload(cls, content: bytes, media_type: str, name: str) -> Document:
        """Build a document from the validated upload tuple."""
        return cls(
            content=bytes(content),
            media_type=(media_type or "").strip().lower(),
            name=name,
        )

    @property
    def is_paginated(self) -> bool:
        return self.media_type == PDF_MEDIA_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def size_kb(self) -> float:
        return len(self.content) / 1024

    @property
    def friendly_type(self) -> str:
        """Human-readable type name shown next to the file name."""
        known = FRIENDLY_TYPES.get(self.media_type)
        if known:
            return known
        if "word" in self.media_type:
            return "Word Document"
        if "sheet" in self.media_type or "excel" in self.media_type:
            return "Excel Spreadsheet"
        return "Document"

    @property
    def base_name(self) -> str:
        """File name without its last extension."""
        stem, dot, _ = self.name.rpartition(".")
        if dot and stem:
            return stem
        return self.name

    def suggested_output_name(self, prefix: str = "signed-") -> str:
        """Paginated output keeps the original name; flat previews become PNG."""
        if self.is_paginated:
            return f"{prefix}{self.name}"
        return f"{prefix}{self.base_name}.png"

    def with_page_count(self, page_count: int) -> Document:
        return replace(self, page_count=max(1, int(page_count)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "media_type": self.media_type,
            "page_count": self.page_count,
            "size_bytes": self.size_bytes,
            "is_paginated": self.is_paginated,
        }


@dataclass(frozen=True)
class SignatureImage:
    """Decoded signature raster handed over by the capture surface."""

    data: bytes = field(repr=False)
    width: int
    height: int

    @classmethod
    def from_png_bytes(cls, data: bytes) -> Result[SignatureImage]:
        """
        Decode image bytes to learn the native pixel size.

        Args:
            data: Encoded image (PNG with alpha expected).

        Returns:
            Result containing the SignatureImage or a validation error.
        """
        if not data:
            return Failure(ValidationError(
                message="Signature image is empty",
                field_name="signature",
            ))

        image = QImage()
        if not image.loadFromData(bytes(data)) or image.isNull():
            return Failure(ValidationError(
                message="Signature image could not be decoded",
                field_name="signature",
            ))

        return cls(data=bytes(data), width=image.width(), height=image.height()).validate()

    @classmethod
    def from_data_url(cls, data_url: str) -> Result[SignatureImage]:
        """Decode a ``data:image/...;base64,`` URL as produced by a drawing canvas."""
        header, comma, payload = (data_url or "").partition(",")
        if not comma or not header.startswith("data:image/") or ";base64" not in header:
            return Failure(ValidationError(
                message="Signature is not a base64 image data URL",
                field_name="signature",
                invalid_value=header[:40],
            ))

        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            return Failure(ValidationError(
                message="Signature data URL payload is not valid base64",
                field_name="signature",
            ))

        return cls.from_png_bytes(raw)

    def validate(self) -> Result[SignatureImage]:
        """A signature without pixels has no aspect ratio and cannot be placed."""
        if self.width <= 0 or self.height <= 0:
            return Failure(ValidationError(
                message="Signature image has no pixels",
                field_name="signature",
                invalid_value=f"{self.width}x{self.height}",
            ))
        return Success(self)

    @property
    def aspect_ratio(self) -> float:
        """Height over width. Only meaningful for a validated signature."""
        return self.height / self.width


@dataclass(frozen=True)
class ViewportState:
    """Pixel geometry of the page currently shown, at the current zoom."""

    page_number: int = 1
    page_count: int = 1
    zoom_level: float = 1.0
    width_px: int = 0
    height_px: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_number": self.page_number,
            "page_count": self.page_count,
            "zoom_level": self.zoom_level,
            "width_px": self.width_px,
            "height_px": self.height_px,
        }
