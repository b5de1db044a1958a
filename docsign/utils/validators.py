from __future__ import annotations
from typing import Tuple
import math

from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    ValidationError,
)


def validate_upload(
    content: bytes,
    media_type: str,
    name: str,
) -> Result[Tuple[bytes, str, str]]:
    """
    Validate the (bytes, media type, name) tuple handed over by a file picker.

    Empty content is allowed here; it is the rasterizer's job to reject it as
    a decode failure so that the viewer can show the load error.

    Returns:
        Result containing the normalized tuple.
    """
    if not isinstance(content, (bytes, bytearray, memoryview)):
        return Failure(ValidationError(
            message="Document content must be bytes",
            field_name="content",
            invalid_value=type(content).__name__,
        ))

    media_type = (media_type or "").strip().lower()
    if not media_type or "/" not in media_type:
        return Failure(ValidationError(
            message="Document media type is missing or malformed",
            field_name="media_type",
            invalid_value=media_type,
        ))

    name = (name or "").strip()
    if not name:
        return Failure(ValidationError(
            message="Document name cannot be empty",
            field_name="name",
        ))

    return Success((bytes(content), media_type, name))


def validate_page_number(
    page_number: int,
    total_pages: int,
) -> Result[int]:
    """
    Validate a one-based page number.

    Args:
        page_number: Page number to validate.
        total_pages: Total number of pages in the document.

    Returns:
        Result containing the validated page number.
    """
    if not isinstance(page_number, int) or isinstance(page_number, bool):
        return Failure(ValidationError(
            message="Page number must be an integer",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    if page_number < 1:
        return Failure(ValidationError(
            message="Page number must be at least 1",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    if page_number > total_pages:
        return Failure(ValidationError(
            message=f"Page number must be at most {total_pages}",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    return Success(page_number)


def validate_zoom_level(zoom_level: float) -> Result[float]:
    """A zoom must be a finite number above zero."""
    if not isinstance(zoom_level, (int, float)) or isinstance(zoom_level, bool):
        return Failure(ValidationError(
            message="Zoom level must be a number",
            field_name="zoom_level",
            invalid_value=str(zoom_level),
        ))

    if not math.isfinite(zoom_level) or zoom_level <= 0:
        return Failure(ValidationError(
            message="Zoom level must be a positive finite number",
            field_name="zoom_level",
            invalid_value=str(zoom_level),
        ))

    return Success(float(zoom_level))
