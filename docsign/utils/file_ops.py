from __future__ import annotations
from pathlib import Path
import os
import tempfile
import logging

from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    FileSystemError,
    FilePermissionError as AppFilePermissionError,
)

logger = logging.getLogger(__name__)


def ensure_directory_exists(directory_path: Path) -> Result[Path]:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory_path: Path to the directory.

    Returns:
        Result containing the directory path.
    """
    try:
        directory_path = Path(directory_path).resolve()
        directory_path.mkdir(parents=True, exist_ok=True)
        return Success(directory_path)
    except PermissionError:
        return Failure(AppFilePermissionError(
            message=f"Permission denied creating directory: {directory_path}",
            path=directory_path,
            operation="mkdir",
        ))
    except Exception as exception:
        return Failure(FileSystemError(
            message=f"Failed to create directory: {str(exception)}",
            path=directory_path,
            operation="mkdir",
        ))


def split_file_name(file_name: str) -> tuple[str, str]:
    """Split ``report.pdf`` into ``("report", ".pdf")``; dotfiles keep their name."""
    stem, dot, extension = file_name.rpartition(".")
    if not dot or not stem:
        return file_name, ""
    return stem, f".{extension}"


def sanitize_file_name(file_name: str) -> str:
    """Drop directory parts and characters that are unsafe in file names."""
    name = os.path.basename(file_name.replace("\\", "/")).strip()
    cleaned = "".join(
        "_" if character in '<>:"|?*' or ord(character) < 32 else character
        for character in name
    )
    return cleaned or "document"


def get_unique_filename(
    directory: Path,
    base_name: str,
    extension: str,
) -> Path:
    """
    Generate a unique filename by appending a number if necessary.

    Args:
        directory: Directory where the file will be created.
        base_name: Base name for the file (without extension).
        extension: File extension (with or without leading dot).

    Returns:
        Path with unique filename.
    """
    if extension and not extension.startswith("."):
        extension = f".{extension}"

    directory = Path(directory).resolve()

    candidate = directory / f"{base_name}{extension}"
    if not candidate.exists():
        return candidate

    counter = 1
    while True:
        candidate = directory / f"{base_name} ({counter}){extension}"
        if not candidate.exists():
            return candidate
        counter += 1

        if counter > 10000:
            raise RuntimeError("Could not generate unique filename")


def write_file_bytes(
    file_path: Path,
    data: bytes,
    overwrite: bool = True,
) -> Result[Path]:
    """
    Write bytes to a file without ever leaving a partial file behind.

    The data goes to a temporary file in the target directory first and is
    moved into place once fully written.

    Args:
        file_path: Path to the file.
        data: Bytes to write.
        overwrite: Whether to overwrite existing file.

    Returns:
        Result containing the file path.
    """
    temp_path = None
    try:
        file_path = Path(file_path).resolve()

        if file_path.exists() and not overwrite:
            return Failure(FileSystemError(
                message=f"File already exists: {file_path}",
                path=file_path,
                operation="write",
            ))

        file_path.parent.mkdir(parents=True, exist_ok=True)

        descriptor, temp_name = tempfile.mkstemp(
            prefix=f".{file_path.name}.",
            suffix=".part",
            dir=str(file_path.parent),
        )
        temp_path = Path(temp_name)
        with os.fdopen(descriptor, "wb") as file:
            file.write(data)
            file.flush()
            os.fsync(file.fileno())

        os.replace(temp_path, file_path)
        temp_path = None

        logger.debug(f"Wrote {len(data)} bytes to {file_path}")
        return Success(file_path)

    except PermissionError:
        return Failure(AppFilePermissionError(
            message=f"Permission denied: {file_path}",
            path=file_path,
            operation="write",
        ))
    except Exception as exception:
        return Failure(FileSystemError(
            message=f"Failed to write file: {str(exception)}",
            path=file_path,
            operation="write",
        ))
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
