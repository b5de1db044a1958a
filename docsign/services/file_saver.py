"""
File Save Collaborators

Receive the finished export as a named byte buffer. The export compositor
only looks at success or failure of the save.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import logging
import threading

from docsign.core.error_types import Result, Success, Failure, FileSystemError
from docsign.utils.file_ops import (
    ensure_directory_exists,
    get_unique_filename,
    sanitize_file_name,
    split_file_name,
    write_file_bytes,
)

logger = logging.getLogger(__name__)


class FileSaver(ABC):
    """Accepts a named byte buffer produced by an export."""

    @abstractmethod
    def save(self, data: bytes, suggested_name: str) -> Result[str]:
        """
        Persist the buffer.

        Args:
            data: Complete output bytes.
            suggested_name: File name proposed by the export strategy.

        Returns:
            Result containing where the data ended up (a path or a key).
        """
        pass


class DirectoryFileSaver(FileSaver):
    """Writes exports into a directory, never clobbering earlier files unless asked."""

    def __init__(self, directory: Path, overwrite: bool = False):
        self._directory = Path(directory)
        self._overwrite = overwrite

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, data: bytes, suggested_name: str) -> Result[str]:
        directory_result = ensure_directory_exists(self._directory)
        if directory_result.is_failure():
            return directory_result

        file_name = sanitize_file_name(suggested_name)
        if self._overwrite:
            target = directory_result.unwrap() / file_name
        else:
            stem, extension = split_file_name(file_name)
            try:
                target = get_unique_filename(directory_result.unwrap(), stem, extension)
            except RuntimeError as exception:
                return Failure(FileSystemError(
                    message=str(exception),
                    path=directory_result.unwrap(),
                    operation="write",
                ))

        write_result = write_file_bytes(target, data, overwrite=self._overwrite)
        if write_result.is_failure():
            return write_result

        logger.info(f"Saved export to {target} ({len(data)} bytes)")
        return Success(str(write_result.unwrap()))


class InMemoryFileSaver(FileSaver):
    """Keeps exports in a dict keyed by file name; useful when bytes go back over a network."""

    def __init__(self):
        self._files: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def save(self, data: bytes, suggested_name: str) -> Result[str]:
        name = sanitize_file_name(suggested_name)
        with self._lock:
            self._files[name] = bytes(data)
        return Success(name)

    def get(self, name: str) -> Optional[bytes]:
        with self._lock:
            return self._files.get(name)

    @property
    def names(self) -> list[str]:
        with self._lock:
            return list(self._files)
