from __future__ import annotations
from typing import Tuple
import threading

from PyQt6.QtGui import QImage


class PixelSurface:
    """
    The single shared canvas that shows the rendered page.

    A render paints its bands into a private buffer and commits the finished
    buffer here in one step. Writers hold ``lock`` while re-checking their
    cancel flag and committing, so a commit either happens before the
    cancellation is observed or not at all.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._image = QImage()
        self._commit_count = 0
        self._last_commit_tag = None

    def commit(self, image: QImage, tag=None) -> None:
        """Replace the visible pixels. Caller holds the lock."""
        self._image = image
        self._commit_count += 1
        self._last_commit_tag = tag

    def clear(self) -> None:
        with self.lock:
            self._image = QImage()
            self._last_commit_tag = None

    def snapshot(self) -> QImage:
        """Detached copy of the current pixels."""
        with self.lock:
            return self._image.copy()

    @property
    def size(self) -> Tuple[int, int]:
        with self.lock:
            if self._image.isNull():
                return (0, 0)
            return (self._image.width(), self._image.height())

    @property
    def commit_count(self) -> int:
        return self._commit_count

    @property
    def last_commit_tag(self):
        """Identifier the last committing render passed along (its request sequence)."""
        return self._last_commit_tag
