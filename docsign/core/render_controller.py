from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, Future, wait as wait_futures
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Dict, List, Callable, Any, Set
import logging
import threading
import time

from docsign.core.error_types import (
    Result,
    Success,
    Failure,
    AppError,
    RenderError,
)
from docsign.core.page_rasterizer import (
    PageRasterizer,
    DocumentHandle,
    RenderOperation,
    RenderOutcome,
    PageInfo,
)
from docsign.core.pixel_surface import PixelSurface
from docsign.models.document import Document, ViewportState
from docsign.models.settings import ViewerSettings

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """Render controller lifecycle states."""
    IDLE = auto()
    LOADING = auto()
    READY = auto()
    RENDERING = auto()
    ERROR = auto()


class ControllerEventType(Enum):
    """Types of controller events."""
    STATE_CHANGED = auto()
    DOCUMENT_LOADED = auto()
    DOCUMENT_CLOSED = auto()
    PAGE_RENDERED = auto()
    RENDER_DISCARDED = auto()
    ERROR = auto()


@dataclass(frozen=True)
class ControllerEvent:
    """Event emitted when controller state changes."""

    event_type: ControllerEventType
    state: ControllerState
    data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RenderTask:
    """Ephemeral handle to one requested page render."""

    sequence: int
    generation: int
    page_number: int
    zoom: float
    operation: RenderOperation

    def cancel(self) -> None:
        self.operation.cancel()


class RenderTaskController:
    """
    Coordinates document load, page switches and zoom changes.

    Work runs on a single worker thread, so requests execute in the order
    they were made and a render only starts after the previous one settled.
    Every render request gets a sequence number; only the newest request's
    result is ever committed and published. A new document bumps the
    generation, which retires everything queued for the old one.

    Listeners are called from whichever thread produced the event, never
    while the controller lock is held.
    """

    def __init__(
        self,
        rasterizer: Optional[PageRasterizer] = None,
        viewer_settings: Optional[ViewerSettings] = None,
        surface: Optional[PixelSurface] = None,
    ):
        self._rasterizer = rasterizer or PageRasterizer()
        self._settings = viewer_settings or ViewerSettings()
        self._surface = surface or PixelSurface()

        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="RenderTaskController",
        )
        self._lock = threading.RLock()

        self._state = ControllerState.IDLE
        self._document: Optional[Document] = None
        self._handle: Optional[DocumentHandle] = None
        self._generation = 0
        self._sequence = 0
        self._live_task: Optional[RenderTask] = None

        self._page_number = 1
        self._zoom_level = self._settings.default_zoom
        self._viewport = ViewportState(zoom_level=self._zoom_level)
        self._last_error: Optional[AppError] = None

        self._futures: Set[Future] = set()
        self._listeners: List[Callable[[ControllerEvent], None]] = []
        self._pending_events: List[ControllerEvent] = []
        self._is_shut_down = False

        logger.info(
            f"RenderTaskController initialized with zoom range "
            f"{self._settings.min_zoom}-{self._settings.max_zoom}"
        )

    # ------------------------------------------------------------------
    # Listeners

    def add_listener(self, listener: Callable[[ControllerEvent], None]) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[ControllerEvent], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _queue_event_locked(self, event_type: ControllerEventType, data: Optional[Dict[str, Any]] = None) -> None:
        self._pending_events.append(ControllerEvent(event_type=event_type, state=self._state, data=data))

    def _emit(self, event_type: ControllerEventType, data: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self._queue_event_locked(event_type, data)
        self._flush_events()

    def _flush_events(self) -> None:
        """Deliver queued events. Never call this while holding the lock."""
        with self._lock:
            events = self._pending_events
            self._pending_events = []
            listeners = list(self._listeners)
        for event in events:
            self._notify(listeners, event)

    def _notify(self, listeners: List[Callable[[ControllerEvent], None]], event: ControllerEvent) -> None:
        event_type = event.event_type
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed while handling {event_type.name}")

    def _set_state_locked(self, state: ControllerState) -> bool:
        if self._state == state:
            return False
        logger.debug(f"State {self._state.name} -> {state.name}")
        self._state = state
        return True

    # ------------------------------------------------------------------
    # Properties

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def document(self) -> Optional[Document]:
        return self._document

    @property
    def surface(self) -> PixelSurface:
        return self._surface

    @property
    def page_count(self) -> int:
        with self._lock:
            return self._document.page_count if self._document else 0

    @property
    def current_page(self) -> int:
        """The most recently requested page, one-based."""
        return self._page_number

    @property
    def zoom_level(self) -> float:
        """The most recently requested zoom."""
        return self._zoom_level

    @property
    def viewport(self) -> ViewportState:
        """Geometry of the last published render."""
        return self._viewport

    @property
    def last_error(self) -> Optional[AppError]:
        return self._last_error

    @property
    def settings(self) -> ViewerSettings:
        return self._settings

    def page_info(self, page_number: int) -> Result[PageInfo]:
        with self._lock:
            handle = self._handle
        if handle is None:
            return Failure(RenderError(message="No paginated document is loaded", page_number=page_number))
        return self._rasterizer.page_info(handle, page_number)

    # ------------------------------------------------------------------
    # Work tracking

    def _submit(self, function: Callable, *args) -> Future:
        if self._is_shut_down:
            raise RuntimeError("RenderTaskController has been shut down")
        future = self._executor.submit(function, *args)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget_future)
        return future

    def _forget_future(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    def wait_until_settled(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no load or render is queued or running, including renders
        that a finishing load queued on its way out.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [future for future in self._futures if not future.done()]
            if not pending:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            _, not_done = wait_futures(pending, timeout=remaining)
            if not_done:
                return False

    # ------------------------------------------------------------------
    # Document lifecycle

    def load_document(self, document: Document) -> Future:
        """
        Replace the current document and start decoding the new one.

        Any live render is canceled and the old decoder is released first.
        The returned future resolves to ``Result[Optional[Document]]``; the
        value is None when a newer document replaced this one meanwhile.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            old_handle = self._retire_current_locked()

            self._document = document
            self._page_number = 1
            self._zoom_level = self._settings.default_zoom
            self._viewport = ViewportState(
                page_number=1,
                page_count=document.page_count,
                zoom_level=self._zoom_level,
            )
            self._last_error = None
            self._set_state_locked(ControllerState.LOADING)

        self._surface.clear()
        self._emit(ControllerEventType.STATE_CHANGED)
        logger.info(f"Loading document: {document.name} ({document.media_type})")
        return self._submit(self._load, document, generation, old_handle)

    def close_document(self) -> Future:
        """Release the current document and return to Idle."""
        with self._lock:
            self._generation += 1
            old_handle = self._retire_current_locked()
            had_document = self._document is not None
            self._document = None
            self._page_number = 1
            self._zoom_level = self._settings.default_zoom
            self._viewport = ViewportState(zoom_level=self._zoom_level)
            self._last_error = None
            changed = self._set_state_locked(ControllerState.IDLE)

        self._surface.clear()
        if changed:
            self._emit(ControllerEventType.STATE_CHANGED)
        if had_document:
            self._emit(ControllerEventType.DOCUMENT_CLOSED)
        return self._submit(self._release_handle, old_handle)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Close the document and stop the worker thread."""
        if self._is_shut_down:
            return
        self.close_document()
        self.wait_until_settled(timeout)
        self._is_shut_down = True
        self._executor.shutdown(wait=True)

    def _retire_current_locked(self) -> Optional[DocumentHandle]:
        if self._live_task is not None:
            self._live_task.cancel()
            self._live_task = None
        old_handle = self._handle
        self._handle = None
        return old_handle

    def _release_handle(self, handle: Optional[DocumentHandle]) -> None:
        if handle is not None:
            self._rasterizer.close(handle)

    def _load(
        self,
        document: Document,
        generation: int,
        old_handle: Optional[DocumentHandle],
    ) -> Result[Optional[Document]]:
        self._release_handle(old_handle)

        with self._lock:
            if generation != self._generation:
                return Success(None)

        if not document.is_paginated:
            with self._lock:
                if generation != self._generation:
                    return Success(None)
                self._set_state_locked(ControllerState.READY)
            logger.info(f"Loaded flat-preview document: {document.name}")
            self._emit(ControllerEventType.STATE_CHANGED)
            self._emit(ControllerEventType.DOCUMENT_LOADED, {"page_count": 1, "is_paginated": False})
            return Success(document)

        open_result = self._rasterizer.open(document.content, name=document.name)
        if open_result.is_failure():
            error = open_result.get_error()
            with self._lock:
                if generation != self._generation:
                    return Success(None)
                self._last_error = error
                self._set_state_locked(ControllerState.ERROR)
            error.log(logger)
            self._emit(ControllerEventType.STATE_CHANGED)
            self._emit(ControllerEventType.ERROR, {"error": error})
            return Failure(error)

        handle = open_result.unwrap()
        with self._lock:
            if generation != self._generation:
                stale_handle = handle
                handle = None
            else:
                stale_handle = None
                loaded = document.with_page_count(self._rasterizer.page_count(handle))
                self._document = loaded
                self._handle = handle
                self._viewport = ViewportState(
                    page_number=1,
                    page_count=loaded.page_count,
                    zoom_level=self._zoom_level,
                )
                self._set_state_locked(ControllerState.READY)

        if stale_handle is not None:
            self._rasterizer.close(stale_handle)
            logger.debug(f"Discarded superseded load of {document.name}")
            return Success(None)

        self._emit(ControllerEventType.STATE_CHANGED)
        self._emit(ControllerEventType.DOCUMENT_LOADED, {
            "page_count": loaded.page_count,
            "is_paginated": True,
        })

        with self._lock:
            if generation == self._generation:
                self._request_render_locked(self._page_number, self._zoom_level)
        self._flush_events()
        return Success(loaded)

    # ------------------------------------------------------------------
    # Navigation

    def go_to_page(self, page_number: int) -> Optional[Future]:
        """Show a page; the number is clamped to the document's range."""
        with self._lock:
            if self._handle is None:
                return None
            page_number = max(1, min(self.page_count, int(page_number)))
            future = self._request_if_changed_locked(page_number, self._zoom_level)
        self._flush_events()
        return future

    def next_page(self) -> Optional[Future]:
        return self.go_to_page(self._page_number + 1)

    def previous_page(self) -> Optional[Future]:
        return self.go_to_page(self._page_number - 1)

    def set_zoom(self, zoom_level: float) -> Optional[Future]:
        """Change zoom; the level is clamped to the configured range."""
        with self._lock:
            zoom_level = max(self._settings.min_zoom, min(self._settings.max_zoom, float(zoom_level)))
            if self._handle is None:
                self._zoom_level = zoom_level
                return None
            future = self._request_if_changed_locked(self._page_number, zoom_level)
        self._flush_events()
        return future

    def zoom_in(self) -> Optional[Future]:
        return self.set_zoom(self._zoom_level + self._settings.zoom_step)

    def zoom_out(self) -> Optional[Future]:
        return self.set_zoom(self._zoom_level - self._settings.zoom_step)

    def refresh(self) -> Optional[Future]:
        """Render the current page again, e.g. after an error."""
        with self._lock:
            if self._handle is None:
                return None
            future = self._request_render_locked(self._page_number, self._zoom_level)
        self._flush_events()
        return future

    def _request_if_changed_locked(self, page_number: int, zoom_level: float) -> Optional[Future]:
        unchanged = page_number == self._page_number and zoom_level == self._zoom_level
        if unchanged and self._state in (ControllerState.READY, ControllerState.RENDERING):
            return None
        return self._request_render_locked(page_number, zoom_level)

    def _request_render_locked(self, page_number: int, zoom_level: float) -> Optional[Future]:
        self._sequence += 1
        sequence = self._sequence
        self._page_number = page_number
        self._zoom_level = zoom_level

        if self._live_task is not None:
            self._live_task.cancel()
            self._live_task = None

        operation_result = self._rasterizer.render_page(
            self._handle,
            page_number,
            zoom_level,
            self._surface,
            tag=sequence,
        )
        if operation_result.is_failure():
            error = operation_result.get_error()
            self._last_error = error
            self._set_state_locked(ControllerState.ERROR)
            error.log(logger)
            self._queue_event_locked(ControllerEventType.STATE_CHANGED)
            self._queue_event_locked(ControllerEventType.ERROR, {"error": error})
            return None

        task = RenderTask(
            sequence=sequence,
            generation=self._generation,
            page_number=page_number,
            zoom=zoom_level,
            operation=operation_result.unwrap(),
        )
        self._live_task = task
        if self._set_state_locked(ControllerState.RENDERING):
            self._queue_event_locked(ControllerEventType.STATE_CHANGED)
        return self._submit(self._run_render, task)

    def _is_current_locked(self, task: RenderTask) -> bool:
        return task.sequence == self._sequence and task.generation == self._generation

    def _run_render(self, task: RenderTask) -> Result[RenderOutcome]:
        with self._lock:
            if not self._is_current_locked(task):
                task.cancel()

        result = task.operation.run()

        with self._lock:
            is_current = self._is_current_locked(task)
            if is_current and self._live_task is task:
                self._live_task = None

            if result.is_failure():
                if not is_current:
                    logger.debug(f"Ignoring failure of superseded render #{task.sequence}")
                    return result
                error = result.get_error()
                self._last_error = error
                self._set_state_locked(ControllerState.ERROR)
                publish = None
            else:
                outcome = result.unwrap()
                if outcome.is_canceled or not is_current:
                    publish = None
                    error = None
                else:
                    error = None
                    publish = ViewportState(
                        page_number=outcome.page_number,
                        page_count=self.page_count,
                        zoom_level=outcome.zoom,
                        width_px=outcome.viewport.width_px,
                        height_px=outcome.viewport.height_px,
                    )
                    self._viewport = publish
                    self._last_error = None
                    self._set_state_locked(ControllerState.READY)

        if error is not None:
            error.log(logger)
            self._emit(ControllerEventType.STATE_CHANGED)
            self._emit(ControllerEventType.ERROR, {"error": error})
        elif publish is None:
            logger.debug(
                f"Discarded render #{task.sequence} of page {task.page_number} "
                f"at zoom {task.zoom:.2f}"
            )
            self._emit(ControllerEventType.RENDER_DISCARDED, {
                "sequence": task.sequence,
                "page_number": task.page_number,
                "zoom_level": task.zoom,
            })
        else:
            self._emit(ControllerEventType.STATE_CHANGED)
            self._emit(ControllerEventType.PAGE_RENDERED, {
                "sequence": task.sequence,
                "viewport": publish,
                "render_time_ms": result.unwrap().render_time_ms,
            })
        return result
