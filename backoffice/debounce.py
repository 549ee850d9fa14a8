from __future__ import annotations

import asyncio
import copy
import logging
import threading
from typing import Any, Callable, Optional

from backoffice.storage import DraftStore

logger = logging.getLogger(__name__)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DebouncedSaver:
    """Coalesce rapid draft writes into one write after a quiet period.

    The timer lives on the event loop; the write itself runs in the
    loop's executor so a slow store never stalls other requests.
    """

    def __init__(
        self,
        save: Callable[[dict[str, Any]], Any],
        delay_ms: int = 1500,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._save = save
        self.delay_ms = delay_ms
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._handle_loop: Optional[asyncio.AbstractEventLoop] = None
        self._document: Optional[dict[str, Any]] = None
        self._generation = 0
        self._lock = threading.Lock()
        self._writing = threading.Lock()

    def __call__(self, document: dict[str, Any]) -> None:
        snapshot = copy.deepcopy(document)
        loop = self._loop or _running_loop()
        self._drop_timer()
        if loop is None:
            logger.debug("No event loop for draft auto-save, writing now")
            self._write(self._generation, snapshot)
            return
        with self._lock:
            self._document = snapshot
            self._handle = loop.call_later(self.delay_ms / 1000, self._fire)
            self._handle_loop = loop

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
        self._drop_timer()
        # a write already under way finishes before the caller moves on
        with self._writing:
            pass

    def flush(self) -> None:
        with self._lock:
            document, generation = self._document, self._generation
        if document is None:
            return
        self._drop_timer()
        self._write(generation, document)

    def _drop_timer(self) -> None:
        with self._lock:
            handle, loop = self._handle, self._handle_loop
            self._handle = self._handle_loop = None
            self._document = None
        if handle is None:
            return
        if loop is not None and not loop.is_closed() and _running_loop() is not loop:
            loop.call_soon_threadsafe(handle.cancel)
        else:
            handle.cancel()

    def _fire(self) -> None:
        with self._lock:
            document, generation = self._document, self._generation
            self._handle = self._handle_loop = None
            self._document = None
        if document is None:
            return
        asyncio.get_running_loop().run_in_executor(None, self._write, generation, document)

    def _write(self, generation: int, document: dict[str, Any]) -> None:
        with self._writing:
            if generation != self._generation:
                logger.debug("Dropping draft write superseded by a cancel")
                return
            try:
                self._save(document)
            except Exception:
                logger.exception("Debounced draft save failed")


def make_debounced_save(store: DraftStore, delay_ms: int = 1500, **kwargs: Any) -> DebouncedSaver:
    return DebouncedSaver(store.save, delay_ms, **kwargs)
