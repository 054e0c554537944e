"""Consumer-side execution context.

Worker threads never touch consumer state directly; they ``post`` callbacks
here and the owning thread runs them in order via :meth:`run_pending`.
"""

from __future__ import annotations

import queue
from threading import get_ident
from typing import Any, Callable

import structlog


class MainThreadDispatcher:
    """FIFO callback queue drained by the thread that created it."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )
        self._owner = get_ident()
        self.logger = logger or structlog.get_logger("fxmate.dispatcher")

    def is_owner_thread(self) -> bool:
        return get_ident() == self._owner

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        self._queue.put((callback, args))

    def pending(self) -> int:
        return self._queue.qsize()

    def run_pending(self, timeout: float | None = 0) -> int:
        """Run queued callbacks and return how many ran.

        Blocks up to ``timeout`` seconds for the first callback; ``None`` waits
        indefinitely, ``0`` only drains what is already queued.
        """

        if not self.is_owner_thread():
            raise RuntimeError("run_pending must be called from the dispatcher's owner thread")
        executed = 0
        block = timeout is None or timeout > 0
        try:
            item = self._queue.get(block=block, timeout=timeout if block else None)
        except queue.Empty:
            return executed
        while True:
            callback, args = item
            try:
                callback(*args)
            except Exception as exc:  # noqa: BLE001
                self.logger.error(
                    "dispatch_callback_failed",
                    callback=getattr(callback, "__name__", repr(callback)),
                    error=str(exc),
                )
            executed += 1
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return executed


__all__ = ["MainThreadDispatcher"]
