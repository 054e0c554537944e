"""Background execution context for blocking fetch and parse work."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable


class ThreadPoolManager:
    """Own the worker pool that runs fetch cycles off the consumer thread."""

    def __init__(self, workers: int = 1, thread_name_prefix: str = "fxmate-worker") -> None:
        self.workers = workers
        self.thread_name_prefix = thread_name_prefix
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()
        self._closed = False

    def get(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise RuntimeError("Thread pool has been shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix=self.thread_name_prefix
                )
            return self._executor

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        return self.get().submit(fn, *args)

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
            self._closed = True
        if executor is not None:
            executor.shutdown(wait=wait)


__all__ = ["ThreadPoolManager"]
