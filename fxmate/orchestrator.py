"""Single-flight coordinator wiring fetching and extraction to the consumer."""

from __future__ import annotations

from threading import Lock
from typing import Callable

import structlog

from .engine import (
    Extractor,
    FailureKind,
    Fetcher,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    MainThreadDispatcher,
    ThreadPoolManager,
)
from .errors import NetworkError

EMPTY_RESPONSE = "empty response"
NO_CURRENCY_DATA = "no currency data found"

ResultCallback = Callable[[FetchResult], None]


class FetchOrchestrator:
    """Run at most one fetch cycle at a time and deliver its outcome.

    A cycle is fetch then extract on the background pool. The busy flag is
    cleared before the outcome is posted to the dispatcher, so ``on_result``
    always runs on the consumer's thread and may trigger the next cycle.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        extractor: Extractor,
        thread_pool: ThreadPoolManager,
        dispatcher: MainThreadDispatcher,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.thread_pool = thread_pool
        self.dispatcher = dispatcher
        self.logger = logger or structlog.get_logger("fxmate.orchestrator")
        self._lock = Lock()
        self._busy = False

    def is_busy(self) -> bool:
        with self._lock:
            return self._busy

    def trigger_fetch(self, url: str, on_result: ResultCallback) -> bool:
        """Start a cycle for ``url`` unless one is already running.

        Returns ``False`` when the request was dropped.
        """

        with self._lock:
            if self._busy:
                self.logger.warning("fetch_dropped_busy", url=url)
                return False
            self._busy = True
        try:
            self.thread_pool.submit(self._run_cycle, url, on_result)
        except RuntimeError as exc:
            self._release()
            self.logger.error("fetch_submit_failed", url=url, error=str(exc))
            return False
        self.logger.info("fetch_dispatched", url=url)
        return True

    # ------------------------------------------------------------------
    def _run_cycle(self, url: str, on_result: ResultCallback) -> None:
        try:
            result = self.fetch_and_extract(url)
        finally:
            self._release()
        self.dispatcher.post(on_result, result)

    def _release(self) -> None:
        with self._lock:
            self._busy = False

    def fetch_and_extract(self, url: str) -> FetchResult:
        """Run one blocking cycle and classify its outcome."""

        try:
            raw_text = self.fetcher.fetch(url)
        except NetworkError as exc:
            return FetchFailure(FailureKind.NETWORK, str(exc))
        except Exception as exc:  # noqa: BLE001
            self.logger.error("fetch_unexpected_error", url=url, error=str(exc))
            return FetchFailure(FailureKind.NETWORK, f"Error fetching data: {exc}")

        if not raw_text or not raw_text.strip():
            self.logger.warning("fetch_empty_response", url=url)
            return FetchFailure(FailureKind.NETWORK, EMPTY_RESPONSE)

        try:
            records = self.extractor.extract(raw_text)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("extract_unexpected_error", url=url, error=str(exc))
            return FetchFailure(FailureKind.PARSE, f"Error parsing data: {exc}")

        if not records:
            self.logger.warning("fetch_no_records", url=url)
            return FetchFailure(FailureKind.EMPTY_RESULT, NO_CURRENCY_DATA)

        self.logger.info("fetch_cycle_completed", url=url, records=len(records))
        return FetchSuccess(tuple(records))


__all__ = ["EMPTY_RESPONSE", "FetchOrchestrator", "NO_CURRENCY_DATA", "ResultCallback"]
