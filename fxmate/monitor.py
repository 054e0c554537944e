"""Consumer-side view of the latest rates snapshot."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

import structlog

from .config import DEFAULT_MAIN_CURRENCIES
from .engine import (
    CurrencyRate,
    Extractor,
    FetchFailure,
    FetchResult,
    MainThreadDispatcher,
    filter_rates,
    select_targets,
)
from .orchestrator import FetchOrchestrator
from .scheduler import APSchedulerAdapter

Listener = Callable[["RatesMonitor"], None]
SchedulerFactory = Callable[[Callable[[], None]], APSchedulerAdapter]


class RatesMonitor:
    """Hold loading/rates/error state and drive refreshes.

    Every method here, and every listener, runs on the dispatcher's owner
    thread. Background results only arrive through ``dispatcher.post``.
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        dispatcher: MainThreadDispatcher,
        feed_url: str,
        *,
        auto_update_interval: float = 60.0,
        main_currencies: Iterable[str] = DEFAULT_MAIN_CURRENCIES,
        scheduler_factory: SchedulerFactory = APSchedulerAdapter,
        extractor: Extractor | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher
        self.feed_url = feed_url
        self.auto_update_interval = auto_update_interval
        self.main_codes = tuple(code.upper() for code in main_currencies)
        self.extractor = extractor or orchestrator.extractor
        self.logger = logger or structlog.get_logger("fxmate.monitor")
        self.scheduler = scheduler_factory(self._scheduled_refresh)

        self.rates: list[CurrencyRate] = []
        self.is_loading = False
        self.error_message: str | None = None
        self.last_updated: datetime | None = None
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    def refresh(self) -> bool:
        if self.orchestrator.is_busy():
            self.logger.warning("refresh_ignored_in_progress")
            return False
        self.is_loading = True
        self.error_message = None
        self._notify()
        accepted = self.orchestrator.trigger_fetch(self.feed_url, self._on_result)
        if not accepted:
            self.is_loading = False
            self._notify()
        return accepted

    def load_from_text(self, xml_data: str) -> list[CurrencyRate]:
        """Parse ``xml_data`` synchronously and publish the result."""

        self.is_loading = True
        self.error_message = None
        rates: list[CurrencyRate] = []
        try:
            rates = self.extractor.extract(xml_data)
            if rates:
                self.rates = list(rates)
                self.last_updated = datetime.now()
                self.logger.info("rates_loaded", count=len(rates))
            else:
                self.error_message = "No currency data found"
                self.logger.warning("rates_missing_in_text")
        finally:
            self.is_loading = False
            self._notify()
        return rates

    def search(self, query: str | None) -> list[CurrencyRate]:
        results = filter_rates(self.rates, query)
        self.logger.debug("rates_searched", query=query, results=len(results))
        return results

    def main_currencies(self) -> list[CurrencyRate]:
        return select_targets(self.rates, self.main_codes)

    # ------------------------------------------------------------------
    def start_auto_update(self) -> None:
        self.scheduler.start(self.auto_update_interval)

    def stop_auto_update(self) -> None:
        self.scheduler.stop()

    def is_auto_update_enabled(self) -> bool:
        return self.scheduler.is_running()

    def close(self) -> None:
        self.scheduler.shutdown()

    # ------------------------------------------------------------------
    def _scheduled_refresh(self) -> None:
        # Runs on a scheduler thread: hop to the consumer before touching state.
        self.dispatcher.post(self.refresh)

    def _on_result(self, result: FetchResult) -> None:
        if isinstance(result, FetchFailure):
            self.error_message = result.message
            self.logger.error(
                "rates_fetch_failed", kind=result.kind.value, message=result.message
            )
        else:
            self.rates = list(result.records)
            self.last_updated = datetime.now()
            self.logger.info("rates_updated", count=len(self.rates))
        self.is_loading = False
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


__all__ = ["RatesMonitor"]
