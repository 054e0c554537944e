"""APScheduler wrapper driving the periodic feed refresh."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable

import structlog
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

MIN_INTERVAL_SECONDS = 1.0


class APSchedulerAdapter:
    """Fire ``callback`` every ``interval`` seconds while running.

    Each firing is a one-shot job; the next one is only scheduled after the
    callback returns, so the interval is measured from the end of the
    previous dispatch rather than aligned to the wall clock.
    """

    JOB_ID = "feed::auto_refresh"

    def __init__(
        self,
        callback: Callable[[], None],
        scheduler: BackgroundScheduler | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.callback = callback
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = logger or structlog.get_logger("fxmate.scheduler")
        self.started = False
        self._running = False
        self._interval = 0.0
        self._lock = Lock()

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, interval_seconds: float) -> None:
        with self._lock:
            if self._running:
                self.logger.debug("auto_refresh_already_running")
                return
            if not self.started:
                self.scheduler.start()
                self.started = True
            self._interval = max(MIN_INTERVAL_SECONDS, float(interval_seconds))
            self._running = True
            self._schedule_next()
        self.logger.info("auto_refresh_started", interval=self._interval)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self.logger.debug("auto_refresh_already_stopped")
                return
            self._running = False
            try:
                self.scheduler.remove_job(self.JOB_ID)
            except JobLookupError:
                pass
        self.logger.info("auto_refresh_stopped")

    def shutdown(self) -> None:
        self.stop()
        with self._lock:
            if self.started:
                self.scheduler.shutdown(wait=False)
                self.started = False

    def next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job is not None else None

    # ------------------------------------------------------------------
    def _fire(self) -> None:
        if not self.is_running():
            return
        try:
            self.callback()
        except Exception as exc:  # noqa: BLE001
            self.logger.error("auto_refresh_callback_failed", error=str(exc))
        with self._lock:
            if self._running:
                self._schedule_next()

    def _schedule_next(self) -> None:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self._interval)
        self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_date),
            id=self.JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )


__all__ = ["APSchedulerAdapter", "MIN_INTERVAL_SECONDS"]
