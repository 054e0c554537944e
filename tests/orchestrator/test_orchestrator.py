from __future__ import annotations

import threading
import time

import pytest

from conftest import InlineThreadPool, StubFetcher
from fxmate.engine import (
    Extractor,
    FailureKind,
    FetchFailure,
    FetchSuccess,
    MainThreadDispatcher,
    ThreadPoolManager,
)
from fxmate.errors import NetworkError
from fxmate.orchestrator import EMPTY_RESPONSE, NO_CURRENCY_DATA, FetchOrchestrator

FEED_URL = "https://feeds.example.com/gbp/rss.xml"


class BlockingFetcher:
    """Holds every fetch until ``release`` is set."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[str] = []
        self.started = threading.Event()
        self.release = threading.Event()

    def fetch(self, url: str, timeout: float | None = None) -> str:
        self.calls.append(url)
        self.started.set()
        self.release.wait(5)
        return self.text


class ExplodingExtractor:
    def extract(self, raw_text: str):
        raise RuntimeError("parser exploded")


def make_orchestrator(fetcher, pool=None, extractor=None) -> FetchOrchestrator:
    return FetchOrchestrator(
        fetcher,
        extractor or Extractor(),
        pool or InlineThreadPool(),
        MainThreadDispatcher(),
    )


def test_single_flight_drops_concurrent_triggers(sample_feed: str) -> None:
    fetcher = BlockingFetcher(sample_feed)
    pool = ThreadPoolManager(workers=2)
    orchestrator = make_orchestrator(fetcher, pool=pool)
    delivered: list = []

    assert orchestrator.trigger_fetch(FEED_URL, delivered.append) is True
    assert fetcher.started.wait(5)
    assert orchestrator.is_busy()
    assert orchestrator.trigger_fetch(FEED_URL, delivered.append) is False
    assert orchestrator.trigger_fetch(FEED_URL, delivered.append) is False

    fetcher.release.set()
    assert orchestrator.dispatcher.run_pending(timeout=5) == 1
    pool.shutdown(wait=True)

    assert fetcher.calls == [FEED_URL]
    assert len(delivered) == 1
    assert isinstance(delivered[0], FetchSuccess)
    assert [rate.target_code for rate in delivered[0].records] == ["USD", "EUR", "JPY", "AED"]
    assert not orchestrator.is_busy()


def test_result_is_delivered_through_dispatcher(sample_feed: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(sample_feed))
    delivered: list = []

    assert orchestrator.trigger_fetch(FEED_URL, delivered.append)
    assert delivered == []
    assert orchestrator.dispatcher.pending() == 1

    orchestrator.dispatcher.run_pending()
    assert len(delivered) == 1


def test_busy_is_cleared_before_delivery(sample_feed: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(sample_feed))
    observed: list[bool] = []
    retriggered: list[bool] = []

    def on_result(result) -> None:
        observed.append(orchestrator.is_busy())
        if not retriggered:
            retriggered.append(orchestrator.trigger_fetch(FEED_URL, on_result))

    orchestrator.trigger_fetch(FEED_URL, on_result)
    assert orchestrator.dispatcher.run_pending() == 2

    assert observed == [False, False]
    assert retriggered == [True]
    assert orchestrator.fetcher.calls == [FEED_URL, FEED_URL]


def test_submit_failure_releases_busy_flag(sample_feed: str) -> None:
    pool = ThreadPoolManager()
    pool.shutdown()
    orchestrator = make_orchestrator(StubFetcher(sample_feed), pool=pool)

    assert orchestrator.trigger_fetch(FEED_URL, lambda result: None) is False
    assert not orchestrator.is_busy()


def test_success_records_keep_feed_order(sample_feed: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(sample_feed))
    result = orchestrator.fetch_and_extract(FEED_URL)
    assert isinstance(result, FetchSuccess)
    assert [rate.pair for rate in result.records] == ["GBP/USD", "GBP/EUR", "GBP/JPY", "GBP/AED"]


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (NetworkError("Not Found", status_code=404), "HTTP 404: Not Found"),
        (NetworkError("Timed out fetching feed"), "Timed out fetching feed"),
    ],
)
def test_network_errors_are_classified(error: Exception, expected: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(error=error))
    result = orchestrator.fetch_and_extract(FEED_URL)
    assert result == FetchFailure(FailureKind.NETWORK, expected)


def test_unexpected_fetch_error_is_network_failure() -> None:
    orchestrator = make_orchestrator(StubFetcher(error=OSError("socket closed")))
    result = orchestrator.fetch_and_extract(FEED_URL)
    assert isinstance(result, FetchFailure)
    assert result.kind is FailureKind.NETWORK
    assert "socket closed" in result.message


@pytest.mark.parametrize("body", ["", "   \n"])
def test_blank_body_is_network_failure(body: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(body))
    assert orchestrator.fetch_and_extract(FEED_URL) == FetchFailure(
        FailureKind.NETWORK, EMPTY_RESPONSE
    )


def test_feed_without_valid_items_is_empty_result(feed_builder) -> None:
    feed = feed_builder(("Pound", "gbp", "Euro", "eur", "1.1"))
    orchestrator = make_orchestrator(StubFetcher(feed))
    assert orchestrator.fetch_and_extract(FEED_URL) == FetchFailure(
        FailureKind.EMPTY_RESULT, NO_CURRENCY_DATA
    )


def test_extractor_crash_is_parse_failure(sample_feed: str) -> None:
    orchestrator = make_orchestrator(StubFetcher(sample_feed), extractor=ExplodingExtractor())
    result = orchestrator.fetch_and_extract(FEED_URL)
    assert isinstance(result, FetchFailure)
    assert result.kind is FailureKind.PARSE
    assert "parser exploded" in result.message


def test_failure_is_delivered_and_flag_released() -> None:
    orchestrator = make_orchestrator(StubFetcher(error=NetworkError("Bad Gateway", 502)))
    delivered: list = []
    orchestrator.trigger_fetch(FEED_URL, delivered.append)
    orchestrator.dispatcher.run_pending()

    assert delivered == [FetchFailure(FailureKind.NETWORK, "HTTP 502: Bad Gateway")]
    assert not orchestrator.is_busy()


def test_background_cycle_runs_on_worker_thread(sample_feed: str) -> None:
    threads: list[int] = []

    class RecordingFetcher(StubFetcher):
        def fetch(self, url: str, timeout: float | None = None) -> str:
            threads.append(threading.get_ident())
            return super().fetch(url, timeout)

    pool = ThreadPoolManager()
    orchestrator = make_orchestrator(RecordingFetcher(sample_feed), pool=pool)
    delivered_on: list[int] = []
    orchestrator.trigger_fetch(FEED_URL, lambda result: delivered_on.append(threading.get_ident()))

    deadline = time.monotonic() + 5
    while not delivered_on and time.monotonic() < deadline:
        orchestrator.dispatcher.run_pending(timeout=0.1)
    pool.shutdown(wait=True)

    assert threads and threads[0] != threading.get_ident()
    assert delivered_on == [threading.get_ident()]
