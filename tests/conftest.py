"""Shared fixtures for the FXMate test-suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest
import structlog

from fxmate.config import ConfigLocator, ConfigRepository, GlobalConfig

GBP_AED_ITEM = (
    "<item>"
    "<title>British Pound Sterling(GBP)/United Arab Emirates Dirham(AED)</title>"
    "<description>1 British Pound Sterling = 4.9354 United Arab Emirates Dirham</description>"
    "<pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate>"
    "<link>http://x</link>"
    "</item>"
)


def make_item(
    title: str,
    description: str,
    pub_date: str = "Mon, 01 Jan 2024 00:00:00 GMT",
    link: str = "https://www.fx-exchange.com/gbp/",
) -> str:
    return (
        "<item>"
        f"<title>{title}</title>"
        f"<description>{description}</description>"
        f"<pubDate>{pub_date}</pubDate>"
        f"<link>{link}</link>"
        "</item>"
    )


def make_feed(items: Iterable[str]) -> str:
    body = "".join(items)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        "<title>Currency Exchange Rates for British Pound Sterling(GBP)</title>"
        "<link>https://www.fx-exchange.com/gbp/</link>"
        f"{body}"
        "</channel></rss>"
    )


@pytest.fixture
def feed_builder() -> Callable[..., str]:
    def _builder(*pairs: tuple[str, str, str, str, str]) -> str:
        items = [
            make_item(
                f"{base_name}({base})/{target_name}({target})",
                f"1 {base_name} = {rate} {target_name}",
            )
            for base_name, base, target_name, target, rate in pairs
        ]
        return make_feed(items)

    return _builder


@pytest.fixture
def sample_feed(feed_builder) -> str:
    return feed_builder(
        ("British Pound Sterling", "GBP", "United States Dollar", "USD", "1.2712"),
        ("British Pound Sterling", "GBP", "Euro", "EUR", "1.1634"),
        ("British Pound Sterling", "GBP", "Japanese Yen", "JPY", "187.9321"),
        ("British Pound Sterling", "GBP", "United Arab Emirates Dirham", "AED", "4.9354"),
    )


@pytest.fixture
def sample_global_config() -> GlobalConfig:
    return GlobalConfig(
        feed_url="https://feeds.example.com/gbp/rss.xml",
        request_timeout=2.0,
        auto_update_interval=5.0,
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("FXMATE_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


class StubFetcher:
    """Fetcher double returning canned text or raising a canned error."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[str] = []

    def fetch(self, url: str, timeout: float | None = None) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.text

    def close(self) -> None:
        return


class InlineThreadPool:
    """Thread pool double that runs submitted work immediately."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self.submitted += 1
        fn(*args)

    def shutdown(self, wait: bool = False) -> None:
        return


@pytest.fixture
def stub_fetcher_factory() -> Callable[..., StubFetcher]:
    return StubFetcher


@pytest.fixture
def inline_pool() -> InlineThreadPool:
    return InlineThreadPool()


@pytest.fixture(autouse=True, scope="session")
def route_structlog_to_stdlib() -> Iterable[None]:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()
