"""Engine components: fetcher, sanitizer, extractor and the execution contexts."""

from .dispatcher import MainThreadDispatcher
from .extractor import Extractor
from .fetcher import Fetcher
from .models import (
    CurrencyRate,
    FailureKind,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    RawFeedItem,
    filter_rates,
    select_targets,
)
from .sanitizer import sanitize
from .thread_pool import ThreadPoolManager

__all__ = [
    "CurrencyRate",
    "Extractor",
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "Fetcher",
    "MainThreadDispatcher",
    "RawFeedItem",
    "ThreadPoolManager",
    "filter_rates",
    "sanitize",
    "select_targets",
]
