"""Records produced by the feed pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable, Union

CODE_LENGTH = 3


@dataclass(slots=True)
class RawFeedItem:
    """Mutable scratch state for one ``<item>`` while the stream is being read."""

    title_text: str = ""
    description_text: str = ""
    pub_date_text: str = ""
    link_text: str = ""
    base_currency_name: str = ""
    base_code: str = ""
    target_currency_name: str = ""
    target_code: str = ""
    rate: float = 0.0

    def is_valid(self) -> bool:
        return (
            len(self.base_code) == CODE_LENGTH
            and len(self.target_code) == CODE_LENGTH
        )

    def to_rate(self) -> "CurrencyRate":
        return CurrencyRate(
            title=self.title_text,
            base_currency_name=self.base_currency_name,
            base_code=self.base_code,
            target_currency_name=self.target_currency_name,
            target_code=self.target_code,
            rate=self.rate,
            link=self.link_text,
            pub_date=self.pub_date_text,
            description=self.description_text,
        )


@dataclass(frozen=True, slots=True)
class CurrencyRate:
    """One exchange rate: 1 unit of ``base_code`` equals ``rate`` units of ``target_code``."""

    title: str
    base_currency_name: str
    base_code: str
    target_currency_name: str
    target_code: str
    rate: float
    link: str = ""
    pub_date: str = ""
    description: str = ""

    @property
    def pair(self) -> str:
        return f"{self.base_code}/{self.target_code}"

    def matches(self, query: str) -> bool:
        needle = query.strip().lower()
        if not needle:
            return True
        return (
            needle in self.target_currency_name.lower()
            or needle in self.target_code.lower()
            or needle in self.title.lower()
        )

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class FailureKind(str, Enum):
    """Why a fetch cycle produced no records."""

    NETWORK = "network"
    PARSE = "parse"
    EMPTY_RESULT = "empty_result"


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    records: tuple[CurrencyRate, ...]


@dataclass(frozen=True, slots=True)
class FetchFailure:
    kind: FailureKind
    message: str


FetchResult = Union[FetchSuccess, FetchFailure]


def filter_rates(rates: Iterable[CurrencyRate], query: str | None) -> list[CurrencyRate]:
    """Return rates whose target name, target code or title contains ``query``."""

    items = list(rates)
    if query is None or not query.strip():
        return items
    return [rate for rate in items if rate.matches(query)]


def select_targets(rates: Iterable[CurrencyRate], codes: Iterable[str]) -> list[CurrencyRate]:
    wanted = {code.upper() for code in codes}
    return [rate for rate in rates if rate.target_code in wanted]


__all__ = [
    "CurrencyRate",
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "RawFeedItem",
    "filter_rates",
    "select_targets",
]
