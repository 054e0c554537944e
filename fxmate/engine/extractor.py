"""Streaming RSS extraction of currency rates."""

from __future__ import annotations

import re

import structlog
from lxml import etree

from .models import CurrencyRate, RawFeedItem
from .sanitizer import sanitize

# "British Pound Sterling(GBP)/United Arab Emirates Dirham(AED)"
TITLE_PATTERN = re.compile(r"([^(]+)\(([A-Z]{3})\)/([^(]+)\(([A-Z]{3})\)")
# "1 British Pound Sterling = 4.9354 United Arab Emirates Dirham"
RATE_PATTERN = re.compile(r"1\s+[^=]+=\s+([0-9.]+)")

_CHUNK_SIZE = 64 * 1024
# XML declaration and DOCTYPE; they cannot appear inside the synthetic root.
_PROLOG_PATTERN = re.compile(
    r"\A\ufeff?\s*(?:<\?xml[^>]*\?>\s*)?(?:<!DOCTYPE[^>\[]*(?:\[[^\]]*\])?\s*>\s*)?",
    re.IGNORECASE,
)


class Extractor:
    """Turn raw feed text into validated :class:`CurrencyRate` records.

    The text is sanitised, then pushed through a recovering pull parser in
    chunks so that a broken tail does not discard items already read.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("fxmate.extractor")

    def extract(self, raw_text: str) -> list[CurrencyRate]:
        results: list[CurrencyRate] = []
        if not raw_text or not raw_text.strip():
            self.logger.warning("feed_text_empty")
            return results

        body = _PROLOG_PATTERN.sub("", sanitize(raw_text), count=1)
        # Bare <item> sequences have no single root element of their own.
        data = b"<feed>" + body.encode("utf-8") + b"</feed>"
        parser = etree.XMLPullParser(
            events=("start", "end"),
            recover=True,
            encoding="utf-8",
            resolve_entities=False,
            no_network=True,
        )
        current: RawFeedItem | None = None
        dropped = 0
        try:
            for offset in range(0, len(data), _CHUNK_SIZE):
                parser.feed(data[offset : offset + _CHUNK_SIZE])
                current, dropped = self._drain(parser, current, results, dropped)
            parser.close()
            current, dropped = self._drain(parser, current, results, dropped)
        except etree.XMLSyntaxError as exc:
            self.logger.error(
                "feed_parse_error", error=str(exc), parsed=len(results)
            )

        self.logger.info("feed_extracted", records=len(results), dropped=dropped)
        return results

    # ------------------------------------------------------------------
    def _drain(
        self,
        parser: etree.XMLPullParser,
        current: RawFeedItem | None,
        results: list[CurrencyRate],
        dropped: int,
    ) -> tuple[RawFeedItem | None, int]:
        for event, element in parser.read_events():
            name = _local_name(element)
            if name is None:
                continue
            if event == "start":
                if name == "item":
                    current = RawFeedItem()
                continue

            if current is None:
                continue
            if name == "title":
                current.title_text = _text(element)
                self.parse_title(current)
            elif name == "description":
                current.description_text = _text(element)
                self.parse_rate(current)
            elif name == "pubdate":
                current.pub_date_text = _text(element)
            elif name == "link":
                current.link_text = _text(element)
            elif name == "item":
                if current.is_valid():
                    record = current.to_rate()
                    results.append(record)
                    self.logger.debug("item_parsed", pair=record.pair, rate=record.rate)
                else:
                    dropped += 1
                    self.logger.warning("item_dropped", title=current.title_text)
                current = None
                element.clear()
        return current, dropped

    def parse_title(self, item: RawFeedItem) -> None:
        match = TITLE_PATTERN.search(item.title_text)
        if not match:
            self.logger.warning("title_unparsed", title=item.title_text)
            return
        item.base_currency_name = match.group(1).strip()
        item.base_code = match.group(2).strip()
        item.target_currency_name = match.group(3).strip()
        item.target_code = match.group(4).strip()

    def parse_rate(self, item: RawFeedItem) -> None:
        match = RATE_PATTERN.search(item.description_text)
        if not match:
            self.logger.warning("rate_unparsed", description=item.description_text)
            return
        item.rate = _to_float(match.group(1))


def _local_name(element: etree._Element) -> str | None:
    tag = element.tag
    if not isinstance(tag, str):
        return None
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.lower()


def _text(element: etree._Element) -> str:
    return (element.text or "").strip()


def _to_float(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return 0.0


def extract(raw_text: str) -> list[CurrencyRate]:
    return Extractor().extract(raw_text)


__all__ = ["Extractor", "RATE_PATTERN", "TITLE_PATTERN", "extract"]
