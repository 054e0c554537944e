"""Blocking HTTP download of the rates feed."""

from __future__ import annotations

import httpx
import structlog

from ..errors import NetworkError

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "FXMate/1.0"


class Fetcher:
    """Download feed documents with a single GET per call.

    Must only be used from a worker thread: every call blocks until the body
    has been read in full or the timeout expires.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = logger or structlog.get_logger("fxmate.fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch(self, url: str, timeout: float | None = None) -> str:
        """Return the response body of ``url`` as text.

        Raises :class:`NetworkError` for any status other than 200 and for
        transport failures, including connect/read timeouts.
        """

        limit = httpx.Timeout(timeout if timeout is not None else self.timeout)
        self.logger.info("feed_fetch_started", url=url)
        try:
            with self._client.stream("GET", url, timeout=limit) as response:
                if response.status_code != 200:
                    reason = response.reason_phrase or "unexpected status"
                    self.logger.error(
                        "feed_http_error",
                        url=url,
                        status=response.status_code,
                        reason=reason,
                    )
                    raise NetworkError(reason, status_code=response.status_code)
                response.read()
                text = response.text
        except httpx.TimeoutException as exc:
            self.logger.error("feed_timeout", url=url, error=str(exc))
            raise NetworkError(f"Timed out fetching {url}") from exc
        except httpx.HTTPError as exc:
            self.logger.error("feed_network_error", url=url, error=str(exc))
            raise NetworkError(f"Network error fetching {url}: {exc}") from exc

        self.logger.info("feed_fetch_completed", url=url, characters=len(text))
        return text


__all__ = ["DEFAULT_TIMEOUT", "DEFAULT_USER_AGENT", "Fetcher"]
