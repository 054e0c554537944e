"""Error taxonomy shared by the feed pipeline."""

from __future__ import annotations


class FeedError(Exception):
    """Base class for feed pipeline failures."""


class NetworkError(FeedError):
    """Feed could not be downloaded: bad status, timeout or transport failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is not None:
            super().__init__(f"HTTP {status_code}: {message}")
        else:
            super().__init__(message)


__all__ = ["FeedError", "NetworkError"]
