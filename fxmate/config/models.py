"""Pydantic models for FXMate configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..engine.fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

DEFAULT_FEED_URL = "https://www.fx-exchange.com/gbp/rss.xml"
DEFAULT_MAIN_CURRENCIES = ("USD", "EUR", "JPY")


class GlobalConfig(BaseModel):
    """Feed location, network limits and refresh cadence."""

    feed_url: str = DEFAULT_FEED_URL
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    auto_update_interval: float = Field(
        default=60.0,
        ge=1.0,
        description="Seconds between automatic refreshes.",
    )
    main_currencies: list[str] = Field(default_factory=lambda: list(DEFAULT_MAIN_CURRENCIES))

    @field_validator("feed_url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("feed_url must be an http(s) URL")
        return value

    @field_validator("user_agent")
    @classmethod
    def _validate_user_agent(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("user_agent cannot be empty")
        return value

    @field_validator("main_currencies", mode="before")
    @classmethod
    def _coerce_codes(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return list(DEFAULT_MAIN_CURRENCIES)
        if isinstance(value, str):
            value = [part for part in value.replace(",", " ").split() if part]
        if not isinstance(value, (list, tuple)):
            raise ValueError("main_currencies expects a list of currency codes")
        codes: list[str] = []
        for item in value:
            code = str(item).strip().upper()
            if len(code) != 3 or not code.isalpha():
                raise ValueError(f"Invalid currency code: {item!r}")
            codes.append(code)
        return codes


__all__ = ["DEFAULT_FEED_URL", "DEFAULT_MAIN_CURRENCIES", "GlobalConfig"]
