"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import DEFAULT_FEED_URL, DEFAULT_MAIN_CURRENCIES, GlobalConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_FEED_URL",
    "DEFAULT_MAIN_CURRENCIES",
    "GlobalConfig",
]
