"""FXMate: currency exchange rates from an RSS feed."""

__version__ = "0.1.0"
