"""Repair bare ampersands that upstream feeds forget to escape."""

from __future__ import annotations

import re

_BARE_AMPERSAND = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#\d+|#x[0-9a-fA-F]+);)")


def sanitize(text: str) -> str:
    """Escape every ``&`` that does not already start a known XML entity."""

    if not text:
        return text
    return _BARE_AMPERSAND.sub("&amp;", text)


__all__ = ["sanitize"]
