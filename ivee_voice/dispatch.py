"""Keyword classification."""

from __future__ import annotations

from ivee_voice.types import KeywordFlow

WAKE_INDICATOR = "0"
QUERY_INDICATOR = "1"


def classify_keyword(keyword: str) -> KeywordFlow:
    """Map a raw keyword string to the flow it triggers.

    Indicators are substring tests checked in order, so a keyword carrying
    both indicators (for example ``"Keyword 10 detected"``) is a wake.
    """
    if WAKE_INDICATOR in keyword:
        return KeywordFlow.WAKE
    if QUERY_INDICATOR in keyword:
        return KeywordFlow.QUERY
    return KeywordFlow.NONE
