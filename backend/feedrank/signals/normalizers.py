"""
Signal Normalization Module
===========================
Small helpers that turn raw item metrics into bounded signal values.

Caller-supplied metrics are not trusted: anything non-numeric counts as 0
so that a single bad record cannot break a ranking call.
"""

import math
import logging
from datetime import datetime
from typing import Any, Optional

from ..models import as_utc

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

# log10(views + 1) / VIEW_LOG_SCALE reaches 1.0 at a million views
VIEW_LOG_SCALE = 6.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value to [low, high]."""
    return max(low, min(high, value))


def as_number(value: Any) -> float:
    """Coerce a metric to float; None, NaN and non-numeric values become 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
        return 0.0 if math.isnan(number) else number
    return 0.0


def days_since(published_at: Optional[datetime], now: datetime) -> Optional[float]:
    """
    Fractional days between publication and now.

    Returns None when there is no publication time. Naive datetimes are
    read as UTC.
    """
    if published_at is None:
        return None
    delta = as_utc(now) - as_utc(published_at)
    return delta.total_seconds() / SECONDS_PER_DAY


def recency_score(published_at: Optional[datetime], now: datetime, window_days: float = 30.0) -> float:
    """
    Linear decay from 1.0 at publication to 0.0 after window_days.

    Items dated in the future count as just published.
    """
    days = days_since(published_at, now)
    if days is None:
        return 0.0
    return clamp((window_days - days) / window_days)


def completion_ratio(watch_time: Any, duration: Any, completed: bool = False) -> float:
    """
    Share of an item that was watched, in [0, 1].

    A completed entry counts as 1.0; an unknown or zero duration counts as 0.
    """
    if completed:
        return 1.0
    duration = as_number(duration)
    if duration <= 0:
        return 0.0
    return clamp(as_number(watch_time) / duration)


def log_view_score(views: Any) -> float:
    """log10(views + 1) / 6, so a million views maps to 1.0."""
    return math.log10(max(0.0, as_number(views)) + 1) / VIEW_LOG_SCALE


def duration_fit(duration: Any, preferred: Optional[float]) -> float:
    """1.0 for an exact length match, reaching 0 once the gap equals the preferred length."""
    preferred = as_number(preferred)
    if preferred <= 0:
        return 0.0
    return max(0.0, 1 - abs(as_number(duration) - preferred) / preferred)
