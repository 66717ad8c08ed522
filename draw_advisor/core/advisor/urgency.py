"""
Urgency & Temporal Context
============================
Shared day arithmetic for every date-driven generator.

Deadline thresholds:
  red     — ≤ 14 days
  amber   — ≤ 30 days
  green   — > 30 days
  overdue — past due
  none    — no date

"Now" is always passed in; nothing here reads the clock.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from .formatting import plural
from .models import TemporalContext

_SECONDS_PER_DAY = 86400.0

DateLike = Union[date, datetime]


class UrgencyLevel(str, Enum):
    RED = "red"
    AMBER = "amber"
    GREEN = "green"
    OVERDUE = "overdue"
    NONE = "none"


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime(value.year, value.month, value.day)


def days_until(due: DateLike, now: DateLike) -> int:
    """
    Days until ``due``; negative means overdue.
    Rounded up so a deadline later today still reads as 1 day away.
    """
    delta = (_as_datetime(due) - _as_datetime(now)).total_seconds()
    return math.ceil(delta / _SECONDS_PER_DAY)


def urgency_level(
    due: Optional[DateLike],
    now: DateLike,
    immediate_days: int = 14,
    soon_days: int = 30,
) -> UrgencyLevel:
    if due is None:
        return UrgencyLevel.NONE
    days = days_until(due, now)
    if days <= 0:
        return UrgencyLevel.OVERDUE
    if days <= immediate_days:
        return UrgencyLevel.RED
    if days <= soon_days:
        return UrgencyLevel.AMBER
    return UrgencyLevel.GREEN


def build_temporal_context(last_visit_at: Optional[datetime], now: datetime) -> TemporalContext:
    """Temporal context from the previous visit timestamp (None = first visit)."""
    if last_visit_at is None:
        return TemporalContext(current_date=now)
    days = math.floor((_as_datetime(now) - _as_datetime(last_visit_at)).total_seconds() / _SECONDS_PER_DAY)
    return TemporalContext(
        last_visit_at=last_visit_at,
        days_since_last_visit=days,
        current_date=now,
        is_returning_user=days >= 1,
    )


def temporal_prefix(temporal: TemporalContext) -> Optional[str]:
    """Human phrasing of the absence, or None for first / same-day visits."""
    days = temporal.days_since_last_visit
    if not temporal.is_returning_user or days is None or days < 1:
        return None
    if days == 1:
        return "Since yesterday"
    if days < 7:
        return f"Since your last visit ({days} days ago)"
    if days < 30:
        return f"Since your last visit ({plural(days // 7, 'week')} ago)"
    return f"Since your last visit ({plural(days // 30, 'month')} ago)"
