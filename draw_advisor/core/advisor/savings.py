"""
Savings Calculator — Funding Math for Goal Funds
===================================================
Pure arithmetic behind the savings sub-generator.

Traffic light:
  green — projected funded date on or before the target date
  amber — funded 0-3 months after the target date
  red   — funded more than 3 months late, or no monthly contribution
"""

import calendar
import math
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from .models import Milestone

DAYS_PER_MONTH = 30.44
_SECONDS_PER_MONTH = DAYS_PER_MONTH * 86400.0

# Funds are measured against the opening of the fall season in the target year
TARGET_MONTH = 9
TARGET_DAY = 1


class SavingsStatus(str, Enum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


def goal_target_date(target_year: int) -> datetime:
    return datetime(target_year, TARGET_MONTH, TARGET_DAY)


def _months_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / _SECONDS_PER_MONTH


def _add_months(dt: datetime, months: int) -> datetime:
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def monthly_savings_target(
    target_cost: float,
    target_date: datetime,
    current_saved: float,
    now: datetime,
) -> float:
    """Remaining cost spread over the months left (never fewer than one)."""
    remaining = target_cost - current_saved
    if remaining <= 0:
        return 0.0
    months_left = max(1.0, _months_between(now, target_date))
    return remaining / months_left


def funded_date(
    target_cost: float,
    current_saved: float,
    monthly_savings: float,
    now: datetime,
) -> Optional[datetime]:
    """Projected date the fund is complete; None when it never will be."""
    remaining = target_cost - current_saved
    if remaining <= 0:
        return now
    if monthly_savings <= 0:
        return None
    months_needed = math.ceil(remaining / monthly_savings)
    return _add_months(now, months_needed)


def savings_status(
    target_cost: float,
    current_saved: float,
    monthly_savings: float,
    target_date: datetime,
    now: datetime,
    amber_months: float = 3.0,
) -> SavingsStatus:
    if current_saved >= target_cost:
        return SavingsStatus.GREEN

    projected = funded_date(target_cost, current_saved, monthly_savings, now)
    if projected is None:
        return SavingsStatus.RED

    months_late = _months_between(target_date, projected)
    if months_late <= 0:
        return SavingsStatus.GREEN
    if months_late <= amber_months:
        return SavingsStatus.AMBER
    return SavingsStatus.RED


def catch_up_delta(
    target_cost: float,
    current_saved: float,
    monthly_savings: float,
    target_date: datetime,
    now: datetime,
) -> float:
    """Extra per-month contribution needed to get back on schedule."""
    needed = monthly_savings_target(target_cost, target_date, current_saved, now)
    return max(0.0, needed - monthly_savings)


def derive_target_cost(milestones: Sequence[Milestone], goal_id: str) -> float:
    """Total cost of the milestones attached to a goal."""
    return sum(m.total_cost for m in milestones if m.plan_id == goal_id)
