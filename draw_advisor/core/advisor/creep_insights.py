"""
Creep Shift Detection — Timeline Slippage per Position
========================================================
Recomputes each tracked position's success year from its current standing
and compares it with the year the plan was built on. Two outcomes matter:

  - shift:        success is now N years later than planned
  - unreachable:  expected success lands on the horizon sentinel, either
                  because creep matches or outpaces accrual (never closes)
                  or because the gap closes too slowly to count

Only worsening timelines surface. Largest shift first, capped at three.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .formatting import entity_label
from .insight_types import PLAN_TARGET, AdvisorInsight, CallToAction, Signal
from .models import InsightCategory, Position, PositionOutlook, SignalKind, Urgency
from .projection import DrawConfidence, confidence_band, is_unreachable, project_requirement
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreepShift:
    outlook: PositionOutlook
    standing: int
    previous_years: Optional[int]
    confidence: DrawConfidence
    shift_years: int
    unreachable: bool
    never_closes: bool = False

    @property
    def current_years(self) -> int:
        return self.confidence.expected


def detect_creep_shifts(
    positions: Sequence[Position],
    outlooks: Sequence[PositionOutlook],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[CreepShift]:
    t = thresholds or DEFAULT_THRESHOLDS
    standing = {(p.region, p.category): p.standing for p in positions}

    shifts: List[CreepShift] = []
    for outlook in outlooks:
        current = standing.get((outlook.region, outlook.category), 0)
        band = confidence_band(
            current, outlook.required_standing, outlook.creep_rate,
            accrual_rate=t.accrual_rate,
            unreachable_years=t.unreachable_years,
            optimistic_factor=t.optimistic_creep_factor,
            pessimistic_factor=t.pessimistic_creep_factor,
        )
        unreachable = is_unreachable(band.expected, t.unreachable_years)
        previous = outlook.planned_success_years

        if previous is None:
            shift = t.unreachable_years if unreachable else 0
        else:
            shift = band.expected - previous

        if unreachable or shift > 0:
            shifts.append(CreepShift(
                outlook=outlook,
                standing=current,
                previous_years=previous,
                confidence=band,
                shift_years=max(shift, 0),
                unreachable=unreachable,
                never_closes=unreachable and outlook.creep_rate >= t.accrual_rate,
            ))

    shifts.sort(key=lambda s: -s.shift_years)
    return shifts[: t.max_creep_insights]


def _unreachable_insight(shift: CreepShift, t: AdvisorThresholds) -> AdvisorInsight:
    o = shift.outlook
    label = entity_label(o)
    if shift.never_closes:
        gap = (
            f"the gap to {o.required_standing:g} does not close ({t.unreachable_years}+ years)"
        )
        headline = f"{label} out of reach at current accrual"
    else:
        gap = (
            f"closing the gap to {o.required_standing:g} takes beyond {t.unreachable_years} "
            f"years at current accrual"
        )
        headline = f"{label} beyond {t.unreachable_years} years at current accrual"
    return AdvisorInsight(
        id=f"creep-{o.region}-{o.category}",
        signal=Signal(SignalKind.WARNING, headline),
        category=InsightCategory.CREEP,
        urgency=Urgency.SOON,
        interpretation=(
            f"{label} requirement creeps {o.creep_rate:g}/yr against your {t.accrual_rate:g}/yr "
            f"accrual. From {shift.standing} standing {gap}."
        ),
        recommendation=(
            f"Hold your {shift.standing} {label} standing and keep applying each cycle; "
            f"revisit {label} timing when the requirement trend changes."
        ),
        cta=CallToAction("Review Draw Timeline", PLAN_TARGET),
        portfolio_context=f"You hold {shift.standing} {label} standing",
    )


def _shift_insight(shift: CreepShift, base_year: int) -> AdvisorInsight:
    o = shift.outlook
    label = entity_label(o)
    band = shift.confidence
    projected = project_requirement(
        o.required_standing, o.creep_rate, base_year, years_forward=band.expected,
    )[-1]
    return AdvisorInsight(
        id=f"creep-{o.region}-{o.category}",
        signal=Signal(SignalKind.WARNING, f"Success timeline shifted for {label}"),
        category=InsightCategory.CREEP,
        urgency=Urgency.IMMEDIATE if shift.shift_years >= 2 else Urgency.SOON,
        interpretation=(
            f"{label} success moved from Year {shift.previous_years} to Year {band.expected} "
            f"(range {band.optimistic}–{band.pessimistic}). Creep is eroding your position at "
            f"{o.creep_rate:g}/yr."
        ),
        recommendation=(
            f"Apply in {label} this cycle to lock in your current standing, or keep accruing "
            f"every year to stay ahead of creep."
        ),
        cta=CallToAction("Review Draw Timeline", PLAN_TARGET),
        portfolio_context=(
            f"You hold {shift.standing} {label} standing; requirement projected at "
            f"{projected.projected_requirement} by {projected.year}"
        ),
    )


def generate_creep_insights(
    positions: Sequence[Position],
    outlooks: Sequence[PositionOutlook],
    base_year: int,
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    insights = []
    for shift in detect_creep_shifts(positions, outlooks, t):
        if shift.unreachable:
            insights.append(_unreachable_insight(shift, t))
        else:
            insights.append(_shift_insight(shift, base_year))
    logger.debug(f"Creep: {len(insights)} shifted positions out of {len(outlooks)} tracked")
    return insights
