"""
Savings Sub-generator
=======================
Up to two insights for goal funds that are behind schedule.
Green funds stay silent.

Urgency is "soon" for red and "informational" for amber, never
"immediate": deadline and discipline insights must always rank above a
savings nudge.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from .formatting import entity_label, money
from .insight_types import BUDGET_TARGET, URGENCY_PRIORITY, AdvisorInsight, CallToAction, Signal
from .models import InsightCategory, Milestone, SavingsGoal, SignalKind, Urgency, UserGoal
from .savings import (
    SavingsStatus, catch_up_delta, derive_target_cost, goal_target_date, savings_status,
)
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds

logger = logging.getLogger(__name__)


def generate_savings_insights(
    savings_goals: Sequence[SavingsGoal],
    user_goals: Sequence[UserGoal],
    milestones: Sequence[Milestone],
    now: datetime,
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    now = now.replace(tzinfo=None)
    goals = {g.id: g for g in user_goals}

    insights: List[AdvisorInsight] = []
    for fund in savings_goals:
        goal = goals.get(fund.goal_id)
        if goal is None:
            continue

        target_cost = derive_target_cost(milestones, fund.goal_id)
        if target_cost <= 0:
            continue

        target_date = goal_target_date(goal.target_year)
        status = savings_status(
            target_cost, fund.current_saved, fund.monthly_savings, target_date, now,
            amber_months=t.savings_amber_months,
        )
        if status == SavingsStatus.GREEN:
            continue

        delta = catch_up_delta(target_cost, fund.current_saved, fund.monthly_savings, target_date, now)
        label = entity_label(goal)
        progress = f"{money(fund.current_saved)} of {money(target_cost)} saved for {label}"

        if status == SavingsStatus.RED:
            deficit = target_cost - fund.current_saved
            insights.append(AdvisorInsight(
                id=f"savings-behind-{fund.goal_id}",
                signal=Signal(SignalKind.CRITICAL, f"{label} fund significantly behind"),
                category=InsightCategory.SAVINGS,
                urgency=Urgency.SOON,
                interpretation=(
                    f"You're {money(deficit)} short on your {label} fund. Increase by "
                    f"{money(delta)}/mo to get back on track."
                ),
                recommendation=(
                    f"Adjust your {label} contribution from {money(fund.monthly_savings)} to "
                    f"{money(fund.monthly_savings + delta)} per month to meet your {goal.target_year} target."
                ),
                cta=CallToAction("Update Savings", BUDGET_TARGET),
                portfolio_context=progress,
            ))
        else:
            insights.append(AdvisorInsight(
                id=f"savings-warning-{fund.goal_id}",
                signal=Signal(SignalKind.WARNING, f"{label} fund slightly behind"),
                category=InsightCategory.SAVINGS,
                urgency=Urgency.INFORMATIONAL,
                interpretation=(
                    f"Your {label} fund is slightly behind. {money(delta)} extra per month closes the gap."
                ),
                recommendation=(
                    f"Small adjustment: add {money(delta)} per month to your {label} fund to stay on "
                    f"track for {goal.target_year}."
                ),
                cta=CallToAction("View Savings", BUDGET_TARGET),
                portfolio_context=progress,
            ))

    # Red (soon) before amber (informational)
    insights.sort(key=lambda i: URGENCY_PRIORITY[i.urgency])
    logger.debug(f"Savings: {len(insights)} funds behind schedule")
    return insights[: t.max_savings_insights]
