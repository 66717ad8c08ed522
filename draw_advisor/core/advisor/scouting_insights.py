"""
Scouting Sub-generator — frames planned scout actions as intel for long-horizon targets.
Cap at 2, most compelling first.
"""

from typing import List, Optional, Sequence

from .formatting import entity_label, money
from .insight_types import PLAN_TARGET, AdvisorInsight, CallToAction, Signal
from .models import InsightCategory, Plan, Position, PositionOutlook, SignalKind, Urgency
from .scouting import detect_scouting_opportunities
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds


def generate_scouting_insights(
    plan: Plan,
    positions: Sequence[Position],
    outlooks: Sequence[PositionOutlook],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    opportunities = detect_scouting_opportunities(plan, positions, outlooks, t)

    insights = []
    for opp in opportunities[: t.max_scouting_insights]:
        scout = opp.scout_action
        scout_label = entity_label(scout)
        target_label = entity_label(opp.target)
        insights.append(AdvisorInsight(
            id=f"scouting-{scout.region.lower()}-{scout.category}-{opp.scout_year}",
            signal=Signal(SignalKind.POSITIVE, f"Scouting move: {scout_label}"),
            category=InsightCategory.SCOUTING,
            urgency=Urgency.INFORMATIONAL,
            interpretation=(
                f"While you build {opp.target_years_away} more years toward {target_label}, your "
                f"planned {opp.scout_year} {scout_label} scout trip doubles as intel. {opp.reason}"
            ),
            recommendation=(
                f"Keep the {scout_label} scout trip ({money(scout.cost)}) in {opp.scout_year} and "
                f"use it to learn terrain and timing for {target_label}."
            ),
            cta=CallToAction("View Scouting Move", PLAN_TARGET),
            portfolio_context=f"Your {target_label} is {opp.target_years_away} years away",
        ))
    return insights
