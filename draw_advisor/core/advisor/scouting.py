"""
Scouting Opportunity Detection
================================
Pairs the scout actions already in the plan with long-horizon positions
they can gather intel for. Only plan actions are candidates, so the
advice never introduces a target the user has not chosen.

Scoring (0-100):
  proximity  0-40  — same region scores higher than cross-region
  category   0-25  — same target category as the long-horizon position
  timing     0-20  — scout year lands before the projected success year
  cost       0-15  — cheaper scout actions score higher

Opportunities below ``scouting_min_score`` are dropped, each target keeps
its best two, a scout action is paired with at most one target, and the
total is capped at five.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .formatting import category_label, entity_label, region_label
from .models import ActionType, Plan, PlanAction, Position, PositionOutlook
from .projection import is_unreachable, years_to_success
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds

logger = logging.getLogger(__name__)

MAX_PER_TARGET = 2
MAX_TOTAL = 5
SAME_REGION_PROXIMITY = 40
SAME_REGION_DISCOUNT = 0.7
CROSS_REGION_PROXIMITY = 15


@dataclass(frozen=True)
class ScoutingOpportunity:
    scout_action: PlanAction
    scout_year: int
    target: PositionOutlook
    target_standing: int
    target_years_away: int
    proximity_score: int
    category_score: int
    timing_score: int
    cost_score: int
    reason: str

    @property
    def total_score(self) -> int:
        return self.proximity_score + self.category_score + self.timing_score + self.cost_score

    @property
    def scout_key(self) -> Tuple[int, str, str]:
        return (self.scout_year, self.scout_action.region, self.scout_action.category)


def _score_proximity(scout: PlanAction, target: PositionOutlook) -> int:
    if scout.region == target.region:
        return round(SAME_REGION_PROXIMITY * SAME_REGION_DISCOUNT)
    return CROSS_REGION_PROXIMITY


def _score_category(scout: PlanAction, target: PositionOutlook) -> int:
    return 25 if scout.category == target.category else 10


def _score_timing(scout_year: int, success_year: int) -> int:
    return 20 if scout_year < success_year else 8


def _score_cost(cost: float) -> int:
    if cost <= 200:
        return 15
    if cost <= 500:
        return 10
    if cost <= 1000:
        return 7
    return 3


def _reason(scout: PlanAction, scout_year: int, target: PositionOutlook, success_year: int) -> str:
    parts: List[str] = []
    if scout.region == target.region:
        parts.append(f"Same region as your {entity_label(target)} target")
    if scout.category == target.category:
        parts.append(f"same {category_label(target.category)} behavior and habitat")
    if scout_year < success_year:
        parts.append(f"{scout_year} is ahead of the projected {success_year} success year")
    if not parts:
        return f"Field time in {region_label(scout.region)} while you build toward {entity_label(target)}."
    return "; ".join(parts) + "."


def detect_scouting_opportunities(
    plan: Plan,
    positions: Sequence[Position],
    outlooks: Sequence[PositionOutlook],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[ScoutingOpportunity]:
    t = thresholds or DEFAULT_THRESHOLDS
    first = plan.first_year()
    if first is None:
        return []
    base_year = first.year

    standing = {(p.region, p.category): p.standing for p in positions}

    scouts: List[Tuple[int, PlanAction]] = [
        (yr.year, a) for yr in plan.years for a in yr.actions if a.type == ActionType.SCOUT
    ]
    if not scouts:
        return []

    all_opps: List[ScoutingOpportunity] = []
    for target in outlooks:
        current = standing.get((target.region, target.category), 0)
        years_away = years_to_success(
            current, target.required_standing, target.creep_rate,
            t.accrual_rate, t.unreachable_years,
        )
        if years_away < t.scouting_min_years_away or is_unreachable(years_away, t.unreachable_years):
            continue
        success_year = base_year + years_away

        target_opps: List[ScoutingOpportunity] = []
        for scout_year, scout in scouts:
            opp = ScoutingOpportunity(
                scout_action=scout,
                scout_year=scout_year,
                target=target,
                target_standing=current,
                target_years_away=years_away,
                proximity_score=_score_proximity(scout, target),
                category_score=_score_category(scout, target),
                timing_score=_score_timing(scout_year, success_year),
                cost_score=_score_cost(scout.cost),
                reason=_reason(scout, scout_year, target, success_year),
            )
            if opp.total_score >= t.scouting_min_score:
                target_opps.append(opp)

        target_opps.sort(key=lambda o: -o.total_score)
        all_opps.extend(target_opps[:MAX_PER_TARGET])

    # Same scout action for different targets → keep the highest score
    best: Dict[Tuple[int, str, str], ScoutingOpportunity] = {}
    for opp in all_opps:
        existing = best.get(opp.scout_key)
        if existing is None or opp.total_score > existing.total_score:
            best[opp.scout_key] = opp

    ranked = sorted(best.values(), key=lambda o: -o.total_score)[:MAX_TOTAL]
    logger.debug(f"Scouting: {len(scouts)} scout actions, {len(ranked)} opportunities")
    return ranked
