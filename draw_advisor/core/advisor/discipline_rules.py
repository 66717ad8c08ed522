"""
Discipline Rule Engine — Structural Risk Checks for a Multi-Year Plan
=======================================================================
Evaluates the generated plan against the user's mandate and positions and
surfaces violations as Observation → Implication → Recommendation.

Rules (evaluated in this order, each at most one violation):
  1. low_odds_concentration — first-year budget piled into long shots
  2. premium_overload       — too many premium targets at once
  3. execution_fatigue      — long runs of years with nothing executed
  4. cadence_below_target   — executions/yr under the mandate target
  5. plateau_detected       — standing past the efficiency threshold
  6. strategic_drift        — plan regions outside the mandate
  7. position_abandonment   — standing with no action in the next 2 years

Severity Levels:
  critical  — Plan structure will not deliver without a change.
  warning   — Significant risk to the plan's outcome.
  info      — Good to know. Efficiency opportunity.

Design:
  - Every rule is a pure method of (plan, mandate, positions)
  - A rule missing its optional input returns None, never raises
  - A rule that fails anyway is logged and skipped; the batch still returns
  - Output is sorted critical → warning → info, stable within a tier
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .formatting import (
    entity_label, join_labels, money, regions_label, unique_regions,
)
from .models import ActionType, Mandate, Plan, PlanAction, Position, RuleId, Severity
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds

logger = logging.getLogger(__name__)

SEVERITY_ORDER: Dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


# ═══════════════════════════════════════════════════════════════════
# VIOLATION DATA CLASS
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Violation:
    rule_id: RuleId
    severity: Severity
    observation: str           # What the plan shows
    implication: str           # Why it matters
    recommendation: str        # What to do about it
    affected_regions: Tuple[str, ...] = field(default_factory=tuple)
    affected_categories: Tuple[str, ...] = field(default_factory=tuple)
    affected_years: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id.value,
            "severity": self.severity.value,
            "observation": self.observation,
            "implication": self.implication,
            "recommendation": self.recommendation,
            "affected_regions": list(self.affected_regions),
            "affected_categories": list(self.affected_categories),
            "affected_years": list(self.affected_years),
        }


def _unique(items: Sequence) -> Tuple:
    seen: List = []
    for it in items:
        if it not in seen:
            seen.append(it)
    return tuple(seen)


def _target_labels(actions: Sequence[PlanAction]) -> str:
    return join_labels(_unique([entity_label(a) for a in actions]))


# ═══════════════════════════════════════════════════════════════════
# RULE ENGINE
# ═══════════════════════════════════════════════════════════════════

class DisciplineRuleEngine:
    """
    Runs the fixed rule sequence against a plan.
    Stateless between calls; safe to share.
    """

    def __init__(self, thresholds: Optional[AdvisorThresholds] = None):
        self.t = thresholds or DEFAULT_THRESHOLDS

    def evaluate(
        self,
        plan: Plan,
        mandate: Optional[Mandate],
        positions: Sequence[Position],
    ) -> List[Violation]:
        checks: List[Tuple[RuleId, Callable[[], Optional[Violation]]]] = [
            (RuleId.LOW_ODDS_CONCENTRATION, lambda: self._check_low_odds_concentration(plan)),
            (RuleId.PREMIUM_OVERLOAD, lambda: self._check_premium_overload(plan)),
            (RuleId.EXECUTION_FATIGUE, lambda: self._check_execution_fatigue(plan, positions)),
            (RuleId.CADENCE_BELOW_TARGET, lambda: self._check_cadence_below_target(plan, mandate, positions)),
            (RuleId.PLATEAU_DETECTED, lambda: self._check_plateau(positions)),
            (RuleId.STRATEGIC_DRIFT, lambda: self._check_strategic_drift(plan, mandate)),
            (RuleId.POSITION_ABANDONMENT, lambda: self._check_position_abandonment(plan, positions)),
        ]

        violations: List[Violation] = []
        for rule_id, check in checks:
            try:
                violation = check()
            except Exception as e:
                logger.warning(f"Discipline rule {rule_id.value} skipped: {e}", exc_info=True)
                continue
            if violation is not None:
                logger.debug(f"Discipline rule {rule_id.value} fired ({violation.severity.value})")
                violations.append(violation)

        # ── Sort by severity priority (stable within a tier) ──
        violations.sort(key=lambda v: SEVERITY_ORDER[v.severity])
        return violations

    # ══════════════════════════════════════════════════════════════
    # 1. LOW-ODDS CONCENTRATION
    # ══════════════════════════════════════════════════════════════

    def _check_low_odds_concentration(self, plan: Plan) -> Optional[Violation]:
        year1 = plan.first_year()
        if year1 is None:
            return None

        total_cost = year1.estimated_cost
        if total_cost <= 0:
            return None

        long_shots = [
            a for a in year1.actions
            if a.success_probability is not None and a.success_probability < self.t.low_odds_threshold
        ]
        at_risk = sum(a.cost for a in long_shots)
        share = at_risk / total_cost
        if share <= self.t.low_odds_budget_share:
            return None

        regions = unique_regions(long_shots)
        labels = _target_labels(long_shots)
        odds_pct = f"{self.t.low_odds_threshold * 100:g}%"

        return Violation(
            rule_id=RuleId.LOW_ODDS_CONCENTRATION,
            severity=Severity.WARNING,
            observation=(
                f"{round(share * 100)}% of the {year1.year} budget ({money(at_risk)} of "
                f"{money(total_cost)}) is concentrated in {labels}, each with success odds below {odds_pct}."
            ),
            implication=(
                f"{money(at_risk)} in {regions_label(regions)} rides on low-probability outcomes. "
                f"If none of them succeed, that capital produces no execution this year."
            ),
            recommendation=(
                f"Cap the long-shot share in {regions_label(regions)} at 40% and keep the rest of "
                f"the {year1.year} budget on the higher-odds actions already in your plan."
            ),
            affected_regions=tuple(regions),
            affected_categories=_unique([a.category for a in long_shots]),
            affected_years=(year1.year,),
        )

    # ══════════════════════════════════════════════════════════════
    # 2. PREMIUM OVERLOAD
    # ══════════════════════════════════════════════════════════════

    def _check_premium_overload(self, plan: Plan) -> Optional[Violation]:
        active = [
            a for a in plan.all_actions()
            if a.type != ActionType.SCOUT and self.t.is_premium(a.region, a.category)
        ]
        targets = _unique([(a.region, a.category) for a in active])
        if len(targets) <= self.t.premium_max_active:
            return None

        labels = _target_labels(active)
        return Violation(
            rule_id=RuleId.PREMIUM_OVERLOAD,
            severity=Severity.WARNING,
            observation=f"Building toward {len(targets)} premium targets at once: {labels}.",
            implication=(
                f"Each of {labels} runs on a multi-year timeline. Annual fees spread across all "
                f"of them delay converting any single one."
            ),
            recommendation=(
                f"Rank {labels} and concentrate on the top two; hold your standing in the others "
                f"until one converts."
            ),
            affected_regions=_unique([r for r, _ in targets]),
            affected_categories=_unique([c for _, c in targets]),
        )

    # ══════════════════════════════════════════════════════════════
    # 3. EXECUTION FATIGUE
    # ══════════════════════════════════════════════════════════════

    def _check_execution_fatigue(
        self, plan: Plan, positions: Sequence[Position]
    ) -> Optional[Violation]:
        longest: List[int] = []
        current: List[int] = []
        for yr in plan.years:
            if yr.has_action_type(ActionType.EXECUTE):
                current = []
                continue
            current = current + [yr.year]
            if len(current) > len(longest):
                longest = current

        if len(longest) <= self.t.fatigue_max_years:
            return None

        run_years = set(longest)
        run_actions = [a for yr in plan.years if yr.year in run_years for a in yr.actions]
        regions = unique_regions(run_actions) or plan.regions() or unique_regions(positions)
        where = f" across {regions_label(regions)}" if regions else ""
        held_positions = [p for p in positions if p.region in regions]
        if held_positions:
            held = f" ({join_labels(entity_label(p) for p in held_positions)})"
        else:
            held = f" in {regions_label(regions)}" if regions else ""

        return Violation(
            rule_id=RuleId.EXECUTION_FATIGUE,
            severity=Severity.CRITICAL,
            observation=(
                f"{len(longest)} consecutive plan-years ({longest[0]}–{longest[-1]}) with no "
                f"execution scheduled{where}."
            ),
            implication=(
                f"{len(longest)} years of accruing without executing risks motivation and budget "
                f"fatigue. Accrual without conversion is not a strategy."
            ),
            recommendation=(
                f"Bring forward an execution on a position you already hold{held} so the run "
                f"breaks before {longest[-1]}."
            ),
            affected_regions=tuple(regions),
            affected_years=tuple(longest),
        )

    # ══════════════════════════════════════════════════════════════
    # 4. CADENCE BELOW TARGET
    # ══════════════════════════════════════════════════════════════

    def _check_cadence_below_target(
        self, plan: Plan, mandate: Optional[Mandate], positions: Sequence[Position]
    ) -> Optional[Violation]:
        if mandate is None:
            return None
        target = mandate.annual_execution_target
        if not target or target <= 0:
            return None

        window = plan.years[: self.t.cadence_window_years]
        if not window:
            return None

        executions = [a for yr in window for a in yr.actions if a.type == ActionType.EXECUTE]
        avg = len(executions) / len(window)
        if avg >= target:
            return None

        regions = unique_regions([a for yr in window for a in yr.actions]) or unique_regions(positions)
        where = f" across {regions_label(regions)}" if regions else ""

        return Violation(
            rule_id=RuleId.CADENCE_BELOW_TARGET,
            severity=Severity.WARNING,
            observation=(
                f"Target: {target:g} executions/yr. Plan averages {avg:.1f}/yr over the first "
                f"{len(window)} years{where}."
            ),
            implication=f"You'll wait {1 / max(avg, 0.1):.1f} years between executions on average.",
            recommendation=(
                f"Schedule higher-odds executions{where} in build years to hold the "
                f"{target:g}/yr cadence."
            ),
            affected_regions=tuple(regions),
            affected_years=tuple(yr.year for yr in window),
        )

    # ══════════════════════════════════════════════════════════════
    # 5. PLATEAU DETECTED
    # ══════════════════════════════════════════════════════════════

    def _check_plateau(self, positions: Sequence[Position]) -> Optional[Violation]:
        best: Dict[Tuple[str, str], Position] = {}
        for p in positions:
            key = (p.region, p.category)
            if key not in best or p.standing > best[key].standing:
                best[key] = p

        saturated = [p for p in best.values() if p.standing >= self.t.plateau_standing]
        if not saturated:
            return None

        regions = unique_regions(saturated)
        labels = join_labels(f"{entity_label(p)} ({p.standing})" for p in saturated)

        return Violation(
            rule_id=RuleId.PLATEAU_DETECTED,
            severity=Severity.INFO,
            observation=(
                f"Standing of {self.t.plateau_standing}+ in {labels}. Past the efficiency threshold."
            ),
            implication=(
                f"Each additional year in {regions_label(regions)} adds diminishing success "
                f"probability. Marginal gain is minimal."
            ),
            recommendation=(
                f"Plan when to use the standing in {join_labels(entity_label(p) for p in saturated)} "
                f"instead of accruing indefinitely."
            ),
            affected_regions=tuple(regions),
            affected_categories=_unique([p.category for p in saturated]),
        )

    # ══════════════════════════════════════════════════════════════
    # 6. STRATEGIC DRIFT
    # ══════════════════════════════════════════════════════════════

    def _check_strategic_drift(self, plan: Plan, mandate: Optional[Mandate]) -> Optional[Violation]:
        if mandate is None or not mandate.regions_in_play:
            return None

        allowed = set(mandate.regions_in_play)
        drifted = [r for r in plan.regions() if r not in allowed]
        if not drifted:
            return None

        labels = regions_label(drifted)
        return Violation(
            rule_id=RuleId.STRATEGIC_DRIFT,
            severity=Severity.INFO,
            observation=(
                f"Plan includes {labels}, outside your mandate regions "
                f"({regions_label(mandate.regions_in_play)})."
            ),
            implication=f"Spend in {labels} is diverging from your stated priorities.",
            recommendation=(
                f"Add {labels} to your mandate if they belong there, or confirm how they support "
                f"your {regions_label(mandate.regions_in_play)} priorities."
            ),
            affected_regions=tuple(drifted),
        )

    # ══════════════════════════════════════════════════════════════
    # 7. POSITION ABANDONMENT
    # ══════════════════════════════════════════════════════════════

    def _check_position_abandonment(self, plan: Plan, positions: Sequence[Position]) -> Optional[Violation]:
        window = plan.years[: self.t.abandonment_window_years]
        planned = {a.region for yr in window for a in yr.actions}

        idle = [
            p for p in positions
            if p.standing >= self.t.abandonment_standing and p.region not in planned
        ]
        if not idle:
            return None

        labels = join_labels(f"{p.standing} {entity_label(p)}" for p in idle)
        return Violation(
            rule_id=RuleId.POSITION_ABANDONMENT,
            severity=Severity.WARNING,
            observation=(
                f"{labels} standing with no planned action in the next "
                f"{self.t.abandonment_window_years} plan-years."
            ),
            implication=(
                f"Accrued standing in {regions_label(unique_regions(idle))} is sitting idle and "
                f"does not grow without continued applications."
            ),
            recommendation=(
                f"Keep {join_labels(entity_label(p) for p in idle)} active: continue accruing each "
                f"year, or schedule when to use it before creep erodes its value."
            ),
            affected_regions=tuple(unique_regions(idle)),
            affected_categories=_unique([p.category for p in idle]),
        )


def evaluate_discipline_rules(
    plan: Plan,
    mandate: Optional[Mandate],
    positions: Sequence[Position],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[Violation]:
    """Evaluate every discipline rule; violations sorted critical → warning → info."""
    return DisciplineRuleEngine(thresholds).evaluate(plan, mandate, positions)
