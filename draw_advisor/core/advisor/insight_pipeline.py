"""
Advisor Insight Pipeline — Prioritized, Position-Specific Recommendations
===========================================================================
Turns plan, positions, milestones, violations, health and metric summaries,
temporal context and savings data into a short, ranked list of insights
with calls to action.

Sub-generators (each pure, each capped before the merge):
  1. Discipline   — rule violations mapped to urgency            (cap 2)
  2. Deadline     — nearest future milestone deadlines          (cap 3)
  3. Portfolio    — health score band + spend concentration      (cap 2)
  4. Temporal     — what changed since the last visit            (cap 1)
  5. Milestone    — this year's completion progress              (cap 1)
  6. Creep        — timeline slippage from requirement creep     (cap 3)
  7. Savings      — goal funds falling behind                    (cap 2)
  8. Scouting     — planned scout trips as intel for long shots  (cap 2)

Merge: flatten in generator order → drop duplicate ids → stable sort by
urgency (immediate, soon, informational, positive) → keep the first 7.

Content rules, enforced by the templates themselves:
  - Never suggest abandoning the user's plan
  - Never suggest switching to something the plan does not contain
  - Always name the region / category the insight is about
  - No temporal insight for first-time or same-day visitors

A sub-generator that raises is logged and contributes nothing; the others
still return.
"""

import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .creep_insights import generate_creep_insights
from .discipline_rules import SEVERITY_ORDER, Violation
from .formatting import entity_label, money, plural, regions_label
from .insight_types import (
    DEADLINES_TARGET, PLAN_TARGET, POSITIONS_TARGET, URGENCY_PRIORITY,
    AdvisorInsight, CallToAction, Signal,
)
from .models import (
    HEALTH_DIMENSION_LABELS, HealthDimension, InsightCategory, Mandate, Milestone, Plan,
    PortfolioHealth, Position, PositionOutlook, RuleId, SavingsGoal, Severity, SignalKind,
    StrategyMetrics, TemporalContext, Urgency, UserGoal,
)
from .projection import confidence_band, is_unreachable
from .savings_insights import generate_savings_insights
from .scouting_insights import generate_scouting_insights
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds
from .urgency import UrgencyLevel, days_until, temporal_prefix, urgency_level

logger = logging.getLogger(__name__)

MAX_VISIBLE_INSIGHTS = 7

SEVERITY_TO_URGENCY: Dict[Severity, Urgency] = {
    Severity.CRITICAL: Urgency.IMMEDIATE,
    Severity.WARNING: Urgency.SOON,
    Severity.INFO: Urgency.INFORMATIONAL,
}

SEVERITY_TO_SIGNAL: Dict[Severity, SignalKind] = {
    Severity.CRITICAL: SignalKind.CRITICAL,
    Severity.WARNING: SignalKind.WARNING,
    Severity.INFO: SignalKind.POSITIVE,
}

DISCIPLINE_CTA: Dict[RuleId, Tuple[str, str]] = {
    RuleId.LOW_ODDS_CONCENTRATION: ("Review Allocation", PLAN_TARGET),
    RuleId.PREMIUM_OVERLOAD: ("Review Allocation", PLAN_TARGET),
    RuleId.EXECUTION_FATIGUE: ("Schedule an Execution", PLAN_TARGET),
    RuleId.CADENCE_BELOW_TARGET: ("Schedule an Execution", PLAN_TARGET),
    RuleId.PLATEAU_DETECTED: ("Review Positions", POSITIONS_TARGET),
    RuleId.POSITION_ABANDONMENT: ("Review Positions", POSITIONS_TARGET),
    RuleId.STRATEGIC_DRIFT: ("Update Mandate", PLAN_TARGET),
}

_DEADLINE_URGENCY: Dict[UrgencyLevel, Urgency] = {
    UrgencyLevel.RED: Urgency.IMMEDIATE,
    UrgencyLevel.AMBER: Urgency.SOON,
    UrgencyLevel.GREEN: Urgency.INFORMATIONAL,
}


def _fmt_date(d: date) -> str:
    return f"{d:%b} {d.day}"


def _health_recommendation(dimension: HealthDimension, regions: str) -> str:
    """Dimension-specific next step, phrased around the regions already in the plan."""
    if dimension == HealthDimension.BUDGET:
        return f"Rebalance spend across {regions} so no single region carries the budget."
    if dimension == HealthDimension.FREQUENCY:
        return f"Bring forward an execution on a position you already hold in {regions} during a build year."
    if dimension == HealthDimension.EXPOSURE:
        return f"Trim the long-shot share in {regions} and lean on the higher-odds actions already planned."
    if dimension == HealthDimension.HORIZON:
        return f"Review when you plan to use your standing in {regions} so it lines up with your physical peak."
    return f"Work through the discipline findings for {regions} to lift overall health."


# ═══════════════════════════════════════════════════════════════════
# 1. DEADLINE INSIGHTS
# ═══════════════════════════════════════════════════════════════════

def generate_deadline_insights(
    milestones: Sequence[Milestone],
    positions: Sequence[Position],
    outlooks: Sequence[PositionOutlook],
    now: datetime,
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    """
    Urgency-calibrated insights for the nearest future deadlines.
    Overdue, undated and completed milestones are skipped.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    standing = {(p.region, p.category): p.standing for p in positions}
    outlook_by_key = {(o.region, o.category): o for o in outlooks}

    upcoming = [
        m for m in milestones
        if m.due_date is not None and not m.completed and days_until(m.due_date, now) > 0
    ]
    upcoming.sort(key=lambda m: (days_until(m.due_date, now), m.id))

    insights: List[AdvisorInsight] = []
    for m in upcoming[: t.max_deadline_insights]:
        days = days_until(m.due_date, now)
        level = urgency_level(m.due_date, now, t.deadline_immediate_days, t.deadline_soon_days)
        urgency = _DEADLINE_URGENCY[level]
        label = entity_label(m)

        if urgency == Urgency.IMMEDIATE:
            interpretation = f"{label} closes in {days} days. Miss this and you lose a year of accrual."
            recommendation = f"Submit your {label} application today. Cost: {money(m.total_cost)}."
        elif urgency == Urgency.SOON:
            interpretation = f"{label} deadline is {days} days out. Time to finalize your choices."
            recommendation = (
                f"Review your {label} selections and budget, then apply before {_fmt_date(m.due_date)}."
            )
        else:
            interpretation = f"{label} opens in ~{days} days. No rush, but start thinking about your approach."
            recommendation = (
                f"Use the time before {_fmt_date(m.due_date)} to research {label} options and confirm your approach."
            )

        if m.url and urgency in (Urgency.IMMEDIATE, Urgency.SOON):
            cta = CallToAction("Apply Now", m.url, external=True)
        else:
            cta = CallToAction("View Deadlines", DEADLINES_TARGET)

        portfolio_context = None
        outlook = outlook_by_key.get((m.region, m.category))
        if outlook is not None:
            band = confidence_band(
                standing.get((m.region, m.category), 0),
                outlook.required_standing, outlook.creep_rate,
                accrual_rate=t.accrual_rate, unreachable_years=t.unreachable_years,
                optimistic_factor=t.optimistic_creep_factor,
                pessimistic_factor=t.pessimistic_creep_factor,
            )
            if is_unreachable(band.expected, t.unreachable_years):
                portfolio_context = f"{label} success is {t.unreachable_years}+ years out at current accrual"
            else:
                portfolio_context = f"Expected {label} success in Year {band.expected}"

        insights.append(AdvisorInsight(
            id=f"deadline-{m.id}",
            signal=Signal(
                SignalKind.CRITICAL if urgency == Urgency.IMMEDIATE else SignalKind.WARNING,
                f"{label} deadline in {days} days",
            ),
            category=InsightCategory.DEADLINE,
            urgency=urgency,
            interpretation=interpretation,
            recommendation=recommendation,
            cta=cta,
            portfolio_context=portfolio_context,
            expires_at=m.due_date,
        ))

    return insights


# ═══════════════════════════════════════════════════════════════════
# 2. PORTFOLIO INSIGHTS
# ═══════════════════════════════════════════════════════════════════

def _top_spend_region(plan: Plan, metrics: StrategyMetrics) -> Optional[str]:
    year1 = plan.first_year()
    if year1 is not None and year1.actions:
        spend: Dict[str, float] = {}
        for a in year1.actions:
            spend[a.region] = spend.get(a.region, 0.0) + a.cost
        top = max(spend, key=lambda r: spend[r])
        if spend[top] > 0:
            return top
    return metrics.top_region


def generate_portfolio_insights(
    plan: Plan,
    positions: Sequence[Position],
    health: PortfolioHealth,
    metrics: StrategyMetrics,
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    regions = plan.regions() or [p.region for p in positions]
    regions = list(dict.fromkeys(regions))
    categories = list(dict.fromkeys(plan.categories() or [p.category for p in positions]))
    if not regions:
        logger.debug("Portfolio: no regions in plan or positions, nothing to name")
        return []

    where = regions_label(regions)
    portfolio_context = (
        f"{plural(len(regions), 'region')} ({where}), {plural(len(categories), 'category', 'categories')}, "
        f"{money(metrics.annual_spend)}/yr"
    )

    weakest, weakest_score = health.breakdown.weakest()
    weakest_label = HEALTH_DIMENSION_LABELS[weakest]

    insights: List[AdvisorInsight] = []
    if health.score < t.health_low:
        insights.append(AdvisorInsight(
            id="portfolio-health-low",
            signal=Signal(SignalKind.WARNING, f"Portfolio health: {health.score}/100"),
            category=InsightCategory.PORTFOLIO,
            urgency=Urgency.SOON,
            interpretation=(
                f"Your portfolio across {where} scores {health.score}/100. Weakest dimension: "
                f"{weakest_label} at {weakest_score}/100."
            ),
            recommendation=_health_recommendation(weakest, where),
            cta=CallToAction("View Strategy", PLAN_TARGET),
            portfolio_context=portfolio_context,
        ))
    elif health.score >= t.health_strong:
        insights.append(AdvisorInsight(
            id="portfolio-health-strong",
            signal=Signal(SignalKind.POSITIVE, f"Portfolio health: {health.score}/100"),
            category=InsightCategory.PORTFOLIO,
            urgency=Urgency.POSITIVE,
            interpretation=(
                f"Your portfolio across {where} is in strong shape at {health.score}/100. "
                f"All dimensions are performing well."
            ),
            recommendation=f"Maintain your course in {where}. Focus on executing upcoming deadlines.",
            cta=CallToAction("View Strategy", PLAN_TARGET),
            portfolio_context=portfolio_context,
        ))
    else:
        insights.append(AdvisorInsight(
            id="portfolio-health-mid",
            signal=Signal(SignalKind.POSITIVE, f"Portfolio health: {health.score}/100"),
            category=InsightCategory.PORTFOLIO,
            urgency=Urgency.INFORMATIONAL,
            interpretation=(
                f"Your portfolio across {where} scores {health.score}/100. Room for improvement in "
                f"{weakest_label} ({weakest_score}/100)."
            ),
            recommendation=_health_recommendation(weakest, where),
            cta=CallToAction("View Strategy", PLAN_TARGET),
            portfolio_context=portfolio_context,
        ))

    if metrics.concentration_percentage > t.concentration_pct:
        top = _top_spend_region(plan, metrics)
        if top:
            top_label = regions_label([top])
            others = [r for r in regions if r != top]
            if others:
                recommendation = (
                    f"Shift part of the {top_label} allocation toward {regions_label(others)}, "
                    f"already in your plan, to spread the risk."
                )
            else:
                recommendation = (
                    f"Stage the big-ticket {top_label} applications across different years to "
                    f"soften a bad {top_label} draw year."
                )
            pct = f"{metrics.concentration_percentage:g}%"
            insights.append(AdvisorInsight(
                id="portfolio-concentration",
                signal=Signal(SignalKind.WARNING, f"{pct} of budget in {top_label}"),
                category=InsightCategory.PORTFOLIO,
                urgency=Urgency.INFORMATIONAL,
                interpretation=(
                    f"{pct} of your annual budget is concentrated in {top_label}. "
                    f"A single bad year there hits hard."
                ),
                recommendation=recommendation,
                cta=CallToAction("View Strategy", PLAN_TARGET),
                portfolio_context=portfolio_context,
            ))

    return insights[: t.max_portfolio_insights]


# ═══════════════════════════════════════════════════════════════════
# 3. DISCIPLINE INSIGHTS
# ═══════════════════════════════════════════════════════════════════

def generate_discipline_insights(
    violations: Sequence[Violation],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    ranked = sorted(violations, key=lambda v: SEVERITY_ORDER[v.severity])

    insights: List[AdvisorInsight] = []
    for v in ranked[: t.max_discipline_insights]:
        label, target = DISCIPLINE_CTA[v.rule_id]
        if v.affected_regions:
            portfolio_context = f"Affected: {regions_label(v.affected_regions)}"
        elif v.affected_years:
            portfolio_context = f"Affected years: {', '.join(str(y) for y in v.affected_years)}"
        else:
            portfolio_context = None

        insights.append(AdvisorInsight(
            id=f"discipline-{v.rule_id.value}",
            signal=Signal(SEVERITY_TO_SIGNAL[v.severity], v.observation),
            category=InsightCategory.DISCIPLINE,
            urgency=SEVERITY_TO_URGENCY[v.severity],
            interpretation=v.observation,
            recommendation=v.recommendation,
            cta=CallToAction(label, target),
            portfolio_context=portfolio_context,
        ))
    return insights


# ═══════════════════════════════════════════════════════════════════
# 4. TEMPORAL INSIGHTS
# ═══════════════════════════════════════════════════════════════════

def _next_pending(milestones: Sequence[Milestone], now: datetime) -> Optional[Milestone]:
    pending = [m for m in milestones if not m.completed]
    dated = [m for m in pending if m.due_date is not None and days_until(m.due_date, now) > 0]
    if dated:
        return min(dated, key=lambda m: (days_until(m.due_date, now), m.id))
    return pending[0] if pending else None


def generate_temporal_insights(
    temporal: TemporalContext,
    milestones: Sequence[Milestone],
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    t = thresholds or DEFAULT_THRESHOLDS
    days_away = temporal.days_since_last_visit
    if not temporal.is_returning_user or days_away is None or days_away < 1:
        return []
    if temporal.last_visit_at is None:
        return []

    prefix = temporal_prefix(temporal)
    if not prefix:
        return []

    now = temporal.current_date
    last_visit = temporal.last_visit_at

    newly_urgent = [
        m for m in milestones
        if m.due_date is not None and not m.completed
        and 0 < days_until(m.due_date, now) <= t.deadline_soon_days
        and days_until(m.due_date, last_visit) > t.deadline_soon_days
    ]
    newly_urgent.sort(key=lambda m: (days_until(m.due_date, now), m.id))
    urgent_labels = ", ".join(entity_label(m) for m in newly_urgent[:3])

    if days_away > t.long_absence_days:
        if not milestones:
            return []
        pending = sum(1 for m in milestones if not m.completed)
        completed = len(milestones) - pending
        focus = newly_urgent[0] if newly_urgent else _next_pending(milestones, now)
        if newly_urgent:
            change = (
                f"{plural(len(newly_urgent), 'deadline')} became urgent while you were away: {urgent_labels}."
            )
        elif focus is not None:
            change = f"No urgent changes. Next up: {entity_label(focus)}."
        else:
            change = f"No urgent changes. Latest completed: {entity_label(milestones[-1])}."
        subject = entity_label(focus) if focus is not None else entity_label(milestones[-1])

        return [AdvisorInsight(
            id="temporal-welcome-back",
            signal=Signal(SignalKind.POSITIVE, "Welcome back"),
            category=InsightCategory.TEMPORAL,
            urgency=Urgency.INFORMATIONAL,
            interpretation=(
                f"{prefix}, {plural(pending, 'milestone')} pending and {completed} completed. {change}"
            ),
            recommendation=(
                f"Review {subject} and your other upcoming deadlines to confirm the plan is still on track."
            ),
            cta=CallToAction("View Deadlines", DEADLINES_TARGET),
            temporal_context=prefix,
        )]

    if newly_urgent:
        verb = "has" if len(newly_urgent) == 1 else "have"
        return [AdvisorInsight(
            id="temporal-urgency-change",
            signal=Signal(SignalKind.WARNING, f"{plural(len(newly_urgent), 'deadline')} became urgent"),
            category=InsightCategory.TEMPORAL,
            urgency=Urgency.SOON,
            interpretation=(
                f"{prefix}, {urgent_labels} {verb} moved into the {t.deadline_soon_days}-day window."
            ),
            recommendation=f"Check {urgent_labels} now so no application window slips by.",
            cta=CallToAction("View Deadlines", DEADLINES_TARGET),
            temporal_context=prefix,
        )]

    # Nothing changed; stay quiet
    return []


# ═══════════════════════════════════════════════════════════════════
# 5. MILESTONE PROGRESS INSIGHTS
# ═══════════════════════════════════════════════════════════════════

def generate_milestone_insights(
    milestones: Sequence[Milestone],
    now: datetime,
) -> List[AdvisorInsight]:
    year = now.year
    this_year = [m for m in milestones if m.year == year]
    if not this_year:
        return []

    completed = [m for m in this_year if m.completed]
    pending = [m for m in this_year if not m.completed]

    if not pending:
        done_labels = ", ".join(dict.fromkeys(entity_label(m) for m in completed[:3]))
        return [AdvisorInsight(
            id="milestone-all-complete",
            signal=Signal(SignalKind.POSITIVE, f"All {year} milestones complete"),
            category=InsightCategory.MILESTONE,
            urgency=Urgency.POSITIVE,
            interpretation=(
                f"You've completed all {plural(len(completed), 'milestone')} for {year}, "
                f"including {done_labels}. Your plan is fully executed for this year."
            ),
            recommendation=(
                f"Start reviewing {year + 1} milestones for {done_labels} and plan ahead for the next season."
            ),
            cta=CallToAction("View Timeline", PLAN_TARGET),
        )]

    dated = sorted(
        (m for m in pending if m.due_date is not None),
        key=lambda m: (m.due_date, m.id),
    )
    nxt = dated[0] if dated else pending[0]
    label = entity_label(nxt)
    due = f" (due {_fmt_date(nxt.due_date)})" if nxt.due_date else ""

    return [AdvisorInsight(
        id="milestone-progress",
        signal=Signal(SignalKind.POSITIVE, f"{len(completed)}/{len(this_year)} milestones complete"),
        category=InsightCategory.MILESTONE,
        urgency=Urgency.INFORMATIONAL,
        interpretation=(
            f"{len(completed)} of {len(this_year)} {year} milestones complete, {len(pending)} pending. "
            f"Next: {label}{due}."
        ),
        recommendation=f"Stay on track by completing {label}{due} before its deadline.",
        cta=CallToAction("View Timeline", PLAN_TARGET),
    )]


# ═══════════════════════════════════════════════════════════════════
# MAIN PIPELINE
# ═══════════════════════════════════════════════════════════════════

def _guarded(name: str, fn: Callable[[], List[AdvisorInsight]]) -> List[AdvisorInsight]:
    try:
        return fn()
    except Exception as e:
        logger.warning(f"Insight generator '{name}' skipped: {e}", exc_info=True)
        return []


def rank_insights(insights: Sequence[AdvisorInsight], max_visible: int = MAX_VISIBLE_INSIGHTS) -> List[AdvisorInsight]:
    """Drop duplicate ids, stable-sort by urgency, keep the first ``max_visible``."""
    seen = set()
    unique: List[AdvisorInsight] = []
    for insight in insights:
        if insight.id in seen:
            continue
        seen.add(insight.id)
        unique.append(insight)
    unique.sort(key=lambda i: URGENCY_PRIORITY[i.urgency])
    return unique[:max_visible]


def generate_advisor_insights(
    plan: Plan,
    positions: Sequence[Position],
    milestones: Sequence[Milestone],
    violations: Sequence[Violation],
    health: PortfolioHealth,
    metrics: StrategyMetrics,
    temporal: TemporalContext,
    mandate: Optional[Mandate] = None,
    outlooks: Sequence[PositionOutlook] = (),
    savings_goals: Sequence[SavingsGoal] = (),
    user_goals: Sequence[UserGoal] = (),
    suppress_temporal: bool = False,
    include_scouting: bool = True,
    thresholds: Optional[AdvisorThresholds] = None,
) -> List[AdvisorInsight]:
    """
    Run every sub-generator, merge, and return the ranked, capped list.

    ``mandate`` is accepted so callers can pass the full upstream bundle;
    its effect reaches the pipeline through ``violations``.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    now = temporal.current_date

    generators: List[Tuple[str, Callable[[], List[AdvisorInsight]]]] = [
        ("discipline", lambda: generate_discipline_insights(violations, t)),
        ("deadline", lambda: generate_deadline_insights(milestones, positions, outlooks, now, t)),
        ("portfolio", lambda: generate_portfolio_insights(plan, positions, health, metrics, t)),
        ("temporal", lambda: [] if suppress_temporal else generate_temporal_insights(temporal, milestones, t)),
        ("milestone", lambda: generate_milestone_insights(milestones, now)),
        ("creep", lambda: generate_creep_insights(positions, outlooks, now.year, t)),
        ("savings", lambda: generate_savings_insights(savings_goals, user_goals, milestones, now, t)),
        ("scouting", lambda: generate_scouting_insights(plan, positions, outlooks, t) if include_scouting else []),
    ]

    caps: Dict[str, int] = {
        "deadline": t.max_deadline_insights,
        "portfolio": t.max_portfolio_insights,
        "discipline": t.max_discipline_insights,
        "temporal": t.max_temporal_insights,
        "milestone": t.max_milestone_insights,
        "creep": t.max_creep_insights,
        "savings": t.max_savings_insights,
        "scouting": t.max_scouting_insights,
    }

    merged: List[AdvisorInsight] = []
    for name, fn in generators:
        produced = _guarded(name, fn)[: caps[name]]
        logger.debug(f"Insight generator '{name}' produced {len(produced)}")
        merged.extend(produced)

    ranked = rank_insights(merged, t.max_visible_insights)
    logger.debug(f"Advisor pipeline: {len(merged)} candidates → {len(ranked)} visible")
    return ranked
