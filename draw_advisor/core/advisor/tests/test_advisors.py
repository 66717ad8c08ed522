"""
Draw Advisor Engine — Insight Pipeline Test Suite
===================================================
Tests every sub-generator, the merge/rank step, and the orchestrator.

Run: pytest draw_advisor/ -v
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest


NOW = datetime(2026, 10, 18, 9, 0)
REGIONS = ("CO", "WY", "MT", "NV", "AZ", "UT")


# ═══════════════════════════════════════════════════════════════
# TEST FIXTURES
# ═══════════════════════════════════════════════════════════════

def due_in(days):
    return (NOW + timedelta(days=days)).date()


def make_action(type="apply", region="CO", category="elk", cost=100.0, prob=None):
    from draw_advisor.core.advisor.models import PlanAction
    return PlanAction(type=type, region=region, category=category, cost=cost, success_probability=prob)


def make_plan(*years):
    from draw_advisor.core.advisor.models import Plan, PlanYear
    return Plan(years=tuple(PlanYear(year=y, actions=tuple(actions)) for y, actions in years))


def make_position(region="CO", category="elk", standing=0):
    from draw_advisor.core.advisor.models import Position
    return Position(region=region, category=category, standing=standing)


def make_outlook(region="CO", category="elk", required=6, creep=0.5, planned=None):
    from draw_advisor.core.advisor.models import PositionOutlook
    return PositionOutlook(
        region=region, category=category, required_standing=required,
        creep_rate=creep, planned_success_years=planned,
    )


def make_milestone(id="m1", region="CO", category="elk", days=None, year=2027,
                   completed=False, cost=100.0, url=None, plan_id=None):
    from draw_advisor.core.advisor.models import Milestone
    return Milestone(
        id=id, plan_id=plan_id, title=f"{region} {category}", region=region, category=category,
        year=year, due_date=due_in(days) if days is not None else None,
        url=url, total_cost=cost, completed=completed,
    )


def make_health(score=70, **breakdown):
    from draw_advisor.core.advisor.models import HealthBreakdown, PortfolioHealth
    return PortfolioHealth(score=score, breakdown=HealthBreakdown(**breakdown))


def make_metrics(spend=1000.0, concentration=0.0, top_region=None):
    from draw_advisor.core.advisor.models import StrategyMetrics
    return StrategyMetrics(annual_spend=spend, concentration_percentage=concentration, top_region=top_region)


def make_temporal(days_since=None, now=NOW):
    from draw_advisor.core.advisor.urgency import build_temporal_context
    last = now - timedelta(days=days_since) if days_since is not None else None
    return build_temporal_context(last, now)


def make_violation(rule_id, severity, regions=("CO",), years=()):
    from draw_advisor.core.advisor.discipline_rules import Violation
    where = ", ".join(regions) or "your plan"
    return Violation(
        rule_id=rule_id, severity=severity,
        observation=f"{rule_id.value} observed in {where}.",
        implication=f"Risk in {where}.",
        recommendation=f"Adjust the plan in {where}.",
        affected_regions=tuple(regions), affected_years=tuple(years),
    )


def run_pipeline(**kw):
    from draw_advisor.core.advisor.insight_pipeline import generate_advisor_insights
    args = dict(
        plan=make_plan((2027, [make_action()])),
        positions=(),
        milestones=(),
        violations=(),
        health=make_health(70),
        metrics=make_metrics(),
        temporal=make_temporal(),
    )
    args.update(kw)
    return generate_advisor_insights(**args)


def names_an_entity(insight):
    text = f"{insight.interpretation} {insight.recommendation}"
    return any(r in text for r in REGIONS)


# ═══════════════════════════════════════════════════════════════
# 1. DEADLINE INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestDeadlineInsights:
    """Tests for generate_deadline_insights"""

    def _gen(self, milestones, positions=(), outlooks=()):
        from draw_advisor.core.advisor.insight_pipeline import generate_deadline_insights
        return generate_deadline_insights(milestones, positions, outlooks, NOW)

    def test_immediate_with_external_link(self):
        from draw_advisor.core.advisor.models import Urgency
        url = "https://licensing.example.org/apply"
        [insight] = self._gen([make_milestone("m1", days=10, url=url)])
        assert insight.id == "deadline-m1"
        assert insight.urgency == Urgency.IMMEDIATE
        assert insight.cta.target == url and insight.cta.external
        assert insight.expires_at == due_in(10)
        assert "CO Elk" in insight.interpretation
        assert "10 days" in insight.interpretation

    def test_soon_without_link_uses_internal_target(self):
        from draw_advisor.core.advisor.insight_types import DEADLINES_TARGET
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([make_milestone("m1", region="WY", days=20)])
        assert insight.urgency == Urgency.SOON
        assert insight.cta.target == DEADLINES_TARGET and not insight.cta.external
        assert "WY Elk" in insight.recommendation

    def test_far_deadline_is_informational_and_internal(self):
        from draw_advisor.core.advisor.insight_types import DEADLINES_TARGET
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([make_milestone("m1", days=45, url="https://x.example.org")])
        assert insight.urgency == Urgency.INFORMATIONAL
        assert insight.cta.target == DEADLINES_TARGET

    def test_three_nearest_only(self):
        milestones = [make_milestone(f"m{d}", days=d) for d in (90, 12, 40, 25, 60)]
        assert [i.id for i in self._gen(milestones)] == ["deadline-m12", "deadline-m25", "deadline-m40"]

    def test_past_completed_and_undated_skipped(self):
        milestones = [
            make_milestone("past", days=-3),
            make_milestone("done", days=10, completed=True),
            make_milestone("undated"),
        ]
        assert self._gen(milestones) == []

    def test_portfolio_context_from_outlook(self):
        [insight] = self._gen(
            [make_milestone("m1", days=10)],
            positions=[make_position("CO", "elk", 2)],
            outlooks=[make_outlook("CO", "elk", required=6, creep=0.5)],
        )
        assert insight.portfolio_context == "Expected CO Elk success in Year 8"


# ═══════════════════════════════════════════════════════════════
# 2. PORTFOLIO INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestPortfolioInsights:
    """Tests for generate_portfolio_insights"""

    def _plan(self):
        return make_plan(
            (2027, [make_action(region="WY", cost=900), make_action(region="CO", cost=100)]),
            (2028, [make_action(region="CO")]),
        )

    def _gen(self, health, metrics=None, plan=None, positions=()):
        from draw_advisor.core.advisor.insight_pipeline import generate_portfolio_insights
        return generate_portfolio_insights(
            plan if plan is not None else self._plan(), positions, health, metrics or make_metrics(),
        )

    def test_low_health_names_weakest_dimension(self):
        from draw_advisor.core.advisor.models import SignalKind, Urgency
        [insight] = self._gen(make_health(55, frequency=30, budget=80, exposure=80, horizon=80, discipline=80))
        assert insight.id == "portfolio-health-low"
        assert insight.urgency == Urgency.SOON
        assert insight.signal.kind == SignalKind.WARNING
        assert "execution frequency at 30/100" in insight.interpretation
        assert "WY" in insight.recommendation

    def test_recommendation_keyed_to_dimension(self):
        from draw_advisor.core.advisor.insight_pipeline import _health_recommendation
        from draw_advisor.core.advisor.models import HealthDimension
        texts = {_health_recommendation(d, "CO") for d in HealthDimension}
        assert len(texts) == len(HealthDimension)
        assert all("CO" in t for t in texts)

    def test_strong_health_is_positive(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(make_health(85))
        assert insight.id == "portfolio-health-strong"
        assert insight.urgency == Urgency.POSITIVE

    def test_mid_health_is_informational(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(make_health(70))
        assert insight.id == "portfolio-health-mid"
        assert insight.urgency == Urgency.INFORMATIONAL

    def test_concentration_names_top_region(self):
        insights = self._gen(make_health(70), make_metrics(concentration=80))
        conc = next(i for i in insights if i.id == "portfolio-concentration")
        assert "WY" in conc.interpretation
        assert "CO" in conc.recommendation

    def test_concentration_falls_back_to_metrics_region(self):
        insights = self._gen(
            make_health(70), make_metrics(concentration=90, top_region="MT"),
            plan=make_plan(), positions=[make_position("MT", "elk", 3)],
        )
        conc = next(i for i in insights if i.id == "portfolio-concentration")
        assert "MT" in conc.interpretation

    def test_concentration_at_threshold_is_quiet(self):
        insights = self._gen(make_health(70), make_metrics(concentration=70))
        assert [i.id for i in insights] == ["portfolio-health-mid"]

    def test_nothing_to_name(self):
        assert self._gen(make_health(40), plan=make_plan()) == []

    def test_portfolio_context(self):
        [insight] = self._gen(make_health(70), make_metrics(spend=2500))
        assert insight.portfolio_context == "2 regions (WY, CO), 1 category, $2,500/yr"


# ═══════════════════════════════════════════════════════════════
# 3. DISCIPLINE INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestDisciplineInsights:
    """Tests for generate_discipline_insights"""

    def test_severity_maps_to_urgency(self):
        from draw_advisor.core.advisor.insight_pipeline import generate_discipline_insights
        from draw_advisor.core.advisor.models import RuleId, Severity, Urgency
        from draw_advisor.core.advisor.thresholds import AdvisorThresholds
        t = AdvisorThresholds().override({"max_discipline_insights": 3})
        insights = generate_discipline_insights([
            make_violation(RuleId.PLATEAU_DETECTED, Severity.INFO),
            make_violation(RuleId.EXECUTION_FATIGUE, Severity.CRITICAL),
            make_violation(RuleId.POSITION_ABANDONMENT, Severity.WARNING),
        ], t)
        assert [i.urgency for i in insights] == [Urgency.IMMEDIATE, Urgency.SOON, Urgency.INFORMATIONAL]

    def test_cap_keeps_highest_severity(self):
        from draw_advisor.core.advisor.insight_pipeline import generate_discipline_insights
        from draw_advisor.core.advisor.models import RuleId, Severity
        insights = generate_discipline_insights([
            make_violation(RuleId.PLATEAU_DETECTED, Severity.INFO),
            make_violation(RuleId.STRATEGIC_DRIFT, Severity.INFO),
            make_violation(RuleId.POSITION_ABANDONMENT, Severity.WARNING),
            make_violation(RuleId.EXECUTION_FATIGUE, Severity.CRITICAL),
        ])
        assert [i.id for i in insights] == ["discipline-execution_fatigue", "discipline-position_abandonment"]

    def test_rule_specific_cta(self):
        from draw_advisor.core.advisor.insight_pipeline import generate_discipline_insights
        from draw_advisor.core.advisor.insight_types import PLAN_TARGET, POSITIONS_TARGET
        from draw_advisor.core.advisor.models import RuleId, Severity
        fatigue, abandon = generate_discipline_insights([
            make_violation(RuleId.EXECUTION_FATIGUE, Severity.CRITICAL),
            make_violation(RuleId.POSITION_ABANDONMENT, Severity.WARNING, regions=("WY",)),
        ])
        assert fatigue.cta.target == PLAN_TARGET
        assert abandon.cta.target == POSITIONS_TARGET
        assert abandon.portfolio_context == "Affected: WY"

    def test_mapping_tables_are_exhaustive(self):
        from draw_advisor.core.advisor.insight_pipeline import (
            DISCIPLINE_CTA, SEVERITY_TO_SIGNAL, SEVERITY_TO_URGENCY,
        )
        from draw_advisor.core.advisor.models import RuleId, Severity
        assert set(DISCIPLINE_CTA) == set(RuleId)
        assert set(SEVERITY_TO_URGENCY) == set(Severity)
        assert set(SEVERITY_TO_SIGNAL) == set(Severity)


# ═══════════════════════════════════════════════════════════════
# 4. TEMPORAL INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestTemporalInsights:
    """Tests for generate_temporal_insights"""

    def _gen(self, temporal, milestones):
        from draw_advisor.core.advisor.insight_pipeline import generate_temporal_insights
        return generate_temporal_insights(temporal, milestones)

    def test_first_visit_is_silent(self):
        assert self._gen(make_temporal(None), [make_milestone(days=28)]) == []

    def test_same_day_is_silent(self):
        from draw_advisor.core.advisor.urgency import build_temporal_context
        temporal = build_temporal_context(NOW - timedelta(hours=5), NOW)
        assert self._gen(temporal, [make_milestone(days=28)]) == []

    def test_newly_urgent_after_short_absence(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(make_temporal(5), [
            make_milestone("m1", region="WY", days=28),
            make_milestone("m2", region="CO", days=10),
        ])
        assert insight.id == "temporal-urgency-change"
        assert insight.urgency == Urgency.SOON
        assert "WY Elk" in insight.interpretation
        # Already inside the window at the last visit
        assert "CO Elk" not in insight.interpretation
        assert insight.temporal_context == "Since your last visit (5 days ago)"

    def test_short_absence_without_change_is_silent(self):
        assert self._gen(make_temporal(5), [make_milestone(days=60), make_milestone("m2", days=10)]) == []

    def test_welcome_back_after_long_absence(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(make_temporal(45), [
            make_milestone("m1", region="MT", days=60),
            make_milestone("m2", region="CO", days=-20, completed=True),
        ])
        assert insight.id == "temporal-welcome-back"
        assert insight.urgency == Urgency.INFORMATIONAL
        assert "1 milestone pending and 1 completed" in insight.interpretation
        assert "MT Elk" in insight.interpretation
        assert insight.temporal_context == "Since your last visit (1 month ago)"

    def test_welcome_back_counts_newly_urgent(self):
        [insight] = self._gen(make_temporal(45), [make_milestone("m1", region="UT", days=20)])
        assert "1 deadline became urgent" in insight.interpretation
        assert "UT Elk" in insight.interpretation

    def test_long_absence_without_milestones_is_silent(self):
        assert self._gen(make_temporal(45), []) == []


# ═══════════════════════════════════════════════════════════════
# 5. MILESTONE PROGRESS INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestMilestoneInsights:
    """Tests for generate_milestone_insights"""

    def _gen(self, milestones):
        from draw_advisor.core.advisor.insight_pipeline import generate_milestone_insights
        return generate_milestone_insights(milestones, NOW)

    def test_all_complete(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([
            make_milestone("a", year=2026, completed=True),
            make_milestone("b", region="WY", year=2026, completed=True),
        ])
        assert insight.id == "milestone-all-complete"
        assert insight.urgency == Urgency.POSITIVE
        assert "CO Elk" in insight.interpretation

    def test_in_progress_names_next_by_due_date(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([
            make_milestone("a", year=2026, completed=True),
            make_milestone("b", region="WY", year=2026, days=40),
            make_milestone("c", region="MT", year=2026, days=20),
        ])
        assert insight.id == "milestone-progress"
        assert insight.urgency == Urgency.INFORMATIONAL
        assert "1 of 3 2026 milestones complete, 2 pending" in insight.interpretation
        assert "Next: MT Elk (due Nov 7)" in insight.interpretation

    def test_other_years_ignored(self):
        assert self._gen([make_milestone("a", year=2027)]) == []


# ═══════════════════════════════════════════════════════════════
# 6. CREEP INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestCreepInsights:
    """Tests for creep_insights.py"""

    def _gen(self, outlooks, positions=None):
        from draw_advisor.core.advisor.creep_insights import generate_creep_insights
        positions = positions if positions is not None else [make_position("CO", "elk", 2)]
        return generate_creep_insights(positions, outlooks, 2026)

    def test_large_shift_is_immediate(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([make_outlook(planned=5)])
        assert insight.id == "creep-CO-elk"
        assert insight.urgency == Urgency.IMMEDIATE
        assert "CO Elk success moved from Year 5 to Year 8" in insight.interpretation
        assert "range 7–12" in insight.interpretation

    def test_one_year_shift_is_soon(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([make_outlook(planned=7)])
        assert insight.urgency == Urgency.SOON

    def test_on_schedule_is_silent(self):
        assert self._gen([make_outlook(planned=8)]) == []
        assert self._gen([make_outlook(planned=None)]) == []

    def test_unreachable(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen([make_outlook(creep=1.0)])
        assert insight.urgency == Urgency.SOON
        assert "30+ years" in insight.interpretation
        assert "CO Elk" in insight.recommendation
        assert "does not close" in insight.interpretation

    def test_slow_but_closing_gap_is_not_called_unreachable(self):
        # 25 / (1.0 - 0.3) is about 36 years, past the sentinel but finite
        [insight] = self._gen(
            [make_outlook("WY", "moose", required=25, creep=0.3)],
            positions=[make_position("WY", "moose", 0)],
        )
        assert "does not close" not in insight.interpretation
        assert "beyond 30 years at current accrual" in insight.interpretation
        assert "WY Moose" in insight.signal.message

    def test_largest_shift_first_and_capped(self):
        positions = [make_position(r, "elk", 2) for r in ("CO", "WY", "MT", "UT")]
        outlooks = [
            make_outlook("CO", planned=7),
            make_outlook("WY", planned=4),
            make_outlook("MT", planned=6),
            make_outlook("UT", planned=5),
        ]
        insights = self._gen(outlooks, positions)
        assert [i.id for i in insights] == ["creep-WY-elk", "creep-UT-elk", "creep-MT-elk"]


# ═══════════════════════════════════════════════════════════════
# 7. SAVINGS INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestSavingsInsights:
    """Tests for savings_insights.py"""

    def _gen(self, monthly, saved=0.0, goal_id="g1"):
        from draw_advisor.core.advisor.models import SavingsGoal, UserGoal
        from draw_advisor.core.advisor.savings_insights import generate_savings_insights
        goals = [UserGoal(id="g1", title="Bull elk", region="CO", category="elk", target_year=2027)]
        funds = [SavingsGoal(id="f1", goal_id=goal_id, current_saved=saved, monthly_savings=monthly)]
        milestones = [
            make_milestone("a", plan_id="g1", cost=1500),
            make_milestone("b", plan_id="g1", cost=500),
        ]
        return generate_savings_insights(funds, goals, milestones, datetime(2026, 10, 18))

    def test_red_fund_is_soon(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(monthly=100)
        assert insight.id == "savings-behind-g1"
        assert insight.urgency == Urgency.SOON
        assert "$2,000 short on your CO Elk fund" in insight.interpretation

    def test_amber_fund_is_informational(self):
        from draw_advisor.core.advisor.models import Urgency
        [insight] = self._gen(monthly=160)
        assert insight.id == "savings-warning-g1"
        assert insight.urgency == Urgency.INFORMATIONAL
        assert "CO Elk" in insight.recommendation

    def test_green_fund_is_silent(self):
        assert self._gen(monthly=200) == []
        assert self._gen(monthly=0, saved=2500) == []

    def test_unlinked_fund_is_skipped(self):
        assert self._gen(monthly=100, goal_id="other") == []


# ═══════════════════════════════════════════════════════════════
# 8. SCOUTING INSIGHTS
# ═══════════════════════════════════════════════════════════════

class TestScoutingInsights:
    """Tests for scouting_insights.py"""

    def test_planned_scout_trip_surfaces(self):
        from draw_advisor.core.advisor.models import SignalKind, Urgency
        from draw_advisor.core.advisor.scouting_insights import generate_scouting_insights
        plan = make_plan(
            (2027, [make_action(region="CO"), make_action(type="scout", region="WY", cost=150)]),
            (2028, [make_action(region="CO")]),
        )
        [insight] = generate_scouting_insights(
            plan, [make_position("WY", "elk", 4)], [make_outlook("WY", "elk", required=10, creep=0.2)],
        )
        assert insight.id == "scouting-wy-elk-2027"
        assert insight.urgency == Urgency.INFORMATIONAL
        assert insight.signal.kind == SignalKind.POSITIVE
        assert "WY Elk" in insight.recommendation
        assert insight.portfolio_context == "Your WY Elk is 8 years away"


# ═══════════════════════════════════════════════════════════════
# 9. MERGE & RANK
# ═══════════════════════════════════════════════════════════════

class TestPipeline:
    """Tests for generate_advisor_insights and rank_insights"""

    def _busy_inputs(self):
        from draw_advisor.core.advisor.models import RuleId, Severity
        return dict(
            plan=make_plan(
                (2027, [make_action(region="WY", cost=900), make_action(region="CO", cost=100)]),
                (2028, [make_action(type="scout", region="WY", cost=150)]),
            ),
            positions=[make_position(r, "elk", 2) for r in ("CO", "WY", "MT")],
            milestones=[make_milestone(f"m{d}", days=d, year=2026) for d in (5, 12, 25, 50)],
            violations=[
                make_violation(RuleId.EXECUTION_FATIGUE, Severity.CRITICAL),
                make_violation(RuleId.POSITION_ABANDONMENT, Severity.WARNING, regions=("MT",)),
            ],
            health=make_health(55, exposure=20),
            metrics=make_metrics(concentration=85),
            temporal=make_temporal(5),
            outlooks=[make_outlook(r, planned=4) for r in ("CO", "WY", "MT")],
        )

    def test_discipline_before_portfolio_before_deadlines(self):
        from draw_advisor.core.advisor.models import RuleId, Severity
        insights = run_pipeline(
            milestones=[make_milestone(f"m{i}", days=40 + 10 * i) for i in range(9)],
            violations=[
                make_violation(RuleId.POSITION_ABANDONMENT, Severity.WARNING),
                make_violation(RuleId.EXECUTION_FATIGUE, Severity.CRITICAL),
            ],
            health=make_health(55),
        )
        assert [i.id for i in insights] == [
            "discipline-execution_fatigue",
            "discipline-position_abandonment",
            "portfolio-health-low",
            "deadline-m0",
            "deadline-m1",
            "deadline-m2",
        ]

    def test_capped_at_seven(self):
        insights = run_pipeline(**self._busy_inputs())
        assert len(insights) == 7

    def test_urgency_non_decreasing(self):
        from draw_advisor.core.advisor.insight_types import URGENCY_PRIORITY
        insights = run_pipeline(**self._busy_inputs())
        ranks = [URGENCY_PRIORITY[i.urgency] for i in insights]
        assert ranks == sorted(ranks)

    def test_idempotent(self):
        first = [i.to_dict() for i in run_pipeline(**self._busy_inputs())]
        second = [i.to_dict() for i in run_pipeline(**self._busy_inputs())]
        assert first == second

    def test_every_insight_names_an_entity(self):
        from draw_advisor.core.advisor.thresholds import AdvisorThresholds
        t = AdvisorThresholds().override({"max_visible_insights": 50})
        insights = run_pipeline(thresholds=t, **self._busy_inputs())
        assert len(insights) > 7
        for insight in insights:
            assert names_an_entity(insight), insight.id
            assert "abandon" not in insight.recommendation.lower()

    def test_every_insight_names_an_entity_without_actions(self):
        from draw_advisor.core.advisor.discipline_rules import evaluate_discipline_rules
        from draw_advisor.core.advisor.models import Mandate
        from draw_advisor.core.advisor.thresholds import AdvisorThresholds
        t = AdvisorThresholds().override({"max_visible_insights": 50})
        plan = make_plan(*[(y, []) for y in range(2027, 2032)])
        positions = [make_position("CO", "elk", 2)]
        violations = evaluate_discipline_rules(
            plan, Mandate(annual_execution_target=1.0), positions, t,
        )
        assert violations
        insights = run_pipeline(
            plan=plan, positions=positions, violations=violations, thresholds=t,
        )
        assert insights
        for insight in insights:
            assert names_an_entity(insight), insight.id

    def test_temporal_suppressed(self):
        from draw_advisor.core.advisor.models import InsightCategory
        inputs = dict(milestones=[make_milestone("m1", days=28)], temporal=make_temporal(5))
        assert any(i.category == InsightCategory.TEMPORAL for i in run_pipeline(**inputs))
        assert not any(
            i.category == InsightCategory.TEMPORAL
            for i in run_pipeline(suppress_temporal=True, **inputs)
        )

    def test_failing_generator_is_isolated(self, monkeypatch):
        from draw_advisor.core.advisor import insight_pipeline

        def boom(*args, **kwargs):
            raise RuntimeError("upstream data broke")

        monkeypatch.setattr(insight_pipeline, "generate_portfolio_insights", boom)
        insights = run_pipeline(milestones=[make_milestone("m1", days=10)])
        assert [i.id for i in insights] == ["deadline-m1"]

    def test_rank_drops_duplicate_ids(self):
        from draw_advisor.core.advisor.insight_pipeline import generate_deadline_insights, rank_insights
        [a] = generate_deadline_insights([make_milestone("m1", days=40)], (), (), NOW)
        [b] = generate_deadline_insights([make_milestone("m1", days=5)], (), (), NOW)
        ranked = rank_insights([a, b])
        assert len(ranked) == 1
        assert ranked[0] is a

    def test_empty_inputs(self):
        insights = run_pipeline(plan=make_plan(), health=make_health(70))
        assert insights == []


# ═══════════════════════════════════════════════════════════════
# 10. ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════

def make_settings(temporal=True, scouting=True):
    return SimpleNamespace(
        LOG_LEVEL="INFO",
        ADVISOR_MAX_VISIBLE_INSIGHTS=7,
        ADVISOR_ACCRUAL_RATE=1.0,
        ADVISOR_UNREACHABLE_YEARS=30,
        ADVISOR_LOW_ODDS_THRESHOLD=0.05,
        ENABLE_TEMPORAL_INSIGHTS=temporal,
        ENABLE_SCOUTING_INSIGHTS=scouting,
    )


def make_payload():
    return {
        "plan": {"years": [
            {"year": 2027, "actions": [{"type": "apply", "region": "CO", "category": "elk", "cost": 50}]},
            {"year": 2028, "actions": [{"type": "apply", "region": "CO", "category": "elk", "cost": 50}]},
            {"year": 2029, "actions": [{"type": "apply", "region": "CO", "category": "elk", "cost": 50}]},
            {"year": 2030, "actions": [{"type": "apply", "region": "CO", "category": "elk", "cost": 50}]},
            {"year": 2031, "actions": [{"type": "apply", "region": "CO", "category": "elk", "cost": 50}]},
        ]},
        "positions": [{"region": "CO", "category": "elk", "standing": 4}],
        "milestones": [{
            "id": "m1", "region": "CO", "category": "elk", "year": 2027,
            "due_date": due_in(28).isoformat(),
        }],
        "health": {"score": 55},
        "temporal": {
            "current_date": NOW.isoformat(),
            "last_visit_at": (NOW - timedelta(days=5)).isoformat(),
            "days_since_last_visit": 5,
            "is_returning_user": True,
        },
    }


class TestOrchestrator:
    """Tests for orchestrator.py"""

    def test_advise_from_dict(self):
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        from draw_advisor.core.advisor.models import RuleId
        bundle = AdvisorOrchestrator(settings=make_settings()).advise(make_payload())
        assert RuleId.EXECUTION_FATIGUE in [v.rule_id for v in bundle.violations]
        assert bundle.insights[0].id == "discipline-execution_fatigue"

        d = bundle.to_dict()
        assert d["counts"]["total"] == len(bundle.insights)
        assert d["counts"]["critical_violations"] == 1
        assert set(d["timing"]) == {"discipline_rules", "insight_pipeline"}
        assert d["insights"][0]["urgency"] == "immediate"

    def test_temporal_feature_flag(self):
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        on = AdvisorOrchestrator(settings=make_settings(temporal=True)).advise(make_payload())
        off = AdvisorOrchestrator(settings=make_settings(temporal=False)).advise(make_payload())
        assert "temporal-urgency-change" in [i.id for i in on.insights]
        assert "temporal-urgency-change" not in [i.id for i in off.insights]

    def test_thresholds_override(self):
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        from draw_advisor.core.advisor.thresholds import AdvisorThresholds
        t = AdvisorThresholds().override({"max_visible_insights": 2})
        bundle = AdvisorOrchestrator(settings=make_settings(), thresholds=t).advise(make_payload())
        assert len(bundle.insights) == 2

    def test_out_of_range_health_still_advises(self):
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        payload = make_payload()
        payload["health"] = {"score": 105, "breakdown": {"budget": 130}}
        bundle = AdvisorOrchestrator(settings=make_settings()).advise(payload)
        assert bundle.insights

    def test_invalid_payload_raises(self):
        from pydantic import ValidationError
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        payload = make_payload()
        del payload["health"]
        with pytest.raises(ValidationError):
            AdvisorOrchestrator(settings=make_settings()).advise(payload)

    def test_default_settings(self):
        from draw_advisor.config import settings
        from draw_advisor.core.advisor.orchestrator import AdvisorOrchestrator
        orchestrator = AdvisorOrchestrator()
        assert orchestrator.settings is settings
        assert orchestrator.thresholds.max_visible_insights == settings.ADVISOR_MAX_VISIBLE_INSIGHTS
