"""
Strategic Advisory Engine — Core Module
=========================================
Deterministic multi-year advice for positions that accrue standing toward a
requirement that creeps upward every year.

Components:
  ┌──────────────────────────────────────────────────────┐
  │ AdvisorOrchestrator   — Snapshot in, bundle out      │
  │ Projection Model      — Years-to-success + band      │
  │ DisciplineRuleEngine  — 7 structural plan checks     │
  │ Insight Pipeline      — 8 sub-generators, top 7      │
  │ Savings / Scouting    — Goal funding, scout pairing  │
  │ AdvisorThresholds     — Every tunable number         │
  └──────────────────────────────────────────────────────┘

Usage:
  # Full pass (recommended):
  from draw_advisor.core.advisor import AdvisorOrchestrator
  bundle = AdvisorOrchestrator().advise(snapshot_dict)

  # Individual components:
  from draw_advisor.core.advisor import years_to_success, evaluate_discipline_rules
"""

# Inputs
from .models import (
    ActionType,
    HealthBreakdown,
    HealthDimension,
    InsightCategory,
    Mandate,
    Milestone,
    MilestoneOutcome,
    Plan,
    PlanAction,
    PlanYear,
    PointType,
    PortfolioHealth,
    Position,
    PositionOutlook,
    RuleId,
    SavingsGoal,
    Severity,
    SignalKind,
    StrategyMetrics,
    TemporalContext,
    Urgency,
    UserGoal,
)
from .thresholds import DEFAULT_THRESHOLDS, AdvisorThresholds

# Projection model
from .projection import (
    UNREACHABLE_YEARS,
    DrawConfidence,
    RequirementProjection,
    confidence_band,
    estimate_creep_rate,
    is_unreachable,
    project_requirement,
    years_to_success,
)

# Discipline rules
from .discipline_rules import DisciplineRuleEngine, Violation, evaluate_discipline_rules

# Insight pipeline
from .insight_types import URGENCY_PRIORITY, AdvisorInsight, CallToAction, Signal
from .insight_pipeline import generate_advisor_insights, rank_insights
from .urgency import UrgencyLevel, build_temporal_context, days_until, urgency_level

# Savings & scouting
from .savings import SavingsStatus, funded_date, monthly_savings_target, savings_status
from .scouting import ScoutingOpportunity, detect_scouting_opportunities

# Orchestration
from .orchestrator import AdvisorOrchestrator, AdvisoryBundle, AdvisorySnapshot

__all__ = [
    "AdvisorOrchestrator", "AdvisoryBundle", "AdvisorySnapshot",
    "ActionType", "PointType", "MilestoneOutcome", "Severity", "RuleId", "Urgency",
    "InsightCategory", "SignalKind", "HealthDimension",
    "Position", "PositionOutlook", "PlanAction", "PlanYear", "Plan", "Mandate",
    "Milestone", "UserGoal", "SavingsGoal", "HealthBreakdown", "PortfolioHealth",
    "StrategyMetrics", "TemporalContext",
    "AdvisorThresholds", "DEFAULT_THRESHOLDS",
    "UNREACHABLE_YEARS", "DrawConfidence", "RequirementProjection", "years_to_success",
    "is_unreachable", "confidence_band", "project_requirement", "estimate_creep_rate",
    "DisciplineRuleEngine", "Violation", "evaluate_discipline_rules",
    "AdvisorInsight", "Signal", "CallToAction", "URGENCY_PRIORITY",
    "generate_advisor_insights", "rank_insights",
    "UrgencyLevel", "days_until", "urgency_level", "build_temporal_context",
    "SavingsStatus", "monthly_savings_target", "funded_date", "savings_status",
    "ScoutingOpportunity", "detect_scouting_opportunities",
]
