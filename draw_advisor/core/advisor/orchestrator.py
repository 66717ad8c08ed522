"""
Advisor Orchestrator — Single Entry Point for an Advisory Pass
================================================================
Wires the engine components into one pipeline for callers that hold a
snapshot of the user's state (store layer, API handler, batch job).

Pipeline:
  Snapshot (dict or model) → Discipline Rules → Insight Pipeline → Bundle

Design:
  - Accepts raw payloads; validation happens once, here
  - Thresholds come from Settings unless the caller passes its own
  - Graceful degradation: a failing stage is logged, the others still return
  - Timing: each stage is timed for observability
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from ...config import settings as default_settings
from .discipline_rules import DisciplineRuleEngine, Violation
from .insight_pipeline import generate_advisor_insights
from .insight_types import AdvisorInsight
from .models import (
    Mandate, Milestone, Plan, PortfolioHealth, Position, PositionOutlook, SavingsGoal,
    Severity, StrategyMetrics, TemporalContext, Urgency, UserGoal, _Frozen,
)
from .thresholds import AdvisorThresholds

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# REQUEST / RESPONSE TYPES
# ═══════════════════════════════════════════════════════════════════

class AdvisorySnapshot(_Frozen):
    """Everything one advisory pass reads, handed over by the store layer."""
    plan: Plan
    positions: Tuple[Position, ...] = ()
    milestones: Tuple[Milestone, ...] = ()
    mandate: Optional[Mandate] = None
    health: PortfolioHealth
    metrics: StrategyMetrics = StrategyMetrics()
    temporal: TemporalContext
    outlooks: Tuple[PositionOutlook, ...] = ()
    savings_goals: Tuple[SavingsGoal, ...] = ()
    user_goals: Tuple[UserGoal, ...] = ()


class AdvisoryBundle:
    """Complete advisory response: ranked insights plus the raw violations."""
    def __init__(self):
        self.insights: List[AdvisorInsight] = []
        self.violations: List[Violation] = []
        self.timing: Dict[str, float] = {}

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "immediate": sum(1 for i in self.insights if i.urgency == Urgency.IMMEDIATE),
            "soon": sum(1 for i in self.insights if i.urgency == Urgency.SOON),
            "total": len(self.insights),
            "critical_violations": sum(1 for v in self.violations if v.severity == Severity.CRITICAL),
            "violations": len(self.violations),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "insights": [i.to_dict() for i in self.insights],
            "violations": [v.to_dict() for v in self.violations],
            "counts": self.counts,
            "timing": self.timing,
        }


# ═══════════════════════════════════════════════════════════════════
# ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════════

class AdvisorOrchestrator:
    """
    Runs Discipline Rules → Insight Pipeline over one snapshot.
    Stateless between calls; one instance can serve any number of users.
    """

    def __init__(self, settings=None, thresholds: Optional[AdvisorThresholds] = None):
        self.settings = settings or default_settings
        self.thresholds = thresholds or AdvisorThresholds.from_settings(self.settings)
        self.rule_engine = DisciplineRuleEngine(self.thresholds)

    def advise(self, snapshot: Union[AdvisorySnapshot, Dict[str, Any]]) -> AdvisoryBundle:
        """
        Full advisory pass. Raises ``pydantic.ValidationError`` only when a raw
        payload does not describe a snapshot; every later failure degrades.
        """
        if not isinstance(snapshot, AdvisorySnapshot):
            snapshot = AdvisorySnapshot.model_validate(snapshot)

        bundle = AdvisoryBundle()
        timings: Dict[str, float] = {}

        # ── Stage 1: Discipline Rules ──
        t0 = time.time()
        try:
            bundle.violations = self.rule_engine.evaluate(
                snapshot.plan, snapshot.mandate, snapshot.positions,
            )
        except Exception as e:
            logger.warning(f"Discipline rules failed (continuing without violations): {e}", exc_info=True)
            bundle.violations = []
        timings["discipline_rules"] = round(time.time() - t0, 3)

        # ── Stage 2: Insight Pipeline ──
        t0 = time.time()
        try:
            bundle.insights = generate_advisor_insights(
                plan=snapshot.plan,
                positions=snapshot.positions,
                milestones=snapshot.milestones,
                violations=bundle.violations,
                health=snapshot.health,
                metrics=snapshot.metrics,
                temporal=snapshot.temporal,
                mandate=snapshot.mandate,
                outlooks=snapshot.outlooks,
                savings_goals=snapshot.savings_goals,
                user_goals=snapshot.user_goals,
                suppress_temporal=not self.settings.ENABLE_TEMPORAL_INSIGHTS,
                include_scouting=self.settings.ENABLE_SCOUTING_INSIGHTS,
                thresholds=self.thresholds,
            )
        except Exception as e:
            logger.error(f"AdvisorOrchestrator.advise pipeline failed: {e}", exc_info=True)
            bundle.insights = []
        timings["insight_pipeline"] = round(time.time() - t0, 3)

        bundle.timing = timings
        logger.info(
            f"Advisory pass: {len(bundle.violations)} violations, "
            f"{len(bundle.insights)} insights in {sum(timings.values()):.3f}s"
        )
        return bundle
