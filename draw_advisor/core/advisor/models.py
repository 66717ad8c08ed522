"""
Advisor Input Models — Data Contracts with the Store Collaborator
===================================================================
Everything the engine reads arrives as one of these frozen models.
The store layer may hand over model instances or plain dicts
(``Model.model_validate(payload)``); either way the engine never mutates them.

Out-of-domain numbers are clamped here rather than rejected:
  - negative standing / cost / requirement → 0
  - success probability outside 0..1       → clipped into range

Closed categorical sets (severity, urgency, rule ids, insight categories)
are ``str`` enums so mapping tables keyed by them can be checked for
exhaustiveness.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ═══════════════════════════════════════════════════════════════════
# CLOSED ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════

class ActionType(str, Enum):
    APPLY = "apply"
    ACCUMULATE = "accumulate"
    EXECUTE = "execute"
    SCOUT = "scout"


class PointType(str, Enum):
    PREFERENCE = "preference"
    BONUS = "bonus"


class MilestoneOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class RuleId(str, Enum):
    LOW_ODDS_CONCENTRATION = "low_odds_concentration"
    PREMIUM_OVERLOAD = "premium_overload"
    EXECUTION_FATIGUE = "execution_fatigue"
    CADENCE_BELOW_TARGET = "cadence_below_target"
    PLATEAU_DETECTED = "plateau_detected"
    STRATEGIC_DRIFT = "strategic_drift"
    POSITION_ABANDONMENT = "position_abandonment"


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    SOON = "soon"
    INFORMATIONAL = "informational"
    POSITIVE = "positive"


class InsightCategory(str, Enum):
    DEADLINE = "deadline"
    PORTFOLIO = "portfolio"
    DISCIPLINE = "discipline"
    TEMPORAL = "temporal"
    MILESTONE = "milestone"
    CREEP = "creep"
    SAVINGS = "savings"
    SCOUTING = "scouting"


class SignalKind(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    POSITIVE = "positive"


class HealthDimension(str, Enum):
    BUDGET = "budget"
    FREQUENCY = "frequency"
    EXPOSURE = "exposure"
    HORIZON = "horizon"
    DISCIPLINE = "discipline"


HEALTH_DIMENSION_LABELS: Dict[HealthDimension, str] = {
    HealthDimension.BUDGET: "budget alignment",
    HealthDimension.FREQUENCY: "execution frequency",
    HealthDimension.EXPOSURE: "low-odds exposure",
    HealthDimension.HORIZON: "age horizon",
    HealthDimension.DISCIPLINE: "discipline",
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ═══════════════════════════════════════════════════════════════════
# POSITIONS
# ═══════════════════════════════════════════════════════════════════

class Position(_Frozen):
    """A user's accumulated standing for one region / target-category pair."""
    region: str
    category: str
    standing: int = Field(0, description="Accrued standing units, never negative")
    point_type: Optional[PointType] = None
    year_started: Optional[int] = None

    @field_validator("standing", mode="before")
    @classmethod
    def _clamp_standing(cls, v):
        if v is None:
            return 0
        return max(0, int(v))


class PositionOutlook(_Frozen):
    """Upstream projection inputs for one position: threshold and its creep."""
    region: str
    category: str
    required_standing: float = Field(..., description="Standing currently required to succeed")
    creep_rate: float = Field(0.0, description="Annual increase of the requirement")
    planned_success_years: Optional[int] = Field(
        None, description="Years-to-success the current plan was built on",
    )

    @field_validator("required_standing", "creep_rate", mode="before")
    @classmethod
    def _clamp_non_negative(cls, v):
        if v is None:
            return 0.0
        return max(0.0, float(v))


# ═══════════════════════════════════════════════════════════════════
# PLAN / ROADMAP
# ═══════════════════════════════════════════════════════════════════

class PlanAction(_Frozen):
    type: ActionType
    region: str
    category: str
    cost: float = 0.0
    due_date: Optional[date] = None
    success_probability: Optional[float] = None
    url: Optional[str] = None
    description: str = ""

    @field_validator("cost", mode="before")
    @classmethod
    def _clamp_cost(cls, v):
        if v is None:
            return 0.0
        return max(0.0, float(v))

    @field_validator("success_probability", mode="before")
    @classmethod
    def _clip_probability(cls, v):
        if v is None:
            return None
        return min(1.0, max(0.0, float(v)))


class PlanYear(_Frozen):
    year: int
    actions: Tuple[PlanAction, ...] = ()

    @property
    def estimated_cost(self) -> float:
        return sum(a.cost for a in self.actions)

    def has_action_type(self, action_type: ActionType) -> bool:
        return any(a.type == action_type for a in self.actions)


class Plan(_Frozen):
    """Ordered multi-year roadmap produced by the upstream planner."""
    years: Tuple[PlanYear, ...] = ()

    def first_year(self) -> Optional[PlanYear]:
        return self.years[0] if self.years else None

    def all_actions(self) -> List[PlanAction]:
        return [a for yr in self.years for a in yr.actions]

    def regions(self) -> List[str]:
        """Distinct regions in order of first appearance."""
        seen: List[str] = []
        for a in self.all_actions():
            if a.region not in seen:
                seen.append(a.region)
        return seen

    def categories(self) -> List[str]:
        seen: List[str] = []
        for a in self.all_actions():
            if a.category not in seen:
                seen.append(a.category)
        return seen


class Mandate(_Frozen):
    """User-declared portfolio policy."""
    regions_in_play: Tuple[str, ...] = ()
    category_priority: Tuple[str, ...] = ()
    annual_execution_target: Optional[float] = None


# ═══════════════════════════════════════════════════════════════════
# MILESTONES & GOALS
# ═══════════════════════════════════════════════════════════════════

class Milestone(_Frozen):
    id: str
    plan_id: Optional[str] = None
    title: str = ""
    type: ActionType = ActionType.APPLY
    region: str
    category: str
    year: int
    due_date: Optional[date] = None
    url: Optional[str] = None
    total_cost: float = 0.0
    completed: bool = False
    outcome: Optional[MilestoneOutcome] = None

    @field_validator("total_cost", mode="before")
    @classmethod
    def _clamp_cost(cls, v):
        if v is None:
            return 0.0
        return max(0.0, float(v))


class UserGoal(_Frozen):
    id: str
    title: str = ""
    region: str
    category: str
    target_year: int


class SavingsGoal(_Frozen):
    id: str
    goal_id: str
    current_saved: float = 0.0
    monthly_savings: float = 0.0


# ═══════════════════════════════════════════════════════════════════
# UPSTREAM SUMMARIES
# ═══════════════════════════════════════════════════════════════════

def _clamp_score(v, default=0) -> int:
    if v is None:
        return default
    return min(100, max(0, int(round(float(v)))))


class HealthBreakdown(_Frozen):
    budget: int = 100
    frequency: int = 100
    exposure: int = 100
    horizon: int = 100
    discipline: int = 100

    @field_validator("budget", "frequency", "exposure", "horizon", "discipline", mode="before")
    @classmethod
    def _clamp_dimension(cls, v):
        return _clamp_score(v, default=100)

    def scores(self) -> Dict[HealthDimension, int]:
        return {
            HealthDimension.BUDGET: self.budget,
            HealthDimension.FREQUENCY: self.frequency,
            HealthDimension.EXPOSURE: self.exposure,
            HealthDimension.HORIZON: self.horizon,
            HealthDimension.DISCIPLINE: self.discipline,
        }

    def weakest(self) -> Tuple[HealthDimension, int]:
        """Lowest-scoring dimension; ties resolve in declaration order."""
        scores = self.scores()
        dim = min(scores, key=lambda d: scores[d])
        return dim, scores[dim]


class PortfolioHealth(_Frozen):
    score: int = Field(..., description="Composite 0-100 health score")
    breakdown: HealthBreakdown = HealthBreakdown()

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_overall(cls, v):
        return _clamp_score(v)


class StrategyMetrics(_Frozen):
    annual_spend: float = 0.0
    concentration_percentage: float = 0.0
    top_region: Optional[str] = None


class TemporalContext(_Frozen):
    last_visit_at: Optional[datetime] = None
    days_since_last_visit: Optional[int] = None
    current_date: datetime
    is_returning_user: bool = False
