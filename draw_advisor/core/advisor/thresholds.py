"""
Advisor Thresholds — Every Tunable Number in One Place
========================================================
Rules and sub-generators look their limits up here instead of carrying
literals, so a deployment can retune the engine through settings or a
per-user override without touching rule code.

Usage:
  thresholds = AdvisorThresholds()
  strict = thresholds.override({"fatigue_max_years": 3})
  from_env = AdvisorThresholds.from_settings(settings)
"""

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Tuple

logger = logging.getLogger(__name__)


# Regions where every target counts as premium, and region/category pairs
# that are premium inside otherwise ordinary regions.
DEFAULT_PREMIUM_REGIONS: FrozenSet[str] = frozenset({"NV", "AZ"})
DEFAULT_PREMIUM_TARGETS: FrozenSet[Tuple[str, str]] = frozenset({
    ("WY", "moose"),
    ("WY", "bighorn_sheep"),
    ("MT", "bison"),
    ("MT", "moose"),
})


@dataclass(frozen=True)
class AdvisorThresholds:
    """All configurable thresholds used across the engine."""

    # ── Projection ──
    accrual_rate: float = 1.0
    unreachable_years: int = 30
    optimistic_creep_factor: float = 0.7
    pessimistic_creep_factor: float = 1.3

    # ── Discipline rules ──
    low_odds_threshold: float = 0.05
    low_odds_budget_share: float = 0.60
    premium_max_active: int = 3
    fatigue_max_years: int = 4
    cadence_window_years: int = 5
    plateau_standing: int = 8
    abandonment_standing: int = 3
    abandonment_window_years: int = 2
    premium_regions: FrozenSet[str] = field(default_factory=lambda: DEFAULT_PREMIUM_REGIONS)
    premium_targets: FrozenSet[Tuple[str, str]] = field(default_factory=lambda: DEFAULT_PREMIUM_TARGETS)

    # ── Deadline urgency (days) ──
    deadline_immediate_days: int = 14
    deadline_soon_days: int = 30

    # ── Portfolio ──
    health_low: int = 60
    health_strong: int = 80
    concentration_pct: float = 70.0

    # ── Temporal ──
    long_absence_days: int = 30

    # ── Savings ──
    savings_amber_months: float = 3.0

    # ── Scouting ──
    scouting_min_score: int = 45
    scouting_min_years_away: int = 2

    # ── Pipeline caps ──
    max_visible_insights: int = 7
    max_deadline_insights: int = 3
    max_portfolio_insights: int = 2
    max_discipline_insights: int = 2
    max_temporal_insights: int = 1
    max_milestone_insights: int = 1
    max_creep_insights: int = 3
    max_savings_insights: int = 2
    max_scouting_insights: int = 2

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items()}

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def is_premium(self, region: str, category: str) -> bool:
        return region in self.premium_regions or (region, category) in self.premium_targets

    def override(self, overrides: Dict[str, Any]) -> 'AdvisorThresholds':
        """Return a new AdvisorThresholds with overrides applied."""
        known = {f.name for f in fields(self)}
        applied = {}
        for k, v in overrides.items():
            if k in known:
                applied[k] = v
            else:
                logger.warning(f"Ignoring unknown threshold override '{k}'")
        return replace(self, **applied)

    @classmethod
    def from_settings(cls, settings) -> 'AdvisorThresholds':
        """Build thresholds from the environment-driven Settings object."""
        return cls(
            accrual_rate=settings.ADVISOR_ACCRUAL_RATE,
            unreachable_years=settings.ADVISOR_UNREACHABLE_YEARS,
            low_odds_threshold=settings.ADVISOR_LOW_ODDS_THRESHOLD,
            max_visible_insights=settings.ADVISOR_MAX_VISIBLE_INSIGHTS,
        )


DEFAULT_THRESHOLDS = AdvisorThresholds()
