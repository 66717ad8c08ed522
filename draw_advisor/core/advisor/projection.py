"""
Projection Model — Years Until a Position Succeeds
=====================================================
A position gains ``g`` standing per year (1 in the reference model) while the
requirement it must meet creeps up by ``c`` per year. Success happens in the
first year ``Y`` where

    S + Y·g ≥ R + Y·c    →    Y = ceil((R − S) / (g − c))   for g > c

When ``g ≤ c`` the gap never closes; the model reports ``UNREACHABLE_YEARS``
(30, read as "30+ years") instead of infinity so downstream arithmetic and
display stay well-defined. Estimates beyond the sentinel are capped to it.

Input hygiene: negative standing, requirement or creep clamp to 0
(upstream passes ``S - 1`` during sensitivity checks).

Confidence band:
  optimistic  — creep × 0.7
  expected    — creep × 1.0
  pessimistic — creep × 1.3
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

UNREACHABLE_YEARS = 30
DEFAULT_ACCRUAL_RATE = 1.0
OPTIMISTIC_CREEP_FACTOR = 0.7
PESSIMISTIC_CREEP_FACTOR = 1.3

# Guards ceil() against float noise such as 7.000000000001
_EPSILON = 1e-9


@dataclass(frozen=True)
class DrawConfidence:
    optimistic: int
    expected: int
    pessimistic: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimistic": self.optimistic,
            "expected": self.expected,
            "pessimistic": self.pessimistic,
        }


@dataclass(frozen=True)
class RequirementProjection:
    year: int
    projected_requirement: int


@lru_cache(maxsize=4096)
def years_to_success(
    standing: float,
    required: float,
    creep_rate: float,
    accrual_rate: float = DEFAULT_ACCRUAL_RATE,
    unreachable_years: int = UNREACHABLE_YEARS,
) -> int:
    """Whole years until ``standing`` meets a requirement creeping at ``creep_rate``."""
    s = max(0.0, float(standing))
    r = max(0.0, float(required))
    c = max(0.0, float(creep_rate))
    g = float(accrual_rate)

    if s >= r:
        return 0
    if g <= c:
        logger.debug(f"Creep {c} outpaces accrual {g}; requirement {r} unreachable from {s}")
        return unreachable_years

    years = math.ceil((r - s) / (g - c) - _EPSILON)
    return min(max(years, 0), unreachable_years)


def is_unreachable(years: int, unreachable_years: int = UNREACHABLE_YEARS) -> bool:
    return years >= unreachable_years


def confidence_band(
    standing: float,
    required: float,
    creep_rate: float,
    accrual_rate: float = DEFAULT_ACCRUAL_RATE,
    unreachable_years: int = UNREACHABLE_YEARS,
    optimistic_factor: float = OPTIMISTIC_CREEP_FACTOR,
    pessimistic_factor: float = PESSIMISTIC_CREEP_FACTOR,
) -> DrawConfidence:
    """Optimistic / expected / pessimistic years, always in non-decreasing order."""
    c = max(0.0, float(creep_rate))
    estimates = sorted(
        years_to_success(standing, required, c * factor, accrual_rate, unreachable_years)
        for factor in (optimistic_factor, 1.0, pessimistic_factor)
    )
    return DrawConfidence(
        optimistic=estimates[0],
        expected=estimates[1],
        pessimistic=estimates[2],
    )


def project_requirement(
    required: float,
    creep_rate: float,
    start_year: int,
    years_forward: int = 10,
) -> List[RequirementProjection]:
    """Year-by-year requirement under constant creep, rounded to whole units."""
    r = max(0.0, float(required))
    c = max(0.0, float(creep_rate))
    return [
        RequirementProjection(year=start_year + i, projected_requirement=int(round(r + c * i)))
        for i in range(max(0, years_forward) + 1)
    ]


def estimate_creep_rate(desirability: float) -> float:
    """
    Step curve from a 0-10 desirability rating to annual creep.

    Callers that already know ``c`` should pass it straight to the
    projection functions; this is only a fallback for unrated inputs.
    """
    if desirability >= 8:
        return 0.7
    if desirability >= 6:
        return 0.4
    if desirability >= 4:
        return 0.2
    return 0.05
