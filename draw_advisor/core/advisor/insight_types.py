"""
Advisory insight records handed to the presentation layer.

Every sub-generator builds these; the pipeline only merges and ranks them.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from .models import InsightCategory, SignalKind, Urgency

# Lower = higher priority
URGENCY_PRIORITY: Dict[Urgency, int] = {
    Urgency.IMMEDIATE: 0,
    Urgency.SOON: 1,
    Urgency.INFORMATIONAL: 2,
    Urgency.POSITIVE: 3,
}


@dataclass(frozen=True)
class Signal:
    kind: SignalKind
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class CallToAction:
    label: str
    target: str                # Opaque navigation target or external URL
    external: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "target": self.target, "external": self.external}


@dataclass(frozen=True)
class AdvisorInsight:
    id: str
    signal: Signal
    category: InsightCategory
    urgency: Urgency
    interpretation: str
    recommendation: str
    cta: CallToAction
    portfolio_context: Optional[str] = None
    temporal_context: Optional[str] = None
    expires_at: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "signal": self.signal.to_dict(),
            "category": self.category.value,
            "urgency": self.urgency.value,
            "interpretation": self.interpretation,
            "recommendation": self.recommendation,
            "cta": self.cta.to_dict(),
            "portfolio_context": self.portfolio_context,
            "temporal_context": self.temporal_context,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


# Internal navigation targets
DEADLINES_TARGET = "/deadlines"
PLAN_TARGET = "/plan-builder"
POSITIONS_TARGET = "/points"
BUDGET_TARGET = "/budget"
