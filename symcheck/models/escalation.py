"""Severity tiers and the escalation state derived from an assessment."""

from enum import Enum

from pydantic import BaseModel

from symcheck.models.assessment import Urgency


class SeverityTier(str, Enum):
    NORMAL = "normal"
    MODERATE = "moderate"
    HIGH = "high"
    ELEVATED = "elevated"
    CRITICAL = "critical"


class Escalation(str, Enum):
    NONE = "none"
    WARNING = "warning"
    EMERGENCY_PANEL = "emergency_panel"


class UrgencyClass(BaseModel):
    urgency: Urgency
    tier: SeverityTier
    escalation: Escalation


class EscalationState(BaseModel):
    tier: SeverityTier = SeverityTier.NORMAL
    panel_visible: bool = False
    warning: str | None = None
    recommendations: list[str] = []
    call_available: bool = False
