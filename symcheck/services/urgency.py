"""Pure mappings from urgency labels and slider values to severity tiers."""

from symcheck.models.assessment import Assessment, Urgency, parse_urgency
from symcheck.models.escalation import (
    Escalation,
    EscalationState,
    SeverityTier,
    UrgencyClass,
)


_CLASSES = {
    Urgency.EMERGENCY: (SeverityTier.CRITICAL, Escalation.EMERGENCY_PANEL),
    Urgency.URGENT: (SeverityTier.ELEVATED, Escalation.WARNING),
    Urgency.ROUTINE: (SeverityTier.NORMAL, Escalation.NONE),
}

# Slider breakpoints, highest first
_SLIDER_BREAKPOINTS = (
    (8, SeverityTier.CRITICAL),
    (6, SeverityTier.HIGH),
    (4, SeverityTier.MODERATE),
)


def classify_urgency(label: object) -> UrgencyClass:
    """Classify a gateway urgency label. Unknown labels classify as routine."""
    urgency = parse_urgency(label)
    tier, escalation = _CLASSES[urgency]
    return UrgencyClass(urgency=urgency, tier=tier, escalation=escalation)


def severity_tier(value: int) -> SeverityTier:
    """Tier for the raw 1-10 severity slider, used to echo the user's own turn."""
    for threshold, tier in _SLIDER_BREAKPOINTS:
        if value >= threshold:
            return tier
    return SeverityTier.NORMAL


def escalation_for(assessment: Assessment | None) -> EscalationState:
    if assessment is None:
        return EscalationState()
    cls = classify_urgency(assessment.urgency)
    if cls.escalation is not Escalation.EMERGENCY_PANEL:
        return EscalationState(tier=cls.tier)
    return EscalationState(
        tier=cls.tier,
        panel_visible=True,
        warning=assessment.emergency_warning,
        recommendations=list(assessment.recommendations),
        call_available=True,
    )
