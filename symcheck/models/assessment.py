import logging
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_EMERGENCY_WARNING = (
    "Your symptoms may indicate a medical emergency. Seek immediate medical attention."
)


class Urgency(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


def parse_urgency(label: object) -> Urgency:
    """Map a gateway urgency label onto Urgency, treating anything unknown as routine."""
    if isinstance(label, Urgency):
        return label
    text = str(label or "").strip().lower()
    try:
        return Urgency(text)
    except ValueError:
        logger.warning("Unrecognised urgency label %r, treating as routine", label)
        return Urgency.ROUTINE


class Condition(BaseModel):
    name: str
    probability: float = Field(0.0, ge=0.0, le=1.0)
    description: str = ""
    urgency_level: str | None = None
    recommendations: list[str] = []


class Assessment(BaseModel):
    """Structured assessment returned by the gateway for one turn."""

    urgency: Urgency = Urgency.ROUTINE
    emergency_warning: str | None = None
    probable_conditions: list[Condition] = []
    clarifying_questions: list[str] = []
    reasoning: str = ""
    recommendations: list[str] = []
    body_systems_affected: list[str] = []
    disclaimer: str = ""

    @field_validator("urgency", mode="before")
    @classmethod
    def _coerce_urgency(cls, v):
        return parse_urgency(v)

    @model_validator(mode="after")
    def _emergency_has_warning(self):
        # emergency always carries a non-empty warning
        if self.urgency is Urgency.EMERGENCY and not (self.emergency_warning or "").strip():
            self.emergency_warning = DEFAULT_EMERGENCY_WARNING
        return self

    @property
    def is_emergency(self) -> bool:
        return self.urgency is Urgency.EMERGENCY


class SessionStartResponse(BaseModel):
    session_id: str
    message: str = ""
    created_at: str = ""


class SymptomResponse(BaseModel):
    session_id: str
    assessment: Assessment
    conversation_turn: int = 0
    timestamp: str = ""


class HealthCheck(BaseModel):
    status: str
    services: dict[str, str] = {}


class HistoryTurn(BaseModel):
    user_message: str
    assistant_response: Assessment
    timestamp: str
    severity_reported: int | None = None


class ConversationHistory(BaseModel):
    session_id: str
    turns: list[HistoryTurn] = []
    total_turns: int = 0
    created_at: str = ""
    last_updated: str = ""
    summary: str | None = None
