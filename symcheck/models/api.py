"""Request and response bodies for the companion API."""

from pydantic import BaseModel, Field

from symcheck.models.conversation import ConversationTurn
from symcheck.models.escalation import EscalationState


class ProfileUpdate(BaseModel):
    age: int | None = None
    sex: str | None = None
    medical_history: list[str] = []
    medications: list[str] = []
    allergies: list[str] = []


class MessageRequest(BaseModel):
    message: str
    severity: int = Field(5, ge=1, le=10)
    duration: str | None = None


class MessageResult(BaseModel):
    turn: ConversationTurn
    escalation: EscalationState


class ExportRequest(BaseModel):
    format: str = Field("json", pattern="^(json|text)$")


class EmergencyCallResult(BaseModel):
    number: str
    uri: str
