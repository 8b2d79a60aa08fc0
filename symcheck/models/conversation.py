from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from symcheck.models.assessment import Assessment
from symcheck.models.patient import PatientProfile

UNKNOWN_DURATION = "unknown"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    patient: PatientProfile
    created_at: str = ""


class SymptomMessage(BaseModel):
    session_id: str
    text: str = Field(..., min_length=1)
    severity: int = Field(..., ge=1, le=10)
    duration: str = UNKNOWN_DURATION

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, v):
        if v is None:
            return UNKNOWN_DURATION
        if isinstance(v, str):
            return v.strip() or UNKNOWN_DURATION
        return v

    def to_request(self) -> dict:
        return {
            "session_id": self.session_id,
            "message": self.text,
            "severity": self.severity,
            "duration": self.duration,
        }


class ConversationTurn(BaseModel):
    """One committed ledger entry. Never edited after it is appended."""

    model_config = ConfigDict(frozen=True)

    id: int
    role: Role
    content: str
    severity: int | None = None
    assessment: Assessment | None = None
    timestamp: datetime
