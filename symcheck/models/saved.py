import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from symcheck.models.assessment import Assessment
from symcheck.models.patient import PatientInfo


class SavedAssessmentRecord(BaseModel):
    """Assessment stored independently of the live session."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    assessment: Assessment
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    patient_info: PatientInfo = PatientInfo()


class SaveTier(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class SaveOutcome(BaseModel):
    tier: SaveTier
    record_id: str | None = None
    error: str | None = None

    @property
    def saved_remotely(self) -> bool:
        return self.tier is SaveTier.REMOTE
