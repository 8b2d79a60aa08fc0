"""Patient context collected before a session starts."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from symcheck.exceptions import ValidationRejected

LIST_FIELDS = ("medical_history", "medications", "allergies")


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


def _ordered_set(items) -> tuple[str, ...]:
    """Trim entries, drop blanks and keep the first occurrence of duplicates."""
    seen: list[str] = []
    for item in items or ():
        text = str(item).strip()
        if text and text not in seen:
            seen.append(text)
    return tuple(seen)


class PatientProfile(BaseModel):
    """Frozen profile sent to the gateway when a session starts."""

    model_config = ConfigDict(frozen=True)

    age: int = Field(..., gt=0, le=150)
    sex: Sex
    medical_history: tuple[str, ...] = ()
    medications: tuple[str, ...] = ()
    allergies: tuple[str, ...] = ()

    @field_validator("sex", mode="before")
    @classmethod
    def _normalise_sex(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _dedupe(cls, v):
        return _ordered_set(v)

    def to_request(self) -> dict:
        return {
            "age": self.age,
            "sex": self.sex.value,
            "medical_history": list(self.medical_history),
            "medications": list(self.medications),
            "allergies": list(self.allergies),
        }


class PatientInfo(BaseModel):
    """Minimal patient summary stored alongside a saved assessment."""

    age: int | None = None
    sex: str | None = None


class ProfileDraft(BaseModel):
    """Mutable profile being filled in during profile entry."""

    age: int | None = None
    sex: str | None = None
    medical_history: list[str] = []
    medications: list[str] = []
    allergies: list[str] = []

    def _items(self, field: str) -> list[str]:
        if field not in LIST_FIELDS:
            raise ValidationRejected(f"Unknown profile list: {field}")
        return getattr(self, field)

    def add(self, field: str, value: str) -> bool:
        """Append a trimmed entry; blanks and duplicates are ignored."""
        items = self._items(field)
        text = (value or "").strip()
        if not text or text in items:
            return False
        items.append(text)
        return True

    def remove(self, field: str, index: int) -> str:
        items = self._items(field)
        if index < 0 or index >= len(items):
            raise ValidationRejected(f"No {field} entry at position {index}")
        return items.pop(index)

    def freeze(self) -> PatientProfile:
        try:
            return PatientProfile(
                age=self.age,
                sex=self.sex,
                medical_history=self.medical_history,
                medications=self.medications,
                allergies=self.allergies,
            )
        except ValidationError as e:
            raise ValidationRejected(f"Invalid patient profile: {e.errors()[0]['msg']}") from e
