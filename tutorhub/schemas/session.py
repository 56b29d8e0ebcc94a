from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from tutorhub.schemas.common import BackendModel, coerce_calendar_date


class SessionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ======================
# SESSION REQUEST MODELS
# ======================

class SessionDraft(BackendModel):
    """What a tutor fills in on the create / update session form."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    registration_start: date
    registration_end: date
    class_start: date
    class_end: date
    duration: str = Field(..., min_length=1)
    registration_fee: float = Field(0, ge=0)
    image: Optional[str] = None

    @field_validator(
        "registration_start", "registration_end", "class_start", "class_end", mode="before"
    )
    @classmethod
    def coerce_dates(cls, value):
        return coerce_calendar_date(value)


class SessionCreate(SessionDraft):
    """Payload for ``POST /sessions``."""
    tutor_name: Optional[str] = None
    tutor_email: str
    tutor_image: Optional[str] = None
    status: SessionStatus = SessionStatus.PENDING
    supersedes: Optional[str] = None


class SessionApproval(BackendModel):
    status: SessionStatus = SessionStatus.APPROVED
    registration_fee: float = Field(..., ge=0)


class SessionRejection(BackendModel):
    status: SessionStatus = SessionStatus.REJECTED
    feedback: str = Field(..., min_length=1)


# ======================
# SESSION RESPONSE MODELS
# ======================

class StudySession(BackendModel):
    id: str = Field(..., alias="_id")
    title: str
    description: str = ""
    tutor_name: Optional[str] = None
    tutor_email: str
    tutor_image: Optional[str] = None
    registration_start: date
    registration_end: date
    class_start: date
    class_end: date
    duration: Optional[str] = None
    registration_fee: float = Field(0, ge=0)
    status: SessionStatus = SessionStatus.PENDING
    feedback: Optional[str] = None
    image: Optional[str] = None
    supersedes: Optional[str] = None

    @field_validator(
        "registration_start", "registration_end", "class_start", "class_end", mode="before"
    )
    @classmethod
    def coerce_dates(cls, value):
        return coerce_calendar_date(value)

    @property
    def is_free(self) -> bool:
        return self.registration_fee == 0


class SessionCard(BackendModel):
    """Public listing entry with the computed registration label."""
    id: str = Field(..., alias="_id")
    title: str
    description: str = ""
    tutor_name: Optional[str] = None
    registration_end: date
    registration_fee: float = 0
    image: Optional[str] = None
    label: str
    bookable: bool
