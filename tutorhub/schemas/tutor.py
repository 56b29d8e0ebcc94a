from enum import Enum
from typing import Optional

from pydantic import Field

from tutorhub.schemas.common import BackendModel


class TutorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class Education(BackendModel):
    degree: Optional[str] = None
    institution: Optional[str] = None
    year: Optional[int] = None
    gpa: Optional[float] = None


class TutorApplicationForm(BackendModel):
    """The "become a tutor" form. Email comes from the signed-in identity."""
    name: str = Field(..., min_length=1)
    experience: Optional[str] = None
    speciality: Optional[str] = None
    education: Education = Field(default_factory=Education)
    bio: Optional[str] = None
    linkedin: Optional[str] = None
    photo: Optional[str] = None


class TutorApplication(TutorApplicationForm):
    id: str = Field(..., alias="_id")
    email: str
    status: TutorStatus = TutorStatus.PENDING
    feedback: Optional[str] = None

    @property
    def visible_feedback(self) -> Optional[str]:
        # Feedback belongs to a rejection; a resubmitted application hides it.
        if self.status == TutorStatus.CANCELLED and self.feedback:
            return self.feedback
        return None
