from typing import Optional

from pydantic import BaseModel, Field

from tutorhub.schemas.common import BackendModel


# ======================
# NOTES
# ======================

class NoteInput(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class NoteCreate(BackendModel):
    title: str
    content: str
    student_email: str


class Note(BackendModel):
    id: str = Field(..., alias="_id")
    title: str
    content: str
    student_email: str


# ======================
# SESSION REVIEWS
# ======================

class ReviewInput(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5 stars")
    comment: str = ""


class ReviewCreate(BackendModel):
    session_id: str
    student_email: str
    rating: int
    feedback: str = ""


class Review(BackendModel):
    id: str = Field(..., alias="_id")
    session_id: str
    student_email: str
    rating: int
    feedback: Optional[str] = None
