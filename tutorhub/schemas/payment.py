from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from tutorhub.schemas.common import BackendModel

# Transaction id recorded for zero-fee enrollments.
FREE_TRANSACTION_ID = "free-enrollment"


class PaymentCreate(BackendModel):
    student_email: str
    session_id: str
    amount: float = Field(..., ge=0)
    transaction_id: str
    date: datetime


class Payment(BackendModel):
    id: Optional[str] = Field(None, alias="_id")
    student_email: str = Field(
        ...,
        serialization_alias="studentEmail",
        validation_alias=AliasChoices("studentEmail", "email", "student_email"),
    )
    session_id: str
    amount: float = 0
    transaction_id: Optional[str] = None
    date: Optional[datetime] = None


class PaymentIntent(BackendModel):
    client_secret: str


class CheckoutRequest(BaseModel):
    """Everything the card widget needs to capture a paid enrollment."""
    session_id: str
    session_title: str
    amount: float
    student_email: str
    client_secret: str
    publishable_key: Optional[str] = None


class PaymentConfirmation(BaseModel):
    session_id: str
    transaction_id: str = Field(..., min_length=1)


class EnrollmentResult(BaseModel):
    status: str  # "enrolled" | "checkout"
    payment: Optional[Payment] = None
    checkout: Optional[CheckoutRequest] = None


class BookedSession(BaseModel):
    payment: Payment
    session_title: str


class BookedSessionPage(BaseModel):
    items: List[BookedSession]
    page: int
    total_pages: int
