# tutorhub/schemas/__init__.py

from .auth import Identity, IdentityState, IdentityStatus
from .role import Known, Role, RoleState, Unresolved
from .session import (
    SessionApproval,
    SessionCard,
    SessionCreate,
    SessionDraft,
    SessionRejection,
    SessionStatus,
    StudySession,
)
from .tutor import Education, TutorApplication, TutorApplicationForm, TutorStatus
from .material import Material, MaterialCreate, MaterialUpdate
from .payment import (
    FREE_TRANSACTION_ID,
    BookedSession,
    BookedSessionPage,
    CheckoutRequest,
    EnrollmentResult,
    Payment,
    PaymentConfirmation,
    PaymentCreate,
)
from .note import Note, NoteCreate, NoteInput, Review, ReviewCreate, ReviewInput
from .user import LoginForm, RegisterForm, RoleChange, UserPage, UserProfile, UserRecord

__all__ = [
    "Identity",
    "IdentityState",
    "IdentityStatus",
    "Known",
    "Role",
    "RoleState",
    "Unresolved",
    "SessionApproval",
    "SessionCard",
    "SessionCreate",
    "SessionDraft",
    "SessionRejection",
    "SessionStatus",
    "StudySession",
    "Education",
    "TutorApplication",
    "TutorApplicationForm",
    "TutorStatus",
    "Material",
    "MaterialCreate",
    "MaterialUpdate",
    "FREE_TRANSACTION_ID",
    "BookedSession",
    "BookedSessionPage",
    "CheckoutRequest",
    "EnrollmentResult",
    "Payment",
    "PaymentConfirmation",
    "PaymentCreate",
    "Note",
    "NoteCreate",
    "NoteInput",
    "Review",
    "ReviewCreate",
    "ReviewInput",
    "LoginForm",
    "RegisterForm",
    "RoleChange",
    "UserPage",
    "UserProfile",
    "UserRecord",
]
