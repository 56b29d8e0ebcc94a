"""
Public session catalog, booking and the become-a-tutor flow.
"""

from typing import List

from fastapi import APIRouter, Depends

from tutorhub.api.deps import (
    get_cache,
    get_enrollments,
    get_public_api,
    get_public_sessions,
    get_tutor_applications,
    require_identity,
    require_role,
)
from tutorhub.client.api import TutorHubAPI
from tutorhub.core import cache_keys
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.core.scope import ViewScope
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.note import Review
from tutorhub.schemas.payment import CheckoutRequest, EnrollmentResult, Payment, PaymentConfirmation
from tutorhub.schemas.role import Role
from tutorhub.schemas.session import SessionCard, SessionStatus
from tutorhub.schemas.tutor import TutorApplication, TutorApplicationForm
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.services.note_service import average_rating
from tutorhub.services.session_service import SessionLifecycle, to_card
from tutorhub.services.tutor_service import TutorApplications
from tutorhub.utils.errors import InvalidTransition, NotFound

router = APIRouter(tags=["Study Sessions"])

require_student = require_role(Role.STUDENT)


# ===== PUBLIC =====

@router.get("/")
async def home(
    api: TutorHubAPI = Depends(get_public_api),
    cache: QueryCache = Depends(get_cache),
    sessions: SessionLifecycle = Depends(get_public_sessions),
):
    """Home page: featured sessions and tutors, loaded concurrently."""
    async with ViewScope() as scope:
        results = await scope.gather(
            sessions.featured(),
            cache.fetch(QueryDescriptor(cache_keys.ALL_TUTORS, api.list_tutors)),
        )
    (featured, has_more), tutors = results
    return {
        "featuredSessions": [card.model_dump(by_alias=True, mode="json") for card in featured],
        "showAllSessions": has_more,
        "tutors": [t.model_dump(by_alias=True, mode="json") for t in tutors],
    }


@router.get("/study-sessions", response_model=List[SessionCard])
async def catalog(sessions: SessionLifecycle = Depends(get_public_sessions)):
    return await sessions.catalog()


@router.get("/study-sessions/{session_id}")
async def session_detail(
    session_id: str,
    api: TutorHubAPI = Depends(get_public_api),
    sessions: SessionLifecycle = Depends(get_public_sessions),
):
    session = await sessions.get(session_id)
    if session.status != SessionStatus.APPROVED:
        raise NotFound("Session not found")
    reviews: List[Review] = await api.feedbacks_for_session(session_id)
    return {
        **to_card(session).model_dump(by_alias=True, mode="json"),
        "tutorEmail": session.tutor_email,
        "registrationStart": session.registration_start.isoformat(),
        "classStart": session.class_start.isoformat(),
        "classEnd": session.class_end.isoformat(),
        "duration": session.duration,
        "reviews": [r.model_dump(by_alias=True, mode="json") for r in reviews],
        "averageRating": average_rating(reviews),
    }


@router.get("/tutors", response_model=List[TutorApplication])
async def tutors(
    api: TutorHubAPI = Depends(get_public_api),
    cache: QueryCache = Depends(get_cache),
):
    return await cache.fetch(QueryDescriptor(cache_keys.ALL_TUTORS, api.list_tutors))


# ===== BOOKING =====

@router.post("/study-sessions/{session_id}/enroll", response_model=EnrollmentResult)
async def enroll(
    session_id: str,
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    return await enrollments.enroll(student, session_id)


@router.post("/payments/checkout/{session_id}", response_model=CheckoutRequest)
async def checkout(
    session_id: str,
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    result = await enrollments.enroll(student, session_id, allow_free=False)
    return result.checkout


@router.post("/payments/confirm", response_model=Payment)
async def confirm_payment(
    body: PaymentConfirmation,
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    return await enrollments.confirm_payment(student, body.session_id, body.transaction_id)


# ===== BECOME A TUTOR =====

@router.get("/become-tutor")
async def tutor_application(
    identity: Identity = Depends(require_identity),
    applications: TutorApplications = Depends(get_tutor_applications),
):
    current = await applications.current(identity.email)
    if current is None:
        return {"status": None, "feedback": None, "application": None}
    return {
        "status": current.status.value,
        "feedback": current.visible_feedback,
        "application": current.model_dump(by_alias=True, mode="json"),
    }


@router.post("/become-tutor", response_model=TutorApplication)
async def apply_as_tutor(
    form: TutorApplicationForm,
    identity: Identity = Depends(require_identity),
    applications: TutorApplications = Depends(get_tutor_applications),
):
    return await applications.submit(identity.email, form)
