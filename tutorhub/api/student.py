import asyncio
from typing import List

from fastapi import APIRouter, Depends, Query, status

from tutorhub.api.deps import (
    get_enrollments,
    get_feedback,
    get_materials,
    get_notes,
    get_sessions,
    require_role,
)
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.material import Material
from tutorhub.schemas.note import Note, NoteInput, ReviewInput
from tutorhub.schemas.payment import BookedSessionPage, Payment
from tutorhub.schemas.role import Role
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.services.material_service import MaterialService
from tutorhub.services.note_service import FeedbackService, NoteService, average_rating
from tutorhub.services.session_service import SessionLifecycle, to_card
from tutorhub.utils.errors import Forbidden

router = APIRouter(prefix="/dashboard", tags=["Student"])

require_student = require_role(Role.STUDENT)


# ===== BOOKED SESSIONS =====

@router.get("/booked-sessions", response_model=BookedSessionPage)
async def booked_sessions(
    search: str = "",
    page: int = Query(1, ge=1),
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    return await enrollments.booked_sessions(student.email, search=search, page=page)


@router.get("/booked-sessions/{session_id}")
async def booked_session_detail(
    session_id: str,
    student: Identity = Depends(require_student),
    sessions: SessionLifecycle = Depends(get_sessions),
    enrollments: EnrollmentService = Depends(get_enrollments),
    materials: MaterialService = Depends(get_materials),
    feedback: FeedbackService = Depends(get_feedback),
):
    if not await enrollments.has_paid(student.email, session_id):
        raise Forbidden("You are not enrolled in this session")
    session, visible, reviews = await asyncio.gather(
        sessions.get(session_id),
        materials.visible_for_student(student, session_id),
        feedback.for_session(session_id),
    )
    return {
        "session": to_card(session).model_dump(by_alias=True, mode="json"),
        "classStart": session.class_start.isoformat(),
        "classEnd": session.class_end.isoformat(),
        "materials": [m.model_dump(by_alias=True, mode="json") for m in visible],
        "reviews": [r.model_dump(by_alias=True, mode="json") for r in reviews],
        "averageRating": average_rating(reviews),
    }


@router.post("/booked-sessions/{session_id}/review", status_code=status.HTTP_201_CREATED)
async def review_session(
    session_id: str,
    review: ReviewInput,
    student: Identity = Depends(require_student),
    feedback: FeedbackService = Depends(get_feedback),
):
    review_id = await feedback.save(student, session_id, review)
    return {"id": review_id}


@router.get("/payment-history", response_model=List[Payment])
async def payment_history(
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    return await enrollments.payment_history(student.email)


# ===== NOTES =====

@router.post("/create-note", status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteInput,
    student: Identity = Depends(require_student),
    notes: NoteService = Depends(get_notes),
):
    return {"id": await notes.create(student, note)}


@router.get("/manage-notes", response_model=List[Note])
async def manage_notes(
    student: Identity = Depends(require_student),
    notes: NoteService = Depends(get_notes),
):
    return await notes.list(student)


@router.patch("/manage-notes/{note_id}")
async def update_note(
    note_id: str,
    note: NoteInput,
    student: Identity = Depends(require_student),
    notes: NoteService = Depends(get_notes),
):
    await notes.update(student, note_id, note)
    return {"status": "updated"}


@router.delete("/manage-notes/{note_id}")
async def delete_note(
    note_id: str,
    student: Identity = Depends(require_student),
    notes: NoteService = Depends(get_notes),
):
    await notes.delete(student, note_id)
    return {"status": "deleted"}


# ===== STUDY MATERIALS =====

@router.get("/study-materials", response_model=BookedSessionPage)
async def study_material_sessions(
    student: Identity = Depends(require_student),
    enrollments: EnrollmentService = Depends(get_enrollments),
):
    """Booked sessions whose materials the student can open."""
    return await enrollments.booked_sessions(student.email, per_page=1000)


@router.get("/study-materials/{session_id}", response_model=List[Material])
async def study_materials(
    session_id: str,
    student: Identity = Depends(require_student),
    materials: MaterialService = Depends(get_materials),
):
    return await materials.visible_for_student(student, session_id)
