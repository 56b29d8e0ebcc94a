import logging
from typing import List, Optional

from tutorhub.client.api import TutorHubAPI
from tutorhub.core import cache_keys
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.note import Note, NoteCreate, NoteInput, Review, ReviewCreate, ReviewInput
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.utils.errors import Forbidden, NotFound

logger = logging.getLogger(__name__)


def average_rating(reviews: List[Review]) -> Optional[float]:
    if not reviews:
        return None
    return round(sum(r.rating for r in reviews) / len(reviews), 1)


# ======================
# NOTES
# ======================

class NoteService:
    """Personal notes; a student only ever sees and changes their own."""

    def __init__(self, api: TutorHubAPI, cache: QueryCache, latches: LatchRegistry):
        self._api = api
        self._cache = cache
        self._latches = latches

    async def list(self, student: Identity) -> List[Note]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.NOTES,
            lambda: self._api.notes_for(student.email),
            dependencies=(student.email,),
        ))

    async def create(self, student: Identity, note: NoteInput) -> Optional[str]:
        async with self._latches.hold("create-note", student.email):
            new_id = await self._api.create_note(
                NoteCreate(title=note.title, content=note.content, student_email=student.email)
            )
        self._cache.invalidate(cache_keys.NOTES, student.email)
        return new_id

    async def _owned(self, student: Identity, note_id: str) -> Note:
        for note in await self._api.notes_for(student.email):
            if note.id == note_id:
                if note.student_email != student.email:
                    raise Forbidden("You can only change your own notes")
                return note
        raise NotFound("Note not found")

    async def update(self, student: Identity, note_id: str, note: NoteInput) -> None:
        await self._owned(student, note_id)
        async with self._latches.hold("note", note_id):
            await self._api.update_note(note_id, note.title, note.content)
        self._cache.invalidate(cache_keys.NOTES, student.email)

    async def delete(self, student: Identity, note_id: str) -> None:
        await self._owned(student, note_id)
        async with self._latches.hold("note", note_id):
            await self._api.delete_note(note_id)
        self._cache.invalidate(cache_keys.NOTES, student.email)


# ======================
# SESSION REVIEWS
# ======================

class FeedbackService:

    def __init__(
        self,
        api: TutorHubAPI,
        cache: QueryCache,
        latches: LatchRegistry,
        enrollments: EnrollmentService,
    ):
        self._api = api
        self._cache = cache
        self._latches = latches
        self._enrollments = enrollments

    async def for_session(self, session_id: str) -> List[Review]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.FEEDBACKS,
            lambda: self._api.feedbacks_for_session(session_id),
            dependencies=(session_id,),
        ))

    async def save(self, student: Identity, session_id: str, review: ReviewInput) -> Optional[str]:
        """Create the student's review of a session, or replace the one they left before."""
        if not await self._enrollments.has_paid(student.email, session_id):
            raise Forbidden("Only enrolled students can review this session")

        async with self._latches.hold("review", student.email, session_id):
            existing = next(
                (r for r in await self._api.feedbacks_for_session(session_id) if r.student_email == student.email),
                None,
            )
            if existing is not None:
                await self._api.update_feedback(existing.id, review.rating, review.comment)
                review_id = existing.id
            else:
                review_id = await self._api.create_feedback(ReviewCreate(
                    session_id=session_id,
                    student_email=student.email,
                    rating=review.rating,
                    feedback=review.comment,
                ))

        logger.info("Review by %s saved for session %s", student.email, session_id)
        self._cache.invalidate(cache_keys.FEEDBACKS, session_id)
        return review_id
