"""
Study-session lifecycle.

    pending --approve(fee >= 0)--> approved
    pending --reject(feedback)---> rejected

A rejected (or any) session is revised through ``resubmit``, which creates a
new pending record whose ``supersedes`` field points at the original; the
original is kept untouched as history.

Mutations wait for the backend before anything is reported as changed and
invalidate only the cache keys they affect.
"""

import logging
import math
from datetime import date
from typing import Any, List, Optional, Tuple

from tutorhub.client.api import TutorHubAPI
from tutorhub.client.images import ImageHostClient
from tutorhub.core import cache_keys
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.common import today as _today
from tutorhub.schemas.role import Known, Role, RoleState
from tutorhub.schemas.session import (
    SessionApproval,
    SessionCard,
    SessionCreate,
    SessionDraft,
    SessionRejection,
    SessionStatus,
    StudySession,
)
from tutorhub.utils.errors import Forbidden, InvalidTransition, ValidationFailed

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6

# (filename, content, content type) of an uploaded image
ImageFile = Tuple[str, bytes, str]


# ======================
# VISIBILITY RULES
# ======================

def is_bookable(session: StudySession, today: Optional[date] = None) -> bool:
    today = today or _today()
    return session.status == SessionStatus.APPROVED and today <= session.registration_end


def status_label(session: StudySession, today: Optional[date] = None) -> str:
    today = today or _today()
    return "Ongoing" if today <= session.registration_end else "Closed"


def to_card(session: StudySession, today: Optional[date] = None) -> SessionCard:
    return SessionCard(
        id=session.id,
        title=session.title,
        description=session.description,
        tutor_name=session.tutor_name,
        registration_end=session.registration_end,
        registration_fee=session.registration_fee,
        image=session.image,
        label=status_label(session, today),
        bookable=is_bookable(session, today),
    )


def parse_fee(value: Any) -> float:
    """Registration fee supplied with an approval: required, numeric, >= 0."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationFailed("Registration fee is required to approve a session", field="registrationFee")
    if isinstance(value, bool):
        raise ValidationFailed("Registration fee must be a number", field="registrationFee")
    try:
        fee = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed("Registration fee must be a number", field="registrationFee")
    if not math.isfinite(fee) or fee < 0:
        raise ValidationFailed("Registration fee must be zero or more", field="registrationFee")
    return fee


def parse_feedback(value: Optional[str]) -> str:
    feedback = (value or "").strip()
    if not feedback:
        raise ValidationFailed("Feedback is required to reject a session", field="feedback")
    return feedback


def _is_admin(role_state: RoleState) -> bool:
    return isinstance(role_state, Known) and role_state.role == Role.ADMIN


class SessionLifecycle:

    def __init__(
        self,
        api: TutorHubAPI,
        cache: QueryCache,
        latches: LatchRegistry,
        images: Optional[ImageHostClient] = None,
    ):
        self._api = api
        self._cache = cache
        self._latches = latches
        self._images = images

    # ======================
    # QUERIES
    # ======================

    async def all_sessions(self) -> List[StudySession]:
        return await self._cache.fetch(QueryDescriptor(cache_keys.ALL_SESSIONS, self._api.list_sessions))

    async def catalog(self, today: Optional[date] = None) -> List[SessionCard]:
        sessions = await self.all_sessions()
        return [to_card(s, today) for s in sessions if s.status == SessionStatus.APPROVED]

    async def featured(self, today: Optional[date] = None) -> Tuple[List[SessionCard], bool]:
        cards = await self.catalog(today)
        return cards[:FEATURED_LIMIT], len(cards) > FEATURED_LIMIT

    async def admin_sessions(self) -> List[StudySession]:
        return await self._cache.fetch(QueryDescriptor(cache_keys.ADMIN_SESSIONS, self._api.admin_sessions))

    async def sessions_for_tutor(self, email: str) -> List[StudySession]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.SESSIONS_FOR_TUTOR,
            lambda: self._api.list_sessions(tutor_email=email),
            dependencies=(email,),
            enabled=bool(email),
        )) or []

    async def approved_sessions_for_tutor(self, email: str) -> List[StudySession]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.APPROVED_SESSIONS_FOR_TUTOR,
            lambda: self._api.approved_sessions_for_tutor(email),
            dependencies=(email,),
            enabled=bool(email),
        )) or []

    async def get(self, session_id: str) -> StudySession:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.SESSION,
            lambda: self._api.get_session(session_id),
            dependencies=(session_id,),
        ))

    # ======================
    # TUTOR ACTIONS
    # ======================

    async def create(
        self,
        tutor: Identity,
        role_state: RoleState,
        draft: SessionDraft,
        image: Optional[ImageFile] = None,
        supersedes: Optional[str] = None,
    ) -> str:
        async with self._latches.hold("create-session", tutor.email):
            image_url = draft.image
            if image is not None:
                if self._images is None:
                    raise ValidationFailed("Image uploads are not configured", field="image")
                image_url = await self._images.upload(*image)

            payload = SessionCreate(
                **draft.model_dump(exclude={"registration_fee", "image"}),
                # Only an admin may set a fee at creation; tutors always start free.
                registration_fee=draft.registration_fee if _is_admin(role_state) else 0,
                image=image_url,
                tutor_name=tutor.display_name,
                tutor_email=tutor.email,
                tutor_image=tutor.photo_url,
                status=SessionStatus.PENDING,
                supersedes=supersedes,
            )
            new_id = await self._api.create_session(payload)

        logger.info("Session %s created by %s (supersedes=%s)", new_id, tutor.email, supersedes)
        self._cache.invalidate(cache_keys.SESSIONS_FOR_TUTOR, tutor.email)
        self._cache.invalidate(cache_keys.ADMIN_SESSIONS)
        self._cache.invalidate(cache_keys.ALL_SESSIONS)
        return new_id

    async def resubmit(
        self,
        tutor: Identity,
        role_state: RoleState,
        session_id: str,
        draft: SessionDraft,
        image: Optional[ImageFile] = None,
    ) -> str:
        original = await self._api.get_session(session_id)
        if original.tutor_email != tutor.email and not _is_admin(role_state):
            raise Forbidden("You can only update your own sessions")
        if image is None and not draft.image:
            draft = draft.model_copy(update={"image": original.image})
        return await self.create(tutor, role_state, draft, image=image, supersedes=original.id)

    # ======================
    # ADMIN ACTIONS
    # ======================

    async def approve(self, session_id: str, fee: Any) -> StudySession:
        decision = SessionApproval(registration_fee=parse_fee(fee))
        return await self._review(session_id, decision)

    async def reject(self, session_id: str, feedback: Optional[str]) -> StudySession:
        decision = SessionRejection(feedback=parse_feedback(feedback))
        return await self._review(session_id, decision)

    async def _review(self, session_id: str, decision) -> StudySession:
        async with self._latches.hold("review-session", session_id):
            current = await self._api.get_session(session_id)
            if current.status != SessionStatus.PENDING:
                raise InvalidTransition(
                    f"Only pending sessions can be reviewed (session is {current.status.value})"
                )
            await self._api.review_session(session_id, decision)
            updated = await self._api.get_session(session_id)

        logger.info("Session %s -> %s", session_id, updated.status.value)
        self._cache.invalidate(cache_keys.ADMIN_SESSIONS)
        self._cache.invalidate(cache_keys.ALL_SESSIONS)
        self._cache.invalidate(cache_keys.SESSION, session_id)
        self._cache.invalidate(cache_keys.SESSIONS_FOR_TUTOR, updated.tutor_email)
        self._cache.invalidate(cache_keys.APPROVED_SESSIONS_FOR_TUTOR, updated.tutor_email)
        return updated

    def is_review_in_flight(self, session_id: str) -> bool:
        return self._latches.is_engaged("review-session", session_id)
