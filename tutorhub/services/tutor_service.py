"""
Tutor applications.

    (none) --submit--> pending --approve--> approved
                       pending --reject---> cancelled --submit--> pending

Approving or removing a tutor changes that user's role, so the cached role
for the applicant's email is dropped.
"""

import logging
from typing import List, Optional

from tutorhub.client.api import TutorHubAPI, inserted_id
from tutorhub.core import cache_keys
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.tutor import TutorApplication, TutorApplicationForm, TutorStatus
from tutorhub.services.role_service import RoleResolver
from tutorhub.utils.errors import AlreadyTutor, InvalidTransition, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


class TutorApplications:

    def __init__(self, api: TutorHubAPI, cache: QueryCache, latches: LatchRegistry, roles: RoleResolver):
        self._api = api
        self._cache = cache
        self._latches = latches
        self._roles = roles

    # ======================
    # APPLICANT
    # ======================

    async def current(self, email: str) -> Optional[TutorApplication]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.TUTOR_STATUS,
            lambda: self._api.get_tutor_application(email),
            dependencies=(email,),
            enabled=bool(email),
        ))

    async def submit(self, email: str, form: TutorApplicationForm) -> TutorApplication:
        async with self._latches.hold("tutor-application", email):
            existing = await self._api.get_tutor_application(email)
            if existing is not None and existing.status == TutorStatus.APPROVED:
                raise AlreadyTutor("You are already a tutor")
            if existing is not None and existing.status == TutorStatus.PENDING:
                raise InvalidTransition("Your application is pending review")

            payload = form.to_backend()
            payload.update({
                "email": email,
                "role": "tutor",
                "status": TutorStatus.PENDING.value,
                "feedback": "",
            })
            if existing is not None:
                await self._api.update_tutor_application(existing.id, payload)
                application_id = existing.id
            else:
                application_id = inserted_id(await self._api.create_tutor_application(payload))

        logger.info("Tutor application %s submitted by %s", application_id, email)
        self._cache.invalidate(cache_keys.TUTOR_STATUS, email)
        self._cache.invalidate(cache_keys.PENDING_TUTORS)
        self._cache.invalidate(cache_keys.ALL_TUTORS)
        return TutorApplication.model_validate({**payload, "_id": application_id or ""})

    # ======================
    # ADMIN
    # ======================

    async def pending(self) -> List[TutorApplication]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.PENDING_TUTORS,
            lambda: self._api.list_tutor_applications(status=TutorStatus.PENDING.value),
        ))

    async def all(self) -> List[TutorApplication]:
        return await self._cache.fetch(QueryDescriptor(cache_keys.ALL_TUTORS, self._api.list_tutors))

    async def _find(self, application_id: str, applications: List[TutorApplication]) -> TutorApplication:
        for application in applications:
            if application.id == application_id:
                return application
        raise NotFound("Tutor application not found")

    async def approve(self, application_id: str) -> TutorApplication:
        application = await self._find(
            application_id,
            await self._api.list_tutor_applications(status=TutorStatus.PENDING.value),
        )
        async with self._latches.hold("review-tutor", application_id):
            await self._api.update_tutor_application(application_id, {"status": TutorStatus.APPROVED.value})
        logger.info("Tutor application %s approved (%s)", application_id, application.email)
        self._after_review(application.email)
        return application.model_copy(update={"status": TutorStatus.APPROVED})

    async def reject(self, application_id: str, feedback: Optional[str]) -> TutorApplication:
        feedback = (feedback or "").strip()
        if not feedback:
            raise ValidationFailed("Feedback is required to reject an application", field="feedback")
        application = await self._find(
            application_id,
            await self._api.list_tutor_applications(status=TutorStatus.PENDING.value),
        )
        async with self._latches.hold("review-tutor", application_id):
            await self._api.update_tutor_application(
                application_id,
                {"status": TutorStatus.CANCELLED.value, "feedback": feedback},
            )
        logger.info("Tutor application %s rejected (%s)", application_id, application.email)
        self._after_review(application.email)
        return application.model_copy(update={"status": TutorStatus.CANCELLED, "feedback": feedback})

    async def remove(self, application_id: str) -> None:
        application = await self._find(application_id, await self._api.list_tutors())
        async with self._latches.hold("review-tutor", application_id):
            await self._api.delete_tutor(application_id)
        logger.info("Tutor %s removed (%s)", application_id, application.email)
        self._after_review(application.email)

    def _after_review(self, email: str) -> None:
        self._cache.invalidate(cache_keys.PENDING_TUTORS)
        self._cache.invalidate(cache_keys.ALL_TUTORS)
        self._cache.invalidate(cache_keys.TUTOR_STATUS, email)
        self._roles.invalidate(email)
