"""
Booking a study session.

Free sessions are enrolled directly. Paid sessions go through the card widget:
``enroll`` returns a ``CheckoutRequest`` and the payment is stored only once
the widget reports success through ``confirm_payment``.
"""

import asyncio
import logging
import math
from datetime import UTC, date, datetime
from typing import List, Optional

from tutorhub.client.api import TutorHubAPI
from tutorhub.config import settings
from tutorhub.core import cache_keys
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.payment import (
    FREE_TRANSACTION_ID,
    BookedSession,
    BookedSessionPage,
    CheckoutRequest,
    EnrollmentResult,
    Payment,
    PaymentCreate,
)
from tutorhub.services.session_service import SessionLifecycle, is_bookable
from tutorhub.utils.errors import AlreadyEnrolled, InvalidTransition, ValidationFailed

logger = logging.getLogger(__name__)

BOOKED_PER_PAGE = 3


def _now() -> datetime:
    return datetime.now(UTC)


class EnrollmentService:

    def __init__(
        self,
        api: TutorHubAPI,
        cache: QueryCache,
        latches: LatchRegistry,
        sessions: SessionLifecycle,
        publishable_key: Optional[str] = settings.PAYMENT_PUBLISHABLE_KEY,
    ):
        self._api = api
        self._cache = cache
        self._latches = latches
        self._sessions = sessions
        self._publishable_key = publishable_key

    # ======================
    # QUERIES
    # ======================

    async def payments(self, email: str) -> List[Payment]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.PAYMENTS,
            lambda: self._api.payments_for_user(email),
            dependencies=(email,),
            enabled=bool(email),
        )) or []

    async def has_paid(self, email: str, session_id: str) -> bool:
        return any(p.session_id == session_id for p in await self.payments(email))

    async def payment_history(self, email: str) -> List[Payment]:
        payments = await self.payments(email)
        return sorted(payments, key=lambda p: p.date or datetime.min.replace(tzinfo=UTC), reverse=True)

    async def booked_sessions(
        self,
        email: str,
        search: str = "",
        page: int = 1,
        per_page: int = BOOKED_PER_PAGE,
    ) -> BookedSessionPage:
        payments = await self.payments(email)
        sessions = await asyncio.gather(*(self._sessions.get(p.session_id) for p in payments))
        booked = [
            BookedSession(payment=payment, session_title=session.title)
            for payment, session in zip(payments, sessions)
        ]

        term = search.strip().lower()
        if term:
            booked = [
                b for b in booked
                if term in b.session_title.lower()
                or (b.payment.date is not None and term in b.payment.date.date().isoformat())
            ]

        total_pages = max(1, math.ceil(len(booked) / per_page))
        page = min(max(page, 1), total_pages)
        start = (page - 1) * per_page
        return BookedSessionPage(items=booked[start:start + per_page], page=page, total_pages=total_pages)

    # ======================
    # ENROLLMENT
    # ======================

    async def enroll(
        self,
        student: Identity,
        session_id: str,
        today: Optional[date] = None,
        allow_free: bool = True,
    ) -> EnrollmentResult:
        """Enroll directly in a free session, or start checkout for a paid one."""
        async with self._latches.hold("enroll", student.email, session_id):
            session = await self._api.get_session(session_id)
            if not is_bookable(session, today):
                raise InvalidTransition("Registration is closed for this session")
            if session.is_free and not allow_free:
                raise InvalidTransition("This session is free; no payment is needed")

            # Always checked against the server, never a cached list.
            self._cache.invalidate(cache_keys.PAYMENTS, student.email)
            if await self.has_paid(student.email, session_id):
                raise AlreadyEnrolled("You are already enrolled in this session")

            if session.is_free:
                payment = PaymentCreate(
                    student_email=student.email,
                    session_id=session_id,
                    amount=0,
                    transaction_id=FREE_TRANSACTION_ID,
                    date=_now(),
                )
                new_id = await self._api.record_payment(payment)
                self._cache.invalidate(cache_keys.PAYMENTS, student.email)
                logger.info("Enrolled %s in free session %s", student.email, session_id)
                return EnrollmentResult(
                    status="enrolled",
                    payment=Payment(id=new_id, **payment.model_dump()),
                )

            client_secret = await self._api.create_payment_intent(session.registration_fee)
            logger.info("Checkout started for %s on session %s", student.email, session_id)
            return EnrollmentResult(
                status="checkout",
                checkout=CheckoutRequest(
                    session_id=session_id,
                    session_title=session.title,
                    amount=session.registration_fee,
                    student_email=student.email,
                    client_secret=client_secret,
                    publishable_key=self._publishable_key,
                ),
            )

    async def confirm_payment(
        self,
        student: Identity,
        session_id: str,
        transaction_id: str,
        today: Optional[date] = None,
    ) -> Payment:
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise ValidationFailed("A transaction id is required", field="transactionId")

        async with self._latches.hold("enroll", student.email, session_id):
            session = await self._api.get_session(session_id)
            if not is_bookable(session, today):
                raise InvalidTransition("Registration is closed for this session")
            if session.is_free:
                raise InvalidTransition("This session is free; no payment is needed")
            self._cache.invalidate(cache_keys.PAYMENTS, student.email)
            if await self.has_paid(student.email, session_id):
                raise AlreadyEnrolled("You are already enrolled in this session")

            payment = PaymentCreate(
                student_email=student.email,
                session_id=session_id,
                amount=session.registration_fee,
                transaction_id=transaction_id,
                date=_now(),
            )
            new_id = await self._api.store_payment(payment)

        self._cache.invalidate(cache_keys.PAYMENTS, student.email)
        logger.info(
            "Stored payment %s for %s on session %s (amount=%s)",
            transaction_id, student.email, session_id, session.registration_fee,
        )
        return Payment(id=new_id, **payment.model_dump())
