"""
Typed wrappers for the backend REST surface.

The backend is the authority for every business rule; these methods only
shape requests and parse responses.
"""

from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from tutorhub.client.http import BackendClient
from tutorhub.schemas import (
    Material,
    MaterialCreate,
    MaterialUpdate,
    Note,
    NoteCreate,
    Payment,
    PaymentCreate,
    Review,
    ReviewCreate,
    Role,
    SessionApproval,
    SessionCreate,
    SessionRejection,
    StudySession,
    TutorApplication,
    UserPage,
    UserProfile,
)
from tutorhub.schemas.payment import PaymentIntent
from tutorhub.utils.errors import BackendRejected


def _email(email: str) -> str:
    return quote(email, safe="@")


def inserted_id(result: Any) -> Optional[str]:
    if isinstance(result, dict):
        value = result.get("insertedId") or result.get("_id")
        return str(value) if value is not None else None
    return None


class TutorHubAPI:

    def __init__(self, client: BackendClient):
        self.client = client

    # ======================
    # USERS
    # ======================

    async def get_role(self, email: str) -> Optional[str]:
        data = await self.client.get(f"/users/role/{_email(email)}")
        return (data or {}).get("role")

    async def upsert_user(self, profile: UserProfile) -> Any:
        return await self.client.post("/users", json=profile.to_backend())

    async def list_users(self, search: str = "", page: int = 1, limit: int = 10) -> UserPage:
        data = await self.client.get(
            "/admin/users",
            params={"search": search, "page": page, "limit": limit},
        )
        return UserPage.model_validate(data or {})

    async def change_user_role(self, user_id: str, role: Role) -> Any:
        return await self.client.patch(f"/admin/users/{user_id}/role", json={"role": role.value})

    # ======================
    # TUTOR APPLICATIONS
    # ======================

    async def get_tutor_application(self, email: str) -> Optional[TutorApplication]:
        data = await self.client.get(f"/tutors/email/{_email(email)}")
        if not data or not data.get("_id"):
            return None
        return TutorApplication.model_validate(data)

    async def list_tutor_applications(self, status: Optional[str] = None) -> List[TutorApplication]:
        params = {"status": status} if status else None
        data = await self.client.get("/tutors", params=params)
        return [TutorApplication.model_validate(item) for item in data or []]

    async def list_tutors(self) -> List[TutorApplication]:
        data = await self.client.get("/tutors/all")
        return [TutorApplication.model_validate(item) for item in data or []]

    async def create_tutor_application(self, payload: Dict[str, Any]) -> Any:
        return await self.client.post("/tutors", json=payload)

    async def update_tutor_application(self, application_id: str, payload: Dict[str, Any]) -> Any:
        return await self.client.patch(f"/tutors/{application_id}", json=payload)

    async def delete_tutor(self, application_id: str) -> Any:
        return await self.client.delete(f"/tutors/{application_id}")

    async def approved_sessions_for_tutor(self, email: str) -> List[StudySession]:
        data = await self.client.get(f"/tutors/{_email(email)}/approved-sessions")
        return [StudySession.model_validate(item) for item in data or []]

    # ======================
    # STUDY SESSIONS
    # ======================

    async def list_sessions(self, tutor_email: Optional[str] = None) -> List[StudySession]:
        params = {"tutorEmail": tutor_email} if tutor_email else None
        data = await self.client.get("/sessions", params=params)
        return [StudySession.model_validate(item) for item in data or []]

    async def get_session(self, session_id: str) -> StudySession:
        data = await self.client.get(f"/sessions/{session_id}")
        return StudySession.model_validate(data)

    async def create_session(self, payload: SessionCreate) -> Optional[str]:
        result = await self.client.post("/sessions", json=payload.to_backend())
        new_id = inserted_id(result)
        if not new_id:
            raise BackendRejected("Failed to create session")
        return new_id

    async def admin_sessions(self) -> List[StudySession]:
        data = await self.client.get("/admin/sessions")
        return [StudySession.model_validate(item) for item in data or []]

    async def review_session(self, session_id: str, decision: Union[SessionApproval, SessionRejection]) -> Any:
        return await self.client.patch(f"/admin/sessions/{session_id}", json=decision.to_backend())

    # ======================
    # MATERIALS
    # ======================

    async def list_materials(self) -> List[Material]:
        data = await self.client.get("/materials")
        return [Material.model_validate(item) for item in data or []]

    async def materials_for_tutor(self, email: str) -> List[Material]:
        data = await self.client.get(f"/materials/tutor/{_email(email)}")
        return [Material.model_validate(item) for item in data or []]

    async def materials_for_student(self, session_id: str, email: str) -> List[Material]:
        data = await self.client.get(f"/materials/session/{session_id}/student/{_email(email)}")
        return [Material.model_validate(item) for item in data or []]

    async def create_material(self, session_id: str, payload: MaterialCreate) -> Optional[str]:
        result = await self.client.post(f"/materials/{session_id}", json=payload.to_backend())
        return inserted_id(result)

    async def update_material(self, material_id: str, payload: MaterialUpdate) -> Any:
        return await self.client.patch(f"/materials/{material_id}", json=payload.to_backend())

    async def delete_material(self, material_id: str) -> Any:
        return await self.client.delete(f"/materials/{material_id}")

    # ======================
    # PAYMENTS
    # ======================

    async def record_payment(self, payload: PaymentCreate) -> Optional[str]:
        return inserted_id(await self.client.post("/payments", json=payload.to_backend()))

    async def store_payment(self, payload: PaymentCreate) -> Optional[str]:
        return inserted_id(await self.client.post("/payments/store-payment", json=payload.to_backend()))

    async def payments_for_user(self, email: str) -> List[Payment]:
        data = await self.client.get(f"/payments/user/{_email(email)}")
        return [Payment.model_validate(item) for item in data or []]

    async def create_payment_intent(self, amount: float) -> str:
        data = await self.client.post("/payments/create-payment-intent", json={"amount": amount})
        return PaymentIntent.model_validate(data or {}).client_secret

    # ======================
    # NOTES
    # ======================

    async def notes_for(self, email: str) -> List[Note]:
        data = await self.client.get(f"/notes/{_email(email)}")
        return [Note.model_validate(item) for item in data or []]

    async def create_note(self, payload: NoteCreate) -> Optional[str]:
        return inserted_id(await self.client.post("/notes", json=payload.to_backend()))

    async def update_note(self, note_id: str, title: str, content: str) -> Any:
        return await self.client.patch(f"/notes/{note_id}", json={"title": title, "content": content})

    async def delete_note(self, note_id: str) -> Any:
        return await self.client.delete(f"/notes/{note_id}")

    # ======================
    # FEEDBACKS (SESSION REVIEWS)
    # ======================

    async def feedbacks_for_session(self, session_id: str) -> List[Review]:
        data = await self.client.get(f"/feedbacks/session/{session_id}")
        return [Review.model_validate(item) for item in data or []]

    async def create_feedback(self, payload: ReviewCreate) -> Optional[str]:
        return inserted_id(await self.client.post("/feedbacks", json=payload.to_backend()))

    async def update_feedback(self, feedback_id: str, rating: int, feedback: str) -> Any:
        return await self.client.patch(
            f"/feedbacks/{feedback_id}",
            json={"rating": rating, "feedback": feedback},
        )
