"""
In-memory stand-in for the TutorHub REST backend.

Bearer tokens are checked with the identity provider the way the real
backend checks them with the hosted provider. Every request is recorded so
tests can assert on what was (or was not) sent.
"""

import itertools
import time
from typing import Any, Dict, List, Optional, Set, Tuple

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tutorhub.client.api import TutorHubAPI
from tutorhub.client.http import authenticated_client, create_http_client, public_client
from tutorhub.database import Base
from tutorhub.identity.local import LocalIdentityProvider, get_password_hash
from tutorhub.identity.provider import IdentityStore
from tutorhub.models.account import Account

BACKEND_URL = "http://backend.test"
PASSWORD = "secret123"

ADMIN = "admin@example.com"
TUTOR = "tutor@example.com"
STUDENT = "student@example.com"


# ======================
# IDENTITY
# ======================

def build_provider() -> LocalIdentityProvider:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return LocalIdentityProvider(sessionmaker(bind=engine), secret_key="test-secret")


def slowed(provider: LocalIdentityProvider, seconds: float) -> LocalIdentityProvider:
    """Same accounts, but every database session takes ``seconds`` to open."""
    factory = provider._session_factory

    def open_slowly():
        time.sleep(seconds)
        return factory()

    return LocalIdentityProvider(open_slowly, secret_key="test-secret")


def create_account(provider: LocalIdentityProvider, email: str, name: str) -> Account:
    db = provider._session_factory()
    try:
        account = Account(
            uid=email.split("@")[0],
            email=email,
            password_hash=get_password_hash(PASSWORD),
            display_name=name,
            is_active=True,
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
    finally:
        db.close()


async def signed_in(provider: LocalIdentityProvider, email: str) -> IdentityStore:
    store = IdentityStore(provider)
    await store.sign_in(email, PASSWORD)
    return store


def api_for(http: httpx.AsyncClient, store: IdentityStore) -> TutorHubAPI:
    return TutorHubAPI(authenticated_client(http, store))


def public_api(http: httpx.AsyncClient) -> TutorHubAPI:
    return TutorHubAPI(public_client(http))


# ======================
# BACKEND
# ======================

class FakeBackend:

    def __init__(self, provider: LocalIdentityProvider):
        self.provider = provider
        self.users: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.tutors: Dict[str, Dict[str, Any]] = {}
        self.materials: Dict[str, Dict[str, Any]] = {}
        self.payments: List[Dict[str, Any]] = []
        self.notes: Dict[str, Dict[str, Any]] = {}
        self.feedbacks: Dict[str, Dict[str, Any]] = {}
        self.requests: List[Tuple[str, str]] = []
        self.bearer_tokens: List[str] = []
        self.failures: Dict[Tuple[str, str], int] = {}
        self.reject_all_tokens = False
        self.rejected_emails: Set[str] = set()
        self._ids = itertools.count(1)
        self.app = self._build()

    # ---- helpers used by tests ----

    def new_id(self) -> str:
        return f"{next(self._ids):024x}"

    def add_user(self, email: str, role: Optional[str] = "student", name: str = "") -> str:
        user_id = self.new_id()
        self.users[email] = {"_id": user_id, "name": name or email, "email": email, "role": role}
        return user_id

    def add_session(self, **fields: Any) -> str:
        session_id = self.new_id()
        document = {
            "_id": session_id,
            "title": "Linear Algebra Bootcamp",
            "description": "Vectors, matrices and eigenvalues",
            "tutorName": "Tia Tutor",
            "tutorEmail": TUTOR,
            "registrationStart": "2024-01-01",
            "registrationEnd": "2099-12-31",
            "classStart": "2099-12-31",
            "classEnd": "2099-12-31",
            "duration": "4 weeks",
            "registrationFee": 0,
            "status": "pending",
        }
        document.update(fields)
        self.sessions[session_id] = document
        return session_id

    def count(self, method: str, path_prefix: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p.startswith(path_prefix))

    def http_client(self) -> httpx.AsyncClient:
        return create_http_client(BACKEND_URL, transport=httpx.ASGITransport(app=self.app))

    # ---- app ----

    def _build(self) -> FastAPI:
        backend = self
        app = FastAPI()

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.requests.append((request.method, request.url.path))
            authorization = request.headers.get("authorization", "")
            if authorization.startswith("Bearer "):
                backend.bearer_tokens.append(authorization[len("Bearer "):])
            status = backend.failures.get((request.method, request.url.path))
            if status is not None:
                return JSONResponse(status_code=status, content={"message": f"forced {status}"})
            return await call_next(request)

        def caller(request: Request) -> Dict[str, Any]:
            authorization = request.headers.get("authorization", "")
            if not authorization.startswith("Bearer "):
                raise HTTPException(status_code=401, detail="unauthorized access")
            claims = backend.provider.verify_id_token(authorization[len("Bearer "):])
            if claims is None or backend.reject_all_tokens or claims.get("email") in backend.rejected_emails:
                raise HTTPException(status_code=401, detail="unauthorized access")
            return claims

        def admin(claims: Dict[str, Any] = Depends(caller)) -> Dict[str, Any]:
            if backend.users.get(claims["email"], {}).get("role") != "admin":
                raise HTTPException(status_code=403, detail="forbidden access")
            return claims

        def inserted(document: Dict[str, Any]) -> Dict[str, Any]:
            return {"acknowledged": True, "insertedId": document["_id"]}

        # ---- users ----

        @app.get("/users/role/{email}")
        def get_role(email: str, claims=Depends(caller)):
            return {"role": backend.users.get(email, {}).get("role")}

        @app.post("/users")
        async def upsert_user(request: Request):
            body = await request.json()
            if body["email"] in backend.users:
                return {"message": "user already exists", "insertedId": None}
            user_id = backend.add_user(body["email"], name=body.get("name", ""))
            backend.users[body["email"]]["photoURL"] = body.get("photoURL")
            return {"insertedId": user_id}

        @app.get("/admin/users")
        def list_users(search: str = "", page: int = 1, limit: int = 10, claims=Depends(admin)):
            users = [u for u in backend.users.values() if search.lower() in u["email"].lower()]
            start = (page - 1) * limit
            return {"users": users[start:start + limit], "total": len(users)}

        @app.patch("/admin/users/{user_id}/role")
        async def change_role(user_id: str, request: Request, claims=Depends(admin)):
            body = await request.json()
            for user in backend.users.values():
                if user["_id"] == user_id:
                    user["role"] = body["role"]
                    return {"modifiedCount": 1}
            raise HTTPException(status_code=404, detail="user not found")

        # ---- tutors ----

        @app.get("/tutors/all")
        def all_tutors():
            return [t for t in backend.tutors.values() if t["status"] == "approved"]

        @app.get("/tutors/email/{email}")
        def tutor_by_email(email: str, claims=Depends(caller)):
            for tutor in backend.tutors.values():
                if tutor["email"] == email:
                    return tutor
            return {}

        @app.get("/tutors/{email}/approved-sessions")
        def approved_sessions(email: str, claims=Depends(caller)):
            return [
                s for s in backend.sessions.values()
                if s["tutorEmail"] == email and s["status"] == "approved"
            ]

        @app.get("/tutors")
        def list_tutors(status: Optional[str] = None, claims=Depends(admin)):
            return [t for t in backend.tutors.values() if status is None or t["status"] == status]

        @app.post("/tutors")
        async def create_tutor(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.tutors[document["_id"]] = document
            return inserted(document)

        @app.patch("/tutors/{tutor_id}")
        async def update_tutor(tutor_id: str, request: Request, claims=Depends(caller)):
            if tutor_id not in backend.tutors:
                raise HTTPException(status_code=404, detail="tutor not found")
            body = await request.json()
            backend.tutors[tutor_id].update(body)
            if body.get("status") == "approved":
                backend.users.setdefault(backend.tutors[tutor_id]["email"], {"_id": backend.new_id()})
                backend.users[backend.tutors[tutor_id]["email"]]["role"] = "tutor"
            return {"modifiedCount": 1}

        @app.delete("/tutors/{tutor_id}")
        def delete_tutor(tutor_id: str, claims=Depends(admin)):
            tutor = backend.tutors.pop(tutor_id, None)
            if tutor is None:
                raise HTTPException(status_code=404, detail="tutor not found")
            if tutor["email"] in backend.users:
                backend.users[tutor["email"]]["role"] = "student"
            return {"deletedCount": 1}

        # ---- sessions ----

        @app.get("/sessions")
        def list_sessions(tutorEmail: Optional[str] = None):
            return [
                s for s in backend.sessions.values()
                if tutorEmail is None or s["tutorEmail"] == tutorEmail
            ]

        @app.get("/sessions/{session_id}")
        def get_session(session_id: str):
            if session_id not in backend.sessions:
                raise HTTPException(status_code=404, detail="session not found")
            return backend.sessions[session_id]

        @app.post("/sessions")
        async def create_session(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.sessions[document["_id"]] = document
            return inserted(document)

        @app.get("/admin/sessions")
        def admin_sessions(claims=Depends(admin)):
            return list(backend.sessions.values())

        @app.patch("/admin/sessions/{session_id}")
        async def review_session(session_id: str, request: Request, claims=Depends(admin)):
            if session_id not in backend.sessions:
                raise HTTPException(status_code=404, detail="session not found")
            backend.sessions[session_id].update(await request.json())
            return {"modifiedCount": 1}

        # ---- materials ----

        @app.get("/materials")
        def list_materials(claims=Depends(admin)):
            return list(backend.materials.values())

        @app.get("/materials/tutor/{email}")
        def tutor_materials(email: str, claims=Depends(caller)):
            return [m for m in backend.materials.values() if m["uploadedBy"] == email]

        @app.get("/materials/session/{session_id}/student/{email}")
        def student_materials(session_id: str, email: str, claims=Depends(caller)):
            return [m for m in backend.materials.values() if m["sessionId"] == session_id]

        @app.post("/materials/{session_id}")
        async def create_material(session_id: str, request: Request, claims=Depends(caller)):
            document = {
                **(await request.json()),
                "_id": backend.new_id(),
                "sessionId": session_id,
                "uploadedAt": "2024-05-01T10:00:00Z",
            }
            backend.materials[document["_id"]] = document
            return inserted(document)

        @app.patch("/materials/{material_id}")
        async def update_material(material_id: str, request: Request, claims=Depends(caller)):
            backend.materials[material_id].update(await request.json())
            return {"modifiedCount": 1}

        @app.delete("/materials/{material_id}")
        def delete_material(material_id: str, claims=Depends(caller)):
            backend.materials.pop(material_id, None)
            return {"deletedCount": 1}

        # ---- payments ----

        @app.post("/payments/create-payment-intent")
        async def payment_intent(request: Request, claims=Depends(caller)):
            body = await request.json()
            return {"clientSecret": f"pi_{int(body['amount'] * 100)}_secret"}

        @app.post("/payments/store-payment")
        async def store_payment(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.payments.append(document)
            return inserted(document)

        @app.post("/payments")
        async def record_payment(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.payments.append(document)
            return inserted(document)

        @app.get("/payments/user/{email}")
        def user_payments(email: str, claims=Depends(caller)):
            return [p for p in backend.payments if p["studentEmail"] == email]

        # ---- notes ----

        @app.get("/notes/{email}")
        def list_notes(email: str, claims=Depends(caller)):
            return [n for n in backend.notes.values() if n["studentEmail"] == email]

        @app.post("/notes")
        async def create_note(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.notes[document["_id"]] = document
            return inserted(document)

        @app.patch("/notes/{note_id}")
        async def update_note(note_id: str, request: Request, claims=Depends(caller)):
            backend.notes[note_id].update(await request.json())
            return {"modifiedCount": 1}

        @app.delete("/notes/{note_id}")
        def delete_note(note_id: str, claims=Depends(caller)):
            backend.notes.pop(note_id, None)
            return {"deletedCount": 1}

        # ---- feedbacks ----

        @app.get("/feedbacks/session/{session_id}")
        def session_feedbacks(session_id: str):
            return [f for f in backend.feedbacks.values() if f["sessionId"] == session_id]

        @app.post("/feedbacks")
        async def create_feedback(request: Request, claims=Depends(caller)):
            document = {**(await request.json()), "_id": backend.new_id()}
            backend.feedbacks[document["_id"]] = document
            return inserted(document)

        @app.patch("/feedbacks/{feedback_id}")
        async def update_feedback(feedback_id: str, request: Request, claims=Depends(caller)):
            backend.feedbacks[feedback_id].update(await request.json())
            return {"modifiedCount": 1}

        return app
