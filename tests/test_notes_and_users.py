import pytest

from fake_backend import ADMIN, STUDENT, api_for, build_provider, public_api, signed_in

from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache
from tutorhub.identity.provider import IdentityStore
from tutorhub.schemas.note import NoteInput, Review, ReviewInput
from tutorhub.schemas.role import Known, Role
from tutorhub.schemas.user import RegisterForm
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.services.note_service import FeedbackService, NoteService, average_rating
from tutorhub.services.role_service import RoleResolver
from tutorhub.services.session_service import SessionLifecycle
from tutorhub.services.user_service import UserAdmin, register
from tutorhub.utils.errors import Forbidden, NotFound


# ======================
# NOTES
# ======================

@pytest.mark.asyncio
async def test_note_crud(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    notes = NoteService(api_for(http, store), QueryCache(), LatchRegistry())

    note_id = await notes.create(store.identity, NoteInput(title="Derivatives", content="d/dx x^2 = 2x"))
    assert [n.title for n in await notes.list(store.identity)] == ["Derivatives"]

    await notes.update(store.identity, note_id, NoteInput(title="Derivatives", content="Power rule"))
    assert (await notes.list(store.identity))[0].content == "Power rule"

    await notes.delete(store.identity, note_id)
    assert await notes.list(store.identity) == []


@pytest.mark.asyncio
async def test_other_students_notes_are_not_found(provider, backend, http):
    backend.notes["n1"] = {"_id": "n1", "title": "x", "content": "y", "studentEmail": "other@example.com"}
    store = await signed_in(provider, STUDENT)
    notes = NoteService(api_for(http, store), QueryCache(), LatchRegistry())

    with pytest.raises(NotFound):
        await notes.delete(store.identity, "n1")
    assert "n1" in backend.notes


# ======================
# SESSION REVIEWS
# ======================

def _review(rating):
    return Review.model_validate({"_id": str(rating), "sessionId": "s1", "studentEmail": STUDENT, "rating": rating})


def test_average_rating():
    assert average_rating([]) is None
    assert average_rating([_review(5), _review(4), _review(4)]) == 4.3


async def feedback_for(provider, http, email):
    store = await signed_in(provider, email)
    api = api_for(http, store)
    cache = QueryCache()
    latches = LatchRegistry()
    enrollments = EnrollmentService(api, cache, latches, SessionLifecycle(api, cache, latches))
    return store.identity, enrollments, FeedbackService(api, cache, latches, enrollments)


@pytest.mark.asyncio
async def test_only_enrolled_students_review(provider, backend, http):
    session_id = backend.add_session(status="approved")
    student, _, feedback = await feedback_for(provider, http, STUDENT)

    with pytest.raises(Forbidden):
        await feedback.save(student, session_id, ReviewInput(rating=5, comment="Great"))
    assert backend.feedbacks == {}


@pytest.mark.asyncio
async def test_saving_again_replaces_the_review(provider, backend, http):
    session_id = backend.add_session(status="approved")
    student, enrollments, feedback = await feedback_for(provider, http, STUDENT)
    await enrollments.enroll(student, session_id)

    first_id = await feedback.save(student, session_id, ReviewInput(rating=3, comment="Okay"))
    second_id = await feedback.save(student, session_id, ReviewInput(rating=5, comment="Better after week 2"))

    assert first_id == second_id
    [review] = await feedback.for_session(session_id)
    assert review.rating == 5
    assert review.feedback == "Better after week 2"


# ======================
# USERS
# ======================

@pytest.mark.asyncio
async def test_register_syncs_profile_to_backend(backend, http):
    provider = build_provider()
    store = IdentityStore(provider)
    form = RegisterForm(name="Nia New", email="nia@example.com", password="secret123",
                        photo_url="https://img.test/nia.png")

    identity = await register(store, public_api(http), form)

    assert identity.display_name == "Nia New"
    assert backend.users["nia@example.com"]["photoURL"] == "https://img.test/nia.png"
    assert backend.users["nia@example.com"]["role"] == "student"


@pytest.mark.asyncio
async def test_admin_changes_role_and_drops_cached_role(provider, backend, http):
    admin_store = await signed_in(provider, ADMIN)
    api = api_for(http, admin_store)
    cache = QueryCache()
    roles = RoleResolver(api, cache)
    users = UserAdmin(api, LatchRegistry(), roles)
    assert await roles.resolve_role(STUDENT) == Known(role=Role.STUDENT)

    page = await users.list(search="student")
    [record] = page.users
    await users.change_role(record.id, Role.ADMIN, email=record.email)

    assert await roles.resolve_role(STUDENT) == Known(role=Role.ADMIN)
    assert page.total == 1
