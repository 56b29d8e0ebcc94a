import pytest

from fake_backend import ADMIN, STUDENT, TUTOR, api_for, signed_in

from tutorhub.core.query_cache import QueryCache
from tutorhub.schemas.role import Known, Role, Unresolved, parse_role
from tutorhub.services.navigation import (
    ADMIN_LINKS,
    STUDENT_LINKS,
    TUTOR_LINKS,
    links_for,
    navigation_for,
)
from tutorhub.services.role_service import RoleResolver
from tutorhub.utils.errors import AuthorizationFailed, RoleUnresolved


# ======================
# NAVIGATION
# ======================

def test_admin_links_in_order():
    assert [(l.path, l.label) for l in links_for(Role.ADMIN)] == [
        ("/dashboard/users", "Manage Users"),
        ("/dashboard/tutors", "Tutor Applications"),
        ("/dashboard/all-sessions", "View All Study Sessions"),
        ("/dashboard/all-materials", "View All Materials"),
    ]


def test_tutor_links_in_order():
    assert [(l.path, l.label) for l in links_for("tutor")] == [
        ("/dashboard/create-session", "Create Study Session"),
        ("/dashboard/view-study-sessions", "My Study Sessions"),
        ("/dashboard/upload-materials", "Upload Materials"),
        ("/dashboard/my-materials", "My Materials"),
    ]


@pytest.mark.parametrize("role", [Role.STUDENT, "student", "moderator", "", None, "ADMIN"])
def test_anything_else_gets_the_student_table(role):
    assert links_for(role) == list(STUDENT_LINKS)
    assert [l.label for l in links_for(role)] == [
        "My Booked Sessions",
        "Create Note",
        "Manage Notes",
        "Study Materials",
    ]


def test_tables_do_not_overlap():
    paths = [l.path for l in ADMIN_LINKS + TUTOR_LINKS + STUDENT_LINKS]
    assert len(paths) == len(set(paths)) == 12


def test_navigation_refuses_an_unresolved_role():
    with pytest.raises(RoleUnresolved):
        navigation_for(Unresolved(error="backend down"))


def test_navigation_for_known_role():
    assert navigation_for(Known(role=Role.TUTOR)) == list(TUTOR_LINKS)


# ======================
# ROLE RESOLUTION
# ======================

def test_parse_role():
    assert parse_role("admin") == Known(role=Role.ADMIN)
    assert isinstance(parse_role("superuser"), Unresolved)
    assert isinstance(parse_role(None), Unresolved)


@pytest.mark.asyncio
@pytest.mark.parametrize("email, role", [(ADMIN, Role.ADMIN), (TUTOR, Role.TUTOR), (STUDENT, Role.STUDENT)])
async def test_resolves_backend_role(provider, backend, http, email, role):
    store = await signed_in(provider, email)
    resolver = RoleResolver(api_for(http, store), QueryCache())

    assert await resolver.resolve_role(email) == Known(role=role)


@pytest.mark.asyncio
async def test_role_is_fetched_once_per_window(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    resolver = RoleResolver(api_for(http, store), QueryCache())

    await resolver.resolve_role(STUDENT)
    await resolver.resolve_role(STUDENT)

    assert backend.count("GET", "/users/role/") == 1


@pytest.mark.asyncio
async def test_failed_lookup_is_unresolved_not_student(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    resolver = RoleResolver(api_for(http, store), QueryCache())
    backend.failures[("GET", f"/users/role/{STUDENT}")] = 500

    state = await resolver.resolve_role(STUDENT)

    assert isinstance(state, Unresolved)
    assert state.error

    # Not cached: once the backend recovers the role resolves.
    del backend.failures[("GET", f"/users/role/{STUDENT}")]
    assert await resolver.resolve_role(STUDENT) == Known(role=Role.STUDENT)


@pytest.mark.asyncio
async def test_unknown_role_string_is_unresolved(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    backend.users[STUDENT]["role"] = "superuser"
    resolver = RoleResolver(api_for(http, store), QueryCache())

    state = await resolver.resolve_role(STUDENT)

    assert isinstance(state, Unresolved)
    assert "superuser" in state.error


@pytest.mark.asyncio
async def test_rejected_token_propagates_authorization_failure(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    backend.reject_all_tokens = True
    resolver = RoleResolver(api_for(http, store), QueryCache())

    with pytest.raises(AuthorizationFailed):
        await resolver.resolve_role(STUDENT)


@pytest.mark.asyncio
async def test_invalidate_refetches_role(provider, backend, http):
    store = await signed_in(provider, STUDENT)
    resolver = RoleResolver(api_for(http, store), QueryCache())
    await resolver.resolve_role(STUDENT)

    backend.users[STUDENT]["role"] = "tutor"
    assert await resolver.resolve_role(STUDENT) == Known(role=Role.STUDENT)

    resolver.invalidate(STUDENT)
    assert await resolver.resolve_role(STUDENT) == Known(role=Role.TUTOR)
