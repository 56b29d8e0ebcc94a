"""
Request-scoped dependencies: identity resolution, the route guard, role
checks and service construction.

App-wide objects (HTTP pool, query cache, action latches, identity provider)
live on ``app.state`` and are set up by ``tutorhub.main.create_app``.
"""

import asyncio
import logging
from typing import Callable

from fastapi import Depends, HTTPException, Request, status

from tutorhub.client.api import TutorHubAPI
from tutorhub.client.http import authenticated_client, public_client
from tutorhub.client.images import ImageHostClient
from tutorhub.config import settings
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache
from tutorhub.identity.provider import IdentityStore
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.role import Role, RoleState, Unresolved
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.services.guard import GuardAction, evaluate
from tutorhub.services.material_service import MaterialService
from tutorhub.services.note_service import FeedbackService, NoteService
from tutorhub.services.role_service import RoleResolver
from tutorhub.services.session_service import SessionLifecycle
from tutorhub.services.tutor_service import TutorApplications
from tutorhub.services.user_service import UserAdmin
from tutorhub.utils.errors import Forbidden, RoleUnresolved

logger = logging.getLogger(__name__)


# ======================
# APP STATE
# ======================

def get_cache(request: Request) -> QueryCache:
    return request.app.state.cache


def get_latches(request: Request) -> LatchRegistry:
    return request.app.state.latches


def get_images(request: Request) -> ImageHostClient:
    return request.app.state.images


# ======================
# IDENTITY + GUARD
# ======================

async def get_identity_store(request: Request) -> IdentityStore:
    """Identity for this request, resolved from the session cookie."""
    store = IdentityStore(request.app.state.provider)
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    resolving = asyncio.ensure_future(store.resolve(token))
    done, _ = await asyncio.wait({resolving}, timeout=settings.IDENTITY_RESOLVE_TIMEOUT_SECONDS)
    if not done:
        # Leaves the store in "resolving"; the guard answers with a loading state.
        resolving.cancel()
        logger.warning("Identity resolution timed out for %s", request.url.path)
    else:
        resolving.result()
    return store


def _requested_path(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path


async def require_identity(
    request: Request,
    store: IdentityStore = Depends(get_identity_store),
) -> Identity:
    decision = evaluate(store.state, _requested_path(request))
    if decision.action == GuardAction.LOADING:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Checking your sign-in status",
            headers={"Retry-After": "1"},
        )
    if decision.action == GuardAction.REDIRECT:
        raise HTTPException(
            status_code=status.HTTP_302_FOUND,
            detail="Sign in to continue",
            headers={"Location": decision.redirect_to},
        )
    return decision.identity


# ======================
# BACKEND CLIENTS
# ======================

def get_api(
    request: Request,
    store: IdentityStore = Depends(get_identity_store),
    identity: Identity = Depends(require_identity),
) -> TutorHubAPI:
    return TutorHubAPI(authenticated_client(request.app.state.http, store))


def get_public_api(request: Request) -> TutorHubAPI:
    return TutorHubAPI(public_client(request.app.state.http))


# ======================
# ROLE
# ======================

def get_role_resolver(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
) -> RoleResolver:
    return RoleResolver(api, cache)


async def get_role_state(
    identity: Identity = Depends(require_identity),
    roles: RoleResolver = Depends(get_role_resolver),
) -> RoleState:
    return await roles.resolve_role(identity.email)


def require_role(*allowed: Role) -> Callable:
    """Page-level role check. An unresolved role is never treated as any role."""

    async def dependency(
        identity: Identity = Depends(require_identity),
        role_state: RoleState = Depends(get_role_state),
    ) -> Identity:
        if isinstance(role_state, Unresolved):
            raise RoleUnresolved(role_state.error or "Your role could not be determined")
        if role_state.role not in allowed:
            raise Forbidden(f"This page is only available to: {', '.join(r.value for r in allowed)}")
        return identity

    return dependency


# ======================
# SERVICES
# ======================

def get_sessions(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
    images: ImageHostClient = Depends(get_images),
) -> SessionLifecycle:
    return SessionLifecycle(api, cache, latches, images)


def get_public_sessions(
    api: TutorHubAPI = Depends(get_public_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
) -> SessionLifecycle:
    return SessionLifecycle(api, cache, latches)


def get_enrollments(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
    sessions: SessionLifecycle = Depends(get_sessions),
) -> EnrollmentService:
    return EnrollmentService(api, cache, latches, sessions)


def get_materials(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
    enrollments: EnrollmentService = Depends(get_enrollments),
    images: ImageHostClient = Depends(get_images),
) -> MaterialService:
    return MaterialService(api, cache, latches, enrollments, images)


def get_tutor_applications(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
    roles: RoleResolver = Depends(get_role_resolver),
) -> TutorApplications:
    return TutorApplications(api, cache, latches, roles)


def get_notes(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
) -> NoteService:
    return NoteService(api, cache, latches)


def get_feedback(
    api: TutorHubAPI = Depends(get_api),
    cache: QueryCache = Depends(get_cache),
    latches: LatchRegistry = Depends(get_latches),
    enrollments: EnrollmentService = Depends(get_enrollments),
) -> FeedbackService:
    return FeedbackService(api, cache, latches, enrollments)


def get_user_admin(
    api: TutorHubAPI = Depends(get_api),
    latches: LatchRegistry = Depends(get_latches),
    roles: RoleResolver = Depends(get_role_resolver),
) -> UserAdmin:
    return UserAdmin(api, latches, roles)
