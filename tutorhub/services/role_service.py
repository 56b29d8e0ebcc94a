"""
Role resolution.

Policy: a failed or unrecognised lookup yields ``Unresolved`` and is not
cached; nothing ever defaults to ``student``. A known role is cached per email
for ``ROLE_CACHE_SECONDS`` and dropped early by the admin actions that change
roles (role change, tutor approval or removal).
"""

import logging

from tutorhub.client.api import TutorHubAPI
from tutorhub.config import settings
from tutorhub.core import cache_keys
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.role import Known, RoleState, Unresolved, parse_role
from tutorhub.utils.errors import AuthorizationFailed, BackendRejected, TutorHubError

logger = logging.getLogger(__name__)


class RoleResolver:

    def __init__(self, api: TutorHubAPI, cache: QueryCache, ttl: float = settings.ROLE_CACHE_SECONDS):
        self._api = api
        self._cache = cache
        self._ttl = ttl

    def descriptor(self, email: str) -> QueryDescriptor[Known]:
        async def fetch() -> Known:
            raw = await self._api.get_role(email)
            state = parse_role(raw)
            if not isinstance(state, Known):
                raise BackendRejected(state.error or "Unknown role")
            return state

        return QueryDescriptor(
            cache_keys.USER_ROLE,
            fetch,
            dependencies=(email,),
            enabled=bool(email),
            stale_after=self._ttl,
        )

    async def resolve_role(self, email: str) -> RoleState:
        if not email:
            return Unresolved(error="No signed-in identity")
        try:
            state = await self._cache.fetch(self.descriptor(email))
        except AuthorizationFailed:
            # Sign-out already happened in the client; the caller must see it.
            raise
        except TutorHubError as exc:
            logger.warning("Role lookup failed for %s: %s", email, exc.detail)
            return Unresolved(error=exc.detail)
        return state

    def invalidate(self, email: str) -> None:
        self._cache.invalidate(cache_keys.USER_ROLE, email)
