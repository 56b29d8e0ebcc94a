import logging
from typing import Optional, Tuple

from tutorhub.client.api import TutorHubAPI
from tutorhub.client.images import ImageHostClient
from tutorhub.core.latch import LatchRegistry
from tutorhub.identity.provider import IdentityStore
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.role import Role
from tutorhub.schemas.user import RegisterForm, UserPage, UserProfile
from tutorhub.services.role_service import RoleResolver
from tutorhub.utils.errors import ValidationFailed

logger = logging.getLogger(__name__)


async def register(
    store: IdentityStore,
    api: TutorHubAPI,
    form: RegisterForm,
    images: Optional[ImageHostClient] = None,
    photo: Optional[Tuple[str, bytes, str]] = None,
) -> Identity:
    """
    Create the identity account, set its profile, then sync the profile
    to the backend. ``api`` is the public client: the backend does not
    know the user yet.
    """
    photo_url = form.photo_url
    if photo is not None:
        if images is None:
            raise ValidationFailed("Image uploads are not configured", field="photo")
        photo_url = await images.upload(*photo)

    identity = await store.register(form.email, form.password, display_name=form.name, photo_url=photo_url)
    await api.upsert_user(UserProfile(
        uid=identity.uid,
        name=form.name,
        email=identity.email,
        photo_url=photo_url,
    ))
    logger.info("Registered %s", identity.email)
    return identity


class UserAdmin:

    def __init__(self, api: TutorHubAPI, latches: LatchRegistry, roles: RoleResolver):
        self._api = api
        self._latches = latches
        self._roles = roles

    async def list(self, search: str = "", page: int = 1, limit: int = 10) -> UserPage:
        return await self._api.list_users(search=search.strip(), page=max(page, 1), limit=limit)

    async def change_role(self, user_id: str, role: Role, email: Optional[str] = None) -> None:
        async with self._latches.hold("change-role", user_id):
            await self._api.change_user_role(user_id, role)
        logger.info("Role of user %s (%s) changed to %s", user_id, email, role.value)
        if email:
            self._roles.invalidate(email)
