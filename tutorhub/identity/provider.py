"""
Identity provider seam and the identity store that tracks who is signed in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from tutorhub.schemas.auth import Identity, IdentityState, IdentityStatus

logger = logging.getLogger(__name__)

Listener = Callable[[IdentityState], None]


class IdentityProvider(ABC):
    """Issues identities and bearer tokens. The application only observes it."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> str:
        """Check credentials and return a session token."""

    @abstractmethod
    async def sign_out(self, session_token: str) -> None:
        """Invalidate a session token."""

    @abstractmethod
    async def resolve(self, session_token: Optional[str]) -> Optional[Identity]:
        """Return the identity behind a session token, or None."""

    @abstractmethod
    async def mint_token(self, identity: Identity) -> str:
        """Return a fresh short-lived bearer token for ``identity``."""

    @abstractmethod
    async def create_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        """Create a new account."""

    @abstractmethod
    async def update_profile(
        self,
        identity: Identity,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        """Update display name / photo and return the refreshed identity."""


class IdentityStore:
    """
    Current identity for one visitor.

    Starts in ``resolving`` and leaves it once the first check completes.
    Listeners are called on every state change.
    """

    def __init__(self, provider: IdentityProvider, session_token: Optional[str] = None):
        self._provider = provider
        self._session_token = session_token
        self._state = IdentityState.resolving()
        self._listeners: List[Listener] = []

    @property
    def provider(self) -> IdentityProvider:
        return self._provider

    @property
    def state(self) -> IdentityState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    @property
    def session_token(self) -> Optional[str]:
        return self._session_token

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: IdentityState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    async def resolve(self, session_token: Optional[str] = None) -> IdentityState:
        if session_token is not None:
            self._session_token = session_token
        identity = await self._provider.resolve(self._session_token)
        if identity is None:
            self._session_token = None
            self._set_state(IdentityState.signed_out())
        else:
            self._set_state(IdentityState.signed_in(identity))
        return self._state

    async def sign_in(self, email: str, password: str) -> Identity:
        token = await self._provider.sign_in(email, password)
        self._session_token = token
        await self.resolve()
        logger.info("Signed in %s", email)
        return self._state.identity

    async def sign_out(self) -> None:
        token, self._session_token = self._session_token, None
        if token:
            await self._provider.sign_out(token)
        if self._state.status == IdentityStatus.SIGNED_IN:
            logger.info("Signed out %s", self._state.identity.email)
        self._set_state(IdentityState.signed_out())

    async def register(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        identity = await self._provider.create_account(email, password)
        # Profile is set in a second step, the way the hosted providers work.
        await self._provider.update_profile(identity, display_name=display_name, photo_url=photo_url)
        return await self.sign_in(email, password)
