from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr, model_validator


class Identity(BaseModel):
    """Authenticated principal as supplied by the identity provider."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    _provider: Any = PrivateAttr(default=None)

    def bind(self, provider: Any) -> "Identity":
        self._provider = provider
        return self

    async def get_token(self) -> str:
        """Mint a fresh short-lived bearer token. Never cache the result."""
        if self._provider is None:
            raise RuntimeError("Identity is not bound to a provider")
        return await self._provider.mint_token(self)


class IdentityStatus(str, Enum):
    RESOLVING = "resolving"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


class IdentityState(BaseModel):
    """Single tagged value for "who is signed in"; signed_in always carries an identity."""

    model_config = ConfigDict(frozen=True)

    status: IdentityStatus
    identity: Optional[Identity] = None

    @model_validator(mode="after")
    def check_identity_matches_status(self):
        if (self.status == IdentityStatus.SIGNED_IN) != (self.identity is not None):
            raise ValueError(f"identity must be present only when signed in (status={self.status.value})")
        return self

    @classmethod
    def resolving(cls) -> "IdentityState":
        return cls(status=IdentityStatus.RESOLVING)

    @classmethod
    def signed_out(cls) -> "IdentityState":
        return cls(status=IdentityStatus.SIGNED_OUT)

    @classmethod
    def signed_in(cls, identity: Identity) -> "IdentityState":
        return cls(status=IdentityStatus.SIGNED_IN, identity=identity)
