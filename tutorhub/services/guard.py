"""
Route guard: coarse "is anyone signed in" gating for protected paths.

Role checks are not done here; pages and navigation do them.
"""

from enum import Enum
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

from tutorhub.schemas.auth import Identity, IdentityState, IdentityStatus

LOGIN_PATH = "/login"


class GuardState(str, Enum):
    RESOLVING = "resolving"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class GuardAction(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


class GuardDecision(BaseModel):
    state: GuardState
    action: GuardAction
    redirect_to: Optional[str] = None
    return_path: Optional[str] = None
    identity: Optional[Identity] = None


def guard_state(identity_state: IdentityState) -> GuardState:
    if identity_state.status == IdentityStatus.RESOLVING:
        return GuardState.RESOLVING
    if identity_state.status == IdentityStatus.SIGNED_OUT:
        return GuardState.UNAUTHENTICATED
    return GuardState.AUTHENTICATED


def login_url(return_path: Optional[str]) -> str:
    if not return_path:
        return LOGIN_PATH
    return f"{LOGIN_PATH}?next={quote(return_path, safe='/')}"


def safe_return_path(candidate: Optional[str], default: str = "/") -> str:
    """Only local absolute paths are followed after login."""
    if not candidate or not candidate.startswith("/") or candidate.startswith("//") or "\\" in candidate:
        return default
    return candidate


def evaluate(identity_state: IdentityState, requested_path: str) -> GuardDecision:
    state = guard_state(identity_state)
    if state == GuardState.RESOLVING:
        return GuardDecision(state=state, action=GuardAction.LOADING)
    if state == GuardState.UNAUTHENTICATED:
        return GuardDecision(
            state=state,
            action=GuardAction.REDIRECT,
            redirect_to=login_url(requested_path),
            return_path=requested_path,
        )
    return GuardDecision(state=state, action=GuardAction.RENDER, identity=identity_state.identity)
