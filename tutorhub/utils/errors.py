"""
Error taxonomy shared by the request client, the services and the web layer.

Every error resolves to a redirect, a notification or a disabled control;
``main.py`` installs the handlers that do the translation.
"""

from typing import Any, Optional


class TutorHubError(Exception):
    """Base class. ``status_code`` is what the web layer answers with."""

    status_code = 400
    level = "error"

    def __init__(self, detail: str = "", **context: Any):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__
        self.context = context


# ======================
# AUTHENTICATION / AUTHORIZATION
# ======================

class AuthenticationRequired(TutorHubError):
    """No signed-in identity. Handled by the route guard via redirect."""

    status_code = 401


class AuthorizationFailed(TutorHubError):
    """The backend answered 401/403 to a request that carried a token."""

    status_code = 403

    def __init__(self, detail: str = "", *, status_code: int = 403, redirect_to: str = "/login", **context: Any):
        super().__init__(detail or "Your session has expired. Please log in again.", **context)
        self.status_code = status_code
        self.redirect_to = redirect_to


class RoleUnresolved(TutorHubError):
    """The caller's role is not known (still loading or the lookup failed)."""

    status_code = 503
    level = "warning"


class Forbidden(TutorHubError):
    status_code = 403


# ======================
# VALIDATION / BUSINESS RULES
# ======================

class ValidationFailed(TutorHubError):
    """Input rejected locally; nothing was sent to the backend."""

    status_code = 422

    def __init__(self, detail: str, *, field: Optional[str] = None, **context: Any):
        super().__init__(detail, **context)
        self.field = field


class InvalidTransition(TutorHubError):
    status_code = 409


class AlreadyEnrolled(TutorHubError):
    status_code = 409
    level = "info"


class AlreadyTutor(TutorHubError):
    status_code = 409
    level = "info"


class NotFound(TutorHubError):
    status_code = 404


class ActionInFlight(TutorHubError):
    """A mutation for the same action instance is still awaiting the server."""

    status_code = 409
    level = "info"


# ======================
# BACKEND / NETWORK
# ======================

class BackendRejected(TutorHubError):
    """The backend refused the request (4xx other than 401/403)."""

    def __init__(self, detail: str, *, status_code: int = 400, **context: Any):
        super().__init__(detail, **context)
        self.status_code = status_code


class BackendUnavailable(TutorHubError):
    status_code = 503


class TransientNetworkError(TutorHubError):
    """Timeout or connection failure. Surfaced as a dismissible notice, never retried."""

    status_code = 503
    level = "warning"
