"""
HTTP access to the TutorHub backend.

``IdentityBearerAuth`` is the middleware layer: it attaches a freshly minted
bearer token to every attempt and, when the backend answers 401/403, runs the
forced sign-out exactly once for that response. ``BackendClient`` turns
transport and status failures into the error taxonomy.
"""

import logging
from typing import Any, Callable, Optional

import httpx

from tutorhub.config import settings
from tutorhub.identity.provider import IdentityStore
from tutorhub.utils.errors import (
    AuthenticationRequired,
    AuthorizationFailed,
    BackendRejected,
    BackendUnavailable,
    NotFound,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)
LOGIN_PATH = "/login"


def create_http_client(
    base_url: str = settings.BACKEND_URL,
    *,
    timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Connection pool shared by every request client of the app."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout),
        transport=transport,
        headers={"Accept": "application/json"},
    )


# ======================
# AUTH MIDDLEWARE
# ======================

class AuthFailureHandler:
    """Sign the visitor out and send them to the login page."""

    def __init__(
        self,
        store: IdentityStore,
        navigate: Optional[Callable[[str], None]] = None,
        login_path: str = LOGIN_PATH,
    ):
        self._store = store
        self._navigate = navigate
        self.login_path = login_path

    async def __call__(self, response: httpx.Response) -> None:
        identity = self._store.identity
        logger.warning(
            "Backend answered %s to %s %s; signing out %s",
            response.status_code,
            response.request.method,
            response.request.url.path,
            identity.email if identity else None,
        )
        await self._store.sign_out()
        if self._navigate is not None:
            self._navigate(self.login_path)


class IdentityBearerAuth(httpx.Auth):

    def __init__(self, store: IdentityStore, on_failure: AuthFailureHandler):
        self._store = store
        self._on_failure = on_failure

    def sync_auth_flow(self, request):
        raise RuntimeError("IdentityBearerAuth is only usable with httpx.AsyncClient")

    async def async_auth_flow(self, request: httpx.Request):
        identity = self._store.identity
        if identity is None:
            raise AuthenticationRequired("Sign in to continue")
        # One token per attempt; tokens are short-lived and never reused.
        token = await identity.get_token()
        request.headers["Authorization"] = f"Bearer {token}"
        response = yield request
        if response.status_code in AUTH_FAILURE_STATUSES:
            await self._on_failure(response)


# ======================
# CLIENT
# ======================

def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


class BackendClient:
    """JSON calls against the backend with errors mapped to ``TutorHubError``."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        auth: Optional[httpx.Auth] = None,
        *,
        login_path: str = LOGIN_PATH,
    ):
        self._http = http
        self._auth = auth
        self._login_path = login_path

    @property
    def authenticated(self) -> bool:
        return self._auth is not None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                auth=self._auth,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Timed out: %s %s", method, path)
            raise TransientNetworkError("The request timed out. Please try again.") from exc
        except httpx.TransportError as exc:
            logger.warning("Transport error on %s %s: %s", method, path, exc)
            raise TransientNetworkError("Unable to reach the server. Please try again.") from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._map_status_error(response) from exc

        if not response.content:
            return None
        return response.json()

    def _map_status_error(self, response: httpx.Response):
        status_code = response.status_code
        detail = _error_detail(response)
        if status_code in AUTH_FAILURE_STATUSES and self.authenticated:
            return AuthorizationFailed(status_code=status_code, redirect_to=self._login_path)
        if status_code == 404:
            return NotFound(detail)
        if status_code >= 500:
            logger.warning("Backend error %s on %s: %s", status_code, response.request.url.path, detail)
            return BackendUnavailable("The server could not complete the request.")
        return BackendRejected(detail, status_code=status_code)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)


def authenticated_client(
    http: httpx.AsyncClient,
    store: IdentityStore,
    navigate: Optional[Callable[[str], None]] = None,
) -> BackendClient:
    handler = AuthFailureHandler(store, navigate)
    return BackendClient(http, IdentityBearerAuth(store, handler), login_path=handler.login_path)


def public_client(http: httpx.AsyncClient) -> BackendClient:
    return BackendClient(http)
