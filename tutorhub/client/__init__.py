from .http import (
    AuthFailureHandler,
    BackendClient,
    IdentityBearerAuth,
    authenticated_client,
    create_http_client,
    public_client,
)
from .api import TutorHubAPI
from .images import ImageHostClient

__all__ = [
    "AuthFailureHandler",
    "BackendClient",
    "IdentityBearerAuth",
    "authenticated_client",
    "create_http_client",
    "public_client",
    "TutorHubAPI",
    "ImageHostClient",
]
