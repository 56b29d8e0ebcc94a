# tutorhub/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from tutorhub.api import admin, auth, dashboard, sessions, student, tutor
from tutorhub.client.http import create_http_client
from tutorhub.client.images import ImageHostClient
from tutorhub.config import settings
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache
from tutorhub.database import Base, engine
from tutorhub.identity.local import LocalIdentityProvider
from tutorhub.identity.provider import IdentityProvider
from tutorhub.utils.errors import AuthorizationFailed, TutorHubError, ValidationFailed

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ======================
# ERROR HANDLERS
# ======================

async def authorization_failed_handler(request: Request, exc: AuthorizationFailed):
    # The request client has already signed the identity out.
    response = RedirectResponse(exc.redirect_to, status_code=302)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


async def tutorhub_error_handler(request: Request, exc: TutorHubError):
    content = {"detail": exc.detail, "level": exc.level}
    if isinstance(exc, ValidationFailed) and exc.field:
        content["field"] = exc.field
    headers = {"Retry-After": "1"} if exc.status_code == 503 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# ======================
# APP FACTORY
# ======================

def create_app(
    http_client: Optional[httpx.AsyncClient] = None,
    provider: Optional[IdentityProvider] = None,
    images: Optional[ImageHostClient] = None,
) -> FastAPI:
    own_provider = provider is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if own_provider:
            # Create identity tables
            Base.metadata.create_all(bind=engine)
        logger.info("TutorHub web front started (backend=%s)", settings.BACKEND_URL)
        yield
        await app.state.http.aclose()

    app = FastAPI(title="TutorHub", lifespan=lifespan)

    app.state.http = http_client or create_http_client()
    app.state.provider = provider or LocalIdentityProvider()
    app.state.images = images or ImageHostClient(app.state.http)
    app.state.cache = QueryCache()
    app.state.latches = LatchRegistry()

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthorizationFailed, authorization_failed_handler)
    app.add_exception_handler(TutorHubError, tutorhub_error_handler)

    app.include_router(auth.router)       # /login, /logout, /register
    app.include_router(dashboard.router)  # /dashboard
    app.include_router(admin.router)      # /dashboard/* (admin)
    app.include_router(tutor.router)      # /dashboard/* (tutor)
    app.include_router(student.router)    # /dashboard/* (student)
    app.include_router(sessions.router)   # /, /study-sessions, /payments, /become-tutor

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "message": "TutorHub web front is running",
            "version": "0.1.0",
        }

    return app


app = create_app()
