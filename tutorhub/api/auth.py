from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from tutorhub.api.deps import get_identity_store, get_images, get_public_api
from tutorhub.client.api import TutorHubAPI
from tutorhub.client.images import ImageHostClient
from tutorhub.config import settings
from tutorhub.identity.provider import IdentityStore
from tutorhub.schemas.auth import IdentityStatus
from tutorhub.schemas.user import LoginForm, RegisterForm
from tutorhub.services.guard import safe_return_path
from tutorhub.services.user_service import register as register_user

router = APIRouter(tags=["Authentication"])


def _set_session_cookie(response: RedirectResponse, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV == "production",
    )


def _form_error(exc: ValidationError) -> HTTPException:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()))
    return HTTPException(
        status_code=422,
        detail=f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid form",
    )


# ===== LOGIN =====

@router.get("/login")
async def login_page(next: Optional[str] = None, store: IdentityStore = Depends(get_identity_store)):
    """Login view model; ``next`` is where the visitor goes after signing in."""
    return {
        "next": safe_return_path(next),
        "signedIn": store.state.status == IdentityStatus.SIGNED_IN,
    }


@router.post("/login")
async def login(
    email: str = Form(...),
    password: str = Form(...),
    next: Optional[str] = Form(None),
    store: IdentityStore = Depends(get_identity_store),
):
    try:
        credentials = LoginForm(email=email, password=password)
    except ValidationError as exc:
        raise _form_error(exc)

    await store.sign_in(credentials.email, credentials.password)
    response = RedirectResponse(safe_return_path(next), status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, store.session_token)
    return response


@router.post("/logout")
async def logout(store: IdentityStore = Depends(get_identity_store)):
    await store.sign_out()
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


# ===== REGISTER =====

@router.post("/register")
async def register(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    photo_url: Optional[str] = Form(None, alias="photoURL"),
    photo: Optional[UploadFile] = File(None),
    store: IdentityStore = Depends(get_identity_store),
    api: TutorHubAPI = Depends(get_public_api),
    images: ImageHostClient = Depends(get_images),
):
    try:
        form = RegisterForm(name=name, email=email, password=password, photo_url=photo_url)
    except ValidationError as exc:
        raise _form_error(exc)

    upload = None
    if photo is not None and photo.filename:
        upload = (photo.filename, await photo.read(), photo.content_type or "image/png")

    await register_user(store, api, form, images=images, photo=upload)
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, store.session_token)
    return response
