from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import Response
from pydantic import ValidationError

from tutorhub.api.deps import get_materials, get_role_state, get_sessions, require_role
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.material import Material, MaterialUpdate
from tutorhub.schemas.role import Role, RoleState
from tutorhub.schemas.session import SessionDraft, StudySession
from tutorhub.services.material_service import MaterialService, export_csv
from tutorhub.services.session_service import ImageFile, SessionLifecycle
from tutorhub.utils.errors import ValidationFailed

router = APIRouter(prefix="/dashboard", tags=["Tutor"])

require_tutor = require_role(Role.TUTOR)
# Admins may create sessions too, and only they may set a fee up front.
require_session_author = require_role(Role.TUTOR, Role.ADMIN)


# ===== SESSION FORM =====

def session_form(
    title: str = Form(...),
    description: str = Form(...),
    registration_start: str = Form(..., alias="registrationStart"),
    registration_end: str = Form(..., alias="registrationEnd"),
    class_start: str = Form(..., alias="classStart"),
    class_end: str = Form(..., alias="classEnd"),
    duration: str = Form(...),
    registration_fee: float = Form(0, alias="registrationFee"),
) -> SessionDraft:
    """Multipart session form, so the cover image can travel with it."""
    try:
        return SessionDraft(
            title=title,
            description=description,
            registration_start=registration_start,
            registration_end=registration_end,
            class_start=class_start,
            class_end=class_end,
            duration=duration,
            registration_fee=registration_fee,
        )
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationFailed(f"{field}: {first.get('msg', 'invalid value')}", field=field)


async def cover_image(image: Optional[UploadFile] = File(None)) -> Optional[ImageFile]:
    if image is None or not image.filename:
        return None
    return (image.filename, await image.read(), image.content_type or "image/png")


# ===== STUDY SESSIONS =====

@router.post("/create-session", status_code=status.HTTP_201_CREATED)
async def create_session(
    author: Identity = Depends(require_session_author),
    role_state: RoleState = Depends(get_role_state),
    sessions: SessionLifecycle = Depends(get_sessions),
    draft: SessionDraft = Depends(session_form),
    image: Optional[ImageFile] = Depends(cover_image),
):
    session_id = await sessions.create(author, role_state, draft, image=image)
    return {"id": session_id, "status": "pending"}


@router.get("/view-study-sessions", response_model=List[StudySession])
async def my_sessions(
    tutor: Identity = Depends(require_tutor),
    sessions: SessionLifecycle = Depends(get_sessions),
):
    return await sessions.sessions_for_tutor(tutor.email)


@router.post("/view-study-sessions/{session_id}/resubmit", status_code=status.HTTP_201_CREATED)
async def resubmit_session(
    session_id: str,
    tutor: Identity = Depends(require_tutor),
    role_state: RoleState = Depends(get_role_state),
    sessions: SessionLifecycle = Depends(get_sessions),
    draft: SessionDraft = Depends(session_form),
    image: Optional[ImageFile] = Depends(cover_image),
):
    """Revise a session: a new pending record that supersedes the original."""
    new_id = await sessions.resubmit(tutor, role_state, session_id, draft, image=image)
    return {"id": new_id, "status": "pending", "supersedes": session_id}


# ===== MATERIALS =====

@router.get("/upload-materials", response_model=List[StudySession])
async def sessions_open_for_materials(
    tutor: Identity = Depends(require_tutor),
    sessions: SessionLifecycle = Depends(get_sessions),
):
    return await sessions.approved_sessions_for_tutor(tutor.email)


@router.post("/upload-materials/{session_id}", status_code=status.HTTP_201_CREATED)
async def upload_material(
    session_id: str,
    resource_link: Optional[str] = Form(None, alias="resourceLink"),
    file: Optional[UploadFile] = File(None),
    tutor: Identity = Depends(require_tutor),
    materials: MaterialService = Depends(get_materials),
):
    upload = None
    if file is not None and file.filename:
        upload = (file.filename, await file.read(), file.content_type or "application/octet-stream")
    material_id = await materials.upload(tutor, session_id, link=resource_link, file=upload)
    return {"id": material_id}


@router.get("/my-materials", response_model=List[Material])
async def my_materials(
    tutor: Identity = Depends(require_tutor),
    materials: MaterialService = Depends(get_materials),
):
    return await materials.for_tutor(tutor.email)


@router.get("/my-materials/export.csv")
async def export_my_materials(
    tutor: Identity = Depends(require_tutor),
    materials: MaterialService = Depends(get_materials),
):
    body = export_csv(await materials.for_tutor(tutor.email))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="materials.csv"'},
    )


@router.patch("/my-materials/{material_id}")
async def update_material(
    material_id: str,
    changes: MaterialUpdate,
    tutor: Identity = Depends(require_tutor),
    role_state: RoleState = Depends(get_role_state),
    materials: MaterialService = Depends(get_materials),
):
    await materials.update(tutor, role_state, material_id, changes)
    return {"status": "updated"}


@router.delete("/my-materials/{material_id}")
async def delete_material(
    material_id: str,
    tutor: Identity = Depends(require_tutor),
    role_state: RoleState = Depends(get_role_state),
    materials: MaterialService = Depends(get_materials),
):
    await materials.delete(tutor, role_state, material_id)
    return {"status": "deleted"}
