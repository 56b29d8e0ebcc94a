"""
Admin dashboard: users, tutor applications, study sessions and materials.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from tutorhub.api.deps import (
    get_materials,
    get_sessions,
    get_tutor_applications,
    get_user_admin,
    get_role_state,
    require_role,
)
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.material import Material, MaterialUpdate
from tutorhub.schemas.role import Role, RoleState
from tutorhub.schemas.session import StudySession
from tutorhub.schemas.tutor import TutorApplication
from tutorhub.schemas.user import RoleChange, UserPage
from tutorhub.services.material_service import MaterialService
from tutorhub.services.session_service import SessionLifecycle
from tutorhub.services.tutor_service import TutorApplications
from tutorhub.services.user_service import UserAdmin

router = APIRouter(prefix="/dashboard", tags=["Admin"])

require_admin = require_role(Role.ADMIN)


# ===== REQUEST MODELS =====

class ApprovalRequest(BaseModel):
    # Left untyped: the fee rules are checked by the lifecycle before any request.
    model_config = ConfigDict(populate_by_name=True)

    registration_fee: Any = Field(None, alias="registrationFee")


class RejectionRequest(BaseModel):
    feedback: Optional[str] = None


# ─────────────────────────────────────────
# USERS
# ─────────────────────────────────────────

@router.get("/users", response_model=UserPage)
async def list_users(
    search: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin: Identity = Depends(require_admin),
    users: UserAdmin = Depends(get_user_admin),
):
    return await users.list(search=search, page=page, limit=limit)


@router.patch("/users/{user_id}/role")
async def change_role(
    user_id: str,
    body: RoleChange,
    admin: Identity = Depends(require_admin),
    users: UserAdmin = Depends(get_user_admin),
):
    await users.change_role(user_id, body.role, email=body.email)
    return {"status": "updated", "role": body.role.value}


# ─────────────────────────────────────────
# TUTOR APPLICATIONS
# ─────────────────────────────────────────

@router.get("/tutors", response_model=List[TutorApplication])
async def pending_tutors(
    admin: Identity = Depends(require_admin),
    tutors: TutorApplications = Depends(get_tutor_applications),
):
    return await tutors.pending()


@router.get("/tutors/all", response_model=List[TutorApplication])
async def all_tutors(
    admin: Identity = Depends(require_admin),
    tutors: TutorApplications = Depends(get_tutor_applications),
):
    return await tutors.all()


@router.post("/tutors/{application_id}/approve", response_model=TutorApplication)
async def approve_tutor(
    application_id: str,
    admin: Identity = Depends(require_admin),
    tutors: TutorApplications = Depends(get_tutor_applications),
):
    return await tutors.approve(application_id)


@router.post("/tutors/{application_id}/reject", response_model=TutorApplication)
async def reject_tutor(
    application_id: str,
    body: RejectionRequest,
    admin: Identity = Depends(require_admin),
    tutors: TutorApplications = Depends(get_tutor_applications),
):
    return await tutors.reject(application_id, body.feedback)


@router.delete("/tutors/{application_id}")
async def remove_tutor(
    application_id: str,
    admin: Identity = Depends(require_admin),
    tutors: TutorApplications = Depends(get_tutor_applications),
):
    await tutors.remove(application_id)
    return {"status": "deleted"}


# ─────────────────────────────────────────
# STUDY SESSIONS
# ─────────────────────────────────────────

@router.get("/all-sessions", response_model=List[StudySession])
async def all_sessions(
    admin: Identity = Depends(require_admin),
    sessions: SessionLifecycle = Depends(get_sessions),
):
    return await sessions.admin_sessions()


@router.post("/all-sessions/{session_id}/approve", response_model=StudySession)
async def approve_session(
    session_id: str,
    body: ApprovalRequest,
    admin: Identity = Depends(require_admin),
    sessions: SessionLifecycle = Depends(get_sessions),
):
    return await sessions.approve(session_id, body.registration_fee)


@router.post("/all-sessions/{session_id}/reject", response_model=StudySession)
async def reject_session(
    session_id: str,
    body: RejectionRequest,
    admin: Identity = Depends(require_admin),
    sessions: SessionLifecycle = Depends(get_sessions),
):
    return await sessions.reject(session_id, body.feedback)


# ─────────────────────────────────────────
# MATERIALS
# ─────────────────────────────────────────

@router.get("/all-materials", response_model=List[Material])
async def all_materials(
    admin: Identity = Depends(require_admin),
    materials: MaterialService = Depends(get_materials),
):
    return await materials.all()


@router.patch("/all-materials/{material_id}")
async def update_material(
    material_id: str,
    changes: MaterialUpdate,
    admin: Identity = Depends(require_admin),
    role_state: RoleState = Depends(get_role_state),
    materials: MaterialService = Depends(get_materials),
):
    await materials.update(admin, role_state, material_id, changes)
    return {"status": "updated"}


@router.delete("/all-materials/{material_id}")
async def delete_material(
    material_id: str,
    admin: Identity = Depends(require_admin),
    role_state: RoleState = Depends(get_role_state),
    materials: MaterialService = Depends(get_materials),
):
    await materials.delete(admin, role_state, material_id)
    return {"status": "deleted"}
