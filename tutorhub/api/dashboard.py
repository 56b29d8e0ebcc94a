from fastapi import APIRouter, Depends

from tutorhub.api.deps import get_role_state, require_identity
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.role import RoleState
from tutorhub.services.navigation import navigation_for

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
async def dashboard(
    identity: Identity = Depends(require_identity),
    role_state: RoleState = Depends(get_role_state),
):
    """Dashboard shell: who is signed in and the links for their role."""
    links = navigation_for(role_state)
    return {
        "user": {
            "email": identity.email,
            "displayName": identity.display_name,
            "photoURL": identity.photo_url,
        },
        "role": role_state.role.value,
        "links": [link.model_dump() for link in links],
    }
