from typing import List, Tuple, Union

from pydantic import BaseModel, ConfigDict

from tutorhub.schemas.role import Role, RoleState, Unresolved
from tutorhub.utils.errors import RoleUnresolved


class NavLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    label: str


ADMIN_LINKS: Tuple[NavLink, ...] = (
    NavLink(path="/dashboard/users", label="Manage Users"),
    NavLink(path="/dashboard/tutors", label="Tutor Applications"),
    NavLink(path="/dashboard/all-sessions", label="View All Study Sessions"),
    NavLink(path="/dashboard/all-materials", label="View All Materials"),
)

TUTOR_LINKS: Tuple[NavLink, ...] = (
    NavLink(path="/dashboard/create-session", label="Create Study Session"),
    NavLink(path="/dashboard/view-study-sessions", label="My Study Sessions"),
    NavLink(path="/dashboard/upload-materials", label="Upload Materials"),
    NavLink(path="/dashboard/my-materials", label="My Materials"),
)

STUDENT_LINKS: Tuple[NavLink, ...] = (
    NavLink(path="/dashboard/booked-sessions", label="My Booked Sessions"),
    NavLink(path="/dashboard/create-note", label="Create Note"),
    NavLink(path="/dashboard/manage-notes", label="Manage Notes"),
    NavLink(path="/dashboard/study-materials", label="Study Materials"),
)


def links_for(role: Union[Role, str, None]) -> List[NavLink]:
    """
    Dashboard links for a role.

    Anything other than admin or tutor gets the student table. Callers that
    may hold an unresolved role must go through ``navigation_for`` instead.
    """
    value = role.value if isinstance(role, Role) else role
    if value == Role.ADMIN.value:
        return list(ADMIN_LINKS)
    if value == Role.TUTOR.value:
        return list(TUTOR_LINKS)
    return list(STUDENT_LINKS)


def navigation_for(state: RoleState) -> List[NavLink]:
    if isinstance(state, Unresolved):
        raise RoleUnresolved(state.error or "Your role is still loading")
    return links_for(state.role)
