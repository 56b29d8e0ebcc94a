from .role_service import RoleResolver
from .session_service import SessionLifecycle, is_bookable, status_label
from .enrollment_service import EnrollmentService
from .material_service import MaterialService, export_csv, visible_materials
from .tutor_service import TutorApplications
from .note_service import FeedbackService, NoteService, average_rating
from .user_service import UserAdmin, register
from .navigation import NavLink, links_for, navigation_for
from .guard import GuardAction, GuardDecision, GuardState, evaluate

__all__ = [
    "RoleResolver",
    "SessionLifecycle",
    "is_bookable",
    "status_label",
    "EnrollmentService",
    "MaterialService",
    "export_csv",
    "visible_materials",
    "TutorApplications",
    "FeedbackService",
    "NoteService",
    "average_rating",
    "UserAdmin",
    "register",
    "NavLink",
    "links_for",
    "navigation_for",
    "GuardAction",
    "GuardDecision",
    "GuardState",
    "evaluate",
]
