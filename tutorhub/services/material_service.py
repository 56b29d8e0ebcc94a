import csv
import io
import logging
from datetime import date
from typing import List, Optional, Tuple

from tutorhub.client.api import TutorHubAPI
from tutorhub.client.images import ImageHostClient
from tutorhub.core import cache_keys
from tutorhub.core.latch import LatchRegistry
from tutorhub.core.query_cache import QueryCache, QueryDescriptor
from tutorhub.schemas.auth import Identity
from tutorhub.schemas.common import today as _today
from tutorhub.schemas.material import Material, MaterialCreate, MaterialUpdate
from tutorhub.schemas.role import Known, Role, RoleState
from tutorhub.schemas.session import SessionStatus, StudySession
from tutorhub.services.enrollment_service import EnrollmentService
from tutorhub.utils.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Title", "Description", "Resource Link", "File URL", "Uploaded By", "Uploaded At"]

# (filename, content, content type)
UploadedFile = Tuple[str, bytes, str]


def visible_materials(
    materials: List[Material],
    session: StudySession,
    has_payment: bool,
    today: Optional[date] = None,
) -> List[Material]:
    """A student sees a session's materials only once enrolled and the class has started."""
    today = today or _today()
    if not has_payment or today < session.class_start:
        return []
    return materials


def export_csv(materials: List[Material]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for m in materials:
        writer.writerow([
            m.title,
            m.description,
            m.resource_link or "",
            m.file_url or "",
            m.uploaded_by,
            m.uploaded_at.isoformat() if m.uploaded_at else "",
        ])
    return buffer.getvalue()


def _is_admin(role_state: RoleState) -> bool:
    return isinstance(role_state, Known) and role_state.role == Role.ADMIN


class MaterialService:

    def __init__(
        self,
        api: TutorHubAPI,
        cache: QueryCache,
        latches: LatchRegistry,
        enrollments: EnrollmentService,
        images: Optional[ImageHostClient] = None,
    ):
        self._api = api
        self._cache = cache
        self._latches = latches
        self._enrollments = enrollments
        self._images = images

    async def for_tutor(self, email: str) -> List[Material]:
        return await self._cache.fetch(QueryDescriptor(
            cache_keys.MATERIALS_FOR_TUTOR,
            lambda: self._api.materials_for_tutor(email),
            dependencies=(email,),
            enabled=bool(email),
        )) or []

    async def all(self) -> List[Material]:
        return await self._cache.fetch(QueryDescriptor(cache_keys.ALL_MATERIALS, self._api.list_materials))

    async def visible_for_student(
        self,
        student: Identity,
        session_id: str,
        today: Optional[date] = None,
    ) -> List[Material]:
        session = await self._api.get_session(session_id)
        has_payment = await self._enrollments.has_paid(student.email, session_id)
        if not has_payment or (today or _today()) < session.class_start:
            return []
        materials = await self._api.materials_for_student(session_id, student.email)
        return visible_materials(materials, session, has_payment, today)

    async def upload(
        self,
        tutor: Identity,
        session_id: str,
        link: Optional[str] = None,
        file: Optional[UploadedFile] = None,
    ) -> str:
        link = (link or "").strip() or None
        if not link and file is None:
            raise ValidationFailed("Please provide at least a link or a file.", field="resourceLink")

        session = await self._api.get_session(session_id)
        if session.tutor_email != tutor.email:
            raise Forbidden("You can only upload materials to your own sessions")
        if session.status != SessionStatus.APPROVED:
            raise InvalidTransition("Materials can only be uploaded to approved sessions")

        async with self._latches.hold("upload-material", session_id):
            file_url = None
            if file is not None:
                if self._images is None:
                    raise ValidationFailed("File uploads are not configured", field="file")
                file_url = await self._images.upload(*file)

            payload = MaterialCreate(
                title=session.title,
                description=session.description,
                resource_link=link,
                file_url=file_url,
                uploaded_by=tutor.email,
            )
            new_id = await self._api.create_material(session_id, payload)

        logger.info("Material %s uploaded to session %s by %s", new_id, session_id, tutor.email)
        self._cache.invalidate(cache_keys.MATERIALS_FOR_TUTOR, tutor.email)
        self._cache.invalidate(cache_keys.ALL_MATERIALS)
        return new_id

    async def _owned(self, identity: Identity, role_state: RoleState, material_id: str) -> Material:
        if _is_admin(role_state):
            materials = await self.all()
        else:
            materials = await self.for_tutor(identity.email)
        for material in materials:
            if material.id == material_id:
                if material.uploaded_by != identity.email and not _is_admin(role_state):
                    raise Forbidden("You can only change your own materials")
                return material
        raise NotFound("Material not found")

    async def update(
        self,
        identity: Identity,
        role_state: RoleState,
        material_id: str,
        changes: MaterialUpdate,
    ) -> None:
        material = await self._owned(identity, role_state, material_id)
        async with self._latches.hold("material", material_id):
            await self._api.update_material(material_id, changes)
        self._invalidate(material)

    async def delete(self, identity: Identity, role_state: RoleState, material_id: str) -> None:
        material = await self._owned(identity, role_state, material_id)
        async with self._latches.hold("material", material_id):
            await self._api.delete_material(material_id)
        logger.info("Material %s deleted by %s", material_id, identity.email)
        self._invalidate(material)

    def _invalidate(self, material: Material) -> None:
        self._cache.invalidate(cache_keys.MATERIALS_FOR_TUTOR, material.uploaded_by)
        self._cache.invalidate(cache_keys.ALL_MATERIALS)
