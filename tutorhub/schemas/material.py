from datetime import datetime
from typing import Optional

from pydantic import Field

from tutorhub.schemas.common import BackendModel


class MaterialCreate(BackendModel):
    title: str
    description: str = ""
    resource_link: Optional[str] = None
    file_url: Optional[str] = Field(None, alias="fileURL")
    uploaded_by: str


class MaterialUpdate(BackendModel):
    title: Optional[str] = None
    description: Optional[str] = None
    resource_link: Optional[str] = None
    file_url: Optional[str] = Field(None, alias="fileURL")


class Material(BackendModel):
    id: str = Field(..., alias="_id")
    session_id: str
    title: str
    description: str = ""
    resource_link: Optional[str] = None
    file_url: Optional[str] = Field(None, alias="fileURL")
    uploaded_by: str
    uploaded_at: Optional[datetime] = None
