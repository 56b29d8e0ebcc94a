from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from tutorhub.schemas.common import BackendModel
from tutorhub.schemas.role import Role


# ======================
# USER AUTHENTICATION SCHEMAS
# ======================

class RegisterForm(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    # Bcrypt limit is 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    photo_url: Optional[str] = None


class LoginForm(BaseModel):
    email: EmailStr
    password: str


# ======================
# PROFILE SCHEMAS
# ======================

class UserProfile(BackendModel):
    """Profile synced to ``POST /users`` after the identity account exists."""
    uid: str
    name: str
    email: str
    photo_url: Optional[str] = Field(None, alias="photoURL")


class UserRecord(BackendModel):
    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    email: str
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: Optional[Role] = None


class UserPage(BackendModel):
    users: List[UserRecord] = Field(default_factory=list)
    total: int = 0


class RoleChange(BaseModel):
    role: Role
    # Whose cached role to drop once the change is confirmed.
    email: Optional[str] = None
