"""Profile and session Pydantic schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """Profile response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    """Request schema for updating the caller's profile. Omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    avatar_url: Optional[str] = Field(None, max_length=1024)


class Session(BaseModel):
    """Resolved session of the caller."""

    user_id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    roles: list[str]
    is_admin: bool


class ProfileResponse(BaseModel):
    profile: Profile
    session: Session


class SetRoleRequest(BaseModel):
    """Request schema for granting or revoking a role."""

    user_id: UUID
    role: str = Field(..., min_length=1, max_length=32)
    granted: bool = True


class RolesResponse(BaseModel):
    user_id: UUID
    roles: list[str]
