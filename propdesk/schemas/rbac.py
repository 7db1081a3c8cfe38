"""
RBAC schemas.
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator

from propdesk.rbac.types import PermissionAction, PermissionResource


# ============ Permissions ============


class PermissionResponse(BaseModel):
    """Permission response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action: PermissionAction
    resource: PermissionResource
    description: str | None = None
    is_active: bool


class PermissionCreate(BaseModel):
    """Permission create schema."""
    action: PermissionAction
    resource: PermissionResource
    description: str | None = Field(None, max_length=500)


class PermissionUpdate(BaseModel):
    """Permission activation toggle."""
    is_active: bool


# ============ Roles ============


class RoleResponse(BaseModel):
    """Role response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    display_name: str
    description: str | None = None
    is_active: bool
    is_system: bool
    created_at: datetime


class RoleDetailResponse(RoleResponse):
    """Role with its linked permissions."""
    permissions: list[PermissionResponse] = []


class RoleCreate(BaseModel):
    """Role create schema."""
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=500)
    is_system: bool = False


class RoleUpdate(BaseModel):
    """Role partial update schema. Omitted fields are left unchanged."""
    name: str | None = Field(None, min_length=1, max_length=100)
    display_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=500)
    is_system: bool | None = None
    is_active: bool | None = None


# ============ Assignments ============


class RoleAssign(BaseModel):
    """Grant a role to a user."""
    role_id: UUID
    expires_at: datetime | None = None
    assigned_by: UUID | None = None

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            raise ValueError("expires_at must include a timezone offset")
        return v


class UserRoleResponse(BaseModel):
    """User role grant response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    role_id: UUID
    assigned_at: datetime
    assigned_by: UUID | None = None
    expires_at: datetime | None = None
    role: RoleResponse


# ============ Evaluation ============


class RBACContextResponse(BaseModel):
    """A user's effective roles and permissions right now."""
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    user_roles: list[RoleResponse]
    permissions: list[PermissionResponse]


class CheckResponse(BaseModel):
    """Result of a permission, role or policy check."""
    allowed: bool
    reason: str | None = None
