"""
RBAC Models - Roles, Permissions, and Assignments.

Tables:
- permissions: (action, resource) capabilities, unique per pair
- roles: named bundles of permissions
- role_permissions: role <-> permission links, unique per pair
- user_roles: user <-> role grants with optional expiry

Usage:
    perm = Permission(action=PermissionAction.READ, resource=PermissionResource.TRADE)
    role = Role(name="viewer", display_name="Viewer")
    link = RolePermission(role_id=role.id, permission_id=perm.id)
    grant = UserRole(user_id=user.id, role_id=role.id, expires_at=None)

Soft deletion is done with is_active on Permission and Role. Inactive
rows stay linked but contribute nothing to evaluation.
"""

from datetime import datetime
from uuid import UUID
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propdesk.models.base import Base, StandardMixin, UUIDMixin
from propdesk.utils.timezone import utc_now

from .types import PermissionAction, PermissionResource


class Permission(Base, StandardMixin):
    """
    Permission definition.

    Examples:
        Permission(action=PermissionAction.CREATE, resource=PermissionResource.TRADE)
        Permission(action=PermissionAction.MANAGE, resource=PermissionResource.ADMIN)
    """

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("action", "resource", name="uq_permission_action_resource"),
    )

    # Stored as strings so ordering is alphabetical on every backend
    action: Mapped[PermissionAction] = mapped_column(
        SQLEnum(PermissionAction, native_enum=False, length=20),
        nullable=False,
    )
    resource: Mapped[PermissionResource] = mapped_column(
        SQLEnum(PermissionResource, native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def permission_string(self) -> str:
        """Get permission as 'ACTION RESOURCE' string."""
        return f"{self.action.value} {self.resource.value}"

    def __repr__(self) -> str:
        return f"<Permission {self.permission_string}>"


class Role(Base, StandardMixin):
    """
    Role definition.

    Roles group permissions together and can be assigned to users.
    is_system marks the seeded baseline roles; it is informational and
    does not block updates or deletion.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    role_permissions: Mapped[list["RolePermission"]] = relationship(
        "RolePermission",
        back_populates="role",
        lazy="selectin",
    )

    @property
    def permissions(self) -> list[Permission]:
        """Linked permissions (active or not), ordered by resource then action."""
        return sorted(
            (link.permission for link in self.role_permissions),
            key=lambda p: (p.resource.value, p.action.value),
        )

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class RolePermission(Base, UUIDMixin):
    """Link granting one permission to one role."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )

    role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    role: Mapped["Role"] = relationship("Role", back_populates="role_permissions")
    permission: Mapped["Permission"] = relationship("Permission", lazy="selectin")

    def __repr__(self) -> str:
        return f"<RolePermission role={self.role_id} permission={self.permission_id}>"


class UserRole(Base, UUIDMixin):
    """
    User role assignment.

    The same role may be granted to a user more than once (for example a
    permanent grant plus a temporary escalation with its own expiry).

    Examples:
        # Permanent grant
        UserRole(user_id=user.id, role_id=trader.id)

        # Temporary grant
        UserRole(user_id=user.id, role_id=admin.id, expires_at=datetime(2026, 12, 31, tzinfo=UTC))
    """

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    # Who granted this role (audit only)
    assigned_by: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )
    # NULL means the grant never expires
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    role: Mapped["Role"] = relationship("Role", lazy="selectin")

    def __repr__(self) -> str:
        return f"<UserRole user={self.user_id} role={self.role_id}>"
