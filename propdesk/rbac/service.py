"""
RBAC Service - Manage the permission catalog, roles, and assignments.

Usage:
    service = RBACService(db)

    perm = await service.create_permission(PermissionAction.READ, PermissionResource.TRADE)
    role = await service.create_role(name="analyst", display_name="Analyst")
    await service.assign_permission_to_role(role.id, perm.id)
    await service.assign_role(user_id, role.id)

Uniqueness is enforced by the database. Each insert runs inside a
SAVEPOINT so a constraint violation becomes a ConflictError while the
caller's surrounding transaction stays usable.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.exceptions import ConflictError, NotFoundError
from propdesk.utils.timezone import to_utc, utc_now

from .models import Permission, Role, RolePermission, UserRole
from .repositories import (
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
    UserRoleRepository,
)
from .types import PermissionAction, PermissionResource

logger = structlog.get_logger()

_ROLE_FIELDS = ("name", "display_name", "description", "is_system", "is_active")


class RBACService:
    """
    Service for managing RBAC roles, permissions, and assignments.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.permissions = PermissionRepository(db)
        self.roles = RoleRepository(db)
        self.role_permissions = RolePermissionRepository(db)
        self.user_roles = UserRoleRepository(db)

    @asynccontextmanager
    async def _unique(self, message: str) -> AsyncIterator[None]:
        """Run a write in a savepoint, mapping constraint violations to ConflictError."""
        try:
            async with self.db.begin_nested():
                yield
        except IntegrityError as exc:
            raise ConflictError(message) from exc

    # ============================================================
    # PERMISSION CATALOG
    # ============================================================

    async def create_permission(
        self,
        action: PermissionAction,
        resource: PermissionResource,
        description: str | None = None,
    ) -> Permission:
        """
        Create a permission.

        Raises:
            ConflictError: If (action, resource) already exists
        """
        action = PermissionAction(action)
        resource = PermissionResource(resource)
        async with self._unique(f"Permission {action.value} {resource.value} already exists"):
            permission = await self.permissions.create(
                action=action,
                resource=resource,
                description=description,
            )

        logger.info(
            "Permission created",
            permission_id=str(permission.id),
            action=action.value,
            resource=resource.value,
        )
        return permission

    async def get_permission(
        self,
        action: PermissionAction,
        resource: PermissionResource,
    ) -> Permission | None:
        """Get permission by action and resource, or None."""
        return await self.permissions.get_by_action_and_resource(
            PermissionAction(action),
            PermissionResource(resource),
        )

    async def list_permissions(self, active_only: bool = True) -> list[Permission]:
        """List permissions ordered by resource, then action."""
        return await self.permissions.list_all(active_only=active_only)

    async def set_permission_active(self, permission_id: UUID, is_active: bool) -> Permission:
        """
        Activate or deactivate a permission.

        Raises:
            NotFoundError: If the permission does not exist
        """
        permission = await self.permissions.get_by_id(permission_id)
        if permission is None:
            raise NotFoundError(f"Permission {permission_id} not found")

        permission.is_active = is_active
        await self.db.flush()

        logger.info(
            "Permission active flag changed",
            permission_id=str(permission_id),
            is_active=is_active,
        )
        return await self.permissions.get_by_id(permission_id)

    # ============================================================
    # ROLE MANAGEMENT
    # ============================================================

    async def create_role(
        self,
        name: str,
        display_name: str,
        description: str | None = None,
        is_system: bool = False,
    ) -> Role:
        """
        Create a new role.

        Raises:
            ConflictError: If a role with this name exists
        """
        async with self._unique(f"Role '{name}' already exists"):
            role = await self.roles.create(
                name=name,
                display_name=display_name,
                description=description,
                is_system=is_system,
            )

        logger.info("Role created", role_id=str(role.id), name=name)
        return await self.roles.get_by_id(role.id)

    async def get_role(self, role_id: UUID) -> Role | None:
        """Get role by ID (with permissions)."""
        return await self.roles.get_by_id(role_id)

    async def get_role_by_name(self, name: str) -> Role | None:
        """Get role by name (with permissions)."""
        return await self.roles.get_by_name(name)

    async def list_roles(self, active_only: bool = True) -> list[Role]:
        """List roles ordered by name."""
        return await self.roles.list_all(active_only=active_only)

    async def get_role_permissions(self, role_id: UUID) -> list[Permission]:
        """
        List permissions linked to a role.

        Raises:
            NotFoundError: If the role does not exist
        """
        if not await self.roles.exists(id=role_id):
            raise NotFoundError(f"Role {role_id} not found")
        return await self.permissions.list_for_role(role_id)

    async def update_role(self, role_id: UUID, **changes) -> Role:
        """
        Partially update a role.

        Accepts name, display_name, description, is_system, is_active.
        Fields passed as None are left unchanged.

        Raises:
            NotFoundError: If the role does not exist
            ConflictError: If renaming onto an existing name
        """
        unknown = set(changes) - set(_ROLE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown role fields: {sorted(unknown)}")

        role = await self.roles.get_by_id(role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found")

        updates = {k: v for k, v in changes.items() if v is not None}
        try:
            async with self._unique(f"Role '{updates.get('name')}' already exists"):
                for field, value in updates.items():
                    setattr(role, field, value)
                await self.db.flush()
        except ConflictError:
            # The savepoint rollback expired the instance; reload it for callers holding it
            await self.db.refresh(role)
            raise

        logger.info("Role updated", role_id=str(role_id), fields=sorted(updates))
        return await self.roles.get_by_id(role_id)

    async def delete_role(self, role_id: UUID) -> None:
        """
        Hard delete a role.

        The role's permission links and user grants are deleted with it.

        Raises:
            NotFoundError: If the role does not exist
        """
        if not await self.roles.exists(id=role_id):
            raise NotFoundError(f"Role {role_id} not found")

        grants = await self.user_roles.delete_many(role_id=role_id)
        links = await self.role_permissions.delete_many(role_id=role_id)
        await self.roles.delete_many(id=role_id)

        logger.info(
            "Role deleted",
            role_id=str(role_id),
            grants_removed=grants,
            links_removed=links,
        )

    # ============================================================
    # ROLE <-> PERMISSION LINKS
    # ============================================================

    async def assign_permission_to_role(
        self,
        role_id: UUID,
        permission_id: UUID,
    ) -> RolePermission:
        """
        Link a permission to a role.

        Raises:
            NotFoundError: If the role or permission does not exist
            ConflictError: If the link already exists
        """
        if not await self.roles.exists(id=role_id):
            raise NotFoundError(f"Role {role_id} not found")
        if not await self.permissions.exists(id=permission_id):
            raise NotFoundError(f"Permission {permission_id} not found")

        async with self._unique("Permission is already assigned to this role"):
            link = await self.role_permissions.create(
                role_id=role_id,
                permission_id=permission_id,
            )

        logger.info(
            "Permission assigned to role",
            role_id=str(role_id),
            permission_id=str(permission_id),
        )
        return link

    async def remove_permission_from_role(self, role_id: UUID, permission_id: UUID) -> int:
        """Unlink a permission from a role. Returns the number of links removed."""
        removed = await self.role_permissions.delete_many(
            role_id=role_id,
            permission_id=permission_id,
        )
        logger.info(
            "Permission removed from role",
            role_id=str(role_id),
            permission_id=str(permission_id),
            removed=removed,
        )
        return removed

    # ============================================================
    # USER ROLE ASSIGNMENT
    # ============================================================

    async def assign_role(
        self,
        user_id: UUID,
        role_id: UUID,
        assigned_by: UUID | None = None,
        expires_at: datetime | None = None,
    ) -> UserRole:
        """
        Grant a role to a user.

        Existing grants of the same role are left alone, so a user can
        hold a permanent and a temporary grant side by side.

        Args:
            user_id: User receiving the role
            role_id: Role to grant
            assigned_by: ID of the user granting the role (audit only)
            expires_at: When the grant stops counting; None never expires

        Raises:
            NotFoundError: If the role does not exist
        """
        if not await self.roles.exists(id=role_id):
            raise NotFoundError(f"Role {role_id} not found")

        grant = await self.user_roles.create(
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
            expires_at=to_utc(expires_at) if expires_at is not None else None,
        )

        logger.info(
            "Role assigned",
            user_id=str(user_id),
            role_id=str(role_id),
            assigned_by=str(assigned_by) if assigned_by else None,
            expires_at=grant.expires_at.isoformat() if grant.expires_at else None,
        )
        return await self.user_roles.get_by_id(grant.id)

    async def remove_role(self, user_id: UUID, role_id: UUID) -> int:
        """
        Remove every grant of a role from a user.

        Returns:
            Number of grants removed
        """
        removed = await self.user_roles.delete_many(user_id=user_id, role_id=role_id)
        logger.info(
            "Role removed",
            user_id=str(user_id),
            role_id=str(role_id),
            removed=removed,
        )
        return removed

    async def list_user_assignments(
        self,
        user_id: UUID,
        include_expired: bool = False,
    ) -> list[UserRole]:
        """List a user's raw grants, regardless of role/permission activity."""
        if include_expired:
            return await self.user_roles.list_for_user(user_id)
        return await self.user_roles.list_for_user(user_id, valid_at=utc_now())
