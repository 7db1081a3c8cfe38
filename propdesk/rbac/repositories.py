"""
RBAC repositories.

Every query refreshes objects already in the session identity map
(populate_existing), so links inserted or removed through other
repositories are always visible to the next read.
"""

from datetime import datetime
from uuid import UUID
from sqlalchemy import Select, select, or_, exists
from sqlalchemy.orm import selectinload

from propdesk.models.user import User
from propdesk.repositories.base import BaseRepository

from .models import Permission, Role, RolePermission, UserRole
from .types import PermissionAction, PermissionResource


def _role_with_permissions():
    return selectinload(Role.role_permissions).selectinload(RolePermission.permission)


class PermissionRepository(BaseRepository[Permission]):
    """Permission catalog queries."""

    model = Permission

    def _base_query(self) -> Select:
        return select(Permission).execution_options(populate_existing=True)

    async def get_by_action_and_resource(
        self,
        action: PermissionAction,
        resource: PermissionResource,
    ) -> Permission | None:
        return await self.get_one(action=action, resource=resource)

    async def list_all(self, active_only: bool = True) -> list[Permission]:
        """List permissions ordered by resource, then action."""
        stmt = self._base_query()
        if active_only:
            stmt = stmt.where(Permission.is_active.is_(True))
        stmt = stmt.order_by(Permission.resource, Permission.action)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_role(self, role_id: UUID) -> list[Permission]:
        """List permissions linked to a role, ordered by resource, then action."""
        stmt = (
            self._base_query()
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.resource, Permission.action)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class RoleRepository(BaseRepository[Role]):
    """Role registry queries. Roles always come back with permissions loaded."""

    model = Role

    def _base_query(self) -> Select:
        return (
            select(Role)
            .options(_role_with_permissions())
            .execution_options(populate_existing=True)
        )

    async def get_by_name(self, name: str) -> Role | None:
        return await self.get_one(name=name)

    async def list_all(self, active_only: bool = True) -> list[Role]:
        """List roles ordered by name."""
        stmt = self._base_query()
        if active_only:
            stmt = stmt.where(Role.is_active.is_(True))
        stmt = stmt.order_by(Role.name)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class RolePermissionRepository(BaseRepository[RolePermission]):
    """Role <-> permission link table."""

    model = RolePermission


class UserRoleRepository(BaseRepository[UserRole]):
    """
    User <-> role grants.

    Grants come back with role -> links -> permission eagerly loaded so
    evaluation never triggers lazy IO.
    """

    model = UserRole

    def _base_query(self) -> Select:
        return (
            select(UserRole)
            .options(selectinload(UserRole.role).options(_role_with_permissions()))
            .execution_options(populate_existing=True)
        )

    async def list_for_user(
        self,
        user_id: UUID,
        valid_at: datetime | None = None,
    ) -> list[UserRole]:
        """
        List a user's grants, oldest first.

        When valid_at is given, expired grants are filtered out in the
        query itself: expires_at IS NULL OR expires_at > valid_at.
        """
        stmt = self._base_query().where(UserRole.user_id == user_id)
        if valid_at is not None:
            stmt = stmt.where(
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > valid_at)
            )
        stmt = stmt.order_by(UserRole.assigned_at, UserRole.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_users_without_roles(self) -> list[UUID]:
        """IDs of users that hold no grants at all, expired ones included."""
        stmt = (
            select(User.id)
            .where(~exists().where(UserRole.user_id == User.id))
            .order_by(User.created_at, User.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
