"""
RBAC Evaluation Engine.

Answers authorization questions for a user at the current instant.
Every call re-reads grants from the store; nothing is cached between
calls, so the engine is safe to share across concurrent requests as
long as each request gives it its own session.

Resolution:
1. Load the user's grants that are unexpired at `now` (filtered in SQL)
2. Drop inactive roles
3. Follow each role to its permissions, dropping inactive ones
4. Union permissions by id

Usage:
    engine = RBACEngine(UserRoleRepository(db))

    if await engine.has_permission(user_id, PermissionAction.READ, PermissionResource.TRADE):
        ...

    context = await engine.get_rbac_context(user_id)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable
from uuid import UUID

from propdesk.core.auth.interfaces import PolicyDecision, PolicyEngine
from propdesk.utils.timezone import utc_now

from .models import Permission, Role
from .policies import get_policy
from .repositories import UserRoleRepository
from .types import PermissionAction, PermissionCheck, PermissionResource


@dataclass
class RBACData:
    """Effective roles and permissions of a user at one instant."""
    roles: list[Role] = field(default_factory=list)
    permissions: list[Permission] = field(default_factory=list)


@dataclass
class RBACContext:
    """Point-in-time RBAC read model attached to a request."""
    user_id: UUID
    user_roles: list[Role] = field(default_factory=list)
    permissions: list[Permission] = field(default_factory=list)

    def has_permission(
        self,
        action: PermissionAction,
        resource: PermissionResource,
    ) -> bool:
        """Check against the snapshot without touching the store."""
        return _matches(self.permissions, PermissionCheck(action, resource))

    def has_role(self, role_name: str) -> bool:
        return any(role.name == role_name and role.is_active for role in self.user_roles)


def _matches(permissions: Iterable[Permission], check: PermissionCheck) -> bool:
    return any(
        permission.action == check.action
        and permission.resource == check.resource
        and permission.is_active
        for permission in permissions
    )


class RBACEngine(PolicyEngine):
    """
    Role-Based Access Control evaluation engine.

    Args:
        assignments: Store handle for user role grants
        clock: Returns the current aware UTC datetime; injectable for tests
    """

    def __init__(
        self,
        assignments: UserRoleRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.assignments = assignments
        self.clock = clock

    # ============================================================
    # CORE PRIMITIVE
    # ============================================================

    async def get_user_rbac_data(self, user_id: UUID) -> RBACData:
        """Resolve the user's active roles and de-duplicated permissions."""
        grants = await self.assignments.list_for_user(user_id, valid_at=self.clock())

        roles: dict[UUID, Role] = {}
        for grant in grants:
            role = grant.role
            if role is not None and role.is_active:
                roles.setdefault(role.id, role)

        permissions: dict[UUID, Permission] = {}
        for role in roles.values():
            for link in role.role_permissions:
                permission = link.permission
                if permission.is_active:
                    permissions.setdefault(permission.id, permission)

        return RBACData(
            roles=list(roles.values()),
            permissions=list(permissions.values()),
        )

    # ============================================================
    # DERIVED QUERIES
    # ============================================================

    async def get_user_roles(self, user_id: UUID) -> list[Role]:
        """Get the user's currently effective roles."""
        return (await self.get_user_rbac_data(user_id)).roles

    async def get_user_permissions(self, user_id: UUID) -> list[Permission]:
        """Get the user's currently effective permissions."""
        return (await self.get_user_rbac_data(user_id)).permissions

    async def get_permissions(self, user_id: UUID) -> set[PermissionCheck]:
        """Effective permissions as (action, resource) pairs."""
        return {
            PermissionCheck(p.action, p.resource)
            for p in await self.get_user_permissions(user_id)
        }

    async def has_permission(
        self,
        user_id: UUID,
        action: PermissionAction,
        resource: PermissionResource,
    ) -> bool:
        """Check for an exact (action, resource) match. MANAGE implies nothing else."""
        permissions = await self.get_user_permissions(user_id)
        return _matches(permissions, PermissionCheck(action, resource))

    async def has_any_permission(
        self,
        user_id: UUID,
        checks: Iterable[PermissionCheck],
    ) -> bool:
        """True if at least one check matches. An empty list is False."""
        permissions = await self.get_user_permissions(user_id)
        return any(_matches(permissions, check) for check in checks)

    async def has_all_permissions(
        self,
        user_id: UUID,
        checks: Iterable[PermissionCheck],
    ) -> bool:
        """True if every check matches. An empty list is True."""
        permissions = await self.get_user_permissions(user_id)
        return all(_matches(permissions, check) for check in checks)

    async def has_role(self, user_id: UUID, role_name: str) -> bool:
        """Check if the user currently holds an active role with this name."""
        roles = await self.get_user_roles(user_id)
        return any(role.name == role_name and role.is_active for role in roles)

    async def has_any_role(self, user_id: UUID, role_names: Iterable[str]) -> bool:
        """True if the user holds at least one of the named roles."""
        if isinstance(role_names, str):
            raise TypeError("role_names must be a collection of names, not a str")
        wanted = set(role_names)
        roles = await self.get_user_roles(user_id)
        return any(role.name in wanted and role.is_active for role in roles)

    async def get_rbac_context(self, user_id: UUID) -> RBACContext:
        """Package roles and permissions for downstream consumers."""
        data = await self.get_user_rbac_data(user_id)
        return RBACContext(
            user_id=user_id,
            user_roles=data.roles,
            permissions=data.permissions,
        )

    # ============================================================
    # POLICIES
    # ============================================================

    async def check_policy(self, user_id: UUID, name: str) -> bool:
        """
        Evaluate a named composite policy.

        Raises:
            ValueError: If the policy name is unknown
        """
        policy = get_policy(name)
        if policy.permission is not None:
            return await self.has_permission(user_id, *policy.permission)
        return await self.has_any_role(user_id, policy.roles)

    async def evaluate(
        self,
        user_id: UUID,
        action: PermissionAction,
        resource: PermissionResource,
    ) -> PolicyDecision:
        """Same as has_permission, with a reason attached."""
        check = PermissionCheck(action, resource)
        if await self.has_permission(user_id, action, resource):
            return PolicyDecision.allow(f"Has permission: {check}")
        return PolicyDecision.deny(f"Missing permission: {check}")
