"""
Default policy seeder.

Establishes the baseline catalog, the five system roles and their
permission links, then grants the default role to every user that holds
no role at all. Safe to run any number of times: every row is upserted by
its natural key and a second run creates nothing.

Role membership is declared as a predicate over the catalog, so a
permission added later is picked up by every role whose rule it satisfies
the next time the seeder runs.

Usage:
    async with async_session_factory() as db:
        result = await DefaultPolicySeeder(RBACService(db)).seed()
        await db.commit()
"""

from dataclasses import dataclass
from typing import Callable

import structlog

from propdesk.core.config import settings

from .models import Permission, Role
from .service import RBACService
from .types import (
    DEFAULT_PERMISSIONS,
    DefaultRole,
    PermissionAction as A,
    PermissionCheck,
    PermissionResource as R,
)

logger = structlog.get_logger()

RolePredicate = Callable[[Permission], bool]


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    display_name: str
    description: str
    includes: RolePredicate


_MODERATOR_PERMISSIONS = {
    PermissionCheck(A.CREATE, R.USER),
    PermissionCheck(A.READ, R.USER),
    PermissionCheck(A.UPDATE, R.USER),
    PermissionCheck(A.MANAGE, R.USER),
    PermissionCheck(A.READ, R.TRADE),
    PermissionCheck(A.READ, R.DASHBOARD),
}

_TRADING_RESOURCES = {R.TRADING_ACCOUNT, R.TRADE, R.PROPFIRM, R.BROKER, R.SYMBOL}

_VIEWER_RESOURCES = {R.TRADE, R.PROPFIRM, R.BROKER, R.SYMBOL, R.DASHBOARD}


def _check(permission: Permission) -> PermissionCheck:
    return PermissionCheck(permission.action, permission.resource)


ROLE_DEFINITIONS: tuple[RoleDefinition, ...] = (
    RoleDefinition(
        name=DefaultRole.SUPER_ADMIN.value,
        display_name="Super Administrator",
        description="Full system access with all permissions",
        includes=lambda p: True,
    ),
    RoleDefinition(
        name=DefaultRole.ADMIN.value,
        display_name="Administrator",
        description="Administrative access to most system features",
        includes=lambda p: _check(p) != (A.MANAGE, R.ROLE),
    ),
    RoleDefinition(
        name=DefaultRole.MODERATOR.value,
        display_name="Moderator",
        description="Moderation access to user content and basic management",
        includes=lambda p: _check(p) in _MODERATOR_PERMISSIONS,
    ),
    RoleDefinition(
        name=DefaultRole.TRADER.value,
        display_name="Trader",
        description="Full trading access and account management",
        includes=lambda p: (
            p.resource in _TRADING_RESOURCES
            or _check(p) == (A.READ, R.DASHBOARD)
        ),
    ),
    RoleDefinition(
        name=DefaultRole.VIEWER.value,
        display_name="Viewer",
        description="Read-only access to basic features",
        includes=lambda p: p.action == A.READ and p.resource in _VIEWER_RESOURCES,
    ),
)


def permission_description(check: PermissionCheck) -> str:
    return f"Permission to {check.action.value.lower()} {check.resource.value.lower()}"


@dataclass
class SeedResult:
    """Counts of rows the run created. All zero on a repeat run."""
    roles: int = 0
    permissions: int = 0
    links_created: int = 0
    users_defaulted: int = 0


class DefaultPolicySeeder:
    """
    Idempotent bootstrap of the default RBAC policy.

    The whole run happens inside one SAVEPOINT. If any step fails the
    partial policy is rolled back and the error propagates.
    """

    def __init__(
        self,
        service: RBACService,
        default_role: str | None = None,
        definitions: tuple[RoleDefinition, ...] = ROLE_DEFINITIONS,
    ):
        self.service = service
        self.default_role = default_role or settings.rbac.default_role
        self.definitions = definitions

    async def seed(self) -> SeedResult:
        result = SeedResult()

        async with self.service.db.begin_nested():
            await self._seed_permissions(result)
            roles = await self._seed_roles(result)
            await self._seed_links(roles, result)
            await self._seed_default_grants(roles, result)

        logger.info(
            "RBAC default policy seeded",
            roles_created=result.roles,
            permissions_created=result.permissions,
            links_created=result.links_created,
            users_defaulted=result.users_defaulted,
        )
        return result

    async def _seed_permissions(self, result: SeedResult) -> None:
        for check in DEFAULT_PERMISSIONS:
            existing = await self.service.get_permission(check.action, check.resource)
            if existing is None:
                await self.service.create_permission(
                    check.action,
                    check.resource,
                    description=permission_description(check),
                )
                result.permissions += 1

    async def _seed_roles(self, result: SeedResult) -> dict[str, Role]:
        roles: dict[str, Role] = {}
        for definition in self.definitions:
            role = await self.service.get_role_by_name(definition.name)
            if role is None:
                role = await self.service.create_role(
                    name=definition.name,
                    display_name=definition.display_name,
                    description=definition.description,
                    is_system=True,
                )
                result.roles += 1
            roles[definition.name] = role
        return roles

    async def _seed_links(self, roles: dict[str, Role], result: SeedResult) -> None:
        # Predicates run over the whole catalog, inactive permissions included
        catalog = await self.service.list_permissions(active_only=False)

        for definition in self.definitions:
            role = roles[definition.name]
            linked = {link.permission_id for link in role.role_permissions}
            for permission in catalog:
                if permission.id in linked or not definition.includes(permission):
                    continue
                await self.service.assign_permission_to_role(role.id, permission.id)
                result.links_created += 1

    async def _seed_default_grants(self, roles: dict[str, Role], result: SeedResult) -> None:
        role = roles.get(self.default_role)
        if role is None:
            role = await self.service.get_role_by_name(self.default_role)
        if role is None:
            logger.warning("Default role missing, skipping default grants", role=self.default_role)
            return

        for user_id in await self.service.user_roles.list_users_without_roles():
            await self.service.assign_role(user_id, role.id)
            result.users_defaulted += 1


async def seed_default_policy(service: RBACService) -> SeedResult:
    """Run the default seeder with configured settings."""
    return await DefaultPolicySeeder(service).seed()
