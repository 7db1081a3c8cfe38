"""
Tests for the default policy seeder.
"""

import pytest
from datetime import timedelta

from propdesk.rbac.engine import RBACEngine
from propdesk.rbac.seed import (
    ROLE_DEFINITIONS,
    DefaultPolicySeeder,
    RoleDefinition,
    SeedResult,
    permission_description,
)
from propdesk.rbac.service import RBACService
from propdesk.rbac.types import (
    DEFAULT_PERMISSIONS,
    PermissionAction as A,
    PermissionCheck,
    PermissionResource as R,
)
from propdesk.utils.timezone import utc_now


async def _role_checks(service: RBACService, name: str) -> set[PermissionCheck]:
    role = await service.get_role_by_name(name)
    return {PermissionCheck(p.action, p.resource) for p in role.permissions}


@pytest.mark.asyncio
async def test_seed_creates_catalog_and_roles(service: RBACService):
    result = await DefaultPolicySeeder(service).seed()

    assert result.permissions == len(DEFAULT_PERMISSIONS) == 42
    assert result.roles == 5

    permissions = await service.list_permissions()
    assert len(permissions) == 42
    read_trade = await service.get_permission(A.READ, R.TRADE)
    assert read_trade.description == "Permission to read trade"

    roles = await service.list_roles()
    assert [r.name for r in roles] == ["admin", "moderator", "super_admin", "trader", "viewer"]
    assert all(r.is_system for r in roles)
    super_admin = await service.get_role_by_name("super_admin")
    assert super_admin.display_name == "Super Administrator"


@pytest.mark.asyncio
async def test_seed_role_membership(service: RBACService):
    await DefaultPolicySeeder(service).seed()
    everything = set(DEFAULT_PERMISSIONS)

    assert await _role_checks(service, "super_admin") == everything
    assert await _role_checks(service, "admin") == everything - {PermissionCheck(A.MANAGE, R.ROLE)}
    assert await _role_checks(service, "moderator") == {
        PermissionCheck(A.CREATE, R.USER),
        PermissionCheck(A.READ, R.USER),
        PermissionCheck(A.UPDATE, R.USER),
        PermissionCheck(A.MANAGE, R.USER),
        PermissionCheck(A.READ, R.TRADE),
        PermissionCheck(A.READ, R.DASHBOARD),
    }

    trader = await _role_checks(service, "trader")
    assert len(trader) == 26
    assert PermissionCheck(A.READ, R.DASHBOARD) in trader
    assert PermissionCheck(A.DELETE, R.PROPFIRM) in trader
    assert PermissionCheck(A.READ, R.USER) not in trader
    assert PermissionCheck(A.READ, R.SUBSCRIPTION) not in trader

    assert await _role_checks(service, "viewer") == {
        PermissionCheck(A.READ, resource)
        for resource in (R.TRADE, R.PROPFIRM, R.BROKER, R.SYMBOL, R.DASHBOARD)
    }


@pytest.mark.asyncio
async def test_seed_is_idempotent(service: RBACService, user_factory):
    await user_factory.create()
    await DefaultPolicySeeder(service).seed()

    second = await DefaultPolicySeeder(service).seed()

    assert second == SeedResult()
    assert len(await service.list_permissions()) == 42
    assert len(await service.list_roles()) == 5
    assert await service.role_permissions.count() == 42 + 41 + 6 + 26 + 5
    assert await service.user_roles.count() == 1


@pytest.mark.asyncio
async def test_seed_grants_default_role_to_users_without_roles(service: RBACService, engine: RBACEngine, user_factory):
    bare = await user_factory.create()
    held = await user_factory.create()
    viewer = await service.create_role(name="viewer", display_name="Viewer")
    await service.assign_role(held.id, viewer.id)

    result = await DefaultPolicySeeder(service).seed()

    assert result.users_defaulted == 1
    assert [r.name for r in await engine.get_user_roles(bare.id)] == ["trader"]
    assert await engine.has_role(held.id, "trader") is False
    # The pre-existing role row was reused, not overwritten
    assert result.roles == 4
    assert (await service.get_role_by_name("viewer")).display_name == "Viewer"


@pytest.mark.asyncio
async def test_seed_skips_users_with_only_expired_grants(service: RBACService, user_factory):
    user = await user_factory.create()
    role = await service.create_role(name="analyst", display_name="Analyst")
    await service.assign_role(user.id, role.id, expires_at=utc_now() - timedelta(days=1))

    result = await DefaultPolicySeeder(service).seed()

    assert result.users_defaulted == 0


@pytest.mark.asyncio
async def test_seed_respects_configured_default_role(service: RBACService, engine: RBACEngine, user_factory):
    user = await user_factory.create()

    await DefaultPolicySeeder(service, default_role="viewer").seed()

    assert await engine.has_role(user.id, "viewer") is True
    assert await engine.has_role(user.id, "trader") is False


@pytest.mark.asyncio
async def test_seed_flows_new_catalog_permissions_into_matching_roles(service: RBACService):
    await DefaultPolicySeeder(service).seed()
    extra = await service.create_permission(A.READ, R.PERMISSION)

    result = await DefaultPolicySeeder(service).seed()

    # super_admin and admin match every permission; nobody else reads PERMISSION
    assert result.links_created == 2
    assert PermissionCheck(A.READ, R.PERMISSION) in await _role_checks(service, "super_admin")
    assert PermissionCheck(A.READ, R.PERMISSION) in await _role_checks(service, "admin")
    assert PermissionCheck(extra.action, extra.resource) not in await _role_checks(service, "viewer")


@pytest.mark.asyncio
async def test_seed_does_not_remove_manual_links(service: RBACService):
    await DefaultPolicySeeder(service).seed()
    viewer = await service.get_role_by_name("viewer")
    delete_trade = await service.get_permission(A.DELETE, R.TRADE)
    await service.assign_permission_to_role(viewer.id, delete_trade.id)

    result = await DefaultPolicySeeder(service).seed()

    assert result.links_created == 0
    assert PermissionCheck(A.DELETE, R.TRADE) in await _role_checks(service, "viewer")


@pytest.mark.asyncio
async def test_seed_failure_rolls_back_whole_batch(service: RBACService, user_factory):
    await user_factory.create()

    def explode(permission):
        raise RuntimeError("boom")

    broken = ROLE_DEFINITIONS + (
        RoleDefinition(name="broken", display_name="Broken", description="", includes=explode),
    )

    with pytest.raises(RuntimeError):
        await DefaultPolicySeeder(service, definitions=broken).seed()

    assert await service.list_permissions(active_only=False) == []
    assert await service.list_roles(active_only=False) == []
    assert await service.user_roles.count() == 0


def test_permission_description():
    assert permission_description(PermissionCheck(A.MANAGE, R.TRADING_ACCOUNT)) == (
        "Permission to manage trading_account"
    )
