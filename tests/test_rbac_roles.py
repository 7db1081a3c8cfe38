"""
Tests for the role registry.
"""

import pytest
from uuid import uuid4

from propdesk.core.exceptions import ConflictError, NotFoundError
from propdesk.rbac.service import RBACService
from propdesk.rbac.types import PermissionAction as A, PermissionResource as R


@pytest.mark.asyncio
async def test_create_role(service: RBACService):
    role = await service.create_role(
        name="analyst",
        display_name="Analyst",
        description="Reads reports",
    )

    assert role.name == "analyst"
    assert role.display_name == "Analyst"
    assert role.description == "Reads reports"
    assert role.is_active is True
    assert role.is_system is False
    assert role.permissions == []


@pytest.mark.asyncio
async def test_create_duplicate_role_name_conflicts(service: RBACService):
    await service.create_role(name="analyst", display_name="Analyst")

    with pytest.raises(ConflictError):
        await service.create_role(name="analyst", display_name="Other")

    roles = await service.list_roles()
    assert [r.display_name for r in roles] == ["Analyst"]


@pytest.mark.asyncio
async def test_update_role_partial(service: RBACService):
    role = await service.create_role(name="analyst", display_name="Analyst", description="keep")

    updated = await service.update_role(role.id, display_name="Senior Analyst", is_system=True)

    assert updated.name == "analyst"
    assert updated.display_name == "Senior Analyst"
    assert updated.description == "keep"
    assert updated.is_system is True


@pytest.mark.asyncio
async def test_update_role_unknown_id(service: RBACService):
    with pytest.raises(NotFoundError):
        await service.update_role(uuid4(), display_name="Nobody")


@pytest.mark.asyncio
async def test_update_role_rename_onto_existing_conflicts(service: RBACService):
    await service.create_role(name="analyst", display_name="Analyst")
    other = await service.create_role(name="auditor", display_name="Auditor")

    with pytest.raises(ConflictError):
        await service.update_role(other.id, name="analyst")

    # The instance the caller holds is still loaded and shows the stored values
    assert other.name == "auditor"
    assert other.display_name == "Auditor"
    assert (await service.get_role(other.id)).name == "auditor"
    assert [r.name for r in await service.list_roles()] == ["analyst", "auditor"]


@pytest.mark.asyncio
async def test_update_role_rejects_unknown_fields(service: RBACService):
    role = await service.create_role(name="analyst", display_name="Analyst")

    with pytest.raises(TypeError):
        await service.update_role(role.id, color="blue")


@pytest.mark.asyncio
async def test_delete_role(service: RBACService, role_factory, test_user):
    role = await role_factory.create(name="analyst", permissions=[(A.READ, R.TRADE)])
    await service.assign_role(test_user.id, role.id)

    await service.delete_role(role.id)

    assert await service.get_role(role.id) is None
    assert await service.get_role_by_name("analyst") is None
    # Links and grants go with the role; the permission itself stays
    assert await service.list_user_assignments(test_user.id, include_expired=True) == []
    assert await service.role_permissions.count(role_id=role.id) == 0
    assert await service.get_permission(A.READ, R.TRADE) is not None


@pytest.mark.asyncio
async def test_delete_role_unknown_id(service: RBACService):
    with pytest.raises(NotFoundError):
        await service.delete_role(uuid4())


@pytest.mark.asyncio
async def test_get_role_by_name_includes_permissions(role_factory, service: RBACService):
    await role_factory.create(
        name="analyst",
        permissions=[(A.READ, R.TRADE), (A.READ, R.BROKER)],
    )

    role = await service.get_role_by_name("analyst")

    assert [p.permission_string for p in role.permissions] == ["READ BROKER", "READ TRADE"]


@pytest.mark.asyncio
async def test_get_role_by_name_missing_returns_none(service: RBACService):
    assert await service.get_role_by_name("ghost") is None


@pytest.mark.asyncio
async def test_list_roles_ordered_by_name_and_active_only(service: RBACService):
    await service.create_role(name="viewer", display_name="Viewer")
    admin = await service.create_role(name="admin", display_name="Admin")
    await service.create_role(name="moderator", display_name="Moderator")
    await service.update_role(admin.id, is_active=False)

    assert [r.name for r in await service.list_roles()] == ["moderator", "viewer"]
    assert [r.name for r in await service.list_roles(active_only=False)] == [
        "admin",
        "moderator",
        "viewer",
    ]


@pytest.mark.asyncio
async def test_get_role_permissions(role_factory, service: RBACService):
    role = await role_factory.create(permissions=[(A.UPDATE, R.TRADE), (A.CREATE, R.TRADE)])

    permissions = await service.get_role_permissions(role.id)

    assert [p.permission_string for p in permissions] == ["CREATE TRADE", "UPDATE TRADE"]


@pytest.mark.asyncio
async def test_get_role_permissions_unknown_role(service: RBACService):
    with pytest.raises(NotFoundError):
        await service.get_role_permissions(uuid4())
