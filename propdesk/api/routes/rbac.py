"""
RBAC routes: role and permission management, user grants, and
authorization checks.
"""

from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.api.dependencies.database import get_db
from propdesk.api.dependencies.permissions import (
    RBAC,
    require_permission,
    require_self_or_permission,
)
from propdesk.api.dependencies.services import get_rbac_engine, get_rbac_service
from propdesk.core.auth import CurrentUser
from propdesk.core.exceptions import NotFoundError
from propdesk.models.user import User
from propdesk.rbac.engine import RBACEngine
from propdesk.rbac.service import RBACService
from propdesk.rbac.types import PermissionAction as A, PermissionResource as R
from propdesk.repositories.user import UserRepository
from propdesk.schemas.rbac import (
    CheckResponse,
    PermissionCreate,
    PermissionResponse,
    PermissionUpdate,
    RBACContextResponse,
    RoleAssign,
    RoleCreate,
    RoleDetailResponse,
    RoleResponse,
    RoleUpdate,
    UserRoleResponse,
)

router = APIRouter()

CanReadUser = Depends(require_self_or_permission(A.READ, R.USER))


def _role_or_404(role, key) -> RoleDetailResponse:
    if role is None:
        raise NotFoundError(f"Role {key} not found")
    return RoleDetailResponse.model_validate(role)


async def _ensure_user(db: AsyncSession, user_id: UUID) -> None:
    if not await UserRepository(db).exists(id=user_id):
        raise NotFoundError(f"User {user_id} not found")


# ============ Roles ============


@router.get("/roles", response_model=list[RoleDetailResponse])
async def list_roles(
    _: CurrentUser,
    active_only: bool = Query(True),
    service: RBACService = Depends(get_rbac_service),
):
    """List roles ordered by name."""
    roles = await service.list_roles(active_only=active_only)
    return [RoleDetailResponse.model_validate(r) for r in roles]


@router.post("/roles", response_model=RoleDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.CREATE, R.ROLE)),
):
    """Create a role."""
    role = await service.create_role(**data.model_dump())
    return RoleDetailResponse.model_validate(role)


@router.get("/roles/by-name/{name}", response_model=RoleDetailResponse)
async def get_role_by_name(
    name: str,
    _: CurrentUser,
    service: RBACService = Depends(get_rbac_service),
):
    """Get a role and its permissions by name."""
    return _role_or_404(await service.get_role_by_name(name), name)


@router.get("/roles/{role_id}", response_model=RoleDetailResponse)
async def get_role(
    role_id: UUID,
    _: CurrentUser,
    service: RBACService = Depends(get_rbac_service),
):
    """Get a role and its permissions by id."""
    return _role_or_404(await service.get_role(role_id), role_id)


@router.patch("/roles/{role_id}", response_model=RoleDetailResponse)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.UPDATE, R.ROLE)),
):
    """Partially update a role."""
    role = await service.update_role(role_id, **data.model_dump(exclude_unset=True))
    return RoleDetailResponse.model_validate(role)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: UUID,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.DELETE, R.ROLE)),
):
    """Hard delete a role along with its links and grants."""
    await service.delete_role(role_id)


@router.get("/roles/{role_id}/permissions", response_model=list[PermissionResponse])
async def get_role_permissions(
    role_id: UUID,
    _: CurrentUser,
    service: RBACService = Depends(get_rbac_service),
):
    """List the permissions linked to a role."""
    permissions = await service.get_role_permissions(role_id)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.post(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=RoleDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_permission_to_role(
    role_id: UUID,
    permission_id: UUID,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.UPDATE, R.ROLE)),
):
    """Link a permission to a role."""
    await service.assign_permission_to_role(role_id, permission_id)
    return RoleDetailResponse.model_validate(await service.get_role(role_id))


@router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_permission_from_role(
    role_id: UUID,
    permission_id: UUID,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.UPDATE, R.ROLE)),
):
    """Unlink a permission from a role."""
    await service.remove_permission_from_role(role_id, permission_id)


# ============ Permissions ============


@router.get("/permissions", response_model=list[PermissionResponse])
async def list_permissions(
    _: CurrentUser,
    active_only: bool = Query(True),
    service: RBACService = Depends(get_rbac_service),
):
    """List permissions ordered by resource, then action."""
    permissions = await service.list_permissions(active_only=active_only)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.get("/permissions/lookup", response_model=PermissionResponse)
async def lookup_permission(
    _: CurrentUser,
    action: A = Query(...),
    resource: R = Query(...),
    service: RBACService = Depends(get_rbac_service),
):
    """Find a permission by its (action, resource) pair."""
    permission = await service.get_permission(action, resource)
    if permission is None:
        raise NotFoundError(f"Permission {action.value} {resource.value} not found")
    return PermissionResponse.model_validate(permission)


@router.post("/permissions", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.CREATE, R.PERMISSION)),
):
    """Add a permission to the catalog."""
    permission = await service.create_permission(
        data.action,
        data.resource,
        description=data.description,
    )
    return PermissionResponse.model_validate(permission)


@router.patch("/permissions/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: UUID,
    data: PermissionUpdate,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.UPDATE, R.PERMISSION)),
):
    """Activate or deactivate a permission."""
    permission = await service.set_permission_active(permission_id, data.is_active)
    return PermissionResponse.model_validate(permission)


# ============ User grants ============


@router.post(
    "/users/{user_id}/roles",
    response_model=UserRoleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_role(
    user_id: UUID,
    data: RoleAssign,
    db: AsyncSession = Depends(get_db),
    service: RBACService = Depends(get_rbac_service),
    current_user: User = Depends(require_permission(A.UPDATE, R.ROLE)),
):
    """Grant a role to a user. assigned_by defaults to the caller."""
    await _ensure_user(db, user_id)
    grant = await service.assign_role(
        user_id,
        data.role_id,
        assigned_by=data.assigned_by or current_user.id,
        expires_at=data.expires_at,
    )
    return UserRoleResponse.model_validate(grant)


@router.delete("/users/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_role(
    user_id: UUID,
    role_id: UUID,
    service: RBACService = Depends(get_rbac_service),
    _: User = Depends(require_permission(A.UPDATE, R.ROLE)),
):
    """Remove every grant of a role from a user."""
    await service.remove_role(user_id, role_id)


@router.get("/users/{user_id}/assignments", response_model=list[UserRoleResponse])
async def list_user_assignments(
    user_id: UUID,
    include_expired: bool = Query(False),
    service: RBACService = Depends(get_rbac_service),
    _: User = CanReadUser,
):
    """List a user's raw grants."""
    grants = await service.list_user_assignments(user_id, include_expired=include_expired)
    return [UserRoleResponse.model_validate(g) for g in grants]


@router.get("/users/{user_id}/roles", response_model=list[RoleResponse])
async def get_user_roles(
    user_id: UUID,
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """Currently effective roles of a user."""
    roles = await engine.get_user_roles(user_id)
    return [RoleResponse.model_validate(r) for r in roles]


@router.get("/users/{user_id}/permissions", response_model=list[PermissionResponse])
async def get_user_permissions(
    user_id: UUID,
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """Currently effective permissions of a user."""
    permissions = await engine.get_user_permissions(user_id)
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.get("/users/{user_id}/context", response_model=RBACContextResponse)
async def get_user_context(
    user_id: UUID,
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """A user's full RBAC context."""
    return RBACContextResponse.model_validate(await engine.get_rbac_context(user_id))


@router.get("/users/{user_id}/check", response_model=CheckResponse)
async def check_permission(
    user_id: UUID,
    action: A = Query(...),
    resource: R = Query(...),
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """Check whether a user holds a permission."""
    decision = await engine.evaluate(user_id, action, resource)
    return CheckResponse(allowed=decision.allowed, reason=decision.reason)


@router.get("/users/{user_id}/check-role", response_model=CheckResponse)
async def check_role(
    user_id: UUID,
    name: str = Query(..., min_length=1),
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """Check whether a user currently holds a role."""
    return CheckResponse(allowed=await engine.has_role(user_id, name))


@router.get("/users/{user_id}/policies/{name}", response_model=CheckResponse)
async def check_policy(
    user_id: UUID,
    name: str,
    engine: RBACEngine = Depends(get_rbac_engine),
    _: User = CanReadUser,
):
    """Evaluate a named policy for a user."""
    try:
        allowed = await engine.check_policy(user_id, name)
    except ValueError as exc:
        raise NotFoundError(str(exc)) from exc
    return CheckResponse(allowed=allowed)


# ============ Current user ============


@router.get("/me", response_model=RBACContextResponse)
async def get_my_context(context: RBAC):
    """The caller's RBAC context, resolved once for this request."""
    return RBACContextResponse.model_validate(context)
