"""
Permission checking dependencies.
"""

from typing import Annotated, Callable
from uuid import UUID

import structlog
from fastapi import Depends, Request

from propdesk.core.auth import get_current_user
from propdesk.core.exceptions import AuthorizationError
from propdesk.models.user import User
from propdesk.rbac.engine import RBACContext, RBACEngine
from propdesk.rbac.types import PermissionAction, PermissionResource
from .services import get_rbac_engine

logger = structlog.get_logger()


async def get_rbac_context(
    request: Request,
    current_user: User = Depends(get_current_user),
    engine: RBACEngine = Depends(get_rbac_engine),
) -> RBACContext:
    """
    Resolve the caller's RBAC context once per request.

    The context is kept on request.state.rbac so later dependencies in
    the same request reuse it.
    """
    context = getattr(request.state, "rbac", None)
    if context is None or context.user_id != current_user.id:
        context = await engine.get_rbac_context(current_user.id)
        request.state.rbac = context
    return context


RBAC = Annotated[RBACContext, Depends(get_rbac_context)]


def require_permission(
    action: PermissionAction,
    resource: PermissionResource,
) -> Callable:
    """
    Dependency factory for checking a caller permission.

    Usage:
    ```python
    @router.post("/roles")
    async def create_role(
        data: RoleCreate,
        user: User = Depends(require_permission(PermissionAction.CREATE, PermissionResource.ROLE)),
    ):
        ...
    ```
    """

    async def check_permission(
        current_user: User = Depends(get_current_user),
        context: RBACContext = Depends(get_rbac_context),
    ) -> User:
        if not context.has_permission(action, resource):
            logger.info(
                "Permission denied",
                user_id=str(current_user.id),
                action=action.value,
                resource=resource.value,
            )
            raise AuthorizationError(
                f"Permission denied: {action.value} {resource.value}"
            )
        return current_user

    return check_permission


def _path_uuid(request: Request, param: str) -> UUID | None:
    value = request.path_params.get(param)
    if value is None:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        # Malformed ids are rejected by path validation
        return None


def require_self_or_permission(
    action: PermissionAction,
    resource: PermissionResource,
    user_id_param: str = "user_id",
) -> Callable:
    """
    Dependency factory allowing a user to read their own data, or anyone
    holding the given permission to read someone else's.
    """

    async def check_permission(
        request: Request,
        current_user: User = Depends(get_current_user),
        context: RBACContext = Depends(get_rbac_context),
    ) -> User:
        if _path_uuid(request, user_id_param) == current_user.id:
            return current_user

        if not context.has_permission(action, resource):
            raise AuthorizationError(
                f"Permission denied: {action.value} {resource.value}"
            )
        return current_user

    return check_permission
