"""
RBAC value types: actions, resources, permission checks and the
built-in role names.

Actions are flat. MANAGE is its own capability and is never expanded
into CREATE/READ/UPDATE/DELETE; every action must be granted and checked
explicitly.
"""

from enum import Enum
from typing import NamedTuple


class PermissionAction(str, Enum):
    """What a permission allows."""
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MANAGE = "MANAGE"


class PermissionResource(str, Enum):
    """Domain nouns a permission applies to."""
    USER = "USER"
    ROLE = "ROLE"
    PERMISSION = "PERMISSION"
    TRADING_ACCOUNT = "TRADING_ACCOUNT"
    TRADE = "TRADE"
    PROPFIRM = "PROPFIRM"
    BROKER = "BROKER"
    SYMBOL = "SYMBOL"
    SUBSCRIPTION = "SUBSCRIPTION"
    DASHBOARD = "DASHBOARD"
    ADMIN = "ADMIN"


class PermissionCheck(NamedTuple):
    """An (action, resource) pair to test against a user's permissions."""
    action: PermissionAction
    resource: PermissionResource

    def __str__(self) -> str:
        return f"{self.action.value} {self.resource.value}"


class DefaultRole(str, Enum):
    """Names of the system roles created by the seeder."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MODERATOR = "moderator"
    TRADER = "trader"
    VIEWER = "viewer"


_CRUD_RESOURCES = (
    PermissionResource.USER,
    PermissionResource.ROLE,
    PermissionResource.TRADING_ACCOUNT,
    PermissionResource.TRADE,
    PermissionResource.PROPFIRM,
    PermissionResource.BROKER,
    PermissionResource.SYMBOL,
    PermissionResource.SUBSCRIPTION,
)

# Baseline permission catalog
DEFAULT_PERMISSIONS: tuple[PermissionCheck, ...] = (
    *(
        PermissionCheck(action, resource)
        for resource in _CRUD_RESOURCES
        for action in PermissionAction
    ),
    PermissionCheck(PermissionAction.READ, PermissionResource.DASHBOARD),
    PermissionCheck(PermissionAction.MANAGE, PermissionResource.ADMIN),
)
