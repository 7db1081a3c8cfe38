"""
RBAC (Role-Based Access Control).

Permissions are (action, resource) pairs. Roles bundle permissions and
are granted to users, optionally until an expiry time. The engine
resolves what a user may do right now; the service manages the stored
catalog, roles and grants; the seeder installs the default policy.

Usage:
    from propdesk.rbac import RBACEngine, RBACService, UserRoleRepository

    service = RBACService(db)
    engine = RBACEngine(UserRoleRepository(db))
"""

from .types import (
    DEFAULT_PERMISSIONS,
    DefaultRole,
    PermissionAction,
    PermissionCheck,
    PermissionResource,
)
from .models import Permission, Role, RolePermission, UserRole
from .repositories import (
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
    UserRoleRepository,
)
from .engine import RBACContext, RBACData, RBACEngine
from .service import RBACService
from .policies import POLICIES, Policy, get_policy
from .seed import DefaultPolicySeeder, SeedResult, seed_default_policy

__all__ = [
    "DEFAULT_PERMISSIONS",
    "DefaultRole",
    "PermissionAction",
    "PermissionCheck",
    "PermissionResource",
    "Permission",
    "Role",
    "RolePermission",
    "UserRole",
    "PermissionRepository",
    "RolePermissionRepository",
    "RoleRepository",
    "UserRoleRepository",
    "RBACContext",
    "RBACData",
    "RBACEngine",
    "RBACService",
    "POLICIES",
    "Policy",
    "get_policy",
    "DefaultPolicySeeder",
    "SeedResult",
    "seed_default_policy",
]
