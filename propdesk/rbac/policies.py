"""
Named composite policies.

Call sites ask for a business rule by name ("can_manage_trades") instead
of scattering raw (action, resource) pairs. Each entry is either a single
permission check or a set of role names where holding any one is enough.

Usage:
    allowed = await engine.check_policy(user_id, "can_access_admin")
"""

from dataclasses import dataclass

from .types import DefaultRole, PermissionAction, PermissionCheck, PermissionResource


@dataclass(frozen=True)
class Policy:
    """A named rule: a permission check, or any-of role names."""

    name: str
    permission: PermissionCheck | None = None
    roles: tuple[str, ...] = ()
    description: str = ""


def _perm(action: PermissionAction, resource: PermissionResource) -> PermissionCheck:
    return PermissionCheck(action, resource)


POLICIES: dict[str, Policy] = {
    policy.name: policy
    for policy in (
        Policy(
            "is_super_admin",
            roles=(DefaultRole.SUPER_ADMIN.value,),
            description="Holds the super_admin role",
        ),
        Policy(
            "is_admin",
            roles=(DefaultRole.SUPER_ADMIN.value, DefaultRole.ADMIN.value),
            description="Holds super_admin or admin",
        ),
        Policy(
            "can_manage_users",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.USER),
        ),
        Policy(
            "can_manage_roles",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.ROLE),
        ),
        Policy(
            "can_access_admin",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.ADMIN),
            description="May open the admin panel",
        ),
        Policy(
            "can_manage_trading_accounts",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.TRADING_ACCOUNT),
        ),
        Policy(
            "can_manage_trades",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.TRADE),
        ),
        Policy(
            "can_view_dashboard",
            permission=_perm(PermissionAction.READ, PermissionResource.DASHBOARD),
        ),
        Policy(
            "can_manage_propfirms",
            permission=_perm(PermissionAction.MANAGE, PermissionResource.PROPFIRM),
        ),
        Policy(
            "can_create_propfirms",
            permission=_perm(PermissionAction.CREATE, PermissionResource.PROPFIRM),
        ),
        Policy(
            "can_update_propfirms",
            permission=_perm(PermissionAction.UPDATE, PermissionResource.PROPFIRM),
        ),
        Policy(
            "can_delete_propfirms",
            permission=_perm(PermissionAction.DELETE, PermissionResource.PROPFIRM),
        ),
    )
}


def get_policy(name: str) -> Policy:
    """
    Look up a policy by name.

    Raises:
        ValueError: If no policy has that name
    """
    policy = POLICIES.get(name)
    if policy is None:
        raise ValueError(
            f"Unknown policy: '{name}'. "
            f"Available: {sorted(POLICIES)}"
        )
    return policy
