"""
Authentication and authorization seams.

Authentication resolves a bearer token to a User. Authorization is
answered by a PolicyEngine; the RBAC engine in propdesk.rbac is the
implementation the API wires in.

Usage:
    from propdesk.core.auth import CurrentUser

    @router.get("/me")
    async def handler(user: CurrentUser):
        ...
"""

from .interfaces import PolicyDecision, PolicyEngine
from .dependencies import CurrentUser, get_current_user, bearer_scheme

__all__ = [
    "PolicyDecision",
    "PolicyEngine",
    "CurrentUser",
    "get_current_user",
    "bearer_scheme",
]
