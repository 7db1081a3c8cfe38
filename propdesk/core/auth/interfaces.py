"""
Authorization interfaces - Core abstractions.

Application code depends ONLY on these interfaces; the RBAC engine is the
implementation wired in at request time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from propdesk.rbac.types import PermissionAction, PermissionCheck, PermissionResource


# ============================================================
# POLICY DECISION
# ============================================================

@dataclass
class PolicyDecision:
    """
    Result of a policy evaluation.

    Attributes:
        allowed: Whether the action is permitted
        reason: Human-readable explanation (for errors/logging)
    """
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls, reason: str | None = None) -> "PolicyDecision":
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str = "Permission denied") -> "PolicyDecision":
        return cls(allowed=False, reason=reason)


# ============================================================
# POLICY ENGINE
# ============================================================

class PolicyEngine(ABC):
    """
    Abstract policy engine interface.

    Evaluates whether a user can perform an action on a resource type.
    Denial is a decision, never an exception.
    """

    @abstractmethod
    async def evaluate(
        self,
        user_id: UUID,
        action: "PermissionAction",
        resource: "PermissionResource",
    ) -> PolicyDecision:
        """
        Evaluate if the user can perform action on resource.

        Returns:
            PolicyDecision with allowed status and reason
        """
        pass

    @abstractmethod
    async def get_permissions(self, user_id: UUID) -> set["PermissionCheck"]:
        """
        Get every (action, resource) pair the user currently holds.
        """
        pass

    @abstractmethod
    async def has_permission(
        self,
        user_id: UUID,
        action: "PermissionAction",
        resource: "PermissionResource",
    ) -> bool:
        """Check if the user holds a specific permission."""
        pass
