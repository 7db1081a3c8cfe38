"""Exception classes for propdesk."""


class PropdeskError(Exception):
    """Base exception for propdesk."""

    code = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ConflictError(PropdeskError):
    """Raised when a uniqueness constraint would be violated."""

    code = "conflict"


class NotFoundError(PropdeskError):
    """Raised when a mutation targets a record that does not exist."""

    code = "not_found"


class AuthorizationError(PropdeskError):
    """
    Raised by request handlers when the caller lacks a permission.

    The RBAC engine itself only answers yes/no; turning a "no" into an
    error is the caller's job.
    """

    code = "forbidden"
