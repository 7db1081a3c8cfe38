"""
User repository.
"""

from propdesk.models.user import User

from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data access for user accounts."""

    model = User
