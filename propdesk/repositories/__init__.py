"""
Repository pattern for data access.
"""

from propdesk.repositories.base import BaseRepository
from propdesk.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
