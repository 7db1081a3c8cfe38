"""
Database models.
"""

from .base import (
    Base,
    TimestampMixin,
    UUIDMixin,
    StandardMixin,
)
from .user import User

__all__ = [
    # Base
    "Base",
    # Mixins
    "TimestampMixin",
    "UUIDMixin",
    "StandardMixin",
    # Models
    "User",
]
