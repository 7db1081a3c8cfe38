"""
Service dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from propdesk.rbac.engine import RBACEngine
from propdesk.rbac.repositories import UserRoleRepository
from propdesk.rbac.service import RBACService


async def get_rbac_service(db: AsyncSession = Depends(get_db)) -> RBACService:
    """Get RBAC management service instance."""
    return RBACService(db)


async def get_rbac_engine(db: AsyncSession = Depends(get_db)) -> RBACEngine:
    """Get RBAC evaluation engine bound to the request session."""
    return RBACEngine(UserRoleRepository(db))
