"""
API routes aggregation.
"""

from fastapi import APIRouter

from .rbac import router as rbac_router

router = APIRouter()

router.include_router(rbac_router, prefix="/rbac", tags=["rbac"])
