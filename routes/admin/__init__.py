# routes/admin/__init__.py
"""
Admin module combining the admin-only routers.

Mounted by app.py under /api/admin; every endpoint requires the admin role.
"""
from fastapi import APIRouter

from .users import router as users_router

router = APIRouter()

router.include_router(users_router, tags=["Admin"])

__all__ = ["router"]
