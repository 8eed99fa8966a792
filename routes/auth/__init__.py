# routes/auth/__init__.py
"""
Authentication module - Combines all auth-related routers
"""
from fastapi import APIRouter
from routes.auth import authentication, registration

# Create main router
router = APIRouter()

# Include all sub-routers
router.include_router(authentication.router, tags=["Authentication"])
router.include_router(registration.router, tags=["Authentication"])
