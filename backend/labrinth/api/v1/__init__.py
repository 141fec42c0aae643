"""
API Version 1 Router.

Combines all API endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from labrinth.api.v1.endpoints import auth, forum, users

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(forum.router, tags=["Forum"])
router.include_router(users.router, prefix="/user", tags=["Moderation"])
router.include_router(users.admin_router, prefix="/admin", tags=["Admin"])
