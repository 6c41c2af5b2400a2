"""API routers, mounted under /api."""

from fastapi import APIRouter

from .favorites import router as favorites_router
from .narration import router as narration_router
from .ratings import router as ratings_router
from .routes import router as experiences_router

router = APIRouter()
router.include_router(experiences_router, tags=["experiences"])
router.include_router(favorites_router, tags=["favorites"])
router.include_router(ratings_router, tags=["ratings"])
router.include_router(narration_router, tags=["narration"])

__all__ = ["router"]
