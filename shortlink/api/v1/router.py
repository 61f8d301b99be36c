"""API v1 router - aggregates all v1 endpoints."""

from fastapi import APIRouter

from shortlink.api.v1.auth import router as auth_router
from shortlink.api.v1.links import router as links_router
from shortlink.api.v1.notifications import router as notifications_router

router = APIRouter(prefix="/api/v1")

# Include sub-routers
router.include_router(auth_router)
router.include_router(links_router)
router.include_router(notifications_router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
