# app/api/v1/routes_health.py
from fastapi import APIRouter
from app.core.config import settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check():
    """
    Health check endpoint; also says whether the external router is in use.
    """
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "external_router": settings.OSRM_BASE_URL if settings.OSRM_ENABLED else None,
    }
