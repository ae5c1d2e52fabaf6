"""Health check API endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from superagent_server.config import Settings, get_settings

router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "superagent-server"


@router.get("")
async def health_check(settings: Settings = Depends(get_settings)) -> dict:
    """Basic health check; reports whether the API keys are configured."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.environment,
        "hasComposioKey": bool(settings.composio_api_key),
        "hasGoogleKey": bool(settings.google_generative_ai_api_key),
    }


@router.get("/ready")
async def readiness_check(settings: Settings = Depends(get_settings)) -> dict:
    """Readiness check for Kubernetes/Cloud Run."""
    return {
        "status": "ready",
        "service": SERVICE_NAME,
        "environment": settings.environment,
    }
