# audit_pipeline/api/routers/health.py

from fastapi import APIRouter, Request

from audit_pipeline.config.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check with correlation ID from request state."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "cache_backend": settings.cache_backend,
    }
