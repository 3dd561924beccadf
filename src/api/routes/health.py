"""
Health check route.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from src.config import get_settings


router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Liveness probe. Reports the storage backend and quote cache state.
    """
    settings = get_settings()
    provider = request.app.state.quote_provider
    quote_cache = provider.cache_stats()
    return {
        "status": "healthy",
        "app": settings.app_name,
        "storage_backend": settings.storage_backend,
        "quote_provider_configured": bool(settings.alpha_vantage_api_key),
        "quote_cache": quote_cache,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
