"""
Health Check Router - DJ Rank
djrank/routers/health.py

Returns health status of the storage backend and Redis.
"""
from datetime import datetime, timezone
from typing import Dict

import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from djrank.config import get_settings
from djrank.core.dependencies import get_performer_gateway
from djrank.services.gateway import PerformerGateway

router = APIRouter(tags=["Health"])



#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]



#  Dependency Health Checks


def _short_error(e: Exception) -> str:
    error_msg = str(e)
    return error_msg[:100] + "..." if len(error_msg) > 100 else error_msg


async def check_storage(gateway: PerformerGateway) -> str:
    """Check the configured storage backend through the gateway."""
    backend = get_settings().STORAGE_BACKEND
    try:
        if await gateway.ping():
            return f"healthy ({backend})"
        return f"unhealthy: {backend} did not respond"
    except Exception as e:
        return f"unhealthy: {_short_error(e)}"


async def check_redis() -> str:
    """Check Redis connection health."""
    settings = get_settings()
    if not settings.CACHE_ENABLED:
        return "disabled"
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        client.ping()
        client.close()
        return "healthy"
    except Exception as e:
        return f"unhealthy: {_short_error(e)}"



#  Routes


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    responses={503: {"model": HealthResponse}},
)
async def health_check(gateway: PerformerGateway = Depends(get_performer_gateway)):
    dependencies = {
        "storage": await check_storage(gateway),
        "redis": await check_redis(),
    }
    # Redis is optional; only storage decides overall health
    storage_ok = dependencies["storage"].startswith("healthy")
    payload = HealthResponse(
        status="healthy" if storage_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=get_settings().APP_VERSION,
        dependencies=dependencies,
    )
    if not storage_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=payload.model_dump(mode="json"),
        )
    return payload
