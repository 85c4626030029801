"""Health check router: liveness + readiness.

Readiness pings Redis (the Celery broker) with a 2s timeout and reports
whether the Supabase credentials needed for imports are present.
"""

import asyncio
import structlog
from fastapi import APIRouter

from apps.api.core.config import settings
from apps.api.domains.ingestion.service import store_configured

router = APIRouter(tags=["health"])
logger = structlog.get_logger()

REDIS_TIMEOUT_SECONDS = 2


@router.get("/health")
async def health_liveness():
    """Liveness probe: returns 200 if the API process is running."""
    return {"status": "healthy", "service": "api"}


async def _ping_redis(redis_url: str) -> str:
    import redis

    loop = asyncio.get_running_loop()
    try:
        r = redis.from_url(redis_url, socket_connect_timeout=REDIS_TIMEOUT_SECONDS)
        pong = await asyncio.wait_for(
            loop.run_in_executor(None, r.ping),
            timeout=REDIS_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning("redis_health_timeout", timeout_s=REDIS_TIMEOUT_SECONDS)
        return "timeout"
    except Exception as e:
        logger.warning("redis_health_failed", error=str(e))
        return "down"
    return "up" if pong else "down"


@router.get("/health/ready")
async def health_readiness():
    """Readiness probe: Redis connectivity and import store configuration."""
    redis_url = settings.REDIS_URL if settings else "redis://localhost:6379/0"
    services = {
        "api": "up",
        "redis": await _ping_redis(redis_url),
        "store": "configured" if store_configured(settings) else "unconfigured",
    }

    healthy = services["redis"] == "up" and services["store"] == "configured"
    return {"status": "healthy" if healthy else "degraded", "services": services}
