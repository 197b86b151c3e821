"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request

from campaign_terminal.config import settings
from campaign_terminal.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "campaign-terminal"}


@router.get("/health")
async def health(request: Request):
    """
    Liveness plus the state of the cache, rate limiter and metrics provider.

    Never calls the outreach platform, so it does not spend rate-limit budget.
    """
    state = request.app.state
    checks = {}

    cache = state.cache
    checks["cache"] = {"ok": True, "backend": cache.backend.name, "ttls": cache.ttls}

    if cache.backend.name == "redis":
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        checks["cache"].update(ok=redis_ok, latency_ms=round((time.time() - t0) * 1000, 1))

    limiter = state.limiter
    checks["rate_limiter"] = {
        "backend": limiter.name,
        "ok": True,
        "limit": limiter.max_requests,
        "remaining": await limiter.remaining(),
        "window_seconds": limiter.window_seconds,
    }

    api_key_set = bool(getattr(state.provider, "api_key", None))
    checks["provider"] = {
        "ok": api_key_set,
        "name": type(state.provider).__name__,
        "issues": None if api_key_set else ["INSTANTLY_API_KEY not set"],
    }

    overall_ok = all(check["ok"] for check in checks.values())
    return {
        "status": "ok" if overall_ok else "degraded",
        "environment": settings.environment,
        "checks": checks,
        "timestamp": time.time(),
    }
