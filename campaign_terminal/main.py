"""
Campaign Terminal API - FastAPI app with service lifecycle management.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    log_request,
    setup_logging,
)
from campaign_terminal.routes import health, tasks, terminal
from campaign_terminal.services.instantly_client import InstantlyClient
from campaign_terminal.services.redis_client import fast_redis
from campaign_terminal.terminal.cache import ResultCache
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.rate_limiter import build_rate_limiter

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the provider, cache, limiter and dispatcher; tear them down on exit."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []
    redis_client = None

    try:
        if settings.use_redis_cache():
            logger.info("Initializing Redis connection")
            await fast_redis.initialize()
            redis_client = fast_redis
            startup_tasks.append("redis")

        provider = InstantlyClient()
        startup_tasks.append("provider")

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)
        if "redis" in startup_tasks:
            try:
                await fast_redis.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up Redis", error=str(cleanup_error))
        raise

    cache = ResultCache.from_settings(redis_client)
    limiter = build_rate_limiter(redis_client)

    app.state.provider = provider
    app.state.cache = cache
    app.state.limiter = limiter
    app.state.dispatcher = CommandDispatcher(provider, cache, limiter)

    logger.info(
        "All services initialized successfully",
        services=startup_tasks,
        cache_backend=cache.backend.name,
        rate_limit=limiter.max_requests,
        rate_limit_backend=limiter.name,
    )

    yield

    logger.info("Application shutting down")
    shutdown_errors = []

    try:
        await provider.close()
    except Exception as e:
        logger.error("Error closing metrics provider", error=str(e))
        shutdown_errors.append(f"Provider: {e}")

    if "redis" in startup_tasks:
        try:
            logger.info("Closing Redis connection")
            await fast_redis.close()
        except Exception as e:
            logger.error("Error closing Redis", error=str(e))
            shutdown_errors.append(f"Redis: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Campaign Terminal",
    description="Command terminal for cold-email campaign operations",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(terminal.router)
app.include_router(tasks.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag the request's logs with an id and log its timing."""
    request_id = str(uuid.uuid4())
    clear_request_context()
    bind_request_context(request_id=request_id)

    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    response.headers["X-Request-ID"] = request_id
    log_request(request.method, request.url.path, response.status_code, round(process_time, 2))
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
