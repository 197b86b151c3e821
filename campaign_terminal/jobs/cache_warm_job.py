"""
Cache Warm Job - pre-compute the reports operators open first each morning.

Runs each command in WARM_COMMANDS through the normal dispatcher, so entries
land in the same cache (Redis when configured) under the same keys the API
reads. Commands whose report is already cached cost nothing.

Usage:
    python -m campaign_terminal.jobs.worker cache_warm
"""

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.command_domain import CommandType, ResolvedCommand
from campaign_terminal.services.instantly_client import InstantlyClient
from campaign_terminal.services.redis_client import fast_redis
from campaign_terminal.terminal.cache import ResultCache
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.rate_limiter import build_rate_limiter

logger = get_logger(__name__)

WARM_COMMANDS: tuple[CommandType, ...] = (
    CommandType.DAILY,
    CommandType.LOW_LEADS,
    CommandType.CAMPAIGNS,
    CommandType.INBOX_HEALTH,
    CommandType.BENCHMARKS,
    CommandType.CONVERSION,
)


async def warm_cache(dispatcher: CommandDispatcher) -> dict:
    """
    Dispatch every warm command once.

    Returns:
        dict: {"warmed": [...], "already_cached": [...], "failed": [...]}
    """
    result = {"warmed": [], "already_cached": [], "failed": []}

    for command in WARM_COMMANDS:
        report = await dispatcher.dispatch(ResolvedCommand(command.phrase, command))
        if report.type == "error":
            result["failed"].append(command.value)
            logger.warning("Cache warm failed for command", command=command.value, title=report.title)
        elif report.metadata.cached:
            result["already_cached"].append(command.value)
        else:
            result["warmed"].append(command.value)

    logger.info(
        "Cache warm complete",
        warmed=len(result["warmed"]),
        already_cached=len(result["already_cached"]),
        failed=len(result["failed"]),
    )
    return result


async def run_cache_warm() -> None:
    """Worker entry point: build the services, warm, and clean up."""
    redis_client = None
    if settings.use_redis_cache():
        await fast_redis.initialize()
        redis_client = fast_redis
    else:
        logger.warning("Cache backend is in-memory; warmed entries die with this process")

    provider = InstantlyClient()
    try:
        dispatcher = CommandDispatcher(
            provider, ResultCache.from_settings(redis_client), build_rate_limiter(redis_client)
        )
        await warm_cache(dispatcher)
    finally:
        await provider.close()
        if redis_client is not None:
            await fast_redis.close()
