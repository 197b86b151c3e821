"""
Task Digest Job - generate today's task lists from the live workspace and log them.

Usage:
    WORKER_JOB=task_digest python -m campaign_terminal.jobs.worker
"""

from datetime import UTC, datetime

from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.classification_domain import TaskLists
from campaign_terminal.services.instantly_client import InstantlyClient
from campaign_terminal.services.metrics_provider import MetricsProvider
from campaign_terminal.services.task_service import tasks_for_workspace

logger = get_logger(__name__)


async def build_digest(provider: MetricsProvider, now: datetime | None = None) -> TaskLists:
    now = now or datetime.now(UTC)
    tasks, client_count = await tasks_for_workspace(provider, now)

    for task in tasks.daily + tasks.weekly:
        logger.info(
            "Task",
            horizon=task.horizon,
            severity=task.severity.value,
            client=task.entity_name,
            title=task.title,
            due_date=task.due_date.isoformat(),
        )

    logger.info(
        "Task digest complete",
        client_count=client_count,
        daily_count=len(tasks.daily),
        weekly_count=len(tasks.weekly),
    )
    return tasks


async def run_task_digest() -> None:
    provider = InstantlyClient()
    try:
        await build_digest(provider)
    finally:
        await provider.close()
