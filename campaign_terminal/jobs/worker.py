"""
Background worker entry point.

    campaign-terminal-worker cache_warm
    WORKER_JOB=task_digest campaign-terminal-worker

A CLI argument wins over WORKER_JOB; with neither, the cache warm runs.
Jobs are one-shot; schedule them with cron or the platform's scheduler.
"""

import asyncio
import os
import sys
import time
from collections.abc import Awaitable, Callable

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import get_logger, setup_logging
from campaign_terminal.jobs.cache_warm_job import run_cache_warm
from campaign_terminal.jobs.task_digest_job import run_task_digest

logger = get_logger(__name__)

DEFAULT_JOB = "cache_warm"

JobCoroutine = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "cache_warm": run_cache_warm,
    "task_digest": run_task_digest,
}


def _normalize(name: str) -> str:
    return name.strip().lower()


def _resolve_job_name() -> str:
    if len(sys.argv) > 1:
        return _normalize(sys.argv[1])
    return _normalize(os.getenv("WORKER_JOB", DEFAULT_JOB))


async def run_worker(job_name: str | None = None) -> None:
    """Run one registered job to completion. Unknown names raise ValueError."""
    name = _normalize(job_name or _resolve_job_name())
    job = JOB_REGISTRY.get(name)
    if job is None:
        raise ValueError(f"Unknown worker job '{name}'. Available jobs: {', '.join(sorted(JOB_REGISTRY))}")

    started = time.monotonic()
    logger.info("Worker job starting", job=name)
    await job()
    logger.info("Worker job finished", job=name, duration_s=round(time.monotonic() - started, 2))


def main() -> None:
    setup_logging(log_level=settings.LOG_LEVEL)
    asyncio.run(run_worker(_resolve_job_name()))


if __name__ == "__main__":
    main()
