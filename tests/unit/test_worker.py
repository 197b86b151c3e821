import pytest

from campaign_terminal.jobs import worker
from campaign_terminal.jobs.cache_warm_job import WARM_COMMANDS, warm_cache
from campaign_terminal.jobs.task_digest_job import build_digest
from campaign_terminal.terminal.cache import MemoryCacheBackend, ResultCache
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.rate_limiter import SlidingWindowRateLimiter
from tests.conftest import FROZEN_NOW


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_job_name_from_env(monkeypatch):
    monkeypatch.setattr(worker.sys, "argv", ["worker"])
    monkeypatch.setenv("WORKER_JOB", " Task_Digest ")

    assert worker._resolve_job_name() == "task_digest"


def test_job_name_defaults_to_cache_warm(monkeypatch):
    monkeypatch.setattr(worker.sys, "argv", ["worker"])
    monkeypatch.delenv("WORKER_JOB", raising=False)

    assert worker._resolve_job_name() == "cache_warm"


@pytest.mark.asyncio
async def test_warm_cache_fills_then_skips(provider, clock):
    dispatcher = CommandDispatcher(
        provider,
        ResultCache(MemoryCacheBackend(), clock=clock),
        SlidingWindowRateLimiter(max_requests=50, window_seconds=3600, clock=clock),
        clock=lambda: FROZEN_NOW,
    )

    first = await warm_cache(dispatcher)
    second = await warm_cache(dispatcher)

    assert first["warmed"] == [c.value for c in WARM_COMMANDS]
    assert first["failed"] == []
    assert second["already_cached"] == first["warmed"]


@pytest.mark.asyncio
async def test_warm_cache_reports_failures(provider, clock, upstream_down):
    provider.fail_with = upstream_down
    dispatcher = CommandDispatcher(
        provider,
        ResultCache(MemoryCacheBackend(), clock=clock),
        SlidingWindowRateLimiter(max_requests=50, window_seconds=3600, clock=clock),
    )

    result = await warm_cache(dispatcher)

    assert result["warmed"] == []
    assert len(result["failed"]) == len(WARM_COMMANDS)


@pytest.mark.asyncio
async def test_build_digest(provider):
    tasks = await build_digest(provider, now=FROZEN_NOW)

    assert {t.entity_name for t in tasks.daily} == {"Acme", "Globex"}
    assert tasks.weekly[-1].id == "portfolio-summary-2025-01-08"
