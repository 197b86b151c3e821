"""
Command dispatcher - runs a resolved command through limiter, cache and handler.

Flow for one request:
    1. REFRESH and UNKNOWN are answered locally.
    2. Cached handlers are served from the ResultCache when a live entry exists;
       a miss (or forced refresh) is charged against the rate limiter first.
    3. Service errors become typed error reports. Error reports are never cached.
"""

from collections.abc import Callable
from datetime import UTC, datetime

from campaign_terminal.engine.benchmarks import TERMINAL_BENCHMARKS, TerminalBenchmarks
from campaign_terminal.infrastructure.observability.logging import bind_request_context, get_logger
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType, ResolvedCommand
from campaign_terminal.services.errors import (
    EntityNotFoundError,
    InvalidQueryError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from campaign_terminal.services.metrics_provider import MetricsProvider
from campaign_terminal.terminal.cache import ResultCache, cache_key
from campaign_terminal.terminal.handlers import HandlerContext, HandlerSpec, get_handler
from campaign_terminal.terminal.rate_limiter import RateLimiter
from campaign_terminal.terminal.resolver import suggest

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def error_report(
    command: CommandType,
    title: str,
    icon: str,
    section_title: str,
    name: str,
    details: list[str],
    summary: list[str] | None = None,
) -> TerminalReport:
    return TerminalReport(
        type="error",
        command=command.value,
        title=title,
        icon=icon,
        sections=[
            ReportSection(
                title=section_title,
                type="summary",
                items=[ReportItem(name=name, details=details)],
            )
        ],
        summary=summary or [],
    )


def unknown_report(resolved: ResolvedCommand) -> TerminalReport:
    return TerminalReport(
        type="info",
        command=CommandType.UNKNOWN.value,
        title="Command not recognized",
        icon="❓",
        sections=[
            ReportSection(
                title="DID YOU MEAN",
                items=[ReportItem(name=phrase) for phrase in suggest(resolved.raw_text)],
            )
        ],
        summary=[f'Could not understand: "{resolved.raw_text.strip()}"', 'Type "help" for all commands'],
    )


def not_found_report(command: CommandType, error: EntityNotFoundError) -> TerminalReport:
    if error.entity_type == "tag":
        return error_report(
            command,
            title="Tag Not Found",
            icon="🏷️",
            section_title="NOT FOUND",
            name=f'Tag "{error.query}" not found',
            details=['Try "tags" to see all tags'],
        )

    hint = "Try: diagnose [campaign name]" if command is CommandType.DIAGNOSE else 'Try using "list" to see all campaigns'
    return error_report(
        command,
        title="Campaign Not Found",
        icon="🔍",
        section_title="NOT FOUND",
        name=f'No campaign matching "{error.query}"',
        details=[hint],
    )


class CommandDispatcher:
    """
    Executes resolved commands.

    Args:
        provider: Metrics source handed to every handler
        cache: Report cache; reports are stored as their JSON dump
        limiter: Charged once per upstream fetch
        clock: Source of the request's "now" (UTC)
    """

    def __init__(
        self,
        provider: MetricsProvider,
        cache: ResultCache,
        limiter: RateLimiter,
        benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.provider = provider
        self.cache = cache
        self.limiter = limiter
        self.benchmarks = benchmarks
        self._clock = clock

    async def dispatch(self, resolved: ResolvedCommand) -> TerminalReport:
        """Run one command. Never raises; failures come back as error reports."""
        command = resolved.command
        bind_request_context(command=command.value)

        if command is CommandType.REFRESH:
            removed = await self.cache.clear()
            return TerminalReport(
                type="info",
                command=command.value,
                title="Cache Cleared",
                icon="🔄",
                summary=[f"Removed {removed} cached reports", "Next request will fetch fresh data"],
            )

        if resolved.is_unknown:
            logger.info("Unrecognized command", raw_text=resolved.raw_text[:80])
            return unknown_report(resolved)

        ctx = HandlerContext(
            command=command,
            provider=self.provider,
            now=self._clock(),
            params=dict(resolved.params),
            raw_text=resolved.raw_text,
            force_refresh=resolved.force_refresh,
            benchmarks=self.benchmarks,
            run_sub_report=self._run_sub_report,
        )

        try:
            report = await self._fetch_report(get_handler(command), ctx)
        except UpstreamUnavailableError as e:
            logger.error("Upstream unavailable", command=command.value, error=e.message, status_code=e.status_code)
            details = ["Try again in a few minutes or check your connection."]
            if e.detail:
                details.append(e.detail[:200])
            return error_report(command, "Connection Error", "❌", "ERROR", e.message, details)
        except EntityNotFoundError as e:
            logger.info("Entity not found", command=command.value, entity_type=e.entity_type, query=e.query)
            return not_found_report(command, e)
        except RateLimitedError as e:
            return error_report(
                command,
                "Rate Limit Reached",
                "⏳",
                "RATE LIMITED",
                f"Try again in {e.wait_time_minutes} minutes",
                ["Cached reports are still available", "Upstream fetches are paused to protect the API quota"],
            )
        except InvalidQueryError as e:
            return error_report(command, e.title, "⚠️", "INVALID INPUT", e.message, [e.usage])
        except Exception:
            logger.exception("Command failed", command=command.value)
            return error_report(
                command,
                "Error",
                "⚠️",
                "ISSUE",
                "Unexpected error",
                ["Try again, or use a different command"],
                summary=["An error occurred while processing your request"],
            )

        logger.info(
            "Command dispatched",
            command=command.value,
            cached=report.metadata.cached,
            report_type=report.type,
        )
        return report

    async def _run_sub_report(self, ctx: HandlerContext) -> TerminalReport:
        return await self._fetch_report(get_handler(ctx.command), ctx)

    async def _charge(self, command: CommandType) -> None:
        allowed, info = await self.limiter.check_limit()
        if not allowed:
            logger.warning("Upstream fetch refused", command=command.value, retry_after=info["retry_after"])
            raise RateLimitedError(info["wait_time_minutes"], info["retry_after"])

    async def _fetch_report(self, entry: HandlerSpec, ctx: HandlerContext) -> TerminalReport:
        if entry.ttl_class is None:
            if entry.upstream:
                await self._charge(ctx.command)
            return await entry.handler(ctx)

        key = cache_key(ctx.command.value, ctx.params, ctx.today)
        if ctx.force_refresh or not await self.cache.has(key, entry.ttl_class):
            await self._charge(ctx.command)

        async def build() -> dict:
            report = await entry.handler(ctx)
            return report.model_dump(mode="json")

        payload, cached = await self.cache.get_or_fetch(key, entry.ttl_class, build, ctx.force_refresh)
        report = TerminalReport.model_validate(payload)
        if cached:
            report.metadata.cached = True
            report.metadata.timestamp = await self.cache.get_age(key)
        return report
