"""
Handler registry - maps every CommandType to the coroutine that builds its report.

Handler modules register themselves at import time:

    @register(CommandType.LOW_LEADS, ttl_class="analytics")
    async def low_leads(ctx: HandlerContext) -> TerminalReport: ...

Handlers can be called directly with a HandlerContext, which is how the unit
tests exercise them without going through the resolver or the cache.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from campaign_terminal.engine.benchmarks import TERMINAL_BENCHMARKS, TerminalBenchmarks
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.services.metrics_provider import MetricsProvider

SubReportRunner = Callable[["HandlerContext"], Awaitable[TerminalReport]]


@dataclass(slots=True)
class HandlerContext:
    """Everything a handler may touch for one request."""

    command: CommandType
    provider: MetricsProvider
    now: datetime
    params: dict[str, str] = field(default_factory=dict)
    raw_text: str = ""
    force_refresh: bool = False
    benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
    # Set by the dispatcher; lets composite reports reuse cached sub-reports
    run_sub_report: SubReportRunner | None = None

    @property
    def today(self) -> date:
        return self.now.date()

    def for_command(self, command: CommandType) -> "HandlerContext":
        return replace(self, command=command, params={}, raw_text=command.phrase)

    async def sub_report(self, command: CommandType) -> TerminalReport:
        sub_ctx = self.for_command(command)
        if self.run_sub_report is not None:
            return await self.run_sub_report(sub_ctx)
        return await HANDLER_REGISTRY[command].handler(sub_ctx)


Handler = Callable[[HandlerContext], Awaitable[TerminalReport]]


@dataclass(slots=True, frozen=True)
class HandlerSpec:
    """
    Registration record for one command.

    ttl_class: cache class for the report; None means never cached
    upstream: False for handlers that make no provider call of their own,
        which are never charged against the rate limiter
    """

    command: CommandType
    handler: Handler
    ttl_class: str | None = "analytics"
    upstream: bool = True


HANDLER_REGISTRY: dict[CommandType, HandlerSpec] = {}


def register(*commands: CommandType, ttl_class: str | None = "analytics", upstream: bool = True):
    """Register a handler for one or more commands."""

    def decorator(func: Handler) -> Handler:
        for command in commands:
            if command in HANDLER_REGISTRY:
                raise ValueError(f"Handler already registered for {command.value}")
            HANDLER_REGISTRY[command] = HandlerSpec(command, func, ttl_class, upstream)
        return func

    return decorator


def get_handler(command: CommandType) -> HandlerSpec:
    try:
        return HANDLER_REGISTRY[command]
    except KeyError:
        raise LookupError(f"No handler registered for {command.value}") from None


def text_report(
    ctx: HandlerContext,
    title: str,
    icon: str,
    section_title: str,
    text: str,
    summary: list[str] | None = None,
    report_type: str = "success",
    **metadata,
) -> TerminalReport:
    """Report whose body is a single pre-rendered markdown block."""
    return TerminalReport(
        type=report_type,
        command=ctx.command.value,
        title=title,
        icon=icon,
        sections=[
            ReportSection(
                title=section_title,
                type="summary",
                items=[ReportItem(name="Full Report", details=[text])],
            )
        ],
        summary=summary or [],
        metadata=ReportMetadata(**metadata),
    )
