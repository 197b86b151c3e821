"""
Terminal API Routes
One endpoint: free-text operator query in, rendered report out.
"""

from dataclasses import replace
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.api.terminal_request import TerminalQueryRequest
from campaign_terminal.models.api.terminal_response import TerminalResponse
from campaign_terminal.routes.dependencies import get_dispatcher
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.formatting import render_report
from campaign_terminal.terminal.resolver import resolve

logger = get_logger(__name__)

router = APIRouter(tags=["terminal"])


@router.post("/terminal", response_model=TerminalResponse)
async def run_terminal_query(
    body: TerminalQueryRequest, dispatcher: CommandDispatcher = Depends(get_dispatcher)
):
    """
    Resolve and run one query.

    Always 200: upstream, not-found and rate-limit failures come back as
    typed error reports in `structured`.
    """
    resolved = resolve(body.query)
    if body.force_refresh and not resolved.force_refresh:
        resolved = replace(resolved, force_refresh=True)

    report = await dispatcher.dispatch(resolved)

    return TerminalResponse(
        response_text=render_report(report),
        resolved_command=resolved.command.value,
        params=resolved.params,
        structured=report,
        timestamp=datetime.now(UTC),
    )
