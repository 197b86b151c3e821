"""
Task API Routes
Generates the daily and weekly task lists from supplied or live client data.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status

from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.api.task_request import GenerateTasksRequest
from campaign_terminal.models.api.task_response import GenerateTasksResponse
from campaign_terminal.routes.dependencies import get_provider
from campaign_terminal.services.errors import UpstreamUnavailableError
from campaign_terminal.services.metrics_provider import MetricsProvider
from campaign_terminal.services.task_service import (
    tasks_for_snapshots,
    tasks_for_workspace,
    to_response,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/generate", response_model=GenerateTasksResponse)
async def generate_task_lists(
    body: GenerateTasksRequest, provider: MetricsProvider = Depends(get_provider)
):
    """Classify clients and return their tasks, most severe first."""
    now = datetime.now(UTC)

    if body.clients is not None:
        tasks = tasks_for_snapshots(body.clients, now)
        return to_response(tasks, len(body.clients), now)

    try:
        tasks, client_count = await tasks_for_workspace(provider, now, body.include_trends)
    except UpstreamUnavailableError as e:
        logger.error("Task generation failed", error=e.message, status_code=e.status_code)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Metrics provider unavailable: {e.message}",
        ) from e

    return to_response(tasks, client_count, now)
