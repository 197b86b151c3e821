# campaign_terminal/models/api/task_request.py
"""
Task generation request models.
"""

from pydantic import BaseModel, Field


class ClientSnapshotInput(BaseModel):
    """Pre-aggregated client numbers supplied by the caller."""

    client_name: str = Field(..., min_length=1, description="Client display name")
    total_sent: int = Field(default=0, ge=0)
    total_replies: int = Field(default=0, ge=0)
    positive_replies: int = Field(default=0, ge=0)
    opportunities: int = Field(default=0, ge=0)
    uncontacted_leads: int = Field(default=0, ge=0)
    total_leads: int = Field(default=0, ge=0)
    active_campaigns: int = Field(default=0, ge=0)
    active_inboxes: int = Field(default=0, ge=0)
    disconnected_inboxes: int = Field(default=0, ge=0)
    low_health_inboxes: int = Field(default=0, ge=0)
    avg_inbox_health: float = Field(default=0.0, ge=0, le=100)


class GenerateTasksRequest(BaseModel):
    """
    Either supply clients to classify, or leave empty to fetch and classify
    the live workspace.
    """

    clients: list[ClientSnapshotInput] | None = Field(
        default=None, description="Clients to classify; omit for live data"
    )
    include_trends: bool = Field(default=True, description="Compare against the previous week")
