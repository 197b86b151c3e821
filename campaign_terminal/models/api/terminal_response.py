# campaign_terminal/models/api/terminal_response.py
"""
Terminal API response models.

TerminalReport is both the structured payload returned to clients and the
unit stored in the result cache (as its JSON dump).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReportType = Literal["success", "info", "error"]
SectionType = Literal["status", "list", "summary"]
ItemPriority = Literal["URGENT", "CRITICAL", "HIGH", "WARNING", "MEDIUM", "LOW"]


class ReportItem(BaseModel):
    """One entity line inside a list section."""

    name: str = Field(..., description="Entity name")
    details: list[str] = Field(default_factory=list, description="Detail lines")
    priority: ItemPriority | None = Field(None, description="Priority badge")
    metrics: dict[str, Any] = Field(default_factory=dict, description="Raw metric values")


class SectionStatus(BaseModel):
    """Single headline value for a status section."""

    label: str
    value: str | int | float
    icon: str = ""
    change: str | None = None


class ReportSection(BaseModel):
    title: str = Field(..., description="Section heading")
    type: SectionType = Field(default="list", description="status, list or summary")
    count: int | None = Field(None, description="Number of entities behind the section")
    items: list[ReportItem] = Field(default_factory=list)
    status: SectionStatus | None = None


class ReportMetadata(BaseModel):
    timestamp: str = Field(default="just now", description="Data age, e.g. '5 minutes ago'")
    cached: bool = Field(default=False, description="Served from the result cache")
    campaign_count: int | None = None
    issue_count: int | None = None
    raw_campaigns: list[dict[str, Any]] | None = Field(
        None, description="Classified campaigns for full-table views"
    )
    raw_accounts: list[dict[str, Any]] | None = Field(
        None, description="Processed inboxes for full-table views"
    )
    extra: dict[str, Any] = Field(default_factory=dict)


class TerminalReport(BaseModel):
    """Structured report produced by a command handler."""

    type: ReportType = "success"
    command: str = Field(..., description="Canonical command that produced the report")
    title: str
    icon: str = ""
    sections: list[ReportSection] = Field(default_factory=list)
    summary: list[str] = Field(default_factory=list)
    metadata: ReportMetadata = Field(default_factory=ReportMetadata)


class TerminalResponse(BaseModel):
    """Response body for POST /terminal."""

    response_text: str = Field(..., description="Markdown-ish rendering of the report")
    resolved_command: str = Field(..., description="Canonical command the query resolved to")
    params: dict[str, str] = Field(default_factory=dict, description="Parameters extracted from the query")
    structured: TerminalReport
    timestamp: datetime
