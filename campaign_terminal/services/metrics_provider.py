"""
Metrics provider interface - everything the terminal needs from an outreach platform.

Handlers depend only on this class, so tests swap in an in-memory fake and a
second platform would only need a new implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, Literal, get_args

from campaign_terminal.models.domain.metrics_domain import (
    Account,
    CampaignRecord,
    ConnectionStatus,
    DateRange,
    MetricsSnapshot,
)

ResourceKind = Literal[
    "lead_lists",
    "block_list",
    "templates",
    "subsequences",
    "team",
    "audit_log",
    "step_analytics",
    "daily_analytics",
]

RESOURCE_KINDS: tuple[str, ...] = get_args(ResourceKind)


class MetricsProvider(ABC):
    """
    Read-only view of an outreach workspace.

    Implementations raise UpstreamUnavailableError when the platform cannot be
    reached and EntityNotFoundError for a missing entity.
    """

    @abstractmethod
    async def list_campaigns(self, date_range: DateRange | None = None) -> list[CampaignRecord]:
        """Active campaigns, each with analytics for the range (None = all time)."""

    @abstractmethod
    async def get_aggregated_metrics(
        self, entity_id: str, date_range: DateRange | None = None
    ) -> MetricsSnapshot: ...

    @abstractmethod
    async def get_accounts(self) -> list[Account]: ...

    @abstractmethod
    async def list_tags(self) -> list[str]: ...

    @abstractmethod
    async def list_resources(
        self, kind: ResourceKind, search: str | None = None, limit: int = 100
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def get_workspace(self) -> dict[str, Any]: ...

    @abstractmethod
    async def verify_email(self, email: str) -> dict[str, Any]: ...

    @abstractmethod
    async def test_connection(self) -> ConnectionStatus: ...

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
