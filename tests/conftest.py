import fnmatch
from datetime import UTC, datetime
from typing import Any

import pytest

from campaign_terminal.models.domain.metrics_domain import (
    Account,
    CampaignRecord,
    ConnectionStatus,
    DateRange,
    MetricsSnapshot,
)
from campaign_terminal.services.errors import EntityNotFoundError, UpstreamUnavailableError
from campaign_terminal.services.metrics_provider import MetricsProvider

# A Wednesday
FROZEN_NOW = datetime(2025, 1, 8, 10, 0, tzinfo=UTC)


def snapshot(**fields) -> MetricsSnapshot:
    """Healthy campaign numbers unless overridden: 20k sent, 1% replies, 10k leads left."""
    defaults = {
        "sent": 20_000,
        "contacted": 10_000,
        "total_leads": 20_000,
        "replies": 200,
        "positive_replies": 20,
        "opportunities": 10,
        "meetings": 10,
    }
    defaults.update(fields)
    return MetricsSnapshot(**defaults)


def campaign(name: str, campaign_id: str | None = None, tags: list[str] | None = None, **fields) -> CampaignRecord:
    return CampaignRecord(
        id=campaign_id or name.lower().replace(" ", "-"),
        name=name,
        tags=tags or [],
        metrics=snapshot(**fields),
    )


def account(email: str, **fields) -> Account:
    fields.setdefault("health_score", 100.0)
    return Account(email=email, **fields)


class FakeMetricsProvider(MetricsProvider):
    """
    In-memory provider.

    campaigns: returned for every range unless a range-specific list is set in
        campaigns_by_range, keyed by the range's start date
    """

    def __init__(
        self,
        campaigns: list[CampaignRecord] | None = None,
        accounts: list[Account] | None = None,
        tags: list[str] | None = None,
        resources: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self.campaigns = campaigns or []
        self.campaigns_by_range: dict[Any, list[CampaignRecord]] = {}
        self.accounts = accounts or []
        self.tags = tags or []
        self.resources = resources or {}
        self.workspace = {"name": "Acme Outbound", "owner_email": "ops@acme.io", "plan": "growth"}
        self.verification = {"is_valid": True, "status": "valid", "reason": None}
        self.connection = ConnectionStatus(success=True, message="ok", campaign_count=3)
        self.fail_with: Exception | None = None
        self.calls: list[str] = []
        self.requested_ranges: list[DateRange | None] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def list_campaigns(self, date_range: DateRange | None = None) -> list[CampaignRecord]:
        self._record("list_campaigns")
        self.requested_ranges.append(date_range)
        if date_range is not None and date_range.start_date in self.campaigns_by_range:
            return list(self.campaigns_by_range[date_range.start_date])
        return list(self.campaigns)

    async def get_aggregated_metrics(self, entity_id: str, date_range: DateRange | None = None) -> MetricsSnapshot:
        self._record("get_aggregated_metrics")
        for record in self.campaigns:
            if record.id == entity_id and record.metrics is not None:
                return record.metrics
        raise EntityNotFoundError("campaign", entity_id)

    async def get_accounts(self) -> list[Account]:
        self._record("get_accounts")
        return list(self.accounts)

    async def list_tags(self) -> list[str]:
        self._record("list_tags")
        return list(self.tags)

    async def list_resources(self, kind, search=None, limit=100):
        self._record(f"list_resources:{kind}")
        return list(self.resources.get(kind, []))[:limit]

    async def get_workspace(self) -> dict[str, Any]:
        self._record("get_workspace")
        return dict(self.workspace)

    async def verify_email(self, email: str) -> dict[str, Any]:
        self._record("verify_email")
        return {"email": email, **self.verification}

    async def test_connection(self) -> ConnectionStatus:
        self._record("test_connection")
        return self.connection


class FakeRedis:
    """Stands in for FastRedisClient."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None

    async def delete_matching(self, pattern: str) -> int:
        doomed = [key for key in self.store if fnmatch.fnmatch(key, pattern)]
        for key in doomed:
            await self.delete(key)
        return len(doomed)

    async def ping(self) -> bool:
        return True


class FrozenClock:
    """Wall clock (epoch seconds) that only moves when told to."""

    def __init__(self, start: float = FROZEN_NOW.timestamp()):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def frozen_now() -> datetime:
    return FROZEN_NOW


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def provider() -> FakeMetricsProvider:
    return FakeMetricsProvider(
        campaigns=[
            campaign("Acme - Healthy", "c1"),
            campaign("Acme - Running Dry", "c2", total_leads=10_500, contacted=10_000),
            campaign("Globex - Weak Copy", "c3", replies=40),
        ],
        accounts=[
            account("good@acme.io", tags=["Acme"]),
            account("down@acme.io", status_code=-1, status_label="disconnected", tags=["Acme"]),
            account("tired@globex.io", health_score=80.0, tags=["Globex"]),
        ],
        tags=["Acme", "Globex"],
    )


@pytest.fixture
def upstream_down() -> UpstreamUnavailableError:
    return UpstreamUnavailableError("Unable to connect to Instantly API", detail="connect timeout")
