"""
Metrics domain models - what the outreach platform reports about campaigns and inboxes.

Snapshots are read-only inputs to the classifiers; every derived rate is a
percentage and is 0 when its denominator is 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal

TrendDirection = Literal["improving", "stable", "declining"]
NamedPeriod = Literal["today", "week", "month", "all"]


def _pct(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100 if denominator > 0 else 0.0


@dataclass(slots=True, frozen=True)
class DateRange:
    """Inclusive calendar-day window passed to the metrics provider."""

    start_date: date
    end_date: date

    @classmethod
    def for_period(cls, period: NamedPeriod, today: date | None = None) -> DateRange | None:
        """Resolve a named period; "all" means no range (all-time)."""
        today = today or date.today()
        if period == "today":
            return cls(today, today)
        if period == "week":
            return cls(today - timedelta(days=7), today)
        if period == "month":
            return cls(today - timedelta(days=30), today)
        return None

    @classmethod
    def previous_week(cls, today: date | None = None) -> DateRange:
        today = today or date.today()
        return cls(today - timedelta(days=14), today - timedelta(days=7))

    def as_params(self) -> dict[str, str]:
        return {"start_date": self.start_date.isoformat(), "end_date": self.end_date.isoformat()}


@dataclass(slots=True, frozen=True)
class MetricsSnapshot:
    """Raw counts for one campaign (or an aggregate of several)."""

    sent: int = 0
    contacted: int = 0
    total_leads: int = 0
    replies: int = 0
    positive_replies: int = 0
    opportunities: int = 0
    meetings: int = 0
    bounced: int = 0
    opened: int = 0
    uncontacted_reported: int | None = None

    @property
    def uncontacted(self) -> int:
        if self.uncontacted_reported is not None:
            return self.uncontacted_reported
        return max(0, self.total_leads - self.contacted)

    @property
    def reply_rate(self) -> float:
        return _pct(self.replies, self.sent)

    @property
    def open_rate(self) -> float:
        return _pct(self.opened, self.sent)

    @property
    def bounce_rate(self) -> float:
        return _pct(self.bounced, self.sent)

    @property
    def reply_to_opportunity_rate(self) -> float:
        return _pct(self.opportunities, self.replies)

    @property
    def positive_reply_to_meeting_rate(self) -> float:
        return _pct(self.meetings, self.positive_replies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sent": self.sent,
            "contacted": self.contacted,
            "uncontacted": self.uncontacted,
            "total_leads": self.total_leads,
            "replies": self.replies,
            "reply_rate": round(self.reply_rate, 2),
            "positive_replies": self.positive_replies,
            "opportunities": self.opportunities,
            "reply_to_opportunity_rate": round(self.reply_to_opportunity_rate, 2),
            "meetings": self.meetings,
            "positive_reply_to_meeting_rate": round(self.positive_reply_to_meeting_rate, 2),
            "bounced": self.bounced,
            "bounce_rate": round(self.bounce_rate, 2),
        }

    @classmethod
    def combine(cls, snapshots: list[MetricsSnapshot]) -> MetricsSnapshot:
        """Sum a batch of snapshots into one aggregate."""
        return cls(
            sent=sum(s.sent for s in snapshots),
            contacted=sum(s.contacted for s in snapshots),
            total_leads=sum(s.total_leads for s in snapshots),
            replies=sum(s.replies for s in snapshots),
            positive_replies=sum(s.positive_replies for s in snapshots),
            opportunities=sum(s.opportunities for s in snapshots),
            meetings=sum(s.meetings for s in snapshots),
            bounced=sum(s.bounced for s in snapshots),
            opened=sum(s.opened for s in snapshots),
            uncontacted_reported=sum(s.uncontacted for s in snapshots),
        )


@dataclass(slots=True)
class CampaignRecord:
    id: str
    name: str
    status: str = "active"
    tags: list[str] = field(default_factory=list)
    metrics: MetricsSnapshot | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(slots=True)
class Account:
    """A sending inbox as reported by the platform."""

    email: str
    status_code: int = 1
    status_label: Literal["connected", "disconnected", "warmup"] = "connected"
    error_message: str | None = None
    health_score: float | None = None
    warmup_score: float | None = None
    landed_inbox: float | None = None
    landed_spam: float | None = None
    warmup_enabled: bool = True
    daily_limit: int = 50
    provider: str = "Unknown"
    tags: list[str] = field(default_factory=list)
    last_used: datetime | None = None

    @property
    def is_disconnected(self) -> bool:
        return self.status_code in (0, -1) or self.status_label == "disconnected"

    @property
    def is_connected(self) -> bool:
        return not self.is_disconnected

    @property
    def effective_health(self) -> float:
        """Health score, falling back to warmup score, then a clean 100."""
        return self.health_score or self.warmup_score or 100

    @property
    def has_error(self) -> bool:
        return bool(self.error_message)


@dataclass(slots=True)
class ConnectionStatus:
    success: bool
    message: str
    campaign_count: int | None = None


@dataclass(slots=True)
class ClientMetrics:
    total_sent: int
    total_opened: int
    total_replies: int
    reply_rate: float
    open_rate: float
    positive_replies: int
    opportunities: int
    conversion_rate: float
    uncontacted_leads: int
    total_leads: int
    active_campaigns: int
    active_inboxes: int
    disconnected_inboxes: int
    low_health_inboxes: int
    avg_inbox_health: float
    total_bounced: int = 0

    @property
    def bounce_rate(self) -> float:
        return _pct(self.total_bounced, self.total_sent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sent": self.total_sent,
            "total_replies": self.total_replies,
            "reply_rate": round(self.reply_rate, 2),
            "positive_replies": self.positive_replies,
            "opportunities": self.opportunities,
            "conversion_rate": round(self.conversion_rate, 2),
            "uncontacted_leads": self.uncontacted_leads,
            "total_leads": self.total_leads,
            "active_campaigns": self.active_campaigns,
            "active_inboxes": self.active_inboxes,
            "disconnected_inboxes": self.disconnected_inboxes,
            "low_health_inboxes": self.low_health_inboxes,
            "avg_inbox_health": round(self.avg_inbox_health, 1),
        }


@dataclass(slots=True)
class InboxHealthSummary:
    total: int
    healthy: int
    low_health: int
    disconnected: int
    warming: int
    avg_health_score: float


@dataclass(slots=True)
class ClientTrend:
    name: str
    reply_rate: float
    previous_reply_rate: float
    change: float
    trend: TrendDirection


@dataclass(slots=True)
class WeeklyTrendData:
    week: str
    clients: list[ClientTrend] = field(default_factory=list)

    @property
    def declining(self) -> list[ClientTrend]:
        return [c for c in self.clients if c.trend == "declining"]

    @property
    def improving(self) -> list[ClientTrend]:
        return [c for c in self.clients if c.trend == "improving"]
