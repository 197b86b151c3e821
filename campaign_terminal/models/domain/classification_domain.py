"""
Classification domain models - buckets, severities, detected issues and tasks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from campaign_terminal.models.domain.metrics_domain import ClientMetrics, MetricsSnapshot


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER[self]


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class Urgency(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return URGENCY_ORDER[self]


URGENCY_ORDER: dict[Urgency, int] = {
    Urgency.URGENT: 0,
    Urgency.HIGH: 1,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 3,
}


class CampaignBucket(str, Enum):
    """Per-campaign action bucket."""

    NEED_NEW_LIST = "NEED NEW LIST"
    NOT_PRIORITY = "NOT PRIORITY"
    REVIEW = "REVIEW"
    NO_ACTION = "NO ACTION"
    PENDING = "PENDING"

    @property
    def priority(self) -> int:
        return CAMPAIGN_BUCKET_PRIORITY[self]


CAMPAIGN_BUCKET_PRIORITY: dict[CampaignBucket, int] = {
    CampaignBucket.NEED_NEW_LIST: 1,
    CampaignBucket.NOT_PRIORITY: 2,
    CampaignBucket.REVIEW: 3,
    CampaignBucket.NO_ACTION: 4,
    CampaignBucket.PENDING: 5,
}


class IssueBucket(str, Enum):
    """Per-client issue bucket."""

    DELIVERABILITY_ISSUE = "DELIVERABILITY_ISSUE"
    VOLUME_ISSUE = "VOLUME_ISSUE"
    COPY_ISSUE = "COPY_ISSUE"
    SUBSEQUENCE_ISSUE = "SUBSEQUENCE_ISSUE"
    TAM_EXHAUSTED = "TAM_EXHAUSTED"
    TOO_EARLY = "TOO_EARLY"
    NOT_VIABLE = "NOT_VIABLE"
    PERFORMING_WELL = "PERFORMING_WELL"

    @property
    def priority(self) -> int:
        return ISSUE_BUCKET_PRIORITY[self]


# Display priority used by dashboards when grouping clients
ISSUE_BUCKET_PRIORITY: dict[IssueBucket, int] = {
    IssueBucket.DELIVERABILITY_ISSUE: 0,
    IssueBucket.VOLUME_ISSUE: 1,
    IssueBucket.COPY_ISSUE: 2,
    IssueBucket.SUBSEQUENCE_ISSUE: 3,
    IssueBucket.TAM_EXHAUSTED: 4,
    IssueBucket.TOO_EARLY: 5,
    IssueBucket.NOT_VIABLE: 6,
    IssueBucket.PERFORMING_WELL: 7,
}


class InboxIssueType(str, Enum):
    DISCONNECTED = "disconnected"
    AUTH_ERROR = "auth_error"
    SMTP_ERROR = "smtp_error"
    SENDING_ERROR = "sending_error"
    LOW_HEALTH = "low_health"
    WARMUP_DISABLED = "warmup_disabled"


class InboxSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    NONE = "none"

    @property
    def weight(self) -> int:
        return INBOX_SEVERITY_WEIGHT[self]


INBOX_SEVERITY_WEIGHT: dict[InboxSeverity, int] = {
    InboxSeverity.NONE: 0,
    InboxSeverity.MEDIUM: 1,
    InboxSeverity.HIGH: 2,
    InboxSeverity.CRITICAL: 3,
}

TaskCategory = Literal[
    "volume",
    "copy",
    "subsequence",
    "deliverability",
    "recycle",
    "review",
    "monitor",
    "benchmark",
    "conversion",
    "trends",
]
TaskHorizon = Literal["daily", "weekly"]


@dataclass(slots=True, frozen=True)
class ClassificationResult:
    """Outcome of classifying one campaign. Recomputed per request, never mutated."""

    entity_id: str
    entity_name: str
    bucket: CampaignBucket
    urgency: Urgency
    severity: Severity
    reason: str
    recommended_action: str
    metrics: MetricsSnapshot
    benchmark_note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entity_id,
            "name": self.entity_name,
            "classification": self.bucket.value,
            "urgency": self.urgency.value,
            "severity": self.severity.value,
            "reason": self.reason,
            "action": self.recommended_action,
            "benchmark": self.benchmark_note,
            **self.metrics.to_dict(),
        }


@dataclass(slots=True, frozen=True)
class AutoTaskTemplate:
    title: str
    description: str
    category: TaskCategory


@dataclass(slots=True, frozen=True)
class ClientClassification:
    client_id: str
    client_name: str
    bucket: IssueBucket
    severity: Severity
    reason: str
    metrics: ClientMetrics
    auto_task: AutoTaskTemplate
    analyzed_at: datetime


@dataclass(slots=True, frozen=True)
class DetectedIssue:
    type: InboxIssueType
    severity: InboxSeverity
    message: str
    detail: str | None = None


@dataclass(slots=True, frozen=True)
class InboxAction:
    label: str
    action: str
    priority: Urgency
    steps: tuple[str, ...]


@dataclass(slots=True)
class ProcessedInbox:
    email: str
    status: str
    status_message: str | None
    health_score: float | None
    daily_limit: int
    warmup_enabled: bool
    issues: list[DetectedIssue]
    severity: InboxSeverity
    actions: list[InboxAction]
    tags: list[str] = field(default_factory=list)
    days_since_last_used: int | None = None

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    @property
    def lost_capacity(self) -> int:
        return self.daily_limit if self.issues else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "status": self.status,
            "status_message": self.status_message,
            "health_score": self.health_score or 0,
            "daily_limit": self.daily_limit,
            "issues": [issue.message for issue in self.issues],
            "severity": self.severity.value,
            "actions": [action.label for action in self.actions],
            "tags": list(self.tags),
        }


@dataclass(slots=True)
class InboxHealthReport:
    critical: list[ProcessedInbox]
    high: list[ProcessedInbox]
    medium: list[ProcessedInbox]
    healthy: list[ProcessedInbox]
    issue_types: dict[InboxIssueType, int]

    @property
    def inboxes(self) -> list[ProcessedInbox]:
        return [*self.critical, *self.high, *self.medium, *self.healthy]

    @property
    def total(self) -> int:
        return len(self.inboxes)

    @property
    def with_issues(self) -> int:
        return len(self.critical) + len(self.high) + len(self.medium)

    @property
    def total_lost_capacity(self) -> int:
        return sum(inbox.lost_capacity for inbox in self.inboxes)

    @property
    def health_percentage(self) -> float:
        if not self.total:
            return 100.0
        return round(len(self.healthy) / self.total * 100, 1)


@dataclass(slots=True)
class AutoTask:
    id: str
    horizon: TaskHorizon
    bucket: IssueBucket
    severity: Severity
    entity_name: str
    title: str
    description: str
    category: TaskCategory
    due_date: datetime
    created_at: datetime
    metrics: dict[str, Any] = field(default_factory=dict)
    # Owned by the caller; the generator always emits False
    completed: bool = False


@dataclass(slots=True)
class TaskLists:
    daily: list[AutoTask]
    weekly: list[AutoTask]
