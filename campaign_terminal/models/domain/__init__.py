from .classification_domain import (
    AutoTask,
    AutoTaskTemplate,
    CampaignBucket,
    ClassificationResult,
    ClientClassification,
    DetectedIssue,
    InboxAction,
    InboxHealthReport,
    InboxIssueType,
    InboxSeverity,
    IssueBucket,
    ProcessedInbox,
    Severity,
    TaskLists,
    Urgency,
)
from .command_domain import CommandType, ResolvedCommand
from .metrics_domain import (
    Account,
    CampaignRecord,
    ClientMetrics,
    ClientTrend,
    ConnectionStatus,
    DateRange,
    InboxHealthSummary,
    MetricsSnapshot,
    WeeklyTrendData,
)

__all__ = [
    "Account",
    "AutoTask",
    "AutoTaskTemplate",
    "CampaignBucket",
    "CampaignRecord",
    "ClassificationResult",
    "ClientClassification",
    "ClientMetrics",
    "ClientTrend",
    "CommandType",
    "ConnectionStatus",
    "DateRange",
    "DetectedIssue",
    "InboxAction",
    "InboxHealthReport",
    "InboxHealthSummary",
    "InboxIssueType",
    "InboxSeverity",
    "IssueBucket",
    "MetricsSnapshot",
    "ProcessedInbox",
    "ResolvedCommand",
    "Severity",
    "TaskLists",
    "Urgency",
    "WeeklyTrendData",
]
