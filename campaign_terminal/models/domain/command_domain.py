"""
Command domain models - the closed set of terminal commands and a resolved request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CommandType(str, Enum):
    # Campaign reports
    CAMPAIGNS = "campaigns"
    CAMPAIGN_DETAIL = "campaign_detail"

    # Time-based reports
    DAILY = "daily"
    DAILY_REPORT = "daily_report"
    FORM_DAILY = "form_daily"
    WEEKLY = "weekly"
    WEEKLY_REPORT = "weekly_report"
    FORM_WEEKLY = "form_weekly"
    WEEKLY_SUMMARY = "weekly_summary"

    # Send volume
    SEND_VOLUME = "send_volume"
    SEND_VOLUME_7D = "send_volume_7d"

    # Leads
    LOW_LEADS = "low_leads"
    LEADS = "leads"
    LEADS_CAMPAIGN = "leads_campaign"
    INTERESTED = "interested"
    MEETINGS_BOOKED = "meetings_booked"
    LEAD_LISTS = "lead_lists"

    # ESP / blocked domains
    BLOCKED_DOMAINS = "blocked_domains"
    ESP_CHECK = "esp_check"
    BLOCK_LIST = "block_list"

    # Performance
    BENCHMARKS = "benchmarks"
    UNDERPERFORMING = "underperforming"
    CONVERSION = "conversion"
    LOW_CONVERSION = "low_conversion"
    BAD_VARIANTS = "bad_variants"

    # Inbox
    INBOX_HEALTH = "inbox_health"
    INBOX_ISSUES = "inbox_issues"
    REMOVED_INBOXES = "removed_inboxes"
    WARMUP_STATUS = "warmup_status"

    # Trends
    REPLY_TRENDS = "reply_trends"
    DAILY_TRENDS = "daily_trends"

    # Resources
    TAGS = "tags"
    ACCOUNTS_BY_TAG = "accounts_by_tag"
    TEMPLATES = "templates"
    SUBSEQUENCES = "subsequences"

    # Workspace
    WORKSPACE = "workspace"
    TEAM = "team"
    AUDIT_LOG = "audit_log"
    BILLING = "billing"

    # Diagnostics
    DIAGNOSE = "diagnose"
    VERIFY_EMAIL = "verify_email"

    # Utility
    STATUS = "status"
    HELP = "help"
    REFRESH = "refresh"
    UNKNOWN = "unknown"

    @property
    def phrase(self) -> str:
        """Human spelling used in aliases and suggestions ("low leads")."""
        return self.value.replace("_", " ")


@dataclass(slots=True, frozen=True)
class ResolvedCommand:
    """Result of intent resolution. Immutable; discarded after dispatch."""

    raw_text: str
    command: CommandType
    params: dict[str, str] = field(default_factory=dict)
    force_refresh: bool = False

    @property
    def is_unknown(self) -> bool:
        return self.command is CommandType.UNKNOWN
