"""
Inbox issue detector - per-account deliverability checks and remediation plans.

Checks are independent and accumulate; an account can be disconnected AND
have an auth error at the same time. Only the error-message check is
first-match (one message maps to one error type).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from campaign_terminal.engine.benchmarks import TERMINAL_BENCHMARKS, TerminalBenchmarks
from campaign_terminal.engine.rules import Rule, matching_rule
from campaign_terminal.models.domain.classification_domain import (
    DetectedIssue,
    InboxAction,
    InboxHealthReport,
    InboxIssueType,
    InboxSeverity,
    ProcessedInbox,
    Urgency,
)
from campaign_terminal.models.domain.metrics_domain import Account, InboxHealthSummary

AUTH_KEYWORDS = ("authentication", "password", "credentials", "login", "invalid")
SMTP_KEYWORDS = ("smtp", "connection", "timeout", "refused")
SENDING_KEYWORDS = ("error", "failed", "blocked", "suspended")


def _contains_any(*keywords: str):
    return lambda msg: any(k in msg for k in keywords)


ERROR_MESSAGE_RULES: list[Rule[str, tuple[InboxIssueType, InboxSeverity, str]]] = [
    Rule(
        "auth",
        _contains_any(*AUTH_KEYWORDS),
        lambda _: (
            InboxIssueType.AUTH_ERROR,
            InboxSeverity.CRITICAL,
            "Authentication failed - invalid credentials",
        ),
    ),
    Rule(
        "smtp",
        _contains_any(*SMTP_KEYWORDS),
        lambda _: (InboxIssueType.SMTP_ERROR, InboxSeverity.CRITICAL, "SMTP connection error"),
    ),
    Rule(
        "sending",
        _contains_any(*SENDING_KEYWORDS),
        lambda _: (InboxIssueType.SENDING_ERROR, InboxSeverity.HIGH, "Sending error detected"),
    ),
]

ISSUE_LABELS: dict[InboxIssueType, str] = {
    InboxIssueType.DISCONNECTED: "Disconnected",
    InboxIssueType.AUTH_ERROR: "Authentication Errors",
    InboxIssueType.SMTP_ERROR: "SMTP Errors",
    InboxIssueType.SENDING_ERROR: "Sending Errors",
    InboxIssueType.LOW_HEALTH: "Low Health Scores",
    InboxIssueType.WARMUP_DISABLED: "Warmup Disabled",
}

REMEDIATION: dict[InboxIssueType, InboxAction] = {
    InboxIssueType.DISCONNECTED: InboxAction(
        label="Reconnect Account",
        action="reconnect",
        priority=Urgency.URGENT,
        steps=(
            "Go to Instantly.ai → Email Accounts",
            "Find and click on this account",
            'Click "Reconnect" or re-authenticate',
            "Verify connection is successful",
        ),
    ),
    InboxIssueType.AUTH_ERROR: InboxAction(
        label="Fix Authentication",
        action="fix_auth",
        priority=Urgency.URGENT,
        steps=(
            "Check email password is correct",
            "Enable IMAP/SMTP access in email settings",
            "If using 2FA, generate app-specific password",
            "Reconnect account in Instantly.ai",
        ),
    ),
    InboxIssueType.SMTP_ERROR: InboxAction(
        label="Fix SMTP Settings",
        action="fix_smtp",
        priority=Urgency.URGENT,
        steps=(
            "Verify SMTP server address",
            "Check port (usually 587 or 465)",
            "Confirm SSL/TLS settings match provider",
            "Test connection from email client first",
        ),
    ),
    InboxIssueType.SENDING_ERROR: InboxAction(
        label="Resolve Sending Error",
        action="fix_sending",
        priority=Urgency.HIGH,
        steps=(
            "Check if email provider blocked sending",
            "Verify daily limits not exceeded",
            "Check for IP/domain reputation issues",
            "Contact email provider if persistent",
        ),
    ),
    InboxIssueType.LOW_HEALTH: InboxAction(
        label="Improve Health Score",
        action="improve_health",
        priority=Urgency.HIGH,
        steps=(
            "Resume warmup if paused",
            "Increase warmup volume gradually",
            "Check spam folder delivery rate",
            "Review email content for spam triggers",
        ),
    ),
    InboxIssueType.WARMUP_DISABLED: InboxAction(
        label="Resume Warmup",
        action="resume_warmup",
        priority=Urgency.MEDIUM,
        steps=(
            "Enable warmup in account settings",
            "Start with low volume (10-20/day)",
            "Increase gradually over 2-3 weeks",
            "Monitor health score improvement",
        ),
    ),
}


def _format_score(value: float) -> str:
    return f"{value:g}"


def detect_inbox_issues(
    account: Account, benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
) -> list[DetectedIssue]:
    issues: list[DetectedIssue] = []

    if account.is_disconnected:
        issues.append(
            DetectedIssue(InboxIssueType.DISCONNECTED, InboxSeverity.CRITICAL, "Account is disconnected")
        )

    if account.error_message:
        msg = account.error_message.lower()
        rule = matching_rule(ERROR_MESSAGE_RULES, msg)
        if rule is not None:
            issue_type, severity, message = rule.build(msg)
            issues.append(DetectedIssue(issue_type, severity, message, account.error_message))

    health = account.effective_health
    if health < benchmarks.MIN_HEALTH_SCORE and account.is_connected:
        detail = None
        if account.landed_inbox is not None:
            detail = (
                f"Inbox: {_format_score(account.landed_inbox)}%, "
                f"Spam: {_format_score(account.landed_spam or 0)}%"
            )
        issues.append(
            DetectedIssue(
                InboxIssueType.LOW_HEALTH,
                InboxSeverity.HIGH if health < benchmarks.FAR_BELOW_HEALTH else InboxSeverity.MEDIUM,
                f"Low health score: {_format_score(health)}",
                detail,
            )
        )

    if not account.warmup_enabled and health < benchmarks.OPTIMAL_WARMUP_HEALTH and account.is_connected:
        issues.append(
            DetectedIssue(InboxIssueType.WARMUP_DISABLED, InboxSeverity.MEDIUM, "Warmup is paused or disabled")
        )

    return issues


def aggregate_severity(issues: Iterable[DetectedIssue]) -> InboxSeverity:
    return max((issue.severity for issue in issues), key=lambda s: s.weight, default=InboxSeverity.NONE)


def remediation_plan(issues: Iterable[DetectedIssue]) -> list[InboxAction]:
    """One action per distinct issue type, in the order the issues were detected."""
    seen: set[InboxIssueType] = set()
    plan = []
    for issue in issues:
        if issue.type in seen:
            continue
        seen.add(issue.type)
        plan.append(REMEDIATION[issue.type])
    return plan


def process_inbox(
    account: Account,
    benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS,
    now: datetime | None = None,
) -> ProcessedInbox:
    issues = detect_inbox_issues(account, benchmarks)

    days_since_last_used = None
    if account.last_used is not None:
        now = now or datetime.now(UTC)
        last_used = account.last_used
        if last_used.tzinfo is None:
            last_used = last_used.replace(tzinfo=UTC)
        days_since_last_used = (now - last_used).days

    return ProcessedInbox(
        email=account.email,
        status=account.status_label,
        status_message=account.error_message,
        health_score=account.health_score or account.warmup_score,
        daily_limit=account.daily_limit or benchmarks.DEFAULT_DAILY_LIMIT,
        warmup_enabled=account.warmup_enabled,
        issues=issues,
        severity=aggregate_severity(issues),
        actions=remediation_plan(issues),
        tags=list(account.tags),
        days_since_last_used=days_since_last_used,
    )


def build_inbox_health_report(
    accounts: Iterable[Account],
    benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS,
    now: datetime | None = None,
) -> InboxHealthReport:
    report = InboxHealthReport(
        critical=[], high=[], medium=[], healthy=[], issue_types={t: 0 for t in InboxIssueType}
    )
    buckets = {
        InboxSeverity.CRITICAL: report.critical,
        InboxSeverity.HIGH: report.high,
        InboxSeverity.MEDIUM: report.medium,
        InboxSeverity.NONE: report.healthy,
    }
    for account in accounts:
        inbox = process_inbox(account, benchmarks, now)
        buckets[inbox.severity].append(inbox)
        for issue in inbox.issues:
            report.issue_types[issue.type] += 1
    return report


def summarize_inbox_health(
    accounts: Iterable[Account], benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
) -> InboxHealthSummary:
    """Portfolio-wide inbox counts consumed by the weekly task list."""
    accounts = list(accounts)
    connected = [a for a in accounts if a.is_connected]
    low_health = [a for a in connected if a.effective_health < benchmarks.MIN_HEALTH_SCORE]
    return InboxHealthSummary(
        total=len(accounts),
        healthy=len(connected) - len(low_health),
        low_health=len(low_health),
        disconnected=len(accounts) - len(connected),
        warming=sum(1 for a in accounts if a.status_label == "warmup"),
        avg_health_score=(
            sum(a.effective_health for a in connected) / len(connected) if connected else 0.0
        ),
    )
