from datetime import UTC, datetime, timedelta

from campaign_terminal.engine.inbox_detector import (
    build_inbox_health_report,
    detect_inbox_issues,
    process_inbox,
    remediation_plan,
    summarize_inbox_health,
)
from campaign_terminal.models.domain.classification_domain import InboxIssueType, InboxSeverity
from tests.conftest import account

NOW = datetime(2025, 1, 8, 10, 0, tzinfo=UTC)


def issue_types(acc) -> list[InboxIssueType]:
    return [issue.type for issue in detect_inbox_issues(acc)]


def test_healthy_account_has_no_issues():
    inbox = process_inbox(account("ok@acme.io"))

    assert inbox.issues == []
    assert inbox.severity is InboxSeverity.NONE
    assert inbox.lost_capacity == 0


def test_disconnected_with_auth_error_reports_both():
    acc = account(
        "down@acme.io",
        status_code=-1,
        status_label="disconnected",
        error_message="Invalid credentials for IMAP login",
    )

    assert issue_types(acc) == [InboxIssueType.DISCONNECTED, InboxIssueType.AUTH_ERROR]
    assert [a.label for a in remediation_plan(detect_inbox_issues(acc))] == [
        "Reconnect Account",
        "Fix Authentication",
    ]


def test_error_message_maps_to_first_matching_type():
    smtp = account("a@x.io", error_message="SMTP connection refused")
    sending = account("b@x.io", error_message="Daily sending blocked by provider")
    unknown = account("c@x.io", error_message="something odd happened")

    assert issue_types(smtp) == [InboxIssueType.SMTP_ERROR]
    assert issue_types(sending) == [InboxIssueType.SENDING_ERROR]
    assert issue_types(unknown) == []


def test_low_health_severity_depends_on_distance():
    far = detect_inbox_issues(account("a@x.io", health_score=84.0, landed_inbox=70.0, landed_spam=30.0))
    near = detect_inbox_issues(account("b@x.io", health_score=90.0))

    assert far[0].severity is InboxSeverity.HIGH
    assert far[0].detail == "Inbox: 70%, Spam: 30%"
    assert near[0].severity is InboxSeverity.MEDIUM
    assert near[0].message == "Low health score: 90"


def test_health_falls_back_to_warmup_score():
    acc = account("a@x.io", health_score=None, warmup_score=91.0)

    assert issue_types(acc) == [InboxIssueType.LOW_HEALTH]


def test_disconnected_account_skips_health_checks():
    acc = account("a@x.io", status_code=0, status_label="disconnected", health_score=50.0, warmup_enabled=False)

    assert issue_types(acc) == [InboxIssueType.DISCONNECTED]


def test_paused_warmup_below_optimal_health():
    assert issue_types(account("a@x.io", health_score=94.0, warmup_enabled=False)) == [
        InboxIssueType.WARMUP_DISABLED
    ]
    assert issue_types(account("b@x.io", health_score=96.0, warmup_enabled=False)) == []


def test_process_inbox_counts_days_since_last_used():
    inbox = process_inbox(account("a@x.io", last_used=NOW - timedelta(days=9)), now=NOW)

    assert inbox.days_since_last_used == 9


def test_report_groups_by_worst_severity():
    report = build_inbox_health_report(
        [
            account("ok@x.io"),
            account("down@x.io", status_code=-1, status_label="disconnected", daily_limit=40),
            account("low@x.io", health_score=80.0),
            account("meh@x.io", health_score=90.0),
        ],
        now=NOW,
    )

    assert [i.email for i in report.critical] == ["down@x.io"]
    assert [i.email for i in report.high] == ["low@x.io"]
    assert [i.email for i in report.medium] == ["meh@x.io"]
    assert report.total == 4
    assert report.with_issues == 3
    assert report.total_lost_capacity == 40 + 50 + 50
    assert report.health_percentage == 25.0
    assert report.issue_types[InboxIssueType.LOW_HEALTH] == 2


def test_summary_counts_low_health_among_connected_only():
    summary = summarize_inbox_health(
        [
            account("ok@x.io"),
            account("low@x.io", health_score=80.0),
            account("down@x.io", status_code=-1, status_label="disconnected", health_score=10.0),
            account("warm@x.io", status_label="warmup"),
        ]
    )

    assert summary.total == 4
    assert summary.disconnected == 1
    assert summary.low_health == 1
    assert summary.healthy == 2
    assert summary.warming == 1
