import pytest

from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    SectionStatus,
    TerminalReport,
)
from campaign_terminal.terminal.formatting import priority_icon, render_report, short_date


def test_list_section_numbers_items_with_priority_icons():
    report = TerminalReport(
        command="low_leads",
        title="Low Leads",
        icon="📉",
        sections=[
            ReportSection(
                title="CRITICAL",
                count=2,
                items=[
                    ReportItem(name="Acme - Q1", details=["500 leads left", ""], priority="URGENT"),
                    ReportItem(name="Globex", details=["2,000 leads left"]),
                ],
            )
        ],
        summary=["2 campaigns need leads"],
    )

    text = render_report(report)

    assert text.splitlines()[0] == "📉 **Low Leads**"
    assert "**CRITICAL (2):**" in text
    assert "1. 🔴 **Acme - Q1**\n   500 leads left\n" in text
    assert "2. • **Globex**" in text
    assert "---\n2 campaigns need leads" in text
    assert text.endswith("_Data from just now_")


def test_full_report_section_printed_verbatim():
    block = "DAILY REPORT\n============\nall good"
    report = TerminalReport(
        command="daily_report",
        title="Daily Report",
        sections=[ReportSection(title="REPORT", items=[ReportItem(name="Full Report", details=[block])])],
    )

    text = render_report(report)

    assert text.splitlines()[0] == "**Daily Report**"
    assert block in text
    assert "Full Report" not in text


def test_status_section():
    report = TerminalReport(
        command="send_volume",
        title="Send Volume",
        sections=[
            ReportSection(
                title="YESTERDAY",
                type="status",
                status=SectionStatus(label="Sent", value=1200, icon="✅", change="+5% vs avg"),
            )
        ],
    )

    assert "**YESTERDAY**\nSent: 1200 ✅\n(+5% vs avg)" in render_report(report)


def test_empty_list_section_is_skipped():
    report = TerminalReport(command="tags", title="Tags", sections=[ReportSection(title="TAGS")])

    assert "TAGS" not in render_report(report)


def test_cached_report_shows_data_age():
    report = TerminalReport(
        command="daily",
        title="Daily",
        metadata=ReportMetadata(timestamp="12 minutes ago", cached=True),
    )

    assert render_report(report).endswith("_Data from 12 minutes ago (cached)_")


@pytest.mark.parametrize(
    "priority,icon", [("URGENT", "🔴"), ("HIGH", "🟠"), ("WARNING", "🟡"), ("LOW", "🟢"), (None, "•")]
)
def test_priority_icon(priority, icon):
    assert priority_icon(priority) == icon


@pytest.mark.parametrize(
    "raw,weekday,expected",
    [
        ("2025-01-06", False, "Jan 6"),
        ("2025-01-06T14:30:00Z", True, "Mon, Jan 6"),
        ("yesterday", False, "yesterday"),
        (None, False, ""),
    ],
)
def test_short_date(raw, weekday, expected):
    assert short_date(raw, weekday) == expected
