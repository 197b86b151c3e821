"""
Text rendering for terminal reports.

The structured TerminalReport is the source of truth; this module only turns
it into the markdown-ish text shown in the terminal pane.
"""

from datetime import date

from campaign_terminal.models.api.terminal_response import ReportSection, TerminalReport

# Sections carrying one pre-rendered block are printed verbatim
FULL_TEXT_ITEM_NAMES = frozenset({"Full Analysis", "Full Report"})

PRIORITY_ICONS: dict[str, str] = {
    "URGENT": "🔴",
    "CRITICAL": "🔴",
    "HIGH": "🟠",
    "MEDIUM": "🟡",
    "WARNING": "🟡",
    "LOW": "🟢",
}
DEFAULT_BULLET = "•"


def priority_icon(priority: str | None) -> str:
    return PRIORITY_ICONS.get(priority or "", DEFAULT_BULLET)


def _is_full_text(section: ReportSection) -> bool:
    if len(section.items) != 1:
        return False
    item = section.items[0]
    return item.name in FULL_TEXT_ITEM_NAMES and len(item.details) == 1


def _render_section(section: ReportSection) -> list[str]:
    if _is_full_text(section):
        return [section.items[0].details[0]]

    if section.type == "status" and section.status is not None:
        status = section.status
        lines = [f"**{section.title}**", f"{status.label}: {status.value} {status.icon}".rstrip()]
        if status.change:
            lines.append(f"({status.change})")
        lines.append("")
        return lines

    if not section.items:
        return []

    count = f" ({section.count})" if section.count is not None else ""
    lines = [f"**{section.title}{count}:**", ""]
    for idx, item in enumerate(section.items, start=1):
        lines.append(f"{idx}. {priority_icon(item.priority)} **{item.name}**")
        lines.extend(f"   {detail}" for detail in item.details if detail)
        lines.append("")
    return lines


def render_report(report: TerminalReport) -> str:
    """Render a report as terminal text: title, sections, summary, data age."""
    heading = f"{report.icon} **{report.title}**" if report.icon else f"**{report.title}**"
    lines = [heading, ""]

    for section in report.sections:
        lines.extend(_render_section(section))

    if report.summary:
        lines.append("---")
        lines.extend(report.summary)

    if report.metadata.timestamp:
        cached = " (cached)" if report.metadata.cached else ""
        lines.append("")
        lines.append(f"_Data from {report.metadata.timestamp}{cached}_")

    return "\n".join(lines)


def short_date(raw: str | None, weekday: bool = False) -> str:
    """'2025-01-06' -> 'Jan 6' (or 'Mon, Jan 6'). Unparseable values are returned as-is."""
    if not raw:
        return ""
    try:
        day = date.fromisoformat(str(raw)[:10])
    except ValueError:
        return str(raw)
    label = f"{day:%b} {day.day}"
    return f"{day:%a}, {label}" if weekday else label
