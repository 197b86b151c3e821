"""
Inbox handlers - deliverability health, issues by tag, warmup, and tag lookups.
"""

import asyncio
from collections import defaultdict

from campaign_terminal.engine.inbox_detector import ISSUE_LABELS, build_inbox_health_report
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.classification_domain import (
    InboxHealthReport,
    InboxSeverity,
    ProcessedInbox,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.models.domain.metrics_domain import Account
from campaign_terminal.services.errors import EntityNotFoundError
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report

logger = get_logger(__name__)

HEAVY_RULE = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"
CARD_RULE = "────────────────────────────────────────────────────────────"
MAX_ACCOUNTS_LISTED = 20
UNTAGGED = "Untagged"

ISSUE_ICONS: dict[InboxSeverity, str] = {
    InboxSeverity.CRITICAL: "🔴",
    InboxSeverity.HIGH: "🟠",
    InboxSeverity.MEDIUM: "🟡",
}

STATUS_LABELS = {"disconnected": "Disconnected", "warmup": "Warmup"}


def _inbox_card(idx: int, inbox: ProcessedInbox) -> str:
    lines = [
        f"**{idx}. {inbox.email}**",
        f"Status: {STATUS_LABELS.get(inbox.status, 'Active')}",
        f"Severity: {inbox.severity.value.upper()}",
        "",
    ]
    if inbox.issues:
        lines.append("**Issues:**")
        for issue in inbox.issues:
            lines.append(f"{ISSUE_ICONS.get(issue.severity, '•')} {issue.message}")
            if issue.detail:
                lines.append(f"   _Details: {issue.detail}_")
        lines.append("")

    if inbox.health_score:
        lines += ["**Health Metrics:**", f"Score: {inbox.health_score:g}", ""]

    lines += ["**Impact:**", f"• Lost capacity: ~{inbox.lost_capacity} sends/day"]
    if inbox.days_since_last_used:
        lines.append(f"• Not used for {inbox.days_since_last_used} days")
    lines.append("")

    if inbox.actions:
        lines.append("**Actions to Take:**")
        for action in inbox.actions:
            lines.append(f"▸ {action.label} [{action.priority.value.upper()}]")
            lines += [f"  {i}. {step}" for i, step in enumerate(action.steps, start=1)]
    return "\n".join(lines)


def _severity_block(heading: str, inboxes: list[ProcessedInbox]) -> list[str]:
    if not inboxes:
        return []
    lines = [HEAVY_RULE, f"**{heading} ({len(inboxes)})**", HEAVY_RULE, ""]
    for idx, inbox in enumerate(inboxes, start=1):
        lines += [_inbox_card(idx, inbox), "", CARD_RULE, ""]
    return lines


def render_inbox_health(report: InboxHealthReport) -> str:
    pct = report.health_percentage
    if pct >= 90:
        health_icon = "✅"
    elif pct >= 70:
        health_icon = "⚠️"
    else:
        health_icon = "🔴"

    lines = [
        "┌─────────────────────────────────────────────────────────┐",
        f"│ Total: {report.total}    Healthy: {len(report.healthy)} ✅    Issues: {report.with_issues} ⚠️",
        f"│ Health: {pct:.1f}% {health_icon}          "
        f"Lost Capacity: {report.total_lost_capacity} sends/day",
        "└─────────────────────────────────────────────────────────┘",
        "",
        *_severity_block("🔴 CRITICAL ISSUES", report.critical),
        *_severity_block("⚠️ HIGH PRIORITY", report.high),
        *_severity_block("⚠️ MEDIUM PRIORITY", report.medium),
        HEAVY_RULE,
        f"**✅ HEALTHY ACCOUNTS: {len(report.healthy)}**",
        HEAVY_RULE,
        "",
        HEAVY_RULE,
        "**📊 Issue Breakdown**",
        HEAVY_RULE,
        "",
    ]
    lines += [
        f"{ISSUE_LABELS[issue_type]}: {count}" for issue_type, count in report.issue_types.items() if count
    ]
    lines += ["", f"Estimated Impact: {report.total_lost_capacity} sends/day lost"]
    return "\n".join(lines)


@register(CommandType.INBOX_HEALTH, ttl_class="accounts")
async def inbox_health(ctx: HandlerContext) -> TerminalReport:
    """Every inbox checked for deliverability issues, grouped by severity."""
    accounts = await ctx.provider.get_accounts()
    report = build_inbox_health_report(accounts, ctx.benchmarks, ctx.now)

    logger.info(
        "Inbox health computed",
        total=report.total,
        with_issues=report.with_issues,
        lost_capacity=report.total_lost_capacity,
    )
    return TerminalReport(
        command=ctx.command.value,
        title="Inbox Health Report",
        icon="📧",
        sections=[
            ReportSection(
                title="INBOX HEALTH REPORT",
                type="summary",
                items=[ReportItem(name="Full Analysis", details=[render_inbox_health(report)])],
            )
        ],
        metadata=ReportMetadata(
            issue_count=report.with_issues,
            raw_accounts=[inbox.to_dict() for inbox in report.inboxes],
            extra={
                "summary": {
                    "total": report.total,
                    "healthy": len(report.healthy),
                    "issues": report.with_issues,
                    "health_percentage": report.health_percentage,
                    "lost_capacity": report.total_lost_capacity,
                    "issue_types": {t.value: n for t, n in report.issue_types.items()},
                }
            },
        ),
    )


@register(CommandType.INBOX_ISSUES, ttl_class="accounts")
async def inbox_issues(ctx: HandlerContext) -> TerminalReport:
    """Disconnected and erroring inboxes, grouped by their first tag."""
    accounts = await ctx.provider.get_accounts()
    disconnected = [a for a in accounts if a.is_disconnected]
    with_errors = [a for a in accounts if a.has_error]

    lines = ["## 🔴 Inbox Issues", ""]
    if not disconnected and not with_errors:
        lines.append("✅ **No issues found!** All inboxes are healthy.")
    else:
        groups: dict[str, dict[str, int]] = defaultdict(lambda: {"disconnected": 0, "errors": 0})
        for account in accounts:
            if not (account.is_disconnected or account.has_error):
                continue
            group = groups[account.tags[0] if account.tags else UNTAGGED]
            if account.is_disconnected:
                group["disconnected"] += 1
            if account.has_error:
                group["errors"] += 1

        lines += [
            f"**Total Disconnected:** {len(disconnected)}",
            f"**Total with Errors:** {len(with_errors)}",
            "",
            "### By Tag",
            "",
        ]
        for tag, counts in groups.items():
            lines.append(f"**{tag}**")
            if counts["disconnected"]:
                lines.append(f"  🔴 Disconnected: {counts['disconnected']}")
            if counts["errors"]:
                lines.append(f"  ⚠️ Errors: {counts['errors']}")
        lines += [
            "",
            "### Action Required",
            "",
            "1. Go to Instantly → Email Accounts",
            "2. Reconnect disconnected accounts",
            "3. Fix sending errors",
            "4. Consider removing problematic inboxes",
        ]

    return text_report(
        ctx,
        title="Inbox Issues",
        icon="🔴",
        section_title="ISSUES",
        text="\n".join(lines),
        summary=[f"{len(disconnected)} disconnected", f"{len(with_errors)} errors"],
        issue_count=len(disconnected) + len(with_errors),
    )


@register(CommandType.REMOVED_INBOXES, ttl_class=None, upstream=False)
async def removed_inboxes(ctx: HandlerContext) -> TerminalReport:
    return TerminalReport(
        type="info",
        command=ctx.command.value,
        title="Inbox Removal Report",
        icon="🏷️",
        sections=[
            ReportSection(
                title="TRACKING NOTE",
                type="summary",
                items=[
                    ReportItem(
                        name="Manual Tracking Required",
                        details=[
                            "Inbox removals need to be tracked manually or via audit logs.",
                            "The Instantly API does not provide removal history.",
                            "Consider maintaining a local log of removed inboxes.",
                        ],
                    )
                ],
            )
        ],
        summary=[
            "Inbox removal tracking requires manual logging",
            "Check Instantly dashboard for removal history",
        ],
    )


@register(CommandType.WARMUP_STATUS, ttl_class="accounts")
async def warmup_status(ctx: HandlerContext) -> TerminalReport:
    accounts = await ctx.provider.get_accounts()
    warming = [a for a in accounts if a.warmup_enabled]
    low_health = [a for a in accounts if (a.warmup_score or 100) < ctx.benchmarks.MIN_HEALTH_SCORE]

    lines = [
        "## 🔥 Warmup Status",
        "",
        f"**Total Accounts:** {len(accounts)}",
        f"**Warmup Enabled:** {len(warming)}",
        f"**Low Health Score:** {len(low_health)}",
    ]
    if low_health:
        lines += ["", "### Accounts Needing Attention", ""]
        lines += [f"⚠️ **{a.email}**: {a.warmup_score or 0:g}% health" for a in low_health[:10]]

    return text_report(
        ctx,
        title="Warmup Status",
        icon="🔥",
        section_title="WARMUP",
        text="\n".join(lines),
        summary=[f"{len(warming)} warming up", f"{len(low_health)} need attention"],
        issue_count=len(low_health),
    )


@register(CommandType.TAGS, ttl_class="campaigns")
async def tags(ctx: HandlerContext) -> TerminalReport:
    names = await ctx.provider.list_tags()
    lines = ["## 🏷️ Custom Tags", "", f"**Total Tags:** {len(names)}", ""]
    lines += [f"• **{name}**" for name in names]
    return text_report(
        ctx,
        title="Custom Tags",
        icon="🏷️",
        section_title="TAGS",
        text="\n".join(lines),
        summary=[f"{len(names)} tags"],
    )


def _account_icon(account: Account) -> str:
    if account.is_disconnected:
        return "🔴"
    if account.has_error:
        return "⚠️"
    return "✅"


@register(CommandType.ACCOUNTS_BY_TAG, ttl_class="accounts")
async def accounts_by_tag(ctx: HandlerContext) -> TerminalReport:
    query = ctx.params.get("tag", "").strip()
    accounts, tag_names = await asyncio.gather(ctx.provider.get_accounts(), ctx.provider.list_tags())

    tag = next((name for name in tag_names if query and query.lower() in name.lower()), None)
    if tag is None:
        raise EntityNotFoundError("tag", query)

    tagged = [a for a in accounts if tag in a.tags]
    lines = [f"## 🏷️ Accounts Tagged: {tag}", "", f"**Count:** {len(tagged)}", ""]
    lines += [f"{_account_icon(a)} {a.email}" for a in tagged[:MAX_ACCOUNTS_LISTED]]
    if len(tagged) > MAX_ACCOUNTS_LISTED:
        lines += ["", f"_...and {len(tagged) - MAX_ACCOUNTS_LISTED} more_"]

    return text_report(
        ctx,
        title=f"Accounts: {tag}",
        icon="🏷️",
        section_title="ACCOUNTS",
        text="\n".join(lines),
        summary=[f'{len(tagged)} accounts with tag "{tag}"'],
    )
