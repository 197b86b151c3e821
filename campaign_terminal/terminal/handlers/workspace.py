"""
Workspace and utility handlers - templates, team, audit log, email verification,
connection status and help.
"""

from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.services.errors import InvalidQueryError
from campaign_terminal.terminal.formatting import short_date
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report

MAX_TEMPLATES = 50
MAX_AUDIT_ENTRIES = 20
SUBJECT_PREVIEW_CHARS = 50


@register(CommandType.TEMPLATES, ttl_class="campaigns")
async def templates(ctx: HandlerContext) -> TerminalReport:
    entries = await ctx.provider.list_resources("templates", limit=MAX_TEMPLATES)

    lines = ["## 📧 Email Templates", "", f"**Total Templates:** {len(entries)}", ""]
    for entry in entries:
        lines.append(f"• **{entry.get('name', 'Untitled')}**")
        subject = str(entry.get("subject") or "")
        if subject:
            preview = subject[:SUBJECT_PREVIEW_CHARS]
            if len(subject) > SUBJECT_PREVIEW_CHARS:
                preview += "..."
            lines.append(f"  Subject: {preview}")

    return text_report(
        ctx,
        title="Email Templates",
        icon="📧",
        section_title="TEMPLATES",
        text="\n".join(lines),
        summary=[f"{len(entries)} templates"],
    )


@register(CommandType.SUBSEQUENCES, ttl_class="campaigns")
async def subsequences(ctx: HandlerContext) -> TerminalReport:
    entries = await ctx.provider.list_resources("subsequences")

    lines = ["## 🔄 Subsequences", "", f"**Total:** {len(entries)}", ""]
    for entry in entries:
        lines.append(f"• **{entry.get('name', 'Unnamed')}**")
        trigger = entry.get("trigger") or entry.get("conditions")
        if trigger:
            lines.append(f"  Trigger: {trigger}")

    return text_report(
        ctx,
        title="Subsequences",
        icon="🔄",
        section_title="SUBSEQUENCES",
        text="\n".join(lines),
        summary=[f"{len(entries)} subsequences"],
    )


@register(CommandType.WORKSPACE, ttl_class="campaigns")
async def workspace(ctx: HandlerContext) -> TerminalReport:
    info = await ctx.provider.get_workspace()
    lines = [
        "## 🏢 Workspace Info",
        "",
        f"**Name:** {info.get('name', 'N/A')}",
        f"**Owner:** {info.get('owner_email') or info.get('owner', 'N/A')}",
        f"**Plan:** {info.get('plan', 'N/A')}",
    ]
    return text_report(
        ctx,
        title="Workspace",
        icon="🏢",
        section_title="WORKSPACE",
        text="\n".join(lines),
    )


@register(CommandType.TEAM, ttl_class="campaigns")
async def team(ctx: HandlerContext) -> TerminalReport:
    members = await ctx.provider.list_resources("team")
    lines = ["## 👥 Team Members", "", f"**Total:** {len(members)}", ""]
    lines += [f"• {m.get('email', 'unknown')} ({m.get('role', 'member')})" for m in members]
    return text_report(
        ctx,
        title="Team Members",
        icon="👥",
        section_title="TEAM",
        text="\n".join(lines),
        summary=[f"{len(members)} team members"],
    )


@register(CommandType.AUDIT_LOG, ttl_class="campaigns")
async def audit_log(ctx: HandlerContext) -> TerminalReport:
    entries = await ctx.provider.list_resources("audit_log", limit=MAX_AUDIT_ENTRIES)

    lines = ["## 📜 Recent Activity", ""]
    if not entries:
        lines.append("_No recent activity_")
    for entry in entries:
        lines.append(f"• **{entry.get('action', 'unknown')}** on {entry.get('resource_type', 'resource')}")
        when = short_date(entry.get("timestamp") or entry.get("timestamp_created"), weekday=True)
        who = entry.get("user_email")
        if when or who:
            lines.append(f"  {when}{f' by {who}' if who else ''}".rstrip())

    return text_report(
        ctx,
        title="Audit Log",
        icon="📜",
        section_title="ACTIVITY",
        text="\n".join(lines),
        summary=[f"{len(entries)} recent actions"],
    )


@register(CommandType.BILLING, ttl_class=None, upstream=False)
async def billing(ctx: HandlerContext) -> TerminalReport:
    return TerminalReport(
        type="info",
        command=ctx.command.value,
        title="Billing",
        icon="💳",
        sections=[
            ReportSection(
                title="BILLING",
                type="summary",
                items=[
                    ReportItem(
                        name="Check Instantly Dashboard",
                        details=[
                            "Billing details are not exposed through the API.",
                            "Go to Instantly → Settings → Billing for plan usage and invoices.",
                        ],
                    )
                ],
            )
        ],
    )


@register(CommandType.VERIFY_EMAIL, ttl_class=None)
async def verify_email(ctx: HandlerContext) -> TerminalReport:
    email = ctx.params.get("email", "").strip()
    if "@" not in email:
        raise InvalidQueryError(
            "Invalid Email",
            "Please provide a valid email address",
            "Usage: verify email@example.com",
        )

    result = await ctx.provider.verify_email(email)
    is_valid = bool(result.get("is_valid") or result.get("valid"))
    lines = [
        f"## ✉️ Email Verification: {email}",
        "",
        f"**Valid:** {'✅ Yes' if is_valid else '❌ No'}",
        f"**Status:** {result.get('status') or result.get('verification_status', 'unknown')}",
    ]
    if result.get("reason"):
        lines.append(f"**Reason:** {result['reason']}")

    return text_report(
        ctx,
        title="Email Verification",
        icon="✉️",
        section_title="VERIFICATION",
        text="\n".join(lines),
    )


@register(CommandType.STATUS, ttl_class=None)
async def status(ctx: HandlerContext) -> TerminalReport:
    result = await ctx.provider.test_connection()
    if result.success:
        lines = [
            "✅ **Connected to Instantly API v2**",
            "",
            f"**Campaigns found:** {result.campaign_count or 0}",
            "**Status:** Operational",
        ]
    else:
        lines = [
            "❌ **Connection Failed**",
            "",
            f"**Error:** {result.message}",
            "",
            "Check your API key in environment variables.",
        ]

    return text_report(
        ctx,
        title="API Status",
        icon="✅" if result.success else "❌",
        section_title="CONNECTION",
        text="\n".join(lines),
        report_type="success" if result.success else "error",
    )


HELP_GROUPS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "Daily Operations",
        (
            ("daily", "What needs attention today"),
            ("daily report", "Full daily client report"),
            ("send volume", "Sending volume by campaign"),
            ("low leads", "Campaigns running out of leads"),
        ),
    ),
    (
        "Weekly Reviews",
        (
            ("weekly", "This week's review"),
            ("weekly summary", "All weekly checks in one report"),
            ("reply trends", "Week-over-week reply rate"),
            ("conversion", "Positive reply to meeting rate"),
        ),
    ),
    (
        "Campaigns & Leads",
        (
            ("campaigns", "Every active campaign, classified"),
            ("campaign [name]", "One campaign in detail"),
            ("diagnose [name]", "Why a campaign is underperforming"),
            ("benchmarks", "Campaigns below reply benchmark"),
            ("interested", "Positive replies by campaign"),
            ("meetings", "Meetings booked"),
        ),
    ),
    (
        "Inboxes",
        (
            ("inbox health", "Deliverability issues by severity"),
            ("inbox issues", "Disconnected and erroring inboxes"),
            ("warmup", "Warmup status"),
            ("accounts tagged [tag]", "Accounts with a tag"),
        ),
    ),
    (
        "Workspace",
        (
            ("templates", "Email templates"),
            ("team", "Team members"),
            ("audit log", "Recent activity"),
            ("verify [email]", "Verify an email address"),
            ("status", "API connection check"),
            ("refresh", "Clear cached data"),
        ),
    ),
)


@register(CommandType.HELP, ttl_class=None, upstream=False)
async def help_report(ctx: HandlerContext) -> TerminalReport:
    lines = ["## 💡 Campaign Terminal Commands", ""]
    for group, commands in HELP_GROUPS:
        lines += [f"### {group}", "", "| Command | Description |", "|---------|-------------|"]
        lines += [f"| `{cmd}` | {desc} |" for cmd, desc in commands]
        lines.append("")

    return text_report(
        ctx,
        title="Campaign Terminal Commands",
        icon="💡",
        section_title="COMMANDS",
        text="\n".join(lines).rstrip(),
        summary=["Natural language queries supported!", 'Try: "What do I need to do today?"'],
        report_type="info",
    )
