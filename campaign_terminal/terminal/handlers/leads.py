"""
Lead handlers - lead runway, positive replies, meetings, lead lists and blocking.
"""

from campaign_terminal.engine.benchmarks import BLOCKED_DOMAINS, SAFE_GATEWAYS
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report
from campaign_terminal.terminal.handlers.reports import DAYS_PER_MONTH, total_snapshot, with_metrics

# Days-to-depletion shown when a campaign is not sending at all
NEVER_DEPLETES = 999
MAX_BY_CAMPAIGN = 15
MAX_BLOCK_ENTRIES = 20


def days_to_depletion(uncontacted: int, daily_send_rate: int) -> int:
    return uncontacted // daily_send_rate if daily_send_rate > 0 else NEVER_DEPLETES


@register(CommandType.LOW_LEADS, ttl_class="analytics")
async def low_leads(ctx: HandlerContext) -> TerminalReport:
    """Campaigns under the lead-runway warning line, split critical/warning."""
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns()

    critical: list[ReportItem] = []
    warning: list[ReportItem] = []
    for record, m in with_metrics(records):
        if m.uncontacted >= b.LOW_LEADS_WARNING:
            continue
        daily_rate = round(m.sent / DAYS_PER_MONTH)
        depletion = days_to_depletion(m.uncontacted, daily_rate)
        is_critical = m.uncontacted < b.LOW_LEADS_CRITICAL
        item = ReportItem(
            name=record.name,
            details=[
                f"Uncontacted: {m.uncontacted:,}",
                f"Daily Send: ~{daily_rate}/day",
                f"Time to Depletion: {depletion} days",
                "Action: Order 30k+ leads ASAP" if is_critical else "Action: Order 50k leads this week",
            ],
            priority="URGENT" if is_critical else "HIGH",
            metrics={"uncontacted": m.uncontacted, "daily_send": daily_rate, "depletion_days": depletion},
        )
        (critical if is_critical else warning).append(item)

    sections = []
    if critical:
        sections.append(
            ReportSection(
                title=f"CRITICAL (<{b.LOW_LEADS_CRITICAL} leads)", count=len(critical), items=critical
            )
        )
    if warning:
        sections.append(
            ReportSection(
                title=f"WARNING ({b.LOW_LEADS_CRITICAL}-{b.LOW_LEADS_WARNING} leads)",
                count=len(warning),
                items=warning,
            )
        )
    if not sections:
        sections.append(
            ReportSection(
                title="ALL GOOD",
                type="summary",
                items=[
                    ReportItem(
                        name="No campaigns with low leads! ✅",
                        details=["All active campaigns have sufficient leads."],
                    )
                ],
            )
        )

    total_issues = len(critical) + len(warning)
    return TerminalReport(
        type="success" if total_issues else "info",
        command=ctx.command.value,
        title=f"Campaigns with <{b.LOW_LEADS_WARNING} Uncontacted Leads",
        icon="🚨",
        sections=sections,
        summary=[
            f"Total: {total_issues} campaigns need lead orders",
            f"Critical: {len(critical)} campaigns",
            f"Warning: {len(warning)} campaigns",
        ],
        metadata=ReportMetadata(campaign_count=len(records), issue_count=total_issues),
    )


@register(CommandType.LEADS, ttl_class="analytics")
async def leads_overview(ctx: HandlerContext) -> TerminalReport:
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns()
    total = total_snapshot(records)

    lines = [
        "## 👥 Lead Overview",
        "",
        f"**Total Leads:** {total.total_leads:,}",
        f"**Contacted:** {total.contacted:,}",
        f"**Uncontacted:** {total.uncontacted:,}",
        "",
        "### By Campaign",
        "",
    ]
    for record, m in with_metrics(records)[:10]:
        if m.uncontacted < b.LOW_LEADS_CRITICAL:
            icon = "🔴"
        elif m.uncontacted < b.LOW_LEADS_WARNING:
            icon = "⚠️"
        else:
            icon = "✅"
        lines.append(f"{icon} **{record.name}**: {m.uncontacted:,} uncontacted")

    return text_report(
        ctx,
        title="Lead Overview",
        icon="👥",
        section_title="LEADS",
        text="\n".join(lines),
        campaign_count=len(records),
    )


@register(CommandType.INTERESTED, ttl_class="analytics")
async def interested(ctx: HandlerContext) -> TerminalReport:
    records = await ctx.provider.list_campaigns()
    by_campaign = sorted(
        ((r.name, m.positive_replies) for r, m in with_metrics(records) if m.positive_replies > 0),
        key=lambda pair: pair[1],
        reverse=True,
    )
    total = sum(count for _, count in by_campaign)

    lines = ["## 🌟 Interested/Positive Leads", "", f"**Total Interested:** {total}", "", "### By Campaign", ""]
    lines += [f"• **{name}**: {count} interested" for name, count in by_campaign[:MAX_BY_CAMPAIGN]]

    return text_report(
        ctx,
        title="Interested Leads",
        icon="🌟",
        section_title="INTERESTED",
        text="\n".join(lines),
        summary=[f"{total} total interested leads"],
        campaign_count=len(records),
    )


@register(CommandType.MEETINGS_BOOKED, ttl_class="analytics")
async def meetings_booked(ctx: HandlerContext) -> TerminalReport:
    records = await ctx.provider.list_campaigns()
    pairs = with_metrics(records)
    total_meetings = sum(m.meetings for _, m in pairs)
    by_campaign = sorted(
        ((r.name, m) for r, m in pairs if m.positive_replies > 0),
        key=lambda pair: pair[1].meetings,
        reverse=True,
    )

    lines = [
        "## 📅 Meetings Booked",
        "",
        f"**Total Meetings Booked:** {total_meetings}",
        "",
        "### By Campaign",
        "",
    ]
    lines += [
        f"• **{name}**: {m.meetings} meetings ({m.positive_reply_to_meeting_rate:.1f}% conversion)"
        for name, m in by_campaign[:MAX_BY_CAMPAIGN]
    ]

    return text_report(
        ctx,
        title="Meetings Booked",
        icon="📅",
        section_title="MEETINGS",
        text="\n".join(lines),
        summary=[f"{total_meetings} total meetings booked"],
        campaign_count=len(records),
    )


@register(CommandType.LEAD_LISTS, ttl_class="campaigns")
async def lead_lists(ctx: HandlerContext) -> TerminalReport:
    lists = await ctx.provider.list_resources("lead_lists", limit=100)

    lines = ["## 📋 Lead Lists", "", f"**Total Lists:** {len(lists)}", ""]
    if lists:
        lines += [
            f"• **{entry.get('name', 'Unnamed list')}**: {int(entry.get('lead_count') or 0):,} leads"
            for entry in lists
        ]
    else:
        lines.append("_No lead lists found_")

    return text_report(
        ctx,
        title="Lead Lists",
        icon="📋",
        section_title="LISTS",
        text="\n".join(lines),
        summary=[f"{len(lists)} lead lists"],
    )


def _capped(values: list[str]) -> list[str]:
    lines = [f"• {value}" for value in values[:MAX_BLOCK_ENTRIES]]
    if len(values) > MAX_BLOCK_ENTRIES:
        lines.append(f"_...and {len(values) - MAX_BLOCK_ENTRIES} more_")
    return lines


@register(CommandType.BLOCK_LIST, ttl_class="campaigns")
async def block_list(ctx: HandlerContext) -> TerminalReport:
    search = ctx.params.get("search")
    entries = await ctx.provider.list_resources("block_list", search=search, limit=100)

    lines = ["## 🚫 Block List", ""]
    if search:
        lines += [f'**Search:** "{search}"', f"**Found:** {len(entries)} entries", ""]
    else:
        lines += [f"**Total Blocked:** {len(entries)} entries", ""]

    domains = [str(e.get("value", "")) for e in entries if e.get("type") == "domain"]
    emails = [str(e.get("value", "")) for e in entries if e.get("type") == "email"]
    if domains:
        lines += ["### Blocked Domains", *_capped(domains), ""]
    if emails:
        lines += ["### Blocked Emails", *_capped(emails)]

    return text_report(
        ctx,
        title="Block List",
        icon="🚫",
        section_title="BLOCKED",
        text="\n".join(lines),
        summary=[f"{len(entries)} blocked entries"],
    )


@register(CommandType.BLOCKED_DOMAINS, CommandType.ESP_CHECK, ttl_class=None, upstream=False)
async def blocked_domains(ctx: HandlerContext) -> TerminalReport:
    """Which email security gateways to strip from lead lists. Static guidance, no fetch."""
    gateways = ", ".join(domain.capitalize() for domain in BLOCKED_DOMAINS)
    safe = ", ".join(domain.capitalize() for domain in SAFE_GATEWAYS)
    return TerminalReport(
        type="info",
        command=ctx.command.value,
        title="Blocked Email Provider Check",
        icon="🚫",
        sections=[
            ReportSection(
                title="DOMAINS TO CHECK",
                items=[
                    ReportItem(
                        name=domain,
                        details=["Leads with this domain will cause bounces"],
                        priority="MEDIUM",
                    )
                    for domain in BLOCKED_DOMAINS
                ],
            ),
            ReportSection(
                title="NOTE",
                type="summary",
                items=[
                    ReportItem(
                        name=f"Keeping {safe} ✅",
                        details=[f"{safe} domains are NOT blocked and should be kept."],
                    )
                ],
            ),
        ],
        summary=[
            f"Checking: {gateways}",
            f"Excluding: {safe} (safe to send)",
            "⚠️ Full scan requires leads API access",
        ],
    )
