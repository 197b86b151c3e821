"""
Campaign handlers - the full classified campaign list, single-campaign detail and diagnosis.
"""

import re

from campaign_terminal.engine.benchmarks import DIAGNOSTIC_STEPS, TerminalBenchmarks
from campaign_terminal.engine.campaign_classifier import (
    classify_campaigns,
    sort_campaigns,
    subsequences_broken,
    summarize_campaigns,
)
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.classification_domain import (
    CampaignBucket,
    ClassificationResult,
    Urgency,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.models.domain.metrics_domain import CampaignRecord
from campaign_terminal.services.errors import EntityNotFoundError
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report

logger = get_logger(__name__)

CARD_SEPARATOR = "\n\n───────────────────────────────────────\n\n"
HEAVY_RULE = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"

BUCKET_ICONS: dict[CampaignBucket, str] = {
    CampaignBucket.NEED_NEW_LIST: "🔴",
    CampaignBucket.NOT_PRIORITY: "🚫",
    CampaignBucket.REVIEW: "⚠️",
    CampaignBucket.NO_ACTION: "✅",
    CampaignBucket.PENDING: "⏳",
}

_DIAGNOSE_PREFIX = re.compile(r"^(?:diagnose|analy[sz]e|what'?s wrong with)\s*", re.IGNORECASE)
_TRAILING_CAMPAIGN = re.compile(r"\s*campaign$", re.IGNORECASE)


def find_campaign(records: list[CampaignRecord], query: str) -> CampaignRecord:
    """Case-insensitive substring match on name, or exact id. Raises EntityNotFoundError."""
    needle = _TRAILING_CAMPAIGN.sub("", query.strip()).strip()
    if needle:
        lowered = needle.lower()
        for record in records:
            if lowered in record.name.lower() or record.id == needle:
                return record
    raise EntityNotFoundError("campaign", query.strip())


def _campaign_card(idx: int, r: ClassificationResult, b: TerminalBenchmarks) -> str:
    m = r.metrics
    if r.urgency is Urgency.URGENT:
        status_icon = "🔴"
    elif r.urgency is Urgency.HIGH:
        status_icon = "⚠️"
    elif r.bucket is CampaignBucket.NO_ACTION:
        status_icon = "✅"
    else:
        status_icon = "🟡"

    if m.reply_rate >= b.GOOD_REPLY_RATE:
        reply_icon = "⭐ EXCELLENT"
    elif m.reply_rate >= b.MIN_REPLY_RATE:
        reply_icon = "✅ Good"
    else:
        reply_icon = "🔴 Below benchmark"

    if m.uncontacted < b.LOW_LEADS_CRITICAL:
        leads_icon = "🔴 CRITICAL"
    elif m.uncontacted < b.LOW_LEADS_WARNING:
        leads_icon = "⚠️ LOW"
    else:
        leads_icon = "✅"

    lines = [
        f"**{idx}. {r.entity_name}**",
        f"Status: Active {status_icon}",
        f"Leads: {m.uncontacted:,} uncontacted {leads_icon}",
        "",
        "**Performance:**",
        f"• Sent: {m.sent:,}",
        f"• Reply Rate: {m.reply_rate:.2f}% {reply_icon}",
        f"• Opportunities: {m.opportunities}{' 🔴' if m.opportunities == 0 and m.replies > 100 else ''}",
        f"• Reply to Opp: {m.reply_to_opportunity_rate:.2f}%",
    ]

    if m.positive_replies > 0:
        conv = m.positive_reply_to_meeting_rate
        lines += [
            "",
            "**Conversion:**",
            f"• {m.positive_replies} positive replies → {m.meetings} meetings",
            f"• Pos Reply to Meeting: {conv:.2f}%{' ⚠️' if conv < b.TARGET_CONVERSION else ' ✅'}",
        ]

    if subsequences_broken(m, b):
        lines += [
            "",
            "**⚠️ Analysis:**",
            f"• {m.positive_replies} replies → ZERO meetings = SUBSEQUENCES BROKEN",
            "• Fix price/info/meeting templates urgently",
        ]

    urgent = " (URGENT)" if r.urgency is Urgency.URGENT else ""
    lines += [
        "",
        f"**Classification: {BUCKET_ICONS[r.bucket]} {r.bucket.value}**{urgent}",
        f"Reason: {r.reason}",
        f"Action: {r.recommended_action}",
    ]
    return "\n".join(lines)


def _summary_block(results: list[ClassificationResult], b: TerminalBenchmarks) -> str:
    summary = summarize_campaigns(results, b)
    by_bucket = {bucket: [r for r in results if r.bucket is bucket] for bucket in CampaignBucket}
    lines = ["", "", HEAVY_RULE, "**SUMMARY BY CLASSIFICATION:**", HEAVY_RULE, ""]

    if summary.urgent:
        lines.append("🔴 **URGENT - Immediate Action Required:**")
        lines += [f"• {r.entity_name} ({r.reason.split(' - ')[0]})" for r in summary.urgent]
        lines.append("")

    sections = [
        (
            CampaignBucket.NEED_NEW_LIST,
            "⚠️ **NEED NEW LIST (<3000 leads):**",
            lambda r: f"{r.metrics.uncontacted:,} left",
        ),
        (
            CampaignBucket.REVIEW,
            "⚠️ **REVIEW - Fix Subsequences:**",
            lambda r: f"{r.metrics.positive_reply_to_meeting_rate:.2f}% conversion",
        ),
        (
            CampaignBucket.NOT_PRIORITY,
            "🚫 **NOT PRIORITY - Not Viable:**",
            lambda r: (
                f"{r.metrics.reply_rate:.2f}% reply rate"
                if r.metrics.reply_rate < b.MIN_REPLY_RATE
                else f"{r.metrics.contacted:,} sent, {r.metrics.opportunities} opps"
            ),
        ),
        (
            CampaignBucket.NO_ACTION,
            "✅ **NO ACTION - Performing Well:**",
            lambda r: (
                f"{r.metrics.uncontacted:,} leads, "
                f"{r.metrics.positive_reply_to_meeting_rate:.2f}% conv"
            ),
        ),
        (
            CampaignBucket.PENDING,
            "⏳ **PENDING - Awaiting Data:**",
            lambda r: f"{r.metrics.sent:,} sent",
        ),
    ]
    for bucket, heading, describe in sections:
        if by_bucket[bucket]:
            lines.append(heading)
            lines += [f"• {r.entity_name} ({describe(r)})" for r in by_bucket[bucket]]
            lines.append("")

    lines += [
        "**BENCHMARK STATUS:**",
        f"• Below {b.MIN_REPLY_RATE:g}% reply rate: {len(summary.below_reply_rate)} campaign(s)",
        f"• Below {b.TARGET_CONVERSION:g}% pos reply→meeting: {len(summary.below_conversion)} campaign(s)",
        f"• Contacted 20k+ with ≤2 opps: {len(summary.not_viable)} campaign(s)",
    ]
    return "\n".join(lines)


@register(CommandType.CAMPAIGNS, ttl_class="analytics")
async def campaign_list(ctx: HandlerContext) -> TerminalReport:
    """Every active campaign, classified and sorted by action priority."""
    records = await ctx.provider.list_campaigns()
    results = sort_campaigns(classify_campaigns(records, ctx.benchmarks))
    summary = summarize_campaigns(results, ctx.benchmarks)

    cards = CARD_SEPARATOR.join(
        _campaign_card(idx, r, ctx.benchmarks) for idx, r in enumerate(results, start=1)
    )
    text = cards + _summary_block(results, ctx.benchmarks)

    logger.info(
        "Campaign list classified",
        campaign_count=len(results),
        urgent_count=len(summary.urgent),
    )
    return TerminalReport(
        command=ctx.command.value,
        title=f"Active Campaign Analysis ({len(records)} campaigns)",
        icon="📊",
        sections=[
            ReportSection(
                title="CAMPAIGN DETAILS",
                type="summary",
                items=[ReportItem(name="Full Analysis", details=[text])],
            )
        ],
        metadata=ReportMetadata(
            campaign_count=len(records),
            issue_count=len(summary.urgent) + len(summary.by_bucket[CampaignBucket.NEED_NEW_LIST]),
            raw_campaigns=[r.to_dict() for r in results],
            extra={"summary": summary.to_dict()},
        ),
    )


@register(CommandType.CAMPAIGN_DETAIL, CommandType.LEADS_CAMPAIGN, ttl_class="analytics")
async def campaign_detail(ctx: HandlerContext) -> TerminalReport:
    records = await ctx.provider.list_campaigns()
    campaign = find_campaign(records, ctx.params.get("campaign", ""))
    b = ctx.benchmarks

    lines = [
        f"# {campaign.name}",
        "",
        f"**Status:** {'🟢 Active' if campaign.is_active else '⏸️ Paused'}",
        f"**ID:** `{campaign.id}`",
        "",
    ]
    m = campaign.metrics
    if m is None:
        lines.append("⚠️ No analytics data available yet")
    else:
        conv = m.positive_reply_to_meeting_rate
        lines += [
            "## 📊 Performance Metrics",
            "",
            f"• **Sent:** {m.sent:,}",
            f"• **Reply Rate:** {m.reply_rate:.2f}% {'✅' if m.reply_rate >= b.MIN_REPLY_RATE else '⚠️'}",
            f"• **Replies:** {m.replies:,}",
            f"• **Opportunities:** {m.opportunities}",
            "",
            "## 👥 Lead Status",
            "",
            f"• **Total Leads:** {m.total_leads:,}",
            f"• **Contacted:** {m.contacted:,}",
            f"• **Uncontacted:** {m.uncontacted:,} {'⚠️' if m.uncontacted < b.LOW_LEADS_WARNING else '✅'}",
            "",
            "## 🎯 Conversion",
            "",
            f"• **Positive Replies:** {m.positive_replies}",
            f"• **Meetings Booked:** {m.meetings}",
            f"• **Pos Reply → Meeting:** {conv:.1f}% {'✅' if conv >= b.TARGET_CONVERSION else '⚠️'}",
        ]

    return text_report(
        ctx,
        title=campaign.name,
        icon="📋",
        section_title="CAMPAIGN DETAILS",
        text="\n".join(lines),
        campaign_count=1,
    )


def _diagnosis_issues(record: CampaignRecord, b: TerminalBenchmarks) -> tuple[list[str], int]:
    m = record.metrics
    if m is None:
        return ["⚠️ No analytics data available yet. Let the campaign run longer."], 0

    lines = [
        "## 📊 Current Status",
        "",
        f"• Sent: {m.sent:,}",
        f"• Reply Rate: {m.reply_rate:.2f}%",
        f"• Uncontacted: {m.uncontacted:,}",
        f"• Positive Replies: {m.positive_replies}",
        f"• Meetings: {m.meetings}",
        "",
        "## 🔍 Issues Found",
        "",
    ]
    if m.sent < b.MIN_DATA_THRESHOLD:
        lines.append(
            f"⏳ **Insufficient Data**: Only {m.sent:,} sent. "
            f"Need {b.MIN_DATA_THRESHOLD // 1000}k+ for reliable analysis."
        )
        return lines, 0

    issues = 0
    if m.reply_rate < b.MIN_REPLY_RATE:
        issues += 1
        lines += [
            f"🔴 **Low Reply Rate**: {m.reply_rate:.2f}% (target: {b.MIN_REPLY_RATE:g}%)",
            "",
            "**Recommended Actions:**",
            *(f"  • {step}" for step in DIAGNOSTIC_STEPS),
            "",
        ]

    if m.uncontacted < b.LOW_LEADS_CRITICAL:
        issues += 1
        lines += [
            f"🔴 **Critical Lead Shortage**: Only {m.uncontacted:,} remaining",
            "**Action:** Order 30k+ leads TODAY",
            "",
        ]
    elif m.uncontacted < b.LOW_LEADS_WARNING:
        issues += 1
        lines += [
            f"⚠️ **Low Leads**: {m.uncontacted:,} remaining",
            "**Action:** Order 50k leads this week",
            "",
        ]

    if m.positive_replies > 5 and m.meetings == 0:
        issues += 1
        lines += [
            f"🔴 **Broken Subsequences**: {m.positive_replies} positive replies → 0 meetings",
            "**Action:** Review price/info/meeting subsequences immediately",
            "",
        ]
    elif m.positive_reply_to_meeting_rate < b.TARGET_CONVERSION and m.positive_replies > 3:
        issues += 1
        lines += [
            f"⚠️ **Low Conversion**: {m.positive_reply_to_meeting_rate:.1f}% "
            f"(target: {b.TARGET_CONVERSION:g}%)",
            "**Action:** Optimize subsequences",
            "",
        ]

    if issues == 0:
        lines.append("✅ **No major issues found!** Campaign is performing well.")
    return lines, issues


@register(CommandType.DIAGNOSE, ttl_class="analytics")
async def diagnose(ctx: HandlerContext) -> TerminalReport:
    query = ctx.params.get("campaign") or _DIAGNOSE_PREFIX.sub("", ctx.raw_text.strip())
    records = await ctx.provider.list_campaigns()
    campaign = find_campaign(records, query)

    body, issue_count = _diagnosis_issues(campaign, ctx.benchmarks)
    text = "\n".join([f"# 🔍 Diagnosis: {campaign.name}", "", *body])
    return text_report(
        ctx,
        title=f"Diagnosis: {campaign.name}",
        icon="🔍",
        section_title="DIAGNOSIS",
        text=text,
        campaign_count=1,
        issue_count=issue_count,
    )
