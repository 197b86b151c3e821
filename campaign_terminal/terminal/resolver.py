"""
Intent Resolver - free text to a canonical terminal command.

Layers, first hit wins:
    1. refresh prefix ("refresh low leads", "r! daily", "fresh weekly")
    2. exact alias lookup on the normalized text
    3. parameterized patterns (capture campaign names, emails, tags)
    4. scored keyword table (highest priority among all matching rules)
    5. question heuristics (only for text containing "?")

resolve() is pure and never raises; everything it learned travels in the
returned ResolvedCommand.
"""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass

from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.command_domain import CommandType, ResolvedCommand

logger = get_logger(__name__)

C = CommandType

REFRESH_TOKENS: tuple[str, ...] = ("refresh ", "r! ", "fresh ")

_EXPLICIT_ALIASES: dict[str, CommandType] = {
    # Campaigns
    "campaigns": C.CAMPAIGNS,
    "all campaigns": C.CAMPAIGNS,
    "campaign list": C.CAMPAIGNS,
    "list": C.CAMPAIGNS,
    "ls": C.CAMPAIGNS,
    # Daily
    "d": C.DAILY,
    "daily": C.DAILY,
    "today": C.DAILY,
    "show daily tasks": C.DAILY,
    "what do i need to do today": C.DAILY,
    "daily tasks": C.DAILY_REPORT,
    "daily report": C.DAILY_REPORT,
    "form daily": C.FORM_DAILY,
    "daily form": C.FORM_DAILY,
    # Weekly
    "w": C.WEEKLY,
    "weekly": C.WEEKLY,
    "this week": C.WEEKLY,
    "last 7 days": C.WEEKLY,
    "7 day": C.WEEKLY,
    "week report": C.WEEKLY,
    "weekly report": C.WEEKLY_REPORT,
    "form weekly": C.FORM_WEEKLY,
    "weekly form": C.FORM_WEEKLY,
    "weekly summary": C.WEEKLY_SUMMARY,
    "wednesday tasks": C.WEEKLY_SUMMARY,
    "show wednesday checklist": C.WEEKLY_SUMMARY,
    "full weekly": C.WEEKLY_SUMMARY,
    # Send volume
    "send volume": C.SEND_VOLUME,
    "check send volume": C.SEND_VOLUME,
    "is send volume low": C.SEND_VOLUME,
    "volume": C.SEND_VOLUME,
    "send volume 7d": C.SEND_VOLUME_7D,
    "send volume 7 day": C.SEND_VOLUME_7D,
    "7 day send volume": C.SEND_VOLUME_7D,
    # Leads
    "low leads": C.LOW_LEADS,
    "campaigns under 3000 leads": C.LOW_LEADS,
    "which campaigns need leads": C.LOW_LEADS,
    "show campaigns with low leads": C.LOW_LEADS,
    "leads": C.LOW_LEADS,
    "all leads": C.LEADS,
    "lead stats": C.LEADS,
    "total leads": C.LEADS,
    "interested": C.INTERESTED,
    "interested leads": C.INTERESTED,
    "meetings": C.MEETINGS_BOOKED,
    "meetings booked": C.MEETINGS_BOOKED,
    "lead lists": C.LEAD_LISTS,
    "lists": C.LEAD_LISTS,
    # ESP / blocking
    "blocked domains": C.BLOCKED_DOMAINS,
    "check microsoft proofpoint mimecast cisco": C.BLOCKED_DOMAINS,
    "scan for blocked emails": C.BLOCKED_DOMAINS,
    "blocked email providers": C.BLOCKED_DOMAINS,
    "blocked": C.BLOCKED_DOMAINS,
    "esp": C.ESP_CHECK,
    "esp check": C.ESP_CHECK,
    "block list": C.BLOCK_LIST,
    "blocklist": C.BLOCK_LIST,
    # Performance
    "benchmarks": C.BENCHMARKS,
    "campaigns below benchmarks": C.BENCHMARKS,
    "benchmark check": C.BENCHMARKS,
    "which campaigns not hitting targets": C.BENCHMARKS,
    "underperforming": C.UNDERPERFORMING,
    "conversion": C.CONVERSION,
    "positive reply to meeting": C.CONVERSION,
    "sub 40% conversion": C.CONVERSION,
    "meeting conversion rates": C.CONVERSION,
    "subsequences": C.CONVERSION,
    "low conversion": C.LOW_CONVERSION,
    "bad variants": C.BAD_VARIANTS,
    "variants": C.BAD_VARIANTS,
    # Inbox
    "inbox health": C.INBOX_HEALTH,
    "disconnected inboxes": C.INBOX_HEALTH,
    "inbox errors": C.INBOX_HEALTH,
    "check inbox status": C.INBOX_HEALTH,
    "inboxes": C.INBOX_HEALTH,
    "inbox issues": C.INBOX_ISSUES,
    "removed inboxes": C.REMOVED_INBOXES,
    "tag removal report": C.REMOVED_INBOXES,
    "inboxes removed this week": C.REMOVED_INBOXES,
    "warmup": C.WARMUP_STATUS,
    # Trends
    "reply trends": C.REPLY_TRENDS,
    "trending downward": C.REPLY_TRENDS,
    "reply rate trends": C.REPLY_TRENDS,
    "check trends": C.REPLY_TRENDS,
    "trends": C.REPLY_TRENDS,
    "daily trends": C.DAILY_TRENDS,
    # Resources
    "subsequence list": C.SUBSEQUENCES,
    "follow ups": C.SUBSEQUENCES,
    # Utility
    "connection status": C.STATUS,
    "help": C.HELP,
    "?": C.HELP,
    "commands": C.HELP,
}


def _build_aliases() -> dict[str, CommandType]:
    # Every command answers to its own name; explicit aliases win on conflict ("leads")
    aliases = {
        command.phrase: command
        for command in CommandType
        if command not in (C.UNKNOWN, C.REFRESH)
    }
    aliases.update(_EXPLICIT_ALIASES)
    return aliases


COMMAND_ALIASES: dict[str, CommandType] = _build_aliases()


@dataclass(frozen=True)
class QueryPattern:
    regex: re.Pattern[str]
    command: CommandType
    params: tuple[str, ...]


def _qp(pattern: str, command: CommandType) -> QueryPattern:
    regex = re.compile(pattern, re.IGNORECASE)
    return QueryPattern(regex, command, tuple(regex.groupindex))


QUERY_PATTERNS: list[QueryPattern] = [
    _qp(r"^(?:diagnose|analy[sz]e|what'?s wrong with)\s+(?P<campaign>.+?)\??$", C.DIAGNOSE),
    _qp(r"^(?:verify|check|validate)\s+email\s+(?P<email>\S+)$", C.VERIFY_EMAIL),
    _qp(r"^(?:verify|validate)\s+(?P<email>\S+@\S+)$", C.VERIFY_EMAIL),
    _qp(r"^(?:accounts|inboxes)\s+(?:tagged|with\s+tag)\s+(?P<tag>.+)$", C.ACCOUNTS_BY_TAG),
    _qp(r"^leads\s+(?:for|in)\s+(?P<campaign>.+)$", C.LEADS_CAMPAIGN),
    _qp(
        r"^(?:show\s+campaign|campaign\s+details?(?:\s+for)?|details\s+for|campaign)\s+"
        r"(?!(?:list|analytics|stats|performance)$)(?P<campaign>.+)$",
        C.CAMPAIGN_DETAIL,
    ),
    _qp(r"^(?:search|check)\s+block\s?list\s+for\s+(?P<search>.+)$", C.BLOCK_LIST),
]


@dataclass(frozen=True)
class FuzzyRule:
    pattern: re.Pattern[str]
    command: CommandType
    priority: int


def _fz(pattern: str, command: CommandType, priority: int) -> FuzzyRule:
    return FuzzyRule(re.compile(rf"\b(?:{pattern})(?!\w)", re.IGNORECASE), command, priority)


# Higher priority wins when several rules match. Specific phrases sit above the
# broad single-keyword rules they overlap with.
FUZZY_RULES: list[FuzzyRule] = [
    _fz(r"send volume.{0,10}7|7.{0,5}days?.{0,5}sends?|weekly sends?", C.SEND_VOLUME_7D, 95),
    _fz(r"low conversions?|sub 40|broken subsequences?", C.LOW_CONVERSION, 94),
    _fz(r"weekly report|wednesday|full weekly", C.WEEKLY_REPORT, 93),
    _fz(r"daily report|daily tasks|today'?s tasks", C.DAILY_REPORT, 92),
    _fz(r"form.{0,5}daily|daily.{0,5}form|generate.{0,5}daily", C.FORM_DAILY, 91),
    _fz(r"form.{0,5}weekly|weekly.{0,5}form|generate.{0,5}weekly", C.FORM_WEEKLY, 90),
    _fz(r"bad variants?|underperforming variants?|worst variants?|trim variants?", C.BAD_VARIANTS, 89),
    _fz(r"block ?list|blocked entries", C.BLOCK_LIST, 88),
    _fz(r"meetings? booked|booked leads", C.MEETINGS_BOOKED, 87),
    _fz(r"interested leads|positive leads|positive replies", C.INTERESTED, 86),
    _fz(r"lead lists?|my lists|available lists", C.LEAD_LISTS, 85),
    _fz(r"low leads|need leads|under 3000|campaigns.{0,10}leads", C.LOW_LEADS, 84),
    _fz(r"removed inbox\w*|tag removal", C.REMOVED_INBOXES, 83),
    _fz(r"disconnect\w*|inbox errors?|sending errors?|inbox issues?", C.INBOX_ISSUES, 82),
    _fz(r"inbox health|inbox status|email accounts?|list accounts", C.INBOX_HEALTH, 81),
    _fz(r"verify email|check email|validate email", C.VERIFY_EMAIL, 80),
    _fz(r"diagnose|analy[sz]e|what'?s wrong", C.DIAGNOSE, 79),
    _fz(r"campaign analytics|campaign stats|campaign performance", C.CAMPAIGNS, 78),
    _fz(r"conversions?|meeting rate|40%|booking rate", C.CONVERSION, 70),
    _fz(r"benchmarks?|targets?|hitting|underperform\w*", C.BENCHMARKS, 69),
    _fz(r"trend\w*|declining|downward|reply.{0,5}rate.{0,5}over", C.REPLY_TRENDS, 68),
    _fz(r"warm ?up|health scores?", C.WARMUP_STATUS, 67),
    _fz(r"this week|last 7 days|7.?day|weekly|week stats|week analytics", C.WEEKLY, 60),
    _fz(r"today'?s?|daily stats|daily analytics", C.DAILY, 59),
    _fz(r"send volume|sending|emails sent|how many sent", C.SEND_VOLUME, 58),
    _fz(r"blocked|microsoft|proofpoint|mimecast|cisco|esp check", C.BLOCKED_DOMAINS, 57),
    _fz(r"list|campaigns|all campaigns|active campaigns|show campaigns", C.CAMPAIGNS, 50),
    _fz(r"(?:email )?templates?", C.TEMPLATES, 45),
    _fz(r"subsequences?|follow.?ups?", C.SUBSEQUENCES, 44),
    _fz(r"(?:custom |inbox )?tags?", C.TAGS, 43),
    _fz(r"workspace|my workspace", C.WORKSPACE, 42),
    _fz(r"team|members?", C.TEAM, 41),
    _fz(r"audit|activity|history", C.AUDIT_LOG, 40),
    _fz(r"billing|usage|api usage", C.BILLING, 39),
    _fz(r"status|connection|api status|test connection", C.STATUS, 30),
    _fz(r"help|commands?", C.HELP, 20),
]

DEFAULT_SUGGESTIONS: tuple[str, ...] = ("daily", "weekly summary", "low leads", "help")


def normalize(text: str) -> str:
    return " ".join(text.split()).lower()


def _match_alias(normalized: str) -> CommandType | None:
    return COMMAND_ALIASES.get(normalized)


def _match_pattern(trimmed: str) -> tuple[CommandType, dict[str, str]] | None:
    for qp in QUERY_PATTERNS:
        match = qp.regex.match(trimmed)
        if match:
            params = {name: match.group(name).strip() for name in qp.params}
            return qp.command, params
    return None


def fuzzy_candidates(normalized: str) -> list[FuzzyRule]:
    """All keyword rules matching the text, best first."""
    hits = [rule for rule in FUZZY_RULES if rule.pattern.search(normalized)]
    return sorted(hits, key=lambda rule: rule.priority, reverse=True)


def _match_fuzzy(normalized: str) -> CommandType | None:
    candidates = fuzzy_candidates(normalized)
    return candidates[0].command if candidates else None


def _match_question(normalized: str) -> CommandType | None:
    if "?" not in normalized:
        return None

    if re.search(r"which.{0,20}(campaign|inbox)", normalized):
        if "lead" in normalized:
            return C.LOW_LEADS
        if re.search(r"perform|benchmark|target", normalized):
            return C.UNDERPERFORMING
        if re.search(r"disconnect|error", normalized):
            return C.INBOX_ISSUES
        return C.CAMPAIGNS

    if re.search(r"how.{0,10}(many|much)", normalized):
        if re.search(r"sent|email", normalized):
            return C.SEND_VOLUME
        if "lead" in normalized:
            return C.LOW_LEADS
        if "meeting" in normalized:
            return C.CONVERSION
        if re.search(r"inbox|account", normalized):
            return C.INBOX_HEALTH

    if re.search(r"what.{0,10}(task|do|need)", normalized):
        return C.DAILY_REPORT

    return None


def _resolve_body(raw_text: str, trimmed: str, force_refresh: bool) -> ResolvedCommand:
    normalized = trimmed.lower()

    command = _match_alias(normalized)
    if command is not None:
        return ResolvedCommand(raw_text, command, {}, force_refresh)

    matched = _match_pattern(trimmed)
    if matched is not None:
        command, params = matched
        return ResolvedCommand(raw_text, command, params, force_refresh)

    command = _match_fuzzy(normalized) or _match_question(normalized) or C.UNKNOWN
    return ResolvedCommand(raw_text, command, {}, force_refresh)


def resolve(text: str) -> ResolvedCommand:
    """Map raw operator input to a ResolvedCommand. Never raises."""
    raw_text = text or ""
    trimmed = " ".join(raw_text.split())
    if not trimmed:
        return ResolvedCommand(raw_text, C.UNKNOWN)

    lowered = trimmed.lower()
    if lowered == "refresh":
        return ResolvedCommand(raw_text, C.REFRESH, {}, True)

    for token in REFRESH_TOKENS:
        if lowered.startswith(token):
            resolved = _resolve_body(raw_text, trimmed[len(token):].strip(), force_refresh=True)
            break
    else:
        resolved = _resolve_body(raw_text, trimmed, force_refresh=False)

    logger.debug(
        "Command resolved",
        command=resolved.command.value,
        params=resolved.params,
        force_refresh=resolved.force_refresh,
    )
    return resolved


def suggest(text: str, limit: int = 4) -> list[str]:
    """'Did you mean' alias phrases for unresolved input."""
    normalized = normalize(text)
    suggestions = difflib.get_close_matches(normalized, list(COMMAND_ALIASES), n=limit, cutoff=0.6)
    for fallback in DEFAULT_SUGGESTIONS:
        if len(suggestions) >= limit:
            break
        if fallback not in suggestions:
            suggestions.append(fallback)
    return suggestions[:limit]
