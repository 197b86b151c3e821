import pytest

from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.terminal.resolver import (
    COMMAND_ALIASES,
    DEFAULT_SUGGESTIONS,
    FUZZY_RULES,
    fuzzy_candidates,
    normalize,
    resolve,
    suggest,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("d", CommandType.DAILY),
        ("  Low   Leads ", CommandType.LOW_LEADS),
        ("leads", CommandType.LOW_LEADS),
        ("list", CommandType.CAMPAIGNS),
        ("campaign list", CommandType.CAMPAIGNS),
        ("wednesday tasks", CommandType.WEEKLY_SUMMARY),
        ("?", CommandType.HELP),
        ("What do I need to do today", CommandType.DAILY),
    ],
)
def test_aliases(text, expected):
    resolved = resolve(text)

    assert resolved.command is expected
    assert resolved.params == {}
    assert not resolved.force_refresh


def test_every_command_answers_to_its_own_name():
    for command in CommandType:
        if command in (CommandType.UNKNOWN, CommandType.REFRESH):
            continue
        assert command.phrase in COMMAND_ALIASES


@pytest.mark.parametrize(
    "text,expected,params",
    [
        ("diagnose Acme Q1?", CommandType.DIAGNOSE, {"campaign": "Acme Q1"}),
        ("what's wrong with Globex Retail", CommandType.DIAGNOSE, {"campaign": "Globex Retail"}),
        ("verify email bob@acme.io", CommandType.VERIFY_EMAIL, {"email": "bob@acme.io"}),
        ("validate bob@acme.io", CommandType.VERIFY_EMAIL, {"email": "bob@acme.io"}),
        ("accounts tagged Acme Corp", CommandType.ACCOUNTS_BY_TAG, {"tag": "Acme Corp"}),
        ("leads for Acme - Q1", CommandType.LEADS_CAMPAIGN, {"campaign": "Acme - Q1"}),
        ("campaign Acme Q1", CommandType.CAMPAIGN_DETAIL, {"campaign": "Acme Q1"}),
        ("search blocklist for acme.com", CommandType.BLOCK_LIST, {"search": "acme.com"}),
    ],
)
def test_parameterized_patterns(text, expected, params):
    resolved = resolve(text)

    assert resolved.command is expected
    assert resolved.params == params


@pytest.mark.parametrize(
    "text,expected",
    [
        ("show me the send volume for 7 days", CommandType.SEND_VOLUME_7D),
        ("any disconnected inboxes", CommandType.INBOX_ISSUES),
        ("campaigns low on leads", CommandType.LOW_LEADS),
        ("show me broken subsequences", CommandType.LOW_CONVERSION),
        ("are we hitting targets", CommandType.BENCHMARKS),
    ],
)
def test_fuzzy_keywords_pick_highest_priority(text, expected):
    assert resolve(text).command is expected


def test_fuzzy_priorities_are_unique():
    priorities = [rule.priority for rule in FUZZY_RULES]

    assert len(set(priorities)) == len(priorities)


def test_fuzzy_candidates_best_first():
    candidates = fuzzy_candidates(normalize("weekly send volume"))

    assert candidates[0].command is CommandType.SEND_VOLUME_7D
    assert [c.priority for c in candidates] == sorted((c.priority for c in candidates), reverse=True)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("which campaign is running out of leads?", CommandType.LOW_LEADS),
        ("how many emails did we send?", CommandType.SEND_VOLUME),
    ],
)
def test_question_heuristics(text, expected):
    assert resolve(text).command is expected


@pytest.mark.parametrize("text", ["refresh low leads", "r! low leads", "fresh low leads", "REFRESH  low leads"])
def test_refresh_prefix_forces_fetch(text):
    resolved = resolve(text)

    assert resolved.command is CommandType.LOW_LEADS
    assert resolved.force_refresh
    assert resolved.raw_text == text


def test_refresh_prefix_keeps_params():
    resolved = resolve("r! diagnose Acme")

    assert resolved.command is CommandType.DIAGNOSE
    assert resolved.params == {"campaign": "Acme"}
    assert resolved.force_refresh


def test_bare_refresh_clears_cache():
    assert resolve("Refresh").command is CommandType.REFRESH


@pytest.mark.parametrize("text", ["", "   ", "xyzzy plugh"])
def test_unknown_input(text):
    resolved = resolve(text)

    assert resolved.is_unknown
    assert resolved.command is CommandType.UNKNOWN


def test_suggest_close_match():
    suggestions = suggest("dialy")

    assert "daily" in suggestions
    assert len(suggestions) <= 4


def test_suggest_falls_back_to_defaults():
    assert suggest("qqqqqqqq") == list(DEFAULT_SUGGESTIONS)
