import pytest

from campaign_terminal.engine.campaign_classifier import (
    CAMPAIGN_RULES,
    classify_campaign,
    classify_campaigns,
    classify_record,
    sort_campaigns,
    subsequences_broken,
    summarize_campaigns,
)
from campaign_terminal.engine.rules import NoRuleMatched, Rule, first_match
from campaign_terminal.models.domain.classification_domain import CampaignBucket, Severity, Urgency
from campaign_terminal.models.domain.metrics_domain import CampaignRecord
from tests.conftest import campaign, snapshot


def test_rule_order_is_fixed():
    assert [rule.name for rule in CAMPAIGN_RULES] == [
        "pending",
        "not_viable",
        "reply_rate_floor",
        "need_new_list",
        "review_conversion",
        "no_action",
    ]


def test_first_match_without_default_raises():
    rules = [Rule("never", lambda _: False, lambda _: "x")]
    with pytest.raises(NoRuleMatched):
        first_match(rules, object())


def test_under_min_data_is_pending_even_with_terrible_numbers():
    result = classify_campaign(snapshot(sent=9_999, replies=0, total_leads=100, contacted=100))

    assert result.bucket is CampaignBucket.PENDING
    assert result.urgency is Urgency.LOW
    assert "9,999" in result.reason


def test_not_viable_beats_low_reply_rate():
    result = classify_campaign(snapshot(contacted=20_000, total_leads=40_000, opportunities=2, replies=10))

    assert result.bucket is CampaignBucket.NOT_PRIORITY
    assert "not viable" in result.reason


def test_low_reply_rate_is_not_priority():
    result = classify_campaign(snapshot(replies=60))  # 0.3%

    assert result.bucket is CampaignBucket.NOT_PRIORITY
    assert result.severity is Severity.HIGH
    assert "0.30% reply rate" in result.reason


@pytest.mark.parametrize(
    "uncontacted, urgency",
    [(999, Urgency.URGENT), (1_000, Urgency.HIGH), (2_999, Urgency.HIGH)],
)
def test_low_leads_need_new_list(uncontacted, urgency):
    result = classify_campaign(snapshot(uncontacted_reported=uncontacted))

    assert result.bucket is CampaignBucket.NEED_NEW_LIST
    assert result.urgency is urgency


def test_three_thousand_leads_is_enough():
    assert classify_campaign(snapshot(uncontacted_reported=3_000)).bucket is CampaignBucket.NO_ACTION


def test_broken_subsequences_are_urgent_review():
    m = snapshot(positive_replies=11, meetings=0)
    result = classify_campaign(m)

    assert subsequences_broken(m)
    assert result.bucket is CampaignBucket.REVIEW
    assert result.urgency is Urgency.URGENT
    assert "BROKEN" in result.reason


def test_ten_positive_replies_without_meetings_is_not_broken():
    m = snapshot(positive_replies=10, meetings=0)
    result = classify_campaign(m)

    assert not subsequences_broken(m)
    assert result.bucket is CampaignBucket.REVIEW
    assert result.urgency is Urgency.MEDIUM


def test_healthy_campaign_is_no_action():
    result = classify_campaign(snapshot(), entity_id="c1", name="Acme - Q1")

    assert result.bucket is CampaignBucket.NO_ACTION
    assert result.entity_name == "Acme - Q1"
    assert result.recommended_action == "Performing well - let continue running"


def test_no_action_warns_before_reorder_point():
    result = classify_campaign(snapshot(uncontacted_reported=4_000))

    assert result.recommended_action.startswith("Performing well - prepare to order leads")


def test_record_without_analytics_is_pending():
    result = classify_record(CampaignRecord(id="c9", name="Fresh"))

    assert result.bucket is CampaignBucket.PENDING
    assert result.reason == "No analytics data available"


def test_sort_puts_urgent_lead_shortage_first():
    results = classify_campaigns(
        [
            campaign("Zeta", "z"),
            campaign("Alpha Pending", "p", sent=100),
            campaign("Dry", "d", uncontacted_reported=500),
            campaign("Thin", "t", uncontacted_reported=2_000),
        ]
    )
    ordered = [r.entity_name for r in sort_campaigns(results)]

    assert ordered == ["Dry", "Thin", "Zeta", "Alpha Pending"]


def test_sort_breaks_ties_by_name():
    results = classify_campaigns([campaign("B", "2"), campaign("A", "1")])

    assert [r.entity_name for r in sort_campaigns(results)] == ["A", "B"]


def test_summary_skips_pending_for_benchmarks():
    results = classify_campaigns(
        [
            campaign("Pending", sent=500, replies=0),
            campaign("Dry", uncontacted_reported=500),
            campaign("Weak", replies=40),
        ]
    )
    summary = summarize_campaigns(results)

    assert summary.total == 3
    assert summary.below_reply_rate == ["Weak"]
    assert summary.need_leads == [("Dry", 500)]
    assert [r.entity_name for r in summary.urgent] == ["Dry"]
    assert summary.to_dict()["by_classification"]["PENDING"] == ["Pending"]
