"""
Benchmark tables - named thresholds consumed by every classifier.

Pure configuration. Classifiers take a table as an argument so tests (or a
future per-workspace override) can swap thresholds without touching rules.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TerminalBenchmarks:
    """Per-campaign thresholds used by the terminal reports."""

    MIN_DATA_THRESHOLD: int = 10_000  # evaluate after 10k sends
    NOT_VIABLE_THRESHOLD: int = 20_000  # contacted
    NOT_VIABLE_OPP_MAX: int = 2
    MIN_REPLY_RATE: float = 0.45  # percent
    CRITICAL_REPLY_RATE: float = 0.3
    GOOD_REPLY_RATE: float = 2.0
    TARGET_CONVERSION: float = 40.0  # positive reply -> meeting, percent
    BROKEN_SUBSEQUENCE_POSITIVE_MIN: int = 10
    LOW_LEADS_WARNING: int = 3_000
    LOW_LEADS_CRITICAL: int = 1_000
    LEADS_REORDER_SOON: int = 5_000
    MIN_HEALTH_SCORE: float = 93.0
    OPTIMAL_WARMUP_HEALTH: float = 95.0
    FAR_BELOW_HEALTH: float = 85.0
    SEND_VOLUME_THRESHOLD: float = -20.0  # percent drop considered abnormal
    TREND_SIGNIFICANT: float = 5.0  # percent change
    MIN_SENT_FOR_BENCHMARK: int = 1_000
    MIN_SENT_FOR_TRENDS: int = 5_000
    MAX_BOUNCE_RATE: float = 5.0
    DEFAULT_DAILY_LIMIT: int = 50


@dataclass(slots=True, frozen=True)
class ClientBenchmarks:
    """Per-client thresholds used by the issue-bucket classifier and task generator."""

    # Reply rate (percent)
    CRITICAL_REPLY_RATE: float = 0.45
    LOW_REPLY_RATE: float = 1.0
    GOOD_REPLY_RATE: float = 2.0
    COPY_CRITICAL_REPLY_RATE: float = 0.3

    # Conversion: opportunities / replies (percent)
    CRITICAL_CONVERSION: float = 5.0
    TARGET_CONVERSION: float = 15.0
    ASPIRATIONAL_CONVERSION: float = 40.0

    # Lead runway
    CRITICAL_UNCONTACTED: int = 3_000
    SEVERE_UNCONTACTED: int = 1_000
    WARNING_UNCONTACTED: int = 10_000

    # Lifetime sends
    EARLY_STAGE: int = 15_000
    VIABLE_THRESHOLD: int = 75_000
    TAM_EXHAUSTED: int = 100_000
    NOT_VIABLE_MIN_OPPORTUNITIES: int = 10

    # Inbox health
    HEALTHY_INBOX: float = 93.0
    WARNING_INBOX: float = 85.0
    MAX_LOW_HEALTH_INBOXES: int = 2

    # Sending
    MIN_DAILY_SEND_PER_INBOX: int = 20
    TARGET_DAILY_SEND_PER_INBOX: int = 40

    # Copy length
    SUBJECT_LINE_WORDS: int = 3
    FIRST_LINE_WORDS: int = 12
    MAX_BODY_WORDS: int = 80

    # Task generation
    MIN_REPLIES_FOR_CONVERSION: int = 10
    TREND_SIGNIFICANT: float = 5.0


BLOCKED_DOMAINS: tuple[str, ...] = ("microsoft", "proofpoint", "mimecast", "cisco")
SAFE_GATEWAYS: tuple[str, ...] = ("barracuda",)

DIAGNOSTIC_STEPS: tuple[str, ...] = (
    "Step 1: Check first line (<12 words?)",
    "Step 2: Test new mechanism reframe",
    "Step 3: Narrow targeting if too broad",
    "Step 4: A/B test new angle",
)

TERMINAL_BENCHMARKS = TerminalBenchmarks()
CLIENT_BENCHMARKS = ClientBenchmarks()
