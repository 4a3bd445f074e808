"""
backend/oddsline/monitoring/odds_metrics.py

Purpose:
    Prometheus metrics for odds fetches, selection flattening and per-user
    rate limiting.

Dependencies:
    - prometheus_client
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter

from prometheus_client import Counter, Histogram

METRIC_FETCH_TOTAL = Counter(
    "odds_fetch_total",
    "Odds fetch requests by source and cache outcome.",
    ["source", "outcome"],
)
METRIC_UPSTREAM_FAILURES = Counter(
    "odds_upstream_failures_total",
    "Failed calls to the odds provider.",
    ["source"],
)
METRIC_SELECTIONS_EMITTED = Counter(
    "odds_selections_emitted_total",
    "Normalized selections emitted per market.",
    ["market"],
)
METRIC_ENTRIES_DROPPED = Counter(
    "odds_entries_dropped_total",
    "Bookmaker entries dropped during flattening.",
    ["reason"],
)
METRIC_UNMATCHED_LABELS = Counter(
    "odds_unmatched_labels_total",
    "Over/under labels that did not parse into a line.",
    ["market"],
)
METRIC_SUSPICIOUS_DROPPED = Counter(
    "odds_suspicious_dropped_total",
    "Selections removed by the suspicious odds guard.",
    ["market"],
)
METRIC_RATE_LIMIT_DECISIONS = Counter(
    "user_rate_limit_decisions_total",
    "Per-user rate limit decisions.",
    ["feature", "outcome"],
)
METRIC_FETCH_LATENCY = Histogram(
    "odds_fetch_latency_seconds",
    "Latency of fetch_odds end to end.",
    ["source"],
)


@contextmanager
def observe_latency(metric):
    start = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - start)
