"""Prometheus metrics utilities."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, generate_latest


# -- Counters --
COMPLETIONS_TOTAL = Counter(
    "lumen_completions_total",
    "Total completions processed",
    ["provider", "mode", "status"],
)

SHORT_CIRCUITS_TOTAL = Counter(
    "lumen_short_circuits_total",
    "Completions answered by a middleware without calling the provider",
    ["middleware"],
)

TOKENS_TOTAL = Counter(
    "lumen_tokens_total",
    "Tokens reported by providers",
    ["kind"],
)

# -- Histograms --
COMPLETION_DURATION = Histogram(
    "lumen_completion_duration_seconds",
    "End-to-end completion duration",
    ["provider", "mode"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics text."""
    return generate_latest()
