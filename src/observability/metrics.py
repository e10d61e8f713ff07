"""Prometheus metrics definitions for the research orchestration core.

Defines counters, gauges, and histograms for monitoring:
- Provider call outcomes and latency
- Local rate limiting activity
- Token usage and cost per provider
- Orchestration and batch outcomes

Usage:
    from src.observability.metrics import (
        PROVIDER_REQUESTS_TOTAL,
        PROVIDER_REQUEST_DURATION,
    )

    PROVIDER_REQUESTS_TOTAL.labels(provider="claude", status="success").inc()
    PROVIDER_REQUEST_DURATION.labels(provider="claude").observe(2.4)

Metrics are exposed via the /metrics endpoint of the health server.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Dedicated registry keeps the default process registry untouched
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

PROVIDER_REQUESTS_TOTAL = Counter(
    name="research_provider_requests_total",
    documentation="Terminal provider call outcomes",
    labelnames=["provider", "status"],  # success, failed
    registry=REGISTRY,
)

RATE_LIMITED_TOTAL = Counter(
    name="research_rate_limited_total",
    documentation="Requests rejected by the local rate limiter",
    labelnames=["provider"],
    registry=REGISTRY,
)

TOKENS_TOTAL = Counter(
    name="research_tokens_total",
    documentation="Tokens consumed by provider calls",
    labelnames=["provider", "type"],  # prompt, completion
    registry=REGISTRY,
)

COST_USD_TOTAL = Counter(
    name="research_cost_usd_total",
    documentation="Provider spend in USD",
    labelnames=["provider"],
    registry=REGISTRY,
)

ORCHESTRATIONS_TOTAL = Counter(
    name="research_orchestrations_total",
    documentation="Parallel orchestrations by outcome",
    labelnames=["status"],  # success, partial, failed
    registry=REGISTRY,
)

BATCH_ITEMS_TOTAL = Counter(
    name="research_batch_items_total",
    documentation="Batch items processed",
    labelnames=["provider", "status"],  # success, failed
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

ACTIVE_PROVIDER_CALLS = Gauge(
    name="research_active_provider_calls",
    documentation="Provider calls currently in flight",
    labelnames=["provider"],
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

PROVIDER_REQUEST_DURATION = Histogram(
    name="research_provider_request_duration_seconds",
    documentation="Provider call duration in seconds (successful attempt)",
    labelnames=["provider"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
    registry=REGISTRY,
)

RETRY_ATTEMPTS = Histogram(
    name="research_retry_attempts",
    documentation="Attempts consumed per retry executor call",
    labelnames=["provider"],
    buckets=(1, 2, 3, 4, 5, 8, 11, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Content-Type header value for the metrics response."""
    return CONTENT_TYPE_LATEST
