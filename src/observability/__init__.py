"""Observability for the research orchestration core.

Provides:
- Correlation ID context management (session id per request)
- Structured logging with context propagation
- Prometheus metrics and the per-provider MetricsCollector

Usage:
    from src.observability import configure_logging, MetricsCollector

    configure_logging(level="INFO")
    collector = MetricsCollector()
"""

from src.observability.context import get_correlation_id, correlation_id_context
from src.observability.logging import configure_logging
from src.observability.collector import MetricsCollector, RequestMetrics
from src.observability.metrics import (
    PROVIDER_REQUESTS_TOTAL,
    RATE_LIMITED_TOTAL,
    TOKENS_TOTAL,
    COST_USD_TOTAL,
    ORCHESTRATIONS_TOTAL,
    BATCH_ITEMS_TOTAL,
    ACTIVE_PROVIDER_CALLS,
    PROVIDER_REQUEST_DURATION,
    RETRY_ATTEMPTS,
    REGISTRY,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    # Context
    "get_correlation_id",
    "correlation_id_context",
    # Logging
    "configure_logging",
    # Collector
    "MetricsCollector",
    "RequestMetrics",
    # Prometheus
    "PROVIDER_REQUESTS_TOTAL",
    "RATE_LIMITED_TOTAL",
    "TOKENS_TOTAL",
    "COST_USD_TOTAL",
    "ORCHESTRATIONS_TOTAL",
    "BATCH_ITEMS_TOTAL",
    "ACTIVE_PROVIDER_CALLS",
    "PROVIDER_REQUEST_DURATION",
    "RETRY_ATTEMPTS",
    "REGISTRY",
    "get_metrics_text",
    "get_metrics_content_type",
]
