"""Tests for Prometheus metric definitions."""

from src.observability.metrics import (
    ORCHESTRATIONS_TOTAL,
    REGISTRY,
    get_metrics_content_type,
    get_metrics_text,
)


class TestMetricsExport:
    """Tests for the metrics text export."""

    def test_export_contains_research_metrics(self):
        ORCHESTRATIONS_TOTAL.labels(status="success").inc()

        text = get_metrics_text()
        if isinstance(text, bytes):
            text = text.decode()

        assert "research_orchestrations_total" in text
        assert "research_rate_limited_total" in text

    def test_counter_is_in_dedicated_registry(self):
        before = REGISTRY.get_sample_value(
            "research_orchestrations_total", {"status": "partial"}
        ) or 0.0

        ORCHESTRATIONS_TOTAL.labels(status="partial").inc()

        after = REGISTRY.get_sample_value(
            "research_orchestrations_total", {"status": "partial"}
        )
        assert after == before + 1

    def test_content_type_is_prometheus_text(self):
        assert get_metrics_content_type().startswith("text/plain")
