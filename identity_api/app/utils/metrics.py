"""Prometheus metrics for upload reconciliation."""

from prometheus_client import Counter

# Upload metrics
uploads_total = Counter(
    "uploads_total",
    "Total reconciled uploads",
    ["target", "outcome"],
)

upload_cleanup_failures_total = Counter(
    "upload_cleanup_failures_total",
    "Total failed best-effort upload cleanup steps",
    ["step", "reason"],
)


class PrometheusUploadMetrics:
    """Prometheus-based upload metrics implementation."""

    def inc_upload(self, target: str, outcome: str) -> None:
        """Increment upload outcome counter."""
        uploads_total.labels(target=target, outcome=outcome).inc()

    def inc_cleanup_failure(self, step: str, reason: str) -> None:
        """Increment cleanup failure counter."""
        upload_cleanup_failures_total.labels(step=step, reason=reason).inc()
