"""
Prometheus metrics for subscription billing.
"""

from prometheus_client import Counter, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest
from fastapi import Response
import structlog

logger = structlog.get_logger(__name__)

# Create custom registry for our metrics
registry = CollectorRegistry()

webhook_events = Counter(
    'qrfeedback_webhook_events_total',
    'Total webhook events processed',
    ['event_type', 'status'],
    registry=registry
)

webhook_signature_failures = Counter(
    'qrfeedback_webhook_signature_failures_total',
    'Webhook requests rejected by signature verification',
    registry=registry
)

subscription_creations = Counter(
    'qrfeedback_subscription_creations_total',
    'Create-subscription requests by outcome',
    ['outcome'],
    registry=registry
)

subscription_expiries = Counter(
    'qrfeedback_subscription_expiries_total',
    'Active subscriptions flipped to cancelled after their cycle ended',
    registry=registry
)


class MetricsCollector:
    """Centralized metrics collection and helper methods."""

    def __init__(self):
        self.registry = registry

    def get_metrics_response(self) -> Response:
        """Return Prometheus metrics as HTTP response."""
        metrics_data = generate_latest(self.registry)
        return Response(
            content=metrics_data,
            media_type=CONTENT_TYPE_LATEST
        )


# Global metrics collector instance
metrics = MetricsCollector()


def increment_webhook_events(event_type: str, status: str):
    """Increment webhook event counter."""
    webhook_events.labels(event_type=event_type, status=status).inc()


def increment_signature_failures():
    webhook_signature_failures.inc()
    logger.debug("webhook_signature_failure_recorded")


def increment_subscription_creations(outcome: str):
    """Increment create-subscription outcome counter."""
    subscription_creations.labels(outcome=outcome).inc()


def increment_subscription_expiries():
    subscription_expiries.inc()
