"""
Tests for the metrics endpoint and billing counters.
"""

import json

from qrfeedback.core.metrics import registry
from tests.conftest import TestHelpers


def sample(name, labels=None):
    return registry.get_sample_value(name, labels or {}) or 0.0


class TestMetrics:

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "qrfeedback_webhook_signature_failures_total" in response.text

    def test_signature_failure_is_counted(self, client):
        before = sample("qrfeedback_webhook_signature_failures_total")
        body = json.dumps({"event": "subscription.cancelled"}).encode()

        client.post(
            "/api/subscription-webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Razorpay-Signature": "deadbeef"},
        )

        assert sample("qrfeedback_webhook_signature_failures_total") == before + 1

    def test_ignored_event_is_counted(self, client):
        labels = {"event_type": "refund.created", "status": "ignored"}
        before = sample("qrfeedback_webhook_events_total", labels)

        TestHelpers.post_webhook(client, {"event": "refund.created", "payload": {}})

        assert sample("qrfeedback_webhook_events_total", labels) == before + 1

    def test_creation_outcome_is_counted(self, client, auth_headers):
        labels = {"outcome": "created"}
        before = sample("qrfeedback_subscription_creations_total", labels)

        client.post("/api/create-subscription", headers=auth_headers)

        assert sample("qrfeedback_subscription_creations_total", labels) == before + 1


class TestHealth:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Server is running"
