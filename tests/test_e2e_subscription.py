"""
End-to-end subscription flow: checkout, activation webhook, gated feature,
and lazy expiry once the billing cycle ends.
"""

import time
from datetime import timedelta

import pytest

from qrfeedback.api.services.feature_gate import INACTIVE_MESSAGE, FeatureGate
from qrfeedback.api.services.subscriptions import SubscriptionService
from qrfeedback.core.config import from_unix
from tests.conftest import TestHelpers


class TestSubscriptionFlow:
    """Walk one user from checkout to expiry."""

    def test_full_subscription_lifecycle(self, client, session, gateway, billing_config, test_user, auth_headers):
        qr_id = TestHelpers.create_qr_with_custom_url(session, test_user.id)

        # Before paying the custom URL is withheld
        data = client.get(f"/api/custom-url/get-url/{qr_id}").json()["data"]
        assert data["message"] == INACTIVE_MESSAGE

        # Checkout
        created = client.post("/api/create-subscription", headers=auth_headers)
        assert created.status_code == 200
        subscription_id = created.json()["subscription"]["id"]

        status = client.get("/api/subscription-status", headers=auth_headers).json()
        assert status["status"] == "created"

        # Gateway activates a three day cycle starting now
        t0 = int(time.time())
        response = TestHelpers.post_webhook(client, {
            "event": "subscription.activated",
            "payload": {
                "subscription": {
                    "entity": {
                        "id": subscription_id,
                        "current_start": t0,
                        "current_end": t0 + 3 * 86400,
                        "charge_at": t0 + 3 * 86400,
                    }
                }
            },
        })
        assert response.status_code == 200

        # Active: custom URL is served
        data = client.get(f"/api/custom-url/get-url/{qr_id}").json()["data"]
        assert data["url"] == "https://g.page/acme-cafe/review"

        status = client.get("/api/subscription-status", headers=auth_headers).json()
        assert status["status"] == "active"
        assert status["subscriptionId"] == subscription_id
        assert status["daysRemaining"] == 3

        # Second checkout attempt is refused
        again = client.post("/api/create-subscription", headers=auth_headers)
        assert again.status_code == 400
        assert again.json()["subscription"]["status"] == "active"

        service = SubscriptionService(session, gateway, billing_config)
        start = from_unix(t0)

        one_day_in = service.get_status(test_user.id, now=start + timedelta(days=1))
        assert one_day_in["status"] == "active"
        assert one_day_in["daysRemaining"] == 2
        assert one_day_in["hoursRemaining"] == 48

        gate = FeatureGate(session)
        assert gate.is_active(test_user.id, now=start + timedelta(days=1))
        assert not gate.is_active(test_user.id, now=start + timedelta(days=4))

        four_days_in = service.get_status(test_user.id, now=start + timedelta(days=4))
        assert four_days_in["status"] == "expired"
        assert four_days_in["daysRemaining"] == 0

        # The record was flipped, so the gate stays closed at any time
        assert client.get("/api/subscription-status", headers=auth_headers).json()["status"] == "cancelled"
        assert not gate.is_active(test_user.id, now=start + timedelta(days=1))
        data = client.get(f"/api/custom-url/get-url/{qr_id}").json()["data"]
        assert data["message"] == INACTIVE_MESSAGE

        history = client.get("/api/subscription-history", headers=auth_headers).json()
        assert history["count"] == 1
        assert history["history"][0]["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_renewal_after_expiry(self, session, gateway, billing_config, test_user):
        """A user whose cycle lapsed can subscribe again."""
        service = SubscriptionService(session, gateway, billing_config)
        first = await service.create_subscription(test_user.id)
        assert first.outcome.value == "created"

        t0 = from_unix(int(time.time()))
        service.store.find_one_and_update(
            first.record.subscription_id,
            status="active",
            current_start=t0,
            current_end=t0 + timedelta(days=30),
        )

        second = await service.create_subscription(test_user.id, now=t0 + timedelta(days=31))

        assert second.outcome.value == "created"
        assert second.record.subscription_id != first.record.subscription_id
        assert service.store.get_by_subscription_id(first.record.subscription_id).status == "cancelled"
