"""
Tests for the billing gateway clients.
"""

import pytest

from qrfeedback.core.config import BillingConfig
from qrfeedback.gateway import GatewayError, MockGateway, build_gateway
from qrfeedback.gateway.base import GatewayConnectionError
from qrfeedback.gateway.razorpay import RazorpayGateway


@pytest.fixture
def live_config():
    return BillingConfig(
        webhook_secret="whsec",
        plan_id="plan_live",
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        total_count=12,
    )


class FakeRazorpay:
    """Records requests and replays canned Razorpay responses."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    async def __call__(self, method, path, json_payload=None):
        self.requests.append((method, path, json_payload))
        return self.responses[(method, path)]


class TestRazorpayGateway:
    """Test request shaping and response parsing with the HTTP layer stubbed."""

    @pytest.mark.asyncio
    async def test_create_plan(self, live_config, monkeypatch):
        gateway = RazorpayGateway(live_config)
        fake = FakeRazorpay({
            ("POST", "/plans"): {
                "id": "plan_new",
                "period": "monthly",
                "interval": 1,
                "item": {"name": "Pro Subscription", "amount": 199900, "currency": "INR"},
            },
        })
        monkeypatch.setattr(gateway, "_request", fake)

        plan = await gateway.create_plan(
            name="Pro Subscription",
            amount=199900,
            currency="INR",
            period="monthly",
            interval=1,
            description="Monthly Pro Plan",
        )

        assert plan.plan_id == "plan_new"
        assert plan.amount == 199900
        method, path, payload = fake.requests[0]
        assert (method, path) == ("POST", "/plans")
        assert payload["period"] == "monthly"
        assert payload["item"]["amount"] == 199900
        assert payload["item"]["description"] == "Monthly Pro Plan"

    @pytest.mark.asyncio
    async def test_create_subscription(self, live_config, monkeypatch):
        gateway = RazorpayGateway(live_config)
        fake = FakeRazorpay({
            ("POST", "/subscriptions"): {
                "id": "sub_live",
                "plan_id": "plan_live",
                "status": "created",
                "short_url": "https://rzp.io/i/live",
            },
        })
        monkeypatch.setattr(gateway, "_request", fake)

        subscription = await gateway.create_subscription(
            "plan_live", total_count=12, customer_notify=True, notes={"user_id": "u1"}
        )

        assert subscription.subscription_id == "sub_live"
        assert subscription.short_url == "https://rzp.io/i/live"
        assert fake.requests[0][2] == {
            "plan_id": "plan_live",
            "total_count": 12,
            "customer_notify": 1,
            "notes": {"user_id": "u1"},
        }

    @pytest.mark.asyncio
    async def test_create_subscription_without_id(self, live_config, monkeypatch):
        gateway = RazorpayGateway(live_config)
        monkeypatch.setattr(gateway, "_request", FakeRazorpay({("POST", "/subscriptions"): {"error": {}}}))

        with pytest.raises(GatewayError):
            await gateway.create_subscription("plan_live", total_count=12)

    @pytest.mark.asyncio
    async def test_fetch_and_cancel(self, live_config, monkeypatch):
        gateway = RazorpayGateway(live_config)
        fake = FakeRazorpay({
            ("GET", "/plans/plan_live"): {"id": "plan_live", "item": {"amount": 49900, "currency": "INR"}},
            ("POST", "/subscriptions/sub_1/cancel"): {"id": "sub_1", "status": "cancelled"},
        })
        monkeypatch.setattr(gateway, "_request", fake)

        plan = await gateway.fetch_plan("plan_live")
        cancelled = await gateway.cancel_subscription("sub_1")

        assert plan.amount == 49900
        assert cancelled.status == "cancelled"
        assert fake.requests[1] == ("POST", "/subscriptions/sub_1/cancel", {"cancel_at_cycle_end": 0})

    @pytest.mark.asyncio
    async def test_unreachable_gateway(self):
        config = BillingConfig(
            webhook_secret="whsec",
            plan_id="plan_live",
            api_base="http://127.0.0.1:1/v1",
            timeout_seconds=2,
        )

        with pytest.raises(GatewayConnectionError):
            await RazorpayGateway(config).fetch_plan("plan_live")


class TestMockGateway:
    """Test the in-memory gateway used in mock billing mode."""

    @pytest.mark.asyncio
    async def test_subscription_lifecycle(self):
        gateway = MockGateway()

        plan = await gateway.fetch_plan("plan_any")
        subscription = await gateway.create_subscription(plan.plan_id, total_count=12)
        cancelled = await gateway.cancel_subscription(subscription.subscription_id)

        assert plan.amount == 199900
        assert subscription.short_url.endswith(subscription.subscription_id[4:])
        assert cancelled.status == "cancelled"
        assert gateway.calls_to("create_subscription") == ["plan_any"]

    @pytest.mark.asyncio
    async def test_cancel_unknown_subscription(self):
        with pytest.raises(GatewayError) as exc_info:
            await MockGateway().cancel_subscription("sub_unknown")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_failure_injection(self):
        gateway = MockGateway()
        gateway.fail_create = True

        with pytest.raises(GatewayError):
            await gateway.create_subscription("plan_any", total_count=1)


class TestBuildGateway:

    def test_mock_mode(self, live_config):
        gateway = build_gateway(live_config, "mock")
        assert isinstance(gateway, MockGateway)
        assert gateway.default_amount == live_config.plan_amount

    def test_live_mode(self, live_config):
        gateway = build_gateway(live_config, "live")
        assert isinstance(gateway, RazorpayGateway)
        assert gateway.base_url == "https://api.razorpay.com/v1"
