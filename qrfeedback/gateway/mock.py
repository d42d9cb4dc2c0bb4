"""
In-memory gateway for development and testing.
"""
import uuid
from typing import Dict, List, Optional, Tuple

from .base import BillingGateway, GatewayError, GatewayPlan, GatewaySubscription


class MockGateway(BillingGateway):
    """Mock gateway that keeps plans and subscriptions in memory and records calls."""

    def __init__(self, default_amount: int = 199900, default_currency: str = "INR"):
        self.default_amount = default_amount
        self.default_currency = default_currency
        self.plans: Dict[str, GatewayPlan] = {}
        self.subscriptions: Dict[str, GatewaySubscription] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_create = False
        self.fail_cancel = False

    @property
    def name(self) -> str:
        return "mock"

    def calls_to(self, operation: str) -> List[str]:
        return [arg for op, arg in self.calls if op == operation]

    async def create_plan(
        self,
        *,
        name: str,
        amount: int,
        currency: str,
        period: str,
        interval: int,
        description: str = "",
    ) -> GatewayPlan:
        plan_id = f"plan_{uuid.uuid4().hex[:14]}"
        plan = GatewayPlan(
            plan_id=plan_id,
            amount=amount,
            currency=currency,
            period=period,
            interval=interval,
            raw={"item": {"name": name, "description": description}},
        )
        self.plans[plan_id] = plan
        self.calls.append(("create_plan", plan_id))
        return plan

    async def fetch_plan(self, plan_id: str) -> GatewayPlan:
        self.calls.append(("fetch_plan", plan_id))
        if plan_id not in self.plans:
            self.plans[plan_id] = GatewayPlan(
                plan_id=plan_id,
                amount=self.default_amount,
                currency=self.default_currency,
                period="monthly",
                interval=1,
            )
        return self.plans[plan_id]

    async def create_subscription(
        self,
        plan_id: str,
        *,
        total_count: int,
        customer_notify: bool = True,
        notes: Optional[Dict[str, str]] = None,
    ) -> GatewaySubscription:
        self.calls.append(("create_subscription", plan_id))
        if self.fail_create:
            raise GatewayError("Mock subscription creation failed", self.name, status_code=502)

        subscription_id = f"sub_{uuid.uuid4().hex[:14]}"
        subscription = GatewaySubscription(
            subscription_id=subscription_id,
            plan_id=plan_id,
            status="created",
            short_url=f"https://rzp.io/i/{subscription_id[4:]}",
            raw={"total_count": total_count, "notes": notes or {}},
        )
        self.subscriptions[subscription_id] = subscription
        return subscription

    async def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        self.calls.append(("cancel_subscription", subscription_id))
        if self.fail_cancel:
            raise GatewayError("Mock cancellation failed", self.name, status_code=400)

        subscription = self.subscriptions.get(subscription_id)
        if subscription is None:
            raise GatewayError(f"Subscription not found: {subscription_id}", self.name, status_code=404)
        subscription.status = "cancelled"
        return subscription
