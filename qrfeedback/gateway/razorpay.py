"""
Razorpay gateway implementation.
"""
from typing import Any, Dict, Optional

import aiohttp
import structlog

from qrfeedback.core.config import BillingConfig
from .base import (
    BillingGateway,
    GatewayConnectionError,
    GatewayError,
    GatewayPlan,
    GatewaySubscription,
)

logger = structlog.get_logger(__name__)


class RazorpayGateway(BillingGateway):
    """Razorpay plans and subscriptions over the REST API."""

    def __init__(self, config: BillingConfig):
        self.config = config
        self.base_url = config.api_base
        self.timeout = config.timeout_seconds

    @property
    def name(self) -> str:
        return "razorpay"

    async def _request(
        self,
        method: str,
        path: str,
        json_payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        auth = aiohttp.BasicAuth(self.config.key_id, self.config.key_secret)

        try:
            async with aiohttp.ClientSession(auth=auth) as session:
                async with session.request(
                    method,
                    url,
                    json=json_payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.warning(
                            "Razorpay request failed",
                            method=method,
                            path=path,
                            status=response.status,
                        )
                        raise GatewayError(
                            f"{method} {path} failed: {response.status} - {error_text}",
                            self.name,
                            status_code=response.status,
                        )
                    return await response.json()

        except aiohttp.ClientError as e:
            raise GatewayConnectionError(
                f"Failed to connect to Razorpay: {str(e)}",
                self.name
            )

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
        payload = {
            "period": period,
            "interval": interval,
            "item": {
                "name": name,
                "amount": amount,
                "currency": currency,
                "description": description,
            },
        }
        data = await self._request("POST", "/plans", payload)
        logger.info("Razorpay plan created", plan_id=data.get("id"), amount=amount, currency=currency)
        return self._to_plan(data)

    async def fetch_plan(self, plan_id: str) -> GatewayPlan:
        data = await self._request("GET", f"/plans/{plan_id}")
        return self._to_plan(data)

    async def create_subscription(
        self,
        plan_id: str,
        *,
        total_count: int,
        customer_notify: bool = True,
        notes: Optional[Dict[str, str]] = None,
    ) -> GatewaySubscription:
        payload: Dict[str, Any] = {
            "plan_id": plan_id,
            "total_count": total_count,
            "customer_notify": 1 if customer_notify else 0,
        }
        if notes:
            payload["notes"] = notes

        data = await self._request("POST", "/subscriptions", payload)
        if "id" not in data:
            raise GatewayError(f"Razorpay did not return a subscription id: {data}", self.name)

        logger.info(
            "Razorpay subscription created",
            subscription_id=data["id"],
            plan_id=plan_id,
            status=data.get("status"),
        )
        return self._to_subscription(data)

    async def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        data = await self._request(
            "POST",
            f"/subscriptions/{subscription_id}/cancel",
            {"cancel_at_cycle_end": 0},
        )
        logger.info("Razorpay subscription cancelled", subscription_id=subscription_id)
        return self._to_subscription(data)

    @staticmethod
    def _to_plan(data: Dict[str, Any]) -> GatewayPlan:
        item = data.get("item") or {}
        return GatewayPlan(
            plan_id=data["id"],
            amount=int(item.get("amount", 0)),
            currency=item.get("currency", "INR"),
            period=data.get("period"),
            interval=data.get("interval"),
            raw=data,
        )

    @staticmethod
    def _to_subscription(data: Dict[str, Any]) -> GatewaySubscription:
        return GatewaySubscription(
            subscription_id=data["id"],
            plan_id=data.get("plan_id", ""),
            status=data.get("status", "created"),
            short_url=data.get("short_url"),
            raw=data,
        )
