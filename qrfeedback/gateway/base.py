"""
Base interface for the external billing gateway.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class GatewayPlan:
    """Plan as reported by the gateway."""
    plan_id: str
    amount: int
    currency: str
    period: Optional[str] = None
    interval: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewaySubscription:
    """Remote subscription created on the gateway."""
    subscription_id: str
    plan_id: str
    status: str
    short_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class GatewayError(Exception):
    """Base gateway error."""
    def __init__(self, message: str, gateway: str, status_code: Optional[int] = None):
        self.message = message
        self.gateway = gateway
        self.status_code = status_code
        super().__init__(f"{gateway}: {message}")


class GatewayConnectionError(GatewayError):
    """Gateway could not be reached."""
    pass


class BillingGateway(ABC):
    """Abstract base class for subscription billing gateways."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name identifier."""
        pass

    @abstractmethod
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
        """
        Create a recurring plan.

        Raises:
            GatewayError: On creation failure
        """
        pass

    @abstractmethod
    async def fetch_plan(self, plan_id: str) -> GatewayPlan:
        """Fetch a plan, used to snapshot its price."""
        pass

    @abstractmethod
    async def create_subscription(
        self,
        plan_id: str,
        *,
        total_count: int,
        customer_notify: bool = True,
        notes: Optional[Dict[str, str]] = None,
    ) -> GatewaySubscription:
        """
        Create a remote subscription against ``plan_id``.

        Returns:
            GatewaySubscription carrying the hosted checkout ``short_url``

        Raises:
            GatewayError: On creation failure
        """
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> GatewaySubscription:
        """Cancel a remote subscription immediately."""
        pass
