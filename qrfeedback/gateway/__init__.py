# Billing gateway package initialization

from functools import lru_cache

from qrfeedback.core.config import BillingConfig
from qrfeedback.core.settings import settings
from .base import BillingGateway, GatewayError, GatewayPlan, GatewaySubscription
from .mock import MockGateway


def build_gateway(config: BillingConfig, mode: str = "mock") -> BillingGateway:
    """Build a gateway for the given billing mode."""
    if mode == "live":
        from .razorpay import RazorpayGateway
        return RazorpayGateway(config)
    return MockGateway(default_amount=config.plan_amount, default_currency=config.plan_currency)


def get_billing_config() -> BillingConfig:
    """Billing configuration derived from application settings."""
    return BillingConfig.from_settings(settings)


@lru_cache(maxsize=1)
def get_gateway() -> BillingGateway:
    """Get the configured gateway instance."""
    return build_gateway(get_billing_config(), settings.billing_mode)


__all__ = [
    "BillingGateway",
    "GatewayError",
    "GatewayPlan",
    "GatewaySubscription",
    "MockGateway",
    "build_gateway",
    "get_billing_config",
    "get_gateway",
]
