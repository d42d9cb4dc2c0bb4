"""
Application configuration constants and enums.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class PaymentType(str, Enum):
    """Kind of payment record."""
    ORDER = "order"
    SUBSCRIPTION = "subscription"


class PaymentStatus(str, Enum):
    """Stored status of a payment or subscription record."""
    CREATED = "created"
    PAID = "paid"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXPIRED = "expired"


class ReportedStatus(str, Enum):
    """Status values reported by the subscription-status endpoint."""
    NONE = "none"
    CREATED = "created"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXPIRED = "expired"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

DEFAULT_REDIRECT_FROM_RATING = 3


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    """Convert a gateway unix timestamp (seconds) to a naive UTC datetime."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


def remaining_ms(current_end: Optional[datetime], now: datetime) -> Optional[int]:
    """Milliseconds between now and the cycle end, or None without an end."""
    if current_end is None:
        return None
    return (current_end - now) // timedelta(milliseconds=1)


def ceil_days(ms: int) -> int:
    return math.ceil(ms / MS_PER_DAY)


def ceil_hours(ms: int) -> int:
    return math.ceil(ms / MS_PER_HOUR)


@dataclass(frozen=True)
class BillingConfig:
    """Billing configuration handed to the gateway client and webhook verifier."""

    webhook_secret: str
    plan_id: str
    key_id: str = ""
    key_secret: str = ""
    api_base: str = "https://api.razorpay.com/v1"
    total_count: int = 12
    customer_notify: bool = True
    dedup_window_seconds: int = 300
    timeout_seconds: int = 15
    plan_name: str = "Pro Subscription"
    plan_description: str = "Monthly Pro Plan"
    plan_amount: int = 199900
    plan_currency: str = "INR"
    plan_period: str = "monthly"
    plan_interval: int = 1

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(seconds=self.dedup_window_seconds)

    @classmethod
    def from_settings(cls, settings) -> "BillingConfig":
        return cls(
            webhook_secret=settings.razorpay_webhook_secret,
            plan_id=settings.razorpay_plan_id,
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            api_base=settings.razorpay_api_base.rstrip("/"),
            total_count=settings.subscription_total_count,
            customer_notify=settings.subscription_customer_notify,
            dedup_window_seconds=settings.subscription_dedup_window_seconds,
            timeout_seconds=settings.gateway_timeout_seconds,
            plan_name=settings.plan_name,
            plan_description=settings.plan_description,
            plan_amount=settings.plan_amount,
            plan_currency=settings.plan_currency,
            plan_period=settings.plan_period,
            plan_interval=settings.plan_interval,
        )
