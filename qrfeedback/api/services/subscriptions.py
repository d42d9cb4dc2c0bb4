"""
Subscription lifecycle service.

This service handles:
- Creating subscriptions under the pending-subscription dedup window
- Reporting current subscription status with derived remaining time
- Lazy expiry of active subscriptions whose billing cycle has ended
- Read-only subscription history
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlmodel import Session
import structlog

from qrfeedback.core.config import (
    BillingConfig,
    PaymentStatus,
    PaymentType,
    ReportedStatus,
    ceil_days,
    ceil_hours,
    remaining_ms,
    utcnow,
)
from qrfeedback.core.exceptions import PaymentError
from qrfeedback.core.metrics import increment_subscription_creations, increment_subscription_expiries
from qrfeedback.db.models.payment import Payment
from qrfeedback.db.payment_store import PaymentStore
from qrfeedback.gateway.base import BillingGateway, GatewayError

logger = structlog.get_logger(__name__)


class CreateOutcome(str, Enum):
    CREATED = "created"
    PENDING = "pending"
    ALREADY_ACTIVE = "already_active"


@dataclass
class CreateSubscriptionResult:
    outcome: CreateOutcome
    record: Payment
    days_remaining: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def remaining_fields(record: Payment, now: datetime) -> Dict[str, Optional[int]]:
    """Derived remaining-time fields for a record's current billing cycle."""
    ms = remaining_ms(record.current_end, now)
    if ms is None:
        return {"daysRemaining": None, "hoursRemaining": None}
    if ms <= 0:
        return {"daysRemaining": 0, "hoursRemaining": 0}
    return {"daysRemaining": ceil_days(ms), "hoursRemaining": ceil_hours(ms)}


class SubscriptionService:
    """
    Service for the subscription lifecycle of a user.

    Every status transition is a conditional update on the store; the
    dedup window and expiry are evaluated against the wall clock at request
    time, there is no background sweep.
    """

    def __init__(self, session: Session, gateway: BillingGateway, config: BillingConfig):
        self.store = PaymentStore(session)
        self.gateway = gateway
        self.config = config

    def _expire_if_lapsed(self, record: Payment, now: datetime) -> bool:
        """Flip an active record whose cycle has ended to cancelled; True if lapsed."""
        ms = remaining_ms(record.current_end, now)
        if ms is not None and ms > 0:
            return False

        flipped = self.store.update_if_status(
            record.id,
            PaymentStatus.ACTIVE.value,
            status=PaymentStatus.CANCELLED.value,
        )
        if flipped:
            increment_subscription_expiries()
            logger.info(
                "Active subscription expired",
                record_id=record.id,
                subscription_id=record.subscription_id,
                current_end=record.current_end.isoformat() if record.current_end else None,
            )
        return True

    async def create_subscription(
        self,
        user_id: str,
        plan_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CreateSubscriptionResult:
        """
        Create a subscription for the user, or explain why not.

        Args:
            user_id: Authenticated user
            plan_id: Gateway plan, defaults to the configured plan
            now: Evaluation time, defaults to the current time

        Returns:
            CreateSubscriptionResult describing the outcome

        Raises:
            PaymentError: If the gateway fails to create the subscription
        """
        now = now or utcnow()
        plan_id = plan_id or self.config.plan_id
        if not plan_id:
            raise PaymentError("No subscription plan configured")

        active = self.store.find_latest(user_id, status=PaymentStatus.ACTIVE.value)
        # A paid record may still be waiting for subscription.activated to set its cycle
        if active is not None and (active.current_end is None or not self._expire_if_lapsed(active, now)):
            ms = remaining_ms(active.current_end, now)
            days = ceil_days(ms) if ms is not None else None
            logger.info("Subscription already active", user_id=user_id, subscription_id=active.subscription_id)
            increment_subscription_creations(CreateOutcome.ALREADY_ACTIVE.value)
            return CreateSubscriptionResult(CreateOutcome.ALREADY_ACTIVE, active, days_remaining=days)

        pending = self.store.find_latest(user_id, status=PaymentStatus.CREATED.value)
        if pending is not None:
            age = pending.age(now)
            if age < self.config.dedup_window:
                expires_in = int((self.config.dedup_window - age).total_seconds())
                logger.info(
                    "Reusing pending subscription",
                    user_id=user_id,
                    subscription_id=pending.subscription_id,
                    age_seconds=int(age.total_seconds()),
                )
                increment_subscription_creations(CreateOutcome.PENDING.value)
                return CreateSubscriptionResult(
                    CreateOutcome.PENDING,
                    pending,
                    extra={"expiresInSeconds": expires_in},
                )
            await self._supersede(pending)

        try:
            plan = await self.gateway.fetch_plan(plan_id)
            remote = await self.gateway.create_subscription(
                plan_id,
                total_count=self.config.total_count,
                customer_notify=self.config.customer_notify,
                notes={"user_id": user_id},
            )
        except GatewayError as e:
            logger.error("Gateway subscription creation failed", user_id=user_id, plan_id=plan_id, error=str(e))
            increment_subscription_creations("gateway_error")
            raise PaymentError("Unable to create subscription", details={"gateway": e.gateway})

        record = self.store.create(Payment(
            user_id=user_id,
            type=PaymentType.SUBSCRIPTION.value,
            status=PaymentStatus.CREATED.value,
            subscription_id=remote.subscription_id,
            plan_id=plan_id,
            short_url=remote.short_url,
            amount=plan.amount,
            currency=plan.currency,
            created_at=now,
            updated_at=now,
        ))
        increment_subscription_creations(CreateOutcome.CREATED.value)
        return CreateSubscriptionResult(CreateOutcome.CREATED, record)

    async def _supersede(self, pending: Payment) -> None:
        """Cancel a timed-out pending subscription remotely and mark it failed."""
        if pending.subscription_id:
            try:
                await self.gateway.cancel_subscription(pending.subscription_id)
            except GatewayError as e:
                logger.warning(
                    "Remote cancellation of stale subscription failed",
                    subscription_id=pending.subscription_id,
                    error=str(e),
                )

        self.store.update_if_status(
            pending.id,
            PaymentStatus.CREATED.value,
            status=PaymentStatus.FAILED.value,
        )
        logger.info("Stale pending subscription superseded", record_id=pending.id, subscription_id=pending.subscription_id)

    def get_status(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Current subscription status from the newest record, expiring it lazily."""
        now = now or utcnow()
        record = self.store.find_latest(user_id)

        if record is None:
            return {
                "status": ReportedStatus.NONE.value,
                "planId": None,
                "currentStart": None,
                "currentEnd": None,
                "daysRemaining": None,
                "hoursRemaining": None,
                "subscriptionId": None,
            }

        status = record.status
        derived = {"daysRemaining": None, "hoursRemaining": None}
        if status == PaymentStatus.ACTIVE.value:
            if self._expire_if_lapsed(record, now):
                status = ReportedStatus.EXPIRED.value
                derived = {"daysRemaining": 0, "hoursRemaining": 0}
            else:
                derived = remaining_fields(record, now)

        return {
            "status": status,
            "planId": record.plan_id,
            "currentStart": record.current_start.isoformat() if record.current_start else None,
            "currentEnd": record.current_end.isoformat() if record.current_end else None,
            "subscriptionId": record.subscription_id,
            **derived,
        }

    def get_history(self, user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """All subscription records newest first; read-only."""
        now = now or utcnow()
        return [
            {**record.to_dict(), **remaining_fields(record, now)}
            for record in self.store.history(user_id)
        ]
