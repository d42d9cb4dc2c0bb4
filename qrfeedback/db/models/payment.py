"""
Payment model for one-time orders and Razorpay subscriptions.

Each subscription attempt is persisted as its own record. The record keeps
the gateway's subscription id, the hosted checkout link, a price snapshot
taken at creation time and the billing-cycle boundaries reported by
activation webhooks. Records are never deleted; history and status queries
read them back.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, Index
import uuid

from qrfeedback.core.config import PaymentStatus, PaymentType, utcnow


class Payment(SQLModel, table=True):
    """
    Payment or subscription record.

    ``current_end`` is the authority for expiry and is only meaningful
    while ``status`` is ``active``.
    """
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_user_type_status", "user_id", "type", "status"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        description="Unique payment record identifier"
    )

    user_id: str = Field(
        foreign_key="users.id",
        index=True,
        description="Account that owns this record"
    )

    type: str = Field(
        default=PaymentType.SUBSCRIPTION.value,
        description="Record kind: order or subscription"
    )

    status: str = Field(
        default=PaymentStatus.CREATED.value,
        description="created, paid, active, cancelled, failed or expired"
    )

    # One-time payment
    order_id: Optional[str] = Field(default=None, description="Gateway order id")
    payment_id: Optional[str] = Field(default=None, description="Last captured gateway payment id")

    # Subscription
    subscription_id: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Gateway subscription id, unique when present"
    )
    plan_id: Optional[str] = Field(default=None, description="Gateway plan reference")
    short_url: Optional[str] = Field(default=None, description="Hosted checkout link")

    # Price snapshot, immutable after creation
    amount: int = Field(description="Price in the smallest currency unit")
    currency: str = Field(default="INR")

    # Billing cycle
    current_start: Optional[datetime] = Field(default=None)
    current_end: Optional[datetime] = Field(default=None)
    next_charge_at: Optional[datetime] = Field(default=None)

    # Metadata
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When this record was created"
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="When this record was last updated"
    )

    def age(self, now: Optional[datetime] = None):
        """Time elapsed since the record was created."""
        return (now or utcnow()) - self.created_at

    def to_dict(self) -> dict:
        """Convert record to dictionary for API responses."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "status": self.status,
            "subscriptionId": self.subscription_id,
            "planId": self.plan_id,
            "paymentId": self.payment_id,
            "shortUrl": self.short_url,
            "amount": self.amount,
            "currency": self.currency,
            "currentStart": self.current_start.isoformat() if self.current_start else None,
            "currentEnd": self.current_end.isoformat() if self.current_end else None,
            "nextChargeAt": self.next_charge_at.isoformat() if self.next_charge_at else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
