"""
Persistence for payment and subscription records.

Status transitions are issued as single conditional UPDATE statements so the
database provides the atomicity; callers never load a record, mutate it and
save it back.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select
import structlog

from qrfeedback.core.config import PaymentStatus, PaymentType, utcnow
from qrfeedback.db.models.payment import Payment

logger = structlog.get_logger(__name__)


class PaymentStore:
    """Subscription record store bound to a database session."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, record: Payment) -> Payment:
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        logger.info(
            "Payment record created",
            record_id=record.id,
            user_id=record.user_id,
            subscription_id=record.subscription_id,
            status=record.status,
        )
        return record

    def get_by_subscription_id(self, subscription_id: str) -> Optional[Payment]:
        statement = select(Payment).where(Payment.subscription_id == subscription_id)
        return self.session.exec(statement).first()

    def find_one_and_update(self, subscription_id: str, **values) -> Optional[Payment]:
        """
        Atomically update the record owning ``subscription_id``.

        Returns the updated record, or None when no record matches.
        """
        values["updated_at"] = utcnow()
        statement = (
            update(Payment)
            .where(Payment.subscription_id == subscription_id)
            .values(**values)
        )
        result = self.session.execute(statement)
        self.session.commit()

        if result.rowcount == 0:
            logger.warning("No payment record for subscription", subscription_id=subscription_id)
            return None

        record = self.get_by_subscription_id(subscription_id)
        if record is not None:
            self.session.refresh(record)
        return record

    def update_if_status(self, record_id: str, expected_status: str, **values) -> bool:
        """
        Compare-and-set keyed by record id.

        Applies ``values`` only while the record still has ``expected_status``
        and reports whether this call performed the transition.
        """
        values["updated_at"] = utcnow()
        statement = (
            update(Payment)
            .where(Payment.id == record_id, Payment.status == expected_status)
            .values(**values)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def find_latest(self, user_id: str, status: Optional[str] = None) -> Optional[Payment]:
        """Newest subscription record for the user, optionally with a given status."""
        statement = select(Payment).where(
            Payment.user_id == user_id,
            Payment.type == PaymentType.SUBSCRIPTION.value,
        )
        if status is not None:
            statement = statement.where(Payment.status == status)
        statement = statement.order_by(Payment.created_at.desc())
        return self.session.exec(statement).first()

    def history(self, user_id: str) -> List[Payment]:
        statement = select(Payment).where(
            Payment.user_id == user_id,
            Payment.type == PaymentType.SUBSCRIPTION.value,
        ).order_by(Payment.created_at.desc())
        return list(self.session.exec(statement).all())

    def has_live_entitlement(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Point-in-time check for an active subscription whose cycle has not ended."""
        now = now or utcnow()
        statement = select(Payment.id).where(
            Payment.user_id == user_id,
            Payment.type == PaymentType.SUBSCRIPTION.value,
            Payment.status == PaymentStatus.ACTIVE.value,
            Payment.current_end > now,
        )
        return self.session.exec(statement).first() is not None
