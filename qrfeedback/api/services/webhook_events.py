"""
Razorpay webhook verification, event parsing and dispatch.

The signature is an HMAC-SHA256 hex digest of the raw request body, so
verification must run on the exact bytes received, before any JSON parsing.
Verified payloads are parsed into one event class per handled event type and
dispatched through a mapping from the ``event`` string to a handler. Handlers
update the subscription record by ``subscription_id`` with a single atomic
statement, which makes redelivery and out-of-order delivery safe.
"""

import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

import structlog

from qrfeedback.core.config import PaymentStatus, from_unix
from qrfeedback.core.exceptions import ValidationError
from qrfeedback.db.payment_store import PaymentStore

logger = structlog.get_logger(__name__)


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify a Razorpay webhook signature.

    Args:
        payload: Raw request body bytes
        signature: Value of the X-Razorpay-Signature header
        secret: Webhook secret configured on the Razorpay dashboard

    Returns:
        True if signature is valid, False otherwise
    """
    if not signature or not secret:
        return False

    expected_signature = hmac.new(
        secret.encode("utf-8"),
        payload,
        hashlib.sha256
    ).hexdigest()

    # Use constant-time comparison to prevent timing attacks
    return hmac.compare_digest(signature.encode("utf-8"), expected_signature.encode("utf-8"))


@dataclass(frozen=True)
class PaymentCaptured:
    payment_id: str
    subscription_id: Optional[str]


@dataclass(frozen=True)
class SubscriptionActivated:
    subscription_id: str
    current_start: Optional[datetime]
    current_end: Optional[datetime]
    charge_at: Optional[datetime]


@dataclass(frozen=True)
class SubscriptionCharged:
    subscription_id: str
    payment_id: Optional[str]
    current_start: Optional[datetime] = None
    current_end: Optional[datetime] = None
    charge_at: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionCompleted:
    subscription_id: str


@dataclass(frozen=True)
class SubscriptionCancelled:
    subscription_id: str


@dataclass(frozen=True)
class UnhandledEvent:
    event_type: str


WebhookEvent = Union[
    PaymentCaptured,
    SubscriptionActivated,
    SubscriptionCharged,
    SubscriptionCompleted,
    SubscriptionCancelled,
    UnhandledEvent,
]


def _entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    try:
        entity = payload["payload"][name]["entity"]
    except (KeyError, TypeError):
        raise ValidationError(f"Missing {name} entity in webhook payload")
    if not isinstance(entity, dict) or "id" not in entity:
        raise ValidationError(f"Malformed {name} entity in webhook payload")
    return entity


def _optional_entity(payload: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    entity = ((payload.get("payload") or {}).get(name) or {}).get("entity")
    return entity if isinstance(entity, dict) and "id" in entity else None


def _parse_payment_captured(payload: Dict[str, Any]) -> PaymentCaptured:
    payment = _entity(payload, "payment")
    return PaymentCaptured(
        payment_id=payment["id"],
        subscription_id=payment.get("subscription_id"),
    )


def _parse_subscription_activated(payload: Dict[str, Any]) -> SubscriptionActivated:
    subscription = _entity(payload, "subscription")
    return SubscriptionActivated(
        subscription_id=subscription["id"],
        current_start=from_unix(subscription.get("current_start")),
        current_end=from_unix(subscription.get("current_end")),
        charge_at=from_unix(subscription.get("charge_at")),
    )


def _parse_subscription_charged(payload: Dict[str, Any]) -> SubscriptionCharged:
    subscription = _optional_entity(payload, "subscription")
    payment = _optional_entity(payload, "payment")

    subscription_id = subscription["id"] if subscription else (payment or {}).get("subscription_id")
    if not subscription_id:
        raise ValidationError("subscription.charged without a subscription reference")

    return SubscriptionCharged(
        subscription_id=subscription_id,
        payment_id=payment["id"] if payment else None,
        current_start=from_unix(subscription.get("current_start")) if subscription else None,
        current_end=from_unix(subscription.get("current_end")) if subscription else None,
        charge_at=from_unix(subscription.get("charge_at")) if subscription else None,
    )


def _parse_subscription_completed(payload: Dict[str, Any]) -> SubscriptionCompleted:
    return SubscriptionCompleted(subscription_id=_entity(payload, "subscription")["id"])


def _parse_subscription_cancelled(payload: Dict[str, Any]) -> SubscriptionCancelled:
    return SubscriptionCancelled(subscription_id=_entity(payload, "subscription")["id"])


EVENT_PARSERS: Dict[str, Callable[[Dict[str, Any]], WebhookEvent]] = {
    "payment.captured": _parse_payment_captured,
    "subscription.activated": _parse_subscription_activated,
    "subscription.charged": _parse_subscription_charged,
    "subscription.completed": _parse_subscription_completed,
    "subscription.cancelled": _parse_subscription_cancelled,
}


def parse_event(raw_body: bytes) -> WebhookEvent:
    """
    Parse a verified webhook body into an event.

    Raises:
        ValidationError: If the body is not JSON or a handled event lacks its entity
    """
    try:
        data = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Invalid JSON payload", error=str(e))
        raise ValidationError("Invalid JSON payload")

    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    event_type = str(data.get("event", ""))
    parser = EVENT_PARSERS.get(event_type)
    if parser is None:
        return UnhandledEvent(event_type=event_type)
    return parser(data)


EVENT_NAMES: Dict[type, str] = {
    PaymentCaptured: "payment.captured",
    SubscriptionActivated: "subscription.activated",
    SubscriptionCharged: "subscription.charged",
    SubscriptionCompleted: "subscription.completed",
    SubscriptionCancelled: "subscription.cancelled",
}


def event_name(event: WebhookEvent) -> str:
    if isinstance(event, UnhandledEvent):
        return event.event_type or "unknown"
    return EVENT_NAMES[type(event)]


class WebhookDispatcher:
    """Applies verified webhook events to the subscription record store."""

    def __init__(self, store: PaymentStore):
        self.store = store
        self._handlers: Dict[type, Callable[[Any], Dict[str, Any]]] = {
            PaymentCaptured: self._handle_payment_captured,
            SubscriptionActivated: self._handle_subscription_activated,
            SubscriptionCharged: self._handle_subscription_charged,
            SubscriptionCompleted: self._handle_subscription_completed,
            SubscriptionCancelled: self._handle_subscription_cancelled,
        }

    def dispatch(self, event: WebhookEvent) -> Dict[str, Any]:
        """Route an event to its handler and return a summary of the effect."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.info("Unhandled webhook event", event_type=event_name(event))
            return {"action": "ignored"}
        return handler(event)

    def _apply(self, subscription_id: str, **values) -> Dict[str, Any]:
        record = self.store.find_one_and_update(subscription_id, **values)
        if record is None:
            return {"action": "unmatched", "subscription_id": subscription_id}
        return {"action": "updated", "subscription_id": subscription_id, "status": record.status}

    def _handle_payment_captured(self, event: PaymentCaptured) -> Dict[str, Any]:
        if not event.subscription_id:
            logger.info("Captured payment without subscription ignored", payment_id=event.payment_id)
            return {"action": "ignored"}

        logger.info(
            "Payment captured for subscription",
            payment_id=event.payment_id,
            subscription_id=event.subscription_id,
        )
        return self._apply(
            event.subscription_id,
            status=PaymentStatus.ACTIVE.value,
            payment_id=event.payment_id,
        )

    def _handle_subscription_activated(self, event: SubscriptionActivated) -> Dict[str, Any]:
        logger.info(
            "Subscription activated",
            subscription_id=event.subscription_id,
            current_start=event.current_start.isoformat() if event.current_start else None,
            current_end=event.current_end.isoformat() if event.current_end else None,
        )
        values: Dict[str, Any] = {"status": PaymentStatus.ACTIVE.value}
        if event.current_start is not None:
            values["current_start"] = event.current_start
        if event.current_end is not None:
            values["current_end"] = event.current_end
        if event.charge_at is not None:
            values["next_charge_at"] = event.charge_at
        return self._apply(event.subscription_id, **values)

    def _handle_subscription_charged(self, event: SubscriptionCharged) -> Dict[str, Any]:
        logger.info(
            "Subscription charged",
            subscription_id=event.subscription_id,
            payment_id=event.payment_id,
        )
        values: Dict[str, Any] = {"status": PaymentStatus.ACTIVE.value}
        if event.payment_id is not None:
            values["payment_id"] = event.payment_id
        if event.current_start is not None and event.current_end is not None:
            values["current_start"] = event.current_start
            values["current_end"] = event.current_end
        if event.charge_at is not None:
            values["next_charge_at"] = event.charge_at
        return self._apply(event.subscription_id, **values)

    def _handle_subscription_completed(self, event: SubscriptionCompleted) -> Dict[str, Any]:
        # Access stays gated by the stored current_end until it lapses.
        logger.info("Subscription billing cycles completed", subscription_id=event.subscription_id)
        return {"action": "noop", "subscription_id": event.subscription_id}

    def _handle_subscription_cancelled(self, event: SubscriptionCancelled) -> Dict[str, Any]:
        logger.info("Subscription cancelled by gateway", subscription_id=event.subscription_id)
        return self._apply(event.subscription_id, status=PaymentStatus.CANCELLED.value)
