"""
Subscription router for plan setup, subscription creation and status.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session
import structlog

from qrfeedback.api.services.subscriptions import CreateOutcome, SubscriptionService
from qrfeedback.core.config import BillingConfig
from qrfeedback.core.exceptions import PaymentError
from qrfeedback.core.security import get_current_active_user, require_admin
from qrfeedback.db.models.user import User
from qrfeedback.db.session import get_session
from qrfeedback.gateway import BillingGateway, GatewayError, get_billing_config, get_gateway

router = APIRouter(tags=["subscriptions"])
logger = structlog.get_logger(__name__)


class CreateSubscriptionRequest(BaseModel):
    """Optional body selecting a plan other than the configured one."""
    model_config = ConfigDict(populate_by_name=True)

    plan_id: Optional[str] = Field(default=None, alias="planId")


def get_subscription_service(
    session: Session = Depends(get_session),
    gateway: BillingGateway = Depends(get_gateway),
    config: BillingConfig = Depends(get_billing_config),
) -> SubscriptionService:
    return SubscriptionService(session, gateway, config)


@router.post("/admin/create-plan")
async def create_plan(
    admin: User = Depends(require_admin),
    gateway: BillingGateway = Depends(get_gateway),
    config: BillingConfig = Depends(get_billing_config),
):
    """Create the recurring Pro plan on the gateway (run once per environment)."""
    try:
        plan = await gateway.create_plan(
            name=config.plan_name,
            amount=config.plan_amount,
            currency=config.plan_currency,
            period=config.plan_period,
            interval=config.plan_interval,
            description=config.plan_description,
        )
    except GatewayError as e:
        logger.error("Plan creation failed", admin_id=admin.id, error=str(e))
        raise PaymentError("Unable to create plan", details={"gateway": e.gateway})

    logger.info("Plan created", admin_id=admin.id, plan_id=plan.plan_id)
    return {
        "success": True,
        "plan": {
            "id": plan.plan_id,
            "amount": plan.amount,
            "currency": plan.currency,
            "period": plan.period,
            "interval": plan.interval,
        },
    }


@router.post("/create-subscription")
async def create_subscription(
    body: Optional[CreateSubscriptionRequest] = None,
    current_user: User = Depends(get_current_active_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a subscription and return the hosted checkout link."""
    result = await service.create_subscription(
        current_user.id,
        plan_id=body.plan_id if body else None,
    )
    record = result.record

    if result.outcome == CreateOutcome.ALREADY_ACTIVE:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "You already have an active subscription",
                "subscription": {
                    "status": "active",
                    "subscriptionId": record.subscription_id,
                    "currentEnd": record.current_end.isoformat() if record.current_end else None,
                    "daysRemaining": result.days_remaining,
                },
            },
        )

    if result.outcome == CreateOutcome.PENDING:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Previous subscription pending. Please complete payment.",
                "subscription": {
                    "status": "pending",
                    "id": record.subscription_id,
                    "short_url": record.short_url,
                    **result.extra,
                },
            },
        )

    return {
        "success": True,
        "subscription": {
            "id": record.subscription_id,
            "status": record.status,
            "plan_id": record.plan_id,
            "short_url": record.short_url,
            "amount": record.amount,
            "currency": record.currency,
        },
    }


@router.get("/subscription-status")
async def subscription_status(
    current_user: User = Depends(get_current_active_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return {"success": True, **service.get_status(current_user.id)}


@router.get("/subscription-history")
async def subscription_history(
    current_user: User = Depends(get_current_active_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    history = service.get_history(current_user.id)
    return {"success": True, "count": len(history), "history": history}
