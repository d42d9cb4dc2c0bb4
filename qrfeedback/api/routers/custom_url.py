"""
Custom redirect URL router.

Owners manage their redirect URL, company name and rating threshold; the
public lookup by QR id is served only while the owner's subscription is
active.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select
import structlog

from qrfeedback.api.services.feature_gate import FeatureGate
from qrfeedback.core.config import DEFAULT_REDIRECT_FROM_RATING, utcnow
from qrfeedback.core.exceptions import NotFoundError, ValidationError
from qrfeedback.core.security import get_current_active_user
from qrfeedback.db.models.qr import CustomURL, LogoImage
from qrfeedback.db.models.user import User
from qrfeedback.db.session import get_session

router = APIRouter(prefix="/custom-url", tags=["custom-url"])
logger = structlog.get_logger(__name__)


class CustomURLRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    company_name: Optional[str] = Field(default=None, alias="companyName")
    redirect_from_rating: Optional[int] = Field(default=None, alias="redirectFromRating")


def _validate(body: CustomURLRequest) -> None:
    if not body.url:
        raise ValidationError("URL is required")
    if not body.company_name:
        raise ValidationError("Company name is required")
    if body.redirect_from_rating is not None and not 1 <= body.redirect_from_rating <= 5:
        raise ValidationError("redirectFromRating must be between 1 to 5")


def _find_for_user(session: Session, user_id: str) -> Optional[CustomURL]:
    return session.exec(select(CustomURL).where(CustomURL.user_id == user_id)).first()


@router.post("/set-url")
async def set_url(
    body: CustomURLRequest,
    current_user: User = Depends(get_current_active_user),
    session: Session = Depends(get_session),
):
    """Create or update the custom URL of the logged-in user."""
    _validate(body)

    custom_url = _find_for_user(session, current_user.id)
    if custom_url is None:
        custom_url = CustomURL(
            user_id=current_user.id,
            url=body.url,
            company_name=body.company_name,
            redirect_from_rating=body.redirect_from_rating or DEFAULT_REDIRECT_FROM_RATING,
        )
    else:
        custom_url.url = body.url
        custom_url.company_name = body.company_name
        if body.redirect_from_rating is not None:
            custom_url.redirect_from_rating = body.redirect_from_rating
        custom_url.updated_at = utcnow()

    session.add(custom_url)
    session.commit()
    session.refresh(custom_url)

    logger.info("Custom URL saved", user_id=current_user.id)
    return {
        "success": True,
        "message": "Custom URL & redirect setting saved successfully",
        "data": custom_url.to_dict(),
    }


@router.get("/get-url/{qr_id}")
async def get_url_by_qr(qr_id: str, session: Session = Depends(get_session)):
    """Public lookup of redirect settings for a scanned QR code."""
    return {"success": True, "data": FeatureGate(session).resolve_custom_url(qr_id)}


@router.put("/update-url")
async def update_url(
    body: CustomURLRequest,
    current_user: User = Depends(get_current_active_user),
    session: Session = Depends(get_session),
):
    _validate(body)

    custom_url = _find_for_user(session, current_user.id)
    if custom_url is None:
        raise NotFoundError("Custom URL")

    custom_url.url = body.url
    custom_url.company_name = body.company_name
    if body.redirect_from_rating is not None:
        custom_url.redirect_from_rating = body.redirect_from_rating
    custom_url.updated_at = utcnow()

    session.add(custom_url)
    session.commit()
    session.refresh(custom_url)

    return {
        "success": True,
        "message": "Custom URL, Company Name & Redirect setting updated",
        "data": custom_url.to_dict(),
    }


@router.delete("/delete-url")
async def delete_url(
    current_user: User = Depends(get_current_active_user),
    session: Session = Depends(get_session),
):
    custom_url = _find_for_user(session, current_user.id)
    if custom_url is None:
        raise NotFoundError("Custom URL")

    session.delete(custom_url)
    session.commit()
    logger.info("Custom URL deleted", user_id=current_user.id)
    return {"success": True, "message": "Custom URL deleted successfully"}


@router.get("/get-url")
async def get_url(
    current_user: User = Depends(get_current_active_user),
    session: Session = Depends(get_session),
):
    """Custom URL and logo of the logged-in user."""
    custom_url = _find_for_user(session, current_user.id)
    if custom_url is None:
        raise NotFoundError("Custom URL")

    logo = session.exec(select(LogoImage).where(LogoImage.user_id == current_user.id)).first()
    return {
        "success": True,
        "data": {
            "url": custom_url.url,
            "companyName": custom_url.company_name,
            "redirectFromRating": custom_url.redirect_from_rating,
            "logoUrl": logo.logo_url if logo else None,
        },
    }
