"""
Subscription gate for the custom redirect URL feature.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session, select
import structlog

from qrfeedback.core.exceptions import NotFoundError
from qrfeedback.db.models.qr import CustomURL, LogoImage, QrImage
from qrfeedback.db.payment_store import PaymentStore

logger = structlog.get_logger(__name__)

INACTIVE_MESSAGE = "Subscription inactive"


class FeatureGate:
    """
    Decides whether subscription-gated data may be served for a user.

    The check is a point-in-time query for an active subscription whose
    ``current_end`` is strictly after ``now``, so a lapsed record that has
    not been flipped yet is already treated as inactive.
    """

    def __init__(self, session: Session):
        self.session = session
        self.store = PaymentStore(session)

    def is_active(self, user_id: str, now: Optional[datetime] = None) -> bool:
        return self.store.has_live_entitlement(user_id, now)

    def resolve_custom_url(self, qr_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Resolve the redirect settings behind a public QR id.

        Raises:
            NotFoundError: Unknown QR id, or an entitled owner without a custom URL
        """
        qr = self.session.exec(select(QrImage).where(QrImage.random_id == qr_id)).first()
        if qr is None:
            raise NotFoundError("QR", qr_id)

        if not self.is_active(qr.user_id, now):
            logger.info("Custom URL withheld, subscription inactive", qr_id=qr_id, user_id=qr.user_id)
            return {
                "url": None,
                "companyName": None,
                "redirectFromRating": None,
                "logoUrl": None,
                "message": INACTIVE_MESSAGE,
            }

        custom_url = self.session.exec(select(CustomURL).where(CustomURL.user_id == qr.user_id)).first()
        if custom_url is None:
            raise NotFoundError("Custom URL for this QR")

        logo = self.session.exec(select(LogoImage).where(LogoImage.user_id == qr.user_id)).first()
        return {
            "url": custom_url.url,
            "companyName": custom_url.company_name,
            "redirectFromRating": custom_url.redirect_from_rating,
            "logoUrl": logo.logo_url if logo else None,
        }
