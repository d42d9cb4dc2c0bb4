"""
QR code, custom redirect URL and logo models.

QR images and logos are produced by the upload service; this backend only
reads them to resolve a public QR id to its owner's redirect settings.
"""
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
import uuid

from qrfeedback.core.config import DEFAULT_REDIRECT_FROM_RATING, utcnow


class QrImage(SQLModel, table=True):
    __tablename__ = "qr_images"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    image_url: str
    s3_key: str
    random_id: str = Field(
        unique=True,
        index=True,
        description="Public identifier encoded in the QR code"
    )
    data: str
    created_at: datetime = Field(default_factory=utcnow)


class CustomURL(SQLModel, table=True):
    """Redirect target shown to customers who rate highly enough."""
    __tablename__ = "custom_urls"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    company_name: str
    url: str
    redirect_from_rating: int = Field(default=DEFAULT_REDIRECT_FROM_RATING)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "companyName": self.company_name,
            "redirectFromRating": self.redirect_from_rating,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class LogoImage(SQLModel, table=True):
    __tablename__ = "logo_images"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    logo_url: str
    s3_key: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
