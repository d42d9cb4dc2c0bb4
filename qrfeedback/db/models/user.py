"""
User model for account ownership and authorization.
"""
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import Field, SQLModel

from qrfeedback.core.config import UserRole, utcnow


class UserBase(SQLModel):
    """Base user model with shared fields."""
    username: str
    email: str = Field(unique=True, index=True)
    role: str = Field(default=UserRole.USER.value)
    is_blocked: bool = Field(default=False)


class User(UserBase, table=True):
    """User database model."""
    __tablename__ = "users"

    id: Optional[str] = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
