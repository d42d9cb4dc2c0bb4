"""
Security utilities for bearer-token authentication and authorization.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt import InvalidTokenError
from sqlmodel import Session
import structlog

from qrfeedback.core.exceptions import AuthenticationError, AuthorizationError
from qrfeedback.core.settings import settings
from qrfeedback.db.models.user import User
from qrfeedback.db.session import get_session

logger = structlog.get_logger(__name__)

# JWT token scheme
bearer_scheme = HTTPBearer(auto_error=False)


class SecurityUtils:
    """Security utility functions."""

    @staticmethod
    def create_access_token(user_id: str, expires_hours: Optional[int] = None) -> str:
        """Issue a signed access token for a user."""
        expire = datetime.now(timezone.utc) + timedelta(hours=expires_hours or settings.jwt_expiration_hours)
        payload = {"sub": user_id, "exp": expire}
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        """Verify and decode a JWT, returning None when invalid."""
        try:
            return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        except InvalidTokenError as e:
            logger.info("JWT validation failed", error=str(e))
            return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the authenticated user from the bearer token."""
    if credentials is None:
        raise AuthenticationError("Missing or invalid authorization header")

    payload = SecurityUtils.verify_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise AuthenticationError("Could not validate credentials")

    user = session.get(User, payload["sub"])
    if user is None:
        raise AuthenticationError("User not found")
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Get current user, rejecting blocked accounts."""
    if current_user.is_blocked:
        raise AuthorizationError("Account is blocked")
    return current_user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access only")
    return current_user
