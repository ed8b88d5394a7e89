"""
Security utilities for bearer-token authentication and role checks.

Tokens are issued by the auth service; this module verifies them and resolves
the calling user.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from jwt import InvalidTokenError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
import structlog

from courseapi.core.settings import settings
from courseapi.core.exceptions import AuthenticationError, AuthorizationError
from courseapi.db.session import get_session
from courseapi.db.models.user import User

logger = structlog.get_logger(__name__)

# JWT token scheme; missing headers are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)


class SecurityUtils:
    """Security utility functions."""

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token."""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expiration_hours)

        to_encode.update({"exp": expire})
        return jwt.encode(
            to_encode,
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm
        )

    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        """Verify and decode JWT token."""
        try:
            return jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm]
            )
        except InvalidTokenError as e:
            logger.info("JWT validation failed", error=str(e))
            return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> User:
    """Get current authenticated user from JWT token."""
    credentials_exception = AuthenticationError("Could not validate credentials")

    if credentials is None:
        raise credentials_exception

    payload = SecurityUtils.verify_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    user = session.get(User, str(user_id))
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Get current active user (additional checks can be added here)."""
    return current_user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Allow only admin users through."""
    if not current_user.is_admin:
        logger.warning("Admin access denied", user_id=current_user.id)
        raise AuthorizationError("Admin access required", code="ADMIN_REQUIRED")
    return current_user
