"""
Security and Authentication
JWT issue/verify for owners and tenant-portal sessions
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt

from rentledger.core.config import settings
from rentledger.core.exceptions import AuthError

logger = logging.getLogger(__name__)

OWNER_ROLE = "owner"
TENANT_ROLE = "tenant"


def create_access_token(subject: str, role: str = OWNER_ROLE, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    if expires_delta is None:
        minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if role == OWNER_ROLE else settings.TENANT_TOKEN_EXPIRE_MINUTES
        expires_delta = timedelta(minutes=minutes)

    to_encode = {
        "sub": subject,
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode a token, returning None if it is invalid or expired"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"[AUTH] Rejected token: {e}")
        return None


def subject_from_token(token: Optional[str], role: str) -> str:
    """
    Return the ``sub`` claim of a valid token with the expected role.

    Raises:
        AuthError: If the token is missing, invalid, or issued for another role
    """
    if not token:
        raise AuthError("Missing or invalid authorization header")

    payload = decode_access_token(token)
    if not payload:
        raise AuthError("Invalid or expired token")

    subject = payload.get("sub")
    if not subject or payload.get("role", OWNER_ROLE) != role:
        raise AuthError("Invalid token")
    return subject
