"""Password hashing and JWT access tokens for staff accounts."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.config import settings


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False for a wrong password and for a hash passlib cannot read."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def create_access_token(
    subject: Union[int, str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token whose ``sub`` is the user id.

    Args:
        subject: User id, stored as a string claim
        expires_delta: Lifetime, ACCESS_TOKEN_EXPIRE_DAYS when omitted

    Raises:
        ValueError: If SECRET_KEY is not configured
    """
    if not settings.SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is not set")

    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    claims = {
        "sub": str(subject),
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature, expiry and token type.

    Raises:
        HTTPException: 401 "Token expired" or "Invalid token"
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError as e:
        raise _unauthorized("Token expired") from e
    except JWTError as e:
        raise _unauthorized("Invalid token") from e

    if payload.get("type") != TOKEN_TYPE:
        raise _unauthorized("Invalid token")
    return payload
