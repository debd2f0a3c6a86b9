"""Request dependencies: database session, bearer-token user and capability gates."""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AccountInactiveException, InsufficientPermissionsException
from app.core.permissions import Capability, has_capability
from app.core.security import decode_token
from app.crud import crud_user
from app.database import get_db
from app.models.user import User

logger = logging.getLogger(__name__)

TOKEN_URL = f"{settings.API_PREFIX}/auth/login"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=TOKEN_URL)
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl=TOKEN_URL, auto_error=False)


def _user_id_from_token(token: str) -> Optional[int]:
    """``sub`` claim as an int, None when absent or not numeric."""
    subject = decode_token(token).get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Account named by the bearer token, active or not.

    Raises:
        HTTPException: 401 for a bad or expired token, or a user that no longer exists
    """
    user_id = _user_id_from_token(token)
    user = crud_user.get(db, user_id) if user_id is not None else None
    if user is None:
        logger.warning(f"[AUTH] Token subject does not resolve to a user: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise AccountInactiveException()
    return current_user


def get_optional_current_user(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Active account behind the token, or None for anonymous and unusable tokens."""
    if not token:
        return None
    try:
        user_id = _user_id_from_token(token)
    except HTTPException:
        return None

    user = crud_user.get(db, user_id) if user_id is not None else None
    if user is None or not user.is_active:
        return None
    return user


def require_capability(capability: Capability) -> Callable:
    """
    Build a dependency that admits active users whose role holds ``capability``.

        @router.get("/statistics")
        def statistics(user: User = Depends(require_capability(Capability.VIEW_STATISTICS))):
            ...
    """
    def capability_checker(current_user: User = Depends(get_current_active_user)) -> User:
        if not has_capability(current_user.role, capability):
            logger.warning(
                f"[AUTH] User {current_user.id} ({current_user.role}) lacks {capability.value}"
            )
            raise InsufficientPermissionsException(
                f"Not enough permissions. Required capability: {capability.value}"
            )
        return current_user

    return capability_checker


def require_owner(current_user: User = Depends(get_current_active_user)) -> User:
    if not current_user.is_owner:
        raise InsufficientPermissionsException("Only the owner can perform this action")
    return current_user


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_optional_current_user",
    "require_capability",
    "require_owner",
]
