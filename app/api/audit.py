"""Activity logging helper for endpoints."""

from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from app.crud import crud_activity_log
from app.models.activity_log import ActivityAction, ActivityLog, ActivityResource
from app.models.user import User


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def record_activity(
    db: Session,
    request: Request,
    user: User,
    action: ActivityAction,
    resource: ActivityResource,
    resource_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
    error_message: Optional[str] = None,
) -> Optional[ActivityLog]:
    """Log ``action`` for ``user`` with the caller's IP and user agent. Never raises."""
    return crud_activity_log.log_activity(
        db,
        user_id=user.id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        details=details,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        success=success,
        error_message=error_message,
    )
