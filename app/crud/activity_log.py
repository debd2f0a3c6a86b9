"""CRUD operations for the append-only activity log."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import Select, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.activity_log import ActivityAction, ActivityLog, ActivityResource
from app.schemas.activity_log import ActivityFilters

logger = logging.getLogger(__name__)


class CRUDActivityLog(CRUDBase[ActivityLog, BaseModel, BaseModel]):
    """Write and read activity log entries."""

    def log_activity(
        self,
        db: Session,
        *,
        user_id: int,
        action: ActivityAction,
        resource: ActivityResource,
        resource_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        """
        Append one entry.

        Never raises: a failed write is rolled back and reported to the
        application log, and ``None`` is returned.
        """
        entry = ActivityLog(
            user_id=user_id,
            action=ActivityAction(action).value,
            resource=ActivityResource(resource).value,
            resource_id=resource_id,
            details=details or {},
            ip_address=ip_address or "unknown",
            user_agent=user_agent,
            success=success,
            error_message=error_message,
        )
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
            return entry
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"[ACTIVITY] Failed to record {entry.action} for user {user_id}")
            return None

    def _filtered(self, filters: ActivityFilters) -> Select:
        stmt = select(ActivityLog).options(selectinload(ActivityLog.user))
        if filters.action:
            stmt = stmt.where(ActivityLog.action == filters.action)
        if filters.resource:
            stmt = stmt.where(ActivityLog.resource == filters.resource)
        if filters.start_date:
            stmt = stmt.where(ActivityLog.created_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(ActivityLog.created_at <= filters.end_date)
        return stmt.order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))

    def get_user_activities(
        self, db: Session, *, user_id: int, filters: ActivityFilters
    ) -> Tuple[List[ActivityLog], int]:
        stmt = self._filtered(filters).where(ActivityLog.user_id == user_id)
        return self.paginate(db, stmt, page=filters.page, limit=filters.limit)

    def get_system_activities(self, db: Session, *, filters: ActivityFilters) -> Tuple[List[ActivityLog], int]:
        """All users' activity; ``filters.user_id`` narrows to one user."""
        stmt = self._filtered(filters)
        if filters.user_id:
            stmt = stmt.where(ActivityLog.user_id == filters.user_id)
        return self.paginate(db, stmt, page=filters.page, limit=filters.limit)


# Singleton instance
crud_activity_log = CRUDActivityLog(ActivityLog)
