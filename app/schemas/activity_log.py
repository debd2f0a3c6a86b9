"""Pydantic schemas for the activity log."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import Pagination
from app.schemas.user import UserBrief


class ActivityFilters(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=200)
    action: Optional[str] = None
    resource: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    user_id: Optional[int] = None


class ActivityLogResponse(BaseModel):
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    action: str
    resource: str
    resource_id: Optional[int] = None
    details: Dict[str, Any] = {}
    ip_address: str
    user_agent: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ActivityLogListResponse(BaseModel):
    activities: List[ActivityLogResponse]
    pagination: Pagination
