"""Append-only audit trail of staff actions."""

from enum import Enum
from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, ForeignKey, Index, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base


class ActivityAction(str, Enum):
    # Authentication
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    # Posts
    POST_CREATED = "POST_CREATED"
    POST_UPDATED = "POST_UPDATED"
    POST_DELETED = "POST_DELETED"
    POST_VIEWED = "POST_VIEWED"
    POST_RESTORED = "POST_RESTORED"
    # Categories
    CATEGORY_CREATED = "CATEGORY_CREATED"
    CATEGORY_UPDATED = "CATEGORY_UPDATED"
    CATEGORY_DELETED = "CATEGORY_DELETED"
    # Users
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    # Files
    FILE_UPLOADED = "FILE_UPLOADED"
    FILE_DELETED = "FILE_DELETED"
    # System
    SYSTEM_ACCESS = "SYSTEM_ACCESS"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class ActivityResource(str, Enum):
    POST = "post"
    CATEGORY = "category"
    USER = "user"
    FILE = "file"
    SYSTEM = "system"


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action = Column(String(40), nullable=False)
    resource = Column(String(20), nullable=False)
    resource_id = Column(Integer, nullable=True)  # NULL for system actions
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=False, default="unknown")
    user_agent = Column(Text, nullable=True)
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text, nullable=True)
    
    created_at = Column(TIMESTAMP, server_default=func.now(), index=True)
    
    __table_args__ = (
        Index("idx_activity_user_created", "user_id", "created_at"),
        Index("idx_activity_action_created", "action", "created_at"),
        Index("idx_activity_resource", "resource", "resource_id"),
        Index("idx_activity_success_created", "success", "created_at"),
    )
    
    user = relationship("User")
