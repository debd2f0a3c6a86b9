"""
SQLAlchemy Models for the marketplace API
"""

from ..database import Base
from .user import User
from .category import Category
from .post import Post, PostStatus, PostTag
from .activity_log import ActivityAction, ActivityLog, ActivityResource

# Export all models
__all__ = [
    "Base",
    "User",
    "Category",
    "Post",
    "PostStatus",
    "PostTag",
    "ActivityAction",
    "ActivityLog",
    "ActivityResource",
]
