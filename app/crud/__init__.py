"""CRUD operations package - exports singleton instances for all models."""

from .base import CRUDBase
from .user import crud_user
from .category import crud_category
from .post import crud_post, PostPage
from .activity_log import crud_activity_log


__all__ = [
    # Base
    "CRUDBase",
    "PostPage",
    # CRUD instances
    "crud_user",
    "crud_category",
    "crud_post",
    "crud_activity_log",
]
