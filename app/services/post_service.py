"""Service layer for the post lifecycle: create, edit, delete, restore, feature."""

import logging
from typing import Any, Dict, Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidCategoryException,
    PostNotFoundException,
    PostStateException,
    ServiceError,
)
from app.crud.category import crud_category
from app.crud.post import crud_post
from app.models.category import Category
from app.models.post import Post, PostStatus
from app.schemas.post import PostCreate, PostResponse, PostUpdate
from app.services.category_properties import validate_category_properties
from app.services.file_store import FileStore, StoredFile, file_store

logger = logging.getLogger(__name__)

# Plain columns an edit may overwrite directly
EDITABLE_FIELDS = ("title", "body", "price", "featured", "status")


class PostService:
    """
    Post lifecycle on top of ``crud_post`` and the file store.

    Files are written before the database and removed again when the
    database step fails, so a failed request never leaves an orphan
    upload behind. Removing files is best-effort: failures are logged,
    never raised.
    """

    def __init__(self, store: FileStore):
        self.file_store = store

    # ----- Helpers -----
    def _discard_file(self, file_name: Optional[str], reason: str) -> None:
        if not file_name:
            return
        try:
            self.file_store.delete(file_name)
            logger.info(f"[FILE] Removed {file_name} ({reason})")
        except (OSError, ValueError) as e:
            logger.warning(f"[FILE] Could not remove {file_name} ({reason}): {e}")

    def _active_category(self, db: Session, category_id: int) -> Category:
        category = crud_category.get_active(db, category_id)
        if category is None:
            raise InvalidCategoryException()
        return category

    def _save_upload(self, image: Optional[UploadFile]) -> Optional[StoredFile]:
        if image is None or not image.filename:
            return None
        return self.file_store.save(image)

    # ----- Create -----
    def create(
        self,
        db: Session,
        *,
        post_in: PostCreate,
        image: Optional[UploadFile],
        user_id: int,
    ) -> Post:
        """
        Create a post, storing its image first.

        Raises:
            UploadRejectedException: image type or size rejected
            InvalidCategoryException: category missing or inactive
            CategoryPropertiesException: properties do not fit the category
            ServiceError: database failure
        """
        stored = self._save_upload(image)
        file_name = stored.file_name if stored else None

        try:
            category = self._active_category(db, post_in.category_id)
            properties = validate_category_properties(category.properties, post_in.category_properties)
            post = crud_post.create_post(
                db,
                obj_in=post_in,
                category_properties=properties,
                image=file_name,
                thumbnail=stored.thumbnail_name if stored else None,
                user_id=user_id,
            )
        except SQLAlchemyError as e:
            db.rollback()
            self._discard_file(file_name, "post creation failed")
            raise ServiceError("Error creating post", e) from e
        except Exception:
            self._discard_file(file_name, "post creation rejected")
            raise

        logger.info(f"[POST] Post {post.id} created by user {user_id}")
        return post

    # ----- Read -----
    def get_one(self, db: Session, post_id: int, track_view: bool = False) -> Optional[Post]:
        """Non-deleted post or None. ``track_view`` bumps the view counter."""
        try:
            post = crud_post.get_non_deleted(db, post_id)
            if post is None:
                return None
            if track_view:
                crud_post.increment_views(db, post.id)
                db.refresh(post)
            return post
        except SQLAlchemyError as e:
            db.rollback()
            raise ServiceError("Error fetching post", e) from e

    # ----- Edit -----
    def edit(
        self,
        db: Session,
        *,
        post_id: int,
        post_in: PostUpdate,
        image: Optional[UploadFile],
        user_id: int,
    ) -> Post:
        """
        Partial update. A new image replaces the old one only after the
        database write succeeded; the old file is then removed.
        """
        post = crud_post.get_non_deleted(db, post_id)
        if post is None:
            raise PostNotFoundException()

        stored = self._save_upload(image)
        new_file = stored.file_name if stored else None
        old_file = post.image

        update_data: Dict[str, Any] = post_in.model_dump(exclude_unset=True)
        try:
            if update_data.get("category_id") is not None or update_data.get("category_properties") is not None:
                category = self._active_category(db, update_data.get("category_id") or post.category_id)
                values = update_data.get("category_properties")
                if values is None:
                    values = post.category_properties
                post.category_id = category.id
                post.category_properties = validate_category_properties(category.properties, values)

            for field in EDITABLE_FIELDS:
                if update_data.get(field) is not None:
                    setattr(post, field, update_data[field])

            if update_data.get("tags") is not None:
                crud_post.set_tags(post, update_data["tags"])

            if new_file:
                post.image = new_file
                post.thumbnail = stored.thumbnail_name
            post.updated_by_id = user_id
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            self._discard_file(new_file, "post update failed")
            raise ServiceError("Error updating post", e) from e
        except Exception:
            db.rollback()
            self._discard_file(new_file, "post update rejected")
            raise

        if new_file and old_file and old_file != new_file:
            self._discard_file(old_file, "replaced by new image")

        logger.info(f"[POST] Post {post_id} updated by user {user_id}")
        return crud_post.get_by_id(db, post_id=post_id, include_deleted=True)

    # ----- Delete / restore -----
    def delete(self, db: Session, *, post_id: int, user_id: int) -> Optional[Post]:
        """Soft delete. Returns None when the post is missing or already deleted."""
        post = crud_post.get_non_deleted(db, post_id)
        if post is None:
            return None
        try:
            post = crud_post.set_status(db, post=post, status=PostStatus.DELETED, user_id=user_id)
        except SQLAlchemyError as e:
            db.rollback()
            raise ServiceError("Error deleting post", e) from e
        logger.info(f"[POST] Post {post_id} soft-deleted by user {user_id}")
        return post

    def hard_delete(self, db: Session, *, post_id: int, user_id: int) -> Optional[PostResponse]:
        """
        Remove the row and its image for good.

        Returns a snapshot of the post as it was, or None if it never existed.
        """
        post = crud_post.get_by_id(db, post_id=post_id, include_deleted=True)
        if post is None:
            return None

        snapshot = PostResponse.model_validate(post)
        try:
            db.delete(post)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ServiceError("Error permanently deleting post", e) from e

        self._discard_file(snapshot.image, "post permanently deleted")
        logger.info(f"[POST] Post {post_id} permanently deleted by user {user_id}")
        return snapshot

    def restore(self, db: Session, *, post_id: int, user_id: int) -> Post:
        """
        Bring a soft-deleted post back to active.

        Raises:
            PostNotFoundException: no such post
            PostStateException: the post is not deleted
        """
        post = crud_post.get_by_id(db, post_id=post_id, include_deleted=True)
        if post is None:
            raise PostNotFoundException()
        if post.status != PostStatus.DELETED.value:
            raise PostStateException("Only deleted posts can be restored")
        try:
            post = crud_post.set_status(db, post=post, status=PostStatus.ACTIVE, user_id=user_id)
        except SQLAlchemyError as e:
            db.rollback()
            raise ServiceError("Error restoring post", e) from e
        logger.info(f"[POST] Post {post_id} restored by user {user_id}")
        return post

    # ----- Featured -----
    def toggle_featured(self, db: Session, *, post_id: int, user_id: int) -> Post:
        post = crud_post.get_non_deleted(db, post_id)
        if post is None:
            raise PostNotFoundException()
        try:
            crud_post.toggle_featured(db, post_id=post_id, user_id=user_id)
        except SQLAlchemyError as e:
            db.rollback()
            raise ServiceError("Error toggling featured status", e) from e
        return crud_post.get_by_id(db, post_id=post_id, include_deleted=True)


post_service = PostService(file_store)
