"""CRUD operations for Category (hierarchical taxonomy)."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import (
    CategoryInUseException,
    DuplicateResourceException,
    InvalidCategoryException,
)
from app.crud.base import CRUDBase
from app.models.category import Category
from app.models.post import Post, PostStatus
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.crud.category_seed import DEFAULT_MATTRESS_CATEGORIES
from app.utils.slug import slugify

logger = logging.getLogger(__name__)

# Guard for walking parent links when checking for cycles
MAX_HIERARCHY_DEPTH = 64


class CRUDCategory(CRUDBase[Category, CategoryCreate, CategoryUpdate]):
    """CRUD operations for Category."""

    # ----- Read -----
    def get_active(self, db: Session, category_id: int) -> Optional[Category]:
        stmt = select(Category).where(Category.id == category_id, Category.is_active == True)  # noqa: E712
        return db.scalars(stmt).first()

    def get_active_children(self, db: Session, parent_ids: List[int]) -> Dict[int, List[Category]]:
        """Active children grouped by parent, ordered by (sort_order, name)."""
        children: Dict[int, List[Category]] = {pid: [] for pid in parent_ids}
        if not parent_ids:
            return children
        stmt = (
            select(Category)
            .where(Category.parent_id.in_(parent_ids), Category.is_active == True)  # noqa: E712
            .order_by(Category.sort_order, Category.name)
        )
        for child in db.scalars(stmt).all():
            children[child.parent_id].append(child)
        return children

    def get_hierarchy(self, db: Session) -> List[Tuple[Category, List[Category]]]:
        """Top-level active categories, each with its active subcategories."""
        stmt = (
            select(Category)
            .where(Category.parent_id.is_(None), Category.is_active == True)  # noqa: E712
            .order_by(Category.sort_order, Category.name)
        )
        roots = list(db.scalars(stmt).all())
        children = self.get_active_children(db, [root.id for root in roots])
        return [(root, children[root.id]) for root in roots]

    def get_by_slug(self, db: Session, slug: str) -> Optional[Category]:
        """Active category with its parent loaded."""
        stmt = (
            select(Category)
            .options(joinedload(Category.parent))
            .where(Category.slug == slug, Category.is_active == True)  # noqa: E712
        )
        return db.scalars(stmt).first()

    def get_detail(self, db: Session, category_id: int) -> Optional[Category]:
        stmt = (
            select(Category)
            .options(joinedload(Category.parent))
            .where(Category.id == category_id, Category.is_active == True)  # noqa: E712
        )
        return db.scalars(stmt).first()

    def get_flat(
        self, db: Session, *, page: int = 1, limit: int = 50, search: str = ""
    ) -> Tuple[List[Category], int]:
        """Paginated flat list of active categories, optionally filtered by name/description."""
        stmt = select(Category).where(Category.is_active == True)  # noqa: E712
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Category.name.ilike(pattern), Category.description.ilike(pattern)))
        stmt = stmt.order_by(Category.sort_order, Category.name)
        return self.paginate(db, stmt, page=page, limit=limit)

    def get_all_active(self, db: Session) -> List[Category]:
        stmt = select(Category).where(Category.is_active == True).order_by(Category.sort_order, Category.name)  # noqa: E712
        return list(db.scalars(stmt).all())

    # ----- Write helpers -----
    def _ensure_unique(self, db: Session, *, name: str, slug: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(Category.id).where(or_(Category.name == name, Category.slug == slug))
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if db.scalars(stmt.limit(1)).first() is not None:
            raise DuplicateResourceException(f"Category '{name}' (slug '{slug}') already exists")

    def _derive_slug(self, name: str) -> str:
        slug = slugify(name)
        if not slug:
            raise InvalidCategoryException("Category name must contain letters or digits")
        return slug

    def _check_parent(self, db: Session, parent_id: int, category_id: Optional[int] = None) -> None:
        """Parent must be active; re-parenting must not close a loop."""
        if category_id is not None and parent_id == category_id:
            raise InvalidCategoryException("A category cannot be its own parent")

        parent = self.get_active(db, parent_id)
        if parent is None:
            raise InvalidCategoryException("Parent category does not exist or is inactive")

        if category_id is None:
            return
        ancestor, depth = parent, 0
        while ancestor is not None and depth < MAX_HIERARCHY_DEPTH:
            if ancestor.parent_id == category_id:
                logger.warning(
                    f"[CATEGORY] Rejected parent {parent_id} for category {category_id}: cycle"
                )
                raise InvalidCategoryException("Parent assignment would create a cycle")
            ancestor = ancestor.parent
            depth += 1

    def _commit(self, db: Session, category: Category) -> Category:
        try:
            return self.save(db, category)
        except IntegrityError as e:
            # Lost a race against another request creating the same name/slug
            raise DuplicateResourceException("Category name or slug already exists") from e

    # ----- Create / Update -----
    def create_category(self, db: Session, *, obj_in: CategoryCreate, user_id: int) -> Category:
        slug = self._derive_slug(obj_in.name)
        self._ensure_unique(db, name=obj_in.name, slug=slug)
        if obj_in.parent_id is not None:
            self._check_parent(db, obj_in.parent_id)

        data = obj_in.model_dump(mode="json")
        category = Category(**data, slug=slug, is_active=True, created_by_id=user_id)
        return self._commit(db, category)

    def update_category(
        self, db: Session, *, db_obj: Category, obj_in: CategoryUpdate, user_id: int
    ) -> Category:
        update_data: Dict[str, Any] = obj_in.model_dump(mode="json", exclude_unset=True)

        if update_data.get("name") is not None and update_data["name"] != db_obj.name:
            slug = self._derive_slug(update_data["name"])
            self._ensure_unique(db, name=update_data["name"], slug=slug, exclude_id=db_obj.id)
            update_data["slug"] = slug
        else:
            update_data.pop("name", None)

        if update_data.get("parent_id") is not None:
            self._check_parent(db, update_data["parent_id"], category_id=db_obj.id)

        if "properties" in update_data and update_data["properties"] is None:
            update_data["properties"] = []

        for field, value in update_data.items():
            setattr(db_obj, field, value)
        db_obj.updated_by_id = user_id
        return self._commit(db, db_obj)

    # ----- Delete -----
    def count_active_subcategories(self, db: Session, category_id: int) -> int:
        stmt = select(func.count(Category.id)).where(
            Category.parent_id == category_id, Category.is_active == True  # noqa: E712
        )
        return db.scalar(stmt) or 0

    def count_live_posts(self, db: Session, category_id: int) -> int:
        stmt = select(func.count(Post.id)).where(
            Post.category_id == category_id, Post.status != PostStatus.DELETED.value
        )
        return db.scalar(stmt) or 0

    def delete_category(self, db: Session, *, category_id: int, user_id: int) -> Optional[Category]:
        """
        Soft delete a category.

        Subcategories are checked before posts. Returns None when the
        category does not exist or is already inactive.

        Raises:
            CategoryInUseException: active subcategories or non-deleted posts remain
        """
        if self.count_active_subcategories(db, category_id) > 0:
            raise CategoryInUseException("Cannot delete category with subcategories")

        if self.count_live_posts(db, category_id) > 0:
            raise CategoryInUseException("Cannot delete category that is used in posts")

        category = self.get_active(db, category_id)
        if category is None:
            return None

        category.is_active = False
        category.updated_by_id = user_id
        return self.save(db, category)

    # ----- Seed -----
    def initialize_defaults(self, db: Session, *, user_id: int) -> List[Category]:
        """Create the built-in mattress taxonomy, skipping names that already exist."""
        created: List[Category] = []
        for definition in DEFAULT_MATTRESS_CATEGORIES:
            if self.get_by_field(db, "name", definition["name"]) is not None:
                continue
            category = self.create_category(
                db, obj_in=CategoryCreate.model_validate(definition), user_id=user_id
            )
            created.append(category)
        logger.info(f"[CATEGORY] Default categories initialized: {len(created)} created")
        return created


# Singleton instance
crud_category = CRUDCategory(Category)
