"""CRUD operations and query engine for Post."""

import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy import Select, asc, case, desc, func, literal, not_, or_, select, update
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.category import Category
from app.models.post import Post, PostStatus, PostTag
from app.schemas.common import Pagination
from app.schemas.post import PostCreate, PostQueryOptions, PostUpdate

# Per-term weights for the portable relevance score
TITLE_WEIGHT = 3
TAG_WEIGHT = 2
BODY_WEIGHT = 1

# Text search configuration on PostgreSQL
TS_CONFIG = "english"

RECENT_POSTS_LIMIT = 5

SORT_COLUMNS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "price": Post.price,
    "views": Post.views,
    "title": Post.title,
    "featured": Post.featured,
}

_LIKE_SPECIAL = re.compile(r"([\\%_])")


class PostPage(NamedTuple):
    posts: List[Post]
    pagination: Pagination
    filters: Dict[str, Any]


def _search_terms(term: str) -> List[str]:
    terms: List[str] = []
    for word in term.lower().split():
        if word not in terms:
            terms.append(word)
    return terms


def _like_pattern(term: str) -> str:
    escaped = _LIKE_SPECIAL.sub(r"\\\1", term)
    return f"%{escaped}%"


class CRUDPost(CRUDBase[Post, PostCreate, PostUpdate]):
    """CRUD operations for Post."""

    def _select(self) -> Select:
        return select(Post).options(
            selectinload(Post.category),
            selectinload(Post.created_by),
            selectinload(Post.updated_by),
        )

    # ----- Single post -----
    def get_by_id(self, db: Session, *, post_id: int, include_deleted: bool = False) -> Optional[Post]:
        """Get post by ID; soft-deleted posts are hidden unless asked for."""
        stmt = self._select().where(Post.id == post_id)
        if not include_deleted:
            stmt = stmt.where(Post.status != PostStatus.DELETED.value)
        return db.scalars(stmt).first()

    def get_non_deleted(self, db: Session, post_id: int) -> Optional[Post]:
        return self.get_by_id(db, post_id=post_id)

    # ----- Filtering -----
    def _apply_filters(self, stmt: Select, options: PostQueryOptions) -> Select:
        if options.status != "all":
            stmt = stmt.where(Post.status == options.status)

        if options.category_id:
            stmt = stmt.where(Post.category_id == options.category_id)

        # 0 means unbounded on that side
        if options.min_price > 0:
            stmt = stmt.where(Post.price >= options.min_price)
        if options.max_price > 0:
            stmt = stmt.where(Post.price <= options.max_price)

        tags = options.tag_list
        if tags:
            stmt = stmt.where(Post.tags.any(PostTag.name.in_(tags)))

        if options.featured is not None:
            stmt = stmt.where(Post.featured == options.featured)
        return stmt

    def _apply_sort(self, stmt: Select, options: PostQueryOptions) -> Select:
        column = SORT_COLUMNS[options.sort_by]
        direction = desc if options.sort_order == "desc" else asc
        return stmt.order_by(direction(column), desc(Post.id))

    def _relevance(self, db: Session, term: str):
        """
        Build ``(match_condition, score)`` for a free-text term.

        PostgreSQL ranks with ``ts_rank`` over title, body and tags. Other
        backends add up weighted substring hits per term. Either way a post
        matches when at least one term matches.
        """
        terms = _search_terms(term)
        if not terms:
            return None, None

        if db.get_bind().dialect.name == "postgresql":
            tag_text = (
                select(func.coalesce(func.string_agg(PostTag.name, " "), ""))
                .where(PostTag.post_id == Post.id)
                .correlate(Post)
                .scalar_subquery()
            )
            document = func.to_tsvector(
                TS_CONFIG, func.concat_ws(" ", Post.title, Post.body, tag_text)
            )
            queries = [func.plainto_tsquery(TS_CONFIG, t) for t in terms]
            match = or_(*[document.op("@@")(q) for q in queries])
            score = sum((func.ts_rank(document, q) for q in queries), literal(0.0))
            return match, score

        conditions = []
        score = literal(0)
        for t in terms:
            pattern = _like_pattern(t)
            in_title = Post.title.ilike(pattern, escape="\\")
            in_body = Post.body.ilike(pattern, escape="\\")
            in_tags = Post.tags.any(PostTag.name.ilike(pattern, escape="\\"))
            conditions.extend([in_title, in_body, in_tags])
            score = (
                score
                + case((in_title, TITLE_WEIGHT), else_=0)
                + case((in_tags, TAG_WEIGHT), else_=0)
                + case((in_body, BODY_WEIGHT), else_=0)
            )
        return or_(*conditions), score

    def _run(self, db: Session, stmt: Select, options: PostQueryOptions) -> PostPage:
        posts, total = self.paginate(db, stmt, page=options.page, limit=options.limit)
        filters = options.model_dump(exclude={"page", "limit"})
        return PostPage(
            posts=posts,
            pagination=Pagination.build(page=options.page, limit=options.limit, total=total),
            filters=filters,
        )

    def get_all(self, db: Session, options: PostQueryOptions) -> PostPage:
        """
        Filtered, sorted, paginated listing.

        A non-empty ``search`` switches ordering to relevance, then newest
        first, regardless of ``sort_by``.
        """
        stmt = self._apply_filters(self._select(), options)

        match, score = self._relevance(db, options.search) if options.search else (None, None)
        if match is not None:
            stmt = stmt.where(match).order_by(desc(score), desc(Post.created_at), desc(Post.id))
        else:
            stmt = self._apply_sort(stmt, options)
        return self._run(db, stmt, options)

    def search(self, db: Session, term: str, options: PostQueryOptions) -> PostPage:
        """Relevance search over active posts; category and price filters still apply."""
        options = options.model_copy(
            update={"search": term, "status": PostStatus.ACTIVE.value, "tags": "", "featured": None}
        )
        return self.get_all(db, options)

    # ----- Writes -----
    def set_tags(self, post: Post, tags: List[str]) -> None:
        """Replace the tag set, keeping rows for tags that stay."""
        wanted = list(dict.fromkeys(tags))
        post.tags = [tag for tag in post.tags if tag.name in wanted]
        kept = {tag.name for tag in post.tags}
        for name in wanted:
            if name not in kept:
                post.tags.append(PostTag(name=name))

    def create_post(
        self,
        db: Session,
        *,
        obj_in: PostCreate,
        category_properties: Dict[str, Any],
        image: Optional[str],
        user_id: int,
        thumbnail: Optional[str] = None,
    ) -> Post:
        data = obj_in.model_dump(exclude={"tags", "category_properties"})
        post = Post(
            **data,
            category_properties=category_properties,
            image=image,
            thumbnail=thumbnail,
            status=PostStatus.ACTIVE.value,
            views=0,
            created_by_id=user_id,
        )
        self.set_tags(post, obj_in.tags)
        db.add(post)
        db.commit()
        return self.get_by_id(db, post_id=post.id, include_deleted=True)

    def increment_views(self, db: Session, post_id: int) -> None:
        """Atomic ``views = views + 1``."""
        db.execute(update(Post).where(Post.id == post_id).values(views=Post.views + 1))
        db.commit()

    def toggle_featured(self, db: Session, *, post_id: int, user_id: int) -> None:
        """Atomic ``featured = NOT featured``."""
        db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(featured=not_(Post.featured), updated_by_id=user_id)
        )
        db.commit()

    def set_status(self, db: Session, *, post: Post, status: PostStatus, user_id: int) -> Post:
        post.status = status.value
        post.updated_by_id = user_id
        return self.save(db, post)

    # ----- Aggregates -----
    def count_all(self, db: Session) -> int:
        return db.scalar(select(func.count(Post.id))) or 0

    def count_by_status(self, db: Session, status: PostStatus) -> int:
        return db.scalar(select(func.count(Post.id)).where(Post.status == status.value)) or 0

    def count_featured_active(self, db: Session) -> int:
        stmt = select(func.count(Post.id)).where(
            Post.featured == True, Post.status == PostStatus.ACTIVE.value  # noqa: E712
        )
        return db.scalar(stmt) or 0

    def count_active_by_category(self, db: Session) -> List[Tuple[int, Optional[str], int]]:
        post_count = func.count(Post.id).label("count")
        stmt = (
            select(Post.category_id, Category.name, post_count)
            .join(Category, Category.id == Post.category_id, isouter=True)
            .where(Post.status == PostStatus.ACTIVE.value)
            .group_by(Post.category_id, Category.name)
            .order_by(desc(post_count), Post.category_id)
        )
        return [(row[0], row[1], row[2]) for row in db.execute(stmt).all()]

    def get_recent_active(self, db: Session, limit: int = RECENT_POSTS_LIMIT) -> List[Post]:
        stmt = (
            self._select()
            .where(Post.status == PostStatus.ACTIVE.value)
            .order_by(desc(Post.created_at), desc(Post.id))
            .limit(limit)
        )
        return list(db.scalars(stmt).all())

    def get_statistics(self, db: Session) -> Dict[str, Any]:
        """
        Totals, active posts per category, and the newest active posts.

        Each figure is its own read; under concurrent writes the numbers
        need not add up to one consistent snapshot.
        """
        return {
            "totals": {
                "total": self.count_all(db),
                "active": self.count_by_status(db, PostStatus.ACTIVE),
                "deleted": self.count_by_status(db, PostStatus.DELETED),
                "featured": self.count_featured_active(db),
            },
            "categories": [
                {"category_id": cid, "category_name": name, "count": count}
                for cid, name, count in self.count_active_by_category(db)
            ],
            "recent": self.get_recent_active(db),
        }


# Singleton instance
crud_post = CRUDPost(Post)
