"""CRUD operations for `User` model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import DuplicateResourceException
from app.core.permissions import Role
from app.core.security import get_password_hash, verify_password
from app.crud.base import CRUDBase
from app.models.user import User
from app.schemas.user import ModeratorCreate, ModeratorUpdate


class CRUDUser(CRUDBase[User, ModeratorCreate, ModeratorUpdate]):
    def get_by_login(self, db: Session, login: str) -> Optional[User]:
        """Find an account by username or (case-insensitive) email."""
        login = login.strip()
        stmt = select(User).where(
            or_(User.username == login, User.email == login.lower())
        ).limit(1)
        return db.scalars(stmt).first()

    def get_profile(self, db: Session, user_id: int) -> Optional[User]:
        stmt = select(User).options(selectinload(User.created_by)).where(User.id == user_id)
        return db.scalars(stmt).first()

    def get_owner(self, db: Session) -> Optional[User]:
        stmt = select(User).where(User.role == Role.OWNER.value).limit(1)
        return db.scalars(stmt).first()

    def exists_username_or_email(
        self, db: Session, *, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None
    ) -> bool:
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email.lower())
        if not conditions:
            return False
        stmt = select(User.id).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return db.scalars(stmt.limit(1)).first() is not None

    def authenticate(self, db: Session, *, login: str, password: str) -> Optional[User]:
        """Return the active user matching ``login`` and ``password``."""
        user = self.get_by_login(db, login)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def touch_last_login(self, db: Session, user: User) -> User:
        user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
        return self.save(db, user)

    def create_owner(
        self, db: Session, *, username: str, email: str, password: str, full_name: str
    ) -> User:
        owner = User(
            username=username,
            email=email.lower(),
            password_hash=get_password_hash(password),
            full_name=full_name,
            role=Role.OWNER.value,
            is_active=True,
            created_by_id=None,
        )
        return self.save(db, owner)

    def create_moderator(self, db: Session, *, user_in: ModeratorCreate, created_by_id: int) -> User:
        if self.exists_username_or_email(db, username=user_in.username, email=user_in.email):
            raise DuplicateResourceException("Username or email already exists")

        user_data = user_in.model_dump()
        raw_password = user_data.pop("password")
        moderator = User(
            **user_data,
            password_hash=get_password_hash(raw_password),
            role=Role.MODERATOR.value,
            created_by_id=created_by_id,
        )
        return self.save(db, moderator)

    def get_moderators(self, db: Session) -> List[User]:
        stmt = (
            select(User)
            .options(selectinload(User.created_by))
            .where(User.role == Role.MODERATOR.value)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(db.scalars(stmt).all())

    def get_moderator(self, db: Session, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id, User.role == Role.MODERATOR.value)
        return db.scalars(stmt).first()

    def update_moderator(self, db: Session, *, moderator: User, user_in: ModeratorUpdate) -> User:
        update_data = user_in.model_dump(exclude_unset=True)
        if self.exists_username_or_email(
            db,
            username=update_data.get("username"),
            email=update_data.get("email"),
            exclude_id=moderator.id,
        ):
            raise DuplicateResourceException("Username or email already exists")

        raw_password = update_data.pop("password", None)
        if raw_password:
            update_data["password_hash"] = get_password_hash(raw_password)
        return self.update(db, db_obj=moderator, obj_in=update_data)

    def set_active(self, db: Session, *, moderator: User, is_active: bool) -> User:
        moderator.is_active = is_active
        return self.save(db, moderator)

    def count_moderators(self, db: Session, *, active_only: bool = False) -> int:
        stmt = select(func.count(User.id)).where(User.role == Role.MODERATOR.value)
        if active_only:
            stmt = stmt.where(User.is_active == True)  # noqa: E712
        return db.scalar(stmt) or 0


crud_user = CRUDUser(User)
