"""Shared repository helpers: lookups, paging and commit handling."""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.database import Base


ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
	"""Repository over one model. Returns ORM objects; endpoints build the schemas."""

	def __init__(self, model: Type[ModelType]):
		self.model = model

	# ----- Lookups -----
	def get(self, db: Session, id: Any) -> Optional[ModelType]:
		return db.get(self.model, id)

	def get_by_field(self, db: Session, field_name: str, value: Any) -> Optional[ModelType]:
		"""First row whose ``field_name`` equals ``value``, or None."""
		column = getattr(self.model, field_name, None)
		if column is None:
			raise AttributeError(f"{self.model.__name__} has no column {field_name!r}")
		return db.scalars(select(self.model).where(column == value).limit(1)).first()

	# ----- Paging -----
	def count(self, db: Session, stmt: Select) -> int:
		"""Row count of ``stmt`` with its ORDER BY dropped."""
		wrapped = select(func.count()).select_from(stmt.order_by(None).subquery())
		return db.scalar(wrapped) or 0

	def paginate(
		self,
		db: Session,
		stmt: Select,
		*,
		page: int = 1,
		limit: int = 10,
	) -> Tuple[List[ModelType], int]:
		"""One 1-based page of ``stmt`` plus the total row count."""
		total = self.count(db, stmt)
		offset = (page - 1) * limit
		return list(db.scalars(stmt.offset(offset).limit(limit)).all()), total

	# ----- Writes -----
	def update(
		self,
		db: Session,
		*,
		db_obj: ModelType,
		obj_in: Union[UpdateSchemaType, Dict[str, Any]],
	) -> ModelType:
		"""Copy the set fields of ``obj_in`` onto ``db_obj`` and commit."""
		if isinstance(obj_in, BaseModel):
			changes = obj_in.model_dump(exclude_unset=True)
		else:
			changes = dict(obj_in)

		for field, value in changes.items():
			if hasattr(db_obj, field):
				setattr(db_obj, field, value)
		return self.save(db, db_obj)

	def save(self, db: Session, db_obj: ModelType) -> ModelType:
		"""Commit ``db_obj`` and reload it; the session is rolled back on failure."""
		try:
			db.add(db_obj)
			db.commit()
		except Exception:
			db.rollback()
			raise
		db.refresh(db_obj)
		return db_obj
