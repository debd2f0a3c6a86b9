"""Response envelope shared by every endpoint."""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope: ``{success, message, data, count?, timestamp}``.

    ``count`` is filled automatically when ``data`` is a list.
    """
    success: bool = True
    message: str = "Success"
    data: Optional[T] = None
    count: Optional[int] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _fill_count(self) -> "ApiResponse":
        if isinstance(self.data, list) and self.count is None:
            self.count = len(self.data)
        return self


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        )
