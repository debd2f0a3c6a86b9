"""Pydantic schemas for marketplace posts."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.config import settings
from app.schemas.category import CategoryBrief
from app.schemas.common import Pagination
from app.schemas.user import UserBrief


SortField = Literal["created_at", "updated_at", "price", "views", "title", "featured"]
SortOrder = Literal["asc", "desc"]
StatusFilter = Literal["active", "inactive", "deleted", "all"]


def normalize_tags(value: Union[str, List[str], None]) -> List[str]:
    """
    Accept ``"a, b,,c"`` or ``["a", " b "]`` and return trimmed, non-empty,
    de-duplicated tags in input order.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags: List[str] = []
    for raw in value:
        tag = str(raw).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class PostBase(BaseModel):
    """Base schema for Post."""
    title: str = Field(..., min_length=3, max_length=100, description="Post title")
    body: str = Field(..., min_length=10, max_length=1000, description="Post description")
    price: float = Field(..., ge=0, description="Price, zero or positive")
    category_id: int = Field(..., gt=0, description="Category ID")
    category_properties: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    featured: bool = False

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Union[str, List[str], None]) -> List[str]:
        return normalize_tags(v)


class PostCreate(PostBase):
    """Schema for creating a new post."""

    model_config = ConfigDict(str_strip_whitespace=True, json_schema_extra={
        "example": {
            "title": "Amazing Product",
            "body": "Orthopedic mattress, 20 cm thick",
            "price": 99.99,
            "category_id": 1,
            "category_properties": {"firmness": "qattiq", "thickness": 20},
            "tags": ["orthopedic", "latex"],
            "featured": False,
        }
    })


class PostUpdate(BaseModel):
    """Schema for updating a post. Only provided fields change."""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    body: Optional[str] = Field(None, min_length=10, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    category_id: Optional[int] = Field(None, gt=0)
    category_properties: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    featured: Optional[bool] = None
    status: Optional[Literal["active", "inactive"]] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Union[str, List[str], None]) -> Optional[List[str]]:
        return None if v is None else normalize_tags(v)


class PostQueryOptions(BaseModel):
    """Filters, ordering and paging for listing posts."""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: str = ""
    category_id: Optional[int] = None
    min_price: float = Field(0, ge=0, description="0 means no lower bound")
    max_price: float = Field(0, ge=0, description="0 means no upper bound")
    tags: str = Field("", description="Comma-separated, any-of")
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"
    status: StatusFilter = "active"
    featured: Optional[bool] = None

    @property
    def tag_list(self) -> List[str]:
        return normalize_tags(self.tags)


def _static_url(name: Optional[str], folder: str = "") -> Optional[str]:
    if not name:
        return None
    prefix = f"{settings.API_PREFIX}/static"
    return f"{prefix}/{folder}/{name}" if folder else f"{prefix}/{name}"


class PostResponse(BaseModel):
    """Schema for Post response."""
    id: int
    title: str
    body: str
    price: float
    category_id: int
    category: Optional[CategoryBrief] = None
    category_properties: Dict[str, Any] = {}
    tags: List[str] = []
    status: str
    views: int
    featured: bool
    image: Optional[str] = None
    thumbnail: Optional[str] = None
    created_by: Optional[UserBrief] = None
    updated_by: Optional[UserBrief] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("tags", mode="before")
    @classmethod
    def tag_objects_to_names(cls, v: Any) -> List[str]:
        return [getattr(tag, "name", tag) for tag in (v or [])]

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return _static_url(self.image)

    @computed_field
    @property
    def thumbnail_url(self) -> Optional[str]:
        return _static_url(self.thumbnail, folder="thumbnails")


class PostListResponse(BaseModel):
    """Response for listing posts."""
    posts: List[PostResponse]
    pagination: Pagination
    filters: Dict[str, Any]


class CategoryPostCount(BaseModel):
    category_id: int
    category_name: Optional[str] = None
    count: int


class PostTotals(BaseModel):
    total: int
    active: int
    deleted: int
    featured: int


class PostStatisticsResponse(BaseModel):
    totals: PostTotals
    categories: List[CategoryPostCount]
    recent: List[PostResponse]
