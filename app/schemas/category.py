"""Pydantic schemas for Category."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.common import Pagination


class PropertyType(str, Enum):
    """Value kinds a category property can declare."""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"


class CategoryProperty(BaseModel):
    """One declared property of a category, e.g. mattress firmness."""
    name: str = Field(..., min_length=1, max_length=100)
    type: PropertyType
    options: List[str] = Field(default_factory=list, description="Choices for select/multiselect")
    required: bool = False
    unit: Optional[str] = Field(None, max_length=20, description="Measurement unit, e.g. cm")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Property name is required")
        return v

    @model_validator(mode="after")
    def check_options(self) -> "CategoryProperty":
        if self.type in (PropertyType.SELECT, PropertyType.MULTISELECT) and not self.options:
            raise ValueError(f"Property '{self.name}' of type {self.type.value} needs options")
        return self


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = Field(None, gt=0, description="Parent category ID")
    properties: List[CategoryProperty] = Field(default_factory=list)
    sort_order: int = 0

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def unique_property_names(self) -> "CategoryBase":
        names = [prop.name for prop in self.properties]
        if len(names) != len(set(names)):
            raise ValueError("Property names must be unique within a category")
        return self


class CategoryCreate(CategoryBase):
    """Schema for creating a new category."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Ortopedik Matras",
            "description": "Orqa va bo'yin uchun maxsus ishlab chiqilgan matraslar",
            "properties": [
                {"name": "firmness", "type": "select", "options": ["yumshoq", "o'rtacha", "qattiq"], "required": True},
                {"name": "thickness", "type": "number", "unit": "cm", "required": True},
            ],
            "sort_order": 0,
        }
    })


class CategoryUpdate(BaseModel):
    """Schema for updating a category. Slug follows the name."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = Field(None, gt=0)
    properties: Optional[List[CategoryProperty]] = None
    sort_order: Optional[int] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class CategoryBrief(BaseModel):
    id: int
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class CategoryResponse(CategoryBrief):
    description: Optional[str] = None
    parent_id: Optional[int] = None
    properties: List[CategoryProperty] = []
    is_active: bool
    sort_order: int
    created_by_id: Optional[int] = None
    updated_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryTreeResponse(CategoryResponse):
    """Top-level category with its active children."""
    subcategories: List[CategoryResponse] = []


class CategoryDetailResponse(CategoryTreeResponse):
    parent: Optional[CategoryResponse] = None


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]
    pagination: Pagination


class CategoryOption(BaseModel):
    """Select-box entry for post forms."""
    value: int
    label: str
    slug: str


class CategoryInitializeResponse(BaseModel):
    created: List[CategoryResponse]
    total: int
