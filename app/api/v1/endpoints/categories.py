"""Category endpoints: hierarchy, lookup and owner-only management."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.audit import record_activity
from app.api.deps import get_db, require_capability
from app.core.exceptions import CategoryNotFoundException
from app.core.permissions import Capability
from app.crud import crud_category
from app.models.activity_log import ActivityAction, ActivityResource
from app.models.category import Category
from app.models.user import User
from app.schemas.category import (
    CategoryCreate,
    CategoryDetailResponse,
    CategoryInitializeResponse,
    CategoryListResponse,
    CategoryResponse,
    CategoryTreeResponse,
    CategoryUpdate,
)
from app.schemas.common import ApiResponse, Pagination

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
)


def _tree(category: Category, children: List[Category]) -> CategoryTreeResponse:
    return CategoryTreeResponse(
        **CategoryResponse.model_validate(category).model_dump(),
        subcategories=[CategoryResponse.model_validate(child) for child in children],
    )


def _detail(db: Session, category: Category) -> CategoryDetailResponse:
    children = crud_category.get_active_children(db, [category.id])[category.id]
    parent = CategoryResponse.model_validate(category.parent) if category.parent else None
    return CategoryDetailResponse(
        **_tree(category, children).model_dump(),
        parent=parent,
    )


@router.get(
    "",
    response_model=ApiResponse[List[CategoryTreeResponse]],
    summary="Category hierarchy",
)
def get_hierarchy(db: Session = Depends(get_db)) -> ApiResponse[List[CategoryTreeResponse]]:
    """Top-level active categories, each with its active subcategories."""
    tree = [_tree(root, children) for root, children in crud_category.get_hierarchy(db)]
    return ApiResponse(data=tree, message="Categories fetched successfully")


@router.get(
    "/flat",
    response_model=ApiResponse[CategoryListResponse],
    summary="Flat paginated category list",
)
def get_flat(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: str = Query("", max_length=100),
    db: Session = Depends(get_db),
) -> ApiResponse[CategoryListResponse]:
    categories, total = crud_category.get_flat(db, page=page, limit=limit, search=search.strip())
    result = CategoryListResponse(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )
    return ApiResponse(data=result, message="Categories fetched successfully")


@router.post(
    "/initialize-mattress",
    response_model=ApiResponse[CategoryInitializeResponse],
    summary="Seed the mattress categories",
)
def initialize_mattress_categories(
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_CATEGORIES)),
    db: Session = Depends(get_db),
) -> ApiResponse[CategoryInitializeResponse]:
    """Create the built-in mattress categories that do not exist yet."""
    created = crud_category.initialize_defaults(db, user_id=current_user.id)
    for category in created:
        record_activity(
            db, request, current_user,
            ActivityAction.CATEGORY_CREATED, ActivityResource.CATEGORY,
            resource_id=category.id,
            details={"name": category.name, "source": "initialize-mattress"},
        )
    result = CategoryInitializeResponse(
        created=[CategoryResponse.model_validate(c) for c in created],
        total=len(created),
    )
    return ApiResponse(data=result, message="Mattress categories initialized successfully")


@router.post(
    "",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
def create_category(
    category_in: CategoryCreate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_CATEGORIES)),
    db: Session = Depends(get_db),
) -> ApiResponse[CategoryResponse]:
    """
    Create a category. The slug is derived from the name.

    Raises:
        DuplicateResourceException: 409 if name or slug is taken
        InvalidCategoryException: 400 if the parent is missing or inactive
    """
    category = crud_category.create_category(db, obj_in=category_in, user_id=current_user.id)
    record_activity(
        db, request, current_user,
        ActivityAction.CATEGORY_CREATED, ActivityResource.CATEGORY,
        resource_id=category.id,
        details={"name": category.name, "slug": category.slug},
    )
    return ApiResponse(data=CategoryResponse.model_validate(category), message="Category created successfully")


@router.get(
    "/slug/{slug}",
    response_model=ApiResponse[CategoryDetailResponse],
    summary="Get category by slug",
)
def get_by_slug(slug: str, db: Session = Depends(get_db)) -> ApiResponse[CategoryDetailResponse]:
    category = crud_category.get_by_slug(db, slug)
    if category is None:
        raise CategoryNotFoundException()
    return ApiResponse(data=_detail(db, category), message="Category fetched successfully")


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryDetailResponse],
    summary="Get category by ID",
)
def get_category(category_id: int, db: Session = Depends(get_db)) -> ApiResponse[CategoryDetailResponse]:
    category = crud_category.get_detail(db, category_id)
    if category is None:
        raise CategoryNotFoundException()
    return ApiResponse(data=_detail(db, category), message="Category fetched successfully")


@router.put(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    summary="Update category",
)
def update_category(
    category_id: int,
    category_in: CategoryUpdate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_CATEGORIES)),
    db: Session = Depends(get_db),
) -> ApiResponse[CategoryResponse]:
    category = crud_category.get_active(db, category_id)
    if category is None:
        raise CategoryNotFoundException()

    category = crud_category.update_category(db, db_obj=category, obj_in=category_in, user_id=current_user.id)
    record_activity(
        db, request, current_user,
        ActivityAction.CATEGORY_UPDATED, ActivityResource.CATEGORY,
        resource_id=category.id,
        details={"updated_fields": sorted(category_in.model_dump(exclude_unset=True))},
    )
    return ApiResponse(data=CategoryResponse.model_validate(category), message="Category updated successfully")


@router.delete(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    summary="Delete category",
)
def delete_category(
    category_id: int,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_CATEGORIES)),
    db: Session = Depends(get_db),
) -> ApiResponse[CategoryResponse]:
    """
    Soft delete a category.

    Raises:
        CategoryInUseException: 409 while active subcategories or non-deleted posts remain
        CategoryNotFoundException: 404 if missing or already inactive
    """
    category = crud_category.delete_category(db, category_id=category_id, user_id=current_user.id)
    if category is None:
        raise CategoryNotFoundException()

    record_activity(
        db, request, current_user,
        ActivityAction.CATEGORY_DELETED, ActivityResource.CATEGORY,
        resource_id=category.id,
        details={"name": category.name},
    )
    return ApiResponse(data=CategoryResponse.model_validate(category), message="Category deleted successfully")
