"""Post endpoints: listing, search, lifecycle, statistics and activity feeds."""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.api.audit import record_activity
from app.api.deps import get_current_active_user, get_db, get_optional_current_user, require_capability
from app.core.exceptions import CategoryPropertiesException, PostNotFoundException
from app.core.permissions import Capability, has_capability
from app.crud import PostPage, crud_activity_log, crud_category, crud_post
from app.models.activity_log import ActivityAction, ActivityResource
from app.models.post import Post
from app.models.user import User
from app.schemas.activity_log import ActivityFilters, ActivityLogListResponse, ActivityLogResponse
from app.schemas.category import CategoryOption
from app.schemas.common import ApiResponse, Pagination
from app.schemas.post import (
    PostCreate,
    PostListResponse,
    PostQueryOptions,
    PostResponse,
    PostStatisticsResponse,
    PostUpdate,
    SortField,
    SortOrder,
    StatusFilter,
)
from app.services.post_service import post_service

router = APIRouter(
    prefix="/posts",
    tags=["Posts"],
)


# ----- Helpers -----

def _parse_properties(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Multipart forms carry category_properties as a JSON object string."""
    if raw is None or raw.strip() == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = None
    if not isinstance(value, dict):
        raise CategoryPropertiesException([{
            "field": "category_properties",
            "message": "Must be a JSON object",
            "value": raw,
        }])
    return value


def _form_fields(**fields: Any) -> Dict[str, Any]:
    return {name: value for name, value in fields.items() if value is not None}


def _page_response(page: PostPage) -> PostListResponse:
    return PostListResponse(
        posts=[PostResponse.model_validate(p) for p in page.posts],
        pagination=page.pagination,
        filters=page.filters,
    )


def _activity_page(items, total: int, filters: ActivityFilters) -> ActivityLogListResponse:
    return ActivityLogListResponse(
        activities=[ActivityLogResponse.model_validate(a) for a in items],
        pagination=Pagination.build(page=filters.page, limit=filters.limit, total=total),
    )


# ----- Listing -----

@router.get(
    "",
    response_model=ApiResponse[PostListResponse],
    summary="List posts",
)
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query(""),
    category_id: Optional[int] = Query(None, alias="category"),
    min_price: float = Query(0, ge=0, alias="minPrice"),
    max_price: float = Query(0, ge=0, alias="maxPrice"),
    tags: str = Query(""),
    sort_by: SortField = Query("created_at", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    post_status: StatusFilter = Query("active", alias="status"),
    featured: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
) -> ApiResponse[PostListResponse]:
    """
    Filtered, sorted, paginated listing.

    ``status=all`` lifts the status filter. A ``search`` term orders by
    relevance, then newest first.
    """
    options = PostQueryOptions(
        page=page,
        limit=limit,
        search=search.strip(),
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        tags=tags,
        sort_by=sort_by,
        sort_order=sort_order,
        status=post_status,
        featured=featured,
    )
    result = crud_post.get_all(db, options)
    return ApiResponse(data=_page_response(result), message="Posts fetched successfully")


@router.get(
    "/search",
    response_model=ApiResponse[PostListResponse],
    summary="Full-text search over active posts",
)
def search_posts(
    q: str = Query(""),
    category_id: Optional[int] = Query(None, alias="category"),
    min_price: float = Query(0, ge=0, alias="minPrice"),
    max_price: float = Query(0, ge=0, alias="maxPrice"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
) -> ApiResponse[PostListResponse]:
    term = q.strip()
    if not term:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search term is required")

    options = PostQueryOptions(
        page=page,
        limit=limit,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
    )
    result = crud_post.search(db, term, options)
    return ApiResponse(data=_page_response(result), message="Search results fetched successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[PostStatisticsResponse],
    summary="Post statistics (owner)",
)
def get_statistics(
    current_user: User = Depends(require_capability(Capability.VIEW_STATISTICS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostStatisticsResponse]:
    stats = crud_post.get_statistics(db)
    stats["recent"] = [PostResponse.model_validate(p) for p in stats["recent"]]
    return ApiResponse(data=PostStatisticsResponse(**stats), message="Statistics fetched successfully")


@router.get(
    "/categories",
    response_model=ApiResponse[List[CategoryOption]],
    summary="Category options for post forms",
)
def get_category_options(db: Session = Depends(get_db)) -> ApiResponse[List[CategoryOption]]:
    options = [
        CategoryOption(value=c.id, label=c.name, slug=c.slug)
        for c in crud_category.get_all_active(db)
    ]
    return ApiResponse(data=options, message="Categories fetched successfully")


# ----- Activity feeds -----

@router.get(
    "/activities/user",
    response_model=ApiResponse[ActivityLogListResponse],
    summary="Current user's activity",
)
def get_user_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    action: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> ApiResponse[ActivityLogListResponse]:
    filters = ActivityFilters(
        page=page, limit=limit, action=action, resource=resource,
        start_date=start_date, end_date=end_date,
    )
    items, total = crud_activity_log.get_user_activities(db, user_id=current_user.id, filters=filters)
    return ApiResponse(data=_activity_page(items, total, filters), message="User activities fetched successfully")


@router.get(
    "/activities/system",
    response_model=ApiResponse[ActivityLogListResponse],
    summary="System-wide activity (owner)",
)
def get_system_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    action: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: Optional[int] = Query(None, alias="userId"),
    current_user: User = Depends(require_capability(Capability.VIEW_SYSTEM_ACTIVITY)),
    db: Session = Depends(get_db),
) -> ApiResponse[ActivityLogListResponse]:
    filters = ActivityFilters(
        page=page, limit=limit, action=action, resource=resource,
        start_date=start_date, end_date=end_date, user_id=user_id,
    )
    items, total = crud_activity_log.get_system_activities(db, filters=filters)
    return ApiResponse(data=_activity_page(items, total, filters), message="System activities fetched successfully")


# ----- Lifecycle -----

@router.post(
    "",
    response_model=ApiResponse[PostResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create post",
)
def create_post(
    request: Request,
    title: Optional[str] = Form(None),
    body: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None, alias="category"),
    category_properties: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_capability(Capability.MANAGE_POSTS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    """
    Create a post from a multipart form with an optional ``image`` file.

    ``tags`` is comma-separated and ``category_properties`` a JSON object.
    """
    post_in = PostCreate.model_validate(_form_fields(
        title=title,
        body=body,
        price=price,
        category_id=category_id,
        category_properties=_parse_properties(category_properties),
        tags=tags,
        featured=featured,
    ))
    post = post_service.create(db, post_in=post_in, image=image, user_id=current_user.id)

    record_activity(
        db, request, current_user,
        ActivityAction.POST_CREATED, ActivityResource.POST,
        resource_id=post.id,
        details={"title": post.title, "category_id": post.category_id, "has_image": bool(post.image)},
    )
    if post.image:
        record_activity(
            db, request, current_user,
            ActivityAction.FILE_UPLOADED, ActivityResource.FILE,
            resource_id=post.id,
            details={"file_name": post.image},
        )
    return ApiResponse(data=PostResponse.model_validate(post), message="Post created successfully")


@router.get(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Get post",
)
def get_post(
    post_id: int,
    request: Request,
    track_view: bool = Query(False, alias="trackView"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    post = post_service.get_one(db, post_id, track_view=track_view)
    if post is None:
        raise PostNotFoundException()

    if track_view and current_user is not None:
        record_activity(
            db, request, current_user,
            ActivityAction.POST_VIEWED, ActivityResource.POST,
            resource_id=post.id,
            details={"title": post.title},
        )
    return ApiResponse(data=PostResponse.model_validate(post), message="Post fetched successfully")


@router.put(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Update post",
)
def update_post(
    post_id: int,
    request: Request,
    title: Optional[str] = Form(None),
    body: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None, alias="category"),
    category_properties: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    post_status: Optional[str] = Form(None, alias="status"),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_capability(Capability.MANAGE_POSTS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    """Partial update; only submitted fields change. A new ``image`` replaces the old file."""
    post_in = PostUpdate.model_validate(_form_fields(
        title=title,
        body=body,
        price=price,
        category_id=category_id,
        category_properties=_parse_properties(category_properties),
        tags=tags,
        featured=featured,
        status=post_status,
    ))
    post = post_service.edit(db, post_id=post_id, post_in=post_in, image=image, user_id=current_user.id)

    record_activity(
        db, request, current_user,
        ActivityAction.POST_UPDATED, ActivityResource.POST,
        resource_id=post.id,
        details={
            "title": post.title,
            "updated_fields": sorted(post_in.model_dump(exclude_unset=True)),
            "has_new_image": image is not None and bool(image.filename),
        },
    )
    return ApiResponse(data=PostResponse.model_validate(post), message="Post updated successfully")


@router.delete(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Delete post",
)
def delete_post(
    post_id: int,
    request: Request,
    hard: bool = Query(False),
    current_user: User = Depends(require_capability(Capability.MANAGE_POSTS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    """
    Soft delete by default. ``hard=true`` removes the post and its image for
    good, but only for accounts allowed to; everyone else gets a soft delete.
    """
    hard_delete = hard and has_capability(current_user.role, Capability.HARD_DELETE_POSTS)

    if hard_delete:
        deleted = post_service.hard_delete(db, post_id=post_id, user_id=current_user.id)
    else:
        post: Optional[Post] = post_service.delete(db, post_id=post_id, user_id=current_user.id)
        deleted = PostResponse.model_validate(post) if post is not None else None

    if deleted is None:
        raise PostNotFoundException()

    record_activity(
        db, request, current_user,
        ActivityAction.POST_DELETED, ActivityResource.POST,
        resource_id=deleted.id,
        details={"title": deleted.title, "delete_type": "hard" if hard_delete else "soft"},
    )
    if hard_delete and deleted.image:
        record_activity(
            db, request, current_user,
            ActivityAction.FILE_DELETED, ActivityResource.FILE,
            resource_id=deleted.id,
            details={"file_name": deleted.image},
        )
    return ApiResponse(data=deleted, message="Post deleted successfully")


@router.patch(
    "/{post_id}/restore",
    response_model=ApiResponse[PostResponse],
    summary="Restore a soft-deleted post",
)
def restore_post(
    post_id: int,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_POSTS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    post = post_service.restore(db, post_id=post_id, user_id=current_user.id)
    record_activity(
        db, request, current_user,
        ActivityAction.POST_RESTORED, ActivityResource.POST,
        resource_id=post.id,
        details={"title": post.title},
    )
    return ApiResponse(data=PostResponse.model_validate(post), message="Post restored successfully")


@router.patch(
    "/{post_id}/toggle-featured",
    response_model=ApiResponse[PostResponse],
    summary="Toggle featured flag",
)
def toggle_featured(
    post_id: int,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_POSTS)),
    db: Session = Depends(get_db),
) -> ApiResponse[PostResponse]:
    post = post_service.toggle_featured(db, post_id=post_id, user_id=current_user.id)
    record_activity(
        db, request, current_user,
        ActivityAction.POST_UPDATED, ActivityResource.POST,
        resource_id=post.id,
        details={"title": post.title, "featured": post.featured},
    )
    state = "featured" if post.featured else "unfeatured"
    return ApiResponse(data=PostResponse.model_validate(post), message=f"Post {state} successfully")
