"""Authentication, moderator management and dashboard endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.audit import record_activity
from app.api.deps import get_current_active_user, get_db, require_capability, require_owner
from app.core.exceptions import InvalidCredentialsException, UserNotFoundException
from app.core.permissions import Capability
from app.core.security import create_access_token
from app.crud import crud_post, crud_user
from app.models.activity_log import ActivityAction, ActivityResource
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.user import (
    DashboardFileStats,
    DashboardPostStats,
    DashboardStatsResponse,
    DashboardUserStats,
    LoginResponse,
    ModeratorCreate,
    ModeratorUpdate,
    ProfileResponse,
    UserLogin,
    UserResponse,
)
from app.services.file_store import file_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    status_code=status.HTTP_200_OK,
    summary="Login with username or email",
)
def login(
    credentials: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
) -> ApiResponse[LoginResponse]:
    """
    Login for owner and moderators.

    ``username`` may also hold the account email. Only active accounts can
    log in; a wrong password on an existing account is recorded as
    LOGIN_FAILED.

    Raises:
        InvalidCredentialsException: 401 on unknown login, wrong password or inactive account
    """
    user = crud_user.authenticate(db, login=credentials.username, password=credentials.password)

    if user is None:
        known = crud_user.get_by_login(db, credentials.username)
        if known is not None:
            record_activity(
                db, request, known,
                ActivityAction.LOGIN_FAILED, ActivityResource.SYSTEM,
                success=False,
                error_message="Invalid credentials" if known.is_active else "Account inactive",
            )
        logger.warning(f"[AUTH] Failed login for: {credentials.username}")
        raise InvalidCredentialsException()

    user = crud_user.touch_last_login(db, user)
    token = create_access_token(user.id)

    record_activity(db, request, user, ActivityAction.LOGIN, ActivityResource.SYSTEM)
    logger.info(f"[AUTH] User {user.id} ({user.role}) logged in")

    return ApiResponse(
        data=LoginResponse(token=token, user=UserResponse.model_validate(user)),
        message="Login successful",
    )


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileResponse],
    summary="Get current user profile",
)
def get_profile(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> ApiResponse[ProfileResponse]:
    user = crud_user.get_profile(db, current_user.id)
    if user is None:
        raise UserNotFoundException()
    return ApiResponse(data=ProfileResponse.model_validate(user), message="Profile fetched successfully")


# ----- Moderators (owner only) -----

@router.post(
    "/moderators",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create moderator",
)
def create_moderator(
    moderator_in: ModeratorCreate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """
    Create a moderator account.

    Raises:
        DuplicateResourceException: 409 if username or email is taken
    """
    moderator = crud_user.create_moderator(db, user_in=moderator_in, created_by_id=current_user.id)
    record_activity(
        db, request, current_user,
        ActivityAction.USER_CREATED, ActivityResource.USER,
        resource_id=moderator.id,
        details={"username": moderator.username},
    )
    return ApiResponse(data=UserResponse.model_validate(moderator), message="Moderator created successfully")


@router.get(
    "/moderators",
    response_model=ApiResponse[List[ProfileResponse]],
    summary="List moderators",
)
def list_moderators(
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> ApiResponse[List[ProfileResponse]]:
    moderators = crud_user.get_moderators(db)
    return ApiResponse(
        data=[ProfileResponse.model_validate(m) for m in moderators],
        message="Moderators fetched successfully",
    )


@router.put(
    "/moderators/{moderator_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update moderator",
)
def update_moderator(
    moderator_id: int,
    moderator_in: ModeratorUpdate,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """Update a moderator. Role and creator are never changed here."""
    moderator = crud_user.get_moderator(db, moderator_id)
    if moderator is None:
        raise UserNotFoundException("Moderator not found")

    moderator = crud_user.update_moderator(db, moderator=moderator, user_in=moderator_in)
    record_activity(
        db, request, current_user,
        ActivityAction.USER_UPDATED, ActivityResource.USER,
        resource_id=moderator.id,
        details={"updated_fields": sorted(moderator_in.model_dump(exclude_unset=True, exclude={"password"}))},
    )
    return ApiResponse(data=UserResponse.model_validate(moderator), message="Moderator updated successfully")


def _set_moderator_active(
    db: Session, request: Request, current_user: User, moderator_id: int, is_active: bool
) -> User:
    moderator = crud_user.get_moderator(db, moderator_id)
    if moderator is None:
        raise UserNotFoundException("Moderator not found")

    moderator = crud_user.set_active(db, moderator=moderator, is_active=is_active)
    record_activity(
        db, request, current_user,
        ActivityAction.USER_ACTIVATED if is_active else ActivityAction.USER_DEACTIVATED,
        ActivityResource.USER,
        resource_id=moderator.id,
        details={"username": moderator.username},
    )
    return moderator


@router.patch(
    "/moderators/{moderator_id}/deactivate",
    response_model=ApiResponse[UserResponse],
    summary="Deactivate moderator",
)
def deactivate_moderator(
    moderator_id: int,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    moderator = _set_moderator_active(db, request, current_user, moderator_id, False)
    return ApiResponse(data=UserResponse.model_validate(moderator), message="Moderator deactivated successfully")


@router.patch(
    "/moderators/{moderator_id}/activate",
    response_model=ApiResponse[UserResponse],
    summary="Activate moderator",
)
def activate_moderator(
    moderator_id: int,
    request: Request,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    moderator = _set_moderator_active(db, request, current_user, moderator_id, True)
    return ApiResponse(data=UserResponse.model_validate(moderator), message="Moderator activated successfully")


@router.get(
    "/dashboard/stats",
    response_model=ApiResponse[DashboardStatsResponse],
    summary="Owner dashboard counters",
)
def dashboard_stats(
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
) -> ApiResponse[DashboardStatsResponse]:
    total = crud_user.count_moderators(db)
    active = crud_user.count_moderators(db, active_only=True)
    stats = DashboardStatsResponse(
        users=DashboardUserStats(
            total_moderators=total,
            active_moderators=active,
            inactive_moderators=total - active,
        ),
        posts=DashboardPostStats(total=crud_post.count_all(db)),
        files=DashboardFileStats(**file_store.stats()),
    )
    return ApiResponse(data=stats, message="Dashboard statistics fetched successfully")
