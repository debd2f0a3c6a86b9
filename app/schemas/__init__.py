from .common import (
	ApiResponse,
	Pagination,
)
from .user import (
	UserLogin,
	ModeratorCreate,
	ModeratorUpdate,
	UserBrief,
	UserResponse,
	ProfileResponse,
	LoginResponse,
	DashboardStatsResponse,
)
from .category import (
	PropertyType,
	CategoryProperty,
	CategoryCreate,
	CategoryUpdate,
	CategoryBrief,
	CategoryResponse,
	CategoryTreeResponse,
	CategoryDetailResponse,
	CategoryListResponse,
	CategoryOption,
	CategoryInitializeResponse,
)
from .post import (
	PostCreate,
	PostUpdate,
	PostQueryOptions,
	PostResponse,
	PostListResponse,
	PostStatisticsResponse,
)
from .activity_log import (
	ActivityFilters,
	ActivityLogResponse,
	ActivityLogListResponse,
)

__all__ = [
	# Common
	"ApiResponse",
	"Pagination",
	# User
	"UserLogin",
	"ModeratorCreate",
	"ModeratorUpdate",
	"UserBrief",
	"UserResponse",
	"ProfileResponse",
	"LoginResponse",
	"DashboardStatsResponse",
	# Category
	"PropertyType",
	"CategoryProperty",
	"CategoryCreate",
	"CategoryUpdate",
	"CategoryBrief",
	"CategoryResponse",
	"CategoryTreeResponse",
	"CategoryDetailResponse",
	"CategoryListResponse",
	"CategoryOption",
	"CategoryInitializeResponse",
	# Post
	"PostCreate",
	"PostUpdate",
	"PostQueryOptions",
	"PostResponse",
	"PostListResponse",
	"PostStatisticsResponse",
	# Activity Log
	"ActivityFilters",
	"ActivityLogResponse",
	"ActivityLogListResponse",
]
