"""API v1 router aggregator."""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, categories, posts
from app.config import settings

api_router = APIRouter(prefix=settings.API_PREFIX)

api_router.include_router(auth.router)
api_router.include_router(categories.router)
api_router.include_router(posts.router)

__all__ = ["api_router"]
