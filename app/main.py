import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from .api.v1.api import api_router
from .config import settings
from .core.handlers import register_exception_handlers
from .database import get_db
from .services.file_store import file_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    debug=settings.DEBUG
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# One log line per request
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} - {elapsed_ms:.1f}ms")
    return response


# Uploaded images and their thumbnails
file_store.ensure_directories()
app.mount(
    f"{settings.API_PREFIX}/static",
    StaticFiles(directory=file_store.upload_dir),
    name="static",
)

app.include_router(api_router)


# Root endpoint
@app.get("/")
def read_root():
    return {
        "message": "Welcome to EcoSpine Marketplace API",
        "version": settings.API_VERSION,
        "status": "running"
    }


# Health check endpoint
@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """API and database health check"""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"
    return {
        "success": database == "connected",
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "environment": settings.ENVIRONMENT,
    }
