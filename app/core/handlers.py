"""Centralized exception handlers producing the standard error envelope."""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.exceptions import CategoryPropertiesException

logger = logging.getLogger(__name__)

# Request locations FastAPI prefixes to error locs
_LOC_SOURCES = {"body", "query", "path", "form", "header", "cookie"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_body(message: str, error: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    body.update(extra)
    body["timestamp"] = _now()
    return body


def _safe_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return str(value)


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """pydantic error dicts -> ``[{field, message, value}]``."""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in _LOC_SOURCES:
            loc = loc[1:]
        formatted.append({
            "field": ".".join(loc),
            "message": err.get("msg", "Invalid value"),
            "value": _safe_value(err.get("input")),
        })
    return formatted


def _validation_response(errors: List[Dict[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_body("Validation failed", errors=errors)),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, CategoryPropertiesException):
        return _validation_response(exc.errors)

    message = str(exc.detail)
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _validation_response(format_validation_errors(list(exc.errors())))


async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _validation_response(format_validation_errors(exc.errors()))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("Duplicate field value"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Internal server error on {request.method} {request.url.path}: {exc}", exc_info=True)
    if settings.ENVIRONMENT == "development":
        error = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        error = "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", error=error),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
