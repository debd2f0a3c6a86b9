"""Custom exceptions for the marketplace API.

Each exception carries its HTTP status code so services can raise them
directly and the centralized handlers in ``app.core.handlers`` render them
with the standard error envelope.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class InvalidCredentialsException(HTTPException):
    """Exception when username/email or password is wrong."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AccountInactiveException(HTTPException):
    """Exception when the account has been deactivated."""

    def __init__(self, detail: str = "User account is deactivated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class InsufficientPermissionsException(HTTPException):
    """Exception when the user's role lacks a required capability."""

    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class PostNotFoundException(HTTPException):
    """Exception when a post is missing or already deleted."""

    def __init__(self, detail: str = "Post not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class CategoryNotFoundException(HTTPException):
    def __init__(self, detail: str = "Category not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UserNotFoundException(HTTPException):
    def __init__(self, detail: str = "User not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidCategoryException(HTTPException):
    """Exception when a post references a missing or inactive category."""

    def __init__(self, detail: str = "Category does not exist or is inactive"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CategoryPropertiesException(HTTPException):
    """
    Exception when ``category_properties`` do not match the category schema.

    ``errors`` uses the same ``{field, message, value}`` shape as request
    validation failures so clients can treat both alike.
    """

    def __init__(self, errors: List[Dict[str, Any]], detail: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        self.errors = errors


class CategoryInUseException(HTTPException):
    """Exception when deleting a category that still has dependants."""

    def __init__(self, detail: str = "Cannot delete category that is in use"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class DuplicateResourceException(HTTPException):
    def __init__(self, detail: str = "Duplicate field value"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class PostStateException(HTTPException):
    """Exception when a status transition is not allowed from the current state."""

    def __init__(self, detail: str = "Post is not in a state that allows this action"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UploadRejectedException(HTTPException):
    """Exception when an uploaded file fails type or size validation."""

    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class ServiceError(HTTPException):
    """
    Unexpected failure inside a service, wrapped with a descriptive prefix.

    Usage::

        except SQLAlchemyError as exc:
            raise ServiceError("Error creating post", exc) from exc
    """

    def __init__(self, prefix: str, cause: Optional[BaseException] = None):
        detail = f"{prefix}: {cause}" if cause is not None else prefix
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


__all__ = [
    "InvalidCredentialsException",
    "AccountInactiveException",
    "InsufficientPermissionsException",
    "PostNotFoundException",
    "CategoryNotFoundException",
    "UserNotFoundException",
    "InvalidCategoryException",
    "CategoryPropertiesException",
    "CategoryInUseException",
    "DuplicateResourceException",
    "PostStateException",
    "UploadRejectedException",
    "ServiceError",
]
