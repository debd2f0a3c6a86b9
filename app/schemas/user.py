"""Pydantic schemas for staff accounts and authentication."""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_username(v: str) -> str:
	v = v.strip()
	if not USERNAME_PATTERN.match(v):
		raise ValueError("Username can only contain letters, numbers and underscores")
	return v


def _check_email(v: str) -> str:
	v = v.strip().lower()
	if not EMAIL_PATTERN.match(v):
		raise ValueError("Please provide a valid email")
	return v


def _check_password(v: str) -> str:
	if not PASSWORD_PATTERN.match(v):
		raise ValueError(
			"Password must contain at least one lowercase letter, one uppercase letter, and one number"
		)
	return v


class UserLogin(BaseModel):
	"""Login with username or email."""
	username: str = Field(..., min_length=1, description="Username or email")
	password: str = Field(..., min_length=6)

	model_config = ConfigDict(json_schema_extra={
		"example": {"username": "admin", "password": "Admin123!"}
	})


class ModeratorCreate(BaseModel):
	username: str = Field(..., min_length=3, max_length=30)
	email: str
	password: str = Field(..., min_length=6, max_length=50)
	full_name: str = Field(..., min_length=2, max_length=100)

	@field_validator("username")
	@classmethod
	def validate_username(cls, v: str) -> str:
		return _check_username(v)

	@field_validator("email")
	@classmethod
	def validate_email(cls, v: str) -> str:
		return _check_email(v)

	@field_validator("password")
	@classmethod
	def validate_password(cls, v: str) -> str:
		return _check_password(v)

	@field_validator("full_name")
	@classmethod
	def strip_full_name(cls, v: str) -> str:
		return v.strip()

	model_config = ConfigDict(json_schema_extra={
		"example": {
			"username": "moderator1",
			"email": "moderator1@example.com",
			"password": "Moderator123",
			"full_name": "Aziz Karimov",
		}
	})


class ModeratorUpdate(BaseModel):
	"""Partial update. Role and creator cannot be changed."""
	username: Optional[str] = Field(None, min_length=3, max_length=30)
	email: Optional[str] = None
	password: Optional[str] = Field(None, min_length=6, max_length=50)
	full_name: Optional[str] = Field(None, min_length=2, max_length=100)
	is_active: Optional[bool] = None

	@field_validator("username")
	@classmethod
	def validate_username(cls, v: Optional[str]) -> Optional[str]:
		return v if v is None else _check_username(v)

	@field_validator("email")
	@classmethod
	def validate_email(cls, v: Optional[str]) -> Optional[str]:
		return v if v is None else _check_email(v)

	@field_validator("password")
	@classmethod
	def validate_password(cls, v: Optional[str]) -> Optional[str]:
		return v if v is None else _check_password(v)


class UserBrief(BaseModel):
	id: int
	username: str
	full_name: str
	role: str

	model_config = ConfigDict(from_attributes=True)


class UserResponse(UserBrief):
	email: str
	is_active: bool
	created_by_id: Optional[int] = None
	last_login: Optional[datetime] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None


class ProfileResponse(UserResponse):
	created_by: Optional[UserBrief] = None


class LoginResponse(BaseModel):
	token: str
	token_type: str = "bearer"
	user: UserResponse


class DashboardUserStats(BaseModel):
	total_moderators: int
	active_moderators: int
	inactive_moderators: int


class DashboardPostStats(BaseModel):
	total: int


class DashboardFileStats(BaseModel):
	total_files: int
	total_thumbnails: int
	total_size: int
	total_size_mb: float


class DashboardStatsResponse(BaseModel):
	users: DashboardUserStats
	posts: DashboardPostStats
	files: Optional[DashboardFileStats] = None
