from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

import emoji
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .days import normalize_day_list

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]{3,}$")
_PASSWORD_PATTERN = re.compile(r"""^[A-Za-z0-9!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?`~]{6,}$""")

# counts are stored in 32-bit INTEGER columns
MAX_COUNT = 2**31 - 1


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    return value


def _non_empty(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValueError(message)
    return value.strip()


def _single_emoji(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate or not emoji.is_emoji(candidate):
        raise ValueError("category_emoji must be a single emoji")
    return candidate


class PartialUpdate(BaseModel):
    """Base for PATCH payloads: only fields present in the body are applied."""

    def changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


# users


class SignupRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    password: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def validate_signup(self) -> "SignupRequest":
        if not self.email or not self.username or not self.full_name or not self.password:
            raise ValueError("Missing required fields")
        self.email = self.email.strip().lower()
        self.username = self.username.strip().lower()
        self.full_name = self.full_name.strip()
        if not _EMAIL_PATTERN.match(self.email):
            raise ValueError("Email not valid")
        if not _USERNAME_PATTERN.match(self.username):
            raise ValueError("Username not valid")
        if not self.full_name:
            raise ValueError("Full name not valid")
        if not _PASSWORD_PATTERN.match(self.password):
            raise ValueError("Password not valid")
        return self


class LoginRequest(BaseModel):
    identifier: Optional[str] = None
    password: Optional[str] = None

    @model_validator(mode="after")
    def validate_login(self) -> "LoginRequest":
        if not self.identifier or not self.password:
            raise ValueError("Missing identifier or password")
        return self


class UserItem(BaseModel):
    user_id: str
    email: str
    username: str
    full_name: str
    created_at: dt.datetime


class SignupResponse(BaseModel):
    user: UserItem


class LoginResponse(BaseModel):
    token: str
    user_data: UserItem = Field(serialization_alias="userData")


# categories


class CategoryCreateRequest(BaseModel):
    category_name: str
    category_emoji: Optional[str] = None

    @field_validator("category_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _non_empty(value, "category_name is required")

    @field_validator("category_emoji")
    @classmethod
    def validate_emoji(cls, value: Optional[str]) -> Optional[str]:
        return _single_emoji(value)


class CategoryUpdateRequest(PartialUpdate):
    category_name: Optional[str] = None
    category_emoji: Optional[str] = None

    @field_validator("category_name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> str:
        return _non_empty(value, "category_name must be a non-empty string")

    @field_validator("category_emoji")
    @classmethod
    def validate_emoji(cls, value: Optional[str]) -> Optional[str]:
        return _single_emoji(value)


class CategoryItem(BaseModel):
    category_id: str
    user_id: str
    category_name: str
    category_emoji: Optional[str]
    created_at: dt.datetime


class CategoryResponse(BaseModel):
    category: CategoryItem


class CategoryListResponse(BaseModel):
    categories: List[CategoryItem]


class CategoryDeleteResponse(BaseModel):
    deleted: CategoryItem


# tasks


class TaskCreateRequest(BaseModel):
    category_id: Optional[UUID] = None
    task_name: str
    target_count: int = Field(gt=0, le=MAX_COUNT)
    days_of_week: List[str] = Field(min_length=1)

    @field_validator("task_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _non_empty(value, "task_name is required")

    @field_validator("target_count", mode="before")
    @classmethod
    def validate_target(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: List[str]) -> List[str]:
        return normalize_day_list(value)


class TaskUpdateRequest(PartialUpdate):
    category_id: Optional[UUID] = None
    task_name: Optional[str] = None
    target_count: Optional[int] = Field(default=None, gt=0, le=MAX_COUNT)
    days_of_week: Optional[List[str]] = Field(default=None, min_length=1)

    @field_validator("task_name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> str:
        return _non_empty(value, "task_name must be a non-empty string")

    @field_validator("target_count", mode="before")
    @classmethod
    def validate_target(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("target_count must be a positive integer")
        return _reject_bool(value)

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: Optional[List[str]]) -> List[str]:
        if value is None:
            raise ValueError("days_of_week must be a non-empty string array")
        return normalize_day_list(value)

    def changes(self) -> Dict[str, Any]:
        values = super().changes()
        if values.get("category_id") is not None:
            values["category_id"] = str(values["category_id"])
        return values


class TaskItem(BaseModel):
    task_id: str
    user_id: str
    category_id: Optional[str]
    task_name: str
    target_count: int
    days_of_week: List[str]
    created_at: dt.datetime
    category_name: Optional[str] = None
    category_emoji: Optional[str] = None


class TaskResponse(BaseModel):
    task: TaskItem


class TaskListResponse(BaseModel):
    tasks: List[TaskItem]


class TaskDeleteResponse(BaseModel):
    deleted: TaskItem


class TaskForDateItem(TaskItem):
    completed_count: int


class TasksByDateResponse(BaseModel):
    date: dt.date
    tasks: List[TaskForDateItem]


# progress


class ProgressRequest(BaseModel):
    task_id: UUID
    completed_count: int = Field(le=MAX_COUNT)
    date: str

    @field_validator("completed_count", mode="before")
    @classmethod
    def validate_completed_count(cls, value: Any) -> Any:
        return _reject_bool(value)


class ProgressItem(BaseModel):
    progress_id: str
    task_id: str
    date: dt.date
    completed_count: int


class ProgressResponse(BaseModel):
    progress: ProgressItem
    status: Literal["created", "updated"]
