from __future__ import annotations

import logging
import os
from typing import Optional
from uuid import UUID

import yaml
from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import get_current_user_id, hash_password, issue_token, verify_password
from .db import ping
from .errors import ConflictError, InvalidInputError, TrackerError, UnauthorizedError
from .progress import submit_progress, tasks_for_date
from .schemas import (
    CategoryCreateRequest,
    CategoryDeleteResponse,
    CategoryItem,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdateRequest,
    LoginRequest,
    LoginResponse,
    ProgressItem,
    ProgressRequest,
    ProgressResponse,
    SignupRequest,
    SignupResponse,
    TaskCreateRequest,
    TaskDeleteResponse,
    TaskForDateItem,
    TaskItem,
    TaskListResponse,
    TaskResponse,
    TasksByDateResponse,
    TaskUpdateRequest,
    UserItem,
)
from .store import Category, Task, TaskForDate, TaskProgress, User, store

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "Users",
        "description": "Account registration and bearer-token login.",
    },
    {
        "name": "Categories",
        "description": "Shared categories that tasks can be filed under.",
    },
    {
        "name": "Tasks",
        "description": "Recurring tasks scheduled on days of the week, and their daily progress.",
    },
]


app = FastAPI(
    title="Task Tracker API",
    version="1.0.0",
    description="APIs for managing recurring weekly tasks and logging how much of each was done per day.",
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.on_event("startup")
async def startup_event() -> None:
    await store.initialize()


@app.get("/healthz", include_in_schema=False)
async def healthz() -> dict:
    await ping()
    return {"ok": True}


# users


@app.post(
    "/api/users/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Users"],
)
async def signup(payload: SignupRequest):
    conflict = await store.find_user_conflict(email=payload.email, username=payload.username)
    if conflict.email:
        raise ConflictError("Email already registered")
    if conflict.username:
        raise ConflictError("Username already taken. Please try a different one.")
    user = await store.create_user(
        email=payload.email,
        username=payload.username,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
    )
    return SignupResponse(user=_user_item(user))


@app.post("/api/users/login", response_model=LoginResponse, tags=["Users"])
async def login(payload: LoginRequest):
    user = await store.get_user_by_identifier(payload.identifier)
    if user is None or not verify_password(user.password_hash, payload.password):
        raise UnauthorizedError("Invalid username/email or password.")
    return LoginResponse(token=issue_token(user.id), user_data=_user_item(user))


# categories


@app.get("/api/categories", response_model=CategoryListResponse, tags=["Categories"])
async def list_categories():
    items = await store.list_categories()
    return CategoryListResponse(categories=[_category_item(item) for item in items])


@app.post(
    "/api/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Categories"],
)
async def create_category(
    payload: CategoryCreateRequest,
    user_id: str = Depends(get_current_user_id),
):
    category = await store.create_category(
        user_id=user_id,
        category_name=payload.category_name,
        category_emoji=payload.category_emoji,
    )
    return CategoryResponse(category=_category_item(category))


@app.patch("/api/categories/{category_id}", response_model=CategoryResponse, tags=["Categories"])
async def update_category(
    category_id: UUID,
    payload: CategoryUpdateRequest,
    user_id: str = Depends(get_current_user_id),
):
    changes = payload.changes()
    if not changes:
        raise InvalidInputError("No fields to update")
    category = await store.update_category(str(category_id), user_id=user_id, values=changes)
    return CategoryResponse(category=_category_item(category))


@app.delete("/api/categories/{category_id}", response_model=CategoryDeleteResponse, tags=["Categories"])
async def delete_category(category_id: UUID, user_id: str = Depends(get_current_user_id)):
    category = await store.delete_category(str(category_id), user_id=user_id)
    return CategoryDeleteResponse(deleted=_category_item(category))


# tasks


@app.get("/api/tasks", response_model=TaskListResponse, tags=["Tasks"])
async def list_tasks(user_id: str = Depends(get_current_user_id)):
    tasks = await store.list_tasks(user_id)
    return TaskListResponse(tasks=[_task_item(task) for task in tasks])


@app.post(
    "/api/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Tasks"],
)
async def create_task(payload: TaskCreateRequest, user_id: str = Depends(get_current_user_id)):
    category_id = str(payload.category_id) if payload.category_id else None
    if category_id and not await store.category_exists(category_id):
        raise InvalidInputError("category_id does not exist")
    task = await store.create_task(
        user_id=user_id,
        category_id=category_id,
        task_name=payload.task_name,
        target_count=payload.target_count,
        days_of_week=payload.days_of_week,
    )
    return TaskResponse(task=_task_item(task))


@app.get("/api/tasks/by-date", response_model=TasksByDateResponse, tags=["Tasks"])
async def get_tasks_by_date(
    date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    user_id: str = Depends(get_current_user_id),
):
    day, scheduled = await tasks_for_date(store, user_id=user_id, date=date)
    return TasksByDateResponse(date=day.value, tasks=[_task_for_date_item(row) for row in scheduled])


@app.post("/api/tasks/progress", response_model=ProgressResponse, tags=["Tasks"])
async def add_task_progress(
    payload: ProgressRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
):
    result = await submit_progress(
        store,
        task_id=str(payload.task_id),
        user_id=user_id,
        date=payload.date,
        completed_count=payload.completed_count,
    )
    if result.status == "created":
        response.status_code = status.HTTP_201_CREATED
    return ProgressResponse(progress=_progress_item(result.progress), status=result.status)


@app.patch("/api/tasks/{task_id}", response_model=TaskResponse, tags=["Tasks"])
async def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    user_id: str = Depends(get_current_user_id),
):
    changes = payload.changes()
    if not changes:
        raise InvalidInputError("No fields to update")
    category_id = changes.get("category_id")
    if category_id is not None and not await store.category_exists(category_id):
        raise InvalidInputError("category_id does not exist")
    task = await store.update_task(str(task_id), user_id=user_id, values=changes)
    return TaskResponse(task=_task_item(task))


@app.delete("/api/tasks/{task_id}", response_model=TaskDeleteResponse, tags=["Tasks"])
async def delete_task(task_id: UUID, user_id: str = Depends(get_current_user_id)):
    task = await store.delete_task(str(task_id), user_id=user_id)
    return TaskDeleteResponse(deleted=_task_item(task))


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=tags_metadata,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi  # type: ignore[assignment]


@app.get("/openapi.yaml", include_in_schema=False)
async def openapi_yaml() -> Response:
    schema = custom_openapi()
    return Response(
        content=yaml.safe_dump(schema, sort_keys=False),
        media_type="application/yaml",
    )


def _user_item(user: User) -> UserItem:
    return UserItem(
        user_id=user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        created_at=user.created_at,
    )


def _category_item(category: Category) -> CategoryItem:
    return CategoryItem(
        category_id=category.id,
        user_id=category.user_id,
        category_name=category.category_name,
        category_emoji=category.category_emoji,
        created_at=category.created_at,
    )


def _task_item(task: Task) -> TaskItem:
    return TaskItem(
        task_id=task.id,
        user_id=task.user_id,
        category_id=task.category_id,
        task_name=task.task_name,
        target_count=task.target_count,
        days_of_week=task.days_of_week,
        created_at=task.created_at,
        category_name=task.category_name,
        category_emoji=task.category_emoji,
    )


def _task_for_date_item(row: TaskForDate) -> TaskForDateItem:
    return TaskForDateItem(
        **_task_item(row.task).model_dump(),
        completed_count=row.completed_count,
    )


def _progress_item(progress: TaskProgress) -> ProgressItem:
    return ProgressItem(
        progress_id=progress.id,
        task_id=progress.task_id,
        date=progress.date,
        completed_count=progress.completed_count,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    ctx_error = (error.get("ctx") or {}).get("error")
    if ctx_error is not None:
        message = str(ctx_error)
    else:
        message = str(error.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    if field and not message.startswith(field):
        return f"{field}: {message}"
    return message


@app.exception_handler(TrackerError)
async def tracker_error_handler(_: Request, exc: TrackerError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": _validation_message(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ValueError)
async def value_error_handler(_: Request, exc: ValueError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Server error"})
