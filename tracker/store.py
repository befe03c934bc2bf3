from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import Select, and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import drop_schema, get_session, initialize_schema
from .errors import ConflictError, ForbiddenError, NotFoundError
from .models import categories, task_progress, user_tasks, users


@dataclass
class User:
    id: str
    email: str
    username: str
    full_name: str
    password_hash: str
    created_at: datetime


@dataclass
class Category:
    id: str
    user_id: str
    category_name: str
    category_emoji: Optional[str]
    created_at: datetime


@dataclass
class Task:
    id: str
    user_id: str
    category_id: Optional[str]
    task_name: str
    target_count: int
    days_of_week: list[str]
    created_at: datetime
    category_name: Optional[str] = None
    category_emoji: Optional[str] = None


@dataclass
class TaskProgress:
    id: str
    task_id: str
    date: date
    completed_count: int


@dataclass
class TaskForDate:
    task: Task
    completed_count: int = 0


@dataclass
class UserConflict:
    email: bool = False
    username: bool = False


def is_uuid(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class DatabaseStore:
    def __init__(self) -> None:
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        await initialize_schema()
        self._initialized = True

    async def reset(self) -> None:
        await drop_schema()
        self._initialized = False
        await self.initialize()

    # users

    async def create_user(
        self,
        *,
        email: str,
        username: str,
        full_name: str,
        password_hash: str,
    ) -> User:
        user_id = str(uuid.uuid4())
        try:
            async with get_session() as session:
                async with session.begin():
                    result = await session.execute(
                        users.insert()
                        .values(
                            id=user_id,
                            email=email,
                            username=username,
                            full_name=full_name,
                            password_hash=password_hash,
                        )
                        .returning(*users.c)
                    )
                    row = result.mappings().one()
        except IntegrityError as exc:
            raise ConflictError("Email or username already registered") from exc
        return _map_user(row)

    async def find_user_conflict(self, *, email: str, username: str) -> UserConflict:
        async with get_session() as session:
            result = await session.execute(
                select(users.c.email, users.c.username).where(
                    or_(users.c.email == email, users.c.username == username)
                )
            )
            rows = result.mappings().all()
        conflict = UserConflict()
        for row in rows:
            if row["email"] == email:
                conflict.email = True
            if row["username"] == username:
                conflict.username = True
        return conflict

    async def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        key = identifier.strip().lower()
        async with get_session() as session:
            result = await session.execute(
                select(users).where(or_(users.c.email == key, users.c.username == key))
            )
            row = result.mappings().first()
        return _map_user(row) if row else None

    # categories

    async def list_categories(self) -> list[Category]:
        async with get_session() as session:
            result = await session.execute(
                select(categories).order_by(categories.c.created_at.desc())
            )
            rows = result.mappings().all()
        return [_map_category(row) for row in rows]

    async def category_exists(self, category_id: str) -> bool:
        if not is_uuid(category_id):
            return False
        async with get_session() as session:
            result = await session.execute(
                select(categories.c.id).where(categories.c.id == category_id)
            )
            return result.first() is not None

    async def create_category(
        self,
        *,
        user_id: str,
        category_name: str,
        category_emoji: Optional[str],
    ) -> Category:
        try:
            async with get_session() as session:
                async with session.begin():
                    result = await session.execute(
                        categories.insert()
                        .values(
                            id=str(uuid.uuid4()),
                            user_id=user_id,
                            category_name=category_name,
                            category_emoji=category_emoji,
                        )
                        .returning(*categories.c)
                    )
                    row = result.mappings().one()
        except IntegrityError as exc:
            raise ConflictError("Category name already exists") from exc
        return _map_category(row)

    async def update_category(
        self, category_id: str, *, user_id: str, values: Mapping[str, Any]
    ) -> Category:
        try:
            async with get_session() as session:
                async with session.begin():
                    await _owned_row(session, categories, category_id, user_id, "Category")
                    result = await session.execute(
                        update(categories)
                        .where(categories.c.id == category_id)
                        .values(**values)
                        .returning(*categories.c)
                    )
                    row = result.mappings().one()
        except IntegrityError as exc:
            raise ConflictError("Category name already exists") from exc
        return _map_category(row)

    async def delete_category(self, category_id: str, *, user_id: str) -> Category:
        async with get_session() as session:
            async with session.begin():
                row = await _owned_row(session, categories, category_id, user_id, "Category")
                await session.execute(delete(categories).where(categories.c.id == category_id))
        return _map_category(row)

    # tasks

    async def list_tasks(self, user_id: str) -> list[Task]:
        stmt = _task_select().where(user_tasks.c.user_id == user_id)
        async with get_session() as session:
            result = await session.execute(stmt)
            rows = result.mappings().all()
        return [_map_task(row) for row in rows]

    async def get_task(self, task_id: str) -> Task:
        if not is_uuid(task_id):
            raise NotFoundError("Task not found")
        async with get_session() as session:
            result = await session.execute(_task_select().where(user_tasks.c.id == task_id))
            row = result.mappings().first()
        if not row:
            raise NotFoundError("Task not found")
        return _map_task(row)

    async def create_task(
        self,
        *,
        user_id: str,
        category_id: Optional[str],
        task_name: str,
        target_count: int,
        days_of_week: Sequence[str],
    ) -> Task:
        task_id = str(uuid.uuid4())
        async with get_session() as session:
            async with session.begin():
                await session.execute(
                    user_tasks.insert().values(
                        id=task_id,
                        user_id=user_id,
                        category_id=category_id,
                        task_name=task_name,
                        target_count=target_count,
                        days_of_week=list(days_of_week),
                    )
                )
        return await self.get_task(task_id)

    async def update_task(self, task_id: str, *, user_id: str, values: Mapping[str, Any]) -> Task:
        async with get_session() as session:
            async with session.begin():
                await _owned_row(session, user_tasks, task_id, user_id, "Task")
                await session.execute(
                    update(user_tasks).where(user_tasks.c.id == task_id).values(**values)
                )
        return await self.get_task(task_id)

    async def delete_task(self, task_id: str, *, user_id: str) -> Task:
        async with get_session() as session:
            async with session.begin():
                await _owned_row(session, user_tasks, task_id, user_id, "Task")
                result = await session.execute(_task_select().where(user_tasks.c.id == task_id))
                row = result.mappings().one()
                await session.execute(delete(user_tasks).where(user_tasks.c.id == task_id))
        return _map_task(row)

    async def list_tasks_with_progress(self, user_id: str, day: date) -> list[TaskForDate]:
        count = func.coalesce(task_progress.c.completed_count, 0).label("completed_count")
        stmt = (
            select(
                user_tasks,
                categories.c.category_name,
                categories.c.category_emoji,
                count,
            )
            .select_from(
                user_tasks.outerjoin(categories, categories.c.id == user_tasks.c.category_id).outerjoin(
                    task_progress,
                    and_(
                        task_progress.c.task_id == user_tasks.c.id,
                        task_progress.c.date == day,
                    ),
                )
            )
            .where(user_tasks.c.user_id == user_id)
            .order_by(user_tasks.c.created_at.desc())
        )
        async with get_session() as session:
            result = await session.execute(stmt)
            rows = result.mappings().all()
        return [TaskForDate(task=_map_task(row), completed_count=int(row["completed_count"])) for row in rows]

    # progress

    async def upsert_progress(
        self, *, task_id: str, day: date, completed_count: int
    ) -> tuple[bool, TaskProgress]:
        """Insert or overwrite the (task, date) record in one statement.

        Returns ``(created, record)``. An overwritten row keeps its original
        id, so the returned id tells the two outcomes apart.
        """
        progress_id = str(uuid.uuid4())
        async with get_session() as session:
            async with session.begin():
                insert = _insert_for(session)
                stmt = insert(task_progress).values(
                    id=progress_id,
                    task_id=task_id,
                    date=day,
                    completed_count=completed_count,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[task_progress.c.task_id, task_progress.c.date],
                    set_={
                        "completed_count": stmt.excluded.completed_count,
                        "updated_at": func.now(),
                    },
                ).returning(*task_progress.c)
                result = await session.execute(stmt)
                row = result.mappings().one()
        return str(row["id"]) == progress_id, _map_progress(row)


def _insert_for(session: AsyncSession):
    if session.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


def _task_select() -> Select:
    return (
        select(user_tasks, categories.c.category_name, categories.c.category_emoji)
        .select_from(
            user_tasks.outerjoin(categories, categories.c.id == user_tasks.c.category_id)
        )
        .order_by(user_tasks.c.created_at.desc())
    )


async def _owned_row(session: AsyncSession, table, row_id: str, user_id: str, label: str):
    if not is_uuid(row_id):
        raise NotFoundError(f"{label} not found")
    result = await session.execute(select(table).where(table.c.id == row_id).with_for_update())
    row = result.mappings().first()
    if not row:
        raise NotFoundError(f"{label} not found")
    if str(row["user_id"]) != user_id:
        raise ForbiddenError(f"Not allowed for this {label.lower()}")
    return row


def _map_user(row: Mapping[str, Any]) -> User:
    return User(
        id=str(row["id"]),
        email=row["email"],
        username=row["username"],
        full_name=row["full_name"],
        password_hash=row["password_hash"],
        created_at=row["created_at"],
    )


def _map_category(row: Mapping[str, Any]) -> Category:
    return Category(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        category_name=row["category_name"],
        category_emoji=row.get("category_emoji"),
        created_at=row["created_at"],
    )


def _map_task(row: Mapping[str, Any]) -> Task:
    days = row.get("days_of_week")
    return Task(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        category_id=str(row["category_id"]) if row.get("category_id") else None,
        task_name=row["task_name"],
        target_count=int(row["target_count"]),
        days_of_week=list(days) if isinstance(days, list) else [],
        created_at=row["created_at"],
        category_name=row.get("category_name"),
        category_emoji=row.get("category_emoji"),
    )


def _map_progress(row: Mapping[str, Any]) -> TaskProgress:
    return TaskProgress(
        id=str(row["id"]),
        task_id=str(row["task_id"]),
        date=row["date"],
        completed_count=int(row["completed_count"]),
    )


store = DatabaseStore()
