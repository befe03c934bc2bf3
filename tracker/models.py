from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    Uuid,
    func,
)


TRACKER_SCHEMA: Optional[str] = os.getenv("TRACKER_DB_SCHEMA") or None

metadata = MetaData(schema=TRACKER_SCHEMA)


def _fk(target: str) -> str:
    return f"{TRACKER_SCHEMA}.{target}" if TRACKER_SCHEMA else target


def _utcnow() -> datetime:
    # CURRENT_TIMESTAMP on SQLite is whole seconds, too coarse for newest-first ordering.
    return datetime.now(timezone.utc)


users = Table(
    "users",
    metadata,
    Column("id", Uuid(as_uuid=False), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(64), nullable=False, unique=True),
    Column("full_name", String(255), nullable=False),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False),
)


categories = Table(
    "categories",
    metadata,
    Column("id", Uuid(as_uuid=False), primary_key=True),
    Column(
        "user_id",
        Uuid(as_uuid=False),
        ForeignKey(_fk("users.id"), ondelete="CASCADE"),
        nullable=False,
    ),
    Column("category_name", String(255), nullable=False),
    Column("category_emoji", String(32), nullable=True),
    Column("created_at", DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False),
    UniqueConstraint("category_name", name="uq_categories_name"),
)


user_tasks = Table(
    "user_tasks",
    metadata,
    Column("id", Uuid(as_uuid=False), primary_key=True),
    Column(
        "user_id",
        Uuid(as_uuid=False),
        ForeignKey(_fk("users.id"), ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "category_id",
        Uuid(as_uuid=False),
        ForeignKey(_fk("categories.id"), ondelete="SET NULL"),
        nullable=True,
    ),
    Column("task_name", String(255), nullable=False),
    Column("target_count", Integer, nullable=False),
    Column("days_of_week", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False),
    CheckConstraint("target_count > 0", name="user_tasks_target_positive"),
)


task_progress = Table(
    "task_progress",
    metadata,
    Column("id", Uuid(as_uuid=False), primary_key=True),
    Column(
        "task_id",
        Uuid(as_uuid=False),
        ForeignKey(_fk("user_tasks.id"), ondelete="CASCADE"),
        nullable=False,
    ),
    Column("date", Date, nullable=False),
    Column("completed_count", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    CheckConstraint("completed_count >= 0", name="task_progress_count_non_negative"),
    UniqueConstraint("task_id", "date", name="uq_task_progress_task_date"),
)
