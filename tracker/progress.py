"""Daily progress logging for recurring tasks.

A progress record may only be written for a date whose weekday is one of the
task's allowed days, and its count may not exceed the task's target. Records
are keyed by (task, date); resubmitting overwrites the stored count.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .days import DayDate, decode_day_set, display_day, display_day_list, parse_day_date
from .errors import ForbiddenError, InvalidInputError
from .store import DatabaseStore, Task, TaskForDate, TaskProgress


logger = logging.getLogger(__name__)

ProgressStatus = Literal["created", "updated"]

DATE_FORMAT_MESSAGE = 'date must be "YYYY-MM-DD"'


@dataclass
class ProgressUpsert:
    progress: TaskProgress
    status: ProgressStatus


def parse_request_date(value: object) -> DayDate:
    parsed = parse_day_date(value)
    if parsed is None:
        raise InvalidInputError(DATE_FORMAT_MESSAGE)
    return parsed


def check_progress(task: Task, day: DayDate, completed_count: object) -> int:
    """Validate a submission against ``task`` and return the count to store."""
    if (
        isinstance(completed_count, bool)
        or not isinstance(completed_count, int)
        or completed_count < 0
    ):
        raise InvalidInputError("completed_count must be a non-negative integer")
    if completed_count > task.target_count:
        raise InvalidInputError(
            f"completed_count ({completed_count}) cannot exceed target_count ({task.target_count})"
        )
    allowed = decode_day_set(task.days_of_week)
    if day.weekday not in allowed:
        raise InvalidInputError(
            f"Date {day.value.isoformat()} is a {display_day(day.weekday)}, "
            f"which is not allowed for this task. Allowed: [{display_day_list(allowed)}]"
        )
    return completed_count


async def submit_progress(
    store: DatabaseStore,
    *,
    task_id: str,
    user_id: str,
    date: object,
    completed_count: object,
) -> ProgressUpsert:
    task = await store.get_task(task_id)
    if task.user_id != user_id:
        raise ForbiddenError("Not allowed for this task")
    day = parse_request_date(date)
    count = check_progress(task, day, completed_count)

    created, progress = await store.upsert_progress(
        task_id=task.id, day=day.value, completed_count=count
    )
    status: ProgressStatus = "created" if created else "updated"
    logger.info("progress %s for task %s on %s: %d", status, task.id, day.value, count)
    return ProgressUpsert(progress=progress, status=status)


async def tasks_for_date(store: DatabaseStore, *, user_id: str, date: object) -> tuple[DayDate, list[TaskForDate]]:
    """Tasks owned by ``user_id`` that are scheduled on ``date``, with that day's count."""
    day = parse_request_date(date)
    rows = await store.list_tasks_with_progress(user_id, day.value)
    scheduled = [row for row in rows if day.weekday in decode_day_set(row.task.days_of_week)]
    return day, scheduled
