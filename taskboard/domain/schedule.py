from __future__ import annotations

from datetime import date, timedelta

from .entities import TaskEntity

WEEK_RANGES = {
    1: (1, 7),
    2: (8, 15),
    3: (16, 23),
    4: (24, 31),
}


def default_due_date(week: int | None, year: int, month: int, today: date | None = None) -> date:
    if week is None or week not in WEEK_RANGES:
        return today or date.today()
    return date(year, month, WEEK_RANGES[week][0])


def week_days(week: int, year: int, month: int) -> list[date]:
    start, end = WEEK_RANGES[week]
    first = date(year, month, 1)
    days = []
    for offset in range(start - 1, end):
        day = first + timedelta(days=offset)
        if day.month != month:
            break
        days.append(day)
    return days


def task_span(task: TaskEntity) -> tuple[date, date]:
    start = task.start_date or task.due_date
    if start > task.due_date:
        start = task.due_date
    return start, task.due_date


def is_date_in_task_range(day: date, task: TaskEntity) -> bool:
    start, end = task_span(task)
    return start <= day <= end


def tasks_on_day(day: date, tasks: list[TaskEntity]) -> list[TaskEntity]:
    return [task for task in tasks if is_date_in_task_range(day, task)]
