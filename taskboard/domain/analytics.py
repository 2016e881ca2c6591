from __future__ import annotations

from collections.abc import Iterable

from .entities import TaskEntity
from .enums import BOARD_WEEKS, Company, TaskStatus


def _percent(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def _status_counts(tasks: list[TaskEntity]) -> dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        key = task.status.value if isinstance(task.status, TaskStatus) else str(task.status)
        counts[key] = counts.get(key, 0) + 1
    return counts


def board_summary(tasks: Iterable[TaskEntity]) -> dict:
    tasks = list(tasks)
    counts = _status_counts(tasks)
    total = len(tasks)
    done = counts[TaskStatus.DONE.value]
    return {
        "total": total,
        "done": done,
        "not_done": total - done,
        "in_progress": counts[TaskStatus.IN_PROGRESS.value],
        "review": counts[TaskStatus.REVIEW.value],
        "todo": counts[TaskStatus.TODO.value],
        "backlog": sum(1 for task in tasks if task.week is None),
        "completion": _percent(done, total),
    }


def weekly_breakdown(tasks: Iterable[TaskEntity], weeks: Iterable[int] = BOARD_WEEKS) -> list[dict]:
    tasks = list(tasks)
    rows = []
    for week in weeks:
        week_tasks = [task for task in tasks if task.week == week]
        counts = _status_counts(week_tasks)
        total = len(week_tasks)
        done = counts[TaskStatus.DONE.value]
        rows.append(
            {
                "week": week,
                "total": total,
                "completed": done,
                "in_progress": counts[TaskStatus.IN_PROGRESS.value],
                "review": counts[TaskStatus.REVIEW.value],
                "todo": counts[TaskStatus.TODO.value],
                "completion": _percent(done, total),
            }
        )
    return rows


def company_distribution(tasks: Iterable[TaskEntity]) -> dict[str, int]:
    distribution = {company.value: 0 for company in Company}
    for task in tasks:
        key = task.company.value if isinstance(task.company, Company) else str(task.company)
        distribution[key] = distribution.get(key, 0) + 1
    return distribution


def subtask_progress(tasks: Iterable[TaskEntity]) -> dict:
    total = 0
    completed = 0
    for task in tasks:
        total += len(task.subtasks)
        completed += task.completed_subtasks
    return {"total": total, "completed": completed, "completion": _percent(completed, total)}
