from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .entities import ActivityLogEntry, TaskEntity

ACTION_FILTERS = [
    ("All Actions", None),
    ("Created", "created"),
    ("Moved/Status Changed", "moved"),
    ("Assignment Changed", "assigned"),
    ("Updated", "updated"),
    ("Completed", "completed"),
]


@dataclass(frozen=True)
class ChangelogItem:
    entry: ActivityLogEntry
    task_id: str
    task_title: str
    task_company: str

    @property
    def timestamp(self) -> datetime:
        return self.entry.timestamp


def collect_activity(
    tasks: Iterable[TaskEntity],
    action: str | None = None,
    search: str | None = None,
) -> list[ChangelogItem]:
    items = [
        ChangelogItem(
            entry=entry,
            task_id=task.id,
            task_title=task.title or "",
            task_company=str(task.company),
        )
        for task in tasks
        for entry in task.activity_log
    ]
    items.sort(key=lambda item: item.timestamp, reverse=True)

    if action:
        needle = action.lower()
        items = [item for item in items if needle in item.entry.action.lower()]
    if search:
        needle = search.lower()
        items = [item for item in items if needle in item.task_title.lower()]
    return items


def group_by_date(items: Iterable[ChangelogItem]) -> dict[str, list[ChangelogItem]]:
    groups: dict[str, list[ChangelogItem]] = {}
    for item in items:
        stamp = item.timestamp.astimezone()
        key = f"{stamp:%B} {stamp.day}, {stamp.year}"
        groups.setdefault(key, []).append(item)
    return groups


def action_kind(action: str) -> str:
    if "created" in action:
        return "created"
    if "moved" in action or "status" in action:
        return "moved"
    if "assigned" in action:
        return "assigned"
    if "updated" in action or "changed" in action:
        return "changed"
    if "deleted" in action:
        return "deleted"
    if "completed" in action or "subtask" in action:
        return "completed"
    if "comment" in action:
        return "comment"
    return "other"
