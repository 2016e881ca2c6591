from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional

from .enums import Company, Difficulty, Importance, TaskStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return utcnow()


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Actor:
    name: str
    role: UserRole = UserRole.ADMIN
    user_id: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Subtask:
    id: str
    text: str
    completed: bool = False

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: dict) -> Subtask:
        return cls(
            id=str(data.get("id", "")),
            text=str(data.get("text") or ""),
            completed=bool(data.get("completed", False)),
        )


@dataclass(frozen=True)
class Comment:
    id: str
    text: str
    timestamp: datetime
    user_id: str = ""
    user_name: str = "Unknown"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": _format_timestamp(self.timestamp),
            "userId": self.user_id,
            "userName": self.user_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Comment:
        return cls(
            id=str(data.get("id", "")),
            text=str(data.get("text") or ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            user_id=str(data.get("userId") or ""),
            user_name=str(data.get("userName") or "Unknown"),
        )


@dataclass(frozen=True)
class Attachment:
    id: str
    name: str
    url: str
    type: str
    size: int
    uploaded_at: datetime
    uploaded_by: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "type": self.type,
            "size": self.size,
            "uploadedAt": _format_timestamp(self.uploaded_at),
            "uploadedBy": self.uploaded_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Attachment:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            url=str(data.get("url") or ""),
            type=str(data.get("type") or "application/octet-stream"),
            size=int(data.get("size") or 0),
            uploaded_at=parse_timestamp(data.get("uploadedAt")),
            uploaded_by=str(data.get("uploadedBy") or ""),
        )


@dataclass(frozen=True)
class FieldChange:
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict:
        return {"field": self.field, "oldValue": self.old_value, "newValue": self.new_value}

    @classmethod
    def from_dict(cls, data: dict) -> FieldChange:
        return cls(
            field=str(data.get("field", "")),
            old_value=data.get("oldValue"),
            new_value=data.get("newValue"),
        )


@dataclass(frozen=True)
class ActivityLogEntry:
    id: str
    timestamp: datetime
    user: str
    action: str
    changes: Optional[FieldChange] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "timestamp": _format_timestamp(self.timestamp),
            "user": self.user,
            "action": self.action,
        }
        if self.changes is not None:
            data["changes"] = self.changes.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ActivityLogEntry:
        changes = data.get("changes")
        return cls(
            id=str(data.get("id", "")),
            timestamp=parse_timestamp(data.get("timestamp")),
            user=str(data.get("user") or ""),
            action=str(data.get("action") or ""),
            changes=FieldChange.from_dict(changes) if isinstance(changes, dict) else None,
        )


class ActivityLog(Sequence):
    """Append-only history of a task.

    The log is immutable: ``append`` and ``extend`` return a new log whose
    prefix is this one, and there is no way to replace or drop an entry.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[ActivityLogEntry] = ()) -> None:
        self._entries: tuple[ActivityLogEntry, ...] = tuple(entries)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ActivityLog(self._entries[index])
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ActivityLogEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ActivityLog):
            return self._entries == other._entries
        if isinstance(other, (tuple, list)):
            return self._entries == tuple(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"ActivityLog({list(self._entries)!r})"

    def append(self, entry: ActivityLogEntry) -> ActivityLog:
        return ActivityLog(self._entries + (entry,))

    def extend(self, entries: Iterable[ActivityLogEntry]) -> ActivityLog:
        added = tuple(entries)
        if not added:
            return self
        return ActivityLog(self._entries + added)

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self._entries]

    @classmethod
    def from_list(cls, items: Iterable[dict] | None) -> ActivityLog:
        return cls(ActivityLogEntry.from_dict(item) for item in items or [] if isinstance(item, dict))


@dataclass(frozen=True)
class TaskEntity:
    id: str
    title: str
    company: Company
    status: TaskStatus
    due_date: date
    week: int | None = None
    start_date: Optional[date] = None
    description: str | None = None
    assignees: tuple[str, ...] = ()
    difficulty: Difficulty | None = None
    importance: Importance | None = None
    subtasks: tuple[Subtask, ...] = ()
    comments: tuple[Comment, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    activity_log: ActivityLog = field(default_factory=ActivityLog)
    is_backlog: bool = False
    created_at: Optional[datetime] = None
    pk: int | None = None

    @property
    def completed_subtasks(self) -> int:
        return sum(1 for subtask in self.subtasks if subtask.completed)
