from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from taskboard.domain.activity import ActivityLogDeriver
from taskboard.domain.analytics import board_summary, company_distribution, subtask_progress, weekly_breakdown
from taskboard.domain.changelog import ChangelogItem, collect_activity
from taskboard.domain.entities import (
    Actor,
    ActivityLog,
    Attachment,
    Comment,
    Subtask,
    TaskEntity,
    utcnow,
)
from taskboard.domain.enums import BOARD_WEEKS, Company, Difficulty, Importance, TaskStatus
from taskboard.domain.errors import PermissionDeniedError, StorageError, TaskNotFoundError, ValidationError
from taskboard.domain.filters import TaskFilters
from taskboard.domain.schedule import default_due_date, tasks_on_day, week_days
from taskboard.infra.repository import TaskRepository
from taskboard.infra.storage import AttachmentStorage

logger = logging.getLogger(__name__)

VIEWER_FIELDS = {"status", "subtasks"}
UPDATABLE_FIELDS = {
    "title",
    "description",
    "company",
    "status",
    "week",
    "is_backlog",
    "assignees",
    "start_date",
    "due_date",
    "difficulty",
    "importance",
    "comments",
    "subtasks",
    "attachments",
}
CHOICES: dict[str, type[Enum]] = {
    "status": TaskStatus,
    "company": Company,
    "difficulty": Difficulty,
    "importance": Importance,
}


def _token(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _parse_date(value: Any, field_name: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid {field_name.replace('_', ' ')}: {value!r}") from exc


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        storage: AttachmentStorage | None = None,
        clock: Callable[[], datetime] = utcnow,
        board_year: int = 2026,
        board_month: int = 1,
    ) -> None:
        self._repo = repo
        self._storage = storage
        self._clock = clock
        self._deriver = ActivityLogDeriver(clock)
        self.board_year = board_year
        self.board_month = board_month

    def list_tasks(self, filters: TaskFilters | None = None) -> list[TaskEntity]:
        return self._repo.list_tasks(filters or TaskFilters())

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.get_task(task_id)

    def list_week(self, week: int) -> list[TaskEntity]:
        return self._repo.list_tasks(TaskFilters.for_week(week))

    def list_backlog(self) -> list[TaskEntity]:
        return self._repo.list_tasks(TaskFilters(filter_key="backlog"))

    def create_task(self, data: dict, actor: Actor) -> TaskEntity:
        if not actor.is_admin:
            raise PermissionDeniedError("Only admins can create tasks")

        normalized = self._normalize_data(data)
        moment = self._clock()
        week = normalized.get("week")
        due_date = normalized.get("due_date") or default_due_date(
            week, self.board_year, self.board_month, today=moment.date()
        )
        record = {
            "id": self._next_task_id(moment),
            "title": normalized.get("title", ""),
            "description": normalized.get("description"),
            "company": normalized.get("company") or Company.FOAN.value,
            "week": week,
            "status": normalized.get("status") or TaskStatus.TODO.value,
            "assignees": normalized.get("assignees", ()),
            "start_date": normalized.get("start_date"),
            "due_date": due_date,
            "difficulty": normalized.get("difficulty"),
            "importance": normalized.get("importance"),
            "comments": (),
            "subtasks": normalized.get("subtasks", ()),
            "attachments": (),
            "activity_log": ActivityLog([self._deriver.created(actor.name)]),
            "is_backlog": week is None,
            "created_at": moment,
        }
        task = self._repo.create_task(record)
        logger.info("Task %s created by %s", task.id, actor.name)
        return task

    def update_task(self, task_id: str, data: dict, actor: Actor) -> TaskEntity:
        current = self._require(task_id)
        self._check_update_allowed(current, data, actor)
        return self._apply(current, self._normalize_data(data), actor)

    def move_task(self, task_id: str, status: TaskStatus | str, actor: Actor) -> TaskEntity:
        return self.update_task(task_id, {"status": status}, actor)

    def move_to_week(self, task_id: str, week: int | None, actor: Actor) -> TaskEntity:
        return self.update_task(task_id, {"week": week}, actor)

    def set_dates(self, task_id: str, start_date: date | None, due_date: date, actor: Actor) -> TaskEntity:
        if start_date and start_date > due_date:
            raise ValidationError("Start date must not be after the due date")
        return self.update_task(task_id, {"start_date": start_date, "due_date": due_date}, actor)

    def add_comment(self, task_id: str, text: str, actor: Actor) -> Comment:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required")
        current = self._require(task_id)
        if not actor.is_admin and actor.name not in current.assignees:
            self._deny(actor, current, "You can only comment on tasks assigned to you")

        moment = self._clock()
        comment = Comment(
            id=str(_token(moment)),
            text=text,
            timestamp=moment,
            user_id=actor.user_id,
            user_name=actor.name or "Unknown",
        )
        self._apply(current, {"comments": (*current.comments, comment)}, actor)
        return comment

    def add_subtask(self, task_id: str, text: str, actor: Actor) -> TaskEntity:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Subtask text is required")
        current = self._require(task_id)
        existing = {subtask.id for subtask in current.subtasks}
        candidate = _token(self._clock())
        while str(candidate) in existing:
            candidate += 1
        subtasks = (*current.subtasks, Subtask(id=str(candidate), text=text, completed=False))
        return self.update_task(task_id, {"subtasks": subtasks}, actor)

    def toggle_subtask(self, task_id: str, subtask_id: str, actor: Actor) -> TaskEntity:
        current = self._require(task_id)
        self._find_subtask(current, subtask_id)
        subtasks = tuple(
            Subtask(id=s.id, text=s.text, completed=not s.completed) if s.id == subtask_id else s
            for s in current.subtasks
        )
        return self.update_task(task_id, {"subtasks": subtasks}, actor)

    def rename_subtask(self, task_id: str, subtask_id: str, text: str, actor: Actor) -> TaskEntity:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Subtask text is required")
        current = self._require(task_id)
        self._find_subtask(current, subtask_id)
        subtasks = tuple(
            Subtask(id=s.id, text=text, completed=s.completed) if s.id == subtask_id else s
            for s in current.subtasks
        )
        return self.update_task(task_id, {"subtasks": subtasks}, actor)

    def delete_subtask(self, task_id: str, subtask_id: str, actor: Actor) -> TaskEntity:
        current = self._require(task_id)
        self._find_subtask(current, subtask_id)
        subtasks = tuple(s for s in current.subtasks if s.id != subtask_id)
        return self.update_task(task_id, {"subtasks": subtasks}, actor)

    def add_attachment(self, task_id: str, source: Path | str, actor: Actor) -> Attachment:
        storage = self._require_storage()
        current = self._require(task_id)
        self._check_update_allowed(current, {"attachments": None}, actor)
        attachment = storage.upload(current.id, source, actor.name)
        self._apply(current, {"attachments": (*current.attachments, attachment)}, actor)
        return attachment

    def remove_attachment(self, task_id: str, attachment_id: str, actor: Actor) -> TaskEntity:
        storage = self._require_storage()
        current = self._require(task_id)
        self._check_update_allowed(current, {"attachments": None}, actor)
        attachment = next((item for item in current.attachments if item.id == attachment_id), None)
        if attachment is None:
            raise ValidationError(f"Attachment not found: {attachment_id}")
        try:
            storage.delete(attachment)
        except StorageError as exc:
            logger.warning("Could not delete stored file for %s: %s", attachment.id, exc)
        remaining = tuple(item for item in current.attachments if item.id != attachment_id)
        return self._apply(current, {"attachments": remaining}, actor)

    def delete_task(self, task_id: str, actor: Actor) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError("Only admins can delete tasks")
        current = self._repo.get_task(task_id)
        if current is None:
            return
        if self._storage is not None:
            for attachment in current.attachments:
                try:
                    self._storage.delete(attachment)
                except StorageError as exc:
                    logger.warning("Could not delete stored file for %s: %s", attachment.id, exc)
        self._repo.delete_task(task_id)
        logger.info("Task %s deleted by %s", task_id, actor.name)

    def get_analytics(self) -> dict:
        tasks = self._repo.list_tasks(TaskFilters())
        return {
            "summary": board_summary(tasks),
            "weekly": weekly_breakdown(tasks, BOARD_WEEKS),
            "companies": company_distribution(tasks),
            "subtasks": subtask_progress(tasks),
        }

    def get_changelog(self, action: str | None = None, search: str | None = None) -> list[ChangelogItem]:
        return collect_activity(self._repo.list_tasks(TaskFilters()), action=action, search=search)

    def calendar_days(self, week: int) -> list[tuple[date, list[TaskEntity]]]:
        tasks = self._repo.list_tasks(TaskFilters())
        return [
            (day, tasks_on_day(day, tasks))
            for day in week_days(week, self.board_year, self.board_month)
        ]

    def _apply(self, current: TaskEntity, normalized: dict, actor: Actor) -> TaskEntity:
        derivation = self._deriver.derive(current, normalized, actor.name)
        updated = self._repo.update_task(current.id, derivation.update)
        if updated is None:
            raise TaskNotFoundError(current.id)
        logger.info(
            "Task %s updated by %s (%d activity entries)",
            current.id,
            actor.name,
            len(derivation.new_entries),
        )
        return updated

    def _require(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _require_storage(self) -> AttachmentStorage:
        if self._storage is None:
            raise StorageError("Attachment storage is not configured")
        return self._storage

    def _check_update_allowed(self, task: TaskEntity, data: dict, actor: Actor) -> None:
        if actor.is_admin:
            return
        if actor.name not in task.assignees:
            self._deny(actor, task, "You can only update tasks assigned to you")
        if any(key not in VIEWER_FIELDS for key in data):
            self._deny(actor, task, "You can only move tasks and update subtasks")

    @staticmethod
    def _deny(actor: Actor, task: TaskEntity, message: str) -> None:
        logger.warning("Denied %s on task %s: %s", actor.name, task.id, message)
        raise PermissionDeniedError(message)

    @staticmethod
    def _find_subtask(task: TaskEntity, subtask_id: str) -> Subtask:
        for subtask in task.subtasks:
            if subtask.id == subtask_id:
                return subtask
        raise ValidationError(f"Subtask not found: {subtask_id}")

    def _next_task_id(self, moment: datetime) -> str:
        candidate = _token(moment)
        while self._repo.get_task(str(candidate)) is not None:
            candidate += 1
        return str(candidate)

    def _normalize_data(self, data: dict) -> dict:
        normalized: dict[str, Any] = {}
        for key, value in data.items():
            if key not in UPDATABLE_FIELDS:
                logger.debug("Ignoring unknown task field %s", key)
                continue
            normalized[key] = value

        for key, enum_cls in CHOICES.items():
            if key not in normalized:
                continue
            value = normalized[key]
            if isinstance(value, Enum):
                value = value.value
            if value in (None, ""):
                if key in ("status", "company"):
                    del normalized[key]
                else:
                    normalized[key] = None
                continue
            try:
                normalized[key] = enum_cls(value).value
            except ValueError as exc:
                raise ValidationError(f"Invalid {key}: {value!r}") from exc

        if "title" in normalized:
            title = (normalized["title"] or "").strip()
            if title:
                normalized["title"] = title
            else:
                del normalized["title"]

        if "week" in normalized:
            week = normalized["week"]
            if week in ("", None):
                week = None
            elif isinstance(week, str) and week.strip().isdigit():
                week = int(week.strip())
            if week is not None and (isinstance(week, bool) or week not in BOARD_WEEKS):
                raise ValidationError(f"Invalid week: {normalized['week']!r}")
            normalized["week"] = week
            normalized["is_backlog"] = week is None

        if "due_date" in normalized:
            due_date = _parse_date(normalized["due_date"], "due_date")
            if due_date is None:
                del normalized["due_date"]
            else:
                normalized["due_date"] = due_date
        if "start_date" in normalized:
            normalized["start_date"] = _parse_date(normalized["start_date"], "start_date")

        if "assignees" in normalized:
            normalized["assignees"] = tuple(normalized["assignees"] or ())
        if "subtasks" in normalized:
            normalized["subtasks"] = tuple(
                item if isinstance(item, Subtask) else Subtask.from_dict(item)
                for item in normalized["subtasks"] or ()
            )
        if "comments" in normalized:
            normalized["comments"] = tuple(
                item if isinstance(item, Comment) else Comment.from_dict(item)
                for item in normalized["comments"] or ()
            )
        if "attachments" in normalized:
            normalized["attachments"] = tuple(
                item if isinstance(item, Attachment) else Attachment.from_dict(item)
                for item in normalized["attachments"] or ()
            )
        return normalized
