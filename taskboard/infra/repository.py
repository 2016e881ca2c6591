from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Optional

from sqlalchemy import or_, select

from taskboard.domain.entities import ActivityLog, Attachment, Comment, Subtask, TaskEntity
from taskboard.domain.enums import Company, Difficulty, Importance, TaskStatus
from taskboard.domain.filters import TaskFilters

from .db import SessionLocal
from .models import TaskModel

STATUS_KEYS = {status.value for status in TaskStatus}
JSON_COLLECTIONS = ("subtasks", "comments", "attachments")


def _enum(enum_cls: type[Enum], value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.task_id,
        title=model.title or "",
        company=_enum(Company, model.company, Company.FOAN),
        status=_enum(TaskStatus, model.status, TaskStatus.TODO),
        week=model.week,
        due_date=model.due_date,
        start_date=model.start_date,
        description=model.description,
        assignees=tuple(model.assignees or ()),
        difficulty=_enum(Difficulty, model.difficulty),
        importance=_enum(Importance, model.importance),
        subtasks=tuple(Subtask.from_dict(item) for item in model.subtasks or ()),
        comments=tuple(Comment.from_dict(item) for item in model.comments or ()),
        attachments=tuple(Attachment.from_dict(item) for item in model.attachments or ()),
        activity_log=ActivityLog.from_list(model.activity_log),
        is_backlog=bool(model.is_backlog) or model.week is None,
        created_at=model.created_at,
        pk=model.id,
    )


def _serialize_items(items: Iterable[Any]) -> list[dict]:
    return [item.to_dict() if hasattr(item, "to_dict") else dict(item) for item in items or ()]


def _to_columns(data: dict) -> dict:
    columns = {}
    for key, value in data.items():
        if key == "id":
            columns["task_id"] = str(value)
        elif key == "activity_log":
            log = value if isinstance(value, ActivityLog) else ActivityLog.from_list(value)
            columns[key] = log.to_list()
        elif key in JSON_COLLECTIONS:
            columns[key] = _serialize_items(value)
        elif key == "assignees":
            columns[key] = list(value or ())
        elif isinstance(value, Enum):
            columns[key] = value.value
        else:
            columns[key] = value
    return columns


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if filters.filter_key == "backlog":
        stmt = stmt.where(TaskModel.week.is_(None))
    elif filters.week is not None:
        stmt = stmt.where(TaskModel.week == filters.week)
    elif filters.filter_key in STATUS_KEYS:
        stmt = stmt.where(TaskModel.status == filters.filter_key)

    if filters.company:
        stmt = stmt.where(TaskModel.company == filters.company)

    if filters.due_on:
        stmt = stmt.where(TaskModel.due_date == filters.due_on)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TaskModel.title.ilike(pattern),
                TaskModel.description.ilike(pattern),
            )
        )

    return stmt


class TaskRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel)
            stmt = _apply_filters(stmt, filters)
            stmt = stmt.order_by(
                TaskModel.due_date.asc(),
                TaskModel.created_at.asc(),
                TaskModel.id.asc(),
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def list_all(self) -> list[TaskEntity]:
        return self.list_tasks(TaskFilters())

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = self._find(session, task_id)
            return _to_entity(task) if task else None

    def create_task(self, data: dict) -> TaskEntity:
        with self._session_factory() as session:
            task = TaskModel(**_to_columns(data))
            session.add(task)
            session.commit()
            session.refresh(task)
            return _to_entity(task)

    def update_task(self, task_id: str, data: dict) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = self._find(session, task_id)
            if not task:
                return None

            for key, value in _to_columns(data).items():
                if key == "task_id":
                    continue
                setattr(task, key, value)
            session.commit()
            session.refresh(task)
            return _to_entity(task)

    def delete_task(self, task_id: str) -> None:
        with self._session_factory() as session:
            task = self._find(session, task_id)
            if not task:
                return
            session.delete(task)
            session.commit()

    @staticmethod
    def _find(session, task_id: str) -> Optional[TaskModel]:
        return session.scalar(select(TaskModel).where(TaskModel.task_id == str(task_id)))
