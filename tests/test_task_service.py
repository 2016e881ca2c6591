from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from taskboard.domain.entities import Actor, TaskEntity
from taskboard.domain.enums import Company, Difficulty, Importance, TaskStatus, UserRole
from taskboard.domain.errors import PermissionDeniedError, StorageError, TaskNotFoundError, ValidationError
from taskboard.domain.filters import TaskFilters
from taskboard.infra.storage import AttachmentStorage
from taskboard.services.task_service import TaskService

ADMIN = Actor("Admin", UserRole.ADMIN, "u-admin")
VIEWER = Actor("Sam", UserRole.VIEWER, "u-sam")
OUTSIDER = Actor("Kim", UserRole.VIEWER, "u-kim")

CHOICES = {"status": TaskStatus, "company": Company, "difficulty": Difficulty, "importance": Importance}


def _entity_fields(data: dict) -> dict:
    fields = dict(data)
    for key, enum_cls in CHOICES.items():
        if fields.get(key):
            fields[key] = enum_cls(fields[key])
    for key in ("assignees", "subtasks", "comments", "attachments"):
        if key in fields:
            fields[key] = tuple(fields[key] or ())
    return fields


class FakeRepo:
    def __init__(self) -> None:
        self.tasks: dict[str, TaskEntity] = {}
        self.updates: list[dict] = []

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        tasks = list(self.tasks.values())
        if filters.filter_key == "backlog":
            return [t for t in tasks if t.week is None]
        if filters.week is not None:
            return [t for t in tasks if t.week == filters.week]
        return tasks

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self.tasks.get(task_id)

    def create_task(self, data: dict) -> TaskEntity:
        task = TaskEntity(**_entity_fields(data))
        self.tasks[task.id] = task
        return task

    def update_task(self, task_id: str, data: dict) -> TaskEntity | None:
        task = self.tasks.get(task_id)
        if not task:
            return None
        self.updates.append(data)
        updated = replace(task, **_entity_fields(data))
        self.tasks[task_id] = updated
        return updated

    def delete_task(self, task_id: str) -> None:
        self.tasks.pop(task_id, None)


class TickingClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def repo() -> FakeRepo:
    return FakeRepo()


@pytest.fixture
def service(repo: FakeRepo, tmp_path) -> TaskService:
    clock = TickingClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))
    return TaskService(repo, storage=AttachmentStorage(tmp_path / "attachments"), clock=clock)


@pytest.fixture
def task(service: TaskService) -> TaskEntity:
    return service.create_task(
        {"title": "Write newsletter", "company": "Muncho", "week": 2, "assignees": ["Sam"]},
        ADMIN,
    )


def test_create_task_seeds_history(service: TaskService, task: TaskEntity) -> None:
    assert task.status == TaskStatus.TODO
    assert task.company == Company.MUNCHO
    assert task.due_date == date(2026, 1, 8)
    assert task.is_backlog is False
    assert [entry.action for entry in task.activity_log] == ["created task"]
    assert task.activity_log[0].user == "Admin"


def test_create_backlog_task_defaults_due_date_to_today(service: TaskService) -> None:
    created = service.create_task({"title": "Someday"}, ADMIN)

    assert created.week is None
    assert created.is_backlog is True
    assert created.due_date == date(2026, 1, 5)
    assert created.company == Company.FOAN


def test_viewer_cannot_create_or_delete(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(PermissionDeniedError):
        service.create_task({"title": "Nope"}, VIEWER)
    with pytest.raises(PermissionDeniedError):
        service.delete_task(task.id, VIEWER)


def test_update_records_activity(service: TaskService, repo: FakeRepo, task: TaskEntity) -> None:
    updated = service.update_task(task.id, {"status": "inProgress", "week": None}, ADMIN)

    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.week is None
    assert updated.is_backlog is True
    assert [entry.action for entry in updated.activity_log] == [
        "created task",
        "moved task from To Do to In Progress",
        "moved task from Week 2 to Week Backlog",
    ]
    assert repo.updates[-1]["activity_log"] == updated.activity_log


def test_update_without_changes_keeps_history(service: TaskService, task: TaskEntity) -> None:
    updated = service.update_task(task.id, {"title": "Write newsletter", "description": "Draft"}, ADMIN)

    assert updated.description == "Draft"
    assert len(updated.activity_log) == 1


def test_update_unknown_task(service: TaskService) -> None:
    with pytest.raises(TaskNotFoundError):
        service.update_task("missing", {"status": "done"}, ADMIN)


def test_update_rejects_invalid_values(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(ValidationError):
        service.update_task(task.id, {"status": "archived"}, ADMIN)
    with pytest.raises(ValidationError):
        service.update_task(task.id, {"week": 7}, ADMIN)
    with pytest.raises(ValidationError):
        service.update_task(task.id, {"due_date": "soon"}, ADMIN)


def test_set_dates_checks_order(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(ValidationError):
        service.set_dates(task.id, date(2026, 1, 12), date(2026, 1, 10), ADMIN)

    updated = service.set_dates(task.id, date(2026, 1, 9), date(2026, 1, 12), ADMIN)

    assert updated.start_date == date(2026, 1, 9)
    assert [entry.action for entry in updated.activity_log][-2:] == ["changed due date", "changed start date"]


def test_viewer_moves_assigned_task(service: TaskService, task: TaskEntity) -> None:
    updated = service.move_task(task.id, TaskStatus.REVIEW, VIEWER)

    assert updated.status == TaskStatus.REVIEW
    assert updated.activity_log[-1].user == "Sam"


def test_viewer_limited_to_status_and_subtasks(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(PermissionDeniedError):
        service.update_task(task.id, {"title": "Hijacked"}, VIEWER)
    with pytest.raises(PermissionDeniedError):
        service.move_task(task.id, "done", OUTSIDER)


def test_subtask_lifecycle(service: TaskService, task: TaskEntity) -> None:
    with_subtask = service.add_subtask(task.id, "Collect links", VIEWER)
    subtask_id = with_subtask.subtasks[0].id

    toggled = service.toggle_subtask(task.id, subtask_id, VIEWER)
    renamed = service.rename_subtask(task.id, subtask_id, "Collect best links", ADMIN)
    removed = service.delete_subtask(task.id, subtask_id, ADMIN)

    assert toggled.subtasks[0].completed is True
    assert renamed.subtasks[0].text == "Collect best links"
    assert removed.subtasks == ()
    assert [entry.action for entry in removed.activity_log][1:] == [
        'added subtask: "Collect links"',
        'completed subtask: "Collect links"',
        'deleted subtask: "Collect best links"',
    ]


def test_unknown_subtask(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(ValidationError):
        service.toggle_subtask(task.id, "nope", ADMIN)


def test_add_comment(service: TaskService, task: TaskEntity) -> None:
    comment = service.add_comment(task.id, "  Looks good  ", VIEWER)

    stored = service.get_task(task.id)
    assert comment.text == "Looks good"
    assert comment.user_name == "Sam"
    assert stored.comments == (comment,)
    assert stored.activity_log[-1].action == 'added a comment: "Looks good"'


def test_comment_requires_text_and_assignment(service: TaskService, task: TaskEntity) -> None:
    with pytest.raises(ValidationError):
        service.add_comment(task.id, "   ", ADMIN)
    with pytest.raises(PermissionDeniedError):
        service.add_comment(task.id, "Hello", OUTSIDER)


def test_attachment_upload_and_remove(service: TaskService, task: TaskEntity, tmp_path) -> None:
    source = tmp_path / "brief.txt"
    source.write_text("hello", encoding="utf-8")

    attachment = service.add_attachment(task.id, source, ADMIN)
    stored_path = service._storage.path_for(attachment)

    assert attachment.name == "brief.txt"
    assert attachment.size == 5
    assert stored_path.exists()
    assert service.get_task(task.id).attachments == (attachment,)

    updated = service.remove_attachment(task.id, attachment.id, ADMIN)

    assert updated.attachments == ()
    assert not stored_path.exists()


def test_viewer_cannot_attach(service: TaskService, task: TaskEntity, tmp_path) -> None:
    source = tmp_path / "brief.txt"
    source.write_text("hello", encoding="utf-8")

    with pytest.raises(PermissionDeniedError):
        service.add_attachment(task.id, source, VIEWER)


def test_attachment_without_storage(repo: FakeRepo) -> None:
    service = TaskService(repo)
    created = service.create_task({"title": "No files"}, ADMIN)

    with pytest.raises(StorageError):
        service.add_attachment(created.id, "missing.txt", ADMIN)


def test_delete_task(service: TaskService, repo: FakeRepo, task: TaskEntity) -> None:
    service.delete_task(task.id, ADMIN)
    service.delete_task(task.id, ADMIN)

    assert task.id not in repo.tasks


def test_task_ids_are_unique(service: TaskService) -> None:
    ids = {service.create_task({"title": f"Task {n}"}, ADMIN).id for n in range(3)}

    assert len(ids) == 3


def test_week_and_backlog_views(service: TaskService, task: TaskEntity) -> None:
    backlog = service.create_task({"title": "Later"}, ADMIN)

    assert [t.id for t in service.list_week(2)] == [task.id]
    assert [t.id for t in service.list_backlog()] == [backlog.id]


def test_analytics_and_changelog(service: TaskService, task: TaskEntity) -> None:
    service.move_task(task.id, "done", ADMIN)

    analytics = service.get_analytics()
    changelog = service.get_changelog(action="moved")

    assert analytics["summary"]["done"] == 1
    assert analytics["weekly"][1]["completion"] == 100.0
    assert analytics["companies"]["Muncho"] == 1
    assert [item.entry.action for item in changelog] == ["moved task from To Do to Done"]


def test_calendar_days(service: TaskService, task: TaskEntity) -> None:
    days = service.calendar_days(2)

    assert [day.day for day, _ in days] == list(range(8, 16))
    assert [t.id for t in days[0][1]] == [task.id]
    assert days[1][1] == []
