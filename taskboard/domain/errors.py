from __future__ import annotations


class TaskboardError(Exception):
    """Base class for errors surfaced to the user."""


class TaskNotFoundError(TaskboardError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class PermissionDeniedError(TaskboardError):
    pass


class ValidationError(TaskboardError):
    pass


class StorageError(TaskboardError):
    pass
