from __future__ import annotations

from enum import StrEnum


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "inProgress"
    REVIEW = "review"
    DONE = "done"


class Company(StrEnum):
    FOAN = "Foan"
    MUNCHO = "Muncho"
    MARKETING_O = "Marketing O"
    PERSONAL = "Personal"


class Difficulty(StrEnum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Importance(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class UserRole(StrEnum):
    ADMIN = "admin"
    VIEWER = "viewer"


STATUS_LABELS = {
    TaskStatus.TODO.value: "To Do",
    TaskStatus.IN_PROGRESS.value: "In Progress",
    TaskStatus.REVIEW.value: "Review",
    TaskStatus.DONE.value: "Done",
}

BOARD_WEEKS = (1, 2, 3, 4)
