"""Activity log derivation for task updates.

Every partial update of a task is compared against the stored snapshot and
turned into zero or more human-readable log entries. Rules run in a fixed
order so that replaying the same updates yields the same log.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from .entities import ActivityLog, ActivityLogEntry, Comment, FieldChange, Subtask, TaskEntity, utcnow
from .enums import STATUS_LABELS

BACKLOG_LABEL = "Backlog"
NO_DATE_LABEL = "None"
NOT_SET_LABEL = "Not set"
COMMENT_PREVIEW_LENGTH = 50


@dataclass(frozen=True)
class _Draft:
    suffix: str
    action: str
    changes: FieldChange | None = None


@dataclass(frozen=True)
class ActivityDerivation:
    new_entries: tuple[ActivityLogEntry, ...]
    merged_log: ActivityLog
    update: dict = field(default_factory=dict)


Rule = Callable[[TaskEntity, Mapping[str, Any]], list[_Draft]]


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def format_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def _coerce_week(value: Any) -> tuple[bool, int | None]:
    if value is None:
        return True, None
    if isinstance(value, bool):
        return False, None
    if isinstance(value, int):
        return True, value
    if isinstance(value, str) and value.strip().isdigit():
        return True, int(value.strip())
    return False, None


def _week_label(week: int | None) -> int | str:
    return week or BACKLOG_LABEL


def _status_label(status: Any) -> str:
    return STATUS_LABELS.get(status, str(status))


def _as_subtask(value: Any) -> Subtask | None:
    if isinstance(value, Subtask):
        return value
    if isinstance(value, Mapping):
        return Subtask.from_dict(dict(value))
    return None


def _comment_text(value: Any) -> str:
    if isinstance(value, Comment):
        return value.text
    if isinstance(value, Mapping):
        return str(value.get("text") or "")
    return ""


def _status_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    new = _plain(update.get("status"))
    old = _plain(current.status)
    if not new or not old or new == old:
        return []
    old_label, new_label = _status_label(old), _status_label(new)
    return [
        _Draft(
            "status",
            f"moved task from {old_label} to {new_label}",
            FieldChange("Status", old_label, new_label),
        )
    ]


def _week_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    if "week" not in update:
        return []
    valid, new = _coerce_week(update["week"])
    if not valid or new == current.week:
        return []
    old_label, new_label = _week_label(current.week), _week_label(new)
    return [
        _Draft(
            "week",
            f"moved task from Week {old_label} to Week {new_label}",
            FieldChange("Week", old_label, new_label),
        )
    ]


def _title_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    new = update.get("title")
    if not new or current.title is None or new == current.title:
        return []
    return [_Draft("title", "changed task title", FieldChange("Title", current.title, new))]


def _company_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    new = _plain(update.get("company"))
    old = _plain(current.company)
    if not new or not old or new == old:
        return []
    return [_Draft("company", "changed company", FieldChange("Company", old, new))]


def _due_date_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    new = _coerce_date(update.get("due_date"))
    old = _coerce_date(current.due_date)
    if new is None or old is None or new == old:
        return []
    return [
        _Draft(
            "duedate",
            "changed due date",
            FieldChange("Due Date", format_date(old), format_date(new)),
        )
    ]


def _start_date_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    if "start_date" not in update:
        return []
    raw = update["start_date"]
    new = _coerce_date(raw)
    if new is None and raw not in (None, ""):
        return []
    old = _coerce_date(current.start_date)
    if new == old:
        return []
    return [
        _Draft(
            "startdate",
            "changed start date",
            FieldChange(
                "Start Date",
                format_date(old) if old else NO_DATE_LABEL,
                format_date(new) if new else NO_DATE_LABEL,
            ),
        )
    ]


def _choice_rule(attribute: str, label: str) -> Rule:
    def rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
        new = _plain(update.get(attribute))
        old = _plain(getattr(current, attribute, None))
        if not new or new == old:
            return []
        return [
            _Draft(
                attribute,
                f"changed {attribute}",
                FieldChange(label, old or NOT_SET_LABEL, new),
            )
        ]

    return rule


def _comments_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    comments = update.get("comments")
    if not isinstance(comments, Sequence) or isinstance(comments, str):
        return []
    if len(comments) <= len(current.comments or ()):
        return []
    text = _comment_text(comments[-1]).strip()
    if not text:
        return [_Draft("comment", "added a comment")]
    if len(text) > COMMENT_PREVIEW_LENGTH:
        text = text[:COMMENT_PREVIEW_LENGTH] + "..."
    return [_Draft("comment", f'added a comment: "{text}"')]


def _subtasks_rule(current: TaskEntity, update: Mapping[str, Any]) -> list[_Draft]:
    proposed = update.get("subtasks")
    if not isinstance(proposed, Sequence) or isinstance(proposed, str):
        return []
    new = [subtask for subtask in map(_as_subtask, proposed) if subtask is not None]
    old = list(current.subtasks or ())
    if [s.to_dict() for s in new] == [s.to_dict() for s in old]:
        return []

    # Only one branch runs: a length change hides completion toggles in the same update.
    if len(new) > len(old):
        added = new[len(old) - len(new):]
        return [_Draft(f"subtask-add-{s.id}", f'added subtask: "{s.text}"') for s in added]

    if len(new) < len(old):
        new_ids = {s.id for s in new}
        return [
            _Draft(f"subtask-delete-{s.id}", f'deleted subtask: "{s.text}"')
            for s in old
            if s.id not in new_ids
        ]

    old_completed = sum(1 for s in old if s.completed)
    new_completed = sum(1 for s in new if s.completed)
    if old_completed == new_completed:
        return []
    old_by_id = {s.id: s for s in old}
    drafts = []
    for subtask in new:
        previous = old_by_id.get(subtask.id)
        if previous is None or previous.completed == subtask.completed:
            continue
        action = (
            f'completed subtask: "{subtask.text}"'
            if subtask.completed
            else f'marked subtask as incomplete: "{subtask.text}"'
        )
        drafts.append(_Draft(f"subtask-toggle-{subtask.id}", action))
    return drafts


RULES: tuple[Rule, ...] = (
    _status_rule,
    _week_rule,
    _title_rule,
    _company_rule,
    _due_date_rule,
    _start_date_rule,
    _choice_rule("difficulty", "Difficulty"),
    _choice_rule("importance", "Importance"),
    _comments_rule,
    _subtasks_rule,
)


def _token(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def creation_entry(actor: str, now: datetime | None = None) -> ActivityLogEntry:
    moment = now or utcnow()
    return ActivityLogEntry(
        id=f"{_token(moment)}-created",
        timestamp=moment,
        user=actor or "System",
        action="created task",
    )


def derive_activity(
    current: TaskEntity | None,
    update: Mapping[str, Any],
    actor: str,
    *,
    now: datetime | None = None,
) -> ActivityDerivation:
    """Compare ``update`` with ``current`` and merge the resulting entries.

    Returns the new entries, the merged log and a copy of ``update`` carrying
    ``activity_log``. Without a current snapshot nothing is derived and the
    update is returned without a log so stored history is left untouched.
    """
    if not actor:
        raise ValueError("actor name is required to attribute activity")

    proposed = dict(update)
    if current is None:
        return ActivityDerivation(new_entries=(), merged_log=ActivityLog(), update=proposed)

    moment = now or utcnow()
    token = _token(moment)
    entries = tuple(
        ActivityLogEntry(
            id=f"{token}-{draft.suffix}",
            timestamp=moment,
            user=actor,
            action=draft.action,
            changes=draft.changes,
        )
        for rule in RULES
        for draft in rule(current, proposed)
    )

    history = current.activity_log
    if not isinstance(history, ActivityLog):
        history = ActivityLog(history or ())
    merged = history.extend(entries)
    proposed["activity_log"] = merged
    return ActivityDerivation(new_entries=entries, merged_log=merged, update=proposed)


class ActivityLogDeriver:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def derive(
        self,
        current: TaskEntity | None,
        update: Mapping[str, Any],
        actor: str,
    ) -> ActivityDerivation:
        return derive_activity(current, update, actor, now=self._clock())

    def created(self, actor: str) -> ActivityLogEntry:
        return creation_entry(actor, self._clock())
