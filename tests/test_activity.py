from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from taskboard.domain.activity import ActivityLogDeriver, creation_entry, derive_activity
from taskboard.domain.entities import (
    ActivityLog,
    ActivityLogEntry,
    Comment,
    Subtask,
    TaskEntity,
)
from taskboard.domain.enums import Company, Difficulty, Importance, TaskStatus

NOW = datetime(2026, 1, 10, 9, 30, tzinfo=timezone.utc)
EARLIER = datetime(2026, 1, 2, 8, 0, tzinfo=timezone.utc)


def make_task(**overrides) -> TaskEntity:
    history = ActivityLog([creation_entry("Admin", EARLIER)])
    fields = {
        "id": "1767340800000",
        "title": "Launch landing page",
        "company": Company.FOAN,
        "status": TaskStatus.TODO,
        "week": 2,
        "due_date": date(2026, 1, 8),
        "activity_log": history,
    }
    fields.update(overrides)
    return TaskEntity(**fields)


def actions(result) -> list[str]:
    return [entry.action for entry in result.new_entries]


def test_no_tracked_change_keeps_log_identity() -> None:
    task = make_task(subtasks=(Subtask("1", "a"),))
    update = {
        "status": TaskStatus.TODO,
        "week": 2,
        "title": "Launch landing page",
        "company": "Foan",
        "due_date": "2026-01-08",
        "subtasks": [{"id": "1", "text": "a", "completed": False}],
        "description": "only a description",
    }

    result = derive_activity(task, update, "Alex", now=NOW)

    assert result.new_entries == ()
    assert result.merged_log is task.activity_log
    assert result.update["activity_log"] is task.activity_log


def test_status_change_uses_labels() -> None:
    result = derive_activity(make_task(), {"status": "inProgress"}, "Alex", now=NOW)

    assert actions(result) == ["moved task from To Do to In Progress"]
    change = result.new_entries[0].changes
    assert (change.field, change.old_value, change.new_value) == ("Status", "To Do", "In Progress")


def test_week_change_to_backlog() -> None:
    result = derive_activity(make_task(week=2), {"week": None}, "Alex", now=NOW)

    assert actions(result) == ["moved task from Week 2 to Week Backlog"]
    change = result.new_entries[0].changes
    assert (change.field, change.old_value, change.new_value) == ("Week", 2, "Backlog")


def test_week_change_from_backlog() -> None:
    result = derive_activity(make_task(week=None), {"week": 3}, "Alex", now=NOW)

    assert actions(result) == ["moved task from Week Backlog to Week 3"]


def test_week_missing_from_update_is_ignored() -> None:
    result = derive_activity(make_task(week=None), {"title": "Launch landing page"}, "Alex", now=NOW)

    assert result.new_entries == ()


def test_empty_title_is_not_a_change() -> None:
    result = derive_activity(make_task(), {"title": ""}, "Alex", now=NOW)

    assert result.new_entries == ()


def test_title_change_records_old_and_new() -> None:
    result = derive_activity(make_task(), {"title": "Ship landing page"}, "Alex", now=NOW)

    assert actions(result) == ["changed task title"]
    change = result.new_entries[0].changes
    assert (change.old_value, change.new_value) == ("Launch landing page", "Ship landing page")


def test_company_change() -> None:
    result = derive_activity(make_task(), {"company": Company.MUNCHO}, "Alex", now=NOW)

    assert actions(result) == ["changed company"]
    assert result.new_entries[0].changes.new_value == "Muncho"


def test_due_date_change_formats_dates() -> None:
    result = derive_activity(make_task(), {"due_date": "2026-01-16"}, "Alex", now=NOW)

    assert actions(result) == ["changed due date"]
    change = result.new_entries[0].changes
    assert (change.field, change.old_value, change.new_value) == ("Due Date", "1/8/2026", "1/16/2026")


def test_malformed_due_date_is_no_change() -> None:
    result = derive_activity(make_task(), {"due_date": "next week"}, "Alex", now=NOW)

    assert result.new_entries == ()


def test_start_date_set_and_cleared_use_none_sentinel() -> None:
    added = derive_activity(make_task(), {"start_date": date(2026, 1, 5)}, "Alex", now=NOW)
    cleared = derive_activity(make_task(start_date=date(2026, 1, 5)), {"start_date": None}, "Alex", now=NOW)

    assert actions(added) == ["changed start date"]
    assert (added.new_entries[0].changes.old_value, added.new_entries[0].changes.new_value) == (
        "None",
        "1/5/2026",
    )
    assert (cleared.new_entries[0].changes.old_value, cleared.new_entries[0].changes.new_value) == (
        "1/5/2026",
        "None",
    )


def test_difficulty_and_importance_use_not_set_sentinel() -> None:
    task = make_task(importance=Importance.LOW)
    result = derive_activity(
        task,
        {"difficulty": "Hard", "importance": Importance.CRITICAL},
        "Alex",
        now=NOW,
    )

    assert actions(result) == ["changed difficulty", "changed importance"]
    difficulty, importance = (entry.changes for entry in result.new_entries)
    assert (difficulty.field, difficulty.old_value, difficulty.new_value) == ("Difficulty", "Not set", "Hard")
    assert (importance.field, importance.old_value, importance.new_value) == ("Importance", "Low", "Critical")


def test_same_difficulty_as_enum_or_string_is_no_change() -> None:
    task = make_task(difficulty=Difficulty.MEDIUM)

    assert derive_activity(task, {"difficulty": "Medium"}, "Alex", now=NOW).new_entries == ()
    assert derive_activity(task, {"difficulty": Difficulty.MEDIUM}, "Alex", now=NOW).new_entries == ()


def test_added_comment_appends_single_entry_with_preview() -> None:
    first = Comment("c1", "first", EARLIER, "u1", "Alex")
    task = make_task(comments=(first,))
    text = "x" * 60
    update = {"comments": [first, Comment("c2", text, NOW, "u1", "Alex")]}

    result = derive_activity(task, update, "Alex", now=NOW)

    assert len(result.new_entries) == 1
    assert result.new_entries[0].action == f'added a comment: "{"x" * 50}..."'
    assert result.new_entries[0].changes is None
    assert len(result.merged_log) == len(task.activity_log) + 1


def test_comment_count_not_increasing_is_ignored() -> None:
    first = Comment("c1", "first", EARLIER, "u1", "Alex")
    task = make_task(comments=(first,))

    assert derive_activity(task, {"comments": [first]}, "Alex", now=NOW).new_entries == ()
    assert derive_activity(task, {"comments": []}, "Alex", now=NOW).new_entries == ()


def test_subtask_addition() -> None:
    task = make_task(subtasks=(Subtask("1", "a", False),))
    update = {"subtasks": [Subtask("1", "a", False), Subtask("2", "b", False)]}

    result = derive_activity(task, update, "Alex", now=NOW)

    assert actions(result) == ['added subtask: "b"']
    assert result.new_entries[0].id.endswith("-subtask-add-2")


def test_subtask_deletion_references_removed_text() -> None:
    task = make_task(subtasks=(Subtask("1", "a"), Subtask("2", "b")))

    result = derive_activity(task, {"subtasks": [{"id": "1", "text": "a", "completed": False}]}, "Alex", now=NOW)

    assert actions(result) == ['deleted subtask: "b"']


def test_subtask_deletions_follow_old_order() -> None:
    task = make_task(subtasks=(Subtask("1", "a"), Subtask("2", "b"), Subtask("3", "c")))

    result = derive_activity(task, {"subtasks": [Subtask("2", "b")]}, "Alex", now=NOW)

    assert actions(result) == ['deleted subtask: "a"', 'deleted subtask: "c"']


def test_subtask_toggle_both_directions() -> None:
    task = make_task(subtasks=(Subtask("1", "a", False), Subtask("2", "b", True)))

    completed = derive_activity(task, {"subtasks": [Subtask("1", "a", True), Subtask("2", "b", True)]}, "Alex", now=NOW)
    reopened = derive_activity(task, {"subtasks": [Subtask("1", "a", False), Subtask("2", "b", False)]}, "Alex", now=NOW)

    assert actions(completed) == ['completed subtask: "a"']
    assert actions(reopened) == ['marked subtask as incomplete: "b"']


def test_subtask_swap_with_same_completed_count_is_not_reported() -> None:
    task = make_task(subtasks=(Subtask("1", "a", True), Subtask("2", "b", False)))

    result = derive_activity(task, {"subtasks": [Subtask("1", "a", False), Subtask("2", "b", True)]}, "Alex", now=NOW)

    assert result.new_entries == ()


def test_addition_hides_toggle_in_same_update() -> None:
    task = make_task(subtasks=(Subtask("1", "a", False),))
    update = {"subtasks": [Subtask("1", "a", True), Subtask("2", "b", False)]}

    result = derive_activity(task, update, "Alex", now=NOW)

    assert actions(result) == ['added subtask: "b"']


def test_rename_only_is_not_reported() -> None:
    task = make_task(subtasks=(Subtask("1", "a"),))

    result = derive_activity(task, {"subtasks": [Subtask("1", "renamed")]}, "Alex", now=NOW)

    assert result.new_entries == ()


def test_entries_follow_rule_order() -> None:
    task = make_task(subtasks=())
    update = {
        "subtasks": [Subtask("9", "write copy")],
        "comments": [Comment("c1", "hi", NOW, "u1", "Alex")],
        "importance": "High",
        "difficulty": "Easy",
        "start_date": "2026-01-03",
        "due_date": "2026-01-09",
        "company": "Personal",
        "title": "Renamed",
        "week": 1,
        "status": "done",
    }

    result = derive_activity(task, update, "Alex", now=NOW)

    assert actions(result) == [
        "moved task from To Do to Done",
        "moved task from Week 2 to Week 1",
        "changed task title",
        "changed company",
        "changed due date",
        "changed start date",
        "changed difficulty",
        "changed importance",
        'added a comment: "hi"',
        'added subtask: "write copy"',
    ]


def test_reapplying_update_produces_no_entries() -> None:
    task = make_task()
    update = {"status": TaskStatus.REVIEW, "week": 3, "title": "Review copy", "importance": Importance.HIGH}

    first = derive_activity(task, update, "Alex", now=NOW)
    applied = replace(task, **update, activity_log=first.merged_log)
    second = derive_activity(applied, update, "Alex", now=NOW)

    assert len(first.new_entries) == 4
    assert second.new_entries == ()
    assert second.merged_log is applied.activity_log


def test_merged_log_is_append_only_and_inputs_untouched() -> None:
    task = make_task()
    update = {"status": "review", "title": "Another"}
    snapshot = dict(update)

    result = derive_activity(task, update, "Alex", now=NOW)

    assert update == snapshot
    assert len(result.merged_log) == len(task.activity_log) + len(result.new_entries)
    assert result.merged_log[: len(task.activity_log)] == task.activity_log
    assert list(result.merged_log)[len(task.activity_log):] == list(result.new_entries)
    assert len(task.activity_log) == 1


def test_unknown_current_task_returns_shallow_result() -> None:
    result = derive_activity(None, {"status": "done"}, "Alex", now=NOW)

    assert result.new_entries == ()
    assert len(result.merged_log) == 0
    assert result.update == {"status": "done"}


def test_actor_is_required() -> None:
    with pytest.raises(ValueError):
        derive_activity(make_task(), {"status": "done"}, "", now=NOW)


def test_entries_are_attributed_and_stamped() -> None:
    result = derive_activity(make_task(), {"status": "done", "week": 4}, "Jordan", now=NOW)

    token = int(NOW.timestamp() * 1000)
    assert [entry.id for entry in result.new_entries] == [f"{token}-status", f"{token}-week"]
    assert all(entry.user == "Jordan" for entry in result.new_entries)
    assert all(entry.timestamp == NOW for entry in result.new_entries)


def test_deriver_uses_injected_clock() -> None:
    deriver = ActivityLogDeriver(clock=lambda: NOW)

    result = deriver.derive(make_task(), {"status": "done"}, "Alex")
    created = deriver.created("Alex")

    assert result.new_entries[0].timestamp == NOW
    assert created.action == "created task"
    assert created.id.endswith("-created")


def test_activity_log_cannot_be_modified_in_place() -> None:
    log = ActivityLog([creation_entry("Admin", EARLIER)])
    entry = ActivityLogEntry("x", NOW, "Alex", "changed task title")

    grown = log.append(entry)

    assert len(log) == 1
    assert len(grown) == 2
    assert grown[0] == log[0]
    with pytest.raises(TypeError):
        log[0] = entry  # type: ignore[index]
