from __future__ import annotations

import logging
from datetime import date

from PySide6.QtCore import QDate, Qt
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDateEdit,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QSplitter,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from taskboard.config import PROJECT_ROOT, SETTINGS
from taskboard.domain.analytics import board_summary
from taskboard.domain.entities import Subtask, TaskEntity
from taskboard.domain.enums import BOARD_WEEKS, STATUS_LABELS, Company, Difficulty, Importance, TaskStatus
from taskboard.domain.errors import TaskboardError
from taskboard.domain.filters import TaskFilters
from taskboard.infra.repository import TaskRepository
from taskboard.infra.storage import AttachmentStorage
from taskboard.services.task_service import TaskService

from .dialogs import AnalyticsDialog, CalendarDialog, ChangelogDialog
from .kanban import KanbanDialog
from .widgets import (
    SubtaskItemWidget,
    TaskItemContainer,
    TaskItemWidget,
    TaskListWidget,
    ViewListWidget,
)

logger = logging.getLogger(__name__)

VIEWS = [
    ("All tasks", "all"),
    ("Backlog", "backlog"),
    *[(f"Week {week}", f"week:{week}") for week in BOARD_WEEKS],
    *[(STATUS_LABELS[status.value], status.value) for status in TaskStatus],
]

WEEK_OPTIONS = [("Backlog", None), *[(f"Week {week}", week) for week in BOARD_WEEKS]]


def _qdate(value: date) -> QDate:
    return QDate(value.year, value.month, value.day)


class MainWindow(QWidget):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Taskboard")
        self.resize(1320, 800)

        self.actor = SETTINGS.actor()
        self.service = TaskService(
            TaskRepository(),
            storage=AttachmentStorage(PROJECT_ROOT / SETTINGS.attachments_dir),
            board_year=SETTINGS.board_year,
            board_month=SETTINGS.board_month,
        )

        main_layout = QHBoxLayout(self)
        main_layout.setContentsMargins(12, 12, 12, 12)

        splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(splitter)

        self.sidebar = self._build_sidebar()
        self.center = self._build_center()
        self.detail = self._build_detail_panel()

        splitter.addWidget(self.sidebar)
        splitter.addWidget(self.center)
        splitter.addWidget(self.detail)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 2)
        splitter.setStretchFactor(2, 2)
        splitter.setSizes([220, 600, 500])

        self.current_task: TaskEntity | None = None
        self.current_view = "all"

        self.refresh_tasks()

        QShortcut(QKeySequence("Ctrl+N"), self, self.new_task)
        QShortcut(QKeySequence("Ctrl+S"), self, self.save_task)

    def _build_sidebar(self) -> QWidget:
        frame = QFrame()
        frame.setObjectName("Sidebar")
        layout = QVBoxLayout(frame)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        title = QLabel("Views")
        title.setProperty("class", "sidebar-title")
        layout.addWidget(title)

        self.view_list = ViewListWidget(self.on_view_drop)
        self.view_list.setObjectName("FilterList")
        self.view_list.setSpacing(4)
        for label, key in VIEWS:
            item = QListWidgetItem(label)
            item.setData(Qt.UserRole, key)
            self.view_list.addItem(item)
        self.view_list.setCurrentRow(0)
        self.view_list.currentItemChanged.connect(self.on_view_change)
        layout.addWidget(self.view_list)

        user = QLabel(f"{self.actor.name} ({self.actor.role.value})")
        user.setProperty("class", "task-meta")
        layout.addWidget(user)
        return frame

    def _build_center(self) -> QWidget:
        frame = QFrame()
        frame.setObjectName("CenterPanel")
        layout = QVBoxLayout(frame)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        header = QHBoxLayout()
        header_title = QLabel("Tasks")
        header_title.setProperty("class", "panel-title")
        self.stats_label = QLabel("")
        self.stats_label.setProperty("class", "stats-badge")
        header.addWidget(header_title)
        header.addStretch()
        header.addWidget(self.stats_label)

        action_bar = QFrame()
        action_bar.setObjectName("ActionBar")
        action_layout = QVBoxLayout(action_bar)
        action_layout.setContentsMargins(12, 10, 12, 10)
        action_layout.setSpacing(8)

        primary_row = QHBoxLayout()
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search by title or description")
        self.search_input.textChanged.connect(self.refresh_tasks)

        self.company_filter = QComboBox()
        self.company_filter.addItem("All companies", None)
        for company in Company:
            self.company_filter.addItem(company.value, company.value)
        self.company_filter.currentIndexChanged.connect(self.refresh_tasks)

        add_button = QPushButton("New task")
        add_button.clicked.connect(self.new_task)
        add_button.setEnabled(self.actor.is_admin)

        primary_row.addWidget(self.search_input, 1)
        primary_row.addWidget(self.company_filter)
        primary_row.addWidget(add_button)

        secondary_row = QHBoxLayout()
        for label, handler in [
            ("Kanban", self.open_kanban),
            ("Calendar", self.open_calendar),
            ("Analytics", self.open_analytics),
            ("Changelog", self.open_changelog),
        ]:
            button = QPushButton(label)
            button.setProperty("variant", "secondary")
            button.clicked.connect(handler)
            secondary_row.addWidget(button)
        secondary_row.addStretch()

        action_layout.addLayout(primary_row)
        action_layout.addLayout(secondary_row)

        self.task_list = TaskListWidget()
        self.task_list.setObjectName("TaskList")
        self.task_list.setSpacing(10)
        self.task_list.currentItemChanged.connect(self.on_task_selected)

        layout.addLayout(header)
        layout.addWidget(action_bar)
        layout.addWidget(self.task_list)
        return frame

    def _build_detail_panel(self) -> QWidget:
        frame = QFrame()
        frame.setObjectName("DetailPanel")
        frame_layout = QVBoxLayout(frame)
        frame_layout.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.NoFrame)
        scroll.setObjectName("DetailScroll")
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)

        content = QWidget()
        layout = QVBoxLayout(content)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        title = QLabel("Details")
        title.setProperty("class", "panel-title")

        self.title_input = QLineEdit()
        self.title_input.setPlaceholderText("Task title")

        self.description_input = QTextEdit()
        self.description_input.setObjectName("DescriptionInput")
        self.description_input.setPlaceholderText("Description")
        self.description_input.setMaximumHeight(110)

        self.company_combo = QComboBox()
        for company in Company:
            self.company_combo.addItem(company.value, company.value)

        self.status_combo = QComboBox()
        for status in TaskStatus:
            self.status_combo.addItem(STATUS_LABELS[status.value], status.value)

        self.week_combo = QComboBox()
        for label, value in WEEK_OPTIONS:
            self.week_combo.addItem(label, value)

        self.difficulty_combo = QComboBox()
        self.difficulty_combo.addItem("Not set", None)
        for difficulty in Difficulty:
            self.difficulty_combo.addItem(difficulty.value, difficulty.value)

        self.importance_combo = QComboBox()
        self.importance_combo.addItem("Not set", None)
        for importance in Importance:
            self.importance_combo.addItem(importance.value, importance.value)

        self.start_check = QCheckBox("Start date")
        self.start_input = QDateEdit()
        self.start_input.setCalendarPopup(True)
        self.start_input.setEnabled(False)
        self.start_check.toggled.connect(self.start_input.setEnabled)

        self.due_input = QDateEdit()
        self.due_input.setCalendarPopup(True)

        dates_row = QHBoxLayout()
        dates_row.addWidget(self.start_check)
        dates_row.addWidget(self.start_input, 1)
        dates_row.addWidget(QLabel("Due"))
        dates_row.addWidget(self.due_input, 1)

        self.assignees_input = QLineEdit()
        self.assignees_input.setPlaceholderText("Assignees, comma separated")

        self.subtasks_summary = QLabel("0/0")
        self.subtasks_summary.setProperty("class", "stats")
        subtasks_label = QLabel("Subtasks")
        subtasks_label.setProperty("class", "section-title")
        subtasks_header = QHBoxLayout()
        subtasks_header.addWidget(subtasks_label)
        subtasks_header.addStretch()
        subtasks_header.addWidget(self.subtasks_summary)

        self.subtask_input = QLineEdit()
        self.subtask_input.setPlaceholderText("Add a subtask")
        self.subtask_input.returnPressed.connect(self.add_subtask)
        subtask_add = QPushButton("Add")
        subtask_add.setProperty("variant", "secondary")
        subtask_add.clicked.connect(self.add_subtask)
        subtask_row = QHBoxLayout()
        subtask_row.addWidget(self.subtask_input, 1)
        subtask_row.addWidget(subtask_add)

        self.subtasks_container = QWidget()
        self.subtasks_layout = QVBoxLayout(self.subtasks_container)
        self.subtasks_layout.setContentsMargins(0, 0, 0, 0)
        self.subtasks_layout.setSpacing(6)
        self.subtasks_layout.addStretch()

        comments_label = QLabel("Comments")
        comments_label.setProperty("class", "section-title")
        self.comments_list = QListWidget()
        self.comments_list.setWordWrap(True)
        self.comments_list.setMaximumHeight(140)
        self.comment_input = QLineEdit()
        self.comment_input.setPlaceholderText("Write a comment")
        self.comment_input.returnPressed.connect(self.add_comment)
        comment_button = QPushButton("Comment")
        comment_button.setProperty("variant", "secondary")
        comment_button.clicked.connect(self.add_comment)
        comment_row = QHBoxLayout()
        comment_row.addWidget(self.comment_input, 1)
        comment_row.addWidget(comment_button)

        attachments_label = QLabel("Attachments")
        attachments_label.setProperty("class", "section-title")
        self.attachments_list = QListWidget()
        self.attachments_list.setMaximumHeight(90)
        attach_button = QPushButton("Attach file")
        attach_button.setProperty("variant", "ghost")
        attach_button.clicked.connect(self.add_attachment)
        detach_button = QPushButton("Remove file")
        detach_button.setProperty("variant", "ghost")
        detach_button.clicked.connect(self.remove_attachment)
        attachment_row = QHBoxLayout()
        attachment_row.addWidget(attach_button)
        attachment_row.addWidget(detach_button)
        attachment_row.addStretch()

        activity_label = QLabel("Activity")
        activity_label.setProperty("class", "section-title")
        self.activity_list = QListWidget()
        self.activity_list.setWordWrap(True)
        self.activity_list.setMinimumHeight(140)

        self.save_button = QPushButton("Save")
        self.save_button.clicked.connect(self.save_task)
        self.save_button.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)
        self.delete_button = QPushButton("Delete")
        self.delete_button.setProperty("variant", "danger")
        self.delete_button.clicked.connect(self.delete_task)
        self.delete_button.setEnabled(self.actor.is_admin)
        actions = QHBoxLayout()
        actions.addWidget(self.save_button, 1)
        actions.addWidget(self.delete_button)

        layout.addWidget(title)
        layout.addWidget(self.title_input)
        layout.addWidget(self.description_input)
        for label, widget in [
            ("Company", self.company_combo),
            ("Status", self.status_combo),
            ("Week", self.week_combo),
            ("Difficulty", self.difficulty_combo),
            ("Importance", self.importance_combo),
        ]:
            row = QHBoxLayout()
            row.addWidget(QLabel(label))
            row.addWidget(widget, 1)
            layout.addLayout(row)
        layout.addLayout(dates_row)
        layout.addWidget(self.assignees_input)
        layout.addLayout(actions)
        layout.addSpacing(6)
        layout.addLayout(subtasks_header)
        layout.addLayout(subtask_row)
        layout.addWidget(self.subtasks_container)
        layout.addWidget(comments_label)
        layout.addWidget(self.comments_list)
        layout.addLayout(comment_row)
        layout.addWidget(attachments_label)
        layout.addWidget(self.attachments_list)
        layout.addLayout(attachment_row)
        layout.addWidget(activity_label)
        layout.addWidget(self.activity_list)
        layout.addStretch()

        scroll.setWidget(content)
        frame_layout.addWidget(scroll)
        return frame

    def _run(self, action, title: str = "Action failed"):
        try:
            return action()
        except TaskboardError as exc:
            logger.warning("%s: %s", title, exc)
            QMessageBox.warning(self, title, str(exc))
            return None

    def refresh_tasks(self) -> None:
        search = self.search_input.text().strip()
        filters = TaskFilters(
            filter_key=self.current_view,
            search=search or None,
            company=self.company_filter.currentData(),
        )
        tasks = self.service.list_tasks(filters)
        selected_id = self.current_task.id if self.current_task else None
        self.task_list.clear()

        selected_row = 0
        for row, task in enumerate(tasks):
            item = QListWidgetItem()
            item.setData(Qt.UserRole, task.id)
            widget = TaskItemContainer(TaskItemWidget(task))
            self.task_list.addItem(item)
            self.task_list.setItemWidget(item, widget)
            item.setSizeHint(widget.sizeHint())
            if task.id == selected_id:
                selected_row = row

        summary = board_summary(self.service.list_tasks())
        self.stats_label.setText(
            f"Total: {summary['total']} | In progress: {summary['in_progress']} | "
            f"Review: {summary['review']} | Done: {summary['done']} | Backlog: {summary['backlog']}"
        )

        if tasks:
            self.task_list.setCurrentRow(selected_row)
        else:
            self.current_task = None
            self.clear_form()
        self.task_list.sync_item_sizes()

    def on_view_change(self, current: QListWidgetItem) -> None:
        if not current:
            return
        self.current_view = current.data(Qt.UserRole)
        self.refresh_tasks()

    def on_view_drop(self, task_id: str, view_key: str) -> bool:
        filters = TaskFilters(filter_key=view_key)
        if view_key == "backlog":
            result = self._run(lambda: self.service.move_to_week(task_id, None, self.actor))
        elif filters.week is not None:
            result = self._run(lambda: self.service.move_to_week(task_id, filters.week, self.actor))
        elif view_key in STATUS_LABELS:
            result = self._run(lambda: self.service.move_task(task_id, view_key, self.actor))
        else:
            return False
        self.refresh_tasks()
        return result is not None

    def on_task_selected(self, current: QListWidgetItem, previous: QListWidgetItem | None = None) -> None:
        if previous:
            self._set_item_selected(previous, False)
        if not current:
            return
        self._set_item_selected(current, True)
        widget = self.task_list.itemWidget(current)
        if widget is not None and hasattr(widget, "task"):
            self.current_task = widget.task
            self.populate_form(widget.task)

    def _set_item_selected(self, item: QListWidgetItem, selected: bool) -> None:
        widget = self.task_list.itemWidget(item)
        if hasattr(widget, "set_selected"):
            widget.set_selected(selected)

    def populate_form(self, task: TaskEntity) -> None:
        self.title_input.setText(task.title)
        self.description_input.setPlainText(task.description or "")
        self._select(self.company_combo, str(task.company))
        self._select(self.status_combo, str(task.status))
        self._select(self.week_combo, task.week)
        self._select(self.difficulty_combo, str(task.difficulty) if task.difficulty else None)
        self._select(self.importance_combo, str(task.importance) if task.importance else None)
        self.due_input.setDate(_qdate(task.due_date))
        if task.start_date:
            self.start_check.setChecked(True)
            self.start_input.setDate(_qdate(task.start_date))
        else:
            self.start_check.setChecked(False)
            self.start_input.setDate(_qdate(task.due_date))
        self.assignees_input.setText(", ".join(task.assignees))
        self._render_subtasks(list(task.subtasks))

        self.comments_list.clear()
        for comment in task.comments:
            self.comments_list.addItem(f"{comment.user_name} ({comment.timestamp:%d.%m %H:%M}): {comment.text}")

        self.attachments_list.clear()
        for attachment in task.attachments:
            item = QListWidgetItem(f"{attachment.name} ({attachment.size} bytes)")
            item.setData(Qt.UserRole, attachment.id)
            self.attachments_list.addItem(item)

        self.activity_list.clear()
        for entry in reversed(task.activity_log):
            text = f"{entry.timestamp:%d.%m %H:%M}  {entry.user} {entry.action}"
            if entry.changes:
                text += f"\n   {entry.changes.field}: {entry.changes.old_value} -> {entry.changes.new_value}"
            self.activity_list.addItem(text)

    @staticmethod
    def _select(combo: QComboBox, value) -> None:
        index = combo.findData(value)
        combo.setCurrentIndex(index if index >= 0 else 0)

    def _render_subtasks(self, subtasks: list[Subtask]) -> None:
        while self.subtasks_layout.count() > 1:
            item = self.subtasks_layout.takeAt(0)
            widget = item.widget()
            if widget:
                widget.deleteLater()
        for subtask in subtasks:
            widget = SubtaskItemWidget(
                subtask,
                self.on_subtask_toggle,
                self.on_subtask_text_update,
                self.on_subtask_delete,
            )
            self.subtasks_layout.insertWidget(self.subtasks_layout.count() - 1, widget)
        done = sum(1 for subtask in subtasks if subtask.completed)
        self.subtasks_summary.setText(f"{done}/{len(subtasks)}")

    def clear_form(self) -> None:
        self.title_input.clear()
        self.description_input.clear()
        for combo in (
            self.company_combo,
            self.status_combo,
            self.week_combo,
            self.difficulty_combo,
            self.importance_combo,
        ):
            combo.setCurrentIndex(0)
        self.start_check.setChecked(False)
        self.start_input.setDate(QDate.currentDate())
        self.due_input.setDate(QDate.currentDate())
        self.assignees_input.clear()
        self._render_subtasks([])
        self.comments_list.clear()
        self.attachments_list.clear()
        self.activity_list.clear()

    def new_task(self) -> None:
        self.current_task = None
        self.task_list.clearSelection()
        self.clear_form()
        self.title_input.setFocus()

    def _form_data(self) -> dict:
        assignees = [name.strip() for name in self.assignees_input.text().split(",") if name.strip()]
        return {
            "title": self.title_input.text().strip(),
            "description": self.description_input.toPlainText().strip() or None,
            "company": self.company_combo.currentData(),
            "status": self.status_combo.currentData(),
            "week": self.week_combo.currentData(),
            "difficulty": self.difficulty_combo.currentData(),
            "importance": self.importance_combo.currentData(),
            "start_date": self.start_input.date().toPython() if self.start_check.isChecked() else None,
            "due_date": self.due_input.date().toPython(),
            "assignees": assignees,
        }

    def save_task(self) -> None:
        data = self._form_data()
        if self.current_task is None:
            task = self._run(lambda: self.service.create_task(data, self.actor), "Cannot create task")
        else:
            if not self.actor.is_admin:
                data = {"status": data["status"]}
            task_id = self.current_task.id
            task = self._run(lambda: self.service.update_task(task_id, data, self.actor), "Cannot save task")
        if task is not None:
            self.current_task = task
        self.refresh_tasks()

    def delete_task(self) -> None:
        if self.current_task is None:
            return
        confirm = QMessageBox.question(self, "Confirm", "Delete this task?")
        if confirm != QMessageBox.Yes:
            return
        task_id = self.current_task.id
        self._run(lambda: self.service.delete_task(task_id, self.actor), "Cannot delete task")
        self.current_task = None
        self.refresh_tasks()

    def _after_task_change(self, task: TaskEntity | None) -> None:
        if task is not None:
            self.current_task = task
        self.refresh_tasks()

    def add_subtask(self) -> None:
        text = self.subtask_input.text().strip()
        if not text:
            return
        if self.current_task is None:
            QMessageBox.warning(self, "Task required", "Save the task first.")
            return
        task_id = self.current_task.id
        task = self._run(lambda: self.service.add_subtask(task_id, text, self.actor))
        if task is not None:
            self.subtask_input.clear()
        self._after_task_change(task)

    def on_subtask_toggle(self, subtask_id: str) -> None:
        if self.current_task is None:
            return
        task_id = self.current_task.id
        self._after_task_change(self._run(lambda: self.service.toggle_subtask(task_id, subtask_id, self.actor)))

    def on_subtask_text_update(self, subtask_id: str, text: str) -> None:
        if self.current_task is None:
            return
        task_id = self.current_task.id
        self._after_task_change(
            self._run(lambda: self.service.rename_subtask(task_id, subtask_id, text, self.actor))
        )

    def on_subtask_delete(self, subtask_id: str) -> None:
        if self.current_task is None:
            return
        task_id = self.current_task.id
        self._after_task_change(self._run(lambda: self.service.delete_subtask(task_id, subtask_id, self.actor)))

    def add_comment(self) -> None:
        text = self.comment_input.text().strip()
        if not text or self.current_task is None:
            return
        task_id = self.current_task.id
        comment = self._run(lambda: self.service.add_comment(task_id, text, self.actor), "Cannot comment")
        if comment is not None:
            self.comment_input.clear()
            self.current_task = self.service.get_task(task_id)
        self.refresh_tasks()

    def add_attachment(self) -> None:
        if self.current_task is None:
            return
        path, _ = QFileDialog.getOpenFileName(self, "Attach file")
        if not path:
            return
        task_id = self.current_task.id
        attachment = self._run(lambda: self.service.add_attachment(task_id, path, self.actor), "Upload failed")
        if attachment is not None:
            self.current_task = self.service.get_task(task_id)
        self.refresh_tasks()

    def remove_attachment(self) -> None:
        item = self.attachments_list.currentItem()
        if self.current_task is None or item is None:
            return
        task_id = self.current_task.id
        attachment_id = item.data(Qt.UserRole)
        self._after_task_change(
            self._run(lambda: self.service.remove_attachment(task_id, attachment_id, self.actor))
        )

    def _selected_week(self) -> int:
        week = TaskFilters(filter_key=self.current_view).week
        if week is None and self.current_task is not None and self.current_task.week:
            week = self.current_task.week
        return week or BOARD_WEEKS[0]

    def open_kanban(self) -> None:
        week = TaskFilters(filter_key=self.current_view).week
        dialog = KanbanDialog(self.service, self.actor, week, self)
        dialog.exec()
        self.refresh_tasks()

    def open_calendar(self) -> None:
        dialog = CalendarDialog(self.service, self._selected_week(), self)
        dialog.exec()

    def open_analytics(self) -> None:
        dialog = AnalyticsDialog(self.service.get_analytics(), self)
        dialog.exec()

    def open_changelog(self) -> None:
        dialog = ChangelogDialog(self.service, self)
        dialog.exec()
