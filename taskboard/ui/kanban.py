from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QDialog, QHBoxLayout, QLabel, QListWidgetItem, QMessageBox, QVBoxLayout

from taskboard.domain.entities import Actor
from taskboard.domain.enums import STATUS_LABELS, TaskStatus
from taskboard.domain.errors import TaskboardError
from taskboard.domain.filters import TaskFilters
from taskboard.services.task_service import TaskService

from .widgets import KanbanListWidget, TaskItemContainer, TaskItemWidget


class KanbanDialog(QDialog):
    def __init__(self, service: TaskService, actor: Actor, week: int | None = None, parent=None):
        super().__init__(parent)
        self.service = service
        self.actor = actor
        self.week = week
        self.setWindowTitle(f"Kanban - Week {week}" if week else "Kanban")
        self.resize(1200, 700)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        self.columns: dict[TaskStatus, KanbanListWidget] = {}
        self.counters: dict[TaskStatus, QLabel] = {}
        for status in TaskStatus:
            column = QVBoxLayout()
            label = QLabel(STATUS_LABELS[status.value])
            label.setProperty("class", "panel-title")
            counter = QLabel("0")
            counter.setProperty("class", "stats-badge")
            header = QHBoxLayout()
            header.addWidget(label)
            header.addStretch()
            header.addWidget(counter)
            list_widget = KanbanListWidget(status, self.on_drop_status)
            list_widget.setObjectName("KanbanList")
            column.addLayout(header)
            column.addWidget(list_widget)
            layout.addLayout(column, 1)
            self.columns[status] = list_widget
            self.counters[status] = counter

        self.refresh()

    def refresh(self) -> None:
        filters = TaskFilters.for_week(self.week) if self.week else TaskFilters()
        tasks = self.service.list_tasks(filters)
        for status, list_widget in self.columns.items():
            list_widget.clear()
            column_tasks = [task for task in tasks if task.status == status]
            for task in column_tasks:
                item = QListWidgetItem()
                list_widget.addItem(item)
                item.setData(Qt.UserRole, task.id)
                widget = TaskItemContainer(TaskItemWidget(task))
                item.setSizeHint(widget.sizeHint())
                list_widget.setItemWidget(item, widget)
            list_widget.sync_item_sizes()
            self.counters[status].setText(str(len(column_tasks)))

    def on_drop_status(self, task_id: str, status: TaskStatus) -> None:
        try:
            self.service.move_task(task_id, status, self.actor)
        except TaskboardError as exc:
            QMessageBox.warning(self, "Cannot move task", str(exc))
        self.refresh()
