from __future__ import annotations

from PySide6.QtCore import QMimeData, QSize, Qt
from PySide6.QtGui import QDrag
from PySide6.QtWidgets import (
    QAbstractItemView,
    QCheckBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from taskboard.domain.entities import Subtask, TaskEntity
from taskboard.domain.enums import STATUS_LABELS, Company, TaskStatus

COMPANY_COLORS = {
    Company.FOAN.value: "#34D399",
    Company.MUNCHO.value: "#60A5FA",
    Company.MARKETING_O.value: "#C084FC",
    Company.PERSONAL.value: "#F59E0B",
}

IMPORTANCE_COLORS = {
    "Low": "#7CC4A1",
    "Medium": "#E0B25B",
    "High": "#E57B63",
    "Critical": "#E24A4A",
}


def _task_id_from_mime(mime: QMimeData) -> str | None:
    if not mime.hasText():
        return None
    text = mime.text()
    if not text.startswith("task:"):
        return None
    task_id = text.split(":", 1)[1]
    return task_id or None


def _start_task_drag(widget: QListWidget) -> None:
    item = widget.currentItem()
    if not item:
        return
    task_id = item.data(Qt.UserRole)
    if not task_id:
        return
    mime = QMimeData()
    mime.setText(f"task:{task_id}")
    drag = QDrag(widget)
    drag.setMimeData(mime)
    drag.exec(Qt.MoveAction)


class TaskItemWidget(QWidget):
    def __init__(self, task: TaskEntity):
        super().__init__()
        self.task = task

        self.setObjectName("TaskCard")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)
        self.setMinimumHeight(64)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(4)

        title_text = task.title.strip() if task.title else "Untitled"
        title = QLabel(title_text)
        title.setProperty("class", "task-title")
        title.setWordWrap(True)
        title.setMinimumWidth(0)
        title.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)

        meta_parts = [f"Due: {task.due_date.strftime('%d.%m.%Y')}"]
        meta_parts.append(f"Week {task.week}" if task.week else "Backlog")
        if task.subtasks:
            meta_parts.append(f"Subtasks: {task.completed_subtasks}/{len(task.subtasks)}")
        if task.comments:
            meta_parts.append(f"Comments: {len(task.comments)}")
        if task.attachments:
            meta_parts.append(f"Files: {len(task.attachments)}")
        status_value = task.status.value if hasattr(task.status, "value") else str(task.status or "")
        meta_parts.append(STATUS_LABELS.get(status_value, status_value))

        meta = QLabel(" | ".join(meta_parts))
        meta.setProperty("class", "task-meta")
        meta.setWordWrap(True)
        meta.setMinimumWidth(0)
        meta.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)

        company_value = str(task.company)
        company = QLabel(company_value)
        company.setProperty("class", "task-priority")
        company.setStyleSheet(f"background-color: {COMPANY_COLORS.get(company_value, '#9CA3AF')};")
        company.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Fixed)

        header = QHBoxLayout()
        header.setSpacing(8)
        header.addWidget(title, 1)
        header.addWidget(company, 0, Qt.AlignTop)
        if task.importance:
            importance = QLabel(str(task.importance))
            importance.setProperty("class", "task-priority")
            importance.setStyleSheet(
                f"background-color: {IMPORTANCE_COLORS.get(str(task.importance), '#9CA3AF')};"
            )
            header.addWidget(importance, 0, Qt.AlignTop)

        layout.addLayout(header)
        layout.addWidget(meta)

    def set_selected(self, selected: bool) -> None:
        self.setProperty("selected", selected)
        self.style().unpolish(self)
        self.style().polish(self)


class TaskItemContainer(QWidget):
    def __init__(self, task_widget: TaskItemWidget, h_margin: int = 12, parent=None):
        super().__init__(parent)
        self.task_widget = task_widget
        layout = QHBoxLayout(self)
        layout.setContentsMargins(h_margin, 0, h_margin, 0)
        layout.setSpacing(0)
        layout.addWidget(task_widget)

    @property
    def task(self) -> TaskEntity:
        return self.task_widget.task

    def set_selected(self, selected: bool) -> None:
        self.task_widget.set_selected(selected)


class SubtaskItemWidget(QWidget):
    def __init__(self, subtask: Subtask, on_toggle, on_text_update, on_delete, parent=None):
        super().__init__(parent)
        self.subtask_id = subtask.id
        self._text_value = subtask.text
        self._on_toggle = on_toggle
        self._on_text_update = on_text_update
        self._on_delete = on_delete

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self.done_check = QCheckBox()
        self.done_check.setChecked(subtask.completed)
        self.done_check.toggled.connect(self._handle_toggle)

        self.text_input = QLineEdit(subtask.text)
        self.text_input.setPlaceholderText("Subtask")
        self.text_input.editingFinished.connect(self._handle_text_commit)

        self.delete_button = QPushButton("Remove")
        self.delete_button.setProperty("variant", "ghost")
        self.delete_button.clicked.connect(self._handle_delete)

        layout.addWidget(self.done_check)
        layout.addWidget(self.text_input, 1)
        layout.addWidget(self.delete_button)

    def _handle_toggle(self, checked: bool) -> None:
        self._on_toggle(self.subtask_id)

    def _handle_text_commit(self) -> None:
        text = self.text_input.text().strip()
        if not text:
            self.text_input.setText(self._text_value)
            return
        if text != self._text_value:
            self._text_value = text
            self._on_text_update(self.subtask_id, text)

    def _handle_delete(self) -> None:
        self._on_delete(self.subtask_id)


class _CardListMixin:
    _h_margin = 12
    _v_margin = 8

    def _update_viewport_margins(self) -> None:
        scrollbar_width = self.verticalScrollBar().width() or self.verticalScrollBar().sizeHint().width()
        right_margin = self._h_margin + (scrollbar_width if self.verticalScrollBar().isVisible() else 0)
        self.setViewportMargins(self._h_margin, self._v_margin, right_margin, self._v_margin)

    def sync_item_sizes(self) -> None:
        self._update_viewport_margins()
        viewport_width = self.viewport().width()
        for index in range(self.count()):
            item = self.item(index)
            widget = self.itemWidget(item)
            if widget:
                widget.setMinimumWidth(viewport_width)
                widget.setMaximumWidth(viewport_width)
                widget.adjustSize()
                hint = widget.sizeHint()
                item.setSizeHint(QSize(viewport_width, hint.height()))
                widget.resize(viewport_width, hint.height())


class TaskListWidget(_CardListMixin, QListWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragOnly)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self._update_viewport_margins()

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.sync_item_sizes()

    def startDrag(self, supportedActions: Qt.DropActions) -> None:  # type: ignore[name-defined]
        _start_task_drag(self)


class _TaskDropMixin:
    """Accepts drags that carry a task id and hands drops to ``_drop_task``."""

    def dragEnterEvent(self, event) -> None:  # type: ignore[override]
        if _task_id_from_mime(event.mimeData()) is not None:
            event.acceptProposedAction()

    dragMoveEvent = dragEnterEvent

    def dropEvent(self, event) -> None:  # type: ignore[override]
        task_id = _task_id_from_mime(event.mimeData())
        if task_id is not None and self._drop_task(task_id, event):
            event.acceptProposedAction()

    def _drop_task(self, task_id: str, event) -> bool:
        raise NotImplementedError


class ViewListWidget(_TaskDropMixin, QListWidget):
    """Sidebar list; dropping a task on a week or status entry moves it there."""

    def __init__(self, on_drop_view, parent=None):
        super().__init__(parent)
        self._on_drop_view = on_drop_view
        self.setAcceptDrops(True)

    def _drop_task(self, task_id: str, event) -> bool:
        pos = event.position().toPoint() if hasattr(event, "position") else event.pos()
        item = self.itemAt(pos)
        return item is not None and bool(self._on_drop_view(task_id, item.data(Qt.UserRole)))


class KanbanListWidget(_TaskDropMixin, _CardListMixin, QListWidget):
    _v_margin = 10

    def __init__(self, status: TaskStatus, on_drop_status, parent=None):
        super().__init__(parent)
        self.status = status
        self._on_drop_status = on_drop_status
        self.setAcceptDrops(True)
        self.setDragEnabled(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self._update_viewport_margins()

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.sync_item_sizes()

    def startDrag(self, supportedActions: Qt.DropActions) -> None:  # type: ignore[name-defined]
        _start_task_drag(self)

    def _drop_task(self, task_id: str, event) -> bool:
        if event.source() is self:
            return False
        self._on_drop_status(task_id, self.status)
        return True
