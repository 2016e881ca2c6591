from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QFrame,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from taskboard.domain.changelog import ACTION_FILTERS, action_kind, group_by_date
from taskboard.services.task_service import TaskService

ACTION_MARKERS = {
    "created": "+",
    "moved": ">",
    "assigned": "@",
    "changed": "~",
    "deleted": "-",
    "completed": "v",
    "comment": '"',
    "other": "*",
}


def _make_table(headers: list[str], rows: list[list[str]]) -> QTableWidget:
    table = QTableWidget(len(rows), len(headers))
    table.setObjectName("StatsTable")
    for col, label in enumerate(headers):
        item = QTableWidgetItem(label)
        align = Qt.AlignLeft | Qt.AlignVCenter if col == 0 else Qt.AlignCenter
        item.setTextAlignment(align)
        table.setHorizontalHeaderItem(col, item)
    table.verticalHeader().setVisible(False)
    table.setEditTriggers(QTableWidget.NoEditTriggers)
    table.setSelectionMode(QTableWidget.NoSelection)
    table.setAlternatingRowColors(True)
    header = table.horizontalHeader()
    header.setSectionResizeMode(0, QHeaderView.Stretch)
    for col in range(1, len(headers)):
        header.setSectionResizeMode(col, QHeaderView.ResizeToContents)
    table.verticalHeader().setDefaultSectionSize(32)

    for row, values in enumerate(rows):
        for col, value in enumerate(values):
            item = QTableWidgetItem(value)
            item.setTextAlignment(Qt.AlignLeft | Qt.AlignVCenter if col == 0 else Qt.AlignCenter)
            table.setItem(row, col, item)
    return table


def _card(title: str, value: str, note: str = "") -> QFrame:
    card = QFrame()
    card.setObjectName("StatCard")
    layout = QVBoxLayout(card)
    caption = QLabel(title)
    caption.setProperty("class", "task-meta")
    number = QLabel(value)
    number.setStyleSheet("font-size: 22px; font-weight: 700;")
    layout.addWidget(caption)
    layout.addWidget(number)
    if note:
        hint = QLabel(note)
        hint.setProperty("class", "task-meta")
        layout.addWidget(hint)
    return card


class AnalyticsDialog(QDialog):
    def __init__(self, analytics: dict, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Task Analytics")
        self.resize(760, 560)

        summary = analytics["summary"]
        cards = QHBoxLayout()
        cards.addWidget(_card("Total Tasks", str(summary["total"])))
        cards.addWidget(_card("Tasks Done", str(summary["done"]), f"{summary['completion']}% completion"))
        cards.addWidget(
            _card(
                "Tasks Not Done",
                str(summary["not_done"]),
                f"{summary['in_progress']} in progress, {summary['review']} in review",
            )
        )

        weekly_rows = [
            [
                f"Week {row['week']}",
                str(row["total"]),
                str(row["completed"]),
                str(row["in_progress"]),
                str(row["review"]),
                str(row["todo"]),
                f"{row['completion']}%",
            ]
            for row in analytics["weekly"]
        ]
        weekly_table = _make_table(
            ["Week", "Total", "Completed", "In Progress", "In Review", "To Do", "Completion %"],
            weekly_rows,
        )

        company_rows = [[company, str(count)] for company, count in analytics["companies"].items()]
        company_table = _make_table(["Company", "Tasks"], company_rows)

        subtasks = analytics["subtasks"]
        subtask_table = _make_table(
            ["Subtasks", "Value"],
            [
                ["Total Subtasks", str(subtasks["total"])],
                ["Completed Subtasks", str(subtasks["completed"])],
                ["Completion Rate", f"{subtasks['completion']}%"],
            ],
        )

        bottom = QHBoxLayout()
        bottom.addWidget(company_table)
        bottom.addWidget(subtask_table)

        close_button = QPushButton("Close")
        close_button.clicked.connect(self.accept)
        buttons = QHBoxLayout()
        buttons.addStretch()
        buttons.addWidget(close_button)

        weekly_title = QLabel("Weekly Breakdown")
        weekly_title.setProperty("class", "section-title")

        layout = QVBoxLayout(self)
        layout.addLayout(cards)
        layout.addWidget(weekly_title)
        layout.addWidget(weekly_table)
        layout.addLayout(bottom)
        layout.addLayout(buttons)


class ChangelogDialog(QDialog):
    def __init__(self, service: TaskService, parent=None):
        super().__init__(parent)
        self.service = service
        self.setWindowTitle("Activity Changelog")
        self.resize(720, 640)

        self.action_combo = QComboBox()
        for label, key in ACTION_FILTERS:
            self.action_combo.addItem(label, key)
        self.action_combo.currentIndexChanged.connect(self.refresh)

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search task names...")
        self.search_input.textChanged.connect(self.refresh)

        clear_button = QPushButton("Clear All Filters")
        clear_button.setProperty("variant", "ghost")
        clear_button.clicked.connect(self.clear_filters)

        filters = QHBoxLayout()
        filters.addWidget(self.action_combo)
        filters.addWidget(self.search_input, 1)
        filters.addWidget(clear_button)

        self.count_label = QLabel("")
        self.count_label.setProperty("class", "task-meta")

        self.entries = QListWidget()
        self.entries.setObjectName("ChangelogList")
        self.entries.setWordWrap(True)

        layout = QVBoxLayout(self)
        layout.addLayout(filters)
        layout.addWidget(self.count_label)
        layout.addWidget(self.entries)

        self.refresh()

    def clear_filters(self) -> None:
        self.action_combo.setCurrentIndex(0)
        self.search_input.clear()

    def refresh(self) -> None:
        search = self.search_input.text().strip() or None
        items = self.service.get_changelog(action=self.action_combo.currentData(), search=search)
        total = len(self.service.get_changelog())
        self.count_label.setText(f"Showing {len(items)} of {total} activities")

        self.entries.clear()
        if not items:
            self.entries.addItem("No activity logs found")
            return

        for day, day_items in group_by_date(items).items():
            header = QListWidgetItem(day)
            header.setFlags(Qt.NoItemFlags)
            font = header.font()
            font.setBold(True)
            header.setFont(font)
            self.entries.addItem(header)
            for item in day_items:
                entry = item.entry
                marker = ACTION_MARKERS[action_kind(entry.action)]
                lines = [
                    f"{marker} {entry.user} {entry.action}",
                    f"   Task: {item.task_title} [{item.task_company}]  {entry.timestamp:%I:%M %p}",
                ]
                if entry.changes:
                    lines.append(
                        f"   {entry.changes.field}: {entry.changes.old_value} -> {entry.changes.new_value}"
                    )
                self.entries.addItem("\n".join(lines))


class CalendarDialog(QDialog):
    def __init__(self, service: TaskService, week: int, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Calendar - Week {week}")
        self.resize(900, 420)

        days = service.calendar_days(week)
        rows = [
            [
                f"{day:%A} {day.day}.{day.month:02d}",
                ", ".join(task.title or "Untitled" for task in tasks) or "-",
            ]
            for day, tasks in days
        ]
        table = _make_table(["Day", "Tasks"], rows)
        table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents)
        table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)

        close_button = QPushButton("Close")
        close_button.clicked.connect(self.accept)
        buttons = QHBoxLayout()
        buttons.addStretch()
        buttons.addWidget(close_button)

        layout = QVBoxLayout(self)
        layout.addWidget(table)
        layout.addLayout(buttons)
