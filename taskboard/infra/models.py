from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text

from taskboard.domain.entities import utcnow

from .db import Base


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    task_id = Column(String(64), nullable=False, unique=True, index=True)
    title = Column(String(200), nullable=False, default="")
    description = Column(Text, nullable=True)
    company = Column(String(40), nullable=False, default="Foan")
    week = Column(Integer, nullable=True, index=True)
    status = Column(String(20), nullable=False, default="todo", index=True)
    assignees = Column(JSON, nullable=False, default=list)
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=False)
    difficulty = Column(String(20), nullable=True)
    importance = Column(String(20), nullable=True)
    comments = Column(JSON, nullable=False, default=list)
    subtasks = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    activity_log = Column(JSON, nullable=False, default=list)
    is_backlog = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
