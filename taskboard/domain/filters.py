from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class TaskFilters:
    filter_key: str = "all"
    search: str | None = None
    company: str | None = None
    due_on: Optional[date] = None

    @classmethod
    def for_week(cls, week: int, **kwargs) -> TaskFilters:
        return cls(filter_key=f"week:{week}", **kwargs)

    @property
    def week(self) -> int | None:
        if not self.filter_key.startswith("week:"):
            return None
        try:
            return int(self.filter_key.split(":", 1)[1])
        except ValueError:
            return None
