from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from taskboard.domain.entities import Actor
from taskboard.domain.enums import UserRole


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    attachments_dir: str = "attachments"
    user_name: str = "User"
    user_role: str = UserRole.ADMIN.value
    user_id: str = "local"
    board_year: int = 2026
    board_month: int = 1

    def actor(self) -> Actor:
        try:
            role = UserRole(self.user_role)
        except ValueError:
            role = UserRole.VIEWER
        return Actor(name=self.user_name, role=role, user_id=self.user_id)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.isdigit() else default


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip() or f"sqlite:///{PROJECT_ROOT / 'taskboard.db'}"

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    attachments_dir=os.getenv("ATTACHMENTS_DIR", "attachments"),
    user_name=os.getenv("APP_USER_NAME", "User").strip() or "User",
    user_role=os.getenv("APP_USER_ROLE", UserRole.ADMIN.value).strip().lower(),
    user_id=os.getenv("APP_USER_ID", "local"),
    board_year=_env_int("BOARD_YEAR", 2026),
    board_month=_env_int("BOARD_MONTH", 1),
)
