from __future__ import annotations

import logging
import sys
from pathlib import Path

from PySide6.QtCore import QDir
from PySide6.QtGui import QColor, QFont, QIcon, QPalette
from PySide6.QtWidgets import QApplication, QMessageBox, QStyleFactory
from sqlalchemy.exc import SQLAlchemyError

from taskboard.config import PROJECT_ROOT
from taskboard.infra.db import create_schema, init_db
from taskboard.infra.logging import setup_logging
from taskboard.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


DARK_PALETTE = {
    QPalette.Window: "#191919",
    QPalette.WindowText: "#E6E6E6",
    QPalette.Base: "#252525",
    QPalette.AlternateBase: "#2D2D2D",
    QPalette.Text: "#E6E6E6",
    QPalette.Button: "#2D2D2D",
    QPalette.ButtonText: "#E6E6E6",
    QPalette.ToolTipBase: "#252525",
    QPalette.ToolTipText: "#E6E6E6",
    QPalette.Highlight: "#2563EB",
    QPalette.HighlightedText: "#FFFFFF",
}


def _apply_dark_palette(app: QApplication) -> None:
    palette = QPalette()
    for role, color in DARK_PALETTE.items():
        palette.setColor(role, QColor(color))
    app.setPalette(palette)


def _find_qss_path() -> Path | None:
    candidates = [
        Path(__file__).resolve().parent / "ui" / "styles.qss",
        PROJECT_ROOT / "taskboard" / "ui" / "styles.qss",
        Path.cwd() / "taskboard" / "ui" / "styles.qss",
    ]
    if getattr(sys, "frozen", False):
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            candidates.append(Path(meipass) / "taskboard" / "ui" / "styles.qss")

    for path in candidates:
        if path.exists():
            return path
    return None


def load_styles(app: QApplication) -> None:
    qss_path = _find_qss_path()
    if not qss_path:
        return
    assets_dir = qss_path.parent / "assets"
    if assets_dir.exists():
        QDir.addSearchPath("assets", str(assets_dir.resolve()))
        icon_path = assets_dir / "taskboard.png"
        if icon_path.exists():
            app.setWindowIcon(QIcon(str(icon_path)))
    app.setStyleSheet(qss_path.read_text(encoding="utf-8"))


def main() -> None:
    setup_logging()
    try:
        init_db()
        create_schema()
    except SQLAlchemyError as exc:
        logger.exception("Database is not reachable")
        app = QApplication(sys.argv)
        QMessageBox.critical(None, "DB error", str(exc))
        return

    app = QApplication(sys.argv)
    app.setStyle(QStyleFactory.create("Fusion"))
    _apply_dark_palette(app)
    app.setFont(QFont("Segoe UI", 10))
    load_styles(app)

    window = MainWindow()
    if app.windowIcon():
        window.setWindowIcon(app.windowIcon())
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
