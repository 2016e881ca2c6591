from __future__ import annotations

import logging
import mimetypes
import shutil
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from taskboard.domain.entities import Attachment
from taskboard.domain.errors import StorageError

logger = logging.getLogger(__name__)


class AttachmentStorage:
    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def upload(self, task_id: str, source: Path | str, uploaded_by: str) -> Attachment:
        source = Path(source)
        if not source.is_file():
            raise StorageError(f"File not found: {source}")

        moment = datetime.now(timezone.utc)
        stamp = int(moment.timestamp() * 1000)
        target = self.root / str(task_id) / f"{stamp}-{source.name}"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as exc:
            raise StorageError(f"Could not store {source.name}: {exc}") from exc

        mime_type, _ = mimetypes.guess_type(source.name)
        logger.info("Stored attachment %s for task %s", target.name, task_id)
        return Attachment(
            id=f"att_{stamp}",
            name=source.name,
            url=target.resolve().as_uri(),
            type=mime_type or "application/octet-stream",
            size=target.stat().st_size,
            uploaded_at=moment,
            uploaded_by=uploaded_by,
        )

    def path_for(self, attachment: Attachment) -> Path | None:
        parsed = urlparse(attachment.url)
        if parsed.scheme != "file":
            return None
        return Path(url2pathname(parsed.path))

    def delete(self, attachment: Attachment) -> None:
        path = self.path_for(attachment)
        if path is None:
            raise StorageError(f"Attachment {attachment.id} is not stored locally")
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not delete {attachment.name}: {exc}") from exc
        if path.parent.is_dir() and not any(path.parent.iterdir()):
            path.parent.rmdir()
