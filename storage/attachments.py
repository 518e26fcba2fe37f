"""
Attachment store — a local bucket directory.

Files are stored as `<uuid4>.<ext>` and addressed by URL; only the URL's last
path segment matters when deleting.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from core.db import StorageError

logger = logging.getLogger(__name__)


class AttachmentStore:
    def __init__(self, root: Path, base_url: str = ""):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _url_for(self, name: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{name}"
        return (self.root / name).resolve().as_uri()

    def upload(self, filename: str, data: bytes) -> str:
        """Store `data` under a fresh name keeping the extension of `filename`; returns its URL."""
        ext = Path(filename).suffix
        name = f"{uuid.uuid4()}{ext}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / name).write_bytes(data)
        except OSError as e:
            logger.error("Attachment upload failed: %s", e)
            raise StorageError(f"Attachment upload failed: {e}") from e
        logger.info("Stored attachment %s (%d bytes)", name, len(data))
        return self._url_for(name)

    def path_for(self, url: str) -> Optional[Path]:
        name = url.split("/")[-1] if url else ""
        if not name:
            return None
        return self.root / name

    def delete(self, url: str) -> None:
        path = self.path_for(url)
        if path is None:
            logger.warning("Could not extract a file name from attachment URL %r", url)
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Attachment delete failed: %s", e)
            raise StorageError(f"Attachment delete failed: {e}") from e
