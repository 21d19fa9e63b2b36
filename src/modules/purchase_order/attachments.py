"""Local file storage for purchase-order attachments."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from src.config import settings
from src.exceptions import UpstreamException, ValidationException

logger = logging.getLogger(__name__)


class LocalAttachmentStorage:
    """Write uploads under ``upload_dir`` and hand back a public path.

    The returned reference is opaque to the rest of the service; orders only
    store the string.
    """

    def __init__(self, upload_dir: str | Path | None = None, url_prefix: str | None = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.url_prefix = (url_prefix or settings.upload_url_prefix).rstrip("/")

    def save(self, filename: str, content: bytes) -> str:
        if not content:
            raise ValidationException(
                "Uploaded file is empty", details=[{"field": "attachment", "message": "empty"}]
            )

        # Keep word chars, hyphens and dots; replace everything else
        raw_name = Path(filename or "").name
        safe_name = re.sub(r"[^\w\-.]", "_", raw_name).strip("_.") or "attachment"
        stored_name = f"{int(time.time() * 1000)}-{safe_name}"
        dest = self.upload_dir / stored_name

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(content)
        except OSError as exc:
            logger.warning("Attachment write to %s failed: %s", dest, exc)
            raise UpstreamException("Could not store attachment") from exc

        logger.info("Attachment stored: %s (%d bytes)", dest, len(content))
        return f"{self.url_prefix}/{stored_name}"

    def discard(self, path: str) -> None:
        """Remove a file previously returned by ``save``; unknown paths are ignored."""
        stored_name = Path(path).name
        if not stored_name:
            return
        try:
            (self.upload_dir / stored_name).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not discard attachment %s: %s", path, exc)


def get_attachment_storage() -> LocalAttachmentStorage:
    """FastAPI dependency returning the configured storage."""
    return LocalAttachmentStorage()
