from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

from cms.core.config import settings

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Keeps uploaded bytes under the media directory.

    Stored paths are bare file names relative to that directory. When no
    directory is given the current ``settings.MEDIA_DIR`` is used on every
    call.
    """

    def __init__(self, media_dir: str | Path | None = None, base_url: str | None = None) -> None:
        self._media_dir = Path(media_dir) if media_dir is not None else None
        self._base_url = base_url

    @property
    def root(self) -> Path:
        return self._media_dir if self._media_dir is not None else Path(settings.MEDIA_DIR)

    def _resolve(self, stored_path: str) -> Path:
        root = self.root.resolve()
        candidate = (root / stored_path).resolve()
        if candidate.parent != root:
            raise ValueError(f"stored path escapes media directory: {stored_path!r}")
        return candidate

    def store(self, content: bytes, suggested_name: str) -> str:
        root = self.root
        root.mkdir(parents=True, exist_ok=True)
        extension = Path(suggested_name).suffix.lower()
        if not extension[1:].isalnum():
            extension = ""
        unique_name = f"{uuid4().hex}{extension}"
        destination = root / unique_name
        try:
            with destination.open("wb") as buffer:
                buffer.write(content)
        except OSError:
            destination.unlink(missing_ok=True)
            raise
        logger.debug(
            "Stored media file",
            extra={"event": "storage", "path": unique_name, "size": len(content)},
        )
        return unique_name

    def delete(self, stored_path: str) -> None:
        self._resolve(stored_path).unlink(missing_ok=True)

    def exists(self, stored_path: str) -> bool:
        return self._resolve(stored_path).exists()

    def url_for(self, stored_path: str) -> str:
        base = (self._base_url if self._base_url is not None else settings.MEDIA_BASE_URL).rstrip("/")
        if not base:
            return f"/{stored_path}"
        return f"{base}/{stored_path}"
