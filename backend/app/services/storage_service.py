"""
Voice note storage on local disk.

Files live under `voice_notes_dir` and are served read-only at
`{public_base_url}/files/voice-notes/<path>`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath

from app.core.config import get_settings
from app.core.logging import get_logger
from app.domain.errors import UpstreamError, ValidationError

settings = get_settings()
logger = get_logger("services.storage")

PUBLIC_PREFIX = "/files/voice-notes"


class StorageService:
    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root or settings.voice_notes_dir).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve_path(self, relative_path: str) -> Path:
        """Map a relative path into the storage root, refusing absolute paths and `..` escapes."""
        raw = (relative_path or "").replace("\\", "/")
        candidate = PurePosixPath(raw)
        if not raw or candidate.is_absolute() or ".." in candidate.parts:
            raise ValidationError("Invalid file path", details={"path": relative_path})
        full_path = (self._root / Path(*candidate.parts)).resolve()
        if full_path != self._root and self._root not in full_path.parents:
            raise ValidationError("Invalid file path", details={"path": relative_path})
        return full_path

    def public_url(self, relative_path: str) -> str:
        return f"{settings.public_base_url.rstrip('/')}{PUBLIC_PREFIX}/{relative_path.lstrip('/')}"

    def _write(self, full_path: Path, content: bytes, upsert: bool) -> None:
        full_path.parent.mkdir(parents=True, exist_ok=True)
        if full_path.exists() and not upsert:
            raise FileExistsError(str(full_path))
        full_path.write_bytes(content)

    async def save_file(self, relative_path: str, content: bytes, *, upsert: bool = False) -> str:
        full_path = self.resolve_path(relative_path)
        try:
            await asyncio.to_thread(self._write, full_path, content, upsert)
        except FileExistsError as exc:
            raise UpstreamError(f"File already exists: {relative_path}", code="file_exists") from exc
        except OSError as exc:
            logger.error("voice_note_write_failed", path=relative_path, error=str(exc))
            raise UpstreamError("Failed to store voice note", details=str(exc)) from exc
        logger.info("voice_note_stored", path=relative_path, size=len(content))
        return self.public_url(relative_path)

    async def delete_file(self, relative_path: str) -> None:
        full_path = self.resolve_path(relative_path)
        await asyncio.to_thread(full_path.unlink, True)


storage_service = StorageService()
