"""Media files on disk plus their attachment rows."""

import asyncio
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..errors import AttachmentIOFailure, PersistenceFailure
from ..logging_config import get_logger
from ..models import Attachment, AttachmentKind
from ..storage import IStorage

logger = get_logger(__name__)

MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}
EXTENSION_BY_MIME = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}
DEFAULT_MIME = "application/octet-stream"
URL_PREFIX = "/uploads/"

_WHITESPACE = re.compile(r"\s+")


def guess_mime(path: str | Path) -> str:
    """Infer a mime type from the file extension."""
    return MIME_BY_EXTENSION.get(Path(path).suffix.lower(), DEFAULT_MIME)


def extension_for(mime_type: str | None) -> str:
    return EXTENSION_BY_MIME.get((mime_type or "").lower(), "bin")


def sanitize_filename(name: str) -> str:
    """Drop directory parts and replace whitespace runs with underscores."""
    return _WHITESPACE.sub("_", Path(name.strip()).name)


@dataclass(frozen=True)
class UploadedFile:
    """A file placed in the uploads directory by an operator."""

    path: str
    filename: str
    mime_type: str
    url: str
    size_bytes: int


class AttachmentStore:
    """Persists media under the uploads root and records attachment rows."""

    def __init__(self, storage: IStorage, uploads_dir: str | Path):
        self._storage = storage
        self._uploads_dir = Path(uploads_dir)

    @property
    def uploads_dir(self) -> Path:
        return self._uploads_dir

    def url_for(self, path: str | Path) -> str:
        return URL_PREFIX + Path(path).name

    def is_managed(self, path: str | Path) -> bool:
        """True when the path resolves inside the uploads root."""
        return Path(path).resolve().is_relative_to(self._uploads_dir.resolve())

    def resolve_upload(self, path: str | Path) -> Path:
        """
        Resolve an operator-supplied path to an existing file in the uploads root.

        Raises AttachmentIOFailure for paths outside the root and missing files.
        """
        resolved = Path(path).resolve()
        if not self.is_managed(resolved):
            raise AttachmentIOFailure(f"Not in the uploads directory: {path}")
        if not resolved.is_file():
            raise AttachmentIOFailure(f"File not found: {path}")
        return resolved

    async def save(
        self,
        message_id: int,
        data: bytes,
        mime_type: str,
        filename: str | None = None,
        source_id: str | None = None,
    ) -> Attachment:
        """
        Write media for a message and record it.

        The file is named <epoch-ms>_<name>; without an original filename
        the name is built from the source message id and the mime type.
        """
        name = filename or f"{source_id or uuid.uuid4().hex}.{extension_for(mime_type)}"
        path = await self._write(name, data)

        try:
            attachment = await self._storage.insert_attachment(
                message_id=message_id,
                kind=AttachmentKind.from_mime(mime_type),
                path=str(path),
                mime_type=mime_type,
                size_bytes=len(data),
            )
        except PersistenceFailure:
            try:
                await asyncio.to_thread(path.unlink, missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove unrecorded file %s: %s", path, e)
            raise
        logger.info("Saved attachment %s for message %s", path.name, message_id)
        return attachment

    async def record(
        self,
        message_id: int,
        path: str | Path,
        mime_type: str | None = None,
    ) -> Attachment:
        """Record an existing file in the uploads root (operator-sent media)."""
        file_path = self.resolve_upload(path)
        try:
            size = (await asyncio.to_thread(file_path.stat)).st_size
        except OSError as e:
            raise AttachmentIOFailure(f"Cannot read {file_path}: {e}") from e

        mime_type = mime_type or guess_mime(file_path)
        return await self._storage.insert_attachment(
            message_id=message_id,
            kind=AttachmentKind.from_mime(mime_type),
            path=str(file_path),
            mime_type=mime_type,
            size_bytes=size,
        )

    async def store_upload(self, filename: str, data: bytes) -> UploadedFile:
        """Place an operator upload in the uploads root without a row."""
        path = await self._write(filename or "upload", data)
        return UploadedFile(
            path=str(path),
            filename=path.name,
            mime_type=guess_mime(path),
            url=self.url_for(path),
            size_bytes=len(data),
        )

    async def list_by_message(self, message_id: int) -> list[Attachment]:
        """Attachments of a message, oldest first."""
        return await self._storage.list_attachments(message_id)

    async def delete_all_for_message(self, message_id: int) -> int:
        """
        Best-effort removal of a message's files before its row is deleted.

        Missing files are skipped and unlink failures are logged. Paths
        outside the uploads root are never unlinked. Returns the number of
        files removed.
        """
        removed = 0
        for attachment in await self._storage.list_attachments(message_id):
            path = Path(attachment.storage_path)
            if not self.is_managed(path):
                logger.warning("Not removing file outside uploads: %s", path)
                continue
            try:
                await asyncio.to_thread(path.unlink)
                removed += 1
            except FileNotFoundError:
                logger.debug("Attachment file already gone: %s", path)
            except OSError as e:
                logger.warning("Could not remove attachment file %s: %s", path, e)
        return removed

    async def _write(self, name: str, data: bytes) -> Path:
        filename = f"{int(time.time() * 1000)}_{sanitize_filename(name)}"
        path = self._uploads_dir / filename
        try:
            await asyncio.to_thread(self._uploads_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            raise AttachmentIOFailure(f"Cannot write {path}: {e}") from e
        return path
