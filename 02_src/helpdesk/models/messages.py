"""Message and attachment data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Direction(str, Enum):
    """Which side of the conversation wrote the message."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Status(str, Enum):
    """Resolution state of a message. Only moves pending -> done."""

    PENDING = "pending"
    DONE = "done"


class AttachmentKind(str, Enum):
    """Attachment category derived from the mime type."""

    IMAGE = "image"
    FILE = "file"

    @classmethod
    def from_mime(cls, mime_type: str | None) -> "AttachmentKind":
        if mime_type and mime_type.lower().startswith("image/"):
            return cls.IMAGE
        return cls.FILE


@dataclass
class Message:
    """A single persisted chat message."""

    id: int
    conversation_id: str
    direction: Direction
    text: str | None
    status: Status
    auto_replied: bool
    created_at: datetime | None  # None when the stored value is unparseable


@dataclass
class Attachment:
    """A media file owned by a message."""

    id: int
    message_id: int
    kind: AttachmentKind
    storage_path: str
    mime_type: str
    size_bytes: int | None
    created_at: datetime | None
