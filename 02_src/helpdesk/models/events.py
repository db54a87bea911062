"""Inbound chat events delivered by the transport.

An event is one of three variants. Media is fetched lazily through a
loader so the pipeline can persist the inbound row before downloading.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Union


@dataclass(frozen=True)
class MediaPayload:
    """Downloaded media content."""

    mime_type: str
    data: bytes
    filename: str | None = None


MediaLoader = Callable[[], Awaitable[MediaPayload]]


@dataclass(frozen=True)
class TextMessage:
    """A plain text message."""

    message_id: str
    sender_id: str
    from_me: bool
    text: str

    @property
    def raw_text(self) -> str | None:
        return self.text

    @property
    def has_media(self) -> bool:
        return False


@dataclass(frozen=True)
class MediaMessage:
    """A media message without a caption."""

    message_id: str
    sender_id: str
    from_me: bool
    load_media: MediaLoader

    @property
    def raw_text(self) -> str | None:
        return None

    @property
    def has_media(self) -> bool:
        return True


@dataclass(frozen=True)
class TextWithMediaMessage:
    """A media message with a caption."""

    message_id: str
    sender_id: str
    from_me: bool
    text: str
    load_media: MediaLoader

    @property
    def raw_text(self) -> str | None:
        return self.text

    @property
    def has_media(self) -> bool:
        return True


InboundEvent = Union[TextMessage, MediaMessage, TextWithMediaMessage]


def build_event(
    message_id: str,
    sender_id: str,
    from_me: bool,
    body: str | None,
    load_media: MediaLoader | None = None,
) -> InboundEvent:
    """Pick the event variant from the body and media presence."""
    if load_media is None:
        return TextMessage(message_id, sender_id, from_me, body or "")
    if body:
        return TextWithMediaMessage(message_id, sender_id, from_me, body, load_media)
    return MediaMessage(message_id, sender_id, from_me, load_media)
