"""Core data models for the helpdesk bridge."""

from .events import (
    InboundEvent,
    MediaLoader,
    MediaMessage,
    MediaPayload,
    TextMessage,
    TextWithMediaMessage,
    build_event,
)
from .messages import Attachment, AttachmentKind, Direction, Message, Status
from .tracing import TraceEvent

__all__ = [
    # Messages
    "Direction",
    "Status",
    "Message",
    "AttachmentKind",
    "Attachment",
    # Inbound events
    "InboundEvent",
    "TextMessage",
    "MediaMessage",
    "TextWithMediaMessage",
    "MediaPayload",
    "MediaLoader",
    "build_event",
    # Tracing
    "TraceEvent",
]
