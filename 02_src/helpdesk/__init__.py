"""Helpdesk bridge core module."""

from .app import Application, IApplication
from .attachments import AttachmentStore
from .gate import ExclusionList, GateDecision, IExclusionList, KeywordGate, RejectReason
from .inbox import InboxService, ThreadView
from .llm import ILLMProvider, LLMProvider
from .models import (
    Attachment,
    AttachmentKind,
    Direction,
    InboundEvent,
    MediaMessage,
    Message,
    Status,
    TextMessage,
    TextWithMediaMessage,
    TraceEvent,
)
from .pipeline import AutoReplyOrchestrator, IntakePipeline, ReplyDispatcher
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transport import HttpTransport, ITransport

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Message",
    "Attachment",
    "AttachmentKind",
    "Direction",
    "Status",
    "InboundEvent",
    "TextMessage",
    "MediaMessage",
    "TextWithMediaMessage",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "IExclusionList",
    "ExclusionList",
    "KeywordGate",
    "GateDecision",
    "RejectReason",
    "AttachmentStore",
    "ITransport",
    "HttpTransport",
    "ILLMProvider",
    "LLMProvider",
    "ReplyDispatcher",
    "AutoReplyOrchestrator",
    "IntakePipeline",
    "InboxService",
    "ThreadView",
]
