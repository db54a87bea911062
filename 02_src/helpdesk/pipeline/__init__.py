"""Inbound intake and reply pipeline."""

from .autoreply import (
    FALLBACK_REPLY,
    AutoReply,
    AutoReplyOrchestrator,
    build_prompt,
    salutation,
)
from .dispatcher import ReplyDispatcher, SendResult
from .intake import IntakeOutcome, IntakePipeline

__all__ = [
    "FALLBACK_REPLY",
    "AutoReply",
    "AutoReplyOrchestrator",
    "build_prompt",
    "salutation",
    "ReplyDispatcher",
    "SendResult",
    "IntakeOutcome",
    "IntakePipeline",
]
