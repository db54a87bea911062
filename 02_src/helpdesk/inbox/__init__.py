"""Operator inbox module."""

from .service import InboxService, ThreadView

__all__ = ["InboxService", "ThreadView"]
