"""Audit trail data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single pipeline decision recorded for operator review."""

    id: str
    event_type: str  # e.g. "gate_rejected", "auto_reply_fallback"
    actor: str  # component that recorded it
    data: dict  # self-contained details for display
    timestamp: datetime
