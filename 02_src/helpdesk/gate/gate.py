"""Exclusion, length and keyword filter for inbound events."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..models import InboundEvent
from .exclusions import IExclusionList

_WHITESPACE = re.compile(r"\s+")


class RejectReason(str, Enum):
    """Why the gate dropped an event."""

    SELF_SENT = "self_sent"
    EXCLUDED = "excluded"
    TOO_LONG = "too_long"
    NO_KEYWORD = "no_keyword"


@dataclass(frozen=True)
class GateDecision:
    """Result of evaluating one inbound event."""

    proceed: bool
    normalized_text: str | None = None
    reason: RejectReason | None = None

    @classmethod
    def reject(cls, reason: RejectReason) -> "GateDecision":
        return cls(proceed=False, reason=reason)


def normalize_text(raw: str | None) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not raw:
        return ""
    return _WHITESPACE.sub(" ", raw).strip()


class KeywordGate:
    """Decides whether an inbound event is processed at all."""

    def __init__(
        self,
        exclusions: IExclusionList,
        keywords: Sequence[str] = (),
        max_length: int = 200,
    ):
        self._exclusions = exclusions
        self._keywords = [k.lower() for k in keywords if k.strip()]
        self._max_length = max_length

    @property
    def keywords(self) -> list[str]:
        return list(self._keywords)

    def evaluate(self, event: InboundEvent) -> GateDecision:
        """Apply the rules in order; the first rejection wins."""
        if event.from_me:
            return GateDecision.reject(RejectReason.SELF_SENT)

        if self._exclusions.contains(event.sender_id):
            return GateDecision.reject(RejectReason.EXCLUDED)

        normalized = normalize_text(event.raw_text)
        if len(normalized) > self._max_length:
            return GateDecision.reject(RejectReason.TOO_LONG)

        if self._keywords:
            lowered = normalized.lower()
            if not lowered or not any(k in lowered for k in self._keywords):
                return GateDecision.reject(RejectReason.NO_KEYWORD)

        return GateDecision(proceed=True, normalized_text=normalized or None)
