"""Inbound gate module."""

from .exclusions import ExclusionList, IExclusionList
from .gate import GateDecision, KeywordGate, RejectReason, normalize_text

__all__ = [
    "ExclusionList",
    "IExclusionList",
    "GateDecision",
    "KeywordGate",
    "RejectReason",
    "normalize_text",
]
