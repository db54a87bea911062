"""Timestamp encoding, display and legacy reconciliation."""

from .backfill import (
    Decision,
    Interpretation,
    TableReport,
    decide,
    reconcile_all,
    reconcile_table,
)
from .encoding import (
    CANONICAL_FORMAT,
    DISPLAY_FORMAT,
    ReferenceClock,
    chronological,
    epoch_ms,
    format_display,
    parse_local,
    parse_stored,
    parse_utc,
    reference_zone,
    to_storage,
)

__all__ = [
    "CANONICAL_FORMAT",
    "DISPLAY_FORMAT",
    "ReferenceClock",
    "reference_zone",
    "to_storage",
    "parse_utc",
    "parse_local",
    "parse_stored",
    "format_display",
    "epoch_ms",
    "chronological",
    "Interpretation",
    "Decision",
    "TableReport",
    "decide",
    "reconcile_table",
    "reconcile_all",
]
