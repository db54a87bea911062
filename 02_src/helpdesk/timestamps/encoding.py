"""Timestamp encodings used by the store.

New rows are always written as canonical UTC text. Legacy rows may hold
reference-offset wall-clock text with no offset marker; see backfill.py.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Protocol, TypeVar

CANONICAL_FORMAT = "%Y-%m-%d %H:%M:%S"
DISPLAY_FORMAT = "%d/%m/%Y, %H.%M.%S"
DEFAULT_OFFSET_HOURS = 7

_STRICT_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}(\.\d+)?Z?$")
_LENIENT_SPLIT = re.compile(r"[-:\sT]+")
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def reference_zone(offset_hours: int = DEFAULT_OFFSET_HOURS) -> timezone:
    """Fixed-offset zone used for local wall-clock values."""
    return timezone(timedelta(hours=offset_hours))


class ReferenceClock:
    """Current time in the pipeline-wide reference offset."""

    def __init__(self, offset_hours: int = DEFAULT_OFFSET_HOURS):
        self._zone = reference_zone(offset_hours)

    @property
    def zone(self) -> timezone:
        return self._zone

    def now(self) -> datetime:
        return datetime.now(self._zone)


def to_storage(moment: datetime) -> str:
    """Serialize an aware datetime as canonical UTC text."""
    if moment.tzinfo is None:
        raise ValueError("Refusing to store a naive datetime")
    return moment.astimezone(timezone.utc).strftime(CANONICAL_FORMAT)


def parse_utc(raw: str | None) -> datetime | None:
    """Strict parse of zero-padded UTC text. None when it does not match."""
    if not raw:
        return None
    text = raw.strip()
    if not _STRICT_UTC.match(text):
        return None
    try:
        parsed = datetime.fromisoformat(text.rstrip("Z").replace(" ", "T"))
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def parse_local(
    raw: str | None, offset_hours: int = DEFAULT_OFFSET_HOURS
) -> datetime | None:
    """Lenient parse of reference-offset wall-clock text, returned in UTC."""
    if not raw:
        return None
    parts = _LENIENT_SPLIT.split(raw.strip().rstrip("Z"))
    if len(parts) < 6:
        return None
    try:
        year, month, day, hour, minute = (int(p) for p in parts[:5])
        second = int(parts[5].split(".")[0])
        local = datetime(
            year, month, day, hour, minute, second, tzinfo=reference_zone(offset_hours)
        )
        return local.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_stored(raw: str | None) -> datetime | None:
    """Read-path parse: stored values are canonical UTC."""
    return parse_utc(raw)


def format_display(
    moment: datetime | None, offset_hours: int = DEFAULT_OFFSET_HOURS
) -> str | None:
    """Render a stored instant in the reference offset for operators."""
    if moment is None:
        return None
    return moment.astimezone(reference_zone(offset_hours)).strftime(DISPLAY_FORMAT)


def epoch_ms(moment: datetime | None) -> int | None:
    if moment is None:
        return None
    return int(moment.timestamp() * 1000)


class _Timestamped(Protocol):
    id: int
    created_at: datetime | None


T = TypeVar("T", bound=_Timestamped)


def chronological(rows: Iterable[T], reverse: bool = False) -> list[T]:
    """
    Order rows by (created_at, id).

    Rows with an unparseable created_at take the timestamp of the nearest
    lower-id row that has one, so they keep their id position instead of
    taking part in time comparison.
    """
    rows = list(rows)
    effective: dict[int, datetime] = {}
    last_known = _EARLIEST
    for row in sorted(rows, key=lambda r: r.id):
        if row.created_at is not None:
            last_known = row.created_at
        effective[row.id] = row.created_at or last_known
    return sorted(rows, key=lambda r: (effective[r.id], r.id), reverse=reverse)

