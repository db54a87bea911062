"""One-time reconciliation of legacy created_at values.

Older rows were written as reference-offset wall-clock text without an
offset marker, newer ones as UTC. For each stored value two readings are
computed and the row is only rewritten when one of them is clearly right.
Anything else is left untouched and flagged for operator review.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Protocol

from ..errors import PersistenceFailure
from ..logging_config import get_logger
from .encoding import DEFAULT_OFFSET_HOURS, parse_local, parse_utc, to_storage

logger = get_logger(__name__)

FUTURE_TOLERANCE = timedelta(hours=1)
STALE_AFTER = timedelta(days=365)
TABLES = ("messages", "attachments")


class Interpretation(str, Enum):
    """Which reading of a raw value was chosen."""

    LOCAL = "local"
    UTC = "utc"


@dataclass(frozen=True)
class Decision:
    """Outcome of the heuristic for a single raw value."""

    source: Interpretation | None
    value: datetime | None = None
    ambiguous: bool = False

    @property
    def resolved(self) -> bool:
        return self.source is not None


def decide(
    raw: str | None,
    now: datetime,
    offset_hours: int = DEFAULT_OFFSET_HOURS,
) -> Decision:
    """
    Decide how a stored created_at value should be read.

    Rules, first match wins:
      a. UTC reading more than an hour in the future and the local reading
         closer to now: the row is local time.
      b. Local reading more than a year away while the UTC reading is not:
         the row is already UTC.
      c. Only the lenient local parse succeeds: the row is local time.
      d. Otherwise leave it. The row is flagged ambiguous when no reading
         parses or the local one is out of datetime range, and when a
         future UTC reading was not explained by rule a.
    """
    as_utc = parse_utc(raw)
    as_local = parse_local(raw, offset_hours)

    if as_utc is None and as_local is None:
        return Decision(None, ambiguous=True)

    if (
        as_utc is not None
        and as_local is not None
        and as_utc > now + FUTURE_TOLERANCE
        and abs(as_local - now) < abs(as_utc - now)
    ):
        return Decision(Interpretation.LOCAL, as_local)

    if (
        as_local is not None
        and as_utc is not None
        and abs(as_local - now) > STALE_AFTER
        and abs(as_utc - now) <= STALE_AFTER
    ):
        return Decision(Interpretation.UTC, as_utc)

    if as_utc is None and as_local is not None:
        return Decision(Interpretation.LOCAL, as_local)

    future_utc = as_utc is not None and as_utc > now + FUTURE_TOLERANCE
    return Decision(None, ambiguous=future_utc or as_local is None)


class ITimestampStore(Protocol):
    """The slice of storage the backfill needs."""

    async def list_created_at(self, table: str) -> list[tuple[int, str | None]]:
        ...

    async def set_created_at(self, table: str, row_id: int, value: str) -> None:
        ...


class IAuditTrail(Protocol):
    async def track(self, event_type: str, actor: str, data: dict) -> None:
        ...


@dataclass
class TableReport:
    """Counts for one reconciled table."""

    table: str
    scanned: int = 0
    converted: int = 0
    unchanged: int = 0
    ambiguous: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


async def reconcile_table(
    store: ITimestampStore,
    table: str,
    now: datetime | None = None,
    offset_hours: int = DEFAULT_OFFSET_HOURS,
    tracker: IAuditTrail | None = None,
) -> TableReport:
    """Walk a table row by row and rewrite confidently resolved values."""
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")
    now = now or datetime.now(timezone.utc)
    report = TableReport(table=table)

    rows = await store.list_created_at(table)
    for row_id, raw in rows:
        report.scanned += 1
        decision = decide(raw, now, offset_hours)

        if not decision.resolved:
            report.unchanged += 1
            if decision.ambiguous:
                report.ambiguous.append(row_id)
                logger.warning(
                    "Ambiguous created_at left unchanged",
                    extra={"context": {"table": table, "id": row_id, "raw": raw}},
                )
                if tracker:
                    await tracker.track(
                        "timestamp_ambiguous",
                        "reconciler",
                        {"table": table, "id": row_id, "raw": raw},
                    )
            continue

        canonical = to_storage(decision.value)
        if canonical == raw:
            report.unchanged += 1
            continue

        try:
            await store.set_created_at(table, row_id, canonical)
        except PersistenceFailure as e:
            report.failed.append(row_id)
            logger.error("Failed to rewrite %s.%s: %s", table, row_id, e)
            continue

        report.converted += 1
        logger.debug(
            "Rewrote %s.%s from %s (%s) to %s",
            table,
            row_id,
            raw,
            decision.source.value,
            canonical,
        )

    logger.info(
        "Reconciled %s: %s converted, %s unchanged, %s ambiguous, %s failed",
        table,
        report.converted,
        report.unchanged,
        len(report.ambiguous),
        len(report.failed),
    )
    return report


async def reconcile_all(
    store: ITimestampStore,
    now: datetime | None = None,
    offset_hours: int = DEFAULT_OFFSET_HOURS,
    tracker: IAuditTrail | None = None,
) -> list[TableReport]:
    """Reconcile messages, then attachments, against the same 'now'."""
    now = now or datetime.now(timezone.utc)
    return [
        await reconcile_table(store, table, now, offset_hours, tracker)
        for table in TABLES
    ]
