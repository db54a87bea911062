"""SQLite storage implementation."""

import json
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import PersistenceFailure
from ..logging_config import get_logger
from ..models import (
    Attachment,
    AttachmentKind,
    Direction,
    Message,
    Status,
    TraceEvent,
)
from ..timestamps import ReferenceClock, chronological, parse_stored, to_storage

logger = get_logger(__name__)

_MESSAGE_COLUMNS = "id, conversation_id, direction, text, status, auto_replied, created_at"
_ATTACHMENT_COLUMNS = "id, message_id, kind, path, mime, size, created_at"
_TIMESTAMPED_TABLES = ("messages", "attachments")


class IStorage(Protocol):
    """Durable record of messages, attachments and trace events (SQLite)."""

    async def init(self, create_schema: bool = True) -> None:
        """Open the database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Messages
    async def insert_message(
        self,
        conversation_id: str,
        direction: Direction,
        text: str | None,
        status: Status = Status.PENDING,
        auto_replied: bool = False,
        created_at: datetime | None = None,
    ) -> int:
        """Insert a message and return its store-assigned id."""
        ...

    async def update_status(self, message_id: int, status: Status) -> bool:
        """Move a message to a new status. False when the id is unknown."""
        ...

    async def get_message(self, message_id: int) -> Message | None:
        """Get a message by id."""
        ...

    async def list_inbound(self) -> list[Message]:
        """All inbound messages, newest first."""
        ...

    async def get_thread(self, conversation_id: str) -> list[Message]:
        """All messages of a conversation, oldest first."""
        ...

    async def delete_message(self, message_id: int) -> bool:
        """Delete a message; attachment rows cascade."""
        ...

    # Attachments
    async def insert_attachment(
        self,
        message_id: int,
        kind: AttachmentKind,
        path: str,
        mime_type: str,
        size_bytes: int | None,
        created_at: datetime | None = None,
    ) -> Attachment:
        """Record an attachment row for a message."""
        ...

    async def list_attachments(self, message_id: int) -> list[Attachment]:
        """Attachments of a message, oldest first."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Reconciliation
    async def list_created_at(self, table: str) -> list[tuple[int, str | None]]:
        """Raw (id, created_at) pairs of a table in id order."""
        ...

    async def set_created_at(self, table: str, row_id: int, value: str) -> None:
        """Overwrite the raw created_at of one row."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        clock: ReferenceClock | None = None,
    ):
        self._db_path = resolve_db_path(db_path)
        self._clock = clock or ReferenceClock()
        self._conn: aiosqlite.Connection | None = None

    async def init(self, create_schema: bool = True) -> None:
        """
        Open the database and create tables.

        With create_schema=False only the trace_events table is ensured and
        existing tables are used as they are. The timestamp backfill opens
        legacy databases this way; it touches nothing but id and created_at.
        """
        scripts = ["schema.sql", "trace_events.sql"] if create_schema else ["trace_events.sql"]
        try:
            self._conn = await aiosqlite.connect(self._db_path)
            # Cascade deletes from messages to attachments need this per connection
            await self._conn.execute("PRAGMA foreign_keys = ON")

            for script in scripts:
                schema_path = Path(__file__).parent / script
                with open(schema_path, "r", encoding="utf-8") as f:
                    schema_sql = f.read()
                await self._conn.executescript(schema_sql)
            await self._conn.commit()
        except aiosqlite.Error as e:
            await self.close()
            raise PersistenceFailure(f"Cannot open database {self._db_path}: {e}") from e
        logger.info("Storage ready at %s", self._db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    @asynccontextmanager
    async def _write(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Run statements and commit; any SQLite error becomes PersistenceFailure."""
        conn = self._require()
        try:
            yield conn
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            raise PersistenceFailure(f"{operation} failed: {e}") from e

    async def _fetchall(self, query: str, params: tuple | list = ()) -> list[tuple]:
        conn = self._require()
        try:
            cursor = await conn.execute(query, params)
            return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise PersistenceFailure(f"Query failed: {e}") from e

    # Messages
    async def insert_message(
        self,
        conversation_id: str,
        direction: Direction,
        text: str | None,
        status: Status = Status.PENDING,
        auto_replied: bool = False,
        created_at: datetime | None = None,
    ) -> int:
        """Insert a message and return its store-assigned id."""
        stamp = to_storage(created_at or self._clock.now())

        async with self._write("insert message") as conn:
            cursor = await conn.execute(
                """
                INSERT INTO messages
                (conversation_id, direction, text, status, auto_replied, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation_id,
                    Direction(direction).value,
                    text or None,
                    Status(status).value,
                    int(auto_replied),
                    stamp,
                ),
            )
            message_id = cursor.lastrowid

        logger.debug(
            "Inserted %s message %s",
            Direction(direction).value,
            message_id,
            extra={"context": {"conversation_id": conversation_id}},
        )
        return message_id

    async def update_status(self, message_id: int, status: Status) -> bool:
        """
        Move a message to a new status.

        Re-applying the current status is a no-op. done -> pending is
        refused; a conversation is reopened by a new inbound row instead.
        """
        status = Status(status)
        current = await self.get_message(message_id)
        if current is None:
            return False
        if current.status == status:
            return True
        if current.status == Status.DONE:
            raise ValueError(f"Message {message_id} is already done")

        async with self._write("update status") as conn:
            await conn.execute(
                "UPDATE messages SET status = ? WHERE id = ?",
                (status.value, message_id),
            )
        return True

    async def get_message(self, message_id: int) -> Message | None:
        """Get a message by id."""
        rows = await self._fetchall(
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        return _row_to_message(rows[0]) if rows else None

    async def list_inbound(self) -> list[Message]:
        """All inbound messages ordered by created_at desc, id desc."""
        rows = await self._fetchall(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE direction = ?
            ORDER BY created_at DESC, id DESC
            """,
            (Direction.INBOUND.value,),
        )
        return chronological((_row_to_message(r) for r in rows), reverse=True)

    async def get_thread(self, conversation_id: str) -> list[Message]:
        """All messages of a conversation ordered by created_at asc, id asc."""
        rows = await self._fetchall(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE conversation_id = ?
            ORDER BY created_at ASC, id ASC
            """,
            (conversation_id,),
        )
        return chronological(_row_to_message(r) for r in rows)

    async def delete_message(self, message_id: int) -> bool:
        """Delete a message; attachment rows cascade."""
        async with self._write("delete message") as conn:
            cursor = await conn.execute(
                "DELETE FROM messages WHERE id = ?", (message_id,)
            )
            deleted = cursor.rowcount > 0
        return deleted

    # Attachments
    async def insert_attachment(
        self,
        message_id: int,
        kind: AttachmentKind,
        path: str,
        mime_type: str,
        size_bytes: int | None,
        created_at: datetime | None = None,
    ) -> Attachment:
        """Record an attachment row for a message."""
        moment = created_at or self._clock.now()
        stamp = to_storage(moment)

        async with self._write("insert attachment") as conn:
            cursor = await conn.execute(
                """
                INSERT INTO attachments (message_id, kind, path, mime, size, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (message_id, AttachmentKind(kind).value, path, mime_type, size_bytes, stamp),
            )
            attachment_id = cursor.lastrowid

        return Attachment(
            id=attachment_id,
            message_id=message_id,
            kind=AttachmentKind(kind),
            storage_path=path,
            mime_type=mime_type,
            size_bytes=size_bytes,
            created_at=parse_stored(stamp),
        )

    async def list_attachments(self, message_id: int) -> list[Attachment]:
        """Attachments of a message ordered by created_at asc."""
        rows = await self._fetchall(
            f"""
            SELECT {_ATTACHMENT_COLUMNS}
            FROM attachments
            WHERE message_id = ?
            ORDER BY created_at ASC, id ASC
            """,
            (message_id,),
        )
        return chronological(_row_to_attachment(r) for r in rows)

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        async with self._write("save trace event") as conn:
            await conn.execute(
                """
                INSERT INTO trace_events (id, event_type, actor, data, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    event.id or str(uuid.uuid4()),
                    event.event_type,
                    event.actor,
                    json.dumps(event.data, ensure_ascii=False, default=str),
                    event.timestamp.astimezone(timezone.utc).isoformat(),
                ),
            )

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters, newest first."""
        conditions = []
        params: list = []

        if after:
            if after.tzinfo is None:
                after = after.replace(tzinfo=timezone.utc)
            conditions.append("timestamp > ?")
            params.append(after.astimezone(timezone.utc).isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        rows = await self._fetchall(query, params)
        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # Reconciliation
    async def list_created_at(self, table: str) -> list[tuple[int, str | None]]:
        """Raw (id, created_at) pairs of a table in id order."""
        _check_table(table)
        rows = await self._fetchall(f"SELECT id, created_at FROM {table} ORDER BY id")
        return [(row[0], row[1]) for row in rows]

    async def set_created_at(self, table: str, row_id: int, value: str) -> None:
        """Overwrite the raw created_at of one row."""
        _check_table(table)
        async with self._write(f"update {table}.created_at") as conn:
            await conn.execute(
                f"UPDATE {table} SET created_at = ? WHERE id = ?", (value, row_id)
            )

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        async with self._write("clear") as conn:
            for table in ["attachments", "messages", "trace_events"]:
                await conn.execute(f"DELETE FROM {table}")


def _check_table(table: str) -> None:
    if table not in _TIMESTAMPED_TABLES:
        raise ValueError(f"Unknown table: {table}")


def _row_to_message(row: tuple) -> Message:
    return Message(
        id=row[0],
        conversation_id=row[1],
        direction=Direction(row[2]),
        text=row[3],
        status=Status(row[4]),
        auto_replied=bool(row[5]),
        created_at=parse_stored(row[6]),
    )


def _row_to_attachment(row: tuple) -> Attachment:
    return Attachment(
        id=row[0],
        message_id=row[1],
        kind=AttachmentKind(row[2]),
        storage_path=row[3],
        mime_type=row[4],
        size_bytes=row[5],
        created_at=parse_stored(row[6]),
    )
