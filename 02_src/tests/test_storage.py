"""Tests for Storage."""

from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from helpdesk.errors import PersistenceFailure
from helpdesk.models import AttachmentKind, Direction, Status, TraceEvent
from helpdesk.storage import Storage
from helpdesk.timestamps import reference_zone

T0 = datetime(2024, 6, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "messages" in tables
            assert "attachments" in tables
            assert "trace_events" in tables

    async def test_uninitialized_storage_raises(self):
        st = Storage(":memory:")
        with pytest.raises(RuntimeError):
            await st.get_message(1)

    async def test_unopenable_database(self, tmp_path):
        st = Storage(tmp_path / "missing" / "dir" / "db.sqlite")
        with pytest.raises(PersistenceFailure):
            await st.init()

    async def test_schema_failure_closes_connection(self, tmp_path):
        db_path = tmp_path / "legacy.db"
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("CREATE TABLE messages (id INTEGER PRIMARY KEY, wa_id TEXT)")
            await conn.commit()

        st = Storage(db_path)
        with pytest.raises(PersistenceFailure):
            await st.init()
        assert st._conn is None

    async def test_open_without_schema(self, tmp_path):
        db_path = tmp_path / "legacy.db"
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute(
                "CREATE TABLE messages (id INTEGER PRIMARY KEY, wa_id TEXT, created_at TEXT)"
            )
            await conn.execute("INSERT INTO messages (wa_id, created_at) VALUES ('c1', 'x')")
            await conn.commit()

        st = Storage(db_path)
        await st.init(create_schema=False)
        try:
            assert await st.list_created_at("messages") == [(1, "x")]
        finally:
            await st.close()


class TestStorageMessages:
    """Tests for message storage."""

    async def test_insert_and_get(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, "cek saldo")

        message = await storage.get_message(message_id)
        assert message.conversation_id == "c1"
        assert message.direction == Direction.INBOUND
        assert message.text == "cek saldo"
        assert message.status == Status.PENDING
        assert message.auto_replied is False
        assert message.created_at is not None

    async def test_ids_are_distinct(self, storage):
        first = await storage.insert_message("c1", Direction.INBOUND, "a")
        second = await storage.insert_message("c1", Direction.INBOUND, "b")
        assert first != second

    async def test_created_at_stored_as_utc(self, storage):
        """Test that a +7 wall-clock moment is written as canonical UTC."""
        moment = datetime(2024, 6, 1, 17, 0, 0, tzinfo=reference_zone(7))
        message_id = await storage.insert_message(
            "c1", Direction.INBOUND, "cek", created_at=moment
        )

        raw = dict(await storage.list_created_at("messages"))
        assert raw[message_id] == "2024-06-01 10:00:00"
        message = await storage.get_message(message_id)
        assert message.created_at == T0

    async def test_empty_text_stored_as_null(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, "")
        assert (await storage.get_message(message_id)).text is None

    async def test_get_missing_message(self, storage):
        assert await storage.get_message(999) is None

    async def test_list_inbound_newest_first(self, storage):
        """Test that only inbound rows are listed, newest first, ties by id desc."""
        a = await storage.insert_message("c1", Direction.INBOUND, "a", created_at=T0)
        b = await storage.insert_message(
            "c2", Direction.INBOUND, "b", created_at=T0 + timedelta(minutes=5)
        )
        c = await storage.insert_message("c3", Direction.INBOUND, "c", created_at=T0)
        await storage.insert_message(
            "c1", Direction.OUTBOUND, "reply", created_at=T0 + timedelta(minutes=9)
        )

        listed = await storage.list_inbound()
        assert [m.id for m in listed] == [b, c, a]

    async def test_get_thread_ascending(self, storage):
        first = await storage.insert_message(
            "c1", Direction.INBOUND, "cek", created_at=T0
        )
        reply = await storage.insert_message(
            "c1", Direction.OUTBOUND, "ok", created_at=T0 + timedelta(seconds=3)
        )
        await storage.insert_message("c2", Direction.INBOUND, "other", created_at=T0)

        thread = await storage.get_thread("c1")
        assert [m.id for m in thread] == [first, reply]

    async def test_legacy_unparseable_row_keeps_position(self, storage):
        first = await storage.insert_message("c1", Direction.INBOUND, "a", created_at=T0)
        legacy = await storage.insert_message("c1", Direction.INBOUND, "b", created_at=T0)
        last = await storage.insert_message(
            "c1", Direction.INBOUND, "c", created_at=T0 + timedelta(minutes=1)
        )
        await storage.set_created_at("messages", legacy, "kemarin")

        thread = await storage.get_thread("c1")
        assert [m.id for m in thread] == [first, legacy, last]
        assert thread[1].created_at is None

    async def test_delete_message(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, "a")
        assert await storage.delete_message(message_id) is True
        assert await storage.get_message(message_id) is None
        assert await storage.delete_message(message_id) is False


class TestStorageStatus:
    """Tests for status transitions."""

    async def test_pending_to_done(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, "a")
        assert await storage.update_status(message_id, Status.DONE) is True
        assert (await storage.get_message(message_id)).status == Status.DONE

    async def test_done_is_idempotent(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, "a")
        await storage.update_status(message_id, Status.DONE)
        assert await storage.update_status(message_id, Status.DONE) is True

    async def test_done_to_pending_refused(self, storage):
        message_id = await storage.insert_message(
            "c1", Direction.INBOUND, "a", status=Status.DONE
        )
        with pytest.raises(ValueError):
            await storage.update_status(message_id, Status.PENDING)

    async def test_unknown_message(self, storage):
        assert await storage.update_status(42, Status.DONE) is False


class TestStorageAttachments:
    """Tests for attachment storage."""

    async def test_insert_and_list(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, None)
        attachment = await storage.insert_attachment(
            message_id, AttachmentKind.IMAGE, "/tmp/a.png", "image/png", 10
        )

        listed = await storage.list_attachments(message_id)
        assert listed == [attachment]
        assert listed[0].kind == AttachmentKind.IMAGE

    async def test_attachment_requires_message(self, storage):
        with pytest.raises(PersistenceFailure):
            await storage.insert_attachment(
                999, AttachmentKind.FILE, "/tmp/a.pdf", "application/pdf", 1
            )

    async def test_delete_cascades(self, storage):
        message_id = await storage.insert_message("c1", Direction.INBOUND, None)
        await storage.insert_attachment(
            message_id, AttachmentKind.FILE, "/tmp/a.pdf", "application/pdf", 1
        )

        await storage.delete_message(message_id)
        assert await storage.list_attachments(message_id) == []


class TestStorageTraceEvents:
    """Tests for TraceEvent storage."""

    async def test_save_and_filter(self, storage):
        ts = datetime.now(timezone.utc)
        await storage.save_trace_event(
            TraceEvent(id="e1", event_type="gate_rejected", actor="gate", data={"a": 1}, timestamp=ts)
        )
        await storage.save_trace_event(
            TraceEvent(
                id="e2",
                event_type="message_received",
                actor="intake",
                data={"teks": "cek"},
                timestamp=ts + timedelta(seconds=1),
            )
        )

        events = await storage.get_trace_events()
        assert [e.id for e in events] == ["e2", "e1"]

        rejected = await storage.get_trace_events(event_types=["gate_rejected"])
        assert [e.id for e in rejected] == ["e1"]

        by_actor = await storage.get_trace_events(actor="intake")
        assert by_actor[0].data == {"teks": "cek"}

        after = await storage.get_trace_events(after=ts)
        assert [e.id for e in after] == ["e2"]

    async def test_clear(self, storage):
        await storage.insert_message("c1", Direction.INBOUND, "a")
        await storage.save_trace_event(
            TraceEvent(id="e1", event_type="x", actor="y", data={}, timestamp=T0)
        )

        await storage.clear()

        assert await storage.list_inbound() == []
        assert await storage.get_trace_events() == []

    async def test_created_at_helpers_reject_unknown_table(self, storage):
        with pytest.raises(ValueError):
            await storage.list_created_at("trace_events")
