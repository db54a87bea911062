"""Tests for the HTTP API."""

import base64
import re
from unittest.mock import AsyncMock, Mock

import pytest

from helpdesk.api.routes import control
from helpdesk.errors import PersistenceFailure, TransportFailure

PNG_B64 = base64.b64encode(b"\x89PNG\r\n").decode("ascii")
DISPLAY = re.compile(r"^\d{2}/\d{2}/\d{4}, \d{2}\.\d{2}\.\d{2}$")


async def post_event(client, body="tolong cek", sender="6281@c.us", **extra):
    payload = {"id": "wamid1", "senderId": sender, "fromMe": False, "body": body}
    payload.update(extra)
    return await client.post("/api/transport/events", json=payload)


class TestWebhook:
    """Tests for POST /api/transport/events."""

    async def test_accepted_event(self, client):
        response = await post_event(client)

        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] is True
        assert data["inbound_id"] is not None
        assert data["auto_reply_sent"] is True

    async def test_rejected_event(self, client):
        response = await post_event(client, body="halo")

        assert response.status_code == 200
        assert response.json() == {
            "accepted": False,
            "reason": "no_keyword",
            "inbound_id": None,
            "attachment_id": None,
            "auto_reply_sent": False,
        }

    async def test_inline_media(self, client):
        response = await post_event(
            client,
            body="bukti refund",
            hasMedia=True,
            media={"mimetype": "image/png", "data": PNG_B64, "filename": "bukti.png"},
        )

        assert response.json()["attachment_id"] is not None

    async def test_persistence_failure_is_5xx(self, client, application):
        application.storage.insert_message = AsyncMock(side_effect=PersistenceFailure("locked"))

        response = await post_event(client)

        assert response.status_code == 500

    async def test_failure_after_inbound_stored_is_2xx(self, client, application):
        application.storage.insert_attachment = AsyncMock(side_effect=PersistenceFailure("locked"))

        response = await post_event(
            client,
            body="bukti refund",
            hasMedia=True,
            media={"mimetype": "image/png", "data": PNG_B64},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["inbound_id"] is not None
        assert data["attachment_id"] is None
        assert data["auto_reply_sent"] is True


class TestMessagesApi:
    """Tests for the inbox endpoints."""

    async def test_list_messages(self, client):
        await post_event(client)

        response = await client.get("/api/messages")

        assert response.status_code == 200
        messages = response.json()
        assert len(messages) == 1
        assert messages[0]["direction"] == "inbound"
        assert messages[0]["status"] == "pending"
        assert DISPLAY.match(messages[0]["created_at"])
        assert isinstance(messages[0]["created_at_ms"], int)

    async def test_get_thread_with_attachment(self, client):
        created = await post_event(
            client,
            body="bukti refund",
            hasMedia=True,
            media={"mimetype": "image/png", "data": PNG_B64},
        )
        inbound_id = created.json()["inbound_id"]

        response = await client.get(f"/api/messages/{inbound_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["message"]["id"] == inbound_id
        assert len(data["thread"]) == 2
        assert data["thread"][1]["auto_replied"] is True
        attachment = data["attachments"][str(inbound_id)][0]
        assert attachment["kind"] == "image"
        assert attachment["url"].startswith("/uploads/")

        served = await client.get(attachment["url"])
        assert served.status_code == 200
        assert served.content == b"\x89PNG\r\n"

    async def test_get_missing(self, client):
        response = await client.get("/api/messages/404")
        assert response.status_code == 404

    async def test_reply(self, client, mock_transport):
        inbound_id = (await post_event(client)).json()["inbound_id"]
        mock_transport.send_text.reset_mock()

        response = await client.post(
            f"/api/messages/{inbound_id}/reply", json={"text": "Sudah kami proses"}
        )

        assert response.status_code == 200
        assert len(response.json()["outbound_ids"]) == 1
        mock_transport.send_text.assert_awaited_once_with("6281@c.us", "Sudah kami proses")
        listed = (await client.get("/api/messages")).json()
        assert listed[0]["status"] == "done"

    async def test_reply_missing_file(self, client):
        inbound_id = (await post_event(client)).json()["inbound_id"]

        response = await client.post(
            f"/api/messages/{inbound_id}/reply",
            json={"text": "ini", "filePath": "/nope/gone.pdf"},
        )

        assert response.status_code == 400

    async def test_reply_with_file_outside_uploads(self, client, mock_transport, tmp_path):
        inbound_id = (await post_event(client)).json()["inbound_id"]
        secret = tmp_path / "secret.pdf"
        secret.write_bytes(b"%PDF")

        response = await client.post(
            f"/api/messages/{inbound_id}/reply-attachment",
            json={"filePath": str(secret)},
        )

        assert response.status_code == 400
        mock_transport.send_media.assert_not_awaited()

    async def test_reply_transport_failure(self, client, mock_transport):
        inbound_id = (await post_event(client)).json()["inbound_id"]
        mock_transport.send_text.side_effect = TransportFailure("offline")

        response = await client.post(
            f"/api/messages/{inbound_id}/reply", json={"text": "ok"}
        )

        assert response.status_code == 502
        listed = (await client.get("/api/messages")).json()
        assert listed[0]["status"] == "pending"

    async def test_upload_then_reply_attachment(self, client, mock_transport):
        inbound_id = (await post_event(client)).json()["inbound_id"]

        uploaded = await client.post(
            "/api/upload", files={"file": ("faktur.pdf", b"%PDF", "application/pdf")}
        )
        assert uploaded.status_code == 200
        body = uploaded.json()
        assert body["mime"] == "application/pdf"
        assert body["url"].startswith("/uploads/")

        response = await client.post(
            f"/api/messages/{inbound_id}/reply-attachment",
            json={"filePath": body["path"]},
        )

        assert response.status_code == 200
        mock_transport.send_media.assert_awaited_once()

    async def test_delete(self, client):
        inbound_id = (await post_event(client)).json()["inbound_id"]

        response = await client.post(f"/api/messages/{inbound_id}/delete")

        assert response.status_code == 200
        assert (await client.get(f"/api/messages/{inbound_id}")).status_code == 404


class TestExclusionsApi:
    async def test_exclusion_round(self, client):
        added = await client.post("/api/exclusions", json={"id": "6281@c.us"})
        assert added.json() == {"ids": ["6281@c.us"]}

        rejected = await post_event(client)
        assert rejected.json()["reason"] == "excluded"

        removed = await client.delete("/api/exclusions/6281@c.us")
        assert removed.json() == {"ids": []}
        assert (await client.get("/api/exclusions")).json() == {"ids": []}

    async def test_blank_id(self, client):
        response = await client.post("/api/exclusions", json={"id": "  "})
        assert response.status_code == 400


class TestObservabilityApi:
    async def test_trace_events(self, client):
        await post_event(client, body="halo")

        response = await client.get("/api/trace-events", params={"event_type": "gate_rejected"})

        assert response.status_code == 200
        events = response.json()
        assert events[0]["actor"] == "gate"
        assert events[0]["data"]["reason"] == "no_keyword"

    async def test_invalid_after(self, client):
        response = await client.get("/api/trace-events", params={"after": "kemarin"})
        assert response.status_code == 400


class TestControlApi:
    async def test_reset(self, client):
        await post_event(client)

        response = await client.post("/api/control/reset")

        assert response.json() == {"status": "ok"}
        assert (await client.get("/api/messages")).json() == []

    async def test_sim_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(control, "_sim_instance", None)
        response = await client.post("/api/control/sim/start")
        assert response.status_code == 404

    async def test_sim_start_stop(self, client, monkeypatch):
        sim = Mock()
        sim.start = AsyncMock()
        sim.stop = AsyncMock()
        monkeypatch.setattr(control, "_sim_instance", sim)

        assert (await client.post("/api/control/sim/start")).status_code == 200
        assert (await client.post("/api/control/sim/stop")).status_code == 200
        sim.start.assert_awaited_once()
        sim.stop.assert_awaited_once()
