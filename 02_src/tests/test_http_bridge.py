"""Tests for the HTTP bridge transport."""

import base64
import json

import httpx
import pytest

from helpdesk.errors import AttachmentIOFailure, TransportFailure
from helpdesk.models import MediaMessage, TextMessage, TextWithMediaMessage
from helpdesk.transport import HttpTransport, build_webhook_event, decode_media

PNG = b"\x89PNG\r\n"
PNG_B64 = base64.b64encode(PNG).decode("ascii")


def make_transport(handler) -> tuple[HttpTransport, list[httpx.Request]]:
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        base_url="http://bridge.test", transport=httpx.MockTransport(record)
    )
    return HttpTransport("http://bridge.test", client=client), requests


class TestHttpTransportSend:
    async def test_send_text(self):
        transport, requests = make_transport(lambda r: httpx.Response(200, json={"ok": True}))

        await transport.send_text("c1", "halo")

        assert requests[0].url.path == "/send"
        assert json.loads(requests[0].content) == {"to": "c1", "type": "text", "text": "halo"}

    async def test_send_media_encodes_base64(self):
        transport, requests = make_transport(lambda r: httpx.Response(200))

        await transport.send_media("c1", PNG, "image/png", "a.png")

        body = json.loads(requests[0].content)
        assert body["type"] == "media"
        assert body["media"] == {"mimetype": "image/png", "data": PNG_B64, "filename": "a.png"}

    async def test_http_error_becomes_transport_failure(self):
        transport, _ = make_transport(lambda r: httpx.Response(503))

        with pytest.raises(TransportFailure):
            await transport.send_text("c1", "halo")

    async def test_connection_error_becomes_transport_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        transport, _ = make_transport(refuse)

        with pytest.raises(TransportFailure):
            await transport.send_text("c1", "halo")


class TestHttpTransportMedia:
    async def test_download_media(self):
        transport, requests = make_transport(
            lambda r: httpx.Response(
                200, json={"mimetype": "image/png", "data": PNG_B64, "filename": "a.png"}
            )
        )

        media = await transport.download_media("wamid1")

        assert requests[0].url.path == "/media/wamid1"
        assert media.data == PNG
        assert media.mime_type == "image/png"

    async def test_download_failure(self):
        transport, _ = make_transport(lambda r: httpx.Response(404))

        with pytest.raises(AttachmentIOFailure):
            await transport.download_media("wamid1")

    def test_decode_invalid_base64(self):
        with pytest.raises(AttachmentIOFailure):
            decode_media("image/png", "not base64!!")


class TestBuildWebhookEvent:
    def test_text_only(self):
        event = build_webhook_event("m1", "c1", False, "cek", has_media=False)
        assert isinstance(event, TextMessage)
        assert event.raw_text == "cek"

    async def test_inline_media_with_caption(self):
        event = build_webhook_event(
            "m1",
            "c1",
            False,
            "bukti",
            has_media=True,
            inline_media={"mimetype": "image/png", "data": PNG_B64, "filename": "a.png"},
        )
        assert isinstance(event, TextWithMediaMessage)
        media = await event.load_media()
        assert media.data == PNG

    async def test_fetched_media_without_caption(self):
        calls = []

        async def fetch(message_id):
            calls.append(message_id)
            return decode_media("image/png", PNG_B64)

        event = build_webhook_event("m1", "c1", False, None, has_media=True, fetch_media=fetch)

        assert isinstance(event, MediaMessage)
        assert calls == []  # lazy
        await event.load_media()
        assert calls == ["m1"]

    async def test_media_without_source(self):
        event = build_webhook_event("m1", "c1", False, "", has_media=True)

        with pytest.raises(AttachmentIOFailure):
            await event.load_media()
