"""HTTP adapter for the chat bridge sidecar.

The sidecar owns the chat session (pairing, protocol) and talks to us over
HTTP: it posts inbound events to our webhook and accepts send requests.
"""

import base64
import binascii
from typing import Awaitable, Callable

import httpx

from ..errors import AttachmentIOFailure, TransportFailure
from ..logging_config import get_logger
from ..models import InboundEvent, MediaLoader, MediaPayload, build_event

logger = get_logger(__name__)


def decode_media(mime_type: str, data_b64: str, filename: str | None = None) -> MediaPayload:
    """Decode base64 media as delivered by the bridge."""
    try:
        data = base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AttachmentIOFailure(f"Invalid media payload: {e}") from e
    return MediaPayload(mime_type=mime_type, data=data, filename=filename)


class HttpTransport:
    """Sends through the bridge's /send endpoint and fetches event media."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_text(self, to: str, text: str) -> None:
        await self._post_send({"to": to, "type": "text", "text": text})

    async def send_media(
        self, to: str, data: bytes, mime_type: str, filename: str
    ) -> None:
        await self._post_send(
            {
                "to": to,
                "type": "media",
                "media": {
                    "mimetype": mime_type,
                    "data": base64.b64encode(data).decode("ascii"),
                    "filename": filename,
                },
            }
        )

    async def download_media(self, message_id: str) -> MediaPayload:
        """Fetch the media of an inbound message from the bridge."""
        try:
            response = await self._http().get(f"/media/{message_id}")
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AttachmentIOFailure(f"Media download failed for {message_id}: {e}") from e

        return decode_media(
            body.get("mimetype") or "application/octet-stream",
            body.get("data") or "",
            body.get("filename"),
        )

    async def _post_send(self, payload: dict) -> None:
        try:
            response = await self._http().post("/send", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Bridge send to %s failed: %s", payload.get("to"), e)
            raise TransportFailure(f"Send to {payload.get('to')} failed: {e}") from e


MediaFetcher = Callable[[str], Awaitable[MediaPayload]]


def build_webhook_event(
    message_id: str,
    sender_id: str,
    from_me: bool,
    body: str | None,
    has_media: bool,
    inline_media: dict | None = None,
    fetch_media: MediaFetcher | None = None,
) -> InboundEvent:
    """Turn a bridge webhook payload into an inbound event variant."""
    loader: MediaLoader | None = None
    if inline_media and inline_media.get("data"):
        mime_type = inline_media.get("mimetype") or "application/octet-stream"
        data_b64 = inline_media["data"]
        filename = inline_media.get("filename")

        async def loader() -> MediaPayload:
            return decode_media(mime_type, data_b64, filename)

    elif has_media:

        async def loader() -> MediaPayload:
            if fetch_media is None:
                raise AttachmentIOFailure(f"No media source for {message_id}")
            return await fetch_media(message_id)

    return build_event(message_id, sender_id, from_me, body, loader)
