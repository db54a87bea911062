"""SIM implementation - scripted customer chats posted to the bridge webhook."""

import asyncio
import random
import uuid
from typing import Protocol

import httpx

from helpdesk.logging_config import get_logger
from helpdesk.tracker import ITracker

logger = get_logger(__name__)

# Small transparent PNG sent as inline media
SAMPLE_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)

SCENARIO = [
    {
        "sender_id": "6281234567001@c.us",
        "messages": [
            {"body": "Halo kak, saya mau tanya soal pesanan saya"},
            {"body": "Nomor resi belum muncul sampai sekarang"},
            {"body": "Ini bukti transfernya kak", "media": "image"},
        ],
    },
    {
        "sender_id": "6281234567002@c.us",
        "messages": [
            {"body": "Selamat siang, ada promo bulan ini?"},
            {"body": "Kalau pembayaran pakai cicilan bisa?"},
        ],
    },
    {
        "sender_id": "6281234567003@c.us",
        "messages": [
            {"body": "cek"},
            {"body": "Min, paket saya rusak waktu diterima, bisa komplain?"},
        ],
    },
]


class ISim(Protocol):
    """Generate inbound chat traffic."""

    async def start(self) -> None:
        """Start the scripted scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


class Sim:
    """Posts a scripted set of customer messages to the webhook."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        tracker: ITracker | None = None,
        client: httpx.AsyncClient | None = None,
        delay_range: tuple[float, float] = (1.0, 3.0),
    ):
        self._api_url = api_url
        self._tracker = tracker
        self._client = client
        self._owns_client = client is None
        self._delay_range = delay_range
        self._running = False
        self._task: asyncio.Task | None = None
        self.sent = 0

    def set_tracker(self, tracker: ITracker) -> None:
        """Inject tracker for SIM trace events."""
        self._tracker = tracker

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scripted scenario in the background."""
        if self._running:
            return

        self._running = True
        if self._client is None:
            self._client = httpx.AsyncClient()
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def wait(self) -> None:
        """Wait until the scenario has finished."""
        if self._task:
            await self._task

    async def _run_scenario(self) -> None:
        message_count = sum(len(c["messages"]) for c in SCENARIO)
        try:
            if self._tracker:
                await self._tracker.track(
                    "sim_started",
                    "sim",
                    {"customer_count": len(SCENARIO), "message_count": message_count},
                )

            rounds = max(len(c["messages"]) for c in SCENARIO)
            for i in range(rounds):
                for customer in SCENARIO:
                    if not self._running:
                        return
                    if i < len(customer["messages"]):
                        await self._send_event(customer["sender_id"], customer["messages"][i])
                        await asyncio.sleep(random.uniform(*self._delay_range))

        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            if self._tracker:
                await self._tracker.track(
                    "sim_completed",
                    "sim",
                    {"customer_count": len(SCENARIO), "sent": self.sent},
                )

    async def _send_event(self, sender_id: str, message: dict) -> None:
        """Post one inbound event the way the bridge does."""
        if not self._client:
            return

        payload = {
            "id": f"sim-{uuid.uuid4().hex[:12]}",
            "senderId": sender_id,
            "fromMe": False,
            "body": message.get("body"),
            "hasMedia": bool(message.get("media")),
        }
        if message.get("media") == "image":
            payload["media"] = {
                "mimetype": "image/png",
                "data": SAMPLE_PNG_B64,
                "filename": "bukti.png",
            }

        try:
            response = await self._client.post(
                f"{self._api_url}/api/transport/events",
                json=payload,
                timeout=30.0,
            )
        except httpx.HTTPError as e:
            logger.error("SIM: Failed to post event: %s", e)
            return

        if response.status_code == 200:
            self.sent += 1
            data = response.json()
            logger.info("SIM: %s -> %s", sender_id, payload["body"])
            logger.info("SIM: accepted=%s reason=%s", data.get("accepted"), data.get("reason"))
        else:
            logger.error("SIM: Error posting event: %s", response.status_code)
