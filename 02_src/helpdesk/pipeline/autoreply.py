"""Automated first response for accepted inbound messages."""

import asyncio
from dataclasses import dataclass
from datetime import datetime

from ..errors import PersistenceFailure, TransportFailure
from ..llm import ILLMProvider
from ..logging_config import get_logger
from ..timestamps import ReferenceClock
from ..tracker import ITracker
from .dispatcher import ReplyDispatcher

logger = get_logger(__name__)

FALLBACK_REPLY = "Terima kasih, kami akan segera merespons."
MEDIA_PLACEHOLDER = "[pesan media]"
DEFAULT_PERSONA = "chika_mp"


def salutation(hour: int) -> str:
    """Time-of-day greeting for a local hour."""
    if 5 <= hour < 11:
        return "Selamat pagi"
    if 11 <= hour < 15:
        return "Selamat siang"
    if 15 <= hour < 19:
        return "Selamat sore"
    return "Selamat malam"


def local_hour() -> int:
    """Hour of the host clock in its local timezone."""
    return datetime.now().astimezone().hour


def build_prompt(text: str | None, greeting: str, persona: str = DEFAULT_PERSONA) -> str:
    return (
        f"gunakan {greeting} jika diperlukan. Balas 1 paragraf pendek, sopan, "
        "formal, ringkas, dan jelas. Jangan timbulkan pertanyaan untuk konsumen, "
        "jika ada pertanyaan dan masih belum selesai jawab tolong ditunggu "
        f"updatenya. Kita adalah CS {persona}:\n\n{text or MEDIA_PLACEHOLDER}"
    )


@dataclass(frozen=True)
class AutoReply:
    """What the orchestrator did for one inbound message."""

    text: str
    fallback: bool
    outbound_id: int | None  # None when nothing was sent or the row was not written
    sent: bool = True

    @property
    def dispatched(self) -> bool:
        return self.sent


class AutoReplyOrchestrator:
    """Generates a reply with a bounded wait and dispatches it as pending."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        dispatcher: ReplyDispatcher,
        tracker: ITracker,
        clock: ReferenceClock | None = None,
        timeout: float = 12.0,
        persona: str = DEFAULT_PERSONA,
    ):
        self._llm = llm_provider
        self._dispatcher = dispatcher
        self._tracker = tracker
        self._clock = clock  # salutation hour comes from the host clock when None
        self._timeout = timeout
        self._persona = persona

    async def generate(self, text: str | None) -> tuple[str, bool]:
        """Return (reply, used_fallback). Never raises."""
        hour = self._clock.now().hour if self._clock else local_hour()
        prompt = build_prompt(text, salutation(hour), self._persona)

        reason = None
        try:
            reply = await asyncio.wait_for(
                self._llm.complete(messages=[{"role": "user", "content": prompt}]),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            reason = "timeout"
            logger.warning("LLM call exceeded %.1fs, using fallback", self._timeout)
        except Exception as e:
            reason = "error"
            logger.error(f"LLM error: {e}", exc_info=True)
        else:
            if reply and reply.strip():
                return reply.strip(), False
            reason = "empty"
            logger.warning("LLM returned an empty reply, using fallback")

        await self._tracker.track(
            "auto_reply_fallback", "auto_reply", {"reason": reason}
        )
        return FALLBACK_REPLY, True

    async def reply(self, conversation_id: str, text: str | None) -> AutoReply:
        """
        Generate and dispatch the automated reply.

        The outbound row is stored pending with auto_replied set; the inbound
        row is left alone. A failed dispatch is logged and not retried. A
        reply that went out but whose row could not be written is traced
        and reported as sent.
        """
        reply_text, fallback = await self.generate(text)

        try:
            result = await self._dispatcher.send_text(
                conversation_id, reply_text, auto_replied=True
            )
        except TransportFailure as e:
            logger.error(
                "Auto-reply dispatch failed: %s",
                e,
                extra={"context": {"conversation_id": conversation_id}},
            )
            await self._tracker.track(
                "auto_reply_dispatch_failed",
                "auto_reply",
                {"conversation_id": conversation_id, "error": str(e)},
            )
            return AutoReply(text=reply_text, fallback=fallback, outbound_id=None, sent=False)
        except PersistenceFailure as e:
            logger.error(
                "Auto-reply sent but not recorded: %s",
                e,
                extra={"context": {"conversation_id": conversation_id}},
            )
            await self._tracker.track(
                "auto_reply_unrecorded",
                "auto_reply",
                {"conversation_id": conversation_id, "error": str(e)},
            )
            return AutoReply(text=reply_text, fallback=fallback, outbound_id=None)

        await self._tracker.track(
            "auto_reply_sent",
            "auto_reply",
            {
                "conversation_id": conversation_id,
                "outbound_id": result.message_id,
                "fallback": fallback,
            },
        )
        return AutoReply(text=reply_text, fallback=fallback, outbound_id=result.message_id)
