"""Per-event intake: gate, persist, store media, auto-reply."""

from dataclasses import dataclass

from ..attachments import AttachmentStore
from ..errors import AttachmentIOFailure, PersistenceFailure
from ..gate import KeywordGate, RejectReason
from ..logging_config import get_logger
from ..models import (
    Attachment,
    Direction,
    InboundEvent,
    MediaMessage,
    Status,
    TextWithMediaMessage,
)
from ..storage import IStorage
from ..tracker import ITracker
from .autoreply import AutoReply, AutoReplyOrchestrator

logger = get_logger(__name__)


@dataclass(frozen=True)
class IntakeOutcome:
    """Result of handling one inbound event."""

    accepted: bool
    reason: RejectReason | None = None
    inbound_id: int | None = None
    attachment: Attachment | None = None
    auto_reply: AutoReply | None = None


class IntakePipeline:
    """Runs one inbound event through the pipeline, strictly in order."""

    def __init__(
        self,
        gate: KeywordGate,
        storage: IStorage,
        attachments: AttachmentStore,
        orchestrator: AutoReplyOrchestrator,
        tracker: ITracker,
    ):
        self._gate = gate
        self._storage = storage
        self._attachments = attachments
        self._orchestrator = orchestrator
        self._tracker = tracker

    async def handle(self, event: InboundEvent) -> IntakeOutcome:
        """
        Handle an inbound event.

        PersistenceFailure on the inbound insert propagates and nothing else
        happens. Once the inbound row is stored nothing propagates: a media
        failure is logged and the reply still goes out.
        """
        context = {"conversation_id": event.sender_id, "message_id": event.message_id}

        decision = self._gate.evaluate(event)
        if not decision.proceed:
            logger.info(
                "Inbound event dropped: %s",
                decision.reason.value,
                extra={"context": context},
            )
            await self._tracker.track(
                "gate_rejected",
                "gate",
                {**context, "reason": decision.reason.value},
            )
            return IntakeOutcome(accepted=False, reason=decision.reason)

        inbound_id = await self._storage.insert_message(
            conversation_id=event.sender_id,
            direction=Direction.INBOUND,
            text=decision.normalized_text,
            status=Status.PENDING,
        )
        logger.info("Inbound message %s stored", inbound_id, extra={"context": context})
        await self._tracker.track(
            "message_received",
            "intake",
            {**context, "inbound_id": inbound_id, "has_media": event.has_media},
        )

        attachment = None
        if isinstance(event, (MediaMessage, TextWithMediaMessage)):
            attachment = await self._store_media(event, inbound_id, context)

        auto_reply = await self._orchestrator.reply(event.sender_id, decision.normalized_text)

        return IntakeOutcome(
            accepted=True,
            inbound_id=inbound_id,
            attachment=attachment,
            auto_reply=auto_reply,
        )

    async def _store_media(
        self,
        event: MediaMessage | TextWithMediaMessage,
        inbound_id: int,
        context: dict,
    ) -> Attachment | None:
        try:
            media = await event.load_media()
            return await self._attachments.save(
                inbound_id,
                media.data,
                media.mime_type,
                filename=media.filename,
                source_id=event.message_id,
            )
        except (AttachmentIOFailure, PersistenceFailure) as e:
            logger.error("Media not stored: %s", e, extra={"context": context})
            await self._tracker.track(
                "attachment_failed",
                "intake",
                {**context, "inbound_id": inbound_id, "error": str(e)},
            )
            return None
