"""Outbound sends mirrored as persisted outbound messages."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from ..attachments import AttachmentStore, guess_mime
from ..errors import AttachmentIOFailure, TransportFailure
from ..logging_config import get_logger
from ..models import Attachment, Direction, Status
from ..storage import IStorage
from ..transport import ITransport

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendResult:
    """The outbound row written for a successful send."""

    message_id: int
    attachment: Attachment | None = None


class ReplyDispatcher:
    """Sends through the transport; rows are written only after a successful send."""

    def __init__(
        self,
        transport: ITransport,
        storage: IStorage,
        attachments: AttachmentStore,
    ):
        self._transport = transport
        self._storage = storage
        self._attachments = attachments

    async def send_text(
        self, conversation_id: str, text: str, auto_replied: bool = False
    ) -> SendResult:
        """
        Send text and persist the outbound message.

        Human replies are stored done. Automated replies are stored pending
        with auto_replied set, so they never close the conversation.
        """
        try:
            await self._transport.send_text(conversation_id, text)
        except TransportFailure:
            raise
        except Exception as e:
            raise TransportFailure(f"Send to {conversation_id} failed: {e}") from e

        message_id = await self._storage.insert_message(
            conversation_id=conversation_id,
            direction=Direction.OUTBOUND,
            text=text,
            status=Status.PENDING if auto_replied else Status.DONE,
            auto_replied=auto_replied,
        )
        logger.info(
            "Sent %s text reply %s",
            "automated" if auto_replied else "operator",
            message_id,
            extra={"context": {"conversation_id": conversation_id}},
        )
        return SendResult(message_id=message_id)

    async def send_media(
        self,
        conversation_id: str,
        file_path: str | Path,
        mime_type: str | None = None,
    ) -> SendResult:
        """
        Send a file from the uploads root and persist the outbound message
        plus attachment. Paths outside the root are refused before sending.
        """
        path = self._attachments.resolve_upload(file_path)

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AttachmentIOFailure(f"Cannot read {path}: {e}") from e

        mime_type = mime_type or guess_mime(path)
        try:
            await self._transport.send_media(conversation_id, data, mime_type, path.name)
        except TransportFailure:
            raise
        except Exception as e:
            raise TransportFailure(f"Media send to {conversation_id} failed: {e}") from e

        message_id = await self._storage.insert_message(
            conversation_id=conversation_id,
            direction=Direction.OUTBOUND,
            text=None,
            status=Status.DONE,
        )
        attachment = await self._attachments.record(message_id, path, mime_type)
        logger.info(
            "Sent media %s as message %s",
            path.name,
            message_id,
            extra={"context": {"conversation_id": conversation_id}},
        )
        return SendResult(message_id=message_id, attachment=attachment)
