"""Operations the dashboard performs on conversations."""

from dataclasses import dataclass

from ..attachments import AttachmentStore, UploadedFile
from ..errors import MessageNotFound
from ..gate import IExclusionList
from ..logging_config import get_logger
from ..models import Attachment, Message, Status
from ..pipeline import ReplyDispatcher, SendResult
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)


@dataclass
class ThreadView:
    """A selected message with its whole conversation."""

    message: Message
    thread: list[Message]
    attachments: dict[int, list[Attachment]]


class InboxService:
    """Reads conversations and performs operator replies, deletes and uploads."""

    def __init__(
        self,
        storage: IStorage,
        attachments: AttachmentStore,
        dispatcher: ReplyDispatcher,
        exclusions: IExclusionList,
        tracker: ITracker,
    ):
        self._storage = storage
        self._attachments = attachments
        self._dispatcher = dispatcher
        self._exclusions = exclusions
        self._tracker = tracker

    @property
    def attachments(self) -> AttachmentStore:
        return self._attachments

    async def list_inbound(self) -> list[Message]:
        return await self._storage.list_inbound()

    async def get_message(self, message_id: int) -> Message:
        message = await self._storage.get_message(message_id)
        if message is None:
            raise MessageNotFound(message_id)
        return message

    async def get_thread(self, message_id: int) -> ThreadView:
        message = await self.get_message(message_id)
        thread = await self._storage.get_thread(message.conversation_id)
        attachments = {
            m.id: await self._attachments.list_by_message(m.id) for m in thread
        }
        return ThreadView(message=message, thread=thread, attachments=attachments)

    async def reply(
        self,
        message_id: int,
        text: str | None = None,
        file_path: str | None = None,
        mime_type: str | None = None,
    ) -> list[SendResult]:
        """
        Send an operator reply and close the inbound message.

        Text is trimmed and skipped when blank. A file, if given, must exist
        in the uploads directory before anything is sent. With nothing to
        send the message is only closed. On any send failure the status is
        left untouched.
        """
        message = await self.get_message(message_id)
        if file_path:
            self._attachments.resolve_upload(file_path)

        results = []
        body = (text or "").strip()
        if body:
            results.append(await self._dispatcher.send_text(message.conversation_id, body))
        if file_path:
            results.append(
                await self._dispatcher.send_media(message.conversation_id, file_path, mime_type)
            )

        await self._close(message, results)
        return results

    async def reply_attachment(
        self, message_id: int, file_path: str, mime_type: str | None = None
    ) -> SendResult:
        """Send an uploaded file as the reply and close the inbound message."""
        message = await self.get_message(message_id)
        result = await self._dispatcher.send_media(
            message.conversation_id, file_path, mime_type
        )
        await self._close(message, [result])
        return result

    async def delete(self, message_id: int) -> None:
        """Delete a message, its attachment files and rows."""
        message = await self.get_message(message_id)
        removed = await self._attachments.delete_all_for_message(message.id)
        await self._storage.delete_message(message.id)

        logger.info("Deleted message %s (%s files removed)", message.id, removed)
        await self._tracker.track(
            "message_deleted",
            "inbox",
            {
                "message_id": message.id,
                "conversation_id": message.conversation_id,
                "files_removed": removed,
            },
        )

    async def upload(self, filename: str, data: bytes) -> UploadedFile:
        return await self._attachments.store_upload(filename, data)

    # Exclusions
    def list_exclusions(self) -> list[str]:
        return self._exclusions.load()

    def add_exclusion(self, conversation_id: str) -> list[str]:
        return self._exclusions.add(conversation_id)

    def remove_exclusion(self, conversation_id: str) -> list[str]:
        return self._exclusions.remove(conversation_id)

    async def _close(self, message: Message, results: list[SendResult]) -> None:
        await self._storage.update_status(message.id, Status.DONE)
        await self._tracker.track(
            "operator_replied",
            "inbox",
            {
                "message_id": message.id,
                "conversation_id": message.conversation_id,
                "outbound_ids": [r.message_id for r in results],
            },
        )
