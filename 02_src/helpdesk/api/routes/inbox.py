"""Inbox API routes."""

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from ...app import Application
from ...errors import HelpdeskError
from ...models import Attachment, Message
from ...timestamps import epoch_ms, format_display
from ..errors import to_http_exception


class MessageResponse(BaseModel):
    """Response model for a stored message."""

    id: int
    conversation_id: str
    direction: str
    text: str | None
    status: str
    auto_replied: bool
    created_at: str | None
    created_at_ms: int | None


class AttachmentResponse(BaseModel):
    """Response model for an attachment."""

    id: int
    message_id: int
    kind: str
    mime_type: str
    size_bytes: int | None
    url: str
    created_at: str | None


class ThreadResponse(BaseModel):
    """Response model for a message with its conversation."""

    message: MessageResponse
    thread: list[MessageResponse]
    attachments: dict[int, list[AttachmentResponse]]


class ReplyRequest(BaseModel):
    """Request model for an operator reply."""

    model_config = ConfigDict(populate_by_name=True)

    text: str | None = None
    file_path: str | None = Field(None, alias="filePath")
    mime_type: str | None = Field(None, alias="mime")


class ReplyAttachmentRequest(BaseModel):
    """Request model for replying with an uploaded file."""

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    mime_type: str | None = Field(None, alias="mime")


class ReplyResponse(BaseModel):
    """Response model for reply operations."""

    status: str
    outbound_ids: list[int]


class UploadResponse(BaseModel):
    """Response model for an uploaded file."""

    path: str
    filename: str
    mime: str
    url: str


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_inbox_router(app: Application) -> APIRouter:
    """Create inbox router."""
    router = APIRouter(prefix="/api", tags=["inbox"])
    offset_hours = app.settings.reference_offset_hours

    def message_to_dict(message: Message) -> dict:
        return {
            "id": message.id,
            "conversation_id": message.conversation_id,
            "direction": message.direction.value,
            "text": message.text,
            "status": message.status.value,
            "auto_replied": message.auto_replied,
            "created_at": format_display(message.created_at, offset_hours),
            "created_at_ms": epoch_ms(message.created_at),
        }

    def attachment_to_dict(attachment: Attachment) -> dict:
        return {
            "id": attachment.id,
            "message_id": attachment.message_id,
            "kind": attachment.kind.value,
            "mime_type": attachment.mime_type,
            "size_bytes": attachment.size_bytes,
            "url": app.inbox.attachments.url_for(attachment.storage_path),
            "created_at": format_display(attachment.created_at, offset_hours),
        }

    @router.get("/messages", response_model=list[MessageResponse])
    async def list_messages() -> list[dict]:
        """List inbound messages, newest first."""
        try:
            messages = await app.inbox.list_inbound()
        except HelpdeskError as e:
            raise to_http_exception(e)
        return [message_to_dict(m) for m in messages]

    @router.get("/messages/{message_id}", response_model=ThreadResponse)
    async def get_message(message_id: int) -> dict:
        """Get a message with its whole conversation and attachments."""
        try:
            view = await app.inbox.get_thread(message_id)
        except HelpdeskError as e:
            raise to_http_exception(e)
        return {
            "message": message_to_dict(view.message),
            "thread": [message_to_dict(m) for m in view.thread],
            "attachments": {
                owner_id: [attachment_to_dict(a) for a in items]
                for owner_id, items in view.attachments.items()
            },
        }

    @router.post("/messages/{message_id}/reply", response_model=ReplyResponse)
    async def reply(message_id: int, request: ReplyRequest) -> dict:
        """Send an operator reply and mark the message done."""
        try:
            results = await app.inbox.reply(
                message_id,
                text=request.text,
                file_path=request.file_path,
                mime_type=request.mime_type,
            )
        except HelpdeskError as e:
            raise to_http_exception(e)
        return {"status": "ok", "outbound_ids": [r.message_id for r in results]}

    @router.post("/messages/{message_id}/reply-attachment", response_model=ReplyResponse)
    async def reply_attachment(message_id: int, request: ReplyAttachmentRequest) -> dict:
        """Reply with a previously uploaded file."""
        try:
            result = await app.inbox.reply_attachment(
                message_id, request.file_path, request.mime_type
            )
        except HelpdeskError as e:
            raise to_http_exception(e)
        return {"status": "ok", "outbound_ids": [result.message_id]}

    @router.post("/messages/{message_id}/delete", response_model=StatusResponse)
    async def delete_message(message_id: int) -> dict:
        """Delete a message together with its attachment files."""
        try:
            await app.inbox.delete(message_id)
        except HelpdeskError as e:
            raise to_http_exception(e)
        return {"status": "ok"}

    @router.post("/upload", response_model=UploadResponse)
    async def upload(file: UploadFile = File(...)) -> dict:
        """Store an operator file in the uploads directory."""
        if not file.filename:
            raise HTTPException(status_code=400, detail="No file uploaded")
        data = await file.read()
        try:
            uploaded = await app.inbox.upload(file.filename, data)
        except HelpdeskError as e:
            raise to_http_exception(e)
        return {
            "path": uploaded.path,
            "filename": uploaded.filename,
            "mime": uploaded.mime_type,
            "url": uploaded.url,
        }

    return router
