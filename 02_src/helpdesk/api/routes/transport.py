"""Chat bridge webhook routes."""

from pydantic import BaseModel, ConfigDict, Field
from fastapi import APIRouter

from ...app import Application
from ...errors import HelpdeskError
from ...logging_config import get_logger
from ...transport import build_webhook_event
from ..errors import to_http_exception

logger = get_logger(__name__)


class MediaPayloadModel(BaseModel):
    """Inline base64 media as posted by the bridge."""

    mimetype: str | None = None
    data: str | None = None
    filename: str | None = None


class TransportEventRequest(BaseModel):
    """Request model for an inbound chat event."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender_id: str = Field(alias="senderId")
    from_me: bool = Field(False, alias="fromMe")
    body: str | None = None
    has_media: bool = Field(False, alias="hasMedia")
    media: MediaPayloadModel | None = None


class TransportEventResponse(BaseModel):
    """Response model for an inbound chat event."""

    accepted: bool
    reason: str | None = None
    inbound_id: int | None = None
    attachment_id: int | None = None
    auto_reply_sent: bool = False


def create_transport_router(app: Application) -> APIRouter:
    """Create transport webhook router."""
    router = APIRouter(prefix="/api/transport", tags=["transport"])

    @router.post("/events", response_model=TransportEventResponse)
    async def receive_event(request: TransportEventRequest) -> dict:
        """
        Receive one inbound event from the bridge.

        A 5xx means the inbound row was not stored and the bridge may
        redeliver the event.
        """
        event = build_webhook_event(
            message_id=request.id,
            sender_id=request.sender_id,
            from_me=request.from_me,
            body=request.body,
            has_media=request.has_media,
            inline_media=request.media.model_dump() if request.media else None,
            fetch_media=getattr(app.transport, "download_media", None),
        )
        try:
            outcome = await app.handle_event(event)
        except HelpdeskError as e:
            logger.error("Inbound event %s not stored: %s", request.id, e)
            raise to_http_exception(e)

        return {
            "accepted": outcome.accepted,
            "reason": outcome.reason.value if outcome.reason else None,
            "inbound_id": outcome.inbound_id,
            "attachment_id": outcome.attachment.id if outcome.attachment else None,
            "auto_reply_sent": bool(outcome.auto_reply and outcome.auto_reply.dispatched),
        }

    return router
