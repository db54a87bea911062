"""Chat transport abstraction."""

from typing import Protocol


class ITransport(Protocol):
    """Outbound side of the chat network. Raises TransportFailure on errors."""

    async def send_text(self, to: str, text: str) -> None:
        """Send a text message to a conversation."""
        ...

    async def send_media(
        self, to: str, data: bytes, mime_type: str, filename: str
    ) -> None:
        """Send a media message to a conversation."""
        ...
