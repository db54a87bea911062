"""Chat transport module."""

from .base import ITransport
from .http_bridge import HttpTransport, build_webhook_event, decode_media

__all__ = ["ITransport", "HttpTransport", "build_webhook_event", "decode_media"]
