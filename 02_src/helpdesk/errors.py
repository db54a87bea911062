"""Error taxonomy for the intake and reply pipeline.

Gate rejections are not errors and are represented by GateDecision.
"""


class HelpdeskError(Exception):
    """Base class for pipeline errors."""


class PersistenceFailure(HelpdeskError):
    """Store I/O or constraint error. Partial writes must not be assumed."""


class TransportFailure(HelpdeskError):
    """The chat transport failed to send a message."""


class GenerationFailure(HelpdeskError):
    """The generative-text backend failed, timed out or returned nothing."""


class AttachmentIOFailure(HelpdeskError):
    """A media file is missing or unreadable."""


class MessageNotFound(HelpdeskError):
    """No message with the requested id."""

    def __init__(self, message_id: int):
        super().__init__(f"Message {message_id} not found")
        self.message_id = message_id
