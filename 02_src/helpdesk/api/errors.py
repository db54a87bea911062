"""Translation of pipeline errors to HTTP responses."""

from fastapi import HTTPException

from ..errors import (
    AttachmentIOFailure,
    HelpdeskError,
    MessageNotFound,
    PersistenceFailure,
    TransportFailure,
)

_STATUS_BY_ERROR = (
    (MessageNotFound, 404),
    (AttachmentIOFailure, 400),
    (TransportFailure, 502),
    (PersistenceFailure, 500),
)


def to_http_exception(error: HelpdeskError) -> HTTPException:
    """Map an error to a status code; the message is shown to the operator."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
