"""Attachment storage module."""

from .store import (
    AttachmentStore,
    UploadedFile,
    extension_for,
    guess_mime,
    sanitize_filename,
)

__all__ = [
    "AttachmentStore",
    "UploadedFile",
    "extension_for",
    "guess_mime",
    "sanitize_filename",
]
