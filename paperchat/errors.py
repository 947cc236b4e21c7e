"""
Exception taxonomy for PaperChat.

Turn-level failures (MissingCredential, NoDocuments) stop a turn before any
network call. ExtractionFailed is contained per document. ModelError and its
subclasses describe the outcome of the remote model call. StorageError is
raised by the key-value store and swallowed (logged) by the conversation store.
"""
from typing import Optional


class PaperChatError(Exception):
    """Base class for all PaperChat errors."""


class MissingCredential(PaperChatError):
    def __init__(self, message: str = "API key not configured. Please set your Gemini API key in preferences."):
        super().__init__(message)


class NoDocuments(PaperChatError):
    def __init__(self, message: str = "No PDF attachments found in selection."):
        super().__init__(message)


class ExtractionFailed(PaperChatError):
    def __init__(self, document_id: str, message: str):
        super().__init__(message)
        self.document_id = document_id


class StorageError(PaperChatError):
    """Durable key-value store read/write failure."""


class ModelError(PaperChatError):
    """The remote model call did not produce a usable answer."""


class TransportError(ModelError):
    """Non-2xx HTTP status or network failure talking to the model endpoint."""

    def __init__(self, status: Optional[int], message: str):
        if status is None:
            super().__init__(f"API error: {message}")
        else:
            super().__init__(f"API error: {status} - {message}")
        self.status = status
        self.server_message = message


class AuthError(TransportError):
    """Credential rejected by the remote endpoint."""


class RateLimited(TransportError):
    """Quota or rate limit exceeded."""


class SafetyBlocked(ModelError):
    def __init__(self, message: str = "Response blocked by safety filters"):
        super().__init__(message)
