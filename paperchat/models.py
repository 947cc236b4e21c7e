"""
Core data models for PaperChat.

These models represent the documents in scope for a chat, the messages
exchanged with the model, and the outcome of a single chat turn.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import time


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DocumentRef:
    """
    A document selected into a chat.

    document_id identifies the selected item and is what the conversation key
    is built from. attachment_id points at the PDF that actually carries the
    text when the selected item is a parent record; None means the item is
    the PDF itself.
    """
    document_id: str
    title: str
    has_extractable_text: bool = True
    attachment_id: Optional[str] = None

    @property
    def source_id(self) -> str:
        """ID to read text from and to navigate in."""
        return self.attachment_id or self.document_id


@dataclass(frozen=True)
class ExtractedText:
    document_id: str
    text: str
    page_count: int = 0


@dataclass
class ExtractionBatch:
    """Combined result of extracting several documents in order."""
    combined_text: str
    count: int
    papers: List[ExtractedText] = field(default_factory=list)


@dataclass(frozen=True)
class Message:
    """
    A single chat message.

    Format when persisted: {"role": "user", "content": "...", "timestamp": 1700000000000}
    """
    role: str  # "user" | "assistant" | "system"
    content: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=data.get("role", "user"),
            content=data.get("content", ""),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass(frozen=True)
class ImageAttachment:
    """Image sent alongside the paper text. Raw bytes are base64-encoded on send."""
    data: Union[bytes, str]
    mime_type: str = "image/png"


@dataclass
class ModelResponse:
    text: str
    references: List[int] = field(default_factory=list)
    usage: Optional[Dict[str, Any]] = None


class TurnState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    QUERYING = "querying"
    ERROR = "error"


@dataclass
class TurnResult:
    """
    What the chat panel should show after a user action.

    accepted is False when the action was ignored (blank input, or a turn
    already in flight). messages are role-tagged entries to append to the
    panel; they are not necessarily persisted. error holds the failure
    category ("missing_credential", "no_documents", "auth", "model") or None.
    """
    accepted: bool
    messages: List[Message] = field(default_factory=list)
    status: str = ""
    error: Optional[str] = None
    references: List[int] = field(default_factory=list)
    conversation_id: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
