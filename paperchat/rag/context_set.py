"""
Documents in scope for a conversation, and the session state that hangs off them.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from paperchat.host.interfaces import HostDocumentStore
from paperchat.logging_config import get_logger
from paperchat.models import DocumentRef, Message

logger = get_logger(__name__)


def _escape_member(document_id: str) -> str:
    return document_id.replace("\\", "\\\\").replace("_", "\\_")


def conversation_id_for(document_ids: Iterable[str]) -> str:
    """
    Composite key: member IDs sorted and joined with "_", so selection order does not matter.

    Backslash and "_" inside an ID are backslash-escaped, so path-like IDs
    containing "_" cannot collide with a different set. Numeric IDs are
    unchanged ("12" and "7" give "12_7").
    """
    return "_".join(_escape_member(d) for d in sorted(str(d) for d in document_ids))


class ContextSet:
    """Ordered set of DocumentRefs, unique by document_id."""

    def __init__(self, documents: Optional[Iterable[DocumentRef]] = None):
        self._documents: List[DocumentRef] = []
        self.replace(documents or [])

    def __iter__(self) -> Iterator[DocumentRef]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: str) -> bool:
        return any(d.document_id == document_id for d in self._documents)

    @property
    def documents(self) -> List[DocumentRef]:
        return list(self._documents)

    @property
    def extractable(self) -> List[DocumentRef]:
        return [d for d in self._documents if d.has_extractable_text]

    @property
    def conversation_id(self) -> str:
        return conversation_id_for(d.document_id for d in self._documents)

    def append(self, document: DocumentRef) -> bool:
        """Add a document; returns False if it is already in the set."""
        if document.document_id in self:
            return False
        self._documents.append(document)
        return True

    def replace(self, documents: Iterable[DocumentRef]) -> None:
        self._documents = []
        for document in documents:
            self.append(document)


@dataclass
class SessionContext:
    """
    State owned by one hosting session (a chat panel, an API process).

    content_cache maps ConversationID -> combined paper text for the current
    ContextSet; conversation_cache is the ConversationStore's in-memory side.
    Neither is persisted.
    """
    context_set: ContextSet = field(default_factory=ContextSet)
    content_cache: Dict[str, str] = field(default_factory=dict)
    conversation_cache: Dict[str, List[Message]] = field(default_factory=dict)
    closed: bool = False

    def invalidate_content(self) -> None:
        self.content_cache.clear()

    def close(self) -> None:
        self.closed = True
        self.content_cache.clear()
        self.conversation_cache.clear()


def resolve_selection(documents: HostDocumentStore, item_ids: Iterable[str]) -> List[DocumentRef]:
    """
    Turn selected host items into DocumentRefs.

    A PDF item stands for itself. A parent item uses its first PDF
    attachment. Items without any PDF are kept, flagged as having no
    extractable text. Unknown IDs are skipped.
    """
    refs = []
    for item_id in item_ids:
        handle = documents.resolve(item_id)
        if handle is None:
            logger.warning(f"Selected item {item_id} not found")
            continue

        title = documents.get_title(item_id) or "Untitled"
        if documents.is_pdf_like(handle):
            refs.append(DocumentRef(document_id=item_id, title=title))
            continue

        attachment_id = next(
            (a for a in documents.list_attachments(handle) if documents.is_pdf_like(documents.resolve(a))),
            None
        )
        refs.append(DocumentRef(
            document_id=item_id,
            title=title,
            has_extractable_text=attachment_id is not None,
            attachment_id=attachment_id
        ))
    return refs
