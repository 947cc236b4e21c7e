"""
Interfaces PaperChat needs from the hosting reference manager.

The host owns the library, the PDF viewer tabs and the full-text search
index. PaperChat only talks to them through these ports.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass(frozen=True)
class IndexedContent:
    text: str
    page_count: int = 0


class HostDocumentStore(ABC):
    @abstractmethod
    def resolve(self, document_id: str) -> Any:
        """Return an opaque handle for the item, or None if it does not exist."""
        ...

    @abstractmethod
    def get_title(self, document_id: str) -> str: ...

    @abstractmethod
    def is_pdf_like(self, handle: Any) -> bool: ...

    @abstractmethod
    def list_attachments(self, handle: Any) -> List[str]: ...


class ViewerBridge(ABC):
    @abstractmethod
    def get_open_viewer(self, document_id: str) -> Optional[Any]:
        """Return the viewer showing this document, or None if none is open."""
        ...

    @abstractmethod
    def page_count(self, viewer: Any) -> int: ...

    @abstractmethod
    def read_page_text(self, viewer: Any, page_number: int) -> str:
        """Text of one 1-indexed page. May raise; callers skip failed pages."""
        ...

    @abstractmethod
    def navigate(self, document_id: str, page_number: int) -> bool:
        """Scroll an open viewer to the page. False when no viewer could be driven."""
        ...

    @abstractmethod
    def open_externally(self, document_id: str, page_number: int) -> None: ...


class FullTextIndex(ABC):
    @abstractmethod
    def get_item_content(self, document_id: str) -> Optional[IndexedContent]: ...

    @abstractmethod
    def index_items(self, document_ids: List[str], force: bool = False) -> None: ...

    @abstractmethod
    def read_cache_file(self, document_id: str) -> Optional[str]:
        """Read the index's on-disk text artifact directly, if one exists."""
        ...
