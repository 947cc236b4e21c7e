"""
Local-filesystem host: a directory of PDFs standing in for the reference
manager's library, read with PyMuPDF.

Item IDs are POSIX paths relative to the library root. A .pdf file is a
PDF attachment; a directory is a parent record whose attachments are the
PDFs directly inside it.
"""
import hashlib
import re
import webbrowser
from pathlib import Path
from typing import Any, Dict, List, Optional

import fitz

from paperchat.host.interfaces import FullTextIndex, HostDocumentStore, IndexedContent, ViewerBridge
from paperchat.logging_config import get_logger

logger = get_logger(__name__)


class LocalPdfLibrary(HostDocumentStore):
    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, document_id: str) -> Path:
        path = (self.root / document_id).resolve()
        # IDs must stay inside the library
        if self.root.resolve() not in path.parents and path != self.root.resolve():
            raise ValueError(f"Document {document_id} is outside the library")
        return path

    def resolve(self, document_id: str) -> Optional[Path]:
        try:
            path = self.path_for(document_id)
        except ValueError:
            return None
        return path if path.exists() else None

    def get_title(self, document_id: str) -> str:
        path = self.resolve(document_id)
        if path is None:
            return "Untitled"
        if path.is_dir():
            return path.name
        try:
            with fitz.open(path) as doc:
                title = (doc.metadata or {}).get("title") or ""
        except (RuntimeError, OSError) as e:
            logger.debug(f"Could not read metadata of {document_id}: {e}")
            title = ""
        return title.strip() or path.stem

    def is_pdf_like(self, handle: Any) -> bool:
        return isinstance(handle, Path) and handle.is_file() and handle.suffix.lower() == ".pdf"

    def list_attachments(self, handle: Any) -> List[str]:
        if not isinstance(handle, Path) or not handle.is_dir():
            return []
        root = self.root.resolve()
        return [p.relative_to(root).as_posix() for p in sorted(handle.glob("*.pdf")) if p.is_file()]

    def list_items(self) -> List[str]:
        """Top-level items of the library (PDFs and parent directories)."""
        if not self.root.is_dir():
            return []
        items = []
        for p in sorted(self.root.iterdir()):
            if p.is_dir() or p.suffix.lower() == ".pdf":
                items.append(p.name)
        return items


class LocalFullTextIndex(FullTextIndex):
    """
    Full-text index that keeps one UTF-8 text file per PDF in cache_dir.

    get_item_content only knows items indexed by this process; the cache
    files survive restarts and are read by read_cache_file.
    """

    def __init__(self, library: LocalPdfLibrary, cache_dir: Path):
        self.library = library
        self.cache_dir = Path(cache_dir)
        self._content: Dict[str, IndexedContent] = {}

    def cache_file(self, document_id: str) -> Path:
        """One file per item ID: a readable stem plus a digest of the full ID."""
        stem = re.sub(r'[^A-Za-z0-9._-]', '_', Path(document_id).stem)[:40]
        digest = hashlib.sha1(document_id.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{stem}-{digest}.txt"

    def get_item_content(self, document_id: str) -> Optional[IndexedContent]:
        return self._content.get(document_id)

    def index_items(self, document_ids: List[str], force: bool = False) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        for document_id in document_ids:
            target = self.cache_file(document_id)
            if target.exists() and not force:
                continue

            path = self.library.resolve(document_id)
            if path is None or not self.library.is_pdf_like(path):
                logger.warning(f"Cannot index {document_id}: not a PDF in the library")
                continue

            try:
                with fitz.open(path) as doc:
                    pages = [page.get_text() for page in doc]
            except (RuntimeError, OSError) as e:
                logger.error(f"Indexing failed for {document_id}: {e}")
                continue

            text = "\n\n".join(pages)
            target.write_text(text, encoding="utf-8")
            self._content[document_id] = IndexedContent(text=text, page_count=len(pages))
            logger.info(f"Indexed {document_id} ({len(pages)} pages, {len(text):,} chars)")

    def read_cache_file(self, document_id: str) -> Optional[str]:
        target = self.cache_file(document_id)
        if not target.exists():
            return None
        return target.read_text(encoding="utf-8")


class LocalViewerBridge(ViewerBridge):
    """
    Viewer bridge over PyMuPDF documents opened by open_viewer().

    Navigation on an open viewer just records the current page; documents
    without a viewer are handed to the system PDF viewer.
    """

    def __init__(self, library: LocalPdfLibrary):
        self.library = library
        self.viewers: Dict[str, fitz.Document] = {}
        self.current_page: Dict[str, int] = {}

    def open_viewer(self, document_id: str) -> fitz.Document:
        if document_id not in self.viewers:
            path = self.library.resolve(document_id)
            if path is None or not self.library.is_pdf_like(path):
                raise ValueError(f"Document {document_id} is not a PDF in the library")
            self.viewers[document_id] = fitz.open(path)
            self.current_page[document_id] = 1
        return self.viewers[document_id]

    def close_all(self) -> None:
        for doc in self.viewers.values():
            doc.close()
        self.viewers.clear()
        self.current_page.clear()

    def get_open_viewer(self, document_id: str) -> Optional[fitz.Document]:
        return self.viewers.get(document_id)

    def page_count(self, viewer: fitz.Document) -> int:
        return viewer.page_count

    def read_page_text(self, viewer: fitz.Document, page_number: int) -> str:
        return viewer[page_number - 1].get_text()

    def navigate(self, document_id: str, page_number: int) -> bool:
        viewer = self.viewers.get(document_id)
        if viewer is None or not 1 <= page_number <= viewer.page_count:
            return False
        self.current_page[document_id] = page_number
        return True

    def open_externally(self, document_id: str, page_number: int) -> None:
        path = self.library.resolve(document_id)
        if path is None:
            logger.warning(f"Cannot open {document_id}: not found")
            return
        uri = f"{path.as_uri()}#page={page_number}"
        logger.info(f"Opening {uri}")
        webbrowser.open(uri)
