"""
Text extraction for PDFs in the host library.

Tries an open viewer first (cheapest, already decoded), then the host's
full-text index. Extraction never silently returns empty text: when every
strategy comes up short, ExtractionFailed tells the user what to do.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import math

from paperchat.config import MAX_TOKENS_PER_DOCUMENT
from paperchat.errors import ExtractionFailed
from paperchat.host.interfaces import FullTextIndex, HostDocumentStore, ViewerBridge
from paperchat.logging_config import get_logger
from paperchat.models import ExtractedText, ExtractionBatch

logger = get_logger(__name__)

# Shorter text counts as a failed decode
MIN_USABLE_CHARS = 50
CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "\n\n[Content truncated due to length...]"
EXTRACTION_FAILED_MESSAGE = "Could not extract text. Please open the PDF in a viewer tab and try again."


def is_usable(text: Optional[str]) -> bool:
    return bool(text) and len(text.strip()) > MIN_USABLE_CHARS


def estimate_tokens(text: str) -> int:
    """Rough estimate: ~4 characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate_to_token_limit(text: str, max_tokens: int = MAX_TOKENS_PER_DOCUMENT) -> str:
    """Return text unchanged if within max_tokens, else hard-cut it and append a visible marker."""
    if estimate_tokens(text) <= max_tokens:
        return text
    return text[:max_tokens * CHARS_PER_TOKEN] + TRUNCATION_MARKER


@dataclass
class StrategyResult:
    name: str
    success: bool
    text: str = ""
    page_count: int = 0
    reason: str = ""


class OpenViewerStrategy:
    """Read the text an already-open viewer has decoded, page by page."""
    name = "open_viewer"

    def __init__(self, viewer_bridge: ViewerBridge):
        self.viewer_bridge = viewer_bridge

    def __call__(self, document_id: str) -> StrategyResult:
        viewer = self.viewer_bridge.get_open_viewer(document_id)
        if viewer is None:
            return StrategyResult(self.name, False, reason="no open viewer")

        page_count = self.viewer_bridge.page_count(viewer)
        pages = []
        for page_number in range(1, page_count + 1):
            try:
                pages.append(self.viewer_bridge.read_page_text(viewer, page_number))
            except Exception as e:
                # Failed pages are omitted from the result
                logger.debug(f"Page {page_number} of {document_id} extraction error: {e}")

        text = "\n\n".join(pages)
        if not is_usable(text):
            return StrategyResult(self.name, False, reason=f"only {len(text.strip())} chars from viewer")
        return StrategyResult(self.name, True, text=text, page_count=page_count)


class FullTextIndexStrategy:
    """Read the host's search index; index the item (non-forced) and read its cache file if needed."""
    name = "fulltext_index"

    def __init__(self, index: FullTextIndex):
        self.index = index

    def __call__(self, document_id: str) -> StrategyResult:
        content = self.index.get_item_content(document_id)
        if content is not None and is_usable(content.text):
            return StrategyResult(self.name, True, text=content.text, page_count=content.page_count)

        self.index.index_items([document_id], force=False)
        cached = self.index.read_cache_file(document_id)
        if is_usable(cached):
            return StrategyResult(self.name, True, text=cached, page_count=0)
        return StrategyResult(self.name, False, reason="no usable index entry or cache file")


class PDFExtractor:
    """
    Extracts best-effort plain text from library PDFs.

    Strategies run in order until one returns usable text (> 50 chars after
    trimming). A strategy that raises is logged and counted as a failure.
    """

    def __init__(
        self,
        documents: HostDocumentStore,
        viewer_bridge: ViewerBridge,
        index: FullTextIndex,
        strategies: Optional[Sequence[Callable[[str], StrategyResult]]] = None,
    ):
        self.documents = documents
        self.strategies = list(strategies) if strategies is not None else [
            OpenViewerStrategy(viewer_bridge),
            FullTextIndexStrategy(index),
        ]

    def extract(self, document_id: str) -> ExtractedText:
        logger.debug(f"Extracting content from {document_id}")

        for strategy in self.strategies:
            name = getattr(strategy, "name", type(strategy).__name__)
            try:
                result = strategy(document_id)
            except Exception as e:
                logger.error(f"Strategy {name} failed for {document_id}: {e}", exc_info=True)
                continue

            if result.success:
                logger.info(f"Extracted {len(result.text):,} chars from {document_id} via {name}")
                return ExtractedText(document_id=document_id, text=result.text, page_count=result.page_count)
            logger.debug(f"Strategy {name} yielded nothing for {document_id}: {result.reason}")

        raise ExtractionFailed(document_id, EXTRACTION_FAILED_MESSAGE)

    def extract_many(self, document_ids: List[str]) -> ExtractionBatch:
        """Extract each document in order under a title banner, skipping failures."""
        papers = []
        combined_text = ""

        for document_id in document_ids:
            try:
                content = self.extract(document_id)
            except ExtractionFailed as e:
                logger.error(f"Failed to extract {document_id}: {e}")
                continue

            papers.append(content)
            title = self.documents.get_title(document_id) or "Untitled"
            combined_text += f"\n\n=== PAPER: {title} ===\n{content.text}"

        return ExtractionBatch(combined_text=combined_text.strip(), count=len(papers), papers=papers)

    estimate_tokens = staticmethod(estimate_tokens)
    truncate = staticmethod(truncate_to_token_limit)
