"""
Page-reference parsing for model answers.

Finds "page 5" / "(Page 12)" / "pages 5-7" mentions, normalises them to page
numbers, and splits answer text into plain spans and clickable page links.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from paperchat.logging_config import get_logger

logger = get_logger(__name__)

# Matches:
# - "page 5", "Page 12", "PAGE 3", "(page 3)", "page5"
# - "pages 5-7", "page 5 - 7", "pages 5–7" (en dash)
# s? lets the plural share the singular pattern; there is no separate plural keyword
# Group 1 = start page, group 2 = optional end page
PAGE_REFERENCE_PATTERN = re.compile(r'pages?\s*(\d+)(?:\s*[-–]\s*(\d+))?', re.IGNORECASE)

# Wider ranges are not expanded
MAX_RANGE_SPAN = 5000

NavigateHandler = Callable[[str, int], object]


def _match_pages(match: "re.Match[str]") -> range:
    start_page = int(match.group(1))
    end_page = int(match.group(2)) if match.group(2) else start_page
    if end_page - start_page >= MAX_RANGE_SPAN:
        logger.warning(f"Skipping page range {start_page}-{end_page}: wider than {MAX_RANGE_SPAN} pages")
        return range(0)
    # Reversed ranges ("page 9-3") cover no pages
    return range(start_page, end_page + 1)


def extract_references(text: str) -> List[int]:
    """
    Extract unique page numbers mentioned in text, sorted ascending.

    Ranges expand inclusively. Numbers are taken literally: "page 0" yields 0
    and nothing is checked against the document's page count.
    """
    references = set()
    for match in PAGE_REFERENCE_PATTERN.finditer(text or ""):
        references.update(_match_pages(match))
    return sorted(references)


@dataclass(frozen=True)
class TextSpan:
    text: str


@dataclass(frozen=True)
class PageLink:
    """One clickable page number. Clicking calls on_click(document_id, page)."""
    document_id: str
    page: int
    on_click: Optional[NavigateHandler] = field(default=None, compare=False, repr=False)

    @property
    def text(self) -> str:
        return f"page {self.page}"

    @property
    def title(self) -> str:
        return f"Click to go to page {self.page}"

    def click(self):
        if self.on_click is None:
            return None
        return self.on_click(self.document_id, self.page)


@dataclass(frozen=True)
class PageRange:
    """Range rendered as "pages " + link(start) + "-" + link(end)."""
    start: PageLink
    end: PageLink

    @property
    def text(self) -> str:
        return f"pages {self.start.page}-{self.end.page}"


FragmentNode = Union[TextSpan, PageLink, PageRange]


def linkify(text: str, document_id: str, on_click: Optional[NavigateHandler] = None) -> List[FragmentNode]:
    """
    Split text into plain spans and page links, in original order.

    Text outside matches is kept byte-for-byte. A single-page match (or a
    range whose ends are equal) becomes one PageLink; a range becomes a
    PageRange with a link at each end.
    """
    fragment: List[FragmentNode] = []
    last_index = 0

    for match in PAGE_REFERENCE_PATTERN.finditer(text):
        if match.start() > last_index:
            fragment.append(TextSpan(text[last_index:match.start()]))

        start_page = int(match.group(1))
        end_page = int(match.group(2)) if match.group(2) else start_page

        if start_page == end_page:
            fragment.append(PageLink(document_id, start_page, on_click))
        else:
            fragment.append(PageRange(
                start=PageLink(document_id, start_page, on_click),
                end=PageLink(document_id, end_page, on_click),
            ))

        last_index = match.end()

    if last_index < len(text):
        fragment.append(TextSpan(text[last_index:]))

    return fragment


def render_fragment(fragment: List[FragmentNode]) -> str:
    """Plain-text rendering of a linkified fragment."""
    return "".join(node.text for node in fragment)


def fragment_to_dicts(fragment: List[FragmentNode]) -> List[dict]:
    """JSON-friendly form of a fragment for API clients."""
    nodes = []
    for node in fragment:
        if isinstance(node, TextSpan):
            nodes.append({"type": "text", "text": node.text})
        elif isinstance(node, PageLink):
            nodes.append({"type": "page", "document_id": node.document_id, "page": node.page})
        else:
            nodes.append({
                "type": "range",
                "document_id": node.start.document_id,
                "start": node.start.page,
                "end": node.end.page,
            })
    return nodes


def reference_shortcuts(references: List[int], limit: int = 5) -> List[int]:
    """Pages offered as "Go to" shortcuts under an answer."""
    return references[:limit]
