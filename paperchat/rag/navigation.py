"""
Page navigation for clicked page references.
"""
from paperchat.host.interfaces import ViewerBridge
from paperchat.logging_config import get_logger

logger = get_logger(__name__)


class PageNavigator:
    """Scrolls an open viewer to a page, or opens the PDF at that page."""

    def __init__(self, viewer_bridge: ViewerBridge):
        self.viewer_bridge = viewer_bridge

    def navigate_to_page(self, document_id: str, page_number: int) -> bool:
        """Returns True if an open viewer was moved, False if the document was opened externally or navigation failed."""
        try:
            if self.viewer_bridge.navigate(document_id, page_number):
                return True
            self.viewer_bridge.open_externally(document_id, page_number)
        except Exception as e:
            # Out-of-range pages and closed viewers are logged, not raised
            logger.error(f"Navigation error for {document_id} page {page_number}: {e}")
        return False

    __call__ = navigate_to_page
