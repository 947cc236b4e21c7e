"""
Host collaborators: the library, the viewer and the full-text index.
"""
from .interfaces import FullTextIndex, HostDocumentStore, IndexedContent, ViewerBridge

__all__ = ['FullTextIndex', 'HostDocumentStore', 'IndexedContent', 'ViewerBridge']
