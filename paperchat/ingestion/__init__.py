"""
Text extraction from the host's PDFs.
"""
from .pdf_extractor import PDFExtractor, estimate_tokens, truncate_to_token_limit

__all__ = ['PDFExtractor', 'estimate_tokens', 'truncate_to_token_limit']
