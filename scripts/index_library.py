"""
Build the full-text cache for the local PDF library.

Writes one text file per PDF into INDEX_CACHE_DIR so the first chat turn on a
paper does not have to decode it.
"""
import argparse
import logging
from pathlib import Path

from paperchat.config import INDEX_CACHE_DIR, LIBRARY_DIR, LOG_LEVEL
from paperchat.host.local import LocalFullTextIndex, LocalPdfLibrary
from paperchat.logging_config import setup_logging

logger = logging.getLogger(__name__)


def collect_pdf_ids(library: LocalPdfLibrary):
    """Every PDF in the library: standalone files and the attachments of parent directories."""
    pdf_ids = []
    for item_id in library.list_items():
        handle = library.resolve(item_id)
        if library.is_pdf_like(handle):
            pdf_ids.append(item_id)
        else:
            pdf_ids.extend(library.list_attachments(handle))
    return pdf_ids


def main():
    parser = argparse.ArgumentParser(
        description="Extract text from every PDF in the library into the full-text cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Index new PDFs only (default)
  python -m scripts.index_library

  # Re-extract everything
  python -m scripts.index_library --force

  # Index a different library
  python -m scripts.index_library --library ~/papers --cache-dir ~/papers/.cache
        """
    )

    parser.add_argument("--library", type=str, default=LIBRARY_DIR,
                       help=f"Library root (default: {LIBRARY_DIR})")
    parser.add_argument("--cache-dir", type=str, default=INDEX_CACHE_DIR,
                       help=f"Where cache files are written (default: {INDEX_CACHE_DIR})")
    parser.add_argument("--force", action="store_true",
                       help="Re-extract PDFs that already have a cache file")
    parser.add_argument("--log-level", type=str,
                       choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                       help="Logging level (default: LOG_LEVEL env var or INFO)")

    args = parser.parse_args()

    # Precedence: CLI arg > env var > default
    setup_logging(level=args.log_level or LOG_LEVEL, log_file="logs/index_library.log")

    library = LocalPdfLibrary(Path(args.library).expanduser())
    index = LocalFullTextIndex(library, Path(args.cache_dir).expanduser())

    pdf_ids = collect_pdf_ids(library)
    if not pdf_ids:
        logger.info(f"No PDFs found under {args.library}")
        return

    logger.info(f"Indexing {len(pdf_ids)} PDFs (force={args.force})")
    index.index_items(pdf_ids, force=args.force)

    cached = sum(1 for pdf_id in pdf_ids if index.cache_file(pdf_id).exists())
    logger.info(f"Done: {cached}/{len(pdf_ids)} PDFs have a cache file in {args.cache_dir}")


if __name__ == "__main__":
    main()
