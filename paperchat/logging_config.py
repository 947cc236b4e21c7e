"""
Logging configuration for PaperChat.
Provides consistent logging across all modules.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# HTTP clients (Gemini calls), the ORM (preference store) and PyMuPDF (extraction)
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "sqlalchemy.engine", "fitz")


def setup_logging(level: str = "INFO", log_file: str = None,
                  max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, only logs to console.
        max_bytes: Size at which the log file is rotated (default 10MB)
        backup_count: Number of rotated files kept
    """
    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)

    handlers = [console_handler]

    # File handler with rotation (optional)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=numeric_level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # Chat turns are logged at INFO; keep library DEBUG chatter out of them
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level} level")
    if log_file:
        logger.info(f"Logging to file: {log_file} (rotating at {max_bytes} bytes, {backup_count} backups)")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module; pass __name__."""
    return logging.getLogger(name)
