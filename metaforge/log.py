import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import Settings, get_settings

# Package logger; every module logs through a child of it
logger = logging.getLogger("metaforge")

# Structured scrape events (local-only file)
debug_logger = logging.getLogger("metaforge.debug")
debug_logger.propagate = False
debug_logger.disabled = True

_configured = False


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Attach file and stdout handlers to the package logger (once)."""
    global _configured
    settings = settings or get_settings()

    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    if _configured:
        return logger

    os.makedirs(settings.log_dir, exist_ok=True)
    log_file = os.path.join(settings.log_dir, 'metaforge.log')

    # File Handler
    file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(file_handler)

    # Stream Handler (stdout)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter('%(message)s'))  # Keep stdout clean
    logger.addHandler(stream_handler)

    if settings.debug_logging:
        os.makedirs(settings.debug_log_dir, exist_ok=True)
        debug_log_file = os.path.join(settings.debug_log_dir, 'debug.log')
        if not any(getattr(h, "baseFilename", None) == debug_log_file for h in debug_logger.handlers):
            debug_handler = RotatingFileHandler(debug_log_file, maxBytes=10 * 1024 * 1024, backupCount=10)
            debug_handler.setFormatter(logging.Formatter('%(message)s'))
            debug_logger.addHandler(debug_handler)
        debug_logger.setLevel(logging.INFO)
        debug_logger.disabled = False

    _configured = True
    return logger


def debug_log_event(event: dict) -> None:
    """Write structured debug events to a local file."""
    if debug_logger.disabled:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=True, separators=(',', ':'), default=str))
    except (TypeError, ValueError) as exc:
        logger.info(f"Debug log failure: {exc}")
