"""Logging setup for gobin."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Setup logging for the CLI.

    Args:
        verbose: Log DEBUG messages to the console instead of INFO
        log_file: Optional rotating log file (always logs INFO and above)
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Re-running setup (tests, repeated main() calls) must not stack handlers
    for handler in list(logger.handlers):
        if getattr(handler, "_gobin_handler", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._gobin_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler._gobin_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)
