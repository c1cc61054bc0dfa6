"""
pdfeditor - Logging Module

Provides the shared package logger.
"""

import logging

LOGGER_NAME = "pdfeditor"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line use.

    Args:
        verbose: Enable DEBUG output when True, INFO otherwise
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
