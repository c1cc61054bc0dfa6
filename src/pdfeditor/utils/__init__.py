"""
pdfeditor - Utils Package

Utility modules for the application.
"""

from pdfeditor.utils.config_manager import ConfigManager
from pdfeditor.utils.exceptions import (
    ConfigurationError,
    DocumentLoadError,
    PdfEditorError,
    ReconstructionError,
    SaveTargetError,
)
from pdfeditor.utils.i18n import _
from pdfeditor.utils.logger import logger, setup_logging

__all__ = [
    "logger",
    "setup_logging",
    "_",
    "ConfigManager",
    "PdfEditorError",
    "DocumentLoadError",
    "ReconstructionError",
    "SaveTargetError",
    "ConfigurationError",
]
