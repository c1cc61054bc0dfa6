"""
pdfeditor - Python package for rotating, deleting and reordering PDF pages

This package provides the page-editing engine behind a visual PDF page
editor: an editable page collection with a preview cache and drag-to-reorder
handling, and a pipeline that rebuilds the edited document with pikepdf.
"""

import locale

__version__ = "1.0.0"
__license__ = "GPL-3.0"


def setup_i18n() -> None:
    """Initialize locale settings for translated messages."""
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        pass
