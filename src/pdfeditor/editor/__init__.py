"""
pdfeditor - Page Editor Module

Editable page state over a loaded PDF: rotation, soft deletion and
reordering, plus the preview cache and drag-to-reorder handling.

Main Components:
- PageCollection: ordered page descriptors and all page mutations
- ThumbnailCache: previews rendered once at load time
- DragReorderController: pointer/keyboard gestures to reorder calls
"""

from pdfeditor.editor.drag_controller import (
    DragProxy,
    DragReorderController,
    DragState,
    DropResult,
    Slot,
)
from pdfeditor.editor.page_model import (
    DropSide,
    PageCollection,
    PageDescriptor,
    PreviewRef,
    normalize_rotation,
)
from pdfeditor.editor.thumbnail_cache import DisplayTransform, ThumbnailCache

__all__ = [
    "PageCollection",
    "PageDescriptor",
    "PreviewRef",
    "DropSide",
    "normalize_rotation",
    "ThumbnailCache",
    "DisplayTransform",
    "DragReorderController",
    "DragState",
    "DragProxy",
    "DropResult",
    "Slot",
]
