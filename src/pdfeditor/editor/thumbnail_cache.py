"""
pdfeditor - Thumbnail Cache

Holds the page previews rendered when a document is loaded. Rotation is
never re-rendered: callers get a display transform to apply over the
cached bitmap instead.
"""

import threading
from collections.abc import Iterable
from dataclasses import dataclass

from pdfeditor.editor.page_model import PreviewRef, normalize_rotation
from pdfeditor.utils.logger import logger


@dataclass(frozen=True)
class DisplayTransform:
    """Visual transform for drawing a cached preview.

    Attributes:
        angle: Clockwise rotation to apply when drawing (0, 90, 180, 270)
        width: Width of the preview once rotated
        height: Height of the preview once rotated
    """

    angle: int
    width: int
    height: int

    @property
    def swaps_axes(self) -> bool:
        return self.angle in (90, 270)


class ThumbnailCache:
    """Maps page ids to the previews rendered at load time.

    The cache is filled exactly once per loaded document. Loading another
    document requires clear() first.
    """

    def __init__(self) -> None:
        self._previews: dict[int, PreviewRef] = {}
        self._populated = False
        self._lock = threading.Lock()

    @property
    def populated(self) -> bool:
        return self._populated

    def __len__(self) -> int:
        return len(self._previews)

    def __contains__(self, page_id: object) -> bool:
        try:
            return page_id in self._previews
        except TypeError:
            return False

    def populate(self, previews: Iterable[PreviewRef]) -> None:
        """Fill the cache from the previews of a freshly loaded document.

        Preview keys follow load order, matching the ids assigned by
        PageCollection.create().

        Args:
            previews: Ordered previews, one per source page

        Raises:
            RuntimeError: If the cache already holds a document's previews
        """
        with self._lock:
            if self._populated:
                raise RuntimeError("Thumbnail cache is already populated; clear() it first")
            self._previews = dict(enumerate(previews))
            self._populated = True
        logger.info(f"Thumbnail cache populated with {len(self._previews)} preview(s)")

    def get(self, preview_ref: int | None) -> PreviewRef | None:
        """Get a cached preview by its key, or None if it is not cached."""
        if preview_ref is None:
            return None
        with self._lock:
            return self._previews.get(preview_ref)

    def display_transform(self, preview_ref: int | None, rotation: int) -> DisplayTransform | None:
        """Compute how to draw a cached preview at the given page rotation.

        Args:
            preview_ref: Key of the preview in the cache
            rotation: Page rotation in degrees

        Returns:
            DisplayTransform, or None if the preview is not cached
        """
        preview = self.get(preview_ref)
        if preview is None:
            return None

        angle = normalize_rotation(rotation)
        if angle in (90, 270):
            return DisplayTransform(angle=angle, width=preview.height, height=preview.width)
        return DisplayTransform(angle=angle, width=preview.width, height=preview.height)

    def clear(self) -> None:
        """Discard every cached preview."""
        with self._lock:
            count = len(self._previews)
            for preview in self._previews.values():
                if preview.image is not None:
                    preview.image.close()
            self._previews.clear()
            self._populated = False
        if count:
            logger.debug(f"Thumbnail cache cleared ({count} preview(s))")
