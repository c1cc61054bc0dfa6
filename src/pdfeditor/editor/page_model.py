"""
pdfeditor - Page Model

Data models for the editable page view over a source document, and the
page collection engine that owns every mutation of that view.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from pdfeditor.config import VALID_ROTATIONS
from pdfeditor.utils.logger import logger

if TYPE_CHECKING:
    from PIL import Image


def normalize_rotation(degrees: int) -> int:
    """Normalize an angle to one of 0, 90, 180 or 270 degrees."""
    rotation = degrees % 360
    if rotation not in VALID_ROTATIONS:
        # Round to nearest valid rotation
        rotation = round(rotation / 90) * 90 % 360
    return rotation


class DropSide(Enum):
    """Where a reordered page lands relative to its target."""

    AUTO = "auto"
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class PreviewRef:
    """Handle to one rendered page preview.

    Attributes:
        index: Source page index (0-indexed) the preview was rendered from
        width: Intrinsic preview width in pixels (or points for size-only previews)
        height: Intrinsic preview height
        image: Rendered bitmap, None for size-only previews
    """

    index: int
    width: int
    height: int
    image: "Image.Image | None" = field(default=None, compare=False, repr=False)


@dataclass
class PageDescriptor:
    """Editable state of a single source page.

    Attributes:
        id: Identity of the page within its collection, never reused
        original_index: Page position in the source document (0-indexed)
        rotation: Editor rotation in degrees (0, 90, 180, 270)
        deleted: Whether page is marked for deletion (soft delete)
        preview_ref: Key of the page preview in the thumbnail cache
    """

    id: int
    original_index: int
    rotation: int = 0
    deleted: bool = False
    preview_ref: int | None = None

    def __post_init__(self) -> None:
        """Validate and normalize rotation angle."""
        self.rotation = normalize_rotation(self.rotation)

    def rotate_right(self) -> None:
        """Rotate page 90 degrees clockwise."""
        self.rotation = (self.rotation + 90) % 360

    def rotate_left(self) -> None:
        """Rotate page 90 degrees counter-clockwise."""
        self.rotation = (self.rotation - 90) % 360

    def toggle_deleted(self) -> None:
        """Flip the soft-delete flag."""
        self.deleted = not self.deleted


class PageCollection:
    """Ordered, editable set of page descriptors for one source document.

    Descriptors are kept in an arena addressed by id, and the display order
    is a separate list of ids. Deleting a page only sets its flag, so the
    order always holds every id created at load time.
    """

    def __init__(self, descriptors: Iterable[PageDescriptor]) -> None:
        """Initialize the collection.

        Args:
            descriptors: Descriptors in initial display order
        """
        self._by_id: dict[int, PageDescriptor] = {}
        self._order: list[int] = []
        for descriptor in descriptors:
            if descriptor.id in self._by_id:
                raise ValueError(f"Duplicate page id {descriptor.id}")
            self._by_id[descriptor.id] = descriptor
            self._order.append(descriptor.id)

        indices = sorted(d.original_index for d in self._by_id.values())
        if indices != list(range(len(indices))):
            raise ValueError("Original page indices must be a permutation of 0..N-1")

        self.modified = False

    @classmethod
    def create(cls, previews: Iterable[PreviewRef]) -> "PageCollection":
        """Build a collection with one descriptor per rendered preview.

        Ids and original indices are assigned sequentially in preview order.

        Args:
            previews: Ordered page previews, one per source page

        Returns:
            New PageCollection in identity order
        """
        descriptors = [
            PageDescriptor(id=i, original_index=i, preview_ref=i)
            for i, _preview in enumerate(previews)
        ]
        collection = cls(descriptors)
        logger.info(f"Created page collection with {len(descriptors)} page(s)")
        return collection

    # --- Read access ---

    @property
    def order(self) -> tuple[int, ...]:
        """Current display order as a tuple of ids."""
        return tuple(self._order)

    @property
    def page_count(self) -> int:
        return len(self._order)

    @property
    def active_count(self) -> int:
        return sum(1 for d in self._by_id.values() if not d.deleted)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, page_id: object) -> bool:
        try:
            return page_id in self._by_id
        except TypeError:
            return False

    def get(self, page_id: int) -> PageDescriptor | None:
        """Get a snapshot of the descriptor with the given id.

        Returns:
            Copy of the descriptor, or None if the id is unknown
        """
        if page_id not in self:
            return None
        return replace(self._by_id[page_id])

    def index_of(self, page_id: int) -> int | None:
        """Get the display position of a page id, or None if unknown."""
        if page_id not in self:
            return None
        return self._order.index(page_id)

    def id_at(self, index: int) -> int | None:
        """Get the page id shown at a display position, or None if out of range."""
        if 0 <= index < len(self._order):
            return self._order[index]
        return None

    def list_pages(self) -> list[tuple[int, PageDescriptor]]:
        """Get the display view of the collection.

        Returns:
            (display_index, descriptor) pairs in display order. Descriptors
            are copies; editing them does not affect the collection.
        """
        return [(i, replace(self._by_id[pid])) for i, pid in enumerate(self._order)]

    def active_pages(self) -> list[PageDescriptor]:
        """Get pages that are not marked as deleted, in display order."""
        return [replace(d) for _, d in self.list_pages() if not d.deleted]

    # --- Mutations ---

    def rotate(self, page_id: int) -> bool:
        """Rotate a page 90 degrees clockwise.

        Returns:
            True if the page exists and was rotated
        """
        page = self._lookup(page_id, "rotate")
        if page is None:
            return False
        page.rotate_right()
        self.modified = True
        logger.debug(f"Rotated page {page_id} to {page.rotation}°")
        return True

    def rotate_left(self, page_id: int) -> bool:
        """Rotate a page 90 degrees counter-clockwise.

        Returns:
            True if the page exists and was rotated
        """
        page = self._lookup(page_id, "rotate_left")
        if page is None:
            return False
        page.rotate_left()
        self.modified = True
        logger.debug(f"Rotated page {page_id} to {page.rotation}°")
        return True

    def toggle_deleted(self, page_id: int) -> bool:
        """Flip the soft-delete flag of a page.

        Returns:
            True if the page exists and was toggled
        """
        page = self._lookup(page_id, "toggle_deleted")
        if page is None:
            return False
        page.toggle_deleted()
        self.modified = True
        logger.debug(f"Page {page_id} deleted={page.deleted}")
        return True

    def can_move(self, index: int, direction: int) -> bool:
        """Check whether move(index, direction) would change the order."""
        if direction not in (-1, 1):
            return False
        target = index + direction
        size = len(self._order)
        return 0 <= index < size and 0 <= target < size

    def move(self, index: int, direction: int) -> bool:
        """Swap the page at a display position with its neighbour.

        Out-of-range positions are ignored without error.

        Args:
            index: Display position of the page to move
            direction: -1 to move towards the start, +1 towards the end

        Returns:
            True if the order changed
        """
        if not self.can_move(index, direction):
            logger.debug(f"Ignored move({index}, {direction}) on {len(self._order)} page(s)")
            return False

        target = index + direction
        order = self._order
        order[index], order[target] = order[target], order[index]
        self.modified = True
        logger.debug(f"Moved page from position {index} to {target}")
        return True

    def reorder(self, source_id: int, target_id: int, side: DropSide = DropSide.AUTO) -> bool:
        """Move a page next to another page.

        With DropSide.AUTO the source takes the target's position: it lands
        after the target when moving forward and before it when moving
        backward. BEFORE and AFTER place it on that side of the target.

        Args:
            source_id: Id of the page being moved
            target_id: Id of the page it is dropped on
            side: Drop position relative to the target

        Returns:
            True if the order changed
        """
        if source_id == target_id or source_id not in self or target_id not in self:
            logger.debug(f"Ignored reorder({source_id!r}, {target_id!r})")
            return False

        previous = list(self._order)
        target_pos = self._order.index(target_id)
        self._order.remove(source_id)

        if side is DropSide.AUTO:
            insert_at = target_pos
        else:
            insert_at = self._order.index(target_id)
            if side is DropSide.AFTER:
                insert_at += 1

        self._order.insert(insert_at, source_id)

        if self._order == previous:
            return False

        self.modified = True
        logger.debug(f"Page {source_id} reordered to position {insert_at}")
        return True

    def mark_modified(self) -> None:
        """Mark the collection as modified."""
        self.modified = True

    def clear_modifications(self) -> None:
        """Clear the modified flag."""
        self.modified = False

    def _lookup(self, page_id: int, operation: str) -> PageDescriptor | None:
        if page_id not in self:
            logger.debug(f"Ignored {operation} on unknown page id {page_id!r}")
            return None
        return self._by_id[page_id]
