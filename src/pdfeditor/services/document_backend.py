"""
pdfeditor - Document Backend

Page-level PDF manipulation used by the reconstruction pipeline.
Uses pikepdf for parsing, copying pages and serialization.

The source document is never modified: pages are copied into a scratch
document first, adjusted there, and then appended to the destination.
"""

import io
from dataclasses import dataclass, field
from typing import Any, Protocol

import pikepdf

from pdfeditor.editor.page_model import normalize_rotation
from pdfeditor.utils.logger import logger

# Guard against malformed page trees with /Parent cycles
_MAX_TREE_DEPTH = 64


class DocumentBackend(Protocol):
    """Operations the reconstruction pipeline needs from a PDF library.

    Every call may raise; the pipeline turns failures into a
    ReconstructionError.
    """

    def open_source(self, data: bytes) -> Any: ...

    def create_document(self) -> Any: ...

    def copy_page(self, source: Any, original_index: int) -> Any: ...

    def get_rotation(self, page: Any) -> int: ...

    def set_rotation(self, page: Any, degrees: int) -> None: ...

    def append_page(self, dest: Any, page: Any) -> None: ...

    def set_info(self, dest: Any, author: str = "", title: str = "") -> None: ...

    def serialize(self, dest: Any) -> bytes: ...

    def close(self, handle: Any) -> None: ...


def resolve_page_rotation(page: pikepdf.Page) -> int:
    """Resolve the effective /Rotate of a page, including inherited values.

    Args:
        page: Page to inspect

    Returns:
        Rotation normalized to 0, 90, 180 or 270
    """
    node = page.obj
    depth = 0
    while node is not None and depth < _MAX_TREE_DEPTH:
        if pikepdf.Name.Rotate in node:
            return normalize_rotation(int(node[pikepdf.Name.Rotate]))
        node = node.get(pikepdf.Name.Parent)
        depth += 1
    return 0


@dataclass
class PageCopy:
    """A source page copied out of the source document.

    Attributes:
        page: The copy, owned by its scratch document
        scratch: Document holding the copy until it is appended
        intrinsic_rotation: Rotation the page carried in the source
    """

    page: pikepdf.Page
    scratch: pikepdf.Pdf
    intrinsic_rotation: int


@dataclass
class Destination:
    """Output document under construction.

    Scratch documents are kept open until serialization because pikepdf
    copies foreign stream data lazily at save time.
    """

    pdf: pikepdf.Pdf
    keepalive: list[pikepdf.Pdf] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pdf.pages)


class PikepdfBackend:
    """DocumentBackend implementation backed by pikepdf."""

    def open_source(self, data: bytes) -> pikepdf.Pdf:
        """Open source bytes as a PDF document."""
        return pikepdf.open(io.BytesIO(data))

    def create_document(self) -> Destination:
        """Create an empty destination document."""
        return Destination(pdf=pikepdf.new())

    def copy_page(self, source: pikepdf.Pdf, original_index: int) -> PageCopy:
        """Copy one page of the source into a detached scratch document.

        Args:
            source: Opened source document
            original_index: Page index in the source (0-indexed)

        Returns:
            PageCopy carrying the page and its source rotation

        Raises:
            IndexError: If the index is outside the source page range
        """
        if original_index < 0 or original_index >= len(source.pages):
            raise IndexError(
                f"Page index {original_index} out of range for {len(source.pages)} page(s)"
            )

        src_page = source.pages[original_index]
        rotation = resolve_page_rotation(src_page)

        scratch = pikepdf.new()
        scratch.pages.append(src_page)
        return PageCopy(page=scratch.pages[0], scratch=scratch, intrinsic_rotation=rotation)

    def get_rotation(self, page: PageCopy) -> int:
        """Get the rotation the page had in the source document."""
        return page.intrinsic_rotation

    def set_rotation(self, page: PageCopy, degrees: int) -> None:
        """Set the absolute /Rotate of a copied page."""
        rotation = normalize_rotation(degrees)
        obj = page.page.obj
        if rotation != 0:
            obj[pikepdf.Name.Rotate] = rotation
        elif pikepdf.Name.Rotate in obj:
            del obj[pikepdf.Name.Rotate]

    def append_page(self, dest: Destination, page: PageCopy) -> None:
        """Append a copied page at the end of the destination."""
        dest.pdf.pages.append(page.page)
        dest.keepalive.append(page.scratch)

    def set_info(self, dest: Destination, author: str = "", title: str = "") -> None:
        """Write author and title into the document information dictionary."""
        if author:
            dest.pdf.docinfo[pikepdf.Name.Author] = author
        if title:
            dest.pdf.docinfo[pikepdf.Name.Title] = title

    def serialize(self, dest: Destination) -> bytes:
        """Write the destination document to bytes."""
        buffer = io.BytesIO()
        dest.pdf.save(buffer)
        data = buffer.getvalue()
        logger.debug(f"Serialized {dest.page_count} page(s) into {len(data)} bytes")
        return data

    def close(self, handle: pikepdf.Pdf | Destination | None) -> None:
        """Close a source or destination handle and any scratch documents."""
        if handle is None:
            return
        if isinstance(handle, Destination):
            for scratch in handle.keepalive:
                scratch.close()
            handle.keepalive.clear()
            handle.pdf.close()
        else:
            handle.close()


def count_pages(data: bytes) -> int:
    """Count the pages of a PDF given as bytes.

    Raises:
        pikepdf.PdfError: If the data is not a readable PDF
    """
    with pikepdf.open(io.BytesIO(data)) as pdf:
        return len(pdf.pages)
