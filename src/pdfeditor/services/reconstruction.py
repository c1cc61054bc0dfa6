"""
pdfeditor - Reconstruction Pipeline

Replays the editor's page state against the original document and
produces the bytes of the edited PDF.

Rotation is additive: each output page gets its source rotation plus the
rotation applied in the editor. Deleted pages are never copied.
"""

import os
from collections.abc import Iterable
from dataclasses import dataclass

from pdfeditor.config import DEFAULT_FILENAME_PREFIX
from pdfeditor.editor.page_model import PageCollection, PageDescriptor
from pdfeditor.services.document_backend import DocumentBackend, PikepdfBackend
from pdfeditor.utils.exceptions import ReconstructionError
from pdfeditor.utils.logger import logger


@dataclass(frozen=True)
class DocumentInfo:
    """Metadata written into the output document."""

    author: str = ""
    title: str = ""


@dataclass(frozen=True)
class ReconstructionResult:
    """Serialized output of a reconstruction.

    Attributes:
        data: Bytes of the output PDF
        page_count: Number of pages written
        rotations: Final /Rotate of each output page, in output order
    """

    data: bytes
    page_count: int
    rotations: tuple[int, ...] = ()


def snapshot(collection: PageCollection) -> list[PageDescriptor]:
    """Copy the descriptors of a collection in display order."""
    return [descriptor for _, descriptor in collection.list_pages()]


def suggest_filename(source_name: str, prefix: str = DEFAULT_FILENAME_PREFIX) -> str:
    """Build the default output filename for an edited document.

    Args:
        source_name: Name or path of the source document
        prefix: Text put in front of the source file name

    Returns:
        File name ending in .pdf
    """
    base = os.path.basename(source_name) or "document.pdf"
    if not base.lower().endswith(".pdf"):
        base += ".pdf"
    return f"{prefix}{base}"


class ReconstructionPipeline:
    """Builds an output PDF from page descriptors and source bytes."""

    def __init__(self, backend: DocumentBackend | None = None) -> None:
        self._backend = backend or PikepdfBackend()

    def run(
        self,
        pages: Iterable[PageDescriptor] | PageCollection,
        source: bytes,
        info: DocumentInfo | None = None,
    ) -> ReconstructionResult:
        """Reconstruct the edited document.

        Nothing is returned unless every step succeeds; the descriptors are
        only read.

        Args:
            pages: Collection, or descriptors in display order (deleted ones included)
            source: Bytes of the original document
            info: Optional author/title for the output

        Returns:
            ReconstructionResult with the serialized PDF

        Raises:
            ReconstructionError: If any open, copy, rotate, append or serialize step fails
        """
        if isinstance(pages, PageCollection):
            pages = snapshot(pages)
        else:
            pages = list(pages)

        backend = self._backend
        source_handle = None
        dest = None
        try:
            source_handle = self._step("open", None, backend.open_source, source)
            dest = self._step("create", None, backend.create_document)

            rotations: list[int] = []
            for page in pages:
                if page.deleted:
                    continue
                idx = page.original_index
                copied = self._step("copy", idx, backend.copy_page, source_handle, idx)
                intrinsic = self._step("rotate", idx, backend.get_rotation, copied)
                final_rotation = (intrinsic + page.rotation) % 360
                self._step("rotate", idx, backend.set_rotation, copied, final_rotation)
                self._step("append", idx, backend.append_page, dest, copied)
                rotations.append(final_rotation)

                if intrinsic or page.rotation:
                    logger.debug(
                        f"Page {idx} rotation: source={intrinsic} + editor={page.rotation} "
                        f"= {final_rotation}"
                    )

            if info is not None and (info.author or info.title):
                self._step("info", None, backend.set_info, dest, info.author, info.title)

            data = self._step("serialize", None, backend.serialize, dest)
        finally:
            self._close(dest)
            self._close(source_handle)

        logger.info(f"Reconstructed document with {len(rotations)} of {len(pages)} page(s)")
        return ReconstructionResult(data=data, page_count=len(rotations), rotations=tuple(rotations))

    def _step(self, stage, original_index, func, *args):
        try:
            return func(*args)
        except ReconstructionError:
            raise
        except Exception as e:
            logger.error(f"Reconstruction failed at {stage}: {e}")
            raise ReconstructionError(str(e) or type(e).__name__, stage, original_index) from e

    def _close(self, handle) -> None:
        if handle is None:
            return
        try:
            self._backend.close(handle)
        except Exception as e:
            logger.warning(f"Failed to close document handle: {e}")
