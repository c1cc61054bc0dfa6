"""Pytest configuration for pdfeditor tests.

Test documents are built in memory with pikepdf. Page N (0-indexed) has a
MediaBox of width 600 + N so output pages can be traced back to their
source page.
"""

import io

import pikepdf
import pytest

from pdfeditor.editor.page_model import PageCollection, PreviewRef

BASE_WIDTH = 600
PAGE_HEIGHT = 800


def make_pdf_bytes(
    num_pages: int = 3,
    rotations: dict[int, int] | None = None,
    inherited_rotation: int | None = None,
) -> bytes:
    """Build a PDF with num_pages pages.

    Args:
        num_pages: Number of pages
        rotations: Optional /Rotate per page index
        inherited_rotation: Optional /Rotate on the page tree root
    """
    pdf = pikepdf.new()
    for i in range(num_pages):
        page = pikepdf.Page(
            pikepdf.Dictionary(
                Type=pikepdf.Name.Page,
                MediaBox=[0, 0, BASE_WIDTH + i, PAGE_HEIGHT],
                Contents=pdf.make_stream(f"BT /F1 12 Tf 100 700 Td (Page {i + 1}) Tj ET".encode()),
            )
        )
        pdf.pages.append(page)

    for index, degrees in (rotations or {}).items():
        pdf.pages[index].obj[pikepdf.Name.Rotate] = degrees
    if inherited_rotation is not None:
        pdf.Root.Pages[pikepdf.Name.Rotate] = inherited_rotation

    buffer = io.BytesIO()
    pdf.save(buffer)
    return buffer.getvalue()


def source_indices(data: bytes) -> list[int]:
    """Map each page of a PDF back to its source index via its MediaBox width."""
    with pikepdf.open(io.BytesIO(data)) as pdf:
        return [int(float(page.mediabox[2])) - BASE_WIDTH for page in pdf.pages]


def page_rotations(data: bytes) -> list[int]:
    """Read the /Rotate stored directly on each page (0 when absent)."""
    with pikepdf.open(io.BytesIO(data)) as pdf:
        return [int(page.obj.get(pikepdf.Name.Rotate, 0)) for page in pdf.pages]


@pytest.fixture
def three_page_pdf():
    """Bytes of a plain 3-page PDF."""
    return make_pdf_bytes(3)


@pytest.fixture
def three_page_file(tmp_path, three_page_pdf):
    """Path of a plain 3-page PDF on disk."""
    path = tmp_path / "input.pdf"
    path.write_bytes(three_page_pdf)
    return path


@pytest.fixture
def collection():
    """A 3-page collection with ids 0, 1, 2."""
    return PageCollection.create([PreviewRef(index=i, width=100, height=140) for i in range(3)])
