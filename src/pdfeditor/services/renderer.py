"""
pdfeditor - Page Preview Renderers

Renders one preview per source page, in page order. PdftoppmRenderer
rasterizes with pdftoppm (poppler-utils) and decodes the bitmaps with
Pillow; PageBoxRenderer only reports page sizes and is used where no
bitmap is needed.
"""

import io
import os
import subprocess
import tempfile
from collections.abc import Iterator
from typing import Protocol

import pikepdf
from PIL import Image

from pdfeditor.config import DEFAULT_RENDER_TIMEOUT_SECONDS, DEFAULT_THUMBNAIL_WIDTH
from pdfeditor.editor.page_model import PreviewRef
from pdfeditor.services.document_backend import count_pages, resolve_page_rotation
from pdfeditor.utils.exceptions import DocumentLoadError
from pdfeditor.utils.i18n import _
from pdfeditor.utils.logger import logger


class Renderer(Protocol):
    """Produces the ordered previews of a source document.

    The returned iterator is finite and can only be consumed once.
    """

    def render(self, source: bytes, name: str = "") -> Iterator[PreviewRef]: ...


class PdftoppmRenderer:
    """Renders page thumbnails with a single pdftoppm invocation."""

    def __init__(
        self,
        width: int = DEFAULT_THUMBNAIL_WIDTH,
        timeout: int = DEFAULT_RENDER_TIMEOUT_SECONDS,
        resolution: int = 150,
    ) -> None:
        """Initialize the renderer.

        Args:
            width: Thumbnail width in pixels
            timeout: Maximum seconds pdftoppm may run
            resolution: Rasterization DPI before scaling
        """
        self._width = width
        self._timeout = timeout
        self._resolution = resolution

    def render(self, source: bytes, name: str = "") -> Iterator[PreviewRef]:
        """Render every page of the source to a Pillow image.

        Args:
            source: PDF bytes
            name: Document name used in error messages

        Returns:
            Iterator of previews in page order

        Raises:
            DocumentLoadError: If the PDF cannot be read or rendered
        """
        name = name or "document.pdf"
        try:
            page_count = count_pages(source)
        except pikepdf.PasswordError as e:
            raise DocumentLoadError(name, _("the document is password-protected")) from e
        except pikepdf.PdfError as e:
            raise DocumentLoadError(name, str(e)) from e

        return iter(self._render_all(source, name, page_count))

    def _render_all(self, source: bytes, name: str, page_count: int) -> list[PreviewRef]:
        if page_count == 0:
            return []

        with tempfile.TemporaryDirectory() as tmpdir:
            pdf_path = os.path.join(tmpdir, "source.pdf")
            with open(pdf_path, "wb") as f:
                f.write(source)

            prefix = os.path.join(tmpdir, "p")
            try:
                result = subprocess.run(
                    [
                        "pdftoppm",
                        "-jpeg",
                        "-r",
                        str(self._resolution),
                        "-scale-to-x",
                        str(self._width),
                        "-scale-to-y",
                        "-1",
                        pdf_path,
                        prefix,
                    ],
                    capture_output=True,
                    timeout=self._timeout,
                )
            except FileNotFoundError as e:
                raise DocumentLoadError(name, _("pdftoppm (poppler-utils) is not installed")) from e
            except subprocess.TimeoutExpired as e:
                raise DocumentLoadError(
                    name, _("rendering timed out after {seconds}s").format(seconds=self._timeout)
                ) from e

            if result.returncode != 0:
                stderr = result.stderr.decode(errors="replace").strip()
                raise DocumentLoadError(name, f"pdftoppm failed ({result.returncode}): {stderr}")

            files = sorted(f for f in os.listdir(tmpdir) if f.endswith(".jpg"))
            if len(files) != page_count:
                raise DocumentLoadError(
                    name, f"rendered {len(files)} preview(s) for {page_count} page(s)"
                )

            previews = []
            for idx, fname in enumerate(files):
                image = Image.open(os.path.join(tmpdir, fname))
                image.load()
                previews.append(
                    PreviewRef(index=idx, width=image.width, height=image.height, image=image)
                )

        logger.info(f"Rendered {len(previews)} preview(s) of {name} via pdftoppm")
        return previews


class PageBoxRenderer:
    """Size-only previews taken from each page's MediaBox.

    Sizes are in PDF points and account for the page's own rotation, so
    they match what a rasterized preview would look like.
    """

    def render(self, source: bytes, name: str = "") -> Iterator[PreviewRef]:
        """Describe every page of the source without rasterizing it.

        Raises:
            DocumentLoadError: If the PDF cannot be read
        """
        name = name or "document.pdf"
        try:
            with pikepdf.open(io.BytesIO(source)) as pdf:
                previews = [self._describe(idx, page) for idx, page in enumerate(pdf.pages)]
        except pikepdf.PasswordError as e:
            raise DocumentLoadError(name, _("the document is password-protected")) from e
        except pikepdf.PdfError as e:
            raise DocumentLoadError(name, str(e)) from e

        logger.debug(f"Measured {len(previews)} page(s) of {name}")
        return iter(previews)

    def _describe(self, idx: int, page: pikepdf.Page) -> PreviewRef:
        x1, y1, x2, y2 = (float(v) for v in page.mediabox)
        width = round(abs(x2 - x1))
        height = round(abs(y2 - y1))
        if resolve_page_rotation(page) in (90, 270):
            width, height = height, width
        return PreviewRef(index=idx, width=width, height=height)
