"""Tests for the preview renderers."""

import subprocess
from unittest.mock import patch

import pytest
from PIL import Image

from conftest import make_pdf_bytes
from pdfeditor.services.renderer import PageBoxRenderer, PdftoppmRenderer
from pdfeditor.utils.exceptions import DocumentLoadError


def _fake_pdftoppm(pages, size=(200, 259), returncode=0):
    """Build a subprocess.run replacement that writes JPEG previews."""

    def run(cmd, **kwargs):
        prefix = cmd[-1]
        for i in range(pages):
            Image.new("RGB", size, "white").save(f"{prefix}-{i + 1}.jpg", "JPEG")
        return subprocess.CompletedProcess(cmd, returncode, stdout=b"", stderr=b"bad things")

    return run


class TestPdftoppmRenderer:
    def test_renders_one_preview_per_page(self):
        renderer = PdftoppmRenderer(width=200, timeout=30)
        with patch("pdfeditor.services.renderer.subprocess.run", side_effect=_fake_pdftoppm(3)) as run:
            previews = list(renderer.render(make_pdf_bytes(3), "doc.pdf"))

        assert [p.index for p in previews] == [0, 1, 2]
        assert all((p.width, p.height) == (200, 259) for p in previews)
        assert all(p.image is not None for p in previews)

        cmd = run.call_args.args[0]
        assert cmd[0] == "pdftoppm"
        assert "-scale-to-x" in cmd
        assert cmd[cmd.index("-scale-to-x") + 1] == "200"
        assert run.call_args.kwargs["timeout"] == 30

    def test_iterator_is_single_pass(self):
        renderer = PdftoppmRenderer()
        with patch("pdfeditor.services.renderer.subprocess.run", side_effect=_fake_pdftoppm(2)):
            previews = renderer.render(make_pdf_bytes(2))
            assert len(list(previews)) == 2
            assert list(previews) == []

    def test_invalid_pdf(self):
        with patch("pdfeditor.services.renderer.subprocess.run") as run:
            with pytest.raises(DocumentLoadError):
                PdftoppmRenderer().render(b"not a pdf", "broken.pdf")
        run.assert_not_called()

    def test_pdftoppm_missing(self):
        with patch("pdfeditor.services.renderer.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(DocumentLoadError, match="pdftoppm"):
                PdftoppmRenderer().render(make_pdf_bytes(1))

    def test_pdftoppm_timeout(self):
        error = subprocess.TimeoutExpired("pdftoppm", 5)
        with patch("pdfeditor.services.renderer.subprocess.run", side_effect=error):
            with pytest.raises(DocumentLoadError, match="timed out"):
                PdftoppmRenderer(timeout=5).render(make_pdf_bytes(1))

    def test_pdftoppm_failure(self):
        with patch(
            "pdfeditor.services.renderer.subprocess.run",
            side_effect=_fake_pdftoppm(0, returncode=1),
        ):
            with pytest.raises(DocumentLoadError, match="bad things"):
                PdftoppmRenderer().render(make_pdf_bytes(1))

    def test_preview_count_mismatch(self):
        with patch("pdfeditor.services.renderer.subprocess.run", side_effect=_fake_pdftoppm(1)):
            with pytest.raises(DocumentLoadError):
                PdftoppmRenderer().render(make_pdf_bytes(2))


class TestPageBoxRenderer:
    def test_sizes_from_mediabox(self):
        previews = list(PageBoxRenderer().render(make_pdf_bytes(3)))
        assert [(p.index, p.width, p.height) for p in previews] == [
            (0, 600, 800),
            (1, 601, 800),
            (2, 602, 800),
        ]
        assert all(p.image is None for p in previews)

    def test_rotated_page_swaps_size(self):
        previews = list(PageBoxRenderer().render(make_pdf_bytes(2, rotations={1: 90})))
        assert (previews[1].width, previews[1].height) == (800, 601)

    def test_invalid_pdf(self):
        with pytest.raises(DocumentLoadError) as exc_info:
            PageBoxRenderer().render(b"not a pdf", "broken.pdf")
        assert exc_info.value.source_name == "broken.pdf"
