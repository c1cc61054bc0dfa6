"""Tests for EditorSession: loading, guarded mutations and saving."""

import io
import threading
from unittest.mock import MagicMock

import pikepdf
import pytest

from conftest import make_pdf_bytes, page_rotations, source_indices
from pdfeditor.editor.page_model import DropSide
from pdfeditor.services.reconstruction import DocumentInfo, ReconstructionPipeline
from pdfeditor.services.renderer import PageBoxRenderer
from pdfeditor.services.save_target import CallbackSaveTarget, DirectorySaveTarget
from pdfeditor.session import EditorSession
from pdfeditor.utils.config_manager import ConfigManager
from pdfeditor.utils.exceptions import (
    DocumentLoadError,
    ReconstructionError,
    SaveTargetError,
)

WAIT = 5


class BlockingPipeline:
    """Pipeline that holds every run until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self._inner = ReconstructionPipeline()

    def run(self, pages, source, info=None):
        self.started.set()
        self.release.wait(WAIT)
        return self._inner.run(pages, source, info)


class BlockingRenderer:
    """Renderer that holds every render until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self._inner = PageBoxRenderer()

    def render(self, source, name=""):
        self.started.set()
        self.release.wait(WAIT)
        return self._inner.render(source, name)


class CapturingTarget:
    def __init__(self):
        self.saved = []

    def save(self, data, suggested_name):
        self.saved.append((data, suggested_name))
        return f"/virtual/{suggested_name}"


@pytest.fixture
def target():
    return CapturingTarget()


@pytest.fixture
def session(target):
    s = EditorSession(renderer=PageBoxRenderer(), save_target=target)
    yield s
    s.shutdown()


class TestLoad:
    def test_load_bytes(self, session, three_page_pdf):
        collection = session.load(three_page_pdf, "report.pdf")
        assert session.is_loaded is True
        assert collection.order == (0, 1, 2)
        assert session.source_name == "report.pdf"
        assert len(session.cache) == 3
        assert session.modified is False

    def test_load_file(self, session, three_page_file):
        session.load(str(three_page_file))
        assert session.source_name == "input.pdf"
        assert session.suggested_name == "edited_input.pdf"

    def test_load_missing_file(self, session, tmp_path):
        with pytest.raises(DocumentLoadError):
            session.load(str(tmp_path / "missing.pdf"))
        assert session.is_loaded is False

    def test_load_invalid_pdf_creates_no_collection(self, session):
        with pytest.raises(DocumentLoadError):
            session.load(b"not a pdf", "broken.pdf")
        assert session.collection is None
        assert session.rotate(0) is False

    def test_reload_replaces_document(self, session):
        session.load(make_pdf_bytes(3), "a.pdf")
        first_token = session.token
        session.rotate(0)
        session.load(make_pdf_bytes(2), "b.pdf")
        assert session.token > first_token
        assert session.order == (0, 1)
        assert session.modified is False
        assert len(session.cache) == 2

    def test_load_async_dispatches_callback(self, three_page_pdf):
        dispatched = []
        s = EditorSession(
            renderer=PageBoxRenderer(),
            dispatch=lambda cb, *args: dispatched.append(cb) or cb(*args),
        )
        loaded = []
        try:
            future = s.load_async(three_page_pdf, on_loaded=loaded.append, name="a.pdf")
            collection = future.result(WAIT)
        finally:
            s.shutdown()
        assert loaded == [collection]
        assert len(dispatched) == 1

    def test_load_async_error(self, session):
        errors = []
        future = session.load_async(b"not a pdf", on_error=errors.append, name="bad.pdf")
        with pytest.raises(DocumentLoadError):
            future.result(WAIT)
        assert len(errors) == 1
        assert errors[0].source_name == "bad.pdf"

    def test_discard_drops_pending_load(self, three_page_pdf):
        renderer = BlockingRenderer()
        s = EditorSession(renderer=renderer)
        loaded = []
        try:
            future = s.load_async(three_page_pdf, on_loaded=loaded.append)
            assert renderer.started.wait(WAIT)
            s.discard()
            renderer.release.set()
            assert future.result(WAIT) is None
            assert s.is_loaded is False
            assert loaded == []
        finally:
            renderer.release.set()
            s.shutdown()


class TestMutations:
    def test_operations_delegate_to_collection(self, session, three_page_pdf):
        session.load(three_page_pdf)
        assert session.rotate(1) is True
        assert session.rotate_left(2) is True
        assert session.toggle_deleted(0) is True
        assert session.move(0, 1) is True
        assert session.reorder(2, 1, DropSide.BEFORE) is True
        assert session.modified is True
        pages = dict(session.list_pages())
        assert pages[0].id == 2
        assert session.index_of(0) == 2
        assert session.can_move(0, -1) is False

    def test_thumbnail_and_transform(self, session, three_page_pdf):
        session.load(three_page_pdf)
        session.rotate(1)
        assert session.thumbnail(1).width == 601
        transform = session.display_transform(1)
        assert (transform.angle, transform.width, transform.height) == (90, 800, 601)
        assert session.thumbnail(99) is None
        assert session.display_transform(99) is None

    def test_nothing_loaded(self, session):
        assert session.rotate(0) is False
        assert session.move(0, 1) is False
        assert session.order == ()
        assert session.list_pages() == []
        assert session.thumbnail(0) is None

    def test_drag_controller_reorders_through_session(self, session, three_page_pdf):
        session.load(three_page_pdf)
        controller = session.create_drag_controller()
        controller.key_pressed("space", focus_id=0)
        controller.key_pressed("right")
        controller.key_pressed("enter")
        assert session.order == (1, 0, 2)


class TestSave:
    def test_save_scenario(self, session, target, three_page_pdf):
        session.load(three_page_pdf, "report.pdf")
        session.rotate(1)
        session.rotate(1)
        session.toggle_deleted(0)
        session.reorder(2, 1)

        outcome = session.save()

        assert outcome.path == "/virtual/edited_report.pdf"
        assert outcome.page_count == 2
        assert outcome.cancelled is False
        data, name = target.saved[0]
        assert name == "edited_report.pdf"
        assert source_indices(data) == [2, 1]
        assert page_rotations(data) == [0, 180]
        assert session.modified is False
        assert session.is_saving is False

    def test_save_to_directory(self, session, tmp_path, three_page_pdf):
        session.load(three_page_pdf, "report.pdf")
        outcome = session.save(save_target=DirectorySaveTarget(str(tmp_path)))
        assert outcome.path == str(tmp_path / "edited_report.pdf")
        assert source_indices((tmp_path / "edited_report.pdf").read_bytes()) == [0, 1, 2]

    def test_cancelled_save_keeps_modified(self, session, three_page_pdf):
        session.load(three_page_pdf)
        session.rotate(0)
        outcome = session.save(save_target=CallbackSaveTarget(lambda name: None))
        assert outcome.cancelled is True
        assert session.modified is True

    def test_save_without_document(self, session):
        assert session.save() is None

    def test_save_without_target(self, three_page_pdf):
        s = EditorSession(renderer=PageBoxRenderer())
        try:
            s.load(three_page_pdf)
            with pytest.raises(ValueError):
                s.save()
        finally:
            s.shutdown()

    def test_mutations_refused_while_saving(self, target, three_page_pdf):
        pipeline = BlockingPipeline()
        s = EditorSession(renderer=PageBoxRenderer(), pipeline=pipeline, save_target=target)
        try:
            s.load(three_page_pdf)
            s.rotate(0)
            future = s.save_async()
            assert pipeline.started.wait(WAIT)

            assert s.is_saving is True
            assert s.rotate(1) is False
            assert s.toggle_deleted(1) is False
            assert s.move(0, 1) is False
            assert s.reorder(2, 0) is False
            assert s.can_move(0, 1) is False
            assert s.save_async() is None

            pipeline.release.set()
            outcome = future.result(WAIT)
        finally:
            pipeline.release.set()
            s.shutdown()

        assert outcome.page_count == 3
        assert len(target.saved) == 1
        assert page_rotations(target.saved[0][0]) == [90, 0, 0]
        assert s.is_saving is False

    def test_mutations_allowed_after_save(self, session, three_page_pdf):
        session.load(three_page_pdf)
        session.save()
        assert session.rotate(0) is True

    def test_save_callbacks(self, session, three_page_pdf):
        session.load(three_page_pdf)
        saved = []
        future = session.save_async(on_saved=saved.append)
        outcome = future.result(WAIT)
        assert saved == [outcome]

    def test_discard_during_save_drops_result(self, target, three_page_pdf):
        pipeline = BlockingPipeline()
        s = EditorSession(renderer=PageBoxRenderer(), pipeline=pipeline, save_target=target)
        saved = []
        try:
            s.load(three_page_pdf)
            future = s.save_async(on_saved=saved.append)
            assert pipeline.started.wait(WAIT)
            s.discard()
            pipeline.release.set()
            assert future.result(WAIT) is None
        finally:
            pipeline.release.set()
            s.shutdown()
        assert saved == []

    def test_reload_during_save_rejects_second_save(self, target, three_page_pdf):
        pipeline = BlockingPipeline()
        s = EditorSession(renderer=PageBoxRenderer(), pipeline=pipeline, save_target=target)
        try:
            s.load(three_page_pdf, "first.pdf")
            first = s.save_async()
            assert pipeline.started.wait(WAIT)

            s.discard()
            s.load(make_pdf_bytes(2), "second.pdf")
            assert s.is_saving is False
            assert s.rotate(0) is True
            assert s.save_async() is None

            pipeline.release.set()
            assert first.result(WAIT) is None
            assert target.saved == []

            outcome = s.save()
        finally:
            pipeline.release.set()
            s.shutdown()
        assert outcome.suggested_name == "edited_second.pdf"
        assert len(target.saved) == 1
        assert page_rotations(target.saved[0][0]) == [90, 0]

    def test_chooser_failure_reaches_error_callback(self, session, three_page_pdf):
        def crashing_chooser(name):
            raise RuntimeError("dialog crashed")

        session.load(three_page_pdf)
        session.rotate(0)
        errors = []
        future = session.save_async(
            on_error=errors.append, save_target=CallbackSaveTarget(crashing_chooser)
        )
        with pytest.raises(SaveTargetError):
            future.result(WAIT)

        assert len(errors) == 1
        assert isinstance(errors[0], SaveTargetError)
        assert "dialog crashed" in errors[0].reason
        assert session.is_saving is False
        assert session.modified is True
        assert session.save() is not None

    def test_reconstruction_failure_leaves_collection(self, target, three_page_pdf):
        backend = MagicMock()
        backend.get_rotation.return_value = 0
        backend.serialize.side_effect = RuntimeError("cannot write")
        s = EditorSession(
            renderer=PageBoxRenderer(),
            pipeline=ReconstructionPipeline(backend),
            save_target=target,
        )
        errors = []
        try:
            s.load(three_page_pdf)
            s.rotate(2)
            s.toggle_deleted(0)
            before = s.list_pages()

            future = s.save_async(on_error=errors.append)
            with pytest.raises(ReconstructionError):
                future.result(WAIT)

            assert s.list_pages() == before
            assert s.modified is True
            assert s.is_saving is False
            assert s.rotate(1) is True
        finally:
            s.shutdown()
        assert len(errors) == 1
        assert errors[0].stage == "serialize"
        assert target.saved == []

    def test_document_info(self, session, target, three_page_pdf):
        session.load(three_page_pdf)
        session.save(info=DocumentInfo(author="Jane Doe"))
        with pikepdf.open(io.BytesIO(target.saved[0][0])) as pdf:
            assert str(pdf.docinfo["/Author"]) == "Jane Doe"


class TestSettings:
    def test_config_prefix(self, tmp_path, three_page_pdf):
        config = ConfigManager(config_path=str(tmp_path / "settings.json"))
        config.set("output.filename_prefix", "out_", save_immediately=False)
        s = EditorSession(renderer=PageBoxRenderer(), config=config)
        try:
            s.load(three_page_pdf, "a.pdf")
            assert s.suggested_name == "out_a.pdf"
        finally:
            s.shutdown()

    def test_explicit_prefix_overrides_config(self, tmp_path, three_page_pdf):
        config = ConfigManager(config_path=str(tmp_path / "settings.json"))
        s = EditorSession(renderer=PageBoxRenderer(), config=config, filename_prefix="")
        try:
            s.load(three_page_pdf, "a.pdf")
            assert s.suggested_name == "a.pdf"
        finally:
            s.shutdown()

    def test_configured_author_is_default_info(self, tmp_path, target, three_page_pdf):
        config = ConfigManager(config_path=str(tmp_path / "settings.json"))
        config.set("output.author", "Office", save_immediately=False)
        s = EditorSession(renderer=PageBoxRenderer(), config=config, save_target=target)
        try:
            s.load(three_page_pdf)
            s.save()
        finally:
            s.shutdown()
        with pikepdf.open(io.BytesIO(target.saved[0][0])) as pdf:
            assert str(pdf.docinfo["/Author"]) == "Office"
