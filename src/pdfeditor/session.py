"""
pdfeditor - Editor Session

One editing session over one loaded document. The session owns the live
page collection and thumbnail cache, runs loading and saving on a worker
pool, and guards their results with a session token so that work started
for a discarded document is dropped instead of applied.

While a save is running every page mutation is refused, and a second
save request is rejected rather than queued.
"""

import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from pdfeditor.config import (
    DEFAULT_DRAG_THRESHOLD_PX,
    DEFAULT_FILENAME_PREFIX,
    DEFAULT_RENDER_TIMEOUT_SECONDS,
    DEFAULT_THUMBNAIL_WIDTH,
)
from pdfeditor.editor.drag_controller import DragReorderController
from pdfeditor.editor.page_model import DropSide, PageCollection, PageDescriptor, PreviewRef
from pdfeditor.editor.thumbnail_cache import DisplayTransform, ThumbnailCache
from pdfeditor.services.reconstruction import (
    DocumentInfo,
    ReconstructionPipeline,
    snapshot,
    suggest_filename,
)
from pdfeditor.services.renderer import PdftoppmRenderer, Renderer
from pdfeditor.services.save_target import SaveTarget
from pdfeditor.utils.config_manager import ConfigManager
from pdfeditor.utils.exceptions import DocumentLoadError, PdfEditorError, SaveTargetError
from pdfeditor.utils.logger import logger

Dispatch = Callable[..., Any]


def _call_now(callback: Callable[..., Any], *args: Any) -> None:
    callback(*args)


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a completed save.

    Attributes:
        path: Where the document was written, None if the user cancelled
        page_count: Pages in the output document
        suggested_name: File name offered to the save target
    """

    path: str | None
    page_count: int
    suggested_name: str

    @property
    def cancelled(self) -> bool:
        return self.path is None


@dataclass
class _LoadedDocument:
    data: bytes
    name: str
    previews: list[PreviewRef]


class EditorSession:
    """Owns the single live page collection for one loaded document."""

    def __init__(
        self,
        renderer: Renderer | None = None,
        pipeline: ReconstructionPipeline | None = None,
        save_target: SaveTarget | None = None,
        config: ConfigManager | None = None,
        dispatch: Dispatch | None = None,
        filename_prefix: str | None = None,
        max_workers: int = 2,
    ) -> None:
        """Initialize the session.

        Args:
            renderer: Preview renderer, defaults to PdftoppmRenderer
            pipeline: Reconstruction pipeline, defaults to the pikepdf one
            save_target: Where saved documents go
            config: Optional settings source; built-in defaults when None
            dispatch: Runs completion callbacks, e.g. GLib.idle_add; called
                directly on the worker thread when None
            filename_prefix: Prefix for suggested output names; overrides config
            max_workers: Worker threads for loading and saving
        """
        self._config = config
        self._renderer = renderer or PdftoppmRenderer(
            width=self._setting_int("render.thumbnail_width", DEFAULT_THUMBNAIL_WIDTH, minimum=16),
            timeout=self._setting_int(
                "render.timeout_seconds", DEFAULT_RENDER_TIMEOUT_SECONDS, minimum=1
            ),
        )
        self._pipeline = pipeline or ReconstructionPipeline()
        self._save_target = save_target
        self._dispatch = dispatch or _call_now
        self._filename_prefix = filename_prefix
        self._pool = ThreadPoolExecutor(max_workers=max_workers)

        self._lock = threading.Lock()
        self._token = 0
        self._saving_token: int | None = None
        self._save_in_flight = False

        self._collection: PageCollection | None = None
        self._cache = ThumbnailCache()
        self._source_data: bytes | None = None
        self._source_name = ""

    # --- Settings ---

    def _setting(self, key_path: str, default: Any) -> Any:
        if self._config is None:
            return default
        return self._config.get(key_path, default)

    def _setting_int(self, key_path: str, default: int, minimum: int = 0) -> int:
        if self._config is None:
            return default
        return self._config.get_int(key_path, default, minimum=minimum)

    # --- State inspection ---

    @property
    def token(self) -> int:
        """Current session token; bumped on every load and discard."""
        return self._token

    @property
    def collection(self) -> PageCollection | None:
        return self._collection

    @property
    def cache(self) -> ThumbnailCache:
        return self._cache

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def is_loaded(self) -> bool:
        return self._collection is not None

    @property
    def is_saving(self) -> bool:
        with self._lock:
            return self._saving_token is not None and self._saving_token == self._token

    @property
    def modified(self) -> bool:
        return self._collection is not None and self._collection.modified

    @property
    def suggested_name(self) -> str:
        prefix = self._filename_prefix
        if prefix is None:
            prefix = self._setting("output.filename_prefix", DEFAULT_FILENAME_PREFIX)
        return suggest_filename(self._source_name, prefix)

    def _is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token

    # --- Loading ---

    def _begin_session(self) -> int:
        """Tear down the current document and return the new token."""
        with self._lock:
            self._token += 1
            token = self._token
            self._collection = None
            self._source_data = None
            self._source_name = ""
        self._cache.clear()
        return token

    def _prepare(self, source: str | bytes, name: str | None) -> _LoadedDocument:
        if isinstance(source, bytes):
            data = source
            name = name or "document.pdf"
        else:
            name = name or os.path.basename(source)
            try:
                with open(source, "rb") as f:
                    data = f.read()
            except OSError as e:
                raise DocumentLoadError(source, e.strerror or str(e)) from e

        try:
            previews = list(self._renderer.render(data, name))
        except DocumentLoadError:
            raise
        except Exception as e:
            raise DocumentLoadError(name, str(e)) from e

        return _LoadedDocument(data=data, name=name, previews=previews)

    def _install(self, token: int, loaded: _LoadedDocument) -> PageCollection | None:
        with self._lock:
            if token != self._token:
                stale = True
            else:
                stale = False
                collection = PageCollection.create(loaded.previews)
                self._cache.populate(loaded.previews)
                self._collection = collection
                self._source_data = loaded.data
                self._source_name = loaded.name

        if stale:
            logger.info(f"Dropped stale load result for {loaded.name}")
            for preview in loaded.previews:
                if preview.image is not None:
                    preview.image.close()
            return None

        logger.info(f"Loaded {loaded.name} ({len(loaded.previews)} page(s))")
        return collection

    def load(self, source: str | bytes, name: str | None = None) -> PageCollection:
        """Load a document, replacing any current one.

        Args:
            source: Path to a PDF file, or its bytes
            name: Display name; defaults to the file name

        Returns:
            The new page collection

        Raises:
            DocumentLoadError: If the document cannot be read or rendered
        """
        token = self._begin_session()
        loaded = self._prepare(source, name)
        collection = self._install(token, loaded)
        if collection is None:
            raise DocumentLoadError(loaded.name, "superseded by another load")
        return collection

    def load_async(
        self,
        source: str | bytes,
        on_loaded: Callable[[PageCollection], Any] | None = None,
        on_error: Callable[[DocumentLoadError], Any] | None = None,
        name: str | None = None,
    ) -> Future:
        """Load a document on the worker pool.

        The previous document is discarded immediately. Callbacks go
        through the session's dispatch function and are skipped if the
        session moved on before loading finished.

        Returns:
            Future resolving to the collection, or None if the result was dropped
        """
        token = self._begin_session()

        def work() -> PageCollection | None:
            try:
                loaded = self._prepare(source, name)
            except DocumentLoadError as e:
                logger.error(f"Failed to load document: {e}")
                if on_error and self._is_current(token):
                    self._dispatch(on_error, e)
                raise

            collection = self._install(token, loaded)
            if collection is not None and on_loaded:
                self._dispatch(on_loaded, collection)
            return collection

        return self._pool.submit(work)

    def discard(self) -> None:
        """Close the current document; pending results for it are dropped."""
        name = self._source_name
        self._begin_session()
        if name:
            logger.info(f"Discarded session for {name}")

    # --- Page operations ---

    def _mutable(self, operation: str) -> PageCollection | None:
        if self._collection is None:
            logger.debug(f"Ignored {operation}: no document loaded")
            return None
        if self.is_saving:
            logger.debug(f"Ignored {operation}: save in progress")
            return None
        return self._collection

    def rotate(self, page_id: int) -> bool:
        collection = self._mutable("rotate")
        return collection.rotate(page_id) if collection else False

    def rotate_left(self, page_id: int) -> bool:
        collection = self._mutable("rotate_left")
        return collection.rotate_left(page_id) if collection else False

    def toggle_deleted(self, page_id: int) -> bool:
        collection = self._mutable("toggle_deleted")
        return collection.toggle_deleted(page_id) if collection else False

    def move(self, index: int, direction: int) -> bool:
        collection = self._mutable("move")
        return collection.move(index, direction) if collection else False

    def reorder(self, source_id: int, target_id: int, side: DropSide = DropSide.AUTO) -> bool:
        collection = self._mutable("reorder")
        return collection.reorder(source_id, target_id, side) if collection else False

    def can_move(self, index: int, direction: int) -> bool:
        if self._collection is None or self.is_saving:
            return False
        return self._collection.can_move(index, direction)

    @property
    def order(self) -> tuple[int, ...]:
        return self._collection.order if self._collection else ()

    def index_of(self, page_id: int) -> int | None:
        return self._collection.index_of(page_id) if self._collection else None

    def list_pages(self) -> list[tuple[int, PageDescriptor]]:
        return self._collection.list_pages() if self._collection else []

    def thumbnail(self, page_id: int) -> PreviewRef | None:
        """Get the cached preview of a page."""
        if self._collection is None:
            return None
        page = self._collection.get(page_id)
        return self._cache.get(page.preview_ref) if page else None

    def display_transform(self, page_id: int) -> DisplayTransform | None:
        """Get how to draw a page's cached preview at its current rotation."""
        if self._collection is None:
            return None
        page = self._collection.get(page_id)
        if page is None:
            return None
        return self._cache.display_transform(page.preview_ref, page.rotation)

    def create_drag_controller(self) -> DragReorderController:
        """Build a drag controller that reorders through this session."""
        return DragReorderController(
            self,
            threshold=self._setting_int(
                "editor.drag_threshold_px", DEFAULT_DRAG_THRESHOLD_PX, minimum=0
            ),
            columns=self._setting_int("editor.grid_columns", 4, minimum=1),
        )

    # --- Saving ---

    def _default_info(self) -> DocumentInfo | None:
        author = self._setting("output.author", "")
        return DocumentInfo(author=author) if author else None

    def save_async(
        self,
        on_saved: Callable[[SaveOutcome], Any] | None = None,
        on_error: Callable[[PdfEditorError], Any] | None = None,
        info: DocumentInfo | None = None,
        save_target: SaveTarget | None = None,
    ) -> Future | None:
        """Reconstruct the document and hand it to the save target.

        Args:
            on_saved: Called with the SaveOutcome on success
            on_error: Called with the ReconstructionError/SaveTargetError on failure
            info: Output metadata; defaults to the configured author
            save_target: Overrides the session's save target for this call

        Returns:
            Future resolving to the SaveOutcome (None if dropped), or None
            when the request was rejected
        """
        target = save_target or self._save_target
        if target is None:
            raise ValueError("No save target configured")

        with self._lock:
            if self._collection is None or self._source_data is None:
                logger.warning("Save requested with no document loaded")
                return None
            if self._save_in_flight:
                logger.warning("Save already in progress; request rejected")
                return None
            token = self._token
            self._saving_token = token
            self._save_in_flight = True
            pages = snapshot(self._collection)
            data = self._source_data
            collection = self._collection

        suggested = self.suggested_name
        info = info if info is not None else self._default_info()

        def work() -> SaveOutcome | None:
            try:
                result = self._pipeline.run(pages, data, info)
                if not self._is_current(token):
                    self._finish_save(token)
                    logger.info("Dropped save result for a discarded session")
                    return None
                path = target.save(result.data, suggested)
            except PdfEditorError as e:
                self._fail_save(token, e, on_error)
                raise
            except Exception as e:
                error = SaveTargetError(suggested, str(e) or type(e).__name__)
                self._fail_save(token, error, on_error)
                raise error from e
            except BaseException:
                self._finish_save(token)
                raise

            if not self._is_current(token):
                self._finish_save(token)
                logger.info("Dropped save result for a discarded session")
                return None

            if path is not None:
                collection.clear_modifications()
            self._finish_save(token)

            outcome = SaveOutcome(path=path, page_count=result.page_count, suggested_name=suggested)
            if on_saved:
                self._dispatch(on_saved, outcome)
            return outcome

        return self._pool.submit(work)

    def save(
        self, info: DocumentInfo | None = None, save_target: SaveTarget | None = None
    ) -> SaveOutcome | None:
        """Save and wait for the result.

        Returns:
            SaveOutcome, or None if the request was rejected or dropped

        Raises:
            ReconstructionError: If building the output failed
            SaveTargetError: If the output could not be written
        """
        future = self.save_async(info=info, save_target=save_target)
        if future is None:
            return None
        return future.result()

    def _fail_save(
        self,
        token: int,
        error: PdfEditorError,
        on_error: Callable[[PdfEditorError], Any] | None,
    ) -> None:
        logger.error(f"Save failed: {error}")
        self._finish_save(token)
        if on_error and self._is_current(token):
            self._dispatch(on_error, error)

    def _finish_save(self, token: int) -> None:
        with self._lock:
            self._save_in_flight = False
            if self._saving_token == token:
                self._saving_token = None

    def shutdown(self) -> None:
        """Discard the document and stop the worker pool."""
        self.discard()
        self._pool.shutdown(wait=True, cancel_futures=True)
