"""
pdfeditor - Drag-Reorder Controller

State machine that turns pointer and keyboard gestures over the page grid
into reorder calls on the page collection.

States:
- IDLE: nothing pressed
- PRESSED: pointer is down on a page but has not moved past the threshold
- DRAGGING: a page is lifted; a detached proxy follows the pointer
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from pdfeditor.config import DEFAULT_DRAG_THRESHOLD_PX
from pdfeditor.editor.page_model import DropSide
from pdfeditor.utils.logger import logger


class ReorderTarget(Protocol):
    """What the controller needs from the page collection (or session)."""

    @property
    def order(self) -> tuple[int, ...]: ...

    def index_of(self, page_id: int) -> int | None: ...

    def reorder(self, source_id: int, target_id: int, side: DropSide = DropSide.AUTO) -> bool: ...


class DragState(Enum):
    IDLE = "idle"
    PRESSED = "pressed"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class Slot:
    """Layout rectangle of one page in the grid."""

    page_id: int
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height


@dataclass(frozen=True)
class DragProxy:
    """Detached visual of the lifted page, positioned independently of the grid."""

    page_id: int
    x: float
    y: float


@dataclass(frozen=True)
class DropResult:
    """Outcome of ending a drag.

    Attributes:
        committed: True if the collection order changed
        page_id: Page that was being dragged
        target_id: Page it was dropped on, None for an invalid drop
        snap_back_index: Confirmed display position the proxy returns to
            when nothing was committed
    """

    committed: bool
    page_id: int | None = None
    target_id: int | None = None
    snap_back_index: int | None = None


_LIFT_KEYS = ("space", "enter", "return")
_CANCEL_KEYS = ("escape",)
_ARROW_KEYS = ("left", "right", "up", "down")


class DragReorderController:
    """Recognizes drag gestures and commits them to a ReorderTarget.

    The controller never reorders speculatively: preview_order() gives the
    order to display while dragging, but the collection only changes on a
    valid drop.
    """

    def __init__(
        self,
        target: ReorderTarget,
        threshold: float = DEFAULT_DRAG_THRESHOLD_PX,
        columns: int = 1,
    ) -> None:
        """Initialize the controller.

        Args:
            target: Collection or session receiving reorder calls
            threshold: Pointer travel (pixels) needed before a drag starts
            columns: Grid columns, used by up/down keyboard moves
        """
        self._target = target
        self._threshold = threshold
        self._columns = max(1, columns)
        self._slots: list[Slot] = []
        self._bounds: tuple[float, float, float, float] | None = None

        self._state = DragState.IDLE
        self._active_id: int | None = None
        self._last_target: int | None = None
        self._down_point: tuple[float, float] | None = None
        self._grab_offset: tuple[float, float] = (0.0, 0.0)
        self._proxy: DragProxy | None = None

    # --- State inspection ---

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def active_id(self) -> int | None:
        """Page being dragged, None unless DRAGGING."""
        return self._active_id if self._state is DragState.DRAGGING else None

    @property
    def last_target(self) -> int | None:
        return self._last_target if self._state is DragState.DRAGGING else None

    @property
    def proxy(self) -> DragProxy | None:
        return self._proxy if self._state is DragState.DRAGGING else None

    @property
    def is_dragging(self) -> bool:
        return self._state is DragState.DRAGGING

    # --- Layout ---

    def set_layout(
        self,
        slots: Sequence[Slot],
        bounds: tuple[float, float, float, float] | None = None,
        columns: int | None = None,
    ) -> None:
        """Update the grid geometry used for target resolution.

        Args:
            slots: Page rectangles in grid coordinates
            bounds: Grid area (x, y, width, height); defaults to the slots' bounding box
            columns: Number of grid columns, if it changed
        """
        self._slots = list(slots)
        if columns is not None:
            self._columns = max(1, columns)
        if bounds is not None:
            self._bounds = bounds
        elif self._slots:
            left = min(s.x for s in self._slots)
            top = min(s.y for s in self._slots)
            right = max(s.x + s.width for s in self._slots)
            bottom = max(s.y + s.height for s in self._slots)
            self._bounds = (left, top, right - left, bottom - top)
        else:
            self._bounds = None

    def _inside_grid(self, x: float, y: float) -> bool:
        if self._bounds is None:
            return False
        bx, by, bw, bh = self._bounds
        return bx <= x <= bx + bw and by <= y <= by + bh

    def closest_slot(self, x: float, y: float) -> Slot | None:
        """Find the slot whose center is nearest to a point."""
        best: Slot | None = None
        best_distance = math.inf
        for slot in self._slots:
            cx, cy = slot.center
            distance = (cx - x) ** 2 + (cy - y) ** 2
            if distance < best_distance:
                best, best_distance = slot, distance
        return best

    def _slot_for(self, page_id: int) -> Slot | None:
        for slot in self._slots:
            if slot.page_id == page_id:
                return slot
        return None

    # --- Pointer events ---

    def pointer_down(self, page_id: int, x: float, y: float, on_control: bool = False) -> bool:
        """Handle a pointer press on a page.

        Presses on the page's own buttons (rotate, delete, move) never reach
        drag recognition.

        Returns:
            True if the press may become a drag
        """
        if on_control or self._state is not DragState.IDLE:
            return False
        if self._target.index_of(page_id) is None:
            return False

        self._state = DragState.PRESSED
        self._active_id = page_id
        self._down_point = (x, y)
        slot = self._slot_for(page_id)
        self._grab_offset = (x - slot.x, y - slot.y) if slot else (0.0, 0.0)
        return True

    def pointer_move(self, x: float, y: float) -> DragState:
        """Handle pointer motion; lifts the page once past the threshold."""
        if self._state is DragState.PRESSED and self._down_point is not None:
            dx = x - self._down_point[0]
            dy = y - self._down_point[1]
            if math.hypot(dx, dy) > self._threshold:
                self._state = DragState.DRAGGING
                self._last_target = self._active_id
                logger.debug(f"Drag started for page {self._active_id}")

        if self._state is DragState.DRAGGING:
            self._proxy = DragProxy(
                page_id=self._active_id,
                x=x - self._grab_offset[0],
                y=y - self._grab_offset[1],
            )
            slot = self.closest_slot(x, y) if self._inside_grid(x, y) else None
            if slot is not None:
                self._last_target = slot.page_id

        return self._state

    def pointer_up(self, x: float, y: float) -> DropResult:
        """Handle pointer release, committing the drop if it has a valid target."""
        if self._state is DragState.PRESSED:
            # Released before the threshold: a click, not a drag
            self._reset()
            return DropResult(committed=False)

        if self._state is not DragState.DRAGGING:
            return DropResult(committed=False)

        target_id: int | None = None
        if self._inside_grid(x, y):
            slot = self.closest_slot(x, y)
            target_id = slot.page_id if slot else None

        return self._finish(target_id)

    def cancel(self) -> DropResult:
        """Abort any drag in progress without touching the collection."""
        if self._state is not DragState.DRAGGING:
            self._reset()
            return DropResult(committed=False)
        return self._finish(None)

    # --- Keyboard events ---

    def key_pressed(self, key: str, focus_id: int | None = None) -> bool:
        """Handle a key press for keyboard-driven reordering.

        Space/Enter lifts the focused page and drops it again, arrow keys
        move the drop target, Escape cancels.

        Args:
            key: Key name ("space", "enter", "escape", "left", "right", "up", "down")
            focus_id: Page holding keyboard focus, needed to start a drag

        Returns:
            True if the key was handled
        """
        key = key.lower()

        if self._state is DragState.IDLE:
            if key in _LIFT_KEYS and focus_id is not None:
                if self._target.index_of(focus_id) is None:
                    return False
                self._state = DragState.DRAGGING
                self._active_id = focus_id
                self._last_target = focus_id
                self._proxy = None
                logger.debug(f"Keyboard drag started for page {focus_id}")
                return True
            return False

        if self._state is not DragState.DRAGGING:
            return False

        if key in _CANCEL_KEYS:
            self.cancel()
            return True
        if key in _LIFT_KEYS:
            self._finish(self._last_target)
            return True
        if key in _ARROW_KEYS:
            self._step_target(key)
            return True
        return False

    def _step_target(self, key: str) -> None:
        order = self._target.order
        if not order or self._last_target is None:
            return
        current = order.index(self._last_target)
        step = {
            "left": -1,
            "right": 1,
            "up": -self._columns,
            "down": self._columns,
        }[key]
        new_index = max(0, min(len(order) - 1, current + step))
        self._last_target = order[new_index]

    # --- Drop handling ---

    def preview_order(self) -> tuple[int, ...]:
        """Order to display while dragging; not authoritative."""
        order = list(self._target.order)
        if (
            self._state is not DragState.DRAGGING
            or self._last_target is None
            or self._last_target == self._active_id
        ):
            return tuple(order)

        target_pos = order.index(self._last_target)
        order.remove(self._active_id)
        order.insert(target_pos, self._active_id)
        return tuple(order)

    def _finish(self, target_id: int | None) -> DropResult:
        active_id = self._active_id
        committed = False
        if target_id is not None and active_id is not None:
            committed = self._target.reorder(active_id, target_id)

        snap_back = None if committed else self._target.index_of(active_id)
        if committed:
            logger.info(f"Page {active_id} dropped on page {target_id}")
        else:
            logger.debug(f"Drag of page {active_id} ended without a reorder")

        self._reset()
        return DropResult(
            committed=committed,
            page_id=active_id,
            target_id=target_id,
            snap_back_index=snap_back,
        )

    def _reset(self) -> None:
        self._state = DragState.IDLE
        self._active_id = None
        self._last_target = None
        self._down_point = None
        self._grab_offset = (0.0, 0.0)
        self._proxy = None
