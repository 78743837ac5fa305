"""Interaction controller: pointer gestures to annotation store mutations.

The controller is a small state machine (Idle, Drawing, Selected). The
rendering layer hit-tests each pointer event and passes the index of the
arrow under the pointer, so selection logic does not depend on any
particular rendering technology. Mouse and touch events are handled
identically once their position is extracted.

Tie-break: a pointer-down while an arrow is selected only deselects. The
rest of that gesture is consumed, so it neither starts a draw nor selects
another arrow.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .annotation_store import AnnotationStore
from .geometry import Point, to_image_space
from .scale_model import ScaleModel

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """Interaction states."""

    IDLE = "idle"
    DRAWING = "drawing"
    SELECTED = "selected"


class InputSource(Enum):
    MOUSE = "mouse"
    TOUCH = "touch"


class HandleKind(Enum):
    """Transform handle manipulations on the selected arrow."""

    MOVE = "move"
    TAIL = "tail"
    HEAD = "head"


@dataclass(frozen=True)
class PointerEvent:
    """A pointer or touch event in display space.

    Attributes:
        position: (x, y) display coordinates, or None if the event carried
            no resolvable position.
        hit_index: Index of the committed arrow under the pointer, if any.
        source: Input device; has no effect on handling.
    """

    position: Optional[Point] = None
    hit_index: Optional[int] = None
    source: InputSource = InputSource.MOUSE


@dataclass(frozen=True)
class HandleGesture:
    """Released drag or resize handle manipulation.

    Attributes:
        kind: Which handle was manipulated.
        offset: Display-space (dx, dy) for MOVE.
        point: Display-space (x, y) of the released endpoint for TAIL/HEAD.
    """

    kind: HandleKind
    offset: Point = (0.0, 0.0)
    point: Optional[Point] = None


class InteractionController:
    """Drives draw/select/transform/delete/undo/clear from input events.

    The controller is the only writer of the annotation store. Every
    accepted mutation calls ``on_change`` synchronously so a render can
    reflect it before the next event is processed.
    """

    def __init__(
        self,
        store: AnnotationStore,
        scale_model: ScaleModel,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._store = store
        self._scale_model = scale_model
        self._on_change = on_change
        self._consumed = False
        self._press_hit: Optional[int] = None

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def state(self) -> ControllerState:
        if self._store.is_drawing:
            return ControllerState.DRAWING
        if self._store.selection is not None:
            return ControllerState.SELECTED
        return ControllerState.IDLE

    def pointer_down(self, event: PointerEvent) -> None:
        if event.position is None:
            return

        self._press_hit = None
        self._consumed = False
        point = self._to_image(event.position)

        if not self._store.begin_draw(point):
            # Deselect consumes the whole gesture
            self._consumed = True
            self._changed()
            return

        self._press_hit = event.hit_index
        self._changed()

    def pointer_move(self, event: PointerEvent) -> None:
        if self._consumed or event.position is None:
            return
        if not self._store.is_drawing:
            return
        self._store.update_draw(self._to_image(event.position))
        self._changed()

    def pointer_up(self, event: Optional[PointerEvent] = None) -> None:
        if self._consumed:
            self._consumed = False
            return
        if not self._store.is_drawing:
            return

        committed = self._store.end_draw()
        if committed is None and self._press_hit is not None:
            # Press and release without movement on an arrow is a click
            self._store.select(self._press_hit)
        self._press_hit = None
        self._changed()

    def tap(self, event: PointerEvent) -> None:
        """Handle a complete press-release without movement."""
        self.pointer_down(event)
        self.pointer_up(event)

    def drag_selected(self, index: int, display_offset: Point) -> bool:
        """Move the selected arrow by a display-space offset."""
        return self.apply_handle(index, HandleGesture(HandleKind.MOVE, offset=display_offset))

    def move_endpoint(self, index: int, which: HandleKind, display_point: Point) -> bool:
        """Move the selected arrow's tail or head to a display-space point."""
        return self.apply_handle(index, HandleGesture(which, point=display_point))

    def apply_handle(self, index: int, gesture: HandleGesture) -> bool:
        """Apply a released drag/resize handle gesture to the selected arrow.

        Returns:
            True if the store accepted the transform.
        """
        if index != self._store.selection:
            return False
        arrows = self._store.arrows
        if not 0 <= index < len(arrows):
            return False

        arrow = arrows[index]
        if gesture.kind is HandleKind.MOVE:
            dx, dy = self._to_image(gesture.offset)
            updated = arrow.translated(dx, dy)
        elif gesture.point is None:
            return False
        elif gesture.kind is HandleKind.TAIL:
            updated = arrow.with_tail(*self._to_image(gesture.point))
        else:
            updated = arrow.with_head(*self._to_image(gesture.point))

        accepted = self._store.transform(index, updated)
        if accepted:
            self._changed()
        return accepted

    def undo(self) -> None:
        self._reset_gesture()
        self._store.undo()
        self._changed()

    def delete_selected(self) -> None:
        self._reset_gesture()
        self._store.delete_selected()
        self._changed()

    def clear(self) -> None:
        self._reset_gesture()
        self._store.clear()
        self._changed()

    def _reset_gesture(self) -> None:
        # Commands leave the controller Idle
        self._store.cancel_draw()
        self._consumed = False
        self._press_hit = None

    def _to_image(self, display_point: Point) -> Point:
        return to_image_space(display_point, self._scale_model.scale)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
