"""Annotation store: committed arrows, the in-progress arrow and selection.

Every operation is synchronous and total. Invalid preconditions (stale
indices, updates without an open draw, commands on an empty sequence)
degrade to no-ops so rapid or out-of-order UI events can never corrupt
the store.
"""

import logging
from typing import Optional

from .arrow import Arrow
from .geometry import Point

logger = logging.getLogger(__name__)


class AnnotationStore:
    """Ordered sequence of committed arrows plus selection state.

    Insertion order is the z-order and the index used for selection,
    deletion and undo. The in-progress buffer holds 0 coordinates (no
    draw), 2 (anchor placed) or 4 (anchor + current pointer position).
    """

    def __init__(self):
        self._arrows: list[Arrow] = []
        self._selection: Optional[int] = None
        self._in_progress: list[float] = []
        self._drawing = False

    @property
    def arrows(self) -> tuple[Arrow, ...]:
        """Committed arrows in z-order."""
        return tuple(self._arrows)

    @property
    def selection(self) -> Optional[int]:
        """Index of the selected arrow, or None."""
        return self._selection

    @property
    def in_progress(self) -> list[float]:
        """Copy of the in-progress coordinate buffer."""
        return list(self._in_progress)

    @property
    def is_drawing(self) -> bool:
        return self._drawing

    def __len__(self) -> int:
        return len(self._arrows)

    def in_progress_arrow(self) -> Optional[Arrow]:
        """The in-progress arrow once it has both endpoints, else None."""
        if len(self._in_progress) == 4:
            return Arrow.from_points(self._in_progress)
        return None

    def begin_draw(self, point: Point) -> bool:
        """Open a draw anchored at an image-space point.

        A pointer-down while an arrow is selected only clears the
        selection; it does not start drawing.

        Returns:
            True if a draw was opened, False if the call deselected.
        """
        if self._selection is not None:
            logger.debug("Pointer-down deselected arrow %d", self._selection)
            self._selection = None
            return False

        self._drawing = True
        self._in_progress = [float(point[0]), float(point[1])]
        return True

    def update_draw(self, point: Point) -> None:
        """Extend the in-progress arrow to (anchor, point)."""
        if not self._drawing or len(self._in_progress) < 2:
            return
        self._in_progress = [
            self._in_progress[0],
            self._in_progress[1],
            float(point[0]),
            float(point[1]),
        ]

    def end_draw(self) -> Optional[Arrow]:
        """Close the draw, committing the arrow if it has two endpoints.

        Returns:
            The committed Arrow, or None if the gesture never moved.
        """
        committed = None
        if self._drawing and len(self._in_progress) == 4:
            committed = Arrow.from_points(self._in_progress)
            self._arrows.append(committed)
            logger.debug("Committed arrow %d: %s", len(self._arrows) - 1, committed.points())

        self._drawing = False
        self._in_progress = []
        return committed

    def cancel_draw(self) -> None:
        """Discard the in-progress arrow without committing it."""
        self._drawing = False
        self._in_progress = []

    def select(self, index: int) -> bool:
        """Select the arrow at index; out-of-bounds indices are ignored."""
        if not 0 <= index < len(self._arrows):
            logger.debug("Ignoring selection of missing arrow %s", index)
            return False
        self._selection = index
        return True

    def deselect(self) -> None:
        self._selection = None

    def transform(self, index: int, arrow: Arrow) -> bool:
        """Replace the selected arrow in place.

        Only the selected arrow may be transformed; the selection is kept.

        Returns:
            True if the arrow was replaced.
        """
        if index != self._selection or not 0 <= index < len(self._arrows):
            logger.debug(
                "Ignoring transform of arrow %s (selection=%s)", index, self._selection
            )
            return False
        self._arrows[index] = arrow
        return True

    def undo(self) -> Optional[Arrow]:
        """Remove the last committed arrow and clear selection."""
        if not self._arrows:
            return None
        removed = self._arrows.pop()
        self._selection = None
        return removed

    def delete_selected(self) -> Optional[Arrow]:
        """Remove the selected arrow and clear selection."""
        if self._selection is None:
            return None
        index = self._selection
        self._selection = None
        if not 0 <= index < len(self._arrows):
            return None
        return self._arrows.pop(index)

    def clear(self) -> None:
        """Remove all arrows and clear selection."""
        self._arrows.clear()
        self._selection = None
        logger.info("Annotation store cleared")

    def snapshot(self) -> list[list[float]]:
        """Committed arrows as plain ``[x1, y1, x2, y2]`` lists."""
        return [arrow.points() for arrow in self._arrows]
