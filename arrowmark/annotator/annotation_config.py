"""Centralized arrow styling for rendering and hit testing.

Every arrow is stroked twice: a wider outline pass in a fixed contrasting
colour, then a narrower foreground pass coloured by selection state. The
two-pass contract keeps arrows legible on any background and applies to
every arrow alike.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StrokePass:
    """One stroke pass of an arrow.

    Attributes:
        color: RGB stroke and pointer fill colour.
        width: Shaft line width in image pixels.
        pointer_length: Pointer length along the shaft.
        pointer_width: Full pointer width across the shaft.
    """

    color: tuple[int, int, int]
    width: int
    pointer_length: int
    pointer_width: int


@dataclass
class ArrowStyle:
    """Configuration for arrow rendering.

    Attributes:
        outline_color: RGB colour of the background pass (default: white).
        outline_width: Background pass line width.
        outline_pointer: Background pass pointer length and width.
        foreground_width: Foreground pass line width.
        foreground_pointer: Foreground pass pointer length and width.
        unselected_color: Foreground colour of unselected and in-progress
            arrows (default: red).
        selected_color: Foreground colour of the selected arrow
            (default: blue).
        hit_tolerance: Extra display pixels around the outline that still
            count as a hit.
    """

    # Colors
    outline_color: tuple[int, int, int] = (255, 255, 255)  # White
    unselected_color: tuple[int, int, int] = (255, 0, 0)  # Red
    selected_color: tuple[int, int, int] = (0, 0, 255)  # Blue

    # Dimensions
    outline_width: int = 15
    outline_pointer: int = 15
    foreground_width: int = 11
    foreground_pointer: int = 13

    # Behavior
    hit_tolerance: float = 2.0

    def outline_pass(self) -> StrokePass:
        return StrokePass(
            color=self.outline_color,
            width=self.outline_width,
            pointer_length=self.outline_pointer,
            pointer_width=self.outline_pointer,
        )

    def foreground_pass(self, selected: bool) -> StrokePass:
        return StrokePass(
            color=self.selected_color if selected else self.unselected_color,
            width=self.foreground_width,
            pointer_length=self.foreground_pointer,
            pointer_width=self.foreground_pointer,
        )

    def for_state(self, selected: bool) -> tuple[StrokePass, StrokePass]:
        """Get the (outline, foreground) passes for an arrow.

        Args:
            selected: Whether the arrow is the current selection.

        Returns:
            Tuple of StrokePass in drawing order.
        """
        return (self.outline_pass(), self.foreground_pass(selected))
