"""Arrow value record for image annotations.

An arrow is a directional two-point segment stored in image space (the
decoded image's native pixel grid). Only the rendering layer applies the
current display scale.

Examples:
    Creating an arrow from a gesture:
        >>> arrow = Arrow(100, 100, 200, 150)
        >>> arrow.tail, arrow.head
        ((100, 100), (200, 150))

    Moving it:
        >>> arrow.translated(10, -10)
        Arrow(x1=110, y1=90, x2=210, y2=140)

    Serialization:
        >>> Arrow.from_dict(arrow.to_dict()) == arrow
        True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class Arrow:
    """A committed arrow annotation.

    The tail is the point where the gesture started and the head is where
    it ended; the pointer glyph is drawn at the head.

    Attributes:
        x1: Tail X in image pixels.
        y1: Tail Y in image pixels.
        x2: Head X in image pixels.
        y2: Head Y in image pixels.
    """

    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def tail(self) -> tuple[float, float]:
        return (self.x1, self.y1)

    @property
    def head(self) -> tuple[float, float]:
        return (self.x2, self.y2)

    def points(self) -> list[float]:
        """Flat endpoint list ``[x1, y1, x2, y2]``."""
        return [self.x1, self.y1, self.x2, self.y2]

    def translated(self, dx: float, dy: float) -> Arrow:
        """Return a copy moved by (dx, dy) image pixels."""
        return Arrow(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def with_tail(self, x: float, y: float) -> Arrow:
        return Arrow(x, y, self.x2, self.y2)

    def with_head(self, x: float, y: float) -> Arrow:
        return Arrow(self.x1, self.y1, x, y)

    def to_dict(self) -> dict[str, float]:
        """Convert to JSON-serializable dict."""
        return {"x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Arrow:
        """Reconstruct an Arrow from dict."""
        return cls(
            x1=float(data["x1"]),
            y1=float(data["y1"]),
            x2=float(data["x2"]),
            y2=float(data["y2"]),
        )

    @classmethod
    def from_points(cls, points: Sequence[float]) -> Arrow:
        """Build an Arrow from a flat ``[x1, y1, x2, y2]`` sequence.

        Raises:
            ValueError: If the sequence does not hold exactly 4 values.
        """
        if len(points) != 4:
            raise ValueError(f"Arrow needs 4 coordinates, got {len(points)}")
        x1, y1, x2, y2 = (float(v) for v in points)
        return cls(x1, y1, x2, y2)
