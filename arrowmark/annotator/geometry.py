"""Coordinate transformation utilities for display scale and arrow geometry.

This module converts between display space (pointer positions in the
scaled, on-screen view) and image space (the decoded image's native pixel
grid). It handles:
- Display/image conversion for a single positive scale factor
- Fit-to-screen scale computation that never upscales past 1.0
- Arrow head polygons and point-to-segment distance for hit testing

Examples:
    Convert a pointer position on a half-size view:
        >>> to_image_space((150, 75), scale=0.5)
        (300.0, 150.0)

    Fit a large image into a viewport:
        >>> compute_fit_scale((1520, 1120), (760, 560))
        0.5

    Small images are never upscaled:
        >>> compute_fit_scale((300, 200), (1920, 1080))
        1.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

Point = Tuple[float, float]
Size = Tuple[int, int]


@dataclass(frozen=True)
class ViewportMargins:
    """Space around the image that is not available for it.

    Attributes:
        horizontal: Pixels removed from the viewport width.
        vertical: Pixels removed from the viewport height (toolbar band
            plus padding).
    """

    horizontal: int = 20
    vertical: int = 220


def to_image_space(display_point: Point, scale: float) -> Point:
    """Transform display coordinates to image coordinates.

    Args:
        display_point: (x, y) as reported by a pointer or touch event.
        scale: Current display scale (display pixels per image pixel).

    Returns:
        (x, y) in image pixels.

    Raises:
        ValueError: If scale is not positive.
    """
    if scale <= 0:
        raise ValueError(f"Scale must be > 0, got {scale}")
    return (display_point[0] / scale, display_point[1] / scale)


def to_display_space(image_point: Point, scale: float) -> Point:
    """Transform image coordinates to display coordinates."""
    return (image_point[0] * scale, image_point[1] * scale)


def compute_fit_scale(image_size: Size, viewport_size: Size) -> float:
    """Compute the scale that fits an image inside a viewport.

    Returns ``min(vw / iw, vh / ih, 1.0)``. The cap at 1.0 keeps small
    images at their natural size instead of blurring them.

    Callers must guard against zero-sized images or viewports.

    Args:
        image_size: Image (width, height) in pixels.
        viewport_size: Usable viewport (width, height) in pixels.

    Returns:
        Scale factor in (0, 1.0].

    Examples:
        >>> compute_fit_scale((1520, 1120), (760, 560))
        0.5
        >>> compute_fit_scale((1000, 500), (800, 600))
        0.8
    """
    image_w, image_h = image_size
    view_w, view_h = viewport_size
    return min(view_w / image_w, view_h / image_h, 1.0)


def usable_viewport(viewport_size: Size, margins: ViewportMargins) -> Size:
    """Subtract margins from a raw viewport size.

    Examples:
        >>> usable_viewport((800, 600), ViewportMargins(40, 40))
        (760, 560)
    """
    return (
        viewport_size[0] - margins.horizontal,
        viewport_size[1] - margins.vertical,
    )


def distance_to_segment(point: Point, a: Point, b: Point) -> float:
    """Shortest distance from point to the segment a-b."""
    ax, ay = a
    bx, by = b
    px, py = point
    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - ax, py - ay)

    # Project onto the segment and clamp to its ends
    t = ((px - ax) * dx + (py - ay) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


def arrow_head_polygon(
    tail: Point, head: Point, length: float, width: float
) -> list[Point]:
    """Triangle for an arrow's pointer glyph.

    The tip sits on the head point; the base is ``length`` pixels back
    along the shaft and ``width`` pixels wide.

    Args:
        tail: (x, y) arrow start.
        head: (x, y) arrow end (tip of the pointer).
        length: Pointer length along the shaft.
        width: Full pointer width across the shaft.

    Returns:
        Three (x, y) vertices: tip, left base, right base.
    """
    angle = math.atan2(head[1] - tail[1], head[0] - tail[0])
    base_x = head[0] - length * math.cos(angle)
    base_y = head[1] - length * math.sin(angle)
    half = width / 2.0
    # Perpendicular offset
    off_x = half * math.sin(angle)
    off_y = -half * math.cos(angle)
    return [
        (head[0], head[1]),
        (base_x + off_x, base_y + off_y),
        (base_x - off_x, base_y - off_y),
    ]


def arrow_bounds(tail: Point, head: Point, padding: float) -> tuple[float, float, float, float]:
    """Axis-aligned (left, top, right, bottom) box around an arrow."""
    return (
        min(tail[0], head[0]) - padding,
        min(tail[1], head[1]) - padding,
        max(tail[0], head[0]) + padding,
        max(tail[1], head[1]) + padding,
    )
