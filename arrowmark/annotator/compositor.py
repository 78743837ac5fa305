"""Pure rendering and export functions for arrow annotations.

Stateless PIL-based functions that composite the base image and its
arrows onto a single surface, lay out per-arrow hit handles for the
current display scale, and encode the surface for download or upload.
Rendering never mutates the base image or the annotation store.
"""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image, ImageDraw

from .annotation_config import ArrowStyle, StrokePass
from .arrow import Arrow
from .geometry import (
    Point,
    arrow_bounds,
    arrow_head_polygon,
    distance_to_segment,
    to_display_space,
)

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}


@dataclass(frozen=True)
class ArrowHandle:
    """On-screen handle of one arrow for the current render pass.

    Attributes:
        index: Arrow index in the annotation sequence.
        tail: Display-space tail point.
        head: Display-space head point.
        bounds: Display-space (left, top, right, bottom) box.
        hit_radius: Display pixels around the shaft that count as a hit.
    """

    index: int
    tail: Point
    head: Point
    bounds: tuple[float, float, float, float]
    hit_radius: float

    def contains(self, point: Point) -> bool:
        left, top, right, bottom = self.bounds
        if not (left <= point[0] <= right and top <= point[1] <= bottom):
            return False
        return distance_to_segment(point, self.tail, self.head) <= self.hit_radius


def draw_arrow(
    image: Image.Image,
    tail: Point,
    head: Point,
    stroke: StrokePass,
) -> Image.Image:
    """Draw one stroke pass of an arrow on image.

    Args:
        image: PIL Image to draw on (modified in place).
        tail: (x, y) arrow start in image pixels.
        head: (x, y) arrow end (pointer tip) in image pixels.
        stroke: Colour and dimensions of this pass.

    Returns:
        Modified image (same object as input).
    """
    draw = ImageDraw.Draw(image)

    # Draw shaft
    draw.line([tail, head], fill=stroke.color, width=stroke.width)

    # Draw pointer, stroked like the shaft so it matches the pass width
    if tail != head:
        polygon = arrow_head_polygon(tail, head, stroke.pointer_length, stroke.pointer_width)
        draw.polygon(polygon, fill=stroke.color, outline=stroke.color, width=stroke.width)

    return image


def draw_two_pass_arrow(
    image: Image.Image,
    arrow: Arrow,
    style: ArrowStyle,
    selected: bool = False,
) -> Image.Image:
    """Draw an arrow's outline pass followed by its foreground pass."""
    for stroke in style.for_state(selected):
        draw_arrow(image, arrow.tail, arrow.head, stroke)
    return image


def render(
    image: Image.Image,
    arrows: Sequence[Arrow],
    in_progress: Optional[Arrow] = None,
    selection: Optional[int] = None,
    style: Optional[ArrowStyle] = None,
) -> Image.Image:
    """Composite the base image and all arrows at natural pixel size.

    Arrows are drawn in sequence order (z-order), then the in-progress
    arrow in the unselected colour.

    Args:
        image: Decoded base image (not modified).
        arrows: Committed arrows in image space.
        in_progress: Arrow being drawn, if it has both endpoints.
        selection: Index of the selected arrow, or None.
        style: Arrow style (uses defaults if None).

    Returns:
        New RGB image holding the composited result.
    """
    cfg = style or ArrowStyle()
    surface = image.convert("RGB")

    for index, arrow in enumerate(arrows):
        draw_two_pass_arrow(surface, arrow, cfg, selected=index == selection)

    if in_progress is not None:
        draw_two_pass_arrow(surface, in_progress, cfg, selected=False)

    return surface


def layout_handles(
    arrows: Sequence[Arrow],
    scale: float,
    style: Optional[ArrowStyle] = None,
) -> dict[int, ArrowHandle]:
    """Build the index-keyed handle lookup for one render pass.

    Args:
        arrows: Committed arrows in image space.
        scale: Current display scale.
        style: Arrow style (uses defaults if None).

    Returns:
        Dict mapping arrow index to its display-space ArrowHandle.
    """
    cfg = style or ArrowStyle()
    radius = max(cfg.outline_width, cfg.outline_pointer) * scale / 2.0 + cfg.hit_tolerance

    handles = {}
    for index, arrow in enumerate(arrows):
        tail = to_display_space(arrow.tail, scale)
        head = to_display_space(arrow.head, scale)
        handles[index] = ArrowHandle(
            index=index,
            tail=tail,
            head=head,
            bounds=arrow_bounds(tail, head, radius),
            hit_radius=radius,
        )
    return handles


def hit_test(handles: dict[int, ArrowHandle], point: Point) -> Optional[int]:
    """Find the topmost arrow under a display-space point.

    Returns:
        Arrow index, or None if the point hits no arrow.
    """
    for index in sorted(handles, reverse=True):
        if handles[index].contains(point):
            return index
    return None


def to_display(surface: Image.Image, scale: float) -> Image.Image:
    """Resize a composited surface to its on-screen size."""
    if scale == 1.0:
        return surface.copy()
    width = max(1, round(surface.width * scale))
    height = max(1, round(surface.height * scale))
    return surface.resize((width, height), Image.Resampling.LANCZOS)


def export(
    surface: Image.Image,
    fmt: str = "JPEG",
    quality: float = 0.92,
) -> bytes:
    """Encode a composited surface.

    Output is deterministic for identical inputs.

    Args:
        surface: Composited image.
        fmt: Pillow format name (JPEG, PNG, WEBP).
        quality: Quality factor in (0, 1] for lossy formats.

    Returns:
        Encoded image bytes.
    """
    fmt = fmt.upper()
    image = surface if surface.mode == "RGB" else surface.convert("RGB")

    params = {}
    if fmt in ("JPEG", "WEBP"):
        params["quality"] = max(1, min(100, round(quality * 100)))

    buf = io.BytesIO()
    image.save(buf, format=fmt, **params)
    data = buf.getvalue()
    logger.debug("Exported %dx%d %s (%d bytes)", image.width, image.height, fmt, len(data))
    return data


def export_base64(
    surface: Image.Image,
    fmt: str = "JPEG",
    quality: float = 0.92,
) -> str:
    """Encode a surface as base64 text without a data-URL prefix."""
    return base64.b64encode(export(surface, fmt, quality)).decode("ascii")


def download(
    surface: Union[Image.Image, bytes],
    directory: Union[str, Path],
    base_name: str = "annotated",
    fmt: str = "JPEG",
    quality: float = 0.92,
) -> Path:
    """Write the composited image to a local file.

    Args:
        surface: Composited image, or already encoded bytes.
        directory: Target directory (created if missing).
        base_name: File name without extension.
        fmt: Pillow format name.
        quality: Quality factor for lossy formats.

    Returns:
        Path of the written file.
    """
    fmt = fmt.upper()
    data = surface if isinstance(surface, bytes) else export(surface, fmt, quality)

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{base_name}.{FORMAT_EXTENSIONS.get(fmt, fmt.lower())}"
    path.write_bytes(data)
    logger.info("Annotated image saved: %s", path)
    return path
