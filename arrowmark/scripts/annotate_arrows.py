#!/usr/bin/env python3
"""
annotate_arrows.py - headless arrow annotation for arrowmark

Loads an image, applies arrows through the same gesture pipeline the
interactive annotator uses, writes the composited result and optionally
uploads it.

Usage:
    python annotate_arrows.py <input> <output> --arrow x1,y1,x2,y2 [options]

Options:
    --arrow x1,y1,x2,y2    Draw arrow from tail (x1,y1) to head (x2,y2), image pixels
    --events <json>        Replay a recorded pointer/command event log
    --viewport WxH         Fit the image into this viewport (display-space events)
    --quality <q>          Lossy quality factor in (0, 1] (default: 0.92)
    --upload               Upload the result to ARROWMARK_UPLOAD_URL
    --page-url <url>       Read image/originalFileName/row/table/job from a URL
    --file-name <name>     Original file name for upload
    --row/--table/--job    Correlation identifiers for upload
    -v, --verbose          Debug logging

Input may be a local file, a URL whose body is an image data URL, or a
data URL itself.

Event log format (display-space coordinates):
    [
      {"type": "down", "x": 100, "y": 100},
      {"type": "move", "x": 200, "y": 150},
      {"type": "up"},
      {"type": "tap", "x": 150, "y": 125},
      {"type": "drag", "dx": 10, "dy": 0},
      {"type": "head", "x": 220, "y": 160},
      {"type": "undo"}
    ]

Dependencies:
    - PIL/Pillow
    - requests
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from arrowmark.annotator import (
    AnnotatorSession,
    HandleKind,
    ImageState,
    SessionConfig,
    SessionParams,
    UploadStatus,
)
from arrowmark.annotator.image_source import is_data_url

logger = logging.getLogger(__name__)

SUFFIX_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".webp": "WEBP"}


def parse_coords(coord_str: str) -> Tuple[float, ...]:
    """Parse comma-separated coordinates string."""
    return tuple(float(x.strip()) for x in coord_str.split(','))


def parse_viewport(value: str) -> Tuple[int, int]:
    """Parse a WxH viewport string."""
    width, height = value.lower().split('x')
    return (int(width), int(height))


def apply_arrow(session: AnnotatorSession, coords: Tuple[float, ...]) -> None:
    """Draw one image-space arrow as a press-drag-release gesture."""
    if len(coords) != 4:
        raise ValueError(f"--arrow needs x1,y1,x2,y2, got {len(coords)} values")
    scale = session.scale
    x1, y1, x2, y2 = coords
    session.pointer_down((x1 * scale, y1 * scale))
    session.pointer_move((x2 * scale, y2 * scale))
    session.pointer_up()


def replay_events(session: AnnotatorSession, events: List[Dict[str, Any]]) -> None:
    """Feed a recorded event log through the session, in order.

    Unknown event types and entries that are not objects are skipped with
    a warning.

    Raises:
        ValueError: If the log is not a list of events.
    """
    if not isinstance(events, list):
        raise ValueError("Event log must be a JSON list of events")

    for event in events:
        if not isinstance(event, dict):
            logger.warning("Skipping malformed event: %r", event)
            continue
        kind = event.get('type')
        position = _position(event)

        if kind == 'down':
            session.pointer_down(position)
        elif kind == 'move':
            session.pointer_move(position)
        elif kind == 'up':
            session.pointer_up(position)
        elif kind == 'tap':
            session.tap(position)
        elif kind == 'drag':
            session.drag_selected((float(event.get('dx', 0)), float(event.get('dy', 0))))
        elif kind in ('tail', 'head'):
            if position is not None:
                session.move_endpoint(HandleKind(kind), position)
        elif kind == 'undo':
            session.undo()
        elif kind == 'delete':
            session.delete_selected()
        elif kind == 'clear':
            session.clear()
        elif kind == 'fit':
            session.toggle_fit_to_screen()
        else:
            logger.warning("Skipping unknown event type: %r", kind)


def _position(event: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    if 'x' not in event or 'y' not in event:
        return None
    return (float(event['x']), float(event['y']))


def build_session(args: argparse.Namespace) -> AnnotatorSession:
    """Create a session from command line arguments and environment."""
    page = SessionParams.from_url(args.page_url) if args.page_url else SessionParams()
    params = SessionParams(
        image=args.input or page.image,
        original_file_name=args.file_name or page.original_file_name,
        row_id=args.row or page.row_id,
        table=args.table or page.table,
        job_id=args.job or page.job_id,
    )

    config = SessionConfig.from_env()
    config = replace(
        config,
        export_format=SUFFIX_FORMATS.get(args.output.suffix.lower(), config.export_format),
        jpeg_quality=args.quality if args.quality is not None else config.jpeg_quality,
        fit_to_screen=args.viewport is not None,
    )
    return AnnotatorSession(params, config=config, notify=lambda msg: print(msg, file=sys.stderr))


def load_input(session: AnnotatorSession, source: str) -> ImageState:
    """Load a local file directly, anything else through image resolution."""
    if not source or is_data_url(source) or '://' in source:
        return session.load()

    path = Path(source)
    if path.exists():
        try:
            with Image.open(path) as img:
                img.load()
                session.use_image(img.copy())
        except OSError as e:
            logger.warning("Cannot open %s: %s", path, e)
            return ImageState.FAILED
        return session.image_state
    return session.load()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Draw arrow annotations on an image'
    )
    parser.add_argument('input', nargs='?', default='', help='Image path, URL or data URL')
    parser.add_argument('output', type=Path, help='Output image path')
    parser.add_argument('--arrow', action='append', help='Arrow: x1,y1,x2,y2 (image pixels)')
    parser.add_argument('--events', type=Path, help='JSON event log to replay')
    parser.add_argument('--viewport', type=parse_viewport, help='Viewport WxH for fit-to-screen')
    parser.add_argument('--quality', type=float, help='Quality factor in (0, 1]')
    parser.add_argument('--upload', action='store_true', help='Upload the annotated image')
    parser.add_argument('--page-url', help='Annotator page URL carrying query parameters')
    parser.add_argument('--file-name', default='', help='Original file name for upload')
    parser.add_argument('--row', default='', help='Row correlation id')
    parser.add_argument('--table', default='', help='Table correlation id')
    parser.add_argument('--job', default='', help='Job correlation id')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    session = build_session(args)
    if args.viewport:
        session.viewport_changed(args.viewport)

    if load_input(session, session.params.image) is not ImageState.READY:
        print("Error: Image failed to load. Check the URL.", file=sys.stderr)
        return 2

    try:
        for arrow_spec in args.arrow or []:
            apply_arrow(session, parse_coords(arrow_spec))
        if args.events:
            replay_events(session, json.loads(args.events.read_text()))
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Save output
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(session.export_bytes())
    print(f"Annotated image saved: {args.output} ({len(session.store)} arrows)")

    if args.upload:
        outcome = session.save()
        if outcome.status is UploadStatus.REJECTED:
            print(f"Upload skipped: {outcome.notice}", file=sys.stderr)
        elif not outcome.ok:
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
