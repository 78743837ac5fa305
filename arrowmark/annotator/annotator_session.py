"""Interactive arrow annotation session.

Wires image resolution, the scale model, the annotation store, the
interaction controller, the compositor and the upload adapter into one
object a front end can drive.

Usage:
    params = SessionParams.from_url(page_url)
    session = AnnotatorSession(params, config=SessionConfig.from_env())
    session.load()
    session.viewport_changed((1280, 800))

    session.pointer_down((120, 80))
    session.pointer_move((240, 160))
    session.pointer_up()

    result = session.render()        # surface, display preview, handles
    session.download("out/")         # out/annotated.jpg
    outcome = session.save()         # upload with a user-visible notice
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from PIL import Image

from . import compositor
from .annotation_config import ArrowStyle
from .annotation_store import AnnotationStore
from .compositor import ArrowHandle
from .geometry import Point, Size
from .image_source import ImageSource, ImageState
from .interaction import (
    ControllerState,
    HandleKind,
    InputSource,
    InteractionController,
    PointerEvent,
)
from .scale_model import ScaleModel
from .session_config import SessionConfig
from .session_params import SessionParams
from .uploader import UploadAdapter, UploadOutcome, UploadStatus

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Output of one render pass.

    Attributes:
        surface: Composited image at natural size.
        display: Surface resized to the current display scale.
        handles: Index-keyed display-space arrow handles for this pass.
        scale: Display scale used for this pass.
    """

    surface: Image.Image
    display: Image.Image
    handles: dict[int, ArrowHandle]
    scale: float


class AnnotatorSession:
    """One annotation session over a single image.

    Gesture handling is halted until the image is ready; after a failed
    load every gesture is ignored.
    """

    def __init__(
        self,
        params: Optional[SessionParams] = None,
        config: Optional[SessionConfig] = None,
        style: Optional[ArrowStyle] = None,
        notify: Optional[Callable[[str], None]] = None,
        image_source: Optional[ImageSource] = None,
        uploader: Optional[UploadAdapter] = None,
    ):
        """Initialize a session.

        Args:
            params: Query-string parameters (all empty if None).
            config: Session configuration (uses defaults if None).
            style: Arrow style (uses defaults if None).
            notify: Callback that shows a notice to the user.
            image_source: Pre-built image source (built from params if None).
            uploader: Pre-built upload adapter (built from config if None).
        """
        self._params = params or SessionParams()
        self._config = config or SessionConfig()
        self._style = style or ArrowStyle()
        self._notify = notify
        self._image_source = image_source or ImageSource(
            self._params.image, timeout=self._config.request_timeout_s
        )
        self._uploader = uploader or UploadAdapter(self._config)
        self._scale_model = ScaleModel(
            fit_to_screen=self._config.fit_to_screen,
            margins=self._config.margins,
        )
        self._store = AnnotationStore()
        self._controller = InteractionController(
            self._store, self._scale_model, on_change=self._refresh_handles
        )
        self._handles: dict[int, ArrowHandle] = {}
        self._notices: list[str] = []
        self._closed = False
        self._resolution_applied = False

        self._scale_model.subscribe(lambda _scale: self._refresh_handles())

    @property
    def params(self) -> SessionParams:
        return self._params

    @property
    def image_state(self) -> ImageState:
        return self._image_source.state

    @property
    def image(self) -> Optional[Image.Image]:
        return self._image_source.image

    @property
    def is_ready(self) -> bool:
        return (
            not self._closed
            and self._resolution_applied
            and self._image_source.state is ImageState.READY
        )

    @property
    def scale(self) -> float:
        return self._scale_model.scale

    @property
    def fit_to_screen(self) -> bool:
        return self._scale_model.fit_to_screen

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def state(self) -> ControllerState:
        return self._controller.state

    @property
    def handles(self) -> dict[int, ArrowHandle]:
        return dict(self._handles)

    @property
    def notices(self) -> list[str]:
        """User-visible notices posted so far."""
        return list(self._notices)

    @property
    def upload_in_flight(self) -> bool:
        return self._uploader.in_flight

    def load(self) -> ImageState:
        """Resolve the image source synchronously."""
        state = self._image_source.resolve()
        self._on_image_resolved()
        return state

    def load_async(self, callback: Optional[Callable[[ImageState], None]] = None) -> bool:
        """Resolve the image source on a worker thread.

        The callback runs on the worker thread with the resolved state. It
        should only schedule ``apply_loaded()`` on the thread that drives
        the session; gestures stay ignored until then. Results arriving
        after ``close()`` are dropped.

        Returns:
            True if a resolution was started.
        """

        def _done(source: ImageSource) -> None:
            if self._closed:
                logger.debug("Session closed; dropping image result")
                return
            if callback is not None:
                callback(source.state)

        return self._image_source.resolve_async(_done)

    def apply_loaded(self) -> ImageState:
        """Apply a finished background load to the scale model and handles."""
        if not self._closed:
            self._on_image_resolved()
        return self._image_source.state

    def use_image(self, image: Image.Image) -> None:
        """Annotate an image that was decoded elsewhere."""
        self._image_source.provide(image)
        self._resolution_applied = False
        self._on_image_resolved()

    def viewport_changed(self, viewport_size: Size) -> float:
        return self._scale_model.viewport_changed(viewport_size)

    def toggle_fit_to_screen(self) -> float:
        return self._scale_model.toggle_fit_to_screen()

    def _on_image_resolved(self) -> None:
        source = self._image_source
        if source.state is ImageState.READY and source.size is not None:
            self._scale_model.image_ready(source.size)
            self._refresh_handles()
            self._resolution_applied = True
        elif source.state is ImageState.FAILED and not self._resolution_applied:
            self._resolution_applied = True
            self._post_notice("Image failed to load. Check the URL.")

    def hit_test(self, display_point: Point) -> Optional[int]:
        """Topmost arrow under a display-space point, or None."""
        return compositor.hit_test(self._handles, display_point)

    def pointer_down(
        self, position: Optional[Point], source: InputSource = InputSource.MOUSE
    ) -> None:
        if not self.is_ready:
            return
        self._controller.pointer_down(self._event(position, source))

    def pointer_move(
        self, position: Optional[Point], source: InputSource = InputSource.MOUSE
    ) -> None:
        if not self.is_ready:
            return
        self._controller.pointer_move(self._event(position, source, hit=False))

    def pointer_up(
        self, position: Optional[Point] = None, source: InputSource = InputSource.MOUSE
    ) -> None:
        if not self.is_ready:
            return
        self._controller.pointer_up(self._event(position, source, hit=False))

    def tap(self, position: Optional[Point], source: InputSource = InputSource.TOUCH) -> None:
        if not self.is_ready:
            return
        self._controller.tap(self._event(position, source))

    def drag_selected(self, display_offset: Point) -> bool:
        selection = self._store.selection
        if not self.is_ready or selection is None:
            return False
        return self._controller.drag_selected(selection, display_offset)

    def move_endpoint(self, which: HandleKind, display_point: Point) -> bool:
        selection = self._store.selection
        if not self.is_ready or selection is None:
            return False
        return self._controller.move_endpoint(selection, which, display_point)

    def _event(self, position: Optional[Point], source: InputSource, hit: bool = True) -> PointerEvent:
        hit_index = self.hit_test(position) if hit and position is not None else None
        return PointerEvent(position=position, hit_index=hit_index, source=source)

    def undo(self) -> None:
        self._controller.undo()

    def delete_selected(self) -> None:
        self._controller.delete_selected()

    def clear(self) -> None:
        self._controller.clear()

    def render(self) -> RenderResult:
        """Composite the current state for display.

        Raises:
            RuntimeError: If the image is not ready.
        """
        image = self._require_image()
        surface = compositor.render(
            image,
            self._store.arrows,
            in_progress=self._store.in_progress_arrow(),
            selection=self._store.selection,
            style=self._style,
        )
        self._refresh_handles()
        scale = self._scale_model.scale
        return RenderResult(
            surface=surface,
            display=compositor.to_display(surface, scale),
            handles=dict(self._handles),
            scale=scale,
        )

    def export_bytes(self) -> bytes:
        """Encode the image with all committed arrows at natural size.

        Raises:
            RuntimeError: If the image is not ready.
        """
        surface = compositor.render(self._require_image(), self._store.arrows, style=self._style)
        return compositor.export(
            surface,
            fmt=self._config.export_format,
            quality=self._config.jpeg_quality,
        )

    def download(self, directory: Union[str, Path]) -> Path:
        """Write the exported image to ``directory`` (local only)."""
        return compositor.download(
            self.export_bytes(),
            directory,
            base_name=self._config.download_base_name,
            fmt=self._config.export_format,
        )

    def save(self) -> UploadOutcome:
        """Export and upload, posting the outcome as a notice."""
        if self._uploader.in_flight:
            return UploadOutcome(UploadStatus.REJECTED, "An upload is already in progress.")
        try:
            data = self.export_bytes()
        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("Export failed before upload: %s", e)
            outcome = UploadOutcome(UploadStatus.FAILED, f"Upload error: {e}", error=str(e))
        else:
            outcome = self._uploader.upload(data, self._params.upload_metadata())
        self._report(outcome)
        return outcome

    def save_async(self, callback: Optional[Callable[[UploadOutcome], None]] = None) -> bool:
        """Export, then upload on a worker thread.

        Returns:
            True if the upload started.
        """
        if self._uploader.in_flight:
            logger.info("Upload rejected: another upload is in flight")
            return False
        try:
            data = self.export_bytes()
        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("Export failed before upload: %s", e)
            self._report(UploadOutcome(UploadStatus.FAILED, f"Upload error: {e}", error=str(e)))
            return False

        def _done(outcome: UploadOutcome) -> None:
            if self._closed:
                logger.debug("Session closed; dropping upload outcome")
                return
            self._report(outcome)
            if callback is not None:
                callback(outcome)

        rejected = self._uploader.upload_async(data, self._params.upload_metadata(), _done)
        return rejected is None

    def close(self) -> None:
        """Tear down; pending image or upload results are discarded."""
        self._closed = True
        self._image_source.abandon()

    def _require_image(self) -> Image.Image:
        image = self._image_source.image
        if image is None or self._image_source.state is not ImageState.READY:
            raise RuntimeError(f"Image not ready (state={self._image_source.state.value})")
        return image

    def _refresh_handles(self) -> None:
        # Handles live for one render pass and are rebuilt on every change
        self._handles = compositor.layout_handles(
            self._store.arrows, self._scale_model.scale, self._style
        )

    def _report(self, outcome: UploadOutcome) -> None:
        # Rejections stay silent, like a disabled button
        if outcome.status is UploadStatus.REJECTED:
            return
        self._post_notice(outcome.notice)

    def _post_notice(self, message: str) -> None:
        self._notices.append(message)
        if self._notify is not None:
            try:
                self._notify(message)
            except Exception as e:
                logger.warning("Notice callback failed: %s", e)
        else:
            logger.info("Notice: %s", message)
