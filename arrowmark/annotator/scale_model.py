"""Display scale model with a single recompute entry point.

Scale depends on three inputs: the decoded image size, the viewport size
and the fit-to-screen flag. Each input has its own notification method,
and every notification funnels through ``recompute()`` so the scale can
never drift between callers.
"""

import logging
from typing import Callable, Optional

from .geometry import Size, ViewportMargins, compute_fit_scale, usable_viewport

logger = logging.getLogger(__name__)

ScaleListener = Callable[[float], None]


class ScaleModel:
    """Tracks the current display scale.

    With fit-to-screen enabled the scale fits the image inside the usable
    viewport without upscaling; with it disabled the scale is fixed at 1.0
    (explicit zoom mode).
    """

    def __init__(
        self,
        fit_to_screen: bool = True,
        margins: Optional[ViewportMargins] = None,
    ):
        self._fit_to_screen = fit_to_screen
        self._margins = margins or ViewportMargins()
        self._image_size: Optional[Size] = None
        self._viewport_size: Optional[Size] = None
        self._scale = 1.0
        self._listeners: list[ScaleListener] = []

    @property
    def scale(self) -> float:
        """Current display pixels per image pixel."""
        return self._scale

    @property
    def fit_to_screen(self) -> bool:
        return self._fit_to_screen

    @property
    def image_size(self) -> Optional[Size]:
        return self._image_size

    @property
    def viewport_size(self) -> Optional[Size]:
        return self._viewport_size

    @property
    def display_size(self) -> Optional[Size]:
        """Image size on screen at the current scale, if known."""
        if self._image_size is None:
            return None
        return (
            round(self._image_size[0] * self._scale),
            round(self._image_size[1] * self._scale),
        )

    def subscribe(self, listener: ScaleListener) -> None:
        """Register a callback invoked with the new scale on every change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: ScaleListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def image_ready(self, image_size: Size) -> float:
        """Notify that the decoded image's pixel size is known."""
        self._image_size = (int(image_size[0]), int(image_size[1]))
        return self.recompute()

    def viewport_changed(self, viewport_size: Size) -> float:
        """Notify that the available viewport was resized."""
        self._viewport_size = (int(viewport_size[0]), int(viewport_size[1]))
        return self.recompute()

    def set_fit_to_screen(self, enabled: bool) -> float:
        self._fit_to_screen = enabled
        return self.recompute()

    def toggle_fit_to_screen(self) -> float:
        return self.set_fit_to_screen(not self._fit_to_screen)

    def recompute(self) -> float:
        """Recompute the scale from the current inputs.

        Keeps the previous scale while the image or viewport size is
        unknown or degenerate.

        Returns:
            The (possibly unchanged) current scale.
        """
        if not self._fit_to_screen:
            new_scale = 1.0
        else:
            new_scale = self._fitted_scale()
            if new_scale is None:
                return self._scale

        if new_scale != self._scale:
            logger.debug(
                "Scale changed: %.4f -> %.4f (fit=%s image=%s viewport=%s)",
                self._scale,
                new_scale,
                self._fit_to_screen,
                self._image_size,
                self._viewport_size,
            )
            self._scale = new_scale
            self._notify()
        return self._scale

    def _fitted_scale(self) -> Optional[float]:
        if self._image_size is None or self._viewport_size is None:
            return None
        image_w, image_h = self._image_size
        if image_w <= 0 or image_h <= 0:
            return None
        view_w, view_h = usable_viewport(self._viewport_size, self._margins)
        if view_w <= 0 or view_h <= 0:
            logger.debug("Viewport too small to fit image: %s", self._viewport_size)
            return None
        return compute_fit_scale(self._image_size, (view_w, view_h))

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._scale)
            except Exception as e:
                logger.warning("Scale listener failed: %s", e)
