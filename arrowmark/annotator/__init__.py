from .arrow import Arrow
from .geometry import (
    ViewportMargins,
    to_image_space,
    to_display_space,
    compute_fit_scale,
    usable_viewport,
)
from .scale_model import ScaleModel
from .annotation_store import AnnotationStore
from .interaction import (
    ControllerState,
    HandleGesture,
    HandleKind,
    InputSource,
    InteractionController,
    PointerEvent,
)
from .annotation_config import ArrowStyle, StrokePass
from .compositor import ArrowHandle, render, export, export_base64, download, hit_test, layout_handles
from .image_source import ImageSource, ImageState, ImageResolutionError, rewrite_share_link
from .uploader import UploadAdapter, UploadMetadata, UploadOutcome, UploadStatus
from .session_config import SessionConfig
from .session_params import SessionParams
from .annotator_session import AnnotatorSession, RenderResult

__all__ = [
    "Arrow",
    "ViewportMargins",
    "to_image_space",
    "to_display_space",
    "compute_fit_scale",
    "usable_viewport",
    "ScaleModel",
    "AnnotationStore",
    "ControllerState",
    "HandleGesture",
    "HandleKind",
    "InputSource",
    "InteractionController",
    "PointerEvent",
    "ArrowStyle",
    "StrokePass",
    "ArrowHandle",
    "render",
    "export",
    "export_base64",
    "download",
    "hit_test",
    "layout_handles",
    "ImageSource",
    "ImageState",
    "ImageResolutionError",
    "rewrite_share_link",
    "UploadAdapter",
    "UploadMetadata",
    "UploadOutcome",
    "UploadStatus",
    "SessionConfig",
    "SessionParams",
    "AnnotatorSession",
    "RenderResult",
]
