"""Configuration for annotation sessions, export and upload."""

import os
from dataclasses import dataclass, field

from .geometry import ViewportMargins


@dataclass
class SessionConfig:
    """Session-wide settings.

    The upload endpoint has no built-in default; uploads fail until
    one is configured.
    """

    upload_url: str = ""
    request_timeout_s: float = 30.0
    export_format: str = "JPEG"
    jpeg_quality: float = 0.92
    download_base_name: str = "annotated"
    fit_to_screen: bool = True
    margins: ViewportMargins = field(default_factory=ViewportMargins)

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Load configuration from environment variables with defaults."""
        return cls(
            upload_url=os.getenv("ARROWMARK_UPLOAD_URL", ""),
            request_timeout_s=float(os.getenv("ARROWMARK_REQUEST_TIMEOUT", "30")),
            export_format=os.getenv("ARROWMARK_EXPORT_FORMAT", "JPEG").upper(),
            jpeg_quality=float(os.getenv("ARROWMARK_JPEG_QUALITY", "0.92")),
            download_base_name=os.getenv("ARROWMARK_DOWNLOAD_NAME", "annotated"),
            fit_to_screen=os.getenv("ARROWMARK_FIT_TO_SCREEN", "true").lower() == "true",
            margins=ViewportMargins(
                horizontal=int(os.getenv("ARROWMARK_MARGIN_X", "20")),
                vertical=int(os.getenv("ARROWMARK_MARGIN_Y", "220")),
            ),
        )
