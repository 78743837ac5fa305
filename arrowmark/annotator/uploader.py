"""Upload adapter: submit the exported image to the remote sink.

The sink accepts a JSON POST and gives no usable response, so delivery is
"attempted" as soon as the request completes without a local error. There
is no retry; failures are reported once as a user-visible notice.
"""

import base64
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from .session_config import SessionConfig

logger = logging.getLogger(__name__)

ATTEMPTED_NOTICE = "Upload attempted. Check the destination to confirm."


class UploadStatus(Enum):
    """Outcome of an upload request."""

    ATTEMPTED = "attempted"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class UploadMetadata:
    """Identifying metadata sent along with the image.

    Attributes:
        original_file_name: Name of the source file (required).
        row_id: Optional row correlation identifier.
        table: Optional table correlation identifier.
        job_id: Optional job correlation identifier.
    """

    original_file_name: str
    row_id: str = ""
    table: str = ""
    job_id: str = ""

    def query_params(self) -> dict[str, str]:
        return {"row": self.row_id, "table": self.table, "job": self.job_id}


@dataclass(frozen=True)
class UploadOutcome:
    """Result of one upload call.

    Attributes:
        status: ATTEMPTED, FAILED or REJECTED.
        notice: Message to show the user.
        error: Local error description for FAILED outcomes.
    """

    status: UploadStatus
    notice: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is UploadStatus.ATTEMPTED


def build_payload(image_bytes: bytes, metadata: UploadMetadata) -> dict[str, str]:
    """Build the JSON body; correlation ids are repeated from the query."""
    return {
        "originalFileName": metadata.original_file_name,
        "base64Image": base64.b64encode(image_bytes).decode("ascii"),
        "rowId": metadata.row_id,
        "table": metadata.table,
        "job": metadata.job_id,
    }


class UploadAdapter:
    """Submits encoded images, rejecting re-entrant uploads.

    While one upload is in flight, further requests return REJECTED
    without touching the network.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self._config = config or SessionConfig()
        self._http = http
        self._in_flight = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    def upload(self, image_bytes: bytes, metadata: UploadMetadata) -> UploadOutcome:
        """Upload synchronously.

        Args:
            image_bytes: Encoded JPEG image.
            metadata: File name and correlation identifiers.

        Returns:
            UploadOutcome describing what happened. Never raises.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.info("Upload rejected: another upload is in flight")
            return UploadOutcome(UploadStatus.REJECTED, "An upload is already in progress.")
        try:
            return self._submit_safely(image_bytes, metadata)
        finally:
            self._in_flight.release()

    def upload_async(
        self,
        image_bytes: bytes,
        metadata: UploadMetadata,
        callback: Optional[Callable[[UploadOutcome], None]] = None,
    ) -> Optional[UploadOutcome]:
        """Upload on a worker thread.

        The in-flight guard is taken before the thread starts, so a second
        call made right after this one is rejected.

        Returns:
            A REJECTED outcome if the upload could not start, else None.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.info("Upload rejected: another upload is in flight")
            return UploadOutcome(UploadStatus.REJECTED, "An upload is already in progress.")

        def _worker():
            try:
                outcome = self._submit_safely(image_bytes, metadata)
            finally:
                self._in_flight.release()
            if callback is not None:
                try:
                    callback(outcome)
                except Exception as e:
                    logger.warning("Upload callback failed: %s", e)

        thread = threading.Thread(target=_worker, name="upload", daemon=True)
        thread.start()
        return None

    def _submit_safely(self, image_bytes: bytes, metadata: UploadMetadata) -> UploadOutcome:
        try:
            return self._submit(image_bytes, metadata)
        except Exception as e:
            logger.warning("Upload failed unexpectedly: %s", e)
            return UploadOutcome(UploadStatus.FAILED, f"Upload error: {e}", error=str(e))

    def _submit(self, image_bytes: bytes, metadata: UploadMetadata) -> UploadOutcome:
        if not metadata.original_file_name:
            return UploadOutcome(UploadStatus.REJECTED, "No original file name to upload under.")
        if not self._config.upload_url:
            logger.warning("Upload failed: no upload endpoint configured")
            return UploadOutcome(
                UploadStatus.FAILED,
                "Upload error: no upload endpoint configured.",
                error="no upload endpoint",
            )

        try:
            payload = build_payload(image_bytes, metadata)
        except (TypeError, ValueError) as e:
            logger.warning("Upload failed: cannot serialize image: %s", e)
            return UploadOutcome(UploadStatus.FAILED, f"Upload error: {e}", error=str(e))

        poster = self._http.post if self._http is not None else requests.post
        try:
            response = poster(
                self._config.upload_url,
                params=metadata.query_params(),
                json=payload,
                timeout=self._config.request_timeout_s,
            )
        except (requests.RequestException, ValueError) as e:
            logger.warning("Upload failed: %s", e)
            return UploadOutcome(UploadStatus.FAILED, f"Upload error: {e}", error=str(e))

        # The sink's response is not part of the contract
        logger.info(
            "Upload attempted: file=%s row=%s table=%s job=%s status=%s",
            metadata.original_file_name,
            metadata.row_id,
            metadata.table,
            metadata.job_id,
            getattr(response, "status_code", None),
        )
        return UploadOutcome(UploadStatus.ATTEMPTED, ATTEMPTED_NOTICE)
