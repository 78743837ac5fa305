"""Image source resolution: raw source string to decoded Pillow image.

A source is either an embedded bitmap (``data:image/...;base64,...``),
used directly, or a URL whose response body is itself an embedded-bitmap
data URL. Share links for Google Drive are rewritten to their direct
download form before fetching.

Resolution is a single-shot pipeline with explicit states
(unresolved, resolving, ready, failed). Once ready or failed it is not
re-entered until a new source is set.
"""

import base64
import binascii
import io
import logging
import re
import threading
from enum import Enum
from typing import Callable, Optional

import requests
from PIL import Image

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:image/[\w.+-]+;base64,(?P<payload>.*)$", re.DOTALL)

# Google Drive share links: /file/d/<id>/view and open?id=<id>
DRIVE_FILE_PATTERN = re.compile(r"^https?://drive\.google\.com/file/d/(?P<id>[\w-]+)")
DRIVE_OPEN_PATTERN = re.compile(r"^https?://drive\.google\.com/open\?(?:.*&)?id=(?P<id>[\w-]+)")
DRIVE_DIRECT_URL = "https://drive.google.com/uc?export=download&id={file_id}"


class ImageState(Enum):
    """Image resolution states."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


class ImageResolutionError(Exception):
    """Raised when a source cannot be turned into a decoded image."""

    pass


def is_data_url(value: str) -> bool:
    return DATA_URL_PATTERN.match(value.strip()) is not None


def decode_data_url(value: str) -> Image.Image:
    """Decode a base64 image data URL into a loaded Pillow image.

    Raises:
        ImageResolutionError: If the value is not a decodable image data URL.
    """
    match = DATA_URL_PATTERN.match(value.strip())
    if match is None:
        raise ImageResolutionError("Payload is not an embedded image")

    # Query-string decoding turns "+" into spaces
    payload = match.group("payload").replace(" ", "+")
    payload = re.sub(r"\s+", "", payload)
    try:
        raw = base64.b64decode(payload, validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, ValueError) as e:
        raise ImageResolutionError(f"Invalid base64 payload: {e}") from e
    except Image.DecompressionBombError as e:
        raise ImageResolutionError(f"Image too large: {e}") from e
    except OSError as e:
        raise ImageResolutionError(f"Cannot decode image: {e}") from e
    return image


def rewrite_share_link(url: str) -> str:
    """Rewrite a Google Drive share link to its direct download URL.

    Other URLs are returned unchanged.

    Examples:
        >>> rewrite_share_link("https://drive.google.com/file/d/abc123/view?usp=sharing")
        'https://drive.google.com/uc?export=download&id=abc123'
        >>> rewrite_share_link("https://example.com/a.txt")
        'https://example.com/a.txt'
    """
    for pattern in (DRIVE_FILE_PATTERN, DRIVE_OPEN_PATTERN):
        match = pattern.match(url)
        if match:
            return DRIVE_DIRECT_URL.format(file_id=match.group("id"))
    return url


class ImageSource:
    """Resolves one raw source string into a decoded image.

    Attributes are read-only views of the pipeline state; ``resolve()`` is
    the only transition function.
    """

    def __init__(
        self,
        raw: str = "",
        http: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self._raw = raw or ""
        self._http = http
        self._timeout = timeout
        self._state = ImageState.UNRESOLVED
        self._image: Optional[Image.Image] = None
        self._error: Optional[str] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def state(self) -> ImageState:
        return self._state

    @property
    def image(self) -> Optional[Image.Image]:
        return self._image

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def size(self) -> Optional[tuple[int, int]]:
        """Intrinsic (width, height) once ready."""
        if self._image is None:
            return None
        return self._image.size

    def set_source(self, raw: str) -> None:
        """Start over with a new source; pending results become stale."""
        with self._lock:
            self._raw = raw or ""
            self._generation += 1
            self._state = ImageState.UNRESOLVED
            self._image = None
            self._error = None

    def provide(self, image: Image.Image) -> None:
        """Use an image that was already decoded elsewhere (e.g. a local file)."""
        with self._lock:
            self._generation += 1
            self._image = image
            self._error = None
            self._state = ImageState.READY
        logger.info("Image ready: %dx%d (provided)", *image.size)

    def abandon(self) -> None:
        """Discard any pending resolution result (view teardown)."""
        with self._lock:
            self._generation += 1

    def resolve(self) -> ImageState:
        """Resolve the source synchronously.

        Returns:
            The resulting state. Never raises; failures end in FAILED.
        """
        generation = self._begin()
        if generation is None:
            return self._state
        self._run(generation)
        return self._state

    def resolve_async(self, callback: Optional[Callable[["ImageSource"], None]] = None) -> bool:
        """Resolve the source on a daemon thread.

        The callback runs on the worker thread once the result is applied.
        It is not called when the result was abandoned.

        Returns:
            True if a resolution was started.
        """
        generation = self._begin()
        if generation is None:
            return False

        def _worker():
            if self._run(generation) and callback is not None:
                try:
                    callback(self)
                except Exception as e:
                    logger.warning("Image ready callback failed: %s", e)

        thread = threading.Thread(target=_worker, name="image-source", daemon=True)
        thread.start()
        return True

    def _begin(self) -> Optional[int]:
        with self._lock:
            if self._state is not ImageState.UNRESOLVED:
                return None
            self._state = ImageState.RESOLVING
            return self._generation

    def _run(self, generation: int) -> bool:
        image = None
        error = None
        try:
            image = self._load(self._raw)
        except ImageResolutionError as e:
            error = str(e)
        except Exception as e:
            logger.warning("Unexpected error resolving image: %s", e)
            error = f"Unexpected error: {e}"

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale image result for %s", self._describe())
                return False
            if image is not None:
                self._image = image
                self._state = ImageState.READY
                logger.info("Image ready: %s %dx%d", self._describe(), *image.size)
            else:
                self._error = error
                self._state = ImageState.FAILED
                logger.warning("Image failed to load: %s (%s)", self._describe(), error)
        return True

    def _load(self, raw: str) -> Image.Image:
        if not raw.strip():
            raise ImageResolutionError("No image source given")
        if is_data_url(raw):
            return decode_data_url(raw)

        url = rewrite_share_link(raw.strip())
        text = self._fetch_text(url)
        if not is_data_url(text):
            raise ImageResolutionError("Fetched content is not an embedded image")
        return decode_data_url(text)

    def _fetch_text(self, url: str) -> str:
        getter = self._http.get if self._http is not None else requests.get
        try:
            response = getter(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ImageResolutionError(f"Fetch failed: {e}") from e
        return response.text

    def _describe(self) -> str:
        if is_data_url(self._raw):
            return "<embedded image>"
        return self._raw[:120]
