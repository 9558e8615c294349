"""Image input validation and ownership of the displayed original image.

Only one handle for the user's original photo is live at a time: assigning a
new image to an `ImageSlot` releases the previous handle first, and clearing
or closing the slot releases the current one.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from types import TracebackType
from typing import Self

from repair_vision.core.exceptions import InvalidInputFileError
from repair_vision.core.types import ImagePayload

logger = logging.getLogger(__name__)


def validate_image_input(data: bytes, mime_type: str | None) -> ImagePayload:
    """Accept `data` only when its declared MIME type is an image type.

    Raises:
        InvalidInputFileError: `mime_type` is missing or not ``image/*``, or
            the payload is empty.
    """
    normalized = (mime_type or "").strip().lower()
    if not normalized.startswith("image/") or not data:
        logger.error("Rejected input file with MIME type %r", mime_type)
        raise InvalidInputFileError(mime_type)
    return ImagePayload(data=bytes(data), mime_type=normalized)


def load_image_file(path: str | Path, mime_type: str | None = None) -> ImagePayload:
    """Read an image from disk, guessing its MIME type from the file name."""
    path = Path(path)
    declared = mime_type or mimetypes.guess_type(path.name)[0]
    return validate_image_input(path.read_bytes(), declared)


class ImageHandle:
    """A releasable display handle for one image."""

    __slots__ = ("_payload",)

    def __init__(self, payload: ImagePayload):
        self._payload: ImagePayload | None = payload

    @property
    def released(self) -> bool:
        return self._payload is None

    @property
    def payload(self) -> ImagePayload:
        if self._payload is None:
            raise RuntimeError("Image handle has been released")
        return self._payload

    @property
    def url(self) -> str:
        return self.payload.data_uri

    def release(self) -> None:
        self._payload = None


class ImageSlot:
    """Holds at most one live `ImageHandle`."""

    def __init__(self) -> None:
        self._handle: ImageHandle | None = None

    @property
    def current(self) -> ImageHandle | None:
        return self._handle

    def assign(self, payload: ImagePayload) -> ImageHandle:
        """Release the current handle, then create and hold one for `payload`."""
        self.clear()
        self._handle = ImageHandle(payload)
        return self._handle

    def clear(self) -> None:
        if self._handle is not None:
            self._handle.release()
            self._handle = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.clear()
