"""Classify a multi-part generation response and pull out its payloads.

The extractor works on `google.genai.types.GenerateContentResponse` objects
but only reads attributes, so any object with the same shape (as produced by
other SDK versions or by test doubles) is accepted.

Classification order, first match wins:

1. blocked  - `prompt_feedback.block_reason` is set
2. empty    - the first candidate carries no parts
3. no image - no part carries inline image data
4. no text  - text was required but no part carries text
5. success
"""

from __future__ import annotations

import logging
from typing import Any

from repair_vision.core.exceptions import (
    ContentBlockedError,
    EmptyResponseError,
    MissingImageError,
    MissingStructuredDataError,
)
from repair_vision.core.types import ExtractedParts, ImagePayload

logger = logging.getLogger(__name__)


def _enum_text(value: Any) -> str | None:
    """Render an SDK enum (or plain string) as its wire name."""
    if value is None:
        return None
    raw = getattr(value, "value", value)
    text = str(raw).strip()
    return text or None


def _first_candidate(response: Any) -> Any | None:
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def _parts_of(candidate: Any | None) -> list[Any]:
    if candidate is None:
        return []
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or [])


def _joined_text(parts: list[Any]) -> str | None:
    texts = [t for t in (getattr(p, "text", None) for p in parts) if t]
    joined = "".join(texts).strip()
    return joined or None


def _image_of(part: Any) -> ImagePayload | None:
    blob = getattr(part, "inline_data", None)
    if blob is None:
        return None
    data = getattr(blob, "data", None)
    if not data:
        return None
    mime_type = getattr(blob, "mime_type", None) or "image/png"
    return ImagePayload(data=bytes(data), mime_type=mime_type)


def block_reason(response: Any) -> tuple[str, str | None] | None:
    """Return `(reason, message)` when the prompt was blocked, else None."""
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is None:
        return None
    reason = _enum_text(getattr(feedback, "block_reason", None))
    if reason is None or reason == "BLOCKED_REASON_UNSPECIFIED":
        return None
    message = getattr(feedback, "block_reason_message", None) or None
    return reason, message


def extract_parts(
    response: Any,
    *,
    require_text: bool = False,
    context: str = "analysis",
) -> ExtractedParts:
    """Extract the image (and optionally text) payload from `response`.

    Args:
        response: The raw generation response.
        require_text: When True, a missing text part is a failure.
        context: Short label of the request used in error messages,
            e.g. ``"annotation"`` or ``"repair"``.

    Returns:
        `ExtractedParts` with the first inline image and the joined text.

    Raises:
        ContentBlockedError: The request was blocked. Takes priority over
            any parts that may also be present.
        EmptyResponseError: The response carried no parts.
        MissingImageError: No part carried inline image data.
        MissingStructuredDataError: `require_text` is set and no text came back.
    """
    blocked = block_reason(response)
    if blocked is not None:
        reason, message = blocked
        logger.error(
            "Generation for %s was blocked: %s %s", context, reason, message or ""
        )
        raise ContentBlockedError(reason, message)

    candidate = _first_candidate(response)
    finish_reason = _enum_text(getattr(candidate, "finish_reason", None))
    parts = _parts_of(candidate)

    if not parts:
        logger.error(
            "Generation for %s returned no parts (finish_reason=%s)",
            context,
            finish_reason,
        )
        raise EmptyResponseError(finish_reason)

    text = _joined_text(parts)
    image = next((img for img in map(_image_of, parts) if img is not None), None)
    if image is None:
        logger.error(
            "Generation for %s returned no image (finish_reason=%s, text=%r)",
            context,
            finish_reason,
            (text or "")[:200],
        )
        raise MissingImageError(context, finish_reason, text)

    if require_text and text is None:
        logger.error(
            "Generation for %s returned no structured text (finish_reason=%s)",
            context,
            finish_reason,
        )
        raise MissingStructuredDataError(finish_reason)

    logger.debug(
        "Received image data (%s, %d bytes) for %s",
        image.mime_type,
        len(image.data),
        context,
    )
    return ExtractedParts(image=image, text=text, finish_reason=finish_reason)
