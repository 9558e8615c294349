"""Exception taxonomy for damage analysis, parsing and narration.

Every failure surfaced to a caller is a distinct subclass of
`RepairVisionError` whose `str()` is suitable for display and carries enough
diagnostic context (finish reason or a raw response snippet) to decide
whether a retry is worthwhile.
"""

from __future__ import annotations

_SNIPPET_LIMIT = 500


def _snippet(text: str | None, limit: int = _SNIPPET_LIMIT) -> str:
    """Return `text` trimmed to `limit` characters for error messages."""
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "... [TRUNCATED]"


class RepairVisionError(Exception):
    """Base exception for all repair-vision errors"""  # noqa: D415


class ConfigurationError(RepairVisionError):
    """Raised when settings fail validation"""  # noqa: D415


class MissingKeyError(RepairVisionError):
    """Raised when a required API key is missing"""  # noqa: D415


class APIError(RepairVisionError):
    """Raised when a backend call fails at the transport level"""  # noqa: D415


class InvalidInputFileError(RepairVisionError):
    """Raised when the submitted file is not an image."""

    def __init__(self, mime_type: str | None):
        self.mime_type = mime_type
        super().__init__(
            "Please select a valid image file (JPEG, PNG, WEBP, etc.). "
            f"Received MIME type: {mime_type or 'unknown'}."
        )


class SynthesisError(RepairVisionError):
    """Raised when the speech-synthesis backend cannot produce audio."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


# --- Response extraction and parsing ---


class ResponseError(RepairVisionError):
    """Base for failures classified from a generation response."""


class ContentBlockedError(ResponseError):
    """The backend refused the request and reported a block reason."""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        self.block_message = message
        text = f"Request was blocked. Reason: {reason}."
        if message:
            text = f"{text} {message}"
        super().__init__(text)


class EmptyResponseError(ResponseError):
    """The response carried no content parts at all."""

    def __init__(self, finish_reason: str | None = None, text: str | None = None):
        self.finish_reason = finish_reason
        self.text = text
        if finish_reason and finish_reason != "STOP":
            reason_text = f"Reason: {finish_reason}."
        else:
            reason_text = "The model's response was incomplete."
        message = f"The AI model did not return any content. {reason_text}"
        if text:
            message = f'{message} The model responded with: "{_snippet(text)}"'
        super().__init__(message)


class MissingImageError(ResponseError):
    """Parts were returned but none carried inline image data."""

    def __init__(
        self,
        context: str,
        finish_reason: str | None = None,
        text: str | None = None,
    ):
        self.context = context
        self.finish_reason = finish_reason
        self.text = text
        if finish_reason and finish_reason != "STOP":
            message = (
                f"Image generation for {context} stopped unexpectedly. "
                f"Reason: {finish_reason}. This often relates to safety settings."
            )
        elif text:
            message = (
                f"The AI model did not return an image for the {context}. "
                f'The model responded with text: "{_snippet(text)}"'
            )
        else:
            message = (
                f"The AI model did not return an image for the {context}. "
                "This can happen due to safety filters or if the request is too "
                "complex. Please try rephrasing your prompt to be more direct."
            )
        super().__init__(message)


class MissingStructuredDataError(ResponseError):
    """An image was returned but the required text payload was not."""

    def __init__(self, finish_reason: str | None = None):
        self.finish_reason = finish_reason
        message = "The AI model did not return a cost estimate."
        if finish_reason and finish_reason != "STOP":
            message = f"{message} Reason: {finish_reason}."
        super().__init__(message)


class MalformedJSONError(ResponseError):
    """The text payload is not valid JSON in any accepted wire shape."""

    def __init__(self, raw_text: str):
        self.raw_text = raw_text
        super().__init__(
            "The AI returned an invalid format for the cost estimation. "
            f'Raw response: "{_snippet(raw_text)}"'
        )


class SchemaMismatchError(ResponseError):
    """The JSON payload parsed but does not match the cost/vehicle schema."""

    def __init__(self, raw_text: str, details: str | None = None):
        self.raw_text = raw_text
        self.details = details
        message = (
            "The AI returned cost data that does not match the expected format. "
        )
        if details:
            message += f"{details} "
        message += f'Raw response: "{_snippet(raw_text)}"'
        super().__init__(message)
