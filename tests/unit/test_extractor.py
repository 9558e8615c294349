from google.genai import types
import pytest

from repair_vision.core.exceptions import (
    ContentBlockedError,
    EmptyResponseError,
    MissingImageError,
    MissingStructuredDataError,
)
from repair_vision.core.types import ImagePayload
from repair_vision.response.extractor import extract_parts


class TestClassificationOrder:
    """Earlier checks win over later ones."""

    @pytest.mark.unit
    def test_block_reason_takes_priority_over_present_parts(self, make_response, png_image):
        """Should report a block even when image and text parts exist"""
        response = make_response(
            png_image,
            '{"vehicle": {}, "costs": []}',
            block_reason=types.BlockedReason.SAFETY,
            block_message="Unsafe content",
        )
        with pytest.raises(ContentBlockedError) as exc_info:
            extract_parts(response, require_text=True)
        assert exc_info.value.reason == "SAFETY"
        assert "Request was blocked. Reason: SAFETY." in str(exc_info.value)
        assert "Unsafe content" in str(exc_info.value)

    @pytest.mark.unit
    def test_block_without_any_candidates(self, make_response):
        """Should report a block when the response has no candidates"""
        response = make_response(
            no_candidates=True, block_reason=types.BlockedReason.OTHER
        )
        with pytest.raises(ContentBlockedError):
            extract_parts(response)

    @pytest.mark.unit
    def test_no_candidates_is_empty(self, make_response):
        """Should treat a response without candidates as empty"""
        with pytest.raises(EmptyResponseError) as exc_info:
            extract_parts(make_response(no_candidates=True))
        assert exc_info.value.finish_reason is None
        assert "incomplete" in str(exc_info.value)

    @pytest.mark.unit
    def test_zero_parts_reports_finish_reason(self, make_response):
        """Should carry the finish reason on an empty response"""
        response = make_response(finish_reason=types.FinishReason.MAX_TOKENS)
        with pytest.raises(EmptyResponseError) as exc_info:
            extract_parts(response)
        assert exc_info.value.finish_reason == "MAX_TOKENS"
        assert "Reason: MAX_TOKENS." in str(exc_info.value)

    @pytest.mark.unit
    def test_text_only_response_is_missing_image_with_text_diagnostic(
        self, make_response
    ):
        """Should quote the returned text when no image came back"""
        response = make_response("I cannot edit this photo.")
        with pytest.raises(MissingImageError) as exc_info:
            extract_parts(response, context="repair")
        err = exc_info.value
        assert err.text == "I cannot edit this photo."
        assert 'The model responded with text: "I cannot edit this photo."' in str(err)
        assert "for the repair" in str(err)

    @pytest.mark.unit
    def test_missing_image_surfaces_non_stop_finish_reason(self, make_response):
        """Should surface a non-STOP finish reason for a missing image"""
        response = make_response(
            "partial", finish_reason=types.FinishReason.SAFETY
        )
        with pytest.raises(MissingImageError) as exc_info:
            extract_parts(response, context="repair")
        assert exc_info.value.finish_reason == "SAFETY"
        assert "stopped unexpectedly. Reason: SAFETY" in str(exc_info.value)

    @pytest.mark.unit
    def test_missing_text_only_fails_when_required(self, make_response, png_image):
        """Should require text only for the dual-part flow"""
        response = make_response(png_image)
        with pytest.raises(MissingStructuredDataError):
            extract_parts(response, require_text=True)
        # Image-only flows accept the same response.
        parts = extract_parts(response, require_text=False)
        assert parts.text is None


class TestSuccessfulExtraction:
    """Responses carrying the required parts"""

    @pytest.mark.unit
    def test_returns_image_and_text(self, make_response, png_image):
        """Should return the image, text and finish reason"""
        response = make_response("```json\n[]\n```", png_image)
        parts = extract_parts(response, require_text=True)
        assert parts.image == png_image
        assert parts.text == "```json\n[]\n```"
        assert parts.finish_reason == "STOP"

    @pytest.mark.unit
    def test_first_image_wins_and_text_parts_are_joined(self, make_response, png_image):
        """Should keep the first image and join all text parts"""
        second = ImagePayload(data=b"other", mime_type="image/jpeg")
        response = make_response("[", png_image, "]", second)
        parts = extract_parts(response, require_text=True)
        assert parts.image == png_image
        assert parts.text == "[]"

    @pytest.mark.unit
    def test_image_exposes_data_uri(self, make_response):
        """Should render the extracted image as a base64 data URI"""
        image = ImagePayload(data=b"abc", mime_type="image/png")
        parts = extract_parts(make_response(image))
        assert parts.image.data_uri == "data:image/png;base64,YWJj"
