import json

import httpx
import pytest

from repair_vision.config import resolve_settings
from repair_vision.core.exceptions import MissingKeyError, SynthesisError
from repair_vision.speech import AudioClip, ElevenLabsSynthesizer, SpeechSynthesizer
from repair_vision.telemetry import InMemoryReporter, TelemetryContext


@pytest.fixture
def eleven_settings():
    return resolve_settings({"elevenlabs_api_key": "xi-test-key"}).elevenlabs


def synthesizer_with(settings, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ElevenLabsSynthesizer(settings, http_client=client)


class TestElevenLabsSynthesizer:
    """ElevenLabs text-to-speech adapter"""

    @pytest.mark.unit
    def test_requires_api_key(self, settings):
        """Should raise MissingKeyError without an API key"""
        with pytest.raises(MissingKeyError, match="ELEVENLABS_API_KEY"):
            ElevenLabsSynthesizer(settings.elevenlabs)

    @pytest.mark.unit
    def test_satisfies_protocol(self, eleven_settings):
        """Should satisfy the SpeechSynthesizer protocol"""
        assert isinstance(ElevenLabsSynthesizer(eleven_settings), SpeechSynthesizer)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("language", "model_id"),
        [
            ("sw", "eleven_multilingual_v2"),
            ("en", "eleven_monolingual_v1"),
            ("fr", "eleven_monolingual_v1"),
        ],
    )
    def test_model_selection(self, eleven_settings, language, model_id):
        """Should pick the multilingual model only for Swahili"""
        assert ElevenLabsSynthesizer(eleven_settings).model_for(language) == model_id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_shape(self, eleven_settings):
        """Should post the documented headers and JSON body"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, content=b"ID3-mp3", headers={"content-type": "audio/mpeg"}
            )

        synth = synthesizer_with(eleven_settings, handler)
        clip = await synth.synthesize("Habari", "sw")

        assert clip == AudioClip(data=b"ID3-mp3", mime_type="audio/mpeg")
        assert seen["url"] == (
            "https://api.elevenlabs.io/v1/text-to-speech/21m00Tcm4TlvDq8ikWAM"
        )
        assert seen["headers"]["xi-api-key"] == "xi-test-key"
        assert seen["headers"]["accept"] == "audio/mpeg"
        assert seen["body"] == {
            "text": "Habari",
            "model_id": "eleven_multilingual_v2",
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_status_includes_detail(self, eleven_settings):
        """Should include status and API detail in the error"""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"detail": {"message": "Invalid API key"}})

        synth = synthesizer_with(eleven_settings, handler)
        with pytest.raises(SynthesisError) as exc_info:
            await synth.synthesize("Hello", "en")

        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == (
            "ElevenLabs API request failed: 401 Unauthorized - Invalid API key"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unparseable_error_body(self, eleven_settings):
        """Should fall back to 'Unknown error' for an empty error body"""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, content=b"")

        synth = synthesizer_with(eleven_settings, handler)
        with pytest.raises(SynthesisError, match="500 Internal Server Error - Unknown"):
            await synth.synthesize("Hello", "en")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_audio_is_an_error(self, eleven_settings):
        """Should reject a successful response with no audio"""
        synth = synthesizer_with(
            eleven_settings, lambda request: httpx.Response(200, content=b"")
        )
        with pytest.raises(SynthesisError, match="no audio"):
            await synth.synthesize("Hello", "en")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, eleven_settings):
        """Should wrap transport failures in SynthesisError"""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        synth = synthesizer_with(eleven_settings, handler)
        with pytest.raises(SynthesisError) as exc_info:
            await synth.synthesize("Hello", "en")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.status_code is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_synthesis_is_timed_when_telemetry_enabled(
        self, monkeypatch, eleven_settings
    ):
        """Should report a speech.synthesize scope and the audio size"""
        monkeypatch.setenv("REPAIR_VISION_TELEMETRY", "1")
        reporter = InMemoryReporter()
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, content=b"ID3-mp3")
            )
        )
        synth = ElevenLabsSynthesizer(
            eleven_settings, http_client=client, telemetry=TelemetryContext(reporter)
        )

        await synth.synthesize("Habari", "sw")

        ((_, metadata),) = reporter.timings["speech.synthesize"]
        assert metadata["status"] == "ok"
        assert metadata["language"] == "sw"
        assert reporter.metrics["speech.synthesize.audio_bytes"][0][0] == 7

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_synthesis_scope_reports_error(
        self, monkeypatch, eleven_settings
    ):
        """Should mark the speech.synthesize scope as errored on API failure"""
        monkeypatch.setenv("REPAIR_VISION_TELEMETRY", "1")
        reporter = InMemoryReporter()
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        synth = ElevenLabsSynthesizer(
            eleven_settings, http_client=client, telemetry=TelemetryContext(reporter)
        )

        with pytest.raises(SynthesisError):
            await synth.synthesize("Hello", "en")

        assert reporter.timings["speech.synthesize"][0][1]["status"] == "error"
        assert "speech.synthesize.audio_bytes" not in reporter.metrics
