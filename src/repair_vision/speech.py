"""Speech-synthesis backend contract and the ElevenLabs adapter."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from repair_vision.core.exceptions import MissingKeyError, SynthesisError
from repair_vision.telemetry import TelemetryContext

if TYPE_CHECKING:
    from repair_vision.config import ElevenLabsSettings
    from repair_vision.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

MULTILINGUAL_LANGUAGES = frozenset({"sw"})


@dataclasses.dataclass(frozen=True, slots=True)
class AudioClip:
    """Synthesized narration audio."""

    data: bytes
    mime_type: str = "audio/mpeg"


@runtime_checkable
class SpeechSynthesizer(Protocol):
    """Anything that can turn narration text into playable audio."""

    async def synthesize(self, text: str, language: str) -> AudioClip: ...  # noqa: D102


def _error_detail(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:200] or "Unknown error"
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return str(detail.get("message") or "Unknown error")
    if isinstance(detail, str):
        return detail
    return "Unknown error"


class ElevenLabsSynthesizer:
    """`SpeechSynthesizer` calling the ElevenLabs text-to-speech endpoint."""

    def __init__(
        self,
        settings: ElevenLabsSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        if not settings.api_key:
            raise MissingKeyError(
                "ElevenLabs API key is not configured. Set ELEVENLABS_API_KEY."
            )
        self._settings = settings
        self._http_client = http_client
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    @property
    def url(self) -> str:
        return f"{self._settings.base_url}/text-to-speech/{self._settings.voice_id}"

    def model_for(self, language: str) -> str:
        """Multilingual model for Swahili, monolingual for everything else."""
        if language in MULTILINGUAL_LANGUAGES:
            return self._settings.multilingual_model
        return self._settings.monolingual_model

    def _request_body(self, text: str, language: str) -> dict[str, Any]:
        return {
            "text": text,
            "model_id": self.model_for(language),
            "voice_settings": {
                "stability": self._settings.stability,
                "similarity_boost": self._settings.similarity_boost,
            },
        }

    async def synthesize(self, text: str, language: str) -> AudioClip:
        """Synthesize `text` and return the audio bytes.

        Timed under the ``speech.synthesize`` telemetry scope.

        Raises:
            SynthesisError: The request failed or returned a non-success status.
        """
        with self._telemetry("speech.synthesize", language=language):
            clip = await self._request_audio(text, language)
            self._telemetry.metric("audio_bytes", len(clip.data))
        return clip

    async def _request_audio(self, text: str, language: str) -> AudioClip:
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": str(self._settings.api_key),
        }
        body = self._request_body(text, language)
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.url, headers=headers, json=body
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self._settings.timeout_seconds
                ) as client:
                    response = await client.post(self.url, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error("Error in text-to-speech request: %s", e)
            raise SynthesisError(f"Speech synthesis request failed: {e}") from e

        if not response.is_success:
            detail = _error_detail(response)
            logger.error(
                "ElevenLabs API request failed: %s %s - %s",
                response.status_code,
                response.reason_phrase,
                detail,
            )
            raise SynthesisError(
                f"ElevenLabs API request failed: {response.status_code} "
                f"{response.reason_phrase} - {detail}",
                status_code=response.status_code,
            )

        if not response.content:
            raise SynthesisError("ElevenLabs API returned no audio")

        mime_type = response.headers.get("content-type", "audio/mpeg").split(";")[0]
        logger.debug("Synthesized %d bytes of %s audio", len(response.content), mime_type)
        return AudioClip(data=response.content, mime_type=mime_type)
