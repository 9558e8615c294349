"""Generation backend contract and the Gemini adapter.

The core only needs one operation from a generation backend: send an image,
a prompt and the requested output modalities, and get back a multi-part
response shaped like `google.genai.types.GenerateContentResponse`. Anything
implementing `GenerationBackend` can be injected, which is how tests run
without network access.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
import httpx

from repair_vision.core.exceptions import APIError, MissingKeyError
from repair_vision.core.types import ImagePayload

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repair_vision.config import GeminiSettings

logger = logging.getLogger(__name__)

IMAGE = "IMAGE"
TEXT = "TEXT"


@runtime_checkable
class GenerationBackend(Protocol):
    """Anything that can turn an image plus prompt into a multi-part response."""

    async def generate(
        self,
        image: ImagePayload,
        prompt: str,
        modalities: Sequence[str],
    ) -> Any: ...  # noqa: D102


class GeminiImageBackend:
    """`GenerationBackend` backed by the Google Gen AI SDK (async client)."""

    def __init__(
        self,
        settings: GeminiSettings,
        *,
        client: genai.Client | None = None,
    ) -> None:
        """Create the backend.

        Args:
            settings: Gemini settings; `api_key` is required unless `client`
                is supplied.
            client: Optional pre-built SDK client.

        Raises:
            MissingKeyError: No client was given and no API key is configured.
        """
        if client is None:
            if not settings.api_key:
                raise MissingKeyError(
                    "Gemini API key is not configured. Set GEMINI_API_KEY or "
                    "pass it programmatically."
                )
            client = genai.Client(api_key=settings.api_key)
        self._client = client
        self.model = settings.model
        logger.debug("GeminiImageBackend initialized with model '%s'.", self.model)

    async def generate(
        self,
        image: ImagePayload,
        prompt: str,
        modalities: Sequence[str],
    ) -> types.GenerateContentResponse:
        """Issue one ``generate_content`` call and return the raw response.

        Raises:
            APIError: The SDK or the transport reported a failure.
        """
        contents = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            types.Part(text=prompt),
        ]
        config = types.GenerateContentConfig(response_modalities=list(modalities))
        try:
            return await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error("Gemini request failed with status %s: %s", e.code, e)
            raise APIError(f"Gemini request failed ({e.code}): {e.message or e}") from e
        except httpx.HTTPError as e:
            logger.error("Gemini transport error: %s", e)
            raise APIError(f"Gemini transport error: {e}") from e
