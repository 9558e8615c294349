"""
Global test configuration: environment isolation and in-process fakes.
"""

import asyncio
import os

from google.genai import types
import pytest

from repair_vision.config import resolve_settings
from repair_vision.core.types import ImagePayload
from repair_vision.speech import AudioClip

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

ANALYSIS_JSON = """```json
{
  "vehicle": {"make": "Toyota", "model": "Corolla", "year": "2018"},
  "costs": [
    {"part": "bumper", "damage": "dented", "suggestion": "Repair", "costUSD": 500, "costRWF": 650000}
  ]
}
```"""


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_env(request, monkeypatch):
    """Ensure a clean GEMINI_*/ELEVENLABS_*/REPAIR_VISION_* environment.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    prefixes = ("GEMINI_", "ELEVENLABS_", "REPAIR_VISION_")
    for key in list(os.environ.keys()):
        if key.startswith(prefixes):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


# --- Response builders ---


def build_response(
    *parts,
    finish_reason=types.FinishReason.STOP,
    block_reason=None,
    block_message=None,
    no_candidates=False,
):
    """Build a real `GenerateContentResponse` from part specs.

    Each part spec is either a `str` (text part) or an `ImagePayload`
    (inline image part).
    """
    sdk_parts = []
    for spec in parts:
        if isinstance(spec, ImagePayload):
            sdk_parts.append(
                types.Part(
                    inline_data=types.Blob(data=spec.data, mime_type=spec.mime_type)
                )
            )
        else:
            sdk_parts.append(types.Part(text=spec))

    feedback = None
    if block_reason is not None:
        feedback = types.GenerateContentResponsePromptFeedback(
            block_reason=block_reason, block_reason_message=block_message
        )

    candidates = []
    if not no_candidates:
        candidates.append(
            types.Candidate(
                content=types.Content(role="model", parts=sdk_parts),
                finish_reason=finish_reason,
            )
        )
    return types.GenerateContentResponse(candidates=candidates, prompt_feedback=feedback)


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def png_image():
    return ImagePayload(data=PNG_BYTES, mime_type="image/png")


@pytest.fixture
def analysis_response(png_image):
    return build_response(png_image, ANALYSIS_JSON)


@pytest.fixture
def preview_response():
    return build_response(ImagePayload(data=b"repaired-bytes", mime_type="image/jpeg"))


@pytest.fixture
def settings():
    return resolve_settings()


# --- Backend fakes ---


class FakeBackend:
    """GenerationBackend double keyed on the requested modalities.

    Requests asking for TEXT are damage-analysis requests; image-only requests
    are repair-preview requests. A configured value that is an exception is
    raised instead of returned. Optional `gates` hold a request until the
    test sets the matching event.
    """

    def __init__(self, analysis, preview):
        self.responses = {"analysis": analysis, "preview": preview}
        self.calls = []
        self.gates: dict[str, asyncio.Event] = {}

    async def generate(self, image, prompt, modalities):
        kind = "analysis" if "TEXT" in modalities else "preview"
        self.calls.append((kind, image, prompt, tuple(modalities)))
        gate = self.gates.get(kind)
        if gate is not None:
            await gate.wait()
        value = self.responses[kind]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def fake_backend_cls():
    return FakeBackend


class FakeSynthesizer:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def synthesize(self, text, language):
        self.calls.append((text, language))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return AudioClip(data=b"ID3-audio")


class FakePlayer:
    def __init__(self, clip, session):
        self.clip = clip
        self.session = session
        self.events = []
        self.closed = False

    def play(self):
        self.events.append("play")

    def stop(self):
        self.events.append("stop")

    def close(self):
        self.closed = True


class PlayerRecorder:
    """Player factory that remembers every player it created."""

    def __init__(self):
        self.players: list[FakePlayer] = []

    def __call__(self, clip, session):
        player = FakePlayer(clip, session)
        self.players.append(player)
        return player


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def synthesizer_cls():
    return FakeSynthesizer


@pytest.fixture
def player_factory():
    return PlayerRecorder()


@pytest.fixture
def player_cls():
    return FakePlayer
