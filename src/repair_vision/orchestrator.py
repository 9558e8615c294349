"""Analysis orchestration: two concurrent generation requests, one outcome.

Each submission issues a damage-analysis request (annotated image plus
vehicle/cost JSON) and a repair-preview request (image only) concurrently
and waits for both to settle. A failure in one branch never cancels or hides
the other; the two results are merged into a single `AnalysisOutcome`.

Every submission belongs to a generation number. State visible to the
presentation layer is reset synchronously before the requests are issued,
and results that come back for an older generation are discarded.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from repair_vision.config import Settings, resolve_settings
from repair_vision.core.types import (
    AnalysisOutcome,
    AnalysisSuccess,
    DamageAnalysisResult,
    Failure,
    ImagePayload,
    PartialFailure,
    RepairPreviewResult,
    Result,
    Success,
    TotalFailure,
)
from repair_vision.generation import IMAGE, TEXT, GenerationBackend
from repair_vision.images import ImageHandle, ImageSlot, validate_image_input
from repair_vision.narration import compose_narration
from repair_vision.playback import NarrationSession, PlaybackState, PlayerFactory
from repair_vision.prompts import (
    build_damage_analysis_prompt,
    build_repair_preview_prompt,
)
from repair_vision.response.extractor import extract_parts
from repair_vision.response.parser import parse_damage_assessment
from repair_vision.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from repair_vision.speech import SpeechSynthesizer
    from repair_vision.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

ANALYSIS_FAILED = "Analysis Failed"
PREVIEW_FAILED = "Repair Preview Failed"
FAILURE_PREFIX = "Failed to analyze the image."


# --- Branch requests ---


async def generate_damage_analysis(
    backend: GenerationBackend,
    image: ImagePayload,
    description: str | None,
    *,
    language: str = "en",
    usd_to_rwf_rate: float = 1300.0,
) -> DamageAnalysisResult:
    """Request the annotated image and cost JSON, then validate both."""
    prompt = build_damage_analysis_prompt(
        description, language=language, usd_to_rwf_rate=usd_to_rwf_rate
    )
    logger.info("Starting damage analysis generation...")
    response = await backend.generate(image, prompt, (IMAGE, TEXT))
    parts = extract_parts(response, require_text=True, context="annotation")
    assessment = parse_damage_assessment(parts.text or "")
    logger.info(
        "Damage analysis produced %d cost item(s) for %r",
        len(assessment.costs),
        assessment.vehicle.display_name,
    )
    return DamageAnalysisResult(
        annotated_image=parts.image,
        vehicle=assessment.vehicle,
        costs=assessment.costs,
    )


async def generate_repaired_preview(
    backend: GenerationBackend,
    image: ImagePayload,
    description: str | None,
) -> RepairPreviewResult:
    """Request the "after repair" image."""
    prompt = build_repair_preview_prompt(description)
    logger.info("Starting repaired preview generation...")
    response = await backend.generate(image, prompt, (IMAGE,))
    parts = extract_parts(response, require_text=False, context="repair")
    return RepairPreviewResult(repaired_image=parts.image)


# --- Join ---


def settle(value: Any) -> Result[Any, Exception]:
    """Wrap one `asyncio.gather(..., return_exceptions=True)` entry."""
    if isinstance(value, Exception):
        return Failure(value)
    if isinstance(value, BaseException):
        raise value
    return Success(value)


def combine_results(
    analysis: Result[DamageAnalysisResult, Exception],
    preview: Result[RepairPreviewResult, Exception],
) -> AnalysisOutcome:
    """Merge the two settled branches into one outcome.

    Each failed branch contributes a labelled message; messages are joined
    with ``"; "`` when both fail.
    """
    errors = []
    if isinstance(analysis, Failure):
        errors.append(f"{ANALYSIS_FAILED}: {analysis.error}")
    if isinstance(preview, Failure):
        errors.append(f"{PREVIEW_FAILED}: {preview.error}")

    if not errors:
        return AnalysisSuccess(analysis=analysis.value, preview=preview.value)

    message = f"{FAILURE_PREFIX} {'; '.join(errors)}"
    if isinstance(analysis, Success):
        return PartialFailure(error=message, analysis=analysis.value)
    if isinstance(preview, Success):
        return PartialFailure(error=message, preview=preview.value)
    return TotalFailure(error=message)


# --- Orchestrator ---


@dataclasses.dataclass
class AnalysisState:
    """What the presentation layer renders for the current submission."""

    generation: int = 0
    language: str = "en"
    is_loading: bool = False
    original_image: ImageHandle | None = None
    outcome: AnalysisOutcome | None = None

    @property
    def error(self) -> str | None:
        return self.outcome.error if self.outcome is not None else None

    @property
    def show_results(self) -> bool:
        return self.outcome is not None and self.outcome.is_renderable


class AnalysisOrchestrator:
    """Runs submissions and owns all per-analysis state.

    Args:
        backend: Generation backend used for both requests.
        settings: Resolved settings; defaults to `resolve_settings()`.
        synthesizer: Optional speech backend enabling narration.
        player_factory: Builds audio players for narration clips; required
            together with `synthesizer`.
        telemetry: Optional telemetry context.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        *,
        settings: Settings | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        player_factory: PlayerFactory | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._backend = backend
        self._settings = settings or resolve_settings()
        self._synthesizer = synthesizer
        self._player_factory = player_factory
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()
        self._image_slot = ImageSlot()
        self._narration: NarrationSession | None = None
        self.state = AnalysisState(language=self._settings.language)

    @property
    def generation(self) -> int:
        return self.state.generation

    def _begin(self, image: ImagePayload, language: str) -> int:
        """Reset visible state for a new submission and return its generation."""
        self._teardown_narration()
        generation = self.state.generation + 1
        self.state = AnalysisState(
            generation=generation,
            language=language,
            is_loading=True,
            original_image=self._image_slot.assign(image),
        )
        return generation

    async def _timed(self, scope: str, coro: Any) -> Any:
        with self._telemetry(scope):
            return await coro

    async def analyze(
        self,
        data: bytes,
        mime_type: str | None,
        description: str | None = None,
        *,
        language: str | None = None,
    ) -> AnalysisOutcome:
        """Run one submission end to end.

        Returns:
            The merged outcome. If a newer submission (or `start_over()`)
            happened while this one was in flight, the outcome is returned
            but not applied to `state`.

        Raises:
            InvalidInputFileError: `mime_type` is not an image type. Raised
                before any backend call and before state is touched.
        """
        image = validate_image_input(data, mime_type)
        language = language or self._settings.language
        generation = self._begin(image, language)

        gemini = self._settings.gemini
        settled = await asyncio.gather(
            self._timed(
                "analysis.damage",
                generate_damage_analysis(
                    self._backend,
                    image,
                    description,
                    language=language,
                    usd_to_rwf_rate=gemini.usd_to_rwf_rate,
                ),
            ),
            self._timed(
                "analysis.preview",
                generate_repaired_preview(self._backend, image, description),
            ),
            return_exceptions=True,
        )
        analysis_result, preview_result = (settle(v) for v in settled)
        outcome = combine_results(analysis_result, preview_result)
        if outcome.analysis is not None:
            self._telemetry.count("analysis.cost_items", len(outcome.analysis.costs))

        if generation != self.state.generation:
            logger.info(
                "Discarding results of stale analysis generation %d (current %d)",
                generation,
                self.state.generation,
            )
            return outcome

        if outcome.error:
            logger.error(outcome.error)
        self.state.outcome = outcome
        self.state.is_loading = False
        return outcome

    def narration_session(
        self, *, on_change: Callable[[PlaybackState], None] | None = None
    ) -> NarrationSession:
        """Return the narration session for the displayed analysis.

        Created on first use and reused until the next submission or
        `start_over()`.

        Raises:
            RuntimeError: Narration is not configured, or no analysis with
                cost data is currently displayed.
        """
        if self._narration is not None:
            return self._narration
        if self._synthesizer is None or self._player_factory is None:
            raise RuntimeError("Narration requires a synthesizer and a player factory")
        outcome = self.state.outcome
        analysis = outcome.analysis if outcome is not None else None
        if analysis is None:
            raise RuntimeError("No analysis is available to narrate")

        text = compose_narration(analysis.vehicle, analysis.costs)
        self._narration = NarrationSession(
            self._synthesizer,
            self._player_factory,
            text,
            self.state.language,
            on_change=on_change,
        )
        return self._narration

    def _teardown_narration(self) -> None:
        if self._narration is not None:
            self._narration.reset()
            self._narration = None

    def start_over(self) -> None:
        """Drop all per-analysis state and invalidate in-flight requests."""
        self._teardown_narration()
        self._image_slot.clear()
        self.state = AnalysisState(
            generation=self.state.generation + 1,
            language=self.state.language,
        )

    def close(self) -> None:
        self.start_over()
