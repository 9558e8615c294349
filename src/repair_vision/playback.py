"""Narration playback state machine.

A `NarrationSession` owns at most one synthesized audio resource for the
currently displayed analysis. The presentation layer maps `PlaybackState` to
its button icon and label and forwards user presses and player events; all
state changes go through `transition()`.

    idle --press (no audio)--> loading --synthesized--> playing
    idle --press (cached)----> playing
    playing --press/ended----> idle
    loading --failed---------> error --press--> loading
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
from typing import Protocol

from repair_vision.core.exceptions import RepairVisionError, SynthesisError
from repair_vision.speech import AudioClip, SpeechSynthesizer

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    """Externally visible narration state."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    ERROR = "error"


class PlaybackEvent(str, Enum):
    """Inputs to the playback reducer."""

    PRESS = "press"
    SYNTHESIZED = "synthesized"
    SYNTHESIS_FAILED = "synthesis_failed"
    ENDED = "ended"
    PLAYER_ERROR = "player_error"
    RESET = "reset"


def transition(
    state: PlaybackState, event: PlaybackEvent, *, has_audio: bool
) -> PlaybackState:
    """Return the state that follows `state` on `event`.

    Events that have no meaning in `state` leave it unchanged; in particular a
    press while loading is ignored, which keeps synthesis single-flight.
    """
    if event is PlaybackEvent.RESET:
        return PlaybackState.IDLE
    match state, event:
        case PlaybackState.LOADING, PlaybackEvent.SYNTHESIZED:
            return PlaybackState.PLAYING
        case PlaybackState.LOADING, PlaybackEvent.SYNTHESIS_FAILED:
            return PlaybackState.ERROR
        case PlaybackState.PLAYING, PlaybackEvent.PRESS | PlaybackEvent.ENDED:
            return PlaybackState.IDLE
        case PlaybackState.PLAYING, PlaybackEvent.PLAYER_ERROR:
            return PlaybackState.ERROR
        case PlaybackState.IDLE | PlaybackState.ERROR, PlaybackEvent.PRESS:
            return PlaybackState.PLAYING if has_audio else PlaybackState.LOADING
    return state


class AudioPlayer(Protocol):
    """A playable audio resource, as provided by the presentation layer."""

    def play(self) -> None:
        """Start playback from the current position."""

    def stop(self) -> None:
        """Pause and rewind to the start."""

    def close(self) -> None:
        """Release the underlying resource."""


PlayerFactory = Callable[[AudioClip, "NarrationSession"], AudioPlayer]


class NarrationSession:
    """Lifecycle of the spoken diagnosis for one displayed analysis.

    Args:
        synthesizer: Backend that turns the narration into audio.
        player_factory: Builds an `AudioPlayer` for a synthesized clip. The
            player reports natural completion and playback errors back through
            `handle_ended()` and `handle_player_error()` on the session it
            receives.
        text: Narration text to synthesize.
        language: Target language code passed to the synthesizer.
        on_change: Optional callback invoked with the new state on every
            change.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        player_factory: PlayerFactory,
        text: str,
        language: str = "en",
        *,
        on_change: Callable[[PlaybackState], None] | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._player_factory = player_factory
        self.text = text
        self.language = language
        self._on_change = on_change
        self._state = PlaybackState.IDLE
        self._player: AudioPlayer | None = None
        self._epoch = 0
        self.last_error: RepairVisionError | None = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def has_audio(self) -> bool:
        return self._player is not None

    def _dispatch(self, event: PlaybackEvent) -> PlaybackState:
        new_state = transition(self._state, event, has_audio=self.has_audio)
        if new_state is not self._state:
            logger.debug("Narration %s -> %s on %s", self._state, new_state, event)
            self._state = new_state
            if self._on_change is not None:
                self._on_change(new_state)
        return new_state

    async def press(self) -> PlaybackState:
        """Handle a play-button press and return the resulting state."""
        if self._state is PlaybackState.LOADING:
            return self._state

        if self._state is PlaybackState.PLAYING:
            if self._player is not None:
                self._player.stop()
            return self._dispatch(PlaybackEvent.PRESS)

        if self._player is not None:
            self._player.stop()
            self._player.play()
            return self._dispatch(PlaybackEvent.PRESS)

        self._dispatch(PlaybackEvent.PRESS)
        await self._synthesize_and_play()
        return self._state

    async def _synthesize_and_play(self) -> None:
        epoch = self._epoch
        try:
            clip = await self._synthesizer.synthesize(self.text, self.language)
            if epoch != self._epoch:
                # Session was reset while synthesis was in flight.
                logger.debug("Discarding narration audio from a reset session")
                return
            self._player = self._player_factory(clip, self)
            self._player.play()
        except Exception as e:  # Any failure must leave the loading state
            if epoch != self._epoch:
                return
            logger.error("Failed to play audio diagnosis: %s", e)
            self._release_player()
            self.last_error = (
                e if isinstance(e, RepairVisionError) else SynthesisError(str(e))
            )
            self._dispatch(PlaybackEvent.SYNTHESIS_FAILED)
            return

        self.last_error = None
        self._dispatch(PlaybackEvent.SYNTHESIZED)

    def _release_player(self) -> None:
        if self._player is not None:
            player, self._player = self._player, None
            player.stop()
            player.close()

    def handle_ended(self) -> None:
        """Audio reached its natural end."""
        self._dispatch(PlaybackEvent.ENDED)

    def handle_player_error(self) -> None:
        self._dispatch(PlaybackEvent.PLAYER_ERROR)

    def reset(self) -> None:
        """Release the cached audio and return to idle."""
        self._epoch += 1
        self._release_player()
        self.last_error = None
        self._dispatch(PlaybackEvent.RESET)

    close = reset
