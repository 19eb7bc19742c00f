"""
Podcast narration for MindCast.

PlaybackController owns at most one active utterance. Starting a new one
cancels whatever is still speaking, and completion events from a cancelled
utterance are ignored.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_PREFERRED_VOICES
from .errors import PlaybackError
from .models import PlaybackState

logger = logging.getLogger("mindcast.playback")

DEFAULT_RATE = 0.8
DEFAULT_PITCH = 0.9
DEFAULT_VOLUME = 0.8

_LOCALE_TAG = re.compile(r"[a-z]{2,3}(-[A-Za-z0-9]{2,8})*")


class Voice(BaseModel):
    """A synthesis voice offered by the narration engine."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Engine voice name")
    locale: str = Field("", description="BCP-47 language tag")


class Narrator(Protocol):
    """Port for a platform text-to-speech engine."""

    def voices(self) -> Sequence[Voice]: ...

    async def speak(
        self,
        text: str,
        *,
        rate: float,
        pitch: float,
        volume: float,
        voice: Voice | None,
    ) -> None:
        """Speak text, returning on completion and raising on failure."""
        ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def cancel(self) -> None: ...


def select_voice(voices: Sequence[Voice], preferences: Sequence[str]) -> Voice | None:
    """
    Pick a narration voice.

    Preferences are tried in order. Locale-like ones ("en", "en-GB") match a
    voice's locale prefix; the rest match a substring of its name. The first
    voice is the fallback, and None means the engine default.
    """
    for preference in preferences:
        for voice in voices:
            if _matches(voice, preference):
                return voice
    return voices[0] if voices else None


def _matches(voice: Voice, preference: str) -> bool:
    if _LOCALE_TAG.fullmatch(preference):
        locale = voice.locale.lower().replace("_", "-")
        tag = preference.lower()
        return locale == tag or locale.startswith(tag + "-")
    return preference in voice.name


PlaybackCallback = Callable[[PlaybackError | None], None]


class PlaybackController:
    """Exclusive owner of the narration engine."""

    def __init__(
        self,
        narrator: Narrator,
        *,
        rate: float = DEFAULT_RATE,
        pitch: float = DEFAULT_PITCH,
        volume: float = DEFAULT_VOLUME,
        preferred_voices: Sequence[str] = DEFAULT_PREFERRED_VOICES,
    ) -> None:
        self._narrator = narrator
        self.rate = rate
        self.pitch = pitch
        self.volume = volume
        self.preferred_voices = tuple(preferred_voices)
        self._state = PlaybackState.IDLE
        self._utterance_id = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    def start(self, text: str, on_finished: PlaybackCallback | None = None) -> int:
        """
        Begin narrating text, cancelling any utterance still in flight.

        Must be called from a running event loop.

        Returns:
            The id of the new utterance
        """
        if self._state is not PlaybackState.IDLE:
            self.cancel()

        self._utterance_id += 1
        utterance_id = self._utterance_id
        voice = select_voice(self._narrator.voices(), self.preferred_voices)
        self._state = PlaybackState.PLAYING
        self._task = asyncio.get_running_loop().create_task(
            self._run(utterance_id, text, voice, on_finished)
        )
        logger.debug(
            "Utterance %d started with voice %s",
            utterance_id,
            voice.name if voice else "<default>",
        )
        return utterance_id

    async def _run(
        self,
        utterance_id: int,
        text: str,
        voice: Voice | None,
        on_finished: PlaybackCallback | None,
    ) -> None:
        error: PlaybackError | None = None
        try:
            await self._narrator.speak(
                text,
                rate=self.rate,
                pitch=self.pitch,
                volume=self.volume,
                voice=voice,
            )
        except Exception as e:
            error = PlaybackError(f"Failed to play audio: {e}")

        if utterance_id != self._utterance_id:
            logger.debug("Ignoring completion of stale utterance %d", utterance_id)
            return

        self._state = PlaybackState.IDLE
        self._task = None
        if error is not None:
            logger.warning("Narration failed: %s", error)
        if on_finished is not None:
            on_finished(error)

    def pause(self) -> None:
        if self._state is not PlaybackState.PLAYING:
            raise PlaybackError("Nothing is playing")
        self._narrator.pause()
        self._state = PlaybackState.PAUSED

    def resume(self) -> None:
        if self._state is not PlaybackState.PAUSED:
            raise PlaybackError("Playback is not paused")
        self._narrator.resume()
        self._state = PlaybackState.PLAYING

    def cancel(self) -> None:
        """Stop the active utterance immediately; its callback never fires."""
        if self._state is PlaybackState.IDLE:
            return
        # bumping the id orphans the running utterance
        self._utterance_id += 1
        self._narrator.cancel()
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._state = PlaybackState.IDLE
        logger.debug("Playback cancelled")

    async def wait(self) -> None:
        """Wait until the active utterance completes or is cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise


class ConsoleNarrator:
    """Terminal narration: echoes the podcast word by word, paced by rate."""

    WORDS_PER_SECOND = 3.0

    def __init__(self, *, delay_scale: float = 1.0) -> None:
        self._delay_scale = delay_scale
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._cancelled = False

    def voices(self) -> Sequence[Voice]:
        return [Voice(name="Console", locale="en-US")]

    async def speak(
        self,
        text: str,
        *,
        rate: float,
        pitch: float,
        volume: float,
        voice: Voice | None,
    ) -> None:
        self._cancelled = False
        self._resumed.set()
        delay = self._delay_scale / (self.WORDS_PER_SECOND * max(rate, 0.1))
        for word in text.split():
            await self._resumed.wait()
            if self._cancelled:
                return
            print(word, end=" ", flush=True)
            await asyncio.sleep(delay)
        print()

    def pause(self) -> None:
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    def cancel(self) -> None:
        self._cancelled = True
        self._resumed.set()
