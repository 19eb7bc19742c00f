"""
Session coordination for MindCast.

This module sequences capture -> validation -> classification -> narration
for the single active session, records every successful classification in
the mood journal, and streams session snapshots to the presentation layer.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from .capture import (
    CancellationToken,
    CaptureChannel,
    VoiceCapture,
    detect_voice_support,
)
from .classifier import ClassificationPort, HttpClassifier, LexiconClassifier
from .config import Settings
from .errors import (
    CaptureError,
    ClassificationError,
    MindCastError,
    PersistenceError,
    PlaybackError,
    SessionBusyError,
    TransitionError,
    ValidationError,
)
from .history import DEFAULT_RECENT, MoodHistoryStore, recent
from .models import (
    CaptureMode,
    CaptureOutcome,
    CaptureSuccess,
    MoodEntry,
    MoodHistory,
    PodcastResult,
    SessionSnapshot,
    SessionState,
)
from .playback import ConsoleNarrator, Narrator, PlaybackController
from .storage import JsonFileStorage, KeyValueStorage

logger = logging.getLogger("mindcast.session")

EMPTY_INPUT_MESSAGE = "Please provide some input about how you're feeling"

_BUSY_STATES = (SessionState.CAPTURING, SessionState.SUBMITTED, SessionState.PROCESSING)
_STARTABLE_STATES = (SessionState.IDLE, SessionState.READY)
_PROGRESS = {SessionState.SUBMITTED: 25, SessionState.PROCESSING: 50}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStateMachine:
    """
    Orchestrator for one mood check-in session at a time.

    Mutual exclusion is enforced through the current state: a capture or a
    submission is rejected while another one is outstanding. Every error
    lands in a single error slot; only the newest one is kept.
    """

    def __init__(
        self,
        classifier: ClassificationPort,
        history_store: MoodHistoryStore,
        playback: PlaybackController,
        capture: CaptureChannel | None = None,
        *,
        voice_supported: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._classifier = classifier
        self._store = history_store
        self._playback = playback
        self.capture = capture or CaptureChannel()
        self.voice_supported = voice_supported
        self._clock = clock

        self.capture.mode = CaptureMode.VOICE if voice_supported else CaptureMode.TEXT
        self._state = SessionState.IDLE
        self._result: PodcastResult | None = None
        self._error: MindCastError | None = None
        self._pending = ""
        self._capture_token: CancellationToken | None = None

        self._version = 0
        self._changed = asyncio.Event()

        self._history, self._error = self._store.load()

    # MARK: - State

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> PodcastResult | None:
        return self._result

    @property
    def error(self) -> MindCastError | None:
        return self._error

    @property
    def pending_transcript(self) -> str:
        return self._pending

    @property
    def mode(self) -> CaptureMode:
        return self.capture.mode

    @property
    def progress(self) -> int:
        return _PROGRESS.get(self._state, 0)

    @property
    def history(self) -> MoodHistory:
        return self._history

    def recent(self, n: int = DEFAULT_RECENT) -> MoodHistory:
        return recent(self._history, n)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            mode=self.capture.mode,
            voice_supported=self.voice_supported,
            pending_transcript=self._pending,
            text=self.capture.text,
            result=self._result,
            error=str(self._error) if self._error else None,
            error_type=type(self._error).__name__ if self._error else None,
            progress=self.progress,
        )

    # MARK: - Input

    def select_mode(self, mode: CaptureMode) -> None:
        """Switch between voice and text entry before a capture begins."""
        if self._state not in _STARTABLE_STATES:
            raise TransitionError(
                f"Cannot change input mode while {self._state.value}"
            )
        if mode is CaptureMode.VOICE and not self.voice_supported:
            raise TransitionError("Voice input is not supported here")
        self.capture.mode = mode
        self._notify()

    def set_text(self, text: str) -> None:
        """Replace the text-entry buffer."""
        if self._state in (SessionState.SUBMITTED, SessionState.PROCESSING):
            raise SessionBusyError("Cannot edit input while a podcast is generating")
        self.capture.text = text
        self._notify()

    async def start_capture(self) -> CaptureOutcome | None:
        """
        Run one voice capture cycle.

        The transcript is held as pending input; the session returns to Idle
        on success and moves to Errored on a capture error. In text mode this
        does nothing.

        Returns:
            The capture outcome, or None in text mode
        """
        self._ensure_can_start()
        if self._capture_token is not None:
            raise SessionBusyError("A capture is still winding down")
        if self.capture.mode is CaptureMode.TEXT:
            return None

        self._error = None
        self._result = None
        self._pending = ""
        token = CancellationToken()
        self._capture_token = token
        self._transition(SessionState.CAPTURING)

        try:
            outcome = await self.capture.begin(token)
        finally:
            self._capture_token = None

        if outcome is not None:
            self._apply_capture(token, outcome)
        return outcome

    def _apply_capture(self, token: CancellationToken, outcome: CaptureOutcome) -> None:
        if token.cancelled:
            # last observed event wins for a transcript; errors echo the cancel
            if isinstance(outcome, CaptureSuccess) and self._state is SessionState.IDLE:
                logger.debug("Transcript arrived after cancel; keeping it")
                self._pending = outcome.transcript
                self._notify()
            else:
                logger.debug("Dropping capture outcome after cancel: %s", outcome)
            return

        if isinstance(outcome, CaptureSuccess):
            self._pending = outcome.transcript
            self._transition(SessionState.IDLE)
        else:
            self._fail(CaptureError(outcome.kind, outcome.detail))

    def cancel_capture(self) -> bool:
        """
        Stop listening and discard any transcript.

        Returns:
            False when no capture was in progress
        """
        if self._state is not SessionState.CAPTURING:
            logger.debug("Ignoring capture cancel while %s", self._state.value)
            return False
        self.capture.cancel()
        if self._capture_token is not None:
            self._capture_token.cancel()
        self._pending = ""
        self._transition(SessionState.IDLE)
        return True

    # MARK: - Classification

    async def submit(self, text: str | None = None) -> PodcastResult:
        """
        Classify an utterance and record it in the mood journal.

        Args:
            text: The utterance; defaults to the text buffer in text mode and
                the pending transcript in voice mode

        Returns:
            The generated podcast

        Raises:
            ValidationError: if the utterance is empty or whitespace only
            ClassificationError: if the podcast could not be generated
            SessionBusyError: if a capture or classification is outstanding
        """
        self._ensure_can_start()
        if text is None:
            if self.mode is CaptureMode.TEXT:
                text = self.capture.read()
            else:
                text = self._pending

        cleaned = text.strip()
        if not cleaned:
            invalid = ValidationError(EMPTY_INPUT_MESSAGE)
            self._error = invalid
            self._notify()
            raise invalid

        self._error = None
        self._result = None
        self._transition(SessionState.SUBMITTED)
        self._transition(SessionState.PROCESSING)

        try:
            raw = await self._classifier.classify(cleaned)
            result = PodcastResult.model_validate(raw)
        except ClassificationError as e:
            logger.warning("Classification failed: %s", e)
            self._fail(e)
            raise
        except Exception as e:
            logger.warning("Classification failed: %s", e)
            error = ClassificationError(f"Failed to generate podcast: {e}")
            self._fail(error)
            raise error from e

        self._result = result
        self._pending = ""
        self.capture.text = ""
        self._record(
            MoodEntry(
                timestamp=self._clock(),
                mood=result.mood,
                confidence=result.confidence,
                transcript=cleaned,
            )
        )
        self._transition(SessionState.READY)
        return result

    def _record(self, entry: MoodEntry) -> None:
        try:
            self._history = self._store.append(self._history, entry)
        except PersistenceError as e:
            logger.warning("Mood entry kept in memory only: %s", e)
            self._history = (*self._history, entry)
            self._error = e

    # MARK: - Playback

    def play(self) -> None:
        """Start narrating the ready podcast, or resume a paused one."""
        if self._state is SessionState.READY and self._result is not None:
            self._playback.start(self._result.content, self._on_playback_finished)
        elif self._state is SessionState.PAUSED:
            self._playback.resume()
        else:
            raise TransitionError(f"Nothing to play while {self._state.value}")
        self._transition(SessionState.PLAYING)

    def pause(self) -> None:
        if self._state is not SessionState.PLAYING:
            raise TransitionError(f"Cannot pause while {self._state.value}")
        self._playback.pause()
        self._transition(SessionState.PAUSED)

    def stop(self) -> None:
        if self._state not in (SessionState.PLAYING, SessionState.PAUSED):
            raise TransitionError(f"Cannot stop while {self._state.value}")
        self._playback.cancel()
        self._transition(SessionState.READY)

    def toggle_playback(self) -> None:
        if self._state in (SessionState.PLAYING, SessionState.PAUSED):
            self.stop()
        else:
            self.play()

    async def wait_for_playback(self) -> None:
        await self._playback.wait()

    def _on_playback_finished(self, error: PlaybackError | None) -> None:
        if self._state not in (SessionState.PLAYING, SessionState.PAUSED):
            return
        if error is not None:
            # podcast stays playable
            self._error = error
        self._transition(SessionState.READY)

    # MARK: - Errors

    def acknowledge(self) -> None:
        """Dismiss the current error and clear all inputs."""
        if self._state is SessionState.ERRORED:
            self._error = None
            self._result = None
            self._pending = ""
            self.capture.text = ""
            self._transition(SessionState.IDLE)
        elif self._error is not None:
            self._error = None
            self._notify()
        else:
            raise TransitionError("There is no error to acknowledge")

    def _fail(self, error: MindCastError) -> None:
        self._error = error
        self._transition(SessionState.ERRORED)

    def _ensure_can_start(self) -> None:
        if self._state in _BUSY_STATES:
            raise SessionBusyError(f"Session is busy ({self._state.value})")
        if self._state not in _STARTABLE_STATES:
            raise TransitionError(
                f"Cannot start a new check-in while {self._state.value}"
            )

    # MARK: - Streaming

    def _transition(self, state: SessionState) -> None:
        logger.debug("Session %s -> %s", self._state.value, state.value)
        self._state = state
        self._notify()

    def _notify(self) -> None:
        self._version += 1
        # wake every subscriber waiting on the previous event
        self._changed.set()
        self._changed = asyncio.Event()

    @asynccontextmanager
    async def stream(
        self,
    ) -> AsyncGenerator[AsyncGenerator[SessionSnapshot, None], None]:
        """
        Stream session snapshots to a subscriber.

        The generator yields the current snapshot immediately and then the
        latest snapshot after every change. Changes that happen between two
        reads are coalesced.

        Yields:
            An async generator of SessionSnapshot objects
        """

        async def snapshot_generator() -> AsyncGenerator[SessionSnapshot, None]:
            last_seen = self._version
            yield self.snapshot()

            try:
                while True:
                    while self._version == last_seen:
                        await self._changed.wait()
                    last_seen = self._version
                    yield self.snapshot()
            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber went away
                return

        yield snapshot_generator()


def create_session(
    settings: Settings,
    *,
    classifier: ClassificationPort | None = None,
    storage: KeyValueStorage | None = None,
    narrator: Narrator | None = None,
    voice: VoiceCapture | None = None,
) -> SessionStateMachine:
    """
    Wire a session from settings and optional platform adapters.

    Args:
        settings: Loaded configuration
        classifier: Overrides the classifier chosen from settings
        storage: Overrides the file storage at settings.storage_path
        narrator: Overrides the console narrator
        voice: Platform voice capture engine, if any

    Returns:
        A session with its history already loaded
    """
    if classifier is None:
        if settings.classifier_url:
            classifier = HttpClassifier(
                settings.classifier_url, timeout=settings.classifier_timeout
            )
        else:
            classifier = LexiconClassifier()

    store = MoodHistoryStore(
        storage or JsonFileStorage(settings.storage_path), settings.history_key
    )
    playback = PlaybackController(
        narrator or ConsoleNarrator(),
        rate=settings.speech_rate,
        pitch=settings.speech_pitch,
        volume=settings.speech_volume,
        preferred_voices=settings.preferred_voices,
    )
    return SessionStateMachine(
        classifier,
        store,
        playback,
        CaptureChannel(voice, locale=settings.locale),
        voice_supported=detect_voice_support(voice),
    )
