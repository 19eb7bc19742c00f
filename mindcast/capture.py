"""
Utterance capture for MindCast.

A CaptureChannel produces the text the session classifies, either from a
voice capture engine (one single-result recognition per cycle) or from a
locally edited text buffer.
"""

import logging
from typing import Protocol

from .models import (
    CaptureErrorKind,
    CaptureFailure,
    CaptureMode,
    CaptureOutcome,
    CaptureSuccess,
)

logger = logging.getLogger("mindcast.capture")


class CancellationToken:
    """Cancellation flag for a single capture cycle."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VoiceCapture(Protocol):
    """Port for a platform speech recognition engine."""

    def available(self) -> bool: ...

    async def listen(self, locale: str, token: CancellationToken) -> CaptureOutcome:
        """Run one non-continuous recognition and resolve exactly once."""
        ...

    def abort(self) -> None: ...


def detect_voice_support(voice: VoiceCapture | None) -> bool:
    """Check once whether voice capture is usable in this environment."""
    if voice is None:
        return False
    try:
        return bool(voice.available())
    except Exception as e:
        logger.warning("Voice capture detection failed: %s", e)
        return False


class CaptureChannel:
    """
    Produces a finalized utterance from voice or typed input.

    In text mode begin() and cancel() do nothing and the buffer is read
    directly at submit time.
    """

    def __init__(
        self,
        voice: VoiceCapture | None = None,
        *,
        locale: str = "en-US",
        mode: CaptureMode = CaptureMode.TEXT,
    ) -> None:
        self._voice = voice
        self.locale = locale
        self.mode = mode
        self.text = ""
        self._token: CancellationToken | None = None

    async def begin(self, token: CancellationToken) -> CaptureOutcome | None:
        """
        Start one capture and wait for it to resolve.

        Returns:
            The capture outcome, or None in text mode
        """
        if self.mode is CaptureMode.TEXT:
            return None
        if self._voice is None:
            return CaptureFailure(kind=CaptureErrorKind.UNSUPPORTED)

        self._token = token
        try:
            outcome = await self._voice.listen(self.locale, token)
        except Exception as e:
            logger.warning("Voice capture raised: %s", e)
            return CaptureFailure(kind=CaptureErrorKind.OTHER, detail=str(e))
        finally:
            if self._token is token:
                self._token = None

        if isinstance(outcome, CaptureSuccess) and not outcome.transcript.strip():
            return CaptureFailure(kind=CaptureErrorKind.NO_MATCH)
        return outcome

    def cancel(self) -> None:
        """Ask the engine to stop early; a result may still arrive."""
        if self.mode is CaptureMode.TEXT or self._token is None:
            return
        self._token.cancel()
        if self._voice is not None:
            self._voice.abort()

    def read(self) -> str:
        return self.text
