"""
Error taxonomy for MindCast.

Every error the session can surface derives from MindCastError so the
presentation layer can render a single error slot.
"""

from .models import CaptureErrorKind


class MindCastError(Exception):
    """Base class for all MindCast errors."""


class ValidationError(MindCastError):
    """The submitted utterance is empty or whitespace only."""


class CaptureError(MindCastError):
    """Voice capture ended without a transcript."""

    def __init__(self, kind: CaptureErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        message = f"Speech recognition error: {kind.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ClassificationError(MindCastError):
    """The classification service failed or answered with garbage."""


class PlaybackError(MindCastError):
    """Narration failed while synthesising the podcast."""


class PersistenceError(MindCastError):
    """The stored mood history could not be read or written."""


class TransitionError(MindCastError):
    """The requested operation is not valid in the current session state."""


class SessionBusyError(TransitionError):
    """A capture or classification is already outstanding."""


class ConfigError(MindCastError):
    """A MINDCAST_* setting or command option has an unusable value."""
