"""
Shared data models for MindCast.

This module defines the core domain models used across multiple layers
of the application (session coordination, history, CLI).
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    """Mutually exclusive states of the single active session."""

    IDLE = "idle"
    CAPTURING = "capturing"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ERRORED = "errored"


class CaptureMode(str, Enum):
    VOICE = "voice"
    TEXT = "text"


class CaptureErrorKind(str, Enum):
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    NO_MATCH = "no_match"
    OTHER = "other"


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class MoodEntry(BaseModel):
    """One classified utterance in the mood journal."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="When the entry was recorded")
    mood: str = Field(..., description="The classified mood label")
    confidence: float = Field(
        ..., ge=0.0, le=1.0, description="Classifier confidence in [0, 1]"
    )
    transcript: str = Field(..., description="The utterance that was classified")


# Append-only, oldest first
MoodHistory = tuple[MoodEntry, ...]


class PodcastResult(BaseModel):
    """A mood label plus the narrative generated for it."""

    model_config = ConfigDict(frozen=True)

    mood: str = Field(..., min_length=1, description="The detected mood")
    content: str = Field(..., min_length=1, description="The narrative text")
    confidence: float = Field(
        ..., ge=0.0, le=1.0, description="Classifier confidence in [0, 1]"
    )


class CaptureSuccess(BaseModel):
    """A capture that produced a transcript."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["success"] = "success"
    transcript: str = Field(..., description="The recognised utterance")


class CaptureFailure(BaseModel):
    """A capture that ended in an error."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["failure"] = "failure"
    kind: CaptureErrorKind = Field(..., description="Why the capture failed")
    detail: str | None = Field(None, description="Engine specific error text")


CaptureOutcome = CaptureSuccess | CaptureFailure


class SessionSnapshot(BaseModel):
    """Read-only view of the session handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    state: SessionState = Field(..., description="The current session state")
    mode: CaptureMode = Field(..., description="The selected capture mode")
    voice_supported: bool = Field(..., description="Whether voice capture works")
    pending_transcript: str = Field("", description="Last captured transcript")
    text: str = Field("", description="The text-entry buffer")
    result: PodcastResult | None = Field(None, description="The ready podcast")
    error: str | None = Field(None, description="Message of the current error")
    error_type: str | None = Field(None, description="Class name of the error")
    progress: int = Field(0, description="Processing progress percentage")
