"""
Runtime configuration for MindCast.

Settings come from the environment (optionally seeded from a .env file) and
are read once at startup, then injected into the components that need them.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ConfigError

DEFAULT_STORAGE_PATH = Path.home() / ".mindcast" / "storage.json"
DEFAULT_HISTORY_KEY = "mindcast-history"
DEFAULT_LOCALE = "en-US"
DEFAULT_PREFERRED_VOICES = ("Female", "Samantha", "Karen", "en")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel, frozen=True):
    """Process-wide configuration, treated as read-only once loaded."""

    storage_path: Path = Field(
        DEFAULT_STORAGE_PATH, description="File backing the key-value storage"
    )
    history_key: str = Field(
        DEFAULT_HISTORY_KEY, description="Storage key holding the mood history"
    )
    locale: str = Field(DEFAULT_LOCALE, description="Voice capture locale")
    classifier_url: str | None = Field(
        None, description="Base URL of the podcast service; offline if unset"
    )
    classifier_timeout: float | None = Field(
        None, description="Seconds before a classification request gives up"
    )
    speech_rate: float = Field(0.8, description="Narration rate")
    speech_pitch: float = Field(0.9, description="Narration pitch")
    speech_volume: float = Field(0.8, description="Narration volume")
    preferred_voices: tuple[str, ...] = Field(
        DEFAULT_PREFERRED_VOICES, description="Voice name/locale preferences"
    )
    log_level: str = Field("WARNING", description="Root logger level")


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _float(name: str) -> float | None:
    raw = _optional(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def parse_log_level(value: str, source: str = "MINDCAST_LOG_LEVEL") -> str:
    """Normalise a logging level name, rejecting unknown ones."""
    level = value.strip().upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigError(f"{source} must be a logging level, got {value!r}")
    return level


def load_settings() -> Settings:
    """Build Settings from MINDCAST_* environment variables."""
    load_dotenv()

    values: dict[str, object] = {}
    if storage_path := _optional("MINDCAST_STORAGE_PATH"):
        values["storage_path"] = Path(storage_path).expanduser()
    if history_key := _optional("MINDCAST_HISTORY_KEY"):
        values["history_key"] = history_key
    if locale := _optional("MINDCAST_LOCALE"):
        values["locale"] = locale
    for name, field in (
        ("MINDCAST_CLASSIFIER_TIMEOUT", "classifier_timeout"),
        ("MINDCAST_SPEECH_RATE", "speech_rate"),
        ("MINDCAST_SPEECH_PITCH", "speech_pitch"),
        ("MINDCAST_SPEECH_VOLUME", "speech_volume"),
    ):
        if (number := _float(name)) is not None:
            values[field] = number
    if voices := _optional("MINDCAST_PREFERRED_VOICES"):
        values["preferred_voices"] = tuple(
            v.strip() for v in voices.split(",") if v.strip()
        )
    if log_level := _optional("MINDCAST_LOG_LEVEL"):
        values["log_level"] = parse_log_level(log_level)
    values["classifier_url"] = _optional("MINDCAST_CLASSIFIER_URL")

    return Settings(**values)
