"""
Command-line interface for MindCast.

Runs a text-mode check-in against the configured classifier, narrates the
result in the terminal, and shows the mood journal.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from typing import Any

import typer

from .classifier import HttpClassifier
from .config import LOG_FORMAT, Settings, load_settings, parse_log_level
from .errors import MindCastError, PlaybackError
from .history import DEFAULT_RECENT, MoodHistoryStore, recent
from .models import MoodEntry, PodcastResult
from .session import create_session
from .storage import JsonFileStorage

app = typer.Typer(help="MindCast mood companion")

MOOD_ICONS = {
    "happy": "😊",
    "sad": "😢",
    "anxious": "😰",
    "stressed": "😤",
    "tired": "😴",
    "hopeful": "🌟",
    "calm": "😌",
}
DEFAULT_ICON = "🎭"

EXAMPLE_PROMPTS = (
    "I feel so overwhelmed with everything going on in my life right now",
    "I'm excited about my new job but also really nervous",
    "I've been feeling down lately and could use some encouragement",
    "I'm stressed about my upcoming presentation tomorrow",
)


# MARK: - CLI Entry Points


def cli_check_in() -> None:
    """Entry point for mindcast-check-in CLI command."""
    typer.run(check_in)


def cli_history() -> None:
    """Entry point for mindcast-history CLI command."""
    typer.run(history)


# MARK: - Commands


@app.command()
def check_in(
    text: str = typer.Argument(..., help="How you are feeling right now"),
    play: bool = typer.Option(
        False, "--play/--no-play", help="Narrate the podcast aloud"
    ),
    url: str | None = typer.Option(
        None, "--url", "-u", help="Base URL of a podcast service"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override MINDCAST_LOG_LEVEL"
    ),
) -> None:
    """Share how you feel and get a personalised podcast."""

    async def _check_in() -> None:
        settings = _configure(log_level)
        classifier = (
            HttpClassifier(url, timeout=settings.classifier_timeout) if url else None
        )
        session = create_session(settings, classifier=classifier)
        if session.error is not None:
            print(f"Warning: {session.error}")
            session.acknowledge()

        result = await session.submit(text)
        print(_format_result(result))

        if session.error is not None:
            print(f"Warning: {session.error}")

        if play:
            session.play()
            await session.wait_for_playback()
            if isinstance(session.error, PlaybackError):
                raise session.error

    _run_with_error_handling(_check_in())


@app.command()
def history(
    limit: int = typer.Option(
        DEFAULT_RECENT, "--limit", "-n", help="How many entries to show"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override MINDCAST_LOG_LEVEL"
    ),
) -> None:
    """Show your mood journey, most recent first."""

    async def _history() -> None:
        settings = _configure(log_level)
        storage = JsonFileStorage(settings.storage_path)
        store = MoodHistoryStore(storage, settings.history_key)
        entries, error = store.load()
        if error is not None:
            print(f"Warning: {error}")

        latest = recent(entries, limit)
        if json_output:
            payload = [entry.model_dump(mode="json") for entry in latest]
            print(json.dumps(payload, indent=2))
            return

        if not latest:
            print("No moods recorded yet")
            return
        for entry in latest:
            print(_format_entry(entry))

    _run_with_error_handling(_history())


@app.command()
def examples() -> None:
    """Print sample check-in prompts."""
    for prompt in EXAMPLE_PROMPTS:
        print(f'"{prompt}"')


# MARK: - Private Helpers


def _configure(log_level: str | None) -> Settings:
    """Load settings and set up logging for a command invocation."""
    settings = load_settings()
    if log_level:
        level = parse_log_level(log_level, source="--log-level")
    else:
        level = settings.log_level
    logging.basicConfig(format=LOG_FORMAT, level=level)
    return settings


def _mood_icon(mood: str) -> str:
    return MOOD_ICONS.get(mood.lower(), DEFAULT_ICON)


def _format_result(result: PodcastResult) -> str:
    """Format a podcast with its mood badge."""
    badge = f"{_mood_icon(result.mood)} {result.mood} ({result.confidence:.0%})"
    return f"{badge}\n\n{result.content}"


def _format_entry(entry: MoodEntry, width: int = 60) -> str:
    """Format one journal line with a truncated transcript."""
    timestamp = entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
    transcript = entry.transcript
    if len(transcript) > width:
        transcript = transcript[: width - 3] + "..."
    return f'{timestamp} > {_mood_icon(entry.mood)} {entry.mood} "{transcript}"'


def _run_with_error_handling(coro: Coroutine[Any, Any, Any]) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except MindCastError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
