"""
Mood journal storage for MindCast.

This module keeps the append-only log of classified moods. The whole history
is serialized as a JSON array under a single storage key, read once at
startup and overwritten in full on every append.
"""

import logging

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from .errors import PersistenceError
from .models import MoodEntry, MoodHistory
from .storage import KeyValueStorage

logger = logging.getLogger("mindcast.history")

DEFAULT_RECENT = 5

_HISTORY_ADAPTER = TypeAdapter(list[MoodEntry])


class MoodHistoryStore:
    """
    Load/append access to the persisted mood history.

    The store never re-reads storage after load(); the caller owns the
    in-memory history value and threads it through append().
    """

    def __init__(self, storage: KeyValueStorage, key: str) -> None:
        self._storage = storage
        self._key = key

    def load(self) -> tuple[MoodHistory, PersistenceError | None]:
        """
        Read the persisted history.

        Returns:
            The history (empty when absent or unreadable) and the
            PersistenceError describing a discarded value, if any
        """
        try:
            raw = self._storage.get(self._key)
            if raw is None:
                return (), None
            entries = _HISTORY_ADAPTER.validate_json(raw)
        except (PersistenceError, SchemaError) as e:
            logger.warning("Discarding unreadable mood history: %s", e)
            error = (
                e
                if isinstance(e, PersistenceError)
                else PersistenceError(f"Stored mood history is malformed: {e}")
            )
            return (), error

        logger.debug("Loaded %d mood entries", len(entries))
        return tuple(entries), None

    def append(self, history: MoodHistory, entry: MoodEntry) -> MoodHistory:
        """
        Return a new history ending with entry and persist it.

        Raises:
            PersistenceError: if the updated history could not be written
        """
        updated = (*history, entry)
        self.save(updated)
        return updated

    def save(self, history: MoodHistory) -> None:
        payload = _HISTORY_ADAPTER.dump_json(list(history)).decode("utf-8")
        self._storage.set(self._key, payload)
        logger.debug("Persisted %d mood entries", len(history))


def recent(history: MoodHistory, n: int = DEFAULT_RECENT) -> MoodHistory:
    """The last n entries, most recent first."""
    if n <= 0:
        return ()
    return tuple(reversed(history[-n:]))
