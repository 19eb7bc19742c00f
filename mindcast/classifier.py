"""
Mood classification and podcast generation adapters.

The session only depends on ClassificationPort. HttpClassifier talks to a
remote podcast service; LexiconClassifier is an offline fallback that maps
keywords onto the mood vocabulary and returns a canned reflection.
"""

import logging
import re
from typing import Protocol

import httpx
from pydantic import ValidationError as SchemaError

from .errors import ClassificationError
from .models import PodcastResult

logger = logging.getLogger("mindcast.classifier")


class ClassificationPort(Protocol):
    async def classify(self, text: str) -> PodcastResult:
        """
        Map an utterance onto a mood and a narrative.

        Raises:
            ClassificationError: on any upstream failure
        """
        ...


class HttpClassifier:
    """Client for a podcast service exposing POST /podcast."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def classify(self, text: str) -> PodcastResult:
        try:
            if self._client is not None:
                return await self._request(self._client, text)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await self._request(client, text)
        except httpx.HTTPStatusError as e:
            raise ClassificationError(
                f"Podcast service answered HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ClassificationError(f"Could not reach podcast service: {e}") from e
        except (ValueError, SchemaError) as e:
            raise ClassificationError(f"Malformed podcast response: {e}") from e

    async def _request(self, client: httpx.AsyncClient, text: str) -> PodcastResult:
        response = await client.post(f"{self.base_url}/podcast", json={"text": text})
        response.raise_for_status()
        return PodcastResult.model_validate(response.json())


# mood -> (keywords, narrative)
MOOD_LEXICON: dict[str, tuple[tuple[str, ...], str]] = {
    "stressed": (
        ("stress", "overwhelm", "pressure", "deadline", "presentation", "too much"),
        "Let's slow everything down for a moment. Take a breath in, and let it "
        "out a little longer than it came in. You don't have to carry the whole "
        "list at once. Pick the one next thing, and let the rest wait its turn.",
    ),
    "anxious": (
        ("anxious", "nervous", "worried", "worry", "afraid", "scared", "panic"),
        "That flutter you're feeling is your mind trying to protect you. Thank "
        "it, then bring your attention to your feet on the floor. Right here, "
        "right now, you are safe, and you can meet tomorrow when it arrives.",
    ),
    "sad": (
        ("sad", "down", "lonely", "cry", "hurt", "lost", "grief", "miss"),
        "It's okay to feel low. Heavy days are part of being human, not a sign "
        "that something is wrong with you. Be gentle with yourself today, and "
        "remember that feelings, even the heavy ones, do pass.",
    ),
    "tired": (
        ("tired", "exhausted", "sleepy", "drained", "burned out", "worn out"),
        "Your body is asking for rest, and rest is not a reward you have to "
        "earn. Let your shoulders drop. Tonight, give yourself permission to "
        "stop a little earlier than you planned.",
    ),
    "happy": (
        ("happy", "excited", "great", "joy", "glad", "wonderful", "grateful"),
        "Let's take a moment to really savour this. Notice where the good "
        "feeling sits in your body and let it stay a while. Moments like this "
        "are worth remembering on the harder days.",
    ),
    "hopeful": (
        ("hope", "hopeful", "looking forward", "optimistic", "better", "new job"),
        "There's a quiet strength in hope. Whatever is ahead, you're already "
        "leaning toward it with an open heart. Keep that door open, one small "
        "step at a time.",
    ),
    "calm": (
        ("calm", "peaceful", "relaxed", "content", "okay", "fine"),
        "Enjoy the stillness. Let your breath find its own rhythm and simply "
        "notice what is here. This calm is yours to come back to whenever "
        "you need it.",
    ),
}

FALLBACK_MOOD = "calm"


class LexiconClassifier:
    """Offline keyword classifier with a canned narrative per mood."""

    def __init__(
        self,
        lexicon: dict[str, tuple[tuple[str, ...], str]] = MOOD_LEXICON,
        fallback: str = FALLBACK_MOOD,
    ) -> None:
        if fallback not in lexicon:
            raise ValueError(f"Fallback mood {fallback!r} is not in the lexicon")
        self._lexicon = lexicon
        self._fallback = fallback

    async def classify(self, text: str) -> PodcastResult:
        lowered = text.lower()
        words = re.findall(r"[a-z']+", lowered)
        if not words:
            raise ClassificationError("Nothing to classify")

        scores: dict[str, int] = {}
        for mood, (keywords, _) in self._lexicon.items():
            hits = sum(1 for keyword in keywords if keyword in lowered)
            if hits:
                scores[mood] = hits

        if not scores:
            content = self._lexicon[self._fallback][1]
            return PodcastResult(mood=self._fallback, content=content, confidence=0.3)

        # ties resolve in lexicon order
        mood = max(scores, key=lambda m: scores[m])
        confidence = min(0.95, 0.5 + 0.15 * scores[mood])
        logger.debug("Lexicon scores %s -> %s", scores, mood)
        return PodcastResult(
            mood=mood, content=self._lexicon[mood][1], confidence=confidence
        )
