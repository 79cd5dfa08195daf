"""
Mood Rating Model for the Routine Engine.

After a routine ends the user can rate how they feel on a five-step scale.
Ratings are kept per session by the session controller.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum


class Mood(IntEnum):
    """Five-step mood scale; the value is the numeric rating (1-5)."""

    TERRIBLE = 1
    BAD = 2
    NEUTRAL = 3
    GOOD = 4
    EXCELLENT = 5

    @property
    def emoji(self) -> str:
        return _MOOD_EMOJI[self]

    @property
    def label(self) -> str:
        return _MOOD_LABELS[self]


_MOOD_EMOJI: dict[Mood, str] = {
    Mood.TERRIBLE: "\U0001f635",
    Mood.BAD: "\U0001f634",
    Mood.NEUTRAL: "\U0001f610",
    Mood.GOOD: "\U0001f60a",
    Mood.EXCELLENT: "\U0001f604",
}

_MOOD_LABELS: dict[Mood, str] = {
    Mood.TERRIBLE: "Terrible",
    Mood.BAD: "Tired",
    Mood.NEUTRAL: "Okay",
    Mood.GOOD: "Good",
    Mood.EXCELLENT: "Excellent",
}


@dataclass(frozen=True)
class MoodRating:
    """A mood recorded after a routine session ended."""

    session_id: str
    rating: Mood
    recorded_at: datetime
    notes: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


__all__ = ["Mood", "MoodRating"]
