"""
Study Hours Policy
==================
Maps a mood label to a recommended study duration, and holds the keyword
tables the local mood classifier matches against.

The policy is deliberately coarse: energised moods get longer sessions,
fatigue and stress get shorter ones, everything else gets the baseline.
It is the single source of truth for hours. The classifier looks hours
up here rather than keeping its own copy, so the two cannot drift.

Both tables are built once at import time and are immutable afterwards
(tuples inside frozen dataclasses), so they are safe to
share across concurrent requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Hours policy
# ---------------------------------------------------------------------------

DEFAULT_STUDY_HOURS = 3.0

STUDY_HOURS_BY_MOOD = MappingProxyType({
    "happy": 4.0,
    "focused": 4.0,
    "tired": 2.0,
    "stressed": 2.0,
    "bored": 3.0,
})


def recommended_hours(mood_label: str | None) -> float:
    """Recommended study hours for *mood_label*; unknown labels get the default."""
    return STUDY_HOURS_BY_MOOD.get(mood_label or "", DEFAULT_STUDY_HOURS)


# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MoodKeywords:
    label: str
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class MoodKeywordTable:
    """Ordered label → keywords entries. Earlier entries win ties."""

    entries: tuple[MoodKeywords, ...]

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, list[str]]]) -> MoodKeywordTable:
        return cls(entries=tuple(
            MoodKeywords(label=label, keywords=tuple(k.lower() for k in keywords))
            for label, keywords in pairs
        ))

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(entry.label for entry in self.entries)


# Order matters: text mentioning both "happy" and "tired" words resolves to
# happy because happy is checked first.
TEXT_MOOD_KEYWORDS = MoodKeywordTable.from_pairs([
    ("happy", ["happy", "excited", "great", "wonderful", "amazing", "fantastic", "joyful", "cheerful"]),
    ("tired", ["tired", "exhausted", "sleepy", "drained", "weary", "fatigued"]),
    ("stressed", ["stressed", "anxious", "worried", "nervous", "overwhelmed", "tense", "pressured"]),
    ("bored", ["bored", "uninterested", "dull", "monotonous", "unmotivated"]),
    ("focused", ["focused", "concentrated", "determined", "motivated", "energized"]),
])

# Spoken transcripts use a smaller vocabulary; same order.
TRANSCRIPT_MOOD_KEYWORDS = MoodKeywordTable.from_pairs([
    ("happy", ["happy", "excited", "great", "wonderful", "amazing", "fantastic"]),
    ("tired", ["tired", "exhausted", "sleepy", "drained", "weary"]),
    ("stressed", ["stressed", "anxious", "worried", "nervous", "overwhelmed"]),
    ("bored", ["bored", "uninterested", "dull", "monotonous"]),
    ("focused", ["focused", "concentrated", "determined", "motivated"]),
])
