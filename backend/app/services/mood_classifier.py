"""
Mood Classifier Service
=======================
Local keyword classifier used whenever the Gemini API cannot answer
(disabled, unreachable, timed out, or returned something unparseable).

Algorithm:
    1. Lower-case the text.
    2. Walk the keyword table in its fixed order. For each label, count
       how many of its keywords appear in the text (substring match).
    3. The first label with at least one hit wins. No hits → "neutral".
    4. confidence = min(0.8, 0.5 + 0.1 * hits)
    5. Hours come from the shared study-hours policy.

The classifier is a pure function of its input and an immutable table.
It never raises, so the fallback path can't fail.
"""

from __future__ import annotations

import logging

from app.models.ai import MoodAssessment, MoodContext
from app.services.study_policy import (
    TEXT_MOOD_KEYWORDS,
    TRANSCRIPT_MOOD_KEYWORDS,
    MoodKeywordTable,
    recommended_hours,
)

logger = logging.getLogger(__name__)

NEUTRAL_LABEL = "neutral"
BASE_CONFIDENCE = 0.5
CONFIDENCE_PER_MATCH = 0.1
MAX_FALLBACK_CONFIDENCE = 0.8

FALLBACK_STUDY_TIPS = (
    "Take regular breaks to maintain focus",
    "Set achievable study goals",
    "Create a comfortable study environment",
)


class MoodClassifier:
    """Derives a MoodAssessment from free text by keyword matching."""

    def __init__(
        self,
        table: MoodKeywordTable = TEXT_MOOD_KEYWORDS,
        explanation_source: str = "your description",
        stress_indicator: str = "text indicators",
    ) -> None:
        self._table = table
        self._explanation_source = explanation_source
        self._stress_indicator = stress_indicator

    def match(self, text: str) -> tuple[str, int]:
        """Return ``(label, hits)`` for the first label with any keyword hit."""
        lowered = (text or "").lower()
        for entry in self._table.entries:
            hits = sum(1 for keyword in entry.keywords if keyword in lowered)
            if hits > 0:
                return entry.label, hits
        return NEUTRAL_LABEL, 0

    def classify(self, text: str) -> MoodAssessment:
        label, hits = self.match(text)
        confidence = min(MAX_FALLBACK_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_MATCH * hits)

        logger.debug("Fallback classifier matched %s (%d keyword hits)", label, hits)

        return MoodAssessment(
            mood_label=label,
            # Rounded so 0.5 + 0.1 * 2 reads as 0.7, not 0.7000000000000001
            confidence=round(confidence, 2),
            recommended_hours=recommended_hours(label),
            explanation=f"Based on {self._explanation_source}, you seem {label}.",
            study_tips=list(FALLBACK_STUDY_TIPS),
            mood_context=MoodContext(
                emotional_tone=label,
                energy_level="low" if label == "tired" else "moderate",
                stress_indicators=[self._stress_indicator] if label == "stressed" else [],
            ),
        )


# ---------------------------------------------------------------------------
# Singletons
# ---------------------------------------------------------------------------

_text_classifier = MoodClassifier()
_transcript_classifier = MoodClassifier(
    table=TRANSCRIPT_MOOD_KEYWORDS,
    explanation_source="voice analysis",
    stress_indicator="voice tension",
)


def get_mood_classifier() -> MoodClassifier:
    return _text_classifier


def get_transcript_classifier() -> MoodClassifier:
    return _transcript_classifier
