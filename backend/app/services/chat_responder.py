"""
Chat Responder
==============
Templated, mood-sensitive chat replies for when the Gemini API is not
available. The reply depends only on the current mood label:

    tired / stressed  → empathetic, suggests breaks and smaller goals
    happy / focused   → energised, suggests harder topics and longer sessions
    anything else     → neutral planning prompts

History is accepted so the signature matches the remote path, but the
fallback does not read it. Replies are not history-aware offline.
"""

from __future__ import annotations

from typing import Optional, Sequence

from app.models.ai import ChatReply, ConversationTurn, MoodAssessment, MoodInsights

_OPENING = "I'm here to help you with your studies! "

_LOW_ENERGY_MOODS = frozenset({"tired", "stressed"})
_HIGH_ENERGY_MOODS = frozenset({"happy", "focused"})

_LOW_ENERGY_REPLY = (
    "I notice you might be feeling a bit overwhelmed. Let's take this step by step.",
    ("Take a 5-minute break", "Start with easier subjects", "Set smaller, achievable goals"),
)
_HIGH_ENERGY_REPLY = (
    "Great energy! You're in a perfect state for productive studying.",
    ("Tackle challenging topics first", "Plan longer study sessions", "Set ambitious but realistic goals"),
)
_NEUTRAL_REPLY = (
    "How can I help you optimize your study plan today?",
    ("Review your current schedule", "Set study priorities", "Plan your next session"),
)

ENCOURAGEMENT = "Remember, every study session brings you closer to your goals!"


class ConversationResponder:
    """Stateless fallback for AIService.generate_chat_reply."""

    def respond(
        self,
        user_message: str,
        history: Sequence[ConversationTurn] = (),
        mood: Optional[MoodAssessment] = None,
    ) -> ChatReply:
        label = mood.mood_label if mood else "neutral"

        if label in _LOW_ENERGY_MOODS:
            body, suggestions = _LOW_ENERGY_REPLY
        elif label in _HIGH_ENERGY_MOODS:
            body, suggestions = _HIGH_ENERGY_REPLY
        else:
            body, suggestions = _NEUTRAL_REPLY

        return ChatReply(
            content=_OPENING + body,
            suggestions=list(suggestions),
            study_recommendations=[],
            mood_insights=MoodInsights(
                mood_impact=f"Your {label} mood can influence study effectiveness.",
                encouragement=ENCOURAGEMENT,
            ),
        )


_default_responder = ConversationResponder()


def get_conversation_responder() -> ConversationResponder:
    return _default_responder
