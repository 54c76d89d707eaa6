"""
AI Service
==========
Decides, in one place, whether an answer comes from Gemini or from the
local fallback.

Every public call follows the same path through ``_resolve``:

    1. AI disabled by config            → Local(fallback)
    2. gateway.complete(prompt), bounded by ai_timeout_seconds
    3. parse the completion into the expected schema
    4. any GatewayError along the way   → Local(fallback, reason=<kind>)
    5. otherwise                        → Remote(parsed), used verbatim

The result is tagged (Remote / Local) so callers can record which path
answered, but both carry the same value type. Gateway failures stop
here and never reach the routers.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Generic, Optional, Sequence, TypeVar, Union

from app.config import Settings, get_settings
from app.models.ai import ChatReply, ConversationTurn, MoodAssessment, StudyContext
from app.services.ai_gateway import (
    CompletionGateway,
    GatewayError,
    GatewayTimeout,
    GatewayUnavailable,
    get_gemini_gateway,
    parse_chat_reply,
    parse_mood_assessment,
)
from app.services.chat_responder import ConversationResponder, get_conversation_responder
from app.services.mood_classifier import (
    MoodClassifier,
    get_mood_classifier,
    get_transcript_classifier,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Number of prior turns included in the chat prompt
CHAT_HISTORY_WINDOW = 5


# ---------------------------------------------------------------------------
# Tagged result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Remote(Generic[T]):
    """Gemini answered with a well-formed result."""

    result: T
    source: ClassVar[str] = "remote"


@dataclass(frozen=True)
class Local(Generic[T]):
    """The local fallback answered. ``reason`` is the gateway error kind or 'disabled'."""

    result: T
    reason: str = "disabled"
    source: ClassVar[str] = "local"


AnalysisOutcome = Union[Remote[T], Local[T]]


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_MOOD_PROMPT = """\
As an AI study advisor, analyze the student's {subject} to recommend \
appropriate study hours.

Student's {subject}: "{text}"

Please analyze the emotional content and context to determine:
1. Primary mood (one of: happy, excited, tired, stressed, bored, anxious, \
focused, relaxed, neutral, sad, angry)
2. Confidence level (0.0 to 1.0) in your mood assessment
3. Recommended study hours (0.5 to 8.0 hours) based on the detected mood
4. Brief explanation of why this duration is recommended
5. 3-5 personalized study tips based on the mood

Return ONLY a JSON response in this exact format:
{{
  "mood": "<detected_mood>",
  "confidence": <confidence_score>,
  "recommendedHours": <study_hours>,
  "explanation": "<explanation>",
  "studyTips": ["<tip1>", "<tip2>", "<tip3>"],
  "moodContext": {{
    "emotionalTone": "<tone_description>",
    "energyLevel": "<energy_level>",
    "stressIndicators": ["<indicator1>", "<indicator2>"]
  }}
}}"""

_CHAT_PROMPT = """\
You are Giyas.AI, an intelligent study assistant. Consider the following \
context to provide personalized, helpful responses.

STUDENT'S CURRENT MOOD: {mood_label} ({confidence} confidence)
{mood_explanation}
STUDY CONTEXT: {study_context}

RECENT CONVERSATION:
{history}

STUDENT'S MESSAGE: {message}

INSTRUCTIONS:
- Provide helpful, encouraging study advice
- Consider the student's current mood when giving recommendations
- If they seem stressed/tired, suggest shorter sessions and breaks
- If they seem excited/focused, encourage longer, challenging sessions
- Be conversational but professional
- Include specific, actionable study tips
- Keep responses concise but comprehensive

Return ONLY a JSON response in this format:
{{
  "response": "<your helpful response>",
  "suggestions": ["<suggestion1>", "<suggestion2>"],
  "studyRecommendations": ["<recommendation1>", "<recommendation2>"],
  "moodInsights": {{
    "moodImpact": "<how mood affects study>",
    "encouragement": "<motivational message>"
  }}
}}"""


def build_mood_prompt(text: str, subject: str = "mood description") -> str:
    return _MOOD_PROMPT.format(subject=subject, text=text)


def build_chat_prompt(
    user_message: str,
    history: Sequence[ConversationTurn],
    mood: Optional[MoodAssessment],
    study_context: Optional[StudyContext],
) -> str:
    recent = history[-CHAT_HISTORY_WINDOW:] if history else []
    context = study_context.model_dump(exclude_none=True) if study_context else {}
    return _CHAT_PROMPT.format(
        mood_label=mood.mood_label if mood else "unknown",
        confidence=mood.confidence if mood else 0,
        mood_explanation=f"MOOD CONTEXT: {mood.explanation}\n" if mood and mood.explanation else "",
        study_context=json.dumps(context),
        history="\n".join(f"{turn.role}: {turn.content}" for turn in recent),
        message=user_message,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AIService:
    """Gemini first, local fallback second, for mood analysis and chat."""

    def __init__(
        self,
        settings: Settings | None = None,
        gateway: CompletionGateway | None = None,
        classifier: MoodClassifier | None = None,
        transcript_classifier: MoodClassifier | None = None,
        responder: ConversationResponder | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._gateway = gateway or get_gemini_gateway()
        self._classifier = classifier or get_mood_classifier()
        self._transcript_classifier = transcript_classifier or get_transcript_classifier()
        self._responder = responder or get_conversation_responder()

    async def analyze_text_mood(self, description: str) -> AnalysisOutcome[MoodAssessment]:
        return await self._resolve(
            build_mood_prompt(description),
            parse_mood_assessment,
            lambda: self._classifier.classify(description),
        )

    async def analyze_transcript_mood(self, transcript: str) -> AnalysisOutcome[MoodAssessment]:
        return await self._resolve(
            build_mood_prompt(transcript, subject="voice transcription"),
            parse_mood_assessment,
            lambda: self._transcript_classifier.classify(transcript),
        )

    async def generate_chat_reply(
        self,
        user_message: str,
        history: Sequence[ConversationTurn] = (),
        mood: Optional[MoodAssessment] = None,
        study_context: Optional[StudyContext] = None,
    ) -> AnalysisOutcome[ChatReply]:
        return await self._resolve(
            build_chat_prompt(user_message, history, mood, study_context),
            parse_chat_reply,
            lambda: self._responder.respond(user_message, history, mood),
        )

    async def _resolve(
        self,
        prompt: str,
        parser: Callable[[str], T],
        fallback: Callable[[], T],
    ) -> AnalysisOutcome[T]:
        if not self._settings.enable_ai_analysis:
            logger.debug("AI analysis disabled, answering from local fallback")
            return Local(fallback(), reason="disabled")

        try:
            # wait_for cancels the pending request on timeout
            text = await asyncio.wait_for(
                self._gateway.complete(prompt),
                timeout=self._settings.ai_timeout_seconds,
            )
            result = parser(text)
        except asyncio.TimeoutError:
            error: GatewayError = GatewayTimeout(
                f"no completion within {self._settings.ai_timeout_seconds}s"
            )
        except GatewayError as exc:
            error = exc
        except Exception as exc:
            logger.exception("Unexpected error from Gemini gateway")
            error = GatewayUnavailable(str(exc))
        else:
            logger.info("Gemini answered (%s)", type(result).__name__)
            return Remote(result)

        logger.warning("Gemini %s (%s), using local fallback", error.kind, error)
        return Local(fallback(), reason=error.kind)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: AIService | None = None


def get_ai_service() -> AIService:
    global _default_service
    if _default_service is None:
        _default_service = AIService()
    return _default_service
