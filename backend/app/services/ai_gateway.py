"""
Gemini Gateway
==============
Thin async wrapper around the Google Generative Language REST API, plus
the parsers that turn a completion into domain values.

The gateway has one job: send a prompt, return the completion text, or
raise a GatewayError describing why it couldn't:

    GatewayUnavailable      no API key, connection failure, non-2xx status
    GatewayTimeout          the request did not finish in time
    GatewayInvalidResponse  the reply had no text, or the text does not
                            match the JSON schema we asked for

No retries happen here. AIService decides what to do with a failure,
which is always to fall back to the local classifier/responder.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.models.ai import ChatReply, MoodAssessment, MoodContext, MoodInsights

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class GatewayError(Exception):
    """Base class for every way a remote completion can fail."""

    kind = "error"


class GatewayUnavailable(GatewayError):
    kind = "unavailable"


class GatewayTimeout(GatewayError):
    kind = "timeout"


class GatewayInvalidResponse(GatewayError):
    kind = "invalid_response"


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class CompletionGateway(Protocol):
    async def complete(self, prompt: str) -> str: ...


class GeminiGateway:
    """Sends a single-turn prompt to Gemini and returns the reply text."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def endpoint(self) -> str:
        base = self._settings.gemini_api_base.rstrip("/")
        return f"{base}/models/{self._settings.gemini_model}:generateContent"

    async def complete(self, prompt: str) -> str:
        if not self._settings.gemini_api_key:
            raise GatewayUnavailable("Gemini API key is not configured")

        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        headers = {
            "x-goog-api-key": self._settings.gemini_api_key,
            "content-type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._settings.ai_timeout_seconds) as client:
                response = await client.post(self.endpoint, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            raise GatewayTimeout(f"Gemini request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise GatewayUnavailable(f"Gemini request failed: {exc}") from exc

        if not response.is_success:
            raise GatewayUnavailable(
                f"Gemini API error {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayInvalidResponse("Gemini returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise GatewayInvalidResponse("Gemini returned an unexpected body")

        candidates = data.get("candidates") or []
        if not isinstance(candidates, list) or not all(isinstance(c, dict) for c in candidates):
            raise GatewayInvalidResponse("Gemini returned malformed candidates")

        text_parts = []
        for candidate in candidates:
            content = candidate.get("content") or {}
            parts = content.get("parts") if isinstance(content, dict) else None
            if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
                raise GatewayInvalidResponse("Gemini returned malformed candidate content")
            text_parts.extend(p["text"] for p in parts if isinstance(p.get("text"), str))
        text = "\n".join(text_parts).strip()
        if not text:
            raise GatewayInvalidResponse("Gemini returned no candidate text")
        return text


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def _extract_json(raw_response: str) -> dict[str, Any]:
    """Pull the JSON object out of a completion.

    Handles the usual model quirks: markdown code fences, leading/trailing
    whitespace, and commentary before or after the object.
    """
    text = (raw_response or "").strip()

    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    text = text.strip()

    if not text.startswith("{"):
        start = text.find("{")
        end = text.rfind("}") + 1
        if start != -1 and end > start:
            text = text[start:end]

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GatewayInvalidResponse(f"Completion is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise GatewayInvalidResponse("Completion JSON is not an object")
    return parsed


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_mood_assessment(raw_response: str) -> MoodAssessment:
    """Parse the mood-analysis schema.

    Accepts both the text prompt's keys (``mood``, ``recommendedHours``)
    and the voice prompt's (``moodType``, ``recommendedStudyHours``).
    """
    data = _extract_json(raw_response)

    try:
        context = data.get("moodContext") or {}
        label = _first_present(data, "mood", "moodType")
        return MoodAssessment(
            mood_label=label.lower().strip() if isinstance(label, str) else label,
            confidence=data.get("confidence"),
            recommended_hours=_first_present(data, "recommendedHours", "recommendedStudyHours"),
            explanation=data.get("explanation") or "",
            study_tips=data.get("studyTips") or [],
            mood_context=MoodContext(
                emotional_tone=context.get("emotionalTone") or "",
                energy_level=context.get("energyLevel") or "",
                stress_indicators=context.get("stressIndicators") or [],
            ),
        )
    except (ValidationError, AttributeError) as exc:
        raise GatewayInvalidResponse(f"Mood response does not match schema: {exc}") from exc


def parse_chat_reply(raw_response: str) -> ChatReply:
    """Parse the chat-response schema. Only ``response`` is required."""
    data = _extract_json(raw_response)

    try:
        insights = data.get("moodInsights") or {}
        return ChatReply(
            content=data.get("response"),
            suggestions=data.get("suggestions") or [],
            study_recommendations=data.get("studyRecommendations") or [],
            mood_insights=MoodInsights(
                mood_impact=insights.get("moodImpact") or "",
                encouragement=insights.get("encouragement") or "",
            ),
        )
    except (ValidationError, AttributeError) as exc:
        raise GatewayInvalidResponse(f"Chat response does not match schema: {exc}") from exc


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_gateway: GeminiGateway | None = None


def get_gemini_gateway() -> GeminiGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = GeminiGateway()
    return _default_gateway
