"""
Tests for the Gemini gateway and completion parsers
===================================================
Covers:
- GeminiGateway: request shape, API key header, candidate text extraction
- Error mapping: missing key, non-2xx, connection error, timeout,
  non-JSON body, no candidate text
- parse_mood_assessment: both key spellings, code fences, surrounding
  prose, out-of-range values, unknown mood labels
- parse_chat_reply: full and minimal replies, missing response text

Run: pytest tests/test_ai_gateway.py -v
"""

from __future__ import annotations

import json

import httpx
import pytest
import respx
from httpx import Response

from app.config import Settings
from app.services.ai_gateway import (
    GatewayInvalidResponse,
    GatewayTimeout,
    GatewayUnavailable,
    GeminiGateway,
    parse_chat_reply,
    parse_mood_assessment,
)

# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"

_MOOD_JSON = {
    "mood": "Excited",
    "confidence": 0.9,
    "recommendedHours": 5.5,
    "explanation": "High energy suits a long session.",
    "studyTips": ["Start with the hardest topic", "Use active recall"],
    "moodContext": {
        "emotionalTone": "positive",
        "energyLevel": "high",
        "stressIndicators": [],
    },
}

_CHAT_JSON = {
    "response": "Let's break calculus into three short blocks.",
    "suggestions": ["25-minute blocks"],
    "studyRecommendations": ["Review derivatives first"],
    "moodInsights": {"moodImpact": "Stress shortens focus.", "encouragement": "You've got this!"},
}


def _gateway(**overrides) -> GeminiGateway:
    settings = Settings(gemini_api_key="test-key", ai_timeout_seconds=2.0, **overrides)
    return GeminiGateway(settings)


def _gemini_body(*texts: str) -> dict:
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": t} for t in texts]}}
        ]
    }


# ---------------------------------------------------------------------------
# TestGeminiGateway
# ---------------------------------------------------------------------------

class TestGeminiGateway:

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_candidate_text(self):
        respx.post(_ENDPOINT).mock(return_value=Response(200, json=_gemini_body("hello")))

        assert await _gateway().complete("hi") == "hello"

    @pytest.mark.asyncio
    @respx.mock
    async def test_joins_multiple_parts(self):
        respx.post(_ENDPOINT).mock(return_value=Response(200, json=_gemini_body("{", '"a": 1}')))

        assert await _gateway().complete("hi") == '{\n"a": 1}'

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_shape_and_key_header(self):
        route = respx.post(_ENDPOINT).mock(return_value=Response(200, json=_gemini_body("ok")))

        await _gateway().complete("Analyse this")

        request = route.calls[0].request
        assert request.headers["x-goog-api-key"] == "test-key"
        assert json.loads(request.content) == {
            "contents": [{"role": "user", "parts": [{"text": "Analyse this"}]}]
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_custom_model_in_endpoint(self):
        url = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
        route = respx.post(url).mock(return_value=Response(200, json=_gemini_body("ok")))

        gateway = _gateway(gemini_model="gemini-1.5-flash")
        await gateway.complete("hi")

        assert gateway.endpoint == url
        assert route.called

    @pytest.mark.asyncio
    async def test_missing_key_is_unavailable(self):
        gateway = GeminiGateway(Settings(gemini_api_key=""))
        with pytest.raises(GatewayUnavailable):
            await gateway.complete("hi")

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_2xx_is_unavailable(self):
        respx.post(_ENDPOINT).mock(return_value=Response(503, text="Service Unavailable"))

        with pytest.raises(GatewayUnavailable) as exc_info:
            await _gateway().complete("hi")

        assert "503" in str(exc_info.value)
        assert exc_info.value.kind == "unavailable"

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_is_unavailable(self):
        respx.post(_ENDPOINT).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(GatewayUnavailable):
            await _gateway().complete("hi")

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self):
        respx.post(_ENDPOINT).mock(side_effect=httpx.ReadTimeout("too slow"))

        with pytest.raises(GatewayTimeout) as exc_info:
            await _gateway().complete("hi")

        assert exc_info.value.kind == "timeout"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_is_invalid(self):
        respx.post(_ENDPOINT).mock(return_value=Response(200, text="<html>oops</html>"))

        with pytest.raises(GatewayInvalidResponse):
            await _gateway().complete("hi")

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_candidates_is_invalid(self):
        respx.post(_ENDPOINT).mock(return_value=Response(200, json={"candidates": []}))

        with pytest.raises(GatewayInvalidResponse) as exc_info:
            await _gateway().complete("hi")

        assert exc_info.value.kind == "invalid_response"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"candidates": ["not an object"]},
        {"candidates": [{"content": {"parts": ["plain string"]}}]},
        {"candidates": [{"content": "text"}]},
        {"candidates": {"content": {}}},
    ])
    async def test_malformed_candidates_are_invalid(self, body: dict):
        with respx.mock:
            respx.post(_ENDPOINT).mock(return_value=Response(200, json=body))

            with pytest.raises(GatewayInvalidResponse):
                await _gateway().complete("hi")


# ---------------------------------------------------------------------------
# TestParseMoodAssessment
# ---------------------------------------------------------------------------

class TestParseMoodAssessment:

    def test_text_schema(self):
        result = parse_mood_assessment(json.dumps(_MOOD_JSON))

        assert result.mood_label == "excited"
        assert result.confidence == 0.9
        assert result.recommended_hours == 5.5
        assert result.study_tips == ["Start with the hardest topic", "Use active recall"]
        assert result.mood_context.energy_level == "high"

    def test_voice_schema(self):
        body = {"moodType": "tired", "confidence": 0.6, "recommendedStudyHours": 1.5}
        result = parse_mood_assessment(json.dumps(body))

        assert result.mood_label == "tired"
        assert result.recommended_hours == 1.5
        assert result.study_tips == []

    def test_markdown_fences(self):
        raw = "```json\n" + json.dumps(_MOOD_JSON) + "\n```"
        assert parse_mood_assessment(raw).mood_label == "excited"

    def test_surrounding_prose(self):
        raw = "Here is the analysis:\n" + json.dumps(_MOOD_JSON) + "\nHope this helps!"
        assert parse_mood_assessment(raw).recommended_hours == 5.5

    def test_unknown_label_is_invalid(self):
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps({**_MOOD_JSON, "mood": "confused"}))

    @pytest.mark.parametrize("hours", [0.2, 9, 12.0])
    def test_hours_out_of_range_is_invalid(self, hours: float):
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps({**_MOOD_JSON, "recommendedHours": hours}))

    def test_confidence_out_of_range_is_invalid(self):
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps({**_MOOD_JSON, "confidence": 1.5}))

    def test_too_many_tips_is_invalid(self):
        tips = [f"tip {i}" for i in range(6)]
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps({**_MOOD_JSON, "studyTips": tips}))

    def test_missing_mood_is_invalid(self):
        body = {k: v for k, v in _MOOD_JSON.items() if k != "mood"}
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps(body))

    def test_mood_context_not_an_object_is_invalid(self):
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(json.dumps({**_MOOD_JSON, "moodContext": ["calm"]}))

    @pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2, 3]", "{broken"])
    def test_garbage_is_invalid(self, raw: str):
        with pytest.raises(GatewayInvalidResponse):
            parse_mood_assessment(raw)


# ---------------------------------------------------------------------------
# TestParseChatReply
# ---------------------------------------------------------------------------

class TestParseChatReply:

    def test_full_reply(self):
        reply = parse_chat_reply(json.dumps(_CHAT_JSON))

        assert reply.content == "Let's break calculus into three short blocks."
        assert reply.suggestions == ["25-minute blocks"]
        assert reply.study_recommendations == ["Review derivatives first"]
        assert reply.mood_insights.encouragement == "You've got this!"

    def test_minimal_reply(self):
        reply = parse_chat_reply('{"response": "Take a break."}')

        assert reply.content == "Take a break."
        assert reply.suggestions == []
        assert reply.mood_insights.mood_impact == ""

    def test_fenced_reply(self):
        raw = "```\n" + json.dumps(_CHAT_JSON) + "\n```"
        assert parse_chat_reply(raw).suggestions == ["25-minute blocks"]

    @pytest.mark.parametrize("body", [{}, {"response": ""}, {"suggestions": ["x"]}])
    def test_missing_response_is_invalid(self, body: dict):
        with pytest.raises(GatewayInvalidResponse):
            parse_chat_reply(json.dumps(body))
