"""Tests for the Gemini script provider."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.genai import errors as genai_errors

from src.studio.services.providers.base import ProviderError, ScriptParams
from src.studio.services.providers.gemini import (
    DEFAULT_GEMINI_MODEL,
    GeminiScriptProvider,
    build_script_prompt,
    parse_script_response,
)

VALID_SCRIPT = {
    "outline": ["Intro"],
    "sections": [{"heading": "Intro", "narration": "Welcome.", "durationSeconds": 12}],
    "seo": {"title": "Intro video", "description": "About things", "tags": ["a", "b"]},
    "thumbnailIdeas": ["Big bold text"],
}


def _make_provider(response_text: str | None = None, error: Exception | None = None):
    generate_content = AsyncMock()
    if error is not None:
        generate_content.side_effect = error
    else:
        generate_content.return_value = SimpleNamespace(text=response_text)

    provider = GeminiScriptProvider(api_key="test-key", model="gemini-test")
    provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return provider, generate_content


class TestPrompt:
    """Tests for build_script_prompt."""

    def test_fills_defaults(self):
        prompt = build_script_prompt(ScriptParams(topic="Volcanoes"))

        assert '"Volcanoes"' in prompt
        assert "engaging, informative, and energetic" in prompt
        assert "Target runtime: 8 minutes" in prompt
        assert "Language: English" in prompt

    def test_uses_supplied_values(self):
        prompt = build_script_prompt(
            ScriptParams(topic="Volcanoes", persona="calm", length_minutes=4.5, language="Spanish")
        )

        assert "Audience persona: calm" in prompt
        assert "Target runtime: 4.5 minutes" in prompt
        assert "Language: Spanish" in prompt


class TestParseScriptResponse:
    """Tests for parse_script_response."""

    def test_valid_response(self):
        result = parse_script_response(json.dumps(VALID_SCRIPT))

        assert result.outline == ["Intro"]
        assert result.sections[0].duration_seconds == 12
        assert result.thumbnail_ideas == ["Big bold text"]

    @pytest.mark.parametrize("missing", ["outline", "sections", "seo", "thumbnailIdeas"])
    def test_incomplete_response_raises(self, missing):
        data = {k: v for k, v in VALID_SCRIPT.items() if k != missing}

        with pytest.raises(ProviderError, match="incomplete"):
            parse_script_response(json.dumps(data))

    def test_invalid_json_raises(self):
        with pytest.raises(ProviderError, match="Failed to parse Gemini JSON"):
            parse_script_response("{not json")

    def test_empty_text_raises(self):
        with pytest.raises(ProviderError, match="missing text"):
            parse_script_response(None)

    def test_section_without_narration_raises(self):
        data = {**VALID_SCRIPT, "sections": [{"heading": "Intro"}]}

        with pytest.raises(ProviderError, match="validation"):
            parse_script_response(json.dumps(data))


@pytest.mark.asyncio
class TestGeminiScriptProvider:
    """Tests for GeminiScriptProvider.generate_script."""

    async def test_calls_json_mode_with_generation_settings(self):
        provider, generate_content = _make_provider(json.dumps(VALID_SCRIPT))

        result = await provider.generate_script(ScriptParams(topic="Volcanoes"))

        assert result.seo.title == "Intro video"
        kwargs = generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        config = kwargs["config"]
        assert config.response_mime_type == "application/json"
        assert config.temperature == 0.65
        assert config.top_k == 40
        assert config.top_p == 0.8
        assert config.max_output_tokens == 2048

    async def test_missing_api_key_raises_at_call_time(self):
        provider = GeminiScriptProvider(api_key="")

        with pytest.raises(ProviderError, match="GOOGLE_GEMINI_API_KEY"):
            await provider.generate_script(ScriptParams(topic="Volcanoes"))

    async def test_client_errors_are_wrapped_without_retry(self):
        error = genai_errors.ClientError(
            400, {"error": {"code": 400, "message": "bad request", "status": "INVALID_ARGUMENT"}}
        )
        provider, generate_content = _make_provider(error=error)

        with pytest.raises(ProviderError, match="Gemini request failed"):
            await provider.generate_script(ScriptParams(topic="Volcanoes"))

        assert generate_content.await_count == 1


def test_default_model():
    assert GeminiScriptProvider(api_key="k", model="").model == DEFAULT_GEMINI_MODEL
