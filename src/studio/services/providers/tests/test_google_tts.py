"""Tests for the Google TTS provider."""

import base64
import json

import httpx
import pytest
from tenacity import wait_none

from src.studio.services.providers.base import ProviderError
from src.studio.services.providers.google_tts import GoogleTTSProvider, audio_format_for


def _provider(handler, api_key: str = "tts-key") -> GoogleTTSProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleTTSProvider(api_key, http_client=client)


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(GoogleTTSProvider._post.retry, "wait", wait_none())


def test_audio_format_for_encodings():
    assert audio_format_for("MP3") == ("audio/mpeg", "mp3")
    assert audio_format_for("OGG_OPUS") == ("audio/ogg", "ogg")
    assert audio_format_for("LINEAR16") == ("audio/wav", "wav")
    assert audio_format_for(None) == ("audio/mpeg", "mp3")


@pytest.mark.asyncio
class TestGoogleTTSProvider:
    """Tests for GoogleTTSProvider.synthesize."""

    async def test_applies_defaults_and_decodes_audio(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"audioContent": base64.b64encode(b"mp3-bytes").decode()})

        result = await _provider(handler).synthesize("Hello there")

        assert result.audio == b"mp3-bytes"
        assert result.mime_type == "audio/mpeg"
        assert result.extension == "mp3"
        body = json.loads(seen[0].content)
        assert body["input"] == {"text": "Hello there"}
        assert body["voice"] == {"languageCode": "en-US", "name": "en-US-Neural2-C", "ssmlGender": "FEMALE"}
        assert body["audioConfig"] == {"audioEncoding": "MP3", "speakingRate": 1}
        assert seen[0].url.params["key"] == "tts-key"

    async def test_overrides_merge_over_defaults(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"audioContent": base64.b64encode(b"ogg").decode()})

        result = await _provider(handler).synthesize(
            "Hi", voice={"name": "en-GB-Neural2-B"}, audio_config={"audioEncoding": "OGG_OPUS"}
        )

        body = json.loads(seen[0].content)
        assert body["voice"]["name"] == "en-GB-Neural2-B"
        assert body["voice"]["languageCode"] == "en-US"
        assert body["audioConfig"]["speakingRate"] == 1
        assert result.mime_type == "audio/ogg"
        assert result.extension == "ogg"

    async def test_missing_api_key_raises(self):
        provider = _provider(lambda request: httpx.Response(200), api_key="")

        with pytest.raises(ProviderError, match="GOOGLE_TTS_API_KEY"):
            await provider.synthesize("Hi")

    async def test_http_error_is_not_retried(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(403, text="forbidden")

        with pytest.raises(ProviderError, match="403"):
            await _provider(handler).synthesize("Hi")

        assert calls == 1

    async def test_missing_audio_content_raises(self):
        with pytest.raises(ProviderError, match="audioContent"):
            await _provider(lambda request: httpx.Response(200, json={})).synthesize("Hi")

    async def test_transport_errors_are_retried(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"audioContent": base64.b64encode(b"ok").decode()})

        result = await _provider(handler).synthesize("Hi")

        assert result.audio == b"ok"
        assert calls == 3

    async def test_transport_errors_exhaust_into_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection reset", request=request)

        with pytest.raises(ProviderError):
            await _provider(handler).synthesize("Hi")
