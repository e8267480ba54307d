"""Google Cloud Text-to-Speech provider (REST)."""

import base64
import binascii
import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.studio.services.providers.base import ProviderError, SpeechProvider, SpeechResult

logger = logging.getLogger(__name__)

TTS_ENDPOINT = "https://texttospeech.googleapis.com/v1/text:synthesize"

DEFAULT_VOICE: dict[str, Any] = {
    "languageCode": "en-US",
    "name": "en-US-Neural2-C",
    "ssmlGender": "FEMALE",
}

DEFAULT_AUDIO_CONFIG: dict[str, Any] = {
    "audioEncoding": "MP3",
    "speakingRate": 1,
}

# audioEncoding -> (mime type, file extension)
AUDIO_ENCODINGS: dict[str, tuple[str, str]] = {
    "MP3": ("audio/mpeg", "mp3"),
    "OGG_OPUS": ("audio/ogg", "ogg"),
    "LINEAR16": ("audio/wav", "wav"),
}


def audio_format_for(encoding: str | None) -> tuple[str, str]:
    """MIME type and extension for an audioEncoding, MP3 when unknown."""
    return AUDIO_ENCODINGS.get((encoding or "MP3").upper(), AUDIO_ENCODINGS["MP3"])


class GoogleTTSProvider(SpeechProvider):
    """Speech provider calling the text:synthesize REST endpoint."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def synthesize(
        self,
        text: str,
        voice: dict[str, Any] | None = None,
        audio_config: dict[str, Any] | None = None,
    ) -> SpeechResult:
        if not self.api_key:
            raise ProviderError("Missing required environment variable: GOOGLE_TTS_API_KEY")

        body = {
            "input": {"text": text},
            "voice": {**DEFAULT_VOICE, **(voice or {})},
            "audioConfig": {**DEFAULT_AUDIO_CONFIG, **(audio_config or {})},
        }

        try:
            response = await self._post(body)
        except httpx.TransportError as e:
            raise ProviderError(f"Google TTS request failed: {e}") from e

        if response.is_error:
            raise ProviderError(
                f"Google TTS request failed: {response.status_code} {response.text}"
            )

        audio_content = response.json().get("audioContent")
        if not audio_content:
            raise ProviderError("Google TTS did not return audioContent")

        try:
            audio = base64.b64decode(audio_content, validate=True)
        except binascii.Error as e:
            raise ProviderError("Google TTS returned invalid audioContent") from e

        mime_type, extension = audio_format_for(body["audioConfig"].get("audioEncoding"))
        return SpeechResult(audio=audio, mime_type=mime_type, extension=extension)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        return await self.http_client.post(TTS_ENDPOINT, params={"key": self.api_key}, json=body)

    async def close(self) -> None:
        await self.http_client.aclose()
